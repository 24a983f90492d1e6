from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException

from .core.config import settings
from .core.log import configure_logging

from .api.routes import router as api_router
import greenguardian.api.routes as routes_module

from .domain.controller import ThresholdConfig, ThresholdController
from .domain.interfaces import RealtimeStore
from .domain.wire import RootKeys
from .drivers.store_firebase import FirebaseRealtimeStore
from .drivers.store_sim import SimulatedRealtimeStore
from .services.automation import AutomationService
from .services.genai import GenerativeClient, GreenhouseAdvisor
from .storage.sqlite_repo import SQLiteRepository


logger = logging.getLogger(__name__)


keys = RootKeys.from_settings(settings)
sim_store: SimulatedRealtimeStore | None = None


def build_store() -> RealtimeStore:
    global sim_store

    if settings.store_mode.lower() == "firebase":
        return FirebaseRealtimeStore(
            base_url=settings.firebase_url,
            root_path=settings.firebase_root_path,
            auth_token=settings.firebase_auth_token,
            timeout=settings.store_timeout_seconds,
            reconnect_seconds=settings.stream_reconnect_seconds,
        )

    # default to sim
    sim_store = SimulatedRealtimeStore(keys, update_seconds=settings.sim_update_seconds)
    return sim_store

store = build_store()


# --- Singletons ---
controller = ThresholdController(ThresholdConfig.from_settings(settings))
repo = SQLiteRepository(settings.sqlite_path)
advisor = GreenhouseAdvisor(
    GenerativeClient(
        base_url=settings.genai_base_url,
        model=settings.genai_model,
        api_key=settings.genai_api_key,
        timeout=settings.genai_timeout_seconds,
    ),
    crop_type=settings.crop_type,
    outlook_temperature=settings.genai_temperature,
)
automation = AutomationService(
    store=store,
    controller=controller,
    repo=repo,
    keys=keys,
    store_mode=settings.store_mode,
    history_interval_seconds=settings.history_interval_seconds,
    notification_buffer=settings.notification_buffer,
)


def get_automation() -> AutomationService:
    return automation


def get_controller() -> ThresholdController:
    return controller


def get_repo() -> SQLiteRepository:
    return repo


def get_advisor() -> GreenhouseAdvisor:
    return advisor


def get_keys() -> RootKeys:
    return keys


def get_sim_store() -> SimulatedRealtimeStore:
    if sim_store is None:
        raise HTTPException(status_code=404, detail="Simulator not available (store_mode is not 'sim').")
    return sim_store


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info("Starting %s (store_mode=%s)", settings.app_name, settings.store_mode)

    await repo.init()
    await store.start()
    await automation.start()

    try:
        yield
    finally:
        await automation.stop()
        await store.stop()
        logger.info("Shutdown complete")


app = FastAPI(title=settings.app_name, lifespan=lifespan)

# Make the dependency functions in routes resolve to the real ones
app.dependency_overrides[routes_module.get_automation] = get_automation
app.dependency_overrides[routes_module.get_controller] = get_controller
app.dependency_overrides[routes_module.get_repo] = get_repo
app.dependency_overrides[routes_module.get_advisor] = get_advisor
app.dependency_overrides[routes_module.get_keys] = get_keys
app.dependency_overrides[routes_module.get_sim_store] = get_sim_store

app.include_router(api_router, prefix="/api")
