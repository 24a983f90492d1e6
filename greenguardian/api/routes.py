from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException

from ..core.config import settings
from ..core.timeutil import now_utc, now_local
from ..domain.controller import ThresholdController
from ..domain.errors import StoreError
from ..domain.models import Actuator, ActuatorState, ControlMode
from ..domain.wire import RootKeys
from ..drivers.store_sim import SimulatedRealtimeStore
from ..services.automation import AutomationService
from ..services.genai import (
    ActuatorScheduleInput,
    GreenhouseAdvisor,
    IrrigationInput,
    PestDiseaseInput,
    expand_schedule,
)
from ..services.history import HistorySummary, daily_points, preprocess_history
from ..services.weather import fetch_forecast_summary
from ..storage.sqlite_repo import SQLiteRepository
from .schemas import (
    ActuatorRequest,
    ChatRequest,
    IrrigationRequest,
    ModeRequest,
    OutlookRequest,
    ScheduleGenerateRequest,
    ScheduleSaveRequest,
    SimFailRequest,
    SimSensorsRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Dependency getters, overridden in main via app.dependency_overrides ---
def get_automation() -> AutomationService:  # overridden in main
    raise RuntimeError("Automation dependency not configured")

def get_controller() -> ThresholdController:  # overridden in main
    raise RuntimeError("Controller dependency not configured")

def get_repo() -> SQLiteRepository:  # overridden in main
    raise RuntimeError("Repo dependency not configured")

def get_advisor() -> GreenhouseAdvisor:  # overridden in main
    raise RuntimeError("Advisor dependency not configured")

def get_keys() -> RootKeys:  # overridden in main
    raise RuntimeError("Keys dependency not configured")

def get_sim_store() -> SimulatedRealtimeStore:  # overridden in main
    raise RuntimeError("Simulated store dependency not configured")


def _actuator(name: str) -> Actuator:
    try:
        return Actuator(name.lower())
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown actuator: {name}")


async def _history_summary(repo: SQLiteRepository, days: int = 7) -> HistorySummary:
    end = now_utc()
    start = end - timedelta(days=days)
    rows = await repo.query_snapshots(start.isoformat(), end.isoformat(), limit=20000)
    return preprocess_history(daily_points(rows, days))


async def _forecast(given: str | None) -> str:
    if given:
        return given
    return await fetch_forecast_summary(
        settings.weather_api_key,
        settings.weather_location,
        timeout=settings.weather_timeout_seconds,
    )


@router.get("/live")
async def get_live(svc: AutomationService = Depends(get_automation)):
    snap = svc.live.last_snapshot
    last = svc.live.last_pass
    return {
        "app": settings.app_name,
        "store_mode": svc.live.store_mode,
        "now_local": now_local().isoformat(),
        "snapshot": {
            "ts_utc": snap.ts_utc.isoformat() if snap else None,
            "sensors": asdict(snap.sensors) if snap else None,
            "actuators": {a.value: (s.value if s else None) for a, s in snap.actuators.items()} if snap else None,
            "mode": snap.mode.value if snap else None,
        },
        "last_pass": {
            "ts_utc": svc.live.last_pass_utc.isoformat() if svc.live.last_pass_utc else None,
            "mode": last.mode.value if last else None,
            "decisions": {
                a.value: {"desired": d.desired.value, "reason": d.reason}
                for a, d in last.decisions.items()
            } if last else {},
            "commands": [
                {"actuator": r.command.actuator.value, "state": r.command.state.value, "ok": r.ok, "error": r.error}
                for r in last.results
            ] if last else [],
        },
        "passes": svc.live.passes,
    }


@router.get("/notifications")
async def notifications(svc: AutomationService = Depends(get_automation)):
    return {
        "rows": [
            {"ts_utc": n.ts_utc.isoformat(), "title": n.title, "message": n.message, "level": n.level}
            for n in svc.notifications
        ]
    }


@router.post("/mode")
async def set_mode(req: ModeRequest, svc: AutomationService = Depends(get_automation)):
    mode = ControlMode.AUTOMATIC if req.automatic else ControlMode.MANUAL
    try:
        await svc.set_mode(mode)
    except StoreError as e:
        raise HTTPException(status_code=502, detail=f"Failed to update System Mode: {e}")
    return {"ok": True, "mode": mode.value}


@router.post("/mode/toggle")
async def toggle_mode(svc: AutomationService = Depends(get_automation)):
    snap = svc.live.last_snapshot
    if snap is None:
        raise HTTPException(status_code=409, detail="System Mode data not available.")
    mode = ControlMode.MANUAL if snap.mode is ControlMode.AUTOMATIC else ControlMode.AUTOMATIC
    try:
        await svc.set_mode(mode)
    except StoreError as e:
        raise HTTPException(status_code=502, detail=f"Failed to update System Mode: {e}")
    return {"ok": True, "mode": mode.value}


@router.post("/actuators/{name}")
async def set_actuator(name: str, req: ActuatorRequest, svc: AutomationService = Depends(get_automation)):
    actuator = _actuator(name)
    state = ActuatorState.of(req.on)
    try:
        await svc.set_actuator(actuator, state)
    except StoreError as e:
        raise HTTPException(status_code=502, detail=f"Failed to update {actuator.label}: {e}")
    return {"ok": True, "actuator": actuator.value, "state": state.value}


@router.post("/actuators/{name}/toggle")
async def toggle_actuator(name: str, svc: AutomationService = Depends(get_automation)):
    actuator = _actuator(name)
    snap = svc.live.last_snapshot
    current = snap.actuators.get(actuator) if snap else None
    if current is None:
        raise HTTPException(status_code=409, detail=f"{actuator.label} data not available.")
    state = ActuatorState.OFF if current.is_on else ActuatorState.ON
    try:
        await svc.set_actuator(actuator, state)
    except StoreError as e:
        raise HTTPException(status_code=502, detail=f"Failed to update {actuator.label}: {e}")
    return {"ok": True, "actuator": actuator.value, "state": state.value}


@router.get("/thresholds")
async def thresholds(ctrl: ThresholdController = Depends(get_controller)):
    return asdict(ctrl.thresholds)


@router.get("/readings")
async def readings(
    minutes: int = 60,
    limit: int = 5000,
    repo: SQLiteRepository = Depends(get_repo),
):
    end = now_utc()
    start = end - timedelta(minutes=max(1, minutes))
    rows = await repo.query_snapshots(start.isoformat(), end.isoformat(), limit=min(limit, 20000))
    return {
        "start_utc": start.isoformat(),
        "end_utc": end.isoformat(),
        "rows": [
            {
                "ts_utc": r.ts_utc.isoformat(),
                "temperature": r.temperature,
                "humidity": r.humidity,
                "soil_moisture": r.soil_moisture,
                "light_intensity": r.light_intensity,
            }
            for r in rows
        ],
    }


@router.get("/history")
async def history(days: int = 7, repo: SQLiteRepository = Depends(get_repo)):
    if days < 1 or days > 30:
        raise HTTPException(status_code=400, detail="days must be between 1 and 30")
    end = now_utc()
    start = end - timedelta(days=days)
    rows = await repo.query_snapshots(start.isoformat(), end.isoformat(), limit=20000)
    return {"days": days, "points": [asdict(p) for p in daily_points(rows, days)]}


@router.get("/actions")
async def actions(
    minutes: int = 240,
    limit: int = 2000,
    repo: SQLiteRepository = Depends(get_repo),
):
    end = now_utc()
    start = end - timedelta(minutes=max(1, minutes))
    rows = await repo.query_actions(start.isoformat(), end.isoformat(), limit=min(limit, 20000))
    return {
        "start_utc": start.isoformat(),
        "end_utc": end.isoformat(),
        "rows": [
            {
                "ts_utc": a.ts_utc.isoformat(),
                "actuator": a.actuator_id,
                "state": a.state,
                "reason": a.reason,
                "source": a.source,
            }
            for a in rows
        ],
    }


# --- Generative helpers ---
@router.post("/schedule/generate")
async def generate_schedule(
    req: ScheduleGenerateRequest,
    repo: SQLiteRepository = Depends(get_repo),
    advisor: GreenhouseAdvisor = Depends(get_advisor),
):
    summary = await _history_summary(repo)
    inp = ActuatorScheduleInput(
        crop_type=advisor.crop_type,
        average_temperature=summary.average_temperature,
        average_humidity=summary.average_humidity,
        average_soil_moisture_drop=summary.average_soil_moisture_drop,
        weather_forecast_summary=await _forecast(req.weather_forecast_summary),
    )
    day_one, generated = await advisor.generate_actuator_schedule(inp)
    days = expand_schedule(day_one, req.days)
    return {
        "generated": generated,
        "input": inp.model_dump(),
        "days": [[e.model_dump() for e in day] for day in days],
    }


@router.put("/schedule/{user_id}/days/{day}")
async def save_schedule(
    user_id: str,
    day: int,
    req: ScheduleSaveRequest,
    repo: SQLiteRepository = Depends(get_repo),
):
    if day < 1:
        raise HTTPException(status_code=400, detail="day must be at least 1")
    await repo.save_schedule(user_id, day, [e.model_dump() for e in req.entries], now_utc())
    return {"ok": True, "user_id": user_id, "day": day, "count": len(req.entries)}


@router.get("/schedule/{user_id}/days/{day}")
async def load_schedule(user_id: str, day: int, repo: SQLiteRepository = Depends(get_repo)):
    entries = await repo.get_schedule(user_id, day)
    if entries is None:
        raise HTTPException(status_code=404, detail=f"No schedule saved for day {day}")
    return {"user_id": user_id, "day": day, "entries": entries}


@router.post("/outlook")
async def outlook(
    req: OutlookRequest,
    repo: SQLiteRepository = Depends(get_repo),
    advisor: GreenhouseAdvisor = Depends(get_advisor),
):
    summary = await _history_summary(repo)
    inp = PestDiseaseInput(
        average_temperature_c=summary.average_temperature,
        average_humidity_percent=summary.average_humidity,
        seven_day_weather_forecast_summary=await _forecast(req.weather_forecast_summary),
        recent_pest_activity_notes=req.recent_pest_activity_notes or "No specific observations noted.",
        plant_growth_stage=req.plant_growth_stage,
    )
    out, generated = await advisor.predict_pest_disease(inp)
    return {"generated": generated, "input": inp.model_dump(), "outlook": out.model_dump()}


@router.post("/chat")
async def chat(req: ChatRequest, advisor: GreenhouseAdvisor = Depends(get_advisor)):
    out = await advisor.support_chat(req.user_query)
    return out.model_dump()


@router.post("/irrigation")
async def irrigation(
    req: IrrigationRequest,
    repo: SQLiteRepository = Depends(get_repo),
    advisor: GreenhouseAdvisor = Depends(get_advisor),
):
    summary = await _history_summary(repo)
    inp = IrrigationInput(
        crop=advisor.crop_type,
        average_daily_moisture_drop=summary.average_soil_moisture_drop,
        average_temperature=summary.average_temperature,
        average_humidity=summary.average_humidity,
        rainy_days=req.rainy_days,
    )
    out, generated = await advisor.generate_irrigation_schedule(inp)
    return {"generated": generated, "schedule": out.schedule}


# --- Simulation endpoints ---
@router.get("/sim/status")
async def sim_status(store: SimulatedRealtimeStore = Depends(get_sim_store)):
    return store.status()


@router.post("/sim/sensors")
async def sim_set_sensors(
    req: SimSensorsRequest,
    store: SimulatedRealtimeStore = Depends(get_sim_store),
    keys: RootKeys = Depends(get_keys),
):
    if req.clear:
        store.clear_manual()
    values = {
        keys.temperature: req.temperature,
        keys.humidity: req.humidity,
        keys.soil_moisture: req.soil_moisture,
        keys.light_intensity: req.light_intensity,
    }
    pinned = {k: v for k, v in values.items() if v is not None}
    for name in req.unset:
        pinned[getattr(keys, name)] = None
    if pinned:
        store.set_manual(pinned)
    return {"ok": True, "manual": store.status()["manual"]}


@router.post("/sim/fail")
async def sim_fail(
    req: SimFailRequest,
    store: SimulatedRealtimeStore = Depends(get_sim_store),
    keys: RootKeys = Depends(get_keys),
):
    failing = {keys.actuator_key(_actuator(name)) for name in req.actuators}
    store.set_failing_keys(failing)
    return {"ok": True, "failing_keys": sorted(failing)}
