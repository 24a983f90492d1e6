from __future__ import annotations
import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from ..core.timeutil import now_utc
from ..domain.controller import ThresholdController
from ..domain.interfaces import RealtimeStore, Repository
from ..domain.models import (
    ActionEvent,
    Actuator,
    ActuatorCommand,
    ActuatorState,
    ControlMode,
    Notification,
    PassResult,
    RootSnapshot,
    SnapshotRecord,
)
from ..domain.wire import RootKeys, encode_mode, encode_state, parse_root

logger = logging.getLogger(__name__)


class StoreCommandSink:
    """Turns actuator commands into ``set value at key`` writes."""

    def __init__(self, store: RealtimeStore, keys: RootKeys) -> None:
        self._store = store
        self._keys = keys

    async def send(self, command: ActuatorCommand) -> None:
        await self._store.set_value(self._keys.actuator_key(command.actuator), encode_state(command.state))


@dataclass
class LiveState:
    store_mode: str = "sim"
    last_snapshot: Optional[RootSnapshot] = None
    last_pass: Optional[PassResult] = None
    last_pass_utc: Optional[datetime] = None
    passes: int = 0


class AutomationService:
    def __init__(
        self,
        store: RealtimeStore,
        controller: ThresholdController,
        repo: Repository,
        keys: RootKeys,
        store_mode: str = "sim",
        history_interval_seconds: int = 60,
        notification_buffer: int = 50,
    ) -> None:
        self._store = store
        self._controller = controller
        self._repo = repo
        self._keys = keys
        self._sink = StoreCommandSink(store, keys)
        self._history_interval = timedelta(seconds=history_interval_seconds)
        self._last_recorded: Optional[datetime] = None

        self._unsubscribe: Optional[Callable[[], None]] = None
        self._pending: set[asyncio.Task] = set()

        self.live = LiveState(store_mode=store_mode)
        self.notifications: deque[Notification] = deque(maxlen=notification_buffer)

    async def start(self) -> None:
        self._unsubscribe = self._store.subscribe(self._on_root)
        logger.info("Automation subscribed to store (mode=%s)", self.live.store_mode)

    async def stop(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
        await self.wait_idle()
        logger.info("Automation stopped")

    async def wait_idle(self) -> None:
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _on_root(self, root: dict[str, Any]) -> None:
        # Passes may overlap; each one works only on its own copy of the root
        task = asyncio.get_running_loop().create_task(self.process(root))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def process(self, root: dict[str, Any]) -> Optional[PassResult]:
        try:
            snapshot = parse_root(root, self._keys, now_utc())
            self.live.last_snapshot = snapshot
            result = await self._controller.run(snapshot, self._sink)
        except Exception as e:
            logger.exception("Automation pass error: %s", e)
            return None

        self.live.last_pass = result
        self.live.last_pass_utc = snapshot.ts_utc
        self.live.passes += 1

        for r in result.failures:
            self._notify_failure(r.command.actuator)

        # Repository failures below are logged only
        try:
            await self._record_history(snapshot)
        except Exception as e:
            logger.exception("History insert failed: %s", e)

        for r in result.results:
            if not r.ok:
                continue
            try:
                await self._repo.insert_action(
                    ActionEvent(
                        ts_utc=snapshot.ts_utc,
                        actuator_id=r.command.actuator.value,
                        state=r.command.state.is_on,
                        reason=r.command.reason,
                        source="auto",
                    )
                )
            except Exception as e:
                logger.exception("Action insert failed for %s: %s", r.command.actuator.value, e)
        return result

    async def _record_history(self, snapshot: RootSnapshot) -> None:
        ts = snapshot.ts_utc
        if self._last_recorded and ts - self._last_recorded < self._history_interval:
            return
        self._last_recorded = ts
        s = snapshot.sensors
        await self._repo.insert_snapshot(
            SnapshotRecord(
                ts_utc=ts,
                temperature=s.temperature,
                humidity=s.humidity,
                soil_moisture=s.soil_moisture,
                light_intensity=s.light_intensity,
            )
        )

    def _notify_failure(self, actuator: Actuator) -> None:
        self.notifications.append(
            Notification(now_utc(), "Error", f"Failed to update {actuator.label}.", level="error")
        )

    # --- Manual control ---
    async def set_actuator(self, actuator: Actuator, state: ActuatorState) -> None:
        """Write one actuator directly. Raises StoreWriteError on failure."""
        cmd = ActuatorCommand(actuator, state, "manual")
        try:
            await self._sink.send(cmd)
        except Exception:
            self._notify_failure(actuator)
            raise
        self.notifications.append(
            Notification(now_utc(), f"{actuator.label} Updated", f"{actuator.label} has been set to {state.value}.")
        )
        try:
            await self._repo.insert_action(
                ActionEvent(now_utc(), actuator.value, state.is_on, "manual", source="manual")
            )
        except Exception as e:
            logger.exception("Action insert failed for %s: %s", actuator.value, e)

    async def set_mode(self, mode: ControlMode) -> None:
        await self._store.set_value(self._keys.mode, encode_mode(mode))
        label = "AI Mode" if mode is ControlMode.AUTOMATIC else "Manual Mode"
        self.notifications.append(
            Notification(now_utc(), "System Mode Updated", f"System Mode has been set to {label}.")
        )
