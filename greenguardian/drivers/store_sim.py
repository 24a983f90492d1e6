from __future__ import annotations
import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..domain.errors import StoreWriteError
from ..domain.interfaces import RootCallback
from ..domain.wire import RootKeys

logger = logging.getLogger(__name__)


@dataclass
class RandomRange:
    low: float
    high: float
    decimals: int = 0

    def sample(self) -> float:
        v = self.low + random.random() * (self.high - self.low)
        return round(v, self.decimals) if self.decimals else float(int(v))


class SimulatedRealtimeStore:
    """In-memory stand-in for the realtime database.

    Sensors drift randomly every ``update_seconds`` unless pinned to a manual
    value; writes notify subscribers the same way the real store does.
    """

    def __init__(self, keys: RootKeys, update_seconds: float = 5.0) -> None:
        self._keys = keys
        self._update_seconds = update_seconds
        self._root: dict[str, Any] = {
            keys.temperature: 25.0,
            keys.humidity: 60,
            keys.soil_moisture: 50,
            keys.light_intensity: 1000,
            keys.bulb: "0",
            keys.pump: "0",
            keys.fan: "0",
            keys.lid: "0",
            keys.mode: "0",
        }
        self._ranges: dict[str, RandomRange] = {
            keys.temperature: RandomRange(20, 30, decimals=1),
            keys.humidity: RandomRange(50, 80),
            keys.soil_moisture: RandomRange(40, 80),
            keys.light_intensity: RandomRange(500, 1500),
        }
        self._manual: dict[str, Any] = {}
        self._fail_keys: set[str] = set()
        self._listeners: list[RootCallback] = []
        self._enabled = True

        self._task: Optional[asyncio.Task] = None
        self._stop = asyncio.Event()

    # --- RealtimeStore ---
    async def start(self) -> None:
        self._stop.clear()
        self._task = asyncio.create_task(self._run(), name="sim_store_loop")

    async def stop(self) -> None:
        self._stop.set()
        if self._task:
            await self._task
            self._task = None

    async def get_root(self) -> dict[str, Any]:
        return dict(self._root)

    async def set_value(self, key: str, value: Any) -> None:
        if key in self._fail_keys:
            raise StoreWriteError(key, "simulated write failure")
        self._root[key] = value
        logger.info("SIM set %s=%s", key, value)
        self._notify()

    def subscribe(self, callback: RootCallback) -> Callable[[], None]:
        self._listeners.append(callback)
        callback(dict(self._root))

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    # --- Simulation controls ---
    def enable(self) -> None:
        self._enabled = True

    def disable(self) -> None:
        self._enabled = False

    def set_manual(self, values: dict[str, Any]) -> None:
        """Pin sensor keys to fixed values; ``None`` removes the key entirely."""
        self._manual.update(values)
        self._apply_manual()
        self._notify()

    def clear_manual(self) -> None:
        """Drop every pin; sensor keys removed by a pin come back with a fresh sample."""
        self._manual.clear()
        for key, rng in self._ranges.items():
            if key not in self._root:
                self._root[key] = rng.sample()
        self._notify()

    def set_failing_keys(self, keys: set[str]) -> None:
        self._fail_keys = set(keys)

    def tick(self) -> None:
        if not self._enabled:
            return
        for key, rng in self._ranges.items():
            self._root[key] = rng.sample()
        self._apply_manual()
        self._notify()

    def status(self) -> dict:
        return {
            "enabled": self._enabled,
            "update_seconds": self._update_seconds,
            "manual": dict(self._manual),
            "failing_keys": sorted(self._fail_keys),
            "root": dict(self._root),
        }

    def _apply_manual(self) -> None:
        for key, value in self._manual.items():
            if value is None:
                self._root.pop(key, None)
            else:
                self._root[key] = value

    def _notify(self) -> None:
        for cb in list(self._listeners):
            try:
                cb(dict(self._root))
            except Exception:
                logger.exception("SIM subscriber failed")

    async def _run(self) -> None:
        logger.info("Simulated store started (update_seconds=%s)", self._update_seconds)
        while not self._stop.is_set():
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._update_seconds)
            except asyncio.TimeoutError:
                self.tick()
        logger.info("Simulated store stopped")
