from __future__ import annotations
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional

from .models import Actuator, ActuatorState, ControlMode, RootSnapshot, SensorSnapshot


_ON_TOKENS = {"1", "on", "true"}
_OFF_TOKENS = {"0", "off", "false"}


@dataclass(frozen=True)
class RootKeys:
    """Names of the root payload keys in the realtime store."""

    temperature: str = "V1"
    humidity: str = "V2"
    soil_moisture: str = "V3"
    light_intensity: str = "V4"
    bulb: str = "B2"
    pump: str = "B3"
    fan: str = "B4"
    lid: str = "B5"
    mode: str = "Mode"

    @classmethod
    def from_settings(cls, s) -> "RootKeys":
        return cls(
            temperature=s.key_temperature,
            humidity=s.key_humidity,
            soil_moisture=s.key_soil_moisture,
            light_intensity=s.key_light_intensity,
            bulb=s.key_bulb,
            pump=s.key_pump,
            fan=s.key_fan,
            lid=s.key_lid,
            mode=s.key_mode,
        )

    def actuator_key(self, actuator: Actuator) -> str:
        return getattr(self, actuator.value)


def parse_reading(raw: Any) -> Optional[float]:
    """Coerce a number or numeric string to float; anything else is unknown."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        try:
            value = float(raw.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def parse_state(raw: Any) -> Optional[ActuatorState]:
    if isinstance(raw, bool):
        return ActuatorState.of(raw)
    if isinstance(raw, (int, float)):
        if raw == 1:
            return ActuatorState.ON
        if raw == 0:
            return ActuatorState.OFF
        return None
    if isinstance(raw, str):
        token = raw.strip().lower()
        if token in _ON_TOKENS:
            return ActuatorState.ON
        if token in _OFF_TOKENS:
            return ActuatorState.OFF
    return None


def parse_mode(raw: Any) -> ControlMode:
    # Only an explicit "1" enables automation
    if parse_state(raw) is ActuatorState.ON:
        return ControlMode.AUTOMATIC
    return ControlMode.MANUAL


def encode_state(state: ActuatorState) -> str:
    return "1" if state.is_on else "0"


def encode_mode(mode: ControlMode) -> str:
    return "1" if mode is ControlMode.AUTOMATIC else "0"


def parse_root(data: Optional[Mapping[str, Any]], keys: RootKeys, ts_utc: datetime) -> RootSnapshot:
    data = data or {}
    sensors = SensorSnapshot(
        temperature=parse_reading(data.get(keys.temperature)),
        humidity=parse_reading(data.get(keys.humidity)),
        soil_moisture=parse_reading(data.get(keys.soil_moisture)),
        light_intensity=parse_reading(data.get(keys.light_intensity)),
    )
    actuators = {a: parse_state(data.get(keys.actuator_key(a))) for a in Actuator}
    return RootSnapshot(
        ts_utc=ts_utc,
        sensors=sensors,
        actuators=actuators,
        mode=parse_mode(data.get(keys.mode)),
    )
