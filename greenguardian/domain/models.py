from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class Actuator(str, Enum):
    FAN = "fan"
    PUMP = "pump"
    LID = "lid"
    BULB = "bulb"

    @property
    def label(self) -> str:
        return _ACTUATOR_LABELS[self]


_ACTUATOR_LABELS = {
    Actuator.FAN: "Fan",
    Actuator.PUMP: "Water Pump",
    Actuator.LID: "Lid Motor",
    Actuator.BULB: "Bulb",
}


class ActuatorState(str, Enum):
    ON = "ON"
    OFF = "OFF"

    @classmethod
    def of(cls, on: bool) -> "ActuatorState":
        return cls.ON if on else cls.OFF

    @property
    def is_on(self) -> bool:
        return self is ActuatorState.ON


class ControlMode(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"


@dataclass(frozen=True)
class SensorSnapshot:
    # None means missing or unparseable, never zero
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    soil_moisture: Optional[float] = None
    light_intensity: Optional[float] = None


@dataclass(frozen=True)
class RootSnapshot:
    ts_utc: datetime
    sensors: SensorSnapshot
    actuators: dict[Actuator, Optional[ActuatorState]]
    mode: ControlMode


@dataclass(frozen=True)
class Decision:
    actuator: Actuator
    desired: ActuatorState
    reason: str


@dataclass(frozen=True)
class ActuatorCommand:
    actuator: Actuator
    state: ActuatorState
    reason: str


@dataclass(frozen=True)
class CommandResult:
    command: ActuatorCommand
    ok: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class PassResult:
    mode: ControlMode
    decisions: dict[Actuator, Decision] = field(default_factory=dict)
    results: list[CommandResult] = field(default_factory=list)

    @property
    def commands(self) -> list[ActuatorCommand]:
        return [r.command for r in self.results]

    @property
    def failures(self) -> list[CommandResult]:
        return [r for r in self.results if not r.ok]


@dataclass(frozen=True)
class ActionEvent:
    ts_utc: datetime
    actuator_id: str
    state: bool
    reason: str
    source: str  # "auto" | "manual"


@dataclass(frozen=True)
class SnapshotRecord:
    ts_utc: datetime
    temperature: Optional[float]
    humidity: Optional[float]
    soil_moisture: Optional[float]
    light_intensity: Optional[float]


@dataclass(frozen=True)
class HistoricalDataPoint:
    day: str  # local date, YYYY-MM-DD
    temperature: Optional[float]
    humidity: Optional[float]
    soil_moisture: Optional[float]
    light_intensity: Optional[float]
    samples: int


@dataclass(frozen=True)
class Notification:
    ts_utc: datetime
    title: str
    message: str
    level: str = "info"  # "info" | "error"
