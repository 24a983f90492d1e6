from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from .interfaces import CommandSink
from .models import (
    Actuator,
    ActuatorCommand,
    ActuatorState,
    CommandResult,
    ControlMode,
    Decision,
    PassResult,
    RootSnapshot,
    SensorSnapshot,
)

logger = logging.getLogger(__name__)

ON = ActuatorState.ON
OFF = ActuatorState.OFF


@dataclass(frozen=True)
class ThresholdConfig:
    humidity_high_fan_on: float = 75.0
    temp_high: float = 28.0
    temp_low_fan_off: float = 24.0
    humidity_high_lid_open: float = 70.0
    humidity_low_lid_close: float = 50.0
    soil_moisture_low_pump_on: float = 35.0
    soil_moisture_high_pump_off: float = 55.0
    light_low_bulb_on: float = 4000.0
    light_high_bulb_off: float = 8000.0

    @classmethod
    def from_settings(cls, s) -> "ThresholdConfig":
        return cls(**{name: float(getattr(s, name)) for name in cls.__dataclass_fields__})


def decide_fan(sensors: SensorSnapshot, t: ThresholdConfig) -> Decision:
    h = sensors.humidity
    if h is not None and h > t.humidity_high_fan_on:
        return Decision(Actuator.FAN, ON, f"humidity {h:.1f} > {t.humidity_high_fan_on:g}")

    temp = sensors.temperature
    if temp is None:
        return Decision(Actuator.FAN, OFF, "temperature unknown")
    if temp > t.temp_high:
        return Decision(Actuator.FAN, ON, f"temperature {temp:.1f} > {t.temp_high:g}")
    if temp < t.temp_low_fan_off:
        return Decision(Actuator.FAN, OFF, f"temperature {temp:.1f} < {t.temp_low_fan_off:g}")
    # Dead band resets to OFF whatever the fan was doing
    return Decision(
        Actuator.FAN, OFF,
        f"temperature {temp:.1f} within {t.temp_low_fan_off:g}-{t.temp_high:g}",
    )


def decide_lid(sensors: SensorSnapshot, fan: ActuatorState, t: ThresholdConfig) -> Decision:
    h = sensors.humidity
    if h is None:
        return Decision(Actuator.LID, OFF, "humidity unknown")
    if h > t.humidity_high_lid_open and fan is ON:
        return Decision(Actuator.LID, ON, f"humidity {h:.1f} > {t.humidity_high_lid_open:g} with fan on")
    if h < t.humidity_low_lid_close:
        return Decision(Actuator.LID, OFF, f"humidity {h:.1f} < {t.humidity_low_lid_close:g}")
    if fan is OFF:
        return Decision(Actuator.LID, OFF, "fan off")
    return Decision(
        Actuator.LID, OFF,
        f"humidity {h:.1f} within {t.humidity_low_lid_close:g}-{t.humidity_high_lid_open:g}",
    )


def _hold_band(
    actuator: Actuator,
    name: str,
    value: Optional[float],
    on_below: float,
    off_above: float,
    current: Optional[ActuatorState],
) -> Decision:
    if value is None:
        # Never run blind
        return Decision(actuator, OFF, f"{name} unknown")
    if value < on_below:
        return Decision(actuator, ON, f"{name} {value:.1f} < {on_below:g}")
    if value > off_above:
        return Decision(actuator, OFF, f"{name} {value:.1f} > {off_above:g}")
    held = current or OFF
    return Decision(actuator, held, f"{name} {value:.1f} within {on_below:g}-{off_above:g}, holding {held.value}")


def decide_pump(sensors: SensorSnapshot, current: Optional[ActuatorState], t: ThresholdConfig) -> Decision:
    return _hold_band(
        Actuator.PUMP, "soil moisture", sensors.soil_moisture,
        t.soil_moisture_low_pump_on, t.soil_moisture_high_pump_off, current,
    )


def decide_bulb(sensors: SensorSnapshot, current: Optional[ActuatorState], t: ThresholdConfig) -> Decision:
    return _hold_band(
        Actuator.BULB, "light", sensors.light_intensity,
        t.light_low_bulb_on, t.light_high_bulb_off, current,
    )


def decide_all(
    sensors: SensorSnapshot,
    current: Mapping[Actuator, Optional[ActuatorState]],
    t: ThresholdConfig,
) -> dict[Actuator, Decision]:
    """Desired state for every actuator. Fan goes first because Lid reads it."""
    fan = decide_fan(sensors, t)
    return {
        Actuator.FAN: fan,
        Actuator.LID: decide_lid(sensors, fan.desired, t),
        Actuator.PUMP: decide_pump(sensors, current.get(Actuator.PUMP), t),
        Actuator.BULB: decide_bulb(sensors, current.get(Actuator.BULB), t),
    }


class ThresholdController:
    """AI Mode: rule-based ON/OFF control of fan, lid, pump and bulb.

    Stateless between passes. Previous actuator states come in with the
    snapshot, and only actuators whose desired state differs from the last
    known one produce a command.
    """

    def __init__(self, thresholds: Optional[ThresholdConfig] = None) -> None:
        self.thresholds = thresholds or ThresholdConfig()

    def plan(self, snapshot: RootSnapshot) -> tuple[dict[Actuator, Decision], list[ActuatorCommand]]:
        decisions = decide_all(snapshot.sensors, snapshot.actuators, self.thresholds)
        commands: list[ActuatorCommand] = []
        for actuator, decision in decisions.items():
            current = snapshot.actuators.get(actuator) or OFF
            if decision.desired is not current:
                commands.append(ActuatorCommand(actuator, decision.desired, decision.reason))
        return decisions, commands

    async def run(self, snapshot: RootSnapshot, sink: CommandSink) -> PassResult:
        if snapshot.mode is not ControlMode.AUTOMATIC:
            return PassResult(mode=snapshot.mode)

        decisions, commands = self.plan(snapshot)
        s = snapshot.sensors
        logger.info(
            "decide: temp=%s hum=%s soil=%s light=%s -> %s",
            s.temperature, s.humidity, s.soil_moisture, s.light_intensity,
            " ".join(f"{a.value}={d.desired.value}" for a, d in decisions.items()),
        )

        outcomes = await asyncio.gather(
            *(sink.send(cmd) for cmd in commands), return_exceptions=True
        )

        results: list[CommandResult] = []
        for cmd, outcome in zip(commands, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, Exception):
                logger.warning(
                    "command %s=%s failed: %s", cmd.actuator.value, cmd.state.value, outcome
                )
                results.append(CommandResult(cmd, ok=False, error=str(outcome)))
            else:
                logger.info("command %s=%s (%s)", cmd.actuator.value, cmd.state.value, cmd.reason)
                results.append(CommandResult(cmd, ok=True))

        return PassResult(mode=snapshot.mode, decisions=decisions, results=results)
