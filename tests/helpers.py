from datetime import datetime, timezone

from greenguardian.domain.models import (
    Actuator,
    ActuatorState,
    ControlMode,
    RootSnapshot,
    SensorSnapshot,
)

TS = datetime(2025, 5, 12, 12, 0, tzinfo=timezone.utc)

ON = ActuatorState.ON
OFF = ActuatorState.OFF


def make_snapshot(
    temperature=None,
    humidity=None,
    soil_moisture=None,
    light_intensity=None,
    fan=None,
    pump=None,
    lid=None,
    bulb=None,
    mode=ControlMode.AUTOMATIC,
):
    return RootSnapshot(
        ts_utc=TS,
        sensors=SensorSnapshot(temperature, humidity, soil_moisture, light_intensity),
        actuators={
            Actuator.FAN: fan,
            Actuator.PUMP: pump,
            Actuator.LID: lid,
            Actuator.BULB: bulb,
        },
        mode=mode,
    )


class RecordingSink:
    def __init__(self, fail=()):
        self.sent = []
        self.fail = set(fail)

    async def send(self, command):
        if command.actuator in self.fail:
            raise RuntimeError(f"{command.actuator.value} unreachable")
        self.sent.append(command)


def gemini_reply(text):
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}
