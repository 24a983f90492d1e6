from greenguardian.domain.controller import ThresholdController
from greenguardian.domain.errors import StoreWriteError
from greenguardian.domain.models import Actuator, ActuatorState, ControlMode
from greenguardian.services.automation import AutomationService

import pytest


def make_service(store, repo, keys, **kw):
    return AutomationService(store, ThresholdController(), repo, keys, **kw)


async def test_scenario_writes_four_actuators(sim_store, repo, keys, scenario_root):
    svc = make_service(sim_store, repo, keys)

    result = await svc.process(scenario_root)

    assert len(result.commands) == 4
    root = await sim_store.get_root()
    for key in (keys.fan, keys.lid, keys.pump, keys.bulb):
        assert root[key] == "1"
    assert svc.live.last_snapshot.mode is ControlMode.AUTOMATIC
    assert svc.live.passes == 1


async def test_manual_mode_writes_nothing(sim_store, repo, keys, scenario_root):
    svc = make_service(sim_store, repo, keys)
    scenario_root[keys.mode] = "0"

    result = await svc.process(scenario_root)

    assert result.commands == []
    root = await sim_store.get_root()
    assert root[keys.fan] == "0"


async def test_second_pass_on_updated_store_is_a_no_op(sim_store, repo, keys, scenario_root):
    svc = make_service(sim_store, repo, keys)
    await sim_store.set_value(keys.mode, "1")
    sim_store.set_manual({keys.temperature: 30, keys.humidity: 80, keys.soil_moisture: 20, keys.light_intensity: 2000})

    first = await svc.process(await sim_store.get_root())
    second = await svc.process(await sim_store.get_root())

    assert len(first.commands) == 4
    assert second.commands == []


async def test_write_failure_is_reported_per_actuator(sim_store, repo, keys, scenario_root):
    svc = make_service(sim_store, repo, keys)
    sim_store.set_failing_keys({keys.fan})

    result = await svc.process(scenario_root)

    assert [f.command.actuator for f in result.failures] == [Actuator.FAN]
    root = await sim_store.get_root()
    assert root[keys.fan] == "0"
    assert root[keys.lid] == "1"
    assert root[keys.pump] == "1"
    assert root[keys.bulb] == "1"

    assert len(svc.notifications) == 1
    n = svc.notifications[0]
    assert n.level == "error"
    assert "Fan" in n.message

    actions = await repo.query_actions("2000-01-01", "2100-01-01", limit=10)
    assert {a.actuator_id for a in actions} == {"lid", "pump", "bulb"}
    assert all(a.source == "auto" for a in actions)


async def test_history_is_throttled(sim_store, repo, keys, scenario_root):
    svc = make_service(sim_store, repo, keys, history_interval_seconds=3600)

    await svc.process(scenario_root)
    await svc.process(scenario_root)

    rows = await repo.query_snapshots("2000-01-01", "2100-01-01", limit=10)
    assert len(rows) == 1
    assert rows[0].humidity == 80.0


class FlakyRepo:
    def __init__(self, snapshot_error=None, action_error=None):
        self.snapshot_error = snapshot_error
        self.action_error = action_error
        self.actions = []

    async def insert_snapshot(self, record):
        if self.snapshot_error:
            raise RuntimeError(self.snapshot_error)

    async def insert_action(self, action):
        if self.action_error:
            raise RuntimeError(self.action_error)
        self.actions.append(action)


async def test_history_insert_failure_still_commands_actuators(sim_store, keys, scenario_root):
    svc = AutomationService(sim_store, ThresholdController(), FlakyRepo(snapshot_error="database is locked"), keys)

    result = await svc.process(scenario_root)

    assert len(result.commands) == 4
    root = await sim_store.get_root()
    assert [root[k] for k in (keys.fan, keys.lid, keys.pump, keys.bulb)] == ["1", "1", "1", "1"]
    assert svc.live.passes == 1


async def test_action_insert_failure_still_notifies_failed_writes(sim_store, keys, scenario_root):
    sim_store.set_failing_keys({keys.bulb})
    svc = AutomationService(sim_store, ThresholdController(), FlakyRepo(action_error="disk full"), keys)

    result = await svc.process(scenario_root)

    assert [f.command.actuator for f in result.failures] == [Actuator.BULB]
    assert any("Bulb" in n.message for n in svc.notifications)
    root = await sim_store.get_root()
    assert root[keys.fan] == "1"
    assert root[keys.bulb] == "0"


async def test_manual_toggle_survives_action_insert_failure(sim_store, keys):
    svc = AutomationService(sim_store, ThresholdController(), FlakyRepo(action_error="disk full"), keys)

    await svc.set_actuator(Actuator.FAN, ActuatorState.ON)

    assert (await sim_store.get_root())[keys.fan] == "1"
    assert svc.notifications[-1].title == "Fan Updated"


async def test_subscription_drives_passes(sim_store, repo, keys):
    svc = make_service(sim_store, repo, keys)
    await svc.start()
    await svc.wait_idle()

    sim_store.set_manual({keys.soil_moisture: 10})
    await sim_store.set_value(keys.mode, "1")
    await svc.wait_idle()

    root = await sim_store.get_root()
    assert root[keys.pump] == "1"
    await svc.stop()


async def test_manual_toggle_records_action(sim_store, repo, keys):
    svc = make_service(sim_store, repo, keys)

    await svc.set_actuator(Actuator.BULB, ActuatorState.ON)

    assert (await sim_store.get_root())[keys.bulb] == "1"
    actions = await repo.query_actions("2000-01-01", "2100-01-01", limit=10)
    assert [(a.actuator_id, a.state, a.source) for a in actions] == [("bulb", True, "manual")]
    assert svc.notifications[-1].title == "Bulb Updated"


async def test_manual_toggle_failure_raises_and_notifies(sim_store, repo, keys):
    svc = make_service(sim_store, repo, keys)
    sim_store.set_failing_keys({keys.pump})

    with pytest.raises(StoreWriteError):
        await svc.set_actuator(Actuator.PUMP, ActuatorState.ON)

    assert svc.notifications[-1].message == "Failed to update Water Pump."


async def test_set_mode_writes_flag(sim_store, repo, keys):
    svc = make_service(sim_store, repo, keys)

    await svc.set_mode(ControlMode.AUTOMATIC)

    assert (await sim_store.get_root())[keys.mode] == "1"
