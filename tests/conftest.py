import pytest

from greenguardian.domain.wire import RootKeys
from greenguardian.drivers.store_sim import SimulatedRealtimeStore
from greenguardian.storage.sqlite_repo import SQLiteRepository


@pytest.fixture
def keys():
    return RootKeys()


@pytest.fixture
def sim_store(keys):
    return SimulatedRealtimeStore(keys, update_seconds=3600)


@pytest.fixture
async def repo(tmp_path):
    r = SQLiteRepository(str(tmp_path / "test.db"))
    await r.init()
    return r


@pytest.fixture
def scenario_root(keys):
    return {
        keys.temperature: 30,
        keys.humidity: 80,
        keys.soil_moisture: 20,
        keys.light_intensity: 2000,
        keys.fan: "0",
        keys.pump: "0",
        keys.lid: "0",
        keys.bulb: "0",
        keys.mode: "1",
    }
