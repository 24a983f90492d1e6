import pytest

from greenguardian.domain.errors import StoreWriteError


async def test_pin_none_removes_sensor_key(sim_store, keys):
    sim_store.set_manual({keys.humidity: None})
    assert keys.humidity not in await sim_store.get_root()


async def test_clear_manual_restores_keys_and_notifies(sim_store, keys):
    seen = []
    sim_store.subscribe(seen.append)
    sim_store.set_manual({keys.humidity: None, keys.soil_moisture: 12})

    sim_store.clear_manual()

    root = await sim_store.get_root()
    assert 50 <= root[keys.humidity] <= 80
    assert seen[-1] == root
    assert sim_store.status()["manual"] == {}


async def test_failing_key_rejects_write(sim_store, keys):
    sim_store.set_failing_keys({keys.pump})

    with pytest.raises(StoreWriteError) as exc:
        await sim_store.set_value(keys.pump, "1")

    assert exc.value.key == keys.pump
    assert (await sim_store.get_root())[keys.pump] == "0"
