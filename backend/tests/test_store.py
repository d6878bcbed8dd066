import json
from datetime import timedelta

import pytest
from sqlalchemy import select

from uptovia.models import Alert, Device
from uptovia.utils.clock import utcnow


async def test_list_active_monitors_skips_inactive(store, add_monitor) -> None:
    active = await add_monitor(name="active")
    await add_monitor(name="paused", active=False)

    async with store.session() as session:
        monitors = await store.list_active_monitors(session)

    assert [m.id for m in monitors] == [active.id]


async def test_new_monitor_starts_unknown(add_monitor) -> None:
    monitor = await add_monitor()
    assert monitor.current_status == "unknown"
    assert monitor.last_check is None
    assert monitor.accepted_status_codes == "200"


async def test_update_live_state_of_missing_monitor_is_noop(store) -> None:
    async with store.session() as session:
        assert await store.update_monitor_live_state(session, 4242, current_status="up") is False


async def test_update_live_state_rejects_config_fields(store, add_monitor) -> None:
    monitor = await add_monitor()
    async with store.session() as session:
        with pytest.raises(ValueError):
            await store.update_monitor_live_state(session, monitor.id, check_interval=5)


async def test_compute_24h_stats_only_counts_window(store, add_monitor) -> None:
    monitor = await add_monitor()
    now = utcnow()

    async with store.session() as session:
        await store.insert_check_result(session, monitor.id, "up", 10, 200, None, checked_at=now - timedelta(hours=1))
        await store.insert_check_result(session, monitor.id, "down", None, None, "x", checked_at=now - timedelta(hours=23))
        await store.insert_check_result(session, monitor.id, "up", 10, 200, None, checked_at=now - timedelta(hours=25))
        await session.commit()

        stats = await store.compute_24h_stats(session, monitor.id, now=now)

    assert stats.total == 2
    assert stats.successful == 1


async def test_compute_24h_stats_without_rows(store, add_monitor) -> None:
    monitor = await add_monitor()
    async with store.session() as session:
        assert tuple(await store.compute_24h_stats(session, monitor.id)) == (0, 0)


async def test_devices_for_user_are_filtered(store, add_device) -> None:
    await add_device("token-a", user_id=1)
    await add_device("token-b", user_id=2)
    await add_device("token-c", user_id=1, enabled=0)

    async with store.session() as session:
        devices = await store.list_devices_for_user(session, 1)

    assert [d.device_token for d in devices] == ["token-a"]


async def test_delete_device(store, add_device) -> None:
    await add_device("token-a")

    async with store.session() as session:
        assert await store.delete_device(session, "token-a") is True
        assert await store.delete_device(session, "token-a") is False
        await session.commit()
        remaining = (await session.execute(select(Device))).scalars().all()

    assert remaining == []


async def test_insert_alert_serializes_payload(store, add_monitor) -> None:
    monitor = await add_monitor()
    async with store.session() as session:
        await store.insert_alert(session, monitor.id, "down", "push", {"devices_success": 2}, success=True)
        await session.commit()
        alert = (await session.execute(select(Alert))).scalar_one()

    assert alert.channel == "push"
    assert alert.success == 1
    assert json.loads(alert.payload) == {"devices_success": 2}
