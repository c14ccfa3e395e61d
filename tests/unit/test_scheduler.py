import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from app.core.exceptions import BolAPIError
from app.models import Order
from app.scheduler import JOB_ID, BolSyncScheduler
from tests.fixtures.bol_fixtures import bol_order, create_bol_integration, create_installation


async def seed_two_installations(db, mock_bol_client):
    await create_installation(db, installation_id=1)
    await create_installation(db, installation_id=2)
    await create_bol_integration(db, 1, client_id="client-a", client_secret="secret-a")
    await create_bol_integration(db, 2, client_id="client-b", client_secret="secret-b")
    mock_bol_client.set_orders("client-a", [bol_order("A1", ean="111")])
    mock_bol_client.set_orders("client-b", [bol_order("B1", ean="222"), bol_order("B2", ean="333")])


"""
1. Cycle Tests
"""

@pytest.mark.asyncio
async def test_cycle_reconciles_every_installation(db_session, mock_bol_client, sync_scheduler):
    await seed_two_installations(db_session, mock_bol_client)

    summary = await sync_scheduler.run_cycle()

    assert summary.results == {
        1: {"imported": 1, "updated": 0, "total": 1},
        2: {"imported": 2, "updated": 0, "total": 2},
    }
    assert summary.errors == {}
    assert summary.finished_at is not None
    assert sync_scheduler.last_cycle is summary
    assert not sync_scheduler.running


@pytest.mark.asyncio
async def test_installations_are_listed_once(db_session, sync_scheduler):
    await create_installation(db_session, installation_id=1)
    await create_installation(db_session, installation_id=2)
    await create_installation(db_session, installation_id=3)
    await create_bol_integration(db_session, 1)
    await create_bol_integration(db_session, 1, client_id="second")
    await create_bol_integration(db_session, 2, active=False)
    await create_bol_integration(db_session, 3)

    assert await sync_scheduler.installations_to_sync() == [1, 3]


@pytest.mark.asyncio
async def test_failing_installation_does_not_stop_cycle(db_session, mock_bol_client, sync_scheduler):
    await seed_two_installations(db_session, mock_bol_client)
    original = mock_bol_client.get_open_orders

    async def flaky_get_open_orders(credentials, page=1):
        if credentials.client_id == "client-a":
            raise BolAPIError("Bol API error: 500", status_code=500)
        return await original(credentials, page)

    mock_bol_client.get_open_orders = flaky_get_open_orders

    summary = await sync_scheduler.run_cycle()

    assert summary.errors == {1: "Bol API error: 500"}
    assert summary.results == {2: {"imported": 2, "updated": 0, "total": 2}}


@pytest.mark.asyncio
async def test_second_cycle_is_skipped_while_running(db_session, mock_bol_client, sync_scheduler):
    await seed_two_installations(db_session, mock_bol_client)
    release = asyncio.Event()
    original = mock_bol_client.get_open_orders

    async def slow_get_open_orders(credentials, page=1):
        await release.wait()
        return await original(credentials, page)

    mock_bol_client.get_open_orders = slow_get_open_orders

    first = asyncio.create_task(sync_scheduler.run_cycle())
    while not sync_scheduler.running:
        await asyncio.sleep(0)

    skipped = await sync_scheduler.run_cycle()
    release.set()
    summary = await first

    assert skipped is None
    assert len(summary.results) == 2
    assert len(mock_bol_client.calls_for("get_open_orders")) == 2


@pytest.mark.asyncio
async def test_cycle_failure_is_recorded(db_session, mocker, sync_scheduler):
    mocker.patch.object(sync_scheduler, "installations_to_sync", side_effect=RuntimeError("db down"))

    summary = await sync_scheduler.run_cycle()

    assert summary.error == "db down"
    assert not sync_scheduler.running


@pytest.mark.asyncio
async def test_repeated_cycles_update_orders(db_session, session_factory, mock_bol_client, sync_scheduler):
    await seed_two_installations(db_session, mock_bol_client)

    await sync_scheduler.run_cycle()
    summary = await sync_scheduler.run_cycle()

    assert summary.results[2] == {"imported": 0, "updated": 2, "total": 2}
    async with session_factory() as db:
        orders = (await db.execute(Order.__table__.select())).all()
    assert len(orders) == 3


"""
2. Timer Tests
"""

@pytest.mark.asyncio
async def test_start_schedules_first_run_immediately(sync_scheduler):
    before = datetime.now(timezone.utc)
    sync_scheduler.start()
    try:
        job = sync_scheduler._scheduler.get_job(JOB_ID)
        assert job is not None
        assert job.trigger.interval == timedelta(minutes=5)
        assert job.next_run_time <= datetime.now(timezone.utc) + timedelta(seconds=1)
        assert job.next_run_time >= before - timedelta(seconds=1)
        assert sync_scheduler.started
        assert sync_scheduler.status()["status"] == "running"
    finally:
        sync_scheduler.stop()

    assert not sync_scheduler.started
    assert sync_scheduler.status()["status"] == "stopped"
    assert sync_scheduler.status()["next_run"] is None


@pytest.mark.asyncio
async def test_start_twice_keeps_a_single_job(sync_scheduler):
    sync_scheduler.start()
    try:
        sync_scheduler.start()
        jobs = sync_scheduler._scheduler.get_jobs()
        assert [job.id for job in jobs] == [JOB_ID]
    finally:
        sync_scheduler.stop()


@pytest.mark.asyncio
async def test_reschedule_replaces_interval(sync_scheduler):
    sync_scheduler.start()
    try:
        sync_scheduler.reschedule("15")
        job = sync_scheduler._scheduler.get_job(JOB_ID)
        assert job.trigger.interval == timedelta(minutes=15)
        assert sync_scheduler.status()["interval_minutes"] == 15
    finally:
        sync_scheduler.stop()


@pytest.mark.parametrize("value", [None, "", "abc", "0", "-3"])
def test_invalid_interval_falls_back_to_default(value):
    scheduler = BolSyncScheduler(interval_minutes=value)
    assert scheduler.interval_minutes == 5


@pytest.mark.asyncio
async def test_status_before_start(sync_scheduler):
    status = sync_scheduler.status()

    assert status == {
        "status": "stopped",
        "cycle_running": False,
        "interval_minutes": 5,
        "next_run": None,
        "last_cycle": None,
    }
