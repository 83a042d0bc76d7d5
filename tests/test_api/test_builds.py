"""Tests for the /builds endpoints."""

import asyncio
import threading
import time

import pytest


async def _submit(client, identity, **extra):
    body = {"identity": identity, "display_name": f"User {identity}", **extra}
    return await client.post("/builds/", json=body)


@pytest.mark.asyncio
async def test_submit_starts_immediately_when_slot_free(client):
    response = await _submit(client, "1001", kind="zip", payload={"app_name": "Shop"})

    assert response.status_code == 201
    data = response.json()
    assert data["accepted"] is True
    assert data["immediate"] is True
    assert data["position"] == 0
    assert data["estimated_wait_minutes"] == 0


@pytest.mark.asyncio
async def test_submit_queues_when_busy(client):
    await _submit(client, "1001")
    response = await _submit(client, "1002")

    data = response.json()
    assert data["immediate"] is False
    assert data["position"] == 1
    assert data["estimated_wait_minutes"] == 3
    assert data["request_id"].startswith("build_")


@pytest.mark.asyncio
async def test_admin_submission_jumps_the_queue(client):
    await _submit(client, "1001")
    await _submit(client, "1002")
    response = await _submit(client, "9001")

    data = response.json()
    assert data["is_priority"] is True
    assert data["position"] == 1


@pytest.mark.asyncio
async def test_running_identity_gets_409(client):
    await _submit(client, "1001")
    response = await _submit(client, "1001")
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_invalid_kind_rejected(client):
    """Unknown build kinds should fail validation with 422."""
    response = await _submit(client, "1001", kind="dmg")
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_withdraw_queued_build(client):
    await _submit(client, "1001")
    await _submit(client, "1002")

    response = await client.delete("/builds/1002")
    assert response.json() == {"removed": True}

    response = await client.delete("/builds/1002")
    assert response.json() == {"removed": False}


@pytest.mark.asyncio
async def test_release_promotes_next_build(client, api_queue):
    await _submit(client, "1001")
    await _submit(client, "1002")

    response = await client.post("/builds/1001/release", json={"succeeded": False})

    assert response.json() == {"released": True}
    assert api_queue.has_active("1002")
    assert api_queue.get_stats()["failed"] == 1


@pytest.mark.asyncio
async def test_release_unknown_build_is_not_an_error(client):
    response = await client.post("/builds/nobody/release", json={})
    assert response.status_code == 200
    assert response.json() == {"released": False}


@pytest.mark.asyncio
async def test_heartbeat_refreshes_activity(client, api_queue, clock):
    await _submit(client, "1001")
    clock.advance(30)

    response = await client.post("/builds/1001/heartbeat")
    assert response.status_code == 204
    assert api_queue.get_active_jobs()[0]["last_activity_at"] == clock.now

    clock.advance(30)
    response = await client.post("/builds/heartbeat")
    assert response.status_code == 204
    assert api_queue.get_active_jobs()[0]["last_activity_at"] == clock.now


@pytest.mark.asyncio
async def test_waiting_on_queue_lock_does_not_block_event_loop(client, api_queue):
    """A request stuck behind the queue lock must leave the loop free for others."""
    api_queue._lock.acquire()
    unlock = threading.Timer(0.5, api_queue._lock.release)
    unlock.start()
    try:
        started = time.monotonic()
        pending = asyncio.create_task(_submit(client, "1001"))
        await asyncio.sleep(0.05)
        assert time.monotonic() - started < 0.4
        assert not pending.done()
    finally:
        unlock.join()

    response = await pending
    assert response.status_code == 201
    assert api_queue.has_active("1001")
