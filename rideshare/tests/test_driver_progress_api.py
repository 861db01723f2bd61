"""
Integration tests for the driver progress API.

Verifies list -> detail -> progress -> status -> reset over HTTP, the error
envelope for each failure kind, and driver ownership.
"""

import pytest
from sqlalchemy import select

from rideshare.app.models.audit_log import AuditLog


def progress_url(assignment_id, action=""):
    return f"/v1/driver/assignments/{assignment_id}{action}"


@pytest.mark.asyncio
async def test_list_today_assignments(client, driver_headers, assignment, today):
    response = await client.get("/v1/driver/assignments", headers=driver_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["assignments"][0]["id"] == assignment.id
    
    response = await client.get(
        "/v1/driver/assignments", params={"date": today.isoformat(), "status": "completed"},
        headers=driver_headers
    )
    assert response.json()["total"] == 0


@pytest.mark.asyncio
async def test_list_with_unknown_status_filter(client, driver_headers, assignment):
    response = await client.get(
        "/v1/driver/assignments", params={"status": "paused"}, headers=driver_headers
    )
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_STATE_001"


@pytest.mark.asyncio
async def test_detail_view_shape(client, driver_headers, assignment):
    response = await client.get(progress_url(assignment.id), headers=driver_headers)
    assert response.status_code == 200
    data = response.json()
    
    assert data["total_stops"] == 4
    assert data["completed_stops"] == []
    assert data["next_stop"]["id"] == "start"
    assert data["poll_interval_seconds"] == 10
    assert [s["name"] for s in data["route"]["stops"]] == ["School", "Market"]
    assert [s["id"] for s in data["route"]["stop_sequence"]] == ["start", "stop-1", "stop-2", "end"]


@pytest.mark.asyncio
async def test_drive_the_whole_route(client, driver_headers, assignment):
    for index in range(4):
        response = await client.put(
            progress_url(assignment.id, "/progress"), json={"stop_index": index}, headers=driver_headers
        )
        assert response.status_code == 200, response.text
    
    data = response.json()
    assert data["status"] == "completed"
    assert data["current_stop_index"] == 4
    assert data["next_stop"] is None
    assert [c["stop_index"] for c in data["completed_stops"]] == [0, 1, 2, 3]


@pytest.mark.asyncio
async def test_out_of_order_is_409_retryable(client, driver_headers, assignment):
    response = await client.put(
        progress_url(assignment.id, "/progress"), json={"stop_index": 2}, headers=driver_headers
    )
    assert response.status_code == 409
    body = response.json()
    assert body["error_code"] == "ERR_PROGRESS_001"
    assert body["details"]["retryable"] is True
    assert body["details"]["expected_stop_index"] == 0


@pytest.mark.asyncio
async def test_duplicate_advance_second_call_conflicts(client, driver_headers, assignment):
    """The same stop reported twice: one success, one conflict."""
    url = progress_url(assignment.id, "/progress")
    await client.put(url, json={"stop_index": 0}, headers=driver_headers)
    
    first = await client.put(url, json={"stop_index": 1}, headers=driver_headers)
    second = await client.put(url, json={"stop_index": 1}, headers=driver_headers)
    
    assert first.status_code == 200
    assert first.json()["current_stop_index"] == 2
    assert second.status_code == 409
    
    detail = await client.get(progress_url(assignment.id), headers=driver_headers)
    assert [c["stop_index"] for c in detail.json()["completed_stops"]] == [0, 1]


@pytest.mark.asyncio
async def test_cancelled_is_400_invalid_state(client, driver_headers, assignment):
    response = await client.put(
        progress_url(assignment.id, "/status"), json={"status": "cancelled"}, headers=driver_headers
    )
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    
    response = await client.put(
        progress_url(assignment.id, "/progress"), json={"stop_index": 0}, headers=driver_headers
    )
    assert response.status_code == 400
    body = response.json()
    assert body["error_code"] == "ERR_STATE_001"
    assert body["details"]["current_status"] == "cancelled"


@pytest.mark.asyncio
async def test_unknown_status_is_invalid_state(client, driver_headers, assignment):
    response = await client.put(
        progress_url(assignment.id, "/status"), json={"status": "paused"}, headers=driver_headers
    )
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_STATE_001"


@pytest.mark.asyncio
async def test_reset_over_http(client, driver_headers, assignment):
    url = progress_url(assignment.id, "/progress")
    for index in range(3):
        await client.put(url, json={"stop_index": index}, headers=driver_headers)
    
    response = await client.post(progress_url(assignment.id, "/reset"), headers=driver_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["current_stop_index"] == 0
    assert data["status"] == "scheduled"
    assert data["completed_stops"] == []


@pytest.mark.asyncio
async def test_other_driver_gets_404(client, other_driver_headers, assignment):
    for method, action, body in [
        ("get", "", None),
        ("put", "/progress", {"stop_index": 0}),
        ("put", "/status", {"status": "cancelled"}),
        ("post", "/reset", None),
    ]:
        kwargs = {"headers": other_driver_headers}
        if body is not None:
            kwargs["json"] = body
        response = await getattr(client, method)(progress_url(assignment.id, action), **kwargs)
        assert response.status_code == 404, (method, action)
        assert response.json()["error_code"] == "ERR_NOT_FOUND_001"


@pytest.mark.asyncio
async def test_progress_is_audited(client, driver_headers, assignment, db_session):
    await client.put(progress_url(assignment.id, "/progress"), json={"stop_index": 0}, headers=driver_headers)
    
    result = await db_session.execute(select(AuditLog).where(AuditLog.action == "STOP_COMPLETED"))
    log = result.scalar_one()
    assert log.meta_data["assignment_id"] == assignment.id
    assert log.meta_data["stop_index"] == 0


@pytest.mark.asyncio
async def test_roll_forward_one_off_over_http(client, driver_headers, assignment):
    response = await client.post(progress_url(assignment.id, "/roll-forward"), headers=driver_headers)
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_STATE_001"
