"""
Analytics and Profile Tests.

Admin dashboard counts, rider booking totals and rider profile edits.
"""

import pytest


def _weekly_booking(route_id: int, assignment_id: int) -> dict:
    return {
        "route_id": route_id,
        "pickup_stop": "School",
        "drop_stop": "end",
        "schedule_days": ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"],
        "plan_type": "weekly",
        "assignment_id": assignment_id,
    }


@pytest.mark.asyncio
async def test_dashboard_counts_people_fleet_and_revenue(client, admin_headers, rider_headers, route, assignment):
    created = await client.post(
        "/v1/rider/subscriptions", json=_weekly_booking(route.id, assignment.id), headers=rider_headers
    )
    assert created.status_code == 201
    
    response = await client.get("/v1/admin/dashboard", headers=admin_headers)
    assert response.status_code == 200
    stats = response.json()
    assert stats["total_riders"] == 1
    assert stats["total_drivers"] == 1
    assert stats["total_vehicles"] == 1
    assert stats["active_subscriptions"] == 1
    assert stats["today_rides"] == 1
    assert stats["total_revenue"] == pytest.approx(created.json()["price"])


@pytest.mark.asyncio
async def test_dashboard_skips_cancelled_rides_but_keeps_revenue(client, admin_headers, rider_headers, route, assignment):
    created = (await client.post(
        "/v1/rider/subscriptions", json=_weekly_booking(route.id, assignment.id), headers=rider_headers
    )).json()
    await client.post(f"/v1/rider/subscriptions/{created['id']}/cancel", headers=rider_headers)
    
    stats = (await client.get("/v1/admin/dashboard", headers=admin_headers)).json()
    assert stats["active_subscriptions"] == 0
    assert stats["today_rides"] == 0
    assert stats["total_revenue"] == pytest.approx(created["price"])


@pytest.mark.asyncio
async def test_rider_stats_track_rides_and_refunds(client, rider_headers, route, assignment):
    empty = await client.get("/v1/rider/stats", headers=rider_headers)
    assert empty.status_code == 200
    assert empty.json() == {"active_subscriptions": 0, "total_rides": 0, "total_refunds": 0.0}
    
    created = (await client.post(
        "/v1/rider/subscriptions", json=_weekly_booking(route.id, assignment.id), headers=rider_headers
    )).json()
    stats = (await client.get("/v1/rider/stats", headers=rider_headers)).json()
    assert stats["active_subscriptions"] == 1
    assert stats["total_rides"] == 7
    assert stats["total_refunds"] == 0.0
    
    await client.post(f"/v1/rider/subscriptions/{created['id']}/cancel", headers=rider_headers)
    stats = (await client.get("/v1/rider/stats", headers=rider_headers)).json()
    assert stats["active_subscriptions"] == 0
    assert stats["total_rides"] == 7
    assert stats["total_refunds"] == pytest.approx(created["price"] * 0.5, abs=0.01)


@pytest.mark.asyncio
async def test_profile_update_changes_only_sent_fields(client, rider_headers):
    before = await client.get("/v1/rider/profile", headers=rider_headers)
    assert before.status_code == 200
    assert before.json()["full_name"] == "Rider"
    assert before.json()["phone"] is None
    
    response = await client.put("/v1/rider/profile", json={"phone": "+8801700000000"}, headers=rider_headers)
    assert response.status_code == 200
    assert response.json()["phone"] == "+8801700000000"
    assert response.json()["full_name"] == "Rider"
    
    after = (await client.get("/v1/rider/profile", headers=rider_headers)).json()
    assert after["phone"] == "+8801700000000"


@pytest.mark.asyncio
async def test_profile_update_is_audited(client, admin_headers, rider_headers, rider_user):
    await client.put("/v1/rider/profile", json={"full_name": "Nadia Rahman"}, headers=rider_headers)
    
    response = await client.get(f"/v1/admin/users/{rider_user.id}/audit-history", headers=admin_headers)
    assert response.status_code == 200
    actions = [entry["action"] for entry in response.json()["logs"]]
    assert "PROFILE_UPDATED" in actions


@pytest.mark.asyncio
async def test_dashboard_and_stats_are_role_scoped(client, rider_headers, driver_headers):
    response = await client.get("/v1/admin/dashboard", headers=rider_headers)
    assert response.status_code == 403
    
    response = await client.get("/v1/rider/stats", headers=driver_headers)
    assert response.status_code == 403
    
    response = await client.put("/v1/rider/profile", json={"phone": "1"}, headers=driver_headers)
    assert response.status_code == 403
