"""
API tests for transport requests, request fares and dispatch.
"""

import pytest
from sqlalchemy import select

from backend.app.models.dispatch import Dispatch
from backend.app.models.driver import Driver


TRIP_PAYLOAD = {
    "center_name": "쿠팡",
    "loading_point_id": "LP-001",
    "vehicle_type": "5t",
    "vehicle_tonnage": "5",
    "trip_date": "2024-03-05",
    "regions": ["강남", "수원", "수원"],
    "stop_count": 3
}


@pytest.fixture
async def legacy_fares(client):
    payloads = [
        {"fare_type": "BASIC", "region": "강남", "base_fare": 100000},
        {"fare_type": "STOP_FEE", "extra_stop_fee": 5000, "extra_region_fee": 7000},
    ]
    for payload in payloads:
        response = await client.post("/v1/center-fares", json={
            "loading_point_id": "LP-001", "vehicle_type": "5t", **payload
        })
        assert response.status_code == 201


@pytest.fixture
async def trip_id(client):
    response = await client.post("/v1/requests", json=TRIP_PAYLOAD)
    assert response.status_code == 201
    return response.json()["id"]


@pytest.mark.asyncio
async def test_create_request_rejects_stop_count_mismatch(client):
    response = await client.post("/v1/requests", json={**TRIP_PAYLOAD, "stop_count": 2})

    assert response.status_code == 400
    assert response.json()["details"]["errors"][0]["field"] == "stop_count"


@pytest.mark.asyncio
async def test_create_request_requires_adjustment_reason(client):
    response = await client.post("/v1/requests", json={**TRIP_PAYLOAD, "extra_adjustment": 5000})

    assert response.status_code == 400
    assert response.json()["details"]["errors"][0]["field"] == "adjustment_reason"


@pytest.mark.asyncio
async def test_calculate_fare_preview_does_not_persist(client, legacy_fares, trip_id):
    response = await client.post(f"/v1/requests/{trip_id}/calculate-fare", json={})

    assert response.status_code == 200
    body = response.json()
    assert body["base_fare"] == 100000
    assert body["extra_stop_fee"] == 10000
    assert body["extra_region_fee"] == 7000
    assert body["total"] == 117000
    assert body["persisted"] is False

    trip = (await client.get(f"/v1/requests/{trip_id}")).json()
    assert trip["base_fare"] is None


@pytest.mark.asyncio
async def test_calculate_fare_persist_with_overrides(client, legacy_fares, trip_id):
    response = await client.post(f"/v1/requests/{trip_id}/calculate-fare", json={
        "regions": ["강남"],
        "stop_count": 1,
        "extra_adjustment": 3000,
        "adjustment_reason": "Stairs",
        "persist": True
    })

    assert response.status_code == 200
    assert response.json()["total"] == 103000

    trip = (await client.get(f"/v1/requests/{trip_id}")).json()
    assert trip["base_fare"] == 100000
    assert trip["extra_stop_fee"] == 0
    assert trip["extra_adjustment"] == 3000
    assert trip["regions"] == ["강남"]


@pytest.mark.asyncio
async def test_calculate_fare_missing_rows_are_reported(client, trip_id):
    response = await client.post(f"/v1/requests/{trip_id}/calculate-fare", json={})

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 0
    assert body["missing"] == ["BASE", "CALL", "WAYPOINT"]
    assert body["warnings"]


@pytest.mark.asyncio
async def test_calculate_fare_unknown_request(client):
    response = await client.post("/v1/requests/999/calculate-fare", json={})
    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"


@pytest.mark.asyncio
async def test_dispatch_keeps_driver_snapshot(client, db_session, driver, trip_id):
    response = await client.post(f"/v1/requests/{trip_id}/dispatches", json={
        "driver_id": driver.id, "driver_fee": 250000
    })
    assert response.status_code == 201
    dispatch = response.json()
    assert dispatch["driver_name"] == "Kim Driver"
    assert dispatch["driver_vehicle_number"] == "서울12가3456"

    stored = await db_session.get(Driver, driver.id)
    stored.name = "Renamed Driver"
    stored.phone = "010-0000-0000"
    await db_session.commit()

    response = await client.post(f"/v1/requests/{trip_id}/dispatches", json={
        "driver_id": driver.id, "driver_fee": 10000
    })
    assert response.json()["driver_name"] == "Renamed Driver"

    first = (await db_session.execute(select(Dispatch).where(Dispatch.id == dispatch["id"]))).scalar_one()
    assert first.driver_name == "Kim Driver"
    assert first.driver_phone == "010-1234-5678"

    profitability = await client.get(f"/v1/requests/{trip_id}/profitability")
    assert profitability.status_code == 200
    assert profitability.json()["driver_fee"] == 260000


@pytest.mark.asyncio
async def test_dispatch_rejects_inactive_driver(client, make_driver, trip_id):
    inactive = await make_driver(is_active=False)

    response = await client.post(f"/v1/requests/{trip_id}/dispatches", json={
        "driver_id": inactive.id, "driver_fee": 100000
    })

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_BUSINESS_001"


@pytest.mark.asyncio
async def test_request_profitability(client, driver):
    response = await client.post("/v1/requests", json={**TRIP_PAYLOAD, "center_billing_total": 380000})
    trip_id = response.json()["id"]
    await client.post(f"/v1/requests/{trip_id}/dispatches", json={"driver_id": driver.id, "driver_fee": 250000})

    response = await client.get(f"/v1/requests/{trip_id}/profitability")

    assert response.status_code == 200
    body = response.json()
    assert body["margin"] == 130000
    assert body["margin_rate"] == 34.21
    assert body["status"] == "PROFIT"
    assert "34.2%" in body["summary"]


@pytest.mark.asyncio
async def test_monthly_profitability_report(client, driver):
    response = await client.post("/v1/requests", json={**TRIP_PAYLOAD, "center_billing_total": 100000})
    trip_id = response.json()["id"]
    await client.post(f"/v1/requests/{trip_id}/dispatches", json={"driver_id": driver.id, "driver_fee": 95000})

    response = await client.get("/v1/profitability/monthly", params={"year_month": "2024-03"})

    assert response.status_code == 200
    body = response.json()
    assert body["status_counts"]["BREAK_EVEN"] == 1
    assert body["trips"][0]["recommendation"]
    assert body["trips"][0]["recommended_driver_fee"] == 75000

    response = await client.get("/v1/profitability/monthly", params={"year_month": "2024-3"})
    assert response.status_code == 422
