"""
API tests for the settlement lifecycle.
"""

from datetime import date

import pytest


@pytest.fixture
async def driver_with_march_trips(driver, make_trip, make_dispatch):
    trip1 = await make_trip(trip_date=date(2024, 3, 5))
    trip2 = await make_trip(trip_date=date(2024, 3, 12))
    await make_dispatch(trip1, driver, driver_fee=120000, extra_fare=10000)
    await make_dispatch(trip2, driver, driver_fee=130000, deduction_amount=3000)
    return driver


async def finalize(client, driver_id, year_month="2024-03"):
    return await client.post("/v1/settlements", json={"driver_id": driver_id, "year_month": year_month})


@pytest.mark.asyncio
async def test_preview(client, driver_with_march_trips):
    response = await client.post("/v1/settlements/preview", json={
        "driver_id": driver_with_march_trips.id, "year_month": "2024-03"
    })

    assert response.status_code == 200
    body = response.json()
    assert body["total_trips"] == 2
    assert body["final_amount"] == 120000 + 130000 + 10000 - 3000
    assert body["can_confirm"] is True
    assert len(body["items"]) == 4


@pytest.mark.asyncio
async def test_preview_future_month_rejected(client, driver):
    response = await client.post("/v1/settlements/preview", json={"driver_id": driver.id, "year_month": "2999-01"})

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_BUSINESS_001"


@pytest.mark.asyncio
async def test_preview_unknown_driver(client):
    response = await client.post("/v1/settlements/preview", json={"driver_id": 777, "year_month": "2024-03"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_preview_malformed_month(client, driver):
    response = await client.post("/v1/settlements/preview", json={"driver_id": driver.id, "year_month": "2024/03"})
    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION"


@pytest.mark.asyncio
async def test_finalize_is_idempotent(client, driver_with_march_trips):
    first = await finalize(client, driver_with_march_trips.id)
    second = await finalize(client, driver_with_march_trips.id)

    assert first.status_code == 201
    assert second.status_code == 200
    assert first.json()["id"] == second.json()["id"]
    assert first.json()["status"] == "DRAFT"
    assert first.json()["final_amount"] == 257000

    listing = await client.get("/v1/settlements", params={"driver_id": driver_with_march_trips.id})
    assert listing.json()["total"] == 1


@pytest.mark.asyncio
async def test_full_lifecycle(client, driver_with_march_trips):
    settlement_id = (await finalize(client, driver_with_march_trips.id)).json()["id"]

    response = await client.patch(f"/v1/settlements/{settlement_id}", json={"remarks": "checked"})
    assert response.status_code == 200
    assert response.json()["remarks"] == "checked"
    assert response.json()["final_amount"] == 257000

    response = await client.post(f"/v1/settlements/{settlement_id}/recalculate")
    assert response.status_code == 200
    assert response.json()["final_amount"] == 257000
    assert response.json()["remarks"] == "checked"

    response = await client.post(f"/v1/settlements/{settlement_id}/confirm", json={"user_id": 3})
    assert response.status_code == 200
    assert response.json()["status"] == "CONFIRMED"
    assert response.json()["confirmed_by"] == 3

    response = await client.post(f"/v1/settlements/{settlement_id}/confirm", json={"user_id": 3})
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_SETTLEMENT_STATE"

    response = await client.patch(f"/v1/settlements/{settlement_id}", json={"remarks": "edit"})
    assert response.status_code == 409

    response = await client.delete(f"/v1/settlements/{settlement_id}")
    assert response.status_code == 409

    response = await client.post(f"/v1/settlements/{settlement_id}/paid")
    assert response.status_code == 200
    assert response.json()["status"] == "PAID"
    assert response.json()["paid_at"] is not None

    response = await client.post(f"/v1/settlements/{settlement_id}/paid")
    assert response.status_code == 409

    response = await client.get(f"/v1/settlements/{settlement_id}")
    body = response.json()
    assert body["status"] == "PAID"
    assert body["remarks"] == "checked"
    assert len(body["items"]) == 4


@pytest.mark.asyncio
async def test_paid_requires_confirmed(client, driver_with_march_trips):
    settlement_id = (await finalize(client, driver_with_march_trips.id)).json()["id"]

    response = await client.post(f"/v1/settlements/{settlement_id}/paid")

    assert response.status_code == 409
    assert response.json()["details"]["status"] == "DRAFT"


@pytest.mark.asyncio
async def test_delete_draft(client, driver_with_march_trips):
    settlement_id = (await finalize(client, driver_with_march_trips.id)).json()["id"]

    response = await client.delete(f"/v1/settlements/{settlement_id}")
    assert response.status_code == 204

    response = await client.get(f"/v1/settlements/{settlement_id}")
    assert response.status_code == 404

    # Month can be finalized again after a DRAFT delete
    response = await finalize(client, driver_with_march_trips.id)
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_unknown_settlement_operations(client):
    assert (await client.get("/v1/settlements/999")).status_code == 404
    assert (await client.post("/v1/settlements/999/confirm", json={"user_id": 1})).status_code == 404
    assert (await client.delete("/v1/settlements/999")).status_code == 404


@pytest.mark.asyncio
async def test_list_filters_by_status(client, driver_with_march_trips, make_driver):
    other = await make_driver(name="Choi", phone="010-2222-3333")
    first_id = (await finalize(client, driver_with_march_trips.id)).json()["id"]
    await finalize(client, other.id)
    await client.post(f"/v1/settlements/{first_id}/confirm", json={"user_id": 1})

    response = await client.get("/v1/settlements", params={"status": "CONFIRMED"})

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["settlements"][0]["id"] == first_id

    response = await client.get("/v1/settlements", params={"status": "DRAFT", "year_month": "2024-03"})
    assert response.json()["total"] == 1
