import pytest
from sqlalchemy import select

from app.core.exceptions import BolAPIError
from app.models import Order
from tests.fixtures.bol_fixtures import (
    auth_headers,
    bol_order,
    create_bol_integration,
    create_installation,
    create_user,
)


@pytest.fixture
async def shop(db_session, mock_bol_client):
    """Installation 42 with a Bol.com integration and an assigned user"""
    await create_installation(db_session, installation_id=42)
    await create_installation(db_session, installation_id=43)
    await create_bol_integration(db_session, 42, client_id="abc", client_secret="xyz")
    await create_bol_integration(db_session, 43, client_id="other", client_secret="secret")
    user = await create_user(db_session, email="shop@example.com", installation_ids=[42])
    admin = await create_user(db_session, email="admin@example.com", is_global_admin=True)
    mock_bol_client.set_orders("abc", [bol_order("X1", ean="111", status="SHIPPED")])
    return {"user": user, "admin": admin}


"""
1. Sync Endpoint Tests
"""

@pytest.mark.asyncio
async def test_sync_orders_requires_token(app_client, shop):
    response = await app_client.get("/api/bol/sync-orders", params={"installationId": 42})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_sync_orders_requires_installation_id(app_client, shop):
    response = await app_client.get("/api/bol/sync-orders", headers=auth_headers(shop["user"]))

    assert response.status_code == 400
    assert response.json() == {"error": "Installation ID is required"}


@pytest.mark.asyncio
async def test_sync_orders_success(app_client, shop, db_session):
    response = await app_client.get(
        "/api/bol/sync-orders", params={"installationId": 42}, headers=auth_headers(shop["user"])
    )

    assert response.status_code == 200
    assert response.json() == {"success": True, "imported": 1, "updated": 0, "total": 1}

    order = (await db_session.execute(select(Order).where(Order.order_number == "X1"))).scalar_one()
    assert order.status == "shipped"
    assert order.user_id == shop["user"].id


@pytest.mark.asyncio
async def test_sync_orders_denied_for_unassigned_installation(app_client, shop, mock_bol_client):
    response = await app_client.get(
        "/api/bol/sync-orders", params={"installationId": 43}, headers=auth_headers(shop["user"])
    )

    assert response.status_code == 403
    assert response.json() == {"error": "Access denied to this installation"}
    assert mock_bol_client.calls == []


@pytest.mark.asyncio
async def test_admin_can_sync_any_installation(app_client, shop, mock_bol_client):
    response = await app_client.get(
        "/api/bol/sync-orders", params={"installationId": 43}, headers=auth_headers(shop["admin"])
    )

    assert response.status_code == 200
    assert [call["client_id"] for call in mock_bol_client.calls_for("get_open_orders")] == ["other"]


@pytest.mark.asyncio
async def test_sync_orders_failure_shape(app_client, shop, mock_bol_client):
    mock_bol_client.list_error = BolAPIError("Bol API error: 500 - boom", status_code=500)

    response = await app_client.get(
        "/api/bol/sync-orders", params={"installationId": 42}, headers=auth_headers(shop["user"])
    )

    assert response.status_code == 500
    assert response.json() == {
        "error": "Failed to sync orders from Bol.com",
        "details": "Bol API error: 500 - boom",
    }


@pytest.mark.asyncio
async def test_sync_orders_without_integration(app_client, db_session):
    await create_installation(db_session, installation_id=5)
    admin = await create_user(db_session, email="root@example.com", is_global_admin=True)

    response = await app_client.get(
        "/api/bol/sync-orders", params={"installationId": 5}, headers=auth_headers(admin)
    )

    assert response.status_code == 500
    assert response.json()["details"] == "Bol.com integration not found or inactive"


"""
2. Shipment, Label and Return Tests
"""

@pytest.mark.asyncio
async def test_update_shipment_marks_local_order_shipped(app_client, shop, mock_bol_client, session_factory):
    headers = auth_headers(shop["user"])
    mock_bol_client.set_orders("abc", [bol_order("X1", status="OPEN")])
    await app_client.get("/api/bol/sync-orders", params={"installationId": 42}, headers=headers)

    response = await app_client.put(
        "/api/bol/shipment",
        params={"installationId": 42},
        json={"orderId": "X1", "shipmentReference": "REF-1", "transporterCode": "TNT", "trackAndTrace": "3S123"},
        headers=headers,
    )

    assert response.status_code == 200
    assert response.json() == {"success": True, "data": {"processStatusId": "1234", "status": "PENDING"}}

    call = mock_bol_client.calls_for("update_shipment")[0]
    assert call["order_id"] == "X1"
    assert call["body"] == {
        "shipmentReference": "REF-1",
        "transport": {"transporterCode": "TNT", "trackAndTrace": "3S123"},
    }

    async with session_factory() as db:
        order = (await db.execute(select(Order).where(Order.order_number == "X1"))).scalar_one()
    assert order.status == "shipped"
    assert order.shipping_status == "SHIPPED"


@pytest.mark.asyncio
async def test_update_shipment_for_unknown_local_order(app_client, shop):
    response = await app_client.put(
        "/api/bol/shipment",
        params={"installationId": 42},
        json={"orderId": "NOPE", "transporterCode": "TNT", "trackAndTrace": "3S1"},
        headers=auth_headers(shop["user"]),
    )

    assert response.status_code == 200
    assert response.json()["success"] is True


@pytest.mark.asyncio
async def test_update_shipment_requires_order_id(app_client, shop):
    response = await app_client.put(
        "/api/bol/shipment",
        params={"installationId": 42},
        json={"transporterCode": "TNT"},
        headers=auth_headers(shop["user"]),
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Installation ID and Order ID are required"}


@pytest.mark.asyncio
async def test_shipping_label(app_client, shop, mock_bol_client):
    response = await app_client.get(
        "/api/bol/shipping-label",
        params={"installationId": 42, "orderId": "X1"},
        headers=auth_headers(shop["user"]),
    )

    assert response.status_code == 200
    assert response.json() == {"labelId": "label-X1"}
    assert mock_bol_client.calls_for("get_shipping_label")[0]["client_id"] == "abc"


@pytest.mark.asyncio
async def test_shipping_label_requires_order_id(app_client, shop):
    response = await app_client.get(
        "/api/bol/shipping-label", params={"installationId": 42}, headers=auth_headers(shop["user"])
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Installation ID and Order ID are required"}


@pytest.mark.asyncio
async def test_shipping_label_failure(app_client, shop, mock_bol_client):
    mock_bol_client.failing_calls = {"get_shipping_label"}

    response = await app_client.get(
        "/api/bol/shipping-label",
        params={"installationId": 42, "orderId": "X1"},
        headers=auth_headers(shop["user"]),
    )

    assert response.status_code == 500
    assert response.json()["error"] == "Failed to get shipping label from Bol.com"


@pytest.mark.asyncio
async def test_returns_are_passed_through(app_client, shop, mock_bol_client):
    mock_bol_client.returns_response = {"returns": [{"returnId": "R1"}]}

    response = await app_client.get(
        "/api/bol/returns", params={"installationId": 42, "page": 2}, headers=auth_headers(shop["user"])
    )

    assert response.status_code == 200
    assert response.json() == {"returns": [{"returnId": "R1"}]}
    assert mock_bol_client.calls_for("get_returns")[0]["page"] == 2


@pytest.mark.asyncio
async def test_handle_return(app_client, shop, mock_bol_client):
    response = await app_client.put(
        "/api/bol/return/R1",
        params={"installationId": 42},
        json={"handlingResult": "RETURN_RECEIVED", "quantityReturned": 1},
        headers=auth_headers(shop["user"]),
    )

    assert response.status_code == 200
    assert response.json() == {"success": True, "data": {"processStatusId": "5678"}}
    call = mock_bol_client.calls_for("handle_return")[0]
    assert call["return_id"] == "R1"
    assert call["body"] == {"quantityReturned": 1, "handlingResult": "RETURN_RECEIVED"}


"""
3. Scheduler Endpoint Tests
"""

@pytest.mark.asyncio
async def test_scheduler_endpoints_are_admin_only(app_client, shop):
    headers = auth_headers(shop["user"])

    assert (await app_client.get("/api/bol/scheduler/status", headers=headers)).status_code == 403
    assert (await app_client.post("/api/bol/scheduler/trigger", headers=headers)).status_code == 403


@pytest.mark.asyncio
async def test_scheduler_trigger_runs_a_cycle(app_client, shop):
    headers = auth_headers(shop["admin"])

    response = await app_client.post("/api/bol/scheduler/trigger", headers=headers)

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert body["cycle"]["results"]["42"] == {"imported": 1, "updated": 0, "total": 1}
    assert body["cycle"]["results"]["43"] == {"imported": 0, "updated": 0, "total": 0}

    status = (await app_client.get("/api/bol/scheduler/status", headers=headers)).json()
    assert status["status"] == "stopped"
    assert status["last_cycle"]["installations"] == 2


@pytest.mark.asyncio
async def test_health(app_client):
    response = await app_client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "database": "connected"}
