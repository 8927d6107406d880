import pytest

from tests.conftest import bearer


@pytest.fixture
def order_body(menu):
    return {
        "table_id": menu.table.id,
        "items": [
            {"menu_item_id": menu.burger.id, "quantity": 2, "note": "medium rare"},
        ],
        "special_instructions": "Window seat",
    }


async def place(client, body, headers=None):
    response = await client.post("/api/orders", json=body, headers=headers or {})
    assert response.status_code == 201, response.text
    return response.json()["data"]


# =============================================================================
# PLACEMENT
# =============================================================================

async def test_guest_places_order(client, order_body):
    response = await client.post("/api/orders", json=order_body)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Order placed successfully"

    order = body["data"]
    assert order["order_number"] == "ORD-000001"
    assert order["status"] == "placed"
    assert order["payment_status"] == "pending"
    assert order["payment_method"] == "cash"
    assert (order["subtotal"], order["tax"], order["total"]) == (16.0, 1.6, 17.6)
    assert order["table"]["number"] == "T1"
    assert order["customer"] is None
    assert order["items"][0]["menu_item"]["name"] == "Burger"
    assert order["items"][0]["price"] == 8.0
    assert order["items"][0]["line_total"] == 16.0
    assert order["items"][0]["note"] == "medium rare"


async def test_signed_in_customer_is_attached(client, order_body, customer):
    order = await place(client, order_body, bearer(customer))

    assert order["customer"]["email"] == "rohan@example.com"


async def test_invalid_quantity_uses_error_envelope(client, order_body):
    order_body["items"][0]["quantity"] = 0

    response = await client.post("/api/orders", json=order_body)

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Validation failed"
    assert body["errors"][0]["field"] == "items.0.quantity"


async def test_empty_cart_rejected(client, menu):
    response = await client.post("/api/orders", json={"table_id": menu.table.id, "items": []})

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "items"


async def test_inactive_table_rejected(client, order_body, admin):
    await client.patch(f"/api/tables/{order_body['table_id']}/toggle-status", headers=bearer(admin))

    response = await client.post("/api/orders", json=order_body)

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Invalid or inactive table"}


async def test_unavailable_item_rejected(client, order_body, menu, staff):
    await client.patch(f"/api/menu/items/{menu.burger.id}/toggle-availability", headers=bearer(staff))

    response = await client.post("/api/orders", json=order_body)

    assert response.status_code == 400
    assert "Burger" in response.json()["message"]


async def test_unknown_item_is_404(client, menu):
    response = await client.post("/api/orders", json={
        "table_id": menu.table.id,
        "items": [{"menu_item_id": 424242, "quantity": 1}],
    })

    assert response.status_code == 404


# =============================================================================
# KITCHEN WORKFLOW
# =============================================================================

async def test_staff_walks_order_through_kitchen(client, order_body, staff):
    order = await place(client, order_body)
    headers = bearer(staff)

    for new_status in ("preparing", "ready", "served"):
        response = await client.patch(
            f"/api/orders/{order['id']}/status",
            json={"status": new_status},
            headers=headers,
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == new_status

    response = await client.patch(
        f"/api/orders/{order['id']}/status",
        json={"status": "canceled"},
        headers=headers,
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Cannot change status from served to canceled"

    response = await client.get(f"/api/orders/{order['id']}", headers=headers)
    assert response.json()["data"]["status"] == "served"


async def test_unknown_status_value(client, order_body, staff):
    order = await place(client, order_body)

    response = await client.patch(
        f"/api/orders/{order['id']}/status",
        json={"status": "eaten"},
        headers=bearer(staff),
    )

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "status"


async def test_status_update_needs_staff(client, order_body, customer):
    order = await place(client, order_body)

    response = await client.patch(f"/api/orders/{order['id']}/status", json={"status": "preparing"})
    assert response.status_code == 401

    response = await client.patch(
        f"/api/orders/{order['id']}/status",
        json={"status": "preparing"},
        headers=bearer(customer),
    )
    assert response.status_code == 403


async def test_staff_lists_orders(client, order_body, menu, staff):
    await place(client, order_body)
    second = await place(client, {
        "table_id": menu.table.id,
        "items": [{"menu_item_id": menu.fries.id, "quantity": 1}],
    })
    await client.patch(
        f"/api/orders/{second['id']}/status",
        json={"status": "preparing"},
        headers=bearer(staff),
    )

    response = await client.get("/api/orders", headers=bearer(staff))
    page = response.json()["data"]
    assert page["pagination"]["total_items"] == 2
    assert [o["order_number"] for o in page["items"]] == ["ORD-000002", "ORD-000001"]

    response = await client.get("/api/orders?status=preparing", headers=bearer(staff))
    assert [o["id"] for o in response.json()["data"]["items"]] == [second["id"]]

    response = await client.get("/api/orders?sort=total&order=asc", headers=bearer(staff))
    assert [o["order_number"] for o in response.json()["data"]["items"]] == ["ORD-000002", "ORD-000001"]


async def test_missing_order_is_404(client, staff):
    response = await client.get("/api/orders/999", headers=bearer(staff))

    assert response.status_code == 404
    assert response.json()["success"] is False


# =============================================================================
# CUSTOMER
# =============================================================================

async def test_customer_sees_only_own_orders(client, order_body, customer, other_customer):
    mine = await place(client, order_body, bearer(customer))
    await place(client, order_body, bearer(other_customer))
    await place(client, order_body)

    response = await client.get("/api/orders/me", headers=bearer(customer))
    page = response.json()["data"]
    assert [o["id"] for o in page["items"]] == [mine["id"]]

    response = await client.get(f"/api/orders/me/{mine['id']}", headers=bearer(customer))
    assert response.status_code == 200

    response = await client.get(f"/api/orders/me/{mine['id']}", headers=bearer(other_customer))
    assert response.status_code == 404


async def test_customer_cancels_before_ready(client, order_body, customer, other_customer, staff):
    order = await place(client, order_body, bearer(customer))

    response = await client.patch(f"/api/orders/me/{order['id']}/cancel", headers=bearer(other_customer))
    assert response.status_code == 404

    response = await client.patch(f"/api/orders/me/{order['id']}/cancel", headers=bearer(customer))
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "canceled"

    later = await place(client, order_body, bearer(customer))
    for new_status in ("preparing", "ready"):
        await client.patch(
            f"/api/orders/{later['id']}/status",
            json={"status": new_status},
            headers=bearer(staff),
        )
    response = await client.patch(f"/api/orders/me/{later['id']}/cancel", headers=bearer(customer))
    assert response.status_code == 400


async def test_staff_cannot_use_customer_cancel(client, order_body, staff):
    order = await place(client, order_body)

    response = await client.patch(f"/api/orders/me/{order['id']}/cancel", headers=bearer(staff))

    assert response.status_code == 403


# =============================================================================
# ANALYTICS
# =============================================================================

async def test_order_analytics_for_admin(client, order_body, admin, staff):
    await place(client, order_body)

    response = await client.get("/api/orders/analytics", headers=bearer(staff))
    assert response.status_code == 403

    response = await client.get("/api/orders/analytics", headers=bearer(admin))
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["total_orders"] == 1
    assert data["pending_orders"] == 1
    assert data["revenue_total"] == 17.6
    assert data["top_items"][0]["name"] == "Burger"
