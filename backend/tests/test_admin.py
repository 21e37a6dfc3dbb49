from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from storefront.db import SessionLocal, init_db
from storefront.main import app
from storefront.models.order import Order, OrderStatus, can_transition
from storefront.models.product import Product
from storefront.models.profile import Profile, Role

admin = TestClient(app, headers={"X-User-Id": "admin-1"})
sales = TestClient(app, headers={"X-User-Id": "sales-1"})
customer = TestClient(app, headers={"X-User-Id": "cust-1"})
anonymous = TestClient(app)


def setup_module(module):
    init_db(reset=True)
    db = SessionLocal()
    try:
        db.add(Profile(id="admin-1", email="admin@turismoportal.com", full_name="Admin", role=Role.ADMIN))
        db.add(Profile(id="sales-1", email="ventas@turismoportal.com", role=Role.SALES))
        db.add(Profile(id="cust-1", email="cliente@example.com", full_name="Cliente", role=Role.CUSTOMER))
        db.add(Product(id="hidden", code="PKG-HIDDEN", name="Hidden", price=Decimal("5.00"), active=False))
        db.commit()
    finally:
        db.close()


def _new_order(order_number, status=OrderStatus.PENDING):
    db = SessionLocal()
    try:
        o = Order(order_number=order_number, user_id="cust-1", status=status, total_amount=Decimal("10.00"))
        db.add(o)
        db.commit()
        return o.id
    finally:
        db.close()


@pytest.mark.parametrize("client,status", [(anonymous, 401), (customer, 403)])
def test_admin_routes_require_staff(client, status):
    assert client.get("/api/admin/products").status_code == status
    assert client.get("/api/admin/orders").status_code == status
    assert client.get("/api/admin/email-settings").status_code == status


def test_sales_can_manage_store():
    assert sales.get("/api/admin/orders").status_code == 200


def test_admin_lists_inactive_products():
    codes = [p["code"] for p in admin.get("/api/admin/products").json()]
    assert "PKG-HIDDEN" in codes


def test_product_crud():
    payload = {"code": "PKG-SALTA", "name": "Salta 3 días", "description": "Norte", "price": "650.50", "image_url": ""}
    res = admin.post("/api/admin/products", json=payload)
    assert res.status_code == 201
    product = res.json()
    assert Decimal(product["price"]) == Decimal("650.50")
    assert product["active"] is True

    assert admin.post("/api/admin/products", json=payload).status_code == 409

    payload.update(name="Salta y Jujuy 4 días", price="799.00", active=False)
    res = admin.put(f"/api/admin/products/{product['id']}", json=payload)
    assert res.status_code == 200
    assert res.json()["name"] == "Salta y Jujuy 4 días"
    # inactive products leave the storefront
    assert anonymous.get(f"/api/products/{product['id']}").status_code == 404

    assert admin.delete(f"/api/admin/products/{product['id']}").status_code == 204
    assert admin.delete(f"/api/admin/products/{product['id']}").status_code == 404


def test_product_validation():
    res = admin.post("/api/admin/products", json={"code": "X", "name": "X", "price": "-1"})
    assert res.status_code == 422


def test_admin_order_list_includes_buyer():
    _new_order("ORD-ADMIN-LIST")
    orders = admin.get("/api/admin/orders").json()
    row = next(o for o in orders if o["order_number"] == "ORD-ADMIN-LIST")
    assert row["buyer_email"] == "cliente@example.com"
    assert row["buyer_name"] == "Cliente"


def test_status_lifecycle():
    order_id = _new_order("ORD-LIFECYCLE")
    url = f"/api/admin/orders/{order_id}/status"
    assert admin.patch(url, json={"status": "delivered"}).status_code == 409
    assert admin.patch(url, json={"status": "processing"}).json()["status"] == "processing"
    assert admin.patch(url, json={"status": "delivered"}).json()["status"] == "delivered"
    # terminal
    assert admin.patch(url, json={"status": "cancelled"}).status_code == 409
    assert admin.patch(url, json={"status": "bogus"}).status_code == 422


def test_staff_can_cancel_processing_order():
    order_id = _new_order("ORD-STAFF-CANCEL", status=OrderStatus.PROCESSING)
    res = sales.patch(f"/api/admin/orders/{order_id}/status", json={"status": "cancelled"})
    assert res.status_code == 200
    assert res.json()["status"] == "cancelled"


def test_admin_order_detail():
    order_id = _new_order("ORD-DETAIL")
    res = admin.get(f"/api/admin/orders/{order_id}")
    assert res.status_code == 200
    assert res.json()["items"] == []
    assert admin.get("/api/admin/orders/missing").status_code == 404


@pytest.mark.parametrize(
    "current,target,allowed",
    [
        (OrderStatus.PENDING, OrderStatus.PROCESSING, True),
        (OrderStatus.PENDING, OrderStatus.CANCELLED, True),
        (OrderStatus.PROCESSING, OrderStatus.CANCELLED, True),
        (OrderStatus.PROCESSING, OrderStatus.PENDING, False),
        (OrderStatus.PENDING, OrderStatus.PENDING, False),
        (OrderStatus.CANCELLED, OrderStatus.PENDING, False),
        (OrderStatus.DELIVERED, OrderStatus.CANCELLED, False),
    ],
)
def test_can_transition(current, target, allowed):
    assert can_transition(current, target) is allowed


def test_email_settings_crud():
    res = admin.post("/api/admin/email-settings", json={"type": "internal_notification", "email": "ops@turismoportal.com"})
    assert res.status_code == 201
    setting = res.json()
    assert setting["active"] is True

    res = admin.put(
        f"/api/admin/email-settings/{setting['id']}",
        json={"type": "internal_notification", "email": "ops@turismoportal.com", "active": False},
    )
    assert res.json()["active"] is False
    assert any(s["id"] == setting["id"] for s in admin.get("/api/admin/email-settings").json())

    assert admin.delete(f"/api/admin/email-settings/{setting['id']}").status_code == 204
    assert admin.delete(f"/api/admin/email-settings/{setting['id']}").status_code == 404


def test_email_setting_validation():
    res = admin.post("/api/admin/email-settings", json={"type": "internal_notification", "email": "not-an-email"})
    assert res.status_code == 422
