import pytest

from core.extensions import db
from models.productModels import ProductRaw
from models.userModel import User
from models.orderModels import Order

VENDOR_1 = "vendor_demo_001"
VENDOR_2 = "vendor_demo_002"
RETAILER = "retailer_demo_001"


def green_onion():
    return ProductRaw.query.filter_by(vendor_id=VENDOR_1, original_name="대파 한단").one()


def place_order(client, auth_headers, product, quantity=2, user_id=RETAILER):
    return client.post("/api/orders", headers=auth_headers(user_id), json={
        "product_id": product.id,
        "quantity": quantity,
        "delivery_address": "서울시 강남구 테헤란로 1",
    })


def test_retailer_places_pending_order(client, seeded, auth_headers):
    product = green_onion()

    response = place_order(client, auth_headers, product, quantity=4)

    assert response.status_code == 201
    order = response.get_json()["order"]
    assert order["status"] == "pending"
    assert order["vendor_id"] == VENDOR_1
    assert order["buyer_id"] == RETAILER
    assert order["total_price"] == 3000 * 4
    db.session.expire_all()
    assert db.session.get(ProductRaw, product.id).stock == 46


def test_vendor_cannot_place_orders(client, seeded, auth_headers):
    response = place_order(client, auth_headers, green_onion(), user_id=VENDOR_2)
    assert response.status_code == 403


def test_order_validation(client, seeded, auth_headers):
    product = green_onion()

    assert place_order(client, auth_headers, product, quantity=0).status_code == 400
    assert place_order(client, auth_headers, product, quantity=1_000_000).status_code == 400
    assert place_order(client, auth_headers, product, quantity=51).status_code == 400

    missing = client.post("/api/orders", headers=auth_headers(RETAILER), json={"product_id": 9999, "quantity": 1})
    assert missing.status_code == 404


def test_order_lists_by_side(client, seeded, auth_headers):
    place_order(client, auth_headers, green_onion())

    retailer_orders = client.get("/api/orders", headers=auth_headers(RETAILER)).get_json()
    vendor_orders = client.get("/api/orders", headers=auth_headers(VENDOR_1)).get_json()
    other_vendor = client.get("/api/orders", headers=auth_headers(VENDOR_2)).get_json()

    assert retailer_orders["count"] == 1
    assert retailer_orders["type"] == "retailer"
    assert vendor_orders["count"] == 1
    assert vendor_orders["orders"][0]["product"]["original_name"] == "대파 한단"
    assert other_vendor["count"] == 0


def test_order_list_limit(client, seeded, auth_headers):
    product = green_onion()
    for _ in range(3):
        place_order(client, auth_headers, product, quantity=1)

    body = client.get("/api/orders?limit=2", headers=auth_headers(RETAILER)).get_json()

    assert body["count"] == 2


def test_order_detail_visible_to_parties_only(client, seeded, auth_headers):
    order_id = place_order(client, auth_headers, green_onion()).get_json()["order"]["id"]

    detail = client.get(f"/api/orders/{order_id}", headers=auth_headers(VENDOR_1))
    assert detail.status_code == 200
    order = detail.get_json()["order"]
    assert order["buyer"]["business_name"] == "강남슈퍼마켓"
    assert order["vendor"]["id"] == VENDOR_1

    assert client.get(f"/api/orders/{order_id}", headers=auth_headers(VENDOR_2)).status_code == 403
    assert client.get("/api/orders/9999", headers=auth_headers(VENDOR_1)).status_code == 404


def test_vendor_confirms_pending_order(client, seeded, auth_headers):
    order_id = place_order(client, auth_headers, green_onion()).get_json()["order"]["id"]

    response = client.patch(f"/api/orders/{order_id}", headers=auth_headers(VENDOR_1), json={"status": "confirmed"})

    assert response.status_code == 200
    assert response.get_json()["order"]["status"] == "confirmed"

    again = client.patch(f"/api/orders/{order_id}", headers=auth_headers(VENDOR_1), json={"status": "cancelled"})
    assert again.status_code == 400


def test_cancel_returns_stock(client, seeded, auth_headers):
    product = green_onion()
    order_id = place_order(client, auth_headers, product, quantity=5).get_json()["order"]["id"]

    client.patch(f"/api/orders/{order_id}", headers=auth_headers(VENDOR_1), json={"status": "cancelled"})

    db.session.expire_all()
    assert db.session.get(ProductRaw, product.id).stock == 50


def test_only_selling_vendor_updates_status(client, seeded, auth_headers):
    order_id = place_order(client, auth_headers, green_onion()).get_json()["order"]["id"]

    assert client.patch(f"/api/orders/{order_id}", headers=auth_headers(RETAILER),
                        json={"status": "confirmed"}).status_code == 403
    assert client.patch(f"/api/orders/{order_id}", headers=auth_headers(VENDOR_1),
                        json={"status": "shipped"}).status_code == 400


def test_unsynced_user_is_404(client, seeded, auth_headers):
    assert db.session.get(User, "user_unknown") is None
    assert client.get("/api/orders", headers=auth_headers("user_unknown")).status_code == 404


def test_stock_reserved_atomically(client, seeded, auth_headers):
    product = green_onion()
    # Another order drains the stock after this session last read it.
    ProductRaw.query.filter_by(id=product.id).update({ProductRaw.stock: 1}, synchronize_session=False)
    assert product.stock == 50

    response = place_order(client, auth_headers, product, quantity=5)

    assert response.status_code == 400
    assert Order.query.count() == 0


@pytest.mark.parametrize("quantity", [True, 2.5, "two", None])
def test_quantity_must_be_whole_number(client, seeded, auth_headers, quantity):
    assert place_order(client, auth_headers, green_onion(), quantity=quantity).status_code == 400
