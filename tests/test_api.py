from datetime import datetime, timedelta

from sqlmodel import select

from marketplace.models.user import User, UserRole
from tests.helpers import ADDRESS, auth_headers, make_product, make_user, make_vendor


def test_health_check(client):
    resp = client.get("/health/check")
    assert resp.status_code == 200
    assert resp.json()["database"] == "ok"
    assert "X-Request-ID" in resp.headers


def test_otp_login_merges_guest_cart(client, db, notifier):
    vendor = make_vendor(db)
    product = make_product(db, vendor)

    resp = client.post(
        "/cart/add",
        json={"product_id": product.id, "size": "9", "color": "black", "quantity": 2},
        headers={"X-Session-Id": "guest-abc"},
    )
    assert resp.status_code == 200
    assert resp.json()["subtotal"] == 2000

    resp = client.post("/auth/send-otp", json={"phone": "9812345678"})
    assert resp.status_code == 200
    assert notifier.templates() == ["otp"]
    otp = notifier.sent[0][2]["otp"]

    resp = client.post("/auth/verify-otp", json={"phone": "9812345678", "otp": otp, "session_id": "guest-abc"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["phone"] == "9812345678"
    headers = {"Authorization": f"Bearer {body['access_token']}"}

    cart = client.get("/cart/", headers=headers).json()
    assert [line["quantity"] for line in cart["items"]] == [2]
    assert client.get("/cart/", headers={"X-Session-Id": "guest-abc"}).json()["items"] == []

    # codes are single use
    resp = client.post("/auth/verify-otp", json={"phone": "9812345678", "otp": otp})
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_otp"

    me = client.get("/auth/me", headers=headers).json()
    assert me["role"] == "customer"


def test_expired_otp(client, db):
    client.post("/auth/send-otp", json={"phone": "9812345679"})
    user = db.exec(select(User).where(User.phone == "9812345679")).one()
    otp = user.otp
    user.otp_expiry = datetime.utcnow() - timedelta(minutes=1)
    db.add(user)
    db.commit()

    resp = client.post("/auth/verify-otp", json={"phone": "9812345679", "otp": otp})
    assert resp.status_code == 400


def test_cart_requires_owner(client):
    resp = client.get("/cart/")
    assert resp.status_code == 400
    assert resp.json() == {"detail": "Session ID required", "error": "validation_error"}


def test_cart_rejects_unknown_fields(client):
    resp = client.post(
        "/cart/add",
        json={"product_id": 1, "size": "9", "color": "black", "price": 1},
        headers={"X-Session-Id": "guest-x"},
    )
    assert resp.status_code == 422


def test_out_of_stock_error_body(client, db):
    vendor = make_vendor(db)
    product = make_product(db, vendor, variants=(("9", "black", 1),))

    resp = client.post(
        "/cart/add",
        json={"product_id": product.id, "size": "9", "color": "black", "quantity": 3},
        headers={"X-Session-Id": "guest-y"},
    )

    assert resp.status_code == 409
    body = resp.json()
    assert body["error"] == "out_of_stock"
    assert body["product_id"] == product.id
    assert body["available"] == 1
    assert body["requested"] == 3


def test_cart_update_and_remove(client, db):
    vendor = make_vendor(db)
    product = make_product(db, vendor)
    headers = {"X-Session-Id": "guest-z"}
    line = {"product_id": product.id, "size": "9", "color": "black"}

    client.post("/cart/add", json={**line, "quantity": 1}, headers=headers)
    resp = client.put("/cart/update", json={**line, "quantity": 3}, headers=headers)
    assert resp.json()["items"][0]["quantity"] == 3

    resp = client.request("DELETE", "/cart/remove", json=line, headers=headers)
    assert resp.json()["items"] == []

    assert client.delete("/cart/clear", headers=headers).status_code == 200


def test_checkout_and_vendor_fulfilment(client, db, notifier):
    vendor = make_vendor(db)
    other_vendor = make_vendor(db)
    shoe = make_product(db, vendor, name="Court Shoe", selling_price=400)
    sock = make_product(db, other_vendor, name="Socks", selling_price=150)
    customer = make_user(db)
    headers = auth_headers(customer)

    client.post("/cart/add", json={"product_id": shoe.id, "size": "9", "color": "black", "quantity": 1}, headers=headers)
    client.post("/cart/add", json={"product_id": sock.id, "size": "9", "color": "black", "quantity": 1}, headers=headers)

    resp = client.post("/orders/", json={"shipping_address": ADDRESS, "payment_method": "cod"}, headers=headers)
    assert resp.status_code == 201
    order = resp.json()["order"]
    assert order["order_number"] == "ORD000001"
    assert order["subtotal"] == 550
    assert order["shipping_charges"] == 98
    assert order["total"] == 648
    assert resp.json()["razorpay_order"] is None
    assert client.get("/cart/", headers=headers).json()["items"] == []

    # each vendor only sees its own lines
    vendor_user = db.get(User, vendor.user_id)
    vendor_headers = auth_headers(vendor_user)
    listing = client.get("/vendor/orders/", headers=vendor_headers).json()
    assert listing["total_items"] == 1
    assert [item["name"] for item in listing["results"][0]["items"]] == ["Court Shoe"]

    shoe_item = next(item for item in order["items"] if item["vendor_id"] == vendor.id)
    sock_item = next(item for item in order["items"] if item["vendor_id"] == other_vendor.id)

    resp = client.put(
        f"/vendor/orders/ORD000001/items/{shoe_item['id']}/status",
        json={"status": "confirmed"},
        headers=vendor_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["items"][0]["status"] == "confirmed"

    resp = client.put(
        f"/vendor/orders/ORD000001/items/{sock_item['id']}/status",
        json={"status": "confirmed"},
        headers=vendor_headers,
    )
    assert resp.status_code == 403

    resp = client.put(
        f"/vendor/orders/ORD000001/items/{shoe_item['id']}/status",
        json={"status": "delivered"},
        headers=vendor_headers,
    )
    assert resp.status_code == 409
    assert resp.json()["error"] == "invalid_transition"

    detail = client.get("/orders/ORD000001", headers=headers).json()
    assert detail["status"] == "confirmed"

    timeline = client.get("/orders/ORD000001/timeline", headers=headers).json()
    assert [event["event_type"] for event in timeline] == ["order_placed", "item_status_changed"]

    mine = client.get("/orders/my-orders", headers=headers).json()
    assert mine["total_items"] == 1

    stranger = auth_headers(make_user(db))
    assert client.get("/orders/ORD000001", headers=stranger).status_code == 403


def test_cancel_via_api(client, db):
    vendor = make_vendor(db)
    product = make_product(db, vendor)
    customer = make_user(db)
    headers = auth_headers(customer)
    client.post("/cart/add", json={"product_id": product.id, "size": "9", "color": "black", "quantity": 1}, headers=headers)
    client.post("/orders/", json={"shipping_address": ADDRESS, "payment_method": "cod"}, headers=headers)

    resp = client.put("/orders/ORD000001/cancel", headers=headers)

    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"
    assert client.put("/orders/ORD000001/cancel", headers=headers).status_code == 409


def test_empty_cart_checkout(client, db):
    headers = auth_headers(make_user(db))
    resp = client.post("/orders/", json={"shipping_address": ADDRESS, "payment_method": "cod"}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "empty_cart"


def test_online_payment_flow(client, db, gateway):
    vendor = make_vendor(db)
    product = make_product(db, vendor, selling_price=750)
    headers = auth_headers(make_user(db))
    client.post("/cart/add", json={"product_id": product.id, "size": "9", "color": "black", "quantity": 1}, headers=headers)

    resp = client.post("/orders/", json={"shipping_address": ADDRESS, "payment_method": "razorpay"}, headers=headers)
    razorpay_order = resp.json()["razorpay_order"]
    assert razorpay_order == {"id": "order_ORD000001", "amount": 75000, "currency": "INR", "key": "rzp_test_key"}

    bad = client.post(
        "/orders/verify-payment",
        json={
            "order_number": "ORD000001",
            "razorpay_order_id": "order_ORD000001",
            "razorpay_payment_id": "pay_1",
            "razorpay_signature": "tampered",
        },
        headers=headers,
    )
    assert bad.status_code == 400
    assert bad.json()["error"] == "payment_verification_failed"

    good = client.post(
        "/orders/verify-payment",
        json={
            "order_number": "ORD000001",
            "razorpay_order_id": "order_ORD000001",
            "razorpay_payment_id": "pay_1",
            "razorpay_signature": "valid-signature",
        },
        headers=headers,
    )
    assert good.status_code == 200
    assert good.json()["payment_status"] == "paid"


def test_tickets_and_admin_resolution(client, db):
    vendor = make_vendor(db)
    product = make_product(db, vendor)
    customer = make_user(db)
    admin = make_user(db, role=UserRole.admin)
    headers = auth_headers(customer)
    client.post("/cart/add", json={"product_id": product.id, "size": "9", "color": "black", "quantity": 1}, headers=headers)
    client.post("/orders/", json={"shipping_address": ADDRESS, "payment_method": "cod"}, headers=headers)

    vendor_headers = auth_headers(db.get(User, vendor.user_id))
    resp = client.post(
        "/tickets/",
        json={"order_number": "ORD000001", "type": "wrong_products", "description": "Shipped size 8 instead of 9"},
        headers=vendor_headers,
    )
    assert resp.status_code == 201
    ticket = resp.json()
    assert ticket["ticket_number"] == "TKT000001"
    assert ticket["order_number"] == "ORD000001"

    assert client.get("/tickets/", headers=vendor_headers).json()["total_items"] == 1
    assert client.get("/tickets/TKT000001", headers=headers).status_code == 200

    admin_headers = auth_headers(admin)
    assert client.put("/admin/tickets/TKT000001/start", headers=headers).status_code == 403

    resp = client.put("/admin/tickets/TKT000001/start", headers=admin_headers)
    assert resp.json()["status"] == "in_progress"

    resp = client.put(
        "/admin/tickets/TKT000001/resolve",
        json={"resolution": "Correct pair dispatched", "accept": True},
        headers=admin_headers,
    )
    assert resp.json()["status"] == "resolved"

    resp = client.put(
        "/admin/tickets/TKT000001/resolve",
        json={"resolution": "again", "accept": False},
        headers=admin_headers,
    )
    assert resp.status_code == 409


def test_admin_coupons_and_orders(client, db):
    admin_headers = auth_headers(make_user(db, role=UserRole.admin))
    coupon = {
        "code": "summer25",
        "description": "Summer sale",
        "discount_type": "percentage",
        "discount_value": 25,
        "valid_from": "2026-01-01T00:00:00",
        "valid_until": "2027-01-01T00:00:00",
    }

    resp = client.post("/admin/coupons", json=coupon, headers=admin_headers)
    assert resp.status_code == 201
    assert resp.json()["code"] == "SUMMER25"
    assert client.post("/admin/coupons", json=coupon, headers=admin_headers).status_code == 409
    assert [c["code"] for c in client.get("/admin/coupons", headers=admin_headers).json()] == ["SUMMER25"]

    resp = client.post("/admin/coupons", json={**coupon, "code": "BROKEN", "discount_value": 120}, headers=admin_headers)
    assert resp.status_code == 422

    assert client.get("/admin/orders", headers=admin_headers).json()["total_items"] == 0


def test_vendor_product_management(client, db):
    vendor = make_vendor(db)
    vendor_headers = auth_headers(db.get(User, vendor.user_id))

    resp = client.post(
        "/vendor/products/",
        json={
            "name": "Canvas Low Top",
            "description": "Everyday sneaker",
            "category": "casual",
            "mrp": 1999,
            "selling_price": 1499,
            "vendor_discount": 10,
            "variants": [{"size": "8", "color": "white", "stock": 4, "sku": "CLT-8-W"}],
        },
        headers=vendor_headers,
    )
    assert resp.status_code == 201
    product = resp.json()
    assert product["slug"] == "canvas-low-top"
    assert product["final_price"] == 1349.1

    resp = client.put(
        f"/vendor/products/{product['id']}/variants",
        json=[
            {"size": "8", "color": "white", "stock": 10, "sku": "CLT-8-W"},
            {"size": "9", "color": "white", "stock": 2, "sku": "CLT-9-W"},
        ],
        headers=vendor_headers,
    )
    assert resp.status_code == 200

    public = client.get(f"/products/{product['id']}").json()
    assert {(v["size"], v["stock"]) for v in public["variants"]} == {("8", 10), ("9", 2)}

    other_headers = auth_headers(db.get(User, make_vendor(db).user_id))
    resp = client.put(f"/vendor/products/{product['id']}/variants", json=[], headers=other_headers)
    assert resp.status_code == 403


def test_unapproved_vendor_is_blocked(client, db):
    vendor = make_vendor(db, approved=False)
    resp = client.get("/vendor/orders/", headers=auth_headers(db.get(User, vendor.user_id)))
    assert resp.status_code == 403


def test_vendor_onboarding(client, db):
    applicant = make_user(db)
    headers = auth_headers(applicant)
    admin_headers = auth_headers(make_user(db, role=UserRole.admin))
    application = {
        "business_name": "Kicks Corner",
        "business_email": "hello@kickscorner.in",
        "business_phone": "9000000001",
        "gstin": "29ABCDE1234F1Z5",
        "address": {"city": "Pune", "pincode": "411001"},
    }

    resp = client.post("/vendors/register", json=application, headers=headers)
    assert resp.status_code == 201
    vendor = resp.json()
    assert vendor["is_approved"] is False
    assert vendor["commission"] == 10
    assert client.get("/auth/me", headers=headers).json()["role"] == "seller"
    assert client.post("/vendors/register", json=application, headers=headers).status_code == 409

    # pending vendors see their profile but cannot sell
    assert client.get("/vendors/profile", headers=headers).json()["business_name"] == "Kicks Corner"
    product = {
        "name": "Suede Loafer",
        "description": "Slip-on loafer",
        "category": "formal",
        "mrp": 2999,
        "selling_price": 2499,
        "variants": [{"size": "9", "color": "tan", "stock": 3, "sku": "SL-9-T"}],
    }
    assert client.post("/vendor/products/", json=product, headers=headers).status_code == 403

    pending = client.get("/admin/vendors", params={"approved": False}, headers=admin_headers).json()
    assert [v["id"] for v in pending["results"]] == [vendor["id"]]

    resp = client.put(f"/admin/vendors/{vendor['id']}/approve", headers=admin_headers)
    assert resp.json()["is_approved"] is True
    resp = client.put(f"/admin/vendors/{vendor['id']}/commission", json={"commission": 12.5}, headers=admin_headers)
    assert resp.json()["commission"] == 12.5

    assert client.post("/vendor/products/", json=product, headers=headers).status_code == 201

    resp = client.put("/vendors/profile", json={"business_name": "Kicks Corner Pune"}, headers=headers)
    assert resp.json()["business_name"] == "Kicks Corner Pune"
    assert resp.json()["gstin"] == "29ABCDE1234F1Z5"

    resp = client.put(f"/admin/vendors/{vendor['id']}/toggle-status", headers=admin_headers)
    assert resp.json()["is_active"] is False
    assert client.get("/vendor/products/", headers=headers).status_code == 403
    assert client.get("/products/").json()["total_items"] == 0


def test_catalog_edits_leave_orders_untouched(client, db):
    vendor = make_vendor(db)
    vendor_headers = auth_headers(db.get(User, vendor.user_id))
    shoe = make_product(db, vendor, name="Court Shoe", selling_price=1000)
    make_product(db, vendor, name="Flip Flop", selling_price=300)
    customer = make_user(db)
    headers = auth_headers(customer)

    listing = client.get("/products/", params={"sort": "price_low"}).json()
    assert [p["name"] for p in listing["results"]] == ["Flip Flop", "Court Shoe"]
    assert client.get("/products/", params={"search": "court"}).json()["total_items"] == 1
    assert client.get("/products/", params={"max_price": 500}).json()["total_items"] == 1

    client.post("/cart/add", json={"product_id": shoe.id, "size": "9", "color": "black", "quantity": 1}, headers=headers)
    order = client.post("/orders/", json={"shipping_address": ADDRESS, "payment_method": "cod"}, headers=headers).json()["order"]

    resp = client.put(f"/vendor/products/{shoe.id}", json={"mrp": 1800, "selling_price": 1500, "website_discount": 10}, headers=vendor_headers)
    assert resp.status_code == 200
    assert resp.json()["final_price"] == 1350
    assert resp.json()["slug"] == shoe.slug

    resp = client.delete(f"/vendor/products/{shoe.id}", headers=vendor_headers)
    assert resp.json()["is_active"] is False
    assert client.get(f"/products/{shoe.id}").status_code == 404
    assert client.get("/products/").json()["total_items"] == 1
    mine = client.get("/vendor/products/", params={"active": False}, headers=vendor_headers).json()
    assert [p["id"] for p in mine["results"]] == [shoe.id]

    item = client.get(f"/orders/{order['order_number']}", headers=headers).json()["items"][0]
    assert item["final_price"] == 1000
    assert item["selling_price"] == 1000
    assert item["name"] == "Court Shoe"

    other_headers = auth_headers(db.get(User, make_vendor(db).user_id))
    assert client.put(f"/vendor/products/{shoe.id}", json={"mrp": 1}, headers=other_headers).status_code == 403


def test_wallet_checkout_and_refund(client, db):
    customer = make_user(db)
    headers = auth_headers(customer)
    admin_headers = auth_headers(make_user(db, role=UserRole.admin))
    product = make_product(db, make_vendor(db), selling_price=1000)

    resp = client.post(f"/admin/users/{customer.id}/wallet", json={"amount": 1500}, headers=admin_headers)
    assert resp.json()["wallet"] == 1500

    client.post("/cart/add", json={"product_id": product.id, "size": "9", "color": "black", "quantity": 1}, headers=headers)
    resp = client.post("/orders/", json={"shipping_address": ADDRESS, "payment_method": "wallet"}, headers=headers)
    assert resp.status_code == 201
    order = resp.json()["order"]
    assert order["payment_status"] == "paid"
    assert order["status"] == "confirmed"
    assert client.get("/auth/me", headers=headers).json()["wallet"] == 500

    resp = client.put(f"/orders/{order['order_number']}/cancel", headers=headers)
    assert resp.json()["payment_status"] == "refunded"
    assert resp.json()["refunded_amount"] == 1000
    assert client.get("/auth/me", headers=headers).json()["wallet"] == 1500

    timeline = client.get(f"/orders/{order['order_number']}/timeline", headers=headers).json()
    assert "refund_issued" in [event["event_type"] for event in timeline]

    client.post("/cart/add", json={"product_id": product.id, "size": "9", "color": "black", "quantity": 2}, headers=headers)
    resp = client.post("/orders/", json={"shipping_address": ADDRESS, "payment_method": "wallet"}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "insufficient_wallet_balance"
