import pytest

from marketplace.models_sqlalchemy.models import UserRole

from conftest import auth_headers, make_category, make_product, make_user, make_vendor


@pytest.fixture
def market(db):
    root = make_user(db, "root@example.com", role=UserRole.super_admin)
    seller = make_user(db, "seller@example.com", role=UserRole.seller)
    rival = make_user(db, "rival@example.com", role=UserRole.seller)
    buyer = make_user(db, "buyer@example.com")
    vendor = make_vendor(db, seller, name="Acme", domain="acme")
    rival_vendor = make_vendor(db, rival, name="Rival", domain="rival")
    return {
        "root": root,
        "seller": seller,
        "rival": rival,
        "buyer": buyer,
        "vendor": vendor,
        "rival_vendor": rival_vendor,
    }


def test_seller_manages_own_products_only(client, market):
    seller, rival = market["seller"], market["rival"]

    resp = client.post(
        "/api/products",
        json={"name": "Widget", "price": "10.50", "variants": [{"sku": "W-1", "mrp": "12.00", "sellingPrice": "10.50", "purchasePrice": "6.00", "size": "M"}]},
        headers=auth_headers(seller),
    )
    assert resp.status_code == 200
    product = resp.json()
    assert product["vendorId"] == market["vendor"].id
    assert product["price"] == "10.50"
    assert product["variants"][0]["sellingPrice"] == "10.50"

    denied = client.put(f"/api/products/{product['id']}", json={"price": "1.00"}, headers=auth_headers(rival))
    assert denied.status_code == 403
    assert client.delete(f"/api/products/{product['id']}", headers=auth_headers(rival)).status_code == 403

    updated = client.put(f"/api/products/{product['id']}", json={"price": "9.99"}, headers=auth_headers(seller))
    assert updated.json()["price"] == "9.99"

    public = client.get("/api/products", params={"vendorId": market["vendor"].id})
    assert [p["name"] for p in public.json()] == ["Widget"]

    assert client.delete(f"/api/products/{product['id']}", headers=auth_headers(seller)).status_code == 200
    assert client.get(f"/api/products/{product['id']}").status_code == 404


def test_buyers_cannot_create_products(client, market):
    resp = client.post(
        "/api/products",
        json={"vendorId": market["vendor"].id, "name": "X", "price": "1.00"},
        headers=auth_headers(market["buyer"]),
    )
    assert resp.status_code == 403


def test_cart_to_order(client, db, market):
    buyer = market["buyer"]
    widget = make_product(db, market["vendor"], name="Widget", price="10.50")
    gadget = make_product(db, market["vendor"], name="Gadget", price="4.99")
    headers = auth_headers(buyer)

    client.post("/api/cart", json={"productId": widget.id, "quantity": 1}, headers=headers)
    merged = client.post("/api/cart", json={"productId": widget.id, "quantity": 1}, headers=headers)
    assert merged.json()["quantity"] == 2
    assert merged.json()["size"] is None
    client.post("/api/cart", json={"productId": gadget.id}, headers=headers)

    cart = client.get("/api/cart", headers=headers).json()
    assert sorted(line["quantity"] for line in cart) == [1, 2]

    resp = client.post(
        "/api/orders",
        json={"vendorId": market["vendor"].id, "shippingAddress": {"line1": "1 Main St"}},
        headers=headers,
    )
    assert resp.status_code == 200
    order = resp.json()
    assert order["total"] == "25.99"
    assert order["status"] == "pending"
    assert len(order["items"]) == 2
    assert client.get("/api/cart", headers=headers).json() == []

    again = client.post("/api/orders", json={"vendorId": market["vendor"].id}, headers=headers)
    assert again.status_code == 400
    assert again.json()["message"] == "Cart is empty"

    # Seller of the store sees it; the rival store gets a 404.
    assert client.get(f"/api/orders/{order['id']}", headers=auth_headers(market["seller"])).status_code == 200
    assert client.get(f"/api/orders/{order['id']}", headers=auth_headers(market["rival"])).status_code == 404
    assert client.get("/api/orders", headers=auth_headers(market["rival"])).json() == []

    shipped = client.put(
        f"/api/orders/{order['id']}/status", json={"status": "shipped"}, headers=auth_headers(market["seller"])
    )
    assert shipped.json()["status"] == "shipped"
    rival_try = client.put(
        f"/api/orders/{order['id']}/status", json={"status": "cancelled"}, headers=auth_headers(market["rival"])
    )
    assert rival_try.status_code == 403
    bogus = client.put(
        f"/api/orders/{order['id']}/status", json={"status": "vanished"}, headers=auth_headers(market["seller"])
    )
    assert bogus.status_code == 400


def test_cart_line_selectors(client, db, market):
    shirt = make_product(db, market["vendor"], name="Shirt", price="20.00")
    headers = auth_headers(market["buyer"])

    client.post("/api/cart", json={"productId": shirt.id, "size": "M"}, headers=headers)
    client.post("/api/cart", json={"productId": shirt.id, "size": "L"}, headers=headers)

    ambiguous = client.put(f"/api/cart/{shirt.id}", json={"quantity": 3}, headers=headers)
    assert ambiguous.status_code == 400

    resp = client.put(f"/api/cart/{shirt.id}", json={"quantity": 3, "size": "L"}, headers=headers)
    assert resp.json()["quantity"] == 3

    zero = client.put(f"/api/cart/{shirt.id}", json={"quantity": 0, "size": "L"}, headers=headers)
    assert zero.status_code == 400

    assert client.delete(f"/api/cart/{shirt.id}", params={"size": "M"}, headers=headers).status_code == 200
    assert [line["size"] for line in client.get("/api/cart", headers=headers).json()] == ["L"]

    assert client.delete("/api/cart", headers=headers).status_code == 200
    assert client.get("/api/cart", headers=headers).json() == []
    assert client.get("/api/cart").status_code == 401


def test_categories_are_scoped(client, db, market):
    make_category(db, "Global")
    make_category(db, "Rival only", vendor=market["rival_vendor"])

    created = client.post("/api/categories", json={"name": "Acme only"}, headers=auth_headers(market["seller"]))
    assert created.status_code == 200
    assert created.json()["vendorId"] == market["vendor"].id

    names = sorted(c["name"] for c in client.get("/api/categories", headers=auth_headers(market["seller"])).json())
    assert names == ["Acme only", "Global"]

    everything = client.get("/api/categories", headers=auth_headers(market["root"])).json()
    assert len(everything) == 3

    global_try = client.post(
        "/api/categories", json={"name": "All", "isGlobal": True}, headers=auth_headers(market["seller"])
    )
    assert global_try.status_code == 403

    rival_edit = client.patch(
        f"/api/categories/{created.json()['id']}", json={"name": "Mine"}, headers=auth_headers(market["rival"])
    )
    assert rival_edit.status_code == 403


def test_vendor_management(client, db, market):
    root = auth_headers(market["root"])

    resp = client.post("/api/vendors", json={"ownerEmail": "newshop@example.com", "name": "New Shop"}, headers=root)
    assert resp.status_code == 200
    vendor_id = resp.json()["id"]

    assert client.post(
        "/api/vendors", json={"ownerEmail": "x@example.com", "name": "X"}, headers=auth_headers(market["seller"])
    ).status_code == 403

    generated = client.post(f"/api/admin/vendors/{vendor_id}/generate-subdomain", headers=root)
    assert generated.json()["domain"].startswith("new-shop.")

    patched = client.patch(f"/api/vendors/{vendor_id}", json={"description": "Fresh stock"}, headers=root)
    assert patched.json()["description"] == "Fresh stock"

    mine = client.get("/api/vendors/my", headers=auth_headers(market["seller"]))
    assert mine.json()["id"] == market["vendor"].id
    assert client.get("/api/vendors/my", headers=auth_headers(market["buyer"])).status_code == 404

    assert len(client.get("/api/vendors", headers=root).json()) == 3


def test_custom_domains_and_storefront(client, db, market):
    root = auth_headers(market["root"])
    make_product(db, market["vendor"], name="Widget")
    make_category(db, "Acme cat", vendor=market["vendor"])

    created = client.post(
        "/api/admin/custom-domains", json={"domain": "shop.acme.com", "vendorId": market["vendor"].id}, headers=root
    )
    assert created.status_code == 200
    assert created.json()["status"] == "pending"

    store = client.get("/api/storefront/by-domain", params={"domain": "shop.acme.com"})
    assert store.status_code == 200
    body = store.json()
    assert body["vendor"]["name"] == "Acme"
    assert body["vendor"]["customDomain"] == "shop.acme.com"
    assert [p["name"] for p in body["products"]] == ["Widget"]
    assert [c["name"] for c in body["categories"]] == ["Acme cat"]

    by_label = client.get("/api/storefront/by-domain", params={"domain": "rival.platform.test:8080"})
    assert by_label.json()["vendor"]["name"] == "Rival"

    by_host = client.get("/api/storefront/by-domain", headers={"host": "acme.localhost:8000"})
    assert by_host.json()["vendor"]["id"] == market["vendor"].id

    missing = client.get("/api/storefront/by-domain", params={"domain": "nobody.example.com"})
    assert missing.status_code == 404
    assert missing.json() == {"message": "Store not found"}

    domain_id = created.json()["id"]
    client.put(f"/api/admin/custom-domains/{domain_id}", json={"status": "inactive"}, headers=root)
    assert client.get("/api/storefront/by-domain", params={"domain": "shop.acme.com"}).status_code == 404

    assert client.delete(f"/api/admin/custom-domains/{domain_id}", headers=root).status_code == 200
    assert client.get("/api/admin/custom-domains", headers=root).json() == []
    assert client.get("/api/admin/custom-domains", headers=auth_headers(market["seller"])).status_code == 403
