from decimal import Decimal

import pytest

from marketplace.errors import ConflictError, NotFoundError, PermissionDenied, ValidationError
from marketplace.models_sqlalchemy.models import UserRole
from marketplace.services.catalog_service import CategoryService, ProductService

from conftest import actor_for, make_category, make_product, make_user, make_vendor


@pytest.fixture
def tenants(db):
    root = make_user(db, "root@example.com", role=UserRole.super_admin)
    seller_a = make_user(db, "a@example.com", role=UserRole.seller)
    seller_b = make_user(db, "b@example.com", role=UserRole.seller)
    vendor_a = make_vendor(db, seller_a, name="Store A")
    vendor_b = make_vendor(db, seller_b, name="Store B")
    return {
        "root": actor_for(root),
        "a": actor_for(seller_a, vendor_a),
        "b": actor_for(seller_b, vendor_b),
        "vendor_a": vendor_a,
        "vendor_b": vendor_b,
    }


def variant(sku, **extra):
    data = {"sku": sku, "mrp": Decimal("20.00"), "selling_price": Decimal("15.00"), "purchase_price": Decimal("9.00")}
    data.update(extra)
    return data


def test_seller_creates_product_in_own_store(db, tenants):
    product = ProductService(db).create_product(
        tenants["a"],
        {"name": "Shirt", "price": Decimal("19.99"), "variants": [variant("SH-M", size="M")]},
    )
    assert product.vendor_id == tenants["vendor_a"].id
    assert [v.sku for v in product.variants] == ["SH-M"]


def test_seller_cannot_touch_another_store(db, tenants):
    service = ProductService(db)
    with pytest.raises(PermissionDenied):
        service.create_product(tenants["a"], {"vendor_id": tenants["vendor_b"].id, "name": "X", "price": Decimal("1.00")})

    product = make_product(db, tenants["vendor_b"])
    with pytest.raises(PermissionDenied):
        service.update_product(tenants["a"], product.id, {"price": Decimal("0.50")})
    with pytest.raises(PermissionDenied):
        service.delete_product(tenants["a"], product.id)


def test_super_admin_writes_any_store_but_must_name_it(db, tenants):
    service = ProductService(db)
    product = service.create_product(
        tenants["root"], {"vendor_id": tenants["vendor_b"].id, "name": "Mug", "price": Decimal("7.25")}
    )
    assert product.vendor_id == tenants["vendor_b"].id

    with pytest.raises(ValidationError):
        service.create_product(tenants["root"], {"name": "Orphan", "price": Decimal("1.00")})
    with pytest.raises(NotFoundError):
        service.create_product(tenants["root"], {"vendor_id": "nope", "name": "Ghost", "price": Decimal("1.00")})


def test_seller_without_store_is_denied(db, tenants):
    lonely = make_user(db, "lonely@example.com", role=UserRole.seller)
    with pytest.raises(PermissionDenied) as exc:
        ProductService(db).create_product(actor_for(lonely), {"name": "X", "price": Decimal("1.00")})
    assert exc.value.message == "Vendor not found"


def test_update_replaces_variants_and_keeps_unset_fields(db, tenants):
    service = ProductService(db)
    product = service.create_product(
        tenants["a"],
        {"name": "Shirt", "description": "Cotton", "price": Decimal("19.99"), "variants": [variant("SH-M")]},
    )

    updated = service.update_product(
        tenants["a"], product.id, {"price": Decimal("17.50"), "variants": [variant("SH-L", size="L")]}
    )
    assert updated.price == Decimal("17.50")
    assert updated.description == "Cotton"
    assert [v.sku for v in updated.variants] == ["SH-L"]


def test_duplicate_sku_is_a_conflict(db, tenants):
    service = ProductService(db)
    service.create_product(tenants["a"], {"name": "One", "price": Decimal("1.00"), "variants": [variant("DUP")]})
    with pytest.raises(ConflictError):
        service.create_product(tenants["b"], {"name": "Two", "price": Decimal("1.00"), "variants": [variant("DUP")]})


def test_product_must_use_visible_category(db, tenants):
    foreign = make_category(db, "B only", vendor=tenants["vendor_b"])
    shared = make_category(db, "Shared")
    service = ProductService(db)

    with pytest.raises(ValidationError):
        service.create_product(tenants["a"], {"name": "X", "price": Decimal("1.00"), "category_id": foreign.id})
    product = service.create_product(tenants["a"], {"name": "X", "price": Decimal("1.00"), "category_id": shared.id})
    assert product.category_id == shared.id


def test_list_products_filters(db, tenants):
    make_product(db, tenants["vendor_a"], name="A1")
    make_product(db, tenants["vendor_b"], name="B1")
    names = [p.name for p in ProductService(db).list_products(vendor_id=tenants["vendor_a"].id)]
    assert names == ["A1"]
    assert len(ProductService(db).list_products()) == 2


def test_category_visibility(db, tenants):
    make_category(db, "Global")
    make_category(db, "A cat", vendor=tenants["vendor_a"])
    make_category(db, "B cat", vendor=tenants["vendor_b"])
    service = CategoryService(db)

    assert sorted(c.name for c in service.list_categories(tenants["a"])) == ["A cat", "Global"]
    assert len(service.list_categories(tenants["root"])) == 3
    assert [c.name for c in service.list_categories(tenants["root"], is_global=True)] == ["Global"]

    buyer = make_user(db, "buyer@example.com")
    assert service.list_categories(actor_for(buyer)) == []


def test_category_writes(db, tenants):
    service = CategoryService(db)

    own = service.create_category(tenants["a"], {"name": "Shoes"})
    assert own.vendor_id == tenants["vendor_a"].id and not own.is_global

    with pytest.raises(PermissionDenied):
        service.create_category(tenants["a"], {"name": "Everything", "is_global": True})
    with pytest.raises(PermissionDenied):
        service.create_category(tenants["a"], {"name": "Sneaky", "vendor_id": tenants["vendor_b"].id})
    with pytest.raises(PermissionDenied):
        service.update_category(tenants["b"], own.id, {"name": "Mine now"})

    glob = service.create_category(tenants["root"], {"name": "Everything", "is_global": True})
    assert glob.is_global and glob.vendor_id is None
    with pytest.raises(PermissionDenied):
        service.delete_category(tenants["a"], glob.id)

    renamed = service.update_category(tenants["a"], own.id, {"name": "Footwear", "parent_id": glob.id})
    assert (renamed.name, renamed.parent_id) == ("Footwear", glob.id)
    with pytest.raises(ValidationError):
        service.update_category(tenants["a"], own.id, {"parent_id": own.id})

    assert service.delete_category(tenants["a"], own.id)
    with pytest.raises(NotFoundError):
        service.get_category(own.id)


def test_super_admin_must_name_the_store_for_vendor_categories(db, tenants):
    service = CategoryService(db)
    with pytest.raises(ValidationError) as exc:
        service.create_category(tenants["root"], {"name": "Loose"})
    assert exc.value.message == "vendorId is required"

    placed = service.create_category(tenants["root"], {"name": "Placed", "vendor_id": tenants["vendor_b"].id})
    assert placed.vendor_id == tenants["vendor_b"].id

    storeless = make_user(db, "storeless@example.com", role=UserRole.seller)
    with pytest.raises(PermissionDenied):
        service.create_category(actor_for(storeless), {"name": "Nowhere"})
