import uuid
from decimal import Decimal

import pytest
from asgiref.sync import async_to_sync

from backoffice.errors import (
    AlreadySubscribedError,
    ConflictError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from backoffice.models import Product
from backoffice.records import (
    CategoryDraft,
    CategoryPatch,
    OrderDraft,
    ProductDraft,
    ProductPatch,
    TestimonialDraft,
)

pytestmark = pytest.mark.django_db


class _FailingStore:
    """Store double whose every call fails with a fixed code."""

    def __init__(self, code):
        self.code = code
        self.calls = 0

    async def _fail(self, *args, **kwargs):
        self.calls += 1
        raise StoreError("boom", self.code)

    query = get_single = insert = update = delete = upsert = _fail


# -----------------------
# Products
# -----------------------
def test_create_then_get_by_id_returns_draft_plus_generated_fields(backoffice):
    draft = ProductDraft(
        name="Remera Oversize",
        slug="remera-oversize",
        price=Decimal("25.50"),
        old_price=Decimal("30.00"),
        category_name="Remeras",
        images=["/media/images/products/a.png"],
        sizes=["S", "M"],
        colors=["negro"],
        features=["algodón"],
        stock=7,
        featured=True,
        tag="nuevo",
    )
    created = async_to_sync(backoffice.products.create)(draft)
    fetched = async_to_sync(backoffice.products.get_by_id)(created["id"])

    assert fetched == created
    assert uuid.UUID(fetched["id"])
    assert fetched["created_at"] is not None
    for name, value in draft.validated().items():
        assert fetched[name] == value


def test_duplicate_slug_raises_conflict_and_keeps_first(backoffice, make_product):
    first = make_product(name="Buzo", slug="buzo")
    with pytest.raises(ConflictError):
        async_to_sync(backoffice.products.create)(ProductDraft(name="Otro", slug="buzo", price=1))

    rows = async_to_sync(backoffice.products.list)()
    assert [r["id"] for r in rows] == [first["id"]]
    assert rows[0]["name"] == "Buzo"


def test_only_active_is_ordered_subset(backoffice, make_product):
    for i in range(5):
        make_product(name=f"Producto {i}", slug=f"producto-{i}", active=i % 2 == 0)

    everything = async_to_sync(backoffice.products.list)()
    active = async_to_sync(backoffice.products.list)(only_active=True)

    assert active == [r for r in everything if r["active"]]
    assert len(active) == 3


def test_list_is_newest_first(backoffice, make_product):
    older = make_product(name="Viejo", slug="viejo")
    newer = make_product(name="Nuevo", slug="nuevo")
    Product.objects.filter(pk=older["id"]).update(created_at=newer["created_at"].replace(year=2000))

    rows = async_to_sync(backoffice.products.list)()
    assert [r["id"] for r in rows] == [newer["id"], older["id"]]


@pytest.mark.parametrize("draft, field", [
    (ProductDraft(name="", slug="x", price=1), "name"),
    (ProductDraft(name="X", slug="", price=1), "slug"),
    (ProductDraft(name="X", slug="no spaces!", price=1), "slug"),
    (ProductDraft(name="X", slug="x", price=-1), "price"),
    (ProductDraft(name="X", slug="x", price=1, old_price="-2"), "old_price"),
    (ProductDraft(name="X", slug="x", price=1, stock=-3), "stock"),
    (ProductDraft(name="X", slug="x", price="123456789012345"), "price"),
    (ProductDraft(name="X", slug="x", price="1.999"), "price"),
    (ProductDraft(name="X", slug="x", price="NaN"), "price"),
    (ProductDraft(name="X", slug="x", price=1, stock=2**70), "stock"),
])
def test_invalid_product_draft_never_reaches_store(draft, field):
    from backoffice.services import ProductService

    store = _FailingStore("unknown")
    with pytest.raises(ValidationError) as exc:
        async_to_sync(ProductService(store).create)(draft)
    assert exc.value.field == field
    assert store.calls == 0


def test_wrong_record_type_is_a_programming_error(backoffice):
    with pytest.raises(TypeError):
        async_to_sync(backoffice.products.create)(CategoryDraft(name="x", slug="x"))


def test_update_touches_only_patched_fields(backoffice, make_product):
    product = make_product(name="Gorra", slug="gorra", stock=3)
    updated = async_to_sync(backoffice.products.update)(product["id"], ProductPatch(price="9.99"))

    assert updated["price"] == Decimal("9.99")
    assert updated["stock"] == 3
    assert updated["slug"] == "gorra"


def test_empty_patch_is_rejected(backoffice, make_product):
    product = make_product()
    with pytest.raises(ValidationError):
        async_to_sync(backoffice.products.update)(product["id"], ProductPatch())


def test_toggle_active_and_stock_update_only_their_field(backoffice, make_product):
    product = make_product(name="Campera", slug="campera", stock=2)

    off = async_to_sync(backoffice.products.toggle_active)(product["id"], False)
    assert off["active"] is False
    assert off["stock"] == 2

    restocked = async_to_sync(backoffice.products.update_stock)(product["id"], 12)
    assert restocked["stock"] == 12
    assert restocked["active"] is False

    with pytest.raises(ValidationError):
        async_to_sync(backoffice.products.toggle_active)(product["id"], "yes")


def test_get_by_slug_hides_inactive_products(backoffice, make_product):
    product = make_product(name="Medias", slug="medias", active=False)

    with pytest.raises(NotFoundError):
        async_to_sync(backoffice.products.get_by_slug)("medias")
    assert async_to_sync(backoffice.products.get_by_id)(product["id"])["slug"] == "medias"


def test_featured_and_by_category(backoffice, make_product):
    make_product(name="A", slug="a", featured=True, category_name="Remeras")
    make_product(name="B", slug="b", featured=True, active=False, category_name="Remeras")
    make_product(name="C", slug="c", category_name="Buzos")

    assert [r["slug"] for r in async_to_sync(backoffice.products.featured)()] == ["a"]
    assert [r["slug"] for r in async_to_sync(backoffice.products.by_category)("Remeras")] == ["a"]


def test_delete_removes_and_unknown_id_is_not_found(backoffice, make_product):
    product = make_product()
    assert async_to_sync(backoffice.products.delete)(product["id"]) is True
    assert async_to_sync(backoffice.products.list)() == []

    with pytest.raises(NotFoundError):
        async_to_sync(backoffice.products.delete)(str(uuid.uuid4()))
    with pytest.raises(NotFoundError):
        async_to_sync(backoffice.products.delete)("not-a-uuid")


def test_update_of_missing_row_is_not_found(backoffice):
    with pytest.raises(NotFoundError):
        async_to_sync(backoffice.products.update)(str(uuid.uuid4()), ProductPatch(name="Nada"))


def test_out_of_range_values_are_validation_errors(backoffice, make_product):
    product = make_product()

    with pytest.raises(ValidationError) as exc:
        async_to_sync(backoffice.products.update_stock)(product["id"], 2**70)
    assert exc.value.field == "stock"

    with pytest.raises(ValidationError) as exc:
        async_to_sync(backoffice.products.update)(product["id"], ProductPatch(price="123456789012345"))
    assert exc.value.field == "price"

    assert async_to_sync(backoffice.products.get_by_id)(product["id"])["price"] == product["price"]


def test_store_maps_values_the_column_cannot_hold(store, make_product):
    product = make_product()

    with pytest.raises(StoreError) as exc:
        async_to_sync(store.update)("products", {"id": product["id"]}, {"stock": 2**70})
    assert exc.value.code == "invalid_input"


def test_malformed_id_is_not_found_without_a_store_call():
    from backoffice.services import ProductService

    store = _FailingStore("unknown")
    service = ProductService(store)
    with pytest.raises(NotFoundError):
        async_to_sync(service.update)("not-a-uuid", ProductPatch(name="X"))
    with pytest.raises(NotFoundError):
        async_to_sync(service.get_by_id)(None)
    assert store.calls == 0


def test_invalid_input_from_store_is_not_reported_as_missing():
    from backoffice.services import ProductService

    with pytest.raises(StoreError) as exc:
        async_to_sync(ProductService(_FailingStore("invalid_input")).update)(
            str(uuid.uuid4()), ProductPatch(name="X"),
        )
    assert not isinstance(exc.value, NotFoundError)
    assert exc.value.code == "invalid_input"


def test_generic_store_failure_keeps_code():
    from backoffice.services import ProductService

    with pytest.raises(StoreError) as exc:
        async_to_sync(ProductService(_FailingStore("unknown")).list)()
    assert type(exc.value) is StoreError
    assert exc.value.code == "unknown"


# -----------------------
# Categories
# -----------------------
def test_categories_list_by_name_and_rename_leaves_products_alone(backoffice, make_product):
    zapatillas = async_to_sync(backoffice.categories.create)(CategoryDraft(name="Zapatillas", slug="zapatillas"))
    async_to_sync(backoffice.categories.create)(CategoryDraft(name="Buzos", slug="buzos"))
    make_product(name="Zapa", slug="zapa", category_name="Zapatillas")

    assert [c["name"] for c in async_to_sync(backoffice.categories.list)()] == ["Buzos", "Zapatillas"]

    async_to_sync(backoffice.categories.update)(zapatillas["id"], CategoryPatch(name="Calzado"))
    assert async_to_sync(backoffice.products.list)()[0]["category_name"] == "Zapatillas"
    assert async_to_sync(backoffice.categories.get_by_slug)("zapatillas")["name"] == "Calzado"


# -----------------------
# Orders
# -----------------------
def test_order_status_roundtrip_leaves_other_fields(backoffice, make_order):
    order = make_order()

    completed = async_to_sync(backoffice.orders.update_status)(order["id"], "completed")
    assert completed["status"] == "completed"
    back = async_to_sync(backoffice.orders.update_status)(order["id"], "pending")
    assert back["status"] == "pending"

    for name in ("customer_name", "customer_email", "items", "subtotal", "shipping_cost", "total", "created_at"):
        assert back[name] == order[name]


def test_unknown_status_and_structural_edit_are_rejected(backoffice, make_order):
    order = make_order()
    with pytest.raises(ValidationError):
        async_to_sync(backoffice.orders.update_status)(order["id"], "shipped")
    with pytest.raises(ValidationError):
        async_to_sync(backoffice.orders.update)(order["id"], None)


def test_order_draft_requires_items_and_valid_email(backoffice):
    with pytest.raises(ValidationError) as exc:
        async_to_sync(backoffice.orders.create)(OrderDraft(
            customer_name="Ana", customer_email="ana@example.com", shipping_address="x", items=[],
        ))
    assert exc.value.field == "items"

    with pytest.raises(ValidationError) as exc:
        async_to_sync(backoffice.orders.create)(OrderDraft(
            customer_name="Ana", customer_email="no-at-sign", shipping_address="x",
            items=[{"name": "Remera", "quantity": 1, "price": "10"}],
        ))
    assert exc.value.field == "customer_email"


# -----------------------
# Testimonials
# -----------------------
def test_testimonial_rating_bounds(backoffice):
    with pytest.raises(ValidationError):
        async_to_sync(backoffice.testimonials.create)(TestimonialDraft(name="Lu", comment="Genial", rating=6))
    row = async_to_sync(backoffice.testimonials.create)(TestimonialDraft(name="Lu", comment="Genial", rating=4))
    async_to_sync(backoffice.testimonials.toggle_active)(row["id"], False)

    assert async_to_sync(backoffice.testimonials.list)(only_active=True) == []
    assert len(async_to_sync(backoffice.testimonials.list)()) == 1


# -----------------------
# Newsletter / settings / stats
# -----------------------
def test_double_subscribe_raises_and_count_is_stable(backoffice):
    async_to_sync(backoffice.newsletter.subscribe)("Lu@Example.com")
    assert async_to_sync(backoffice.newsletter.count)() == 1

    with pytest.raises(AlreadySubscribedError) as exc:
        async_to_sync(backoffice.newsletter.subscribe)("lu@example.com")
    assert str(exc.value) == "This email is already subscribed"
    assert async_to_sync(backoffice.newsletter.count)() == 1


def test_unsubscribe(backoffice):
    async_to_sync(backoffice.newsletter.subscribe)("lu@example.com")
    assert async_to_sync(backoffice.newsletter.unsubscribe)("LU@example.com") is True
    with pytest.raises(NotFoundError):
        async_to_sync(backoffice.newsletter.unsubscribe)("lu@example.com")


def test_settings_are_text(backoffice):
    async_to_sync(backoffice.settings.set_multiple)({"a": "1", "b": "2"})
    async_to_sync(backoffice.settings.set)("shipping_cost", 1500)
    async_to_sync(backoffice.settings.set_multiple)({"a": "updated"})

    everything = async_to_sync(backoffice.settings.get_all)()
    assert everything == {"a": "updated", "b": "2", "shipping_cost": "1500"}
    assert async_to_sync(backoffice.settings.get)("b") == "2"
    with pytest.raises(NotFoundError):
        async_to_sync(backoffice.settings.get)("missing")


def test_stats_exclude_cancelled_revenue(backoffice, make_product, make_order):
    make_product()
    make_order(total="120.00")
    make_order(customer_name="Beto Diaz", customer_email="beto@example.com", status="cancelled", total="80.00")
    async_to_sync(backoffice.newsletter.subscribe)("lu@example.com")

    stats = async_to_sync(backoffice.stats.get_stats)()
    assert stats == {
        "total_products": 1,
        "total_orders": 2,
        "total_subscribers": 1,
        "total_revenue": Decimal("120.00"),
    }
