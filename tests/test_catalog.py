import asyncio
from decimal import Decimal

import pytest
from asgiref.sync import async_to_sync
from django.core.files.uploadedfile import SimpleUploadedFile

from backoffice.errors import ConflictError
from backoffice.records import CategoryDraft, ProductDraft

pytestmark = pytest.mark.django_db


@pytest.fixture
def catalog(backoffice):
    return backoffice.catalog()


def _run(coro_fn, *args, **kwargs):
    return async_to_sync(coro_fn)(*args, **kwargs)


def test_load_joins_products_and_categories(backoffice, catalog, make_product):
    make_product(name="Remera", slug="remera")
    _run(backoffice.categories.create, CategoryDraft(name="Remeras", slug="remeras"))

    outcome = _run(catalog.load)

    assert outcome.ok
    assert [p["slug"] for p in catalog.products] == ["remera"]
    assert [c["slug"] for c in catalog.categories] == ["remeras"]


def test_search_matches_name_or_category(catalog, make_product):
    make_product(name="Buzo Canguro", slug="buzo", category_name="Abrigos")
    make_product(name="Remera Lisa", slug="remera", category_name="Remeras")
    _run(catalog.load)

    catalog.search_term = "ABRIGO"
    assert [p["slug"] for p in catalog.filtered_products] == ["buzo"]
    catalog.search_term = "lisa"
    assert [p["slug"] for p in catalog.filtered_products] == ["remera"]
    catalog.search_term = ""
    assert len(catalog.filtered_products) == 2


def test_slug_follows_name_until_typed(catalog):
    catalog.start_create()
    catalog.set_name("Remera  Oversize!! 2024")
    assert catalog.draft.slug == "remera-oversize-2024"

    catalog.set_slug("mi-remera")
    catalog.set_name("Otro nombre")
    assert catalog.draft.slug == "mi-remera"


def test_editing_never_rewrites_slug(catalog, make_product):
    product = make_product(name="Gorra", slug="gorra-clasica")
    _run(catalog.load)

    catalog.start_edit(catalog.find(product["id"]))
    catalog.set_name("Gorra Trucker")
    assert catalog.draft.slug == "gorra-clasica"


def test_submit_creates_then_reloads(catalog):
    _run(catalog.load)
    catalog.start_create()
    catalog.update_draft(name="Campera Jean", price="45.00", stock=4, category_name="Abrigos")

    outcome = _run(catalog.submit)

    assert outcome.ok, outcome.message
    assert catalog.draft is None
    assert [p["slug"] for p in catalog.products] == ["campera-jean"]
    assert catalog.products[0]["price"] == Decimal("45.00")


def test_submit_update_keeps_untouched_fields(catalog, make_product):
    product = make_product(name="Short", slug="short", stock=9, sizes=["S"])
    _run(catalog.load)

    catalog.start_edit(catalog.find(product["id"]))
    catalog.update_draft(price="12.00")
    assert _run(catalog.submit).ok

    saved = catalog.find(product["id"])
    assert saved["price"] == Decimal("12.00")
    assert saved["stock"] == 9
    assert saved["sizes"] == ["S"]


def test_submit_refusals_leave_cache_alone(catalog, make_product):
    make_product(name="Existente", slug="existente")
    _run(catalog.load)
    before = list(catalog.products)

    catalog.start_create()
    catalog.set_slug("")
    assert not _run(catalog.submit).ok

    catalog.set_slug("nuevo")
    catalog.uploading = True
    assert not _run(catalog.submit).ok
    catalog.uploading = False

    catalog.busy = True
    assert not _run(catalog.submit).ok
    catalog.busy = False

    assert catalog.products == before
    assert catalog.draft is not None


def test_submit_conflict_returns_generic_failure(catalog, make_product):
    make_product(name="Existente", slug="existente")
    _run(catalog.load)
    before = list(catalog.products)

    catalog.start_create()
    catalog.update_draft(name="Existente", price="10")
    outcome = _run(catalog.submit)

    assert not outcome.ok
    assert outcome.message == "Could not save product"
    assert isinstance(outcome.error, ConflictError)
    assert catalog.products == before
    assert catalog.busy is False


def test_validation_failure_surfaces_the_reason(catalog):
    catalog.start_create()
    catalog.update_draft(name="Sin precio", price="-5")
    outcome = _run(catalog.submit)

    assert not outcome.ok
    assert "price" in outcome.message


def test_upload_images_appends_in_order_and_keeps_partial(catalog, png_bytes):
    catalog.start_create()
    files = [
        SimpleUploadedFile("uno.png", png_bytes, content_type="image/png"),
        SimpleUploadedFile("dos.png", png_bytes, content_type="image/png"),
        SimpleUploadedFile("roto.png", b"not an image", content_type="image/png"),
        SimpleUploadedFile("tres.png", png_bytes, content_type="image/png"),
    ]

    outcome = _run(catalog.upload_images, files)

    assert not outcome.ok
    assert catalog.uploading is False
    assert len(catalog.draft.images) == 2
    assert all(url.startswith("/media/images/products/") for url in catalog.draft.images)


def test_remove_image_only_touches_the_draft(catalog, backoffice, png_bytes, media_root):
    catalog.start_create()
    _run(catalog.upload_images, [SimpleUploadedFile("uno.png", png_bytes)])
    url = catalog.draft.images[0]

    catalog.remove_image(url)

    assert catalog.draft.images == []
    key = backoffice.assets.key_for(url)
    assert (media_root / "images" / key).exists()


def test_delete_product_with_purge(catalog, backoffice, png_bytes, media_root):
    catalog.start_create()
    _run(catalog.upload_images, [SimpleUploadedFile("uno.png", png_bytes)])
    catalog.update_draft(name="Con foto", price="5")
    assert _run(catalog.submit).ok
    product = catalog.products[0]
    key = backoffice.assets.key_for(product["images"][0])

    outcome = _run(catalog.delete_product, product["id"], purge_images=True)

    assert outcome.ok
    assert catalog.products == []
    assert not (media_root / "images" / key).exists()


def test_delete_unknown_product_fails_without_reload(catalog, make_product):
    make_product()
    _run(catalog.load)
    before = list(catalog.products)

    outcome = _run(catalog.delete_product, "00000000-0000-0000-0000-000000000000")

    assert not outcome.ok
    assert catalog.products == before


def test_toggle_active(catalog, make_product):
    product = make_product()
    _run(catalog.load)

    assert _run(catalog.toggle_active, product["id"], False).ok
    assert catalog.find(product["id"])["active"] is False


def test_watch_reloads_on_push(backoffice, catalog):
    async def scenario():
        await catalog.load()
        await catalog.watch(backoffice.realtime)
        try:
            await backoffice.products.create(ProductDraft(name="Push", slug="push", price=1))
            for _ in range(50):
                if catalog.products:
                    break
                await asyncio.sleep(0.02)
        finally:
            await catalog.unwatch(backoffice.realtime)

    _run(scenario)
    assert [p["slug"] for p in catalog.products] == ["push"]
