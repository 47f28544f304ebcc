import io
from decimal import Decimal

import pytest
from asgiref.sync import async_to_sync
from PIL import Image as PILImage
from rest_framework.test import APIClient

from backoffice.container import Backoffice
from backoffice.records import OrderDraft, OrderItem, ProductDraft
from backoffice.store import DjangoStoreClient

FRONTEND_KEY = "test-frontend-key"


@pytest.fixture(autouse=True)
def media_root(settings, tmp_path):
    settings.MEDIA_ROOT = str(tmp_path / "media")
    settings.MEDIA_URL = "/media/"
    settings.FRONTEND_KEY = FRONTEND_KEY
    return tmp_path / "media"


@pytest.fixture
def store():
    client = DjangoStoreClient()
    yield client
    client.close()


@pytest.fixture
def backoffice(store):
    return Backoffice(store)


@pytest.fixture
def png_bytes():
    buf = io.BytesIO()
    PILImage.new("RGB", (4, 4), (200, 30, 30)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def make_product(backoffice):
    def _make(name="Remera Basica", slug=None, **fields):
        draft = ProductDraft(
            name=name,
            slug=slug or name.lower().replace(" ", "-"),
            price=fields.pop("price", Decimal("19.90")),
            **fields,
        )
        return async_to_sync(backoffice.products.create)(draft)
    return _make


@pytest.fixture
def make_order(backoffice):
    def _make(customer_name="Ana Ruiz", customer_email="ana@example.com", status="pending", total="120.00"):
        draft = OrderDraft(
            customer_name=customer_name,
            customer_email=customer_email,
            shipping_address="Av. Siempre Viva 742",
            items=[OrderItem(name="Remera", quantity=2, price="50.00", size="M")],
            subtotal=Decimal("100.00"),
            shipping_cost=Decimal("20.00"),
            total=Decimal(total),
            status=status,
        )
        return async_to_sync(backoffice.orders.create)(draft)
    return _make


@pytest.fixture
def admin_user(django_user_model):
    return django_user_model.objects.create_user(
        username="admin", email="admin@example.com", password="s3cret-pass!", is_staff=True,
    )


@pytest.fixture
def api_client():
    return APIClient(HTTP_X_FRONTEND_KEY=FRONTEND_KEY)


@pytest.fixture
def admin_client(api_client, admin_user):
    api_client.force_authenticate(user=admin_user)
    return api_client
