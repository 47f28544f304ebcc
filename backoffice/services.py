"""
Entity services: one thin contract per entity kind over a ``RemoteStoreClient``.

Services validate drafts/patches before any remote call, shape rows, and
translate store failures into the error taxonomy. They never swallow errors.
"""
import logging
import uuid

from . import errors
from .errors import (
    AlreadySubscribedError,
    NotFoundError,
    StoreError,
    ValidationError,
    classify,
)
from .records import (
    CategoryDraft,
    CategoryPatch,
    OrderDraft,
    ProductDraft,
    ProductPatch,
    TestimonialDraft,
    TestimonialPatch,
    normalize_email,
    validate_status,
    _count,
)

logger = logging.getLogger(__name__)


class EntityService:
    collection = None
    label = "Record"
    ordering = "-created_at"
    draft_type = None
    patch_type = None

    def __init__(self, store):
        self.store = store

    # -----------------------
    # Helpers
    # -----------------------
    def _validated(self, record, expected):
        if expected is None or not isinstance(record, expected):
            raise TypeError(f"{type(self).__name__} expects {getattr(expected, '__name__', None)}, got {type(record).__name__}")
        return record.validated()

    def _checked_id(self, record_id):
        # a malformed id can never match a row
        try:
            uuid.UUID(str(record_id))
        except ValueError:
            raise NotFoundError(f"{self.label} not found") from None
        return record_id

    async def _query(self, **filters):
        try:
            return await self.store.query(self.collection, filters, self.ordering)
        except StoreError as err:
            raise classify(err, self.label) from err

    async def _get_single(self, filters):
        try:
            return await self.store.get_single(self.collection, filters)
        except StoreError as err:
            raise classify(err, self.label) from err

    async def _patch(self, record_id, row):
        record_id = self._checked_id(record_id)
        try:
            updated = await self.store.update(self.collection, {"id": record_id}, row)
        except StoreError as err:
            raise classify(err, self.label) from err
        if not updated:
            raise NotFoundError(f"{self.label} not found")
        return updated[0]

    # -----------------------
    # CRUD
    # -----------------------
    async def list(self):
        return await self._query()

    async def get_by_id(self, record_id):
        return await self._get_single({"id": self._checked_id(record_id)})

    async def create(self, draft):
        row = self._validated(draft, self.draft_type)
        try:
            created = await self.store.insert(self.collection, [row])
        except StoreError as err:
            raise classify(err, self.label) from err
        logger.debug("%s %s created", self.label, created[0].get("id"))
        return created[0]

    async def update(self, record_id, patch):
        row = self._validated(patch, self.patch_type)
        return await self._patch(record_id, row)

    async def delete(self, record_id):
        record_id = self._checked_id(record_id)
        try:
            deleted = await self.store.delete(self.collection, {"id": record_id})
        except StoreError as err:
            raise classify(err, self.label) from err
        if not deleted:
            raise NotFoundError(f"{self.label} not found")
        return True


class ActiveToggleMixin:
    async def toggle_active(self, record_id, active):
        # touches the active flag only; never a stale full record
        if not isinstance(active, bool):
            raise ValidationError("Field 'active' must be true or false.", field="active")
        return await self._patch(record_id, {"active": active})


class ProductService(ActiveToggleMixin, EntityService):
    collection = "products"
    label = "Product"
    draft_type = ProductDraft
    patch_type = ProductPatch

    async def list(self, only_active=False):
        if only_active:
            return await self._query(active=True)
        return await self._query()

    async def get_by_slug(self, slug):
        """Storefront lookup: inactive products are invisible here."""
        return await self._get_single({"slug": slug, "active": True})

    async def featured(self):
        return await self._query(active=True, featured=True)

    async def by_category(self, category_name):
        return await self._query(active=True, category_name=category_name)

    async def update_stock(self, record_id, quantity):
        return await self._patch(record_id, {"stock": _count("stock")(quantity)})


class CategoryService(EntityService):
    collection = "categories"
    label = "Category"
    ordering = "name"
    draft_type = CategoryDraft
    patch_type = CategoryPatch

    async def get_by_slug(self, slug):
        return await self._get_single({"slug": slug})


class OrderService(EntityService):
    collection = "orders"
    label = "Order"
    draft_type = OrderDraft

    async def update(self, record_id, patch):
        raise ValidationError("Orders can only change status.", field="status")

    async def update_status(self, record_id, status):
        return await self._patch(record_id, {"status": validate_status(status)})


class TestimonialService(ActiveToggleMixin, EntityService):
    __test__ = False

    collection = "testimonials"
    label = "Testimonial"
    draft_type = TestimonialDraft
    patch_type = TestimonialPatch

    async def list(self, only_active=False):
        if only_active:
            return await self._query(active=True)
        return await self._query()


class NewsletterService(EntityService):
    collection = "newsletter"
    label = "Subscription"
    ordering = "-subscribed_at"

    async def subscribe(self, email):
        email = normalize_email(email)
        try:
            created = await self.store.insert(self.collection, [{"email": email}])
        except StoreError as err:
            if err.code == errors.UNIQUE_VIOLATION:
                raise AlreadySubscribedError("This email is already subscribed") from err
            raise classify(err, self.label) from err
        return created[0]

    async def unsubscribe(self, email):
        email = normalize_email(email)
        try:
            deleted = await self.store.delete(self.collection, {"email": email})
        except StoreError as err:
            raise classify(err, self.label) from err
        if not deleted:
            raise NotFoundError(f"{email} is not subscribed")
        return True

    async def count(self):
        return len(await self._query())


class SettingsService:
    """Key/value site settings, always handed out as one flat mapping of text."""

    collection = "settings"

    def __init__(self, store):
        self.store = store

    @staticmethod
    def _row(key, value, type="text"):
        key = (str(key) if key is not None else "").strip()
        if not key:
            raise ValidationError("Setting key is required.", field="key")
        return {"key": key, "value": "" if value is None else str(value), "type": type or "text"}

    async def get_all(self):
        try:
            rows = await self.store.query(self.collection, {}, "key")
        except StoreError as err:
            raise classify(err, "Settings") from err
        return {row["key"]: row["value"] for row in rows}

    async def get(self, key):
        try:
            row = await self.store.get_single(self.collection, {"key": key})
        except StoreError as err:
            raise classify(err, f"Setting '{key}'") from err
        return row["value"]

    async def set(self, key, value, type="text"):
        try:
            rows = await self.store.upsert(self.collection, [self._row(key, value, type)])
        except StoreError as err:
            raise classify(err, "Settings") from err
        return rows[0]

    async def set_multiple(self, mapping):
        rows = [self._row(key, value) for key, value in mapping.items()]
        if not rows:
            return []
        try:
            return await self.store.upsert(self.collection, rows)
        except StoreError as err:
            raise classify(err, "Settings") from err


class StatsService:
    collection = "admin_stats"

    def __init__(self, store):
        self.store = store

    async def get_stats(self):
        try:
            return await self.store.get_single(self.collection, {})
        except StoreError as err:
            raise classify(err, "Stats") from err
