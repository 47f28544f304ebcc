"""
Remote store contract and the Django-backed reference adapter.

Services only ever talk to a ``RemoteStoreClient``; the adapter below maps
named collections onto Django models and binary objects onto Django file
storage. Every failure leaves here as ``StoreError`` with a machine-readable
code.
"""
import logging
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, FrozenSet

from asgiref.sync import sync_to_async
from django.core.exceptions import (
    FieldDoesNotExist,
    FieldError,
    SuspiciousFileOperation,
    ValidationError as DjangoValidationError,
)
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Sum

from . import errors, signals
from .errors import StoreError
from .models import Product, Category, Order, Testimonial, NewsletterSubscriber, Setting
from .utilities import row_from_instance

logger = logging.getLogger(__name__)

ALL_EVENTS = frozenset({"INSERT", "UPDATE", "DELETE"})


@dataclass
class Channel:
    id: str
    collection: str
    events: FrozenSet[str]
    handler: Callable
    closed: bool = False


class RemoteStoreClient(ABC):
    """Everything the entity services need from the remote store."""

    @abstractmethod
    async def query(self, collection, filters=None, order_by=None):
        """Rows matching ``filters`` (field -> value equality), ordered."""

    @abstractmethod
    async def get_single(self, collection, filters):
        """Exactly one row; ``StoreError(code=not_found)`` when none match."""

    @abstractmethod
    async def insert(self, collection, rows):
        """Insert ``rows`` and return them as stored."""

    @abstractmethod
    async def update(self, collection, filters, patch):
        """Apply ``patch`` to every matching row; returns the updated rows."""

    @abstractmethod
    async def delete(self, collection, filters):
        """Delete matching rows; returns how many were removed."""

    @abstractmethod
    async def upsert(self, collection, rows, on_conflict=None):
        """Insert-or-replace by ``on_conflict`` (defaults to the primary key)."""

    @abstractmethod
    async def upload_object(self, bucket, key, content):
        """Store ``content`` bytes under ``key``; returns the stored key."""

    @abstractmethod
    def get_public_url(self, bucket, key):
        pass

    @abstractmethod
    def public_url_prefix(self, bucket):
        """Prefix shared by every public URL of ``bucket``."""

    @abstractmethod
    async def delete_object(self, bucket, key):
        pass

    @abstractmethod
    def subscribe(self, collection, events, handler):
        """Open a push channel; ``handler(ChangeEvent)`` runs on every change."""

    @abstractmethod
    def close_channel(self, channel):
        pass


def _admin_stats():
    revenue = (
        Order.objects.exclude(status="cancelled").aggregate(total=Sum("total"))["total"]
        or Decimal("0.00")
    )
    return {
        "total_products": Product.objects.count(),
        "total_orders": Order.objects.count(),
        "total_subscribers": NewsletterSubscriber.objects.count(),
        "total_revenue": revenue,
    }


DEFAULT_COLLECTIONS = {
    "products": Product,
    "categories": Category,
    "orders": Order,
    "testimonials": Testimonial,
    "newsletter": NewsletterSubscriber,
    "settings": Setting,
}

DEFAULT_VIEWS = {
    "admin_stats": _admin_stats,
}


def _is_unique_violation(exc):
    cause = exc.__cause__
    if getattr(cause, "pgcode", None) == "23505" or getattr(cause, "sqlstate", None) == "23505":
        return True
    msg = str(exc).lower()
    return "unique" in msg or "duplicate" in msg


@contextmanager
def _translated(collection):
    try:
        yield
    except StoreError:
        raise
    except IntegrityError as e:
        if _is_unique_violation(e):
            raise StoreError(f"{collection}: {e}", errors.UNIQUE_VIOLATION) from e
        raise StoreError(f"{collection}: {e}", errors.INVALID_INPUT) from e
    except (FieldError, FieldDoesNotExist) as e:
        raise StoreError(f"{collection}: {e}", errors.UNKNOWN_FIELD) from e
    except DjangoValidationError as e:
        raise StoreError(f"{collection}: {'; '.join(e.messages)}", errors.INVALID_INPUT) from e
    except (ValueError, TypeError, ArithmeticError) as e:
        # OverflowError, decimal.InvalidOperation: a value the column cannot hold
        raise StoreError(f"{collection}: {e}", errors.INVALID_INPUT) from e
    except DatabaseError as e:
        raise StoreError(f"{collection}: {e}", errors.UNKNOWN) from e


def _event_mask(events):
    if events is None or events == "*":
        return ALL_EVENTS
    if isinstance(events, str):
        events = [events]
    mask = frozenset(e.upper() for e in events)
    if not mask or not mask <= ALL_EVENTS:
        raise StoreError(f"Unsupported event mask: {sorted(mask)}", errors.INVALID_INPUT)
    return mask


class DjangoStoreClient(RemoteStoreClient):
    """
    Reference adapter over the Django ORM and file storage.

    - each collection name maps to a model whose ``db_table`` matches it
    - ``views`` are read-only aggregates (``admin_stats``)
    - every write runs inside its own savepoint so a failed insert never
      poisons an outer transaction
    - push channels ride on post_save/post_delete
    """

    def __init__(self, storage=None, collections=None, views=None):
        self._storage = storage
        self.collections = dict(collections or DEFAULT_COLLECTIONS)
        self.views = dict(views or DEFAULT_VIEWS)
        self._channels = {}

    @property
    def storage(self):
        return self._storage or default_storage

    # -----------------------
    # Helpers
    # -----------------------
    def _model(self, collection):
        try:
            return self.collections[collection]
        except KeyError:
            raise StoreError(f"Unknown collection '{collection}'", errors.UNKNOWN_COLLECTION) from None

    def _writable(self, collection):
        if collection in self.views:
            raise StoreError(f"'{collection}' is read-only", errors.READ_ONLY)
        return self._model(collection)

    @staticmethod
    def _check_fields(model, row):
        known = set()
        for f in model._meta.concrete_fields:
            known.add(f.name)
            known.add(f.attname)
        unknown = sorted(set(row) - known)
        if unknown:
            raise StoreError(
                f"{model._meta.db_table}: unknown field(s) {', '.join(unknown)}",
                errors.UNKNOWN_FIELD,
            )

    @staticmethod
    def _filtered(model, filters):
        return model.objects.filter(**(filters or {}))

    # -----------------------
    # Rows
    # -----------------------
    async def query(self, collection, filters=None, order_by=None):
        return await sync_to_async(self._query)(collection, filters, order_by)

    def _query(self, collection, filters, order_by):
        view = self.views.get(collection)
        if view is not None:
            return [view()]
        model = self._model(collection)
        with _translated(collection):
            qs = self._filtered(model, filters)
            if order_by:
                ordering = [order_by] if isinstance(order_by, str) else list(order_by)
                qs = qs.order_by(*ordering, "pk")
            return [row_from_instance(o) for o in qs]

    async def get_single(self, collection, filters):
        return await sync_to_async(self._get_single)(collection, filters)

    def _get_single(self, collection, filters):
        rows = self._query(collection, filters, None)
        if not rows:
            raise StoreError(f"No '{collection}' row matches {filters}", errors.NOT_FOUND)
        if len(rows) > 1:
            raise StoreError(f"{len(rows)} '{collection}' rows match {filters}", errors.MULTIPLE_ROWS)
        return rows[0]

    async def insert(self, collection, rows):
        return await sync_to_async(self._insert)(collection, rows)

    def _insert(self, collection, rows):
        model = self._writable(collection)
        created = []
        with _translated(collection), transaction.atomic():
            for row in rows:
                self._check_fields(model, row)
                obj = model(**row)
                obj.save(force_insert=True)
                obj.refresh_from_db()
                created.append(obj)
        return [row_from_instance(o) for o in created]

    async def update(self, collection, filters, patch):
        return await sync_to_async(self._update)(collection, filters, patch)

    def _update(self, collection, filters, patch):
        model = self._writable(collection)
        self._check_fields(model, patch)
        if model._meta.pk.name in patch:
            raise StoreError(f"{collection}: primary key cannot be changed", errors.INVALID_INPUT)
        updated = []
        with _translated(collection), transaction.atomic():
            for obj in self._filtered(model, filters):
                for name, value in patch.items():
                    setattr(obj, name, value)
                # only the patched columns are written
                obj.save(update_fields=list(patch))
                obj.refresh_from_db()
                updated.append(obj)
        return [row_from_instance(o) for o in updated]

    async def delete(self, collection, filters):
        return await sync_to_async(self._delete)(collection, filters)

    def _delete(self, collection, filters):
        model = self._writable(collection)
        with _translated(collection), transaction.atomic():
            doomed = list(self._filtered(model, filters))
            for obj in doomed:
                obj.delete()
        return len(doomed)

    async def upsert(self, collection, rows, on_conflict=None):
        return await sync_to_async(self._upsert)(collection, rows, on_conflict)

    def _upsert(self, collection, rows, on_conflict):
        model = self._writable(collection)
        key = on_conflict or model._meta.pk.name
        saved = []
        with _translated(collection), transaction.atomic():
            for row in rows:
                self._check_fields(model, row)
                if key not in row:
                    raise StoreError(f"{collection}: upsert row is missing '{key}'", errors.INVALID_INPUT)
                defaults = {k: v for k, v in row.items() if k != key}
                obj, _created = model.objects.update_or_create(**{key: row[key]}, defaults=defaults)
                saved.append(obj)
        return [row_from_instance(o) for o in saved]

    # -----------------------
    # Objects
    # -----------------------
    async def upload_object(self, bucket, key, content):
        return await sync_to_async(self._upload_object)(bucket, key, content)

    def _upload_object(self, bucket, key, content):
        try:
            stored = self.storage.save(f"{bucket}/{key}", ContentFile(content))
        except (OSError, SuspiciousFileOperation) as e:
            raise StoreError(f"Upload of '{key}' failed: {e}", errors.STORAGE_ERROR) from e
        return stored[len(bucket) + 1:]

    def get_public_url(self, bucket, key):
        return self.storage.url(f"{bucket}/{key}")

    def public_url_prefix(self, bucket):
        return self.storage.url(bucket).rstrip("/") + "/"

    async def delete_object(self, bucket, key):
        await sync_to_async(self._delete_object)(bucket, key)

    def _delete_object(self, bucket, key):
        try:
            self.storage.delete(f"{bucket}/{key}")
        except (OSError, SuspiciousFileOperation) as e:
            raise StoreError(f"Delete of '{key}' failed: {e}", errors.STORAGE_ERROR) from e

    # -----------------------
    # Push channels
    # -----------------------
    def subscribe(self, collection, events, handler):
        model = self._model(collection)
        channel = Channel(
            id=f"{collection}-{uuid.uuid4().hex[:12]}",
            collection=collection,
            events=_event_mask(events),
            handler=handler,
        )
        signals.connect_channel(channel, model)
        self._channels[channel.id] = channel
        logger.debug("Opened push channel %s", channel.id)
        return channel

    def close_channel(self, channel):
        if channel.closed:
            return
        signals.disconnect_channel(channel, self._model(channel.collection))
        channel.closed = True
        self._channels.pop(channel.id, None)
        logger.debug("Closed push channel %s", channel.id)

    @property
    def open_channels(self):
        return list(self._channels.values())

    def close(self):
        for channel in list(self._channels.values()):
            self.close_channel(channel)
