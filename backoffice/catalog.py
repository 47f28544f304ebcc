"""
Catalog management session: product/category cache, search, and the
create/edit working draft with its image uploads.
"""
import asyncio
import logging

from .errors import AssetError, BackofficeError
from .outcome import Outcome, failed
from .records import ProductDraft, ProductPatch
from .utilities import derive_slug

logger = logging.getLogger(__name__)


def _copy_row(row):
    return {k: list(v) if isinstance(v, list) else v for k, v in row.items()}


class CatalogController:
    def __init__(self, products, categories, assets):
        self.product_service = products
        self.category_service = categories
        self.assets = assets

        self.products = []
        self.categories = []
        self.search_term = ""

        self.draft = None
        self.editing = None  # id of the product behind the draft
        self.slug_touched = False
        self.uploading = False
        self.busy = False

        self.subscriptions = []

    # -----------------------
    # Cache
    # -----------------------
    async def load(self):
        try:
            products, categories = await asyncio.gather(
                self.product_service.list(),
                self.category_service.list(),
            )
        except BackofficeError as err:
            return failed(logger, "Could not load products", err)
        self.products = products
        self.categories = categories
        return Outcome.success(f"Loaded {len(products)} products")

    @property
    def filtered_products(self):
        term = (self.search_term or "").lower()
        if not term:
            return list(self.products)
        return [
            p for p in self.products
            if term in (p.get("name") or "").lower()
            or term in (p.get("category_name") or "").lower()
        ]

    def find(self, product_id):
        return next((p for p in self.products if p["id"] == product_id), None)

    # -----------------------
    # Working draft
    # -----------------------
    def start_create(self):
        self.draft = ProductDraft()
        self.editing = None
        self.slug_touched = False
        return self.draft

    def start_edit(self, product):
        self.draft = ProductDraft.from_row(_copy_row(product))
        self.editing = product["id"]
        self.slug_touched = True
        return self.draft

    def cancel(self):
        self.draft = None
        self.editing = None
        self.slug_touched = False

    def set_name(self, name):
        self.draft.name = name
        if self.editing is None and not self.slug_touched:
            self.draft.slug = derive_slug(name)

    def set_slug(self, slug):
        self.draft.slug = slug
        self.slug_touched = True

    def update_draft(self, **changes):
        for name, value in changes.items():
            if name == "name":
                self.set_name(value)
            elif name == "slug":
                self.set_slug(value)
            elif name in ProductDraft.__dataclass_fields__:
                setattr(self.draft, name, value)
            else:
                raise TypeError(f"ProductDraft has no field '{name}'")

    async def upload_images(self, files):
        if self.draft is None:
            return Outcome.refused("Open a product before uploading images")
        self.uploading = True
        try:
            urls = await self.assets.upload_many(files, folder="products")
        except AssetError as err:
            # keep whatever made it before the failure
            self.draft.images.extend(getattr(err, "uploaded", []))
            return failed(logger, "Could not upload image", err)
        finally:
            self.uploading = False
        self.draft.images.extend(urls)
        return Outcome.success(f"{len(urls)} image(s) uploaded")

    def remove_image(self, url):
        self.draft.images = [u for u in self.draft.images if u != url]

    async def submit(self):
        if self.draft is None:
            return Outcome.refused("Nothing to save")
        if self.uploading:
            return Outcome.refused("Wait for the image upload to finish")
        if not (self.draft.slug or "").strip():
            return Outcome.refused("Product slug is required")
        if self.busy:
            return Outcome.refused("Another change is still in progress")

        self.busy = True
        try:
            if self.editing is None:
                await self.product_service.create(self.draft)
                message = "Product created"
            else:
                await self.product_service.update(self.editing, ProductPatch.from_draft(self.draft))
                message = "Product updated"
        except BackofficeError as err:
            return failed(logger, "Could not save product", err)
        finally:
            self.busy = False

        self.cancel()
        await self.load()
        return Outcome.success(message)

    # -----------------------
    # Row actions
    # -----------------------
    async def delete_product(self, product_id, purge_images=False):
        if self.busy:
            return Outcome.refused("Another change is still in progress")
        self.busy = True
        try:
            product = self.find(product_id)
            if purge_images and product is None:
                product = await self.product_service.get_by_id(product_id)
            await self.product_service.delete(product_id)
        except BackofficeError as err:
            return failed(logger, "Could not delete product", err)
        finally:
            self.busy = False

        message = "Product deleted"
        if purge_images and product:
            leftovers = await self.assets.delete_many(product.get("images"))
            if leftovers:
                message = f"Product deleted; {len(leftovers)} image(s) could not be removed"

        await self.load()
        return Outcome.success(message)

    async def toggle_active(self, product_id, active):
        if self.busy:
            return Outcome.refused("Another change is still in progress")
        self.busy = True
        try:
            await self.product_service.toggle_active(product_id, active)
        except BackofficeError as err:
            return failed(logger, "Could not update product", err)
        finally:
            self.busy = False
        await self.load()
        return Outcome.success("Product activated" if active else "Product deactivated")

    # -----------------------
    # Push
    # -----------------------
    async def _on_change(self, event):
        logger.debug("%s %s, reloading catalog", event.collection, event.event_type)
        await self.load()

    async def watch(self, bridge):
        self.subscriptions = [
            await bridge.subscribe("products", self._on_change),
            await bridge.subscribe("categories", self._on_change),
        ]
        return self.subscriptions

    async def unwatch(self, bridge):
        for subscription in self.subscriptions:
            await bridge.unsubscribe(subscription)
        self.subscriptions = []
