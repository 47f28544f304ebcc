import logging

from django.apps import apps

from .assets import AssetManager
from .catalog import CatalogController
from .dashboard import DashboardController
from .orders import OrderController
from .realtime import RealtimeBridge
from .services import (
    CategoryService,
    NewsletterService,
    OrderService,
    ProductService,
    SettingsService,
    StatsService,
    TestimonialService,
)

logger = logging.getLogger(__name__)


class Backoffice:
    """
    Explicit wiring of one store client into every service.

    Built once by ``BackofficeConfig.ready``; tests may build their own over
    a different client.
    """

    def __init__(self, store, bucket="images"):
        self.store = store
        self.products = ProductService(store)
        self.categories = CategoryService(store)
        self.orders = OrderService(store)
        self.testimonials = TestimonialService(store)
        self.newsletter = NewsletterService(store)
        self.settings = SettingsService(store)
        self.stats = StatsService(store)
        self.assets = AssetManager(store, bucket=bucket)
        self.realtime = RealtimeBridge(store)

    def catalog(self):
        return CatalogController(self.products, self.categories, self.assets)

    def order_desk(self):
        return OrderController(self.orders)

    def dashboard(self):
        return DashboardController(self.stats, self.orders)

    async def close(self):
        await self.realtime.close()
        self.store.close()
        logger.debug("Backoffice closed")


def get_backoffice():
    return apps.get_app_config("backoffice").backoffice
