import asyncio
import logging

from .errors import BackofficeError
from .outcome import Outcome, failed

logger = logging.getLogger(__name__)


class DashboardController:
    def __init__(self, stats, orders, recent_count=5):
        self.stats_service = stats
        self.order_service = orders
        self.recent_count = recent_count
        self.stats = {}
        self.recent_orders = []

    async def load(self):
        try:
            stats, orders = await asyncio.gather(
                self.stats_service.get_stats(),
                self.order_service.list(),
            )
        except BackofficeError as err:
            return failed(logger, "Could not load dashboard", err)
        self.stats = stats
        self.recent_orders = orders[:self.recent_count]
        return Outcome.success("Dashboard loaded")
