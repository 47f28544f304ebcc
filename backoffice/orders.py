import logging

from .errors import BackofficeError
from .models import ORDER_STATUSES
from .outcome import Outcome, failed

logger = logging.getLogger(__name__)


class OrderController:
    """Order desk: cached orders, status/text filters, status transitions."""

    def __init__(self, orders):
        self.order_service = orders
        self.orders = []
        self.status_filter = "all"
        self.search_term = ""
        self.busy = False
        self.subscriptions = []

    async def load(self):
        try:
            orders = await self.order_service.list()
        except BackofficeError as err:
            return failed(logger, "Could not load orders", err)
        self.orders = orders
        return Outcome.success(f"Loaded {len(orders)} orders")

    @property
    def filtered_orders(self):
        term = (self.search_term or "").lower()
        result = []
        for order in self.orders:
            if self.status_filter != "all" and order.get("status") != self.status_filter:
                continue
            if term and not (
                term in (order.get("customer_name") or "").lower()
                or term in (order.get("customer_email") or "").lower()
            ):
                continue
            result.append(order)
        return result

    @property
    def status_counts(self):
        counts = {"all": len(self.orders)}
        for status in ORDER_STATUSES:
            counts[status] = sum(1 for o in self.orders if o.get("status") == status)
        return counts

    def recent(self, n=5):
        return list(self.orders[:n])

    async def change_status(self, order_id, status):
        if self.busy:
            return Outcome.refused("Another change is still in progress")
        self.busy = True
        try:
            await self.order_service.update_status(order_id, status)
        except BackofficeError as err:
            return failed(logger, "Could not update order status", err)
        finally:
            self.busy = False
        await self.load()
        return Outcome.success(f"Order marked {status}")

    async def delete_order(self, order_id):
        if self.busy:
            return Outcome.refused("Another change is still in progress")
        self.busy = True
        try:
            await self.order_service.delete(order_id)
        except BackofficeError as err:
            return failed(logger, "Could not delete order", err)
        finally:
            self.busy = False
        await self.load()
        return Outcome.success("Order deleted")

    async def _on_change(self, event):
        logger.debug("orders %s, reloading", event.event_type)
        await self.load()

    async def watch(self, bridge):
        self.subscriptions = [await bridge.subscribe("orders", self._on_change)]
        return self.subscriptions

    async def unwatch(self, bridge):
        for subscription in self.subscriptions:
            await bridge.unsubscribe(subscription)
        self.subscriptions = []
