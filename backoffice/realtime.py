"""
Realtime bridge: push channel -> asyncio queue -> caller's handler.

Store push handlers may fire on whichever thread performed the write, so
events are handed to the subscriber's loop with ``call_soon_threadsafe`` and
drained one at a time. Handler invocations are reload hints, not
authoritative deltas; nothing orders them against a local mutation's own
success response.
"""
import asyncio
import inspect
import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class Subscription:
    collection: str
    channel: object
    queue: asyncio.Queue
    task: asyncio.Task = None
    delivered: int = field(default=0)

    @property
    def active(self):
        return self.task is not None and not self.task.done()


class RealtimeBridge:
    def __init__(self, store):
        self.store = store
        self._subscriptions = []

    async def subscribe(self, collection, handler, events="*"):
        loop = asyncio.get_running_loop()
        queue = asyncio.Queue()

        def push(event):
            if not loop.is_closed():
                loop.call_soon_threadsafe(queue.put_nowait, event)

        channel = self.store.subscribe(collection, events, push)
        subscription = Subscription(collection=collection, channel=channel, queue=queue)
        subscription.task = loop.create_task(self._pump(subscription, handler))
        self._subscriptions.append(subscription)
        logger.info("Subscribed to %s changes", collection)
        return subscription

    async def _pump(self, subscription, handler):
        while True:
            event = await subscription.queue.get()
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Realtime handler for %s failed", subscription.collection)
            finally:
                subscription.delivered += 1
                subscription.queue.task_done()

    async def unsubscribe(self, subscription):
        self.store.close_channel(subscription.channel)
        if subscription.task is not None and not subscription.task.done():
            subscription.task.cancel()
            try:
                await subscription.task
            except asyncio.CancelledError:
                pass
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
        logger.info("Unsubscribed from %s changes", subscription.collection)

    async def close(self):
        for subscription in list(self._subscriptions):
            await self.unsubscribe(subscription)

    @property
    def subscriptions(self):
        return list(self._subscriptions)
