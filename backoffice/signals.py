import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
from django.utils import timezone

from .models import Product, Category, Order, Testimonial, NewsletterSubscriber, Setting
from .utilities import row_from_instance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChangeEvent:
    collection: str
    event_type: str  # INSERT | UPDATE | DELETE
    new: Optional[dict]
    old: Optional[dict]
    commit_timestamp: datetime


def _deliver(channel, event):
    if channel.closed or event.event_type not in channel.events:
        return
    try:
        channel.handler(event)
    except Exception:
        # a broken subscriber must not fail the write that triggered it
        logger.exception("Push handler on channel %s failed", channel.id)


def connect_channel(channel, model):
    """Route post_save/post_delete for ``model`` into ``channel.handler``."""

    def on_save(sender, instance, created, **kwargs):
        event_type = "INSERT" if created else "UPDATE"
        _deliver(channel, ChangeEvent(
            collection=channel.collection,
            event_type=event_type,
            new=row_from_instance(instance),
            old=None,
            commit_timestamp=timezone.now(),
        ))

    def on_delete(sender, instance, **kwargs):
        _deliver(channel, ChangeEvent(
            collection=channel.collection,
            event_type="DELETE",
            new=None,
            old=row_from_instance(instance),
            commit_timestamp=timezone.now(),
        ))

    post_save.connect(on_save, sender=model, weak=False, dispatch_uid=f"{channel.id}:save")
    post_delete.connect(on_delete, sender=model, weak=False, dispatch_uid=f"{channel.id}:delete")


def disconnect_channel(channel, model):
    post_save.disconnect(sender=model, dispatch_uid=f"{channel.id}:save")
    post_delete.disconnect(sender=model, dispatch_uid=f"{channel.id}:delete")


# ==== AUDIT LOG ====
@receiver(post_save, sender=Product)
@receiver(post_save, sender=Category)
@receiver(post_save, sender=Testimonial)
def log_catalog_saved(sender, instance, created, **kwargs):
    action = "created" if created else "updated"
    logger.info("%s '%s' was %s.", sender.__name__, instance, action)


@receiver(post_delete, sender=Product)
@receiver(post_delete, sender=Category)
@receiver(post_delete, sender=Testimonial)
@receiver(post_delete, sender=Order)
def log_record_deleted(sender, instance, **kwargs):
    logger.info("%s '%s' was deleted.", sender.__name__, instance)


@receiver(post_save, sender=Order)
def log_order_saved(sender, instance, created, update_fields=None, **kwargs):
    if created:
        logger.info("Order %s placed by %s.", instance.pk, instance.customer_email)
    elif update_fields and "status" in update_fields:
        logger.info("Order %s moved to '%s'.", instance.pk, instance.status)


@receiver(post_save, sender=NewsletterSubscriber)
def log_subscription(sender, instance, created, **kwargs):
    if created:
        logger.info("Newsletter subscription added for %s.", instance.email)


@receiver(post_save, sender=Setting)
def log_setting_saved(sender, instance, **kwargs):
    logger.info("Site setting '%s' was updated.", instance.key)
