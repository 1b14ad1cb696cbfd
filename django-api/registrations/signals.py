"""Registration lifecycle signals and cache invalidation.

``registration_created``, ``registration_cancelled`` and
``registration_promoted`` are sent after commit with ``registration`` (a
domain Registration) as keyword argument. Receivers belong to the wider
platform (email, push, audit) and must not assume they can veto anything.
"""

from functools import partial

from django.core.cache import cache
from django.db import transaction
from django.db.models.signals import post_delete, post_save
from django.dispatch import Signal, receiver

from registrations.models import Event, Registration

registration_created = Signal()
registration_cancelled = Signal()
registration_promoted = Signal()


def availability_cache_key(event_id) -> str:
    return f"registrations:events:{event_id}:availability"


def invalidate_availability_on_commit(event_id) -> None:
    """Drop the cached availability once the surrounding transaction commits.

    A reader running before the commit still sees the old counts and may
    cache them again, so deleting inside the transaction is not enough.
    """
    transaction.on_commit(partial(cache.delete, availability_cache_key(event_id)))


@receiver([post_save, post_delete], sender=Event)
def invalidate_event_availability(sender, instance, **kwargs):
    """Invalidate availability when capacity settings change."""
    invalidate_availability_on_commit(instance.pk)


@receiver(post_save, sender=Registration)
def invalidate_registration_availability(sender, instance, **kwargs):
    """Invalidate availability whenever a registration is written."""
    invalidate_availability_on_commit(instance.event_id)
