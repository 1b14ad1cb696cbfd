"""Notification collaborator for registration lifecycle changes.

Notifications are fire-and-forget: they are dispatched only after the
transaction commits, and a failing receiver is logged without affecting the
state change that triggered it.
"""

import logging
from abc import ABC, abstractmethod
from functools import partial

from django.db import transaction
from django.dispatch import Signal

from registrations import signals
from registrations.domain import Registration

logger = logging.getLogger(__name__)


class RegistrationNotifier(ABC):
    @abstractmethod
    def registration_created(self, registration: Registration) -> None: ...

    @abstractmethod
    def registration_cancelled(self, registration: Registration) -> None: ...

    @abstractmethod
    def registration_promoted(self, registration: Registration) -> None: ...


def _dispatch(signal: Signal, registration: Registration) -> None:
    responses = signal.send_robust(sender=RegistrationNotifier, registration=registration)
    for receiver, response in responses:
        if isinstance(response, Exception):
            logger.error(
                "Notification receiver %r failed for registration %s",
                receiver,
                registration.id.value,
                exc_info=response,
            )


class SignalNotifier(RegistrationNotifier):
    """Sends Django signals once the surrounding transaction commits."""

    def _send_on_commit(self, signal: Signal, registration: Registration) -> None:
        transaction.on_commit(partial(_dispatch, signal, registration))

    def registration_created(self, registration: Registration) -> None:
        self._send_on_commit(signals.registration_created, registration)

    def registration_cancelled(self, registration: Registration) -> None:
        self._send_on_commit(signals.registration_cancelled, registration)

    def registration_promoted(self, registration: Registration) -> None:
        self._send_on_commit(signals.registration_promoted, registration)
