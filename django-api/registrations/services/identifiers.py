"""Identifier parsing shared by the services."""

from typing import TypeVar

from registrations.domain import OrganizationId
from registrations.domain.errors import InvalidIdentifierError

IdT = TypeVar("IdT")


def parse_id(id_cls: type[IdT], value: str, kind: str) -> IdT:
    """Parse ``value`` into ``id_cls``.

    Raises:
        InvalidIdentifierError: If the value is not a valid UUID.
    """
    try:
        return id_cls.from_string(str(value))
    except (TypeError, ValueError, AttributeError):
        raise InvalidIdentifierError(kind) from None


def parse_organization_id(value: str) -> OrganizationId:
    return parse_id(OrganizationId, value, "organization")
