"""Service settings with defaults, overridable via ``settings.REGISTRATIONS``."""

from typing import Any

from django.conf import settings

DEFAULTS: dict[str, Any] = {
    "DEFAULT_CURRENCY": "ARS",
    # Partial refunds smaller than this are rejected; 0 disables the check.
    "MINIMUM_REFUND_AMOUNT": 0,
    "AVAILABILITY_CACHE_TIMEOUT": 30,
    "DEFAULT_PAGE_SIZE": 50,
    "MAX_PAGE_SIZE": 100,
}


def get_setting(name: str) -> Any:
    overrides = getattr(settings, "REGISTRATIONS", {})
    if name in overrides:
        return overrides[name]
    return DEFAULTS[name]
