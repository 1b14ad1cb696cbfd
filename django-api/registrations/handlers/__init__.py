from registrations.handlers.views import (
    EventAvailabilityView,
    PaymentListView,
    PriceQuoteView,
    PricingTierDeactivateView,
    PricingTierDetailView,
    PricingTierListView,
    RefundView,
    RegistrationCancelView,
    RegistrationDetailView,
    RegistrationListView,
)

__all__ = [
    "EventAvailabilityView",
    "PaymentListView",
    "PriceQuoteView",
    "PricingTierDeactivateView",
    "PricingTierDetailView",
    "PricingTierListView",
    "RefundView",
    "RegistrationCancelView",
    "RegistrationDetailView",
    "RegistrationListView",
]
