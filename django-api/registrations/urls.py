from django.urls import path

from registrations.handlers import (
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

urlpatterns = [
    path(
        "events/<str:event_id>/availability",
        EventAvailabilityView.as_view(),
        name="event-availability",
    ),
    path(
        "events/<str:event_id>/price-quote",
        PriceQuoteView.as_view(),
        name="event-price-quote",
    ),
    path(
        "events/<str:event_id>/pricing-tiers",
        PricingTierListView.as_view(),
        name="pricing-tier-list",
    ),
    path(
        "pricing-tiers/<str:tier_id>",
        PricingTierDetailView.as_view(),
        name="pricing-tier-detail",
    ),
    path(
        "pricing-tiers/<str:tier_id>/deactivate",
        PricingTierDeactivateView.as_view(),
        name="pricing-tier-deactivate",
    ),
    path(
        "events/<str:event_id>/registrations",
        RegistrationListView.as_view(),
        name="registration-list",
    ),
    path(
        "registrations/<str:registration_id>",
        RegistrationDetailView.as_view(),
        name="registration-detail",
    ),
    path(
        "registrations/<str:registration_id>/cancel",
        RegistrationCancelView.as_view(),
        name="registration-cancel",
    ),
    path(
        "registrations/<str:registration_id>/payments",
        PaymentListView.as_view(),
        name="payment-list",
    ),
    path(
        "payments/<str:payment_id>/refunds",
        RefundView.as_view(),
        name="payment-refund",
    ),
]
