from registrations.domain.models import (
    Event,
    EventAvailability,
    NewPayment,
    NewPricingTier,
    NewRegistration,
    Payment,
    PricingTier,
    Registrant,
    Registration,
    ResolvedPrice,
)
from registrations.domain.value_objects import (
    Audience,
    Capacity,
    EventId,
    Money,
    OrganizationId,
    PaymentId,
    PaymentMethod,
    PaymentStatus,
    PricingTierId,
    RegistrationId,
    RegistrationPaymentStatus,
    RegistrationStatus,
)

__all__ = [
    "Event",
    "EventAvailability",
    "NewPayment",
    "NewPricingTier",
    "NewRegistration",
    "Payment",
    "PricingTier",
    "Registrant",
    "Registration",
    "ResolvedPrice",
    "Audience",
    "Capacity",
    "EventId",
    "Money",
    "OrganizationId",
    "PaymentId",
    "PaymentMethod",
    "PaymentStatus",
    "PricingTierId",
    "RegistrationId",
    "RegistrationPaymentStatus",
    "RegistrationStatus",
]
