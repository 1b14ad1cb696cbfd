from registrations.services.payment_service import PaymentLedger, PaymentResult
from registrations.services.pricing_service import PriceQuote, PricingService, TierInput
from registrations.services.refund_service import RefundProcessor, RefundResult
from registrations.services.registration_service import CancellationResult, RegistrationService
from registrations.services.waitlist_service import WaitlistService

__all__ = [
    "CancellationResult",
    "PaymentLedger",
    "PaymentResult",
    "PriceQuote",
    "PricingService",
    "RefundProcessor",
    "RefundResult",
    "RegistrationService",
    "TierInput",
    "WaitlistService",
]
