from django.contrib import admin

from registrations.models import Event, Payment, PricingTier, Registration


class PricingTierInline(admin.TabularInline):
    model = PricingTier
    extra = 1


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    can_delete = False
    readonly_fields = ["amount", "currency", "status", "refunded_amount", "refunded_at"]

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ["name", "max_capacity", "waitlist_enabled", "pricing_enabled", "created_at"]
    search_fields = ["name"]
    list_filter = ["waitlist_enabled", "pricing_enabled"]
    inlines = [PricingTierInline]


@admin.register(Registration)
class RegistrationAdmin(admin.ModelAdmin):
    list_display = [
        "registration_number",
        "registrant_name",
        "event",
        "status",
        "waitlist_position",
        "price",
        "paid_amount",
        "payment_status",
    ]
    list_filter = ["status", "payment_status", "event"]
    search_fields = ["registrant_name", "registrant_email"]
    # Registrations are created, moved and settled only through the services.
    readonly_fields = [
        "event",
        "registration_number",
        "registrant_email",
        "status",
        "waitlist_position",
        "price",
        "paid_amount",
        "payment_status",
    ]
    inlines = [PaymentInline]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ["registration", "amount", "currency", "method", "status", "payment_date"]
    list_filter = ["status", "method"]
    readonly_fields = [
        "registration",
        "amount",
        "currency",
        "status",
        "refunded_amount",
        "refunded_at",
    ]

    def has_add_permission(self, request):
        return False
