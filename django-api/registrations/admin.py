from django.contrib import admin

from registrations.models import ProcessedWebhook, Registration


@admin.register(Registration)
class RegistrationAdmin(admin.ModelAdmin):
    list_display = ["registration_number", "event", "modality", "participant", "status", "payment_status", "total"]
    list_filter = ["status", "payment_status", "event"]
    search_fields = ["participant__full_name", "participant__email", "payment_id", "order_reference"]
    readonly_fields = ["registration_number", "order_reference", "inventory_committed", "payment_id"]


@admin.register(ProcessedWebhook)
class ProcessedWebhookAdmin(admin.ModelAdmin):
    list_display = ["request_id", "payment_id", "created_at"]
    search_fields = ["request_id", "payment_id"]
