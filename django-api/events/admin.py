from django.contrib import admin

from events.models import Batch, Coupon, Event, Kit, KitSize, Modality


class ModalityInline(admin.TabularInline):
    model = Modality
    extra = 1
    readonly_fields = ["sold_slots"]


class BatchInline(admin.TabularInline):
    model = Batch
    extra = 0
    readonly_fields = ["current_sales"]


class KitSizeInline(admin.TabularInline):
    model = KitSize
    extra = 0


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ["name", "slug", "status", "event_date", "created_at"]
    list_filter = ["status"]
    search_fields = ["name", "slug"]
    inlines = [ModalityInline, BatchInline]


@admin.register(Coupon)
class CouponAdmin(admin.ModelAdmin):
    list_display = ["code", "event", "discount_type", "discount_value", "current_uses", "max_uses", "active"]
    list_filter = ["event", "active"]
    readonly_fields = ["current_uses"]


@admin.register(Kit)
class KitAdmin(admin.ModelAdmin):
    list_display = ["event", "include_shirt", "shirt_required"]
    inlines = [KitSizeInline]
