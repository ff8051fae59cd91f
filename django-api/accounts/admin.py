from django.contrib import admin

from accounts.models import Organizer, Participant


@admin.register(Organizer)
class OrganizerAdmin(admin.ModelAdmin):
    list_display = ["email", "full_name", "mp_connected", "created_at"]
    search_fields = ["email", "full_name"]
    exclude = ["password", "mp_access_token", "mp_refresh_token"]


@admin.register(Participant)
class ParticipantAdmin(admin.ModelAdmin):
    list_display = ["full_name", "email", "created_at"]
    search_fields = ["email", "full_name"]
    exclude = ["password"]
