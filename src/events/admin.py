"""Admin classes for events and admission records.

Counters and check-in tokens are read-only here: they are owned by the admission engine.
"""

from django.contrib import admin
from django.http import HttpRequest

from events import models


class RegistrationInline(admin.TabularInline):  # type: ignore[type-arg]
    model = models.Registration
    extra = 0
    fields = ["user", "status", "registered_at", "promoted_at", "cancelled_at"]
    readonly_fields = fields
    can_delete = False
    show_change_link = True


@admin.register(models.Event)
class EventAdmin(admin.ModelAdmin):  # type: ignore[type-arg]
    list_display = [
        "title",
        "start_at",
        "end_at",
        "max_attendees",
        "current_attendees",
        "registration_required",
        "is_active",
    ]
    list_filter = ["is_active", "registration_required", "start_at"]
    search_fields = ["title", "location"]
    date_hierarchy = "start_at"
    inlines = [RegistrationInline]

    @admin.display(description="Attendees")
    def current_attendees(self, obj: models.Event) -> int:
        """Show the ledger count."""
        ledger = models.AdmissionLedger.objects.filter(event=obj).first()
        return ledger.current_attendees if ledger else 0


@admin.register(models.Registration)
class RegistrationAdmin(admin.ModelAdmin):  # type: ignore[type-arg]
    list_display = ["user", "event", "status", "registered_at", "promoted_at", "cancelled_at"]
    list_filter = ["status"]
    search_fields = ["user__username", "user__email", "event__title"]
    readonly_fields = ["event", "user", "status", "registered_at", "promoted_at", "cancelled_at"]


@admin.register(models.AttendanceRecord)
class AttendanceRecordAdmin(admin.ModelAdmin):  # type: ignore[type-arg]
    list_display = ["user", "event", "status", "check_in_at", "check_out_at", "checked_in_by"]
    list_filter = ["status"]
    search_fields = ["user__username", "user__email", "event__title"]
    readonly_fields = ["event", "user", "registration", "status", "check_in_at", "check_out_at", "checked_in_by"]


@admin.register(models.CheckinToken)
class CheckinTokenAdmin(admin.ModelAdmin):  # type: ignore[type-arg]
    list_display = ["event", "issued_at", "expires_at", "revoked", "is_current", "issued_by"]
    list_filter = ["revoked", "is_current"]
    exclude = ["id"]
    readonly_fields = ["event", "issued_at", "expires_at", "revoked", "revoked_at", "is_current", "issued_by"]

    def has_add_permission(self, request: HttpRequest) -> bool:
        """Tokens are issued through the API only."""
        return False


@admin.register(models.AdmissionLedger)
class AdmissionLedgerAdmin(admin.ModelAdmin):  # type: ignore[type-arg]
    list_display = ["event", "current_attendees", "updated_at"]
    readonly_fields = ["event", "current_attendees", "updated_at"]

    def has_add_permission(self, request: HttpRequest) -> bool:
        """Ledgers are created with their event."""
        return False
