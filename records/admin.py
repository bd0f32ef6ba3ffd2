from django.contrib import admin
from .forms import PatientForm
from .models import ActivityLog, Appointment, Patient

@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    # same validation as the dashboard: IC format, duplicate IC, phone
    form = PatientForm

    # table columns; the IC is never listed in the clear
    list_display = ("id", "name", "masked_ic", "phone", "created_at")
    list_display_links = ("id", "name")

    # top search bar (encrypted columns are not searchable)
    search_fields = ("name", "phone")

    list_per_page = 25

    readonly_fields = ("created_at", "updated_at")

    fieldsets = (
        ("Patient", {"fields": ("name", "ic_number", "phone")}),
        ("Medical", {"fields": ("diagnosis",)}),
        ("Meta",    {"fields": ("created_at", "updated_at")}),
    )

    def masked_ic(self, obj):
        return obj.masked_ic
    masked_ic.short_description = "IC number"


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ("id", "date", "timeslot", "patient", "status", "created_at")
    list_display_links = ("id",)

    # right sidebar filters
    list_filter = ("status", "date")

    search_fields = ("patient__name",)

    # date drilldown nav
    date_hierarchy = "date"

    list_per_page = 25

    readonly_fields = ("created_at",)

    fieldsets = (
        ("Patient", {"fields": ("patient",)}),
        ("Booking", {"fields": ("date", "start_time", "timeslot", "status")}),
        ("Notes",   {"fields": ("reason", "notes")}),
        ("Meta",    {"fields": ("created_at",)}),
    )


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "username", "action", "description")
    list_filter = ("action",)
    search_fields = ("username", "description")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
