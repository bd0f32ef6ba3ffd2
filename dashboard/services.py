from datetime import date
from typing import Dict, List, Tuple

from django.db.models import Count, Q, QuerySet

from records.crypto import ic_digest
from records.models import ActivityLog, Appointment, Patient
from dashboard.analytics import AnalyticsDateRangeEngine, AnalyticsResult
from dashboard.utils.time_utils import LABEL_MONTHLY, LABEL_WEEKLY

# named analytics views -> (window length in days, label style)
ANALYTICS_VIEWS = {
    "weekly": (7, LABEL_WEEKLY),
    "monthly": (30, LABEL_MONTHLY),
}
DEFAULT_ANALYTICS_VIEW = "weekly"


class AppointmentCountSource:
    """Per-day appointment counts straight from the appointments table."""

    def counts_between(self, start: date, end: date) -> Dict[date, int]:
        qs = (
            Appointment.objects
            .filter(date__range=(start, end))
            .exclude(status=Appointment.STATUS_CANCELLED)
            .values("date")
            .annotate(count=Count("id"))
        )
        return {row["date"]: row["count"] for row in qs}


def resolve_analytics_view(view_mode: str) -> str:
    view_mode = (view_mode or DEFAULT_ANALYTICS_VIEW).lower()
    if view_mode not in ANALYTICS_VIEWS:
        view_mode = DEFAULT_ANALYTICS_VIEW
    return view_mode


def get_appointment_analytics(view_mode: str, today: date, count_source=None) -> AnalyticsResult:
    """
    Analytics for a named view ('weekly' / 'monthly'), starting at `today`.
    Never raises for database trouble: the engine degrades to its fallback.
    """
    window_days, label_mode = ANALYTICS_VIEWS[resolve_analytics_view(view_mode)]
    engine = AnalyticsDateRangeEngine(count_source or AppointmentCountSource())
    return engine.get_appointment_counts(window_days, today, label_mode)


def _patient_match(query: str, prefix: str = "") -> Q:
    """Name substring, or exact IC through the keyed digest."""
    match = Q(**{f"{prefix}name__icontains": query})
    try:
        match |= Q(**{f"{prefix}ic_digest": ic_digest(query)})
    except ValueError:
        pass
    return match


def search_patients(query: str = ""):
    """
    Dashboard patient list. A query matches a name substring, or an IC number
    exactly (IC columns are encrypted, so only the keyed digest is searchable).
    """
    qs = Patient.objects.all()
    query = (query or "").strip()
    if not query:
        return qs
    return qs.filter(_patient_match(query))


def get_upcoming_appointments(today: date, limit: int = 5) -> List[Appointment]:
    """Next pending/confirmed appointments from today on, in time order."""
    return list(
        Appointment.objects
        .select_related("patient")
        .filter(date__gte=today, status__in=Appointment.ACTIVE_STATUSES)
        .order_by("date", "start_time")[:limit]
    )


def get_appointment_queues(today: date, query: str = "") -> Dict[str, QuerySet]:
    """
    The three lists on the appointments page:
    pending requests, confirmed visits from today on, and cancelled/completed history.
    """
    base_qs = Appointment.objects.select_related("patient")
    query = (query or "").strip()
    if query:
        base_qs = base_qs.filter(_patient_match(query, prefix="patient__"))

    return {
        "pending": base_qs.filter(status=Appointment.STATUS_PENDING)
                          .order_by("date", "start_time"),
        "upcoming": base_qs.filter(status=Appointment.STATUS_CONFIRMED, date__gte=today)
                           .order_by("date", "start_time"),
        "history": base_qs.filter(status__in=[Appointment.STATUS_CANCELLED, Appointment.STATUS_COMPLETED])
                          .order_by("-date", "-start_time"),
    }


def filter_activity_log(action: str = "") -> Tuple[QuerySet, str]:
    """Audit entries, newest first; an unrecognised action filter is ignored."""
    qs = ActivityLog.objects.all()
    if action in dict(ActivityLog.ACTION_CHOICES):
        return qs.filter(action=action), action
    return qs, ""
