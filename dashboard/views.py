import logging

from django.contrib import messages
from django.contrib.auth.decorators import login_required, user_passes_test
from django.contrib.auth.views import LoginView
from django.core.paginator import Paginator
from django.http import Http404, JsonResponse
from django.shortcuts import render, get_object_or_404, redirect
from django.utils import timezone
from django.views.decorators.http import require_POST

from records.forms import AppointmentForm, PatientForm
from records.models import ActivityLog, Appointment, Patient
from dashboard.services import (
    filter_activity_log,
    get_appointment_analytics,
    get_appointment_queues,
    get_upcoming_appointments,
    resolve_analytics_view,
    search_patients,
)
from dashboard.utils.chart_utils import FALLBACK_NOTICE, build_chart_config, format_data_for_chart

logger = logging.getLogger(__name__)

REMEMBER_ME_SECONDS = 1209600  # 2 weeks


def staff_required(view_func):
    """Logged in and flagged as staff; anyone else goes to the login page."""
    return login_required(
        user_passes_test(lambda u: u.is_staff, login_url="dashboard:login")(view_func)
    )


class ClinicLoginView(LoginView):
    template_name = "dashboard/pages/login.html"

    def form_valid(self, form):
        resp = super().form_valid(form)
        remember = self.request.POST.get("remember") == "on"
        # 2 weeks if checked; session-only if not
        self.request.session.set_expiry(REMEMBER_ME_SECONDS if remember else 0)
        ActivityLog.record(form.get_user(), ActivityLog.ACTION_LOGIN, "User logged in")
        return resp


def _analytics_context(view_mode):
    result = get_appointment_analytics(view_mode, timezone.localdate())
    return {
        "analytics": result,
        "analytics_rows": list(zip(result.window, result.labels, result.counts)),
        "analytics_chart": build_chart_config(result),
        "analytics_notice": FALLBACK_NOTICE if result.is_fallback else "",
    }


@staff_required
def index(request):
    q = request.GET.get("q", "").strip()
    today = timezone.localdate()

    paginator = Paginator(search_patients(q), 10)
    patients = paginator.get_page(request.GET.get("page"))

    ctx = {
        "q": q,
        "today": today,
        "patients": patients,
        "upcoming": get_upcoming_appointments(today),
        "kpi_total_patients": Patient.objects.count(),
        "kpi_appointments_today": Appointment.objects.filter(
            date=today, status__in=Appointment.ACTIVE_STATUSES
        ).count(),
        "active_page": "home",
    }
    ctx.update(_analytics_context("weekly"))
    return render(request, "dashboard/index.html", ctx)


@staff_required
def patient_create(request):
    if request.method == "POST":
        form = PatientForm(request.POST)
        if form.is_valid():
            patient = form.save()
            ActivityLog.record(request.user, ActivityLog.ACTION_CREATE,
                               f"Created patient record: {patient.name}")
            messages.success(request, f"Patient record for {patient.name} has been created.")
            return redirect("dashboard:home")
        messages.error(request, "Please fill in all required fields.")
    else:
        form = PatientForm()

    return render(request, "dashboard/pages/patient_form.html", {
        "form": form,
        "active_page": "patients",
    })


@staff_required
def patient_edit(request, pk):
    patient = get_object_or_404(Patient, pk=pk)

    if request.method == "POST":
        form = PatientForm(request.POST, instance=patient)
        if form.is_valid():
            form.save()
            ActivityLog.record(request.user, ActivityLog.ACTION_UPDATE,
                               f"Updated patient record: {patient.name}")
            messages.success(request, "Patient record has been updated.")
            return redirect("dashboard:patient_detail", pk=patient.pk)
        messages.error(request, "Please correct the errors below.")
    else:
        form = PatientForm(instance=patient)

    return render(request, "dashboard/pages/patient_form.html", {
        "form": form,
        "patient": patient,
        "active_page": "patients",
    })


@staff_required
def patient_detail(request, pk):
    patient = get_object_or_404(Patient, pk=pk)
    return render(request, "dashboard/pages/patient_detail.html", {
        "patient": patient,
        "appointments": patient.appointments.order_by("-date", "-start_time"),
        "active_page": "patients",
    })


@staff_required
@require_POST
def patient_delete(request, pk):
    try:
        patient = Patient.objects.get(pk=pk)
    except Patient.DoesNotExist:
        logger.warning("Delete requested for missing patient id=%s by %s", pk, request.user)
        ActivityLog.record(request.user, ActivityLog.ACTION_DELETE_FAILED,
                           f"Failed to delete patient record {pk}: not found")
        raise Http404("Patient record not found.")

    name = patient.name
    # appointments go with it (FK cascade)
    patient.delete()

    ActivityLog.record(request.user, ActivityLog.ACTION_DELETE, f"Deleted patient record: {name}")
    messages.success(request, f"Patient record for {name} has been successfully deleted.")
    return redirect("dashboard:home")


@staff_required
def appointment_form(request):
    if request.method == "POST":
        form = AppointmentForm(request.POST)
        if form.is_valid():
            appt = form.save(status=Appointment.STATUS_CONFIRMED)
            ActivityLog.record(request.user, ActivityLog.ACTION_CREATE,
                               f"Booked appointment for {appt.patient.name} on {appt.date} {appt.timeslot}")
            messages.success(request, "Appointment has been created.")
            return redirect("dashboard:home")
        messages.error(request, "Please correct the errors below.")
    else:
        form = AppointmentForm()

    return render(request, "dashboard/pages/appointment_form.html", {
        "form": form,
        "active_page": "appointments",
    })


def _get_appointment_or_404(appt_id):
    # form posts carry the id as free text
    if not str(appt_id or "").isdigit():
        raise Http404("Appointment not found.")
    return get_object_or_404(Appointment.objects.select_related("patient"), pk=appt_id)


@staff_required
def appointments(request):
    q = request.GET.get("q", "").strip()
    today = timezone.localdate()

    # status buttons (approve / cancel / complete)
    if request.method == "POST":
        appt = _get_appointment_or_404(request.POST.get("appointment_id"))
        action = request.POST.get("action", "")
        previous = appt.get_status_display()

        try:
            appt.apply_action(action)
        except ValueError as exc:
            logger.info("Rejected appointment action %r on id=%s: %s", action, appt.pk, exc)
            messages.error(request, str(exc))
        else:
            ActivityLog.record(request.user, ActivityLog.ACTION_UPDATE,
                               f"Appointment for {appt.patient.name} on {appt.date} {appt.timeslot}: "
                               f"{previous} -> {appt.get_status_display()}")
            messages.success(request, f"Appointment for {appt.patient.name} is now {appt.get_status_display().lower()}.")
        return redirect("dashboard:appointments")

    queues = get_appointment_queues(today, q)
    history_paginator = Paginator(queues["history"], 5)

    return render(request, "dashboard/pages/appointments.html", {
        "q": q,
        "today": today,
        "pending_requests": queues["pending"],
        "upcoming_appointments": queues["upcoming"],
        "recent_history": history_paginator.get_page(request.GET.get("history_page")),
        "active_page": "appointments",
    })


@staff_required
def appointment_detail(request, pk):
    appt = _get_appointment_or_404(pk)
    return render(request, "dashboard/pages/appointment_detail.html", {
        "appt": appt,
        "active_page": "appointments",
    })


@staff_required
def appointment_edit(request, pk):
    appt = _get_appointment_or_404(pk)

    if request.method == "POST":
        form = AppointmentForm(request.POST, instance=appt)
        if form.is_valid():
            appt = form.save()
            ActivityLog.record(request.user, ActivityLog.ACTION_UPDATE,
                               f"Updated appointment for {appt.patient.name}: {appt.date} {appt.timeslot}")
            messages.success(request, "Appointment has been updated.")
            return redirect("dashboard:appointment_detail", pk=appt.pk)
        messages.error(request, "Please correct the errors below.")
    else:
        form = AppointmentForm(instance=appt)

    return render(request, "dashboard/pages/appointment_form.html", {
        "form": form,
        "appt": appt,
        "active_page": "appointments",
    })


@staff_required
@require_POST
def appointment_delete(request, pk):
    try:
        appt = Appointment.objects.select_related("patient").get(pk=pk)
    except Appointment.DoesNotExist:
        logger.warning("Delete requested for missing appointment id=%s by %s", pk, request.user)
        ActivityLog.record(request.user, ActivityLog.ACTION_DELETE_FAILED,
                           f"Failed to delete appointment {pk}: not found")
        raise Http404("Appointment not found.")

    summary = f"{appt.patient.name} on {appt.date} {appt.timeslot}"
    appt.delete()

    ActivityLog.record(request.user, ActivityLog.ACTION_DELETE, f"Deleted appointment for {summary}")
    messages.success(request, f"Appointment for {summary} has been deleted.")
    return redirect("dashboard:appointments")


@staff_required
def activity_log(request):
    entries, action = filter_activity_log(request.GET.get("action", ""))
    paginator = Paginator(entries, 25)

    return render(request, "dashboard/pages/activity_log.html", {
        "entries": paginator.get_page(request.GET.get("page")),
        "action": action,
        "action_choices": ActivityLog.ACTION_CHOICES,
        "active_page": "activity",
    })


@staff_required
def analytics(request):
    view_mode = resolve_analytics_view(request.GET.get("view"))
    ctx = {
        "view": view_mode,
        "active_page": "analytics",
    }
    ctx.update(_analytics_context(view_mode))
    return render(request, "dashboard/pages/analytics.html", ctx)


@staff_required
def analytics_data(request):
    view_mode = resolve_analytics_view(request.GET.get("view"))
    result = get_appointment_analytics(view_mode, timezone.localdate())
    dataset = format_data_for_chart(result.labels, result.counts)

    data = result.as_dict()
    data.update({
        "view": view_mode,
        "json_labels": dataset["serialized_labels"],
        "json_counts": dataset["serialized_counts"],
        "chart": build_chart_config(result),
    })
    return JsonResponse(data)
