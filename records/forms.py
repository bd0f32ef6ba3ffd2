from django import forms
from .models import Appointment, Patient
from .crypto import ic_digest, is_valid_phone, normalize_ic


class PatientForm(forms.ModelForm):
    """
    Create / edit form for patient records.
    Every field is required; IC number and diagnosis are encrypted by the model.
    """

    ic_number = forms.CharField(
        label="IC number",
        max_length=20,
        widget=forms.TextInput(attrs={"class": "form-control", "placeholder": "XXXXXX-XX-XXXX"}),
    )
    diagnosis = forms.CharField(
        widget=forms.Textarea(attrs={"class": "form-control", "rows": 4}),
    )

    class Meta:
        model = Patient
        fields = ["name", "ic_number", "diagnosis", "phone"]

        widgets = {
            "name": forms.TextInput(attrs={"class": "form-control"}),
            "phone": forms.TextInput(attrs={"class": "form-control"}),
        }

    def clean_name(self):
        name = (self.cleaned_data.get("name") or "").strip()
        if not name:
            raise forms.ValidationError("Patient name is required.")
        return name

    def clean_ic_number(self):
        try:
            ic = normalize_ic(self.cleaned_data.get("ic_number"))
        except ValueError as exc:
            raise forms.ValidationError(str(exc))

        qs = Patient.objects.filter(ic_digest=ic_digest(ic))
        if self.instance.pk:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise forms.ValidationError("A patient with this IC number already exists.")
        return ic

    def clean_diagnosis(self):
        diagnosis = (self.cleaned_data.get("diagnosis") or "").strip()
        if not diagnosis:
            raise forms.ValidationError("Diagnosis is required.")
        return diagnosis

    def clean_phone(self):
        phone = (self.cleaned_data.get("phone") or "").strip()
        if not is_valid_phone(phone):
            raise forms.ValidationError("Phone number must be 10-15 digits.")
        return phone


class AppointmentForm(forms.ModelForm):
    """
    Staff booking form, used for new bookings and for rescheduling.

    The date and time are entered separately and stored as ``date``,
    ``start_time`` and a display ``timeslot``. A slot already held by a
    pending or confirmed appointment cannot be booked again.
    """

    appointment_date = forms.DateField(
        widget=forms.DateInput(attrs={"type": "date", "class": "form-control"}),
    )
    appointment_time = forms.TimeField(
        input_formats=["%I:%M %p", "%I:%M%p", "%H:%M"],
        widget=forms.TimeInput(attrs={"type": "time", "class": "form-control"}, format="%H:%M"),
    )
    reason = forms.CharField(
        required=False,
        widget=forms.Textarea(attrs={"class": "form-control", "rows": 3}),
    )

    class Meta:
        model = Appointment
        fields = ["patient", "appointment_date", "appointment_time", "reason", "notes"]

        widgets = {
            "patient": forms.Select(attrs={"class": "form-control"}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if self.instance.pk:
            self.initial.setdefault("appointment_date", self.instance.date)
            self.initial.setdefault("appointment_time", self.instance.start_time)

    @staticmethod
    def format_timeslot(value):
        """'09:30' -> '9:30 AM'"""
        return value.strftime("%I:%M %p").lstrip("0")

    def slot_taken(self, day, start):
        busy = Appointment.objects.filter(
            date=day,
            start_time=start,
            status__in=Appointment.ACTIVE_STATUSES,
        )
        if self.instance.pk:
            busy = busy.exclude(pk=self.instance.pk)
        return busy.exists()

    def clean(self):
        cleaned = super().clean()
        day = cleaned.get("appointment_date")
        start = cleaned.get("appointment_time")
        if day is None or start is None:
            # field-level "required" errors already cover this
            return cleaned

        if self.slot_taken(day, start):
            raise forms.ValidationError(
                "The selected date or time is already booked. Please choose a different date or time."
            )

        cleaned["timeslot_str"] = self.format_timeslot(start)
        return cleaned

    def save(self, commit=True, status=None):
        """
        Copy the entered date and time onto the model.
        ``status`` overrides the stored status when given.
        """
        appointment = super().save(commit=False)
        start = self.cleaned_data["appointment_time"]

        appointment.date = self.cleaned_data["appointment_date"]
        appointment.start_time = start
        appointment.timeslot = self.cleaned_data.get("timeslot_str") or self.format_timeslot(start)
        appointment.reason = (self.cleaned_data.get("reason") or "").strip()
        if status is not None:
            appointment.status = status

        if commit:
            appointment.save()
        return appointment
