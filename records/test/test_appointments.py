from datetime import date, time
from django.test import TestCase
from django.db import IntegrityError, connection, transaction
from records.models import Appointment, Patient
from records.crypto import decrypt_text
from records.forms import AppointmentForm


class AppointmentFormTests(TestCase):
    def setUp(self):
        self.patient = Patient.objects.create(
            name="Existing Patient", ic_number="900101-14-5678", diagnosis="Asthma", phone="0123456789",
        )
        self.other = Patient.objects.create(
            name="New Patient", ic_number="880808-08-8888", diagnosis="Flu", phone="0198765432",
        )

    def book(self, patient, day, start, status):
        return Appointment.objects.create(
            patient=patient,
            date=day,
            start_time=start,
            timeslot=start.strftime("%I:%M %p").lstrip("0"),
            status=status,
        )

    def form_data(self, **overrides):
        data = {
            "patient": self.other.pk,
            "appointment_date": date(2026, 2, 18),
            "appointment_time": time(10, 0),
            "reason": "",
            "notes": "",
        }
        data.update(overrides)
        return data

    def test_double_booking_if_pend_cfrm(self):
        print("\n[TEST] double booking is blocked for pending/confirmed")

        for status in Appointment.ACTIVE_STATUSES:
            with self.subTest(status=status):
                existing = self.book(self.patient, date(2026, 2, 18), time(10, 0), status)

                form = AppointmentForm(data=self.form_data())

                print("  - is the form valid?:", form.is_valid())
                self.assertFalse(form.is_valid())
                self.assertTrue(
                    any("already booked" in err.lower() for err in form.non_field_errors()),
                    list(form.non_field_errors()),
                )
                existing.delete()

    def test_allow_booking_if_exist_cancelled_or_completed(self):
        print("\n[TEST] cancelled/completed does NOT block booking")

        self.book(self.patient, date(2026, 2, 18), time(11, 0), Appointment.STATUS_CANCELLED)
        self.book(self.patient, date(2026, 2, 18), time(13, 0), Appointment.STATUS_COMPLETED)

        for slot in (time(11, 0), time(13, 0)):
            form = AppointmentForm(data=self.form_data(appointment_time=slot))
            print("  - is the form valid?:", form.is_valid())
            self.assertTrue(form.is_valid(), form.errors.as_text())

    def test_edit_same_appointment_does_not_self_collide(self):
        print("\n[TEST] editing the same appointment should not self-collide")

        appt = self.book(self.patient, date(2026, 2, 18), time(12, 0), Appointment.STATUS_CONFIRMED)

        form = AppointmentForm(
            data=self.form_data(patient=self.patient.pk, appointment_time=time(12, 0), notes="updated"),
            instance=appt,
        )

        self.assertTrue(form.is_valid(), form.errors.as_text())

    def test_edit_form_is_prefilled_from_instance(self):
        appt = self.book(self.patient, date(2026, 2, 18), time(15, 30), Appointment.STATUS_CONFIRMED)

        form = AppointmentForm(instance=appt)

        self.assertEqual(form.initial["appointment_date"], date(2026, 2, 18))
        self.assertEqual(form.initial["appointment_time"], time(15, 30))
        self.assertEqual(form.initial["patient"], self.patient.pk)

    def test_reschedule_into_taken_slot_is_rejected(self):
        self.book(self.patient, date(2026, 2, 18), time(9, 0), Appointment.STATUS_PENDING)
        appt = self.book(self.other, date(2026, 2, 18), time(10, 0), Appointment.STATUS_CONFIRMED)

        form = AppointmentForm(data=self.form_data(appointment_time=time(9, 0)), instance=appt)

        self.assertFalse(form.is_valid())
        self.assertTrue(form.non_field_errors())

    def test_save_sets_start_time_and_timeslot_format(self):
        print("\n[TEST] saving an appointment sets start_time and timeslot format")

        form = AppointmentForm(data=self.form_data(appointment_time=time(14, 0)))
        self.assertTrue(form.is_valid(), form.errors.as_text())

        appt = form.save(status=Appointment.STATUS_PENDING)

        print("  - saved appointment for timeslot:", appt.timeslot)
        self.assertEqual(appt.date, date(2026, 2, 18))
        self.assertEqual(appt.start_time, time(14, 0))
        self.assertEqual(appt.timeslot, "2:00 PM")
        self.assertEqual(appt.status, Appointment.STATUS_PENDING)

    def test_accepts_twelve_hour_time(self):
        form = AppointmentForm(data=self.form_data(appointment_time="9:30 AM"))

        self.assertTrue(form.is_valid(), form.errors.as_text())
        self.assertEqual(form.save().timeslot, "9:30 AM")

    def test_reason_is_stored_encrypted(self):
        form = AppointmentForm(data=self.form_data(reason="  Chest pain review "))
        self.assertTrue(form.is_valid(), form.errors.as_text())
        appt = form.save(status=Appointment.STATUS_CONFIRMED)

        with connection.cursor() as cursor:
            cursor.execute("SELECT reason FROM records_appointment WHERE id = %s", [appt.pk])
            (stored,) = cursor.fetchone()

        self.assertNotIn("Chest pain", stored)
        self.assertEqual(decrypt_text(stored), "Chest pain review")
        self.assertEqual(Appointment.objects.get(pk=appt.pk).reason, "Chest pain review")

    # Database constraints test cases
    def test_db_unique_constraint_blocks_active_duplicate(self):
        print("\n[TEST] DB constraint blocks duplicate for pending/confirmed")

        self.book(self.patient, date(2026, 2, 18), time(9, 0), Appointment.STATUS_PENDING)

        try:
            with transaction.atomic():
                self.book(self.other, date(2026, 2, 18), time(9, 0), Appointment.STATUS_CONFIRMED)
            print("  - unexpected: DB allowed duplicate")
            self.fail("Expected IntegrityError but duplicate insert succeeded")
        except IntegrityError as e:
            print("  - got IntegrityError (expected):", str(e))

    def test_db_allows_if_existing_is_cancelled(self):
        print("\n[TEST] DB allows new active slot if existing is cancelled")

        self.book(self.patient, date(2026, 2, 18), time(10, 0), Appointment.STATUS_CANCELLED)

        # should succeed (cancelled is not in the active constraint condition)
        a2 = self.book(self.other, date(2026, 2, 18), time(10, 0), Appointment.STATUS_PENDING)

        print("  - created new appointment id:", a2.id)
        self.assertIsNotNone(a2.id)

    def test_deleting_patient_removes_appointments(self):
        self.book(self.patient, date(2026, 2, 18), time(9, 0), Appointment.STATUS_CONFIRMED)
        self.book(self.patient, date(2026, 2, 19), time(9, 0), Appointment.STATUS_COMPLETED)

        self.patient.delete()

        self.assertEqual(Appointment.objects.count(), 0)


class AppointmentStatusTests(TestCase):
    def setUp(self):
        self.patient = Patient.objects.create(
            name="Existing Patient", ic_number="900101-14-5678", diagnosis="Asthma", phone="0123456789",
        )

    def book(self, status, hour=9):
        start = time(hour, 0)
        return Appointment.objects.create(
            patient=self.patient, date=date(2026, 3, 2), start_time=start,
            timeslot=start.strftime("%I:%M %p").lstrip("0"), status=status,
        )

    def test_available_actions_follow_status(self):
        expected = {
            Appointment.STATUS_PENDING: ["approve", "cancel"],
            Appointment.STATUS_CONFIRMED: ["cancel", "complete"],
            Appointment.STATUS_CANCELLED: [],
            Appointment.STATUS_COMPLETED: [],
        }
        for hour, (status, actions) in enumerate(expected.items(), start=9):
            with self.subTest(status=status):
                self.assertEqual(self.book(status, hour).available_actions, actions)

    def test_full_lifecycle(self):
        appt = self.book(Appointment.STATUS_PENDING)

        self.assertEqual(appt.apply_action("approve"), Appointment.STATUS_CONFIRMED)
        self.assertEqual(appt.apply_action("complete"), Appointment.STATUS_COMPLETED)
        self.assertEqual(Appointment.objects.get(pk=appt.pk).status, Appointment.STATUS_COMPLETED)

    def test_rejected_action_leaves_status(self):
        appt = self.book(Appointment.STATUS_CANCELLED)

        for action in ("approve", "cancel", "complete", "bogus"):
            with self.subTest(action=action):
                with self.assertRaises(ValueError):
                    appt.apply_action(action)
        self.assertEqual(Appointment.objects.get(pk=appt.pk).status, Appointment.STATUS_CANCELLED)
