import logging

from django.conf import settings
from django.db import models, transaction
from django.db.models import Q

from .crypto import DecryptionError, decrypt_text, encrypt_text, ic_digest, mask_ic, normalize_ic

logger = logging.getLogger(__name__)


class EncryptedTextField(models.TextField):
	"""
	TextField whose column only ever holds AES-GCM ciphertext.
	Python code reads and writes plaintext.
	"""

	def from_db_value(self, value, expression, connection):
		if value is None:
			return value
		try:
			return decrypt_text(value)
		except DecryptionError as exc:
			# unreadable row (rotated key, corrupt data) reads as NULL
			logger.error("Could not decrypt %s.%s: %s", self.model.__name__, self.name, exc)
			return None

	def get_prep_value(self, value):
		value = super().get_prep_value(value)
		if value is None:
			return value
		return encrypt_text(value)


class Patient(models.Model):
	name = models.CharField(max_length=120)
	ic_number = EncryptedTextField()
	# keyed digest of the normalized IC, the column uniqueness and search run against
	ic_digest = models.CharField(max_length=64, unique=True, editable=False)
	diagnosis = EncryptedTextField()
	phone = models.CharField(max_length=40)

	created_at = models.DateTimeField(auto_now_add=True)
	updated_at = models.DateTimeField(auto_now=True)

	class Meta:
		indexes = [
			models.Index(fields=["name"], name="patient_name_idx"),
		]
		ordering = ["-created_at", "-id"]

	def save(self, *args, **kwargs):
		self.ic_number = normalize_ic(self.ic_number)
		self.ic_digest = ic_digest(self.ic_number)
		super().save(*args, **kwargs)

	@property
	def masked_ic(self):
		if self.ic_number is None:
			return None
		return mask_ic(self.ic_number)

	def __str__(self):
		return f"{self.name} ({self.masked_ic or 'unavailable'})"


class Appointment(models.Model):
	STATUS_PENDING   = "pending"
	STATUS_CONFIRMED = "confirmed"
	STATUS_CANCELLED = "cancelled"
	STATUS_COMPLETED = "completed"

	STATUS_CHOICES = [
		(STATUS_PENDING, "Pending"),
		(STATUS_CONFIRMED, "Confirmed"),
		(STATUS_CANCELLED, "Cancelled"),
		(STATUS_COMPLETED, "Completed"),
	]

	# statuses that occupy a slot
	ACTIVE_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED)

	# staff action -> (statuses it applies to, status it leads to)
	TRANSITIONS = {
		"approve":  ((STATUS_PENDING,), STATUS_CONFIRMED),
		"cancel":   ((STATUS_PENDING, STATUS_CONFIRMED), STATUS_CANCELLED),
		"complete": ((STATUS_CONFIRMED,), STATUS_COMPLETED),
	}

	patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name="appointments")
	date = models.DateField()
	start_time = models.TimeField()
	timeslot = models.CharField(max_length=40)
	reason = EncryptedTextField(blank=True)

	notes = models.TextField(blank=True) # for staff notes
	created_at = models.DateTimeField(auto_now_add=True)

	status = models.CharField(
		max_length=10,
		choices=STATUS_CHOICES,
		default=STATUS_PENDING,
	)

	class Meta:
		indexes = [
			models.Index(fields=["date"], name="appointment_date_idx"),
		]
		constraints = [
			models.UniqueConstraint(
				fields=["date", "start_time"],
				condition=Q(status__in=["pending", "confirmed"]),
				name="unique_active_appointment_slot",
			),
		]
		ordering = ["date", "start_time"]

	def __str__(self):
		return f"{self.patient.name} - {self.date} {self.timeslot}"

	@property
	def available_actions(self):
		return [action for action, (allowed, _) in self.TRANSITIONS.items() if self.status in allowed]

	def apply_action(self, action):
		"""
		Move the appointment along one of TRANSITIONS and save it.
		Raises ValueError for an unknown action or one the current status does not allow.
		"""
		if action not in self.TRANSITIONS:
			raise ValueError(f"Unknown appointment action: {action!r}")

		allowed_from, new_status = self.TRANSITIONS[action]
		if self.status not in allowed_from:
			raise ValueError(f"Cannot {action} a {self.get_status_display().lower()} appointment.")

		self.status = new_status
		self.save(update_fields=["status"])
		return new_status


class ActivityLog(models.Model):
	ACTION_LOGIN = "LOGIN"
	ACTION_CREATE = "CREATE"
	ACTION_UPDATE = "UPDATE"
	ACTION_DELETE = "DELETE"
	ACTION_DELETE_FAILED = "DELETE_FAILED"

	ACTION_CHOICES = [
		(ACTION_LOGIN, "Login"),
		(ACTION_CREATE, "Create"),
		(ACTION_UPDATE, "Update"),
		(ACTION_DELETE, "Delete"),
		(ACTION_DELETE_FAILED, "Delete failed"),
	]

	user = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		null=True,
		blank=True,
		on_delete=models.SET_NULL,
	)
	username = models.CharField(max_length=150)
	action = models.CharField(max_length=20, choices=ACTION_CHOICES)
	description = models.TextField()
	created_at = models.DateTimeField(auto_now_add=True)

	class Meta:
		ordering = ["-created_at", "-id"]

	@classmethod
	def record(cls, user, action, description):
		"""
		Write one audit entry. An audit failure is logged, never raised,
		so it cannot break the request that triggered it.
		"""
		authenticated = user is not None and user.is_authenticated
		try:
			with transaction.atomic():
				return cls.objects.create(
					user=user if authenticated else None,
					username=user.get_username() if authenticated else "unknown",
					action=action,
					description=description,
				)
		except Exception:
			logger.exception("Failed to write activity log entry (%s)", action)
			return None

	def __str__(self):
		return f"{self.created_at:%Y-%m-%d %H:%M} {self.username} {self.action}"
