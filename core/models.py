"""
Database models for the MedCare backend.

These models capture the marketplace: users with a role, doctors' weekly
availability, appointments and their status history, the pharmacy
catalogue, carts and orders, per-user notifications and the ledger of
processed payment webhooks.
"""
from __future__ import annotations

import uuid
from decimal import Decimal

from django.contrib.auth.models import AbstractUser
from django.core.validators import MinValueValidator
from django.db import models


def _random_name(prefix: str, filename: str) -> str:
    import os
    ext = os.path.splitext(filename)[1].lower()
    return f"{prefix}/{uuid.uuid4().hex}{ext}"


def profile_pic_upload(instance, filename: str) -> str:
    return _random_name("profile_pics", filename)


def medicine_image_upload(instance, filename: str) -> str:
    return _random_name("medicines", filename)


class User(AbstractUser):
    """Custom user model with a role and profile fields.

    The email address doubles as the username so that the default
    authentication backend can log users in by email.  Patient and doctor
    specific fields live on the same row; fields that do not apply to a
    role are simply left empty.
    """
    ROLE_PATIENT = 'patient'
    ROLE_DOCTOR = 'doctor'
    ROLE_ADMIN = 'admin'
    ROLE_CHOICES = [
        (ROLE_PATIENT, 'Patient'),
        (ROLE_DOCTOR, 'Doctor'),
        (ROLE_ADMIN, 'Administrator'),
    ]
    GENDER_CHOICES = [
        ('male', 'Male'),
        ('female', 'Female'),
        ('other', 'Other'),
        ('', 'Unspecified'),
    ]

    email = models.EmailField(unique=True)
    name = models.CharField(max_length=150, blank=True)
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_PATIENT, db_index=True)

    is_verified = models.BooleanField(default=False)
    otp = models.CharField(max_length=6, blank=True, null=True)
    otp_expiry = models.DateTimeField(blank=True, null=True)

    # Common profile
    profile_pic = models.FileField(upload_to=profile_pic_upload, max_length=512, blank=True)
    phone = models.CharField(max_length=32, blank=True)
    bio = models.TextField(blank=True)

    # Patient specific
    age = models.PositiveIntegerField(null=True, blank=True)
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES, blank=True, default='')

    # Doctor specific
    specialization = models.CharField(max_length=255, blank=True)
    experience = models.PositiveIntegerField(null=True, blank=True, help_text="Years of practice")
    clinic_address = models.CharField(max_length=255, blank=True)
    consultation_fee = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    def __str__(self) -> str:
        return f"{self.email} ({self.role})"

    @property
    def display_name(self) -> str:
        return self.name or self.get_full_name() or self.email


class DoctorAvailability(models.Model):
    """A doctor's recurring weekly template of bookable windows.

    ``slots`` holds one entry per weekday::

        [{"day": "Monday", "times": [{"start": "09:00", "end": "12:00"}]}]
    """
    doctor = models.OneToOneField(User, on_delete=models.CASCADE, related_name='availability')
    slots = models.JSONField(default=list, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"Availability({self.doctor_id})"


class Appointment(models.Model):
    # --- Workflow status ---
    STATUS_PENDING_APPROVAL = 'pending_approval'
    STATUS_APPROVED = 'approved'
    STATUS_PENDING_PAYMENT = 'pending_payment'
    STATUS_BOOKED = 'booked'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_REJECTED = 'rejected'
    STATUS_CHOICES = (
        (STATUS_PENDING_APPROVAL, 'pending_approval'),
        (STATUS_APPROVED, 'approved'),
        (STATUS_PENDING_PAYMENT, 'pending_payment'),
        (STATUS_BOOKED, 'booked'),
        (STATUS_COMPLETED, 'completed'),
        (STATUS_CANCELLED, 'cancelled'),
        (STATUS_REJECTED, 'rejected'),
    )
    INACTIVE_STATUSES = (STATUS_CANCELLED, STATUS_REJECTED)
    TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_CANCELLED, STATUS_REJECTED)

    # --- Payment status ---
    PAYMENT_UNPAID = 'unpaid'
    PAYMENT_PAID = 'paid'
    PAYMENT_CHOICES = ((PAYMENT_UNPAID, 'unpaid'), (PAYMENT_PAID, 'paid'))

    doctor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='doctor_appointments')
    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='patient_appointments')
    date = models.DateField()
    start_time = models.CharField(max_length=5)
    end_time = models.CharField(max_length=5)
    reason = models.TextField(blank=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING_APPROVAL, db_index=True)
    payment_status = models.CharField(max_length=10, choices=PAYMENT_CHOICES, default=PAYMENT_UNPAID)
    amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    payment_intent_id = models.CharField(max_length=255, blank=True)
    transaction_id = models.CharField(max_length=255, blank=True)

    invoice_number = models.CharField(max_length=32, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    admin_fee = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    doctor_earning = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['doctor', 'date', 'start_time']),
            models.Index(fields=['patient', 'date']),
        ]

    def __str__(self) -> str:
        return f"appt {self.id} d={self.doctor_id} p={self.patient_id} {self.date} {self.start_time} [{self.status}]"


class AppointmentTransition(models.Model):
    """Records a status transition for an appointment."""
    appointment = models.ForeignKey(Appointment, related_name='transitions', on_delete=models.CASCADE)
    from_status = models.CharField(max_length=20, null=True, blank=True)
    to_status = models.CharField(max_length=20)
    # Empty when the payment processor drove the change
    actor = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='appointment_transitions')
    reason = models.CharField(max_length=255, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.appointment_id}: {self.from_status} -> {self.to_status}"


class Medicine(models.Model):
    CATEGORY_CHOICES = [
        ('Tablet', 'Tablet'),
        ('Capsule', 'Capsule'),
        ('Syrup', 'Syrup'),
        ('Injection', 'Injection'),
        ('Drops', 'Drops'),
        ('Ointment', 'Ointment'),
        ('Inhaler', 'Inhaler'),
        ('Powder / Sachet', 'Powder / Sachet'),
        ('Supplement / Vitamin', 'Supplement / Vitamin'),
    ]
    TYPE_CHOICES = [('OTC', 'OTC'), ('Prescription', 'Prescription')]

    name = models.CharField(max_length=255, db_index=True)
    category = models.CharField(max_length=32, choices=CATEGORY_CHOICES)
    mtype = models.CharField(max_length=16, choices=TYPE_CHOICES, default='OTC')
    image = models.FileField(upload_to=medicine_image_upload, max_length=512, blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0'))])
    stock_quantity = models.PositiveIntegerField(default=0)
    description = models.TextField(blank=True)
    dosage = models.CharField(max_length=255, blank=True)
    benefits = models.TextField(blank=True)
    expiry_date = models.DateField(null=True, blank=True)
    # Soft delete keeps order history pointing at real rows
    is_deleted = models.BooleanField(default=False, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.name} ({self.stock_quantity} in stock)"


class Cart(models.Model):
    """A patient's mutable working set of medicine lines."""
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='cart')
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    updated_at = models.DateTimeField(auto_now=True)

    def recalculate(self) -> Decimal:
        """Recompute ``total_amount`` from the current lines and save it."""
        total = sum((item.price * item.quantity for item in self.items.all()), Decimal('0.00'))
        self.total_amount = total
        self.save(update_fields=['total_amount', 'updated_at'])
        return total

    def __str__(self) -> str:
        return f"cart u={self.user_id} total={self.total_amount}"


class CartItem(models.Model):
    cart = models.ForeignKey(Cart, on_delete=models.CASCADE, related_name='items')
    medicine = models.ForeignKey(Medicine, on_delete=models.CASCADE, related_name='cart_items')
    name = models.CharField(max_length=255)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    quantity = models.PositiveIntegerField(default=1)
    image = models.CharField(max_length=512, blank=True)

    class Meta:
        unique_together = [('cart', 'medicine')]

    def __str__(self) -> str:
        return f"{self.quantity} x {self.name}"


class Order(models.Model):
    """Snapshot of a cart taken when its payment succeeded."""
    STATUS_PENDING = 'pending'
    STATUS_PROCESSING = 'processing'
    STATUS_SHIPPED = 'shipped'
    STATUS_DELIVERED = 'delivered'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = (
        (STATUS_PENDING, 'pending'),
        (STATUS_PROCESSING, 'processing'),
        (STATUS_SHIPPED, 'shipped'),
        (STATUS_DELIVERED, 'delivered'),
        (STATUS_CANCELLED, 'cancelled'),
    )
    PAYMENT_UNPAID = 'unpaid'
    PAYMENT_PAID = 'paid'

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='orders')
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    payment_status = models.CharField(max_length=10, default=PAYMENT_UNPAID)
    payment_info = models.JSONField(default=dict, blank=True)
    order_status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)

    invoice_number = models.CharField(max_length=32, blank=True)
    transaction_id = models.CharField(max_length=255, unique=True, null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"order {self.id} u={self.user_id} {self.order_status}"


class OrderItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    medicine = models.ForeignKey(Medicine, null=True, on_delete=models.SET_NULL, related_name='order_items')
    name = models.CharField(max_length=255)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    quantity = models.PositiveIntegerField()
    image = models.CharField(max_length=512, blank=True)

    def __str__(self) -> str:
        return f"{self.quantity} x {self.name} (order {self.order_id})"


class Notification(models.Model):
    """Durable per-user message; the real-time push is only a latency optimisation."""
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='notifications')
    ntype = models.CharField(max_length=64)
    message = models.TextField()
    target_url = models.CharField(max_length=255, blank=True)
    meta = models.JSONField(default=dict, blank=True)
    read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [models.Index(fields=['user', 'read', 'created_at'])]

    def __str__(self) -> str:
        return f"notif {self.id} u={self.user_id} {self.ntype}"


class WebhookEvent(models.Model):
    """Processor events already handled; a replayed event id is acknowledged and skipped."""
    event_id = models.CharField(max_length=255, unique=True)
    event_type = models.CharField(max_length=64)
    received_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.event_type}:{self.event_id}"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.IntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at']),
            models.Index(fields=['object_type', 'object_id', 'created_at']),
        ]
