"""
Appointment booking workflow.

An appointment moves ``pending_approval -> approved -> pending_payment ->
booked`` with ``rejected``/``cancelled`` exits and ``completed`` after the
visit.  Every change goes through :func:`transition`, which checks the
transition table, records an ``AppointmentTransition`` and must be called
with the appointment row locked inside a transaction.  Both parties get an
``appointment:updated`` push after the transaction commits.
"""
from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional

import bleach
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from core.exceptions import InvalidTransition
from core.models import Appointment, AppointmentTransition, DoctorAvailability, User
from core.services import availability

logger = logging.getLogger(__name__)

TRANSITIONS = {
    Appointment.STATUS_PENDING_APPROVAL: [
        Appointment.STATUS_APPROVED, Appointment.STATUS_REJECTED, Appointment.STATUS_CANCELLED,
    ],
    Appointment.STATUS_APPROVED: [
        Appointment.STATUS_PENDING_PAYMENT, Appointment.STATUS_BOOKED, Appointment.STATUS_CANCELLED,
    ],
    Appointment.STATUS_PENDING_PAYMENT: [
        Appointment.STATUS_BOOKED, Appointment.STATUS_APPROVED, Appointment.STATUS_CANCELLED,
    ],
    Appointment.STATUS_BOOKED: [Appointment.STATUS_COMPLETED, Appointment.STATUS_CANCELLED],
    Appointment.STATUS_COMPLETED: [],
    Appointment.STATUS_CANCELLED: [],
    Appointment.STATUS_REJECTED: [],
}


def can_transition(current: str, new: str) -> bool:
    """Return True if an appointment may move from ``current`` to ``new``."""
    return new in TRANSITIONS.get(current, [])


def _money(value: Optional[Decimal]) -> Optional[str]:
    return None if value is None else str(value)


def _party(user: User) -> Dict[str, Any]:
    return {'id': user.id, 'name': user.display_name, 'email': user.email}


def serialize_appointment(a: Appointment) -> Dict[str, Any]:
    doctor = _party(a.doctor)
    doctor['specialization'] = a.doctor.specialization
    return {
        'id': a.id,
        'doctor': doctor,
        'patient': _party(a.patient),
        'date': a.date.isoformat(),
        'startTime': a.start_time,
        'endTime': a.end_time,
        'reason': a.reason,
        'status': a.status,
        'paymentStatus': a.payment_status,
        'amount': _money(a.amount),
        'transactionId': a.transaction_id or None,
        'invoiceNumber': a.invoice_number or None,
        'paidAt': a.paid_at.isoformat() if a.paid_at else None,
        'adminFee': _money(a.admin_fee),
        'doctorEarning': _money(a.doctor_earning),
        'createdAt': a.created_at.isoformat() if a.created_at else None,
        'updatedAt': a.updated_at.isoformat() if a.updated_at else None,
    }


def transition(appt: Appointment, new_status: str, *, actor: Optional[User], reason: str = '',
               extra_fields: tuple = ()) -> AppointmentTransition:
    """Move a locked appointment to ``new_status`` and record the change."""
    old = appt.status
    if not can_transition(old, new_status):
        raise InvalidTransition(f'Cannot change appointment from {old} to {new_status}.')
    appt.status = new_status
    appt.save(update_fields=['status', 'updated_at', *extra_fields])
    logger.info('appointment %s: %s -> %s (actor=%s)', appt.id, old, new_status, getattr(actor, 'id', None))
    return AppointmentTransition.objects.create(
        appointment=appt, from_status=old, to_status=new_status, actor=actor, reason=reason,
    )


def push_update(ctx, appt: Appointment, *, event: str = 'appointment:updated', **flags) -> None:
    data = {'appointment': serialize_appointment(appt)}
    data.update(flags)
    ctx.notifier.push_many([appt.doctor_id, appt.patient_id], event, data)


def _locked(appointment_id: int) -> Appointment:
    appt = (Appointment.objects.select_for_update()
            .select_related('doctor', 'patient')
            .filter(id=appointment_id).first())
    if appt is None:
        raise NotFound('Appointment not found.')
    return appt


# ---------------------------------------------------------------------
# Booking
# ---------------------------------------------------------------------
@transaction.atomic
def book(ctx, patient: User, *, doctor_id: int, on: date, start_time: str, end_time: str,
         reason: str = '') -> Appointment:
    if not (availability.is_valid_time(start_time) and availability.is_valid_time(end_time)):
        raise ValidationError('Times must use HH:MM.')
    if start_time >= end_time:
        raise ValidationError('Start time must be before end time.')
    today = timezone.localdate()
    if on < today or (on == today and start_time <= timezone.localtime().strftime('%H:%M')):
        raise ValidationError('Cannot book an appointment in the past.')

    doctor = User.objects.filter(id=doctor_id, role=User.ROLE_DOCTOR).first()
    if doctor is None:
        raise NotFound('Doctor not found.')

    # Serialises concurrent bookings for the same doctor
    avail = DoctorAvailability.objects.select_for_update().filter(doctor=doctor).first()
    if avail is None or not avail.slots:
        raise ValidationError('Doctor has not set availability.')
    if not availability.covers(avail.slots, on, start_time, end_time):
        raise ValidationError('Doctor not available in this time range.')

    clash = (Appointment.objects
             .filter(doctor=doctor, date=on, start_time__lt=end_time, end_time__gt=start_time)
             .exclude(status__in=Appointment.INACTIVE_STATUSES)
             .exists())
    if clash:
        raise ValidationError('This slot is already booked.')

    appt = Appointment.objects.create(
        doctor=doctor, patient=patient, date=on,
        start_time=start_time, end_time=end_time,
        reason=bleach.clean((reason or '').strip(), tags=set(), strip=True),
        amount=doctor.consultation_fee or Decimal('0.00'),
    )
    AppointmentTransition.objects.create(
        appointment=appt, from_status=None, to_status=appt.status, actor=patient, reason='booked',
    )
    logger.info('appointment %s requested: patient=%s doctor=%s %s %s-%s',
                appt.id, patient.id, doctor.id, on, start_time, end_time)

    ctx.notifier.notify(
        doctor, 'appointment_request',
        f'New appointment request from {patient.display_name}',
        target_url='/doctor-dashboard/appointments',
        meta={'appointmentId': appt.id},
    )
    data = {'appointment': serialize_appointment(appt)}
    ctx.notifier.push(doctor.id, 'appointment:new', data)
    ctx.notifier.push(doctor.id, 'appointment:updated', dict(data, isNew=True))
    return appt


# ---------------------------------------------------------------------
# Doctor decisions
# ---------------------------------------------------------------------
def _doctor_decision(doctor: User, appointment_id: int, new_status: str) -> Appointment:
    appt = _locked(appointment_id)
    if appt.doctor_id != doctor.id:
        raise PermissionDenied('Forbidden.')
    if appt.status != Appointment.STATUS_PENDING_APPROVAL:
        raise InvalidTransition('Not in pending_approval state.')
    transition(appt, new_status, actor=doctor)
    return appt


@transaction.atomic
def approve(ctx, doctor: User, appointment_id: int) -> Appointment:
    appt = _doctor_decision(doctor, appointment_id, Appointment.STATUS_APPROVED)
    ctx.notifier.notify(
        appt.patient, 'appointment_approved',
        f'Your appointment with Dr. {doctor.display_name} was approved',
        target_url=f'/patient-dashboard/pay/{appt.id}',
        meta={'appointmentId': appt.id},
    )
    push_update(ctx, appt)
    return appt


@transaction.atomic
def reject(ctx, doctor: User, appointment_id: int) -> Appointment:
    appt = _doctor_decision(doctor, appointment_id, Appointment.STATUS_REJECTED)
    ctx.notifier.notify(
        appt.patient, 'appointment_rejected',
        f'Your appointment with Dr. {doctor.display_name} was rejected',
        target_url='/patient-dashboard/appointments',
        meta={'appointmentId': appt.id},
    )
    push_update(ctx, appt)
    return appt


@transaction.atomic
def complete(ctx, doctor: User, appointment_id: int) -> Appointment:
    appt = _locked(appointment_id)
    if appt.doctor_id != doctor.id:
        raise PermissionDenied('Forbidden.')
    if appt.status != Appointment.STATUS_BOOKED:
        raise InvalidTransition('Only booked appointments can be completed.')
    transition(appt, Appointment.STATUS_COMPLETED, actor=doctor)
    push_update(ctx, appt)
    return appt


@transaction.atomic
def cancel(ctx, user: User, appointment_id: int) -> Appointment:
    appt = _locked(appointment_id)
    if user.id not in (appt.doctor_id, appt.patient_id):
        raise PermissionDenied('Forbidden.')
    if appt.status in Appointment.TERMINAL_STATUSES:
        raise InvalidTransition(f'Appointment is already {appt.status}.')
    # payment_status is left alone; a paid appointment stays paid
    transition(appt, Appointment.STATUS_CANCELLED, actor=user)

    ctx.notifier.notify(
        appt.doctor, 'appointment_cancelled',
        f'Appointment was cancelled by {user.display_name}',
        target_url='/doctor-dashboard/appointments',
        meta={'appointmentId': appt.id},
    )
    ctx.notifier.notify(
        appt.patient, 'appointment_cancelled',
        'Your appointment was cancelled',
        target_url='/patient-dashboard/appointments',
        meta={'appointmentId': appt.id},
    )
    push_update(ctx, appt)
    return appt


# ---------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------
def list_for_patient(patient: User):
    return (Appointment.objects.filter(patient=patient)
            .select_related('doctor', 'patient')
            .order_by('date', 'start_time', 'id'))


def list_for_doctor(user: User, doctor_id: Optional[int] = None, on: Optional[date] = None):
    if user.role == User.ROLE_DOCTOR:
        doctor_id = user.id
    elif not doctor_id:
        raise ValidationError('doctorId required for non-doctor')
    qs = Appointment.objects.filter(doctor_id=doctor_id)
    if on is not None:
        qs = qs.filter(date=on)
    return qs.select_related('doctor', 'patient').order_by('date', 'start_time', 'id')
