"""
Payment intents and processor webhook reconciliation.

The processor client sits behind :class:`PaymentGateway`; the concrete
class comes from ``settings.PAYMENT_GATEWAY_CLASS`` so tests can replace
it.  Webhook events are recorded in ``WebhookEvent`` in the same
transaction that applies them, which makes redelivery of an event a no-op.
"""
from __future__ import annotations

import json
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional

import stripe
from django.conf import settings
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from core.exceptions import InvalidTransition, PaymentGatewayError
from core.models import Appointment, Cart, User, WebhookEvent
from core.services import appointments, orders
from core.services import cart as cart_service
from core.services.invoices import generate_invoice_number

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')

EVENT_SUCCEEDED = 'payment_intent.succeeded'
EVENT_FAILED = 'payment_intent.payment_failed'


class WebhookSignatureError(Exception):
    """The webhook body does not carry a valid processor signature."""


class WebhookPayloadError(ValueError):
    """The webhook body is not a well formed event."""


class PaymentGateway:
    """Interface to the payment processor."""

    def create_intent(self, amount_cents: int, currency: str, metadata: Dict[str, str],
                      idempotency_key: Optional[str] = None) -> Dict[str, str]:
        raise NotImplementedError

    def construct_event(self, payload: bytes, signature: str) -> Dict[str, Any]:
        raise NotImplementedError


class StripeGateway(PaymentGateway):
    """:class:`PaymentGateway` backed by the Stripe SDK."""

    def __init__(self, api_key: Optional[str] = None, webhook_secret: Optional[str] = None):
        self.api_key = api_key or settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret or settings.STRIPE_WEBHOOK_SECRET

    def create_intent(self, amount_cents, currency, metadata, idempotency_key=None):
        try:
            intent = stripe.PaymentIntent.create(
                amount=amount_cents,
                currency=currency,
                metadata=metadata,
                automatic_payment_methods={'enabled': True},
                api_key=self.api_key,
                idempotency_key=idempotency_key,
            )
        except stripe.StripeError as exc:
            logger.warning('payment intent creation failed: %s', exc)
            raise PaymentGatewayError() from exc
        return {'id': intent.id, 'client_secret': intent.client_secret}

    def construct_event(self, payload, signature):
        if isinstance(payload, bytes):
            try:
                payload = payload.decode('utf-8')
            except UnicodeDecodeError as exc:
                raise WebhookPayloadError('Body is not UTF-8') from exc
        try:
            stripe.WebhookSignature.verify_header(
                payload, signature or '', self.webhook_secret, settings.STRIPE_WEBHOOK_TOLERANCE,
            )
        except stripe.SignatureVerificationError as exc:
            raise WebhookSignatureError(str(exc)) from exc
        try:
            event = json.loads(payload)
        except ValueError as exc:
            raise WebhookPayloadError('Body is not JSON') from exc
        if not isinstance(event, dict):
            raise WebhookPayloadError('Event must be an object')
        return event


def to_cents(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def split_fee(amount: Decimal) -> tuple[Decimal, Decimal]:
    """Return ``(admin_fee, doctor_earning)`` for an appointment amount."""
    pct = Decimal(str(settings.PLATFORM_FEE_PERCENT))
    admin_fee = (Decimal(amount) * pct / 100).quantize(CENT, rounding=ROUND_HALF_UP)
    return admin_fee, Decimal(amount) - admin_fee


# ---------------------------------------------------------------------
# Intents
# ---------------------------------------------------------------------
@transaction.atomic
def create_appointment_intent(ctx, patient: User, appointment_id: int) -> Dict[str, Any]:
    appt = (Appointment.objects.select_for_update()
            .select_related('doctor', 'patient')
            .filter(id=appointment_id).first())
    if appt is None:
        raise NotFound('Appointment not found')
    if appt.patient_id != patient.id:
        raise PermissionDenied('Forbidden.')
    if appt.payment_status == Appointment.PAYMENT_PAID:
        raise InvalidTransition('Appointment is already paid.')
    if appt.status not in (Appointment.STATUS_APPROVED, Appointment.STATUS_PENDING_PAYMENT):
        raise InvalidTransition('Appointment not approved by doctor yet.')
    if not appt.amount or appt.amount <= 0:
        raise ValidationError('Appointment has no payable amount.')

    cents = to_cents(appt.amount)
    intent = ctx.gateway.create_intent(
        cents, settings.PAYMENT_CURRENCY,
        {
            'type': 'appointment',
            'appointmentId': str(appt.id),
            'doctorId': str(appt.doctor_id),
            'patientId': str(appt.patient_id),
        },
        idempotency_key=f'appointment-{appt.id}-{cents}',
    )

    appt.payment_intent_id = intent['id']
    if appt.status == Appointment.STATUS_APPROVED:
        appointments.transition(appt, Appointment.STATUS_PENDING_PAYMENT, actor=patient,
                                reason='payment started', extra_fields=('payment_intent_id',))
        appointments.push_update(ctx, appt)
    else:
        appt.save(update_fields=['payment_intent_id', 'updated_at'])
    return {
        'clientSecret': intent['client_secret'],
        'paymentIntentId': intent['id'],
        'amount': str(appt.amount),
        'currency': settings.PAYMENT_CURRENCY,
        'appointment': appointments.serialize_appointment(appt),
    }


@transaction.atomic
def create_medicine_intent(ctx, user: User) -> Dict[str, Any]:
    cart = Cart.objects.select_for_update().filter(user=user).first()
    items = list(cart.items.select_related('medicine').order_by('id')) if cart else []
    if not items:
        raise ValidationError('Cart is empty')
    for item in items:
        med = item.medicine
        if med is None or med.is_deleted:
            raise ValidationError(f'{item.name} is no longer available')
        if med.stock_quantity < item.quantity:
            raise ValidationError(f'Only {med.stock_quantity} of {med.name} in stock')

    total = cart.recalculate()
    cents = to_cents(total)
    # the webhook only fulfils the cart if it still matches this digest
    digest = cart_service.snapshot_digest(items)
    intent = ctx.gateway.create_intent(
        cents, settings.PAYMENT_CURRENCY,
        {'type': 'medicine_order', 'userId': str(user.id), 'cartId': str(cart.id), 'cartDigest': digest},
        idempotency_key=f'cart-{cart.id}-{cents}-{digest}',
    )
    return {
        'clientSecret': intent['client_secret'],
        'paymentIntentId': intent['id'],
        'amount': str(total),
        'currency': settings.PAYMENT_CURRENCY,
    }


# ---------------------------------------------------------------------
# Webhook
# ---------------------------------------------------------------------
def handle_webhook(ctx, event: Dict[str, Any]) -> Dict[str, Any]:
    event_id = event.get('id')
    event_type = event.get('type')
    if not event_id or not event_type:
        raise WebhookPayloadError('Event id and type are required')
    data = event.get('data') or {}
    if not isinstance(data, dict):
        raise WebhookPayloadError('Event data must be an object')
    intent = data.get('object') or {}
    if not isinstance(intent, dict) or not isinstance(intent.get('metadata') or {}, dict):
        raise WebhookPayloadError('Event data.object and its metadata must be objects')

    with transaction.atomic():
        _, created = WebhookEvent.objects.get_or_create(event_id=event_id, defaults={'event_type': event_type})
        if not created:
            logger.info('webhook %s (%s) already processed', event_id, event_type)
            return {'received': True, 'duplicate': True}

        logger.info('webhook %s received: %s', event_id, event_type)
        metadata = intent.get('metadata') or {}
        if event_type == EVENT_SUCCEEDED:
            if metadata.get('appointmentId'):
                _settle_appointment(ctx, intent, metadata['appointmentId'])
            if metadata.get('type') == 'medicine_order':
                orders.create_from_intent(ctx, intent, metadata.get('userId'))
        elif event_type == EVENT_FAILED:
            if metadata.get('appointmentId'):
                _reopen_appointment(ctx, metadata['appointmentId'])
        else:
            logger.info('webhook %s: unhandled event type %s', event_id, event_type)
    return {'received': True}


def _lock_appointment(raw_id) -> Optional[Appointment]:
    try:
        appointment_id = int(raw_id)
    except (TypeError, ValueError):
        logger.warning('webhook references malformed appointment id %r', raw_id)
        return None
    appt = (Appointment.objects.select_for_update()
            .select_related('doctor', 'patient')
            .filter(id=appointment_id).first())
    if appt is None:
        logger.warning('webhook references missing appointment %s', appointment_id)
    return appt


def _settle_appointment(ctx, intent: Dict[str, Any], raw_id) -> None:
    appt = _lock_appointment(raw_id)
    if appt is None:
        return
    txn = intent.get('id') or ''
    if appt.status in Appointment.INACTIVE_STATUSES:
        logger.warning('payment %s for %s appointment %s ignored', txn, appt.status, appt.id)
        return
    if appt.status in (Appointment.STATUS_BOOKED, Appointment.STATUS_COMPLETED):
        if appt.transaction_id == txn:
            logger.info('appointment %s already settled by %s', appt.id, txn)
        else:
            logger.warning('appointment %s already paid by %s; ignoring %s', appt.id, appt.transaction_id, txn)
        return
    if not appointments.can_transition(appt.status, Appointment.STATUS_BOOKED):
        logger.warning('payment %s for appointment %s in %s ignored', txn, appt.id, appt.status)
        return

    appt.payment_status = Appointment.PAYMENT_PAID
    appt.transaction_id = txn
    appt.invoice_number = generate_invoice_number('APT')
    appt.paid_at = timezone.now()
    appt.admin_fee, appt.doctor_earning = split_fee(appt.amount)
    appointments.transition(
        appt, Appointment.STATUS_BOOKED, actor=None, reason='payment succeeded',
        extra_fields=('payment_status', 'transaction_id', 'invoice_number', 'paid_at',
                      'admin_fee', 'doctor_earning'),
    )

    meta = {'appointmentId': appt.id, 'invoiceNumber': appt.invoice_number}
    ctx.notifier.notify(
        appt.patient, 'payment_succeeded',
        f'Payment received. Your appointment with Dr. {appt.doctor.display_name} is booked',
        target_url='/patient-dashboard/appointments', meta=meta,
    )
    ctx.notifier.notify(
        appt.doctor, 'payment_succeeded',
        f'{appt.patient.display_name} paid for the appointment on {appt.date.isoformat()} at {appt.start_time}',
        target_url='/doctor-dashboard/appointments', meta=meta,
    )
    appointments.push_update(ctx, appt, isPaid=True)
    appointments.push_update(ctx, appt, event='appointment:paid')


def _reopen_appointment(ctx, raw_id) -> None:
    appt = _lock_appointment(raw_id)
    if appt is None:
        return
    if appt.status != Appointment.STATUS_PENDING_PAYMENT:
        logger.info('payment failure for appointment %s in %s ignored', appt.id, appt.status)
        return
    appt.payment_status = Appointment.PAYMENT_UNPAID
    appointments.transition(appt, Appointment.STATUS_APPROVED, actor=None, reason='payment failed',
                            extra_fields=('payment_status',))
    ctx.notifier.notify(
        appt.patient, 'payment_failed',
        'Your payment did not go through. Please try again',
        target_url=f'/patient-dashboard/pay/{appt.id}',
        meta={'appointmentId': appt.id},
    )
    appointments.push_update(ctx, appt)
