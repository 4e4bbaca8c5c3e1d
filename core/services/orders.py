"""
Pharmacy orders.

Orders only come into existence when the processor confirms a cart
payment; everything here after that point is read access and the admin
fulfilment workflow.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from core.models import Cart, Medicine, Order, OrderItem, User
from core.services import cart as cart_service
from core.services.invoices import generate_invoice_number

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
ORDER_STATUSES = [s for s, _ in Order.STATUS_CHOICES]


def serialize_order(o: Order, *, with_user: bool = False) -> Dict[str, Any]:
    data = {
        'id': o.id,
        'userId': o.user_id,
        'items': [{
            'medicineId': i.medicine_id,
            'name': i.name,
            'price': str(i.price),
            'quantity': i.quantity,
            'image': i.image,
        } for i in o.items.all()],
        'totalAmount': str(o.total_amount),
        'paymentStatus': o.payment_status,
        'orderStatus': o.order_status,
        'paymentInfo': o.payment_info or {},
        'invoiceNumber': o.invoice_number or None,
        'transactionId': o.transaction_id,
        'paidAt': o.paid_at.isoformat() if o.paid_at else None,
        'createdAt': o.created_at.isoformat() if o.created_at else None,
    }
    if with_user:
        data['user'] = {'id': o.user.id, 'name': o.user.display_name, 'email': o.user.email}
    return data


def create_from_intent(ctx, intent: Dict[str, Any], raw_user_id) -> Optional[Order]:
    """Turn the buyer's cart into a paid order; runs inside the webhook transaction."""
    txn = intent.get('id')
    if not txn:
        logger.warning('medicine payment without intent id ignored')
        return None
    if Order.objects.filter(transaction_id=txn).exists():
        logger.info('order for %s already exists', txn)
        return None

    cart = None
    if str(raw_user_id or '').isdigit():
        cart = Cart.objects.select_for_update().select_related('user').filter(user_id=int(raw_user_id)).first()
    items = list(cart.items.order_by('id')) if cart else []
    if not items:
        logger.warning('payment %s for user %s has no cart to fulfil', txn, raw_user_id)
        return None

    amount = (Decimal(int(intent.get('amount') or 0)) / 100).quantize(CENT)
    paid_digest = (intent.get('metadata') or {}).get('cartDigest')
    if paid_digest != cart_service.snapshot_digest(items) or cart_service.line_total(items) != amount:
        # captured money no longer matches the cart; left for manual reconciliation
        logger.error('payment %s (%s) does not match the cart of user %s; order not created',
                     txn, amount, raw_user_id)
        return None

    order = Order.objects.create(
        user=cart.user,
        total_amount=amount,
        payment_status=Order.PAYMENT_PAID,
        order_status=Order.STATUS_PROCESSING,
        transaction_id=txn,
        invoice_number=generate_invoice_number('ORD'),
        paid_at=timezone.now(),
        payment_info={
            'id': txn,
            'amount': str(amount),
            'currency': intent.get('currency'),
            'status': intent.get('status'),
        },
    )
    for item in items:
        OrderItem.objects.create(
            order=order, medicine_id=item.medicine_id, name=item.name,
            price=item.price, quantity=item.quantity, image=item.image,
        )
        med = Medicine.objects.select_for_update().filter(id=item.medicine_id).first()
        if med is None:
            continue
        remaining = med.stock_quantity - item.quantity
        if remaining < 0:
            logger.warning('order %s: %s short by %s units', order.id, med.name, -remaining)
            remaining = 0
        med.stock_quantity = remaining
        med.save(update_fields=['stock_quantity', 'updated_at'])

    cart_service.empty(cart)
    logger.info('order %s created from %s for user %s', order.id, txn, order.user_id)

    ctx.notifier.notify(
        order.user, 'order_paid',
        f'Your order {order.invoice_number} has been placed',
        target_url='/patient-dashboard/orders',
        meta={'orderId': order.id, 'invoiceNumber': order.invoice_number},
    )
    return order


# ---------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------
def list_for_user(user: User):
    return Order.objects.filter(user=user).prefetch_related('items').order_by('-created_at', '-id')


def get_for_user(user: User, order_id: int) -> Order:
    order = Order.objects.prefetch_related('items').select_related('user').filter(id=order_id).first()
    if order is None:
        raise NotFound('Order not found')
    if order.user_id != user.id and user.role != User.ROLE_ADMIN:
        raise PermissionDenied('Forbidden.')
    return order


# ---------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------
def admin_list(*, status: Optional[str] = None, payment: Optional[str] = None, sort: str = 'newest'):
    qs = Order.objects.select_related('user').prefetch_related('items')
    if status:
        qs = qs.filter(order_status=status)
    if payment:
        qs = qs.filter(payment_status=payment)
    if sort == 'oldest':
        return qs.order_by('created_at', 'id')
    return qs.order_by('-created_at', '-id')


def admin_get(order_id: int) -> Order:
    order = Order.objects.select_related('user').prefetch_related('items').filter(id=order_id).first()
    if order is None:
        raise NotFound('Order not found')
    return order


@transaction.atomic
def update_status(order_id: int, new_status: str) -> Order:
    if new_status not in ORDER_STATUSES:
        raise ValidationError(f'Invalid status. Use one of: {", ".join(ORDER_STATUSES)}')
    order = Order.objects.select_for_update().filter(id=order_id).first()
    if order is None:
        raise NotFound('Order not found')
    order.order_status = new_status
    order.save(update_fields=['order_status', 'updated_at'])
    return order


def delete(order_id: int) -> None:
    deleted, _ = Order.objects.filter(id=order_id).delete()
    if not deleted:
        raise NotFound('Order not found')
