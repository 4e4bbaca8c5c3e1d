import hashlib
from decimal import Decimal
from typing import Any, Dict, Optional

from django.db import transaction
from rest_framework.exceptions import NotFound, ValidationError

from core.models import Cart, CartItem, Medicine, User


def _file_url(f) -> str:
    return f.url if f else ''


def serialize_cart(cart: Optional[Cart]) -> Dict[str, Any]:
    if cart is None:
        return {'id': None, 'items': [], 'totalAmount': '0.00'}
    return {
        'id': cart.id,
        'items': [{
            'medicineId': i.medicine_id,
            'name': i.name,
            'price': str(i.price),
            'quantity': i.quantity,
            'image': i.image,
            'lineTotal': str(i.price * i.quantity),
        } for i in cart.items.order_by('id')],
        'totalAmount': str(cart.total_amount),
    }


def get_cart(user: User) -> Optional[Cart]:
    return Cart.objects.filter(user=user).first()


def _available_medicine(medicine_id: int) -> Medicine:
    med = Medicine.objects.filter(id=medicine_id, is_deleted=False).first()
    if med is None:
        raise NotFound('Medicine not found')
    return med


def _check_stock(med: Medicine, quantity: int) -> None:
    if quantity > med.stock_quantity:
        raise ValidationError(f'Only {med.stock_quantity} of {med.name} in stock')


def _locked_cart(user: User) -> Cart:
    Cart.objects.get_or_create(user=user)
    return Cart.objects.select_for_update().get(user=user)


@transaction.atomic
def add_item(user: User, medicine_id: int, quantity: int) -> Cart:
    med = _available_medicine(medicine_id)
    cart = _locked_cart(user)
    item = CartItem.objects.filter(cart=cart, medicine=med).first()
    new_qty = quantity + (item.quantity if item else 0)
    _check_stock(med, new_qty)
    if item:
        item.quantity = new_qty
        item.price = med.price
        item.save(update_fields=['quantity', 'price'])
    else:
        CartItem.objects.create(
            cart=cart, medicine=med, name=med.name, price=med.price,
            quantity=new_qty, image=_file_url(med.image),
        )
    cart.recalculate()
    return cart


@transaction.atomic
def update_item(user: User, medicine_id: int, quantity: int) -> Cart:
    cart = Cart.objects.select_for_update().filter(user=user).first()
    item = CartItem.objects.select_related('medicine').filter(cart=cart, medicine_id=medicine_id).first() if cart else None
    if item is None:
        raise NotFound('Item not in cart')
    if item.medicine.is_deleted:
        raise NotFound('Medicine not found')
    _check_stock(item.medicine, quantity)
    item.quantity = quantity
    item.price = item.medicine.price
    item.save(update_fields=['quantity', 'price'])
    cart.recalculate()
    return cart


@transaction.atomic
def remove_item(user: User, medicine_id: int) -> Cart:
    cart = _locked_cart(user)
    CartItem.objects.filter(cart=cart, medicine_id=medicine_id).delete()
    cart.recalculate()
    return cart


@transaction.atomic
def clear(user: User) -> Cart:
    cart = _locked_cart(user)
    cart.items.all().delete()
    cart.recalculate()
    return cart


def empty(cart: Cart) -> None:
    """Drop every line; the caller holds the cart lock."""
    cart.items.all().delete()
    cart.total_amount = Decimal('0.00')
    cart.save(update_fields=['total_amount', 'updated_at'])


def snapshot_digest(items) -> str:
    """Fingerprint of the priced lines a payment was taken for."""
    lines = sorted((i.medicine_id, i.quantity, format(i.price, '.2f')) for i in items)
    return hashlib.sha256(';'.join(f'{m}x{q}@{p}' for m, q, p in lines).encode()).hexdigest()[:32]


def line_total(items) -> Decimal:
    return sum((i.price * i.quantity for i in items), Decimal('0.00'))
