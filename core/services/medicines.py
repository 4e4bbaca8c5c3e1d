from typing import Any, Dict, Optional

import bleach
from django.db import transaction
from django.db.models import Q
from rest_framework.exceptions import NotFound

from core.models import Medicine
from core.services.uploads import validate_image

# camelCase request key -> model field
FIELD_MAP = {
    'name': 'name',
    'category': 'category',
    'type': 'mtype',
    'price': 'price',
    'stockQuantity': 'stock_quantity',
    'description': 'description',
    'dosage': 'dosage',
    'benefits': 'benefits',
    'expiryDate': 'expiry_date',
}
_FREE_TEXT = {'description', 'dosage', 'benefits'}


def serialize_medicine(m: Medicine, *, admin: bool = False) -> Dict[str, Any]:
    data = {
        'id': m.id,
        'name': m.name,
        'category': m.category,
        'type': m.mtype,
        'image': m.image.url if m.image else '',
        'price': str(m.price),
        'stockQuantity': m.stock_quantity,
        'description': m.description,
        'dosage': m.dosage,
        'benefits': m.benefits,
        'expiryDate': m.expiry_date.isoformat() if m.expiry_date else None,
        'createdAt': m.created_at.isoformat() if m.created_at else None,
    }
    if admin:
        data['isDeleted'] = m.is_deleted
    return data


def list_public(*, category: Optional[str] = None, q: Optional[str] = None):
    qs = Medicine.objects.filter(is_deleted=False)
    if category:
        qs = qs.filter(category=category)
    if q:
        qs = qs.filter(Q(name__icontains=q) | Q(description__icontains=q))
    return qs.order_by('-created_at', '-id')


def get_public(medicine_id: int) -> Medicine:
    med = Medicine.objects.filter(id=medicine_id, is_deleted=False).first()
    if med is None:
        raise NotFound('Medicine not found')
    return med


def admin_list():
    return Medicine.objects.all().order_by('-created_at', '-id')


def admin_get(medicine_id: int) -> Medicine:
    med = Medicine.objects.filter(id=medicine_id).first()
    if med is None:
        raise NotFound('Medicine not found')
    return med


def _apply(med: Medicine, data: Dict[str, Any], image=None) -> None:
    for key, value in data.items():
        field = FIELD_MAP.get(key)
        if field is None:
            continue
        if key in _FREE_TEXT and isinstance(value, str):
            value = bleach.clean(value.strip(), tags=set(), strip=True)
        setattr(med, field, value)
    if image is not None:
        validate_image(image)
        med.image = image


@transaction.atomic
def create(data: Dict[str, Any], image=None) -> Medicine:
    med = Medicine()
    _apply(med, data, image)
    med.save()
    return med


@transaction.atomic
def update(medicine_id: int, data: Dict[str, Any], image=None) -> Medicine:
    med = Medicine.objects.select_for_update().filter(id=medicine_id).first()
    if med is None:
        raise NotFound('Medicine not found')
    _apply(med, data, image)
    med.save()
    return med


def soft_delete(medicine_id: int) -> Medicine:
    med = admin_get(medicine_id)
    med.is_deleted = True
    med.save(update_fields=['is_deleted', 'updated_at'])
    return med
