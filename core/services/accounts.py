"""
Account lifecycle: signup with email OTP verification, password reset and
profile editing.
"""
from __future__ import annotations

import logging
import re
import secrets
from datetime import timedelta
from typing import Any, Dict

import bleach
from django.conf import settings
from django.core.mail import send_mail
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from core.models import User
from core.services.audit import log_action
from core.services.uploads import validate_image

logger = logging.getLogger(__name__)

PASSWORD_RE = re.compile(r'^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[^A-Za-z0-9]).{8,}$')
PASSWORD_RULES = ('Password must be at least 8 characters and include uppercase, '
                  'lowercase, a number and a special character.')

# camelCase request key -> model field
PROFILE_FIELDS = {
    'name': 'name',
    'phone': 'phone',
    'bio': 'bio',
    'age': 'age',
    'gender': 'gender',
    'specialization': 'specialization',
    'experience': 'experience',
    'clinicAddress': 'clinic_address',
    'consultationFee': 'consultation_fee',
}


def serialize_user(u: User) -> Dict[str, Any]:
    data = {
        'id': u.id,
        'name': u.display_name,
        'email': u.email,
        'role': u.role,
        'isVerified': u.is_verified,
        'profilePic': u.profile_pic.url if u.profile_pic else '',
        'phone': u.phone,
        'bio': u.bio,
    }
    if u.role == User.ROLE_PATIENT:
        data.update({'age': u.age, 'gender': u.gender})
    if u.role == User.ROLE_DOCTOR:
        data.update({
            'specialization': u.specialization,
            'experience': u.experience,
            'clinicAddress': u.clinic_address,
            'consultationFee': str(u.consultation_fee) if u.consultation_fee is not None else None,
        })
    return data


def check_password_rules(password: str) -> None:
    if not PASSWORD_RE.match(password or ''):
        raise ValidationError(PASSWORD_RULES)


def _by_email(email: str) -> User:
    user = User.objects.filter(email__iexact=(email or '').strip()).first()
    if user is None:
        raise NotFound('User not found.')
    return user


def _issue_otp(user: User, subject: str, purpose: str) -> None:
    user.otp = f"{secrets.randbelow(1000000):06d}"
    user.otp_expiry = timezone.now() + timedelta(minutes=settings.OTP_TTL_MINUTES)
    user.save(update_fields=['otp', 'otp_expiry'])
    send_mail(
        subject,
        f'Your {purpose} OTP is {user.otp}. It will expire in {settings.OTP_TTL_MINUTES} minutes.',
        settings.DEFAULT_FROM_EMAIL,
        [user.email],
    )
    logger.info('otp issued to user %s for %s', user.id, purpose)


def _otp_matches(user: User, otp: str) -> bool:
    return bool(
        user.otp and otp and secrets.compare_digest(user.otp, str(otp))
        and user.otp_expiry and user.otp_expiry >= timezone.now()
    )


@transaction.atomic
def signup(*, name: str, email: str, password: str, role: str) -> User:
    check_password_rules(password)
    email = email.strip().lower()
    if User.objects.filter(email__iexact=email).exists():
        raise ValidationError('Email already registered.')
    user = User(username=email, email=email, name=bleach.clean(name.strip(), tags=set(), strip=True), role=role)
    user.set_password(password)
    user.save()
    _issue_otp(user, 'Verify your MedCare account', 'verification')
    log_action(user=user, action='signup', object_type='user', object_id=user.id, detail={'role': role})
    return user


def verify_otp(email: str, otp: str) -> User:
    user = _by_email(email)
    if not _otp_matches(user, otp):
        raise ValidationError('Invalid or expired OTP.')
    user.is_verified = True
    user.otp = None
    user.otp_expiry = None
    user.save(update_fields=['is_verified', 'otp', 'otp_expiry'])
    return user


def resend_otp(email: str) -> None:
    _issue_otp(_by_email(email), 'Your new MedCare OTP', 'verification')


def forgot_password(email: str) -> None:
    _issue_otp(_by_email(email), 'Reset your MedCare password', 'password reset')


def verify_reset_otp(email: str, otp: str) -> None:
    if not _otp_matches(_by_email(email), otp):
        raise ValidationError('Invalid or expired OTP.')


@transaction.atomic
def reset_password(email: str, otp: str, new_password: str) -> User:
    user = _by_email(email)
    if not _otp_matches(user, otp):
        raise ValidationError('Invalid or expired OTP.')
    check_password_rules(new_password)
    user.set_password(new_password)
    user.otp = None
    user.otp_expiry = None
    user.save(update_fields=['password', 'otp', 'otp_expiry'])
    log_action(user=user, action='password_reset', object_type='user', object_id=user.id)
    return user


def update_profile(user: User, data: Dict[str, Any]) -> User:
    changed = []
    for key, field in PROFILE_FIELDS.items():
        if key not in data:
            continue
        value = data[key]
        if isinstance(value, str):
            value = bleach.clean(value.strip(), tags=set(), strip=True)
        setattr(user, field, value)
        changed.append(field)
    if changed:
        user.save(update_fields=changed)
    return user


def upload_picture(user: User, f) -> User:
    validate_image(f)
    user.profile_pic = f
    user.save(update_fields=['profile_pic'])
    return user
