from datetime import timedelta
from decimal import Decimal

import pytest
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from core.models import DoctorAvailability, Medicine, User
from core.services import notifications
from core.services.availability import WEEKDAYS
from core.tests.fakes import WEBHOOK_SECRET, FakeGateway, RecordingLayer

PASSWORD = 'Str0ng!Pass'


@pytest.fixture(autouse=True)
def _test_settings(settings, tmp_path):
    settings.PAYMENT_GATEWAY_CLASS = 'core.tests.fakes.FakeGateway'
    settings.STRIPE_SECRET_KEY = 'sk_test_dummy'
    settings.STRIPE_WEBHOOK_SECRET = WEBHOOK_SECRET
    settings.PLATFORM_FEE_PERCENT = 10
    settings.MEDIA_ROOT = str(tmp_path)
    # throttles count in the cache
    cache.clear()
    FakeGateway.reset()
    yield
    cache.clear()


@pytest.fixture
def layer(monkeypatch):
    rec = RecordingLayer()
    monkeypatch.setattr(notifications, 'get_channel_layer', lambda: rec)
    return rec


def make_user(email, role=User.ROLE_PATIENT, **extra):
    extra.setdefault('name', email.split('@')[0].title())
    extra.setdefault('is_verified', True)
    return User.objects.create_user(username=email, email=email, password=PASSWORD, role=role, **extra)


@pytest.fixture
def patient(db):
    return make_user('pat@example.com')


@pytest.fixture
def other_patient(db):
    return make_user('pat2@example.com')


@pytest.fixture
def doctor(db):
    doc = make_user('doc@example.com', User.ROLE_DOCTOR, specialization='Cardiology',
                    consultation_fee=Decimal('20.00'))
    DoctorAvailability.objects.create(
        doctor=doc,
        slots=[{'day': day, 'times': [{'start': '09:00', 'end': '17:00'}]} for day in WEEKDAYS],
    )
    return doc


@pytest.fixture
def admin_user(db):
    return make_user('admin@example.com', User.ROLE_ADMIN, is_staff=True)


@pytest.fixture
def client_for():
    def _client(user=None):
        c = APIClient()
        if user is not None:
            c.force_authenticate(user=user)
        return c
    return _client


@pytest.fixture
def future_date():
    return timezone.localdate() + timedelta(days=7)


@pytest.fixture
def medicine(db):
    return Medicine.objects.create(name='Paracetamol', category='Tablet', mtype='OTC',
                                   price=Decimal('5.50'), stock_quantity=10)


@pytest.fixture
def syrup(db):
    return Medicine.objects.create(name='Cough Syrup', category='Syrup', mtype='OTC',
                                   price=Decimal('3.25'), stock_quantity=4)
