import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from core.models import Appointment, DoctorAvailability, User
from core.services import availability
from core.services.availability import WEEKDAYS
from core.tests.conftest import make_user

pytestmark = pytest.mark.django_db


# ---------------------------------------------------------------------
# Doctors & availability
# ---------------------------------------------------------------------
def test_public_doctor_directory(client_for, doctor, patient):
    c = client_for()
    r = c.get('/api/doctors')
    assert r.status_code == 200
    assert [d['id'] for d in r.data['doctors']] == [doctor.id]
    entry = r.data['doctors'][0]
    assert entry['consultationFee'] == '20.00'
    assert [s['day'] for s in entry['slots']] == WEEKDAYS

    assert c.get(f'/api/doctors/{doctor.id}').data['doctor']['specialization'] == 'Cardiology'
    assert c.get(f'/api/doctors/{patient.id}').status_code == 404


def test_availability_defaults_to_empty_week(client_for):
    doc = make_user('fresh@example.com', User.ROLE_DOCTOR)
    r = client_for(doc).get('/api/doctor/availability')
    assert r.status_code == 200
    assert r.data['slots'] == [{'day': day, 'times': []} for day in WEEKDAYS]


def test_set_availability_replaces_template(client_for, doctor):
    slots = [{'day': 'Tuesday', 'times': [{'start': '08:00', 'end': '10:00'}]}]
    r = client_for(doctor).post('/api/doctor/availability', {'slots': slots}, format='json')
    assert r.status_code == 200
    assert len(r.data['slots']) == 7
    stored = DoctorAvailability.objects.get(doctor=doctor).slots
    assert stored == slots


@pytest.mark.parametrize('slots', [
    'monday',
    [{'day': 'Funday', 'times': []}],
    [{'day': 'Monday', 'times': [{'start': '9:00', 'end': '10:00'}]}],
    [{'day': 'Monday', 'times': [{'start': '11:00', 'end': '10:00'}]}],
])
def test_set_availability_validation(client_for, doctor, slots):
    r = client_for(doctor).post('/api/doctor/availability', {'slots': slots}, format='json')
    assert r.status_code == 400


def test_availability_is_doctor_only(client_for, patient):
    assert client_for(patient).get('/api/doctor/availability').status_code == 403


def test_covers_checks_weekday_window():
    from datetime import date
    monday = date(2026, 10, 19)
    slots = [{'day': 'Monday', 'times': [{'start': '09:00', 'end': '12:00'}]}]
    assert availability.covers(slots, monday, '09:00', '12:00')
    assert not availability.covers(slots, monday, '11:30', '12:30')
    assert not availability.covers(slots, date(2026, 10, 20), '09:00', '10:00')


# ---------------------------------------------------------------------
# Admin console
# ---------------------------------------------------------------------
def test_admin_stats(client_for, admin_user, patient, doctor, medicine, future_date):
    Appointment.objects.create(doctor=doctor, patient=patient, date=future_date, start_time='10:00', end_time='10:30')
    r = client_for(admin_user).get('/api/admin/stats')
    assert r.status_code == 200
    assert (r.data['patients'], r.data['doctors'], r.data['appointments'], r.data['medicines'], r.data['orders']) \
        == (1, 1, 1, 1, 0)


def test_admin_user_listing_and_delete(client_for, admin_user, patient, doctor):
    c = client_for(admin_user)
    r = c.get('/api/admin/users', {'role': 'doctor'})
    assert [u['id'] for u in r.data['users']] == [doctor.id]
    assert c.delete(f'/api/admin/users/{patient.id}').status_code == 200
    assert not User.objects.filter(id=patient.id).exists()
    assert c.delete(f'/api/admin/users/{admin_user.id}').status_code == 403
    other_admin = make_user('admin2@example.com', User.ROLE_ADMIN)
    assert c.delete(f'/api/admin/users/{other_admin.id}').status_code == 403
    assert c.delete('/api/admin/users/99999').status_code == 404


def test_admin_endpoints_reject_other_roles(client_for, doctor):
    for url in ('/api/admin/stats', '/api/admin/users', '/api/admin/orders'):
        r = client_for(doctor).get(url)
        assert r.status_code == 403
        assert r.data['error']['code'] == 'permission_denied'


# ---------------------------------------------------------------------
# Ops
# ---------------------------------------------------------------------
def test_healthz(client):
    r = client.get('/healthz')
    assert r.status_code == 200
    assert r.json() == {'ok': True, 'db': True}


def test_seed_admin_is_idempotent(settings):
    settings.ADMIN_EMAIL = 'Root@MedCare.local'
    settings.ADMIN_PASSWORD = 'R00t!Pass'
    call_command('seed_admin')
    call_command('seed_admin')
    admin = User.objects.get(role=User.ROLE_ADMIN)
    assert admin.email == 'root@medcare.local'
    assert admin.is_verified and admin.check_password('R00t!Pass')


def test_seed_admin_requires_credentials(settings):
    settings.ADMIN_EMAIL = ''
    with pytest.raises(CommandError):
        call_command('seed_admin')


def test_ensure_demo_users():
    call_command('ensure_demo_users')
    call_command('ensure_demo_users')
    assert User.objects.count() == 3
    doc = User.objects.get(role=User.ROLE_DOCTOR)
    assert [s['day'] for s in DoctorAvailability.objects.get(doctor=doc).slots][:1] == ['Monday']
