from datetime import timedelta

import pytest
from django.core import mail
from django.core.files.uploadedfile import SimpleUploadedFile
from django.utils import timezone
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient

from core.models import AuditEvent, User
from core.tests.conftest import PASSWORD

pytestmark = pytest.mark.django_db

GOOD_PASSWORD = 'Val1d!Passw0rd'


def signup(client, **overrides):
    body = {'name': 'Ann Patient', 'email': 'Ann@Example.com', 'password': GOOD_PASSWORD, 'role': 'patient'}
    body.update(overrides)
    return client.post('/api/auth/signup', body, format='json')


def test_signup_creates_unverified_user_and_emails_otp():
    r = signup(APIClient())
    assert r.status_code == 201, r.data
    user = User.objects.get(email='ann@example.com')
    assert user.is_verified is False
    assert user.role == 'patient'
    assert user.otp and len(user.otp) == 6
    assert user.otp_expiry > timezone.now()
    assert len(mail.outbox) == 1
    assert user.otp in mail.outbox[0].body
    assert AuditEvent.objects.filter(action='signup', object_id=user.id).exists()


@pytest.mark.parametrize('password', ['alllowercase1!', 'NoDigits!!', 'NoSpecial123', 'A1!a'])
def test_signup_enforces_password_rules(password):
    assert signup(APIClient(), password=password).status_code == 400
    assert not User.objects.exists()


def test_signup_accepts_minimal_strong_password():
    assert signup(APIClient(), password='short1!A').status_code == 201


def test_signup_rejects_duplicate_email_and_admin_role():
    client = APIClient()
    assert signup(client).status_code == 201
    assert signup(client, email='ann@example.com').status_code == 400
    assert signup(client, email='boss@example.com', role='admin').status_code == 400


def test_verify_otp_then_login():
    client = APIClient()
    signup(client)
    user = User.objects.get(email='ann@example.com')

    r = client.post('/api/auth/login', {'email': 'ann@example.com', 'password': GOOD_PASSWORD}, format='json')
    assert r.status_code == 403

    assert client.post('/api/auth/verify-otp', {'email': user.email, 'otp': '000000' if user.otp != '000000' else '111111'},
                       format='json').status_code == 400
    r = client.post('/api/auth/verify-otp', {'email': user.email, 'otp': user.otp}, format='json')
    assert r.status_code == 200
    user.refresh_from_db()
    assert user.is_verified and user.otp is None

    r = client.post('/api/auth/login', {'email': 'ANN@example.com', 'password': GOOD_PASSWORD}, format='json')
    assert r.status_code == 200
    assert r.data['token'] == Token.objects.get(user=user).key
    assert r.data['jwt_access'] and r.data['jwt_refresh']
    assert r.data['user']['role'] == 'patient'


def test_expired_otp_is_rejected():
    client = APIClient()
    signup(client)
    user = User.objects.get(email='ann@example.com')
    User.objects.filter(id=user.id).update(otp_expiry=timezone.now() - timedelta(minutes=1))
    r = client.post('/api/auth/verify-otp', {'email': user.email, 'otp': user.otp}, format='json')
    assert r.status_code == 400


def test_unknown_email_is_404():
    client = APIClient()
    assert client.post('/api/auth/verify-otp', {'email': 'nobody@example.com', 'otp': '123456'},
                       format='json').status_code == 404
    assert client.post('/api/auth/resend-otp', {'email': 'nobody@example.com'}, format='json').status_code == 404
    assert client.post('/api/auth/forgot-password', {'email': 'nobody@example.com'}, format='json').status_code == 404


def test_bad_credentials_are_400(patient):
    r = APIClient().post('/api/auth/login', {'email': patient.email, 'password': 'wrong'}, format='json')
    assert r.status_code == 400
    assert r.data == {'ok': False, 'error': {'code': 'invalid', 'message': 'Invalid credentials.'}}


def test_login_ignores_role_in_body(patient):
    r = APIClient().post('/api/auth/login', {'email': patient.email, 'password': PASSWORD, 'role': 'admin'},
                         format='json')
    assert r.status_code == 200
    patient.refresh_from_db()
    assert patient.role == 'patient'


def test_password_reset_requires_otp(patient):
    client = APIClient()
    assert client.post('/api/auth/forgot-password', {'email': patient.email}, format='json').status_code == 200
    patient.refresh_from_db()
    otp = patient.otp

    assert client.post('/api/auth/verify-reset-otp', {'email': patient.email, 'otp': otp},
                       format='json').status_code == 200
    patient.refresh_from_db()
    assert patient.otp == otp

    body = {'email': patient.email, 'otp': otp, 'newPassword': 'weak'}
    assert client.post('/api/auth/reset-password', body, format='json').status_code == 400
    body['newPassword'] = 'N3w!Password'
    body['otp'] = '999999' if otp != '999999' else '888888'
    assert client.post('/api/auth/reset-password', body, format='json').status_code == 400
    body['otp'] = otp
    assert client.post('/api/auth/reset-password', body, format='json').status_code == 200

    patient.refresh_from_db()
    assert patient.check_password('N3w!Password')
    assert patient.otp is None


def test_logout_blacklists_refresh_token(patient):
    client = APIClient()
    login = client.post('/api/auth/login', {'email': patient.email, 'password': PASSWORD}, format='json').data
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {login['jwt_access']}")
    r = client.post('/api/auth/logout', {'refresh': login['jwt_refresh']}, format='json')
    assert r.status_code == 200
    assert r.data['blacklisted'] == 1

    r = APIClient().post('/api/auth/refresh', {'refresh': login['jwt_refresh']}, format='json')
    assert r.status_code == 401


def test_refresh_returns_new_access(patient):
    login = APIClient().post('/api/auth/login', {'email': patient.email, 'password': PASSWORD}, format='json').data
    r = APIClient().post('/api/auth/refresh', {'refresh': login['jwt_refresh']}, format='json')
    assert r.status_code == 200
    assert r.data['jwt_access']


def test_token_header_authenticates(patient):
    token = Token.objects.create(user=patient)
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f'Token {token.key}')
    assert client.get('/api/profile').data['user']['email'] == patient.email
    assert APIClient().get('/api/profile').status_code == 401


# ---------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------
def test_profile_update_whitelist(client_for, doctor):
    r = client_for(doctor).put('/api/profile/update', {
        'name': 'Dr <i>Who</i>', 'consultationFee': '35.00', 'clinicAddress': 'Main St',
        'role': 'admin', 'email': 'hijack@example.com', 'isVerified': False,
    }, format='json')
    assert r.status_code == 200
    doctor.refresh_from_db()
    assert doctor.name == 'Dr Who'
    assert str(doctor.consultation_fee) == '35.00'
    assert doctor.clinic_address == 'Main St'
    assert doctor.role == 'doctor'
    assert doctor.email == 'doc@example.com'
    assert doctor.is_verified is True


def test_profile_update_validates_types(client_for, patient):
    assert client_for(patient).put('/api/profile/update', {'age': -3}, format='json').status_code == 400
    assert client_for(patient).put('/api/profile/update', {'gender': 'robot'}, format='json').status_code == 400


def test_profile_picture_upload(client_for, patient):
    c = client_for(patient)
    pic = SimpleUploadedFile('me.jpg', b'\xff\xd8\xff\xe0fakejpeg', content_type='image/jpeg')
    r = c.post('/api/profile/upload-picture', {'profilePic': pic}, format='multipart')
    assert r.status_code == 200, r.data
    patient.refresh_from_db()
    assert patient.profile_pic.name.startswith('profile_pics/')

    doc = SimpleUploadedFile('cv.pdf', b'%PDF-1.4', content_type='application/pdf')
    assert c.post('/api/profile/upload-picture', {'profilePic': doc}, format='multipart').status_code == 400
    assert c.post('/api/profile/upload-picture', {}, format='multipart').status_code == 400


# ---------------------------------------------------------------------
# Rate limits
# ---------------------------------------------------------------------
def test_otp_guessing_is_throttled(patient):
    client = APIClient()
    body = {'email': patient.email, 'otp': '000000'}
    codes = [client.post('/api/auth/verify-otp', body, format='json').status_code for _ in range(6)]
    assert codes == [400] * 5 + [429]
    r = client.post('/api/auth/reset-password', {**body, 'newPassword': 'N3w!Password'}, format='json')
    assert r.status_code == 429
    assert r.data['error']['code'] == 'throttled'


def test_login_is_throttled(patient):
    client = APIClient()
    body = {'email': patient.email, 'password': 'wrong'}
    codes = [client.post('/api/auth/login', body, format='json').status_code for _ in range(11)]
    assert codes == [400] * 10 + [429]
