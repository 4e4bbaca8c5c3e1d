"""
Authentication views.

Signup, email OTP verification, login and password reset, plus JWT
refresh and logout.  Login returns both a DRF token (used by the
WebSocket handshake) and a JWT pair; either authenticates API calls.
"""
from __future__ import annotations

from django.contrib.auth import authenticate
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenRefreshView

from core.serializers.auth import (
    EmailSerializer, LoginSerializer, OtpSerializer, ResetPasswordSerializer, SignupSerializer,
)
from core.services import accounts
from core.services.audit import log_action
from core.throttling import LoginRateThrottle, OtpRateThrottle


# ---------------------------------------------------------------------
# Signup & verification
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([AnonRateThrottle, OtpRateThrottle])
def signup_view(request):
    s = SignupSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    accounts.signup(**s.validated_data)
    return Response({'ok': True, 'message': 'User created successfully. OTP sent to email.'}, status=201)


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([AnonRateThrottle, OtpRateThrottle])
def verify_otp_view(request):
    s = OtpSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    accounts.verify_otp(s.validated_data['email'], s.validated_data['otp'])
    return Response({'ok': True, 'message': 'Account verified. You can now log in.'})


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([AnonRateThrottle, OtpRateThrottle])
def resend_otp_view(request):
    s = EmailSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    accounts.resend_otp(s.validated_data['email'])
    return Response({'ok': True, 'message': 'New OTP sent successfully'})


# ---------------------------------------------------------------------
# Email/password login
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([AnonRateThrottle, LoginRateThrottle])
def login_view(request):
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    email = s.validated_data['email']

    user = authenticate(request, username=email, password=s.validated_data['password'])
    if not user:
        log_action(user=None, action='login', object_type='user',
                   detail={'result': 'fail', 'email': email, 'ip': request.META.get('REMOTE_ADDR')})
        raise ValidationError('Invalid credentials.')
    if not user.is_verified:
        raise PermissionDenied('Please verify your email first.')

    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'ip': request.META.get('REMOTE_ADDR')})

    token_obj, _ = Token.objects.get_or_create(user=user)
    refresh = RefreshToken.for_user(user)
    return Response({
        'ok': True,
        'message': 'Login successful.',
        'token': token_obj.key,
        'jwt_access': str(refresh.access_token),
        'jwt_refresh': str(refresh),
        'role': user.role,
        'user': accounts.serialize_user(user),
    })


# ---------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([AnonRateThrottle, OtpRateThrottle])
def forgot_password_view(request):
    s = EmailSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    accounts.forgot_password(s.validated_data['email'])
    return Response({'ok': True, 'message': 'OTP sent to your email for password reset.'})


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([AnonRateThrottle, OtpRateThrottle])
def verify_reset_otp_view(request):
    s = OtpSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    accounts.verify_reset_otp(s.validated_data['email'], s.validated_data['otp'])
    return Response({'ok': True, 'message': 'OTP verified. You can now reset your password.'})


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([AnonRateThrottle, OtpRateThrottle])
def reset_password_view(request):
    s = ResetPasswordSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    accounts.reset_password(vd['email'], vd['otp'], vd['newPassword'])
    return Response({'ok': True, 'message': 'Password reset successful.'})


# ---------------------------------------------------------------------
# JWT: refresh & logout
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
def jwt_refresh_view(request):
    """Return a new access token from refresh token."""
    view = TokenRefreshView.as_view()
    resp = view(request._request)
    if isinstance(resp, Response):
        data = dict(resp.data)
        if 'access' in data and 'jwt_access' not in data:
            data['jwt_access'] = data.pop('access')
        return Response(data, status=resp.status_code)
    return resp


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def jwt_logout_view(request):
    """Blacklist current user's refresh tokens (all or a given one)."""
    refresh = request.data.get('refresh')
    count = 0
    if refresh:
        try:
            token = RefreshToken(refresh)
        except TokenError as exc:
            raise ValidationError(str(exc))
        if token.get('user_id') is not None and str(token['user_id']) != str(request.user.id):
            raise PermissionDenied('Token belongs to another user.')
        token.blacklist()
        count = 1
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    Token.objects.filter(user=request.user).delete()
    return Response({'ok': True, 'blacklisted': count})
