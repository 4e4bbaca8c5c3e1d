"""
API error types and the project-wide DRF exception handler.

Every API error leaves the service as ``{'ok': False, 'error': {'code',
'message'}}``.  Unhandled exceptions are logged with their traceback and
answered with a generic message so internals never reach the client.
"""
from __future__ import annotations

import logging

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class InvalidTransition(exceptions.APIException):
    """Raised when an entity is not in a state that allows the requested change."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Operation not allowed in the current state.'
    default_code = 'invalid_state'


class PaymentGatewayError(exceptions.APIException):
    """Raised when the payment processor rejects or fails a request."""
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = 'Payment processor unavailable.'
    default_code = 'payment_gateway_error'


def _error_code(exc) -> str:
    if isinstance(exc, exceptions.ValidationError):
        return 'invalid'
    if isinstance(exc, (exceptions.NotFound, Http404)):
        return 'not_found'
    if isinstance(exc, (exceptions.NotAuthenticated, exceptions.AuthenticationFailed,
                        exceptions.PermissionDenied, DjangoPermissionDenied)):
        return 'permission_denied'
    return getattr(exc, 'default_code', None) or 'api_error'


def _first_message(data) -> str:
    """Flatten DRF error data down to one human readable line."""
    if isinstance(data, dict):
        if 'detail' in data:
            return _first_message(data['detail'])
        for field, value in data.items():
            msg = _first_message(value)
            if field == 'non_field_errors':
                return msg
            return f"{field}: {msg}"
        return ''
    if isinstance(data, (list, tuple)):
        return _first_message(data[0]) if data else ''
    return str(data)


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        view = context.get('view') if context else None
        logger.error('Unhandled exception in %s', getattr(view, '__name__', view), exc_info=exc)
        return Response(
            {'ok': False, 'error': {'code': 'server_error', 'message': 'Internal server error'}},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    error = {'code': _error_code(exc), 'message': _first_message(resp.data)}
    if isinstance(exc, exceptions.ValidationError) and isinstance(resp.data, dict):
        error['fields'] = resp.data
    resp.data = {'ok': False, 'error': error}
    return resp
