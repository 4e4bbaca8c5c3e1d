"""
Per-client rate limits for the credential endpoints.

Function views built with ``@api_view`` never expose ``throttle_scope`` to
``ScopedRateThrottle``, so each scope gets its own throttle class that is
attached with ``@throttle_classes``.  Rates come from
``REST_FRAMEWORK['DEFAULT_THROTTLE_RATES']``.
"""
from rest_framework.throttling import SimpleRateThrottle


class _ClientScopeThrottle(SimpleRateThrottle):
    """Keyed on the client address whether or not the caller is logged in."""

    def get_cache_key(self, request, view):
        return self.cache_format % {'scope': self.scope, 'ident': self.get_ident(request)}


class LoginRateThrottle(_ClientScopeThrottle):
    scope = 'login'


class OtpRateThrottle(_ClientScopeThrottle):
    scope = 'otp'
