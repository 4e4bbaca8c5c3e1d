"""
Custom authentication backend for token-based auth.

This module defines a subclass of Django REST framework's
``TokenAuthentication`` that pins the ``keyword`` used in the
``Authorization`` header and exposes a token lookup that the WebSocket
middleware shares with the HTTP stack.  Keeping this apart from the views
avoids circular imports when DRF loads authentication classes.
"""
from __future__ import annotations

from rest_framework import authentication


class TokenAuthentication(authentication.TokenAuthentication):
    """Token authentication using the ``Token`` keyword.

    Unverified accounts cannot hold a token in practice (login refuses
    them) but a token minted before an account was demoted keeps working
    until it is deleted.
    """

    keyword = 'Token'


def user_for_token(key: str):
    """Return the active user owning DRF token ``key`` or ``None``."""
    if not key:
        return None
    model = TokenAuthentication().get_model()
    token = model.objects.select_related('user').filter(key=key).first()
    if token is None or not token.user.is_active:
        return None
    return token.user
