"""
Durable notifications and best-effort real-time pushes.

A :class:`Notifier` writes the ``Notification`` row inside the caller's
transaction and schedules the push to the user's channel group for after
commit.  A push that fails is logged; it never raises into the caller and
never undoes the database write.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound

from core.models import Notification, User

logger = logging.getLogger(__name__)

PUSH_MESSAGE_TYPE = 'push.event'


def user_room(user_id: int) -> str:
    return f"user_{user_id}"


def serialize_notification(n: Notification) -> Dict[str, Any]:
    return {
        'id': n.id,
        'userId': n.user_id,
        'type': n.ntype,
        'message': n.message,
        'targetUrl': n.target_url,
        'meta': n.meta or {},
        'read': n.read,
        'readAt': n.read_at.isoformat() if n.read_at else None,
        'createdAt': n.created_at.isoformat() if n.created_at else None,
    }


class Notifier:
    """Writes notifications and pushes events to ``user_<id>`` groups."""

    def __init__(self, channel_layer=None):
        self.channel_layer = channel_layer if channel_layer is not None else get_channel_layer()

    def notify(self, user: User, ntype: str, message: str, target_url: str = '',
               meta: Optional[Dict[str, Any]] = None) -> Notification:
        n = Notification.objects.create(
            user=user, ntype=ntype, message=message,
            target_url=target_url or '', meta=meta or {},
        )
        self.push(user.id, 'notification:new', serialize_notification(n))
        return n

    def push(self, user_id: int, event: str, data: Dict[str, Any]) -> None:
        """Send ``event`` to one user once the surrounding transaction commits."""
        transaction.on_commit(lambda: self._send(user_id, event, data))

    def push_many(self, user_ids: Iterable[int], event: str, data: Dict[str, Any]) -> None:
        for uid in dict.fromkeys(user_ids):
            self.push(uid, event, data)

    def _send(self, user_id: int, event: str, data: Dict[str, Any]) -> None:
        if self.channel_layer is None:
            return
        try:
            async_to_sync(self.channel_layer.group_send)(
                user_room(user_id), {'type': PUSH_MESSAGE_TYPE, 'event': event, 'data': data},
            )
        except Exception:
            logger.warning('push %s to user %s failed', event, user_id, exc_info=True)


# ---------------------------------------------------------------------
# Inbox operations
# ---------------------------------------------------------------------
def list_for_user(user: User):
    return Notification.objects.filter(user=user).order_by('-created_at', '-id')


def unread_count(user: User) -> int:
    return Notification.objects.filter(user=user, read=False).count()


def _own(user: User, notification_id: int) -> Notification:
    n = Notification.objects.filter(id=notification_id, user=user).first()
    if n is None:
        raise NotFound('Notification not found')
    return n


@transaction.atomic
def mark_read(notifier: Notifier, user: User, notification_id: int) -> Notification:
    n = _own(user, notification_id)
    if not n.read:
        n.read = True
        n.read_at = timezone.now()
        n.save(update_fields=['read', 'read_at'])
    notifier.push(user.id, 'notification:read', {'id': n.id})
    return n


@transaction.atomic
def mark_all_read(notifier: Notifier, user: User) -> int:
    count = Notification.objects.filter(user=user, read=False).update(read=True, read_at=timezone.now())
    notifier.push(user.id, 'notification:read_all', {'updated': count})
    return count


@transaction.atomic
def delete(notifier: Notifier, user: User, notification_id: int) -> None:
    n = _own(user, notification_id)
    nid = n.id
    n.delete()
    notifier.push(user.id, 'notification:deleted', {'id': nid})
