from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.services import notifications
from core.services.context import build_context


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def list_notifications(request):
    items = notifications.list_for_user(request.user)
    return Response({'ok': True, 'notifications': [notifications.serialize_notification(n) for n in items]})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def unread_count(request):
    return Response({'ok': True, 'count': notifications.unread_count(request.user)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def mark_read(request, notification_id: int):
    n = notifications.mark_read(build_context().notifier, request.user, notification_id)
    return Response({'ok': True, 'notification': notifications.serialize_notification(n)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def mark_all_read(request):
    updated = notifications.mark_all_read(build_context().notifier, request.user)
    return Response({'ok': True, 'updated': updated})


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def delete_notification(request, notification_id: int):
    notifications.delete(build_context().notifier, request.user, notification_id)
    return Response({'ok': True, 'message': 'Notification deleted'})
