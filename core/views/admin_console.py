"""
Admin console endpoints: headline counts and user management.
"""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound, PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.models import Appointment, Medicine, Order, User
from core.permissions import IsAdminRole
from core.services.accounts import serialize_user
from core.services.audit import log_action


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def stats(request):
    return Response({
        'ok': True,
        'patients': User.objects.filter(role=User.ROLE_PATIENT).count(),
        'doctors': User.objects.filter(role=User.ROLE_DOCTOR).count(),
        'appointments': Appointment.objects.count(),
        'medicines': Medicine.objects.filter(is_deleted=False).count(),
        'orders': Order.objects.count(),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def list_users(request):
    qs = User.objects.all().order_by('-date_joined', '-id')
    role = request.query_params.get('role')
    if role:
        qs = qs.filter(role=role)
    return Response({'ok': True, 'users': [serialize_user(u) for u in qs]})


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def delete_user(request, user_id: int):
    target = User.objects.filter(id=user_id).first()
    if target is None:
        raise NotFound('User not found')
    if target.id == request.user.id:
        raise PermissionDenied('You cannot delete your own account.')
    if target.role == User.ROLE_ADMIN:
        raise PermissionDenied('Admins cannot be deleted here.')
    log_action(user=request.user, action='user_delete', object_type='user', object_id=target.id,
               detail={'email': target.email, 'role': target.role})
    target.delete()
    return Response({'ok': True, 'message': 'User deleted'})
