from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.serializers.auth import ProfileUpdateSerializer
from core.services import accounts
from core.services.audit import log_action


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def get_profile(request):
    return Response({'ok': True, 'user': accounts.serialize_user(request.user)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def update_profile(request):
    """Update whitelisted profile fields; role, email and verification are not writable here."""
    s = ProfileUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    user = accounts.update_profile(request.user, s.validated_data)
    log_action(user=user, action='profile_update', object_type='user', object_id=user.id,
               detail={'fields': sorted(s.validated_data)})
    return Response({'ok': True, 'user': accounts.serialize_user(user)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def upload_picture(request):
    f = request.FILES.get('profilePic')
    if f is None:
        raise ValidationError('profilePic file is required')
    user = accounts.upload_picture(request.user, f)
    return Response({'ok': True, 'profilePic': user.profile_pic.url, 'user': accounts.serialize_user(user)})
