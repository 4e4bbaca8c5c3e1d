"""
Public doctor directory and the doctor's own availability template.
"""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from core.models import User
from core.permissions import IsDoctorRole
from core.serializers.appointments import AvailabilitySerializer
from core.services import availability
from core.services.accounts import serialize_user


def _serialize_doctor(u: User) -> dict:
    data = serialize_user(u)
    avail = getattr(u, 'availability', None)
    data['slots'] = availability.full_week(avail.slots if avail else [])
    return data


def _doctors():
    return User.objects.filter(role=User.ROLE_DOCTOR, is_active=True).select_related('availability')


@api_view(['GET'])
@permission_classes([AllowAny])
def list_doctors(request):
    return Response({'ok': True, 'doctors': [_serialize_doctor(u) for u in _doctors().order_by('name', 'id')]})


@api_view(['GET'])
@permission_classes([AllowAny])
def doctor_detail(request, doctor_id: int):
    doctor = _doctors().filter(id=doctor_id).first()
    if doctor is None:
        raise NotFound('Doctor not found')
    return Response({'ok': True, 'doctor': _serialize_doctor(doctor)})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def my_availability(request):
    """GET returns the weekly template with all seven days; POST replaces it."""
    if request.method == 'GET':
        return Response({'ok': True, 'slots': availability.slots_for(request.user)})
    s = AvailabilitySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    slots = availability.set_slots(request.user, s.validated_data['slots'])
    return Response({'ok': True, 'message': 'Availability saved', 'slots': slots})
