"""
Appointment endpoints.

Patients book and cancel; the assigned doctor approves, rejects, completes
or cancels.  State rules live in ``core.services.appointments``.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.permissions import IsAppointmentParty, IsDoctorRole, IsPatientRole
from core.serializers.appointments import BookAppointmentSerializer, DoctorAppointmentsQuerySerializer
from core.services import appointments
from core.services.context import build_context


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPatientRole])
def book_appointment(request):
    s = BookAppointmentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    appt = appointments.book(
        build_context(), request.user,
        doctor_id=vd['doctorId'], on=vd['date'],
        start_time=vd['startTime'], end_time=vd['endTime'], reason=vd.get('reason', ''),
    )
    return Response({
        'ok': True,
        'message': 'Appointment created, awaiting doctor approval',
        'appointmentId': appt.id,
        'appointment': appointments.serialize_appointment(appt),
    }, status=201)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsPatientRole])
def patient_appointments(request):
    items = appointments.list_for_patient(request.user)
    return Response({'ok': True, 'appointments': [appointments.serialize_appointment(a) for a in items]})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def doctor_appointments(request):
    """Doctors see their own schedule; other callers must pass ``doctorId``."""
    q = DoctorAppointmentsQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    items = appointments.list_for_doctor(request.user, q.validated_data.get('doctorId'),
                                         q.validated_data.get('date'))
    return Response({'ok': True, 'appointments': [appointments.serialize_appointment(a) for a in items]})


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def approve_appointment(request, appointment_id: int):
    appt = appointments.approve(build_context(), request.user, appointment_id)
    return Response({'ok': True, 'message': 'Approved. Waiting for payment.',
                     'appointment': appointments.serialize_appointment(appt)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def reject_appointment(request, appointment_id: int):
    appt = appointments.reject(build_context(), request.user, appointment_id)
    return Response({'ok': True, 'message': 'Appointment rejected.',
                     'appointment': appointments.serialize_appointment(appt)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def complete_appointment(request, appointment_id: int):
    appt = appointments.complete(build_context(), request.user, appointment_id)
    return Response({'ok': True, 'message': 'Appointment completed.',
                     'appointment': appointments.serialize_appointment(appt)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAppointmentParty])
def cancel_appointment(request, appointment_id: int):
    appt = appointments.cancel(build_context(), request.user, appointment_id)
    return Response({'ok': True, 'message': 'Cancelled.',
                     'appointment': appointments.serialize_appointment(appt)})
