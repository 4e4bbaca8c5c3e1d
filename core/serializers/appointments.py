from rest_framework import serializers


class BookAppointmentSerializer(serializers.Serializer):
    doctorId = serializers.IntegerField()
    date = serializers.DateField()
    startTime = serializers.CharField(max_length=5)
    endTime = serializers.CharField(max_length=5)
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class DoctorAppointmentsQuerySerializer(serializers.Serializer):
    doctorId = serializers.IntegerField(required=False)
    date = serializers.DateField(required=False)


class AvailabilitySerializer(serializers.Serializer):
    # Shape is checked in the availability service
    slots = serializers.JSONField()


class AppointmentIntentSerializer(serializers.Serializer):
    appointmentId = serializers.IntegerField()
