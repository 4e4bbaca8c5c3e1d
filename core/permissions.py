"""
Custom permission classes for role based access control.
"""
from rest_framework.permissions import BasePermission


def _role_of(request):
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    return getattr(user, "role", None)


class IsAdminRole(BasePermission):
    """Allow access only to users with the admin role."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role_of(request) == "admin"


class IsPatientRole(BasePermission):
    """Allow access only to users with the patient role."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role_of(request) == "patient"


class IsDoctorRole(BasePermission):
    """Allow access only to users with the doctor role."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role_of(request) == "doctor"


class IsAppointmentParty(BasePermission):
    """Patient or doctor; ownership of the appointment is checked by the service."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role_of(request) in {"patient", "doctor"}
