"""
URL mappings for the MedCare API.

Trailing slashes are deliberately omitted; ``APPEND_SLASH`` is off and the
front-end calls these paths exactly as written.
"""
from django.urls import path, include

from .auth_views import (
    signup_view, verify_otp_view, resend_otp_view, login_view,
    forgot_password_view, verify_reset_otp_view, reset_password_view,
    jwt_refresh_view, jwt_logout_view,
)
from .views import admin_console, appointments, cart, doctors, health, medicines, notifications, orders, payments, profile

urlpatterns = [
    # Health & metrics
    path('healthz', health.healthz),
    path('', include('django_prometheus.urls')),

    # Auth
    path('api/auth/signup', signup_view),
    path('api/auth/verify-otp', verify_otp_view),
    path('api/auth/resend-otp', resend_otp_view),
    path('api/auth/login', login_view),
    path('api/auth/forgot-password', forgot_password_view),
    path('api/auth/verify-reset-otp', verify_reset_otp_view),
    path('api/auth/reset-password', reset_password_view),
    path('api/auth/refresh', jwt_refresh_view),
    path('api/auth/logout', jwt_logout_view),

    # Profile
    path('api/profile', profile.get_profile),
    path('api/profile/update', profile.update_profile),
    path('api/profile/upload-picture', profile.upload_picture),

    # Doctors
    path('api/doctors', doctors.list_doctors),
    path('api/doctors/<int:doctor_id>', doctors.doctor_detail),
    path('api/doctor/availability', doctors.my_availability),

    # Appointments
    path('api/appointments/book', appointments.book_appointment),
    path('api/appointments/patient', appointments.patient_appointments),
    path('api/appointments/doctor', appointments.doctor_appointments),
    path('api/appointments/approve/<int:appointment_id>', appointments.approve_appointment),
    path('api/appointments/reject/<int:appointment_id>', appointments.reject_appointment),
    path('api/appointments/cancel/<int:appointment_id>', appointments.cancel_appointment),
    path('api/appointments/complete/<int:appointment_id>', appointments.complete_appointment),

    # Payments
    path('api/payments/create-payment-intent', payments.create_appointment_intent),
    path('api/orders/create-payment-intent', payments.create_medicine_intent),
    path('api/stripe/webhook', payments.stripe_webhook),

    # Orders
    path('api/orders/my', orders.my_orders),
    path('api/orders/<int:order_id>', orders.order_detail),

    # Cart
    path('api/cart', cart.get_cart),
    path('api/cart/add', cart.add_to_cart),
    path('api/cart/update', cart.update_cart_item),
    path('api/cart/remove/<int:medicine_id>', cart.remove_from_cart),
    path('api/cart/clear', cart.clear_cart),

    # Medicines
    path('api/medicines', medicines.list_medicines),
    path('api/medicines/<int:medicine_id>', medicines.medicine_detail),

    # Notifications
    path('api/notifications', notifications.list_notifications),
    path('api/notifications/unread-count', notifications.unread_count),
    path('api/notifications/read-all', notifications.mark_all_read),
    path('api/notifications/<int:notification_id>/read', notifications.mark_read),
    path('api/notifications/<int:notification_id>', notifications.delete_notification),

    # Admin console
    path('api/admin/stats', admin_console.stats),
    path('api/admin/users', admin_console.list_users),
    path('api/admin/users/<int:user_id>', admin_console.delete_user),
    path('api/admin/medicines', medicines.admin_medicines),
    path('api/admin/medicines/<int:medicine_id>', medicines.admin_medicine_detail),
    path('api/admin/orders', orders.admin_orders),
    path('api/admin/orders/<int:order_id>', orders.admin_order_detail),
    path('api/admin/orders/<int:order_id>/status', orders.admin_order_status),
]
