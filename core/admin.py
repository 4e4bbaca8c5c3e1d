"""
Django admin registrations for the core models.

This module hooks the core models into Django's built-in admin interface
so that staff can inspect and correct data via ``/admin/``.  Appointment
status changes made here bypass the workflow and its notifications, so
the status fields are read-only.
"""

from django.contrib import admin

from .models import (
    User,
    DoctorAvailability,
    Appointment,
    AppointmentTransition,
    Medicine,
    Cart,
    CartItem,
    Order,
    OrderItem,
    Notification,
    WebhookEvent,
    AuditEvent,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('email', 'name', 'role', 'is_verified', 'is_staff', 'date_joined')
    list_filter = ('role', 'is_verified')
    search_fields = ('email', 'name', 'specialization')
    exclude = ('password', 'otp', 'otp_expiry')


@admin.register(DoctorAvailability)
class DoctorAvailabilityAdmin(admin.ModelAdmin):
    list_display = ('doctor', 'updated_at')
    search_fields = ('doctor__email', 'doctor__name')


class AppointmentTransitionInline(admin.TabularInline):
    model = AppointmentTransition
    extra = 0
    readonly_fields = ('from_status', 'to_status', 'actor', 'reason', 'timestamp')
    can_delete = False


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'doctor', 'patient', 'date', 'start_time', 'end_time', 'status', 'payment_status', 'amount')
    list_filter = ('status', 'payment_status', 'date')
    search_fields = ('doctor__email', 'patient__email', 'transaction_id', 'invoice_number')
    readonly_fields = ('status', 'payment_status', 'transaction_id', 'invoice_number', 'paid_at',
                       'admin_fee', 'doctor_earning')
    inlines = [AppointmentTransitionInline]


@admin.register(Medicine)
class MedicineAdmin(admin.ModelAdmin):
    list_display = ('name', 'category', 'mtype', 'price', 'stock_quantity', 'is_deleted')
    list_filter = ('category', 'mtype', 'is_deleted')
    search_fields = ('name',)


class CartItemInline(admin.TabularInline):
    model = CartItem
    extra = 0


@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    list_display = ('user', 'total_amount', 'updated_at')
    inlines = [CartItemInline]


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'total_amount', 'payment_status', 'order_status', 'invoice_number', 'created_at')
    list_filter = ('order_status', 'payment_status')
    search_fields = ('user__email', 'invoice_number', 'transaction_id')
    inlines = [OrderItemInline]


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'ntype', 'read', 'created_at')
    list_filter = ('ntype', 'read')
    search_fields = ('user__email', 'message')


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    list_display = ('event_id', 'event_type', 'received_at')
    search_fields = ('event_id',)


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('id', 'action', 'user', 'object_type', 'object_id', 'created_at')
    list_filter = ('action', 'object_type')
