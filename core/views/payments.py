"""
Payment intent endpoints and the processor webhook.

The webhook is a plain Django view: it must see the raw request body to
verify the signature, and it answers the processor directly instead of
through the API error envelope.
"""
from __future__ import annotations

import logging

from django.http import HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.permissions import IsPatientRole
from core.serializers.appointments import AppointmentIntentSerializer
from core.services import payments
from core.services.context import build_context

logger = logging.getLogger(__name__)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPatientRole])
def create_appointment_intent(request):
    s = AppointmentIntentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    data = payments.create_appointment_intent(build_context(), request.user, s.validated_data['appointmentId'])
    return Response({'ok': True, **data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPatientRole])
def create_medicine_intent(request):
    data = payments.create_medicine_intent(build_context(), request.user)
    return Response({'ok': True, **data})


@csrf_exempt
@require_POST
def stripe_webhook(request):
    ctx = build_context()
    try:
        event = ctx.gateway.construct_event(request.body, request.headers.get('Stripe-Signature', ''))
        result = payments.handle_webhook(ctx, event)
    except payments.WebhookSignatureError as exc:
        logger.warning('webhook signature verification failed: %s', exc)
        return HttpResponse(f'Webhook Error: {exc}', status=400, content_type='text/plain')
    except payments.WebhookPayloadError as exc:
        logger.warning('malformed webhook payload: %s', exc)
        return HttpResponse(f'Webhook Error: {exc}', status=400, content_type='text/plain')
    return JsonResponse(result)
