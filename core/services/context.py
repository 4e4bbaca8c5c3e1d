"""
Per-request service wiring.

Views build a :class:`ServiceContext` and hand it to the services instead
of the services reaching for module level clients.  Tests swap the payment
gateway through ``PAYMENT_GATEWAY_CLASS``.
"""
from __future__ import annotations

from dataclasses import dataclass

from django.conf import settings
from django.utils.module_loading import import_string

from core.services.notifications import Notifier
from core.services.payments import PaymentGateway


@dataclass
class ServiceContext:
    gateway: PaymentGateway
    notifier: Notifier


def build_gateway() -> PaymentGateway:
    gateway_cls = import_string(settings.PAYMENT_GATEWAY_CLASS)
    return gateway_cls()


def build_context() -> ServiceContext:
    return ServiceContext(gateway=build_gateway(), notifier=Notifier())
