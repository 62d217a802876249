"""Event handlers that deliver customer notifications.

They run inside the outbox relay: an exception marks the stored event as
failed and it is retried later, so handlers raise instead of logging and
carrying on.
"""

from __future__ import annotations

import structlog
from django.conf import settings
from django.core.mail import send_mail
from django.template.loader import render_to_string

from modules.accounts.events import OtpIssued
from modules.notifications import messages
from modules.notifications.gateways import get_sms_gateway
from modules.orders.events import OrderPlaced, OrderStatusChanged
from modules.orders.repositories.django_repository import OrderDjangoRepository
from shared.domain.bus import IEventBus, IEventHandler

logger = structlog.get_logger(__name__)


class OtpSmsHandler(IEventHandler[OtpIssued]):
    def handle(self, event: OtpIssued) -> None:
        get_sms_gateway().send(event.phone, messages.otp_sms(event.code, event.ttl_minutes))
        logger.info("notification.otp_sms_sent", phone=event.phone, purpose=event.purpose)


class OrderPlacedSmsHandler(IEventHandler[OrderPlaced]):
    def handle(self, event: OrderPlaced) -> None:
        get_sms_gateway().send(
            event.customer_phone, messages.order_confirmation_sms(event.order_number)
        )
        logger.info("notification.order_sms_sent", order_number=event.order_number)


class OrderPlacedEmailHandler(IEventHandler[OrderPlaced]):
    def __init__(self, order_repository=None) -> None:
        self._orders = order_repository or OrderDjangoRepository()

    def handle(self, event: OrderPlaced) -> None:
        if not event.customer_email:
            return
        order = self._orders.get_by_number(event.order_number)
        if order is None:
            logger.warning("notification.order_missing", order_number=event.order_number)
            return

        context = {
            "order": order,
            "tracking_url": messages.tracking_url(order.order_number),
            "store_name": settings.STORE_NAME,
        }
        send_mail(
            subject=messages.order_confirmation_subject(order.order_number),
            message=render_to_string("notifications/order_confirmation.txt", context),
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[event.customer_email],
            html_message=render_to_string("notifications/order_confirmation.html", context),
        )
        logger.info("notification.order_email_sent", order_number=order.order_number)


class OrderStatusSmsHandler(IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        text = messages.status_sms(event.order_number, event.new_status)
        if text is None:
            return
        get_sms_gateway().send(event.customer_phone, text)
        logger.info(
            "notification.status_sms_sent",
            order_number=event.order_number,
            status=event.new_status,
        )


def register_handlers(bus: IEventBus) -> None:
    bus.subscribe(OtpIssued, OtpSmsHandler())
    bus.subscribe(OrderPlaced, OrderPlacedSmsHandler())
    bus.subscribe(OrderPlaced, OrderPlacedEmailHandler())
    bus.subscribe(OrderStatusChanged, OrderStatusSmsHandler())
