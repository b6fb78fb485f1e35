"""
Module 'payments' (feature-first): point d'entrée public.
Réunit la passerelle (port + adaptateurs), le repository BD et les cas d'usage.
"""

from .gateway import GatewayIntent, PaymentGateway, get_gateway
from .stripe_client import StripeGateway
from .fake_gateway import FakeGateway
from .order_id import new_order_id
from .service import create_payment, confirm_payment, handle_webhook_event
from .history import project_history, get_purchase_history

__all__ = [
    # gateway
    "GatewayIntent",
    "PaymentGateway",
    "get_gateway",
    "StripeGateway",
    "FakeGateway",
    # order ids
    "new_order_id",
    # services
    "create_payment",
    "confirm_payment",
    "handle_webhook_event",
    "project_history",
    "get_purchase_history",
]
