"""
Endpoints de paiement (/payment).
- create-payment / confirm-payment: utilisateur authentifié ou public.
- webhook: authentifié par la signature de la passerelle.
- history / membership-summary: utilisateur authentifié.
"""
import logging
from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import BaseModel, Field

from gymstore import config
from gymstore.errors import Forbidden, ValidationError
from gymstore.subscriptions import service as subscriptions_service
from gymstore.utils.rate_limit import optional_rate_limit
from gymstore.utils.security import optional_user, require_user
from . import history as payments_history
from . import service as payments_service
from .gateway import PaymentGateway, get_gateway

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/payment", tags=["Payments"])


class CreatePaymentRequest(BaseModel):
    price: float
    userId: Optional[str] = None
    subscriptionId: Optional[str] = None
    billingPeriod: Optional[Literal["monthly", "yearly"]] = None
    testMode: bool = False
    idempotencyKey: Optional[str] = None

class ConfirmPaymentRequest(BaseModel):
    paymentIntentId: str = Field(min_length=1)


def _resolve_user_id(user: Optional[Dict[str, Any]], body_user_id: Optional[str]) -> Optional[str]:
    """L'utilisateur authentifié prime; un userId différent dans le body est refusé."""
    if user:
        if body_user_id and body_user_id != user["id"]:
            raise Forbidden("userId ne correspond pas à l'utilisateur authentifié")
        return user["id"]
    return body_user_id or None

# module gymstore.payments.views
@router.post("/create-payment", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_payment(
    req: CreatePaymentRequest,
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
    user: Optional[Dict[str, Any]] = Depends(optional_user),
    gateway: PaymentGateway = Depends(get_gateway),
):
    """
    Crée un payment intent et l'enregistrement local 'pending'.
    - Idempotency-Key (header, ou idempotencyKey dans le body): rejouer la requête
      renvoie le même intent au lieu d'en créer un second.
    - Réponse: {clientSecret, paymentIntentId, orderId}
    """
    return payments_service.create_payment(
        gateway,
        user_id=_resolve_user_id(user, req.userId),
        price=req.price,
        subscription_id=req.subscriptionId,
        billing_period=req.billingPeriod,
        test_mode=req.testMode,
        idempotency_key=idempotency_key or req.idempotencyKey,
    )

@router.post("/confirm-payment")
def confirm_payment(req: ConfirmPaymentRequest, gateway: PaymentGateway = Depends(get_gateway)):
    """
    Réconcilie le paiement avec le statut de la passerelle.
    - Réponse: {success, orderId, alreadyProcessed, sideEffectsApplied}
    - 400 si la passerelle ne rapporte pas 'succeeded' (l'enregistrement passe à failed)
    """
    return payments_service.confirm_payment(gateway, req.paymentIntentId)

@router.post("/webhook", include_in_schema=False)
async def payment_webhook(request: Request, gateway: PaymentGateway = Depends(get_gateway)):
    """
    Webhook de la passerelle: payment_intent.succeeded / payment_intent.canceled réconciliés,
    payment_intent.payment_failed acquitté sans transition.
    - Signature vérifiée via gateway.parse_event (Stripe-Signature + STRIPE_WEBHOOK_SECRET)
    - 400 si signature/payload invalide
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    try:
        event = gateway.parse_event(payload, signature)
    except HTTPException:
        raise
    except Exception:
        logger.exception("payments.webhook invalid payload")
        raise ValidationError("Invalid webhook payload")
    result = payments_service.handle_webhook_event(gateway, event)
    logger.info("payments.webhook type=%s result=%s", (event or {}).get("type"), result)
    return result

@router.get("/config")
def payment_config():
    """Clé publique et devise pour initialiser le client de paiement."""
    return {"publishableKey": config.STRIPE_PUBLIC_KEY, "currency": config.CURRENCY}

@router.get("/history")
def purchase_history(user: Dict[str, Any] = Depends(require_user)):
    data = payments_history.get_purchase_history(user["id"])
    return {"success": True, "message": "Purchase history retrieved successfully", "data": data}

@router.get("/membership-summary")
def membership_summary(user: Dict[str, Any] = Depends(require_user)):
    data = subscriptions_service.membership_summary(user["id"])
    return {"success": True, "message": "Membership summary retrieved successfully", "data": data}
