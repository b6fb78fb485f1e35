"""
Cas d'usage 'payments': orchestre la passerelle, les repositories et le panier.

- create_payment: validation, intent côté passerelle, enregistrement pending.
- confirm_payment: la passerelle fait foi; transition pending -> complete|failed
  gardée, puis effets de bord (activation d'abonnement ou vidage du panier).
"""
from datetime import datetime, timezone
import math
from typing import Any, Dict, List, Optional
from uuid import uuid4
import logging

from gymstore import config
from gymstore.cart import repository as cart_repository
from gymstore.cart import service as cart_service
from gymstore.cart.pricing import price_from_product
from gymstore.errors import (
    GatewayError,
    InvalidPrice,
    MalformedSubscriptionRequest,
    NotFound,
    PaymentAlreadySettled,
    PaymentNotSucceeded,
    PaymentPersistenceError,
    PaymentRecordNotFound,
    PriceMismatch,
    SubscriptionNotFound,
    ValidationError,
)
from gymstore.subscriptions import billing
from gymstore.subscriptions import repository as subscriptions_repository
from gymstore.users import repository as users_repository
from . import metadata as meta
from . import repository
from .gateway import PaymentGateway
from .order_id import new_order_id

logger = logging.getLogger(__name__)

SUBSCRIPTION_PLAN_FLAG = "plan_flag"
SUBSCRIPTION_ENTITLEMENT = "entitlement"

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

def _first_image_url(product: Dict[str, Any]) -> Optional[str]:
    images = product.get("image") or []
    if isinstance(images, list) and images:
        first = images[0]
        return first.get("url") if isinstance(first, dict) else str(first)
    return None

def snapshot_cart_items(user_id: str) -> List[Dict[str, Any]]:
    """
    Photographie du panier au moment de la création de l'intent.
    Prix unitaire = prix courant du produit; produits disparus ignorés.
    Un panier modifié entre création et confirmation n'est pas reflété ici.
    """
    cart = cart_repository.get_cart(user_id)
    items = (cart or {}).get("items") or []
    if not items:
        return []
    products = cart_repository.get_products_map(it["product_id"] for it in items)
    snapshot = []
    for it in items:
        product = products.get(str(it.get("product_id")))
        if not product:
            continue
        snapshot.append({
            "product_id": str(it.get("product_id")),
            "name": product.get("name"),
            "image_url": _first_image_url(product),
            "unit_price": price_from_product(product),
            "quantity": int(it.get("quantity") or 0),
            "size": it.get("size"),
        })
    return snapshot

def _validate_subscription(subscription_id: str, billing_period: str, price: float) -> Dict[str, Any]:
    plan = subscriptions_repository.get_subscription(subscription_id)
    if not plan:
        raise SubscriptionNotFound(f"Plan d'abonnement introuvable: {subscription_id}")
    if not plan.get("is_active", True):
        raise ValidationError("Ce plan d'abonnement n'est plus proposé")
    key = "price_yearly" if billing_period == billing.YEARLY else "price_monthly"
    expected = float(plan.get(key) or 0)
    if abs(float(price) - expected) > config.PRICE_TOLERANCE + 1e-9:
        raise PriceMismatch(f"Prix attendu {expected:.2f} pour la période {billing_period}")
    return plan

def create_payment(
    gateway: PaymentGateway,
    *,
    user_id: Optional[str] = None,
    price: float,
    subscription_id: Optional[str] = None,
    billing_period: Optional[str] = None,
    test_mode: bool = False,
    idempotency_key: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Crée un payment intent et l'enregistrement local 'pending' associé.
    Retourne {clientSecret, paymentIntentId, orderId}.
    """
    if price is None or not math.isfinite(float(price)) or not float(price) > 0:
        raise InvalidPrice()
    if bool(subscription_id) != bool(billing_period):
        raise MalformedSubscriptionRequest()
    if billing_period and billing_period not in billing.BILLING_PERIODS:
        raise ValidationError("billingPeriod doit valoir 'monthly' ou 'yearly'")
    if user_id and not users_repository.user_exists(user_id):
        raise NotFound(f"Utilisateur introuvable: {user_id}")
    if subscription_id:
        _validate_subscription(subscription_id, billing_period, price)
    if test_mode and not config.ALLOW_TEST_MODE:
        raise ValidationError("Le mode test n'est pas autorisé")

    idempotency_key = idempotency_key or str(uuid4())
    existing = repository.get_payment_by_idempotency_key(idempotency_key)
    if existing:
        intent = gateway.retrieve_intent(existing["transaction_id"])
        logger.info("payments.create_payment replay idempotency_key=%s order_id=%s", idempotency_key, existing.get("order_id"))
        return {
            "clientSecret": intent.client_secret,
            "paymentIntentId": intent.id,
            "orderId": existing.get("order_id"),
        }

    items = snapshot_cart_items(user_id) if (user_id and not subscription_id) else []
    order_id = new_order_id()
    amount_minor = int(round(float(price) * 100))
    metadata = meta.make_metadata(
        user_id=user_id,
        subscription_id=subscription_id,
        billing_period=billing_period,
        order_id=order_id,
        idempotency_key=idempotency_key,
    )
    intent = gateway.create_intent(
        amount_minor,
        config.CURRENCY,
        metadata,
        test_mode=bool(test_mode),
        idempotency_key=idempotency_key,
    )

    now = _now_iso()
    record = repository.insert_payment({
        "user_id": user_id,
        "subscription_id": subscription_id,
        "billing_period": billing_period,
        "price": amount_minor / 100,
        "currency": config.CURRENCY,
        "order_id": order_id,
        "items": items,
        "transaction_id": intent.id,
        "idempotency_key": idempotency_key,
        "payment_status": repository.PENDING,
        "test_mode": bool(test_mode),
        "created_at": now,
        "updated_at": now,
    })
    if record is None:
        # Requête concurrente avec la même clé: l'intent appartient déjà à un enregistrement
        owner = repository.get_payment_by_idempotency_key(idempotency_key)
        if owner and owner.get("transaction_id") == intent.id:
            logger.info("payments.create_payment concurrent replay idempotency_key=%s order_id=%s", idempotency_key, owner.get("order_id"))
            return {
                "clientSecret": intent.client_secret,
                "paymentIntentId": intent.id,
                "orderId": owner.get("order_id"),
            }
        # Compensation: l'intent distant ne doit pas survivre sans enregistrement local
        try:
            gateway.cancel_intent(intent.id)
        except GatewayError:
            logger.exception("payments.create_payment compensation failed intent_id=%s", intent.id)
        raise PaymentPersistenceError()

    logger.info("payments.create_payment intent_id=%s order_id=%s amount=%s", intent.id, order_id, amount_minor)
    return {
        "clientSecret": intent.client_secret,
        "paymentIntentId": intent.id,
        "orderId": order_id,
    }

def _activate_subscription(record: Dict[str, Any]) -> bool:
    mode = config.SUBSCRIPTION_ACTIVATION_MODE
    ok = True
    # Drapeau partagé: seulement pour un payeur connu de rôle 'user'
    if mode != SUBSCRIPTION_ENTITLEMENT and users_repository.get_user_role(record.get("user_id")) == "user":
        ok = subscriptions_repository.mark_plan_paid(record["subscription_id"]) and ok
    if mode != SUBSCRIPTION_PLAN_FLAG and record.get("user_id"):
        entitlement = repository.insert_entitlement({
            "user_id": record["user_id"],
            "subscription_id": record["subscription_id"],
            "payment_id": record["transaction_id"],
            "billing_period": record.get("billing_period"),
            "activated_at": record.get("created_at"),
            "expires_at": billing.renewal_date(record).isoformat(),
        })
        ok = entitlement is not None and ok
    return ok

def _apply_side_effects(record: Dict[str, Any]) -> bool:
    """Activation d'abonnement OU vidage du panier, jamais les deux."""
    try:
        if record.get("subscription_id"):
            return _activate_subscription(record)
        if record.get("user_id"):
            cart_service.clear_cart(record["user_id"])
        return True
    except Exception:
        logger.exception(
            "payments.confirm_payment side effects failed transaction_id=%s order_id=%s",
            record.get("transaction_id"), record.get("order_id"),
        )
        return False

def confirm_payment(gateway: PaymentGateway, payment_intent_id: str) -> Dict[str, Any]:
    """
    Réconcilie l'enregistrement local avec le statut de la passerelle.
    Retourne {success, orderId, alreadyProcessed, sideEffectsApplied}.
    """
    payment_intent_id = (payment_intent_id or "").strip()
    if not payment_intent_id:
        raise ValidationError("paymentIntentId manquant")

    intent = gateway.retrieve_intent(payment_intent_id)
    record = repository.get_payment_by_transaction_id(payment_intent_id)

    if not intent.succeeded:
        if record and record.get("payment_status") == repository.PENDING:
            repository.transition_status(payment_intent_id, repository.FAILED)
        logger.info("payments.confirm_payment not succeeded intent_id=%s status=%s", payment_intent_id, intent.status)
        raise PaymentNotSucceeded(intent.status)

    if not record:
        raise PaymentRecordNotFound()
    status = record.get("payment_status")
    if status == repository.COMPLETE:
        return {"success": True, "orderId": record.get("order_id"), "alreadyProcessed": True, "sideEffectsApplied": False}
    if status == repository.FAILED:
        logger.error(
            "payments.confirm_payment gateway succeeded on failed record, manual reconciliation needed transaction_id=%s",
            payment_intent_id,
        )
        raise PaymentAlreadySettled()

    updated = repository.transition_status(payment_intent_id, repository.COMPLETE)
    if updated is None:
        # Un confirmateur concurrent a déjà effectué la transition
        return {"success": True, "orderId": record.get("order_id"), "alreadyProcessed": True, "sideEffectsApplied": False}

    applied = _apply_side_effects({**record, **updated})
    logger.info("payments.confirm_payment complete intent_id=%s order_id=%s side_effects=%s", payment_intent_id, record.get("order_id"), applied)
    return {"success": True, "orderId": record.get("order_id"), "alreadyProcessed": False, "sideEffectsApplied": applied}

HANDLED_EVENTS = ("payment_intent.succeeded", "payment_intent.canceled")
RETRYABLE_FAILURE_EVENT = "payment_intent.payment_failed"

def handle_webhook_event(gateway: PaymentGateway, event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Route un événement webhook vers confirm_payment.
    - Seuls les états terminaux de l'intent (succeeded, canceled) sont réconciliés.
    - payment_failed: acquitté sans transition, l'intent reste réessayable côté client.
    - Autres événements ignorés; intent inconnu acquitté (la passerelle ne doit pas relivrer).
    """
    event_type = (event or {}).get("type")
    if event_type == RETRYABLE_FAILURE_EVENT:
        logger.info("payments.webhook %s intent_id=%s acknowledged", event_type, meta.extract_intent_id(event))
        return {"received": True, "handled": False}
    if event_type not in HANDLED_EVENTS:
        return {"received": True, "handled": False}
    intent_id = meta.extract_intent_id(event)
    if not intent_id:
        raise ValidationError("Événement sans payment intent")
    try:
        result = confirm_payment(gateway, intent_id)
    except (PaymentNotSucceeded, PaymentRecordNotFound) as exc:
        logger.info("payments.webhook %s intent_id=%s outcome=%s", event_type, intent_id, exc.code)
        return {"received": True, "handled": True, "outcome": exc.code}
    return {"received": True, "handled": True, "outcome": "complete", "orderId": result.get("orderId")}
