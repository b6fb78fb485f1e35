"""
Adaptateur Stripe: implémentation réelle de PaymentGateway.
- Clé secrète passée à chaque appel (api_key=...), pas de configuration globale de clé.
- Délai réseau explicite et aucune relance automatique.
"""
import logging
from typing import Any, Dict, Optional

import stripe

from gymstore.errors import GatewayError
from .gateway import GatewayIntent, PaymentGateway

logger = logging.getLogger(__name__)

# module gymstore.payments.stripe_client
def _plain(obj: Any) -> Dict[str, Any]:
    # StripeObject: to_dict selon la version du SDK
    if obj is None:
        return {}
    for name in ("to_dict", "to_dict_recursive"):
        if hasattr(obj, name):
            return getattr(obj, name)()
    return dict(obj)

def _to_intent(obj: Any) -> GatewayIntent:
    return GatewayIntent(
        id=getattr(obj, "id", None) or "",
        status=getattr(obj, "status", None) or "",
        client_secret=getattr(obj, "client_secret", None),
        amount=getattr(obj, "amount", None),
        metadata={str(k): str(v) for k, v in _plain(getattr(obj, "metadata", None)).items()},
    )


class StripeGateway(PaymentGateway):
    def __init__(
        self,
        secret_key: str,
        webhook_secret: str = "",
        timeout: float = 10.0,
        test_payment_method: str = "pm_card_visa",
    ):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.timeout = timeout
        self.test_payment_method = test_payment_method
        self._configured = False

    def require_stripe(self):
        """
        Prépare le SDK avant le premier appel:
        - client HTTP avec timeout explicite
        - max_network_retries = 0 (aucune relance automatique)
        """
        if not self.secret_key:
            logger.error("payments.stripe_client STRIPE_SECRET_KEY manquant")
            raise GatewayError()
        if not self._configured:
            stripe.max_network_retries = 0
            stripe.default_http_client = stripe.RequestsClient(timeout=self.timeout)
            self._configured = True
        return stripe

    def create_intent(
        self,
        amount_minor: int,
        currency: str,
        metadata: Dict[str, str],
        test_mode: bool = False,
        idempotency_key: Optional[str] = None,
    ) -> GatewayIntent:
        self.require_stripe()
        params: Dict[str, Any] = {
            "amount": int(amount_minor),
            "currency": currency,
            "metadata": metadata,
        }
        if test_mode:
            # Intent confirmé immédiatement avec un moyen de paiement de test
            params.update({
                "payment_method": self.test_payment_method,
                "payment_method_types": ["card"],
                "confirm": True,
            })
        else:
            params["automatic_payment_methods"] = {"enabled": True}
        if idempotency_key:
            params["idempotency_key"] = idempotency_key
        try:
            intent = stripe.PaymentIntent.create(api_key=self.secret_key, **params)
        except stripe.StripeError:
            logger.exception("payments.stripe_client.create_intent failed amount=%s", amount_minor)
            raise GatewayError()
        return _to_intent(intent)

    def retrieve_intent(self, intent_id: str) -> GatewayIntent:
        self.require_stripe()
        try:
            intent = stripe.PaymentIntent.retrieve(intent_id, api_key=self.secret_key)
        except stripe.StripeError:
            logger.exception("payments.stripe_client.retrieve_intent failed id=%s", intent_id)
            raise GatewayError()
        return _to_intent(intent)

    def cancel_intent(self, intent_id: str) -> GatewayIntent:
        self.require_stripe()
        try:
            intent = stripe.PaymentIntent.cancel(intent_id, api_key=self.secret_key)
        except stripe.StripeError:
            logger.exception("payments.stripe_client.cancel_intent failed id=%s", intent_id)
            raise GatewayError()
        return _to_intent(intent)

    def parse_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Parse et valide un événement Stripe signé (webhook).
        Lève ValueError / stripe.SignatureVerificationError si invalide.
        """
        if not self.webhook_secret:
            logger.error("payments.stripe_client STRIPE_WEBHOOK_SECRET manquant")
            raise GatewayError()
        event = stripe.Webhook.construct_event(payload, signature or "", self.webhook_secret)
        return _plain(event)
