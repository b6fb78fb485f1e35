"""Passerelle factice déterministe, pour les tests et le développement local.

Garde les intents en mémoire; le statut renvoyé par retrieve_intent est
pilotable (set_status) pour simuler succès, échec ou traitement en cours.
"""
import json
from typing import Any, Dict, List, Optional
from uuid import uuid4

from gymstore.errors import GatewayError
from .gateway import GatewayIntent, PaymentGateway


class FakeGateway(PaymentGateway):
    def __init__(self):
        self.intents: Dict[str, GatewayIntent] = {}
        self.by_idempotency_key: Dict[str, str] = {}
        self.cancelled: List[str] = []
        self.should_fail = False

    def configure(self, should_fail: bool = False):
        """Force les appels suivants à échouer (GatewayError)."""
        self.should_fail = should_fail

    def _check(self):
        if self.should_fail:
            raise GatewayError()

    def create_intent(
        self,
        amount_minor: int,
        currency: str,
        metadata: Dict[str, str],
        test_mode: bool = False,
        idempotency_key: Optional[str] = None,
    ) -> GatewayIntent:
        self._check()
        if idempotency_key and idempotency_key in self.by_idempotency_key:
            return self.intents[self.by_idempotency_key[idempotency_key]]
        intent_id = f"pi_fake_{uuid4().hex[:16]}"
        intent = GatewayIntent(
            id=intent_id,
            # En mode test l'intent est confirmé immédiatement
            status="succeeded" if test_mode else "requires_payment_method",
            client_secret=f"{intent_id}_secret_{uuid4().hex[:8]}",
            amount=int(amount_minor),
            metadata=dict(metadata),
        )
        self.intents[intent_id] = intent
        if idempotency_key:
            self.by_idempotency_key[idempotency_key] = intent_id
        return intent

    def set_status(self, intent_id: str, status: str) -> GatewayIntent:
        intent = self.intents[intent_id]
        updated = GatewayIntent(
            id=intent.id,
            status=status,
            client_secret=intent.client_secret,
            amount=intent.amount,
            metadata=intent.metadata,
        )
        self.intents[intent_id] = updated
        return updated

    def retrieve_intent(self, intent_id: str) -> GatewayIntent:
        self._check()
        intent = self.intents.get(intent_id)
        if intent is None:
            raise GatewayError(f"PaymentIntent introuvable: {intent_id}")
        return intent

    def cancel_intent(self, intent_id: str) -> GatewayIntent:
        self._check()
        self.cancelled.append(intent_id)
        return self.set_status(intent_id, "canceled")

    def parse_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        # Accepte toute signature; le payload doit être un événement JSON
        return json.loads(payload.decode("utf-8"))
