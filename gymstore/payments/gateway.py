"""Passerelle de paiement: interface abstraite.

Le service de paiement programme contre ce port; l'implémentation
(Stripe réelle ou double de test) est construite une fois au démarrage
et injectée, jamais lue depuis une variable globale.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import Request

SUCCEEDED = "succeeded"


@dataclass(frozen=True)
class GatewayIntent:
    id: str
    status: str
    client_secret: Optional[str] = None
    amount: Optional[int] = None
    metadata: Optional[Dict[str, str]] = None

    @property
    def succeeded(self) -> bool:
        return self.status == SUCCEEDED


class PaymentGateway(ABC):
    """Contrat consommé par l'orchestrateur et le réconciliateur."""

    @abstractmethod
    def create_intent(
        self,
        amount_minor: int,
        currency: str,
        metadata: Dict[str, str],
        test_mode: bool = False,
        idempotency_key: Optional[str] = None,
    ) -> GatewayIntent:
        """Crée un payment intent (montant en unités mineures).

        test_mode: intent pré-confirmé avec le moyen de paiement de test.
        """
        ...

    @abstractmethod
    def retrieve_intent(self, intent_id: str) -> GatewayIntent:
        """Statut courant de l'intent, source de vérité pour la confirmation."""
        ...

    @abstractmethod
    def cancel_intent(self, intent_id: str) -> GatewayIntent:
        """Annule un intent (compensation si l'écriture locale échoue)."""
        ...

    @abstractmethod
    def parse_event(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """Valide la signature d'un webhook et retourne l'événement."""
        ...


def get_gateway(request: Request) -> PaymentGateway:
    """Dépendance FastAPI: passerelle construite par la factory (app.state.gateway)."""
    return request.app.state.gateway
