"""
Calcul de facturation des abonnements (logique pure sur des paiements).

Une adhésion n'est pas stockée: elle se déduit des paiements 'complete'
portant un subscription_id. Pas de notion de résiliation ni d'expiration:
une adhésion reste active dès qu'un paiement d'abonnement a abouti.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

MONTHLY = "monthly"
YEARLY = "yearly"
BILLING_PERIODS = (MONTHLY, YEARLY)


def parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return isoparse(str(value))

def _is_complete_subscription(payment: Dict[str, Any]) -> bool:
    return payment.get("payment_status") == "complete" and bool(payment.get("subscription_id"))

def has_active_membership(payments: Iterable[Dict[str, Any]]) -> bool:
    return any(_is_complete_subscription(p) for p in payments)

def latest_subscription_payment(payments: Iterable[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Paiement d'abonnement complete le plus récent (par created_at)."""
    candidates = [p for p in payments if _is_complete_subscription(p) and p.get("created_at")]
    if not candidates:
        return None
    return max(candidates, key=lambda p: parse_timestamp(p["created_at"]))

def renewal_date(payment: Dict[str, Any]) -> datetime:
    """
    created_at + 1 an si billing_period == yearly, sinon + 1 mois.
    Fin de mois bornée (31 janvier -> 29 février les années bissextiles).
    """
    created_at = parse_timestamp(payment.get("created_at"))
    if created_at is None:
        raise ValueError("created_at manquant pour calculer la date de renouvellement")
    if payment.get("billing_period") == YEARLY:
        return created_at + relativedelta(years=1)
    return created_at + relativedelta(months=1)
