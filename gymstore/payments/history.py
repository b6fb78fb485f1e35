"""
Projection de l'historique d'achats d'un utilisateur (lecture seule).
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Iterable

from gymstore.subscriptions import billing
from . import repository

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

def _entries_for(payment: Dict[str, Any]) -> List[Dict[str, Any]]:
    common = {
        "orderId": payment.get("order_id"),
        "paymentId": payment.get("transaction_id"),
        "purchasedAt": payment.get("created_at"),
    }
    items = payment.get("items") or []
    if items:
        return [
            {
                "title": it.get("name"),
                "price": round(float(it.get("unit_price") or 0) * int(it.get("quantity") or 0), 2),
                "imageUrl": it.get("image_url"),
                "quantity": int(it.get("quantity") or 0),
                **common,
            }
            for it in items
        ]
    return [{
        "title": "Subscription Plan" if payment.get("subscription_id") else "Purchase",
        "price": payment.get("price"),
        "imageUrl": None,
        "quantity": 1,
        **common,
    }]

def project_history(payments: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Paiements complete du plus récent au plus ancien:
    - une entrée par ligne du snapshot d'articles
    - sinon une entrée unique (abonnement ou achat sans détail)
    """
    payments = list(payments)
    completed = [p for p in payments if p.get("payment_status") == repository.COMPLETE]
    completed.sort(key=lambda p: billing.parse_timestamp(p.get("created_at")) or _EPOCH, reverse=True)

    history: List[Dict[str, Any]] = []
    for payment in completed:
        history.extend(_entries_for(payment))

    return {
        "history": history,
        "pendingCount": sum(1 for p in payments if p.get("payment_status") == repository.PENDING),
        "hasActivePlan": billing.has_active_membership(completed),
        "lastPurchaseAt": completed[0].get("created_at") if completed else None,
    }

def get_purchase_history(user_id: str) -> Dict[str, Any]:
    return project_history(repository.list_user_payments(user_id))
