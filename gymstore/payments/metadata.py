"""
Sérialisation/désérialisation des métadonnées Stripe d'un payment intent.
Stripe n'accepte que des valeurs str: les champs absents ne sont pas envoyés.
"""
from typing import Any, Dict, Optional

# module gymstore.payments.metadata
def make_metadata(
    *,
    user_id: Optional[str],
    subscription_id: Optional[str],
    billing_period: Optional[str],
    order_id: str,
    idempotency_key: str,
) -> Dict[str, str]:
    meta = {
        "user_id": user_id,
        "subscription_id": subscription_id,
        "billing_period": billing_period,
        "order_id": order_id,
        "idempotency_key": idempotency_key,
    }
    return {k: str(v) for k, v in meta.items() if v}

def extract_intent_id(event: Dict[str, Any]) -> Optional[str]:
    """
    Extrait l'identifiant du payment intent d'un event webhook.
    - Attend event.data.object.id (object == "payment_intent")
    """
    data_obj = (event or {}).get("data", {}).get("object", {}) if isinstance(event, dict) else {}
    if data_obj.get("object") not in (None, "payment_intent"):
        return None
    return data_obj.get("id")
