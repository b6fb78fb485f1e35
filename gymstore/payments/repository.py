"""
Accès aux données pour la feature 'payments' (tables payments, entitlements).
Écritures via le client service-role; exceptions loggées puis valeurs neutres.
"""
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
import logging
import gymstore.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

PENDING = "pending"
COMPLETE = "complete"
FAILED = "failed"

# module gymstore.payments.repository
def insert_payment(payment: Dict[str, Any]) -> Optional[dict]:
    """
    Insère un enregistrement de paiement (statut pending).
    - Retourne la ligne insérée, None en cas d'erreur.
    """
    row = dict(payment)
    row.setdefault("payment_status", PENDING)
    try:
        res = supabase_client.get_service_supabase().table("payments").insert(row).execute()
        rows = res.data or []
        return rows[0] if rows else row
    except Exception:
        logger.exception(
            "payments.repository.insert_payment failed transaction_id=%s order_id=%s",
            row.get("transaction_id"), row.get("order_id"),
        )
        return None

def get_payment_by_transaction_id(transaction_id: str) -> Optional[dict]:
    return _get_one("transaction_id", transaction_id)

def get_payment_by_idempotency_key(idempotency_key: str) -> Optional[dict]:
    return _get_one("idempotency_key", idempotency_key)

def _get_one(column: str, value: str) -> Optional[dict]:
    if not value:
        return None
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("payments")
            .select("*")
            .eq(column, value)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("payments.repository._get_one failed %s=%s", column, value)
        return None

def transition_status(transaction_id: str, new_status: str) -> Optional[dict]:
    """
    Transition pending -> complete|failed.
    - Mise à jour conditionnelle sur payment_status = 'pending': un seul appelant gagne.
    - Retourne la ligne mise à jour, None si le statut n'était plus pending (ou erreur).
    """
    if new_status not in (COMPLETE, FAILED):
        raise ValueError(f"statut terminal attendu, reçu {new_status!r}")
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("payments")
            .update({"payment_status": new_status, "updated_at": datetime.now(timezone.utc).isoformat()})
            .eq("transaction_id", transaction_id)
            .eq("payment_status", PENDING)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("payments.repository.transition_status failed transaction_id=%s status=%s", transaction_id, new_status)
        return None

def list_user_payments(user_id: str, status: Optional[str] = None) -> List[dict]:
    """
    Paiements de l'utilisateur, les plus récents d'abord.
    - Filtre optionnel sur payment_status.
    """
    if not user_id:
        return []
    try:
        query = (
            supabase_client.get_service_supabase()
            .table("payments")
            .select("*")
            .eq("user_id", user_id)
        )
        if status:
            query = query.eq("payment_status", status)
        res = query.order("created_at", desc=True).execute()
        return res.data or []
    except Exception:
        logger.exception("payments.repository.list_user_payments failed user_id=%s", user_id)
        return []

def insert_entitlement(entitlement: Dict[str, Any]) -> Optional[dict]:
    """Droit d'accès par utilisateur créé à la confirmation d'un abonnement."""
    try:
        res = supabase_client.get_service_supabase().table("entitlements").insert(entitlement).execute()
        rows = res.data or []
        return rows[0] if rows else dict(entitlement)
    except Exception:
        logger.exception(
            "payments.repository.insert_entitlement failed user_id=%s subscription_id=%s",
            entitlement.get("user_id"), entitlement.get("subscription_id"),
        )
        return None
