"""
Accès aux données 'subscriptions' (plans achetables).
- Lectures via le client anon (catalogue public).
- mark_plan_paid: écriture service-role du drapeau historique payment_status.
"""
from typing import List, Optional
import logging
import gymstore.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

def get_subscription(subscription_id: str) -> Optional[dict]:
    if not subscription_id:
        return None
    try:
        res = (
            supabase_client.get_supabase()
            .table("subscriptions")
            .select("*")
            .eq("id", subscription_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("subscriptions.repository.get_subscription failed id=%s", subscription_id)
        return None

def list_subscriptions(active_only: bool = False) -> List[dict]:
    """Plans triés du plus récent au plus ancien; [] si erreur."""
    try:
        query = supabase_client.get_supabase().table("subscriptions").select("*")
        if active_only:
            query = query.eq("is_active", True)
        res = query.order("created_at", desc=True).execute()
        return res.data or []
    except Exception:
        logger.exception("subscriptions.repository.list_subscriptions failed active_only=%s", active_only)
        return []

def mark_plan_paid(subscription_id: str) -> bool:
    """Positionne subscriptions.payment_status = 'paid' (drapeau partagé, comportement historique)."""
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("subscriptions")
            .update({"payment_status": "paid"})
            .eq("id", subscription_id)
            .execute()
        )
        return len(res.data or []) > 0
    except Exception:
        logger.exception("subscriptions.repository.mark_plan_paid failed id=%s", subscription_id)
        return False
