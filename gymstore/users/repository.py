"""Lecture minimale de la table users (profil géré par un autre service)."""
from typing import Optional
import logging
import gymstore.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

def user_exists(user_id: str) -> bool:
    if not user_id:
        return False
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("users")
            .select("id")
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
        return bool(res.data)
    except Exception:
        logger.exception("users.repository.user_exists failed user_id=%s", user_id)
        return False

def get_user_role(user_id: str) -> Optional[str]:
    """Rôle applicatif ('user', 'admin', ...) ou None si utilisateur inconnu."""
    if not user_id:
        return None
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("users")
            .select("id, role")
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return str(rows[0].get("role") or "user").lower() if rows else None
    except Exception:
        logger.exception("users.repository.get_user_role failed user_id=%s", user_id)
        return None
