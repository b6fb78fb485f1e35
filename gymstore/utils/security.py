from fastapi import Request, Depends
from typing import Optional, Dict, Any
import logging

import gymstore.infra.supabase_client as supabase_client
from gymstore.errors import Unauthorized

logger = logging.getLogger(__name__)

COOKIE_NAME = "sb_access"

def _token_from_request(request: Request) -> Optional[str]:
    # Hybride: priorité au Bearer, fallback cookie
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
        if token:
            return token
    return request.cookies.get(COOKIE_NAME)

def get_user_from_token(token: str) -> Dict[str, Any]:
    """
    Vérifie le token auprès du service d'authentification (Supabase Auth).
    L'émission/rafraîchissement des tokens est hors de ce service.
    """
    res = supabase_client.get_supabase().auth.get_user(token)
    user = getattr(res, "user", None)
    metadata = getattr(user, "user_metadata", None) or {}
    return {
        "id": getattr(user, "id", None),
        "email": getattr(user, "email", None),
        "role": str(metadata.get("role") or "user").lower(),
    }

def get_current_user(request: Request) -> Dict[str, Any]:
    token = _token_from_request(request)
    if not token:
        raise Unauthorized()
    try:
        user = get_user_from_token(token)
    except Exception:
        logger.info("security.get_current_user: token rejeté")
        raise Unauthorized("Session expirée, veuillez vous connecter")
    if not user.get("id"):
        raise Unauthorized("Session expirée, veuillez vous connecter")
    return user

def require_user(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    return user

def optional_user(request: Request) -> Optional[Dict[str, Any]]:
    """
    Utilisateur courant si un token valide est présent, sinon None.
    Pour les routes 'user/public' (création/confirmation de paiement).
    """
    if not _token_from_request(request):
        return None
    return get_current_user(request)
