"""
Accès aux données pour la feature 'cart' (tables carts et products).
Les exceptions sont loggées et transformées en valeurs neutres (None, []);
le service décide de l'erreur métier à lever.
"""
from typing import Any, Dict, Iterable, List, Optional
import logging
import gymstore.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

CART_COLUMNS = "user_id, items, sub_total, tax, shipping_cost, total, version, updated_at"

# module gymstore.cart.repository
def fetch_products_by_ids(ids: List[str]) -> List[dict]:
    """
    Récupère les produits par leurs IDs (table 'products').
    - Retourne [] si ids vide ou en cas d'erreur.
    """
    if not ids:
        return []
    try:
        res = (
            supabase_client.get_supabase()
            .table("products")
            .select("id, name, price, image, size")
            .in_("id", [str(i) for i in ids])
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("cart.repository.fetch_products_by_ids failed ids=%s", ids)
        return []

def get_products_map(ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    """Retourne un dict {id: produit} à partir d'une liste d'IDs (doublons ignorés)."""
    unique_ids = list(dict.fromkeys(str(i) for i in ids))
    products = fetch_products_by_ids(unique_ids)
    return {str(p.get("id")): p for p in products}

def get_cart(user_id: str) -> Optional[dict]:
    """Panier de l'utilisateur ou None s'il n'en a pas encore."""
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("carts")
            .select(CART_COLUMNS)
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("cart.repository.get_cart failed user_id=%s", user_id)
        return None

def insert_cart(user_id: str, cart: Dict[str, Any]) -> Optional[dict]:
    """
    Crée le panier (version 1). L'unicité de carts.user_id fait échouer
    une création concurrente: retourne None dans ce cas.
    """
    payload = _cart_payload(cart)
    payload.update({"user_id": user_id, "version": 1})
    try:
        res = supabase_client.get_service_supabase().table("carts").insert(payload).execute()
        rows = res.data or []
        return rows[0] if rows else payload
    except Exception:
        logger.exception("cart.repository.insert_cart failed user_id=%s", user_id)
        return None

def replace_cart(user_id: str, cart: Dict[str, Any], expected_version: int) -> Optional[dict]:
    """
    Remplace le panier complet si sa version n'a pas bougé (verrou optimiste).
    - Mise à jour conditionnelle: eq(user_id) + eq(version, expected_version)
    - Retourne la ligne mise à jour, None si aucune ligne (conflit) ou erreur.
    """
    payload = _cart_payload(cart)
    payload["version"] = int(expected_version) + 1
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("carts")
            .update(payload)
            .eq("user_id", user_id)
            .eq("version", int(expected_version))
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("cart.repository.replace_cart failed user_id=%s version=%s", user_id, expected_version)
        return None

def _cart_payload(cart: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "items": [
            {"product_id": str(it["product_id"]), "quantity": int(it["quantity"]), "size": it.get("size")}
            for it in cart.get("items") or []
        ],
        "sub_total": cart.get("sub_total", 0),
        "tax": cart.get("tax", 0),
        "shipping_cost": cart.get("shipping_cost", 0),
        "total": cart.get("total", 0),
    }
