"""
Moteur de tarification du panier (logique pure: pas de Stripe, pas de DB).

Invariants garantis par recompute():
- tax = round(sub_total * CART_TAX_RATE, 2)
- shipping_cost = CART_SHIPPING_FLAT si sub_total > 0, sinon 0
- total = sub_total + tax + shipping_cost
"""
from typing import Any, Dict, List

from gymstore.config import CART_TAX_RATE, CART_SHIPPING_FLAT
from gymstore.errors import ProductNotFound

# module gymstore.cart.pricing
def price_from_product(product: Dict[str, Any]) -> float:
    """
    Prix courant d'un produit (float).
    - Autorise product.get("price") à être str|float|int.
    - Retourne 0.0 si parsing impossible.
    """
    try:
        return float(product.get("price") or 0)
    except (TypeError, ValueError):
        return 0.0

def totals_for(sub_total: float) -> Dict[str, float]:
    sub_total = round(sub_total, 2)
    tax = round(sub_total * CART_TAX_RATE, 2)
    shipping_cost = CART_SHIPPING_FLAT if sub_total > 0 else 0.0
    return {
        "sub_total": sub_total,
        "tax": tax,
        "shipping_cost": shipping_cost,
        "total": round(sub_total + tax + shipping_cost, 2),
    }

def recompute(cart: Dict[str, Any], products_by_id: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
    """
    Recalcule les totaux d'un panier à partir des prix actuels du catalogue.
    - Pure et idempotente: retourne une nouvelle copie, l'entrée n'est pas modifiée.
    - Lève ProductNotFound si une ligne référence un produit supprimé.
    """
    items: List[Dict[str, Any]] = [dict(it) for it in cart.get("items") or []]
    sub_total = 0.0
    for it in items:
        product = products_by_id.get(str(it.get("product_id")))
        if not product:
            raise ProductNotFound(f"Produit introuvable: {it.get('product_id')}")
        sub_total += price_from_product(product) * int(it.get("quantity") or 0)

    updated = dict(cart)
    updated["items"] = items
    updated.update(totals_for(sub_total))
    return updated

def empty_totals() -> Dict[str, float]:
    return totals_for(0.0)
