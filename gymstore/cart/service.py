"""
Cas d'usage 'cart': agrégat panier d'un utilisateur.

Chaque mutation suit le même cycle: lecture -> modification des lignes ->
recompute() (tarification) -> écriture complète avec contrôle de version.
"""
from typing import Any, Dict, List, Optional
import logging

from gymstore.errors import CartConflict, ProductNotFound, ValidationError
from . import repository
from . import pricing

logger = logging.getLogger(__name__)

QUANTITY_ACTIONS = ("increment", "decrement")

def _new_cart(user_id: str) -> Dict[str, Any]:
    cart: Dict[str, Any] = {"user_id": user_id, "items": [], "version": 0}
    cart.update(pricing.empty_totals())
    return cart

def _find_line(cart: Dict[str, Any], product_id: str) -> Optional[Dict[str, Any]]:
    return next((it for it in cart.get("items") or [] if str(it.get("product_id")) == str(product_id)), None)

def _persist(user_id: str, cart: Dict[str, Any], existing: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Recalcule les totaux puis écrit le panier complet (insert ou update versionné)."""
    products = repository.get_products_map(it["product_id"] for it in cart.get("items") or [])
    priced = pricing.recompute(cart, products)
    if existing is None:
        saved = repository.insert_cart(user_id, priced)
    else:
        saved = repository.replace_cart(user_id, priced, int(existing.get("version") or 0))
    if saved is None:
        raise CartConflict()
    return saved

def get_cart(user_id: str) -> Dict[str, Any]:
    """
    Panier de l'utilisateur, lignes hydratées avec le produit (nom, prix, image).
    Un utilisateur sans panier reçoit un panier vide à zéro.
    """
    cart = repository.get_cart(user_id) or _new_cart(user_id)
    products = repository.get_products_map(it["product_id"] for it in cart.get("items") or [])
    hydrated = dict(cart)
    hydrated["items"] = [
        {**it, "product": products.get(str(it.get("product_id")))}
        for it in cart.get("items") or []
    ]
    return hydrated

def add_item(user_id: str, product_id: str, quantity: int = 1, size: Optional[str] = None) -> Dict[str, Any]:
    """
    Ajoute un produit au panier.
    - Fusionne avec la ligne existante (quantité incrémentée, taille d'origine conservée).
    - Sinon ajoute une nouvelle ligne en fin de liste.
    """
    product_id = str(product_id or "").strip()
    if not product_id:
        raise ValidationError("productId manquant")
    if int(quantity) < 1:
        raise ValidationError("La quantité doit être au moins 1")
    if not repository.get_products_map([product_id]):
        raise ProductNotFound(f"Produit introuvable: {product_id}")

    existing = repository.get_cart(user_id)
    cart = dict(existing) if existing else _new_cart(user_id)
    items: List[Dict[str, Any]] = [dict(it) for it in cart.get("items") or []]
    cart["items"] = items

    line = _find_line(cart, product_id)
    if line:
        line["quantity"] = int(line.get("quantity") or 0) + int(quantity)
    else:
        items.append({"product_id": product_id, "quantity": int(quantity), "size": size})

    saved = _persist(user_id, cart, existing)
    logger.info("cart.add_item user_id=%s product_id=%s quantity=%s", user_id, product_id, quantity)
    return saved

def update_quantity(user_id: str, product_id: str, action: str) -> Dict[str, Any]:
    """
    Incrémente ou décrémente une ligne.
    - decrement s'arrête à 1 (la ligne n'est jamais supprimée ici).
    - Produit absent du panier (ou panier inexistant): no-op silencieux.
    """
    if action not in QUANTITY_ACTIONS:
        raise ValidationError("action doit valoir 'increment' ou 'decrement'")

    existing = repository.get_cart(user_id)
    if not existing:
        return _new_cart(user_id)

    cart = dict(existing)
    cart["items"] = [dict(it) for it in existing.get("items") or []]
    line = _find_line(cart, product_id)
    if not line:
        return existing

    qty = int(line.get("quantity") or 1)
    if action == "increment":
        line["quantity"] = qty + 1
    elif qty > 1:
        line["quantity"] = qty - 1
    return _persist(user_id, cart, existing)

def remove_item(user_id: str, product_id: str) -> Dict[str, Any]:
    """Retire la ligne du produit (sans erreur si elle n'existe pas)."""
    existing = repository.get_cart(user_id)
    if not existing:
        return _new_cart(user_id)
    cart = dict(existing)
    cart["items"] = [dict(it) for it in existing.get("items") or [] if str(it.get("product_id")) != str(product_id)]
    return _persist(user_id, cart, existing)

def clear_cart(user_id: str) -> Dict[str, Any]:
    """Vide le panier (le panier est conservé, totaux à zéro)."""
    existing = repository.get_cart(user_id)
    if not existing:
        return _new_cart(user_id)
    cart = dict(existing)
    cart["items"] = []
    return _persist(user_id, cart, existing)

def serialize_cart(cart: Dict[str, Any]) -> Dict[str, Any]:
    """Forme API (camelCase) d'un panier."""
    items = []
    for it in cart.get("items") or []:
        entry = {
            "productId": str(it.get("product_id")),
            "quantity": int(it.get("quantity") or 0),
            "size": it.get("size"),
        }
        if "product" in it:
            entry["product"] = it.get("product")
        items.append(entry)
    return {
        "userId": cart.get("user_id"),
        "items": items,
        "subTotal": cart.get("sub_total", 0),
        "tax": cart.get("tax", 0),
        "shippingCost": cart.get("shipping_cost", 0),
        "total": cart.get("total", 0),
        "version": cart.get("version", 0),
    }
