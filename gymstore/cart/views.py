# module gymstore.cart.views

"""Endpoints du panier (/cart).
- Toutes les routes exigent un utilisateur authentifié (require_user).
- Chaque mutation renvoie le panier recalculé, en camelCase.
- 409 si le panier a été modifié en parallèle (verrou optimiste).
"""
from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from gymstore.utils.security import require_user
from . import service as cart_service

router = APIRouter(prefix="/cart", tags=["Cart"])


class AddToCartRequest(BaseModel):
    productId: str = Field(min_length=1)
    quantity: int = Field(default=1, ge=1)
    size: Optional[str] = None

class UpdateQuantityRequest(BaseModel):
    productId: str = Field(min_length=1)
    action: Literal["increment", "decrement"]

class RemoveItemRequest(BaseModel):
    productId: str = Field(min_length=1)


def _response(message: str, cart: Dict[str, Any]) -> Dict[str, Any]:
    return {"success": True, "message": message, "data": cart_service.serialize_cart(cart)}

@router.get("")
def get_cart(user: Dict[str, Any] = Depends(require_user)):
    """Panier hydraté de l'utilisateur courant (vide si aucun)."""
    cart = cart_service.get_cart(user["id"])
    return _response("Cart retrieved successfully", cart)

@router.post("/add")
def add_to_cart(req: AddToCartRequest, user: Dict[str, Any] = Depends(require_user)):
    """Ajoute ou fusionne une ligne; 404 si le produit n'existe pas."""
    cart = cart_service.add_item(user["id"], req.productId, quantity=req.quantity, size=req.size)
    return _response("Product added to cart successfully", cart)

@router.patch("/update-quantity")
def update_quantity(req: UpdateQuantityRequest, user: Dict[str, Any] = Depends(require_user)):
    cart = cart_service.update_quantity(user["id"], req.productId, req.action)
    return _response("Cart updated", cart)

# DELETE avec body JSON: conservé pour compatibilité avec les clients existants
@router.delete("/remove-item")
def remove_item(req: RemoveItemRequest, user: Dict[str, Any] = Depends(require_user)):
    cart = cart_service.remove_item(user["id"], req.productId)
    return _response("Item removed from cart", cart)

@router.delete("/clear")
def clear_cart(user: Dict[str, Any] = Depends(require_user)):
    cart = cart_service.clear_cart(user["id"])
    return _response("Cart cleared successfully", cart)
