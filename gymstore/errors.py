"""
Erreurs métier du sous-système commerce.

Chaque erreur est une HTTPException: les services les lèvent directement,
le handler de l'app les sérialise en {"detail": ..., "code": ...}.
"""
from typing import Optional
from fastapi import HTTPException


class CommerceError(HTTPException):
    status_code = 400
    code = "validation_error"
    default_detail = "Requête invalide"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(status_code=type(self).status_code, detail=detail or self.default_detail)


class ValidationError(CommerceError):
    pass


class InvalidPrice(ValidationError):
    code = "invalid_price"
    default_detail = "Le prix doit être strictement positif"


class MalformedSubscriptionRequest(ValidationError):
    code = "malformed_subscription_request"
    default_detail = "subscriptionId et billingPeriod doivent être fournis ensemble"


class PriceMismatch(ValidationError):
    code = "price_mismatch"
    default_detail = "Le prix ne correspond pas au plan d'abonnement"


class PaymentNotSucceeded(ValidationError):
    code = "payment_not_succeeded"
    default_detail = "Le paiement n'a pas abouti"

    def __init__(self, gateway_status: str = ""):
        self.gateway_status = gateway_status
        super().__init__(f"Le paiement n'a pas abouti (status={gateway_status})")


class Unauthorized(CommerceError):
    status_code = 401
    code = "unauthorized"
    default_detail = "Non authentifié"


class Forbidden(CommerceError):
    status_code = 403
    code = "forbidden"
    default_detail = "Accès interdit"


class NotFound(CommerceError):
    status_code = 404
    code = "not_found"
    default_detail = "Ressource introuvable"


class ProductNotFound(NotFound):
    code = "product_not_found"
    default_detail = "Produit introuvable"


class SubscriptionNotFound(NotFound):
    code = "subscription_not_found"
    default_detail = "Plan d'abonnement introuvable"


class PaymentRecordNotFound(NotFound):
    code = "payment_record_not_found"
    default_detail = "Enregistrement de paiement introuvable"


class CartConflict(CommerceError):
    status_code = 409
    code = "cart_conflict"
    default_detail = "Le panier a été modifié en parallèle, veuillez réessayer"


class PaymentAlreadySettled(CommerceError):
    status_code = 409
    code = "payment_already_settled"
    default_detail = "Le paiement est déjà dans un état terminal"


class PaymentPersistenceError(CommerceError):
    status_code = 500
    code = "payment_persistence_error"
    default_detail = "Impossible d'enregistrer le paiement"


class GatewayError(CommerceError):
    status_code = 502
    code = "gateway_error"
    default_detail = "Le service de paiement est indisponible"
