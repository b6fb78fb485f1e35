from typing import Any, Dict, List

from gymstore.errors import SubscriptionNotFound
from gymstore.payments import repository as payments_repository
from . import billing
from . import repository

def serialize_plan(plan: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": plan.get("id"),
        "name": plan.get("name"),
        "benefits": plan.get("benefits") or [],
        "priceMonthly": plan.get("price_monthly"),
        "priceYearly": plan.get("price_yearly"),
        "isActive": bool(plan.get("is_active", True)),
        "planType": plan.get("plan_type"),
    }

def list_plans(active_only: bool = False) -> List[Dict[str, Any]]:
    return [serialize_plan(p) for p in repository.list_subscriptions(active_only=active_only)]

def get_plan(subscription_id: str) -> Dict[str, Any]:
    plan = repository.get_subscription(subscription_id)
    if not plan:
        raise SubscriptionNotFound()
    return serialize_plan(plan)

def has_active_membership_for(user_id: str) -> bool:
    return billing.has_active_membership(payments_repository.list_user_payments(user_id, status="complete"))

def membership_summary(user_id: str) -> Dict[str, Any]:
    """
    Résumé d'adhésion de l'utilisateur.
    - Renouvellement calculé depuis le dernier paiement d'abonnement complete uniquement.
    - Nom du plan résolu au mieux (le plan peut avoir été supprimé depuis).
    """
    payments = payments_repository.list_user_payments(user_id, status="complete")
    latest = billing.latest_subscription_payment(payments)
    if latest is None:
        return {
            "hasActiveMembership": False,
            "subscriptionId": None,
            "planName": None,
            "billingPeriod": None,
            "activatedAt": None,
            "renewalDate": None,
        }
    plan = repository.get_subscription(latest["subscription_id"]) or {}
    return {
        "hasActiveMembership": True,
        "subscriptionId": latest["subscription_id"],
        "planName": plan.get("name"),
        "billingPeriod": latest.get("billing_period"),
        "activatedAt": billing.parse_timestamp(latest["created_at"]).isoformat(),
        "renewalDate": billing.renewal_date(latest).isoformat(),
    }
