"""
Catalogue public des plans d'abonnement (lecture seule).
La gestion des plans (création, modification) relève de l'administration.
"""
from fastapi import APIRouter

from . import service as subscriptions_service

router = APIRouter(prefix="/subscription", tags=["Subscriptions"])

@router.get("")
def list_subscriptions(activeOnly: bool = False):
    plans = subscriptions_service.list_plans(active_only=activeOnly)
    return {"success": True, "message": "Subscriptions retrieved successfully", "data": plans}

@router.get("/{subscription_id}")
def get_subscription(subscription_id: str):
    plan = subscriptions_service.get_plan(subscription_id)
    return {"success": True, "message": "Subscription retrieved successfully", "data": plan}
