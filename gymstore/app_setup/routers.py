"""
Registre central des routers.
- Cart: /cart
- Payments: /payment
- Subscriptions: /subscription (catalogue)
- Health: /health
"""
from fastapi import FastAPI
from gymstore.cart import views as cart_views
from gymstore.payments import views as payments_views
from gymstore.subscriptions import views as subscriptions_views
from gymstore.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    app.include_router(cart_views.router)
    app.include_router(payments_views.router)
    app.include_router(subscriptions_views.router)
    app.include_router(health_router)
