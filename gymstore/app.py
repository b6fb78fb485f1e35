# module gymstore.app
from typing import Optional

from fastapi import FastAPI

from gymstore import config
from gymstore.app_setup.exceptions import register_exception_handlers
from gymstore.app_setup.lifespan import lifespan as app_lifespan
from gymstore.app_setup.middlewares import register_basic_middlewares, register_security_middleware
from gymstore.app_setup.routers import register_routers
from gymstore.payments.gateway import PaymentGateway
from gymstore.payments.stripe_client import StripeGateway

def build_gateway() -> PaymentGateway:
    """Passerelle réelle construite depuis la configuration (remplacée par FakeGateway en tests)."""
    return StripeGateway(
        secret_key=config.STRIPE_SECRET_KEY,
        webhook_secret=config.STRIPE_WEBHOOK_SECRET,
        timeout=config.GATEWAY_TIMEOUT_SECONDS,
        test_payment_method=config.STRIPE_TEST_PAYMENT_METHOD,
    )

def create_app(gateway: Optional[PaymentGateway] = None) -> FastAPI:
    """
    Crée et configure l'instance FastAPI.
    Étapes:
      1) register_basic_middlewares: CORS, TrustedHost.
      2) register_security_middleware: en-têtes de sécurité.
      3) register_exception_handlers: erreurs métier -> {"detail", "code"}.
      4) register_routers: cart, payment, subscription, health.
    La passerelle de paiement est posée sur app.state.gateway.
    """
    app = FastAPI(title="gymstore API", lifespan=app_lifespan)
    app.state.gateway = gateway or build_gateway()
    register_basic_middlewares(app)
    register_security_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    return app

# App globale
app = create_app()
