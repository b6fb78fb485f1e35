import copy
import os
from typing import Any, Dict, Generator, List, Optional
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

# Pas de Redis pendant les tests: le lifespan désactive le rate limiting
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

from gymstore.app import app as fastapi_app
from gymstore.payments.fake_gateway import FakeGateway
from gymstore.payments.gateway import get_gateway
from gymstore.utils.security import optional_user, require_user

TEST_USER: Dict[str, Any] = {"id": "test-user", "email": "test@example.com", "role": "user"}

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)


class InMemoryStore:
    """
    Double en mémoire des tables Supabase (products, carts, payments,
    subscriptions, entitlements, users). Reproduit les écritures
    conditionnelles des repositories (version du panier, statut pending).
    """

    def __init__(self):
        self.products: Dict[str, dict] = {}
        self.carts: Dict[str, dict] = {}
        self.payments: List[dict] = []
        self.subscriptions: Dict[str, dict] = {}
        self.entitlements: List[dict] = []
        self.users = {TEST_USER["id"]}
        self.roles: Dict[str, str] = {TEST_USER["id"]: "user"}
        self.fail_payment_insert = False

    # --- seeds
    def add_product(self, product_id: str, price: Any, name: Optional[str] = None, image_url: str = "https://img.test/p.png"):
        self.products[product_id] = {
            "id": product_id,
            "name": name or f"Produit {product_id}",
            "price": price,
            "image": [{"url": image_url, "public_id": f"img-{product_id}"}],
            "size": ["S", "M", "L"],
        }
        return self.products[product_id]

    def add_subscription(self, sub_id: str, price_monthly: float, price_yearly: float, name: str = "Premium", is_active: bool = True):
        self.subscriptions[sub_id] = {
            "id": sub_id,
            "name": name,
            "benefits": ["Accès salle", "Coaching"],
            "price_monthly": price_monthly,
            "price_yearly": price_yearly,
            "is_active": is_active,
            "plan_type": "training",
            "payment_status": "unpaid",
            "created_at": "2024-01-01T00:00:00+00:00",
        }
        return self.subscriptions[sub_id]

    def add_payment(self, **fields):
        row = {
            "user_id": TEST_USER["id"],
            "subscription_id": None,
            "billing_period": None,
            "price": 0,
            "currency": "usd",
            "items": [],
            "payment_status": "complete",
            "test_mode": False,
            "created_at": "2024-01-01T00:00:00+00:00",
        }
        row.update(fields)
        row.setdefault("transaction_id", f"pi_seed_{len(self.payments)}")
        row.setdefault("order_id", f"ORD-SEED{len(self.payments)}")
        row.setdefault("idempotency_key", f"seed-{len(self.payments)}")
        self.payments.append(row)
        return row

    def payment(self, transaction_id: str) -> Optional[dict]:
        return next((p for p in self.payments if p["transaction_id"] == transaction_id), None)

    # --- products / carts
    def fetch_products_by_ids(self, ids):
        return [copy.deepcopy(self.products[i]) for i in ids if i in self.products]

    def get_cart(self, user_id):
        cart = self.carts.get(user_id)
        return copy.deepcopy(cart) if cart else None

    def _row(self, user_id, cart, version):
        return {
            "user_id": user_id,
            "items": [
                {"product_id": str(it["product_id"]), "quantity": int(it["quantity"]), "size": it.get("size")}
                for it in cart.get("items") or []
            ],
            "sub_total": cart.get("sub_total", 0),
            "tax": cart.get("tax", 0),
            "shipping_cost": cart.get("shipping_cost", 0),
            "total": cart.get("total", 0),
            "version": version,
        }

    def insert_cart(self, user_id, cart):
        if user_id in self.carts:
            return None
        self.carts[user_id] = self._row(user_id, cart, 1)
        return copy.deepcopy(self.carts[user_id])

    def replace_cart(self, user_id, cart, expected_version):
        current = self.carts.get(user_id)
        if not current or current["version"] != int(expected_version):
            return None
        self.carts[user_id] = self._row(user_id, cart, int(expected_version) + 1)
        return copy.deepcopy(self.carts[user_id])

    # --- payments
    def insert_payment(self, payment):
        if self.fail_payment_insert:
            return None
        row = copy.deepcopy(payment)
        row.setdefault("payment_status", "pending")
        self.payments.append(row)
        return copy.deepcopy(row)

    def get_payment_by_transaction_id(self, transaction_id):
        row = self.payment(transaction_id)
        return copy.deepcopy(row) if row else None

    def get_payment_by_idempotency_key(self, key):
        row = next((p for p in self.payments if p.get("idempotency_key") == key), None)
        return copy.deepcopy(row) if row else None

    def transition_status(self, transaction_id, new_status):
        if new_status not in ("complete", "failed"):
            raise ValueError(new_status)
        row = self.payment(transaction_id)
        if not row or row["payment_status"] != "pending":
            return None
        row["payment_status"] = new_status
        row["updated_at"] = "2024-06-01T00:00:00+00:00"
        return copy.deepcopy(row)

    def list_user_payments(self, user_id, status=None):
        rows = [p for p in self.payments if p.get("user_id") == user_id and (not status or p["payment_status"] == status)]
        return copy.deepcopy(sorted(rows, key=lambda p: p.get("created_at") or "", reverse=True))

    def insert_entitlement(self, entitlement):
        self.entitlements.append(dict(entitlement))
        return dict(entitlement)

    # --- subscriptions / users
    def get_subscription(self, sub_id):
        sub = self.subscriptions.get(sub_id)
        return copy.deepcopy(sub) if sub else None

    def list_subscriptions(self, active_only=False):
        subs = [s for s in self.subscriptions.values() if s.get("is_active") or not active_only]
        return copy.deepcopy(sorted(subs, key=lambda s: s.get("created_at") or "", reverse=True))

    def mark_plan_paid(self, sub_id):
        if sub_id not in self.subscriptions:
            return False
        self.subscriptions[sub_id]["payment_status"] = "paid"
        return True

    def user_exists(self, user_id):
        return user_id in self.users

    def get_user_role(self, user_id):
        return self.roles.get(user_id) if user_id in self.users else None


@pytest.fixture(autouse=True)
def store(monkeypatch) -> InMemoryStore:
    """Neutralise Supabase et branche les repositories sur le double en mémoire."""
    monkeypatch.setattr("gymstore.infra.supabase_client.get_supabase", lambda: MagicMock())
    monkeypatch.setattr("gymstore.infra.supabase_client.get_service_supabase", lambda: MagicMock())

    s = InMemoryStore()
    for name in ("fetch_products_by_ids", "get_cart", "insert_cart", "replace_cart"):
        monkeypatch.setattr(f"gymstore.cart.repository.{name}", getattr(s, name))
    for name in (
        "insert_payment",
        "get_payment_by_transaction_id",
        "get_payment_by_idempotency_key",
        "transition_status",
        "list_user_payments",
        "insert_entitlement",
    ):
        monkeypatch.setattr(f"gymstore.payments.repository.{name}", getattr(s, name))
    for name in ("get_subscription", "list_subscriptions", "mark_plan_paid"):
        monkeypatch.setattr(f"gymstore.subscriptions.repository.{name}", getattr(s, name))
    monkeypatch.setattr("gymstore.users.repository.user_exists", s.user_exists)
    monkeypatch.setattr("gymstore.users.repository.get_user_role", s.get_user_role)
    return s

@pytest.fixture()
def gateway() -> FakeGateway:
    return FakeGateway()

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

# Utilisateur authentifié pour les routes protégées, passerelle factice partout
@pytest.fixture(autouse=True)
def _override_dependencies(app, gateway):
    app.dependency_overrides[require_user] = lambda: TEST_USER
    app.dependency_overrides[get_gateway] = lambda: gateway
    try:
        yield
    finally:
        app.dependency_overrides.pop(require_user, None)
        app.dependency_overrides.pop(get_gateway, None)
        app.dependency_overrides.pop(optional_user, None)

@pytest.fixture()
def as_user(app):
    """Authentifie aussi les routes 'user/public' (optional_user)."""
    app.dependency_overrides[optional_user] = lambda: TEST_USER
    return TEST_USER
