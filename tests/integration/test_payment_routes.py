import json

import pytest

USER = "test-user"

@pytest.fixture()
def plan(store):
    return store.add_subscription("sub-1", price_monthly=29.99, price_yearly=299.0, name="Premium")

def test_create_payment_public(client, gateway, store):
    res = client.post("/payment/create-payment", json={"price": 19.99})
    assert res.status_code == 200
    body = res.json()
    assert set(body) == {"clientSecret", "paymentIntentId", "orderId"}
    assert body["orderId"].startswith("ORD-")
    assert store.payment(body["paymentIntentId"])["user_id"] is None
    assert gateway.intents[body["paymentIntentId"]].amount == 1999

def test_create_payment_uses_authenticated_user(client, gateway, store, as_user):
    body = client.post("/payment/create-payment", json={"price": 10}).json()
    assert store.payment(body["paymentIntentId"])["user_id"] == USER

def test_create_payment_user_mismatch_403(client, as_user):
    res = client.post("/payment/create-payment", json={"price": 10, "userId": "someone-else"})
    assert res.status_code == 403

def test_idempotency_key_header(client, store):
    headers = {"Idempotency-Key": "abc-123"}
    first = client.post("/payment/create-payment", json={"price": 10}, headers=headers).json()
    second = client.post("/payment/create-payment", json={"price": 10}, headers=headers).json()
    assert first == second
    assert len(store.payments) == 1

@pytest.mark.parametrize("body, status, code", [
    ({"price": 0}, 400, "invalid_price"),
    ({"price": 29.99, "subscriptionId": "sub-1"}, 400, "malformed_subscription_request"),
    ({"price": 35, "subscriptionId": "sub-1", "billingPeriod": "monthly"}, 400, "price_mismatch"),
    ({"price": 10, "subscriptionId": "nope", "billingPeriod": "monthly"}, 404, "subscription_not_found"),
    ({"price": 10, "userId": "ghost"}, 404, "not_found"),
])
def test_create_payment_errors(client, plan, body, status, code):
    res = client.post("/payment/create-payment", json=body)
    assert res.status_code == status
    assert res.json()["code"] == code

def test_subscription_flow_end_to_end(client, gateway, store, plan, as_user):
    created = client.post(
        "/payment/create-payment",
        json={"price": 29.99, "subscriptionId": "sub-1", "billingPeriod": "monthly"},
    ).json()
    gateway.set_status(created["paymentIntentId"], "succeeded")

    res = client.post("/payment/confirm-payment", json={"paymentIntentId": created["paymentIntentId"]})
    assert res.status_code == 200
    assert res.json() == {"success": True, "orderId": created["orderId"], "alreadyProcessed": False, "sideEffectsApplied": True}
    assert store.payment(created["paymentIntentId"])["payment_status"] == "complete"
    assert store.subscriptions["sub-1"]["payment_status"] == "paid"

    summary = client.get("/payment/membership-summary").json()["data"]
    assert summary["hasActiveMembership"] is True
    assert summary["planName"] == "Premium"
    assert summary["billingPeriod"] == "monthly"

    again = client.post("/payment/confirm-payment", json={"paymentIntentId": created["paymentIntentId"]}).json()
    assert again["alreadyProcessed"] is True

def test_product_flow_clears_cart_and_shows_history(client, gateway, store, as_user):
    store.add_product("A", 20, name="Gants")
    client.post("/cart/add", json={"productId": "A", "quantity": 2})
    total = client.get("/cart").json()["data"]["total"]

    created = client.post("/payment/create-payment", json={"price": total}).json()
    gateway.set_status(created["paymentIntentId"], "succeeded")
    client.post("/payment/confirm-payment", json={"paymentIntentId": created["paymentIntentId"]})

    cart = client.get("/cart").json()["data"]
    assert cart["items"] == []
    assert cart["total"] == 0

    history = client.get("/payment/history").json()["data"]
    assert history["history"][0]["title"] == "Gants"
    assert history["history"][0]["quantity"] == 2
    assert history["history"][0]["orderId"] == created["orderId"]
    assert history["pendingCount"] == 0

def test_confirm_not_succeeded_400(client, gateway, store):
    created = client.post("/payment/create-payment", json={"price": 10}).json()
    res = client.post("/payment/confirm-payment", json={"paymentIntentId": created["paymentIntentId"]})
    assert res.status_code == 400
    assert res.json()["code"] == "payment_not_succeeded"
    assert store.payment(created["paymentIntentId"])["payment_status"] == "failed"

def test_confirm_unknown_intent_502(client):
    res = client.post("/payment/confirm-payment", json={"paymentIntentId": "pi_unknown"})
    assert res.status_code == 502
    assert res.json()["code"] == "gateway_error"

def test_confirm_missing_id_400(client):
    assert client.post("/payment/confirm-payment", json={}).status_code == 400

def test_webhook_completes_payment(client, gateway, store):
    created = client.post("/payment/create-payment", json={"price": 10}).json()
    gateway.set_status(created["paymentIntentId"], "succeeded")
    event = {"type": "payment_intent.succeeded", "data": {"object": {"object": "payment_intent", "id": created["paymentIntentId"]}}}
    res = client.post("/payment/webhook", content=json.dumps(event), headers={"stripe-signature": "t=1,v1=fake"})
    assert res.status_code == 200
    assert res.json()["outcome"] == "complete"
    assert store.payment(created["paymentIntentId"])["payment_status"] == "complete"

def test_webhook_invalid_payload_400(client):
    res = client.post("/payment/webhook", content=b"not json")
    assert res.status_code == 400

def test_payment_config(client, monkeypatch):
    monkeypatch.setattr("gymstore.config.STRIPE_PUBLIC_KEY", "pk_test_123")
    assert client.get("/payment/config").json() == {"publishableKey": "pk_test_123", "currency": "usd"}

@pytest.mark.parametrize("raw", ['{"price": NaN}', '{"price": Infinity}', '{"price": -Infinity}'])
def test_create_payment_non_finite_price_400(client, store, raw):
    res = client.post("/payment/create-payment", content=raw, headers={"Content-Type": "application/json"})
    assert res.status_code == 400
    assert res.json()["code"] == "invalid_price"
    assert store.payments == []

def test_create_payment_gateway_down_502(client, gateway, store):
    gateway.configure(should_fail=True)
    res = client.post("/payment/create-payment", json={"price": 10})
    assert res.status_code == 502
    assert res.json() == {"detail": "Le service de paiement est indisponible", "code": "gateway_error"}
    assert store.payments == []

def test_webhook_failed_attempt_then_retry_confirms(client, gateway, store):
    created = client.post("/payment/create-payment", json={"price": 10}).json()
    failed = {"type": "payment_intent.payment_failed", "data": {"object": {"object": "payment_intent", "id": created["paymentIntentId"]}}}
    res = client.post("/payment/webhook", content=json.dumps(failed), headers={"stripe-signature": "t=1,v1=fake"})
    assert res.status_code == 200
    assert store.payment(created["paymentIntentId"])["payment_status"] == "pending"

    gateway.set_status(created["paymentIntentId"], "succeeded")
    res = client.post("/payment/confirm-payment", json={"paymentIntentId": created["paymentIntentId"]})
    assert res.status_code == 200
    assert res.json()["alreadyProcessed"] is False
    assert store.payment(created["paymentIntentId"])["payment_status"] == "complete"
