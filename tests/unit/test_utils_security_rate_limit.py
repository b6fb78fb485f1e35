from types import SimpleNamespace

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from gymstore.app_setup.exceptions import register_exception_handlers
from gymstore.utils.rate_limit import optional_rate_limit
from gymstore.utils.security import optional_user, require_user


def _make_app(times=2, seconds=60):
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/limited", dependencies=[Depends(optional_rate_limit(times, seconds))])
    def limited():
        return {"ok": True}

    @app.get("/me")
    def me(user=Depends(require_user)):
        return {"id": user["id"]}

    @app.get("/maybe")
    def maybe(user=Depends(optional_user)):
        return {"id": (user or {}).get("id")}

    return app

def _fake_auth(monkeypatch, valid_token="good"):
    def _get_user(token):
        if token != valid_token:
            raise RuntimeError("invalid JWT")
        return SimpleNamespace(user=SimpleNamespace(id="u1", email="u1@test", user_metadata={"role": "user"}))

    client = SimpleNamespace(auth=SimpleNamespace(get_user=_get_user))
    monkeypatch.setattr("gymstore.infra.supabase_client.get_supabase", lambda: client)

def test_rate_limit_fallback_blocks_after_limit(monkeypatch):
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    client = TestClient(_make_app(times=2))
    assert client.get("/limited").status_code == 200
    assert client.get("/limited").status_code == 200
    assert client.get("/limited").status_code == 429

def test_rate_limit_skipped_when_disabled(monkeypatch):
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)
    client = TestClient(_make_app(times=1))
    assert all(client.get("/limited").status_code == 200 for _ in range(3))

def test_require_user_bearer(monkeypatch):
    _fake_auth(monkeypatch)
    client = TestClient(_make_app())
    assert client.get("/me", headers={"Authorization": "Bearer good"}).json() == {"id": "u1"}

def test_require_user_cookie(monkeypatch):
    _fake_auth(monkeypatch)
    client = TestClient(_make_app())
    client.cookies.set("sb_access", "good")
    assert client.get("/me").json() == {"id": "u1"}

@pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer bad"}])
def test_require_user_rejects(monkeypatch, headers):
    _fake_auth(monkeypatch)
    res = TestClient(_make_app()).get("/me", headers=headers)
    assert res.status_code == 401
    assert res.json()["code"] == "unauthorized"

def test_optional_user(monkeypatch):
    _fake_auth(monkeypatch)
    client = TestClient(_make_app())
    assert client.get("/maybe").json() == {"id": None}
    assert client.get("/maybe", headers={"Authorization": "Bearer good"}).json() == {"id": "u1"}
