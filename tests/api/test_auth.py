from __future__ import annotations

import jwt
from fastapi.testclient import TestClient

from coursetrack.db.store import document_store
from coursetrack.services import roster_service
from coursetrack.services.identity import IdentityProvider
from tests.conftest import auth, mint_token, seed


def _login(client: TestClient, email: str, password: str):
    return client.post("/auth/login", json={"email": email, "password": password})


def test_login_returns_token_and_profile(client: TestClient) -> None:
    admin = seed(
        roster_service.ensure_admin(document_store, "root@test.com", "secret1")
    )

    resp = _login(client, "Root@Test.com", "secret1")

    assert resp.status_code == 200
    body = resp.json()
    assert body["user"] == {
        "id": admin.id,
        "email": "root@test.com",
        "role": "admin",
        "class_id": None,
    }
    claims = jwt.decode(body["accessToken"], options={"verify_signature": False})
    assert claims["sub"] == admin.id
    assert claims["roles"] == ["admin"]


def test_login_rejects_bad_credentials(client: TestClient) -> None:
    seed(roster_service.create_user(document_store, "s@test.com", "secret1", "student"))

    assert _login(client, "s@test.com", "wrong-pass").status_code == 401
    assert _login(client, "nobody@test.com", "secret1").status_code == 401


def test_login_without_profile_has_no_role(client: TestClient) -> None:
    seed(IdentityProvider(document_store).create_identity("bare@test.com", "secret1"))

    resp = _login(client, "bare@test.com", "secret1")

    assert resp.status_code == 403
    assert resp.json()["detail"] == "Your account has no role assigned."


def test_me_returns_the_callers_profile(client: TestClient) -> None:
    seed(roster_service.create_user(document_store, "t@test.com", "secret1", "teacher"))
    token = _login(client, "t@test.com", "secret1").json()["accessToken"]

    resp = client.get("/auth/me", headers=auth(token))

    assert resp.status_code == 200
    assert resp.json()["role"] == "teacher"


def test_me_without_profile_is_404(client: TestClient) -> None:
    resp = client.get("/auth/me", headers=auth(mint_token("ghost", ["admin"])))
    assert resp.status_code == 404
