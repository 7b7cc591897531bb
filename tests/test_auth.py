from datetime import timedelta

import bcrypt
import jwt
import pytest

from pos_backend.core.errors import AuthError, AuthForbiddenError
from pos_backend.core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from pos_backend.models import User


def test_password_hashing():
    hashed = hash_password("secret")
    assert hashed != "secret"
    assert verify_password("secret", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("secret", "not-an-argon2-hash")


def test_token_roundtrip():
    identity = decode_access_token(create_access_token(3, "caja"))
    assert identity.id == 3
    assert identity.username == "caja"


def test_expired_token_is_unauthorized():
    token = create_access_token(3, "caja", expires_delta=timedelta(seconds=-30))
    with pytest.raises(AuthError) as exc:
        decode_access_token(token)
    assert exc.value.status_code == 401


def test_foreign_signature_is_forbidden():
    token = jwt.encode({"id": 3, "username": "caja"}, "another-secret", algorithm="HS256")
    with pytest.raises(AuthForbiddenError):
        decode_access_token(token)


def test_token_without_identity_is_forbidden():
    token = jwt.encode({"role": "admin"}, "test-secret", algorithm="HS256")
    with pytest.raises(AuthForbiddenError):
        decode_access_token(token)


def test_login(pos):
    pos.add_user("admin", "secret")

    resp = pos.client.post("/login", json={"username": "admin", "password": "secret"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["username"] == "admin"

    tables = pos.client.get("/tables", headers={"Authorization": f"Bearer {body['token']}"})
    assert tables.status_code == 200


def test_login_wrong_credentials(pos):
    pos.add_user("admin", "secret")

    resp = pos.client.post("/login", json={"username": "admin", "password": "nope"})
    assert resp.status_code == 401
    assert resp.json() == {"success": False, "error": "Usuario o contraseña incorrectos"}

    resp = pos.client.post("/login", json={"username": "ghost", "password": "secret"})
    assert resp.status_code == 401


def test_login_missing_fields(pos):
    resp = pos.client.post("/login", json={"username": "admin"})
    assert resp.status_code == 400


def test_malformed_authorization_header(pos):
    resp = pos.client.get("/tables", headers={"Authorization": "Token abc"})
    assert resp.status_code == 401
    resp = pos.client.get("/tables", headers={"Authorization": "Bearer "})
    assert resp.status_code == 401


def test_legacy_bcrypt_account_logs_in_and_is_upgraded(pos):
    legacy = bcrypt.hashpw(b"secret", bcrypt.gensalt(rounds=4)).decode("utf-8")
    user_id = pos.seed(User(username="cajero", password_hash=legacy))[0]
    assert verify_password("secret", legacy)
    assert not verify_password("wrong", legacy)

    resp = pos.client.post("/login", json={"username": "cajero", "password": "wrong"})
    assert resp.status_code == 401
    assert pos.run(lambda s: s.get(User, user_id)).password_hash == legacy

    resp = pos.client.post("/login", json={"username": "cajero", "password": "secret"})
    assert resp.status_code == 200

    upgraded = pos.run(lambda s: s.get(User, user_id)).password_hash
    assert upgraded.startswith("$argon2")
    assert pos.client.post("/login", json={"username": "cajero", "password": "secret"}).status_code == 200
