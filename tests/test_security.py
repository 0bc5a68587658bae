# tests/test_security.py
from datetime import timedelta

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from jose import JWTError

from foodmandu.core.clock import utcnow
from foodmandu.core.config import AuthConfig
from foodmandu.core.security import (
    create_session_token,
    decode_session_token,
    get_auth_config,
    hash_password,
    require_admin,
    require_role,
    verify_password,
)
from foodmandu.models.account import Account, RoleEnum


def make_account(account_id=7, role=RoleEnum.customer, is_admin=False):
    return Account(id=account_id, role=role, is_admin=is_admin)


def test_hash_password_never_stores_plaintext():
    hashed = hash_password("secret1")
    assert hashed != "secret1"
    assert verify_password("secret1", hashed)
    assert not verify_password("secret2", hashed)


def test_verify_password_without_hash():
    assert verify_password("secret1", None) is False


def test_auth_config_requires_secret():
    with pytest.raises(ValueError):
        AuthConfig(secret_key="")


def test_session_token_claims(config):
    token = create_session_token(make_account(role=RoleEnum.restaurant, is_admin=True), config)
    claims = decode_session_token(token, config)
    assert claims["sub"] == "7"
    assert claims["role"] == "restaurant"
    assert claims["isAdmin"] is True


def test_session_token_rejects_other_secret(config):
    token = create_session_token(make_account(), config)
    with pytest.raises(JWTError):
        decode_session_token(token, AuthConfig(secret_key="other"))


def test_session_token_expires(config):
    token = create_session_token(make_account(), config, now=utcnow() - timedelta(days=2))
    with pytest.raises(JWTError):
        decode_session_token(token, config)


@pytest.fixture
def guarded_client(config):
    app = FastAPI()
    app.dependency_overrides[get_auth_config] = lambda: config

    @app.get("/admin")
    def admin_only(claims: dict = Depends(require_admin)):
        return {"sub": claims["sub"]}

    @app.get("/kitchen")
    def restaurant_only(claims: dict = Depends(require_role("restaurant"))):
        return {"role": claims["role"]}

    return TestClient(app)


def bearer(config, **kwargs):
    return {"Authorization": f"Bearer {create_session_token(make_account(**kwargs), config)}"}


def test_require_admin(guarded_client, config):
    assert guarded_client.get("/admin").status_code == 401
    assert guarded_client.get("/admin", headers={"Authorization": "Bearer junk"}).status_code == 401
    assert guarded_client.get("/admin", headers=bearer(config)).status_code == 403
    assert guarded_client.get("/admin", headers=bearer(config, is_admin=True)).json() == {"sub": "7"}
    assert guarded_client.get("/admin", headers=bearer(config, role=RoleEnum.admin)).status_code == 200


def test_require_role(guarded_client, config):
    assert guarded_client.get("/kitchen", headers=bearer(config)).status_code == 403
    response = guarded_client.get("/kitchen", headers=bearer(config, role=RoleEnum.restaurant))
    assert response.json() == {"role": "restaurant"}
