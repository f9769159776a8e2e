"""Pytest shared fixtures for identity service tests."""
import base64
import json
import pathlib
import sys
import time
from typing import Optional
from urllib.parse import urlparse

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import jwt
from jwt import PyJWKClient
import pytest
from authlib.jose import JsonWebKey
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from identity_service.config import AppConfig
from identity_service.core.models import ProtectedGroupSet

BASE_URL = "https://idp.test/t/acme"
ISSUER = f"{BASE_URL}/oauth2/token"
JWKS_URL = f"{BASE_URL}/oauth2/jwks"
SCIM2_URL = f"{BASE_URL}/scim2"
DEFAULT_KID = "default-key-id"

ADMIN_GROUP_ID = "grp-admin"
SUPPLIER_GROUP_ID = "grp-supplier"
STAFF_GROUP_ID = "grp-staff"


# ─────────────────────────────────────────────────────────────────────────────
# HTTP stubs
# ─────────────────────────────────────────────────────────────────────────────
class _StubResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, payload=None, status_code: int = 200, text: Optional[str] = None):
        self._payload = payload
        self.status_code = status_code
        self.text = text if text is not None else (json.dumps(payload) if payload is not None else "")
        self.content = self.text.encode()

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class StubJWKClient(PyJWKClient):
    """PyJWKClient serving an in-memory JWKS instead of fetching the URL.

    Set ``jwks`` to rotate keys, ``error`` to make the next fetches fail.
    """

    def __init__(self, jwks: dict, delay: float = 0.0):
        super().__init__(JWKS_URL, cache_keys=False, cache_jwk_set=False)
        self.jwks = jwks
        self.delay = delay
        self.error: Optional[Exception] = None
        self.fetch_count = 0

    def fetch_data(self):
        self.fetch_count += 1
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.jwks


class FakeAsgardeo:
    """In-memory Asgardeo: token endpoint, JWKS and SCIM2 routes.

    SCIM2 routes are registered as ``routes[(METHOD, "/Users/u1")] = response``.
    Every call is recorded in ``calls`` as (method, path, json).
    """

    def __init__(self, jwks: dict):
        self.jwks_client = StubJWKClient(jwks)
        self.routes: dict = {}
        self.calls: list = []
        self.token_posts = 0

    def post(self, url, data=None, auth=None, headers=None, timeout=None):
        self.token_posts += 1
        return _StubResponse({"access_token": "m2m-token", "expires_in": 3600, "token_type": "Bearer"})

    def request(self, method, url, headers=None, json=None, params=None, timeout=None):
        path = urlparse(url).path.replace(urlparse(SCIM2_URL).path, "", 1)
        self.calls.append((method, path, json))
        response = self.routes.get((method, path))
        if response is None:
            return _StubResponse({"detail": "not found", "status": "404"}, status_code=404)
        return response

    def calls_for(self, method: str) -> list:
        return [call for call in self.calls if call[0] == method]


# ─────────────────────────────────────────────────────────────────────────────
# RSA Key Pair / JWKS
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(scope="session")
def rsa_key_pair():
    """Generate RSA key pair for JWT signing in tests."""
    private_key = rsa.generate_private_key(
        public_exponent=65537,
        key_size=2048,
        backend=default_backend()
    )
    public_key = private_key.public_key()
    public_pem = public_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    )
    return {
        "private_key": private_key,
        "public_key": public_key,
        "public_pem": public_pem,
    }


def jwk_for(rsa_key_pair: dict, kid: str = DEFAULT_KID, use: str = "sig") -> dict:
    """Export the public key as a JWKS entry."""
    jwk = JsonWebKey.import_key(rsa_key_pair["public_pem"], {"kty": "RSA"})
    jwk_dict = dict(jwk.as_dict())
    jwk_dict["kid"] = kid
    jwk_dict["use"] = use
    jwk_dict["alg"] = "RS256"
    return jwk_dict


def ec_jwk(kid: str = "ec1") -> dict:
    """An EC P-256 signature key, usable only with ES256."""
    public_pem = ec.generate_private_key(ec.SECP256R1()).public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    )
    jwk_dict = dict(JsonWebKey.import_key(public_pem, {"kty": "EC"}).as_dict())
    jwk_dict.update(kid=kid, use="sig", alg="ES256")
    return jwk_dict


@pytest.fixture()
def jwks(rsa_key_pair):
    return {"keys": [jwk_for(rsa_key_pair)]}


# ─────────────────────────────────────────────────────────────────────────────
# JWT Token Helpers
# ─────────────────────────────────────────────────────────────────────────────
def create_valid_jwt(
    rsa_key_pair: dict,
    issuer: str = ISSUER,
    sub: str = "user-123",
    email: Optional[str] = "admin@acme.test",
    groups=("admin",),
    exp_offset: int = 3600,
    kid: Optional[str] = DEFAULT_KID,
    extra: Optional[dict] = None,
) -> str:
    """Create an RS256-signed JWT for testing."""
    now = int(time.time())
    payload = {
        "iss": issuer,
        "sub": sub,
        "exp": now + exp_offset,
        "iat": now,
    }
    if email is not None:
        payload["email"] = email
    if groups is not None:
        payload["groups"] = list(groups) if not isinstance(groups, str) else groups
    if extra:
        payload.update(extra)

    headers = {"kid": kid} if kid else {}
    return jwt.encode(payload, rsa_key_pair["private_key"], algorithm="RS256", headers=headers)


def create_hmac_jwt(issuer: str = ISSUER, groups=("admin",), kid: str = DEFAULT_KID) -> str:
    """Create an HS256 token with a valid-looking payload (algorithm confusion test)."""
    now = int(time.time())
    payload = {"iss": issuer, "sub": "attacker", "exp": now + 3600, "groups": list(groups)}
    return jwt.encode(payload, "attacker-chosen-secret-of-32-bytes!", algorithm="HS256", headers={"kid": kid})


def create_unsigned_jwt(issuer: str = ISSUER, groups=("admin",), kid: str = DEFAULT_KID) -> str:
    """Create unsigned JWT with alg:none (security vulnerability test)."""
    now = int(time.time())
    header = {"alg": "none", "typ": "JWT", "kid": kid}
    payload = {"iss": issuer, "sub": "attacker", "exp": now + 3600, "groups": list(groups)}

    # Manually construct unsigned JWT
    header_b64 = base64.urlsafe_b64encode(json.dumps(header).encode()).decode().rstrip("=")
    payload_b64 = base64.urlsafe_b64encode(json.dumps(payload).encode()).decode().rstrip("=")
    return f"{header_b64}.{payload_b64}."


# ─────────────────────────────────────────────────────────────────────────────
# Configuration
# ─────────────────────────────────────────────────────────────────────────────
def make_config(**overrides) -> AppConfig:
    values = dict(
        app_env="production",
        asgardeo_org="acme",
        asgardeo_base_url=BASE_URL,
        token_url=f"{BASE_URL}/oauth2/token",
        scim2_url=SCIM2_URL,
        jwks_url=JWKS_URL,
        issuer=ISSUER,
        client_id="m2m-client",
        client_secret="m2m-secret",
        protected_groups=ProtectedGroupSet(
            admin_group_id=ADMIN_GROUP_ID,
            supplier_group_id=SUPPLIER_GROUP_ID,
            warehouse_staff_group_id=STAFF_GROUP_ID,
        ),
    )
    values.update(overrides)
    return AppConfig(**values)


@pytest.fixture()
def app_config():
    return make_config()


# ─────────────────────────────────────────────────────────────────────────────
# Pytest Configuration
# ─────────────────────────────────────────────────────────────────────────────
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests exercising the full Flask stack"
    )
    config.addinivalue_line(
        "markers", "critical: marks tests as critical security tests (P0 priority)"
    )
