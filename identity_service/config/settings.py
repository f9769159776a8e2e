"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from identity_service.core.models import ProtectedGroupSet

ASGARDEO_CLOUD_URL = "https://api.asgardeo.io"

DEFAULT_SCOPES = [
    "internal_user_mgt_create",
    "internal_user_mgt_list",
    "internal_user_mgt_view",
    "internal_user_mgt_delete",
    "internal_user_mgt_update",
    "internal_group_mgt_update",
    "internal_group_mgt_view",
]


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                print(f"[settings] ✓ Loaded {secret_name} from /run/secrets")
                return secret_value
        except OSError as e:
            print(f"[settings] ✗ Failed to read /run/secrets/{secret_name}: {e}")

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            return secret_value

    return None


@dataclass
class AppConfig:
    """Application configuration container."""
    # Mode
    app_env: str = "production"
    host: str = "127.0.0.1"
    port: int = 3006
    log_level: str = "INFO"

    # Asgardeo endpoints
    asgardeo_org: str = ""
    asgardeo_base_url: str = ""
    token_url: str = ""
    scim2_url: str = ""
    jwks_url: str = ""
    issuer: str = ""
    audience: Optional[str] = None

    # M2M application
    client_id: str = ""
    client_secret: str = ""
    scopes: list[str] = field(default_factory=lambda: list(DEFAULT_SCOPES))

    # Groups
    protected_groups: ProtectedGroupSet = field(default_factory=ProtectedGroupSet)

    # Caller token verification
    jwt_algorithm: str = "RS256"
    jwt_leeway_seconds: float = 0
    jwks_min_refetch_interval: float = 30.0

    # Upstream calls
    token_refresh_margin: int = 300
    upstream_timeout: float = 10.0
    member_fetch_workers: int = 8
    username_prefix: str = "DEFAULT/"

    @property
    def is_development(self) -> bool:
        """Development mode exposes upstream error detail to callers."""
        return self.app_env.lower() == "development"


def _env_float(var_name: str, default: float) -> float:
    raw = os.environ.get(var_name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable {var_name} must be a number, got '{raw}'") from exc


def _env_int(var_name: str, default: int) -> int:
    return int(_env_float(var_name, default))


def _required(var_name: str, value: Optional[str], development: bool) -> str:
    if value:
        return value
    if development:
        print(f"[settings] WARNING: {var_name} is not set")
        return ""
    raise RuntimeError(f"Environment variable {var_name} is required in production mode.")


def load_settings() -> AppConfig:
    """Load application settings from environment and /run/secrets."""
    app_env = os.environ.get("APP_ENV", "production").strip().lower() or "production"
    development = app_env == "development"

    # ─────────────────────────────────────────────────────────────────────────
    # Asgardeo endpoints (derived from the organization unless overridden)
    # ─────────────────────────────────────────────────────────────────────────
    asgardeo_org = os.environ.get("ASGARDEO_ORG", "").strip()
    base_url = os.environ.get("ASGARDEO_BASE_URL", "").strip().rstrip("/")
    if not base_url and asgardeo_org:
        base_url = f"{ASGARDEO_CLOUD_URL}/t/{asgardeo_org}"

    def _endpoint(var_name: str, suffix: str) -> str:
        value = os.environ.get(var_name, "").strip()
        if value:
            return value
        return _required(var_name, f"{base_url}{suffix}" if base_url else "", development)

    token_url = _endpoint("ASGARDEO_TOKEN_URL", "/oauth2/token")
    scim2_url = _endpoint("ASGARDEO_SCIM2_URL", "/scim2")
    jwks_url = _endpoint("ASGARDEO_JWKS_URL", "/oauth2/jwks")
    issuer = _endpoint("ASGARDEO_ISSUER", "/oauth2/token")
    audience = os.environ.get("ASGARDEO_AUDIENCE", "").strip() or None

    # ─────────────────────────────────────────────────────────────────────────
    # M2M credentials
    # ─────────────────────────────────────────────────────────────────────────
    client_id = _required("ASGARDEO_CLIENT_ID", os.environ.get("ASGARDEO_CLIENT_ID", "").strip(), development)
    client_secret = _required(
        "ASGARDEO_CLIENT_SECRET",
        _load_secret_from_file("asgardeo_client_secret", "ASGARDEO_CLIENT_SECRET"),
        development,
    )

    scopes = [
        scope
        for scope in os.environ.get("ASGARDEO_SCOPES", " ".join(DEFAULT_SCOPES)).replace(",", " ").split()
        if scope
    ] or list(DEFAULT_SCOPES)

    protected_groups = ProtectedGroupSet(
        admin_group_id=os.environ.get("ASGARDEO_GROUP_ID_ADMIN") or None,
        supplier_group_id=os.environ.get("ASGARDEO_GROUP_ID_SUPPLIER") or None,
        warehouse_staff_group_id=os.environ.get("ASGARDEO_GROUP_ID_WAREHOUSE_STAFF") or None,
    )
    if not protected_groups.admin_group_id:
        print("[settings] WARNING: ASGARDEO_GROUP_ID_ADMIN not set; admin protection relies on group names only")

    jwt_algorithm = os.environ.get("JWT_ALGORITHM", "RS256").strip()
    if jwt_algorithm.lower() == "none" or jwt_algorithm.upper().startswith("HS"):
        raise RuntimeError(f"JWT_ALGORITHM={jwt_algorithm} is not allowed; use an asymmetric algorithm")

    print(f"[settings] Mode={app_env.upper()}; org={asgardeo_org or '-'}; client_id={client_id or '-'}")

    return AppConfig(
        app_env=app_env,
        host=os.environ.get("HOST", "127.0.0.1"),
        port=_env_int("PORT", 3006),
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        asgardeo_org=asgardeo_org,
        asgardeo_base_url=base_url,
        token_url=token_url,
        scim2_url=scim2_url,
        jwks_url=jwks_url,
        issuer=issuer,
        audience=audience,
        client_id=client_id,
        client_secret=client_secret,
        scopes=scopes,
        protected_groups=protected_groups,
        jwt_algorithm=jwt_algorithm,
        jwt_leeway_seconds=_env_float("JWT_LEEWAY_SECONDS", 0),
        jwks_min_refetch_interval=_env_float("JWKS_MIN_REFETCH_INTERVAL", 30.0),
        token_refresh_margin=_env_int("TOKEN_REFRESH_MARGIN", 300),
        upstream_timeout=_env_float("UPSTREAM_TIMEOUT", 10.0),
        member_fetch_workers=max(1, _env_int("MEMBER_FETCH_WORKERS", 8)),
        username_prefix=os.environ.get("SCIM_USERNAME_PREFIX", "DEFAULT/"),
    )
