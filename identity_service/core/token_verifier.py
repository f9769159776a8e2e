"""
Caller bearer token verification (RFC 6750 / RFC 7519).

Validations performed, in order:
1. Header parses and carries the single configured algorithm (no ``none``,
   no HMAC) and a ``kid``
2. Signing key resolved from the JWKS via SigningKeyResolver
3. Signature, issuer (exact match), expiry, and audience when configured

Every failure raises InvalidTokenError. Callers only see
"Invalid or expired token."; the specific reason is logged.
"""
from __future__ import annotations
import logging
from typing import Any, Iterable, Optional

import jwt
from jwt.exceptions import (
    ExpiredSignatureError,
    InvalidIssuerError,
    InvalidAudienceError,
    InvalidSignatureError,
    MissingRequiredClaimError,
    PyJWTError,
)

from identity_service.core.errors import InvalidTokenError, KeyResolutionError
from identity_service.core.models import CallerIdentity
from identity_service.core.signing_keys import SigningKeyResolver

logger = logging.getLogger(__name__)

DEFAULT_ALGORITHM = "RS256"
FORBIDDEN_ALGORITHMS = frozenset({"none", "HS256", "HS384", "HS512"})


class CallerTokenVerifier:
    """Verify inbound JWTs and extract the caller identity."""

    def __init__(
        self,
        key_resolver: SigningKeyResolver,
        issuer: str,
        algorithm: str = DEFAULT_ALGORITHM,
        audience: Optional[str] = None,
        leeway: float = 0,
    ):
        if algorithm in FORBIDDEN_ALGORITHMS or algorithm.lower() == "none":
            raise ValueError(f"Algorithm '{algorithm}' is not allowed for caller tokens")
        self.key_resolver = key_resolver
        self.issuer = issuer
        self.algorithm = algorithm
        self.audience = audience
        self.leeway = leeway

    def verify(self, raw_token: str) -> CallerIdentity:
        """Validate ``raw_token`` and return the caller identity.

        Raises:
            InvalidTokenError: If any check fails
        """
        try:
            claims = self._decode(raw_token)
        except InvalidTokenError as exc:
            logger.warning(f"JWT verification failed: {exc.reason}")
            raise
        return _identity_from_claims(claims)

    def _decode(self, raw_token: str) -> dict[str, Any]:
        if not raw_token:
            raise InvalidTokenError("empty token")

        try:
            header = jwt.get_unverified_header(raw_token)
        except PyJWTError as exc:
            raise InvalidTokenError(f"malformed token header: {exc}") from exc

        alg = header.get("alg")
        if alg != self.algorithm:
            raise InvalidTokenError(f"unexpected algorithm '{alg}'")

        key_id = header.get("kid")
        if not key_id:
            raise InvalidTokenError("token header has no kid")

        try:
            signing_key = self.key_resolver.resolve(key_id)
        except KeyResolutionError as exc:
            raise InvalidTokenError(f"signing key unavailable: {exc}") from exc

        options = {
            "verify_signature": True,
            "verify_exp": True,
            "verify_iss": True,
            "verify_aud": self.audience is not None,
            "require": ["exp", "iss"],
        }
        try:
            return jwt.decode(
                raw_token,
                signing_key.public_key,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                audience=self.audience,
                options=options,
                leeway=self.leeway,
            )
        except ExpiredSignatureError as exc:
            raise InvalidTokenError("token expired (exp claim)") from exc
        except InvalidIssuerError as exc:
            raise InvalidTokenError(f"invalid issuer: {exc}") from exc
        except InvalidAudienceError as exc:
            raise InvalidTokenError(f"invalid audience: {exc}") from exc
        except InvalidSignatureError as exc:
            raise InvalidTokenError("invalid signature") from exc
        except MissingRequiredClaimError as exc:
            raise InvalidTokenError(f"missing claim: {exc}") from exc
        except PyJWTError as exc:
            raise InvalidTokenError(f"token decode error: {exc}") from exc
        except (TypeError, ValueError) as exc:
            # Key material unusable with the pinned algorithm
            raise InvalidTokenError(f"signing key unusable: {exc}") from exc


def _identity_from_claims(claims: dict[str, Any]) -> CallerIdentity:
    return CallerIdentity(
        subject=str(claims.get("sub", "")),
        email=claims.get("email") or claims.get("username"),
        display_name=claims.get("name") or claims.get("given_name"),
        groups=frozenset(_normalize_groups(claims.get("groups"))),
    )


def _normalize_groups(raw: Any) -> Iterable[str]:
    """Groups claim may be absent, a single string, or a list."""
    if not raw:
        return ()
    if isinstance(raw, str):
        return (raw,)
    if isinstance(raw, (list, tuple, set, frozenset)):
        return tuple(g for g in raw if isinstance(g, str))
    return ()
