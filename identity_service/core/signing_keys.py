"""JWKS signing key resolution (RFC 7517).

Keys are fetched from the identity provider's published key set through
PyJWKClient and kept for the life of the process. A miss triggers a refetch of
the whole set, but an unknown ``kid`` is refetched at most once per
``min_refetch_interval`` so a stream of garbage key ids cannot hammer the JWKS
endpoint.
"""
from __future__ import annotations
import logging
import threading
import time
from typing import Callable, Optional

from jwt import PyJWK, PyJWKClient
from jwt.exceptions import PyJWTError

from identity_service.core.errors import KeyResolutionError
from identity_service.core.models import SigningKey

logger = logging.getLogger(__name__)

DEFAULT_ALGORITHM = "RS256"
DEFAULT_MIN_REFETCH_INTERVAL = 30.0
REQUEST_TIMEOUT = 5

# JWS algorithm family -> JWK key type able to verify it
_KEY_TYPE_BY_FAMILY = {"RS": "RSA", "PS": "RSA", "ES": "EC", "Ed": "OKP"}


class SigningKeyResolver:
    """Thread-safe, append-only cache of JWKS signing keys."""

    def __init__(
        self,
        jwks_url: str,
        algorithm: str = DEFAULT_ALGORITHM,
        min_refetch_interval: float = DEFAULT_MIN_REFETCH_INTERVAL,
        timeout: float = REQUEST_TIMEOUT,
        jwks_client: Optional[PyJWKClient] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the resolver.

        Args:
            jwks_url: JWKS endpoint of the identity provider
            algorithm: Caller token algorithm; keys of another type are skipped
            min_refetch_interval: Seconds between refetches for one unknown kid
            timeout: JWKS fetch timeout
            jwks_client: PyJWKClient to fetch through (built from ``jwks_url`` when omitted)
            clock: Monotonic clock
        """
        self.jwks_url = jwks_url
        self.algorithm = algorithm
        self.min_refetch_interval = min_refetch_interval
        self.timeout = timeout
        # Own cache below; PyJWKClient only fetches and parses
        self._jwks_client = jwks_client or PyJWKClient(
            jwks_url,
            cache_keys=False,
            cache_jwk_set=False,
            timeout=timeout,
        )
        self._clock = clock

        self._keys: dict[str, SigningKey] = {}
        self._miss_attempts: dict[str, float] = {}
        self._lock = threading.Lock()

    def resolve(self, key_id: str) -> SigningKey:
        """Return the signing key for ``key_id``.

        Raises:
            KeyResolutionError: Unknown kid, throttled refetch, or fetch failure
        """
        key = self._keys.get(key_id)
        if key is not None:
            return key

        with self._lock:
            # Another thread may have fetched while we waited.
            key = self._keys.get(key_id)
            if key is not None:
                return key

            now = self._clock()
            self._prune_attempts(now)
            last_attempt = self._miss_attempts.get(key_id)
            if last_attempt is not None and now - last_attempt < self.min_refetch_interval:
                raise KeyResolutionError(f"Unknown signing key '{key_id}' (refetch throttled)")
            self._miss_attempts[key_id] = now

            fetched = self._fetch_key_set()
            for kid, signing_key in fetched.items():
                # Entries are never replaced once cached
                self._keys.setdefault(kid, signing_key)

            key = self._keys.get(key_id)
            if key is None:
                raise KeyResolutionError(f"Signing key '{key_id}' not found in JWKS")
            self._miss_attempts.pop(key_id, None)
            return key

    def cached_key_ids(self) -> list[str]:
        return list(self._keys)

    def _prune_attempts(self, now: float) -> None:
        expired = [kid for kid, ts in self._miss_attempts.items() if now - ts >= self.min_refetch_interval]
        for kid in expired:
            del self._miss_attempts[kid]

    def _fetch_key_set(self) -> dict[str, SigningKey]:
        """Download the JWKS and keep every signature key usable with the configured algorithm."""
        logger.info(f"Fetching JWKS from {self.jwks_url}")
        try:
            jwks = self._jwks_client.get_signing_keys()
        except (PyJWTError, ValueError) as exc:
            logger.error(f"Error getting signing keys: {exc}")
            raise KeyResolutionError(f"JWKS fetch failed: {exc}") from exc

        keys: dict[str, SigningKey] = {}
        for jwk in jwks:
            if not _fits_algorithm(jwk, self.algorithm):
                logger.debug(f"Skipping JWK '{jwk.key_id}' of type {jwk.key_type} for {self.algorithm}")
                continue
            keys[jwk.key_id] = SigningKey(key_id=jwk.key_id, public_key=jwk.key)
        return keys


def _fits_algorithm(jwk: PyJWK, algorithm: str) -> bool:
    return _KEY_TYPE_BY_FAMILY.get(algorithm[:2]) == jwk.key_type
