"""M2M access token acquisition for the Asgardeo SCIM2 API.

Uses the OAuth2 client credentials grant with HTTP Basic client
authentication. The token is cached per provider instance and refreshed
``refresh_margin`` seconds before the provider-reported expiry.
"""
from __future__ import annotations
import logging
import threading
import time
from typing import Callable, Iterable, Optional

import requests

from identity_service.core.errors import AuthenticationFailure
from identity_service.core.models import ServiceToken

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_MARGIN = 300
REQUEST_TIMEOUT = 10


class ServiceTokenProvider:
    """Client-credentials token cache with single-flight refresh.

    Usage:
        provider = ServiceTokenProvider(token_url, "client-id", "secret", scopes)
        token = provider.get_token()
        headers = {"Authorization": f"Bearer {token.value}"}
    """

    def __init__(
        self,
        token_url: str,
        client_id: str,
        client_secret: str,
        scopes: Iterable[str],
        refresh_margin: int = DEFAULT_REFRESH_MARGIN,
        timeout: float = REQUEST_TIMEOUT,
        http=None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the provider.

        Args:
            token_url: OAuth2 token endpoint
            client_id: M2M application client ID
            client_secret: M2M application client secret
            scopes: Scopes requested on every exchange
            refresh_margin: Seconds subtracted from ``expires_in``
            timeout: Timeout for the token endpoint call
            http: Object exposing ``post`` (defaults to the requests module)
            clock: Wall clock returning epoch seconds
        """
        self.token_url = token_url
        self.client_id = client_id
        self._client_secret = client_secret
        self.scope = " ".join(scopes)
        self.refresh_margin = refresh_margin
        self.timeout = timeout
        self._http = http or requests
        self._clock = clock

        self._token: Optional[ServiceToken] = None
        self._lock = threading.Lock()
        self._exchanges = 0
        self._last_failure: Optional[AuthenticationFailure] = None

    def get_token(self) -> ServiceToken:
        """Return a valid token, exchanging credentials only when needed.

        Threads that find the cache stale while another thread is refreshing
        block on the lock and reuse that refresh's outcome.

        Raises:
            AuthenticationFailure: If the exchange fails
        """
        token = self._token
        if token is not None and token.is_valid(self._clock()):
            return token

        seen_exchanges = self._exchanges
        with self._lock:
            token = self._token
            if token is not None and token.is_valid(self._clock()):
                return token
            if self._exchanges != seen_exchanges and self._last_failure is not None:
                # The refresh we waited on failed; share its result.
                raise AuthenticationFailure(detail=self._last_failure.detail) from self._last_failure

            try:
                token = self._exchange()
            except AuthenticationFailure as exc:
                self._token = None
                self._last_failure = exc
                raise
            finally:
                self._exchanges += 1
            self._token = token
            self._last_failure = None
            return token

    def invalidate(self, token: Optional[ServiceToken] = None) -> None:
        """Drop the cached token (only if it is still ``token`` when given)."""
        with self._lock:
            if token is None or self._token is token:
                self._token = None

    def _exchange(self) -> ServiceToken:
        """Perform the client credentials exchange."""
        try:
            resp = self._http.post(
                self.token_url,
                data={"grant_type": "client_credentials", "scope": self.scope},
                auth=(self.client_id, self._client_secret),
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error(f"Failed to get Asgardeo access token: {exc}")
            raise AuthenticationFailure(detail=str(exc)) from exc

        if resp.status_code != 200:
            logger.error(f"Failed to get Asgardeo access token: [{resp.status_code}] {resp.text}")
            raise AuthenticationFailure(detail=resp.text)

        try:
            payload = resp.json()
            value = payload["access_token"]
            expires_in = int(payload["expires_in"])
        except (ValueError, KeyError, TypeError) as exc:
            logger.error(f"Malformed token endpoint response: {exc}")
            raise AuthenticationFailure(detail="Malformed token endpoint response") from exc

        logger.info("Asgardeo M2M token acquired successfully")
        return ServiceToken(value=value, expires_at=self._clock() + (expires_in - self.refresh_margin))
