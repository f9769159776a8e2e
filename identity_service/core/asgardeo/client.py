"""Low-level HTTP client for the Asgardeo SCIM2 API.

Handles bearer authentication through ServiceTokenProvider, SCIM media types,
timeouts, and mapping of HTTP failures to the gateway error taxonomy.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, Optional

import requests

from identity_service.core.errors import AuthenticationFailure, Conflict, NotFound, UpstreamError
from identity_service.core.user_transformer import DEFAULT_USERNAME_PREFIX
from .groups import GroupService
from .tokens import ServiceTokenProvider
from .users import UserService

logger = logging.getLogger(__name__)

SCIM_MEDIA_TYPE = "application/scim+json"
REQUEST_TIMEOUT = 10


class IdentityApiClient:
    """HTTP client for Asgardeo SCIM2 endpoints.

    User and group operations live on ``client.users`` and ``client.groups``.

    Usage:
        client = IdentityApiClient("https://api.asgardeo.io/t/acme/scim2", provider)
        scim_user = client.users.get("0c3e...")
        client.groups.add_member(group_id, scim_user["id"], display="a@b.com")
    """

    def __init__(
        self,
        scim2_url: str,
        token_provider: ServiceTokenProvider,
        timeout: float = REQUEST_TIMEOUT,
        http=None,
        username_prefix: str = DEFAULT_USERNAME_PREFIX,
    ):
        """Initialize the client.

        Args:
            scim2_url: SCIM2 base URL (e.g. https://api.asgardeo.io/t/<org>/scim2)
            token_provider: Source of M2M bearer tokens
            timeout: Per-request timeout in seconds
            http: Object exposing ``request`` (defaults to the requests module)
            username_prefix: User store prefix for created userNames
        """
        self.scim2_url = scim2_url.rstrip("/")
        self.token_provider = token_provider
        self.timeout = timeout
        self._http = http or requests

        self.users = UserService(self, username_prefix=username_prefix)
        self.groups = GroupService(self)

    def request(
        self,
        method: str,
        endpoint: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        """Execute an authenticated SCIM2 request.

        Args:
            method: HTTP method
            endpoint: Path below the SCIM2 base URL (e.g. "/Users")
            json: SCIM payload
            params: Query parameters

        Returns:
            Decoded response body, or None for empty responses

        Raises:
            AuthenticationFailure: No M2M token, or the upstream rejected it
            NotFound: Upstream 404
            Conflict: Upstream 409
            UpstreamError: Any other failure
        """
        token = self.token_provider.get_token()
        url = f"{self.scim2_url}{endpoint}"
        headers = {
            "Authorization": f"Bearer {token.value}",
            "Content-Type": SCIM_MEDIA_TYPE,
            "Accept": SCIM_MEDIA_TYPE,
        }

        try:
            resp = self._http.request(
                method,
                url,
                headers=headers,
                json=json,
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error(f"SCIM2 API error ({method} {endpoint}): {exc}")
            raise UpstreamError(detail=str(exc), endpoint=endpoint) from exc

        if resp.status_code >= 400:
            self._handle_error(resp, method, endpoint, token)

        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise UpstreamError(detail="Malformed SCIM2 response", status_code=resp.status_code, endpoint=endpoint) from exc

    def _handle_error(self, resp, method: str, endpoint: str, token) -> None:
        """Centralized error mapping for SCIM2 responses."""
        detail = _error_detail(resp)
        logger.error(f"SCIM2 API error ({method} {endpoint}): [{resp.status_code}] {detail}")

        if resp.status_code == 401:
            self.token_provider.invalidate(token)
            raise AuthenticationFailure(detail=detail)
        if resp.status_code == 404:
            raise NotFound(detail=detail)
        if resp.status_code == 409:
            raise Conflict(detail=detail)
        raise UpstreamError(detail=detail, status_code=resp.status_code, endpoint=endpoint)


def _error_detail(resp) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text
