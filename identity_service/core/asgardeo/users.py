"""Asgardeo SCIM2 user operations."""
from __future__ import annotations
from typing import TYPE_CHECKING, Any, Dict, Optional

from identity_service.core.user_transformer import DEFAULT_USERNAME_PREFIX, UserTransformer

if TYPE_CHECKING:
    from .client import IdentityApiClient


class UserService:
    """Service for managing SCIM2 users."""

    def __init__(self, client: "IdentityApiClient", username_prefix: str = DEFAULT_USERNAME_PREFIX):
        """Initialize user service.

        Args:
            client: SCIM2 HTTP client
            username_prefix: User store prefix prepended to new userNames
        """
        self.client = client
        self.username_prefix = username_prefix

    def list(
        self,
        filter: Optional[str] = None,
        start_index: int = 1,
        count: int = 50,
        attributes: Optional[str] = None,
    ) -> Dict[str, Any]:
        """List users, optionally filtered (e.g. 'emails eq "a@b.com"').

        Returns:
            SCIM ListResponse
        """
        params: Dict[str, Any] = {"startIndex": start_index, "count": count}
        if filter:
            params["filter"] = filter
        if attributes:
            params["attributes"] = attributes
        return self.client.request("GET", "/Users", params=params) or {}

    def get(self, user_id: str) -> Dict[str, Any]:
        """Retrieve a user by ID.

        Raises:
            NotFound: If the user does not exist
        """
        return self.client.request("GET", f"/Users/{user_id}") or {}

    def create(
        self,
        email: str,
        first_name: str,
        last_name: str,
        phone: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create a user that sets its own password via the reset email.

        Raises:
            Conflict: If a user with this userName already exists
        """
        payload = UserTransformer.new_user_payload(
            email, first_name, last_name, phone, username_prefix=self.username_prefix
        )
        return self.client.request("POST", "/Users", json=payload) or {}

    def delete(self, user_id: str) -> None:
        self.client.request("DELETE", f"/Users/{user_id}")
