"""Asgardeo SCIM2 group management and membership operations."""
from __future__ import annotations
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from .client import IdentityApiClient

SCIM_PATCH_SCHEMA = "urn:ietf:params:scim:api:messages:2.0:PatchOp"


class GroupService:
    """Service for managing SCIM2 groups."""

    def __init__(self, client: "IdentityApiClient"):
        self.client = client

    def list(self, filter: Optional[str] = None, start_index: int = 1, count: int = 50) -> Dict[str, Any]:
        """List groups.

        Returns:
            SCIM ListResponse (groups under ``Resources``)
        """
        params: Dict[str, Any] = {"startIndex": start_index, "count": count}
        if filter:
            params["filter"] = filter
        return self.client.request("GET", "/Groups", params=params) or {}

    def get(self, group_id: str) -> Dict[str, Any]:
        """Retrieve a group, including its ``members``."""
        return self.client.request("GET", f"/Groups/{group_id}") or {}

    def get_members(self, group_id: str) -> list[dict]:
        """Return the member references ({"value", "display"}) of a group."""
        return self.get(group_id).get("members") or []

    def add_member(self, group_id: str, user_id: str, display: Optional[str] = None) -> None:
        """Add a user to a group.

        Args:
            group_id: Group ID
            user_id: User ID
            display: Member label; Asgardeo requires it (the user's email)
        """
        member: Dict[str, Any] = {"value": user_id}
        if display:
            member["display"] = display

        patch = {
            "schemas": [SCIM_PATCH_SCHEMA],
            "Operations": [
                {
                    "op": "add",
                    "value": {"members": [member]},
                }
            ],
        }
        self.client.request("PATCH", f"/Groups/{group_id}", json=patch)

    def remove_member(self, group_id: str, user_id: str) -> None:
        """Remove a user from a group."""
        patch = {
            "schemas": [SCIM_PATCH_SCHEMA],
            "Operations": [
                {
                    "op": "remove",
                    "path": f'members[value eq "{user_id}"]',
                }
            ],
        }
        self.client.request("PATCH", f"/Groups/{group_id}", json=patch)
