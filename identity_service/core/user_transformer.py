"""SCIM 2.0 (Asgardeo) ↔ gateway data transformations.

Usage:
    # SCIM → gateway
    user = UserTransformer.scim_to_gateway(scim_user)
    summary = UserTransformer.group_summary(scim_group)

    # gateway → SCIM
    payload = UserTransformer.new_user_payload("a@b.com", "A", "B")
"""
from __future__ import annotations
from typing import Any, Dict, Optional

from identity_service.core.models import GatewayUser

SCIM_USER_SCHEMA = "urn:ietf:params:scim:schemas:core:2.0:User"
WSO2_USER_EXTENSION = "urn:scim:wso2:schema"
DEFAULT_USERNAME_PREFIX = "DEFAULT/"


def _strip_prefix(value: Optional[str], prefix: str) -> Optional[str]:
    if value is None:
        return None
    return value.replace(prefix, "", 1)


def _first_value(entries: Any) -> Optional[str]:
    if isinstance(entries, list) and entries and isinstance(entries[0], dict):
        return entries[0].get("value")
    return None


class UserTransformer:
    """Mapping between Asgardeo SCIM2 resources and gateway views."""

    @staticmethod
    def scim_to_gateway(scim_user: Dict[str, Any], username_prefix: str = DEFAULT_USERNAME_PREFIX) -> GatewayUser:
        """Convert a SCIM2 User resource to a GatewayUser.

        The email falls back to ``userName`` without its user store prefix
        when ``emails`` is empty.

        Example:
            >>> user = UserTransformer.scim_to_gateway(
            ...     {"id": "u1", "userName": "DEFAULT/x@y.com", "emails": []}
            ... )
            >>> user.email
            'x@y.com'
        """
        name = scim_user.get("name") or {}
        first_name = name.get("givenName") or ""
        last_name = name.get("familyName") or ""
        meta = scim_user.get("meta") or {}

        email = _first_value(scim_user.get("emails")) or _strip_prefix(scim_user.get("userName"), username_prefix)

        return GatewayUser(
            id=scim_user.get("id"),
            email=email,
            first_name=first_name,
            last_name=last_name,
            display_name=scim_user.get("displayName") or f"{first_name} {last_name}".strip(),
            phone=_first_value(scim_user.get("phoneNumbers")),
            active=scim_user.get("active") is not False,
            created_at=meta.get("created"),
            updated_at=meta.get("lastModified"),
            groups=tuple(
                g["display"] for g in scim_user.get("groups") or []
                if isinstance(g, dict) and g.get("display")
            ),
        )

    @staticmethod
    def group_summary(scim_group: Dict[str, Any], username_prefix: str = DEFAULT_USERNAME_PREFIX) -> Dict[str, Any]:
        """Reduce a SCIM2 Group to {id, name, memberCount}."""
        return {
            "id": scim_group.get("id"),
            "name": _strip_prefix(scim_group.get("displayName"), username_prefix),
            "memberCount": len(scim_group.get("members") or []),
        }

    @staticmethod
    def new_user_payload(
        email: str,
        first_name: str,
        last_name: str,
        phone: Optional[str] = None,
        username_prefix: str = DEFAULT_USERNAME_PREFIX,
    ) -> Dict[str, Any]:
        """Build the SCIM2 create-user payload.

        No password is sent: ``askPassword`` makes Asgardeo email a
        password-set link to the new user.
        """
        payload: Dict[str, Any] = {
            "schemas": [SCIM_USER_SCHEMA],
            "userName": f"{username_prefix}{email}",
            "name": {
                "givenName": first_name,
                "familyName": last_name,
            },
            "emails": [
                {
                    "value": email,
                    "primary": True,
                }
            ],
            WSO2_USER_EXTENSION: {
                "askPassword": True,
            },
        }
        if phone:
            payload["phoneNumbers"] = [{"value": phone, "type": "mobile"}]
        return payload
