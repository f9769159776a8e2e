"""Group-based access control helpers.

Pure functions over caller identities and SCIM group data, no I/O.

NOTE: ``is_caller_admin`` matches any group *containing* "admin"
(case-insensitive). This loose rule is the established behavior of the service
and is kept as is; a group such as "administrative-assistant" grants admin
access.
"""
from __future__ import annotations
import logging
from typing import Iterable, Optional

from identity_service.core.errors import Forbidden
from identity_service.core.models import CallerIdentity

logger = logging.getLogger(__name__)

ADMIN_MARKER = "admin"


def is_caller_admin(identity: CallerIdentity) -> bool:
    """Check if the caller belongs to an admin-like group."""
    return any(
        group == ADMIN_MARKER or ADMIN_MARKER in group.lower()
        for group in identity.groups
    )


def require_admin(identity: CallerIdentity) -> None:
    """Raise Forbidden unless the caller is an admin."""
    if not is_caller_admin(identity):
        logger.warning(f"Non-admin user {identity.email or identity.subject} attempted admin action")
        raise Forbidden("Admin access required.")


def _is_admin_label(label: Optional[str]) -> bool:
    return bool(label) and ADMIN_MARKER in label.lower()


def is_protected_target(target_groups: Optional[Iterable[dict]], admin_group_id: Optional[str]) -> bool:
    """Check if a user's group memberships make it a protected admin account.

    Args:
        target_groups: SCIM ``groups`` entries of the user ({"value", "display"})
        admin_group_id: Configured admin group ID (may be unset)
    """
    for group in target_groups or []:
        if not isinstance(group, dict):
            continue
        if admin_group_id and group.get("value") == admin_group_id:
            return True
        if _is_admin_label(group.get("display")):
            return True
    return False


def filter_protected_groups(groups: Optional[Iterable[dict]], admin_group_id: Optional[str]) -> list[dict]:
    """Remove the admin group (by ID or admin-like display name) from a listing."""
    return [
        group for group in groups or []
        if not (admin_group_id and group.get("id") == admin_group_id)
        and not _is_admin_label(group.get("displayName"))
    ]
