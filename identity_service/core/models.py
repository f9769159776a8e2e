"""Value objects for tokens, keys, caller identities and gateway users."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class ServiceToken:
    """M2M access token for the upstream SCIM2 API.

    ``expires_at`` is already shortened by the refresh margin, so a token is
    usable while ``now < expires_at``.
    """
    value: str
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


@dataclass(frozen=True)
class SigningKey:
    key_id: str
    public_key: Any


@dataclass(frozen=True)
class CallerIdentity:
    """Identity of a verified caller. Built only by CallerTokenVerifier."""
    subject: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    groups: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class ProtectedGroupSet:
    admin_group_id: Optional[str] = None
    supplier_group_id: Optional[str] = None
    warehouse_staff_group_id: Optional[str] = None


@dataclass(frozen=True)
class GatewayUser:
    """Normalized view of a SCIM2 user record."""
    id: str
    email: Optional[str]
    first_name: str
    last_name: str
    display_name: str
    phone: Optional[str]
    active: bool
    created_at: Optional[str]
    updated_at: Optional[str]
    groups: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "displayName": self.display_name,
            "phone": self.phone,
            "active": self.active,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "groups": list(self.groups),
        }
