"""
Gateway Service Layer: admin-only user management on top of Asgardeo SCIM2

Every operation runs in two phases:
    Admission: caller token verified, caller must be an admin (no side effects)
    Action:    upstream SCIM2 calls through IdentityApiClient, then admin
               protection filtering of the result

Architecture:
    Flask blueprint (/suppliers, /staff, /users, /groups)
        └──> gateway_service.GatewayOperations
                 ├──> token_verifier + rbac           (admission)
                 └──> asgardeo.IdentityApiClient      (action)

Known limitation: user creation and group assignment are not transactional.
If the membership PATCH fails after the user was created, the user stays
ungrouped.
"""
from __future__ import annotations
import logging
from concurrent.futures import ThreadPoolExecutor
from functools import wraps
from typing import Any, Optional

from identity_service.core.asgardeo import IdentityApiClient, ServiceTokenProvider
from identity_service.core.errors import (
    AuthenticationFailure,
    Conflict,
    Forbidden,
    GatewayError,
    NotFound,
    UpstreamError,
)
from identity_service.core.models import CallerIdentity, ProtectedGroupSet
from identity_service.core.rbac import filter_protected_groups, is_protected_target, require_admin
from identity_service.core.signing_keys import SigningKeyResolver
from identity_service.core.token_verifier import CallerTokenVerifier
from identity_service.core.user_transformer import DEFAULT_USERNAME_PREFIX, UserTransformer
from identity_service.core.validators import validate_new_user

logger = logging.getLogger(__name__)

SUPPLIER = "supplier"
WAREHOUSE_STAFF = "warehouse_staff"


def _upstream_failure(message: str):
    """Re-raise UpstreamError with a caller-facing message for this action."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except UpstreamError as exc:
                raise UpstreamError(
                    message,
                    detail=exc.detail,
                    status_code=exc.status_code,
                    endpoint=exc.endpoint,
                ) from exc
        return wrapper
    return decorator


class GatewayOperations:
    """The business operations exposed to admin callers."""

    def __init__(
        self,
        client: IdentityApiClient,
        verifier: CallerTokenVerifier,
        groups: ProtectedGroupSet,
        username_prefix: str = DEFAULT_USERNAME_PREFIX,
        member_fetch_workers: int = 8,
    ):
        self.client = client
        self.verifier = verifier
        self.groups = groups
        self.username_prefix = username_prefix
        self.member_fetch_workers = max(1, member_fetch_workers)

    @classmethod
    def from_config(cls, cfg) -> "GatewayOperations":
        """Build the component graph once per process."""
        provider = ServiceTokenProvider(
            cfg.token_url,
            cfg.client_id,
            cfg.client_secret,
            cfg.scopes,
            refresh_margin=cfg.token_refresh_margin,
            timeout=cfg.upstream_timeout,
        )
        resolver = SigningKeyResolver(
            cfg.jwks_url,
            algorithm=cfg.jwt_algorithm,
            min_refetch_interval=cfg.jwks_min_refetch_interval,
            timeout=cfg.upstream_timeout,
        )
        verifier = CallerTokenVerifier(
            resolver,
            issuer=cfg.issuer,
            algorithm=cfg.jwt_algorithm,
            audience=cfg.audience,
            leeway=cfg.jwt_leeway_seconds,
        )
        client = IdentityApiClient(
            cfg.scim2_url,
            provider,
            timeout=cfg.upstream_timeout,
            username_prefix=cfg.username_prefix,
        )
        return cls(
            client,
            verifier,
            cfg.protected_groups,
            username_prefix=cfg.username_prefix,
            member_fetch_workers=cfg.member_fetch_workers,
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Admission
    # ─────────────────────────────────────────────────────────────────────────

    def admit(self, raw_token: Optional[str]) -> CallerIdentity:
        """Verify the caller token and require the admin role.

        Raises:
            Unauthenticated: Missing, invalid or expired token
            Forbidden: Valid token without an admin group
        """
        identity = self.verifier.verify(raw_token or "")
        require_admin(identity)
        return identity

    # ─────────────────────────────────────────────────────────────────────────
    # Listings
    # ─────────────────────────────────────────────────────────────────────────

    @_upstream_failure("Failed to fetch suppliers")
    def list_suppliers(self, caller: CallerIdentity) -> dict:
        require_admin(caller)
        logger.info("Fetching suppliers from Asgardeo")
        return self._list_group_users(SUPPLIER, self.groups.supplier_group_id)

    @_upstream_failure("Failed to fetch warehouse staff")
    def list_warehouse_staff(self, caller: CallerIdentity) -> dict:
        require_admin(caller)
        logger.info("Fetching warehouse staff from Asgardeo")
        return self._list_group_users(WAREHOUSE_STAFF, self.groups.warehouse_staff_group_id)

    def _list_group_users(self, group_name: str, group_id: Optional[str]) -> dict:
        if not group_id:
            raise UpstreamError(detail=f"Group ID for '{group_name}' is not configured")

        try:
            members = self.client.groups.get_members(group_id)
        except NotFound as exc:
            raise UpstreamError(detail=f"Configured {group_name} group {group_id} not found upstream") from exc
        member_ids = [m.get("value") for m in members if isinstance(m, dict) and m.get("value")]

        with ThreadPoolExecutor(max_workers=min(self.member_fetch_workers, max(1, len(member_ids)))) as pool:
            scim_users = list(pool.map(self._fetch_member, member_ids))

        users = []
        for scim_user in scim_users:
            if scim_user is None:
                continue
            if is_protected_target(scim_user.get("groups"), self.groups.admin_group_id):
                logger.info(f"Omitting protected admin user {scim_user.get('id')} from {group_name} listing")
                continue
            users.append(UserTransformer.scim_to_gateway(scim_user, self.username_prefix).to_dict())

        return {"success": True, "data": users, "total": len(users)}

    def _fetch_member(self, user_id: str) -> Optional[dict]:
        """Fetch one member; failures drop the member instead of the listing."""
        try:
            return self.client.users.get(user_id)
        except AuthenticationFailure:
            raise
        except GatewayError as exc:
            logger.warning(f"Failed to fetch user {user_id}: {exc.message} ({exc.detail})")
            return None

    @_upstream_failure("Failed to fetch groups")
    def list_groups(self, caller: CallerIdentity) -> dict:
        """List manageable groups; the admin group is never returned."""
        require_admin(caller)
        logger.info("Fetching groups from Asgardeo")

        response = self.client.groups.list()
        visible = filter_protected_groups(response.get("Resources") or [], self.groups.admin_group_id)
        groups = [UserTransformer.group_summary(g, self.username_prefix) for g in visible]
        return {"success": True, "data": groups, "total": len(groups)}

    # ─────────────────────────────────────────────────────────────────────────
    # Single user
    # ─────────────────────────────────────────────────────────────────────────

    @_upstream_failure("Failed to fetch user")
    def get_user(self, caller: CallerIdentity, user_id: str) -> dict:
        require_admin(caller)
        logger.info(f"Fetching user {user_id} from Asgardeo")
        scim_user = self._get_scim_user(user_id)
        return {"success": True, "data": UserTransformer.scim_to_gateway(scim_user, self.username_prefix).to_dict()}

    @_upstream_failure("Failed to delete user")
    def delete_user(self, caller: CallerIdentity, user_id: str) -> dict:
        """Delete a supplier or staff user. Admin group members are protected.

        Raises:
            Forbidden: Target is a protected admin account (nothing deleted)
            NotFound: Target does not exist
        """
        require_admin(caller)

        logger.info(f"Fetching user {user_id} to verify group membership")
        scim_user = self._get_scim_user(user_id)

        if is_protected_target(scim_user.get("groups"), self.groups.admin_group_id):
            logger.warning(f"Attempted to delete admin user {user_id} - operation denied")
            raise Forbidden("Cannot delete admin users. Admin group members are protected.")

        logger.info(f"Deleting user {user_id} from Asgardeo")
        try:
            self.client.users.delete(user_id)
        except NotFound as exc:
            raise NotFound("User not found", detail=exc.detail) from exc
        return {"success": True, "message": "User deleted successfully"}

    def _get_scim_user(self, user_id: str) -> dict:
        try:
            return self.client.users.get(user_id)
        except NotFound as exc:
            raise NotFound("User not found", detail=exc.detail) from exc

    # ─────────────────────────────────────────────────────────────────────────
    # Creation
    # ─────────────────────────────────────────────────────────────────────────

    @_upstream_failure("Failed to create supplier")
    def create_supplier(self, caller: CallerIdentity, payload: Any) -> dict:
        require_admin(caller)
        scim_user = self._create_group_user(payload, SUPPLIER, self.groups.supplier_group_id)
        return {
            "success": True,
            "message": "Supplier created successfully. Password reset email sent.",
            "data": UserTransformer.scim_to_gateway(scim_user, self.username_prefix).to_dict(),
        }

    @_upstream_failure("Failed to create warehouse staff")
    def create_warehouse_staff(self, caller: CallerIdentity, payload: Any) -> dict:
        require_admin(caller)
        scim_user = self._create_group_user(payload, WAREHOUSE_STAFF, self.groups.warehouse_staff_group_id)
        return {
            "success": True,
            "message": "Warehouse staff created successfully. Password reset email sent.",
            "data": UserTransformer.scim_to_gateway(scim_user, self.username_prefix).to_dict(),
        }

    def _create_group_user(self, payload: Any, group_name: str, group_id: Optional[str]) -> dict:
        fields = validate_new_user(payload)
        email = fields["email"]
        logger.info(f"Creating {group_name} user: {email}")

        try:
            scim_user = self.client.users.create(
                email,
                fields["firstName"],
                fields["lastName"],
                phone=fields["phone"],
            )
        except Conflict as exc:
            raise Conflict("A user with this email already exists", detail=exc.detail) from exc

        user_id = scim_user.get("id")
        if not user_id:
            raise UpstreamError(detail="create response missing id")

        if group_id:
            try:
                self.client.groups.add_member(group_id, user_id, display=email)
            except AuthenticationFailure:
                raise
            except GatewayError as exc:
                logger.error(f"User {user_id} created but {group_name} group assignment failed: {exc.message}")
                raise UpstreamError(detail=exc.detail) from exc
            logger.info(f"Added user {user_id} to {group_name} group")
        else:
            logger.warning(f"{group_name} group ID not configured, user created without group assignment")

        return scim_user
