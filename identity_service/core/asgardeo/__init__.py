"""Asgardeo (WSO2) SCIM2 / OAuth2 client library.

Architecture:
- tokens.py: client credentials M2M token with cached, single-flight refresh
- client.py: authenticated SCIM2 HTTP client and error mapping
- users.py: user operations (list, get, create, delete)
- groups.py: group operations and membership PATCH requests

Usage:
    from identity_service.core.asgardeo import IdentityApiClient, ServiceTokenProvider

    provider = ServiceTokenProvider(token_url, client_id, client_secret, scopes)
    client = IdentityApiClient(scim2_url, provider)
    group = client.groups.get(group_id)
"""
from .client import IdentityApiClient
from .groups import GroupService
from .tokens import ServiceTokenProvider
from .users import UserService

__all__ = [
    "IdentityApiClient",
    "GroupService",
    "ServiceTokenProvider",
    "UserService",
]
