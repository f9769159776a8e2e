"""Core Business Logic Module

Token & authorization core plus the Asgardeo client, independent of Flask.

Module Structure:
    - asgardeo/           : M2M token provider and SCIM2 client
    - signing_keys.py     : JWKS signing key cache
    - token_verifier.py   : Caller JWT verification
    - rbac.py             : Admin detection and admin protection rules
    - gateway_service.py  : Admin-only business operations
    - user_transformer.py : SCIM2 → gateway user mapping
    - validators.py       : Create-user payload validation
    - errors.py           : Error taxonomy with HTTP status mapping
    - models.py           : Value objects

Import explicitly when needed:
    from identity_service.core.gateway_service import GatewayOperations
    from identity_service.core.rbac import is_caller_admin
"""
