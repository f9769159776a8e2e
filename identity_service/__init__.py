"""Identity Service: admin-only user management gateway for Asgardeo.

To use the Flask app:
    from identity_service.flask_app import create_app

To use the token core without Flask:
    from identity_service.core.gateway_service import GatewayOperations
"""
