"""HTTP bindings (Flask blueprints) for the gateway operations."""
