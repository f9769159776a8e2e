"""User management endpoints (admin only).

The API gateway strips the /api/identity prefix before forwarding, so routes
are registered at the application root.
"""
from __future__ import annotations
from flask import Blueprint, jsonify, request

from identity_service.api.decorators import current_caller, get_gateway, require_admin

bp = Blueprint("gateway", __name__)


# ─────────────────────────────────────────────────────────────────────────────
# Suppliers
# ─────────────────────────────────────────────────────────────────────────────

@bp.route("/suppliers", methods=["GET"])
@require_admin
def list_suppliers():
    return jsonify(get_gateway().list_suppliers(current_caller())), 200


@bp.route("/suppliers", methods=["POST"])
@require_admin
def create_supplier():
    payload = request.get_json(silent=True)
    return jsonify(get_gateway().create_supplier(current_caller(), payload)), 201


# ─────────────────────────────────────────────────────────────────────────────
# Warehouse staff
# ─────────────────────────────────────────────────────────────────────────────

@bp.route("/staff", methods=["GET"])
@require_admin
def list_warehouse_staff():
    return jsonify(get_gateway().list_warehouse_staff(current_caller())), 200


@bp.route("/staff", methods=["POST"])
@require_admin
def create_warehouse_staff():
    payload = request.get_json(silent=True)
    return jsonify(get_gateway().create_warehouse_staff(current_caller(), payload)), 201


# ─────────────────────────────────────────────────────────────────────────────
# Users and groups
# ─────────────────────────────────────────────────────────────────────────────

@bp.route("/users/<user_id>", methods=["GET"])
@require_admin
def get_user(user_id: str):
    return jsonify(get_gateway().get_user(current_caller(), user_id)), 200


@bp.route("/users/<user_id>", methods=["DELETE"])
@require_admin
def delete_user(user_id: str):
    """Delete a supplier or staff user. Admin users cannot be deleted (403)."""
    return jsonify(get_gateway().delete_user(current_caller(), user_id)), 200


@bp.route("/groups", methods=["GET"])
@require_admin
def list_groups():
    """List manageable groups (admin group excluded)."""
    return jsonify(get_gateway().list_groups(current_caller())), 200
