"""Authentication routes: register, login, logout and session check."""

from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request

from .auth import end_session, get_current_identity, start_session
from .stores import get_stores
from .users import RegistrationError

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/register", methods=["POST"])
def register():
    """Create an account once the payroll number vouches for the requested role."""
    data = request.get_json(silent=True) or {}
    try:
        get_stores().users.register(
            username=data.get("username"),
            password=data.get("password"),
            role=data.get("role"),
            payroll_number=data.get("payrollNumber"),
        )
    except RegistrationError as e:
        return jsonify({"success": False, "message": str(e)})
    return jsonify({"success": True})


@auth_bp.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True) or {}
    username = data.get("username")
    user = get_stores().users.authenticate(username, data.get("password"))
    if user is None:
        logger.info(f"Failed login for '{username}'")
        return jsonify({"success": False, "message": "Invalid credentials"})

    identity = start_session(user)
    logger.info(f"User '{identity.username}' logged in as {identity.role.value}")
    return jsonify({"success": True, "role": identity.role.value, "username": identity.username})


@auth_bp.route("/logout", methods=["POST"])
def logout():
    end_session()
    return jsonify({"success": True})


@auth_bp.route("/check-session")
def check_session():
    identity = get_current_identity()
    if identity is None:
        return jsonify({"loggedIn": False}), 401
    return jsonify({"loggedIn": True, "role": identity.role.value, "username": identity.username})
