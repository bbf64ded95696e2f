# Overview: Flask API routes for users; names identify callers, roles gate lifecycle actions.

from flask import Blueprint, current_app, jsonify, request

from ..decorators import get_services
from ..errors import ConflictError, ValidationError
from ..validation import validate_user_payload
from . import error_response, internal_error

users_bp = Blueprint("users", __name__, url_prefix="/api/usuarios")


@users_bp.get("")
def list_users_route():
    users = get_services().users.list_users()
    return jsonify([u.to_dict() for u in users]), 200


@users_bp.post("")
def create_user_route():
    """Body: {name, role?} with role Admin | RegularUser (default RegularUser)."""
    payload = request.get_json(silent=True)
    try:
        name, role = validate_user_payload(payload)
        user = get_services().users.create_user(name, role)
    except ValidationError as e:
        return error_response(e, 400)
    except ConflictError as e:
        return error_response(e, 409)
    except Exception:
        current_app.logger.exception("Failed to create user")
        return internal_error()
    return jsonify(user.to_dict()), 201
