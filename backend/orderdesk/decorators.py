# Overview: Request decorators for API routes.

from functools import wraps
from flask import current_app, g, jsonify, request

USER_HEADER = "X-User-Name"


def get_services():
    """The Services container the app factory wired to the opened store."""
    return current_app.extensions["orderdesk"]


def identify_user(f):
    """
    Resolve the acting user from the X-User-Name header (authentication by name).

    Sets g.current_user to the User, or None for anonymous requests.

    Returns 401 if:
    - the header names an unknown user
    - the header is missing and REQUIRE_USER is enabled
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        name = (request.headers.get(USER_HEADER) or "").strip()
        g.current_user = None

        if name:
            user = get_services().users.get_by_name(name)
            if user is None:
                return jsonify({"error": "Unknown user"}), 401
            g.current_user = user
        elif current_app.config.get("REQUIRE_USER"):
            return jsonify({"error": "Authentication required"}), 401

        return f(*args, **kwargs)

    return decorated_function
