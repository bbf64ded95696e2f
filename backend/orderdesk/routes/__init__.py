from flask import jsonify

from ..errors import OrderDeskError


def error_response(exc: OrderDeskError, status: int):
    """Structured error payload: message plus optional details (field errors)."""
    body = {"error": exc.message}
    if exc.details:
        body["details"] = exc.details
    return jsonify(body), status


def internal_error():
    return jsonify({"error": "Internal server error"}), 500


def unavailable():
    return jsonify({"error": "Service busy, try again"}), 503
