# Overview: Flask API routes for service health.

from flask import Blueprint, jsonify

from ..decorators import get_services

system_bp = Blueprint("system", __name__, url_prefix="/api")


@system_bp.get("/health")
def health():
    return jsonify({"status": "ok", "store": get_services().store.backend_name}), 200
