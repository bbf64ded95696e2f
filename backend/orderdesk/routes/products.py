# Overview: Flask API routes for the product catalog; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..decorators import get_services, identify_user
from ..errors import ConflictError, NotFoundError, TransientStoreError, ValidationError
from ..validation import check_id, validate_product_payload
from . import error_response, internal_error, unavailable

products_bp = Blueprint("products", __name__, url_prefix="/api/produtos")


@products_bp.get("")
def list_products_route():
    """
    List products.

    Query params:
    - all: "1" to include inactive products (default: active only)
    """
    catalog = get_services().catalog
    include_inactive = request.args.get("all", "").strip().lower() in {"1", "true"}
    try:
        products = catalog.list_all() if include_inactive else catalog.list_active()
    except Exception:
        current_app.logger.exception("Failed to list products")
        return internal_error()
    return jsonify([p.to_dict() for p in products]), 200


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    try:
        product = get_services().catalog.get(check_id(product_id))
    except ValidationError as e:
        return error_response(e, 400)
    except NotFoundError as e:
        return error_response(e, 404)
    except Exception:
        current_app.logger.exception("Failed to load product")
        return internal_error()
    return jsonify(product.to_dict()), 200


@products_bp.post("")
@identify_user
def create_product_route():
    payload = request.get_json(silent=True)
    try:
        data = validate_product_payload(payload)
        product = get_services().catalog.create(data)
    except ValidationError as e:
        return error_response(e, 400)
    except (ConflictError, TransientStoreError):
        current_app.logger.warning("Product create hit a busy store")
        return unavailable()
    except Exception:
        current_app.logger.exception("Failed to create product")
        return internal_error()
    return jsonify(product.to_dict()), 201


@products_bp.put("/<int:product_id>")
@identify_user
def update_product_route(product_id: int):
    """Full replace of name, salePrice, unitCost and active."""
    payload = request.get_json(silent=True)
    try:
        data = validate_product_payload(payload)
        product = get_services().catalog.update(check_id(product_id), data)
    except ValidationError as e:
        return error_response(e, 400)
    except NotFoundError as e:
        return error_response(e, 404)
    except (ConflictError, TransientStoreError):
        current_app.logger.warning("Product update hit a busy store")
        return unavailable()
    except Exception:
        current_app.logger.exception("Failed to update product")
        return internal_error()
    return jsonify(product.to_dict()), 200
