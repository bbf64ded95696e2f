# Overview: Flask API routes for orders and their status lifecycle; parses input and returns JSON responses.

"""
Time semantics:
- start/end accept ISO-8601 dates or datetimes; backend normalizes to UTC-naive.
- Filtering is inclusive on createdAt; a date-only end covers the whole day.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import get_services, identify_user
from ..errors import (
    ConflictError,
    InvalidTransition,
    NotFoundError,
    PermissionDenied,
    TransientStoreError,
    ValidationError,
)
from ..services import TransitionRequest
from ..validation import (
    parse_date_range,
    parse_status,
    validate_order_payload,
    validate_transition_payload,
)
from . import error_response, internal_error, unavailable

orders_bp = Blueprint("orders", __name__, url_prefix="/api/pedidos")


@orders_bp.get("")
def list_orders_route():
    """
    List orders, newest first, each with its lines and products.

    Query params:
    - status: InProduction | Shipped | Completed | Cancelled (or codes 1-4)
    - start, end: createdAt range, inclusive
    """
    try:
        status_raw = request.args.get("status")
        status = parse_status(status_raw) if status_raw else None
        start, end = parse_date_range(request.args.get("start"), request.args.get("end"))
        orders = get_services().orders.list_orders(status=status, start=start, end=end)
    except ValidationError as e:
        return error_response(e, 400)
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return internal_error()
    return jsonify([o.to_dict() for o in orders]), 200


@orders_bp.get("/<order_id>")
def get_order_route(order_id: str):
    try:
        order = get_services().orders.get_order(order_id)
    except NotFoundError as e:
        return error_response(e, 404)
    except Exception:
        current_app.logger.exception("Failed to load order")
        return internal_error()
    return jsonify(order.to_dict()), 200


@orders_bp.post("")
@identify_user
def create_order_route():
    """
    Create an order in InProduction with a fresh YYYY-NNNN number.

    Body: {customerName?, lines: [{productId, quantity, unitPrice?}]}
    """
    payload = request.get_json(silent=True)
    try:
        customer_name, lines = validate_order_payload(payload)
        order = get_services().orders.create_order(customer_name, lines)
    except ValidationError as e:
        return error_response(e, 400)
    except NotFoundError as e:
        return error_response(e, 404)
    except (ConflictError, TransientStoreError):
        current_app.logger.warning("Order creation kept losing the numbering race")
        return unavailable()
    except Exception:
        current_app.logger.exception("Failed to create order")
        return internal_error()
    return jsonify(order.to_dict()), 201


@orders_bp.post("/<order_id>/status")
@identify_user
def transition_order_route(order_id: str):
    """
    Apply a lifecycle transition.

    Query: novo=InProduction|Shipped|Completed|Cancelled
    Body: {trackingCode?, shippingCost?} (trackingCode required for Shipped)
    """
    target_raw = request.args.get("novo")
    if not target_raw:
        return jsonify({"error": "Query parameter 'novo' is required"}), 400

    try:
        target = parse_status(target_raw, field="novo")
        tracking_code, shipping_cost = validate_transition_payload(request.get_json(silent=True))
        order = get_services().lifecycle.transition(
            order_id,
            target,
            TransitionRequest(tracking_code=tracking_code, shipping_cost=shipping_cost),
            actor=g.current_user,
        )
    except (ValidationError, InvalidTransition) as e:
        return error_response(e, 400)
    except NotFoundError as e:
        return error_response(e, 404)
    except PermissionDenied as e:
        return error_response(e, 403)
    except (ConflictError, TransientStoreError):
        current_app.logger.warning("Transition of order %s hit a busy store", order_id)
        return unavailable()
    except Exception:
        current_app.logger.exception("Failed to change order status")
        return internal_error()
    return jsonify(order.to_dict()), 200
