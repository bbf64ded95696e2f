# Overview: Flask API routes for the cash ledger; parses input and returns JSON responses.

"""
Time semantics:
- start/end filter on the entry date (business time), inclusive.
- A manual entry without a date is dated now.
"""

from flask import Blueprint, current_app, jsonify, request

from ..decorators import get_services, identify_user
from ..errors import ConflictError, NotFoundError, TransientStoreError, ValidationError
from ..validation import parse_date_range, validate_ledger_entry_payload
from . import error_response, internal_error, unavailable

cash_bp = Blueprint("cash", __name__, url_prefix="/api/caixa")


@cash_bp.get("/lancamentos")
def list_entries_route():
    """
    Query params:
    - start, end: entry date range, inclusive
    - orderId: only entries linked to this order
    """
    try:
        start, end = parse_date_range(request.args.get("start"), request.args.get("end"))
        order_id = (request.args.get("orderId") or "").strip() or None
        entries = get_services().cash.list_entries(start=start, end=end, order_id=order_id)
    except ValidationError as e:
        return error_response(e, 400)
    except Exception:
        current_app.logger.exception("Failed to list ledger entries")
        return internal_error()
    return jsonify([e.to_dict() for e in entries]), 200


@cash_bp.post("/lancamentos")
@identify_user
def create_entry_route():
    """Body: {kind, category, amount, date?, orderId?, receiptImage?}"""
    payload = request.get_json(silent=True)
    try:
        fields = validate_ledger_entry_payload(payload)
        entry = get_services().cash.create_entry(**fields)
    except ValidationError as e:
        return error_response(e, 400)
    except NotFoundError as e:
        return error_response(e, 404)
    except (ConflictError, TransientStoreError):
        current_app.logger.warning("Ledger entry create hit a busy store")
        return unavailable()
    except Exception:
        current_app.logger.exception("Failed to create ledger entry")
        return internal_error()
    return jsonify(entry.to_dict()), 201


@cash_bp.get("/resumo")
def summary_route():
    try:
        start, end = parse_date_range(request.args.get("start"), request.args.get("end"))
        summary = get_services().cash.summary(start=start, end=end)
    except ValidationError as e:
        return error_response(e, 400)
    except Exception:
        current_app.logger.exception("Failed to summarize ledger")
        return internal_error()
    return jsonify(summary.to_dict()), 200
