# backend/orderflow/routes/orders.py
"""
Buyer-facing order API

- POST /api/orders                                 - Record a checkout result
- GET  /api/orders                                 - List the caller's orders
- GET  /api/orders/:id                             - Order detail
- GET  /api/orders/:id/eligibility                 - Can modify / remaining slots / can cancel
- GET  /api/orders/:id/modifications               - Requests, split pending/resolved
- POST /api/orders/:id/modifications               - Create a modification request
- POST /api/orders/:id/cancel                      - Cancel under the current policy
- GET  /api/orders/:id/invoice                     - Invoice projection (read-only)
- GET  /api/orders/:id/reorder                     - Reorder projection (read-only)

SECURITY:
- All routes require an actor (gateway headers)
- Buyers only see and act on their own orders; staff see all
- requested_by / cancelled_by come from the actor, NOT from the request body
- Payment outcome at intake is accepted from staff only; buyer orders start unpaid
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor
from ..services import (
    order_service,
    order_store,
    modification_service,
    eligibility_service,
    order_status_service,
    projection_service,
)
from ..time_utils import utcnow
from .responses import DOMAIN_ERRORS, json_error, forbidden


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _visible_order(order_id: int):
    """Load the order if the caller may see it, else None."""
    order = order_service.get_order(order_id)
    if not g.is_staff and order.user_id != g.current_user_id:
        return None
    return order


@orders_bp.post("")
@require_actor
def create_order_route():
    """
    Record a checkout result.

    Buyers always create their own order with payment "pending"; the payment
    outcome is only accepted from staff (or the checkout service acting with a
    staff role), who may also name the buyer via "user_id".

    Request body:
        {
            "items": [{"product_id": "p1", "product_name": "...", "quantity": 1, "unit_price_cents": 1299}],
            "shipping_cost_cents": 500,
            "insurance_cost_cents": 0,
            "payment_status": "completed",
            "shipping_details": {...},
            "user_id": "u1"
        }
    """
    payload = request.get_json(silent=True) or {}
    if g.is_staff:
        user_id = payload.get("user_id") or g.current_user_id
        payment_status = payload.get("payment_status", "pending")
    else:
        user_id = g.current_user_id
        payment_status = "pending"
    try:
        order = order_service.create_order(
            user_id=user_id,
            items=payload.get("items"),
            shipping_cost_cents=payload.get("shipping_cost_cents", 0),
            insurance_cost_cents=payload.get("insurance_cost_cents", 0),
            payment_status=payment_status,
            shipping_details=payload.get("shipping_details"),
        )
        return jsonify({"order": order.to_dict()}), 201
    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("")
@require_actor
def list_orders_route():
    """
    Query parameters:
        status (optional): pending|processing|shipped|delivered|cancelled
        limit (optional): Max results (default 200)
    """
    try:
        orders = order_service.list_orders(
            user_id=g.current_user_id,
            status=request.args.get("status") or None,
            limit=request.args.get("limit", type=int, default=200),
        )
        return jsonify({
            "orders": [o.to_dict(include_modifications=False) for o in orders],
            "count": len(orders),
        }), 200
    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        current_app.logger.exception("Failed to list orders")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>")
@require_actor
def get_order_route(order_id: int):
    try:
        order = _visible_order(order_id)
        if order is None:
            return forbidden()
        return jsonify({"order": order.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        current_app.logger.exception("Failed to load order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>/eligibility")
@require_actor
def eligibility_route(order_id: int):
    """
    Response:
        {
            "can_modify": bool,
            "remaining_slots": int,
            "can_cancel": bool,
            "reason": "order_not_modifiable" | "deadline_passed" | "modification_limit_reached" | null,
            ...
        }
    """
    try:
        order = _visible_order(order_id)
        if order is None:
            return forbidden()
        policy = order_store.read_policy_config()
        return jsonify(eligibility_service.summarize(order, policy, utcnow())), 200
    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        current_app.logger.exception("Failed to evaluate eligibility")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>/modifications")
@require_actor
def list_modifications_route(order_id: int):
    """
    Query parameters:
        filter (optional): all|pending|resolved (default all)
    """
    try:
        order = _visible_order(order_id)
        if order is None:
            return forbidden()
        groups = modification_service.list_requests(order, request.args.get("filter", "all"))
        return jsonify({
            "pending": [m.to_dict() for m in groups["pending"]],
            "resolved": [m.to_dict() for m in groups["resolved"]],
            "modification_count": order.modification_count,
        }), 200
    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        current_app.logger.exception("Failed to list modification requests")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/modifications")
@require_actor
def create_modification_route(order_id: int):
    """
    Request body:
        {"description": "Please change the delivery address to ..."}

    Error responses:
        400: Empty or oversized description
        422: Not eligible (reason tells which rule failed)
        409: Lost every write attempt to a concurrent update
    """
    payload = request.get_json(silent=True) or {}
    try:
        order = _visible_order(order_id)
        if order is None:
            return forbidden()
        order = modification_service.create_request(
            order_id,
            g.current_user_id,
            payload.get("description"),
        )
        return jsonify({"order": order.to_dict()}), 201
    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        current_app.logger.exception("Failed to create modification request")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/cancel")
@require_actor
def cancel_order_route(order_id: int):
    """
    Request body:
        {"reason": "Ordered the wrong size"}
    """
    payload = request.get_json(silent=True) or {}
    try:
        order = _visible_order(order_id)
        if order is None:
            return forbidden()
        order = order_status_service.cancel_order(
            order_id,
            payload.get("reason"),
            actor_id=g.current_user_id,
        )
        return jsonify({"order": order.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        current_app.logger.exception("Failed to cancel order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>/invoice")
@require_actor
def invoice_route(order_id: int):
    try:
        order = _visible_order(order_id)
        if order is None:
            return forbidden()
        return jsonify({"invoice": projection_service.invoice_projection(order)}), 200
    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        current_app.logger.exception("Failed to build invoice")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>/reorder")
@require_actor
def reorder_route(order_id: int):
    try:
        order = _visible_order(order_id)
        if order is None:
            return forbidden()
        return jsonify(projection_service.reorder_projection(order)), 200
    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        current_app.logger.exception("Failed to build reorder cart")
        return jsonify({"error": "Internal server error"}), 500
