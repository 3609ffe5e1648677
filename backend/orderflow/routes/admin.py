# backend/orderflow/routes/admin.py
"""
Staff order administration API

- GET  /api/admin/orders                                   - All orders (status filter)
- POST /api/admin/orders/:id/status                        - Set fulfillment status
- POST /api/admin/orders/:id/payment-status                - Record payment outcome
- POST /api/admin/orders/:id/max-modifications             - Per-order request limit
- POST /api/admin/orders/:id/modifications/:rid/resolve    - Approve / reject a request
- GET  /api/admin/modifications/pending                    - Arbitration queue
- GET  /api/admin/policy                                   - Current policy
- PUT  /api/admin/policy                                   - Replace policy

SECURITY:
- All routes require a staff actor
- responded_by / updated_by are taken from the actor, NOT from the request body
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_actor, require_staff
from ..services import (
    order_service,
    order_status_service,
    modification_service,
    arbitration_service,
    policy_service,
)
from .responses import DOMAIN_ERRORS, json_error


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/orders")
@require_actor
@require_staff
def list_orders_route():
    """
    Query parameters:
        status (optional): Filter by fulfillment status
        user_id (optional): Filter by buyer
        limit (optional): Max results (default 200)
    """
    try:
        orders = order_service.list_orders(
            user_id=request.args.get("user_id") or None,
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


@admin_bp.post("/orders/<int:order_id>/status")
@require_actor
@require_staff
def transition_status_route(order_id: int):
    """
    Request body:
        {"status": "shipped"}

    Error responses:
        404: Order not found
        409: Order is delivered/cancelled (terminal) or unknown status
    """
    payload = request.get_json(silent=True) or {}
    try:
        order = order_status_service.transition_order_status(
            order_id,
            payload.get("status"),
            actor_id=g.current_user_id,
        )
        return jsonify({"order": order.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        current_app.logger.exception("Failed to change order status")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/orders/<int:order_id>/payment-status")
@require_actor
@require_staff
def payment_status_route(order_id: int):
    """
    Request body:
        {"payment_status": "completed"}
    """
    payload = request.get_json(silent=True) or {}
    try:
        order = order_status_service.update_payment_status(
            order_id,
            payload.get("payment_status"),
            actor_id=g.current_user_id,
        )
        return jsonify({"order": order.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        current_app.logger.exception("Failed to update payment status")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/orders/<int:order_id>/max-modifications")
@require_actor
@require_staff
def max_modifications_route(order_id: int):
    """
    Request body:
        {"max_modifications_allowed": 2}
    """
    payload = request.get_json(silent=True) or {}
    try:
        order = modification_service.update_max_modifications(
            order_id,
            payload.get("max_modifications_allowed"),
            staff_id=g.current_user_id,
        )
        return jsonify({"order": order.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        current_app.logger.exception("Failed to update modification limit")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/orders/<int:order_id>/modifications/<int:request_id>/resolve")
@require_actor
@require_staff
def resolve_modification_route(order_id: int, request_id: int):
    """
    Request body:
        {"decision": "approved" | "rejected", "response_text": "optional note"}

    Error responses:
        404: Order or request not found
        409: Request already resolved (another staff member decided first)
        422: Order was cancelled
    """
    payload = request.get_json(silent=True) or {}
    try:
        order = arbitration_service.resolve_request(
            order_id,
            request_id,
            payload.get("decision"),
            payload.get("response_text"),
            g.current_user_id,
        )
        return jsonify({"order": order.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        current_app.logger.exception("Failed to resolve modification request")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/modifications/pending")
@require_actor
@require_staff
def pending_modifications_route():
    try:
        requests = modification_service.list_pending_requests(
            limit=request.args.get("limit", type=int, default=200),
        )
        return jsonify({
            "modifications": [m.to_dict() for m in requests],
            "count": len(requests),
        }), 200
    except Exception:
        current_app.logger.exception("Failed to list pending modification requests")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/policy")
@require_actor
@require_staff
def get_policy_route():
    try:
        return jsonify({"policy": policy_service.get_policy_document()}), 200
    except Exception:
        current_app.logger.exception("Failed to load policy")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.put("/policy")
@require_actor
@require_staff
def update_policy_route():
    """
    Replaces the whole policy document; every field is required.

    Request body:
        {
            "default_max_modifications": 3,
            "modification_deadline_hours": 24,
            "allow_cancellations": true,
            "require_reason_for_cancellation": true
        }
    """
    payload = request.get_json(silent=True)
    try:
        policy_service.update_policy(payload, updated_by=g.current_user_id)
        return jsonify({"policy": policy_service.get_policy_document()}), 200
    except DOMAIN_ERRORS as e:
        return json_error(e)
    except Exception:
        current_app.logger.exception("Failed to update policy")
        return jsonify({"error": "Internal server error"}), 500
