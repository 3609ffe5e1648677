# Overview: Read-only projections (invoice document data, reorder cart) derived from a final order.

from __future__ import annotations

from ..models import Order
from ..time_utils import to_utc_z, utcnow


def invoice_projection(order: Order) -> dict:
    """
    Data for rendering a static invoice. Builds plain dicts only; never
    assigns to the order, so nothing here can be flushed back.
    """
    subtotal = sum(line.line_total_cents for line in order.lines)
    return {
        "order_id": order.id,
        "user_id": order.user_id,
        "issued_at": to_utc_z(utcnow()),
        "order_date": to_utc_z(order.created_at),
        "status": order.status,
        "payment_status": order.payment_status,
        "shipping_details": dict(order.shipping_details or {}),
        "lines": [
            {
                "product_id": line.product_id,
                "product_name": line.product_name,
                "quantity": line.quantity,
                "unit_price_cents": line.unit_price_cents,
                "line_total_cents": line.line_total_cents,
            }
            for line in order.lines
        ],
        "subtotal_cents": subtotal,
        "shipping_cost_cents": order.shipping_cost_cents,
        "insurance_cost_cents": order.insurance_cost_cents,
        "total_cents": order.total_cents,
        "cancellation": (
            {
                "reason": order.cancel_reason,
                "cancelled_at": to_utc_z(order.cancelled_at),
            }
            if order.status == "cancelled"
            else None
        ),
        "modifications": [
            {
                "id": m.id,
                "description": m.description,
                "status": m.status,
                "requested_at": to_utc_z(m.requested_at),
                "responded_at": to_utc_z(m.responded_at),
                "response_text": m.response_text,
            }
            for m in order.modifications
        ],
    }


def reorder_projection(order: Order) -> dict:
    """Product references and quantities for rebuilding a cart."""
    return {
        "order_id": order.id,
        "items": [
            {
                "product_id": line.product_id,
                "product_name": line.product_name,
                "quantity": line.quantity,
            }
            for line in order.lines
        ],
    }
