# Overview: Order intake and queries.

"""
Order intake records the outcome of an (external) checkout. Unit prices are
snapshotted onto the lines and never re-read from a catalog. The modification
limit and deadline are captured from the policy in force at creation, so
later policy edits do not move existing orders.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from flask import current_app

from ..extensions import db
from ..models import Order, OrderLine
from ..time_utils import utcnow
from ..validation import ValidationError, coerce_int, require_text
from . import order_store
from .order_status_service import ORDER_STATUSES, validate_payment_status


def _build_line(raw: Any, index: int) -> OrderLine:
    if not isinstance(raw, dict):
        raise ValidationError(f"items[{index}] must be an object")
    product_ref = raw.get("product_id")
    product_id = require_text(
        "" if product_ref is None else str(product_ref),
        f"items[{index}].product_id",
        max_length=64,
    )
    name = raw.get("product_name")
    quantity = coerce_int(raw.get("quantity"), f"items[{index}].quantity", minimum=1)
    unit_price = coerce_int(raw.get("unit_price_cents"), f"items[{index}].unit_price_cents", minimum=0)
    return OrderLine(
        product_id=product_id,
        product_name=str(name)[:255] if name else None,
        quantity=quantity,
        unit_price_cents=unit_price,
        line_total_cents=quantity * unit_price,
    )


def create_order(
    *,
    user_id: str,
    items: list,
    shipping_cost_cents=0,
    insurance_cost_cents=0,
    payment_status: str = "pending",
    shipping_details: dict | None = None,
    now: datetime | None = None,
) -> Order:
    """
    Create an order from a checkout result.

    status is 'processing' when payment already completed, else 'pending'.
    """
    if not user_id:
        raise ValidationError("user_id is required")
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")
    validate_payment_status(payment_status)
    if payment_status == "canceled":
        raise ValidationError("Cannot create an order with a canceled payment")
    if shipping_details is not None and not isinstance(shipping_details, dict):
        raise ValidationError("shipping_details must be an object")

    lines = [_build_line(raw, i) for i, raw in enumerate(items)]
    shipping = coerce_int(shipping_cost_cents, "shipping_cost_cents", minimum=0)
    insurance = coerce_int(insurance_cost_cents, "insurance_cost_cents", minimum=0)

    policy = order_store.read_policy_config()
    created_at = now or utcnow()

    order = Order(
        user_id=str(user_id),
        status="processing" if payment_status == "completed" else "pending",
        payment_status=payment_status,
        total_cents=sum(line.line_total_cents for line in lines) + shipping + insurance,
        shipping_cost_cents=shipping,
        insurance_cost_cents=insurance,
        shipping_details=shipping_details,
        created_at=created_at,
        updated_at=created_at,
        modification_count=0,
        max_modifications_allowed=policy.default_max_modifications,
        modification_deadline=created_at + timedelta(hours=policy.modification_deadline_hours),
    )
    order.lines.extend(lines)

    db.session.add(order)
    db.session.commit()
    current_app.logger.info("Order %s created for user %s (%s)", order.id, user_id, order.status)
    return order


def get_order(order_id: int) -> Order:
    order, _version = order_store.read_order(order_id)
    return order


def list_orders(*, user_id: str | None = None, status: str | None = None, limit: int = 200) -> list[Order]:
    """Newest first, optionally scoped to a buyer and/or a status."""
    if status is not None and status not in ORDER_STATUSES:
        raise ValidationError(
            f"Invalid status '{status}'. Must be one of: {', '.join(ORDER_STATUSES)}"
        )

    q = db.session.query(Order)
    if user_id is not None:
        q = q.filter(Order.user_id == str(user_id))
    if status is not None:
        q = q.filter(Order.status == status)
    q = q.order_by(Order.created_at.desc(), Order.id.desc())
    return q.limit(limit).all()
