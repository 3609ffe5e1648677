# Overview: Order fulfillment/payment state machine; encapsulates transition rules and their store writes.

"""
Order Status Service

================================================================================
PURPOSE: Govern the fulfillment status and the payment status of an order
================================================================================

STATE MACHINE (status):
    pending -> processing -> shipped -> delivered
    any non-terminal -> cancelled

    delivered, cancelled: TERMINAL, nothing transitions out of them.

Staff may set any non-terminal status directly (administrative override);
the only hard rule is that terminal orders never move again.

PAYMENT STATUS is tracked separately:
    pending | processing | completed | canceled

The two are coupled in exactly one place: cancel_order() sets
status=cancelled AND payment_status=canceled. transition_order_status() never
touches payment_status.

The apply_* functions are pure rule checks + field assignments on an Order
instance. The public operations wrap them in a compare-and-swap loop against
the order store.
================================================================================
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..models import Order, ModificationPolicy
from ..time_utils import utcnow
from ..validation import ValidationError, require_text
from . import order_store
from .concurrency import run_with_retry


ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")
TERMINAL_STATUSES = frozenset({"delivered", "cancelled"})
FULFILLMENT_STATUSES = frozenset({"shipped", "delivered"})

PAYMENT_STATUSES = ("pending", "processing", "completed", "canceled")
TERMINAL_PAYMENT_STATUSES = frozenset({"canceled"})


class InvalidTransitionError(ValueError):
    """Raised when a status change is not allowed from the current state."""


class CancellationNotAllowedError(ValueError):
    """Raised when policy or order state forbids a cancellation."""


def validate_status(status: str) -> None:
    if status not in ORDER_STATUSES:
        raise InvalidTransitionError(
            f"Invalid status '{status}'. Must be one of: {', '.join(ORDER_STATUSES)}"
        )


def validate_payment_status(payment_status: str) -> None:
    if payment_status not in PAYMENT_STATUSES:
        raise ValidationError(
            f"Invalid payment_status '{payment_status}'. "
            f"Must be one of: {', '.join(PAYMENT_STATUSES)}"
        )


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(from_status: str, to_status: str) -> bool:
    """
    Check whether staff may move an order from from_status to to_status.

    Any recognized target is allowed as long as the order is not terminal.
    Same-status transitions are treated as allowed no-ops.
    """
    validate_status(from_status)
    validate_status(to_status)
    return not is_terminal(from_status)


def apply_status_transition(order: Order, new_status: str, *, require_payment: bool = False) -> bool:
    """
    Apply new_status to order in memory. Returns False for a no-op.

    Raises:
        InvalidTransitionError: unknown target, terminal current status, or
            (with require_payment) fulfillment before payment completed
    """
    validate_status(new_status)
    if is_terminal(order.status):
        raise InvalidTransitionError(
            f"Cannot change order {order.id}: status '{order.status}' is terminal"
        )
    if new_status == order.status:
        return False
    if require_payment and new_status in FULFILLMENT_STATUSES and order.payment_status != "completed":
        raise InvalidTransitionError(
            f"Cannot mark order {order.id} as '{new_status}': payment is '{order.payment_status}', must be 'completed'"
        )

    order.status = new_status
    return True


def check_cancellation(order: Order, policy: ModificationPolicy, reason: str) -> None:
    """
    Raise CancellationNotAllowedError naming the rule that failed, if any.
    """
    if not policy.allow_cancellations:
        raise CancellationNotAllowedError("Cancellations are currently disabled")
    if is_terminal(order.status):
        raise CancellationNotAllowedError(
            f"Order {order.id} cannot be cancelled: status '{order.status}' is terminal"
        )
    if policy.require_reason_for_cancellation and not reason:
        raise CancellationNotAllowedError("A reason is required to cancel this order")


def apply_cancellation(
    order: Order,
    policy: ModificationPolicy,
    reason: str,
    *,
    cancelled_by: str | None,
    now: datetime,
) -> None:
    check_cancellation(order, policy, reason)
    order.status = "cancelled"
    order.payment_status = "canceled"
    order.cancel_reason = reason or None
    order.cancelled_at = now
    order.cancelled_by = cancelled_by


def apply_payment_status(order: Order, payment_status: str) -> bool:
    """Apply a payment status change in memory. Returns False for a no-op."""
    validate_payment_status(payment_status)
    if payment_status == order.payment_status:
        return False
    if order.payment_status in TERMINAL_PAYMENT_STATUSES:
        raise InvalidTransitionError(
            f"Cannot change payment of order {order.id}: payment status '{order.payment_status}' is terminal"
        )
    if order.status == "cancelled" and payment_status != "canceled":
        raise InvalidTransitionError(
            f"Order {order.id} is cancelled; payment can only be marked 'canceled'"
        )
    order.payment_status = payment_status
    return True


def transition_order_status(order_id: int, new_status: str, *, actor_id: str | None = None) -> Order:
    """
    Staff status change (pending/processing/shipped/delivered/cancelled).

    Setting 'cancelled' here is an administrative override: it changes only
    the fulfillment status. Use cancel_order() for the policy-checked
    cancellation that also cancels the payment.

    Raises:
        OrderNotFoundError, InvalidTransitionError, ConflictError
    """
    validate_status(new_status)
    require_payment = bool(current_app.config.get("REQUIRE_PAYMENT_FOR_FULFILLMENT", False))

    def _op():
        order, version = order_store.read_order(order_id)
        previous = order.status
        if not apply_status_transition(order, new_status, require_payment=require_payment):
            return order
        if new_status == "cancelled":
            order.cancelled_at = utcnow()
            order.cancelled_by = actor_id
        order_store.write_order(order, version)
        current_app.logger.info(
            "Order %s status %s -> %s by %s", order_id, previous, new_status, actor_id
        )
        return order

    return run_with_retry(_op, label=f"status change on order {order_id}")


def cancel_order(order_id: int, reason: str | None, *, actor_id: str | None = None) -> Order:
    """
    Cancel an order under the current policy.

    On success: status=cancelled, payment_status=canceled, cancel reason and
    date recorded. The policy is re-read on every attempt.

    Raises:
        ValidationError: reason too long
        CancellationNotAllowedError, OrderNotFoundError, ConflictError
    """
    max_length = int(current_app.config.get("CANCEL_REASON_MAX_LENGTH", 255))
    reason = require_text(reason, "reason", max_length=max_length, allow_empty=True)

    def _op():
        order, version = order_store.read_order(order_id)
        policy = order_store.read_policy_config()
        apply_cancellation(order, policy, reason, cancelled_by=actor_id, now=utcnow())
        order_store.write_order(order, version)
        current_app.logger.info("Order %s cancelled by %s", order_id, actor_id)
        return order

    return run_with_retry(_op, label=f"cancellation of order {order_id}")


def update_payment_status(order_id: int, payment_status: str, *, actor_id: str | None = None) -> Order:
    """
    Record a payment outcome (provider callback or staff).

    Raises:
        ValidationError, InvalidTransitionError, OrderNotFoundError, ConflictError
    """
    validate_payment_status(payment_status)

    def _op():
        order, version = order_store.read_order(order_id)
        previous = order.payment_status
        if not apply_payment_status(order, payment_status):
            return order
        order_store.write_order(order, version)
        current_app.logger.info(
            "Order %s payment %s -> %s by %s", order_id, previous, payment_status, actor_id
        )
        return order

    return run_with_retry(_op, label=f"payment update on order {order_id}")
