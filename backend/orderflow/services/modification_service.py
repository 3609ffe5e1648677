# Overview: Modification request creation and listing; encapsulates eligibility gating and store writes.

"""
Modification Request Lifecycle

Creation is the only way a request comes into existence, and it is gated by
the eligibility rules evaluated against the order as read in the same
compare-and-swap attempt. If another writer (a second buyer tab, a staff
cancellation, a limit change) commits in between, the write fails, the
order is re-read, and eligibility is evaluated again, so a request is never
appended to an order that has since become ineligible.

Status changes after creation belong to arbitration_service only.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..extensions import db
from ..models import Order, ModificationRequest
from ..time_utils import utcnow
from ..validation import ValidationError, require_text, coerce_int
from . import order_store, eligibility_service
from .concurrency import run_with_retry


RESOLVED_STATUSES = frozenset({"approved", "rejected"})
LIST_FILTERS = ("all", "pending", "resolved")


def validate_description(description) -> str:
    max_length = int(current_app.config.get("MODIFICATION_DESCRIPTION_MAX_LENGTH", 1000))
    return require_text(description, "description", max_length=max_length)


def create_request(
    order_id: int,
    requester_id: str,
    description: str,
    *,
    now: datetime | None = None,
) -> Order:
    """
    Append a pending modification request to an eligible order.

    Returns:
        The updated order (modification_count incremented)

    Raises:
        ValidationError: empty/oversized description or missing requester
        NotEligibleError: status/deadline/limit rule failed (reason attached)
        OrderNotFoundError
        ConflictError: lost the write race on every attempt
    """
    description = validate_description(description)
    if not requester_id:
        raise ValidationError("requester_id is required")

    def _op():
        order, version = order_store.read_order(order_id, for_update=True)
        policy = order_store.read_policy_config()
        requested_at = now or utcnow()

        eligibility_service.require_modification_eligible(order, policy, requested_at)

        request = ModificationRequest(
            description=description,
            status="pending",
            requested_at=requested_at,
            requested_by=str(requester_id),
        )
        order.modifications.append(request)
        order.modification_count = len(order.modifications)

        order_store.write_order(order, version)
        current_app.logger.info(
            "Modification request %s created on order %s by %s (%d/%s)",
            request.id, order_id, requester_id, order.modification_count,
            eligibility_service.effective_max_modifications(order, policy),
        )
        return order

    return run_with_retry(_op, label=f"modification request on order {order_id}")


def list_requests(order: Order, status_filter: str = "all") -> dict:
    """
    Partition an order's requests into pending and resolved (request order
    preserved). Pure read.
    """
    if status_filter not in LIST_FILTERS:
        raise ValidationError(
            f"Invalid filter '{status_filter}'. Must be one of: {', '.join(LIST_FILTERS)}"
        )

    pending = [m for m in order.modifications if m.status == "pending"]
    resolved = [m for m in order.modifications if m.status in RESOLVED_STATUSES]

    if status_filter == "pending":
        resolved = []
    elif status_filter == "resolved":
        pending = []
    return {"pending": pending, "resolved": resolved}


def list_pending_requests(*, limit: int = 200) -> list[ModificationRequest]:
    """
    Staff arbitration queue: pending requests across all orders, oldest first.

    Requests on cancelled orders are left out; they can no longer be answered.
    """
    return (
        db.session.query(ModificationRequest)
        .join(Order, ModificationRequest.order_id == Order.id)
        .filter(ModificationRequest.status == "pending")
        .filter(Order.status != "cancelled")
        .order_by(ModificationRequest.requested_at.asc(), ModificationRequest.id.asc())
        .limit(limit)
        .all()
    )


def update_max_modifications(order_id: int, max_allowed, *, staff_id: str | None = None) -> Order:
    """
    Staff override of the per-order request limit.

    Lowering the limit below the current count simply leaves no remaining
    slots; existing requests are untouched.
    """
    max_allowed = coerce_int(max_allowed, "max_modifications_allowed", minimum=0)

    def _op():
        order, version = order_store.read_order(order_id)
        if order.max_modifications_allowed == max_allowed:
            return order
        previous = order.max_modifications_allowed
        order.max_modifications_allowed = max_allowed
        order_store.write_order(order, version)
        current_app.logger.info(
            "Order %s max modifications %s -> %s by %s", order_id, previous, max_allowed, staff_id
        )
        return order

    return run_with_retry(_op, label=f"limit update on order {order_id}")
