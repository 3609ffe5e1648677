# Overview: Staff arbitration of pending modification requests.

"""
Arbitration Coordinator

STATE MACHINE (modification request):
    pending -> approved
    pending -> rejected

    approved, rejected: TERMINAL. A second decision on the same request is
    refused with AlreadyResolvedError, never applied over the first.

RULES:
1. The request must exist on the order (RequestNotFoundError).
2. The order must not be cancelled (NotEligibleError, reason order_cancelled).
3. The request must still be pending (AlreadyResolvedError).
4. Resolution does not change modification_count (it counts every request
   ever made) and does not change order.status.
5. Approval records staff permission only. Whatever change the buyer asked
   for is applied separately; nothing here edits the order's content.

Two staff members deciding the same request concurrently: both read it as
pending, one commits first, the other's version-checked write fails, it
re-reads, and rule 3 turns it into AlreadyResolvedError.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..models import Order, ModificationRequest
from ..time_utils import utcnow
from ..validation import ValidationError, require_text, require_choice
from . import order_store, eligibility_service
from .concurrency import run_with_retry


DECISIONS = frozenset({"approved", "rejected"})


class RequestNotFoundError(ValueError):
    """Raised when the order has no request with the given id."""


class AlreadyResolvedError(ValueError):
    """Raised when the targeted request is no longer pending."""


def find_request(order: Order, request_id: int) -> ModificationRequest:
    for request in order.modifications:
        if request.id == request_id:
            return request
    raise RequestNotFoundError(f"Modification request {request_id} not found on order {order.id}")


def apply_decision(
    order: Order,
    request_id: int,
    decision: str,
    response_text: str,
    *,
    staff_id: str,
    now: datetime,
) -> ModificationRequest:
    """Rule checks + field assignment in memory. No store access."""
    request = find_request(order, request_id)
    eligibility_service.require_can_respond(order)
    if not request.is_pending:
        raise AlreadyResolvedError(
            f"Modification request {request_id} was already {request.status}"
            + (f" by {request.responded_by}" if request.responded_by else "")
        )

    request.status = decision
    request.responded_at = now
    request.response_text = response_text or None
    request.responded_by = staff_id
    return request


def resolve_request(
    order_id: int,
    request_id: int,
    decision: str,
    response_text: str | None,
    staff_id: str,
    *,
    now: datetime | None = None,
) -> Order:
    """
    Approve or reject a pending modification request.

    Raises:
        ValidationError: unknown decision, oversized response, missing staff id
        RequestNotFoundError, AlreadyResolvedError, NotEligibleError
        OrderNotFoundError, ConflictError
    """
    require_choice(decision, "decision", DECISIONS)
    max_length = int(current_app.config.get("RESPONSE_TEXT_MAX_LENGTH", 1000))
    response_text = require_text(response_text, "response_text", max_length=max_length, allow_empty=True)
    if not staff_id:
        raise ValidationError("staff_id is required")

    def _op():
        order, version = order_store.read_order(order_id, for_update=True)
        apply_decision(
            order,
            request_id,
            decision,
            response_text,
            staff_id=str(staff_id),
            now=now or utcnow(),
        )
        order_store.write_order(order, version)
        current_app.logger.info(
            "Modification request %s on order %s %s by %s", request_id, order_id, decision, staff_id
        )
        return order

    return run_with_retry(_op, label=f"arbitration of request {request_id} on order {order_id}")
