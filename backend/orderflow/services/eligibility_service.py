# Overview: Pure eligibility rules for modification requests and cancellations.

"""
Eligibility Evaluator

Pure functions of (order, policy, now). No I/O, no clock reads: callers pass
`now` explicitly so the same rules gate creation on the server and drive
buyer-facing affordances.

Modification rules, evaluated in order (first failure wins):
1. order.status must be 'processing'
2. now must not be past the effective deadline
   (order.modification_deadline, else created_at + policy window)
3. order.modification_count must be below the effective maximum
   (order.max_modifications_allowed, else policy default)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from ..models import Order, ModificationPolicy
from ..time_utils import to_utc_z
from .order_status_service import is_terminal


MODIFIABLE_STATUS = "processing"

REASON_STATUS = "order_not_modifiable"
REASON_DEADLINE = "deadline_passed"
REASON_LIMIT = "modification_limit_reached"
REASON_CANCELLED = "order_cancelled"


class NotEligibleError(ValueError):
    """
    Policy refused the operation. `reason` is one of the REASON_* codes so
    callers can tell the user which corrective action applies.
    """

    def __init__(self, message: str, reason: str):
        super().__init__(message)
        self.reason = reason


@dataclass(frozen=True)
class EligibilityResult:
    eligible: bool
    reason: str | None
    message: str | None
    deadline: datetime
    max_allowed: int
    remaining_slots: int

    def raise_if_ineligible(self) -> None:
        if not self.eligible:
            raise NotEligibleError(self.message or "Not eligible", self.reason or REASON_STATUS)


def effective_deadline(order: Order, policy: ModificationPolicy) -> datetime:
    if order.modification_deadline is not None:
        return order.modification_deadline
    return order.created_at + timedelta(hours=policy.modification_deadline_hours)


def effective_max_modifications(order: Order, policy: ModificationPolicy) -> int:
    if order.max_modifications_allowed is not None:
        return order.max_modifications_allowed
    return policy.default_max_modifications


def remaining_slots(order: Order, policy: ModificationPolicy) -> int:
    """Requests the buyer may still create, clamped at 0."""
    return max(0, effective_max_modifications(order, policy) - (order.modification_count or 0))


def evaluate_modification(order: Order, policy: ModificationPolicy, now: datetime) -> EligibilityResult:
    deadline = effective_deadline(order, policy)
    max_allowed = effective_max_modifications(order, policy)
    remaining = remaining_slots(order, policy)

    def _fail(reason: str, message: str) -> EligibilityResult:
        return EligibilityResult(False, reason, message, deadline, max_allowed, remaining)

    if order.status != MODIFIABLE_STATUS:
        return _fail(
            REASON_STATUS,
            f"Order is '{order.status}'; changes can only be requested while it is '{MODIFIABLE_STATUS}'",
        )
    if now > deadline:
        return _fail(
            REASON_DEADLINE,
            f"The modification deadline passed at {to_utc_z(deadline)}",
        )
    if (order.modification_count or 0) >= max_allowed:
        return _fail(
            REASON_LIMIT,
            f"Maximum of {max_allowed} modification request(s) reached",
        )
    return EligibilityResult(True, None, None, deadline, max_allowed, remaining)


def can_request_modification(order: Order, policy: ModificationPolicy, now: datetime) -> bool:
    return evaluate_modification(order, policy, now).eligible


def require_modification_eligible(order: Order, policy: ModificationPolicy, now: datetime) -> EligibilityResult:
    result = evaluate_modification(order, policy, now)
    result.raise_if_ineligible()
    return result


def can_cancel(order: Order, policy: ModificationPolicy) -> bool:
    """Independent of the count/deadline rules."""
    return bool(policy.allow_cancellations) and not is_terminal(order.status)


def require_can_respond(order: Order) -> None:
    """Staff may still arbitrate requests unless the order was cancelled."""
    if order.status == "cancelled":
        raise NotEligibleError(
            f"Order {order.id} was cancelled; its modification requests can no longer be answered",
            REASON_CANCELLED,
        )


def summarize(order: Order, policy: ModificationPolicy, now: datetime) -> dict:
    result = evaluate_modification(order, policy, now)
    return {
        "order_id": order.id,
        "can_modify": result.eligible,
        "remaining_slots": result.remaining_slots,
        "max_modifications_allowed": result.max_allowed,
        "modification_deadline": to_utc_z(result.deadline),
        "reason": result.reason,
        "message": result.message,
        "can_cancel": can_cancel(order, policy),
        "cancel_requires_reason": bool(policy.require_reason_for_cancellation),
    }
