"""
Eligibility rule tests.

Everything here is a pure function of (order, policy, now), so the orders
are transient and never touch the database.
"""

from datetime import datetime, timedelta

import pytest

from orderflow.models import Order, ModificationPolicy
from orderflow.services import eligibility_service
from orderflow.services.eligibility_service import NotEligibleError


CREATED = datetime(2026, 3, 2, 9, 0, 0)


def _order(status="processing", count=0, max_allowed=None, deadline=None, created_at=CREATED):
    return Order(
        id=1,
        status=status,
        created_at=created_at,
        modification_count=count,
        max_modifications_allowed=max_allowed,
        modification_deadline=deadline,
    )


@pytest.fixture
def policy():
    return ModificationPolicy(default_max_modifications=3, modification_deadline_hours=24)


class TestEffectiveValues:

    def test_deadline_falls_back_to_policy_window(self, policy):
        order = _order()
        assert eligibility_service.effective_deadline(order, policy) == CREATED + timedelta(hours=24)

    def test_deadline_prefers_order_override(self, policy):
        fixed = CREATED + timedelta(hours=2)
        order = _order(deadline=fixed)
        assert eligibility_service.effective_deadline(order, policy) == fixed

    def test_max_prefers_order_override(self, policy):
        assert eligibility_service.effective_max_modifications(_order(), policy) == 3
        assert eligibility_service.effective_max_modifications(_order(max_allowed=1), policy) == 1
        assert eligibility_service.effective_max_modifications(_order(max_allowed=0), policy) == 0

    def test_remaining_slots_clamped(self, policy):
        assert eligibility_service.remaining_slots(_order(count=1), policy) == 2
        assert eligibility_service.remaining_slots(_order(count=5, max_allowed=2), policy) == 0


class TestEvaluateModification:

    def test_eligible_inside_window(self, policy):
        result = eligibility_service.evaluate_modification(
            _order(), policy, CREATED + timedelta(hours=1)
        )
        assert result.eligible is True
        assert result.reason is None
        assert result.remaining_slots == 3

    @pytest.mark.parametrize("status", ["pending", "shipped", "delivered", "cancelled"])
    def test_only_processing_is_modifiable(self, policy, status):
        result = eligibility_service.evaluate_modification(_order(status=status), policy, CREATED)
        assert result.eligible is False
        assert result.reason == eligibility_service.REASON_STATUS

    def test_one_minute_before_deadline(self, policy):
        now = CREATED + timedelta(hours=23, minutes=59)
        assert eligibility_service.can_request_modification(_order(), policy, now)

    def test_exactly_at_deadline_still_allowed(self, policy):
        now = CREATED + timedelta(hours=24)
        assert eligibility_service.can_request_modification(_order(), policy, now)

    def test_one_second_after_deadline(self, policy):
        now = CREATED + timedelta(hours=24, seconds=1)
        result = eligibility_service.evaluate_modification(_order(), policy, now)
        assert result.eligible is False
        assert result.reason == eligibility_service.REASON_DEADLINE

    def test_limit_reached(self, policy):
        result = eligibility_service.evaluate_modification(
            _order(count=3), policy, CREATED + timedelta(hours=1)
        )
        assert result.eligible is False
        assert result.reason == eligibility_service.REASON_LIMIT
        assert result.remaining_slots == 0

    def test_zero_limit_blocks_first_request(self, policy):
        result = eligibility_service.evaluate_modification(_order(max_allowed=0), policy, CREATED)
        assert result.reason == eligibility_service.REASON_LIMIT

    def test_status_checked_before_deadline(self, policy):
        late = CREATED + timedelta(days=3)
        result = eligibility_service.evaluate_modification(_order(status="shipped", count=3), policy, late)
        assert result.reason == eligibility_service.REASON_STATUS

    def test_deadline_checked_before_limit(self, policy):
        late = CREATED + timedelta(days=3)
        result = eligibility_service.evaluate_modification(_order(count=3), policy, late)
        assert result.reason == eligibility_service.REASON_DEADLINE

    def test_require_raises_with_reason(self, policy):
        with pytest.raises(NotEligibleError) as exc_info:
            eligibility_service.require_modification_eligible(_order(count=3), policy, CREATED)
        assert exc_info.value.reason == eligibility_service.REASON_LIMIT
        assert "3" in str(exc_info.value)


class TestCancellationEligibility:

    def test_can_cancel_ignores_count_and_deadline(self, policy):
        order = _order(count=3, deadline=CREATED)
        assert eligibility_service.can_cancel(order, policy)

    def test_can_cancel_respects_policy_switch(self):
        assert not eligibility_service.can_cancel(_order(), ModificationPolicy(allow_cancellations=False))

    @pytest.mark.parametrize("status", ["delivered", "cancelled"])
    def test_terminal_orders_cannot_be_cancelled(self, policy, status):
        assert not eligibility_service.can_cancel(_order(status=status), policy)

    def test_shipped_order_can_still_be_cancelled(self, policy):
        assert eligibility_service.can_cancel(_order(status="shipped"), policy)


class TestRespond:

    def test_cancelled_order_refuses_responses(self):
        with pytest.raises(NotEligibleError) as exc_info:
            eligibility_service.require_can_respond(_order(status="cancelled"))
        assert exc_info.value.reason == eligibility_service.REASON_CANCELLED

    @pytest.mark.parametrize("status", ["processing", "shipped", "delivered"])
    def test_other_statuses_allow_responses(self, status):
        eligibility_service.require_can_respond(_order(status=status))


def test_summarize(policy):
    summary = eligibility_service.summarize(_order(count=1), policy, CREATED + timedelta(hours=2))
    assert summary == {
        "order_id": 1,
        "can_modify": True,
        "remaining_slots": 2,
        "max_modifications_allowed": 3,
        "modification_deadline": "2026-03-03T09:00:00Z",
        "reason": None,
        "message": None,
        "can_cancel": True,
        "cancel_requires_reason": True,
    }
