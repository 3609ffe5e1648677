"""
Lost-update tests.

Each test lets a competing writer commit between an operation's read and its
write (see the `interleave` fixture). The version-checked write must fail,
the operation must re-read, and every rule must be re-evaluated against the
fresh order.
"""

import pytest

from orderflow.services import (
    arbitration_service,
    modification_service,
    order_status_service,
    order_store,
)
from orderflow.services.arbitration_service import AlreadyResolvedError
from orderflow.services.concurrency import run_with_retry
from orderflow.services.eligibility_service import (
    NotEligibleError,
    REASON_CANCELLED,
    REASON_LIMIT,
    REASON_STATUS,
)
from orderflow.services.order_status_service import CancellationNotAllowedError
from orderflow.validation import ConflictError


@pytest.fixture
def order_with_request(make_order, t0):
    order = make_order(max_modifications_allowed=2)
    order = modification_service.create_request(order.id, "buyer-1", "change address", now=t0)
    return order.id, order.modifications[0].id


class TestWriteOrder:

    def test_stale_version_rejected(self, make_order):
        order = make_order()
        order, version = order_store.read_order(order.id)
        order.status = "shipped"
        with pytest.raises(ConflictError):
            order_store.write_order(order, version - 1)

        order, _ = order_store.read_order(order.id)
        assert order.status == "processing"

    def test_child_only_change_bumps_version(self, order_with_request):
        order_id, _ = order_with_request
        order, version = order_store.read_order(order_id)
        order.modifications[0].response_text = "noted"
        new_version = order_store.write_order(order, version)
        assert new_version == version + 1


class TestRunWithRetry:

    def test_retries_then_succeeds(self, app):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise ConflictError("lost")
            return "done"

        assert run_with_retry(flaky, attempts=3, backoff_base=0) == "done"
        assert len(calls) == 3

    def test_gives_up_with_conflict(self, app):
        calls = []

        def always_loses():
            calls.append(1)
            raise ConflictError("lost")

        with pytest.raises(ConflictError, match="gave up|retry later"):
            run_with_retry(always_loses, attempts=2, backoff_base=0, label="test write")
        assert len(calls) == 2

    def test_domain_errors_not_retried(self, app):
        calls = []

        def refuses():
            calls.append(1)
            raise NotEligibleError("no", REASON_LIMIT)

        with pytest.raises(NotEligibleError):
            run_with_retry(refuses, attempts=3, backoff_base=0)
        assert len(calls) == 1


class TestArbitrationRace:

    def test_second_staff_member_sees_already_resolved(self, app, interleave, order_with_request):
        order_id, request_id = order_with_request

        def other_staff():
            arbitration_service.resolve_request(order_id, request_id, "rejected", "no", "staff-2")

        state = interleave(other_staff)
        with pytest.raises(AlreadyResolvedError):
            arbitration_service.resolve_request(order_id, request_id, "approved", "yes", "staff-1")
        assert state["ran"]

        order, _ = order_store.read_order(order_id)
        request = order.modifications[0]
        assert request.status == "rejected"
        assert request.responded_by == "staff-2"
        assert request.response_text == "no"

    def test_cancellation_wins_over_pending_decision(self, app, interleave, order_with_request):
        order_id, request_id = order_with_request

        def buyer_cancels():
            order_status_service.cancel_order(order_id, "changed my mind", actor_id="buyer-1")

        interleave(buyer_cancels)
        with pytest.raises(NotEligibleError) as exc_info:
            arbitration_service.resolve_request(order_id, request_id, "approved", "", "staff-1")
        assert exc_info.value.reason == REASON_CANCELLED

        order, _ = order_store.read_order(order_id)
        assert order.modifications[0].status == "pending"


class TestCreateRequestRace:

    def test_last_slot_taken_concurrently(self, app, interleave, order_with_request, t0):
        order_id, _ = order_with_request

        def other_tab():
            modification_service.create_request(order_id, "buyer-1", "from the other tab", now=t0)

        state = interleave(other_tab)
        with pytest.raises(NotEligibleError) as exc_info:
            modification_service.create_request(order_id, "buyer-1", "from this tab", now=t0)
        assert exc_info.value.reason == REASON_LIMIT
        assert state["ran"]

        order, _ = order_store.read_order(order_id)
        assert order.modification_count == 2
        assert len(order.modifications) == 2
        assert [m.description for m in order.modifications] == ["change address", "from the other tab"]

    def test_order_cancelled_before_write(self, app, interleave, make_order, t0):
        order = make_order()
        order_id = order.id

        def cancel():
            order_status_service.cancel_order(order_id, "duplicate", actor_id="buyer-1")

        interleave(cancel)
        with pytest.raises(NotEligibleError) as exc_info:
            modification_service.create_request(order_id, "buyer-1", "change address", now=t0)
        assert exc_info.value.reason == REASON_STATUS

        order, _ = order_store.read_order(order_id)
        assert order.status == "cancelled"
        assert order.modification_count == 0
        assert order.modifications == []

    def test_limit_lowered_before_write(self, app, interleave, make_order, t0):
        order = make_order()
        order_id = order.id

        def staff_lowers_limit():
            modification_service.update_max_modifications(order_id, 0, staff_id="staff-1")

        interleave(staff_lowers_limit)
        with pytest.raises(NotEligibleError) as exc_info:
            modification_service.create_request(order_id, "buyer-1", "change address", now=t0)
        assert exc_info.value.reason == REASON_LIMIT

    def test_unrelated_write_only_costs_a_retry(self, app, interleave, make_order, t0):
        order = make_order()
        order_id = order.id

        def payment_callback():
            order_status_service.update_payment_status(order_id, "processing")

        state = interleave(payment_callback)
        updated = modification_service.create_request(order_id, "buyer-1", "gift wrap", now=t0)
        assert state["ran"]
        assert updated.modification_count == 1
        assert updated.payment_status == "processing"


class TestStatusRace:

    def test_cancel_after_delivery(self, app, interleave, make_order):
        order = make_order(status="shipped")
        order_id = order.id

        def deliver():
            order_status_service.transition_order_status(order_id, "delivered", actor_id="staff-1")

        interleave(deliver)
        with pytest.raises(CancellationNotAllowedError):
            order_status_service.cancel_order(order_id, "too slow", actor_id="buyer-1")

        order, _ = order_store.read_order(order_id)
        assert order.status == "delivered"
        assert order.payment_status == "completed"
