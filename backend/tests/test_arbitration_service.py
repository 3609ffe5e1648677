"""
Staff arbitration tests (approve / reject pending modification requests).
"""

from datetime import timedelta

import pytest

from orderflow.services import arbitration_service, modification_service, order_status_service, order_store
from orderflow.services.arbitration_service import AlreadyResolvedError, RequestNotFoundError
from orderflow.services.eligibility_service import NotEligibleError, REASON_CANCELLED
from orderflow.validation import ValidationError


@pytest.fixture
def pending_request(make_order, t0):
    """Order limited to one request, with that request already made."""
    order = make_order(max_modifications_allowed=1)
    order = modification_service.create_request(
        order.id, "buyer-1", "change address", now=t0 + timedelta(hours=1)
    )
    return order.id, order.modifications[0].id


class TestResolveRequest:

    def test_approve(self, pending_request, t0):
        order_id, request_id = pending_request
        decided_at = t0 + timedelta(hours=3)

        order = arbitration_service.resolve_request(
            order_id, request_id, "approved", "will update", "staff-1", now=decided_at
        )

        request = order.modifications[0]
        assert request.status == "approved"
        assert request.response_text == "will update"
        assert request.responded_by == "staff-1"
        assert request.responded_at == decided_at
        assert order.modification_count == 1
        assert order.status == "processing"

    def test_approval_does_not_reopen_a_slot(self, pending_request, t0):
        order_id, request_id = pending_request
        arbitration_service.resolve_request(order_id, request_id, "approved", "will update", "staff-1")

        with pytest.raises(NotEligibleError):
            modification_service.create_request(order_id, "buyer-1", "another", now=t0 + timedelta(hours=4))

    def test_reject_without_text(self, pending_request):
        order_id, request_id = pending_request
        order = arbitration_service.resolve_request(order_id, request_id, "rejected", "", "staff-1")
        request = order.modifications[0]
        assert request.status == "rejected"
        assert request.response_text is None

    def test_second_decision_refused(self, pending_request):
        order_id, request_id = pending_request
        arbitration_service.resolve_request(order_id, request_id, "approved", "ok", "staff-1")

        with pytest.raises(AlreadyResolvedError, match="staff-1"):
            arbitration_service.resolve_request(order_id, request_id, "rejected", "no", "staff-2")

        order, _ = order_store.read_order(order_id)
        assert order.modifications[0].status == "approved"
        assert order.modifications[0].response_text == "ok"

    def test_unknown_request(self, pending_request):
        order_id, request_id = pending_request
        with pytest.raises(RequestNotFoundError):
            arbitration_service.resolve_request(order_id, request_id + 100, "approved", "", "staff-1")

    def test_request_of_another_order(self, pending_request, make_order):
        _, request_id = pending_request
        other = make_order(user_id="buyer-2")
        with pytest.raises(RequestNotFoundError):
            arbitration_service.resolve_request(other.id, request_id, "approved", "", "staff-1")

    def test_cancelled_order(self, pending_request):
        order_id, request_id = pending_request
        order_status_service.cancel_order(order_id, "no longer needed", actor_id="buyer-1")

        with pytest.raises(NotEligibleError) as exc_info:
            arbitration_service.resolve_request(order_id, request_id, "approved", "", "staff-1")
        assert exc_info.value.reason == REASON_CANCELLED

    def test_shipped_order_still_answerable(self, pending_request):
        order_id, request_id = pending_request
        order_status_service.transition_order_status(order_id, "shipped")
        order = arbitration_service.resolve_request(order_id, request_id, "rejected", "too late", "staff-1")
        assert order.modifications[0].status == "rejected"
        assert order.status == "shipped"

    @pytest.mark.parametrize("decision", ["pending", "maybe", "", None])
    def test_invalid_decision(self, pending_request, decision):
        order_id, request_id = pending_request
        with pytest.raises(ValidationError):
            arbitration_service.resolve_request(order_id, request_id, decision, "", "staff-1")

    def test_oversized_response(self, pending_request):
        order_id, request_id = pending_request
        with pytest.raises(ValidationError):
            arbitration_service.resolve_request(order_id, request_id, "approved", "y" * 1001, "staff-1")

    def test_missing_staff_id(self, pending_request):
        order_id, request_id = pending_request
        with pytest.raises(ValidationError):
            arbitration_service.resolve_request(order_id, request_id, "approved", "", "")

    def test_removed_from_pending_queue(self, pending_request):
        order_id, request_id = pending_request
        assert [m.id for m in modification_service.list_pending_requests()] == [request_id]
        arbitration_service.resolve_request(order_id, request_id, "approved", "", "staff-1")
        assert modification_service.list_pending_requests() == []
