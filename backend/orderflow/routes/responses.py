# Overview: Maps service-layer exceptions to JSON error responses.

from __future__ import annotations

from flask import jsonify, current_app

from ..validation import ValidationError, ConflictError
from ..services.order_store import OrderNotFoundError
from ..services.order_status_service import InvalidTransitionError, CancellationNotAllowedError
from ..services.eligibility_service import NotEligibleError
from ..services.arbitration_service import RequestNotFoundError, AlreadyResolvedError


# Order matters: most specific first.
_ERROR_MAP = (
    (ValidationError, 400, "validation_error"),
    (OrderNotFoundError, 404, "not_found"),
    (RequestNotFoundError, 404, "request_not_found"),
    (NotEligibleError, 422, "not_eligible"),
    (AlreadyResolvedError, 409, "already_resolved"),
    (InvalidTransitionError, 409, "invalid_transition"),
    (CancellationNotAllowedError, 409, "cancellation_not_allowed"),
    (ConflictError, 409, "conflict"),
)

DOMAIN_ERRORS = tuple(cls for cls, _status, _code in _ERROR_MAP)


def json_error(exc: Exception):
    for cls, status, code in _ERROR_MAP:
        if isinstance(exc, cls):
            body = {"error": str(exc), "code": code}
            if isinstance(exc, NotEligibleError):
                body["reason"] = exc.reason
            return jsonify(body), status
    current_app.logger.exception("Unhandled error")
    return jsonify({"error": "Internal server error"}), 500


def forbidden(message: str = "Access denied"):
    return jsonify({"error": message, "code": "forbidden"}), 403
