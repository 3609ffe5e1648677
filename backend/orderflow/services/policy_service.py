# Overview: Global modification/cancellation policy; validation and whole-document replacement.

from __future__ import annotations

from typing import Any

from flask import current_app

from ..models import ModificationPolicy
from ..validation import ValidationError, coerce_int, coerce_bool
from . import order_store


POLICY_FIELDS = (
    "default_max_modifications",
    "modification_deadline_hours",
    "allow_cancellations",
    "require_reason_for_cancellation",
)


def get_policy() -> ModificationPolicy:
    return order_store.read_policy_config()


def get_policy_document() -> dict:
    """Policy values plus who saved them last (None fields if never saved)."""
    row = order_store.read_policy_record()
    if row is None:
        return {**get_policy().to_dict(), "updated_by": None, "updated_at": None}
    return row.to_dict()


def validate_policy(document: Any) -> ModificationPolicy:
    """
    Validate a full policy document.

    Saves replace the whole document, so every field is required and unknown
    keys are rejected rather than ignored.
    """
    if not isinstance(document, dict):
        raise ValidationError("Policy must be a JSON object")

    unknown = sorted(set(document) - set(POLICY_FIELDS))
    if unknown:
        raise ValidationError(f"Unknown policy field(s): {', '.join(unknown)}")
    missing = [f for f in POLICY_FIELDS if f not in document]
    if missing:
        raise ValidationError(f"Missing policy field(s): {', '.join(missing)}")

    return ModificationPolicy(
        default_max_modifications=coerce_int(
            document["default_max_modifications"], "default_max_modifications", minimum=0
        ),
        modification_deadline_hours=coerce_int(
            document["modification_deadline_hours"], "modification_deadline_hours", minimum=1
        ),
        allow_cancellations=coerce_bool(document["allow_cancellations"], "allow_cancellations"),
        require_reason_for_cancellation=coerce_bool(
            document["require_reason_for_cancellation"], "require_reason_for_cancellation"
        ),
    )


def update_policy(document: Any, *, updated_by: str | None = None) -> ModificationPolicy:
    """
    Replace the global policy (last write wins).

    Existing orders keep the limit and deadline captured when they were
    created; only new orders see the new defaults.
    """
    policy = validate_policy(document)
    saved = order_store.write_policy_config(policy, updated_by=updated_by)
    current_app.logger.info("Policy updated by %s: %s", updated_by, saved.to_dict())
    return saved
