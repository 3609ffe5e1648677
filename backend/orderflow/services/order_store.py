# Overview: Storage adapter for order records and the policy document.

"""
Order Store Adapter

The engine touches persistence only through this narrow contract:

    read_order(id)                       -> (Order, version_token)
    write_order(Order, expected_version) -> new version_token | ConflictError
    read_policy_config()                 -> ModificationPolicy
    write_policy_config(policy)          -> ModificationPolicy

write_order is a compare-and-swap: the orders row UPDATE carries
"WHERE version_id = <expected>" (SQLAlchemy version_id_col), so a write
based on a stale read matches zero rows and fails instead of silently
overwriting the other writer.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Order, PolicyConfig, ModificationPolicy
from ..time_utils import utcnow
from ..validation import ConflictError
from .concurrency import lock_for_update


class OrderNotFoundError(ValueError):
    """Raised when no order exists for the given identifier."""


def read_order(order_id: int, *, for_update: bool = False) -> tuple[Order, int]:
    # Load the whole aggregate in the same read so every rule sees one snapshot
    query = (
        db.session.query(Order)
        .options(selectinload(Order.lines), selectinload(Order.modifications))
        .filter_by(id=order_id)
        .populate_existing()
    )
    if for_update:
        query = lock_for_update(query)
    order = query.first()
    if order is None:
        raise OrderNotFoundError(f"Order {order_id} not found")
    return order, order.version_id


def write_order(order: Order, expected_version: int) -> int:
    """
    Commit pending changes to order (and its children) if the stored row is
    still at expected_version. Returns the new version token.
    """
    if order.version_id != expected_version:
        db.session.rollback()
        raise ConflictError(
            f"Order {order.id} changed since it was read "
            f"(expected version {expected_version}, found {order.version_id})"
        )

    # Always dirty the parent row so child-only changes still go through
    # the version-checked UPDATE.
    order.updated_at = utcnow()
    try:
        db.session.commit()
    except StaleDataError as exc:
        db.session.rollback()
        raise ConflictError(f"Order {order.id} changed since it was read") from exc
    return order.version_id


def _seed_policy() -> ModificationPolicy:
    cfg = current_app.config
    return ModificationPolicy(
        default_max_modifications=int(cfg.get("DEFAULT_MAX_MODIFICATIONS", 3)),
        modification_deadline_hours=int(cfg.get("MODIFICATION_DEADLINE_HOURS", 24)),
        allow_cancellations=bool(cfg.get("ALLOW_CANCELLATIONS", True)),
        require_reason_for_cancellation=bool(cfg.get("REQUIRE_CANCELLATION_REASON", True)),
    )


def read_policy_config() -> ModificationPolicy:
    """Stored policy document, or the application defaults if none was saved."""
    row = db.session.query(PolicyConfig).order_by(PolicyConfig.id.asc()).first()
    if row is None:
        return _seed_policy()
    return row.to_policy()


def read_policy_record() -> PolicyConfig | None:
    return db.session.query(PolicyConfig).order_by(PolicyConfig.id.asc()).first()


def write_policy_config(policy: ModificationPolicy, *, updated_by: str | None = None) -> ModificationPolicy:
    """Replace the whole policy document (no merge, last write wins)."""
    row = read_policy_record()
    if row is None:
        row = PolicyConfig()
        db.session.add(row)
    row.default_max_modifications = policy.default_max_modifications
    row.modification_deadline_hours = policy.modification_deadline_hours
    row.allow_cancellations = policy.allow_cancellations
    row.require_reason_for_cancellation = policy.require_reason_for_cancellation
    row.updated_by = updated_by
    row.updated_at = utcnow()
    db.session.commit()
    return row.to_policy()
