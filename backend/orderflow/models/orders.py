from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Order(db.Model):
    """
    Order record (fulfillment + payment state, modification history).

    version_id: every write is issued as
    "UPDATE ... WHERE id = ? AND version_id = ?"; a writer holding a stale
    read matches zero rows and SQLAlchemy raises StaleDataError.

    modification_count is redundant with len(modifications) and must be kept
    equal on every append.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.CheckConstraint("total_cents >= 0", name="ck_orders_total_nonneg"),
        db.CheckConstraint("shipping_cost_cents >= 0", name="ck_orders_shipping_nonneg"),
        db.CheckConstraint("insurance_cost_cents >= 0", name="ck_orders_insurance_nonneg"),
        db.CheckConstraint("modification_count >= 0", name="ck_orders_mod_count_nonneg"),
        db.Index("ix_orders_user_created", "user_id", "created_at"),
        db.Index("ix_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Buyer identifier (owned by the external auth system)
    user_id = db.Column(db.String(64), nullable=False, index=True)

    # Fulfillment state and payment state are tracked independently
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    payment_status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    # Amounts fixed at creation (all in cents)
    total_cents = db.Column(db.Integer, nullable=False)
    shipping_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    insurance_cost_cents = db.Column(db.Integer, nullable=False, default=0)

    # Snapshot of shipping/contact details from checkout (display only)
    shipping_details = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False)

    # Modification policy captured per order
    modification_count = db.Column(db.Integer, nullable=False, default=0)
    max_modifications_allowed = db.Column(db.Integer, nullable=True)
    modification_deadline = db.Column(db.DateTime(timezone=True), nullable=True)

    # Cancellation audit trail
    cancel_reason = db.Column(db.String(255), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_by = db.Column(db.String(64), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    lines = db.relationship(
        "OrderLine",
        back_populates="order",
        order_by="OrderLine.id",
        cascade="all, delete-orphan",
    )
    modifications = db.relationship(
        "ModificationRequest",
        back_populates="order",
        order_by="ModificationRequest.id",
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, *, include_modifications: bool = True) -> dict:
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "status": self.status,
            "payment_status": self.payment_status,
            "items": [line.to_dict() for line in self.lines],
            "total_cents": self.total_cents,
            "shipping_cost_cents": self.shipping_cost_cents,
            "insurance_cost_cents": self.insurance_cost_cents,
            "shipping_details": self.shipping_details,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "modification_count": self.modification_count,
            "max_modifications_allowed": self.max_modifications_allowed,
            "modification_deadline": to_utc_z(self.modification_deadline),
            "cancel_reason": self.cancel_reason,
            "cancelled_at": to_utc_z(self.cancelled_at),
            "cancelled_by": self.cancelled_by,
            "version_id": self.version_id,
        }
        if include_modifications:
            data["modifications"] = [m.to_dict() for m in self.modifications]
        return data


class OrderLine(db.Model):
    """Line item with the unit price captured at purchase time."""
    __tablename__ = "order_lines"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_order_lines_quantity_positive"),
        db.CheckConstraint("unit_price_cents >= 0", name="ck_order_lines_price_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    product_id = db.Column(db.String(64), nullable=False)
    product_name = db.Column(db.String(255), nullable=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    order = db.relationship("Order", back_populates="lines")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }


class ModificationRequest(db.Model):
    """
    Buyer-initiated change request attached to an order.

    STATES: pending -> approved | rejected (both terminal).
    response_* fields are only populated when leaving pending.
    """
    __tablename__ = "modification_requests"
    __table_args__ = (
        db.Index("ix_modification_requests_status_requested", "status", "requested_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)

    description = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="pending")

    requested_at = db.Column(db.DateTime(timezone=True), nullable=False)
    requested_by = db.Column(db.String(64), nullable=False)

    responded_at = db.Column(db.DateTime(timezone=True), nullable=True)
    response_text = db.Column(db.Text, nullable=True)
    responded_by = db.Column(db.String(64), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    order = db.relationship("Order", back_populates="modifications")
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "description": self.description,
            "status": self.status,
            "requested_at": to_utc_z(self.requested_at),
            "requested_by": self.requested_by,
            "responded_at": to_utc_z(self.responded_at),
            "response_text": self.response_text,
            "responded_by": self.responded_by,
        }
