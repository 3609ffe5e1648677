from __future__ import annotations

from dataclasses import asdict, dataclass

from ..extensions import db
from ..time_utils import to_utc_z


@dataclass(frozen=True)
class ModificationPolicy:
    """
    Immutable snapshot of the global modification/cancellation policy.

    Rule functions take this value explicitly instead of reading global state.
    """
    default_max_modifications: int = 3
    modification_deadline_hours: int = 24
    allow_cancellations: bool = True
    require_reason_for_cancellation: bool = True

    def to_dict(self) -> dict:
        return asdict(self)


class PolicyConfig(db.Model):
    """
    Single-row policy document.

    Versionless: saves replace the whole row, last write wins.
    """
    __tablename__ = "policy_config"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    default_max_modifications = db.Column(db.Integer, nullable=False)
    modification_deadline_hours = db.Column(db.Integer, nullable=False)
    allow_cancellations = db.Column(db.Boolean, nullable=False)
    require_reason_for_cancellation = db.Column(db.Boolean, nullable=False)

    updated_by = db.Column(db.String(64), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False)

    def to_policy(self) -> ModificationPolicy:
        return ModificationPolicy(
            default_max_modifications=self.default_max_modifications,
            modification_deadline_hours=self.modification_deadline_hours,
            allow_cancellations=bool(self.allow_cancellations),
            require_reason_for_cancellation=bool(self.require_reason_for_cancellation),
        )

    def to_dict(self) -> dict:
        return {
            **self.to_policy().to_dict(),
            "updated_by": self.updated_by,
            "updated_at": to_utc_z(self.updated_at),
        }
