# backend/orderflow/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/orderflow.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///orderflow.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Seed values for the policy document when none has been saved yet
    DEFAULT_MAX_MODIFICATIONS = int(os.environ.get("DEFAULT_MAX_MODIFICATIONS", "3"))
    MODIFICATION_DEADLINE_HOURS = int(os.environ.get("MODIFICATION_DEADLINE_HOURS", "24"))
    ALLOW_CANCELLATIONS = _env_bool("ALLOW_CANCELLATIONS", True)
    REQUIRE_CANCELLATION_REASON = _env_bool("REQUIRE_CANCELLATION_REASON", True)

    # Compare-and-swap retry budget for order writes
    CAS_RETRY_ATTEMPTS = int(os.environ.get("CAS_RETRY_ATTEMPTS", "3"))
    CAS_RETRY_BACKOFF = float(os.environ.get("CAS_RETRY_BACKOFF", "0.05"))

    MODIFICATION_DESCRIPTION_MAX_LENGTH = 1000
    RESPONSE_TEXT_MAX_LENGTH = 1000
    CANCEL_REASON_MAX_LENGTH = 255

    # When enabled, shipped/delivered require a completed payment
    REQUIRE_PAYMENT_FOR_FULFILLMENT = _env_bool("REQUIRE_PAYMENT_FOR_FULFILLMENT", False)

    # Identity headers set by the upstream auth gateway
    ACTOR_ID_HEADER = "X-User-Id"
    ACTOR_ROLE_HEADER = "X-User-Role"
    STAFF_ROLES = ("staff", "admin")
