"""
Shared admin passphrase.

The passphrase is kept as a werkzeug password hash under ``admin_passphrase``;
failed attempts are counted under ``admin_lockout`` and lock the gate for a
while once the limit is reached.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

from backend.app.db.base import utcnow
from backend.services.errors import AdminLocked, AdminNotConfigured, AdminRejected, InvalidInput
from backend.services.settings import get_setting, put_setting

logger = logging.getLogger(__name__)

PASSPHRASE_KEY = "admin_passphrase"
LOCKOUT_KEY = "admin_lockout"

MIN_LENGTH = 4
# werkzeug method string, salt and parameters travel inside the stored hash
HASH_METHOD = "scrypt"


def _matches(stored, candidate: str) -> bool:
    if not isinstance(stored, str):
        return False
    return check_password_hash(stored, candidate)


def is_configured(db: Session) -> bool:
    return bool(get_setting(db, PASSPHRASE_KEY))


def _locked_until(db: Session) -> datetime | None:
    state = get_setting(db, LOCKOUT_KEY, {}) or {}
    until = state.get("locked_until")
    if not until:
        return None
    until = datetime.fromisoformat(until)
    return until if until > utcnow() else None


def _record_failure(db: Session, max_failures: int, lockout_minutes: int) -> None:
    state = dict(get_setting(db, LOCKOUT_KEY, {}) or {})
    failures = int(state.get("failures", 0)) + 1
    if failures >= max_failures:
        until = utcnow() + timedelta(minutes=lockout_minutes)
        put_setting(db, LOCKOUT_KEY, {"failures": 0, "locked_until": until.isoformat()})
        logger.warning("admin gate locked until %s after %d failed attempts", until.isoformat(), failures)
    else:
        put_setting(db, LOCKOUT_KEY, {"failures": failures, "locked_until": None})
        logger.warning("admin passphrase rejected (%d/%d)", failures, max_failures)


def verify(db: Session, candidate: str | None, *, max_failures: int = 5, lockout_minutes: int = 15) -> None:
    """
    Raise unless ``candidate`` is the current passphrase.

    A rejected attempt updates the failure counter in the session; the caller
    commits it before turning the error into a response.
    """
    stored = get_setting(db, PASSPHRASE_KEY)
    if not stored:
        raise AdminNotConfigured("Admin passphrase is not configured")

    until = _locked_until(db)
    if until is not None:
        raise AdminLocked(f"Too many failed attempts, try again after {until.isoformat()}")

    if not candidate or not _matches(stored, candidate):
        _record_failure(db, max_failures, lockout_minutes)
        raise AdminRejected("Invalid admin passphrase")

    state = get_setting(db, LOCKOUT_KEY, {}) or {}
    if state.get("failures"):
        put_setting(db, LOCKOUT_KEY, {"failures": 0, "locked_until": None})


def set_passphrase(db: Session, new: str) -> None:
    if not new or len(new.strip()) < MIN_LENGTH:
        raise InvalidInput(f"Passphrase must be at least {MIN_LENGTH} characters long")
    put_setting(db, PASSPHRASE_KEY, generate_password_hash(new.strip(), method=HASH_METHOD))
    put_setting(db, LOCKOUT_KEY, {"failures": 0, "locked_until": None})
    logger.info("admin passphrase updated")


def change_passphrase(
    db: Session,
    *,
    current: str,
    new: str,
    confirm: str,
    max_failures: int = 5,
    lockout_minutes: int = 15,
) -> None:
    if new != confirm:
        raise InvalidInput("New passphrase and confirmation do not match")
    verify(db, current, max_failures=max_failures, lockout_minutes=lockout_minutes)
    set_passphrase(db, new)
