"""Domain helpers for subscription accounts: usability, packing and validation."""
from __future__ import annotations

import re
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, Optional, TypeVar

EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
MAX_NAME_LENGTH = 100
MIN_PASSWORD_LENGTH = 6
MIN_SLOTS = 1
MAX_SLOTS = 100

T = TypeVar("T")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Normalize a datetime to aware UTC (SQLite hands back naive values)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def has_capacity(account: Any) -> bool:
    return int(account.available_slots or 0) > 0


def is_usable(account: Any, now: datetime | None = None) -> bool:
    """Active and not expired at `now`."""
    if not account.is_active:
        return False
    expires_at = as_utc(account.expires_at)
    if expires_at is None:
        return True
    return expires_at > (as_utc(now) or utcnow())


def pick_most_packed(candidates: Iterable[T]) -> Optional[T]:
    """
    Choose the usable account with the fewest remaining seats.

    Ties go to the oldest account (earliest created_at). Accounts without
    capacity are ignored; returns None when nothing qualifies.
    """
    eligible = [c for c in candidates if has_capacity(c)]
    if not eligible:
        return None
    return min(
        eligible,
        key=lambda c: (int(c.available_slots), as_utc(c.created_at) or datetime.max.replace(tzinfo=timezone.utc)),
    )


def _name_errors(name: str | None) -> list[str]:
    clean = (name or "").strip()
    if not clean:
        return ["Subscription name is required"]
    if len(clean) > MAX_NAME_LENGTH:
        return [f"Subscription name must be {MAX_NAME_LENGTH} characters or less"]
    return []


def _email_errors(email: str | None) -> list[str]:
    clean = (email or "").strip()
    if not clean:
        return ["Email is required"]
    if not EMAIL_PATTERN.fullmatch(clean):
        return ["Invalid email format"]
    return []


def _password_errors(password: str | None) -> list[str]:
    if not password:
        return ["Password is required"]
    if len(password) < MIN_PASSWORD_LENGTH:
        return [f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"]
    return []


def _slots_errors(slots: int | None, label: str) -> list[str]:
    if slots is None or slots < MIN_SLOTS:
        return [f"{label} must be at least {MIN_SLOTS}"]
    if slots > MAX_SLOTS:
        return [f"{label} cannot exceed {MAX_SLOTS}"]
    return []


def _price_errors(user_price: Decimal | float | None) -> list[str]:
    if user_price is not None and Decimal(str(user_price)) < 0:
        return ["User price cannot be negative"]
    return []


def _expiry_errors(expires_at: datetime | None, now: datetime | None) -> list[str]:
    expiry = as_utc(expires_at)
    if expiry is not None and expiry <= (as_utc(now) or utcnow()):
        return ["Expiration date must be in the future"]
    return []


def account_validation_errors(
    *,
    name: str | None,
    email: str | None,
    password: str | None,
    available_slots: int | None,
    user_price: Decimal | float | None = None,
    expires_at: datetime | None = None,
    now: datetime | None = None,
) -> list[str]:
    """Return the list of rule violations for new account data (empty when valid)."""
    return (
        _name_errors(name)
        + _email_errors(email)
        + _password_errors(password)
        + _slots_errors(available_slots, "Available slots")
        + _price_errors(user_price)
        + _expiry_errors(expires_at, now)
    )


def account_update_errors(
    *,
    name: str | None = None,
    email: str | None = None,
    password: str | None = None,
    total_slots: int | None = None,
    user_price: Decimal | float | None = None,
    expires_at: datetime | None = None,
    now: datetime | None = None,
) -> list[str]:
    """Same rules as account creation, applied only to the fields being changed."""
    errors: list[str] = []
    if name is not None:
        errors += _name_errors(name)
    if email is not None:
        errors += _email_errors(email)
    if password is not None:
        errors += _password_errors(password)
    if total_slots is not None:
        errors += _slots_errors(total_slots, "Total slots")
    errors += _price_errors(user_price)
    errors += _expiry_errors(expires_at, now)
    return errors
