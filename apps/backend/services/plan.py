"""Subscription plan expiry."""
from __future__ import annotations

import math
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from apps.backend.models.user import User


def is_plan_expired(user: User, now: datetime | None = None) -> bool:
    now = now or datetime.utcnow()
    return user.expiry_date is not None and user.expiry_date < now


def force_logout(db: Session, user: User) -> None:
    """Invalidate every outstanding token of the user."""
    user.token_version = (user.token_version or 0) + 1
    db.commit()


def plan_status(user: User, now: datetime | None = None) -> dict[str, Any]:
    now = now or datetime.utcnow()
    expires_in = None
    warning = None
    if user.expiry_date is not None:
        expires_in = math.floor((user.expiry_date - now).total_seconds())
        if expires_in < 86400:
            hours_left = math.floor(expires_in / 3600)
            if hours_left <= 0:
                warning = "Your plan has expired. Please renew immediately."
            else:
                warning = f"Your plan expires in {hours_left} hours. Please renew to avoid service interruption."
    return {"planExpiresIn": expires_in, "planExpiryWarning": warning}


def days_until_expiry(user: User, now: datetime | None = None) -> int | None:
    if user.expiry_date is None:
        return None
    now = now or datetime.utcnow()
    return math.ceil((user.expiry_date - now).total_seconds() / 86400)
