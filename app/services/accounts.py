"""Account housekeeping: stale-account deactivation."""
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from sqlmodel import Session, select

from app.core.config import settings
from app.models.user import User, UserRole

logger = logging.getLogger(__name__)


def deactivate_inactive_users(
    db: Session, days: Optional[int] = None, now: Optional[datetime] = None
) -> Tuple[List[User], str]:
    """
    Deactivate non-admin users whose last login is older than ``days``.

    Users who never logged in are left alone. Returns the deactivated users and
    the ISO threshold that was applied.
    """
    days = settings.INACTIVE_USER_DAYS if days is None else days
    threshold = ((now or datetime.now(timezone.utc)) - timedelta(days=days)).isoformat()

    candidates = db.exec(
        select(User).where(
            User.is_active == True,  # noqa: E712
            User.last_login != None,  # noqa: E711
            User.last_login < threshold,
        )
    ).all()

    # roles is a JSON column, so the admin exclusion happens in Python
    deactivated = [user for user in candidates if UserRole.ADMIN not in user.roles]
    for user in deactivated:
        user.is_active = False
        db.add(user)
    db.commit()

    logger.info("Deactivated %d inactive user(s) (last login before %s)", len(deactivated), threshold)
    return deactivated, threshold
