"""
Division-based authorization shared by project import, create and update.

Controllers belong to a division. A PLANNING controller may not put a project
into a DEPLOYMENT-owned stage and vice versa; stages owned by both divisions
(REJECT, PENDING / HOLD) are open to either.
"""
from typing import Optional

from app.core.progress import UIC_DEPLOYMENT, UIC_PLANNING, UIC_SHARED

DIVISION_PLANNING = "PLANNING"
DIVISION_DEPLOYMENT = "DEPLOYMENT"
DIVISION_ADMIN = "ADMIN"

DIVISIONS = (DIVISION_PLANNING, DIVISION_DEPLOYMENT, DIVISION_ADMIN)


def division_conflict(division: Optional[str], uic: Optional[str]) -> bool:
    """True when ``division`` is not allowed to own a stage whose UIC is ``uic``."""
    if division == DIVISION_PLANNING:
        return uic == UIC_DEPLOYMENT
    if division == DIVISION_DEPLOYMENT:
        return uic == UIC_PLANNING
    return False


def division_allows(division: Optional[str], uic: Optional[str]) -> bool:
    """
    True when a controller of ``division`` may edit a project whose UIC is ``uic``.

    Stricter than :func:`division_conflict`: only PLANNING and DEPLOYMENT
    controllers qualify, and only for their own or the shared UIC.
    """
    if division not in (DIVISION_PLANNING, DIVISION_DEPLOYMENT):
        return False
    return uic in (division, UIC_SHARED)


def division_conflict_message(division: str, uic: str, action: str = "import") -> str:
    return f"User {division} tidak boleh {action} project dengan progress {uic}"
