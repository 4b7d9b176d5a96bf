"""
Dashboard Endpoints Module

Aggregated figures for the controller and owner dashboards.
"""
from typing import Any, Optional
from fastapi import APIRouter, Depends
from sqlmodel import Session, select
from app.api import deps
from app.db.session import get_db
from app.models.project import Project
from app.models.user import User
from app.services.dashboard import summarize

router = APIRouter()


@router.get("/summary", response_model=dict[str, Any])
def read_summary(
    regional: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    """
    Summarize all active (non-archived) projects.

    Args:
        regional: Restrict the summary to one regional
        db: Database session
        current_user: Currently authenticated user

    Returns:
        dict: Totals, progress rate, per-category counts and port sums, and
        project counts per regional
    """
    statement = select(Project).where(Project.is_archived == False)  # noqa: E712
    if regional:
        statement = statement.where(Project.regional == regional.strip().upper())
    return summarize(db.exec(statement).all())
