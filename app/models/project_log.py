"""
Project Log Model Module

Append-only audit trail for project changes (create, field updates, archive,
restore).
"""
from typing import Any, Dict, Optional
from sqlmodel import SQLModel, Field, JSON, Column
from datetime import datetime, timezone


class ProjectLog(SQLModel, table=True):
    """
    One audit entry.

    Attributes:
        id: Auto-incrementing primary key
        project_id: Project the entry belongs to
        action: "created", "updated", "archived" or "restored"
        field_changed: Column name for "updated" entries
        old_value / new_value: Stringified values before and after
        changed_by: ID of the user who made the change
        metadata_: Extra context (project name/number, archive reason), stored as "metadata"
        created_at: ISO timestamp of the change
    """
    __tablename__ = "project_logs"

    id: Optional[int] = Field(default=None, primary_key=True)
    project_id: int = Field(foreign_key="projects.id", index=True)
    action: str = Field(nullable=False)
    field_changed: Optional[str] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    changed_by: Optional[str] = None
    # "metadata" is reserved on declarative models
    metadata_: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column("metadata", JSON))
    created_at: Optional[str] = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
