"""
Project Model Module

This module defines the Project model for FTTH rollout projects: identity,
port capacity, workflow progress and its derived fields, timeline and archive
state.
"""
from typing import Optional
from sqlalchemy import Computed, Integer
from sqlmodel import SQLModel, Field, Column

from datetime import datetime, timezone


class Project(SQLModel, table=True):
    """
    Project model representing one FTTH rollout project.

    Numeric values are stored as decimal strings and dates as ISO strings
    (YYYY-MM-DD), matching what the spreadsheet import produces.

    ``status``, ``uic`` and ``persentase`` are always derived from ``progress``
    through ``app.core.progress.derive_progress_fields``; ``idle_port`` is a
    generated column owned by the database and never written by the API.

    Attributes:
        id: Auto-incrementing primary key
        regional: One of the six regionals (BANTEN, JABAR, ...)
        no_project: Unique project number (max 20 characters)
        nama_project: Project name
        pop: Point of presence
        port / jumlah_odp / port_terisi: Capacity figures
        progress: Canonical workflow stage (e.g. "BAST")
        status / uic / persentase: Derived from progress
        occupancy: round(port_terisi / port * 100)
        capex: revenue * 0.6
        division: Division of the user who created the project
        is_archived: Archived projects are hidden from the worksheet
    """
    __tablename__ = "projects"

    # Primary key
    id: Optional[int] = Field(default=None, primary_key=True)

    # Identity
    regional: str = Field(nullable=False, index=True)
    no_project: str = Field(nullable=False, unique=True, max_length=20)
    no_spk: Optional[str] = None
    pop: str = Field(nullable=False)
    nama_project: str = Field(nullable=False)
    mitra: Optional[str] = None

    # Capacity - decimal strings
    port: Optional[str] = None
    jumlah_odp: Optional[str] = None
    port_terisi: Optional[str] = None
    idle_port: Optional[int] = Field(
        default=None,
        sa_column=Column(
            Integer,
            Computed("CAST(port AS INTEGER) - CAST(port_terisi AS INTEGER)", persisted=True),
        ),
    )
    occupancy: Optional[str] = None

    # Workflow - status/uic/persentase derived from progress
    progress: Optional[str] = None
    status: Optional[str] = None
    uic: Optional[str] = None
    persentase: Optional[str] = None
    update_progress: Optional[str] = None
    circulir_status: Optional[str] = None  # "ongoing", "hold" or "reject"

    # Timeline - dates stored as ISO format strings (YYYY-MM-DD)
    toc: Optional[str] = None  # days
    start_pekerjaan: Optional[str] = None
    target_active: Optional[str] = None
    tanggal_active: Optional[str] = None
    aging_toc: Optional[str] = None

    # Financials
    bep: Optional[str] = None  # months
    target_bep: Optional[str] = None
    revenue: Optional[str] = None
    capex: Optional[str] = None

    # Notes
    remark: Optional[str] = None
    issue: Optional[str] = None
    next_action: Optional[str] = None

    # Ownership
    division: Optional[str] = Field(default=None, index=True)
    created_by: Optional[str] = Field(default=None, foreign_key="users.id")

    # Archive state
    is_archived: bool = Field(default=False, index=True)
    archived_at: Optional[str] = None
    archived_by: Optional[str] = None
    archive_reason: Optional[str] = None

    # Audit timestamps - automatically managed
    created_at: Optional[str] = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    updated_at: Optional[str] = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
