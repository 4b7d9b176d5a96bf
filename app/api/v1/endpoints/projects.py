"""
Project Endpoints Module

This module provides the worksheet endpoints for FTTH projects: listing and
search, manual create and update, archive/restore with an audit trail, and the
spreadsheet bulk import.

Reads are open to every active user. Writes require the controller or admin
role, and controllers are further restricted by their division (a PLANNING
controller cannot touch DEPLOYMENT stages and vice versa).
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select
from app.api import deps
from app.core.exceptions import DivisionPermissionError
from app.core.permissions import division_allows, division_conflict, division_conflict_message
from app.core.progress import derive_progress_fields
from app.db.session import get_db
from app.models.project import Project
from app.models.project_log import ProjectLog
from app.models.user import User
from app.schemas.project import ArchiveRequest, ImportErrorResponse, ImportResponse, ProjectCreate, ProjectUpdate
from app.services.dashboard import status_category
from app.services.import_template import build_import_template
from app.services.project_import import capex_for, import_projects, occupancy_for
from app.utils.coercion import coerce_date, format_number

logger = logging.getLogger(__name__)

router = APIRouter()

NUMBER_FIELDS = ("port", "jumlah_odp", "port_terisi", "toc", "bep", "revenue")
DATE_FIELDS = ("start_pekerjaan", "target_active", "tanggal_active", "aging_toc", "target_bep")
DERIVED_FIELDS = ("status", "uic", "persentase", "occupancy", "capex")

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _column_values(data: Dict[str, Any]) -> Dict[str, Any]:
    """Convert request values to the string representation stored on Project."""
    values = {}
    for key, value in data.items():
        if key in NUMBER_FIELDS:
            value = None if value is None else format_number(value)
        elif key in DATE_FIELDS:
            value = coerce_date(value)
        elif isinstance(value, str):
            value = value.strip()
        values[key] = value
    return values


def _apply_derived_fields(project: Project) -> None:
    derived = derive_progress_fields(project.progress)
    project.status = derived.status
    project.uic = derived.uic
    project.persentase = str(derived.percentage)
    project.occupancy = occupancy_for(project.port, project.port_terisi)
    project.capex = capex_for(project.revenue)


def _stringify(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _write_logs(db: Session, logs: List[ProjectLog]) -> None:
    """Persist audit entries; a failure here never undoes the project write."""
    if not logs:
        return
    db.add_all(logs)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Failed to write %d project log(s)", len(logs), exc_info=True)


def _get_project_or_404(db: Session, project_id: int) -> Project:
    project = db.get(Project, project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


def _ensure_unique_no_project(db: Session, no_project: str, exclude_id: Optional[int] = None) -> None:
    statement = select(Project).where(Project.no_project == no_project)
    existing = db.exec(statement).first()
    if existing and existing.id != exclude_id:
        raise HTTPException(
            status_code=400,
            detail=f"Project dengan No Project {no_project} sudah ada",
        )


@router.get("", response_model=List[Project])
def list_projects(
    skip: int = 0,
    limit: int = 100,
    archived: bool = False,
    regional: Optional[str] = None,
    division: Optional[str] = None,
    category: Optional[str] = None,
    q: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    Retrieve a paginated list of projects for the worksheet.

    Args:
        skip: Number of records to skip (for pagination)
        limit: Maximum number of records to return
        archived: List archived projects instead of active ones
        regional: Only projects of this regional
        division: Only projects created by this division
        category: Only projects in this dashboard category (e.g. "construction")
        q: Case-insensitive search over name, number, POP and partner
        db: Database session
        current_user: Currently authenticated user

    Returns:
        List[Project]: Matching projects, newest first
    """
    statement = select(Project).where(Project.is_archived == archived)
    if regional:
        statement = statement.where(Project.regional == regional.strip().upper())
    if division:
        statement = statement.where(Project.division == division.strip().upper())
    if q:
        pattern = f"%{q.strip()}%"
        statement = statement.where(
            or_(
                col(Project.nama_project).ilike(pattern),
                col(Project.no_project).ilike(pattern),
                col(Project.pop).ilike(pattern),
                col(Project.mitra).ilike(pattern),
            )
        )
    statement = statement.order_by(col(Project.id).desc())

    # Categories are computed, not stored, so that filter pages in Python
    if category:
        projects = [p for p in db.exec(statement).all() if status_category(p) == category]
        return projects[skip:skip + limit]

    return db.exec(statement.offset(skip).limit(limit)).all()


@router.post(
    "/import",
    response_model=ImportResponse,
    responses={
        400: {"model": ImportErrorResponse},
        409: {"model": ImportErrorResponse},
        422: {"model": ImportErrorResponse},
    },
)
def import_project_file(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.require_project_editor),
):
    """
    Bulk-create projects from an uploaded .xlsx, .xls or .csv file.

    The whole file is validated first; a single invalid row rejects the
    upload and nothing is written.

    Raises:
        ImportStructureError (400): Unreadable file, no sheets or too many rows
        EmptyImportError (400): No usable rows
        ImportValidationError (422): Row errors, listed in the response body
        ImportSubmissionError (409): The database rejected the batch
    """
    content = file.file.read()
    result = import_projects(db, content, file.filename, current_user)
    return ImportResponse(imported=result.imported, sheet=result.sheet, message=result.message)


@router.get("/import/template")
def download_import_template(
    current_user: User = Depends(deps.get_current_active_user),
):
    """Download the .xlsx import template with sample rows and a guide sheet."""
    return Response(
        content=build_import_template(),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="template_import_project.xlsx"'},
    )


@router.get("/{project_id}", response_model=Project)
def read_project(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    Get a specific project by ID.

    Raises:
        HTTPException 404: If the project doesn't exist
    """
    return _get_project_or_404(db, project_id)


@router.get("/{project_id}/logs", response_model=List[ProjectLog])
def read_project_logs(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Audit trail of a project, newest first."""
    _get_project_or_404(db, project_id)
    statement = (
        select(ProjectLog)
        .where(ProjectLog.project_id == project_id)
        .order_by(col(ProjectLog.created_at).desc(), col(ProjectLog.id).desc())
    )
    return db.exec(statement).all()


@router.post("", response_model=Project)
def create_project(
    project_in: ProjectCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.require_project_editor),
):
    """
    Create a single project by hand.

    status, uic, persentase, occupancy and capex are computed from the
    submitted values; the project inherits the creator's division.

    Args:
        project_in: Project data to create
        db: Database session
        current_user: Controller or admin creating the project

    Returns:
        Project: The newly created project object

    Raises:
        HTTPException 400: If the project number is already taken
        DivisionPermissionError (403): If the progress belongs to the other division
    """
    uic = derive_progress_fields(project_in.progress).uic
    if division_conflict(current_user.division, uic):
        raise DivisionPermissionError(division_conflict_message(current_user.division, uic, "membuat"))

    values = _column_values(project_in.model_dump())
    values["regional"] = values["regional"].upper()
    _ensure_unique_no_project(db, values["no_project"])

    now = _now()
    project = Project(
        **values,
        division=current_user.division,
        created_by=current_user.id,
        update_progress=now,
        created_at=now,
        updated_at=now,
    )
    _apply_derived_fields(project)

    db.add(project)
    db.commit()
    db.refresh(project)
    logger.info("Project %s created by %s", project.no_project, current_user.email)

    _write_logs(db, [
        ProjectLog(
            project_id=project.id,
            action="created",
            changed_by=current_user.id,
            metadata_={"no_project": project.no_project, "nama_project": project.nama_project},
        )
    ])
    db.refresh(project)
    return project


@router.patch("/{project_id}", response_model=Project)
def update_project(
    project_id: int,
    project_update: ProjectUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.require_project_editor),
):
    """
    Update an existing project.

    Only submitted fields are changed; derived fields are recomputed and every
    changed column is written to the audit trail.

    Controllers must have a division, the project must already be assigned
    to a UIC, and both the current and the resulting UIC must be the
    controller's own division or the shared one. Admins are not restricted.

    Raises:
        HTTPException 404: If the project doesn't exist
        HTTPException 400: If the new project number is already taken
        DivisionPermissionError (403): If the division rules forbid the change
    """
    project = _get_project_or_404(db, project_id)
    update_data = _column_values(project_update.model_dump(exclude_unset=True))

    new_uic = derive_progress_fields(update_data.get("progress", project.progress)).uic
    if current_user.is_controller:
        division = current_user.division
        if not division:
            raise DivisionPermissionError("Controller belum memiliki divisi")
        if not project.uic:
            raise DivisionPermissionError("Project belum memiliki UIC")
        if not division_allows(division, project.uic):
            raise DivisionPermissionError(division_conflict_message(division, project.uic, "mengubah"))
        if new_uic != project.uic and not division_allows(division, new_uic):
            raise DivisionPermissionError(division_conflict_message(division, new_uic, "mengubah"))

    # Required columns cannot be cleared
    for key in ("regional", "no_project", "pop", "nama_project"):
        if key in update_data and not update_data[key]:
            raise HTTPException(status_code=400, detail=f"{key} wajib diisi")
    if "regional" in update_data:
        update_data["regional"] = update_data["regional"].upper()
    if "no_project" in update_data:
        _ensure_unique_no_project(db, update_data["no_project"], exclude_id=project.id)

    tracked = list(update_data) + [f for f in DERIVED_FIELDS if f not in update_data]
    before = {field: getattr(project, field) for field in tracked}

    for key, value in update_data.items():
        setattr(project, key, value)
    _apply_derived_fields(project)

    now = _now()
    if "progress" in update_data and update_data["progress"] != before["progress"]:
        project.update_progress = now
    project.updated_at = now

    logs = [
        ProjectLog(
            project_id=project.id,
            action="updated",
            field_changed=field,
            old_value=_stringify(before[field]),
            new_value=_stringify(getattr(project, field)),
            changed_by=current_user.id,
            metadata_={"no_project": project.no_project},
        )
        for field in tracked
        if _stringify(before[field]) != _stringify(getattr(project, field))
    ]

    db.add(project)
    db.commit()
    db.refresh(project)
    logger.info("Project %s updated by %s (%d field(s))", project.no_project, current_user.email, len(logs))

    _write_logs(db, logs)
    db.refresh(project)
    return project


@router.post("/{project_id}/archive", response_model=Project)
def archive_project(
    project_id: int,
    archive_in: Optional[ArchiveRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.require_project_editor),
):
    """
    Archive a project, hiding it from the worksheet and dashboard.

    Raises:
        HTTPException 404: If the project doesn't exist
        HTTPException 400: If the project is already archived
    """
    project = _get_project_or_404(db, project_id)
    if project.is_archived:
        raise HTTPException(status_code=400, detail="Project sudah diarsipkan")

    reason = archive_in.reason if archive_in else None
    now = _now()
    project.is_archived = True
    project.archived_at = now
    project.archived_by = current_user.id
    project.archive_reason = reason
    project.updated_at = now

    db.add(project)
    db.commit()
    db.refresh(project)
    logger.info("Project %s archived by %s", project.no_project, current_user.email)

    _write_logs(db, [
        ProjectLog(
            project_id=project.id,
            action="archived",
            changed_by=current_user.id,
            metadata_={"no_project": project.no_project, "reason": reason},
        )
    ])
    db.refresh(project)
    return project


@router.post("/{project_id}/restore", response_model=Project)
def restore_project(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.require_project_editor),
):
    """
    Restore an archived project.

    Raises:
        HTTPException 404: If the project doesn't exist
        HTTPException 400: If the project is not archived
    """
    project = _get_project_or_404(db, project_id)
    if not project.is_archived:
        raise HTTPException(status_code=400, detail="Project tidak dalam arsip")

    project.is_archived = False
    project.archived_at = None
    project.archived_by = None
    project.archive_reason = None
    project.updated_at = _now()

    db.add(project)
    db.commit()
    db.refresh(project)
    logger.info("Project %s restored by %s", project.no_project, current_user.email)

    _write_logs(db, [
        ProjectLog(
            project_id=project.id,
            action="restored",
            changed_by=current_user.id,
            metadata_={"no_project": project.no_project},
        )
    ])
    db.refresh(project)
    return project
