"""
Project Import Pipeline

Bulk-creates projects from an uploaded spreadsheet:

1. read the workbook and pick the data sheet (``spreadsheet.discover_sheet``),
2. normalize and validate every row, collecting *all* errors,
3. derive status/uic/persentase, occupancy and capex,
4. insert the whole batch in one transaction.

Any row error rejects the entire file; nothing is ever partially committed.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.core.config import settings
from app.core.exceptions import (
    EmptyImportError,
    ImportStructureError,
    ImportSubmissionError,
    ImportValidationError,
)
from app.core.permissions import division_conflict, division_conflict_message
from app.core.progress import (
    PROGRESS_MAPPING,
    VALID_CIRCULIR_STATUS,
    VALID_PROGRESS,
    VALID_REGIONALS,
    derive_progress_fields,
    normalize_circulir_status,
    normalize_progress,
    normalize_regional,
    suggest_progress,
)
from app.models.project import Project
from app.models.user import User
from app.services.spreadsheet import discover_sheet, read_workbook
from app.utils.coercion import (
    coerce_date,
    format_number,
    is_blank,
    number_or_zero,
    text_or_none,
    to_number,
)

logger = logging.getLogger(__name__)

NO_PROJECT_MAX_LENGTH = 20

REQUIRED_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("regional", "Regional"),
    ("no_project", "No Project"),
    ("nama_project", "Nama Project"),
    ("pop", "POP"),
)

NUMERIC_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("port", "Port harus berupa angka"),
    ("jumlah_odp", "Jumlah ODP harus berupa angka"),
    ("port_terisi", "Port Terisi harus berupa angka"),
    ("toc", "TOC harus berupa angka (hari)"),
    ("bep", "BEP harus berupa angka (bulan)"),
)

DATE_FIELDS = ("start_pekerjaan", "target_active", "tanggal_active", "aging_toc", "target_bep")

TEXT_FIELDS = ("no_spk", "mitra", "remark", "issue", "next_action")


@dataclass
class ImportResult:
    imported: int
    sheet: str
    message: str


def _cell_text(value: Any) -> str:
    """Spreadsheet cell as trimmed text; integral floats lose their ``.0``."""
    if value is None:
        return ""
    if isinstance(value, float):
        return format_number(value)
    return str(value).strip()


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def occupancy_for(port: Any, port_terisi: Any) -> str:
    """Filled ports as a whole percentage of capacity; ``"0"`` without capacity."""
    port = number_or_zero(port)
    if port <= 0:
        return "0"
    ratio = number_or_zero(port_terisi) / port * 100
    if not math.isfinite(ratio):
        return "0"
    return str(_round_half_up(ratio))


def capex_for(revenue: Any) -> str:
    return format_number(number_or_zero(revenue) * 0.6)


def normalize_row(
    raw: Mapping[str, Any], row_number: int, division: Optional[str]
) -> Tuple[Dict[str, Any], List[str]]:
    """
    Normalize one spreadsheet row and validate it.

    Returns the row with normalized ``regional``, ``progress`` and
    ``circulir_status`` plus every validation error found for it.
    """
    row = dict(raw)
    errors: List[str] = []
    prefix = f"Baris {row_number}"

    for field_name, label in REQUIRED_FIELDS:
        if is_blank(row.get(field_name)):
            errors.append(f"{prefix}: {label} wajib diisi")

    if not is_blank(row.get("no_project")) and len(_cell_text(row["no_project"])) > NO_PROJECT_MAX_LENGTH:
        errors.append(f"{prefix}: No Project maksimal {NO_PROJECT_MAX_LENGTH} karakter")

    if not is_blank(row.get("regional")):
        regional = normalize_regional(str(row["regional"]))
        logger.debug("%s: regional %r -> %r", prefix, row["regional"], regional)
        if regional not in VALID_REGIONALS:
            errors.append(
                f'{prefix}: Regional tidak valid "{regional}". '
                f"Harus salah satu dari: {', '.join(VALID_REGIONALS)}"
            )
        else:
            row["regional"] = regional

    raw_progress = row.get("progress")
    if not is_blank(raw_progress) and str(raw_progress).strip():
        progress = normalize_progress(str(raw_progress))
        logger.debug("%s: progress %r -> %r", prefix, raw_progress, progress)
        if progress not in PROGRESS_MAPPING:
            suggestion = suggest_progress(progress)
            if suggestion:
                errors.append(
                    f'{prefix}: Progress tidak valid "{progress}". Mungkin maksud Anda: "{suggestion}"?'
                )
            else:
                errors.append(
                    f'{prefix}: Progress tidak valid "{progress}". '
                    f"Gunakan salah satu: {', '.join(VALID_PROGRESS)} "
                    "(atau alias: HOLD, PENDING, CANCEL, RFS, CONSTRUCTION, dll)"
                )
        else:
            row["progress"] = progress
    else:
        row["progress"] = ""

    if not is_blank(row.get("circulir_status")):
        circulir_status = normalize_circulir_status(str(row["circulir_status"]))
        if circulir_status not in VALID_CIRCULIR_STATUS:
            errors.append(
                f'{prefix}: Circulir Status tidak valid "{circulir_status}". '
                f"Harus salah satu dari: {', '.join(VALID_CIRCULIR_STATUS)}"
            )
        else:
            row["circulir_status"] = circulir_status

    for field_name, message in NUMERIC_FIELDS:
        value = row.get(field_name)
        if not is_blank(value) and to_number(value) is None:
            errors.append(f"{prefix}: {message}")

    uic = derive_progress_fields(row["progress"]).uic
    if division_conflict(division, uic):
        errors.append(f"{prefix}: {division_conflict_message(division, uic)}")

    return row, errors


def build_record(row: Mapping[str, Any], division: Optional[str], timestamp: str) -> Dict[str, Any]:
    """Map a normalized, valid row to the column values stored on ``Project``."""
    derived = derive_progress_fields(row.get("progress"))

    port = number_or_zero(row.get("port"))
    port_terisi = number_or_zero(row.get("port_terisi"))
    revenue = number_or_zero(row.get("revenue"))

    record: Dict[str, Any] = {
        "regional": _cell_text(row.get("regional")).upper(),
        "no_project": _cell_text(row.get("no_project")),
        "pop": _cell_text(row.get("pop")),
        "nama_project": _cell_text(row.get("nama_project")),
        "port": format_number(port),
        "jumlah_odp": format_number(number_or_zero(row.get("jumlah_odp"))),
        "port_terisi": format_number(port_terisi),
        "occupancy": occupancy_for(port, port_terisi),
        "progress": row.get("progress") or "",
        "toc": format_number(number_or_zero(row.get("toc"))),
        "bep": format_number(number_or_zero(row.get("bep"))),
        "revenue": format_number(revenue),
        "capex": capex_for(revenue),
        "status": derived.status,
        "uic": derived.uic,
        "persentase": str(derived.percentage),
        "update_progress": timestamp,
        "circulir_status": (text_or_none(row.get("circulir_status")) or "").lower() or None,
        "division": division,
    }
    for field_name in TEXT_FIELDS:
        record[field_name] = text_or_none(row.get(field_name))
    for field_name in DATE_FIELDS:
        record[field_name] = coerce_date(row.get(field_name))
    return record


def prepare_import(
    rows: Sequence[Mapping[str, Any]],
    division: Optional[str],
    max_rows: Optional[int] = None,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """
    Validate a sheet's rows and build the insert batch.

    Raises:
        ImportStructureError: more rows than ``max_rows``
        ImportValidationError: at least one row is invalid (carries every error)
        EmptyImportError: no row survived filtering
    """
    limit = settings.IMPORT_MAX_ROWS if max_rows is None else max_rows
    if len(rows) > limit:
        raise ImportStructureError(
            f"Jumlah baris ({len(rows)}) melebihi batas maksimal {limit} baris per import"
        )

    timestamp = (now or datetime.now(timezone.utc)).isoformat()
    errors: List[str] = []
    records: List[Dict[str, Any]] = []

    # Header is sheet row 1, so data starts at row 2
    for index, raw in enumerate(rows):
        row, row_errors = normalize_row(raw, index + 2, division)
        errors.extend(row_errors)
        record = build_record(row, division, timestamp)
        if not record["no_project"] and not record["nama_project"]:
            continue
        records.append(record)

    if errors:
        logger.info("Import rejected: %d validation error(s) in %d row(s)", len(errors), len(rows))
        raise ImportValidationError(errors, preview=settings.IMPORT_ERROR_PREVIEW)

    if not records:
        raise EmptyImportError()

    return records


def submit_batch(db: Session, records: Sequence[Mapping[str, Any]], created_by: Optional[str] = None) -> List[Project]:
    """Insert every record in one transaction; any store error rolls back all of them."""
    projects = [Project(**record, created_by=created_by) for record in records]
    db.add_all(projects)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        store_message = str(getattr(e, "orig", None) or e)
        logger.warning("Bulk insert of %d project(s) failed: %s", len(projects), store_message)
        raise ImportSubmissionError(store_message) from e
    return projects


def import_projects(db: Session, content: bytes, filename: Optional[str], user: User) -> ImportResult:
    """Run the full pipeline for one uploaded file on behalf of ``user``."""
    sheets = read_workbook(content, filename)
    sheet_name = discover_sheet([sheet.name for sheet in sheets])
    sheet = next(sheet for sheet in sheets if sheet.name == sheet_name)
    logger.info(
        "Importing sheet %r from %s (available: %s) for %s",
        sheet.name, filename, [s.name for s in sheets], user.email,
    )

    records = prepare_import(sheet.rows, user.division)
    submit_batch(db, records, created_by=user.id)

    logger.info("Imported %d project(s) from %s", len(records), filename)
    return ImportResult(
        imported=len(records),
        sheet=sheet.name,
        message=f"Berhasil import {len(records)} project ke database",
    )
