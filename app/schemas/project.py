from typing import List, Optional, Union
from pydantic import BaseModel, Field, field_validator

from app.core.progress import (
    PROGRESS_MAPPING,
    VALID_CIRCULIR_STATUS,
    VALID_REGIONALS,
    normalize_circulir_status,
    normalize_progress,
    normalize_regional,
)

Number = Union[int, float]


def _check_regional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = normalize_regional(value)
    if value not in VALID_REGIONALS:
        raise ValueError(f"regional must be one of: {', '.join(VALID_REGIONALS)}")
    return value


def _check_progress(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if not value.strip():
        return ""
    value = normalize_progress(value)
    if value not in PROGRESS_MAPPING:
        raise ValueError(f"unknown progress: {value}")
    return value


def _check_circulir_status(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    value = normalize_circulir_status(value)
    if value not in VALID_CIRCULIR_STATUS:
        raise ValueError(f"circulir_status must be one of: {', '.join(VALID_CIRCULIR_STATUS)}")
    return value


# Fields a user may edit; status/uic/persentase/occupancy/capex are derived
class ProjectBase(BaseModel):
    regional: Optional[str] = None
    no_project: Optional[str] = Field(default=None, max_length=20)
    no_spk: Optional[str] = None
    pop: Optional[str] = None
    nama_project: Optional[str] = None
    mitra: Optional[str] = None
    port: Optional[Number] = None
    jumlah_odp: Optional[Number] = None
    port_terisi: Optional[Number] = None
    progress: Optional[str] = None
    circulir_status: Optional[str] = None
    toc: Optional[Number] = None
    start_pekerjaan: Optional[str] = None
    target_active: Optional[str] = None
    tanggal_active: Optional[str] = None
    aging_toc: Optional[str] = None
    bep: Optional[Number] = None
    target_bep: Optional[str] = None
    revenue: Optional[Number] = None
    remark: Optional[str] = None
    issue: Optional[str] = None
    next_action: Optional[str] = None

    @field_validator("regional")
    @classmethod
    def check_regional(cls, value: Optional[str]) -> Optional[str]:
        return _check_regional(value)

    @field_validator("progress")
    @classmethod
    def check_progress(cls, value: Optional[str]) -> Optional[str]:
        return _check_progress(value)

    @field_validator("circulir_status")
    @classmethod
    def check_circulir_status(cls, value: Optional[str]) -> Optional[str]:
        return _check_circulir_status(value)


class ProjectCreate(ProjectBase):
    regional: str
    no_project: str = Field(min_length=1, max_length=20)
    pop: str = Field(min_length=1)
    nama_project: str = Field(min_length=1)


class ProjectUpdate(ProjectBase):
    pass


class ArchiveRequest(BaseModel):
    reason: Optional[str] = None


class ImportResponse(BaseModel):
    imported: int
    sheet: str
    message: str


class ImportErrorResponse(BaseModel):
    message: str
    code: str
    errors: List[str] = []
    error_count: int = 0
