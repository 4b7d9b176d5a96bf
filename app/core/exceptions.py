"""
Custom Exceptions for FTTH Dash
===============================

Raised by the service layer and rendered as JSON by the handler registered in
``app.main``. Endpoints keep using ``HTTPException`` for plain request errors
(missing records, bad credentials).

Usage:
    from app.core.exceptions import ImportValidationError

    if errors:
        raise ImportValidationError(errors)
"""

from typing import Any, Dict, List, Optional


class FtthDashError(Exception):
    """Base exception for all FTTH Dash errors"""

    status_code = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Project Import Errors
# ============================================

class ImportStructureError(FtthDashError):
    """The uploaded file cannot be read or has no usable sheet"""

    status_code = 400

    def __init__(self, message: str = "File tidak dapat dibaca"):
        super().__init__(message, code="IMPORT_UNREADABLE")


class EmptyImportError(FtthDashError):
    """Nothing left to insert after row filtering"""

    status_code = 400

    def __init__(self):
        super().__init__(
            "Data import tidak valid atau kosong. Pastikan format kolom sudah benar.",
            code="IMPORT_EMPTY",
        )


class ImportValidationError(FtthDashError):
    """One or more rows failed validation; the whole import is rejected"""

    status_code = 422

    def __init__(self, errors: List[str], preview: int = 5):
        self.errors = list(errors)
        lines = self.errors[:preview]
        message = "Validasi gagal:\n" + "\n".join(lines)
        remaining = len(self.errors) - preview
        if remaining > 0:
            message += f"\n... dan {remaining} error lainnya"
        super().__init__(
            message,
            code="IMPORT_INVALID",
            details={"errors": lines, "error_count": len(self.errors)},
        )


class ImportSubmissionError(FtthDashError):
    """The store rejected the validated batch"""

    status_code = 409

    def __init__(self, store_message: str):
        self.store_message = store_message
        super().__init__(f"Gagal menyimpan data: {store_message}", code="IMPORT_REJECTED")


# ============================================
# Authorization Errors
# ============================================

class DivisionPermissionError(FtthDashError):
    """The user's division may not handle this workflow stage"""

    status_code = 403

    def __init__(self, message: str):
        super().__init__(message, code="DIVISION_FORBIDDEN")
