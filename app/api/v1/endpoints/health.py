from fastapi import APIRouter, Depends
from typing import Any
from sqlmodel import Session
from app.core.config import settings
from app.db.session import get_db

router = APIRouter()

@router.get("", response_model=dict[str, Any])
def health_check(db: Session = Depends(get_db)) -> Any:
    """
    Health check endpoint. Also pings the database.
    """
    db.connection().exec_driver_sql("SELECT 1")
    return {"status": "ok", "version": settings.VERSION}
