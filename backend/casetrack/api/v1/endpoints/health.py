"""
Health and readiness checks – verify the database and the local case store.
"""
import os
import tempfile
from pathlib import Path

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from casetrack.core.config import settings
from casetrack.core.logger import logger
from casetrack.db.database import SessionLocal
from casetrack.services.spreadsheet_reader import PREFERRED_SHEET

router = APIRouter()


def _check_database() -> tuple[str, str]:
    """Returns (status, detail). Status is 'ok' or 'error'."""
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        return "ok", f"{db.get_bind().dialect.name} reachable"
    except SQLAlchemyError as e:
        logger.exception("Database check failed")
        return "error", f"Database: {str(e)}"
    finally:
        db.close()


def _check_local_store() -> tuple[str, str]:
    """Returns (status, detail). The fallback store must be writable."""
    base = Path(settings.LOCAL_CASE_STORE_DIR)
    try:
        base.mkdir(parents=True, exist_ok=True)
        fd, probe = tempfile.mkstemp(dir=base, suffix=".probe")
        os.close(fd)
        os.unlink(probe)
        return "ok", f"'{base}' writable"
    except OSError as e:
        return "error", f"Local store: {str(e)}"


@router.get("/ready")
def readiness():
    """
    Check if the database and local fallback store are usable.
    """
    db_status, db_detail = _check_database()
    store_status, store_detail = _check_local_store()

    healthy = db_status == "ok" and store_status == "ok"
    return {
        "status": "healthy" if healthy else "degraded",
        "database": {"status": db_status, "detail": db_detail},
        "localStore": {"status": store_status, "detail": store_detail},
    }


@router.get("/import")
def import_limits():
    """
    Limits the bulk import enforces, so clients can check files up front.
    """
    return {
        "maxFileBytes": settings.CASE_IMPORT_MAX_FILE_BYTES,
        "maxRows": settings.CASE_IMPORT_MAX_ROWS,
        "allowedExtensions": list(settings.case_import_extensions),
        "preferredSheet": PREFERRED_SHEET,
    }
