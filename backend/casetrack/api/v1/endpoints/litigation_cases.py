"""
Litigation register endpoints

Bulk spreadsheet import, the merged (database + local) case list, stats,
deletion and a change stream clients use to know when to refetch.
"""
import asyncio
import json
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile
from sqlalchemy.orm import Session
from sse_starlette.sse import EventSourceResponse
from starlette.concurrency import run_in_threadpool

from casetrack.api.v1.deps import (
    PERMISSION_ACTIONS,
    get_current_user,
    get_local_store,
    get_optional_user,
    has_permission,
    require_permission,
)
from casetrack.core.config import settings
from casetrack.core.logger import logger
from casetrack.db.database import SessionLocal, get_db
from casetrack.db.models import Permission, Profile
from casetrack.db.schemas import (
    ActionResult,
    CaseImportResponse,
    LitigationCaseListResponse,
    LitigationStats,
)
from casetrack.services.case_import_service import parse_case_upload
from casetrack.services.litigation_case_service import (
    bulk_insert,
    cases_fingerprint,
    compute_stats,
    delete_case,
    filter_cases,
    list_cases,
)
from casetrack.services.local_case_store import LocalCaseStore
from casetrack.utils.exceptions import CaseTrackError, PermissionDeniedError

router = APIRouter()


@router.get("/", response_model=LitigationCaseListResponse)
def get_litigation_cases(
    q: Optional[str] = Query(None, description="Search parties or forum"),
    status: Optional[str] = Query("all", description="Status filter, 'all' for every status"),
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    store: LocalCaseStore = Depends(get_local_store),
):
    """
    Merged case list: database records first, then locally stored ones,
    newest first.
    """
    records, source, warnings = list_cases(db, current_user, store)
    items = filter_cases(records, q=q, status=status)
    return LitigationCaseListResponse(items=items, total=len(items), source=source, warnings=warnings)


@router.get("/stats", response_model=LitigationStats)
def get_litigation_stats(
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    store: LocalCaseStore = Depends(get_local_store),
):
    records, _, _ = list_cases(db, current_user, store)
    return compute_stats(records)


@router.post("/import", response_model=CaseImportResponse)
async def import_litigation_cases(
    file: UploadFile = File(...),
    current_user: Optional[Profile] = Depends(get_optional_user),
    db: Session = Depends(get_db),
    store: LocalCaseStore = Depends(get_local_store),
):
    """
    Import an .xlsx / .xls / .csv litigation register.

    The file is parsed and validated before anything is written. The batch is
    inserted in one transaction; if the database refuses it on permission
    grounds it is kept in the local store instead.
    """
    # One byte past the limit is enough to reject an oversized file
    content = await file.read(settings.CASE_IMPORT_MAX_FILE_BYTES + 1)
    batch = parse_case_upload(file.filename or "", content)

    if current_user is not None and not has_permission(current_user, Permission.upload_excel_litigation):
        raise PermissionDeniedError(PERMISSION_ACTIONS[Permission.upload_excel_litigation])

    return await run_in_threadpool(bulk_insert, db, current_user, batch, store)


@router.delete("/{case_id}", response_model=ActionResult)
def delete_litigation_case(
    case_id: str,
    current_user: Profile = Depends(require_permission(Permission.delete_dispute)),
    db: Session = Depends(get_db),
    store: LocalCaseStore = Depends(get_local_store),
):
    delete_case(db, current_user, case_id, store)
    return ActionResult(success=True, detail={"id": case_id})


def _load_fingerprint(current_user: Profile, store: LocalCaseStore) -> str:
    db = SessionLocal()
    try:
        records, _, _ = list_cases(db, current_user, store)
        return cases_fingerprint(records)
    finally:
        db.close()


async def case_change_events(request: Request, current_user: Profile, store: LocalCaseStore):
    """Poll the user's case list and emit an event per round until the client leaves."""
    last_fingerprint = None

    while True:
        if await request.is_disconnected():
            logger.info("Case change stream closed for user %s", current_user.id)
            break

        try:
            fingerprint = await run_in_threadpool(_load_fingerprint, current_user, store)
            if last_fingerprint is not None and fingerprint != last_fingerprint:
                yield {
                    "event": "cases_changed",
                    "data": json.dumps({"timestamp": datetime.now().isoformat()}),
                }
            else:
                yield {
                    "event": "ping",
                    "data": json.dumps({"timestamp": datetime.now().isoformat()}),
                }
            last_fingerprint = fingerprint
        except CaseTrackError as e:
            logger.warning("Case change stream error for user %s: %s", current_user.id, e.detail)
            yield {
                "event": "error",
                "data": json.dumps({"message": e.detail}),
            }

        await asyncio.sleep(settings.CASE_CHANGES_POLL_SECONDS)


@router.get("/changes")
async def subscribe_to_case_changes(
    request: Request,
    current_user: Profile = Depends(get_current_user),
    store: LocalCaseStore = Depends(get_local_store),
):
    """
    Server-Sent Events stream

    Events:
    - cases_changed: the user's case list changed, refetch it
    - ping: keepalive
    - error: the list could not be loaded this round
    """
    return EventSourceResponse(case_change_events(request, current_user, store))
