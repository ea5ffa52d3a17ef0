"""
Litigation case persistence and read model.

Writes go to the database in one transaction. When row-level security
rejects the write (SQLSTATE 42501) the batch is kept in the instance-local
store instead; any other database failure aborts the import.
"""
from __future__ import annotations

import enum
import hashlib
import uuid
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from casetrack.core.logger import logger
from casetrack.db.models import LitigationCase, Profile
from casetrack.db.schemas import (
    ArbitrationResponse,
    ArbitrationStats,
    CaseImportResponse,
    LitigationCaseRecord,
    LitigationStats,
)
from casetrack.services.case_import_service import ImportBatch
from casetrack.services.local_case_store import LocalCaseStore, is_local_id
from casetrack.services.remote_errors import classify_remote_error
from casetrack.utils.exceptions import (
    AuthenticationMissingError,
    CaseNotFoundError,
    ErrorCategory,
    RemoteFailureError,
)

HIGH_VALUE_THRESHOLD = 50_000_000  # 5 crore
UPCOMING_HEARINGS_LIMIT = 5
ARBITRATION_KEYWORD = "arbitration"

LOCAL_FETCH_WARNING = "Showing locally saved litigation cases. Unable to sync with the server."


class ImportState(str, enum.Enum):
    remote_inserted = "remote_inserted"
    stored_locally = "stored_locally"
    aborted = "aborted"


# ============================================================================
# Writes
# ============================================================================

def _bind_current_user(db: Session, user_id: str) -> None:
    """Expose the caller to row-level-security policies for this transaction."""
    bind = db.get_bind()
    if bind is not None and bind.dialect.name == "postgresql":
        db.execute(
            text("SELECT set_config('app.current_user_id', :uid, true)"),
            {"uid": user_id},
        )


def bulk_insert(
    db: Session,
    user: Optional[Profile],
    batch: ImportBatch,
    store: LocalCaseStore,
) -> CaseImportResponse:
    """
    Insert the whole batch for ``user`` or nothing.

    Permission-denied failures divert the batch to ``store``; the caller gets a
    structured outcome either way and decides how to present it.
    """
    if user is None:
        raise AuthenticationMissingError()

    user_id = str(user.id)
    rows = [LitigationCase(user_id=user.id, **case.model_dump()) for case in batch.cases]

    try:
        _bind_current_user(db, user_id)
        db.add_all(rows)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        category = classify_remote_error(e)
        if category is not ErrorCategory.authorization_denied:
            logger.error("Litigation import failed for user %s: %s", user_id, e)
            raise RemoteFailureError("Failed to import cases. Please try again.")

        logger.warning("Database denied litigation import for user %s, storing locally", user_id)
        try:
            stored = store.add(user_id, batch.cases)
        except OSError as store_error:
            logger.error("Local fallback failed for user %s: %s", user_id, store_error)
            raise RemoteFailureError("Failed to store cases locally")
        return CaseImportResponse(
            state=ImportState.stored_locally.value,
            message=(
                f"Stored {len(stored)} cases locally. They will remain available "
                "on this device until permissions are updated."
            ),
            parsed_rows=batch.parsed_rows,
            stored_locally=len(stored),
            skipped=batch.skipped,
            dropped_amounts=batch.dropped_amounts,
            warnings=batch.warnings,
            items=stored,
        )

    for row in rows:
        db.refresh(row)

    logger.info("Imported %s litigation cases for user %s", len(rows), user_id)
    return CaseImportResponse(
        state=ImportState.remote_inserted.value,
        message=f"Successfully imported {len(rows)} cases",
        parsed_rows=batch.parsed_rows,
        inserted=len(rows),
        skipped=batch.skipped,
        dropped_amounts=batch.dropped_amounts,
        warnings=batch.warnings,
        items=[LitigationCaseRecord.model_validate(row) for row in rows],
    )


def delete_case(db: Session, user: Profile, case_id: str, store: LocalCaseStore) -> None:
    user_id = str(user.id)
    if is_local_id(case_id):
        if not store.remove(user_id, case_id):
            raise CaseNotFoundError(case_id)
        logger.info("Deleted local litigation case %s for user %s", case_id, user_id)
        return

    try:
        row_id = uuid.UUID(str(case_id))
    except ValueError:
        raise CaseNotFoundError(case_id)

    try:
        _bind_current_user(db, user_id)
        row = (
            db.query(LitigationCase)
            .filter(LitigationCase.id == row_id, LitigationCase.user_id == user.id)
            .first()
        )
        if row is None:
            raise CaseNotFoundError(case_id)
        db.delete(row)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to delete litigation case %s: %s", case_id, e)
        raise RemoteFailureError("Failed to delete litigation case")

    logger.info("Deleted litigation case %s for user %s", case_id, user_id)


# ============================================================================
# Reads
# ============================================================================

def _created_key(record: LitigationCaseRecord) -> datetime:
    value = record.created_at
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def merge_cases(
    remote: Sequence[LitigationCaseRecord],
    local: Sequence[LitigationCaseRecord],
) -> List[LitigationCaseRecord]:
    """Remote then local, stably sorted newest first."""
    return sorted([*remote, *local], key=_created_key, reverse=True)


def fetch_remote_cases(db: Session, user_id: uuid.UUID) -> List[LitigationCaseRecord]:
    _bind_current_user(db, str(user_id))
    rows = (
        db.query(LitigationCase)
        .filter(LitigationCase.user_id == user_id)
        .order_by(LitigationCase.created_at.desc())
        .all()
    )
    return [LitigationCaseRecord.model_validate(row) for row in rows]


def list_cases(
    db: Session,
    user: Profile,
    store: LocalCaseStore,
) -> Tuple[List[LitigationCaseRecord], str, List[str]]:
    """Returns (records, source, warnings); source is "merged" or "local"."""
    user_id = str(user.id)
    local = store.get(user_id)
    try:
        remote = fetch_remote_cases(db, user.id)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to load litigation cases for user %s: %s", user_id, e)
        if local:
            return merge_cases([], local), "local", [LOCAL_FETCH_WARNING]
        raise RemoteFailureError("Failed to load litigation cases")

    return merge_cases(remote, local), "merged", []


def filter_cases(
    records: Sequence[LitigationCaseRecord],
    q: Optional[str] = None,
    status: Optional[str] = None,
) -> List[LitigationCaseRecord]:
    needle = (q or "").strip().lower()
    wanted = (status or "all").strip().lower()

    out: List[LitigationCaseRecord] = []
    for record in records:
        if needle and needle not in record.parties.lower() and needle not in record.forum.lower():
            continue
        if wanted != "all" and (record.status or "").lower() != wanted:
            continue
        out.append(record)
    return out


def compute_stats(records: Sequence[LitigationCaseRecord]) -> LitigationStats:
    by_status: Dict[str, int] = {}
    for record in records:
        by_status[record.status] = by_status.get(record.status, 0) + 1

    return LitigationStats(
        total=len(records),
        financial_exposure=sum(r.amount_involved or 0 for r in records),
        high_value=sum(1 for r in records if (r.amount_involved or 0) > HIGH_VALUE_THRESHOLD),
        with_next_hearing=sum(1 for r in records if r.next_hearing_date is not None),
        by_status=by_status,
    )


def cases_fingerprint(records: Sequence[LitigationCaseRecord]) -> str:
    """Digest that changes whenever a case is added, removed or edited."""
    digest = hashlib.sha256()
    for record in sorted(records, key=lambda r: r.id):
        digest.update(f"{record.id}|{record.updated_at.isoformat()}\n".encode("utf-8"))
    return digest.hexdigest()


# ============================================================================
# Arbitration view
# ============================================================================

def is_arbitration(record: LitigationCaseRecord) -> bool:
    return (
        ARBITRATION_KEYWORD in record.forum.lower()
        or ARBITRATION_KEYWORD in (record.particular or "").lower()
    )


def _matches_arbitration_query(record: LitigationCaseRecord, needle: str) -> bool:
    haystacks = (
        record.parties,
        record.forum,
        record.particular or "",
        record.treatment_resolution or "",
    )
    return any(needle in h.lower() for h in haystacks)


def _percent(part: int, whole: int) -> int:
    if whole == 0:
        return 0
    return round(part / whole * 100)


def arbitration_view(
    records: Sequence[LitigationCaseRecord],
    q: Optional[str] = None,
    status: Optional[str] = None,
    today: Optional[date] = None,
) -> ArbitrationResponse:
    today = today or date.today()
    arbitration = [r for r in records if is_arbitration(r)]

    needle = (q or "").strip().lower()
    wanted = (status or "all").strip().lower()
    items = [
        r for r in arbitration
        if (not needle or _matches_arbitration_query(r, needle))
        and (wanted == "all" or (r.status or "").lower() == wanted)
    ]

    upcoming = sorted(
        (r for r in arbitration if r.next_hearing_date and r.next_hearing_date >= today),
        key=lambda r: r.next_hearing_date,
    )

    total = len(arbitration)
    active = sum(1 for r in arbitration if (r.status or "").lower() == "active")
    closed = sum(1 for r in arbitration if (r.status or "").lower() == "closed")

    breakdown: Dict[str, int] = {}
    for r in arbitration:
        key = (r.status or "unknown").lower()
        breakdown[key] = breakdown.get(key, 0) + 1

    stats = ArbitrationStats(
        total=total,
        active=active,
        closed=closed,
        upcoming_hearings=len(upcoming),
        total_exposure=sum(r.amount_involved or 0 for r in arbitration),
        closure_rate=_percent(closed, total),
        active_rate=_percent(active, total),
    )
    return ArbitrationResponse(
        items=items,
        stats=stats,
        upcoming_hearings=upcoming[:UPCOMING_HEARINGS_LIMIT],
        status_breakdown=breakdown,
    )
