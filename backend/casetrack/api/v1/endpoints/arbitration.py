"""
Arbitration view over the litigation register
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from casetrack.api.v1.deps import get_current_user, get_local_store
from casetrack.db.database import get_db
from casetrack.db.models import Profile
from casetrack.db.schemas import ArbitrationResponse
from casetrack.services.litigation_case_service import arbitration_view, list_cases
from casetrack.services.local_case_store import LocalCaseStore

router = APIRouter()


@router.get("/", response_model=ArbitrationResponse)
def get_arbitration_cases(
    q: Optional[str] = Query(None, description="Search parties, forum, particular or treatment"),
    status: Optional[str] = Query("all"),
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
    store: LocalCaseStore = Depends(get_local_store),
):
    """Cases whose forum or particular mentions arbitration, with summary stats."""
    records, _, warnings = list_cases(db, current_user, store)
    view = arbitration_view(records, q=q, status=status)
    view.warnings = warnings
    return view
