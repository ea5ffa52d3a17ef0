"""
Pydantic validation schemas
"""
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator

MAX_AMOUNT_INVOLVED = 999_999_999_999  # 12 digits

PARTIES_MAX_LENGTH = 500
FORUM_MAX_LENGTH = 200
PARTICULAR_MAX_LENGTH = 1000
TREATMENT_MAX_LENGTH = 2000
REMARKS_MAX_LENGTH = 2000

# ============================================================================
# Litigation Case Schemas
# ============================================================================

class LitigationCaseCreate(BaseModel):
    """Insertion payload produced by the bulk import pipeline"""
    sr_no: Optional[int] = None
    parties: str = Field(..., min_length=1, max_length=PARTIES_MAX_LENGTH)
    forum: str = Field(..., min_length=1, max_length=FORUM_MAX_LENGTH)
    particular: Optional[str] = Field(None, max_length=PARTICULAR_MAX_LENGTH)
    start_date: Optional[date] = None
    last_hearing_date: Optional[date] = None
    next_hearing_date: Optional[date] = None
    amount_involved: Optional[float] = Field(None, ge=0, le=MAX_AMOUNT_INVOLVED)
    treatment_resolution: Optional[str] = Field(None, max_length=TREATMENT_MAX_LENGTH)
    remarks: Optional[str] = Field(None, max_length=REMARKS_MAX_LENGTH)
    status: str = "Active"


class LitigationCaseRecord(LitigationCaseCreate):
    """A stored case, remote or local"""
    id: str
    user_id: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("id", "user_id", mode="before")
    @classmethod
    def stringify_ids(cls, v):
        if isinstance(v, UUID):
            return str(v)
        return v

    @field_validator("created_at", "updated_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        # Database timestamps are naive UTC; local records carry an offset
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def is_local(self) -> bool:
        return self.id.startswith("local-")


class LitigationCaseListResponse(BaseModel):
    items: List[LitigationCaseRecord]
    total: int
    source: str = "merged"
    warnings: List[str] = []


class DroppedAmount(BaseModel):
    row: int
    value: float


class CaseImportResponse(BaseModel):
    state: str
    message: str
    parsed_rows: int = 0
    inserted: int = 0
    stored_locally: int = 0
    skipped: int = 0
    dropped_amounts: List[DroppedAmount] = []
    warnings: List[str] = []
    items: List[LitigationCaseRecord] = []


class LitigationStats(BaseModel):
    total: int
    financial_exposure: float
    high_value: int
    with_next_hearing: int
    by_status: Dict[str, int]


class ArbitrationStats(BaseModel):
    total: int
    active: int
    closed: int
    upcoming_hearings: int
    total_exposure: float
    closure_rate: int
    active_rate: int


class ArbitrationResponse(BaseModel):
    items: List[LitigationCaseRecord]
    stats: ArbitrationStats
    upcoming_hearings: List[LitigationCaseRecord]
    status_breakdown: Dict[str, int]
    warnings: List[str] = []

# ============================================================================
# Profile / Admin Schemas
# ============================================================================

class ProfileOut(BaseModel):
    id: UUID
    email: str
    full_name: Optional[str] = None
    role: str
    is_enabled: bool
    is_admin: bool = False
    permissions: List[str] = []
    created_at: datetime


class UserAccessUpdate(BaseModel):
    """Body of the update-user-access call"""
    userId: UUID
    isEnabled: StrictBool


class PermissionGrant(BaseModel):
    permission: str

    class Config:
        json_schema_extra = {
            "example": {"permission": "upload_excel_litigation"}
        }


class AdminCheckResponse(BaseModel):
    is_admin: bool


class ActionResult(BaseModel):
    success: bool
    detail: Optional[Dict[str, Any]] = None
