"""
Litigation bulk import: spreadsheet rows to validated case payloads.

Pipeline (every step is a pure function of its input):
  1. gate the file name / size
  2-3. read the preferred sheet into header-keyed rows (spreadsheet_reader)
  4. gate the row count
  5. strip formula prefixes from every string cell
  6. resolve each canonical field from its header aliases
  7. coerce dates / numbers / strings
  8. trim + truncate text fields
  9. drop rows without parties or forum

Nothing here touches the database; persistence is litigation_case_service.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from dateutil import parser as date_parser
from openpyxl.utils.datetime import from_excel

from casetrack.core.config import settings
from casetrack.core.logger import logger
from casetrack.db.schemas import (
    DroppedAmount,
    LitigationCaseCreate,
    FORUM_MAX_LENGTH,
    MAX_AMOUNT_INVOLVED,
    PARTICULAR_MAX_LENGTH,
    PARTIES_MAX_LENGTH,
    REMARKS_MAX_LENGTH,
    TREATMENT_MAX_LENGTH,
)
from casetrack.services.spreadsheet_reader import read_spreadsheet
from casetrack.utils.exceptions import InputRejectedError

# ============================================================================
# Static configuration
# ============================================================================

FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "sr_no": ("Sr. No.", "Sr No", "SrNo", "Sr.No.", "Serial No"),
    "parties": ("Parties", "Party", "parties"),
    "forum": ("Forum", "forum", "Court"),
    "particular": ("Particular", "particular", "Particulars", "Details"),
    "treatment_resolution": (
        "Treatment undertaken Resolution",
        "Treatment",
        "Resolution",
        "Treatment undertaken",
        "treatment_resolution",
    ),
    "remarks": ("Remarks", "remarks", "Remark", "Notes"),
    "start_date": ("Start Date", "StartDate", "start_date", "Date of Filing"),
    "last_hearing_date": (
        "Last Date of Hearing",
        "Last Hearing Date",
        "LastHearingDate",
        "last_hearing_date",
        "Last Hearing",
    ),
    "next_hearing_date": (
        "Next Date",
        "NextDate",
        "next_hearing_date",
        "Next Hearing Date",
        "Next Hearing",
    ),
    "amount_involved": (
        "Amount involved",
        "Amount Involved",
        "AmountInvolved",
        "amount_involved",
        "Amount",
    ),
}

TEXT_LIMITS: Dict[str, int] = {
    "parties": PARTIES_MAX_LENGTH,
    "forum": FORUM_MAX_LENGTH,
    "particular": PARTICULAR_MAX_LENGTH,
    "treatment_resolution": TREATMENT_MAX_LENGTH,
    "remarks": REMARKS_MAX_LENGTH,
}
REQUIRED_TEXT_FIELDS = ("parties", "forum")
DATE_FIELDS = ("start_date", "last_hearing_date", "next_hearing_date")
DEFAULT_STATUS = "Active"

# Largest serial Excel can render (9999-12-31)
MAX_EXCEL_SERIAL = 2_958_465
SR_NO_MAX = 2**31 - 1

FORMULA_PREFIX_RE = re.compile(r"^[=+\-@]")
DD_MM_YYYY_RE = re.compile(r"^([0-3]?\d)[-/](0?[1-9]|1[0-2])[-/](\d{4})$")
# Currency markers are removed before the digit filter so "Rs. 5,000" is not read as .5000
CURRENCY_PREFIX_RE = re.compile(r"^\s*(?:rs\.?|inr|\u20b9)\s*", re.IGNORECASE)
NUMBER_NOISE_RE = re.compile(r"[^0-9.\-]")
LEADING_FLOAT_RE = re.compile(r"^-?(?:\d+(?:\.\d*)?|\.\d+)")

# Two unrelated defaults: a component missing from the input shows up as a difference
_PROBE_DEFAULT_A = datetime(2000, 1, 1)
_PROBE_DEFAULT_B = datetime(2001, 2, 2)


# ============================================================================
# Result
# ============================================================================

@dataclass
class ImportBatch:
    filename: str
    parsed_rows: int
    cases: List[LitigationCaseCreate] = field(default_factory=list)
    skipped_rows: List[int] = field(default_factory=list)
    dropped_amounts: List[DroppedAmount] = field(default_factory=list)

    @property
    def skipped(self) -> int:
        return len(self.skipped_rows)

    @property
    def warnings(self) -> List[str]:
        out: List[str] = []
        if self.skipped_rows:
            out.append(f"{self.skipped} rows skipped due to missing required fields")
        for dropped in self.dropped_amounts:
            out.append(
                f"Row {dropped.row}: amount {dropped.value:g} is outside the accepted range and was not imported"
            )
        return out


# ============================================================================
# Step 1: upload gate
# ============================================================================

def validate_upload(
    filename: str,
    size: int,
    max_bytes: Optional[int] = None,
    allowed_extensions: Optional[Sequence[str]] = None,
) -> None:
    max_bytes = settings.CASE_IMPORT_MAX_FILE_BYTES if max_bytes is None else max_bytes
    allowed = tuple(allowed_extensions or settings.case_import_extensions)

    name = (filename or "").strip().lower()
    if not name.endswith(allowed):
        raise InputRejectedError(
            "Unsupported file type. Please upload an Excel or CSV file.",
            status_code=415,
        )

    if size > max_bytes:
        limit_mb = max_bytes / (1024 * 1024)
        raise InputRejectedError(
            f"File too large. Maximum size allowed is {limit_mb:g}MB.",
            status_code=413,
        )


# ============================================================================
# Steps 5-7: cell level helpers
# ============================================================================

def sanitize_value(value: Any) -> Any:
    """Drop one leading formula character (=, +, -, @) from string cells, then trim."""
    if isinstance(value, str):
        return FORMULA_PREFIX_RE.sub("", value, count=1).strip()
    return value


def sanitize_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: sanitize_value(value) for key, value in row.items()}


def resolve_field(row: Mapping[str, Any], aliases: Iterable[str]) -> Any:
    """
    First alias (case-insensitive, trimmed) whose cell holds a non-empty value.
    Returns None when no alias matches.
    """
    keyed = [(str(key).strip().lower(), value) for key, value in row.items()]
    for alias in aliases:
        target = alias.strip().lower()
        for key, value in keyed:
            if key != target:
                continue
            if value is not None and value != "":
                return value
            break
    return None


def coerce_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def coerce_number(value: Any) -> Optional[float]:
    if _is_number(value):
        return float(value) if math.isfinite(value) else None

    if isinstance(value, str):
        cleaned = NUMBER_NOISE_RE.sub("", CURRENCY_PREFIX_RE.sub("", value))
        match = LEADING_FLOAT_RE.match(cleaned)
        if not match:
            return None
        number = float(match.group(0))
        return number if math.isfinite(number) else None

    return None


def _iso(year: int, month: int, day: int) -> Optional[str]:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def _parse_date_text(text: str) -> Optional[str]:
    m = DD_MM_YYYY_RE.match(text)
    if m:
        day, month, year = (int(part) for part in m.groups())
        return _iso(year, month, day)

    try:
        first = date_parser.parse(text, default=_PROBE_DEFAULT_A)
        second = date_parser.parse(text, default=_PROBE_DEFAULT_B)
    except (ValueError, OverflowError):
        return None

    if first.date() != second.date():
        # day, month or year came from the default, not from the cell
        return None
    return first.date().isoformat()


def coerce_date(value: Any) -> Optional[str]:
    """Normalize a cell to an ISO calendar date, or None when it is not one."""
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()

    if _is_number(value):
        if not math.isfinite(value) or value < 0 or value > MAX_EXCEL_SERIAL:
            return None
        try:
            converted = from_excel(value)
        except (OverflowError, ValueError):
            return None
        # Serials below 1 carry no day, only a time of day
        if not isinstance(converted, datetime):
            return None
        return converted.date().isoformat()

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        return _parse_date_text(text)

    return None


# ============================================================================
# Step 8: assembly
# ============================================================================

def _clip(value: Any, limit: int) -> str:
    return coerce_string(value).strip()[:limit].strip()


def _sr_no(raw: Any, row_number: int) -> int:
    number = coerce_number(raw) if raw is not None else None
    if number is None or abs(number) > SR_NO_MAX:
        return row_number
    return int(number)


def build_case_fields(row: Mapping[str, Any], row_number: int) -> Tuple[Dict[str, Any], Optional[float]]:
    """
    Assemble the insert payload for one sanitized row.
    Returns (fields, dropped_amount); dropped_amount is the out-of-range amount, if any.
    """
    fields: Dict[str, Any] = {
        "sr_no": _sr_no(resolve_field(row, FIELD_ALIASES["sr_no"]), row_number),
        "status": DEFAULT_STATUS,
    }

    for name, limit in TEXT_LIMITS.items():
        text = _clip(resolve_field(row, FIELD_ALIASES[name]), limit)
        if name in REQUIRED_TEXT_FIELDS:
            fields[name] = text
        else:
            fields[name] = text or None

    for name in DATE_FIELDS:
        raw = resolve_field(row, FIELD_ALIASES[name])
        parsed = coerce_date(raw)
        if raw is not None and parsed is None:
            logger.debug("Row %s: unparseable %s %r", row_number, name, raw)
        fields[name] = parsed

    dropped: Optional[float] = None
    amount = coerce_number(resolve_field(row, FIELD_ALIASES["amount_involved"]))
    fields["amount_involved"] = None
    if amount is not None:
        if 0 <= amount <= MAX_AMOUNT_INVOLVED:
            fields["amount_involved"] = amount
        else:
            logger.warning("Amount out of range for row %s: %s", row_number, amount)
            dropped = amount

    return fields, dropped


# ============================================================================
# Steps 4-9: batch
# ============================================================================

def parse_case_rows(
    rows: Sequence[Mapping[str, Any]],
    filename: str = "",
    max_rows: Optional[int] = None,
) -> ImportBatch:
    max_rows = settings.CASE_IMPORT_MAX_ROWS if max_rows is None else max_rows

    if len(rows) == 0:
        raise InputRejectedError("No data found in the uploaded file", status_code=422)

    if len(rows) > max_rows:
        raise InputRejectedError(
            f"Too many rows. Maximum {max_rows} rows allowed. Found {len(rows)} rows.",
            status_code=422,
        )

    batch = ImportBatch(filename=filename, parsed_rows=len(rows))
    for index, row in enumerate(rows):
        row_number = index + 1
        fields, dropped = build_case_fields(sanitize_row(row), row_number)

        if not fields["parties"] or not fields["forum"]:
            batch.skipped_rows.append(row_number)
            continue

        if dropped is not None:
            batch.dropped_amounts.append(DroppedAmount(row=row_number, value=dropped))
        batch.cases.append(LitigationCaseCreate(**fields))

    if not batch.cases:
        raise InputRejectedError(
            "No valid cases found. Please ensure 'Parties' and 'Forum' columns are present.",
            status_code=422,
        )

    logger.info(
        "Parsed litigation import %s: rows=%s valid=%s skipped=%s dropped_amounts=%s",
        filename or "<rows>", batch.parsed_rows, len(batch.cases), batch.skipped, len(batch.dropped_amounts),
    )
    return batch


def parse_case_upload(
    filename: str,
    content: bytes,
    max_bytes: Optional[int] = None,
    max_rows: Optional[int] = None,
) -> ImportBatch:
    """Full pipeline from uploaded bytes to validated payloads."""
    validate_upload(filename, len(content), max_bytes=max_bytes)
    sheet = read_spreadsheet(filename, content)
    return parse_case_rows(sheet.rows, filename=filename, max_rows=max_rows)
