"""Bulk import pipeline: gates, sanitization, header resolution, coercion."""

import io
from datetime import date, datetime

import pytest
from openpyxl import Workbook

from casetrack.db.schemas import MAX_AMOUNT_INVOLVED
from casetrack.services.case_import_service import (
    coerce_date,
    coerce_number,
    coerce_string,
    parse_case_rows,
    parse_case_upload,
    resolve_field,
    sanitize_value,
    validate_upload,
)
from casetrack.services.spreadsheet_reader import UNREADABLE_MESSAGE, rows_to_records
from casetrack.utils.exceptions import ErrorCategory, InputRejectedError


def _row(**overrides):
    row = {"Parties": "ABC Ltd vs State", "Forum": "High Court", "Amount involved": ""}
    row.update(overrides)
    return row


# ── Upload gate ────────────────────────────────────────────────────

def test_rejects_unsupported_extension():
    with pytest.raises(InputRejectedError) as exc:
        validate_upload("register.pdf", 10)
    assert exc.value.status_code == 415
    assert exc.value.detail == "Unsupported file type. Please upload an Excel or CSV file."
    assert exc.value.category is ErrorCategory.input_rejected


def test_extension_check_is_case_insensitive():
    validate_upload("REGISTER.XLSX", 10)


def test_rejects_oversized_file():
    with pytest.raises(InputRejectedError) as exc:
        validate_upload("register.xlsx", 5 * 1024 * 1024 + 1)
    assert exc.value.status_code == 413
    assert exc.value.detail == "File too large. Maximum size allowed is 5MB."


def test_accepts_file_exactly_at_limit():
    validate_upload("register.csv", 5 * 1024 * 1024)


# ── Sanitization ───────────────────────────────────────────────────

@pytest.mark.parametrize(
    "raw, expected",
    [
        ("=HYPERLINK(\"http://x\")", "HYPERLINK(\"http://x\")"),
        ("+cmd", "cmd"),
        ("@SUM(A1:A2)", "SUM(A1:A2)"),
        ("--5", "-5"),
        ("-= pending", "= pending"),
        ("  ABC Ltd  ", "ABC Ltd"),
        (" =x", "=x"),
    ],
)
def test_sanitize_strips_formula_prefixes(raw, expected):
    assert sanitize_value(raw) == expected


def test_sanitize_only_removes_one_formula_character():
    assert sanitize_value("=-500") == "-500"
    assert sanitize_value(sanitize_value("ABC Ltd")) == "ABC Ltd"


def test_formula_prefixed_negative_amount_is_dropped():
    batch = parse_case_rows([_row(**{"Amount involved": "=-500"})])

    assert batch.cases[0].amount_involved is None
    assert len(batch.dropped_amounts) == 1
    assert batch.dropped_amounts[0].value == -500.0


def test_sanitize_leaves_non_strings_alone():
    assert sanitize_value(-5) == -5
    assert sanitize_value(None) is None


# ── Header resolution ──────────────────────────────────────────────

def test_resolve_field_is_case_insensitive_and_trimmed():
    assert resolve_field({"  PARTIES ": "X vs Y"}, ["Parties"]) == "X vs Y"


def test_resolve_field_falls_through_empty_alias():
    row = {"Parties": "", "Party": "B vs C"}
    assert resolve_field(row, ["Parties", "Party"]) == "B vs C"


def test_resolve_field_missing_returns_none():
    assert resolve_field({"Other": "x"}, ["Parties"]) is None


def test_rows_to_records_dedupes_headers_and_skips_blank_rows():
    sheet = rows_to_records(
        "Sheet1",
        [
            ["Parties", "Parties", None],
            [None, None, None],
            ["A", "B", "C"],
        ],
    )
    assert sheet.headers == ["Parties", "Parties_1", "__EMPTY"]
    assert sheet.rows == [{"Parties": "A", "Parties_1": "B", "__EMPTY": "C"}]


# ── Coercion ───────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "raw, expected",
    [
        ("15/03/2024", "2024-03-15"),
        ("5-1-2024", "2024-01-05"),
        ("2024-03-15", "2024-03-15"),
        ("15 March 2024", "2024-03-15"),
        (45000, "2023-03-15"),
        (datetime(2024, 1, 5, 10, 30), "2024-01-05"),
        (date(2024, 1, 5), "2024-01-05"),
    ],
)
def test_coerce_date_accepts_known_forms(raw, expected):
    assert coerce_date(raw) == expected


@pytest.mark.parametrize(
    "raw",
    ["31-02-2024", "March 2024", "2024", "not a date", "", None, -1, 3_000_000, True, 0, 0.5],
)
def test_coerce_date_downgrades_anomalies_to_none(raw):
    assert coerce_date(raw) is None


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("₹1,50,000", 150000.0),
        ("Rs. 5,000", 5000.0),
        ("12.5 lakhs", 12.5),
        (2500, 2500.0),
        (1e3, 1000.0),
    ],
)
def test_coerce_number(raw, expected):
    assert coerce_number(raw) == expected


@pytest.mark.parametrize("raw", ["abc", "", float("nan"), float("inf"), True, None])
def test_coerce_number_rejects_non_numbers(raw):
    assert coerce_number(raw) is None


def test_coerce_string_renders_integral_floats_without_decimal():
    assert coerce_string(12.0) == "12"
    assert coerce_string(12.5) == "12.5"
    assert coerce_string(None) == ""


# ── Batch ──────────────────────────────────────────────────────────

def test_parse_rows_builds_payloads():
    batch = parse_case_rows(
        [
            _row(**{
                "Sr. No.": "7",
                "Particular": "Recovery suit",
                "Start Date": "01/04/2023",
                "Next Date": 45000,
                "Amount involved": "₹2,50,000",
                "Remarks": "  urgent  ",
            })
        ]
    )
    assert batch.parsed_rows == 1
    assert batch.skipped == 0
    case = batch.cases[0]
    assert case.sr_no == 7
    assert case.parties == "ABC Ltd vs State"
    assert case.forum == "High Court"
    assert case.particular == "Recovery suit"
    assert case.start_date == date(2023, 4, 1)
    assert case.next_hearing_date == date(2023, 3, 15)
    assert case.last_hearing_date is None
    assert case.amount_involved == 250000.0
    assert case.remarks == "urgent"
    assert case.treatment_resolution is None
    assert case.status == "Active"


def test_parse_rows_strips_formula_injection_from_text_fields():
    batch = parse_case_rows([_row(Parties="=cmd|'/c calc'!A1", Forum="@Court")])
    assert batch.cases[0].parties == "cmd|'/c calc'!A1"
    assert batch.cases[0].forum == "Court"


def test_parse_rows_truncates_long_text():
    batch = parse_case_rows([_row(Parties="P" * 600, Forum="F" * 300, Particular="x" * 1500)])
    case = batch.cases[0]
    assert len(case.parties) == 500
    assert len(case.forum) == 200
    assert len(case.particular) == 1000


def test_sr_no_defaults_to_row_number():
    batch = parse_case_rows([_row(), _row(**{"Sr. No.": "n/a"}), _row(**{"Sr No": 4.9})])
    assert [c.sr_no for c in batch.cases] == [1, 2, 4]


@pytest.mark.parametrize(
    "amount, kept",
    [
        (0, 0.0),
        (MAX_AMOUNT_INVOLVED, float(MAX_AMOUNT_INVOLVED)),
        (MAX_AMOUNT_INVOLVED + 1, None),
        (-5, None),
    ],
)
def test_amount_range_boundaries(amount, kept):
    batch = parse_case_rows([_row(**{"Amount involved": amount})])
    case = batch.cases[0]
    assert case.amount_involved == kept
    if kept is None:
        assert batch.dropped_amounts[0].row == 1
        assert batch.dropped_amounts[0].value == float(amount)
        assert any("outside the accepted range" in w for w in batch.warnings)
    else:
        assert batch.dropped_amounts == []


def test_rows_missing_required_fields_are_skipped_with_warning():
    batch = parse_case_rows([_row(), _row(Forum=""), _row(Parties="   ")])
    assert len(batch.cases) == 1
    assert batch.skipped_rows == [2, 3]
    assert "2 rows skipped due to missing required fields" in batch.warnings


def test_zero_valid_rows_aborts():
    with pytest.raises(InputRejectedError) as exc:
        parse_case_rows([{"Name": "x"}, {"Name": "y"}])
    assert exc.value.detail == "No valid cases found. Please ensure 'Parties' and 'Forum' columns are present."


def test_empty_sheet_aborts():
    with pytest.raises(InputRejectedError) as exc:
        parse_case_rows([])
    assert exc.value.detail == "No data found in the uploaded file"


def test_row_count_gate():
    rows = [_row() for _ in range(1500)]
    with pytest.raises(InputRejectedError) as exc:
        parse_case_rows(rows)
    assert exc.value.detail == "Too many rows. Maximum 1000 rows allowed. Found 1500 rows."


def test_row_count_gate_allows_exact_maximum():
    batch = parse_case_rows([_row() for _ in range(1000)])
    assert len(batch.cases) == 1000


# ── Full upload ────────────────────────────────────────────────────

def test_parse_csv_upload():
    content = (
        "Sr. No.,Parties,Forum,Next Date,Amount involved\n"
        "1,ABC vs XYZ,NCLT,15/03/2024,\"1,00,000\"\n"
        ",,,,\n"
        "2,DEF vs GHI,Arbitration Tribunal,,\n"
    ).encode("utf-8")
    batch = parse_case_upload("cases.csv", content)
    assert batch.parsed_rows == 2
    assert [c.parties for c in batch.cases] == ["ABC vs XYZ", "DEF vs GHI"]
    assert batch.cases[0].next_hearing_date == date(2024, 3, 15)
    assert batch.cases[0].amount_involved == 100000.0


def test_parse_xlsx_upload_prefers_sheet1():
    wb = Workbook()
    first = wb.active
    first.title = "Summary"
    first.append(["Parties", "Forum"])
    first.append(["Wrong sheet", "Ignored"])

    sheet1 = wb.create_sheet("Sheet1")
    sheet1.append(["Parties", "Forum", "Start Date", "Amount Involved"])
    sheet1.append(["ABC vs XYZ", "High Court", datetime(2024, 2, 1), 5000])

    buf = io.BytesIO()
    wb.save(buf)

    batch = parse_case_upload("register.xlsx", buf.getvalue())
    assert len(batch.cases) == 1
    case = batch.cases[0]
    assert case.parties == "ABC vs XYZ"
    assert case.start_date == date(2024, 2, 1)
    assert case.amount_involved == 5000.0


def test_xlsx_zero_date_cell_is_treated_as_absent():
    wb = Workbook()
    sheet = wb.active
    sheet.append(["Parties", "Forum", "Next Date"])
    sheet.append(["A vs B", "High Court", 0])
    sheet.append(["C vs D", "High Court", 0.5])

    buf = io.BytesIO()
    wb.save(buf)

    batch = parse_case_upload("register.xlsx", buf.getvalue())
    assert [c.parties for c in batch.cases] == ["A vs B", "C vs D"]
    assert all(c.next_hearing_date is None for c in batch.cases)


def test_corrupt_workbook_is_rejected():
    with pytest.raises(InputRejectedError) as exc:
        parse_case_upload("register.xlsx", b"definitely not a zip file")
    assert exc.value.detail == UNREADABLE_MESSAGE


def test_corrupt_xls_is_rejected():
    with pytest.raises(InputRejectedError) as exc:
        parse_case_upload("register.xls", b"\x00\x01garbage")
    assert exc.value.detail == UNREADABLE_MESSAGE
