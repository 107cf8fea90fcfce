"""
Parser for M-Pesa statement exports.

A statement is CSV text with a header line followed by 7-column rows:

    Receipt No, Completion Time, Details, Transaction Status,
    Paid In, Withdrawn, Balance

``parse_statement`` turns every completed row into a ``DraftTransaction``.
Rows that cannot be used are recorded in ``ParsedStatement.skipped`` with a
reason; a bad row never aborts the rest of the file.
"""

import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from .mpesa_categorizer import categorize

logger = logging.getLogger(__name__)

STATEMENT_COLUMNS = [
    "Receipt No",
    "Completion Time",
    "Details",
    "Transaction Status",
    "Paid In",
    "Withdrawn",
    "Balance",
]
COMPLETED_STATUS = "Completed"
DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y")

# Skip reasons
TOO_FEW_COLUMNS = "too_few_columns"
NOT_COMPLETED = "not_completed"
NO_AMOUNT = "no_amount"
NON_POSITIVE_AMOUNT = "non_positive_amount"
INVALID_DATE = "invalid_date"
PARSE_ERROR = "parse_error"

TEMPLATE_ROWS = [
    ["RFV123456", "2024-01-15 14:30:25", "Payment to JOE SUPERMARKET", "Completed", "", "500.00", "15000.00"],
    ["RFV123457", "2024-01-15 10:15:00", "Airtime Purchase", "Completed", "", "100.00", "15500.00"],
    ["RFV123458", "2024-01-14 16:45:30", "Received from JOHN DOE", "Completed", "2000.00", "", "15600.00"],
]


@dataclass
class DraftTransaction:
    """A transaction parsed from a statement row, not yet persisted."""

    title: str
    amount: Decimal
    date: date
    category: str
    type: str
    description: str
    receipt_no: str = ""

    def as_dict(self) -> dict:
        return {
            "title": self.title,
            "amount": self.amount,
            "date": self.date,
            "category": self.category,
            "type": self.type,
            "description": self.description,
        }


@dataclass
class SkippedRow:
    line_number: int
    reason: str
    receipt_no: str = ""


@dataclass
class ParsedStatement:
    drafts: List[DraftTransaction] = field(default_factory=list)
    skipped: List[SkippedRow] = field(default_factory=list)

    @property
    def total_rows(self) -> int:
        return len(self.drafts) + len(self.skipped)


class RowSkipped(Exception):
    """Raised while parsing a row that has to be dropped."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


def clean_field(value: str) -> str:
    """Trim a field and strip one surrounding pair of double quotes."""
    value = (value or "").strip()
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        value = value[1:-1].strip()
    return value


def parse_amount(value: str) -> Optional[Decimal]:
    """
    Parse a money column. Thousands separators are accepted.

    Returns None when the column is empty or not a number.
    """
    value = clean_field(value).replace(",", "")
    if not value:
        return None
    try:
        amount = Decimal(value)
    except InvalidOperation:
        return None
    return amount if amount.is_finite() else None


def parse_completion_date(value: str) -> Optional[date]:
    """Calendar date from the part of the completion time before the first space."""
    text = clean_field(value).split(" ", 1)[0]
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def parse_row(columns: List[str]) -> DraftTransaction:
    """
    Build a draft from one statement row.

    Raises:
        RowSkipped: when the row has to be dropped
    """
    if len(columns) < len(STATEMENT_COLUMNS):
        raise RowSkipped(TOO_FEW_COLUMNS)

    receipt_no, completion_time, details, row_status, paid_in, withdrawn = (
        clean_field(value) for value in columns[:6]
    )

    if row_status != COMPLETED_STATUS:
        raise RowSkipped(NOT_COMPLETED)

    paid_in_amount = parse_amount(paid_in)
    withdrawn_amount = parse_amount(withdrawn)

    if paid_in_amount is not None and paid_in_amount > 0:
        amount, transaction_type = paid_in_amount, "income"
    elif withdrawn_amount is not None and withdrawn_amount > 0:
        amount, transaction_type = withdrawn_amount, "expense"
    elif paid_in_amount is None and withdrawn_amount is None:
        raise RowSkipped(NO_AMOUNT)
    else:
        raise RowSkipped(NON_POSITIVE_AMOUNT)

    transaction_date = parse_completion_date(completion_time)
    if transaction_date is None:
        raise RowSkipped(INVALID_DATE)

    return DraftTransaction(
        title=f"M-Pesa: {details}",
        amount=amount,
        date=transaction_date,
        category=categorize(details),
        type=transaction_type,
        description=f"Receipt: {receipt_no}",
        receipt_no=receipt_no,
    )


def parse_statement(text: str) -> ParsedStatement:
    """
    Parse a whole statement export.

    Blank lines and the header line are ignored. Every other line yields
    either a draft or a skipped-row record.

    Args:
        text: Raw statement text

    Returns:
        ParsedStatement with drafts in file order
    """
    result = ParsedStatement()
    lines = [
        (number, line)
        for number, line in enumerate((text or "").splitlines(), start=1)
        if line.strip()
    ]

    for line_number, line in lines[1:]:
        receipt_no = ""
        try:
            columns = next(csv.reader([line], skipinitialspace=True))
            receipt_no = clean_field(columns[0]) if columns else ""
            result.drafts.append(parse_row(columns))
        except RowSkipped as skip:
            result.skipped.append(SkippedRow(line_number, skip.reason, receipt_no))
        except Exception as exc:
            logger.warning(
                "Statement row could not be parsed",
                extra={
                    "line_number": line_number,
                    "error_type": type(exc).__name__,
                    "error_message": str(exc),
                    "action": "statement_row_parse_error",
                    "component": "mpesa_parser",
                },
                exc_info=True,
            )
            result.skipped.append(SkippedRow(line_number, PARSE_ERROR, receipt_no))

    logger.info(
        "Statement parsed",
        extra={
            "total_rows": result.total_rows,
            "parsed": len(result.drafts),
            "skipped": len(result.skipped),
            "action": "statement_parsed",
            "component": "mpesa_parser",
        },
    )
    return result


def build_template() -> str:
    """CSV template users can fill in: the header and three sample rows."""
    buffer = io.StringIO()
    buffer.write(",".join(STATEMENT_COLUMNS) + "\n")
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerows(TEMPLATE_ROWS)
    return buffer.getvalue()
