"""
M-Pesa statement import and manual M-Pesa entry.

Imported rows are saved one after another, each in its own savepoint: a row
that fails to save is logged and counted and the import carries on. Partial
success is a normal outcome, not an error.
"""

import logging

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction

from ..utils.mpesa_categorizer import MPESA_CATEGORIES, OTHER
from ..utils.mpesa_parser import parse_statement
from .budget_service import BudgetService
from .transaction_service import TransactionService

logger = logging.getLogger(__name__)

MANUAL_TYPE_TITLES = {
    "income": "M-Pesa Receive",
    "expense": "M-Pesa Send",
}


class MpesaImportService:
    """
    Turns statement text and manual M-Pesa entries into transactions.
    """

    @staticmethod
    def import_statement(text, user, correlation_id=""):
        """
        Parse a statement and persist every draft sequentially.

        Args:
            text: Statement CSV text
            user: Owner of the new transactions
            correlation_id: Tagged on every change event of this import

        Returns:
            dict: ``total_rows``, ``parsed``, ``imported``, ``failed``,
            ``skipped`` (reason per line), ``transactions`` (saved instances)
            and ``alerts`` (budget alerts fired by the new spending)
        """
        parsed = parse_statement(text)
        created = []
        failed = 0

        logger.info(
            "M-Pesa import started",
            extra={
                "user_id": user.id,
                "total_rows": parsed.total_rows,
                "draft_count": len(parsed.drafts),
                "correlation_id": correlation_id,
                "action": "mpesa_import_start",
                "component": "MpesaImportService",
            },
        )

        for index, draft in enumerate(parsed.drafts):
            try:
                with transaction.atomic():
                    created.append(
                        TransactionService.create_transaction(
                            user, draft.as_dict(), correlation_id=correlation_id
                        )
                    )
            except (ValidationError, DatabaseError) as exc:
                failed += 1
                logger.warning(
                    "M-Pesa row could not be saved",
                    extra={
                        "user_id": user.id,
                        "draft_index": index,
                        "receipt_no": draft.receipt_no,
                        "error_type": type(exc).__name__,
                        "error_message": str(exc),
                        "action": "mpesa_import_row_failed",
                        "component": "MpesaImportService",
                        "severity": "medium",
                    },
                )

        _, alerts = BudgetService.budgets_with_spending(user)

        logger.info(
            "M-Pesa import finished",
            extra={
                "user_id": user.id,
                "imported": len(created),
                "failed": failed,
                "skipped": len(parsed.skipped),
                "correlation_id": correlation_id,
                "action": "mpesa_import_complete",
                "component": "MpesaImportService",
            },
        )

        return {
            "total_rows": parsed.total_rows,
            "parsed": len(parsed.drafts),
            "imported": len(created),
            "failed": failed,
            "skipped": [
                {"line": row.line_number, "reason": row.reason, "receipt_no": row.receipt_no}
                for row in parsed.skipped
            ],
            "transactions": created,
            "alerts": alerts,
        }

    @staticmethod
    def create_manual_entry(user, data, correlation_id=""):
        """
        Save a hand-typed M-Pesa transaction.

        ``data`` holds ``type``, ``amount``, ``description``, ``date``,
        ``category`` (one of ``MPESA_CATEGORIES``) and optionally
        ``phone_number`` and ``transaction_id``.
        """
        transaction_type = data.get("type")
        description = str(data.get("description") or "").strip()
        category = data.get("category") or OTHER
        if category not in MPESA_CATEGORIES:
            raise ValidationError({"category": "Unknown M-Pesa category."})

        prefix = MANUAL_TYPE_TITLES.get(transaction_type, "M-Pesa")
        notes = []
        phone_number = str(data.get("phone_number") or "").strip()
        if phone_number:
            notes.append(f"Phone: {phone_number}")
            reference = str(data.get("transaction_id") or "").strip()
            if reference:
                notes.append(f"ID: {reference}")

        return TransactionService.create_transaction(
            user,
            {
                "title": f"{prefix}: {description}" if description else prefix,
                "amount": data.get("amount"),
                "date": data.get("date"),
                "category": category,
                "type": transaction_type,
                "description": " | ".join(notes) if notes else description,
            },
            correlation_id=correlation_id,
        )
