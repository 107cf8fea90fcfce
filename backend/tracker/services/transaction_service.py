"""
Service for transaction operations with proper error handling and logging.

All writes validate before touching the database, run atomically and record
a change event carrying the caller's correlation id.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.core.exceptions import ValidationError
from django.db import transaction as db_transaction
from django.utils.dateparse import parse_date

from ..models import Transaction
from .change_feed import ChangeFeedService, snapshot

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "amount", "date", "category", "type", "description")
CENT = Decimal("0.01")
MAX_AMOUNT = Decimal("1e10")
TRANSACTION_TYPES = {choice for choice, _ in Transaction.TRANSACTION_TYPES}


class TransactionService:
    """
    Service for creating, updating, deleting and filtering transactions.
    """

    @staticmethod
    def validate_transaction_data(data, partial=False):
        """
        Validate and normalise transaction fields.

        Args:
            data: Mapping of transaction fields
            partial: Only validate the fields present

        Returns:
            dict: Cleaned values (stripped strings, Decimal amount)

        Raises:
            ValidationError: With a message per invalid field
        """
        errors = {}
        cleaned = {}

        for name in ("title", "category"):
            if name in data or not partial:
                value = str(data.get(name) or "").strip()
                if not value:
                    errors[name] = f"{name.capitalize()} is required."
                cleaned[name] = value

        if "amount" in data or not partial:
            try:
                amount = Decimal(str(data.get("amount")))
                if amount.is_finite():
                    amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
                if not amount.is_finite() or amount <= 0:
                    errors["amount"] = "Amount must be greater than zero."
                elif amount >= MAX_AMOUNT:
                    errors["amount"] = "Amount is too large."
                cleaned["amount"] = amount
            except (InvalidOperation, TypeError, ValueError):
                errors["amount"] = "Amount must be a number."

        if "type" in data or not partial:
            if data.get("type") not in TRANSACTION_TYPES:
                errors["type"] = "Type must be 'income' or 'expense'."
            cleaned["type"] = data.get("type")

        if "date" in data or not partial:
            value = data.get("date")
            if isinstance(value, str):
                try:
                    value = parse_date(value.strip())
                except ValueError:
                    value = None
            if not value:
                errors["date"] = "Date must be a valid YYYY-MM-DD date."
            cleaned["date"] = value

        if "description" in data:
            cleaned["description"] = str(data.get("description") or "").strip()

        if errors:
            raise ValidationError(errors)
        return cleaned

    @staticmethod
    @db_transaction.atomic
    def create_transaction(user, data, correlation_id=""):
        """
        Create one transaction for ``user``.

        Returns:
            Transaction: The saved instance
        """
        cleaned = TransactionService.validate_transaction_data(data)
        instance = Transaction.objects.create(user=user, **cleaned)

        ChangeFeedService.record(
            user,
            "transactions",
            "INSERT",
            instance.id,
            new=snapshot(instance, "transactions"),
            correlation_id=correlation_id,
        )
        logger.info(
            "Transaction created",
            extra={
                "user_id": user.id,
                "transaction_id": instance.id,
                "transaction_type": instance.type,
                "correlation_id": correlation_id,
                "action": "transaction_created",
                "component": "TransactionService",
            },
        )
        return instance

    @staticmethod
    @db_transaction.atomic
    def update_transaction(instance, data, correlation_id=""):
        """Apply a partial update to an existing transaction."""
        cleaned = TransactionService.validate_transaction_data(data, partial=True)
        old = snapshot(instance, "transactions")

        for name in EDITABLE_FIELDS:
            if name in cleaned:
                setattr(instance, name, cleaned[name])
        instance.save()
        instance.refresh_from_db()

        ChangeFeedService.record(
            instance.user,
            "transactions",
            "UPDATE",
            instance.id,
            new=snapshot(instance, "transactions"),
            old=old,
            correlation_id=correlation_id,
        )
        logger.info(
            "Transaction updated",
            extra={
                "user_id": instance.user_id,
                "transaction_id": instance.id,
                "updated_fields": sorted(cleaned),
                "correlation_id": correlation_id,
                "action": "transaction_updated",
                "component": "TransactionService",
            },
        )
        return instance

    @staticmethod
    @db_transaction.atomic
    def delete_transaction(instance, correlation_id=""):
        user = instance.user
        transaction_id = instance.id
        old = snapshot(instance, "transactions")
        instance.delete()

        ChangeFeedService.record(
            user,
            "transactions",
            "DELETE",
            transaction_id,
            old=old,
            correlation_id=correlation_id,
        )
        logger.info(
            "Transaction deleted",
            extra={
                "user_id": user.id,
                "transaction_id": transaction_id,
                "correlation_id": correlation_id,
                "action": "transaction_deleted",
                "component": "TransactionService",
            },
        )

    @staticmethod
    def filter_transactions(queryset, params):
        """
        Apply list filters: ``type``, ``category`` (trimmed, case-insensitive),
        ``date_from`` and ``date_to`` (inclusive).
        """
        transaction_type = params.get("type")
        if transaction_type in TRANSACTION_TYPES:
            queryset = queryset.filter(type=transaction_type)

        category = (params.get("category") or "").strip()
        if category:
            queryset = queryset.filter(category__iexact=category)

        if params.get("date_from"):
            queryset = queryset.filter(date__gte=params["date_from"])
        if params.get("date_to"):
            queryset = queryset.filter(date__lte=params["date_to"])

        return queryset
