"""
Serializers for the tracker API.

Model serializers validate request shape; business rules and writes live in
the services, which the views call with ``validated_data``.
"""

import logging
from decimal import Decimal

from django.conf import settings
from django.utils import timezone
from rest_framework import serializers

from .models import Budget, Category, ChangeEvent, Transaction
from .utils.mpesa_categorizer import MPESA_CATEGORIES, OTHER

logger = logging.getLogger(__name__)

MONEY = {"max_digits": 12, "decimal_places": 2}


class NonBlankStripMixin:
    """Strip the listed text fields and reject values that become empty."""

    strip_fields = ()

    def to_internal_value(self, data):
        attrs = super().to_internal_value(data)
        errors = {}
        for name in self.strip_fields:
            if name in attrs:
                attrs[name] = attrs[name].strip()
                if not attrs[name]:
                    errors[name] = ["This field may not be blank."]
        if errors:
            raise serializers.ValidationError(errors)
        return attrs


# -------------------------------------------------------------------
# TRANSACTIONS
# -------------------------------------------------------------------


class TransactionSerializer(NonBlankStripMixin, serializers.ModelSerializer):
    strip_fields = ("title", "category")

    amount = serializers.DecimalField(min_value=Decimal("0.01"), **MONEY)

    class Meta:
        model = Transaction
        fields = [
            "id",
            "title",
            "amount",
            "date",
            "category",
            "type",
            "description",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]


class TransactionFilterSerializer(serializers.Serializer):
    """Query parameters accepted by the transaction list."""

    type = serializers.ChoiceField(choices=Transaction.TRANSACTION_TYPES, required=False)
    category = serializers.CharField(required=False, allow_blank=True)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)

    def validate(self, attrs):
        if attrs.get("date_from") and attrs.get("date_to") and attrs["date_from"] > attrs["date_to"]:
            raise serializers.ValidationError({"date_to": "date_to must not be before date_from."})
        return attrs


# -------------------------------------------------------------------
# CATEGORIES
# -------------------------------------------------------------------


class CategorySerializer(NonBlankStripMixin, serializers.ModelSerializer):
    strip_fields = ("name",)

    class Meta:
        model = Category
        fields = ["id", "name", "color", "type", "created_at"]
        read_only_fields = ["id", "created_at"]


# -------------------------------------------------------------------
# BUDGETS
# -------------------------------------------------------------------


class BudgetSerializer(NonBlankStripMixin, serializers.ModelSerializer):
    strip_fields = ("category",)

    amount = serializers.DecimalField(min_value=Decimal("0.01"), **MONEY)
    currency = serializers.CharField(min_length=3, max_length=3, required=False)

    class Meta:
        model = Budget
        fields = [
            "id",
            "category",
            "amount",
            "period",
            "currency",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_currency(self, value):
        return value.upper()


class BudgetWithSpendingSerializer(serializers.Serializer):
    """Read-only view of a budget with its derived spending."""

    id = serializers.IntegerField()
    category = serializers.CharField()
    amount = serializers.DecimalField(**MONEY)
    period = serializers.CharField()
    currency = serializers.CharField()
    created_at = serializers.DateTimeField(source="budget.created_at")
    current_spending = serializers.DecimalField(max_digits=14, decimal_places=2)
    remaining = serializers.DecimalField(max_digits=14, decimal_places=2)
    percentage = serializers.DecimalField(max_digits=14, decimal_places=2)
    is_over_budget = serializers.BooleanField()


class BudgetAlertSerializer(serializers.Serializer):
    budget_id = serializers.IntegerField()
    category = serializers.CharField()
    currency = serializers.CharField()
    limit = serializers.DecimalField(max_digits=14, decimal_places=2)
    spent = serializers.DecimalField(max_digits=14, decimal_places=2)
    over_by = serializers.DecimalField(max_digits=14, decimal_places=2)
    message = serializers.CharField()


# -------------------------------------------------------------------
# M-PESA
# -------------------------------------------------------------------


class MpesaImportSerializer(serializers.Serializer):
    """
    Statement upload: either a CSV ``file`` or the raw ``text``.
    """

    file = serializers.FileField(required=False)
    text = serializers.CharField(required=False, trim_whitespace=False)

    def validate_file(self, value):
        max_bytes = getattr(settings, "TRACKER_IMPORT_MAX_BYTES", 5 * 1024 * 1024)
        if value.size > max_bytes:
            raise serializers.ValidationError(
                f"File is too large. Maximum size is {max_bytes // 1024} KB."
            )
        return value

    def validate(self, attrs):
        upload = attrs.get("file")
        text = attrs.get("text")

        if upload is None and not text:
            raise serializers.ValidationError(
                {"non_field_errors": "Provide a CSV file or the statement text."}
            )

        if upload is not None:
            try:
                text = upload.read().decode("utf-8-sig")
            except UnicodeDecodeError:
                logger.warning(
                    "Statement upload is not UTF-8",
                    extra={
                        "file_name": upload.name,
                        "action": "mpesa_import_decode_failed",
                        "component": "MpesaImportSerializer",
                    },
                )
                raise serializers.ValidationError({"file": "File must be UTF-8 encoded CSV."})

        attrs["text"] = text
        return attrs


class MpesaImportResultSerializer(serializers.Serializer):
    total_rows = serializers.IntegerField()
    parsed = serializers.IntegerField()
    imported = serializers.IntegerField()
    failed = serializers.IntegerField()
    skipped = serializers.ListField(child=serializers.DictField())
    transactions = TransactionSerializer(many=True)
    alerts = BudgetAlertSerializer(many=True)


class MpesaManualEntrySerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=Transaction.TRANSACTION_TYPES)
    amount = serializers.DecimalField(min_value=Decimal("0.01"), **MONEY)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    date = serializers.DateField(required=False)
    category = serializers.ChoiceField(choices=list(MPESA_CATEGORIES.items()), default=OTHER)
    phone_number = serializers.CharField(required=False, allow_blank=True, max_length=20)
    transaction_id = serializers.CharField(required=False, allow_blank=True, max_length=50)

    def validate(self, attrs):
        attrs.setdefault("date", timezone.localdate())
        return attrs


# -------------------------------------------------------------------
# REPORTS AND FEED
# -------------------------------------------------------------------


class TotalsSerializer(serializers.Serializer):
    income = serializers.DecimalField(max_digits=14, decimal_places=2)
    expenses = serializers.DecimalField(max_digits=14, decimal_places=2)
    balance = serializers.DecimalField(max_digits=14, decimal_places=2)


class MonthTotalsSerializer(TotalsSerializer):
    month = serializers.CharField()


class CategoryBreakdownSerializer(serializers.Serializer):
    category = serializers.CharField()
    income = serializers.DecimalField(max_digits=14, decimal_places=2)
    expense = serializers.DecimalField(max_digits=14, decimal_places=2)
    net = serializers.DecimalField(max_digits=14, decimal_places=2)
    count = serializers.IntegerField()


class DashboardSerializer(serializers.Serializer):
    totals = TotalsSerializer()
    current_month = MonthTotalsSerializer()
    recent_transactions = TransactionSerializer(many=True)
    categories = CategoryBreakdownSerializer(many=True)


class ChangeEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = ChangeEvent
        fields = [
            "id",
            "table",
            "event_type",
            "record_id",
            "new",
            "old",
            "correlation_id",
            "created_at",
        ]
        read_only_fields = fields
