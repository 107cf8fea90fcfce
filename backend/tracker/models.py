"""
Database models for the M-Pesa finance tracker.

This module defines the per-user ledger (transactions), the category list,
budgets and the change events that feed connected clients. Every row is
owned by exactly one user.
"""

from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models.functions import Lower

TRANSACTION_TYPES = [
    ("income", "Income"),
    ("expense", "Expense"),
]

POSITIVE_AMOUNT = MinValueValidator(Decimal("0.01"))


# -------------------------------------------------------------------
# CATEGORIES
# -------------------------------------------------------------------
# Named labels with a display colour. Transactions and budgets refer to
# categories by free text, so there is no foreign key.


class Category(models.Model):
    """
    User-defined category label.

    Names are unique per user, case-insensitively.
    """

    CATEGORY_TYPES = TRANSACTION_TYPES + [("both", "Both")]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="categories"
    )
    name = models.CharField(max_length=100)
    color = models.CharField(max_length=50, default="bg-gray-500")
    type = models.CharField(max_length=10, choices=CATEGORY_TYPES, default="expense")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "categories"
        ordering = ["type", "name"]
        constraints = [
            models.UniqueConstraint(
                Lower("name"), "user", name="uniq_category_name_per_user"
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.type})"


# -------------------------------------------------------------------
# TRANSACTIONS
# -------------------------------------------------------------------


class Transaction(models.Model):
    """
    One ledger entry.

    ``amount`` is always positive; the direction lives in ``type``.
    ``category`` is free text compared case-insensitively by budgets.
    """

    TRANSACTION_TYPES = TRANSACTION_TYPES

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="transactions"
    )
    title = models.CharField(max_length=255)
    amount = models.DecimalField(
        max_digits=12, decimal_places=2, validators=[POSITIVE_AMOUNT]
    )
    date = models.DateField()
    category = models.CharField(max_length=100)
    type = models.CharField(max_length=10, choices=TRANSACTION_TYPES)
    description = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["user", "date"], name="idx_transaction_user_date"),
            models.Index(fields=["user", "type"], name="idx_transaction_user_type"),
        ]
        ordering = ["-date", "-created_at"]

    def __str__(self):
        return f"{self.title} {self.type} {self.amount} on {self.date}"


# -------------------------------------------------------------------
# BUDGETS
# -------------------------------------------------------------------
# Spending against a budget is derived from transactions on every read
# and never stored.


class Budget(models.Model):
    """Spending limit for one category."""

    PERIOD_CHOICES = [
        ("weekly", "Weekly"),
        ("monthly", "Monthly"),
        ("yearly", "Yearly"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="budgets"
    )
    category = models.CharField(max_length=100)
    amount = models.DecimalField(
        max_digits=12, decimal_places=2, validators=[POSITIVE_AMOUNT]
    )
    period = models.CharField(max_length=10, choices=PERIOD_CHOICES, default="monthly")
    currency = models.CharField(max_length=3, default="KES")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.category}: {self.currency} {self.amount} {self.period}"


# -------------------------------------------------------------------
# CHANGE FEED
# -------------------------------------------------------------------


class ChangeEvent(models.Model):
    """
    Row-level change on a user's transactions or budgets.

    The auto-incrementing id is the feed cursor. ``correlation_id`` carries
    the id the writing client attached to the mutation so that it can
    recognise its own echo.
    """

    TABLE_CHOICES = [
        ("transactions", "Transactions"),
        ("budgets", "Budgets"),
    ]
    EVENT_TYPES = [
        ("INSERT", "Insert"),
        ("UPDATE", "Update"),
        ("DELETE", "Delete"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="change_events"
    )
    table = models.CharField(max_length=20, choices=TABLE_CHOICES)
    event_type = models.CharField(max_length=6, choices=EVENT_TYPES)
    record_id = models.BigIntegerField()
    new = models.JSONField(null=True, blank=True)
    old = models.JSONField(null=True, blank=True)
    correlation_id = models.CharField(max_length=64, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]
        indexes = [models.Index(fields=["user", "id"], name="idx_changeevent_user_cursor")]

    def __str__(self):
        return f"{self.event_type} {self.table}#{self.record_id}"
