"""
Category service: per-user category list with default seeding.

Category names are free-text join keys for transactions and budgets, so
nothing here cascades into other tables.
"""

import logging

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction

from ..models import Category

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    {"name": "Salary", "color": "bg-green-500", "type": "income"},
    {"name": "Freelance Work", "color": "bg-emerald-500", "type": "income"},
    {"name": "Business Income", "color": "bg-teal-500", "type": "income"},
    {"name": "Investments", "color": "bg-blue-500", "type": "income"},
    {"name": "Utilities", "color": "bg-yellow-500", "type": "expense"},
    {"name": "Transportation", "color": "bg-orange-500", "type": "expense"},
    {"name": "Entertainment", "color": "bg-purple-500", "type": "expense"},
    {"name": "Healthcare", "color": "bg-red-500", "type": "expense"},
    {"name": "Dining Out", "color": "bg-pink-500", "type": "expense"},
    {"name": "Shopping", "color": "bg-indigo-500", "type": "expense"},
]
CATEGORY_TYPES = {choice for choice, _ in Category.CATEGORY_TYPES}


class CategoryService:
    """
    Category management for a single user.
    """

    @transaction.atomic
    def ensure_defaults(self, user) -> bool:
        """
        Seed the default categories when ``user`` has none.

        Returns:
            bool: True when defaults were created
        """
        if Category.objects.filter(user=user).exists():
            return False

        Category.objects.bulk_create(
            [Category(user=user, **values) for values in DEFAULT_CATEGORIES]
        )
        logger.info(
            "Default categories seeded",
            extra={
                "user_id": user.id,
                "category_count": len(DEFAULT_CATEGORIES),
                "action": "default_categories_seeded",
                "component": "CategoryService",
            },
        )
        return True

    def list_categories(self, user, transaction_type=None):
        """
        Categories of ``user``, seeding defaults on first use.

        ``transaction_type`` narrows the list to categories usable for that
        type: ``income`` gives income and both, ``expense`` gives expense and
        both.
        """
        self.ensure_defaults(user)
        queryset = Category.objects.filter(user=user)
        if transaction_type in ("income", "expense"):
            queryset = queryset.filter(type__in=[transaction_type, "both"])
        return queryset.order_by("type", "name")

    def _validate(self, user, data, instance=None):
        errors = {}
        name = str(data.get("name", instance.name if instance else "") or "").strip()
        category_type = data.get("type", instance.type if instance else "expense")

        if not name:
            errors["name"] = "Name is required."
        elif (
            Category.objects.filter(user=user, name__iexact=name)
            .exclude(pk=getattr(instance, "pk", None))
            .exists()
        ):
            errors["name"] = f"A category named '{name}' already exists."

        if category_type not in CATEGORY_TYPES:
            errors["type"] = "Type must be 'income', 'expense' or 'both'."

        if errors:
            raise ValidationError(errors)
        return name, category_type

    @transaction.atomic
    def create_category(self, user, data):
        name, category_type = self._validate(user, data)
        try:
            with transaction.atomic():
                category = Category.objects.create(
                    user=user,
                    name=name,
                    type=category_type,
                    color=data.get("color") or "bg-gray-500",
                )
        except IntegrityError:
            raise ValidationError({"name": f"A category named '{name}' already exists."})

        logger.info(
            "Category created",
            extra={
                "user_id": user.id,
                "category_id": category.id,
                "action": "category_created",
                "component": "CategoryService",
            },
        )
        return category

    @transaction.atomic
    def update_category(self, category, data):
        name, category_type = self._validate(category.user, data, instance=category)
        category.name = name
        category.type = category_type
        if data.get("color"):
            category.color = data["color"]
        category.save()

        logger.info(
            "Category updated",
            extra={
                "user_id": category.user_id,
                "category_id": category.id,
                "action": "category_updated",
                "component": "CategoryService",
            },
        )
        return category

    @transaction.atomic
    def delete_category(self, category):
        """Delete a category. Transactions keep their free-text category."""
        category_id = category.id
        user_id = category.user_id
        category.delete()

        logger.info(
            "Category deleted",
            extra={
                "user_id": user_id,
                "category_id": category_id,
                "action": "category_deleted",
                "component": "CategoryService",
            },
        )
