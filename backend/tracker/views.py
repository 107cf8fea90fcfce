"""
API views for the personal finance tracker.

Views are thin: they validate request shape with serializers, scope every
query to the requesting user and delegate all writes to the services.
"""

import logging

from django.http import HttpResponse
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .mixins import OwnerScopedMixin, ServiceExceptionHandlerMixin
from .models import Budget, Category, Transaction
from .permissions import IsOwner
from .serializers import (BudgetAlertSerializer, BudgetSerializer,
                          BudgetWithSpendingSerializer, CategorySerializer,
                          ChangeEventSerializer, DashboardSerializer,
                          MpesaImportResultSerializer, MpesaImportSerializer,
                          MpesaManualEntrySerializer, TransactionFilterSerializer,
                          TransactionSerializer)
from .services.budget_service import ALL_TIME_WINDOW, BudgetService
from .services.category_service import CategoryService
from .services.change_feed import ChangeFeedService
from .services.import_service import MpesaImportService
from .services.report_service import ReportService
from .services.transaction_service import TransactionService
from .utils.mpesa_categorizer import MPESA_CATEGORIES
from .utils.mpesa_parser import build_template

logger = logging.getLogger(__name__)

TEMPLATE_FILENAME = "mpesa-import-template.csv"


# -------------------------------------------------------------------
# TRANSACTION MANAGEMENT
# -------------------------------------------------------------------


class TransactionViewSet(OwnerScopedMixin, ServiceExceptionHandlerMixin, viewsets.ModelViewSet):
    """
    Thin ViewSet for transactions. Writes go through TransactionService so
    every change lands in the change feed.
    """

    queryset = Transaction.objects.all()
    serializer_class = TransactionSerializer
    permission_classes = [IsAuthenticated, IsOwner]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.transaction_service = TransactionService()

    def get_queryset(self):
        queryset = super().get_queryset()
        if self.action != "list":
            return queryset

        filters = TransactionFilterSerializer(data=self.request.query_params)
        filters.is_valid(raise_exception=True)
        queryset = self.transaction_service.filter_transactions(queryset, filters.validated_data)

        logger.debug(
            "Transactions queryset prepared",
            extra={
                "user_id": self.request.user.id,
                "filters_applied": {key: str(value) for key, value in filters.validated_data.items()},
                "action": "transactions_queryset_prepared",
                "component": "TransactionViewSet",
            },
        )
        return queryset

    def perform_create(self, serializer):
        serializer.instance = self.handle_service_call(
            self.transaction_service.create_transaction,
            self.request.user,
            serializer.validated_data,
            correlation_id=self.correlation_id,
        )

    def perform_update(self, serializer):
        serializer.instance = self.handle_service_call(
            self.transaction_service.update_transaction,
            serializer.instance,
            serializer.validated_data,
            correlation_id=self.correlation_id,
        )

    def perform_destroy(self, instance):
        logger.info(
            "Transaction deletion delegated to service",
            extra={
                "user_id": self.request.user.id,
                "transaction_id": instance.id,
                "action": "transaction_delete_delegated",
                "component": "TransactionViewSet",
            },
        )
        self.handle_service_call(
            self.transaction_service.delete_transaction,
            instance,
            correlation_id=self.correlation_id,
        )


# -------------------------------------------------------------------
# CATEGORY MANAGEMENT
# -------------------------------------------------------------------


class CategoryViewSet(OwnerScopedMixin, ServiceExceptionHandlerMixin, viewsets.ModelViewSet):
    """
    Per-user categories. The first list request seeds the defaults.
    """

    queryset = Category.objects.all()
    serializer_class = CategorySerializer
    permission_classes = [IsAuthenticated, IsOwner]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.category_service = CategoryService()

    def list(self, request, *args, **kwargs):
        transaction_type = request.query_params.get("type")
        if transaction_type and transaction_type not in dict(Category.CATEGORY_TYPES):
            raise ValidationError({"type": f"Unknown category type: {transaction_type}"})

        categories = self.handle_service_call(
            self.category_service.list_categories, request.user, transaction_type
        )
        return Response(self.get_serializer(categories, many=True).data)

    def perform_create(self, serializer):
        serializer.instance = self.handle_service_call(
            self.category_service.create_category,
            self.request.user,
            serializer.validated_data,
        )

    def perform_update(self, serializer):
        serializer.instance = self.handle_service_call(
            self.category_service.update_category,
            serializer.instance,
            serializer.validated_data,
        )

    def perform_destroy(self, instance):
        self.handle_service_call(self.category_service.delete_category, instance)


# -------------------------------------------------------------------
# BUDGET MANAGEMENT
# -------------------------------------------------------------------


class BudgetViewSet(OwnerScopedMixin, ServiceExceptionHandlerMixin, viewsets.ModelViewSet):
    """
    Budgets with spending derived from the owner's expense transactions.

    The list answers ``{"results": [...], "alerts": [...]}`` where ``alerts``
    holds only the budgets that crossed their limit since the last look.
    """

    queryset = Budget.objects.all()
    serializer_class = BudgetSerializer
    permission_classes = [IsAuthenticated, IsOwner]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.budget_service = BudgetService()

    def list(self, request, *args, **kwargs):
        window = request.query_params.get("window", ALL_TIME_WINDOW)
        results, alerts = self.handle_service_call(
            self.budget_service.budgets_with_spending, request.user, window=window
        )
        return Response(
            {
                "results": BudgetWithSpendingSerializer(results, many=True).data,
                "alerts": BudgetAlertSerializer(alerts, many=True).data,
            }
        )

    def perform_create(self, serializer):
        serializer.instance = self.handle_service_call(
            self.budget_service.create_budget,
            self.request.user,
            serializer.validated_data,
            correlation_id=self.correlation_id,
        )

    def perform_update(self, serializer):
        serializer.instance = self.handle_service_call(
            self.budget_service.update_budget,
            serializer.instance,
            serializer.validated_data,
            correlation_id=self.correlation_id,
        )

    def perform_destroy(self, instance):
        self.handle_service_call(
            self.budget_service.delete_budget,
            instance,
            correlation_id=self.correlation_id,
        )


# -------------------------------------------------------------------
# M-PESA IMPORT
# -------------------------------------------------------------------


class MpesaViewSet(ServiceExceptionHandlerMixin, viewsets.ViewSet):
    """
    Statement import, import template, manual entry and category labels.
    """

    permission_classes = [IsAuthenticated]

    @action(detail=False, methods=["post"], url_path="import", url_name="import")
    def import_statement(self, request):
        serializer = MpesaImportSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = self.handle_service_call(
            MpesaImportService.import_statement,
            serializer.validated_data["text"],
            request.user,
            correlation_id=getattr(request, "correlation_id", ""),
        )

        response_status = status.HTTP_201_CREATED if result["imported"] else status.HTTP_200_OK
        return Response(MpesaImportResultSerializer(result).data, status=response_status)

    @action(detail=False, methods=["get"], url_path="template", url_name="template")
    def template(self, request):
        response = HttpResponse(build_template(), content_type="text/csv; charset=utf-8")
        response["Content-Disposition"] = f'attachment; filename="{TEMPLATE_FILENAME}"'
        return response

    @action(detail=False, methods=["post"], url_path="manual", url_name="manual")
    def manual(self, request):
        serializer = MpesaManualEntrySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        created = self.handle_service_call(
            MpesaImportService.create_manual_entry,
            request.user,
            serializer.validated_data,
            correlation_id=getattr(request, "correlation_id", ""),
        )
        return Response(TransactionSerializer(created).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["get"], url_path="categories", url_name="categories")
    def categories(self, request):
        return Response([{"value": key, "label": label} for key, label in MPESA_CATEGORIES.items()])


# -------------------------------------------------------------------
# DASHBOARD AND CHANGE FEED
# -------------------------------------------------------------------


class DashboardView(ServiceExceptionHandlerMixin, APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        summary = self.handle_service_call(ReportService.dashboard_summary, request.user)
        return Response(DashboardSerializer(summary).data)


class ChangeFeedView(ServiceExceptionHandlerMixin, APIView):
    """
    Change events after ``?since=`` (a cursor), oldest first.

    ``?exclude=`` takes comma-separated correlation ids whose events the
    caller has already applied locally. ``?table=`` narrows to one table.
    """

    permission_classes = [IsAuthenticated]

    def get(self, request):
        try:
            since = int(request.query_params.get("since", 0))
        except (TypeError, ValueError):
            raise ValidationError({"since": "Cursor must be an integer."})
        if since < 0:
            raise ValidationError({"since": "Cursor must not be negative."})

        table = request.query_params.get("table") or None
        if table and table not in ("transactions", "budgets"):
            raise ValidationError({"table": f"Unknown table: {table}"})

        excluded = [value.strip() for value in request.query_params.get("exclude", "").split(",")]
        events = self.handle_service_call(
            ChangeFeedService.events_since,
            request.user,
            since=since,
            exclude_correlation_ids=excluded,
            table=table,
        )
        cursor = events[-1].id if events else since
        return Response({"events": ChangeEventSerializer(events, many=True).data, "cursor": cursor})
