"""
URL configuration for the tracker API.

RESTful routes for transactions, categories and budgets, the M-Pesa actions
under ``mpesa/`` and the dashboard and change feed endpoints.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from . import views

router = DefaultRouter()

router.register(r"transactions", views.TransactionViewSet, basename="transaction")
router.register(r"categories", views.CategoryViewSet, basename="category")
router.register(r"budgets", views.BudgetViewSet, basename="budget")

# M-Pesa import, template download, manual entry and category labels
router.register(r"mpesa", views.MpesaViewSet, basename="mpesa")

urlpatterns = [
    path("", include(router.urls)),
    path("dashboard/", views.DashboardView.as_view(), name="dashboard"),
    path("changes/", views.ChangeFeedView.as_view(), name="changes"),
]
