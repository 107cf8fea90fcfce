from django.contrib import admin

from .models import Budget, Category, ChangeEvent, Transaction


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ("title", "user", "type", "amount", "category", "date")
    list_filter = ("type", "date")
    search_fields = ("title", "category", "description", "user__email")
    date_hierarchy = "date"


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ("name", "user", "type", "color")
    list_filter = ("type",)
    search_fields = ("name", "user__email")


@admin.register(Budget)
class BudgetAdmin(admin.ModelAdmin):
    list_display = ("category", "user", "amount", "currency", "period")
    list_filter = ("period", "currency")
    search_fields = ("category", "user__email")


@admin.register(ChangeEvent)
class ChangeEventAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "table", "event_type", "record_id", "correlation_id", "created_at")
    list_filter = ("table", "event_type")
    readonly_fields = [field.name for field in ChangeEvent._meta.fields]
