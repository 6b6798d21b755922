"""Catalog management through Django admin.

Staff restock here by editing ``stock``; order placement and cancellation
adjust it through ``StockLedger``.  Products are retired with the
deactivate action, never deleted, since order items reference them.
"""

from django.contrib import admin

from modules.products.models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ["name", "price", "stock", "is_active", "updated_at"]
    list_filter = ["is_active"]
    search_fields = ["name", "description"]
    readonly_fields = ["id", "created_at", "updated_at"]
    actions = ["deactivate"]

    @admin.action(description="Retire selected products from the catalog")
    def deactivate(self, request, queryset):
        queryset.update(is_active=False)

    def has_delete_permission(self, request, obj=None):
        return False

    def get_actions(self, request):
        actions = super().get_actions(request)
        actions.pop("delete_selected", None)
        return actions
