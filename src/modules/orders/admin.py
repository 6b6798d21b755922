"""Read-mostly order views for Django admin.

Status changes made here bypass the state machine, so the status field is
read-only; use the ``/orders/{id}/status/`` endpoint instead.  Orders are
never deleted, so their history and stock accounting stay intact.
"""

from django.contrib import admin

from modules.orders.models import Order, OrderItem, OrderStatusHistory


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    can_delete = False
    readonly_fields = ["product", "quantity", "unit_price", "subtotal"]


class OrderStatusHistoryInline(admin.TabularInline):
    model = OrderStatusHistory
    extra = 0
    can_delete = False
    readonly_fields = ["old_status", "new_status", "changed_by", "notes", "created_at"]


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ["id", "user", "status", "total_amount", "created_at"]
    list_filter = ["status"]
    search_fields = ["id", "user__username"]
    readonly_fields = ["id", "user", "status", "total_amount", "created_at", "updated_at"]
    inlines = [OrderItemInline, OrderStatusHistoryInline]

    def has_delete_permission(self, request, obj=None):
        return False

    def get_actions(self, request):
        actions = super().get_actions(request)
        actions.pop("delete_selected", None)
        return actions
