"""Order URL configuration.

``/orders/{id}/cancel/`` and ``/orders/{id}/status/`` are routed from the
ViewSet's extra actions.
"""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.orders.views import OrderViewSet

router = DefaultRouter(trailing_slash=True)
router.register("orders", OrderViewSet, basename="order")

urlpatterns = router.urls
