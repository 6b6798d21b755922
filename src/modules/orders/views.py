"""Order API views.

Exposes ``OrderWorkflow`` and ``OrderQueryService`` via HTTP using a DRF
ViewSet.  Domain exceptions are translated into HTTP responses by their
``code`` tag; the view never swallows generic exceptions.
"""

from __future__ import annotations

from typing import Any, Dict, Union

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.core.principal import PermissionDenied, Principal
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
from modules.orders.exceptions import (
    InsufficientStock,
    InvalidState,
    InvalidTransition,
    OrderError,
    OrderNotFound,
    OrderValidationError,
    ProductNotFound,
    StorageFailure,
)
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    CancelOrderSerializer,
    CreateOrderSerializer,
    OrderListSerializer,
    OrderSerializer,
    UpdateOrderStatusSerializer,
)
from modules.orders.services import OrderQueryService, OrderWorkflow
from modules.products.repositories.django_repository import ProductDjangoRepository

ERROR_STATUS_CODES: Dict[str, int] = {
    OrderValidationError.code: status.HTTP_400_BAD_REQUEST,
    ProductNotFound.code: status.HTTP_400_BAD_REQUEST,
    InsufficientStock.code: status.HTTP_409_CONFLICT,
    OrderNotFound.code: status.HTTP_404_NOT_FOUND,
    InvalidState.code: status.HTTP_400_BAD_REQUEST,
    InvalidTransition.code: status.HTTP_400_BAD_REQUEST,
    PermissionDenied.code: status.HTTP_403_FORBIDDEN,
    StorageFailure.code: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def error_response(exc: Union[OrderError, PermissionDenied]) -> Response:
    """Translate a tagged domain error into a DRF response."""
    body: Dict[str, Any] = {"detail": str(exc), "code": exc.code}
    if exc.code == InsufficientStock.code:
        body["shortfalls"] = [s.model_dump(mode="json") for s in exc.shortfalls]
    elif exc.code == InvalidTransition.code:
        body["reason"] = exc.reason
    return Response(
        body,
        status=ERROR_STATUS_CODES.get(exc.code, status.HTTP_400_BAD_REQUEST),
    )


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderWorkflow`` / ``OrderQueryService`` with injected
    repositories (DIP).  Does **not** extend ``ModelViewSet``: all ORM
    access goes through the service/repository layer.
    """

    queryset = Order.objects.none()
    serializer_class = OrderSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        order_repository = OrderDjangoRepository()
        self._workflow = OrderWorkflow(
            order_repository=order_repository,
            product_repository=ProductDjangoRepository(),
        )
        self._queries = OrderQueryService(order_repository=order_repository)

    def get_throttles(self) -> list[BaseThrottle]:
        """Assign throttle scopes per action."""
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_creation"
        elif self.action in {"list", "retrieve"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    def _principal(self, request: Request) -> Principal:
        return Principal.from_user(request.user)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/"""
        create_serializer = CreateOrderSerializer(data=request.data)
        create_serializer.is_valid(raise_exception=True)

        try:
            dto = CreateOrderDTO(
                items=[
                    CreateOrderItemDTO(
                        product_id=item["product_id"],
                        quantity=item["quantity"],
                    )
                    for item in create_serializer.validated_data["items"]
                ],
            )
        except ValueError as exc:
            return Response(
                {"detail": str(exc), "code": OrderValidationError.code},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            order = self._workflow.create_order(self._principal(request), dto)
        except OrderError as exc:
            return error_response(exc)

        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/?page=N&page_size=M

        Bad pagination parameters fall back to defaults instead of
        producing an error.
        """
        try:
            page = self._queries.list_orders(
                self._principal(request),
                page=request.query_params.get("page"),
                page_size=request.query_params.get("page_size"),
            )
        except OrderError as exc:
            return error_response(exc)
        return Response(
            {
                "results": OrderListSerializer(page.items, many=True).data,
                "pagination": {
                    "current_page": page.page,
                    "page_size": page.page_size,
                    "total_items": page.total_count,
                    "total_pages": page.total_pages,
                },
            }
        )

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        try:
            order = self._queries.get_order(self._principal(request), pk)
        except OrderError as exc:
            return error_response(exc)
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Cancel
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel/

        Cancels one of the caller's pending orders and restores its stock.
        """
        serializer = CancelOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order = self._workflow.cancel_order(
                self._principal(request),
                pk,
                notes=serializer.validated_data["notes"],
            )
        except OrderError as exc:
            return error_response(exc)
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Status Update (admin)
    # ------------------------------------------------------------------

    @action(detail=True, methods=["put", "patch"], url_path="status")
    def update_status(self, request: Request, pk: str | None = None) -> Response:
        """PUT/PATCH /api/v1/orders/{pk}/status/"""
        serializer = UpdateOrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order = self._workflow.update_status(
                self._principal(request),
                pk,
                serializer.validated_data["status"],
                notes=serializer.validated_data["notes"],
            )
        except (OrderError, PermissionDenied) as exc:
            return error_response(exc)
        return Response(OrderSerializer(order).data)
