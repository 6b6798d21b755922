"""Unit tests for Order DTOs (Pydantic v2)."""

from __future__ import annotations

from uuid import uuid4

import pytest
from pydantic import ValidationError

from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO, Shortfall

pytestmark = pytest.mark.unit


class TestCreateOrderItemDTO:
    def test_valid_item(self):
        pid = uuid4()
        item = CreateOrderItemDTO(product_id=pid, quantity=2)
        assert item.product_id == pid
        assert item.quantity == 2

    def test_accepts_uuid_string(self):
        pid = uuid4()
        item = CreateOrderItemDTO(product_id=str(pid), quantity=1)
        assert item.product_id == pid

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_non_positive_quantity_rejected(self, quantity):
        with pytest.raises(ValidationError, match="Quantity must be at least 1"):
            CreateOrderItemDTO(product_id=uuid4(), quantity=quantity)

    def test_invalid_uuid_rejected(self):
        with pytest.raises(ValidationError):
            CreateOrderItemDTO(product_id="not-a-uuid", quantity=1)

    def test_is_frozen(self):
        item = CreateOrderItemDTO(product_id=uuid4(), quantity=1)
        with pytest.raises(ValidationError):
            item.quantity = 5


class TestCreateOrderDTO:
    def test_valid_order(self):
        dto = CreateOrderDTO(
            items=[
                CreateOrderItemDTO(product_id=uuid4(), quantity=1),
                CreateOrderItemDTO(product_id=uuid4(), quantity=3),
            ]
        )
        assert len(dto.items) == 2

    def test_empty_items_rejected(self):
        with pytest.raises(ValidationError, match="at least one item"):
            CreateOrderDTO(items=[])

    def test_repeated_product_lines_allowed(self):
        pid = uuid4()
        dto = CreateOrderDTO(
            items=[
                CreateOrderItemDTO(product_id=pid, quantity=1),
                CreateOrderItemDTO(product_id=pid, quantity=2),
            ]
        )
        assert [item.quantity for item in dto.items] == [1, 2]

    def test_validation_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            CreateOrderDTO(items=[])


class TestShortfall:
    def test_json_dump(self):
        pid = uuid4()
        shortfall = Shortfall(
            product_id=pid, product_name="Lamp", requested=3, available=2
        )
        assert shortfall.model_dump(mode="json") == {
            "product_id": str(pid),
            "product_name": "Lamp",
            "requested": 3,
            "available": 2,
        }
