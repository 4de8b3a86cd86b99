"""
Unit Tests for Order Service.

Status parsing and totals are pure; the workflow runs against the
in-memory database.
"""

import re
from decimal import Decimal

import pytest

from eshop.backend.core.exceptions import ConflictError, NotFoundError, ValidationError
from eshop.backend.models.order import OrderStatus, parse_order_status
from eshop.backend.repositories.order import OrderFilter
from eshop.backend.schemas.order import OrderCreate, OrderItemInput
from eshop.backend.services.order import (
    ORDER_CREATED_NOTE,
    OrderService,
    calculate_order_total,
    generate_external_id,
)


def _order(**overrides) -> OrderCreate:
    data = {
        "customer_name": "Firma s.r.o.",
        "email": "Nakup@Firma.sk",
        "items": [
            OrderItemInput(name="UPS 3000VA", quantity=2, price=1200.50),
            OrderItemInput(name="Servisný balík", quantity=1, price=99.99),
        ],
    }
    data.update(overrides)
    return OrderCreate(**data)


class TestParseOrderStatus:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("shipped", OrderStatus.SHIPPED),
            ("CONFIRMED", OrderStatus.CONFIRMED),
            ("Spracováva sa", OrderStatus.PROCESSING),
            ("zrušená", OrderStatus.CANCELLED),
            ("PRIJATA", OrderStatus.NEW),
            ("expedovaná", OrderStatus.SHIPPED),
            ("DOKONČENÁ", OrderStatus.DELIVERED),
            ("Stornovana", OrderStatus.CANCELLED),
            ("  delivered ", OrderStatus.DELIVERED),
        ],
    )
    def test_known_values(self, value, expected):
        assert parse_order_status(value) == expected

    @pytest.mark.parametrize("value", [None, "", "archived"])
    def test_unknown_is_new(self, value):
        assert parse_order_status(value) == OrderStatus.NEW


class TestHelpers:
    def test_external_id_format(self):
        assert re.fullmatch(r"ORD-\d{6}-[A-Z0-9]{6}", generate_external_id())

    def test_total_rounds_to_cents(self):
        assert calculate_order_total([(Decimal("10.005"), 1), (0.1, 3)]) == Decimal("10.31")

    def test_total_of_nothing(self):
        assert calculate_order_total([]) == Decimal("0.00")


class TestCreateOrder:
    async def test_computes_total_and_history(self, db_session):
        order = await OrderService(db_session).create_order(_order())

        assert order.total == Decimal("2500.99")
        assert order.email == "nakup@firma.sk"
        assert order.status == OrderStatus.NEW
        assert order.payment_method == "unspecified"
        assert [item.name for item in order.items] == ["UPS 3000VA", "Servisný balík"]
        assert len(order.history) == 1
        assert order.history[0].note == ORDER_CREATED_NOTE
        assert re.fullmatch(r"ORD-\d{6}-[A-Z0-9]{6}", order.external_id)

    async def test_keeps_given_number_and_legacy_status(self, db_session):
        order = await OrderService(db_session).create_order(
            _order(external_id="ORD-2025-0001", status="EXPEDOVANA")
        )
        assert order.external_id == "ORD-2025-0001"
        assert order.status == OrderStatus.SHIPPED

    async def test_rejects_duplicate_number(self, db_session):
        service = OrderService(db_session)
        await service.create_order(_order(external_id="ORD-DUP"))

        with pytest.raises(ConflictError):
            await service.create_order(_order(external_id="ORD-DUP"))

    async def test_rejects_empty_items(self, db_session):
        with pytest.raises(ValidationError, match="aspoň jednu položku"):
            await OrderService(db_session).create_order(_order(items=[]))

    def test_accepts_backoffice_field_names(self):
        data = OrderCreate.model_validate(
            {"id": "ORD-OLD-1", "customer": "Stará firma", "email": "a@b.sk", "items": []}
        )
        assert data.external_id == "ORD-OLD-1"
        assert data.customer_name == "Stará firma"


class TestStatusWorkflow:
    async def test_update_status_appends_history(self, db_session):
        service = OrderService(db_session)
        order = await service.create_order(_order())

        updated = await service.update_status(order.external_id, "Odoslaná", note="Kuriér DPD")

        assert updated.status == OrderStatus.SHIPPED
        assert updated.status_label == "Odoslaná"
        assert {entry.status for entry in updated.history} == {OrderStatus.NEW, OrderStatus.SHIPPED}
        assert "Kuriér DPD" in {entry.note for entry in updated.history}

    async def test_lookup_by_internal_id(self, db_session):
        service = OrderService(db_session)
        order = await service.create_order(_order())
        assert (await service.get_order(order.id)).external_id == order.external_id

    async def test_unknown_order(self, db_session):
        with pytest.raises(NotFoundError):
            await OrderService(db_session).update_status("ORD-NOPE", "shipped")


class TestListingAndStats:
    async def test_filter_by_status_label(self, db_session):
        service = OrderService(db_session)
        await service.create_order(_order(status="confirmed"))
        await service.create_order(_order())

        orders, total = await service.list_orders(OrderFilter(status="Potvrdená"))

        assert total == 1
        assert orders[0].status == OrderStatus.CONFIRMED

    async def test_search_by_customer(self, db_session):
        service = OrderService(db_session)
        await service.create_order(_order(customer_name="Alfa a.s."))
        await service.create_order(_order(customer_name="Beta s.r.o."))

        orders, total = await service.list_orders(OrderFilter(search="alfa"))
        assert total == 1
        assert orders[0].customer_name == "Alfa a.s."

    async def test_stats_count_every_status(self, db_session):
        service = OrderService(db_session)
        await service.create_order(_order())
        await service.create_order(_order(status="delivered"))

        stats = await service.stats()

        assert stats["total_orders"] == 2
        assert stats["total_revenue"] == pytest.approx(5001.98)
        assert stats["orders_by_status"]["new"] == 1
        assert stats["orders_by_status"]["delivered"] == 1
        assert stats["orders_by_status"]["cancelled"] == 0
        assert set(stats["orders_by_status"]) == {status.value for status in OrderStatus}

    async def test_stats_on_empty_database(self, db_session):
        stats = await OrderService(db_session).stats()
        assert stats["total_orders"] == 0
        assert stats["total_revenue"] == 0
