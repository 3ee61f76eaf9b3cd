"""Tests for django_event_registration.registration.services.pricing."""

from decimal import Decimal

import pytest

from django_event_registration.registration.services.pricing import (
    OrderSummary,
    build_order_summary,
    calculate_total,
    format_currency,
)
from django_event_registration.registration.session import TicketOffer


@pytest.mark.unit
class TestCalculateTotal:
    def test_exact_decimal_product(self, general_ticket):
        total = calculate_total(general_ticket, 3)
        assert total == Decimal("75.00")
        assert str(total) == "75.00"

    def test_no_ticket_is_zero(self):
        assert calculate_total(None, 5) == Decimal("0.00")

    def test_no_float_drift(self):
        ticket = TicketOffer(id="t", name="Tenth", price=Decimal("0.10"), available=10, max_per_person=10)
        assert calculate_total(ticket, 3) == Decimal("0.30")

    def test_free_ticket(self):
        ticket = TicketOffer(id="comp", name="Speaker", price=Decimal("0"), available=1, max_per_person=1)
        assert calculate_total(ticket, 1) == Decimal("0")


@pytest.mark.unit
class TestBuildOrderSummary:
    def test_summary_for_selected_ticket(self, vip_ticket):
        summary = build_order_summary(vip_ticket, 2, "usd")

        assert summary == OrderSummary(
            ticket_name="VIP",
            quantity=2,
            unit_price=Decimal("100"),
            line_total=Decimal("200"),
            total=Decimal("200"),
            currency="USD",
        )

    def test_none_without_ticket(self):
        assert build_order_summary(None, 1, "USD") is None


@pytest.mark.unit
class TestFormatCurrency:
    def test_usd(self):
        assert format_currency(Decimal("75"), "USD") == "$75.00"

    def test_none_is_zero(self):
        assert format_currency(None) == "$0.00"

    def test_zero_decimal_currency(self):
        assert format_currency(Decimal("1000"), "jpy") == "¥1000"

    def test_unknown_currency_uses_code(self):
        assert format_currency(Decimal("12.5"), "CHF") == "CHF 12.50"
