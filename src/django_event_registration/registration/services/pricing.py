"""Pricing for the registration wizard.

All amounts are :class:`~decimal.Decimal`; no float ever touches a price.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from django_event_registration.registration.session import TicketOffer

ZERO = Decimal("0.00")

ZERO_DECIMAL_CURRENCIES: frozenset[str] = frozenset(
    {
        "BIF",
        "CLP",
        "DJF",
        "GNF",
        "JPY",
        "KMF",
        "KRW",
        "MGA",
        "PYG",
        "RWF",
        "UGX",
        "VND",
        "VUV",
        "XAF",
        "XOF",
        "XPF",
    }
)

_CURRENCY_SYMBOLS: dict[str, str] = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "KRW": "₩",
    "CAD": "CA$",
    "AUD": "A$",
}


@dataclass(frozen=True)
class OrderSummary:
    """Pricing breakdown shown on the payment step."""

    ticket_name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    total: Decimal
    currency: str


def calculate_total(ticket: "TicketOffer | None", quantity: int) -> Decimal:
    """Return the total cost of ``quantity`` units of ``ticket``.

    Args:
        ticket: The selected ticket offer, or ``None`` when nothing is selected.
        quantity: Number of tickets.

    Returns:
        ``ticket.price * quantity`` computed exactly, or ``Decimal("0.00")``
        when no ticket is selected.
    """
    if ticket is None:
        return ZERO
    return ticket.price * quantity


def build_order_summary(ticket: "TicketOffer | None", quantity: int, currency: str) -> OrderSummary | None:
    """Build the order summary for the selected ticket, or ``None`` without one."""
    if ticket is None:
        return None
    line_total = calculate_total(ticket, quantity)
    return OrderSummary(
        ticket_name=ticket.name,
        quantity=quantity,
        unit_price=ticket.price,
        line_total=line_total,
        total=line_total,
        currency=currency.upper(),
    )


def format_currency(amount: Decimal | None, currency: str = "USD") -> str:
    r"""Format a decimal amount as a human-readable currency string.

    ``None`` is treated as zero. Zero-decimal currencies (e.g. JPY, KRW) are
    rendered without decimal places.

    Args:
        amount: The monetary amount, or ``None``.
        currency: An ISO 4217 currency code (default ``"USD"``).

    Returns:
        A formatted string such as ``"$10.00"`` or ``"¥1000"``.
    """
    if amount is None:
        amount = ZERO

    currency_upper = currency.upper()
    symbol = _CURRENCY_SYMBOLS.get(currency_upper, f"{currency_upper} ")

    if currency_upper in ZERO_DECIMAL_CURRENCIES:
        return f"{symbol}{int(amount)}"

    return f"{symbol}{amount:.2f}"
