"""TOML loader for ticket catalogs.

Loads and validates an event's ticket catalog so the registration wizard can
be opened without a database::

    [event]
    name = "PyCon Test"

    [[event.tickets]]
    id = "vip"
    name = "VIP"
    price = 100.00
    available = 5
    max_per_person = 2
    description = "Front row seats"
"""

import tomllib
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any

from django_event_registration.registration.session import TicketOffer

_REQUIRED_EVENT_FIELDS: set[str] = {"name", "tickets"}
_REQUIRED_TICKET_FIELDS: set[str] = {"id", "name", "price", "available", "max_per_person"}


@dataclass(frozen=True)
class TicketCatalog:
    """An event name and its ticket offers, in catalog order."""

    event_name: str
    tickets: tuple[TicketOffer, ...]


def load_ticket_catalog(path: str | Path) -> TicketCatalog:
    """Load and validate a ticket catalog TOML file.

    Args:
        path: Filesystem path to the TOML file.

    Returns:
        The parsed :class:`TicketCatalog`. Prices are read as ``Decimal``.

    Raises:
        FileNotFoundError: If *path* does not exist.
        TypeError: If a table has the wrong type.
        ValueError: If required keys are missing, ticket ids repeat, a ticket
            value is invalid, or the file is not valid TOML.
    """
    path = Path(path)
    if not path.exists():
        msg = f"Ticket catalog file not found: {path}"
        raise FileNotFoundError(msg)

    with path.open("rb") as fh:
        try:
            data: dict[str, Any] = tomllib.load(fh, parse_float=Decimal)
        except tomllib.TOMLDecodeError as exc:
            msg = f"Invalid TOML in {path}: {exc}"
            raise ValueError(msg) from exc

    if "event" not in data:
        msg = "Missing required [event] table in catalog file"
        raise ValueError(msg)

    event = data["event"]
    _validate_mapping(event, _REQUIRED_EVENT_FIELDS, "event")

    tickets = event["tickets"]
    if not isinstance(tickets, list) or not tickets:
        msg = "event.tickets must be a non-empty list"
        raise ValueError(msg)

    offers = [_build_offer(item, f"event.tickets[{idx}]") for idx, item in enumerate(tickets)]
    _validate_unique_ids(offers)
    return TicketCatalog(event_name=str(event["name"]), tickets=tuple(offers))


def _build_offer(item: object, label: str) -> TicketOffer:
    """Convert one ``[[event.tickets]]`` table into a :class:`TicketOffer`."""
    _validate_mapping(item, _REQUIRED_TICKET_FIELDS, label)
    ticket_id = item["id"]
    if not isinstance(ticket_id, str) or not ticket_id:
        msg = f"{label}.id must be a non-empty string"
        raise ValueError(msg)
    try:
        return TicketOffer(
            id=ticket_id,
            name=str(item["name"]),
            price=item["price"],
            available=item["available"],
            max_per_person=item["max_per_person"],
            description=str(item.get("description", "")),
        )
    except ValueError as exc:
        msg = f"{label}: {exc}"
        raise ValueError(msg) from exc


def _validate_unique_ids(offers: list[TicketOffer]) -> None:
    seen: set[str] = set()
    duplicates: set[str] = set()
    for offer in offers:
        if offer.id in seen:
            duplicates.add(offer.id)
        seen.add(offer.id)
    if duplicates:
        msg = f"event.tickets has duplicate ids: {', '.join(sorted(duplicates))}"
        raise ValueError(msg)


def _validate_mapping(mapping: object, required: set[str], label: str) -> None:
    """Validate that *mapping* is a dict containing all *required* keys.

    Raises:
        TypeError: If *mapping* is not a dict.
        ValueError: If *mapping* is missing required keys.
    """
    if not isinstance(mapping, dict):
        msg = f"{label} must be a mapping, got {type(mapping).__name__}"
        raise TypeError(msg)
    missing = required - mapping.keys()
    if missing:
        msg = f"{label} is missing required fields: {', '.join(sorted(missing))}"
        raise ValueError(msg)
