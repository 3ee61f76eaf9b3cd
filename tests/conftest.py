"""Shared fixtures for django-event-registration tests."""

import asyncio
from decimal import Decimal

import pytest

from django_event_registration.registration.services.submission import SubmissionOutcome
from django_event_registration.registration.services.wizard import WizardController
from django_event_registration.registration.session import TicketOffer

VALID_ATTENDEE = {
    "first_name": "Ada",
    "last_name": "Lovelace",
    "email": "ada@example.com",
    "phone": "+44 20 7946 0000",
    "organization": "Analytical Engines Ltd",
    "dietary_restrictions": "Vegetarian",
    "special_requirements": "",
}


class RecordingRegister:
    """Async submission collaborator double that records every payload."""

    def __init__(self, *outcomes: SubmissionOutcome) -> None:
        self.calls = []
        self._outcomes = list(outcomes)

    async def __call__(self, payload):
        self.calls.append(payload)
        await asyncio.sleep(0)
        if self._outcomes:
            return self._outcomes.pop(0)
        return SubmissionOutcome.success()


@pytest.fixture
def vip_ticket() -> TicketOffer:
    return TicketOffer(
        id="vip",
        name="VIP",
        price=Decimal("100"),
        available=5,
        max_per_person=2,
        description="Front row seats",
    )


@pytest.fixture
def general_ticket() -> TicketOffer:
    return TicketOffer(
        id="general",
        name="General Admission",
        price=Decimal("25.00"),
        available=100,
        max_per_person=10,
    )


@pytest.fixture
def sold_out_ticket() -> TicketOffer:
    return TicketOffer(id="early", name="Early Bird", price=Decimal("10.00"), available=0, max_per_person=4)


@pytest.fixture
def catalog(vip_ticket, general_ticket, sold_out_ticket) -> list[TicketOffer]:
    return [vip_ticket, general_ticket, sold_out_ticket]


@pytest.fixture
def register() -> RecordingRegister:
    return RecordingRegister()


@pytest.fixture
def wizard(register, catalog) -> WizardController:
    controller = WizardController(register)
    controller.open("TestCon 2027", catalog)
    return controller


def fill_attendee(controller: WizardController, values: dict[str, str] | None = None) -> None:
    for name, value in (values or VALID_ATTENDEE).items():
        controller.update_attendee_field(name, value)


@pytest.fixture
def wizard_at_payment(wizard) -> WizardController:
    wizard.select_ticket("vip")
    wizard.set_quantity(2)
    fill_attendee(wizard)
    assert wizard.advance_from_attendee_info()
    return wizard
