"""Registration session state for the event registration wizard.

A :class:`RegistrationSession` holds everything an attendee has entered while
the registration dialog is open: the chosen ticket, quantity, attendee
details, payment method, and the state of the payment submission. Sessions
live in memory only and are owned by a single
:class:`~django_event_registration.registration.services.wizard.WizardController`.
"""

from dataclasses import dataclass, field, fields
from decimal import Decimal, InvalidOperation
from typing import Any, Self

from django.db import models

from django_event_registration.registration.services.pricing import calculate_total


class Step(models.TextChoices):
    """Positions in the registration workflow, in display order."""

    TICKET_SELECTION = "tickets", "Select Ticket"
    ATTENDEE_INFO = "info", "Attendee Info"
    PAYMENT = "payment", "Payment"
    CONFIRMATION = "confirmation", "Confirmation"


STEP_ORDER: tuple[Step, ...] = (
    Step.TICKET_SELECTION,
    Step.ATTENDEE_INFO,
    Step.PAYMENT,
    Step.CONFIRMATION,
)


class PaymentMethod(models.TextChoices):
    """How the attendee intends to pay."""

    CARD = "card", "Credit Card"
    TRANSFER = "transfer", "Bank Transfer"


class SubmissionStatus(models.TextChoices):
    """Lifecycle states for a payment submission attempt."""

    IDLE = "idle", "Idle"
    IN_FLIGHT = "in_flight", "Processing"
    SUCCEEDED = "succeeded", "Succeeded"
    FAILED = "failed", "Failed"


@dataclass(frozen=True)
class SubmissionState:
    """The current submission status, with a reason when it failed."""

    status: SubmissionStatus = SubmissionStatus.IDLE
    reason: str = ""

    @classmethod
    def idle(cls) -> Self:
        return cls(status=SubmissionStatus.IDLE)

    @classmethod
    def in_flight(cls, reason: str = "") -> Self:
        return cls(status=SubmissionStatus.IN_FLIGHT, reason=reason)

    @classmethod
    def succeeded(cls) -> Self:
        return cls(status=SubmissionStatus.SUCCEEDED)

    @classmethod
    def failed(cls, reason: str) -> Self:
        return cls(status=SubmissionStatus.FAILED, reason=reason)

    @property
    def is_in_flight(self) -> bool:
        return self.status == SubmissionStatus.IN_FLIGHT


@dataclass(frozen=True)
class TicketOffer:
    """A purchasable ticket as supplied by the ticket catalog.

    Offers are read-only for the lifetime of a registration session. The
    price is always held as a :class:`~decimal.Decimal`; ints and strings are
    converted on construction.
    """

    id: str
    name: str
    price: Decimal
    available: int
    max_per_person: int
    description: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.price, Decimal):
            try:
                object.__setattr__(self, "price", Decimal(str(self.price)))
            except InvalidOperation:
                msg = f"Ticket '{self.id}' has an invalid price: {self.price!r}"
                raise ValueError(msg) from None
        if not self.price.is_finite() or self.price < 0:
            msg = f"Ticket '{self.id}' price cannot be negative"
            raise ValueError(msg)
        if isinstance(self.available, bool) or not isinstance(self.available, int) or self.available < 0:
            msg = f"Ticket '{self.id}' availability must be a non-negative integer"
            raise ValueError(msg)
        if isinstance(self.max_per_person, bool) or not isinstance(self.max_per_person, int) or self.max_per_person < 1:
            msg = f"Ticket '{self.id}' max_per_person must be a positive integer"
            raise ValueError(msg)

    @property
    def max_quantity(self) -> int:
        """Return the most tickets one attendee may buy right now."""
        return min(self.max_per_person, self.available)

    @property
    def is_sold_out(self) -> bool:
        return self.available == 0


@dataclass(frozen=True)
class AttendeeInfo:
    """Personal details collected on the attendee step."""

    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    organization: str = ""
    dietary_restrictions: str = ""
    special_requirements: str = ""

    REQUIRED_FIELDS = ("first_name", "last_name", "email", "phone", "organization")
    OPTIONAL_FIELDS = ("dietary_restrictions", "special_requirements")
    FIELD_NAMES = REQUIRED_FIELDS + OPTIONAL_FIELDS

    def replace(self, field_name: str, value: str) -> Self:
        """Return a copy with ``field_name`` set to ``value``.

        Raises:
            KeyError: If ``field_name`` is not an attendee field.
        """
        if field_name not in self.FIELD_NAMES:
            raise KeyError(field_name)
        data = self.as_dict()
        data[field_name] = "" if value is None else str(value)
        return type(self)(**data)

    def as_dict(self) -> dict[str, str]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


_WIRE_ATTENDEE_KEYS: dict[str, str] = {
    "first_name": "firstName",
    "last_name": "lastName",
    "email": "email",
    "phone": "phone",
    "organization": "organization",
    "dietary_restrictions": "dietaryRestrictions",
    "special_requirements": "specialRequirements",
}


@dataclass(frozen=True)
class RegistrationPayload:
    """The finalized registration handed to the submission collaborator."""

    ticket_id: str
    quantity: int
    attendee_info: AttendeeInfo
    payment_method: PaymentMethod

    def as_dict(self) -> dict[str, Any]:
        """Return the payload in its wire shape (camelCase keys)."""
        return {
            "ticketId": self.ticket_id,
            "quantity": self.quantity,
            "attendeeInfo": {
                wire: getattr(self.attendee_info, name) for name, wire in _WIRE_ATTENDEE_KEYS.items()
            },
            "paymentMethod": str(self.payment_method),
        }


@dataclass
class RegistrationSession:
    """Mutable state of one open registration dialog.

    ``generation`` identifies the session instance; submission outcomes
    tagged with a different generation belong to a discarded session.
    """

    event_name: str
    tickets: tuple[TicketOffer, ...]
    generation: int
    step: Step = Step.TICKET_SELECTION
    selected_ticket: TicketOffer | None = None
    quantity: int = 1
    attendee_info: AttendeeInfo = field(default_factory=AttendeeInfo)
    payment_method: PaymentMethod = PaymentMethod.CARD
    submission: SubmissionState = field(default_factory=SubmissionState.idle)

    @property
    def total_amount(self) -> Decimal:
        return calculate_total(self.selected_ticket, self.quantity)

    def find_ticket(self, ticket_id: str) -> TicketOffer | None:
        return next((t for t in self.tickets if t.id == ticket_id), None)

    def build_payload(self) -> RegistrationPayload:
        """Snapshot the session into the payload sent on submission.

        Raises:
            ValueError: If no ticket has been selected.
        """
        if self.selected_ticket is None:
            msg = "Cannot build a registration payload without a selected ticket."
            raise ValueError(msg)
        return RegistrationPayload(
            ticket_id=self.selected_ticket.id,
            quantity=self.quantity,
            attendee_info=self.attendee_info,
            payment_method=self.payment_method,
        )
