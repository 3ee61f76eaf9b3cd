"""Wizard controller for the event registration dialog.

The controller is the only thing that mutates a
:class:`~django_event_registration.registration.session.RegistrationSession`.
Every operation checks the step graph first and either applies the change or
returns a rejected :class:`TransitionResult`; validation problems and illegal
transitions are reported as data, never raised.

Steps move along ``tickets <-> info <-> payment -> confirmation``.
Confirmation is terminal and is only entered when the submission
collaborator accepts the registration. ``submit_payment()`` is the only
coroutine; at most one submission is in flight per session, and outcomes
that come back after the session was closed or reopened are dropped.
"""

import asyncio
import functools
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from django.db import models
from django.dispatch import Signal

from django_event_registration.registration.forms import validate_attendee_info
from django_event_registration.registration.services.pricing import OrderSummary, build_order_summary
from django_event_registration.registration.services.submission import (
    RegisterCallable,
    SubmissionAdapter,
    SubmissionOutcome,
    SubmissionTicket,
)
from django_event_registration.registration.session import (
    STEP_ORDER,
    AttendeeInfo,
    PaymentMethod,
    RegistrationPayload,
    RegistrationSession,
    Step,
    SubmissionState,
    TicketOffer,
)
from django_event_registration.registration.signals import (
    registration_completed,
    registration_failed,
    registration_submitted,
)
from django_event_registration.settings import RegistrationConfig, get_config

logger = logging.getLogger(__name__)

CANCELLED_REASON = "Registration was cancelled."


class Action(models.TextChoices):
    """Moves along the step graph."""

    SELECT = "select", "Select ticket"
    ADVANCE = "advance", "Continue"
    RETREAT = "retreat", "Back"
    CONFIRM = "confirm", "Confirm"


class RejectionReason(models.TextChoices):
    """Why the controller refused an operation."""

    NO_SESSION = "no_session", "Registration is not open"
    ILLEGAL_TRANSITION = "illegal_transition", "Not allowed at this step"
    UNKNOWN_TICKET = "unknown_ticket", "Unknown ticket"
    SOLD_OUT = "sold_out", "Ticket is sold out"
    QUANTITY_OUT_OF_RANGE = "quantity_out_of_range", "Quantity out of range"
    UNKNOWN_FIELD = "unknown_field", "Unknown attendee field"
    INVALID_FIELDS = "invalid_fields", "Some fields are invalid"
    PAYMENT_METHOD_UNAVAILABLE = "payment_method_unavailable", "Payment method unavailable"
    SUBMISSION_IN_FLIGHT = "submission_in_flight", "Registration is already being processed"
    SUBMISSION_FAILED = "submission_failed", "Registration failed"
    SUBMISSION_TIMED_OUT = "submission_timed_out", "Registration is taking longer than expected"
    STALE_SESSION = "stale_session", "Registration was closed"


_TRANSITIONS: dict[tuple[Step, Action], Step] = {
    (Step.TICKET_SELECTION, Action.SELECT): Step.ATTENDEE_INFO,
    (Step.ATTENDEE_INFO, Action.RETREAT): Step.TICKET_SELECTION,
    (Step.ATTENDEE_INFO, Action.ADVANCE): Step.PAYMENT,
    (Step.PAYMENT, Action.RETREAT): Step.ATTENDEE_INFO,
    (Step.PAYMENT, Action.CONFIRM): Step.CONFIRMATION,
}


def transition(step: Step, action: Action) -> Step | None:
    """Return the step reached by applying ``action`` at ``step``, or ``None`` if not allowed."""
    return _TRANSITIONS.get((step, action))


def _notify(signal: Signal, **kwargs: object) -> None:
    """Send ``signal`` and log receiver errors instead of raising them."""
    for receiver, response in signal.send_robust(sender=WizardController, **kwargs):
        if isinstance(response, Exception):
            logger.error(
                "Registration signal receiver %r raised: %s",
                receiver,
                response,
                exc_info=response,
            )


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a controller operation.

    Truthy when the operation was applied. ``step`` is the session's step
    after the operation (``None`` when no session is open).
    """

    accepted: bool
    step: Step | None
    reason: RejectionReason | None = None
    invalid_fields: frozenset[str] = frozenset()
    allowed_quantity: tuple[int, int] | None = None
    submission: SubmissionState | None = None

    def __bool__(self) -> bool:
        return self.accepted


@dataclass(frozen=True)
class StepProgress:
    """One entry of the progress indicator at the top of the dialog."""

    step: Step
    label: str
    position: int
    state: str


@dataclass(frozen=True)
class PaymentInstructions:
    """Where to send a bank transfer."""

    bank_name: str
    account_name: str
    account_number: str
    reference: str


class WizardController:
    """Drives one registration dialog from ticket selection to confirmation.

    Args:
        register: The submission collaborator, ``register(payload) -> outcome``.
            May be a coroutine function or a plain callable.
        config: Configuration to use instead of :func:`get_config`.
    """

    def __init__(self, register: RegisterCallable, *, config: RegistrationConfig | None = None) -> None:
        self._config = config if config is not None else get_config()
        self._adapter = SubmissionAdapter(register, timeout=self._config.submission_timeout_seconds)
        self._session: RegistrationSession | None = None
        self._generation = 0
        self._attempts = 0

    # -- Reads ----------------------------------------------------------------

    @property
    def session(self) -> RegistrationSession | None:
        return self._session

    @property
    def is_open(self) -> bool:
        return self._session is not None

    @property
    def step(self) -> Step | None:
        return self._session.step if self._session is not None else None

    @property
    def total_amount(self) -> Decimal | None:
        return self._session.total_amount if self._session is not None else None

    def progress(self) -> list[StepProgress]:
        """Return the progress indicator entries for the current step.

        Steps before the current one are ``complete``, the current step is
        ``current`` and the rest are ``upcoming``. Empty when no session is open.
        """
        if self._session is None:
            return []
        current = STEP_ORDER.index(self._session.step)
        entries = []
        for index, step in enumerate(STEP_ORDER):
            if index < current:
                state = "complete"
            elif index == current:
                state = "current"
            else:
                state = "upcoming"
            entries.append(StepProgress(step=step, label=str(step.label), position=index + 1, state=state))
        return entries

    def order_summary(self) -> OrderSummary | None:
        if self._session is None:
            return None
        return build_order_summary(self._session.selected_ticket, self._session.quantity, self._config.currency)

    def payment_instructions(self) -> PaymentInstructions | None:
        """Return bank transfer details when the attendee chose to pay by transfer."""
        if self._session is None or self._session.payment_method != PaymentMethod.TRANSFER:
            return None
        transfer = self._config.transfer
        return PaymentInstructions(
            bank_name=transfer.bank_name,
            account_name=transfer.account_name,
            account_number=transfer.account_number,
            reference=transfer.reference_hint,
        )

    def confirmation_message(self) -> str | None:
        if self._session is None or self._session.step != Step.CONFIRMATION:
            return None
        return (
            f"Thank you for registering for {self._session.event_name}. We've sent a "
            f"confirmation email to {self._session.attendee_info.email.strip()} with all the details."
        )

    # -- Open / close ---------------------------------------------------------

    def open(self, event_name: str, tickets: Iterable[TicketOffer]) -> RegistrationSession:
        """Start a fresh session at ticket selection, discarding any live one."""
        if self._session is not None:
            self.reset()
        self._generation += 1
        self._session = RegistrationSession(
            event_name=event_name,
            tickets=tuple(tickets),
            generation=self._generation,
            payment_method=PaymentMethod(self._config.default_payment_method),
        )
        logger.info(
            "Opened registration for '%s' with %d ticket offers (session %d)",
            event_name,
            len(self._session.tickets),
            self._generation,
        )
        return self._session

    def reset(self) -> None:
        """Discard the session and return to the unopened state."""
        session = self._session
        if session is None:
            return
        self._session = None
        logger.info(
            "Discarded registration session %d for '%s' at step %s",
            session.generation,
            session.event_name,
            session.step,
        )

    def close(self) -> None:
        """Close the dialog. Nothing entered so far is kept."""
        self.reset()

    def acknowledge_confirmation(self) -> TransitionResult:
        """Close the dialog after the attendee has seen the confirmation."""
        session = self._session
        if session is None:
            return self._reject(RejectionReason.NO_SESSION)
        if session.step != Step.CONFIRMATION:
            return self._reject(RejectionReason.ILLEGAL_TRANSITION)
        self.reset()
        return TransitionResult(accepted=True, step=None)

    # -- Step operations ------------------------------------------------------

    def select_ticket(self, ticket: TicketOffer | str) -> TransitionResult:
        """Pick a ticket from the catalog and move on to the attendee step.

        Quantity is always reset to 1.
        """
        session = self._session
        if session is None:
            return self._reject(RejectionReason.NO_SESSION)
        target = transition(session.step, Action.SELECT)
        if target is None:
            return self._reject(RejectionReason.ILLEGAL_TRANSITION)

        ticket_id = ticket.id if isinstance(ticket, TicketOffer) else ticket
        offer = session.find_ticket(ticket_id)
        if offer is None:
            return self._reject(RejectionReason.UNKNOWN_TICKET)
        if offer.is_sold_out:
            return self._reject(RejectionReason.SOLD_OUT)

        session.selected_ticket = offer
        session.quantity = 1
        session.step = target
        return self._accept()

    def set_quantity(self, quantity: int) -> TransitionResult:
        """Change the number of tickets.

        Values outside ``[1, min(max_per_person, available)]`` are rejected
        with the allowed range; the previous quantity is kept.
        """
        session = self._session
        if session is None:
            return self._reject(RejectionReason.NO_SESSION)
        ticket = session.selected_ticket
        if ticket is None or session.step == Step.CONFIRMATION:
            return self._reject(RejectionReason.ILLEGAL_TRANSITION)
        if session.submission.is_in_flight:
            return self._reject(RejectionReason.SUBMISSION_IN_FLIGHT)

        allowed = (1, ticket.max_quantity)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or not allowed[0] <= quantity <= allowed[1]:
            return self._reject(RejectionReason.QUANTITY_OUT_OF_RANGE, allowed_quantity=allowed)

        session.quantity = quantity
        return self._accept(allowed_quantity=allowed)

    def update_attendee_field(self, field_name: str, value: str) -> TransitionResult:
        """Set one attendee field. Only applies on the attendee step."""
        session = self._session
        if session is None:
            return self._reject(RejectionReason.NO_SESSION)
        if session.step != Step.ATTENDEE_INFO:
            return self._reject(RejectionReason.ILLEGAL_TRANSITION)
        if field_name not in AttendeeInfo.FIELD_NAMES:
            return self._reject(RejectionReason.UNKNOWN_FIELD)

        session.attendee_info = session.attendee_info.replace(field_name, value)
        return self._accept()

    def advance_from_attendee_info(self) -> TransitionResult:
        """Validate the attendee details and move on to payment if they pass."""
        session = self._session
        if session is None:
            return self._reject(RejectionReason.NO_SESSION)
        target = transition(session.step, Action.ADVANCE)
        if target is None:
            return self._reject(RejectionReason.ILLEGAL_TRANSITION)

        invalid = validate_attendee_info(session.attendee_info)
        if invalid:
            return self._reject(RejectionReason.INVALID_FIELDS, invalid_fields=invalid)

        session.step = target
        return self._accept()

    def retreat(self) -> TransitionResult:
        """Go back one step. Confirmation cannot be left this way."""
        session = self._session
        if session is None:
            return self._reject(RejectionReason.NO_SESSION)
        target = transition(session.step, Action.RETREAT)
        if target is None:
            return self._reject(RejectionReason.ILLEGAL_TRANSITION)
        if session.submission.is_in_flight:
            return self._reject(RejectionReason.SUBMISSION_IN_FLIGHT)

        if session.step == Step.PAYMENT:
            session.submission = SubmissionState.idle()
        session.step = target
        return self._accept()

    def set_payment_method(self, method: PaymentMethod | str) -> TransitionResult:
        session = self._session
        if session is None:
            return self._reject(RejectionReason.NO_SESSION)
        if session.step != Step.PAYMENT:
            return self._reject(RejectionReason.ILLEGAL_TRANSITION)
        if session.submission.is_in_flight:
            return self._reject(RejectionReason.SUBMISSION_IN_FLIGHT)

        try:
            chosen = PaymentMethod(method)
        except ValueError:
            return self._reject(RejectionReason.PAYMENT_METHOD_UNAVAILABLE)
        if chosen.value not in self._config.enabled_payment_methods:
            return self._reject(RejectionReason.PAYMENT_METHOD_UNAVAILABLE)

        session.payment_method = chosen
        return self._accept()

    async def submit_payment(self) -> TransitionResult:
        """Submit the registration to the collaborator.

        Only one attempt may be in flight per session; a call made while one
        is outstanding is rejected without contacting the collaborator. On
        success the session moves to confirmation. On failure it stays on the
        payment step with every entered value intact, and the attendee may
        retry by calling this again.

        If the configured timeout expires first, the call returns
        ``SUBMISSION_TIMED_OUT`` but the session stays in flight, with the
        timeout message as its reason, until the collaborator finishes. Its
        late outcome is then applied as if it had arrived in time.
        """
        session = self._session
        if session is None:
            return self._reject(RejectionReason.NO_SESSION)
        if session.step != Step.PAYMENT:
            return self._reject(RejectionReason.ILLEGAL_TRANSITION)
        if session.submission.is_in_flight:
            return self._reject(RejectionReason.SUBMISSION_IN_FLIGHT)

        payload = session.build_payload()
        total = session.total_amount
        _notify(registration_submitted, payload=payload, event_name=session.event_name)

        self._attempts += 1
        ticket = SubmissionTicket(generation=session.generation, attempt=self._attempts)
        session.submission = SubmissionState.in_flight()
        logger.info(
            "Submitting registration for '%s': %s x %d by %s, total %s (session %d, attempt %d)",
            session.event_name,
            payload.ticket_id,
            payload.quantity,
            payload.payment_method,
            total,
            ticket.generation,
            ticket.attempt,
        )

        try:
            tagged = await self._adapter.submit(payload, ticket)
        except asyncio.CancelledError:
            if self._is_current(ticket):
                session.submission = SubmissionState.failed(CANCELLED_REASON)
            raise

        if not self._is_current(tagged.ticket):
            logger.debug(
                "Dropping submission outcome for closed session %d (attempt %d)",
                tagged.ticket.generation,
                tagged.ticket.attempt,
            )
            return self._reject(RejectionReason.STALE_SESSION)

        if tagged.timed_out:
            # The session stays in flight until the collaborator really answers.
            session.submission = SubmissionState.in_flight(tagged.outcome.reason)
            logger.warning(
                "Registration for '%s' timed out (attempt %d); waiting for the collaborator to finish",
                session.event_name,
                ticket.attempt,
            )
            tagged.pending.add_done_callback(functools.partial(self._apply_late_outcome, ticket, payload))
            return self._reject(RejectionReason.SUBMISSION_TIMED_OUT)

        return self._apply_outcome(session, ticket, payload, tagged.outcome)

    # -- Helpers --------------------------------------------------------------

    def _apply_outcome(
        self,
        session: RegistrationSession,
        ticket: SubmissionTicket,
        payload: RegistrationPayload,
        outcome: SubmissionOutcome,
    ) -> TransitionResult:
        if outcome.ok:
            session.submission = SubmissionState.succeeded()
            session.step = transition(session.step, Action.CONFIRM) or session.step
            logger.info("Registration for '%s' confirmed (attempt %d)", session.event_name, ticket.attempt)
            _notify(registration_completed, payload=payload, event_name=session.event_name)
            return self._accept()

        session.submission = SubmissionState.failed(outcome.reason)
        logger.warning(
            "Registration for '%s' failed (attempt %d): %s",
            session.event_name,
            ticket.attempt,
            outcome.reason,
        )
        _notify(registration_failed, payload=payload, event_name=session.event_name, reason=outcome.reason)
        return self._reject(RejectionReason.SUBMISSION_FAILED)

    def _apply_late_outcome(
        self,
        ticket: SubmissionTicket,
        payload: RegistrationPayload,
        pending: "asyncio.Future[SubmissionOutcome]",
    ) -> None:
        """Settle a timed-out attempt once its collaborator call finishes."""
        if not self._is_current(ticket):
            logger.debug(
                "Dropping late submission outcome for closed session %d (attempt %d)",
                ticket.generation,
                ticket.attempt,
            )
            return
        session = self._session
        if pending.cancelled():
            session.submission = SubmissionState.failed(CANCELLED_REASON)
            return
        self._apply_outcome(session, ticket, payload, pending.result())

    def _is_current(self, ticket: SubmissionTicket) -> bool:
        return self._session is not None and self._session.generation == ticket.generation

    def _accept(self, **details: object) -> TransitionResult:
        session = self._session
        return TransitionResult(
            accepted=True,
            step=session.step if session is not None else None,
            submission=session.submission if session is not None else None,
            **details,
        )

    def _reject(self, reason: RejectionReason, **details: object) -> TransitionResult:
        session = self._session
        logger.debug(
            "Rejected registration operation at step %s: %s",
            session.step if session is not None else None,
            reason,
        )
        return TransitionResult(
            accepted=False,
            step=session.step if session is not None else None,
            reason=reason,
            submission=session.submission if session is not None else None,
            **details,
        )
