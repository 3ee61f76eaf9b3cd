"""Adapter around the registration submission collaborator.

The collaborator is whatever the hosting project uses to actually register an
attendee: an async HTTP call, a sync function that writes an order, a task
queue producer. The adapter gives every collaborator the same shape: one
awaitable call per attempt that always resolves to a :class:`SubmissionOutcome`
and never raises for an ordinary failure.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Self

from asgiref.sync import iscoroutinefunction, sync_to_async

from django_event_registration.registration.session import RegistrationPayload

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_REASON = "Registration failed. Please try again."
TIMEOUT_REASON = "Registration timed out. Please try again."

RegisterCallable = Callable[[RegistrationPayload], Awaitable[object] | object]


@dataclass(frozen=True)
class SubmissionOutcome:
    """Result of one call to the submission collaborator."""

    ok: bool
    reason: str = ""

    @classmethod
    def success(cls) -> Self:
        return cls(ok=True)

    @classmethod
    def failure(cls, reason: str = "") -> Self:
        return cls(ok=False, reason=reason.strip() or DEFAULT_FAILURE_REASON)


@dataclass(frozen=True)
class SubmissionTicket:
    """Identifies one submission attempt and the session it was issued for."""

    generation: int
    attempt: int


@dataclass(frozen=True)
class TaggedOutcome:
    """A submission outcome paired with the attempt that produced it.

    ``pending`` is set when the attempt timed out while the collaborator was
    still running. It resolves to the collaborator's real outcome once that
    call finishes.
    """

    ticket: SubmissionTicket
    outcome: SubmissionOutcome
    pending: "asyncio.Future[SubmissionOutcome] | None" = None

    @property
    def timed_out(self) -> bool:
        return self.pending is not None


def _normalise(result: object) -> SubmissionOutcome:
    """Map whatever the collaborator returned onto a :class:`SubmissionOutcome`.

    ``None`` and ``True`` mean success and ``False`` means failure. A mapping
    is read for ``ok`` and ``reason`` keys.
    """
    if isinstance(result, SubmissionOutcome):
        if not result.ok:
            return SubmissionOutcome.failure(result.reason)
        return result
    if isinstance(result, Mapping):
        if result.get("ok", True):
            return SubmissionOutcome.success()
        return SubmissionOutcome.failure(str(result.get("reason") or ""))
    if result is False:
        return SubmissionOutcome.failure()
    return SubmissionOutcome.success()


class SubmissionAdapter:
    """Calls the collaborator once per attempt and reports the outcome as data.

    Sync collaborators are run in a worker thread via
    :func:`asgiref.sync.sync_to_async` so the event loop is never blocked.
    Exceptions raised by the collaborator become failures carrying the
    exception message. Task cancellation is never swallowed.

    Args:
        register: The collaborator, ``register(payload) -> outcome``.
        timeout: Optional number of seconds after which an unanswered
            attempt is reported as timed out.
    """

    def __init__(self, register: RegisterCallable, *, timeout: float | None = None) -> None:
        if not callable(register):
            msg = "register must be callable"
            raise TypeError(msg)
        self._register = register
        self._timeout = timeout

    @property
    def timeout(self) -> float | None:
        return self._timeout

    async def _call(self, payload: RegistrationPayload) -> object:
        if iscoroutinefunction(self._register) or iscoroutinefunction(getattr(self._register, "__call__", None)):
            result = await self._register(payload)
        else:
            result = await sync_to_async(self._register)(payload)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def _attempt(self, payload: RegistrationPayload, ticket: SubmissionTicket) -> SubmissionOutcome:
        try:
            result = await self._call(payload)
        except Exception as exc:
            logger.exception(
                "Registration collaborator raised for ticket %s (attempt %d)",
                payload.ticket_id,
                ticket.attempt,
            )
            return SubmissionOutcome.failure(str(exc))
        return _normalise(result)

    async def submit(self, payload: RegistrationPayload, ticket: SubmissionTicket) -> TaggedOutcome:
        """Submit ``payload`` once and return the outcome tagged with ``ticket``.

        When the timeout expires the call keeps running under
        :func:`asyncio.shield` and is returned as ``pending`` on a timed-out
        outcome.
        """
        if self._timeout is None:
            return TaggedOutcome(ticket=ticket, outcome=await self._attempt(payload, ticket))

        call = asyncio.ensure_future(self._attempt(payload, ticket))
        try:
            outcome = await asyncio.wait_for(asyncio.shield(call), timeout=self._timeout)
        except TimeoutError:
            logger.warning(
                "Registration for ticket %s timed out after %ss (attempt %d)",
                payload.ticket_id,
                self._timeout,
                ticket.attempt,
            )
            return TaggedOutcome(ticket=ticket, outcome=SubmissionOutcome.failure(TIMEOUT_REASON), pending=call)
        except asyncio.CancelledError:
            call.cancel()
            raise
        return TaggedOutcome(ticket=ticket, outcome=outcome)
