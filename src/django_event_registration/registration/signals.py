"""Custom signals for the registration app.

Signals:
    registration_submitted: Sent when a payment submission attempt starts.
        Sender: The ``WizardController`` class.
        Kwargs:
            payload: The ``RegistrationPayload`` being submitted.
            event_name: The event the attendee is registering for.
    registration_completed: Sent when the collaborator accepts a registration.
        Sender: The ``WizardController`` class.
        Kwargs:
            payload: The accepted ``RegistrationPayload``.
            event_name: The event the attendee registered for.
    registration_failed: Sent when a submission attempt fails.
        Sender: The ``WizardController`` class.
        Kwargs:
            payload: The rejected ``RegistrationPayload``.
            event_name: The event the attendee is registering for.
            reason: The human-readable failure reason.
"""

from django.dispatch import Signal

registration_submitted = Signal()
registration_completed = Signal()
registration_failed = Signal()
