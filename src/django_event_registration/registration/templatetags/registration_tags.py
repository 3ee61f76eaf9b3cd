"""Template tags and filters for the registration app."""

from decimal import Decimal
from typing import TYPE_CHECKING

from django import template

from django_event_registration.registration.services import pricing

if TYPE_CHECKING:
    from django_event_registration.registration.services.wizard import StepProgress, WizardController

register = template.Library()


@register.filter
def format_currency(amount: Decimal | None, currency: str = "USD") -> str:
    r"""Format a decimal amount as a human-readable currency string.

    Usage in templates::

        {% load registration_tags %}
        {{ summary.total|format_currency }}
        {{ summary.total|format_currency:"JPY" }}

    Args:
        amount: The monetary amount, or ``None``.
        currency: An ISO 4217 currency code (default ``"USD"``).

    Returns:
        A formatted string such as ``"$10.00"`` or ``"¥1000"``.
    """
    return pricing.format_currency(amount, currency)


@register.simple_tag
def wizard_progress(controller: "WizardController") -> "list[StepProgress]":
    """Return the progress indicator entries for a registration dialog.

    Usage in templates::

        {% load registration_tags %}
        {% wizard_progress wizard as steps %}
        {% for entry in steps %}
          <li class="{{ entry.state }}">{{ entry.position }}. {{ entry.label }}</li>
        {% endfor %}
    """
    return controller.progress()
