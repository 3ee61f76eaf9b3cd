"""Typed configuration for django-event-registration.

Reads a single ``DJANGO_EVENT_REGISTRATION`` dict from Django settings and
exposes it as composed, frozen dataclasses with sensible defaults.

Usage::

    from django_event_registration.settings import get_config

    config = get_config()
    config.currency
    config.transfer.account_number
    config.enabled_payment_methods
"""

import functools
from collections.abc import Mapping
from dataclasses import dataclass, field

from django.conf import settings
from django.test.signals import setting_changed

_KNOWN_PAYMENT_METHODS: frozenset[str] = frozenset({"card", "transfer"})


@dataclass(frozen=True, slots=True)
class TransferConfig:
    """Bank account details shown when an attendee pays by bank transfer."""

    bank_name: str = "Example Bank"
    account_name: str = "Event Registrations"
    account_number: str = "1234567890"
    reference_hint: str = "Your full name"


@dataclass(frozen=True, slots=True)
class RegistrationConfig:
    """Top-level django-event-registration configuration."""

    transfer: TransferConfig = field(default_factory=TransferConfig)
    currency: str = "USD"
    default_payment_method: str = "card"
    enabled_payment_methods: tuple[str, ...] = ("card", "transfer")
    submission_timeout_seconds: float | None = None


@functools.lru_cache(maxsize=1)
def get_config() -> RegistrationConfig:
    """Build and return the registration configuration.

    Reads ``settings.DJANGO_EVENT_REGISTRATION`` (a plain dict) and returns a
    frozen :class:`RegistrationConfig`.  The result is cached; the cache is
    cleared automatically when Django's ``setting_changed`` signal fires (e.g.
    inside ``override_settings``).
    """
    raw = getattr(settings, "DJANGO_EVENT_REGISTRATION", {})
    if not isinstance(raw, Mapping):
        msg = "DJANGO_EVENT_REGISTRATION must be a mapping (dict-like object)"
        raise TypeError(msg)
    raw_data = dict(raw)

    transfer_data = raw_data.pop("transfer", {})
    if not isinstance(transfer_data, Mapping):
        msg = "DJANGO_EVENT_REGISTRATION['transfer'] must be a mapping (dict-like object)"
        raise TypeError(msg)

    methods = raw_data.pop("enabled_payment_methods", RegistrationConfig.__dataclass_fields__["enabled_payment_methods"].default)
    if isinstance(methods, str) or not isinstance(methods, (list, tuple)):
        msg = "DJANGO_EVENT_REGISTRATION['enabled_payment_methods'] must be a list of strings"
        raise TypeError(msg)

    config = RegistrationConfig(
        transfer=TransferConfig(**dict(transfer_data)),
        enabled_payment_methods=tuple(methods),
        **raw_data,
    )
    _validate_registration_config(config)
    return config


def _validate_registration_config(config: RegistrationConfig) -> None:
    """Validate high-impact configuration values with clear error messages."""
    if not isinstance(config.currency, str) or not config.currency.strip():
        msg = "DJANGO_EVENT_REGISTRATION['currency'] must be a non-empty string"
        raise ValueError(msg)
    if not config.enabled_payment_methods:
        msg = "DJANGO_EVENT_REGISTRATION['enabled_payment_methods'] must not be empty"
        raise ValueError(msg)
    unknown = set(config.enabled_payment_methods) - _KNOWN_PAYMENT_METHODS
    if unknown:
        msg = (
            "DJANGO_EVENT_REGISTRATION['enabled_payment_methods'] has unknown methods: "
            f"{', '.join(sorted(str(m) for m in unknown))}"
        )
        raise ValueError(msg)
    if config.default_payment_method not in config.enabled_payment_methods:
        msg = "DJANGO_EVENT_REGISTRATION['default_payment_method'] must be one of the enabled payment methods"
        raise ValueError(msg)
    timeout = config.submission_timeout_seconds
    if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0):
        msg = "DJANGO_EVENT_REGISTRATION['submission_timeout_seconds'] must be a positive number or None"
        raise ValueError(msg)
    for name in ("bank_name", "account_name", "account_number", "reference_hint"):
        if not isinstance(getattr(config.transfer, name), str):
            msg = f"DJANGO_EVENT_REGISTRATION['transfer']['{name}'] must be a string"
            raise TypeError(msg)


def _clear_config_cache(*, setting: str, **kwargs: object) -> None:  # noqa: ARG001
    """Clear the cached config when Django settings change during tests."""
    if setting == "DJANGO_EVENT_REGISTRATION":
        get_config.cache_clear()


setting_changed.connect(_clear_config_cache, dispatch_uid="django_event_registration.settings.clear_config_cache")
