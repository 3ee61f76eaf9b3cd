"""Django app configuration for the registration app."""

from django.apps import AppConfig


class EventRegistrationConfig(AppConfig):
    """Configuration for the registration app."""

    name = "django_event_registration.registration"
    label = "event_registration"
    verbose_name = "Event Registration"
