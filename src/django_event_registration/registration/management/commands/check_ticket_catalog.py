"""Management command to validate a ticket catalog TOML file."""

from typing import Any

from django.core.management.base import BaseCommand, CommandError, CommandParser

from django_event_registration.config_loader import load_ticket_catalog
from django_event_registration.registration.services.pricing import format_currency
from django_event_registration.settings import get_config


class Command(BaseCommand):
    """Load a ticket catalog and print what the registration wizard would offer."""

    help = "Validate a ticket catalog TOML file and list its ticket offers."

    def add_arguments(self, parser: CommandParser) -> None:
        """Define the command-line arguments accepted by this command.

        Args:
            parser: The argument parser to configure.
        """
        parser.add_argument(
            "--catalog",
            required=True,
            help="Path to the ticket catalog TOML file.",
        )
        parser.add_argument(
            "--currency",
            default=None,
            help="Currency code used to print prices (defaults to the configured currency).",
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the catalog check.

        Args:
            *args: Positional arguments (unused).
            **options: Parsed command-line options.
        """
        currency: str = options["currency"] or get_config().currency

        try:
            catalog = load_ticket_catalog(options["catalog"])
        except (FileNotFoundError, TypeError, ValueError) as exc:
            raise CommandError(str(exc)) from exc

        self.stdout.write(f"Event: {catalog.event_name}")
        for offer in catalog.tickets:
            if offer.is_sold_out:
                status = "sold out"
            else:
                status = f"{offer.available} available, up to {offer.max_quantity} per person"
            self.stdout.write(f"  {offer.id}: {offer.name} {format_currency(offer.price, currency)} ({status})")
        self.stdout.write(self.style.SUCCESS(f"{len(catalog.tickets)} ticket offer(s) OK"))
