from datetime import timedelta

import structlog
from django.core.management.base import BaseCommand

from config.container import Container

logger = structlog.get_logger(__name__)


class Command(BaseCommand):
    help = "Expire PENDING registrations whose payment window has elapsed."

    def add_arguments(self, parser):
        parser.add_argument(
            "--minutes",
            type=int,
            default=None,
            help="Override the payment window, in minutes.",
        )

    def handle(self, *args, **options):
        minutes = options["minutes"]
        older_than = timedelta(minutes=minutes) if minutes is not None else None
        expired = Container.from_settings().registrations.expire_pending(older_than)
        logger.info("expire_registrations_finished", expired=expired)
        self.stdout.write(self.style.SUCCESS(f"Expired {expired} registration(s)."))
