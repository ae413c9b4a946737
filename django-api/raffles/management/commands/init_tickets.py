from django.core.management.base import BaseCommand, CommandError

from raffles.domain.errors import AlreadyInitializedError, DomainError
from raffles.models import Competition
from raffles.services import InventoryService
from raffles.stores import DjangoTicketStore


class Command(BaseCommand):
    help = "Create ticket rows for competitions that do not have them yet."

    def add_arguments(self, parser):
        parser.add_argument("competition_ids", nargs="*", help="Defaults to every competition.")

    def handle(self, *args, **options):
        service = InventoryService(DjangoTicketStore())
        competition_ids = options["competition_ids"] or [
            str(pk) for pk in Competition.objects.values_list("pk", flat=True)
        ]
        for competition_id in competition_ids:
            try:
                created = service.initialize(competition_id)
            except AlreadyInitializedError:
                self.stdout.write(f"{competition_id}: already initialized, skipping")
            except DomainError as e:
                raise CommandError(f"{competition_id}: {e}") from e
            else:
                self.stdout.write(f"{competition_id}: created {created} tickets")
