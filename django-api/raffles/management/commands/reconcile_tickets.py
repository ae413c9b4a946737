from django.core.management.base import BaseCommand, CommandError

from raffles.domain.errors import DomainError
from raffles.services import Reconciler
from raffles.stores import DjangoOrderLedger, DjangoTicketStore


class Command(BaseCommand):
    help = "Rebuild ticket statuses from the order ledger, or audit them for drift."

    def add_arguments(self, parser):
        parser.add_argument("competition_ids", nargs="*", help="Competitions to process.")
        parser.add_argument(
            "--all",
            action="store_true",
            help="Process every competition that has tickets.",
        )
        parser.add_argument(
            "--audit",
            action="store_true",
            help="Only report drift; do not rewrite anything.",
        )

    def handle(self, *args, **options):
        reconciler = Reconciler(DjangoTicketStore(), DjangoOrderLedger())
        competition_ids = options["competition_ids"]
        if not competition_ids and not options["all"]:
            raise CommandError("Pass competition IDs or --all")

        if options["all"] and not options["audit"]:
            reports = reconciler.reconcile_all()
            for report in reports:
                self._write_reconcile(report)
            return

        if options["all"]:
            competition_ids = [str(cid) for cid in DjangoTicketStore().competition_ids()]

        failed = False
        for competition_id in competition_ids:
            try:
                if options["audit"]:
                    self._write_audit(reconciler.audit(competition_id))
                else:
                    self._write_reconcile(reconciler.reconcile(competition_id))
            except DomainError as e:
                failed = True
                self.stderr.write(f"{competition_id}: {e}")
        if failed:
            raise CommandError("One or more competitions could not be processed")

    def _write_reconcile(self, report):
        self.stdout.write(
            f"{report.competition_id}: purchased={report.purchased} "
            f"reserved={report.reserved} available={report.available} "
            f"tickets_sold_before={report.tickets_sold_before} "
            f"conflicts={list(report.conflicts)}"
        )

    def _write_audit(self, report):
        state = "DRIFT" if report.has_drift else "ok"
        self.stdout.write(
            f"{report.competition_id}: {state} tickets_sold={report.tickets_sold} "
            f"purchased_rows={report.purchased_rows} "
            f"missing={list(report.missing_purchases)} "
            f"unbacked={list(report.unbacked_purchases)}"
        )
