import signal
import threading

from django.core.management.base import BaseCommand

from raffles.services import ExpirySweeper
from raffles.stores import DjangoTicketStore


class Command(BaseCommand):
    help = "Return tickets whose reservation has lapsed to the available pool."

    def add_arguments(self, parser):
        parser.add_argument(
            "--once",
            action="store_true",
            help="Run a single sweep and exit.",
        )
        parser.add_argument(
            "--interval",
            type=float,
            default=None,
            help="Seconds between sweeps (defaults to RAFFLES['SWEEP_INTERVAL_SECONDS']).",
        )

    def handle(self, *args, **options):
        sweeper = ExpirySweeper(DjangoTicketStore())

        if options["once"]:
            reclaimed = sweeper.sweep_expired()
            self.stdout.write(f"Reclaimed {reclaimed} tickets")
            return

        stop_event = threading.Event()

        def request_stop(signum, frame):
            stop_event.set()

        signal.signal(signal.SIGTERM, request_stop)
        signal.signal(signal.SIGINT, request_stop)
        total = sweeper.run(stop_event, interval=options["interval"])
        self.stdout.write(f"Reclaimed {total} tickets")
