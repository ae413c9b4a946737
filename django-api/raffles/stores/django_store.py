"""Django ORM implementation of the TicketStore and OrderLedger."""

import logging
from collections import defaultdict
from datetime import datetime

from django.db import transaction
from django.db.models import F, Q

from raffles import models as orm
from raffles.domain import (
    Competition,
    CompetitionId,
    DriftReport,
    Order,
    PaymentStatus,
    ReconcileReport,
    Ticket,
    TicketSelection,
    TicketStatus,
    hold_is_live,
)
from raffles.stores.interfaces import (
    ClaimOutcome,
    ClaimResult,
    FinalizeOutcome,
    FinalizeResult,
    OrderLedger,
    TicketStore,
)

logger = logging.getLogger(__name__)

BULK_BATCH_SIZE = 1000


def lapsed_hold_q(now: datetime) -> Q:
    """Reserved rows whose hold is no longer live at ``now``.

    Mirrors ``hold_is_live`` so reads, claims and sweeps agree on the boundary.
    """
    return Q(status=orm.Ticket.Status.RESERVED) & (
        Q(reserved_until__lte=now) | Q(reserved_until__isnull=True)
    )


def claimable_q(now: datetime) -> Q:
    return Q(status=orm.Ticket.Status.AVAILABLE) | lapsed_hold_q(now)


def _to_ticket(row: orm.Ticket) -> Ticket:
    return Ticket(
        competition_id=CompetitionId(row.competition_id),
        number=row.number,
        status=TicketStatus(row.status),
        holder_id=row.holder_id,
        reserved_until=row.reserved_until,
        order_id=row.order_id,
    )


def _to_order(row: orm.Order) -> Order:
    return Order(
        id=row.id,
        competition_id=CompetitionId(row.competition_id),
        user_id=row.user_id,
        ticket_numbers=tuple(_ledger_numbers(row.ticket_numbers)),
        payment_status=PaymentStatus(row.payment_status),
        created_at=row.created_at,
        completed_at=row.completed_at,
    )


def _ledger_numbers(raw) -> list[int]:
    numbers = []
    for value in raw or []:
        try:
            numbers.append(int(value))
        except (TypeError, ValueError):
            logger.warning(f"Skipping malformed ledger ticket number {value!r}")
    return numbers


class _ClaimRejected(Exception):
    def __init__(self, blocked: list[int]) -> None:
        super().__init__(blocked)
        self.blocked = blocked


class DjangoTicketStore(TicketStore):
    """Relational ticket store using Django ORM."""

    def get_competition(self, competition_id: CompetitionId) -> Competition | None:
        row = orm.Competition.objects.filter(pk=competition_id.value).first()
        if row is None:
            return None
        return Competition(
            id=competition_id,
            title=row.title,
            total_tickets=row.total_tickets,
            tickets_sold=row.tickets_sold,
            max_tickets_per_user=row.max_tickets_per_user,
        )

    def initialize(self, competition_id: CompetitionId, total_tickets: int) -> bool:
        with transaction.atomic():
            orm.Competition.objects.select_for_update().get(pk=competition_id.value)
            if orm.Ticket.objects.filter(competition_id=competition_id.value).exists():
                return False
            self._create_tickets(competition_id, range(1, total_tickets + 1))
        return True

    def reset(self, competition_id: CompetitionId, total_tickets: int) -> None:
        with transaction.atomic():
            orm.Competition.objects.select_for_update().get(pk=competition_id.value)
            orm.Ticket.objects.filter(competition_id=competition_id.value).delete()
            self._create_tickets(competition_id, range(1, total_tickets + 1))
            orm.Competition.objects.filter(pk=competition_id.value).update(tickets_sold=0)

    def list_tickets(self, competition_id: CompetitionId) -> list[Ticket]:
        rows = orm.Ticket.objects.filter(competition_id=competition_id.value).order_by("number")
        return [_to_ticket(row) for row in rows]

    def get_ticket(self, competition_id: CompetitionId, number: int) -> Ticket | None:
        row = orm.Ticket.objects.filter(
            competition_id=competition_id.value, number=number
        ).first()
        return _to_ticket(row) if row is not None else None

    def claim(
        self,
        competition_id: CompetitionId,
        selection: TicketSelection,
        holder_id: str,
        now: datetime,
        expires_at: datetime,
        max_per_user: int | None = None,
    ) -> ClaimResult:
        numbers = list(selection)
        try:
            with transaction.atomic():
                if max_per_user is not None:
                    # Lock held across the count and the claim.
                    orm.Competition.objects.select_for_update().get(pk=competition_id.value)
                    held = self._held_by(competition_id, holder_id, now)
                    if held + len(numbers) > max_per_user:
                        return ClaimResult(
                            ClaimOutcome.LIMIT_EXCEEDED, tuple(numbers), held=held
                        )
                claimable = orm.Ticket.objects.filter(
                    competition_id=competition_id.value, number__in=numbers
                ).filter(claimable_q(now))
                free = set(
                    claimable.select_for_update()
                    .order_by("number")
                    .values_list("number", flat=True)
                )
                blocked = [n for n in numbers if n not in free]
                if blocked:
                    raise _ClaimRejected(blocked)
                claimed = claimable.update(
                    status=orm.Ticket.Status.RESERVED,
                    holder_id=holder_id,
                    reserved_until=expires_at,
                    order=None,
                    updated_at=now,
                )
                if claimed != len(numbers):
                    # Rows flipped by this attempt are rolled back with the block.
                    raise _ClaimRejected(numbers)
        except _ClaimRejected as rejected:
            return ClaimResult(ClaimOutcome.UNAVAILABLE, tuple(rejected.blocked))
        return ClaimResult(ClaimOutcome.CLAIMED, tuple(numbers))

    def _held_by(self, competition_id: CompetitionId, holder_id: str, now: datetime) -> int:
        """Count holder_id's purchased tickets plus live holds."""
        return (
            orm.Ticket.objects.filter(competition_id=competition_id.value, holder_id=holder_id)
            .filter(
                Q(status=orm.Ticket.Status.PURCHASED)
                | Q(status=orm.Ticket.Status.RESERVED, reserved_until__gt=now)
            )
            .count()
        )

    def release(
        self,
        competition_id: CompetitionId,
        selection: TicketSelection,
        holder_id: str,
        now: datetime,
    ) -> int:
        with transaction.atomic():
            return orm.Ticket.objects.filter(
                competition_id=competition_id.value,
                number__in=list(selection),
                status=orm.Ticket.Status.RESERVED,
                holder_id=holder_id,
            ).update(
                status=orm.Ticket.Status.AVAILABLE,
                holder_id=None,
                reserved_until=None,
                updated_at=now,
            )

    def finalize(
        self,
        competition_id: CompetitionId,
        selection: TicketSelection,
        holder_id: str,
        order_id: int,
        now: datetime,
    ) -> FinalizeResult:
        numbers = list(selection)
        with transaction.atomic():
            rows = list(
                orm.Ticket.objects.select_for_update()
                .filter(competition_id=competition_id.value, number__in=numbers)
                .order_by("number")
            )
            found = {row.number for row in rows}
            missing = tuple(n for n in numbers if n not in found)
            if missing:
                return FinalizeResult(FinalizeOutcome.MISMATCHED, missing)

            if all(
                row.status == orm.Ticket.Status.PURCHASED
                and row.order_id == order_id
                and row.holder_id == holder_id
                for row in rows
            ):
                return FinalizeResult(FinalizeOutcome.ALREADY_PURCHASED, tuple(numbers))

            bad = tuple(
                row.number
                for row in rows
                if not (
                    row.status == orm.Ticket.Status.RESERVED
                    and row.holder_id == holder_id
                    and hold_is_live(row.reserved_until, now)
                )
            )
            if bad:
                return FinalizeResult(FinalizeOutcome.MISMATCHED, bad)

            order, created = orm.Order.objects.select_for_update().get_or_create(
                pk=order_id,
                defaults={
                    "competition_id": competition_id.value,
                    "user_id": holder_id,
                    "ticket_numbers": numbers,
                    "payment_status": orm.Order.PaymentStatus.COMPLETED,
                    "completed_at": now,
                },
            )
            if not created:
                if (
                    order.competition_id != competition_id.value
                    or order.user_id != holder_id
                    or order.payment_status != orm.Order.PaymentStatus.PENDING
                ):
                    return FinalizeResult(FinalizeOutcome.MISMATCHED, tuple(numbers))
                order.ticket_numbers = numbers
                order.payment_status = orm.Order.PaymentStatus.COMPLETED
                order.completed_at = now
                order.save(update_fields=["ticket_numbers", "payment_status", "completed_at"])

            purchased = orm.Ticket.objects.filter(pk__in=[row.pk for row in rows]).update(
                status=orm.Ticket.Status.PURCHASED,
                order=order,
                reserved_until=None,
                updated_at=now,
            )
            orm.Competition.objects.filter(pk=competition_id.value).update(
                tickets_sold=F("tickets_sold") + purchased
            )
        return FinalizeResult(FinalizeOutcome.PURCHASED, tuple(numbers))

    def sweep_expired(self, now: datetime) -> int:
        with transaction.atomic():
            return orm.Ticket.objects.filter(lapsed_hold_q(now)).update(
                status=orm.Ticket.Status.AVAILABLE,
                holder_id=None,
                reserved_until=None,
                updated_at=now,
            )

    def rebuild_from_orders(
        self, competition_id: CompetitionId, now: datetime, expires_at: datetime
    ) -> ReconcileReport | None:
        with transaction.atomic():
            competition = (
                orm.Competition.objects.select_for_update()
                .filter(pk=competition_id.value)
                .first()
            )
            if competition is None:
                return None
            total = competition.total_tickets

            purchased: dict[int, orm.Order] = {}
            reserved: dict[int, orm.Order] = {}
            conflicts: set[int] = set()
            out_of_range: set[int] = set()
            orders = orm.Order.objects.filter(
                competition_id=competition_id.value,
                payment_status__in=[
                    orm.Order.PaymentStatus.COMPLETED,
                    orm.Order.PaymentStatus.PENDING,
                ],
            ).order_by("created_at", "id")
            # Completed orders claim first, then pending ones, oldest first.
            ranked = sorted(
                orders, key=lambda o: o.payment_status != orm.Order.PaymentStatus.COMPLETED
            )
            for order in ranked:
                target = (
                    purchased
                    if order.payment_status == orm.Order.PaymentStatus.COMPLETED
                    else reserved
                )
                for number in _ledger_numbers(order.ticket_numbers):
                    if not 1 <= number <= total:
                        out_of_range.add(number)
                    elif number in purchased or number in reserved:
                        conflicts.add(number)
                    else:
                        target[number] = order

            tickets = orm.Ticket.objects.filter(competition_id=competition_id.value)
            existing = set(tickets.values_list("number", flat=True))
            stray = [n for n in existing if not 1 <= n <= total]
            if stray:
                tickets.filter(number__in=stray).delete()
            self._create_tickets(
                competition_id, [n for n in range(1, total + 1) if n not in existing]
            )
            tickets.update(
                status=orm.Ticket.Status.AVAILABLE,
                holder_id=None,
                reserved_until=None,
                order=None,
                updated_at=now,
            )
            for order, numbers in _group_by_order(purchased).items():
                tickets.filter(number__in=numbers).update(
                    status=orm.Ticket.Status.PURCHASED,
                    holder_id=order.user_id,
                    order=order,
                    updated_at=now,
                )
            for order, numbers in _group_by_order(reserved).items():
                tickets.filter(number__in=numbers).update(
                    status=orm.Ticket.Status.RESERVED,
                    holder_id=order.user_id,
                    reserved_until=expires_at,
                    updated_at=now,
                )

            before = competition.tickets_sold
            competition.tickets_sold = len(purchased)
            competition.save(update_fields=["tickets_sold"])

        return ReconcileReport(
            competition_id=competition_id,
            purchased=len(purchased),
            reserved=len(reserved),
            available=total - len(purchased) - len(reserved),
            tickets_sold_before=before,
            conflicts=tuple(sorted(conflicts)),
            out_of_range=tuple(sorted(out_of_range)),
        )

    def audit(self, competition_id: CompetitionId) -> DriftReport | None:
        competition = orm.Competition.objects.filter(pk=competition_id.value).first()
        if competition is None:
            return None
        purchased_rows = dict(
            orm.Ticket.objects.filter(
                competition_id=competition_id.value, status=orm.Ticket.Status.PURCHASED
            ).values_list("number", "order_id")
        )
        backed: set[int] = set()
        for order in orm.Order.objects.filter(
            competition_id=competition_id.value,
            payment_status=orm.Order.PaymentStatus.COMPLETED,
        ):
            backed.update(_ledger_numbers(order.ticket_numbers))
        return DriftReport(
            competition_id=competition_id,
            tickets_sold=competition.tickets_sold,
            purchased_rows=len(purchased_rows),
            missing_purchases=tuple(sorted(backed - purchased_rows.keys())),
            unbacked_purchases=tuple(sorted(purchased_rows.keys() - backed)),
        )

    def competition_ids(self) -> list[CompetitionId]:
        ids = (
            orm.Ticket.objects.values_list("competition_id", flat=True)
            .order_by("competition_id")
            .distinct()
        )
        return [CompetitionId(value) for value in ids]

    def _create_tickets(self, competition_id: CompetitionId, numbers) -> None:
        orm.Ticket.objects.bulk_create(
            (orm.Ticket(competition_id=competition_id.value, number=n) for n in numbers),
            batch_size=BULK_BATCH_SIZE,
        )


def _group_by_order(assignments: dict[int, orm.Order]) -> dict[orm.Order, list[int]]:
    grouped: dict[orm.Order, list[int]] = defaultdict(list)
    for number, order in assignments.items():
        grouped[order].append(number)
    return grouped


class DjangoOrderLedger(OrderLedger):
    """Order ledger backed by the Order table."""

    def get_order(self, order_id: int) -> Order | None:
        row = orm.Order.objects.filter(pk=order_id).first()
        return _to_order(row) if row is not None else None

    def record_pending(
        self,
        order_id: int,
        competition_id: CompetitionId,
        user_id: str,
        selection: TicketSelection,
    ) -> Order | None:
        row, created = orm.Order.objects.get_or_create(
            pk=order_id,
            defaults={
                "competition_id": competition_id.value,
                "user_id": user_id,
                "ticket_numbers": list(selection),
                "payment_status": orm.Order.PaymentStatus.PENDING,
            },
        )
        if created:
            return _to_order(row)
        same = (
            row.competition_id == competition_id.value
            and row.user_id == user_id
            and sorted(_ledger_numbers(row.ticket_numbers)) == list(selection)
            and row.payment_status == orm.Order.PaymentStatus.PENDING
        )
        return _to_order(row) if same else None

    def mark_failed(self, order_id: int, now: datetime) -> tuple[Order, int] | None:
        with transaction.atomic():
            row = orm.Order.objects.select_for_update().filter(pk=order_id).first()
            if row is None:
                return None
            if row.payment_status != orm.Order.PaymentStatus.PENDING:
                return _to_order(row), 0
            row.payment_status = orm.Order.PaymentStatus.FAILED
            row.save(update_fields=["payment_status"])
            released = orm.Ticket.objects.filter(
                competition_id=row.competition_id,
                number__in=_ledger_numbers(row.ticket_numbers),
                status=orm.Ticket.Status.RESERVED,
                holder_id=row.user_id,
            ).update(
                status=orm.Ticket.Status.AVAILABLE,
                holder_id=None,
                reserved_until=None,
                updated_at=now,
            )
        return _to_order(row), released
