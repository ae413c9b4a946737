"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/models.py.
"""

import uuid

from django.db import models


class Competition(models.Model):
    """Persistence model for the competition fields the core reads."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255)
    total_tickets = models.PositiveIntegerField()
    tickets_sold = models.PositiveIntegerField(default=0)
    max_tickets_per_user = models.PositiveIntegerField(
        null=True, blank=True, help_text="Leave empty for no per-user limit."
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_tickets__gte=1),
                name="competition_total_tickets_positive",
            ),
        ]

    def __str__(self) -> str:
        return self.title


class Order(models.Model):
    """Ledger entry for a buyer's checkout."""

    class PaymentStatus(models.TextChoices):
        PENDING = "pending"
        COMPLETED = "completed"
        FAILED = "failed"

    id = models.PositiveBigIntegerField(primary_key=True)
    competition = models.ForeignKey(
        Competition, on_delete=models.CASCADE, related_name="orders"
    )
    user_id = models.CharField(max_length=64)
    ticket_numbers = models.JSONField(default=list)
    payment_status = models.CharField(
        max_length=16, choices=PaymentStatus.choices, default=PaymentStatus.PENDING
    )
    created_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["competition", "payment_status"],
                name="order_competition_status_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"Order {self.id} ({self.payment_status})"


class Ticket(models.Model):
    """One numbered ticket of a competition."""

    class Status(models.TextChoices):
        AVAILABLE = "available"
        RESERVED = "reserved"
        PURCHASED = "purchased"

    competition = models.ForeignKey(
        Competition, on_delete=models.CASCADE, related_name="tickets"
    )
    number = models.PositiveIntegerField()
    status = models.CharField(
        max_length=16, choices=Status.choices, default=Status.AVAILABLE
    )
    holder_id = models.CharField(max_length=64, null=True, blank=True)
    reserved_until = models.DateTimeField(null=True, blank=True)
    order = models.ForeignKey(
        Order,
        on_delete=models.RESTRICT,
        null=True,
        blank=True,
        related_name="tickets",
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["competition", "number"]
        constraints = [
            models.UniqueConstraint(
                fields=["competition", "number"], name="unique_ticket_per_competition"
            ),
            models.CheckConstraint(
                condition=models.Q(status__in=["available", "reserved", "purchased"]),
                name="ticket_status_valid",
            ),
        ]
        indexes = [
            models.Index(
                fields=["status", "reserved_until"],
                name="ticket_status_expiry_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"#{self.number} ({self.status})"
