import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Competition",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, primary_key=True, serialize=False
                    ),
                ),
                ("title", models.CharField(max_length=255)),
                ("total_tickets", models.PositiveIntegerField()),
                ("tickets_sold", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(total_tickets__gte=1),
                        name="competition_total_tickets_positive",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.PositiveBigIntegerField(primary_key=True, serialize=False)),
                ("user_id", models.CharField(max_length=64)),
                ("ticket_numbers", models.JSONField(default=list)),
                (
                    "payment_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                        ],
                        default="pending",
                        max_length=16,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "competition",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="orders",
                        to="raffles.competition",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(
                        fields=["competition", "payment_status"],
                        name="order_competition_status_idx",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Ticket",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("number", models.PositiveIntegerField()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("available", "Available"),
                            ("reserved", "Reserved"),
                            ("purchased", "Purchased"),
                        ],
                        default="available",
                        max_length=16,
                    ),
                ),
                ("holder_id", models.CharField(blank=True, max_length=64, null=True)),
                ("reserved_until", models.DateTimeField(blank=True, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "competition",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tickets",
                        to="raffles.competition",
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.RESTRICT,
                        related_name="tickets",
                        to="raffles.order",
                    ),
                ),
            ],
            options={
                "ordering": ["competition", "number"],
                "indexes": [
                    models.Index(
                        fields=["status", "reserved_until"],
                        name="ticket_status_expiry_idx",
                    )
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("competition", "number"), name="unique_ticket_per_competition"
                    ),
                    models.CheckConstraint(
                        condition=models.Q(status__in=["available", "reserved", "purchased"]),
                        name="ticket_status_valid",
                    ),
                ],
            },
        ),
    ]
