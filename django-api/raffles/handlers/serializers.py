"""Serializers for request parsing and domain model responses."""

import json

from rest_framework import serializers


class TicketNumbersField(serializers.Field):
    """Ticket numbers as a list, a JSON array string or "1,2,3".

    Clients have sent all three shapes; the services only ever see a list of
    ints.
    """

    default_error_messages = {
        "invalid": "Expected a list of ticket numbers.",
    }

    def to_internal_value(self, data):
        if isinstance(data, str):
            text = data.strip()
            if text.startswith("["):
                try:
                    data = json.loads(text)
                except ValueError:
                    self.fail("invalid")
            else:
                data = [part for part in (p.strip() for p in text.split(",")) if part]
        if not isinstance(data, list):
            self.fail("invalid")
        numbers = []
        for value in data:
            if isinstance(value, bool):
                self.fail("invalid")
            try:
                numbers.append(int(value))
            except (TypeError, ValueError):
                self.fail("invalid")
        return numbers

    def to_representation(self, value):
        return list(value)


class ReserveRequestSerializer(serializers.Serializer):
    ticket_numbers = TicketNumbersField()


class ReleaseRequestSerializer(serializers.Serializer):
    ticket_numbers = TicketNumbersField()


class PurchaseRequestSerializer(serializers.Serializer):
    ticket_numbers = TicketNumbersField()
    order_id = serializers.IntegerField(min_value=1)


class HoldSerializer(serializers.Serializer):
    """Serializer for Hold domain model."""

    competition_id = serializers.CharField()
    user_id = serializers.CharField()
    ticket_numbers = serializers.ListField(child=serializers.IntegerField())
    expires_at = serializers.DateTimeField()


class TicketStatusesSerializer(serializers.Serializer):
    """Serializer for TicketStatuses domain model."""

    available = serializers.ListField(child=serializers.IntegerField())
    reserved = serializers.ListField(child=serializers.IntegerField())
    purchased = serializers.ListField(child=serializers.IntegerField())


class TicketStatsSerializer(serializers.Serializer):
    """Serializer for TicketStats domain model."""

    competition_id = serializers.CharField()
    total_tickets = serializers.IntegerField()
    available = serializers.IntegerField()
    reserved = serializers.IntegerField()
    purchased = serializers.IntegerField()
    tickets_sold = serializers.IntegerField()
    in_sync = serializers.BooleanField()


class OwnershipInfoSerializer(serializers.Serializer):
    """Serializer for OwnershipInfo domain model."""

    competition_id = serializers.CharField()
    ticket_number = serializers.IntegerField()
    status = serializers.CharField(source="status.value")
    user_id = serializers.CharField(allow_null=True)
    order_id = serializers.IntegerField(allow_null=True)
    purchase_date = serializers.DateTimeField(allow_null=True)
    reserved_until = serializers.DateTimeField(allow_null=True)


class ReconcileReportSerializer(serializers.Serializer):
    """Serializer for ReconcileReport domain model."""

    competition_id = serializers.CharField()
    purchased = serializers.IntegerField()
    reserved = serializers.IntegerField()
    available = serializers.IntegerField()
    tickets_sold_before = serializers.IntegerField()
    conflicts = serializers.ListField(child=serializers.IntegerField())
    out_of_range = serializers.ListField(child=serializers.IntegerField())
