from django.contrib import admin

from raffles.models import Competition, Order, Ticket


@admin.register(Competition)
class CompetitionAdmin(admin.ModelAdmin):
    list_display = ["title", "total_tickets", "tickets_sold", "max_tickets_per_user", "created_at"]
    search_fields = ["title"]
    readonly_fields = ["tickets_sold"]


@admin.register(Ticket)
class TicketAdmin(admin.ModelAdmin):
    list_display = ["competition", "number", "status", "holder_id", "reserved_until", "order"]
    list_filter = ["status", "competition"]
    search_fields = ["holder_id"]
    readonly_fields = ["status", "holder_id", "reserved_until", "order"]


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ["id", "competition", "user_id", "payment_status", "created_at"]
    list_filter = ["payment_status", "competition"]
    search_fields = ["user_id"]
