from raffles.stores.django_store import DjangoOrderLedger, DjangoTicketStore
from raffles.stores.interfaces import OrderLedger, TicketStore

__all__ = ["DjangoOrderLedger", "DjangoTicketStore", "OrderLedger", "TicketStore"]
