from raffles.services.inventory_service import InventoryService
from raffles.services.purchase_service import PurchaseService
from raffles.services.reconciler import Reconciler
from raffles.services.reservation_service import ReservationService
from raffles.services.sweeper import ExpirySweeper

__all__ = [
    "InventoryService",
    "PurchaseService",
    "Reconciler",
    "ReservationService",
    "ExpirySweeper",
]
