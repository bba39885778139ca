import logging
import os
import threading
from typing import List, Optional

from parking_app.models import OccupancyEvent, Slot, Ticket

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

SLOT_NAME_WIDTH = 2


def slot_name(slot_id: int) -> str:
    return f"S{slot_id:0{SLOT_NAME_WIDTH}d}"


class ParkingDatabase:
    """In-memory stores: slot registry, ticket log and occupancy event log.

    The stores are volatile and live as long as the process. ``lock`` guards
    all three; callers that mutate or read more than one store must hold it.
    """

    def __init__(self, capacity: int):
        self.lock = threading.Lock()
        self.slots: List[Slot] = []
        self.tickets: List[Ticket] = []
        self.events: List[OccupancyEvent] = []
        self.initialize(capacity)

    def initialize(self, capacity: int):
        """Create slots 1..capacity, all free, and empty both logs"""
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.slots = [
            Slot(id=i, name=slot_name(i), occupied=False)
            for i in range(1, capacity + 1)
        ]
        self.tickets = []
        self.events = []
        logger.info(f"Initialized parking with {capacity} slots")

    @property
    def capacity(self) -> int:
        return len(self.slots)

    def find_slot(self, slot_id) -> Optional[Slot]:
        # ids are dense 1..N, anything else is simply not found
        if not isinstance(slot_id, int) or isinstance(slot_id, bool):
            return None
        if 1 <= slot_id <= len(self.slots):
            return self.slots[slot_id - 1]
        return None

    def open_tickets_for(self, slot_id: int) -> List[Ticket]:
        return [t for t in self.tickets if t.slot_id == slot_id and t.is_open]

    def tickets_for(self, slot_id: int) -> List[Ticket]:
        return [t for t in self.tickets if t.slot_id == slot_id]
