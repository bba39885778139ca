import logging
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from parking_app.database import ParkingDatabase
from parking_app.models import (
    OccupancyEvent,
    ParkingState,
    Slot,
    Ticket,
    TicketView,
)
from parking_app.stats import compute_stats, duration_minutes

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class ParkingError(Exception):
    """Expected, recoverable failure of a parking operation"""

    def __init__(self, slot_id, message: str):
        super().__init__(message)
        self.slot_id = slot_id
        self.message = message


class SlotUnavailable(ParkingError):
    def __init__(self, slot_id):
        super().__init__(slot_id, f"Slot {slot_id} is not available")


class SlotNotOccupied(ParkingError):
    def __init__(self, slot_id):
        super().__init__(slot_id, f"Slot {slot_id} is not occupied or not found")


def to_view(ticket: Ticket) -> TicketView:
    return TicketView(**ticket.model_dump(), duration_minutes=duration_minutes(ticket))


def latest(tickets: List[Ticket]) -> Optional[Ticket]:
    """Ticket with the latest timestamp; the later one in the log wins a tie"""
    best = None
    for ticket in tickets:
        if best is None or ticket.timestamp >= best.timestamp:
            best = ticket
    return best


class ParkingService:
    """Occupy/release operations and read views over one ParkingDatabase.

    Every public method runs under the database lock, so the slot registry,
    ticket log and event log are always observed and changed together.
    Timestamps come from ``clock``, never from the caller.
    """

    def __init__(self, capacity: int = 20, clock: Clock = datetime.now,
                 database: Optional[ParkingDatabase] = None):
        self.db = database if database is not None else ParkingDatabase(capacity)
        self.clock = clock

    def occupy_slot(self, slot_id: int, car_number: str, owner_name: str, phone: str) -> Ticket:
        """Park a car on a free slot and open a ticket for it"""
        with self.db.lock:
            slot = self.db.find_slot(slot_id)
            if slot is None or slot.occupied:
                logger.warning(f"Occupy rejected: slot {slot_id} is missing or occupied")
                raise SlotUnavailable(slot_id)

            now = self.clock()
            ticket = Ticket(
                slot_id=slot.id,
                car_number=car_number,
                owner_name=owner_name,
                phone=phone,
                timestamp=now,
                exit_time=None,
            )
            self.db.tickets.append(ticket)
            self.db.events.append(OccupancyEvent(time=now, delta=+1))
            slot.occupied = True

            logger.info(f"Slot {slot.name} occupied by {car_number}")
            return ticket.model_copy()

    def release_slot(self, slot_id: int) -> Ticket:
        """Close the open ticket of an occupied slot and free the slot"""
        with self.db.lock:
            return self._release(slot_id).model_copy()

    def release_slot_with_state(self, slot_id: int) -> Tuple[TicketView, ParkingState]:
        """Release a slot and build the resulting snapshot under one lock hold.

        The closed ticket and the state both describe the moment right after
        this release, whatever other callers do next.
        """
        with self.db.lock:
            ticket = self._release(slot_id)
            return to_view(ticket), self._snapshot()

    def _release(self, slot_id: int) -> Ticket:
        # caller holds self.db.lock
        slot = self.db.find_slot(slot_id)
        if slot is None or not slot.occupied:
            logger.warning(f"Release rejected: slot {slot_id} is missing or free")
            raise SlotNotOccupied(slot_id)

        ticket = latest(self.db.open_tickets_for(slot.id))
        if ticket is None:
            logger.warning(f"Release rejected: slot {slot.name} has no open ticket")
            raise SlotNotOccupied(slot_id)

        now = self.clock()
        ticket.exit_time = now
        self.db.events.append(OccupancyEvent(time=now, delta=-1))
        slot.occupied = False

        logger.info(f"Slot {slot.name} released by {ticket.car_number}")
        return ticket

    def get_most_recent_ticket_for_slot(self, slot_id: int) -> Optional[TicketView]:
        with self.db.lock:
            ticket = latest(self.db.tickets_for(slot_id))
            return to_view(ticket) if ticket is not None else None

    def get_slots(self) -> List[Slot]:
        with self.db.lock:
            return [s.model_copy() for s in self.db.slots]

    def get_tickets(self, query: Optional[str] = None) -> List[TicketView]:
        """Tickets newest first, optionally filtered by owner, car number or phone"""
        with self.db.lock:
            tickets = sorted(self.db.tickets, key=lambda t: t.timestamp, reverse=True)
            views = [to_view(t) for t in tickets]

        needle = (query or "").strip().lower()
        if not needle:
            return views
        return [
            v for v in views
            if needle in v.owner_name.lower()
            or needle in v.car_number.lower()
            or needle in v.phone.lower()
        ]

    def get_state(self) -> ParkingState:
        with self.db.lock:
            return self._snapshot()

    def _snapshot(self) -> ParkingState:
        # caller holds self.db.lock
        slots = [s.model_copy() for s in self.db.slots]
        tickets = sorted(self.db.tickets, key=lambda t: t.timestamp, reverse=True)
        stats = compute_stats(self.db.tickets, self.db.events, self.db.slots, self.clock())
        return ParkingState(
            slots=slots,
            tickets=[to_view(t) for t in tickets],
            stats=stats,
        )

    def reset(self):
        """Drop all tickets and events and free every slot"""
        with self.db.lock:
            self.db.initialize(self.db.capacity)
        logger.info("Parking state reset")
