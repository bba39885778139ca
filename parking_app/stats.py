from datetime import datetime
from typing import Iterable, Optional

from parking_app.models import OccupancyEvent, Slot, SummaryStats, Ticket


def duration_minutes(ticket: Ticket) -> Optional[float]:
    """Parking time in minutes, None while the ticket is open"""
    if ticket.exit_time is None:
        return None
    return round((ticket.exit_time - ticket.timestamp).total_seconds() / 60, 2)


def peak_occupancy(events: Iterable[OccupancyEvent]) -> int:
    """Maximum number of simultaneously occupied slots over the event history.

    ``sorted`` is stable, so events sharing a timestamp keep insertion order.
    """
    peak = 0
    running = 0
    for event in sorted(events, key=lambda e: e.time):
        running += event.delta
        if running > peak:
            peak = running
    return peak


def compute_stats(
    tickets: Iterable[Ticket],
    events: Iterable[OccupancyEvent],
    slots: Iterable[Slot],
    now: datetime,
) -> SummaryStats:
    today = now.date()
    tickets = list(tickets)

    # Tickets opened today
    today_tickets = [t for t in tickets if t.timestamp.date() == today]

    # Average over closed tickets opened today
    finished = [t for t in today_tickets if t.exit_time is not None]
    average = None
    if finished:
        total_seconds = sum((t.exit_time - t.timestamp).total_seconds() for t in finished)
        average = total_seconds / len(finished) / 60

    return SummaryStats(
        total_today=len(today_tickets),
        peak_occupancy=peak_occupancy(events),
        average_parking_minutes=average,
        current_occupied=sum(1 for s in slots if s.occupied),
    )
