import csv
import io
from datetime import datetime
from typing import List

from pydantic import TypeAdapter

from parking_app.models import TicketView

EXPORT_FORMATS = {
    "csv": "text/csv",
    "json": "application/json",
}

CSV_HEADER = ["SlotId", "CarNumber", "OwnerName", "Phone", "Timestamp", "ExitTime", "DurationMinutes"]

_tickets_adapter = TypeAdapter(List[TicketView])


def export_filename(now: datetime, fmt: str) -> str:
    return f"tickets-{now.strftime('%Y-%m-%d-%H-%M-%S')}.{fmt}"


def tickets_to_csv(tickets: List[TicketView]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for t in tickets:
        writer.writerow([
            t.slot_id,
            t.car_number,
            t.owner_name,
            t.phone,
            t.timestamp.isoformat(),
            t.exit_time.isoformat() if t.exit_time else "",
            round(t.duration_minutes) if t.duration_minutes is not None else "",
        ])
    return buffer.getvalue()


def tickets_to_json(tickets: List[TicketView]) -> str:
    return _tickets_adapter.dump_json(tickets, by_alias=True, indent=2).decode()


def render_tickets(tickets: List[TicketView], fmt: str) -> str:
    if fmt == "csv":
        return tickets_to_csv(tickets)
    if fmt == "json":
        return tickets_to_json(tickets)
    raise ValueError(f"Unsupported export format: {fmt}")
