from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import List, Literal, Optional


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Slot(CamelModel):
    id: int
    name: str
    occupied: bool = False


class Ticket(CamelModel):
    slot_id: int
    car_number: str
    owner_name: str
    phone: str
    timestamp: datetime
    exit_time: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.exit_time is None


class OccupancyEvent(CamelModel):
    time: datetime
    delta: Literal[1, -1]


class TicketView(Ticket):
    duration_minutes: Optional[float] = None


class SummaryStats(CamelModel):
    total_today: int
    peak_occupancy: int
    average_parking_minutes: Optional[float] = None
    current_occupied: int


class ParkingState(CamelModel):
    slots: List[Slot]
    tickets: List[TicketView]
    stats: SummaryStats


# Request / response bodies

class OccupyRequest(CamelModel):
    slot_id: int
    car_number: str = Field(min_length=1)
    owner_name: str = Field(pattern=r"^\s*[A-Za-z][A-Za-z\s]*$")
    phone: str = Field(pattern=r"^[0-9]+$")


class ReleaseRequest(CamelModel):
    slot_id: int


class ReleaseResponse(CamelModel):
    state: ParkingState
    released_ticket: Optional[TicketView] = None
