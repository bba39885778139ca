from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from typing import List, Literal, Optional
import logging
import os

from parking_app.export import EXPORT_FORMATS, export_filename, render_tickets
from parking_app.models import (
    OccupyRequest,
    ParkingState,
    ReleaseRequest,
    ReleaseResponse,
    Slot,
    Ticket,
    TicketView,
)
from parking_app.service import ParkingService, SlotNotOccupied, SlotUnavailable

logger = logging.getLogger(__name__)

# Configuration
PARKING_CAPACITY = int(os.getenv("PARKING_CAPACITY", "20"))
PARKING_HOST = os.getenv("PARKING_HOST", "0.0.0.0")
PARKING_PORT = int(os.getenv("PARKING_PORT", "8008"))
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]


def get_service(request: Request) -> ParkingService:
    return request.app.state.parking_service


def create_app(parking_service: Optional[ParkingService] = None, capacity: Optional[int] = None) -> FastAPI:
    """Build the API around one ParkingService that lives as long as the app"""
    app = FastAPI(
        title="Parking Slot Tracker API",
        description="Slot occupancy, tickets and daily statistics for a small car park",
        version="1.0.0")

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if parking_service is None:
        parking_service = ParkingService(capacity=capacity or PARKING_CAPACITY)
    app.state.parking_service = parking_service
    logger.info(f"Parking API ready with {parking_service.db.capacity} slots")

    @app.get("/api/parking/state", response_model=ParkingState)
    async def get_state(service: ParkingService = Depends(get_service)):
        """Slots, tickets (newest first) and today's statistics"""
        return service.get_state()

    @app.get("/api/parking/slots", response_model=List[Slot])
    async def get_slots(service: ParkingService = Depends(get_service)):
        """All slots with their occupancy"""
        return service.get_slots()

    @app.get("/api/parking/slots/{slot_id}/ticket", response_model=TicketView)
    async def get_slot_ticket(slot_id: int, service: ParkingService = Depends(get_service)):
        """Most recent ticket of a slot, open or closed"""
        ticket = service.get_most_recent_ticket_for_slot(slot_id)
        if ticket is None:
            raise HTTPException(status_code=404, detail=f"No tickets for slot {slot_id}")
        return ticket

    @app.post("/api/parking/occupy", response_model=Ticket)
    async def occupy(req: OccupyRequest, service: ParkingService = Depends(get_service)):
        """Park a car on a free slot"""
        try:
            return service.occupy_slot(req.slot_id, req.car_number, req.owner_name, req.phone)
        except SlotUnavailable:
            raise HTTPException(status_code=400, detail="Slot not available")

    @app.post("/api/parking/release", response_model=ReleaseResponse)
    async def release(req: ReleaseRequest, service: ParkingService = Depends(get_service)):
        """Free a slot; returns the new state and the closed ticket"""
        try:
            released, state = service.release_slot_with_state(req.slot_id)
        except SlotNotOccupied:
            raise HTTPException(status_code=400, detail="Slot not occupied or not found")

        return ReleaseResponse(state=state, released_ticket=released)

    @app.get("/api/parking/tickets", response_model=List[TicketView])
    async def get_tickets(q: Optional[str] = None, service: ParkingService = Depends(get_service)):
        """Tickets newest first, filtered by owner name, car number or phone"""
        return service.get_tickets(q)

    @app.get("/api/parking/tickets/export")
    async def export_tickets(
        fmt: Literal["csv", "json"] = Query("csv", alias="format"),
        q: Optional[str] = None,
        service: ParkingService = Depends(get_service),
    ):
        """Download tickets as CSV or JSON"""
        tickets = service.get_tickets(q)
        filename = export_filename(service.clock(), fmt)
        return Response(
            content=render_tickets(tickets, fmt),
            media_type=EXPORT_FORMATS[fmt],
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.post("/api/reset")
    async def reset(service: ParkingService = Depends(get_service)):
        """Drop tickets and statistics, free all slots"""
        service.reset()
        return {
            "status": "success",
            "message": f"Parking reset, {service.db.capacity} slots free"
        }

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=PARKING_HOST, port=PARKING_PORT)
