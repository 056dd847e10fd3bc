# fms/booking/routes.py
from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session
from fms.booking.models import RoomBooking
from fms.booking.schemas import BookingCreate, BookingOut
from fms.core.database import get_db
from fms.notification.models import EventKind
from fms.notification.services import FanoutDispatcher, get_fanout

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingOut, status_code=201)
def create(
    booking: BookingCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    fanout: FanoutDispatcher = Depends(get_fanout),
):
    db_booking = RoomBooking(**booking.model_dump())
    db.add(db_booking)
    db.commit()
    db.refresh(db_booking)
    fanout.schedule(background_tasks, EventKind.ROOM_BOOKED, db_booking.id)
    return db_booking
