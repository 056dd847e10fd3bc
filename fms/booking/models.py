# fms/booking/models.py
from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, Time
from fms.core.clock import utcnow
from fms.core.database import Base


class RoomBooking(Base):
    __tablename__ = "room_bookings"

    id = Column(Integer, primary_key=True, index=True)
    site_id = Column(Integer, ForeignKey("sites.id"), nullable=False, index=True)
    room_name = Column(String, nullable=False)
    booked_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    booking_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    status = Column(String, default="confirmed", nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
