# fms/booking/schemas.py
from datetime import date, time

from pydantic import BaseModel, Field, model_validator


class BookingCreate(BaseModel):
    site_id: int
    room_name: str = Field(..., min_length=1)
    booked_by: int
    booking_date: date
    start_time: time
    end_time: time

    @model_validator(mode="after")
    def check_times(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class BookingOut(BookingCreate):
    id: int
    status: str

    model_config = {"from_attributes": True}
