# fms/directory/schemas.py
from pydantic import BaseModel


class AvailabilityUpdate(BaseModel):
    user_id: int
    skill_group_id: int
    site_id: int
    is_available: bool


class AvailabilityOut(AvailabilityUpdate):
    id: int

    model_config = {"from_attributes": True}
