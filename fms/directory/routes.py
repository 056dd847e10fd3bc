# fms/directory/routes.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from fms.core.database import get_db
from fms.directory.models import ResolverAvailability
from fms.directory.schemas import AvailabilityOut, AvailabilityUpdate
from fms.directory.stores import SqlAvailabilityStore

router = APIRouter(prefix="/directory", tags=["Directory"])


@router.put("/availability", response_model=AvailabilityOut)
def set_availability(payload: AvailabilityUpdate, db: Session = Depends(get_db)):
    SqlAvailabilityStore(db).set_available(
        payload.user_id, payload.skill_group_id, payload.site_id, payload.is_available
    )
    db.commit()
    return (
        db.query(ResolverAvailability)
        .filter(
            ResolverAvailability.user_id == payload.user_id,
            ResolverAvailability.skill_group_id == payload.skill_group_id,
            ResolverAvailability.site_id == payload.site_id,
        )
        .one()
    )
