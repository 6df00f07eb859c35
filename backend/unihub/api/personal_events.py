from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth_utils import Identity
from ..deps import get_db, require_roles
from ..errors import Forbidden
from ..models import PersonalEvent
from ..schemas import MessageResponse, PersonalEventCreate, PersonalEventOut, PersonalEventUpdate
from ..services import get_or_404

router = APIRouter()


def _own_event(db: Session, event_id: int, user_id: int) -> PersonalEvent:
    event = get_or_404(db, PersonalEvent, event_id, "Personal event")
    if event.user_id != user_id:
        raise Forbidden("Unauthorized access")
    return event


def _out(event: PersonalEvent) -> PersonalEventOut:
    return PersonalEventOut.model_validate(event, from_attributes=True)


@router.post("/api/personal-events", response_model=PersonalEventOut, status_code=201)
def create_personal_event(
    payload: PersonalEventCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles()),
):
    event = PersonalEvent(user_id=identity.id, **payload.model_dump())
    db.add(event)
    db.flush()
    db.refresh(event)
    return _out(event)


@router.get("/api/personal-events", response_model=list[PersonalEventOut])
def list_personal_events(db: Session = Depends(get_db), identity: Identity = Depends(require_roles())):
    events = (
        db.execute(
            select(PersonalEvent)
            .where(PersonalEvent.user_id == identity.id)
            .order_by(PersonalEvent.date.asc(), PersonalEvent.start_time.asc())
        )
        .scalars()
        .all()
    )
    return [_out(e) for e in events]


@router.get("/api/personal-events/{event_id}", response_model=PersonalEventOut)
def get_personal_event(
    event_id: int, db: Session = Depends(get_db), identity: Identity = Depends(require_roles())
):
    return _out(_own_event(db, event_id, identity.id))


@router.put("/api/personal-events/{event_id}", response_model=PersonalEventOut)
def update_personal_event(
    event_id: int,
    payload: PersonalEventUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles()),
):
    event = _own_event(db, event_id, identity.id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(event, field, value)
    db.flush()
    db.refresh(event)
    return _out(event)


@router.delete("/api/personal-events/{event_id}", response_model=MessageResponse)
def delete_personal_event(
    event_id: int, db: Session = Depends(get_db), identity: Identity = Depends(require_roles())
):
    db.delete(_own_event(db, event_id, identity.id))
    return MessageResponse(message="Personal event deleted successfully")
