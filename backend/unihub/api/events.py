from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth_utils import Identity
from ..deps import get_db, require_roles
from ..models import Club, Event, EventComment, Role
from ..schemas import CommentCreate, CommentOut, EventDetail, EventListItem, MessageResponse
from ..services import get_or_404, require_own_club, serialize_event_detail, serialize_events
from ..social import owned_comment

router = APIRouter()


def _newest_events(db: Session, *criteria) -> list[Event]:
    return (
        db.execute(select(Event).where(*criteria).order_by(Event.created_at.desc(), Event.id.desc()))
        .scalars()
        .all()
    )


@router.get("/api/events", response_model=list[EventListItem])
def list_events(db: Session = Depends(get_db)):
    return serialize_events(db, _newest_events(db))


@router.get("/api/events/my-events", response_model=list[EventListItem])
def my_events(
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles(Role.HEAD_ADMIN)),
):
    club = require_own_club(db, identity.id)
    return serialize_events(db, _newest_events(db, Event.club_id == club.id))


@router.get("/api/events/club/{club_id}", response_model=list[EventListItem])
def club_events(club_id: int, db: Session = Depends(get_db)):
    get_or_404(db, Club, club_id, "Club")
    return serialize_events(db, _newest_events(db, Event.club_id == club_id))


@router.get("/api/events/{event_id}", response_model=EventDetail)
def get_event(event_id: int, db: Session = Depends(get_db)):
    return serialize_event_detail(db, get_or_404(db, Event, event_id, "Event"))


@router.post("/api/events/{event_id}/comments", response_model=CommentOut, status_code=201)
def add_comment(
    event_id: int,
    payload: CommentCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles()),
):
    get_or_404(db, Event, event_id, "Event")
    comment = EventComment(event_id=event_id, user_id=identity.id, content=payload.content)
    db.add(comment)
    db.flush()
    db.refresh(comment)
    return CommentOut.model_validate(comment, from_attributes=True)


@router.get("/api/events/{event_id}/comments", response_model=list[CommentOut])
def list_comments(event_id: int, db: Session = Depends(get_db)):
    get_or_404(db, Event, event_id, "Event")
    comments = (
        db.execute(
            select(EventComment)
            .where(EventComment.event_id == event_id)
            .order_by(EventComment.created_at.desc(), EventComment.id.desc())
        )
        .scalars()
        .all()
    )
    return [CommentOut.model_validate(c, from_attributes=True) for c in comments]


@router.put("/api/events/{event_id}/comments/{comment_id}", response_model=CommentOut)
def update_comment(
    event_id: int,
    comment_id: int,
    payload: CommentCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles()),
):
    comment = owned_comment(db, event_id, comment_id, identity.id)
    comment.content = payload.content
    db.flush()
    db.refresh(comment)
    return CommentOut.model_validate(comment, from_attributes=True)


@router.delete("/api/events/{event_id}/comments/{comment_id}", response_model=MessageResponse)
def delete_comment(
    event_id: int,
    comment_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles()),
):
    db.delete(owned_comment(db, event_id, comment_id, identity.id))
    return MessageResponse(message="Comment deleted successfully")
