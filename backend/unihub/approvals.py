"""Request/approval pipeline for club and event requests.

A request starts ``pending`` and moves exactly once to ``approved`` or
``rejected``. The status change is a conditional UPDATE guarded on
``status = 'pending'`` so two admins racing on the same request cannot both
win. Approval side effects (club creation, role promotion, event creation)
run in the same transaction as the status change.
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from .db import atomic
from .errors import Conflict, InvalidState, NotFound
from .models import Club, ClubRequest, Event, EventRequest, Role, Status, User
from .services import club_for_head

logger = logging.getLogger(__name__)

CLUB_FIELDS = ("goal", "description", "financing", "resources", "attraction_methods")
EVENT_FIELDS = (
    "club_id",
    "head_id",
    "event_name",
    "event_date",
    "location",
    "short_description",
    "goal",
    "organizers",
    "schedule",
    "sponsorship",
    "image",
)


def load_pending(db: Session, model, request_id: int, label: str):
    request = db.get(model, request_id)
    if not request:
        raise NotFound(f"{label} not found")
    if request.status != Status.PENDING.value:
        raise InvalidState(f"Request already {request.status}")
    return request


def transition(db: Session, model, request, status: Status) -> None:
    """Move a pending request to ``status`` or fail if someone else already did."""
    result = db.execute(
        update(model)
        .where(model.id == request.id, model.status == Status.PENDING.value)
        .values(status=status.value)
    )
    if result.rowcount != 1:
        db.refresh(request)
        raise InvalidState(f"Request already {request.status}")


def promote_to_head(db: Session, user: User) -> None:
    user.role = Role.HEAD_ADMIN.value
    db.flush()


def club_name_taken(db: Session, name: str) -> bool:
    return db.execute(select(Club.id).where(Club.name == name)).first() is not None


def approve_club_request(db: Session, request_id: int) -> tuple[ClubRequest, Club, User]:
    with atomic(db):
        request = load_pending(db, ClubRequest, request_id, "Club request")
        requester = db.get(User, request.head_id)
        if not requester:
            raise NotFound("Requester not found")
        if club_for_head(db, requester.id):
            raise Conflict("User already manages a club")
        if club_name_taken(db, request.club_name):
            raise Conflict("A club with this name already exists")

        transition(db, ClubRequest, request, Status.APPROVED)
        club = Club(
            name=request.club_name,
            head_id=requester.id,
            **{field: getattr(request, field) for field in CLUB_FIELDS},
        )
        db.add(club)
        db.flush()
        promote_to_head(db, requester)

    db.refresh(request)
    logger.info("Club request %s approved, club %s created for user %s", request.id, club.id, requester.id)
    return request, club, requester


def reject_club_request(db: Session, request_id: int) -> ClubRequest:
    with atomic(db):
        request = load_pending(db, ClubRequest, request_id, "Club request")
        transition(db, ClubRequest, request, Status.REJECTED)
    db.refresh(request)
    logger.info("Club request %s rejected", request.id)
    return request


def approve_event_request(db: Session, request_id: int) -> tuple[EventRequest, Event]:
    with atomic(db):
        request = load_pending(db, EventRequest, request_id, "Event request")
        if not db.get(Club, request.club_id):
            raise NotFound("Club not found")

        transition(db, EventRequest, request, Status.APPROVED)
        event = Event(**{field: getattr(request, field) for field in EVENT_FIELDS})
        db.add(event)
        db.flush()

    db.refresh(request)
    db.refresh(event)
    logger.info("Event request %s approved, event %s created", request.id, event.id)
    return request, event


def reject_event_request(db: Session, request_id: int) -> EventRequest:
    with atomic(db):
        request = load_pending(db, EventRequest, request_id, "Event request")
        transition(db, EventRequest, request, Status.REJECTED)
    db.refresh(request)
    logger.info("Event request %s rejected", request.id)
    return request
