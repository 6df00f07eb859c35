from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth_utils import Identity
from ..club_admin import delete_club, rate_club, ratings_for, subscribe, subscriptions_for, unsubscribe, update_club
from ..deps import get_db, require_roles
from ..models import Club, Role
from ..schemas import (
    ClubDetail,
    ClubListItem,
    ClubOut,
    ClubUpdate,
    MessageResponse,
    RatingCreate,
    RatingOut,
    RatingResult,
    SubscriptionOut,
)
from ..services import get_or_404, require_own_club, serialize_club_detail, serialize_clubs
from ..uploads import delete_upload

router = APIRouter()


@router.get("/api/clubs", response_model=list[ClubListItem])
def list_clubs(db: Session = Depends(get_db)):
    clubs = db.execute(select(Club).order_by(Club.created_at.desc(), Club.id.desc())).scalars().all()
    return serialize_clubs(db, clubs)


@router.get("/api/clubs/my-club", response_model=ClubDetail)
def my_club(
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles(Role.HEAD_ADMIN)),
):
    return serialize_club_detail(db, require_own_club(db, identity.id))


@router.get("/api/clubs/subscriptions", response_model=list[SubscriptionOut])
def my_subscriptions(db: Session = Depends(get_db), identity: Identity = Depends(require_roles())):
    return [
        SubscriptionOut(club=ClubOut.model_validate(club, from_attributes=True), subscribed_at=sub.created_at)
        for sub, club in subscriptions_for(db, identity.id)
    ]


@router.get("/api/clubs/{club_id}", response_model=ClubDetail)
def get_club(club_id: int, db: Session = Depends(get_db)):
    return serialize_club_detail(db, get_or_404(db, Club, club_id, "Club"))


@router.put("/api/clubs/{club_id}", response_model=ClubOut)
def edit_club(
    club_id: int,
    payload: ClubUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles(Role.HEAD_ADMIN)),
):
    club = update_club(db, club_id, identity.id, payload.model_dump(exclude_unset=True))
    return ClubOut.model_validate(club, from_attributes=True)


@router.delete("/api/clubs/{club_id}", response_model=MessageResponse)
def remove_club(
    club_id: int,
    bg_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles(Role.SUPER_ADMIN)),
):
    orphaned = delete_club(db, club_id)
    db.commit()
    for url in orphaned:
        bg_tasks.add_task(delete_upload, url)
    return MessageResponse(message="Club deleted successfully")


@router.post("/api/clubs/{club_id}/subscribe", response_model=MessageResponse, status_code=201)
def subscribe_to_club(club_id: int, db: Session = Depends(get_db), identity: Identity = Depends(require_roles())):
    subscribe(db, club_id, identity.id)
    return MessageResponse(message="Subscribed successfully")


@router.delete("/api/clubs/{club_id}/subscribe", response_model=MessageResponse)
def unsubscribe_from_club(
    club_id: int, db: Session = Depends(get_db), identity: Identity = Depends(require_roles())
):
    unsubscribe(db, club_id, identity.id)
    return MessageResponse(message="Unsubscribed successfully")


@router.post("/api/clubs/{club_id}/ratings", response_model=RatingResult)
def rate(
    club_id: int,
    payload: RatingCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles()),
):
    record, club = rate_club(db, club_id, identity.id, payload.rating, payload.comment)
    return RatingResult(rating=RatingOut.model_validate(record, from_attributes=True), club_rating=club.rating)


@router.get("/api/clubs/{club_id}/ratings", response_model=list[RatingOut])
def list_ratings(club_id: int, db: Session = Depends(get_db)):
    return [RatingOut.model_validate(r, from_attributes=True) for r in ratings_for(db, club_id)]
