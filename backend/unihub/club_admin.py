import logging
import math

from sqlalchemy import delete, func, select, union_all
from sqlalchemy.orm import Session

from .db import atomic
from .errors import Conflict, Forbidden, NotFound
from .models import (
    Club,
    ClubRating,
    ClubSubscription,
    Event,
    EventComment,
    EventRequest,
    Post,
    PostLike,
    Poster,
    Role,
    TicketBooking,
    User,
)

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("goal", "description", "financing", "resources", "attraction_methods")


def update_club(db: Session, club_id: int, head_id: int, changes: dict) -> Club:
    club = db.get(Club, club_id)
    if not club:
        raise NotFound("Club not found")
    if club.head_id != head_id:
        raise Forbidden("You can only update your own club")
    for field in EDITABLE_FIELDS:
        value = changes.get(field)
        if value is not None:
            setattr(club, field, value)
    db.flush()
    db.refresh(club)
    return club


def delete_club(db: Session, club_id: int) -> list[str]:
    """Remove a club and everything hanging off it, then demote its head.

    Dependents go first so foreign keys hold at every step. Returns the
    upload URLs that no longer have an owner; the caller removes the files
    once the transaction has committed.
    """
    club = db.get(Club, club_id)
    if not club:
        raise NotFound("Club not found")

    with atomic(db):
        poster_ids = select(Poster.id).where(Poster.club_id == club_id)
        post_ids = select(Post.id).where(Post.club_id == club_id)
        event_ids = select(Event.id).where(Event.club_id == club_id)

        orphaned = [
            url
            for url in db.execute(
                union_all(
                    select(TicketBooking.payment_proof).where(TicketBooking.poster_id.in_(poster_ids)),
                    select(Poster.image).where(Poster.club_id == club_id),
                    select(Post.image).where(Post.club_id == club_id),
                    select(Event.image).where(Event.club_id == club_id),
                    select(EventRequest.image).where(EventRequest.club_id == club_id),
                )
            ).scalars()
            if url
        ]

        for stmt in (
            delete(TicketBooking).where(TicketBooking.poster_id.in_(poster_ids)),
            delete(PostLike).where(PostLike.post_id.in_(post_ids)),
            delete(Post).where(Post.club_id == club_id),
            delete(Poster).where(Poster.club_id == club_id),
            delete(EventComment).where(EventComment.event_id.in_(event_ids)),
            delete(Event).where(Event.club_id == club_id),
            delete(EventRequest).where(EventRequest.club_id == club_id),
            delete(ClubSubscription).where(ClubSubscription.club_id == club_id),
            delete(ClubRating).where(ClubRating.club_id == club_id),
        ):
            db.execute(stmt.execution_options(synchronize_session=False))

        head = db.get(User, club.head_id)
        db.delete(club)
        db.flush()
        if head and head.role == Role.HEAD_ADMIN.value:
            head.role = Role.STUDENT.value

    db.expire_all()
    logger.info("Club %s deleted with %d orphaned upload(s)", club_id, len(orphaned))
    return orphaned


def subscribe(db: Session, club_id: int, user_id: int) -> ClubSubscription:
    if not db.get(Club, club_id):
        raise NotFound("Club not found")
    existing = db.execute(
        select(ClubSubscription).where(
            ClubSubscription.club_id == club_id,
            ClubSubscription.user_id == user_id,
        )
    ).scalar_one_or_none()
    if existing:
        raise Conflict("Already subscribed to this club")
    subscription = ClubSubscription(club_id=club_id, user_id=user_id)
    db.add(subscription)
    db.flush()
    return subscription


def unsubscribe(db: Session, club_id: int, user_id: int) -> None:
    subscription = db.execute(
        select(ClubSubscription).where(
            ClubSubscription.club_id == club_id,
            ClubSubscription.user_id == user_id,
        )
    ).scalar_one_or_none()
    if not subscription:
        raise NotFound("Subscription not found")
    db.delete(subscription)
    db.flush()


def subscriptions_for(db: Session, user_id: int) -> list[tuple[ClubSubscription, Club]]:
    return db.execute(
        select(ClubSubscription, Club)
        .join(Club, Club.id == ClubSubscription.club_id)
        .where(ClubSubscription.user_id == user_id)
        .order_by(ClubSubscription.created_at.desc())
    ).all()


def average_rating(db: Session, club_id: int) -> int:
    avg = db.execute(select(func.avg(ClubRating.rating)).where(ClubRating.club_id == club_id)).scalar()
    if avg is None:
        return 0
    # half-up, not banker's rounding
    return int(math.floor(float(avg) + 0.5))


def rate_club(db: Session, club_id: int, user_id: int, rating: int, comment: str | None) -> tuple[ClubRating, Club]:
    club = db.get(Club, club_id)
    if not club:
        raise NotFound("Club not found")

    with atomic(db):
        existing = db.execute(
            select(ClubRating).where(ClubRating.club_id == club_id, ClubRating.user_id == user_id)
        ).scalar_one_or_none()
        if existing:
            existing.rating = rating
            existing.comment = comment
            record = existing
        else:
            record = ClubRating(club_id=club_id, user_id=user_id, rating=rating, comment=comment)
            db.add(record)
        db.flush()
        club.rating = average_rating(db, club_id)

    db.refresh(record)
    return record, club


def ratings_for(db: Session, club_id: int) -> list[ClubRating]:
    if not db.get(Club, club_id):
        raise NotFound("Club not found")
    return (
        db.execute(
            select(ClubRating).where(ClubRating.club_id == club_id).order_by(ClubRating.created_at.desc())
        )
        .scalars()
        .all()
    )
