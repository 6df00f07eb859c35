from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from .errors import NotFound
from .models import Club, Event, EventRequest, Post, Poster, Role, TicketBooking, User
from .schemas import (
    ClubDetail,
    ClubInfo,
    ClubListItem,
    ClubSummary,
    EventDetail,
    EventListItem,
    EventRequestListItem,
    PendingTicket,
    PostOut,
    PosterDetail,
    PosterListItem,
    TicketPoster,
    UserContact,
    UserOut,
    UserSummary,
    UserTicket,
)


def get_or_404(db: Session, model, object_id: int, label: str):
    obj = db.get(model, object_id)
    if not obj:
        raise NotFound(f"{label} not found")
    return obj


def club_for_head(db: Session, head_id: int) -> Club | None:
    return db.execute(select(Club).where(Club.head_id == head_id)).scalar_one_or_none()


def require_own_club(db: Session, head_id: int) -> Club:
    club = club_for_head(db, head_id)
    if not club:
        raise NotFound("You do not have a club")
    return club


def _by_id(db: Session, model, ids: Iterable[int | None]) -> dict:
    wanted = {i for i in ids if i is not None}
    if not wanted:
        return {}
    rows = db.execute(select(model).where(model.id.in_(wanted))).scalars().all()
    return {row.id: row for row in rows}


def users_by_id(db: Session, ids: Iterable[int | None]) -> dict[int, User]:
    return _by_id(db, User, ids)


def clubs_by_id(db: Session, ids: Iterable[int | None]) -> dict[int, Club]:
    return _by_id(db, Club, ids)


def user_summary(user: User | None) -> UserSummary | None:
    if not user:
        return None
    return UserSummary(id=user.id, name=user.name, surname=user.surname)


def user_contact(user: User | None) -> UserContact | None:
    if not user:
        return None
    return UserContact(id=user.id, name=user.name, surname=user.surname, email=user.email)


def club_summary(club: Club | None) -> ClubSummary | None:
    if not club:
        return None
    return ClubSummary(id=club.id, name=club.name)


def serialize_profile(db: Session, user: User) -> UserOut:
    profile = UserOut.model_validate(user, from_attributes=True)
    if user.role == Role.HEAD_ADMIN.value:
        club = club_for_head(db, user.id)
        if club:
            profile.club_info = ClubInfo.model_validate(club, from_attributes=True)
    return profile


def serialize_clubs(db: Session, clubs: list[Club]) -> list[ClubListItem]:
    heads = users_by_id(db, (c.head_id for c in clubs))
    return [
        ClubListItem(
            id=club.id,
            name=club.name,
            goal=club.goal,
            description=club.description,
            rating=club.rating,
            created_at=club.created_at,
            head=user_summary(heads.get(club.head_id)),
        )
        for club in clubs
    ]


def serialize_club_detail(db: Session, club: Club) -> ClubDetail:
    return ClubDetail(
        id=club.id,
        name=club.name,
        goal=club.goal,
        description=club.description,
        financing=club.financing,
        resources=club.resources,
        attraction_methods=club.attraction_methods,
        rating=club.rating,
        created_at=club.created_at,
        head=user_contact(db.get(User, club.head_id)),
    )


def serialize_event_requests(db: Session, requests: list[EventRequest]) -> list[EventRequestListItem]:
    clubs = clubs_by_id(db, (r.club_id for r in requests))
    heads = users_by_id(db, (r.head_id for r in requests))
    return [
        EventRequestListItem(
            id=r.id,
            event_name=r.event_name,
            event_date=r.event_date,
            location=r.location,
            status=r.status,
            created_at=r.created_at,
            club=club_summary(clubs.get(r.club_id)),
            head=user_summary(heads.get(r.head_id)),
        )
        for r in requests
    ]


def serialize_events(db: Session, events: list[Event]) -> list[EventListItem]:
    clubs = clubs_by_id(db, (e.club_id for e in events))
    return [
        EventListItem(
            id=e.id,
            event_name=e.event_name,
            event_date=e.event_date,
            location=e.location,
            short_description=e.short_description,
            image=e.image,
            created_at=e.created_at,
            club=club_summary(clubs.get(e.club_id)),
        )
        for e in events
    ]


def serialize_event_detail(db: Session, event: Event) -> EventDetail:
    detail = EventDetail.model_validate(event, from_attributes=True)
    detail.club = club_summary(db.get(Club, event.club_id))
    detail.head = user_summary(db.get(User, event.head_id))
    return detail


def _poster_fields(poster: Poster) -> dict:
    return dict(
        id=poster.id,
        event_title=poster.event_title,
        event_date=poster.event_date,
        location=poster.location,
        time=poster.time,
        description=poster.description,
        seats=poster.seats,
        seats_left=poster.seats_left,
        price=poster.price,
        image=poster.image,
    )


def serialize_posters(db: Session, posters: list[Poster]) -> list[PosterListItem]:
    clubs = clubs_by_id(db, (p.club_id for p in posters))
    return [PosterListItem(**_poster_fields(p), club=club_summary(clubs.get(p.club_id))) for p in posters]


def serialize_poster_detail(db: Session, poster: Poster) -> PosterDetail:
    return PosterDetail(
        **_poster_fields(poster),
        club=club_summary(db.get(Club, poster.club_id)),
        head=user_summary(db.get(User, poster.head_id)),
    )


def ticket_poster(poster: Poster | None) -> TicketPoster | None:
    if not poster:
        return None
    return TicketPoster.model_validate(poster, from_attributes=True)


def serialize_user_tickets(db: Session, bookings: list[TicketBooking]) -> list[UserTicket]:
    posters = _by_id(db, Poster, (b.poster_id for b in bookings))
    return [
        UserTicket(
            id=b.id,
            number_of_persons=b.number_of_persons,
            status=b.status,
            created_at=b.created_at,
            poster=ticket_poster(posters.get(b.poster_id)),
        )
        for b in bookings
    ]


def serialize_pending_tickets(db: Session, bookings: list[TicketBooking]) -> list[PendingTicket]:
    posters = _by_id(db, Poster, (b.poster_id for b in bookings))
    users = users_by_id(db, (b.user_id for b in bookings))
    results = []
    for b in bookings:
        poster = posters.get(b.poster_id)
        user = users.get(b.user_id)
        if not poster or not user:
            continue
        results.append(
            PendingTicket(
                id=b.id,
                number_of_persons=b.number_of_persons,
                payment_proof=b.payment_proof,
                created_at=b.created_at,
                poster=ticket_poster(poster),
                user=user_contact(user),
            )
        )
    return results


def serialize_posts(db: Session, posts: list[Post]) -> list[PostOut]:
    users = users_by_id(db, (p.user_id for p in posts))
    clubs = clubs_by_id(db, (p.club_id for p in posts))
    return [
        PostOut(
            id=p.id,
            title=p.title,
            content=p.content,
            image=p.image,
            likes=p.likes,
            created_at=p.created_at,
            user=user_summary(users.get(p.user_id)),
            club=club_summary(clubs.get(p.club_id)),
        )
        for p in posts
    ]
