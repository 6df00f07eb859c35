"""Poster seat inventory and ticket bookings.

``seats_left`` is only ever changed by single conditional UPDATE statements
so concurrent bookings can never drive it below zero or above ``seats``:

* booking reserves with ``seats_left = seats_left - n WHERE seats_left >= n``
* rejection releases with ``seats_left = min(seats_left + n, seats)``
* resizing applies ``max(0, seats_left + (new - seats))``
"""

import logging

from sqlalchemy import case, update
from sqlalchemy.orm import Session

from .db import atomic
from .errors import Forbidden, InsufficientCapacity, InvalidInput, InvalidState, NotFound
from .models import Event, Poster, Status, TicketBooking

logger = logging.getLogger(__name__)

POSTER_FIELDS = ("event_title", "event_date", "location", "time", "description", "price", "image")


def reserve_seats(db: Session, poster_id: int, count: int) -> None:
    result = db.execute(
        update(Poster)
        .where(Poster.id == poster_id, Poster.seats_left >= count)
        .values(seats_left=Poster.seats_left - count)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise InsufficientCapacity("Not enough seats available")


def release_seats(db: Session, poster_id: int, count: int) -> None:
    restored = Poster.seats_left + count
    db.execute(
        update(Poster)
        .where(Poster.id == poster_id)
        .values(seats_left=case((restored > Poster.seats, Poster.seats), else_=restored))
        .execution_options(synchronize_session=False)
    )


def create_poster(db: Session, head_id: int, club_id: int, event_id: int, data: dict) -> Poster:
    event = db.get(Event, event_id)
    if not event:
        raise NotFound("Event not found")
    if event.club_id != club_id:
        raise Forbidden("You can only create posters for your own club's events")
    if data["seats"] < 1:
        raise InvalidInput("Seats must be at least 1")
    if data.get("price", 0) < 0:
        raise InvalidInput("Price must not be negative")

    poster = Poster(
        event_id=event_id,
        club_id=club_id,
        head_id=head_id,
        seats=data["seats"],
        seats_left=data["seats"],
        **{field: data.get(field) for field in POSTER_FIELDS if field in data},
    )
    db.add(poster)
    db.flush()
    db.refresh(poster)
    logger.info("Poster %s created for event %s with %s seats", poster.id, event_id, poster.seats)
    return poster


def update_poster(db: Session, poster_id: int, head_id: int, changes: dict) -> Poster:
    poster = db.get(Poster, poster_id)
    if not poster:
        raise NotFound("Poster not found")
    if poster.head_id != head_id:
        raise Forbidden("You can only update your own posters")

    seats = changes.pop("seats", None)
    if seats is not None and seats < 1:
        raise InvalidInput("Seats must be at least 1")
    if changes.get("price") is not None and changes["price"] < 0:
        raise InvalidInput("Price must not be negative")

    with atomic(db):
        for field in POSTER_FIELDS:
            value = changes.get(field)
            if value is not None:
                setattr(poster, field, value)
        db.flush()

        if seats is not None and seats != poster.seats:
            # SET expressions see the pre-update row
            adjusted = Poster.seats_left + (seats - Poster.seats)
            db.execute(
                update(Poster)
                .where(Poster.id == poster_id)
                .values(seats=seats, seats_left=case((adjusted < 0, 0), else_=adjusted))
                .execution_options(synchronize_session=False)
            )

    db.refresh(poster)
    return poster


def book_ticket(
    db: Session, user_id: int, poster_id: int, number_of_persons: int, payment_proof: str | None
) -> TicketBooking:
    if number_of_persons is None or number_of_persons < 1:
        raise InvalidInput("Number of persons must be at least 1")
    if not payment_proof:
        raise InvalidInput("Payment proof is required")

    with atomic(db):
        if not db.get(Poster, poster_id):
            raise NotFound("Poster not found")
        reserve_seats(db, poster_id, number_of_persons)
        booking = TicketBooking(
            poster_id=poster_id,
            user_id=user_id,
            number_of_persons=number_of_persons,
            payment_proof=payment_proof,
            status=Status.PENDING.value,
        )
        db.add(booking)

    db.refresh(booking)
    logger.info("Booking %s: user %s reserved %s seat(s) on poster %s", booking.id, user_id, number_of_persons, poster_id)
    return booking


def _load_owned_booking(db: Session, ticket_id: int, head_id: int) -> tuple[TicketBooking, Poster]:
    booking = db.get(TicketBooking, ticket_id)
    if not booking:
        raise NotFound("Ticket booking not found")
    poster = db.get(Poster, booking.poster_id)
    if not poster:
        raise NotFound("Associated poster not found")
    if poster.head_id != head_id:
        raise Forbidden("You can only manage tickets for your own events")
    if booking.status != Status.PENDING.value:
        raise InvalidState(f"Ticket already {booking.status}")
    return booking, poster


def _transition(db: Session, booking: TicketBooking, status: Status) -> None:
    result = db.execute(
        update(TicketBooking)
        .where(TicketBooking.id == booking.id, TicketBooking.status == Status.PENDING.value)
        .values(status=status.value)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.refresh(booking)
        raise InvalidState(f"Ticket already {booking.status}")


def approve_ticket(db: Session, ticket_id: int, head_id: int) -> tuple[TicketBooking, Poster]:
    with atomic(db):
        booking, poster = _load_owned_booking(db, ticket_id, head_id)
        _transition(db, booking, Status.APPROVED)

    db.refresh(booking)
    db.refresh(poster)
    logger.info("Booking %s approved", booking.id)
    return booking, poster


def reject_ticket(db: Session, ticket_id: int, head_id: int) -> tuple[TicketBooking, Poster]:
    with atomic(db):
        booking, poster = _load_owned_booking(db, ticket_id, head_id)
        _transition(db, booking, Status.REJECTED)
        release_seats(db, poster.id, booking.number_of_persons)

    db.refresh(booking)
    db.refresh(poster)
    logger.info("Booking %s rejected, %s seat(s) released", booking.id, booking.number_of_persons)
    return booking, poster
