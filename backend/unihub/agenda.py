"""Per-user calendar built from approved tickets and personal events."""

from sqlalchemy import select
from sqlalchemy.orm import Session

from .models import Club, Event, PersonalEvent, Poster, Status, TicketBooking
from .schemas import (
    ClubCalendar,
    ClubCalendarEntry,
    ClubSummary,
    CombinedCalendar,
    PersonalCalendarEntry,
    TicketCalendarEntry,
)


def ticket_entries(db: Session, user_id: int, prefixed: bool = False) -> list[TicketCalendarEntry]:
    rows = db.execute(
        select(TicketBooking, Poster)
        .join(Poster, Poster.id == TicketBooking.poster_id)
        .where(TicketBooking.user_id == user_id, TicketBooking.status == Status.APPROVED.value)
        .order_by(Poster.event_date.asc(), Poster.time.asc())
    ).all()
    return [
        TicketCalendarEntry(
            id=f"ticket-{booking.id}" if prefixed else booking.id,
            title=poster.event_title,
            date=poster.event_date,
            time=poster.time,
            location=poster.location,
            persons=booking.number_of_persons,
            source="booking" if prefixed else None,
        )
        for booking, poster in rows
    ]


def personal_entries(db: Session, user_id: int) -> list[PersonalCalendarEntry]:
    events = (
        db.execute(
            select(PersonalEvent)
            .where(PersonalEvent.user_id == user_id)
            .order_by(PersonalEvent.date.asc(), PersonalEvent.start_time.asc())
        )
        .scalars()
        .all()
    )
    return [
        PersonalCalendarEntry(
            id=f"personal-{e.id}",
            title=e.event_name,
            date=e.date,
            start_time=e.start_time,
            end_time=e.end_time,
            suggestions=e.suggestions,
            remind_me=e.remind_me,
        )
        for e in events
    ]


def combined_calendar(db: Session, user_id: int) -> CombinedCalendar:
    tickets = ticket_entries(db, user_id, prefixed=True)
    personal = personal_entries(db, user_id)
    return CombinedCalendar(
        total_events=len(tickets) + len(personal),
        ticket_events=len(tickets),
        personal_events=len(personal),
        events=[*tickets, *personal],
    )


def club_calendar(db: Session, club: Club) -> ClubCalendar:
    events = (
        db.execute(select(Event).where(Event.club_id == club.id).order_by(Event.event_date.asc()))
        .scalars()
        .all()
    )
    return ClubCalendar(
        club=ClubSummary(id=club.id, name=club.name),
        events=[
            ClubCalendarEntry(
                id=e.id,
                title=e.event_name,
                date=e.event_date,
                location=e.location,
                description=e.short_description,
                schedule=e.schedule,
                club_id=club.id,
                club_name=club.name,
            )
            for e in events
        ],
    )
