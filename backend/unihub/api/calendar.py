from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..agenda import club_calendar, combined_calendar, ticket_entries
from ..auth_utils import Identity
from ..deps import get_db, require_roles
from ..models import Role
from ..schemas import ClubCalendar, CombinedCalendar, TicketCalendarEntry
from ..services import require_own_club

router = APIRouter()


@router.get("/api/calendar", response_model=CombinedCalendar)
def my_calendar(db: Session = Depends(get_db), identity: Identity = Depends(require_roles())):
    return combined_calendar(db, identity.id)


@router.get("/api/calendar/events", response_model=list[TicketCalendarEntry])
def ticket_calendar(db: Session = Depends(get_db), identity: Identity = Depends(require_roles())):
    return ticket_entries(db, identity.id)


@router.get("/api/calendar/my-club-calendar", response_model=ClubCalendar)
def my_club_calendar(
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles(Role.HEAD_ADMIN)),
):
    return club_calendar(db, require_own_club(db, identity.id))
