from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth_utils import Identity
from ..deps import get_db, require_roles
from ..errors import InvalidInput
from ..inventory import approve_ticket, book_ticket, reject_ticket
from ..models import NotificationType, Poster, Role, Status, TicketBooking, User
from ..notifications import record_notification, send_email, ticket_confirmation_email, ticket_rejection_email
from ..schemas import PendingTicket, TicketDecision, TicketOut, UserTicket
from ..services import serialize_pending_tickets, serialize_user_tickets
from ..uploads import delete_upload, save_optional_upload

router = APIRouter()

head_admin = require_roles(Role.HEAD_ADMIN)


@router.post("/api/tickets", response_model=TicketOut, status_code=201)
def book(
    poster_id: int = Form(...),
    number_of_persons: int = Form(...),
    payment_proof: UploadFile | None = File(default=None),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles()),
):
    if number_of_persons < 1:
        raise InvalidInput("Number of persons must be at least 1")
    proof_url = save_optional_upload(payment_proof)
    if not proof_url:
        raise InvalidInput("Payment proof is required")

    try:
        booking = book_ticket(db, identity.id, poster_id, number_of_persons, proof_url)
        db.commit()
    except Exception:
        delete_upload(proof_url)
        raise
    db.refresh(booking)
    return TicketOut.model_validate(booking, from_attributes=True)


@router.get("/api/tickets", response_model=list[UserTicket])
def my_tickets(db: Session = Depends(get_db), identity: Identity = Depends(require_roles())):
    bookings = (
        db.execute(
            select(TicketBooking)
            .where(TicketBooking.user_id == identity.id)
            .order_by(TicketBooking.created_at.desc(), TicketBooking.id.desc())
        )
        .scalars()
        .all()
    )
    return serialize_user_tickets(db, bookings)


@router.get("/api/tickets/pending", response_model=list[PendingTicket])
def pending_tickets(db: Session = Depends(get_db), identity: Identity = Depends(head_admin)):
    bookings = (
        db.execute(
            select(TicketBooking)
            .join(Poster, Poster.id == TicketBooking.poster_id)
            .where(Poster.head_id == identity.id, TicketBooking.status == Status.PENDING.value)
            .order_by(TicketBooking.created_at.asc(), TicketBooking.id.asc())
        )
        .scalars()
        .all()
    )
    return serialize_pending_tickets(db, bookings)


def _notify_decision(
    bg_tasks: BackgroundTasks, db: Session, booking: TicketBooking, poster: Poster, approved: bool
) -> None:
    if approved:
        kind, title = NotificationType.TICKET_APPROVED, "Ticket approved"
        message = f'Your ticket for "{poster.event_title}" has been confirmed.'
        subject, html = ticket_confirmation_email(poster.event_title, booking.id)
    else:
        kind, title = NotificationType.TICKET_REJECTED, "Ticket rejected"
        message = f'Your ticket for "{poster.event_title}" was rejected.'
        subject, html = ticket_rejection_email(poster.event_title, booking.id)

    bg_tasks.add_task(record_notification, booking.user_id, kind, title, message, booking.id)
    user = db.get(User, booking.user_id)
    if user:
        bg_tasks.add_task(send_email, user.email, subject, html)


@router.put("/api/tickets/{ticket_id}/approve", response_model=TicketDecision)
def approve(
    ticket_id: int,
    bg_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    identity: Identity = Depends(head_admin),
):
    booking, poster = approve_ticket(db, ticket_id, identity.id)
    db.commit()
    _notify_decision(bg_tasks, db, booking, poster, approved=True)
    return TicketDecision(
        message="Ticket approved successfully",
        ticket=TicketOut.model_validate(booking, from_attributes=True),
        seats_left=poster.seats_left,
    )


@router.put("/api/tickets/{ticket_id}/reject", response_model=TicketDecision)
def reject(
    ticket_id: int,
    bg_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    identity: Identity = Depends(head_admin),
):
    booking, poster = reject_ticket(db, ticket_id, identity.id)
    db.commit()
    _notify_decision(bg_tasks, db, booking, poster, approved=False)
    return TicketDecision(
        message="Ticket rejected and seats restored",
        ticket=TicketOut.model_validate(booking, from_attributes=True),
        seats_left=poster.seats_left,
    )
