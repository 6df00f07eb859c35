from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..approvals import approve_event_request, reject_event_request
from ..auth_utils import Identity
from ..deps import get_db, is_super_admin, require_roles
from ..errors import Forbidden, NotFound
from ..models import EventRequest, NotificationType, Role, Status, User
from ..notifications import event_approval_email, record_notification, send_email
from ..schemas import EventOut, EventRequestListItem, EventRequestOut
from ..services import club_for_head, serialize_event_requests
from ..uploads import delete_upload, save_optional_upload

router = APIRouter()

super_admin = require_roles(Role.SUPER_ADMIN)


def _out(request: EventRequest) -> EventRequestOut:
    return EventRequestOut.model_validate(request, from_attributes=True)


@router.post("/api/event-requests", response_model=EventRequestOut, status_code=201)
def submit_event_request(
    event_name: str = Form(..., min_length=1),
    event_date: str = Form(..., min_length=1),
    location: str = Form(..., min_length=1),
    short_description: str = Form(..., min_length=1),
    goal: str = Form(..., min_length=1),
    organizers: str = Form(..., min_length=1),
    schedule: str = Form(..., min_length=1),
    club_head: str = Form(..., min_length=1),
    phone: str = Form(..., min_length=1),
    sponsorship: str | None = Form(default=None),
    comment: str | None = Form(default=None),
    image: UploadFile | None = File(default=None),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles(Role.HEAD_ADMIN)),
):
    image_url = save_optional_upload(image)
    try:
        club = club_for_head(db, identity.id)
        if not club:
            raise NotFound("You do not have a club")
        request = EventRequest(
            club_id=club.id,
            head_id=identity.id,
            event_name=event_name,
            event_date=event_date,
            location=location,
            short_description=short_description,
            goal=goal,
            organizers=organizers,
            schedule=schedule,
            sponsorship=sponsorship,
            club_head=club_head,
            phone=phone,
            comment=comment,
            image=image_url,
            status=Status.PENDING.value,
        )
        db.add(request)
        db.flush()
        db.commit()
    except Exception:
        delete_upload(image_url)
        raise
    db.refresh(request)
    return _out(request)


@router.get("/api/event-requests", response_model=list[EventRequestListItem])
def list_event_requests(db: Session = Depends(get_db), identity: Identity = Depends(super_admin)):
    requests = (
        db.execute(select(EventRequest).order_by(EventRequest.created_at.desc(), EventRequest.id.desc()))
        .scalars()
        .all()
    )
    return serialize_event_requests(db, requests)


@router.get("/api/event-requests/my-requests", response_model=list[EventRequestOut])
def my_event_requests(
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles(Role.HEAD_ADMIN)),
):
    requests = (
        db.execute(
            select(EventRequest)
            .where(EventRequest.head_id == identity.id)
            .order_by(EventRequest.created_at.desc(), EventRequest.id.desc())
        )
        .scalars()
        .all()
    )
    return [_out(r) for r in requests]


@router.get("/api/event-requests/{request_id}", response_model=EventRequestOut)
def get_event_request(
    request_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles()),
):
    request = db.get(EventRequest, request_id)
    if not request:
        raise NotFound("Event request not found")
    if request.head_id != identity.id and not is_super_admin(identity):
        raise Forbidden("Unauthorized access")
    return _out(request)


@router.put("/api/event-requests/{request_id}/approve")
def approve(
    request_id: int,
    bg_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    identity: Identity = Depends(super_admin),
):
    request, event = approve_event_request(db, request_id)
    db.commit()

    bg_tasks.add_task(
        record_notification,
        request.head_id,
        NotificationType.EVENT_APPROVED,
        "Event request approved",
        f'Your event "{event.event_name}" has been approved.',
        event.id,
    )
    head = db.get(User, request.head_id)
    if head:
        subject, html = event_approval_email(event.event_name)
        bg_tasks.add_task(send_email, head.email, subject, html)
    return {
        "message": "Event request approved successfully",
        "event_request": _out(request),
        "event": EventOut.model_validate(event, from_attributes=True),
    }


@router.put("/api/event-requests/{request_id}/reject")
def reject(
    request_id: int,
    bg_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    identity: Identity = Depends(super_admin),
):
    request = reject_event_request(db, request_id)
    db.commit()

    bg_tasks.add_task(
        record_notification,
        request.head_id,
        NotificationType.EVENT_REJECTED,
        "Event request rejected",
        f'Your event "{request.event_name}" was rejected.',
        request.id,
    )
    return {"message": "Event request rejected", "event_request": _out(request)}
