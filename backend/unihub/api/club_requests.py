from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..approvals import approve_club_request, club_name_taken, reject_club_request
from ..auth_utils import Identity
from ..deps import get_db, is_super_admin, require_roles
from ..errors import Conflict, Forbidden, NotFound
from ..models import ClubRequest, NotificationType, Role, Status
from ..notifications import club_approval_email, record_notification, send_email
from ..schemas import ClubRequestCreate, ClubRequestOut

router = APIRouter()

super_admin = require_roles(Role.SUPER_ADMIN)


def _out(request: ClubRequest) -> ClubRequestOut:
    return ClubRequestOut.model_validate(request, from_attributes=True)


@router.post("/api/club-requests", response_model=ClubRequestOut, status_code=201)
def submit_club_request(
    payload: ClubRequestCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles(Role.STUDENT)),
):
    if club_name_taken(db, payload.club_name):
        raise Conflict("A club with this name already exists")
    request = ClubRequest(
        head_id=identity.id,
        email=identity.email,
        status=Status.PENDING.value,
        **payload.model_dump(),
    )
    db.add(request)
    db.flush()
    db.refresh(request)
    return _out(request)


@router.get("/api/club-requests", response_model=list[ClubRequestOut])
def list_club_requests(db: Session = Depends(get_db), identity: Identity = Depends(super_admin)):
    requests = (
        db.execute(select(ClubRequest).order_by(ClubRequest.created_at.desc(), ClubRequest.id.desc()))
        .scalars()
        .all()
    )
    return [_out(r) for r in requests]


@router.get("/api/club-requests/my-requests", response_model=list[ClubRequestOut])
def my_club_requests(db: Session = Depends(get_db), identity: Identity = Depends(require_roles())):
    requests = (
        db.execute(
            select(ClubRequest)
            .where(ClubRequest.head_id == identity.id)
            .order_by(ClubRequest.created_at.desc(), ClubRequest.id.desc())
        )
        .scalars()
        .all()
    )
    return [_out(r) for r in requests]


@router.get("/api/club-requests/{request_id}", response_model=ClubRequestOut)
def get_club_request(
    request_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles()),
):
    request = db.get(ClubRequest, request_id)
    if not request:
        raise NotFound("Club request not found")
    if request.head_id != identity.id and not is_super_admin(identity):
        raise Forbidden("Unauthorized access")
    return _out(request)


@router.put("/api/club-requests/{request_id}/approve")
def approve(
    request_id: int,
    bg_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    identity: Identity = Depends(super_admin),
):
    request, club, requester = approve_club_request(db, request_id)
    db.commit()

    bg_tasks.add_task(
        record_notification,
        requester.id,
        NotificationType.CLUB_APPROVED,
        "Club request approved",
        f'Your club "{club.name}" has been approved.',
        club.id,
    )
    subject, html = club_approval_email(club.name)
    bg_tasks.add_task(send_email, requester.email, subject, html)
    return {"message": "Club request approved successfully", "club_request": _out(request), "club_id": club.id}


@router.put("/api/club-requests/{request_id}/reject")
def reject(
    request_id: int,
    bg_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    identity: Identity = Depends(super_admin),
):
    request = reject_club_request(db, request_id)
    db.commit()

    bg_tasks.add_task(
        record_notification,
        request.head_id,
        NotificationType.CLUB_REJECTED,
        "Club request rejected",
        f'Your request for the club "{request.club_name}" was rejected.',
        request.id,
    )
    return {"message": "Club request rejected", "club_request": _out(request)}
