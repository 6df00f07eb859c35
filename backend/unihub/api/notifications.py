from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth_utils import Identity
from ..deps import get_db, require_roles
from ..notifications import list_notifications, mark_read
from ..schemas import NotificationOut

router = APIRouter()


@router.get("/api/notifications", response_model=list[NotificationOut])
def my_notifications(db: Session = Depends(get_db), identity: Identity = Depends(require_roles())):
    return [NotificationOut.model_validate(n, from_attributes=True) for n in list_notifications(db, identity.id)]


@router.put("/api/notifications/{notification_id}/read", response_model=NotificationOut)
def read_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles()),
):
    notification = mark_read(db, notification_id, identity.id)
    db.refresh(notification)
    return NotificationOut.model_validate(notification, from_attributes=True)
