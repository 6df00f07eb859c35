from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth_utils import Identity
from ..deps import get_db, require_roles
from ..errors import NotFound
from ..models import Role, User
from ..schemas import UserListItem, UserOut
from ..services import serialize_profile
from ..uploads import delete_upload, save_optional_upload

router = APIRouter()

super_admin = require_roles(Role.SUPER_ADMIN)


@router.get("/api/users/profile", response_model=UserOut)
def get_profile(db: Session = Depends(get_db), identity: Identity = Depends(require_roles())):
    user = db.get(User, identity.id)
    return serialize_profile(db, user)


@router.put("/api/users/profile", response_model=UserOut)
def update_profile(
    name: str | None = Form(default=None),
    surname: str | None = Form(default=None),
    phone: str | None = Form(default=None),
    gender: str | None = Form(default=None),
    birth_date: str | None = Form(default=None),
    profile_image: UploadFile | None = File(default=None),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles()),
):
    user = db.get(User, identity.id)
    image_url = save_optional_upload(profile_image)
    previous_image = None
    try:
        for field, value in (
            ("name", name),
            ("surname", surname),
            ("phone", phone),
            ("gender", gender),
            ("birth_date", birth_date),
        ):
            if value is not None and value.strip():
                setattr(user, field, value.strip())

        if image_url:
            previous_image = user.profile_image
            user.profile_image = image_url

        db.flush()
        db.commit()
    except Exception:
        delete_upload(image_url)
        raise
    if previous_image:
        delete_upload(previous_image)
    db.refresh(user)
    return serialize_profile(db, user)


@router.get("/api/users", response_model=list[UserListItem])
def list_users(db: Session = Depends(get_db), identity: Identity = Depends(super_admin)):
    users = db.execute(select(User).order_by(User.created_at.desc(), User.id.desc())).scalars().all()
    return [UserListItem.model_validate(u, from_attributes=True) for u in users]


@router.get("/api/users/{user_id}", response_model=UserOut)
def get_user(user_id: int, db: Session = Depends(get_db), identity: Identity = Depends(super_admin)):
    user = db.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    return serialize_profile(db, user)
