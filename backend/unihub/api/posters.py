from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth_utils import Identity
from ..deps import get_db, require_roles
from ..inventory import create_poster, update_poster
from ..models import Club, Poster, Role
from ..schemas import PosterDetail, PosterListItem, PosterOut
from ..services import get_or_404, require_own_club, serialize_poster_detail, serialize_posters
from ..uploads import delete_upload, save_optional_upload

router = APIRouter()

head_admin = require_roles(Role.HEAD_ADMIN)


def _newest_posters(db: Session, *criteria) -> list[Poster]:
    return (
        db.execute(select(Poster).where(*criteria).order_by(Poster.created_at.desc(), Poster.id.desc()))
        .scalars()
        .all()
    )


@router.post("/api/posters", response_model=PosterOut, status_code=201)
def add_poster(
    event_id: int = Form(...),
    event_title: str = Form(..., min_length=1),
    event_date: str = Form(..., min_length=1),
    location: str = Form(..., min_length=1),
    time: str = Form(..., min_length=1),
    description: str = Form(..., min_length=1),
    seats: int = Form(..., ge=1),
    price: int = Form(default=0, ge=0),
    image: UploadFile | None = File(default=None),
    db: Session = Depends(get_db),
    identity: Identity = Depends(head_admin),
):
    image_url = save_optional_upload(image)
    try:
        club = require_own_club(db, identity.id)
        poster = create_poster(
            db,
            identity.id,
            club.id,
            event_id,
            dict(
                event_title=event_title,
                event_date=event_date,
                location=location,
                time=time,
                description=description,
                seats=seats,
                price=price,
                image=image_url,
            ),
        )
        db.commit()
    except Exception:
        delete_upload(image_url)
        raise
    db.refresh(poster)
    return PosterOut.model_validate(poster, from_attributes=True)


@router.get("/api/posters", response_model=list[PosterListItem])
def list_posters(db: Session = Depends(get_db)):
    return serialize_posters(db, _newest_posters(db))


@router.get("/api/posters/my-posters", response_model=list[PosterListItem])
def my_posters(db: Session = Depends(get_db), identity: Identity = Depends(head_admin)):
    return serialize_posters(db, _newest_posters(db, Poster.head_id == identity.id))


@router.get("/api/posters/club/{club_id}", response_model=list[PosterListItem])
def club_posters(club_id: int, db: Session = Depends(get_db)):
    get_or_404(db, Club, club_id, "Club")
    return serialize_posters(db, _newest_posters(db, Poster.club_id == club_id))


@router.get("/api/posters/{poster_id}", response_model=PosterDetail)
def get_poster(poster_id: int, db: Session = Depends(get_db)):
    return serialize_poster_detail(db, get_or_404(db, Poster, poster_id, "Poster"))


@router.put("/api/posters/{poster_id}", response_model=PosterOut)
def edit_poster(
    poster_id: int,
    event_title: str | None = Form(default=None),
    event_date: str | None = Form(default=None),
    location: str | None = Form(default=None),
    time: str | None = Form(default=None),
    description: str | None = Form(default=None),
    seats: int | None = Form(default=None),
    price: int | None = Form(default=None),
    image: UploadFile | None = File(default=None),
    db: Session = Depends(get_db),
    identity: Identity = Depends(head_admin),
):
    image_url = save_optional_upload(image)
    try:
        previous_image = get_or_404(db, Poster, poster_id, "Poster").image
        poster = update_poster(
            db,
            poster_id,
            identity.id,
            dict(
                event_title=event_title,
                event_date=event_date,
                location=location,
                time=time,
                description=description,
                seats=seats,
                price=price,
                image=image_url,
            ),
        )
        db.commit()
    except Exception:
        delete_upload(image_url)
        raise
    if image_url and previous_image:
        delete_upload(previous_image)
    db.refresh(poster)
    return PosterOut.model_validate(poster, from_attributes=True)
