from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth_utils import Identity
from ..deps import get_db, is_super_admin, require_roles
from ..models import Post, Role
from ..schemas import LikeResult, MessageResponse, PostOut, PostUpdate
from ..services import club_for_head, get_or_404, serialize_posts
from ..social import delete_post, owned_post, toggle_like
from ..uploads import delete_upload, save_optional_upload

router = APIRouter()


def _newest_posts(db: Session, *criteria) -> list[Post]:
    return (
        db.execute(select(Post).where(*criteria).order_by(Post.created_at.desc(), Post.id.desc()))
        .scalars()
        .all()
    )


@router.post("/api/posts", response_model=PostOut, status_code=201)
def create_post(
    title: str = Form(..., min_length=1),
    content: str = Form(..., min_length=1),
    image: UploadFile | None = File(default=None),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles()),
):
    image_url = save_optional_upload(image)
    try:
        club = club_for_head(db, identity.id) if identity.role is Role.HEAD_ADMIN else None
        post = Post(
            club_id=club.id if club else None,
            user_id=identity.id,
            title=title,
            content=content,
            image=image_url,
            likes=0,
        )
        db.add(post)
        db.flush()
        db.commit()
    except Exception:
        delete_upload(image_url)
        raise
    db.refresh(post)
    return serialize_posts(db, [post])[0]


@router.get("/api/posts", response_model=list[PostOut])
def list_posts(club_id: int | None = None, db: Session = Depends(get_db)):
    criteria = [Post.club_id == club_id] if club_id is not None else []
    return serialize_posts(db, _newest_posts(db, *criteria))


@router.get("/api/posts/my-posts", response_model=list[PostOut])
def my_posts(db: Session = Depends(get_db), identity: Identity = Depends(require_roles())):
    return serialize_posts(db, _newest_posts(db, Post.user_id == identity.id))


@router.get("/api/posts/{post_id}", response_model=PostOut)
def get_post(post_id: int, db: Session = Depends(get_db)):
    return serialize_posts(db, [get_or_404(db, Post, post_id, "Post")])[0]


@router.put("/api/posts/{post_id}", response_model=PostOut)
def update_post(
    post_id: int,
    payload: PostUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles()),
):
    post = owned_post(db, post_id, identity.id, is_super_admin(identity))
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is not None and value.strip():
            setattr(post, field, value.strip())
    db.flush()
    db.refresh(post)
    return serialize_posts(db, [post])[0]


@router.delete("/api/posts/{post_id}", response_model=MessageResponse)
def remove_post(post_id: int, db: Session = Depends(get_db), identity: Identity = Depends(require_roles())):
    image = delete_post(db, post_id, identity.id, is_super_admin(identity))
    db.commit()
    delete_upload(image)
    return MessageResponse(message="Post deleted successfully")


@router.post("/api/posts/{post_id}/like", response_model=LikeResult)
def like(post_id: int, db: Session = Depends(get_db), identity: Identity = Depends(require_roles())):
    liked, likes = toggle_like(db, post_id, identity.id)
    return LikeResult(message="Post liked" if liked else "Post unliked", liked=liked, likes=likes)
