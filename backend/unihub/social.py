import logging

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .db import atomic
from .errors import Conflict, Forbidden, NotFound
from .models import EventComment, Post, PostLike

logger = logging.getLogger(__name__)


def toggle_like(db: Session, post_id: int, user_id: int) -> tuple[bool, int]:
    """Like the post, or unlike it if the user already did.

    The like row and the counter change commit together, so ``likes`` always
    equals the number of like rows.
    """
    post = db.get(Post, post_id)
    if not post:
        raise NotFound("Post not found")

    try:
        with atomic(db):
            existing = db.execute(
                select(PostLike).where(PostLike.post_id == post_id, PostLike.user_id == user_id)
            ).scalar_one_or_none()
            if existing:
                db.delete(existing)
                delta = -1
            else:
                db.add(PostLike(post_id=post_id, user_id=user_id))
                delta = 1
            db.flush()
            db.execute(
                update(Post)
                .where(Post.id == post_id)
                .values(likes=Post.likes + delta)
                .execution_options(synchronize_session=False)
            )
    except IntegrityError:
        # another request inserted the same like between our read and write
        logger.warning("Concurrent like on post %s by user %s", post_id, user_id)
        raise Conflict("Like is already being processed")

    db.refresh(post)
    return delta > 0, post.likes


def owned_post(db: Session, post_id: int, user_id: int, override: bool = False) -> Post:
    post = db.get(Post, post_id)
    if not post:
        raise NotFound("Post not found")
    if post.user_id != user_id and not override:
        raise Forbidden("You can only modify your own posts")
    return post


def delete_post(db: Session, post_id: int, user_id: int, override: bool = False) -> str | None:
    post = owned_post(db, post_id, user_id, override)
    image = post.image
    with atomic(db):
        db.execute(delete(PostLike).where(PostLike.post_id == post_id))
        db.delete(post)
    logger.info("Post %s deleted by user %s", post_id, user_id)
    return image


def owned_comment(db: Session, event_id: int, comment_id: int, user_id: int) -> EventComment:
    comment = db.get(EventComment, comment_id)
    if not comment or comment.event_id != event_id:
        raise NotFound("Comment not found")
    if comment.user_id != user_id:
        raise Forbidden("You can only modify your own comments")
    return comment
