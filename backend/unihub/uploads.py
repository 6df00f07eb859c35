"""Image and payment-proof storage.

Files live under ``UPLOAD_DIR`` with random names and are referenced from
rows by their public URL (``/uploads/<name>``).
"""

import io
import logging
import os
import secrets
import time
from pathlib import Path

from fastapi import UploadFile
from PIL import Image
from sqlalchemy import select, union
from sqlalchemy.orm import Session

from .config import MAX_FILE_SIZE, UPLOAD_DIR, UPLOAD_MAX_AGE_HOURS, UPLOAD_URL_PREFIX
from .errors import InvalidInput
from .models import Event, EventRequest, Post, Poster, TicketBooking, User

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}


def upload_dir() -> Path:
    path = Path(UPLOAD_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path


def file_url(filename: str) -> str:
    return f"{UPLOAD_URL_PREFIX}/{filename}"


def read_image(upload: UploadFile) -> tuple[bytes, str]:
    """Validate an uploaded image and return its bytes and file extension."""
    if upload.content_type not in ALLOWED_CONTENT_TYPES:
        raise InvalidInput("Only image files (JPEG, PNG, GIF, WEBP) are allowed")

    content = upload.file.read(MAX_FILE_SIZE + 1)
    if len(content) > MAX_FILE_SIZE:
        raise InvalidInput(f"File too large. Maximum: {MAX_FILE_SIZE // (1024 * 1024)}MB")
    if not content:
        raise InvalidInput("Uploaded file is empty")

    try:
        Image.open(io.BytesIO(content)).verify()
    except Exception:
        raise InvalidInput("Invalid image file")

    return content, ALLOWED_CONTENT_TYPES[upload.content_type]


def save_upload(upload: UploadFile) -> str:
    content, extension = read_image(upload)
    filename = f"{secrets.token_hex(16)}.{extension}"
    with open(upload_dir() / filename, "wb") as f:
        f.write(content)
    logger.info("Stored upload %s (%d bytes)", filename, len(content))
    return file_url(filename)


def save_optional_upload(upload: UploadFile | None) -> str | None:
    if upload is None or not upload.filename:
        return None
    return save_upload(upload)


def delete_upload(url: str | None) -> None:
    if not url:
        return
    filename = url.rsplit("/", 1)[-1]
    path = Path(UPLOAD_DIR) / filename
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not delete upload %s: %s", filename, e)


def referenced_urls(db: Session) -> set[str]:
    stmt = union(
        select(User.profile_image),
        select(Poster.image),
        select(Post.image),
        select(TicketBooking.payment_proof),
        select(Event.image),
        select(EventRequest.image),
    )
    return {url for url in db.execute(stmt).scalars() if url}


def sweep_uploads(db: Session, max_age_hours: int = UPLOAD_MAX_AGE_HOURS) -> list[str]:
    """Delete stale upload files that no row references.

    Best effort: a file uploaded by a request whose transaction has not
    committed yet is younger than ``max_age_hours`` and therefore skipped.
    """
    directory = Path(UPLOAD_DIR)
    if not directory.is_dir():
        return []

    keep = {url.rsplit("/", 1)[-1] for url in referenced_urls(db)}
    cutoff = time.time() - max_age_hours * 3600
    removed = []
    for entry in os.scandir(directory):
        if not entry.is_file() or entry.name in keep:
            continue
        if entry.stat().st_mtime >= cutoff:
            continue
        try:
            os.unlink(entry.path)
            removed.append(entry.name)
        except OSError as e:
            logger.warning("Sweep could not delete %s: %s", entry.name, e)

    if removed:
        logger.info("Upload sweep removed %d stale file(s)", len(removed))
    return removed
