import logging
from datetime import datetime, timedelta

from email_validator import EmailNotValidError, validate_email
from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth_utils import Identity, create_access_token, generate_verification_code, hash_password, verify_password
from ..config import ADMIN_EMAIL, ADMIN_PASSWORD, VERIFICATION_CODE_TTL_MINUTES
from ..deps import get_db, require_roles
from ..errors import Conflict, InvalidInput, NotFound, Unauthorized
from ..models import EmailVerification, Role, User
from ..notifications import send_email, verification_code_email
from ..schemas import (
    AuthResponse,
    AuthUser,
    ChangePasswordRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    VerifyEmailRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def auth_response(message: str, user: User) -> AuthResponse:
    return AuthResponse(
        message=message,
        token=create_access_token(user),
        user=AuthUser.model_validate(user, from_attributes=True),
    )


def issue_verification_code(db: Session, email: str) -> str:
    code = generate_verification_code()
    expires_at = datetime.utcnow() + timedelta(minutes=VERIFICATION_CODE_TTL_MINUTES)
    record = db.execute(select(EmailVerification).where(EmailVerification.email == email)).scalar_one_or_none()
    if record:
        record.code = code
        record.expires_at = expires_at
    else:
        db.add(EmailVerification(email=email, code=code, expires_at=expires_at))
    db.flush()
    return code


@router.post("/api/auth/register", response_model=AuthResponse, status_code=201)
def register(payload: RegisterRequest, bg_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()
    existing = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if existing:
        raise Conflict("Email already exists")

    user = User(
        name=payload.name,
        surname=payload.surname,
        email=email,
        password_hash=hash_password(payload.password),
        role=Role.STUDENT.value,
        phone=payload.phone,
        gender=payload.gender,
        birth_date=payload.birth_date,
        is_email_verified=False,
    )
    db.add(user)
    db.flush()
    db.refresh(user)
    code = issue_verification_code(db, email)
    db.commit()

    subject, html = verification_code_email(code)
    bg_tasks.add_task(send_email, email, subject, html)
    logger.info("User %s registered", user.id)
    return auth_response("User registered successfully. Please check your email for the verification code.", user)


@router.post("/api/auth/verify-email", response_model=MessageResponse)
def verify_email(payload: VerifyEmailRequest, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()
    record = db.execute(select(EmailVerification).where(EmailVerification.email == email)).scalar_one_or_none()
    if not record:
        raise InvalidInput("No verification code found for this email")

    if record.expires_at < datetime.utcnow():
        db.delete(record)
        db.commit()
        raise InvalidInput("Verification code has expired")

    if record.code != payload.code.strip():
        raise InvalidInput("Invalid verification code")

    user = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if not user:
        raise NotFound("User not found")
    user.is_email_verified = True
    db.delete(record)
    return MessageResponse(message="Email verified successfully")


@router.post("/api/auth/login", response_model=AuthResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()
    user = db.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if not user or not verify_password(payload.password, user.password_hash):
        raise Unauthorized("Invalid credentials")
    return auth_response("Login successful", user)


@router.put("/api/auth/change-password", response_model=MessageResponse)
def change_password(
    payload: ChangePasswordRequest,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_roles()),
):
    user = db.get(User, identity.id)
    if not verify_password(payload.current_password, user.password_hash):
        raise Unauthorized("Current password is incorrect")
    user.password_hash = hash_password(payload.new_password)
    return MessageResponse(message="Password changed successfully")


def seed_super_admin(session: Session) -> None:
    if not ADMIN_EMAIL or not ADMIN_PASSWORD:
        return
    email = ADMIN_EMAIL.strip().lower()
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError as exc:
        logger.warning("ADMIN_EMAIL %s rejected, super admin not seeded: %s", email, exc)
        return
    if session.execute(select(User).where(User.email == email)).scalar_one_or_none():
        return
    session.add(
        User(
            name="Super",
            surname="Admin",
            email=email,
            password_hash=hash_password(ADMIN_PASSWORD),
            role=Role.SUPER_ADMIN.value,
            is_email_verified=True,
        )
    )
    logger.info("Seeded super admin %s", email)
