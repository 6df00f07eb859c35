import enum
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base


class Role(str, enum.Enum):
    STUDENT = "student"
    HEAD_ADMIN = "head_admin"
    SUPER_ADMIN = "super_admin"


class Status(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class NotificationType(str, enum.Enum):
    CLUB_APPROVED = "club_approved"
    CLUB_REJECTED = "club_rejected"
    EVENT_APPROVED = "event_approved"
    EVENT_REJECTED = "event_rejected"
    TICKET_APPROVED = "ticket_approved"
    TICKET_REJECTED = "ticket_rejected"


def _status_column():
    return mapped_column(String(20), default=Status.PENDING.value, nullable=False)


def _created_at():
    return mapped_column(DateTime(timezone=False), default=datetime.utcnow, nullable=False)


def _updated_at():
    return mapped_column(
        DateTime(timezone=False), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100))
    surname: Mapped[str] = mapped_column(String(100))
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), default=Role.STUDENT.value, nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), default=None)
    gender: Mapped[str | None] = mapped_column(String(20), default=None)
    birth_date: Mapped[str | None] = mapped_column(String(20), default=None)
    profile_image: Mapped[str | None] = mapped_column(String(255), default=None)
    is_email_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class EmailVerification(Base):
    __tablename__ = "email_verifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    code: Mapped[str] = mapped_column(String(6))
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=False))
    created_at: Mapped[datetime] = _created_at()


class ClubRequest(Base):
    __tablename__ = "club_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    head_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    title: Mapped[str] = mapped_column(String(200))
    email: Mapped[str] = mapped_column(String(255))
    phone: Mapped[str] = mapped_column(String(50))
    communication: Mapped[str] = mapped_column(String(255))
    club_name: Mapped[str] = mapped_column(String(200))
    goal: Mapped[str] = mapped_column(Text)
    description: Mapped[str] = mapped_column(Text)
    financing: Mapped[str] = mapped_column(Text)
    resources: Mapped[str | None] = mapped_column(Text, default=None)
    attraction_methods: Mapped[str] = mapped_column(Text)
    comment: Mapped[str | None] = mapped_column(Text, default=None)
    status: Mapped[str] = _status_column()
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class Club(Base):
    __tablename__ = "clubs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    # one club per head
    head_id: Mapped[int] = mapped_column(ForeignKey("users.id"), unique=True, nullable=False)
    goal: Mapped[str] = mapped_column(Text)
    description: Mapped[str] = mapped_column(Text)
    financing: Mapped[str] = mapped_column(Text)
    resources: Mapped[str | None] = mapped_column(Text, default=None)
    attraction_methods: Mapped[str] = mapped_column(Text)
    rating: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class EventRequest(Base):
    __tablename__ = "event_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    club_id: Mapped[int] = mapped_column(ForeignKey("clubs.id"), index=True)
    head_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    event_name: Mapped[str] = mapped_column(String(200))
    event_date: Mapped[str] = mapped_column(String(20))
    location: Mapped[str] = mapped_column(String(200))
    short_description: Mapped[str] = mapped_column(Text)
    goal: Mapped[str] = mapped_column(Text)
    organizers: Mapped[str] = mapped_column(Text)
    schedule: Mapped[str] = mapped_column(Text)
    sponsorship: Mapped[str | None] = mapped_column(Text, default=None)
    club_head: Mapped[str] = mapped_column(String(200))
    phone: Mapped[str] = mapped_column(String(50))
    comment: Mapped[str | None] = mapped_column(Text, default=None)
    image: Mapped[str | None] = mapped_column(String(255), default=None)
    status: Mapped[str] = _status_column()
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class Event(Base):
    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    club_id: Mapped[int] = mapped_column(ForeignKey("clubs.id"), index=True)
    head_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    event_name: Mapped[str] = mapped_column(String(200))
    event_date: Mapped[str] = mapped_column(String(20))
    location: Mapped[str] = mapped_column(String(200))
    short_description: Mapped[str] = mapped_column(Text)
    goal: Mapped[str] = mapped_column(Text)
    organizers: Mapped[str] = mapped_column(Text)
    schedule: Mapped[str] = mapped_column(Text)
    sponsorship: Mapped[str | None] = mapped_column(Text, default=None)
    image: Mapped[str | None] = mapped_column(String(255), default=None)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class Poster(Base):
    __tablename__ = "posters"
    __table_args__ = (
        CheckConstraint("seats_left >= 0", name="ck_posters_seats_left_non_negative"),
        CheckConstraint("seats_left <= seats", name="ck_posters_seats_left_within_seats"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id"), index=True)
    club_id: Mapped[int] = mapped_column(ForeignKey("clubs.id"), index=True)
    head_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    event_title: Mapped[str] = mapped_column(String(200))
    event_date: Mapped[str] = mapped_column(String(20))
    location: Mapped[str] = mapped_column(String(200))
    time: Mapped[str] = mapped_column(String(20))
    description: Mapped[str] = mapped_column(Text)
    seats: Mapped[int] = mapped_column(Integer, nullable=False)
    seats_left: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[int] = mapped_column(Integer, default=0)
    image: Mapped[str | None] = mapped_column(String(255), default=None)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class TicketBooking(Base):
    __tablename__ = "ticket_bookings"
    __table_args__ = (
        CheckConstraint("number_of_persons >= 1", name="ck_ticket_bookings_persons_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    poster_id: Mapped[int] = mapped_column(ForeignKey("posters.id"), index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    number_of_persons: Mapped[int] = mapped_column(Integer, nullable=False)
    payment_proof: Mapped[str] = mapped_column(String(255))
    status: Mapped[str] = _status_column()
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class Post(Base):
    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    club_id: Mapped[int | None] = mapped_column(ForeignKey("clubs.id"), nullable=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    title: Mapped[str] = mapped_column(String(200))
    content: Mapped[str] = mapped_column(Text)
    image: Mapped[str | None] = mapped_column(String(255), default=None)
    likes: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class PostLike(Base):
    __tablename__ = "post_likes"
    __table_args__ = (UniqueConstraint("post_id", "user_id", name="uq_post_likes_post_user"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(ForeignKey("posts.id"), index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    created_at: Mapped[datetime] = _created_at()


class ClubSubscription(Base):
    __tablename__ = "club_subscriptions"
    __table_args__ = (UniqueConstraint("club_id", "user_id", name="uq_club_subscriptions_club_user"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    club_id: Mapped[int] = mapped_column(ForeignKey("clubs.id"), index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    created_at: Mapped[datetime] = _created_at()


class ClubRating(Base):
    __tablename__ = "club_ratings"
    __table_args__ = (
        UniqueConstraint("club_id", "user_id", name="uq_club_ratings_club_user"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_club_ratings_range"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    club_id: Mapped[int] = mapped_column(ForeignKey("clubs.id"), index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, default=None)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class EventComment(Base):
    __tablename__ = "event_comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id"), index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    content: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class PersonalEvent(Base):
    __tablename__ = "personal_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    event_name: Mapped[str] = mapped_column(String(200))
    suggestions: Mapped[str | None] = mapped_column(Text, default=None)
    date: Mapped[str] = mapped_column(String(20))
    start_time: Mapped[str] = mapped_column(String(10))
    end_time: Mapped[str] = mapped_column(String(10))
    remind_me: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = _created_at()
    updated_at: Mapped[datetime] = _updated_at()


class UserNotification(Base):
    __tablename__ = "user_notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)
    type: Mapped[str] = mapped_column(String(30))
    title: Mapped[str] = mapped_column(String(200))
    message: Mapped[str] = mapped_column(Text)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    related_id: Mapped[int | None] = mapped_column(Integer, nullable=True)  # club, event or ticket id
    created_at: Mapped[datetime] = _created_at()
