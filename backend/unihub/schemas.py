from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


def _not_blank(value: str):
    cleaned = value.strip() if isinstance(value, str) else ""
    if not cleaned:
        raise ValueError("must not be empty")
    return cleaned


class MessageResponse(BaseModel):
    message: str


# Auth / users


class RegisterRequest(BaseModel):
    name: str
    surname: str
    email: EmailStr
    password: str = Field(min_length=6)
    phone: Optional[str] = None
    gender: Optional[str] = None
    birth_date: Optional[str] = None

    @field_validator("name", "surname")
    @classmethod
    def must_not_be_empty(cls, value: str):
        return _not_blank(value)


class LoginRequest(BaseModel):
    email: str
    password: str


class VerifyEmailRequest(BaseModel):
    email: EmailStr
    code: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(min_length=6)


class AuthUser(BaseModel):
    id: int
    name: str
    surname: str
    email: str
    role: str


class AuthResponse(BaseModel):
    message: str
    token: str
    user: AuthUser


class UserSummary(BaseModel):
    id: int
    name: str
    surname: str


class UserContact(UserSummary):
    email: str


class ClubInfo(BaseModel):
    id: int
    name: str
    goal: str
    description: str


class UserOut(BaseModel):
    id: int
    name: str
    surname: str
    email: str
    role: str
    phone: Optional[str] = None
    gender: Optional[str] = None
    birth_date: Optional[str] = None
    profile_image: Optional[str] = None
    is_email_verified: bool
    created_at: datetime
    updated_at: datetime
    club_info: Optional[ClubInfo] = None


class UserListItem(BaseModel):
    id: int
    name: str
    surname: str
    email: str
    role: str
    created_at: datetime


# Club requests / clubs


class ClubRequestCreate(BaseModel):
    title: str
    club_name: str
    goal: str
    description: str
    financing: str
    resources: Optional[str] = None
    phone: str
    communication: str
    attraction_methods: str
    comment: Optional[str] = None

    @field_validator(
        "title", "club_name", "goal", "description", "financing", "phone", "communication", "attraction_methods"
    )
    @classmethod
    def must_not_be_empty(cls, value: str):
        return _not_blank(value)


class ClubRequestOut(BaseModel):
    id: int
    head_id: int
    title: str
    email: str
    phone: str
    communication: str
    club_name: str
    goal: str
    description: str
    financing: str
    resources: Optional[str] = None
    attraction_methods: str
    comment: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: datetime


class ClubSummary(BaseModel):
    id: int
    name: str


class ClubListItem(BaseModel):
    id: int
    name: str
    goal: str
    description: str
    rating: int
    created_at: datetime
    head: Optional[UserSummary] = None


class ClubDetail(ClubListItem):
    financing: str
    resources: Optional[str] = None
    attraction_methods: str
    head: Optional[UserContact] = None


class ClubOut(BaseModel):
    id: int
    name: str
    head_id: int
    goal: str
    description: str
    financing: str
    resources: Optional[str] = None
    attraction_methods: str
    rating: int
    created_at: datetime
    updated_at: datetime


class ClubUpdate(BaseModel):
    goal: Optional[str] = None
    description: Optional[str] = None
    financing: Optional[str] = None
    resources: Optional[str] = None
    attraction_methods: Optional[str] = None


class SubscriptionOut(BaseModel):
    club: ClubOut
    subscribed_at: datetime


class RatingCreate(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = None


class RatingOut(BaseModel):
    id: int
    club_id: int
    user_id: int
    rating: int
    comment: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class RatingResult(BaseModel):
    rating: RatingOut
    club_rating: int


# Event requests / events


class EventRequestOut(BaseModel):
    id: int
    club_id: int
    head_id: int
    event_name: str
    event_date: str
    location: str
    short_description: str
    goal: str
    organizers: str
    schedule: str
    sponsorship: Optional[str] = None
    club_head: str
    phone: str
    comment: Optional[str] = None
    image: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: datetime


class EventRequestListItem(BaseModel):
    id: int
    event_name: str
    event_date: str
    location: str
    status: str
    created_at: datetime
    club: Optional[ClubSummary] = None
    head: Optional[UserSummary] = None


class EventOut(BaseModel):
    id: int
    club_id: int
    head_id: int
    event_name: str
    event_date: str
    location: str
    short_description: str
    goal: str
    organizers: str
    schedule: str
    sponsorship: Optional[str] = None
    image: Optional[str] = None
    created_at: datetime


class EventListItem(BaseModel):
    id: int
    event_name: str
    event_date: str
    location: str
    short_description: str
    image: Optional[str] = None
    created_at: datetime
    club: Optional[ClubSummary] = None


class EventDetail(EventOut):
    club: Optional[ClubSummary] = None
    head: Optional[UserSummary] = None


class CommentCreate(BaseModel):
    content: str

    @field_validator("content")
    @classmethod
    def must_not_be_empty(cls, value: str):
        return _not_blank(value)


class CommentOut(BaseModel):
    id: int
    event_id: int
    user_id: int
    content: str
    created_at: datetime
    updated_at: datetime


# Posters / tickets


class PosterOut(BaseModel):
    id: int
    event_id: int
    club_id: int
    head_id: int
    event_title: str
    event_date: str
    location: str
    time: str
    description: str
    seats: int
    seats_left: int
    price: int
    image: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class PosterListItem(BaseModel):
    id: int
    event_title: str
    event_date: str
    location: str
    time: str
    description: str
    seats: int
    seats_left: int
    price: int
    image: Optional[str] = None
    club: Optional[ClubSummary] = None


class PosterDetail(PosterListItem):
    head: Optional[UserSummary] = None


class TicketOut(BaseModel):
    id: int
    poster_id: int
    user_id: int
    number_of_persons: int
    payment_proof: str
    status: str
    created_at: datetime


class TicketPoster(BaseModel):
    id: int
    event_title: str
    event_date: str
    location: str
    time: str
    price: int


class UserTicket(BaseModel):
    id: int
    number_of_persons: int
    status: str
    created_at: datetime
    poster: Optional[TicketPoster] = None


class PendingTicket(BaseModel):
    id: int
    number_of_persons: int
    payment_proof: str
    created_at: datetime
    poster: TicketPoster
    user: UserContact


class TicketDecision(BaseModel):
    message: str
    ticket: TicketOut
    seats_left: int


# Posts


class PostOut(BaseModel):
    id: int
    title: str
    content: str
    image: Optional[str] = None
    likes: int
    created_at: datetime
    user: Optional[UserSummary] = None
    club: Optional[ClubSummary] = None


class PostUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None


class LikeResult(BaseModel):
    message: str
    liked: bool
    likes: int


# Personal events / calendar


class PersonalEventCreate(BaseModel):
    event_name: str
    suggestions: Optional[str] = None
    date: str
    start_time: str
    end_time: str
    remind_me: bool = False

    @field_validator("event_name", "date", "start_time", "end_time")
    @classmethod
    def must_not_be_empty(cls, value: str):
        return _not_blank(value)


class PersonalEventUpdate(BaseModel):
    event_name: Optional[str] = None
    suggestions: Optional[str] = None
    date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    remind_me: Optional[bool] = None


class PersonalEventOut(BaseModel):
    id: int
    user_id: int
    event_name: str
    suggestions: Optional[str] = None
    date: str
    start_time: str
    end_time: str
    remind_me: bool
    created_at: datetime
    updated_at: datetime


class TicketCalendarEntry(BaseModel):
    id: int | str
    title: str
    date: str
    time: str
    location: str
    type: Literal["ticket"] = "ticket"
    persons: int
    source: Optional[str] = None


class PersonalCalendarEntry(BaseModel):
    id: str
    title: str
    date: str
    start_time: str
    end_time: str
    suggestions: Optional[str] = None
    remind_me: bool
    type: Literal["personal"] = "personal"
    source: Literal["personal"] = "personal"


class CombinedCalendar(BaseModel):
    total_events: int
    ticket_events: int
    personal_events: int
    events: list[TicketCalendarEntry | PersonalCalendarEntry]


class ClubCalendarEntry(BaseModel):
    id: int
    title: str
    date: str
    location: str
    description: str
    schedule: str
    type: Literal["club_event"] = "club_event"
    club_id: int
    club_name: str


class ClubCalendar(BaseModel):
    club: ClubSummary
    events: list[ClubCalendarEntry]


# Notifications


class NotificationOut(BaseModel):
    id: int
    type: str
    title: str
    message: str
    is_read: bool
    related_id: Optional[int] = None
    created_at: datetime
