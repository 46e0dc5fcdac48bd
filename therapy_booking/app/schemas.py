# schemas.py
from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from .dependencies import BookingStatus, Language, SessionType
from .models import utcnow
from .utils import to_naive_utc

PHONE_PATTERN = r"^\+?[1-9]\d{1,14}$"


def ensure_future(value: datetime) -> datetime:
    value = to_naive_utc(value)
    if value <= utcnow():
        raise ValueError("session_date must be in the future")
    return value


class RegisterRequest(BaseModel):
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    password: str = Field(..., min_length=6)
    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)
    preferred_language: Language = Language.FRENCH
    role: Literal["CLIENT", "DOCTOR"] = "CLIENT"

    @model_validator(mode="after")
    def email_or_phone(self):
        if not self.email and not self.phone:
            raise ValueError("either email or phone is required")
        return self


class LoginRequest(BaseModel):
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    password: str

    @model_validator(mode="after")
    def email_or_phone(self):
        if not self.email and not self.phone:
            raise ValueError("either email or phone is required")
        return self


class LanguageUpdate(BaseModel):
    preferred_language: Language


class ForgotPasswordRequest(BaseModel):
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)

    @model_validator(mode="after")
    def email_or_phone(self):
        if not self.email and not self.phone:
            raise ValueError("either email or phone is required")
        return self


class ResetPasswordRequest(BaseModel):
    token: str
    password: str = Field(..., min_length=6)


class ResendVerificationRequest(BaseModel):
    email: EmailStr


class UserProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=2, max_length=50)
    last_name: Optional[str] = Field(None, min_length=2, max_length=50)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    date_of_birth: Optional[date] = None
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None


class DoctorProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=2, max_length=50)
    last_name: Optional[str] = Field(None, min_length=2, max_length=50)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    bio: Optional[str] = None
    specialization: Optional[List[str]] = None
    languages: Optional[List[Language]] = None
    hourly_rate: Optional[float] = Field(None, ge=0)
    available_hours: Optional[Dict[str, Any]] = None
    years_of_experience: Optional[int] = Field(None, ge=0)

    @field_validator("specialization")
    @classmethod
    def strip_specialization(cls, value):
        if value is None:
            return value
        return [s.strip() for s in value if s and s.strip()]


class BookingCreate(BaseModel):
    doctor_id: int
    session_date: datetime
    session_duration: int = Field(60, ge=30, le=180)
    session_type: SessionType = SessionType.VIDEO
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("session_date")
    @classmethod
    def session_in_future(cls, value):
        return ensure_future(value)


class BookingStatusUpdate(BaseModel):
    status: BookingStatus
    # When given, the transition only applies if the booking is still in this state
    expected_status: Optional[BookingStatus] = None


class BookingReschedule(BaseModel):
    session_date: datetime

    @field_validator("session_date")
    @classmethod
    def session_in_future(cls, value):
        return ensure_future(value)


class MessageCreate(BaseModel):
    receiver_id: int
    content: Optional[str] = None
    type: str = "TEXT"
    booking_id: Optional[int] = None


# Live channel event payloads; send-message reuses MessageCreate
class JoinBookingEvent(BaseModel):
    booking_id: int


class TypingEvent(BaseModel):
    receiver_id: int


class ReviewCreate(BaseModel):
    booking_id: int
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=500)


class SessionNoteUpdate(BaseModel):
    notes: str


class UserVerificationUpdate(BaseModel):
    is_verified: bool
