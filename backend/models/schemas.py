#  Voice Tutor - Pydantic Schemas
#
#  Request/response models for the REST API.
#
#  Depends on: services/passwords.py
#  Used by:    routes/*

from typing import Any

from pydantic import BaseModel, EmailStr, Field, field_validator

from backend.services.passwords import MAX_PASSWORD_BYTES, password_too_long


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    display_name: str = Field(..., min_length=1, max_length=100)
    age: int = Field(..., ge=5, le=18)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        if password_too_long(v):
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserOut(BaseModel):
    id: str
    email: str
    display_name: str
    age: int
    selected_voice: str
    total_points: int = 0
    created_at: float


class AuthResponse(BaseModel):
    message: str
    token: str
    user: UserOut


class UserEnvelope(BaseModel):
    user: UserOut


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------

class ProfileUpdate(BaseModel):
    display_name: str | None = Field(default=None, min_length=1, max_length=100)
    selected_voice: str | None = None


class ProfileUpdateResponse(BaseModel):
    message: str
    user: UserOut


# ---------------------------------------------------------------------------
# Voices
# ---------------------------------------------------------------------------

class VoiceOut(BaseModel):
    id: str
    name: str
    description: str
    sample_text: str
    age_range: str
    gender: str
    personality: str
    recommended: bool = False


class VoiceList(BaseModel):
    voices: list[VoiceOut]


# ---------------------------------------------------------------------------
# Conversations
# ---------------------------------------------------------------------------

class ConversationStartOut(BaseModel):
    conversation_id: str
    session_token: str
    voice: str
    user_name: str
    user_age: int


class ConversationEndRequest(BaseModel):
    duration_minutes: float | None = Field(default=None, ge=0)
    topic: str | None = Field(default=None, max_length=500)
    points_earned: int | None = Field(default=None, ge=0)
    transcript: Any = None
    had_errors: bool | None = None
    error_log: Any = None


class ConversationOut(BaseModel):
    id: str
    started_at: float
    ended_at: float | None = None
    duration_minutes: float | None = None
    topic: str | None = None
    points_earned: int = 0
    had_errors: bool = False


class ConversationEndResponse(BaseModel):
    message: str
    conversation: ConversationOut


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class ConversationPage(BaseModel):
    conversations: list[ConversationOut]
    pagination: Pagination
