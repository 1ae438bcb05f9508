"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
the handlers and tests. Response schemas read straight from the SQLModel
tables; user responses never include the password.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from . import models


class LoginIn(BaseModel):
    """Payload for the login endpoint."""
    email: str
    password: str


class RegisterIn(BaseModel):
    email: EmailStr
    display_name: str = Field(min_length=1)
    password: str = Field(min_length=6)


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    display_name: str
    role: models.Role
    preferences: models.Preferences = models.Preferences()


class SessionOut(BaseModel):
    """Login/refresh response: the signed token and the user it was issued for."""
    token: str
    user: UserOut


class UpdatePasswordIn(BaseModel):
    current_password: str
    new_password: str


class UpdateProfileIn(BaseModel):
    display_name: str
    preferences: Optional[models.Preferences] = None


class ContestIn(BaseModel):
    """Request body for creating or updating a contest."""
    description: str
    start: datetime
    end: datetime
    open: bool = False

    @field_validator("start", "end")
    @classmethod
    def to_utc(cls, value: datetime) -> datetime:
        return models.as_utc(value)


class ContestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    description: str
    start: datetime
    end: datetime
    open: bool


class RankingIn(BaseModel):
    """Registration for a contest in one or more languages."""
    contest_id: int
    languages: List[str]


class RankingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    contest_id: int
    user_id: int
    language: str
    amount: float


class LeaderboardOut(RankingOut):
    user_display_name: str


class RegistrationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    contest_id: int
    start: datetime
    end: datetime
    languages: List[str]


class ContestLogIn(BaseModel):
    """Request body for a contest log; `contest_id` is ignored on update."""
    contest_id: Optional[int] = None
    language: str
    medium_id: int
    amount: float = Field(ge=0, allow_inf_nan=False)
    description: str = ""


class ContestLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    contest_id: int
    user_id: int
    language: str
    medium_id: int
    amount: float
    adjusted_amount: float
    description: str

    @classmethod
    def from_log(cls, log: models.ContestLog) -> "ContestLogOut":
        return cls(
            id=log.id,
            contest_id=log.contest_id,
            user_id=log.user_id,
            language=log.language,
            medium_id=log.medium_id,
            amount=log.amount,
            adjusted_amount=log.adjusted_amount(),
            description=log.description,
        )
