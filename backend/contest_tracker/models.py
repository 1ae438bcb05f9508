"""SQLModel data models.

This module defines the application's database tables using SQLModel
together with the enumerations they rely on. Each table class maps to a
single entity; relations are plain foreign keys.
"""

from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Optional

from pydantic import BaseModel
from sqlalchemy import JSON, Column, DateTime, Index, UniqueConstraint, text
from sqlalchemy.types import TypeDecorator
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Return `value` in UTC; naive values are taken to already be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def normalize_email(email: str) -> str:
    """Emails are stored and looked up lower-cased."""
    return email.strip().lower()


class AwareDateTime(TypeDecorator):
    """Stores UTC in a plain DATETIME column and hands back aware values."""
    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return as_utc(value).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return as_utc(value)


class Role(IntEnum):
    """User roles, ordered by privilege."""
    GUEST = 0
    USER = 1
    ADMIN = 2


class LanguageCode(str, Enum):
    """Languages a log can be recorded in. `GLOBAL` is the aggregate of all."""
    CHINESE = "chi"
    DUTCH = "dut"
    ENGLISH = "eng"
    ESPERANTO = "epo"
    FRENCH = "fre"
    GERMAN = "ger"
    GREEK = "gre"
    IRISH = "iri"
    ITALIAN = "ita"
    JAPANESE = "jpn"
    KOREAN = "kor"
    POLISH = "pol"
    PORTUGUESE = "por"
    RUSSIAN = "rus"
    SPANISH = "spa"
    SWEDISH = "swe"
    THAI = "tha"
    TURKISH = "tur"
    VIETNAMESE = "vie"
    GLOBAL = "glo"


class Medium(IntEnum):
    BOOK = 1
    COMIC = 2
    NET = 3
    FULL_GAME = 4
    GAME = 5
    LYRIC = 6
    NEWS = 7
    SENTENCES = 8

    @property
    def multiplier(self) -> float:
        return MEDIUM_MULTIPLIERS[self]


# score weight per page-equivalent of each medium
MEDIUM_MULTIPLIERS = {
    Medium.BOOK: 1.0,
    Medium.COMIC: 0.2,
    Medium.NET: 1.0,
    Medium.FULL_GAME: 0.05,
    Medium.GAME: 0.05,
    Medium.LYRIC: 1.0,
    Medium.NEWS: 1.0,
    Medium.SENTENCES: 0.05,
}


class Preferences(BaseModel):
    """Per-user settings, stored as a JSON document on the user row."""
    public_profile: bool = False


class User(SQLModel, table=True):
    """A registered user.

    Fields:
    - `email`: unique login name
    - `password`: hashed password string (never store plaintext)
    - `role`: one of `Role`, stored as its integer value
    - `preferences`: serialized `Preferences`
    """
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, nullable=False, unique=True)
    display_name: str
    password: str = ""
    role: int = Field(default=int(Role.USER))
    preferences: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=utcnow, sa_type=AwareDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=AwareDateTime)

    @property
    def user_role(self) -> Role:
        return Role(self.role)

    def settings(self) -> Preferences:
        return Preferences.model_validate(self.preferences or {})


class Contest(SQLModel, table=True):
    """A time-bounded reading contest.

    At most one contest may be open at a time; the partial unique index
    below enforces it for concurrent writers.
    """
    __tablename__ = "contests"
    __table_args__ = (
        Index(
            "uq_contests_single_open",
            "open",
            unique=True,
            sqlite_where=text("open = 1"),
            postgresql_where=text("open = true"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    description: str = ""
    start: datetime = Field(sa_type=AwareDateTime)
    end: datetime = Field(sa_type=AwareDateTime)
    open: bool = False


class ContestLog(SQLModel, table=True):
    """An amount of reading one user did in one language during a contest."""
    __tablename__ = "contest_logs"

    id: Optional[int] = Field(default=None, primary_key=True)
    contest_id: int = Field(foreign_key="contests.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    language: str
    medium_id: int
    amount: float = 0
    description: str = ""
    created_at: datetime = Field(default_factory=utcnow, sa_type=AwareDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=AwareDateTime)

    def adjusted_amount(self) -> float:
        return self.amount * Medium(self.medium_id).multiplier


class Ranking(SQLModel, table=True):
    """Running total of adjusted amounts for a (contest, user, language)."""
    __tablename__ = "rankings"
    __table_args__ = (
        UniqueConstraint("contest_id", "user_id", "language", name="uq_rankings_registration"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    contest_id: int = Field(foreign_key="contests.id", index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    language: str
    amount: float = 0
    created_at: datetime = Field(default_factory=utcnow, sa_type=AwareDateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=AwareDateTime)
