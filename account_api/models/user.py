from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class User(SQLModel, table=True):
    """
    Account row. `password` only ever holds a bcrypt hash; `refresh_token` is the
    single live refresh token (NULL after logout).
    """
    __tablename__ = "users"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    username: str = Field(index=True, unique=True, max_length=64)
    email: str = Field(index=True, unique=True, max_length=320)
    full_name: str = Field(max_length=200)
    avatar: str
    cover_image: str = ""
    password: str
    refresh_token: Optional[str] = Field(default=None, nullable=True)

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def touch(self) -> None:
        self.updated_at = _utcnow()
