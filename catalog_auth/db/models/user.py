# catalog_auth/db/models/user.py
from sqlmodel import SQLModel, Field
from datetime import datetime, timezone
import uuid


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    __tablename__ = "users"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    mobile: str = Field(max_length=20, unique=True, index=True)
    created_at: datetime = Field(default_factory=_utcnow)
