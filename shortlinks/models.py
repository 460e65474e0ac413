"""SQLAlchemy ORM models for the shortlinks service.

Data Model Layout
=================
::
    urls table
    ├─ id (UUID PRIMARY KEY)
    ├─ short_path (VARCHAR(255) UNIQUE)
    ├─ destination (TEXT NOT NULL)
    ├─ title (VARCHAR(500) NULL)
    ├─ description (TEXT NULL)
    ├─ image_url (TEXT NULL)
    ├─ expires_at (TIMESTAMPTZ NULL, INDEXED)
    ├─ created_at (TIMESTAMPTZ, INDEXED)
    └─ updated_at (TIMESTAMPTZ)

Key Behaviours
===============
- id is generated in Python at insert time and never reassigned.
- short_path uniqueness is enforced by the database; violations surface
  as IntegrityError and are translated by the store.
- created_at / updated_at are set from the application clock (UTC) so
  ordering does not depend on the database's timestamp resolution.

Classes:
    URL:  One shortened URL with its redirect-page metadata.
"""

import datetime
import uuid

from sqlalchemy import DateTime, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from shortlinks.database import Base

__all__ = ["URL", "utcnow"]


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class URL(Base):
    __tablename__ = "urls"
    __table_args__ = (
        Index("idx_urls_expires_at", "expires_at"),
        Index("idx_urls_created_at", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    short_path: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    destination: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    expires_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<URL(id={self.id}, short_path='{self.short_path}')>"
