"""SQLAlchemy ORM models for the dynamic link service.

Data Model Layout
=================
::
    links table
    ├─ id (SERIAL PRIMARY KEY)
    ├─ short_code (VARCHAR(20) UNIQUE, INDEXED)
    ├─ description (TEXT NULL)            dashboard only
    ├─ ios_bundle_id (VARCHAR(255) NULL)
    ├─ ios_app_store_id (VARCHAR(64) NULL)
    ├─ ios_deep_link (TEXT NULL)
    ├─ android_package_name (VARCHAR(255) NULL)
    ├─ android_deep_link (TEXT NULL)
    ├─ web_fallback_url (TEXT NOT NULL)
    ├─ social_title (VARCHAR(70) NULL)
    ├─ social_description (VARCHAR(200) NULL)
    ├─ social_image_url (TEXT NULL)
    ├─ created_at (TIMESTAMPTZ, DEFAULT NOW())
    └─ updated_at (TIMESTAMPTZ, DEFAULT NOW(), ON UPDATE)

How to Use
===========
**Step 1: Create a link**::
    link = Link(short_code="aB3dE9f", web_fallback_url="https://example.com")
    db.add(link)
    await db.commit()

**Step 2: Query links**::
    result = await db.execute(select(Link).where(Link.short_code == "aB3dE9f"))
    link = result.scalar_one_or_none()

Key Behaviours
===============
- short_code is assigned once at creation and never changed afterwards.
- web_fallback_url is the only required target; every other target is optional.
- created_at and updated_at are managed by the database.

Classes:
    Link:  A link configuration resolved by short code.
"""

import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from dynalink.database import Base

__all__ = ["Link"]


class Link(Base):
    __tablename__ = "links"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    short_code: Mapped[str] = mapped_column(String(20), unique=True, index=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # iOS targets
    ios_bundle_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    ios_app_store_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    ios_deep_link: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Android targets
    android_package_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    android_deep_link: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Desktop / unknown
    web_fallback_url: Mapped[str] = mapped_column(Text, nullable=False)

    # Social preview
    social_title: Mapped[str | None] = mapped_column(String(70), nullable=True)
    social_description: Mapped[str | None] = mapped_column(String(200), nullable=True)
    social_image_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<Link(id={self.id}, short_code='{self.short_code}')>"
