"""Link configuration store backed by the ``links`` table.

Point lookups by short code or id, insert, update and a newest-first listing.
A unique-constraint violation on insert surfaces as ShortCodeCollisionError so
the service can regenerate the code.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dynalink.exceptions import ShortCodeCollisionError
from dynalink.models import Link

__all__ = ["LinkStore"]

logger = logging.getLogger(__name__)


class LinkStore:
    def __init__(self, session: AsyncSession) -> None:
        self._db = session

    async def get_by_short_code(self, short_code: str) -> Link | None:
        result = await self._db.execute(select(Link).where(Link.short_code == short_code))
        return result.scalar_one_or_none()

    async def get_by_id(self, link_id: int) -> Link | None:
        result = await self._db.execute(select(Link).where(Link.id == link_id))
        return result.scalar_one_or_none()

    async def add(self, link: Link) -> Link:
        self._db.add(link)
        try:
            await self._db.commit()
        except IntegrityError as exc:
            await self._db.rollback()
            logger.warning(f"Short code collision on insert: {link.short_code}")
            raise ShortCodeCollisionError(attempts=1) from exc
        await self._db.refresh(link)
        return link

    async def save(self, link: Link) -> Link:
        await self._db.commit()
        # updated_at is set by the database and must be reloaded.
        await self._db.refresh(link)
        return link

    async def list_recent(self) -> list[Link]:
        result = await self._db.execute(select(Link).order_by(Link.created_at.desc(), Link.id.desc()))
        return list(result.scalars().all())
