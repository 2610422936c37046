"""Durable key-value stores: ability names and cached analysis results."""

import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from kaiseki.db.models import AbilityName, AnalysisCacheEntry

logger = logging.getLogger(__name__)

BATCH_GET_CHUNK = 100


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SqlAbilityNameCache:
    """``ability_names`` table as a name cache backend for one language.

    Japanese names live in ``name_ja``; every other language uses ``name_en``.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], language: str = "ja"):
        self._session_factory = session_factory
        self._column = AbilityName.name_ja if language == "ja" else AbilityName.name_en
        self._attr = "name_ja" if language == "ja" else "name_en"

    async def _batch_select(self, column, ability_ids: Iterable[int]) -> dict[int, str]:
        ids = list(dict.fromkeys(ability_ids))
        out: dict[int, str] = {}
        if not ids:
            return out
        async with self._session_factory() as session:
            for i in range(0, len(ids), BATCH_GET_CHUNK):
                chunk = ids[i:i + BATCH_GET_CHUNK]
                result = await session.execute(
                    select(AbilityName.ability_id, column).where(
                        AbilityName.ability_id.in_(chunk)
                    )
                )
                out.update({row[0]: row[1] for row in result if row[1]})
        return out

    async def batch_get(self, ability_ids: Iterable[int]) -> dict[int, str]:
        return await self._batch_select(self._column, ability_ids)

    async def load(self, ability_ids: Iterable[int]) -> dict[int, str]:
        names = await self.batch_get(ability_ids)
        logger.debug("Loaded %d ability names from database", len(names))
        return names

    async def get_icons(self, ability_ids: Iterable[int]) -> dict[int, str]:
        return await self._batch_select(AbilityName.icon_url, ability_ids)

    async def save(self, names: dict[int, str], icons: dict[int, str] | None = None) -> None:
        """Upsert names in this language's column and icon URLs."""
        icons = icons or {}
        ids = list(dict.fromkeys([*names, *icons]))
        if not ids:
            return
        async with self._session_factory() as session:
            existing: dict[int, AbilityName] = {}
            for i in range(0, len(ids), BATCH_GET_CHUNK):
                result = await session.execute(
                    select(AbilityName).where(
                        AbilityName.ability_id.in_(ids[i:i + BATCH_GET_CHUNK])
                    )
                )
                existing.update({row.ability_id: row for row in result.scalars()})
            for ability_id in ids:
                row = existing.get(ability_id)
                if row is None:
                    row = AbilityName(ability_id=ability_id)
                    session.add(row)
                if names.get(ability_id):
                    setattr(row, self._attr, names[ability_id])
                if icons.get(ability_id):
                    row.icon_url = icons[ability_id]
            await session.commit()
        logger.info("Saved %d ability names, %d icons to database", len(names), len(icons))


class AnalysisCacheStore:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    async def get(self, cache_key: str) -> Any | None:
        """Return the payload for ``cache_key`` unless it is missing or expired."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(AnalysisCacheEntry.payload).where(
                    AnalysisCacheEntry.cache_key == cache_key,
                    AnalysisCacheEntry.expires_at > self._clock(),
                )
            )
            return result.scalar_one_or_none()

    async def put(self, cache_key: str, payload: Any, ttl: timedelta) -> None:
        now = self._clock()
        async with self._session_factory() as session:
            await session.merge(AnalysisCacheEntry(
                cache_key=cache_key,
                payload=payload,
                created_at=now,
                expires_at=now + ttl,
            ))
            await session.commit()

    async def purge_expired(self) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                delete(AnalysisCacheEntry).where(AnalysisCacheEntry.expires_at <= self._clock())
            )
            await session.commit()
        return result.rowcount or 0
