from datetime import datetime

from sqlalchemy import JSON, DateTime, Index, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class AbilityName(Base):
    """Ability id to localized name, shared by every resolver instance."""

    __tablename__ = "ability_names"

    ability_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name_ja: Mapped[str | None] = mapped_column(String(200))
    name_en: Mapped[str | None] = mapped_column(String(200))
    icon_url: Mapped[str | None] = mapped_column(String(500))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class AnalysisCacheEntry(Base):
    __tablename__ = "analysis_cache"
    __table_args__ = (
        Index("ix_analysis_cache_expires_at", "expires_at"),
    )

    cache_key: Mapped[str] = mapped_column(String(100), primary_key=True)
    payload: Mapped[dict] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
