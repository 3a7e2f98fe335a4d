"""SQLAlchemy models for the generation store.

Two tables: ``generation_cache`` maps a request fingerprint to the serialized
result, and ``generation_history`` holds one append-only row per run.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """SQLAlchemy 2.0 declarative base for store models."""


class GenerationCacheRow(Base):
    """A cached generation result.

    Attributes:
        fingerprint: SHA-256 request fingerprint (primary key).
        result_json: GenerationResult serialized as JSON text.
        created_at: Row creation timestamp.
        updated_at: Timestamp of the last overwrite.
    """

    __tablename__ = "generation_cache"

    fingerprint: Mapped[str] = mapped_column(String(64), primary_key=True)
    result_json: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )


class GenerationHistoryRow(Base):
    """One generation run.

    ``id`` is a monotonically increasing surrogate key used for ordering;
    ``generation_id`` is the identifier exposed to callers.
    """

    __tablename__ = "generation_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    generation_id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)
    request_id: Mapped[str] = mapped_column(String(255), nullable=False)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    project_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    fingerprint: Mapped[str | None] = mapped_column(String(64), nullable=True)
    mode: Mapped[str] = mapped_column(String(32), nullable=False)
    target: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    error_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    quality_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    validated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    total_components: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_lines: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    generation_time_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    architecture_style: Mapped[str | None] = mapped_column(String(128), nullable=True)
    component_names: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    domain: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
