from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Float, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base

SOURCE_VOICE = "voice"
SOURCE_MANUAL = "manual"


def _generate_uuid() -> str:
    return str(uuid.uuid4())


class ProteinLogEntry(Base):
    """Protein intake logged for one local calendar day."""

    __tablename__ = "protein_log_entries"
    __table_args__ = (Index("ix_protein_log_entries_date", "date"),)

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_generate_uuid)
    date: Mapped[str] = mapped_column(String(10), nullable=False, doc="Local date key (YYYY-MM-DD).")
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    source: Mapped[str] = mapped_column(String(16), nullable=False, default=SOURCE_MANUAL)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )


__all__ = ["ProteinLogEntry", "SOURCE_MANUAL", "SOURCE_VOICE"]
