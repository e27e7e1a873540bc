"""Domain service for the protein log."""
from __future__ import annotations

from collections import defaultdict
from datetime import date as date_type
from typing import Dict, List, Optional, Union

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from ..models.voice import VoiceInputResult
from .models import SOURCE_MANUAL, SOURCE_VOICE, ProteinLogEntry

logger = structlog.get_logger(__name__)

DateLike = Union[str, date_type]

VALID_SOURCES = {SOURCE_VOICE, SOURCE_MANUAL}


def date_key(value: DateLike) -> str:
    """Normalise a date or ``YYYY-MM-DD`` string into a local date key."""

    if isinstance(value, date_type):
        return value.isoformat()
    return date_type.fromisoformat(value).isoformat()


class ProteinLogService:
    """Facade for reading and writing protein log entries."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def add_entry(
        self,
        date: DateLike,
        amount: float,
        description: Optional[str] = None,
        source: str = SOURCE_MANUAL,
    ) -> ProteinLogEntry:
        if amount <= 0:
            raise ValueError("Protein amount must be positive")
        if source not in VALID_SOURCES:
            raise ValueError(f"Unknown entry source '{source}'")

        entry = ProteinLogEntry(
            date=date_key(date),
            amount=float(amount),
            description=description,
            source=source,
        )
        self._db.add(entry)
        self._db.commit()
        self._db.refresh(entry)
        logger.info("protein_entry_added", entry_id=entry.id, date=entry.date, amount=entry.amount)
        return entry

    def log_voice_result(
        self,
        result: VoiceInputResult,
        date: Optional[DateLike] = None,
        amount: Optional[float] = None,
    ) -> ProteinLogEntry:
        """Persist a completed voice result, with an optional adjusted amount."""

        grams = amount if amount is not None else result.protein_amount
        if grams is None:
            raise ValueError("Voice result has no protein amount to log")
        return self.add_entry(
            date if date is not None else date_type.today(),
            grams,
            description=result.food_item or result.transcript,
            source=SOURCE_VOICE,
        )

    def entries_for_date(self, date: DateLike) -> List[ProteinLogEntry]:
        stmt = (
            select(ProteinLogEntry)
            .where(ProteinLogEntry.date == date_key(date))
            .order_by(ProteinLogEntry.created_at)
        )
        return list(self._db.scalars(stmt))

    def entries_for_range(self, start: DateLike, end: DateLike) -> Dict[str, List[ProteinLogEntry]]:
        stmt = (
            select(ProteinLogEntry)
            .where(ProteinLogEntry.date >= date_key(start), ProteinLogEntry.date <= date_key(end))
            .order_by(ProteinLogEntry.date, ProteinLogEntry.created_at)
        )
        grouped: Dict[str, List[ProteinLogEntry]] = defaultdict(list)
        for entry in self._db.scalars(stmt):
            grouped[entry.date].append(entry)
        return dict(grouped)

    def totals_for_range(self, start: DateLike, end: DateLike) -> Dict[str, float]:
        stmt = (
            select(ProteinLogEntry.date, func.sum(ProteinLogEntry.amount))
            .where(ProteinLogEntry.date >= date_key(start), ProteinLogEntry.date <= date_key(end))
            .group_by(ProteinLogEntry.date)
        )
        return {day: float(total) for day, total in self._db.execute(stmt)}

    def total_for_date(self, date: DateLike) -> float:
        return sum(entry.amount for entry in self.entries_for_date(date))

    def delete_entry(self, entry_id: str, date: DateLike) -> bool:
        stmt = delete(ProteinLogEntry).where(
            ProteinLogEntry.id == entry_id,
            ProteinLogEntry.date == date_key(date),
        )
        deleted = self._db.execute(stmt).rowcount
        self._db.commit()
        if deleted:
            logger.info("protein_entry_deleted", entry_id=entry_id)
        return bool(deleted)

    def clear_date(self, date: DateLike) -> int:
        key = date_key(date)
        deleted = self._db.execute(delete(ProteinLogEntry).where(ProteinLogEntry.date == key)).rowcount
        self._db.commit()
        logger.info("protein_entries_cleared", date=key, count=deleted)
        return deleted


__all__ = ["ProteinLogService", "date_key"]
