"""Persistence for logged protein entries."""

from __future__ import annotations

from .database import Base, get_db
from .logs import ProteinLogService, date_key
from .models import ProteinLogEntry

__all__ = ["Base", "ProteinLogEntry", "ProteinLogService", "date_key", "get_db"]
