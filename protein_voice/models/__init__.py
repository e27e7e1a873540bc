"""Pydantic schemas exposed by the protein voice service."""
from .goals import GoalRequest, GoalResponse
from .logs import (
    DailySummaryResponse,
    MonthlyStatsResponse,
    ProteinEntriesByDate,
    ProteinEntry,
    ProteinEntryCreate,
    StreakResponse,
)
from .voice import (
    AudioUploadRequest,
    ExtractionPayload,
    ExtractionRequest,
    LogVoiceResultRequest,
    VoiceErrorPayload,
    VoiceInputResult,
    VoiceSessionResponse,
)

__all__ = [
    "AudioUploadRequest",
    "DailySummaryResponse",
    "ExtractionPayload",
    "ExtractionRequest",
    "GoalRequest",
    "GoalResponse",
    "LogVoiceResultRequest",
    "MonthlyStatsResponse",
    "ProteinEntriesByDate",
    "ProteinEntry",
    "ProteinEntryCreate",
    "StreakResponse",
    "VoiceErrorPayload",
    "VoiceInputResult",
    "VoiceSessionResponse",
]
