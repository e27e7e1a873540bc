"""Pydantic models for voice logging results and requests."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class VoiceInputResult(BaseModel):
    """Outcome of one voice logging run.

    ``protein_amount`` is absent exactly when ``confidence`` is zero; a value
    breaking that rule cannot be constructed.
    """

    transcript: str = Field(..., description="Verbatim text returned by the transcriber")
    protein_amount: Optional[float] = Field(
        default=None,
        ge=0.0,
        alias="proteinAmount",
        description="Protein in grams, absent when it could not be determined",
    )
    food_item: Optional[str] = Field(
        default=None,
        alias="foodItem",
        description="Human readable label of what was eaten",
    )
    confidence: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Certainty of the extracted amount, 0 when not determined",
    )

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @model_validator(mode="after")
    def _amount_matches_confidence(self) -> "VoiceInputResult":
        if (self.protein_amount is None) != (self.confidence == 0):
            raise ValueError("proteinAmount must be absent exactly when confidence is 0")
        return self

    @classmethod
    def undetermined(cls, transcript: str) -> "VoiceInputResult":
        return cls(transcript=transcript, protein_amount=None, food_item=None, confidence=0.0)

    @property
    def determined(self) -> bool:
        return self.protein_amount is not None


class ExtractionPayload(BaseModel):
    """Shape of the structured content returned by the language model."""

    protein_amount: Optional[float] = Field(..., ge=0.0, alias="proteinAmount")
    food_item: Optional[str] = Field(default=None, alias="foodItem")
    confidence: float = Field(..., ge=0.0, le=1.0)

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class VoiceErrorPayload(BaseModel):
    """Classified failure surfaced to the caller."""

    kind: str = Field(..., description="Stable identifier of the failure category")
    message: str = Field(..., description="User-facing explanation of the failure")


class VoiceSessionResponse(BaseModel):
    """Snapshot of the voice logging state machine."""

    state: str = Field(..., description="Current pipeline state")
    result: Optional[VoiceInputResult] = Field(
        default=None, description="Result of the last completed run"
    )
    error: Optional[VoiceErrorPayload] = Field(
        default=None, description="Failure of the last run, if it failed"
    )


class AudioUploadRequest(BaseModel):
    """Audio recorded by a client, submitted for a full voice logging run."""

    audio_base64: str = Field(..., min_length=1, description="Audio content encoded in base64")
    audio_format: str = Field(
        "m4a",
        pattern=r"^\.?[A-Za-z0-9]{1,8}$",
        description="File extension of the encoded audio (e.g. m4a, wav)",
    )
    sample_rate: int = Field(44100, gt=0, description="Sample rate of the recording")
    channels: int = Field(1, ge=1, le=2, description="Channel count of the recording")


class ExtractionRequest(BaseModel):
    """Transcript submitted for protein extraction only."""

    transcript: str = Field(..., min_length=1, description="Text to interpret")

    model_config = ConfigDict(str_strip_whitespace=True)


class LogVoiceResultRequest(BaseModel):
    """Confirmation of a completed voice result, optionally adjusted."""

    amount: Optional[float] = Field(
        default=None,
        gt=0.0,
        description="Adjusted protein amount; defaults to the extracted amount",
    )
    date: Optional[str] = Field(
        default=None,
        pattern=r"^\d{4}-\d{2}-\d{2}$",
        description="Local date key (YYYY-MM-DD); defaults to today",
    )
