"""Finite state machine tracking one voice logging attempt."""

from __future__ import annotations

from typing import Optional

from ..models.voice import VoiceInputResult
from .exceptions import InvalidTransitionError, VoiceError

STATE_IDLE = "idle"
STATE_RECORDING = "recording"
STATE_PROCESSING = "processing"
STATE_COMPLETED = "completed"
STATE_FAILED = "failed"

# A failed attempt is over; the next start behaves as from idle.
STARTABLE_STATES = {STATE_IDLE, STATE_FAILED}


class VoiceSessionFSM:
    """Coordinate ``idle -> recording -> processing -> completed | failed``."""

    def __init__(self) -> None:
        self.state = STATE_IDLE
        self.result: Optional[VoiceInputResult] = None
        self.error: Optional[VoiceError] = None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def begin_recording(self) -> None:
        if self.state not in STARTABLE_STATES:
            raise InvalidTransitionError(f"Cannot start recording from state '{self.state}'")
        self.state = STATE_RECORDING
        self.result = None
        self.error = None

    def begin_processing(self) -> None:
        if self.state != STATE_RECORDING:
            raise InvalidTransitionError(f"Cannot process from state '{self.state}'")
        self.state = STATE_PROCESSING

    def complete(self, result: VoiceInputResult) -> None:
        if self.state != STATE_PROCESSING:
            raise InvalidTransitionError(f"Cannot complete from state '{self.state}'")
        self.state = STATE_COMPLETED
        self.result = result

    def fail(self, error: VoiceError) -> None:
        if self.state not in {STATE_RECORDING, STATE_PROCESSING}:
            raise InvalidTransitionError(f"Cannot fail from state '{self.state}'")
        self.state = STATE_FAILED
        self.error = error

    def finish(self) -> VoiceInputResult:
        """Leave ``completed`` for ``idle``, returning the result held."""

        if self.state != STATE_COMPLETED or self.result is None:
            raise InvalidTransitionError(f"No completed result in state '{self.state}'")
        result = self.result
        self.reset()
        return result

    def reset(self) -> None:
        self.state = STATE_IDLE
        self.result = None
        self.error = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def user_message(self) -> Optional[str]:
        return self.error.user_message if self.error is not None else None


__all__ = [
    "STARTABLE_STATES",
    "STATE_COMPLETED",
    "STATE_FAILED",
    "STATE_IDLE",
    "STATE_PROCESSING",
    "STATE_RECORDING",
    "VoiceSessionFSM",
]
