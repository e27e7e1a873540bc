"""Domain-specific exceptions for the voice logging pipeline."""
from __future__ import annotations

from typing import Optional


class VoiceError(Exception):
    """Base class for classified voice pipeline failures.

    Every subclass carries a stable ``kind`` used by callers to pick a
    user-facing message without inspecting exception text.
    """

    kind = "voice_error"
    user_message = "Something went wrong with voice input. Please try again."

    def __init__(self, message: Optional[str] = None, *, status_code: Optional[int] = None) -> None:
        super().__init__(message or self.user_message)
        self.status_code = status_code


class PermissionDenied(VoiceError):
    """Raised when the platform declines microphone access."""

    kind = "permission_denied"
    user_message = "Microphone access is turned off. Enable it in your settings to log by voice."


class DeviceUnavailable(VoiceError):
    """Raised when the capture stream cannot be opened."""

    kind = "device_unavailable"
    user_message = "The microphone is unavailable right now. Close other apps using it and try again."


class NoActiveRecording(VoiceError):
    """Raised when stopping without a recording in progress."""

    kind = "no_active_recording"
    user_message = "No recording in progress. Tap the microphone to start."


class ConfigError(VoiceError):
    """Raised when no credentials are configured for the remote services."""

    kind = "config_error"
    user_message = "Voice logging is unavailable at the moment."


class AuthError(VoiceError):
    """Raised when the remote service rejects the configured credentials."""

    kind = "auth_error"
    user_message = "Voice logging is unavailable at the moment."


class RateLimited(VoiceError):
    """Raised when the remote service throttles the request."""

    kind = "rate_limited"
    user_message = "Too many requests right now. Wait a moment and try again."


class BadAudio(VoiceError):
    """Raised when the recording is rejected or contains no speech."""

    kind = "bad_audio"
    user_message = "We couldn't understand that recording. Please try again and speak clearly."


class NetworkError(VoiceError):
    """Raised on transport-level failures (timeouts, DNS, resets)."""

    kind = "network_error"
    user_message = "Couldn't reach the server. Check your connection and try again."


class UpstreamError(VoiceError):
    """Raised for remote failures outside the other categories (5xx and friends)."""

    kind = "upstream_error"
    user_message = "The voice service is having trouble. Please try again later."


class InvalidTransitionError(Exception):
    """Raised when a pipeline action is not allowed in the current state."""


__all__ = [
    "AuthError",
    "BadAudio",
    "ConfigError",
    "DeviceUnavailable",
    "InvalidTransitionError",
    "NetworkError",
    "NoActiveRecording",
    "PermissionDenied",
    "RateLimited",
    "UpstreamError",
    "VoiceError",
]
