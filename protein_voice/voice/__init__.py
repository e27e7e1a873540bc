"""Voice protein logging: recorder, transcriber, extractor and orchestration."""

from __future__ import annotations

from .assets import AudioAsset
from .exceptions import (
    AuthError,
    BadAudio,
    ConfigError,
    DeviceUnavailable,
    InvalidTransitionError,
    NetworkError,
    NoActiveRecording,
    PermissionDenied,
    RateLimited,
    UpstreamError,
    VoiceError,
)

__all__ = [
    "AudioAsset",
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
