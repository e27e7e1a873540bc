"""Wrapper around the OpenAI speech-to-text and chat completion APIs."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional, Type, TypeVar

import openai
from openai import OpenAI
from opentelemetry import trace
from opentelemetry.trace import Span, Status, StatusCode

from .telemetry import get_correlation_id
from .voice.exceptions import (
    AuthError,
    BadAudio,
    ConfigError,
    NetworkError,
    RateLimited,
    UpstreamError,
    VoiceError,
)

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

T = TypeVar("T")


@dataclass
class TranscriptionResult:
    """Container for ASR transcription results."""

    text: str
    language: Optional[str] = None


@dataclass
class ChatCompletionResult:
    """Container for chat completion responses."""

    content: Optional[str]
    model: str
    usage: Optional[Dict[str, Any]] = None
    finish_reason: Optional[str] = None


def classify_openai_error(
    exc: openai.OpenAIError,
    *,
    bad_request: Type[VoiceError] = BadAudio,
) -> VoiceError:
    """Map an SDK exception onto the voice pipeline taxonomy."""

    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return AuthError(str(exc), status_code=exc.status_code)
    if isinstance(exc, openai.RateLimitError):
        return RateLimited(str(exc), status_code=exc.status_code)
    if isinstance(exc, openai.BadRequestError):
        return bad_request(str(exc), status_code=exc.status_code)
    if isinstance(exc, openai.APIConnectionError):
        # APITimeoutError derives from APIConnectionError.
        return NetworkError(str(exc))
    if isinstance(exc, openai.APIStatusError):
        return UpstreamError(str(exc), status_code=exc.status_code)
    return UpstreamError(str(exc))


def _usage_dict(usage: Any) -> Optional[Dict[str, Any]]:
    if usage is None:
        return None
    if isinstance(usage, dict):
        return usage
    if hasattr(usage, "model_dump"):
        return usage.model_dump()
    return None


def _annotate_completion(span: Span, result: ChatCompletionResult) -> None:
    if result.finish_reason:
        span.set_attribute("llm.finish_reason", result.finish_reason)
    for key, value in (result.usage or {}).items():
        if isinstance(value, (int, float)):
            span.set_attribute(f"llm.usage.{key}", value)


async def _traced(
    name: str,
    attributes: Dict[str, Any],
    call: Callable[[], T],
    annotate: Optional[Callable[[Span, T], None]] = None,
) -> T:
    """Run the blocking SDK ``call`` in a worker thread inside span ``name``."""

    correlation_id = get_correlation_id()
    if correlation_id:
        attributes = {**attributes, "correlation.id": correlation_id}

    with tracer.start_as_current_span(name, attributes=attributes) as span:
        try:
            result = await asyncio.to_thread(call)
        except VoiceError as exc:
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            raise
        if annotate is not None:
            annotate(span, result)
        span.set_status(Status(StatusCode.OK))
        return result


class OpenAIClient:
    """Thin wrapper around the official OpenAI client.

    The SDK client is built on first use so that a missing API key surfaces
    as :class:`ConfigError` before any request is attempted.
    """

    def __init__(
        self,
        api_key: Optional[str],
        *,
        chat_model: str,
        asr_model: str,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout
        self._chat_model = chat_model
        self._asr_model = asr_model
        self._client: Optional[OpenAI] = None

    @property
    def configured(self) -> bool:
        return bool(self._api_key) or self._client is not None

    def ensure_configured(self) -> None:
        if not self.configured:
            raise ConfigError("No OpenAI API key configured")

    def _sdk(self) -> OpenAI:
        self.ensure_configured()
        if self._client is None:
            self._client = OpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=self._timeout,
                max_retries=0,
            )
        return self._client

    async def transcribe_audio(
        self,
        filename: str,
        audio_bytes: bytes,
        mime_type: str,
        language: Optional[str] = None,
    ) -> TranscriptionResult:
        """Upload audio to the transcription endpoint and return its text."""

        client = self._sdk()

        def _call() -> TranscriptionResult:
            try:
                response = client.audio.transcriptions.create(
                    model=self._asr_model,
                    file=(filename, audio_bytes, mime_type),
                    language=language,
                )
            except openai.OpenAIError as exc:
                logger.warning("OpenAI transcription failed: %s", exc)
                raise classify_openai_error(exc) from exc

            text = getattr(response, "text", None)
            if text is None:
                raise UpstreamError("Transcription did not return text")
            return TranscriptionResult(text=text, language=language)

        attributes = {
            "asr.system": "openai",
            "asr.model": self._asr_model,
            "asr.mime_type": mime_type,
            "asr.bytes": len(audio_bytes),
        }
        return await _traced("OpenAI.transcription", attributes, _call)

    async def create_chat_completion(
        self,
        messages: Iterable[Dict[str, str]],
        model: Optional[str] = None,
        **params: Any,
    ) -> ChatCompletionResult:
        """Call the Chat Completions API and normalise the response.

        A 400 from the endpoint is reported as :class:`UpstreamError` with
        ``status_code`` 400 since it says nothing about the audio.
        """

        client = self._sdk()

        def _call() -> ChatCompletionResult:
            try:
                response = client.chat.completions.create(
                    model=model or self._chat_model,
                    messages=list(messages),
                    **params,
                )
            except openai.OpenAIError as exc:
                logger.warning("OpenAI chat completion failed: %s", exc)
                raise classify_openai_error(exc, bad_request=UpstreamError) from exc

            if not response.choices:
                return ChatCompletionResult(content=None, model=response.model or model or self._chat_model)

            choice = response.choices[0]
            return ChatCompletionResult(
                content=getattr(choice.message, "content", None),
                model=response.model or model or self._chat_model,
                usage=_usage_dict(getattr(response, "usage", None)),
                finish_reason=getattr(choice, "finish_reason", None),
            )

        attributes = {
            "llm.system": "openai",
            "llm.operation": "chat.completion",
            "llm.model": model or self._chat_model,
        }
        return await _traced("OpenAI.chatCompletion", attributes, _call, _annotate_completion)


__all__ = [
    "ChatCompletionResult",
    "OpenAIClient",
    "TranscriptionResult",
    "classify_openai_error",
]
