"""Turn a transcript into a structured protein estimate."""
from __future__ import annotations

import logging
import re
from typing import Optional

from pydantic import ValidationError

from ..clients import OpenAIClient
from ..models.voice import ExtractionPayload, VoiceInputResult
from .exceptions import UpstreamError
from .prompts import EXTRACTION_INSTRUCTION, response_format

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def _strip_code_fence(text: str) -> str:
    return _FENCE_RE.sub("", text.strip())


def parse_extraction(transcript: str, content: Optional[str]) -> VoiceInputResult:
    """Validate model output, degrading to an undetermined result.

    A missing amount or a zero confidence both mean "not determined".
    """

    if not content or not content.strip():
        logger.info("Extraction returned no content")
        return VoiceInputResult.undetermined(transcript)

    try:
        payload = ExtractionPayload.model_validate_json(_strip_code_fence(content))
    except ValidationError as exc:
        logger.warning("Extraction response did not match schema: %s", exc.errors(include_url=False))
        return VoiceInputResult.undetermined(transcript)

    if payload.protein_amount is None or payload.confidence == 0:
        return VoiceInputResult.undetermined(transcript)

    food_item = (payload.food_item or "").strip() or None
    return VoiceInputResult(
        transcript=transcript,
        protein_amount=payload.protein_amount,
        food_item=food_item,
        confidence=payload.confidence,
    )


class Extractor:
    """Ask the language model for protein grams, food label and confidence."""

    def __init__(
        self,
        client: OpenAIClient,
        *,
        instruction: str = EXTRACTION_INSTRUCTION,
        temperature: float = 0.3,
        model: Optional[str] = None,
    ) -> None:
        self._client = client
        self._instruction = instruction
        self._temperature = temperature
        self._model = model

    async def extract(self, transcript: str) -> VoiceInputResult:
        self._client.ensure_configured()
        messages = [
            {"role": "system", "content": self._instruction},
            {"role": "user", "content": transcript},
        ]
        try:
            completion = await self._client.create_chat_completion(
                messages,
                model=self._model,
                temperature=self._temperature,
                response_format=response_format(),
            )
        except UpstreamError as exc:
            if exc.status_code != 400:
                raise
            logger.warning("Extraction request rejected: %s", exc)
            return VoiceInputResult.undetermined(transcript)

        result = parse_extraction(transcript, completion.content)
        logger.info(
            "Extraction completed",
            extra={"determined": result.determined, "confidence": result.confidence},
        )
        return result


__all__ = ["Extractor", "parse_extraction"]
