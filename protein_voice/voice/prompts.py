"""Instruction and response schema sent to the language model.

The serving estimates below are examples for the model, not nutrition data
the service relies on.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

EXTRACTION_INSTRUCTION = """\
You are a nutrition assistant that extracts protein information from voice transcripts.
Parse the user's input and return a JSON object with the following fields:
{
  "proteinAmount": <number in grams, or null>,
  "foodItem": "<food item name if mentioned, or null>",
  "confidence": <0-1 confidence score>
}

When the user states an explicit gram amount, use it. Otherwise estimate the
protein in a standard serving of what they describe, including branded and
restaurant items, from your nutritional knowledge.

Examples:
- "25 grams of protein" -> {"proteinAmount": 25, "foodItem": null, "confidence": 1.0}
- "half cup of Greek yogurt" -> {"proteinAmount": 12, "foodItem": "Greek yogurt (1/2 cup)", "confidence": 0.9}
- "chicken breast" -> {"proteinAmount": 26, "foodItem": "chicken breast (100g)", "confidence": 0.8}
- "two eggs" -> {"proteinAmount": 12, "foodItem": "2 eggs", "confidence": 0.95}

If you cannot determine the protein amount, return {"proteinAmount": null, "foodItem": null, "confidence": 0}.
"""

EXTRACTION_SCHEMA: Dict[str, Any] = {
    "name": "protein_extraction",
    "strict": True,
    "schema": {
        "type": "object",
        "properties": {
            "proteinAmount": {"type": ["number", "null"]},
            "foodItem": {"type": ["string", "null"]},
            "confidence": {"type": "number"},
        },
        "required": ["proteinAmount", "foodItem", "confidence"],
        "additionalProperties": False,
    },
}


def response_format() -> Dict[str, Any]:
    return {"type": "json_schema", "json_schema": EXTRACTION_SCHEMA}


def load_instruction(override: Optional[Path] = None) -> str:
    """Return the extraction instruction, preferring an override file."""

    if override is None:
        return EXTRACTION_INSTRUCTION
    text = Path(override).read_text(encoding="utf-8").strip()
    return text or EXTRACTION_INSTRUCTION


__all__ = ["EXTRACTION_INSTRUCTION", "EXTRACTION_SCHEMA", "load_instruction", "response_format"]
