"""
Vision design scorer — Gemini rates a full-page screenshot on five axes.

Optional side channel. Any failure (no key, HTTP error, unparseable or
out-of-range answer) surfaces as ``VisionUnavailable``; the orchestrator turns
that into ``design_score = 0`` listed in ``degraded_fields``.
"""

import asyncio
import base64
import json
import logging
import re
from typing import Protocol

import aiohttp
from pydantic import ValidationError

from leadaudit.config import settings
from leadaudit.errors import VisionUnavailable
from leadaudit.schemas import DesignSubscores

logger = logging.getLogger("leadaudit.vision")

DESIGN_PROMPT = """You are a senior web designer reviewing a business website screenshot.
Rate the design on each axis from 1 (very poor) to 10 (excellent):

- layout: spacing, alignment, use of whitespace
- color: palette harmony and contrast
- typography: font choice, hierarchy and readability
- hierarchy: how clearly the eye is led to the primary message and call to action
- modernity: does it look current, or like it was built 10+ years ago

Respond with ONLY a JSON object:
{"layout": 1-10, "color": 1-10, "typography": 1-10, "hierarchy": 1-10, "modernity": 1-10,
 "feedback": ["short concrete observation", "..."]}"""


class VisionScorer(Protocol):
    async def score_design(self, screenshot: bytes) -> DesignSubscores: ...


# ── Parsing helpers ─────────────────────────────────────────────


def strip_fences(text: str) -> str:
    """Remove markdown code fences."""
    text = re.sub(r"^```(?:json)?\s*\n?", "", text, flags=re.MULTILINE)
    text = re.sub(r"^```\s*$", "", text, flags=re.MULTILINE)
    return text.strip()


def extract_json(text: str) -> dict:
    """Extract JSON object from a model response."""
    cleaned = strip_fences(text)

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    # Try outermost { ... }
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start != -1 and end > start:
        try:
            return json.loads(cleaned[start : end + 1])
        except json.JSONDecodeError:
            pass

    raise ValueError(f"Could not extract JSON from vision response:\n{cleaned[:300]}…")


def parse_subscores(text: str) -> DesignSubscores:
    try:
        data = extract_json(text)
        return DesignSubscores.model_validate(data)
    except (ValueError, ValidationError) as e:
        raise VisionUnavailable(f"unusable vision answer: {e}") from e


class GeminiVisionScorer:
    """Gemini ``generateContent`` with the screenshot as inline PNG data."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout_secs: int | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        self.model = model or settings.gemini_model
        self.base_url = (base_url or settings.gemini_api_url).rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout_secs or settings.vision_timeout_secs)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/{self.model}:generateContent"

    async def score_design(self, screenshot: bytes) -> DesignSubscores:
        if not self.api_key:
            raise VisionUnavailable("GEMINI_API_KEY not set, vision scoring skipped")
        if not screenshot:
            raise VisionUnavailable("no screenshot captured")

        payload = {
            "contents": [{
                "parts": [
                    {"text": DESIGN_PROMPT},
                    {"inline_data": {
                        "mime_type": "image/png",
                        "data": base64.b64encode(screenshot).decode("ascii"),
                    }},
                ],
            }],
            "generationConfig": {"temperature": 0.2, "responseMimeType": "application/json"},
        }
        data = await self._request(payload)
        parts = (data.get("candidates") or [{}])[0].get("content", {}).get("parts", [])
        text = "\n".join(p.get("text", "") for p in parts)
        subscores = parse_subscores(text)
        logger.info(f"Vision design score {subscores.overall}/10 ({self.model})")
        return subscores

    async def _request(self, payload: dict) -> dict:
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(
                    self.endpoint, params={"key": self.api_key}, json=payload
                ) as resp:
                    body = await resp.text()
                    if resp.status != 200:
                        raise VisionUnavailable(f"Gemini HTTP {resp.status}: {body[:300]}")
                    return json.loads(body)
        except (aiohttp.ClientError, asyncio.TimeoutError, json.JSONDecodeError) as e:
            raise VisionUnavailable(f"Gemini request failed: {e}") from e
