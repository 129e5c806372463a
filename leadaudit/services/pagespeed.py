"""
PageSpeed Insights side channel — performance, accessibility and
best-practices category scores (0-100).

The PSI SEO category is deliberately not requested; the checklist detector
owns the SEO score.
"""

import asyncio
import json
import logging
from typing import Protocol

import aiohttp

from leadaudit.config import settings
from leadaudit.errors import SideChannelUnavailable
from leadaudit.schemas import PerformanceScores

logger = logging.getLogger("leadaudit.pagespeed")

CATEGORIES = ("performance", "accessibility", "best-practices")


class PerformanceProbe(Protocol):
    async def fetch_scores(self, url: str) -> PerformanceScores: ...


def parse_categories(data: dict) -> PerformanceScores:
    """Lighthouse scores are 0..1 floats; missing categories count as unavailable."""
    categories = data.get("lighthouseResult", {}).get("categories", {})
    scores: dict[str, int] = {}
    for key in CATEGORIES:
        raw = categories.get(key, {}).get("score")
        if raw is None:
            raise SideChannelUnavailable(f"PageSpeed response has no {key} score")
        scores[key.replace("-", "_")] = round(float(raw) * 100)
    return PerformanceScores(**scores)


class PageSpeedClient:
    def __init__(
        self,
        api_key: str | None = None,
        api_url: str | None = None,
        timeout_secs: int | None = None,
        strategy: str = "mobile",
    ):
        self.api_key = api_key if api_key is not None else settings.pagespeed_api_key
        self.api_url = api_url or settings.pagespeed_api_url
        self.timeout = aiohttp.ClientTimeout(total=timeout_secs or settings.pagespeed_timeout_secs)
        self.strategy = strategy

    async def fetch_scores(self, url: str) -> PerformanceScores:
        params: list[tuple[str, str]] = [("url", url), ("strategy", self.strategy)]
        params += [("category", c.upper().replace("-", "_")) for c in CATEGORIES]
        if self.api_key:
            params.append(("key", self.api_key))

        scores = parse_categories(await self._request(params))
        logger.info(
            "PageSpeed %s: perf=%d a11y=%d bp=%d",
            url, scores.performance, scores.accessibility, scores.best_practices,
        )
        return scores

    async def _request(self, params: list[tuple[str, str]]) -> dict:
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.get(self.api_url, params=params) as resp:
                    body = await resp.text()
                    if resp.status != 200:
                        raise SideChannelUnavailable(f"PageSpeed HTTP {resp.status}: {body[:300]}")
                    return json.loads(body)
        except (aiohttp.ClientError, asyncio.TimeoutError, json.JSONDecodeError) as e:
            raise SideChannelUnavailable(f"PageSpeed request failed: {e}") from e
