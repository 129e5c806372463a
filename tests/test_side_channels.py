"""
Tests for the optional side channels: Gemini vision scoring, PageSpeed
Insights and the MX lookup. Network calls are patched out.
"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import dns.exception
import dns.name
import dns.resolver
import pytest

from leadaudit.errors import SideChannelUnavailable, VisionUnavailable
from leadaudit.services.mail_check import check_mx_records, is_deliverable
from leadaudit.services.pagespeed import PageSpeedClient, parse_categories
from leadaudit.services.vision import GeminiVisionScorer, extract_json, parse_subscores, strip_fences

SUBSCORES_JSON = {"layout": 7, "color": 6, "typography": 8, "hierarchy": 5, "modernity": 4,
                  "feedback": ["Hero image is low resolution"]}

PSI_RESPONSE = {
    "lighthouseResult": {
        "categories": {
            "performance": {"score": 0.42},
            "accessibility": {"score": 0.88},
            "best-practices": {"score": 1},
        }
    }
}


# ═══════════════════════════════════════════════════════════
# VISION
# ═══════════════════════════════════════════════════════════


class TestVisionParsing:
    def test_strip_fences(self):
        assert strip_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_extract_json_with_chatter(self):
        assert extract_json('Here you go: {"layout": 7} hope that helps') == {"layout": 7}

    def test_extract_json_failure(self):
        with pytest.raises(ValueError):
            extract_json("I cannot rate this image")

    def test_parse_subscores(self):
        subscores = parse_subscores(f"```json\n{json.dumps(SUBSCORES_JSON)}\n```")
        assert subscores.overall == 6
        assert subscores.feedback == ("Hero image is low resolution",)

    def test_out_of_range_answer(self):
        with pytest.raises(VisionUnavailable):
            parse_subscores(json.dumps(dict(SUBSCORES_JSON, layout=12)))

    def test_garbage_answer(self):
        with pytest.raises(VisionUnavailable):
            parse_subscores("no idea")


class TestGeminiVisionScorer:
    async def test_score_design(self):
        scorer = GeminiVisionScorer(api_key="test-key", model="gemini-1.5-flash",
                                    base_url="https://gemini.test/v1beta/models/")
        response = {"candidates": [{"content": {"parts": [{"text": json.dumps(SUBSCORES_JSON)}]}}]}
        with patch.object(scorer, "_request", new=AsyncMock(return_value=response)) as request:
            subscores = await scorer.score_design(b"\x89PNG")

        assert subscores.layout == 7
        payload = request.call_args.args[0]
        parts = payload["contents"][0]["parts"]
        assert parts[1]["inline_data"] == {"mime_type": "image/png", "data": "iVBORw=="}
        assert scorer.endpoint == "https://gemini.test/v1beta/models/gemini-1.5-flash:generateContent"

    async def test_no_key(self):
        with pytest.raises(VisionUnavailable, match="GEMINI_API_KEY"):
            await GeminiVisionScorer(api_key="").score_design(b"\x89PNG")

    async def test_no_screenshot(self):
        with pytest.raises(VisionUnavailable, match="no screenshot"):
            await GeminiVisionScorer(api_key="test-key").score_design(b"")

    async def test_empty_candidates(self):
        scorer = GeminiVisionScorer(api_key="test-key")
        with patch.object(scorer, "_request", new=AsyncMock(return_value={"candidates": []})):
            with pytest.raises(VisionUnavailable):
                await scorer.score_design(b"\x89PNG")


# ═══════════════════════════════════════════════════════════
# PAGESPEED
# ═══════════════════════════════════════════════════════════


class TestPageSpeed:
    def test_parse_categories(self):
        scores = parse_categories(PSI_RESPONSE)
        assert (scores.performance, scores.accessibility, scores.best_practices) == (42, 88, 100)

    def test_missing_category(self):
        data = {"lighthouseResult": {"categories": {"performance": {"score": 0.5}}}}
        with pytest.raises(SideChannelUnavailable, match="accessibility"):
            parse_categories(data)

    async def test_fetch_scores(self):
        client = PageSpeedClient(api_key="psi-key", api_url="https://psi.test/run")
        with patch.object(client, "_request", new=AsyncMock(return_value=PSI_RESPONSE)) as request:
            scores = await client.fetch_scores("https://acme-plumbing.com")

        assert scores.performance == 42
        params = request.call_args.args[0]
        assert ("url", "https://acme-plumbing.com") in params
        assert ("strategy", "mobile") in params
        assert ("category", "BEST_PRACTICES") in params
        assert ("key", "psi-key") in params

    async def test_no_key_still_requests(self):
        client = PageSpeedClient(api_key="")
        with patch.object(client, "_request", new=AsyncMock(return_value=PSI_RESPONSE)) as request:
            await client.fetch_scores("https://acme-plumbing.com")
        assert not any(name == "key" for name, _ in request.call_args.args[0])


# ═══════════════════════════════════════════════════════════
# MX LOOKUP
# ═══════════════════════════════════════════════════════════


class TestMailCheck:
    async def test_mx_hosts_sorted(self):
        answers = [SimpleNamespace(exchange="mx2.acme.com."), SimpleNamespace(exchange="mx1.acme.com.")]
        with patch("dns.resolver.resolve", return_value=answers) as resolve:
            hosts = await check_mx_records("acme.com", timeout_secs=2)
        assert hosts == ["mx1.acme.com", "mx2.acme.com"]
        resolve.assert_called_once_with("acme.com", "MX", lifetime=2)

    @pytest.mark.parametrize("error", [dns.resolver.NXDOMAIN, dns.resolver.NoAnswer, dns.resolver.NoNameservers])
    async def test_no_records(self, error):
        with patch("dns.resolver.resolve", side_effect=error()):
            assert await check_mx_records("nowhere.invalid") == []

    async def test_timeout(self):
        with patch("dns.resolver.resolve", side_effect=dns.exception.Timeout()):
            with pytest.raises(SideChannelUnavailable, match="timed out"):
                await check_mx_records("slow.example")

    @pytest.mark.parametrize("error", [dns.name.EmptyLabel(), dns.name.LabelTooLong(), ValueError("bad name")])
    async def test_malformed_domain(self, error):
        with patch("dns.resolver.resolve", side_effect=error):
            with pytest.raises(SideChannelUnavailable, match="acme..com"):
                await check_mx_records("acme..com")

    async def test_is_deliverable(self):
        with patch("leadaudit.services.mail_check.check_mx_records", new=AsyncMock(return_value=["mx.acme.com"])):
            assert await is_deliverable("Contact@ACME.com") is True
        with patch("leadaudit.services.mail_check.check_mx_records", new=AsyncMock(return_value=[])):
            assert await is_deliverable("hello@parked.example") is False
