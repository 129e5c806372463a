"""
Tests for the Playwright renderer adapter. The browser is mocked; these check
ordering, error mapping and blocked-page detection, not Chromium itself.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from leadaudit.errors import RenderBlocked, RenderErrorKind, RenderNavigationError, RenderTimeout
from leadaudit.schemas import ProbePlan
from leadaudit.services.renderer import PlaywrightRenderer, check_blocked, normalize_url

PROBES = ProbePlan(globals=frozenset({"Intercom"}), visible_selectors=frozenset({".live-chat"}))

PROBE_RESULT = {
    "html": "<html><head><title>Acme</title></head><body>Hi</body></html>",
    "text": "Hi",
    "title": "Acme",
    "globals": ["Intercom"],
    "visibleSelectors": [],
    "links": ["https://wa.me/15125550100"],
}


def _browser_mocks(probe=None, status=200):
    page = MagicMock()
    page.url = "https://acme-plumbing.com/"
    page.wait_for_timeout = AsyncMock()
    page.evaluate = AsyncMock(return_value=probe or PROBE_RESULT)
    page.screenshot = AsyncMock(return_value=b"\x89PNG")

    async def goto(url, **kwargs):
        # the request listener must already be attached
        assert page.on.call_count == 1
        event, handler = page.on.call_args.args
        assert event == "request"
        handler(SimpleNamespace(url="https://js.intercom.io/frame.js"))
        return SimpleNamespace(status=status)

    page.goto = AsyncMock(side_effect=goto)

    context = MagicMock()
    context.new_page = AsyncMock(return_value=page)
    context.close = AsyncMock()

    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=context)
    browser.close = AsyncMock()

    pw = MagicMock()
    pw.chromium.launch = AsyncMock(return_value=browser)

    manager = MagicMock()
    manager.__aenter__.return_value = pw
    manager.__aexit__.return_value = False
    return manager, browser, context, page


class TestNormalizeUrl:
    def test_bare_host_gets_https(self):
        assert normalize_url("acme-plumbing.com") == "https://acme-plumbing.com"

    def test_scheme_kept(self):
        assert normalize_url(" http://bobs-hardware.com ") == "http://bobs-hardware.com"

    def test_empty_rejected(self):
        with pytest.raises(ValueError):
            normalize_url("   ")


class TestCheckBlocked:
    @pytest.mark.parametrize("status", [403, 429, 503])
    def test_blocking_status(self, status):
        with pytest.raises(RenderBlocked) as exc:
            check_blocked("https://x.com", status, "<html></html>", "")
        assert exc.value.kind == RenderErrorKind.BLOCKED

    def test_challenge_page(self):
        html = '<html><body><div id="cf-chl-widget"></div></body></html>'
        with pytest.raises(RenderBlocked, match="challenge page"):
            check_blocked("https://x.com", 200, html, "Just a moment...")

    def test_large_page_mentioning_marker_is_not_blocked(self):
        html = "<p>pardon our interruption</p>" + "x" * 60000
        check_blocked("https://x.com", 200, html, "Blog")

    def test_site_behind_cdn_bot_script_is_not_blocked(self):
        html = ('<html><head><title>Bob\'s Bakery</title></head><body><h1>Fresh bread daily</h1>'
                '<script src="/cdn-cgi/challenge-platform/scripts/jsd/main.js"></script></body></html>')
        check_blocked("https://bobs-bakery.com", 200, html, "Bob's Bakery")

    def test_other_http_errors_are_navigation_errors(self):
        with pytest.raises(RenderNavigationError, match="HTTP 404"):
            check_blocked("https://x.com", 404, "<html></html>", "Not Found")

    def test_normal_page(self):
        check_blocked("https://x.com", 200, "<html><title>Acme</title></html>", "Acme")
        check_blocked("https://x.com", None, "<html></html>", "")


class TestPlaywrightRenderer:
    async def test_render_produces_snapshot(self):
        manager, browser, context, page = _browser_mocks()
        with patch("leadaudit.services.renderer.async_playwright", return_value=manager):
            snapshot = await PlaywrightRenderer().render(
                "acme-plumbing.com", timeout_ms=5000, settle_delay_ms=10, probes=PROBES,
            )

        page.goto.assert_awaited_once()
        assert page.goto.call_args.args[0] == "https://acme-plumbing.com"
        page.wait_for_timeout.assert_awaited_once_with(10)
        assert page.evaluate.call_args.args[1] == {"globals": ["Intercom"], "selectors": [".live-chat"]}
        assert snapshot.final_url == "https://acme-plumbing.com/"
        assert [r.url for r in snapshot.network_requests] == ["https://js.intercom.io/frame.js"]
        assert snapshot.request_hosts == ("js.intercom.io",)
        assert snapshot.globals_present == frozenset({"Intercom"})
        assert snapshot.visible_links == ("https://wa.me/15125550100",)
        assert snapshot.status_code == 200
        assert snapshot.screenshot is None
        page.screenshot.assert_not_awaited()
        context.close.assert_awaited_once()
        browser.close.assert_awaited_once()

    async def test_screenshot_on_request(self):
        manager, _, _, page = _browser_mocks()
        with patch("leadaudit.services.renderer.async_playwright", return_value=manager):
            snapshot = await PlaywrightRenderer().render(
                "https://acme-plumbing.com", timeout_ms=5000, settle_delay_ms=0,
                probes=PROBES, capture_screenshot=True,
            )
        assert snapshot.screenshot == b"\x89PNG"
        page.screenshot.assert_awaited_once_with(full_page=True, type="png")

    async def test_navigation_timeout(self):
        manager, browser, _, page = _browser_mocks()
        page.goto = AsyncMock(side_effect=PlaywrightTimeoutError("Timeout 5000ms exceeded.\n=== logs ==="))
        with patch("leadaudit.services.renderer.async_playwright", return_value=manager):
            with pytest.raises(RenderTimeout, match="Timeout 5000ms exceeded.$"):
                await PlaywrightRenderer().render(
                    "https://slow.example", timeout_ms=5000, settle_delay_ms=0, probes=PROBES,
                )
        browser.close.assert_awaited_once()

    async def test_dns_failure_is_navigation_error(self):
        manager, _, _, page = _browser_mocks()
        page.goto = AsyncMock(side_effect=PlaywrightError("net::ERR_NAME_NOT_RESOLVED"))
        with patch("leadaudit.services.renderer.async_playwright", return_value=manager):
            with pytest.raises(RenderNavigationError, match="ERR_NAME_NOT_RESOLVED"):
                await PlaywrightRenderer().render(
                    "https://nowhere.invalid", timeout_ms=5000, settle_delay_ms=0, probes=PROBES,
                )

    async def test_wall_clock_budget(self):
        manager, browser, context, page = _browser_mocks()

        async def hang(_ms):
            await asyncio.sleep(5)

        page.wait_for_timeout = AsyncMock(side_effect=hang)
        with patch("leadaudit.services.renderer.async_playwright", return_value=manager):
            with pytest.raises(RenderTimeout, match="exceeded 50ms"):
                await PlaywrightRenderer().render(
                    "https://acme-plumbing.com", timeout_ms=50, settle_delay_ms=5000, probes=PROBES,
                )
        context.close.assert_awaited_once()
        browser.close.assert_awaited_once()

    async def test_blocked_page(self):
        probe = dict(PROBE_RESULT, title="Just a moment...", html="<html><body>cf-chl-bypass</body></html>")
        manager, browser, _, _ = _browser_mocks(probe=probe, status=403)
        with patch("leadaudit.services.renderer.async_playwright", return_value=manager):
            with pytest.raises(RenderBlocked):
                await PlaywrightRenderer().render(
                    "https://walled.example", timeout_ms=5000, settle_delay_ms=0, probes=PROBES,
                )
        browser.close.assert_awaited_once()

    async def test_missing_browser_is_navigation_error(self):
        manager, browser, _, page = _browser_mocks()
        pw = manager.__aenter__.return_value
        pw.chromium.launch = AsyncMock(side_effect=PlaywrightError(
            "BrowserType.launch: Executable doesn't exist at /ms-playwright/chromium/chrome\n"
            "Looks like Playwright was just installed or updated."
        ))
        with patch("leadaudit.services.renderer.async_playwright", return_value=manager):
            with pytest.raises(RenderNavigationError, match="Executable doesn't exist") as exc:
                await PlaywrightRenderer().render(
                    "https://acme-plumbing.com", timeout_ms=5000, settle_delay_ms=0, probes=PROBES,
                )
        assert "Looks like" not in str(exc.value)
        page.goto.assert_not_awaited()
        browser.close.assert_not_awaited()

    async def test_screenshot_failure_is_navigation_error(self):
        manager, browser, context, page = _browser_mocks()
        page.screenshot = AsyncMock(side_effect=PlaywrightError("Target page, context or browser has been closed"))
        with patch("leadaudit.services.renderer.async_playwright", return_value=manager):
            with pytest.raises(RenderNavigationError, match="has been closed"):
                await PlaywrightRenderer().render(
                    "https://acme-plumbing.com", timeout_ms=5000, settle_delay_ms=0,
                    probes=PROBES, capture_screenshot=True,
                )
        context.close.assert_awaited_once()
        browser.close.assert_awaited_once()

    async def test_settle_timeout_is_render_timeout(self):
        manager, _, context, page = _browser_mocks()
        page.wait_for_timeout = AsyncMock(side_effect=PlaywrightTimeoutError("Timeout 30000ms exceeded."))
        with patch("leadaudit.services.renderer.async_playwright", return_value=manager):
            with pytest.raises(RenderTimeout, match="Timeout 30000ms exceeded"):
                await PlaywrightRenderer().render(
                    "https://acme-plumbing.com", timeout_ms=5000, settle_delay_ms=0, probes=PROBES,
                )
        context.close.assert_awaited_once()
