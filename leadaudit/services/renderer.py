"""
Page renderer — Playwright/Chromium adapter producing one frozen PageSnapshot.

    render(url, timeout_ms, settle_delay_ms, probes) -> PageSnapshot | RenderError

Order inside one render:
  1. fresh browser + context (nothing survives from an earlier run)
  2. attach the request listener
  3. navigate
  4. settle wait so chat widgets / trackers can attach
  5. one in-page probe: outerHTML, innerText, window globals, visible selectors,
     visible link hrefs
  6. optional full-page screenshot
  7. freeze

The whole sequence runs under one wall-clock budget. Exceeding it raises
RenderTimeout; no partial snapshot is ever returned. Any Playwright failure
along the way surfaces as a RenderError subclass.
"""

import asyncio
import logging
import time
from typing import Optional, Protocol

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Request
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from leadaudit.config import settings
from leadaudit.errors import RenderBlocked, RenderNavigationError, RenderTimeout
from leadaudit.schemas import NetworkRequest, PageSnapshot, ProbePlan

logger = logging.getLogger("leadaudit.render")

BLOCKING_STATUSES = {403, 429, 503}

# Bot-wall / challenge page fingerprints (Cloudflare, DataDome, Imperva)
CHALLENGE_MARKERS = (
    "cf-chl-",
    "attention required! | cloudflare",
    "just a moment...",
    "checking your browser before accessing",
    "captcha-delivery.com",
    "pardon our interruption",
)

PROBE_SCRIPT = """
({globals, selectors}) => {
  const isVisible = (el) => {
    const style = window.getComputedStyle(el);
    if (style.display === 'none' || style.visibility === 'hidden') return false;
    if (parseFloat(style.opacity) === 0) return false;
    const rect = el.getBoundingClientRect();
    return rect.width > 0 && rect.height > 0;
  };
  const visibleSelectors = selectors.filter((sel) => {
    try { return Array.from(document.querySelectorAll(sel)).some(isVisible); }
    catch (e) { return false; }
  });
  const globalsPresent = globals.filter((name) => {
    try { return typeof window[name] !== 'undefined' && window[name] !== null; }
    catch (e) { return false; }
  });
  const links = Array.from(document.querySelectorAll('a[href]'))
    .filter(isVisible)
    .map((a) => a.href);
  return {
    html: document.documentElement.outerHTML,
    text: document.body ? document.body.innerText : '',
    title: document.title || '',
    globals: globalsPresent,
    visibleSelectors: visibleSelectors,
    links: links,
  };
}
"""


class Renderer(Protocol):
    async def render(
        self,
        url: str,
        *,
        timeout_ms: int,
        settle_delay_ms: int,
        probes: ProbePlan,
        capture_screenshot: bool = False,
    ) -> PageSnapshot: ...


def normalize_url(url: str) -> str:
    """Prefix https:// when the caller gave a bare host."""
    url = url.strip()
    if not url:
        raise ValueError("url must not be empty")
    if "://" not in url:
        url = f"https://{url.lstrip('/')}"
    return url


def _first_line(err: Exception) -> str:
    lines = str(err).splitlines()
    return lines[0] if lines else type(err).__name__


def check_blocked(url: str, status: Optional[int], html: str, title: str) -> None:
    """Raise RenderBlocked when the response is a bot wall rather than the site."""
    if status in BLOCKING_STATUSES:
        raise RenderBlocked(url, f"HTTP {status}")
    # Only a short page can be a challenge interstitial
    head = f"{title}\n{html[:20000]}".lower()
    if len(html) < 50000:
        for marker in CHALLENGE_MARKERS:
            if marker in head:
                raise RenderBlocked(url, f"challenge page ({marker})")
    if status is not None and status >= 400:
        raise RenderNavigationError(url, f"HTTP {status}")


class PlaywrightRenderer:
    """Headless Chromium; one browser per render, torn down on exit or cancel."""

    def __init__(
        self,
        user_agent: str | None = None,
        viewport: tuple[int, int] | None = None,
        headless: bool = True,
    ):
        self.user_agent = user_agent or settings.user_agent
        self.viewport = viewport or (settings.viewport_width, settings.viewport_height)
        self.headless = headless

    async def render(
        self,
        url: str,
        *,
        timeout_ms: int,
        settle_delay_ms: int,
        probes: ProbePlan,
        capture_screenshot: bool = False,
    ) -> PageSnapshot:
        target = normalize_url(url)
        start = time.monotonic()
        try:
            snapshot = await asyncio.wait_for(
                self._render(target, timeout_ms, settle_delay_ms, probes, capture_screenshot),
                timeout=timeout_ms / 1000,
            )
        except asyncio.TimeoutError as e:
            raise RenderTimeout(target, f"exceeded {timeout_ms}ms") from e
        except PlaywrightTimeoutError as e:
            raise RenderTimeout(target, _first_line(e)) from e
        except PlaywrightError as e:
            # failures outside navigation, e.g. browser launch or screenshot
            raise RenderNavigationError(target, _first_line(e)) from e
        logger.info(
            "Rendered %s in %.1fs (%d requests, %d globals, %d visible selectors)",
            snapshot.final_url, time.monotonic() - start, len(snapshot.network_requests),
            len(snapshot.globals_present), len(snapshot.visible_selectors),
        )
        return snapshot

    async def _render(
        self,
        url: str,
        timeout_ms: int,
        settle_delay_ms: int,
        probes: ProbePlan,
        capture_screenshot: bool,
    ) -> PageSnapshot:
        requests: list[NetworkRequest] = []

        def on_request(request: Request) -> None:
            requests.append(NetworkRequest(url=request.url, timestamp=time.time()))

        async with async_playwright() as pw:
            browser = await pw.chromium.launch(
                headless=self.headless,
                args=["--no-sandbox", "--disable-gpu"],
            )
            try:
                width, height = self.viewport
                context = await browser.new_context(
                    user_agent=self.user_agent,
                    viewport={"width": width, "height": height},
                )
                try:
                    page = await context.new_page()
                    # must be registered before goto or initial-load requests are lost
                    page.on("request", on_request)
                    try:
                        response = await page.goto(url, timeout=timeout_ms, wait_until="load")
                    except PlaywrightTimeoutError as e:
                        raise RenderTimeout(url, _first_line(e)) from e
                    except PlaywrightError as e:
                        raise RenderNavigationError(url, _first_line(e)) from e

                    await page.wait_for_timeout(settle_delay_ms)
                    try:
                        probe = await page.evaluate(
                            PROBE_SCRIPT,
                            {"globals": sorted(probes.globals), "selectors": sorted(probes.visible_selectors)},
                        )
                    except PlaywrightError as e:
                        raise RenderNavigationError(url, f"page probe failed: {e}") from e

                    status = response.status if response else None
                    check_blocked(url, status, probe["html"], probe["title"])

                    screenshot = None
                    if capture_screenshot:
                        screenshot = await page.screenshot(full_page=True, type="png")

                    page.remove_listener("request", on_request)
                    return PageSnapshot(
                        final_url=page.url,
                        dom_html=probe["html"],
                        visible_text=probe["text"],
                        network_requests=tuple(requests),
                        screenshot=screenshot,
                        status_code=status,
                        globals_present=frozenset(probe["globals"]),
                        visible_selectors=frozenset(probe["visibleSelectors"]),
                        visible_links=tuple(probe["links"]),
                    )
                finally:
                    await context.close()
            finally:
                await browser.close()
