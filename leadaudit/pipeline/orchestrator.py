"""
Audit Orchestrator — drives one URL through

    created → rendering → detecting → aggregating → scoring → complete
                  │            │
                  └────────────┴──→ degraded

Render failures and an empty or all-failed detector set end in a
structurally valid degraded audit. Aggregation and scoring are pure;
anything they raise is a defect and propagates to the caller.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from leadaudit.config import settings
from leadaudit.detectors import Detector, combined_probe_plan, default_detectors
from leadaudit.errors import DetectorFailed, RenderError, SideChannelUnavailable
from leadaudit.schemas import (
    AuditOptions,
    AuditState,
    DesignSubscores,
    DetectorVerdict,
    PageSnapshot,
    PerformanceScores,
    VerdictStatus,
    WebsiteAudit,
)
from leadaudit.services.aggregator import aggregate
from leadaudit.services.catalog import PricingCatalog, get_catalog
from leadaudit.services.evidence import PageView
from leadaudit.services.identity import extract_contact_email
from leadaudit.services.mail_check import is_deliverable
from leadaudit.services.opportunity_engine import OPPORTUNITY_LABELS, score
from leadaudit.services.pagespeed import PageSpeedClient, PerformanceProbe
from leadaudit.services.renderer import PlaywrightRenderer, Renderer, normalize_url
from leadaudit.services.vision import GeminiVisionScorer, VisionScorer

logger = logging.getLogger("leadaudit.orchestrator")

MailCheck = Callable[[str], Awaitable[bool]]

# Legal moves; anything else is a bug in the orchestrator itself
TRANSITIONS: dict[AuditState, tuple[AuditState, ...]] = {
    AuditState.CREATED: (AuditState.RENDERING,),
    AuditState.RENDERING: (AuditState.DETECTING, AuditState.DEGRADED),
    AuditState.DETECTING: (AuditState.AGGREGATING, AuditState.DEGRADED),
    AuditState.AGGREGATING: (AuditState.SCORING,),
    AuditState.SCORING: (AuditState.COMPLETE,),
    AuditState.COMPLETE: (),
    AuditState.DEGRADED: (),
}


class AuditOrchestrator:
    """Runs the full audit for one URL. One instance per run."""

    def __init__(
        self,
        url: str,
        options: Optional[AuditOptions] = None,
        *,
        renderer: Optional[Renderer] = None,
        detectors: Optional[list[Detector]] = None,
        catalog: Optional[PricingCatalog] = None,
        vision_scorer: Optional[VisionScorer] = None,
        performance_probe: Optional[PerformanceProbe] = None,
        mail_check: Optional[MailCheck] = None,
        event_callback: Optional[Callable] = None,
    ):
        self.url = normalize_url(url)
        self.options = options or AuditOptions()
        self.renderer = renderer or PlaywrightRenderer()
        self.detectors = detectors if detectors is not None else default_detectors()
        # A caller-supplied catalog is checked up front, not at scoring time
        self.catalog = catalog.require(OPPORTUNITY_LABELS) if catalog is not None else get_catalog()
        self.vision_scorer = vision_scorer
        self.performance_probe = performance_probe
        self.mail_check = mail_check
        self._event_fn = event_callback
        self.state = AuditState.CREATED
        self.history: list[AuditState] = [AuditState.CREATED]
        self.verdicts: list[DetectorVerdict] = []

    # ── Public API ──────────────────────────────────────

    async def run(self) -> WebsiteAudit:
        start = time.monotonic()
        self._emit("audit", {"status": "running", "url": self.url})

        performance_task = vision_task = mail_task = None
        try:
            performance_task = self._start_performance()
            self._transition(AuditState.RENDERING)
            try:
                snapshot = await self.renderer.render(
                    self.url,
                    timeout_ms=self.options.render_timeout_ms,
                    settle_delay_ms=self.options.settle_delay_ms,
                    probes=combined_probe_plan(self.detectors),
                    capture_screenshot=self.options.enable_vision_scoring,
                )
            except RenderError as exc:
                return self._degrade(str(exc))

            vision_task = self._start_vision(snapshot)
            mail_task = self._start_mail_check(snapshot)

            self._transition(AuditState.DETECTING)
            self.verdicts = await self._detect(snapshot)
            if not self.verdicts or all(v.status == VerdictStatus.FAILED for v in self.verdicts):
                return self._degrade("all detectors failed")

            subscores: Optional[DesignSubscores] = await self._side_result(vision_task, "vision")
            performance: Optional[PerformanceScores] = await self._side_result(performance_task, "pagespeed")
            deliverable: Optional[bool] = await self._side_result(mail_task, "mx")

            try:
                self._transition(AuditState.AGGREGATING)
                draft = aggregate(
                    snapshot,
                    self.verdicts,
                    catalog=self.catalog,
                    url=self.url,
                    design_subscores=subscores,
                    performance=performance,
                    email_deliverable=deliverable,
                )

                self._transition(AuditState.SCORING)
                card = score(draft, self.catalog)
            except Exception as exc:
                self._emit("audit", {"status": "failed", "url": self.url, "error": str(exc)})
                logger.error("Audit of %s hit a defect in %s: %s", self.url, self.state.value, exc)
                raise
        finally:
            # Never leave a side channel running past the audit, however it ends
            for task in (performance_task, vision_task, mail_task):
                await self._cancel(task)

        self._transition(AuditState.COMPLETE)
        audit = WebsiteAudit.from_draft(draft, card)
        self._emit("audit", {
            "status": "complete",
            "url": self.url,
            "estimated_value": audit.estimated_value,
            "lead_quality": audit.lead_quality.value,
        })
        logger.info(
            "Audit complete for %s in %.1fs: %d problems, %d opportunities, $%d (%s)",
            self.url, time.monotonic() - start, len(audit.problems),
            len(audit.opportunities), audit.estimated_value, audit.lead_quality.value,
        )
        return audit

    # ── Detecting ───────────────────────────────────────

    async def _detect(self, snapshot: PageSnapshot) -> list[DetectorVerdict]:
        return list(await asyncio.gather(*(self._run_detector(d, snapshot) for d in self.detectors)))

    async def _run_detector(self, detector: Detector, snapshot: PageSnapshot) -> DetectorVerdict:
        budget_ms = self.options.per_detector_timeout_ms
        try:
            verdict = await asyncio.wait_for(
                asyncio.to_thread(detector.detect, snapshot),
                timeout=budget_ms / 1000,
            )
        except asyncio.TimeoutError:
            failure = DetectorFailed(detector.name, f"timed out after {budget_ms}ms")
        except Exception as exc:
            failure = DetectorFailed(detector.name, f"{type(exc).__name__}: {exc}")
        else:
            failure = None
            logger.debug(
                "Detector %s %s in %.0fms", detector.name, verdict.status.value, verdict.elapsed_ms
            )

        if failure is not None:
            logger.warning("%s (%s)", failure, self.url)
            verdict = detector.failed(failure.reason)
        self._emit("detector", {"name": detector.name, "status": verdict.status.value})
        return verdict

    # ── Side channels ───────────────────────────────────

    def _start_performance(self) -> Optional[asyncio.Task]:
        if not self.options.enable_pagespeed:
            return None
        probe = self.performance_probe or PageSpeedClient()
        return asyncio.create_task(
            asyncio.wait_for(probe.fetch_scores(self.url), timeout=settings.pagespeed_timeout_secs)
        )

    def _start_vision(self, snapshot: PageSnapshot) -> Optional[asyncio.Task]:
        if not self.options.enable_vision_scoring:
            return None
        scorer = self.vision_scorer or GeminiVisionScorer()
        return asyncio.create_task(
            asyncio.wait_for(scorer.score_design(snapshot.screenshot or b""), timeout=settings.vision_timeout_secs)
        )

    def _start_mail_check(self, snapshot: PageSnapshot) -> Optional[asyncio.Task]:
        if not self.options.enable_mx_check:
            return None
        email = extract_contact_email(PageView(snapshot))
        if not email:
            return None
        check = self.mail_check or is_deliverable
        return asyncio.create_task(asyncio.wait_for(check(email), timeout=settings.mx_timeout_secs))

    async def _side_result(self, task: Optional[asyncio.Task], channel: str):
        if task is None:
            return None
        try:
            return await task
        except (SideChannelUnavailable, asyncio.TimeoutError) as exc:
            logger.warning("%s unavailable for %s: %s", channel, self.url, str(exc) or "timed out")
            return None

    @staticmethod
    async def _cancel(task: Optional[asyncio.Task]) -> None:
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except (asyncio.CancelledError, SideChannelUnavailable, asyncio.TimeoutError):
            pass

    # ── State ───────────────────────────────────────────

    def _transition(self, new_state: AuditState) -> None:
        if new_state not in TRANSITIONS[self.state]:
            raise RuntimeError(f"illegal audit transition {self.state.value} → {new_state.value}")
        self.state = new_state
        self.history.append(new_state)
        self._emit("state", {"state": new_state.value, "url": self.url})

    def _degrade(self, reason: str) -> WebsiteAudit:
        self._transition(AuditState.DEGRADED)
        logger.warning("Audit of %s degraded: %s", self.url, reason)
        self._emit("audit", {"status": "degraded", "url": self.url, "reason": reason})
        return WebsiteAudit.degraded(self.url, reason)

    def _emit(self, event_type: str, data: dict):
        if self._event_fn:
            self._event_fn(event_type, data)


async def run_audit(url: str, options: AuditOptions | dict | None = None, **collaborators) -> WebsiteAudit:
    """
    Audit one URL end to end.

    ``options`` may be an AuditOptions or a plain dict using either snake_case
    or camelCase keys (``renderTimeoutMs``, ``perDetectorTimeoutMs``,
    ``enableVisionScoring``, ...). Remaining keyword arguments are handed to
    AuditOrchestrator (renderer, catalog, vision_scorer, event_callback, ...).
    """
    if isinstance(options, dict):
        options = AuditOptions.model_validate(options)
    return await AuditOrchestrator(url, options, **collaborators).run()
