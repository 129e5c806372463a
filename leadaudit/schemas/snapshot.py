"""
Render output and run options.
"""

from datetime import datetime, timezone
from urllib.parse import urlparse

from pydantic import BaseModel, Field, model_validator

from leadaudit.config import settings


class NetworkRequest(BaseModel):
    url: str
    timestamp: float = Field(..., description="Seconds since the epoch when the request fired")

    model_config = {"frozen": True}

    @property
    def host(self) -> str:
        return (urlparse(self.url).hostname or "").lower()


class PageSnapshot(BaseModel):
    """Frozen view of one rendered page. Every detector reads the same instance."""

    final_url: str
    dom_html: str = ""
    visible_text: str = ""
    network_requests: tuple[NetworkRequest, ...] = ()
    screenshot: bytes | None = None
    status_code: int | None = None
    # Results of in-page probes taken after the settle wait
    globals_present: frozenset[str] = frozenset()
    visible_selectors: frozenset[str] = frozenset()
    visible_links: tuple[str, ...] = ()
    captured_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"frozen": True}

    @property
    def request_hosts(self) -> tuple[str, ...]:
        return tuple(r.host for r in self.network_requests)


class ProbePlan(BaseModel):
    """What the renderer must look up inside the live page before freezing it."""

    globals: frozenset[str] = frozenset()
    visible_selectors: frozenset[str] = frozenset()

    model_config = {"frozen": True}

    def merge(self, other: "ProbePlan") -> "ProbePlan":
        return ProbePlan(
            globals=self.globals | other.globals,
            visible_selectors=self.visible_selectors | other.visible_selectors,
        )


class AuditOptions(BaseModel):
    render_timeout_ms: int = Field(
        default_factory=lambda: settings.render_timeout_ms, alias="renderTimeoutMs", gt=0
    )
    per_detector_timeout_ms: int = Field(
        default_factory=lambda: settings.per_detector_timeout_ms, alias="perDetectorTimeoutMs", gt=0
    )
    settle_delay_ms: int = Field(
        default_factory=lambda: settings.settle_delay_ms, alias="settleDelayMs", ge=0
    )
    enable_vision_scoring: bool = Field(
        default_factory=lambda: settings.enable_vision_scoring, alias="enableVisionScoring"
    )
    enable_pagespeed: bool = Field(
        default_factory=lambda: settings.enable_pagespeed, alias="enablePagespeed"
    )
    enable_mx_check: bool = Field(
        default_factory=lambda: settings.enable_mx_check, alias="enableMxCheck"
    )

    model_config = {"frozen": True, "populate_by_name": True}

    @model_validator(mode="after")
    def _budgets_nest(self) -> "AuditOptions":
        if self.per_detector_timeout_ms >= self.render_timeout_ms:
            raise ValueError("perDetectorTimeoutMs must be shorter than renderTimeoutMs")
        if self.settle_delay_ms >= self.render_timeout_ms:
            raise ValueError("settleDelayMs must fit inside renderTimeoutMs")
        return self
