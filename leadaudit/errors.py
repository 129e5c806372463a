"""
Error taxonomy for the audit engine.

Environmental failures (render, detector, side channels) are absorbed by the
orchestrator and turn into a degraded result. Defects propagate.
"""

from enum import Enum


class AuditError(Exception):
    """Base class for every error raised by the audit engine."""


class RenderErrorKind(str, Enum):
    TIMEOUT = "timeout"
    BLOCKED = "blocked"
    NAVIGATION = "navigation"


class RenderError(AuditError):
    kind: RenderErrorKind = RenderErrorKind.NAVIGATION

    def __init__(self, url: str, detail: str = ""):
        self.url = url
        self.detail = detail
        message = f"render {self.kind.value} for {url}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class RenderTimeout(RenderError):
    kind = RenderErrorKind.TIMEOUT


class RenderBlocked(RenderError):
    """The target answered with a bot wall / challenge page."""

    kind = RenderErrorKind.BLOCKED


class RenderNavigationError(RenderError):
    kind = RenderErrorKind.NAVIGATION


class DetectorFailed(AuditError):
    def __init__(self, detector_name: str, reason: str):
        self.detector_name = detector_name
        self.reason = reason
        super().__init__(f"detector {detector_name} failed: {reason}")


class SideChannelUnavailable(AuditError):
    """An optional external lookup (PageSpeed, MX) could not answer."""


class VisionUnavailable(SideChannelUnavailable):
    pass


class CatalogError(AuditError):
    """Pricing catalog is missing, malformed or does not cover every rule label."""


class AggregationDefect(AuditError):
    """Verdict set violates the aggregator contract."""


class ScoringDefect(AuditError):
    """Opportunity engine produced or received an inconsistent result."""
