"""
Lead Audit — Pydantic models shared by the renderer, detectors, aggregator and
opportunity engine.
"""

from leadaudit.schemas.audit import (
    AuditDraft,
    AuditState,
    ChatbotSummary,
    DesignSubscores,
    LeadQuality,
    Opportunity,
    PerformanceScores,
    ProblemBuckets,
    Scorecard,
    Severity,
    WebsiteAudit,
)
from leadaudit.schemas.snapshot import AuditOptions, NetworkRequest, PageSnapshot, ProbePlan
from leadaudit.schemas.verdicts import (
    UNMANAGED_SENTINEL,
    ChatbotPayload,
    DesignPayload,
    DetectorVerdict,
    SeoPayload,
    SocialBotPayload,
    StructurePayload,
    TechStackPayload,
    VerdictStatus,
    VoiceAssistantPayload,
)

__all__ = [
    "AuditDraft",
    "AuditOptions",
    "AuditState",
    "ChatbotPayload",
    "ChatbotSummary",
    "DesignPayload",
    "DesignSubscores",
    "DetectorVerdict",
    "LeadQuality",
    "NetworkRequest",
    "Opportunity",
    "PageSnapshot",
    "PerformanceScores",
    "ProbePlan",
    "ProblemBuckets",
    "Scorecard",
    "SeoPayload",
    "Severity",
    "SocialBotPayload",
    "StructurePayload",
    "TechStackPayload",
    "UNMANAGED_SENTINEL",
    "VerdictStatus",
    "VoiceAssistantPayload",
    "WebsiteAudit",
]
