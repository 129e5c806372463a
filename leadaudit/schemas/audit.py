"""
The merged audit (draft + scored) and the opportunity engine output.
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, model_validator

from leadaudit.schemas.verdicts import (
    ChatbotPayload,
    DesignPayload,
    SeoPayload,
    SocialBotPayload,
    StructurePayload,
    TechStackPayload,
    VerdictStatus,
    VoiceAssistantPayload,
)


class AuditState(str, Enum):
    CREATED = "created"
    RENDERING = "rendering"
    DETECTING = "detecting"
    AGGREGATING = "aggregating"
    SCORING = "scoring"
    COMPLETE = "complete"
    DEGRADED = "degraded"


class Severity(str, Enum):
    CRITICAL = "critical"
    IMPORTANT = "important"
    MINOR = "minor"


class LeadQuality(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class DesignSubscores(BaseModel):
    """Vision-model judgement of a screenshot, each axis 1..10."""

    layout: int = Field(..., ge=1, le=10)
    color: int = Field(..., ge=1, le=10)
    typography: int = Field(..., ge=1, le=10)
    hierarchy: int = Field(..., ge=1, le=10)
    modernity: int = Field(..., ge=1, le=10)
    feedback: tuple[str, ...] = ()

    model_config = {"frozen": True}

    @property
    def overall(self) -> int:
        mean = (self.layout + self.color + self.typography + self.hierarchy + self.modernity) / 5
        # half-up, not banker's rounding
        return int(mean + 0.5)


class PerformanceScores(BaseModel):
    performance: int = Field(0, ge=0, le=100)
    accessibility: int = Field(0, ge=0, le=100)
    best_practices: int = Field(0, ge=0, le=100)

    model_config = {"frozen": True}


class ChatbotSummary(ChatbotPayload):
    is_ai_powered: bool = False


class AuditDraft(BaseModel):
    """Fully-shaped audit before problem triage and pricing."""

    url: str
    final_url: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    business_name: str = ""
    contact_email: str | None = None
    contact_email_deliverable: bool | None = None
    uses_https: bool = False

    tech_stack: TechStackPayload = Field(default_factory=TechStackPayload.absent)
    chatbot: ChatbotSummary = Field(default_factory=ChatbotSummary)
    social_bot: SocialBotPayload = Field(default_factory=SocialBotPayload)
    voice_assistant: VoiceAssistantPayload = Field(default_factory=VoiceAssistantPayload)
    seo: SeoPayload = Field(default_factory=SeoPayload)
    design: DesignPayload = Field(default_factory=DesignPayload)
    structure: StructurePayload = Field(default_factory=StructurePayload)

    has_responsive_design: bool = False
    seo_score: int = Field(0, ge=0, le=100)
    performance_score: int = Field(0, ge=0, le=100)
    accessibility_score: int = Field(0, ge=0, le=100)
    best_practices_score: int = Field(0, ge=0, le=100)
    design_score: int = Field(0, ge=0, le=10)
    design_subscores: DesignSubscores | None = None

    verdict_status: dict[str, VerdictStatus] = Field(default_factory=dict)
    degraded_fields: tuple[str, ...] = ()

    model_config = {"frozen": True}

    def detector_ok(self, name: str) -> bool:
        return self.verdict_status.get(name) in (VerdictStatus.OK, VerdictStatus.DEGRADED)


class ProblemBuckets(BaseModel):
    critical: tuple[str, ...] = ()
    important: tuple[str, ...] = ()
    minor: tuple[str, ...] = ()

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _strict_partition(self) -> "ProblemBuckets":
        seen: set[str] = set()
        for message in (*self.critical, *self.important, *self.minor):
            if message in seen:
                raise ValueError(f"problem {message!r} appears more than once")
            seen.add(message)
        return self

    def ordered(self) -> tuple[str, ...]:
        """Critical first, then important, then minor."""
        return self.critical + self.important + self.minor

    def __len__(self) -> int:
        return len(self.critical) + len(self.important) + len(self.minor)


class Opportunity(BaseModel):
    label: str
    estimated_price_usd: int = Field(..., ge=0)
    category: str = "web"

    model_config = {"frozen": True}


class Scorecard(BaseModel):
    problems: ProblemBuckets = Field(default_factory=ProblemBuckets)
    opportunities: tuple[Opportunity, ...] = ()
    estimated_value: int = 0
    lead_quality: LeadQuality = LeadQuality.LOW

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _priced_once(self) -> "Scorecard":
        labels = [o.label for o in self.opportunities]
        if len(labels) != len(set(labels)):
            raise ValueError("opportunity labels must be unique")
        if self.estimated_value != sum(o.estimated_price_usd for o in self.opportunities):
            raise ValueError("estimated_value must equal the sum of opportunity prices")
        return self


class WebsiteAudit(AuditDraft):
    """Finished audit handed to the store. Never rewritten after creation."""

    state: AuditState = AuditState.COMPLETE
    degraded_reason: str | None = None
    problems: ProblemBuckets = Field(default_factory=ProblemBuckets)
    opportunities: tuple[Opportunity, ...] = ()
    estimated_value: int = 0
    lead_quality: LeadQuality = LeadQuality.LOW

    @classmethod
    def from_draft(cls, draft: AuditDraft, scorecard: Scorecard) -> "WebsiteAudit":
        return cls(
            **draft.model_dump(),
            state=AuditState.COMPLETE,
            problems=scorecard.problems,
            opportunities=scorecard.opportunities,
            estimated_value=scorecard.estimated_value,
            lead_quality=scorecard.lead_quality,
        )

    @classmethod
    def degraded(cls, url: str, reason: str, draft: AuditDraft | None = None) -> "WebsiteAudit":
        """All-default audit flagged as degraded; no pitch is derived from it."""
        base = draft.model_dump() if draft else {"url": url}
        return cls(**base, state=AuditState.DEGRADED, degraded_reason=reason)

    @property
    def is_degraded(self) -> bool:
        return self.state == AuditState.DEGRADED

    def ordered_problems(self) -> tuple[str, ...]:
        return self.problems.ordered()
