"""
Evidence Aggregator — joins the detector verdicts into one fully-shaped draft.

The verdict set is treated as unordered. A detector that is missing from the
set, or whose verdict is FAILED, contributes its declared ``absent()`` value;
nothing here falls back inline. Duplicate or foreign verdicts are contract
violations and raise ``AggregationDefect``.
"""

import logging
from typing import Iterable, Optional
from urllib.parse import urlparse

from leadaudit.detectors import DETECTOR_TYPES, Detector
from leadaudit.errors import AggregationDefect
from leadaudit.schemas import (
    AuditDraft,
    ChatbotPayload,
    ChatbotSummary,
    DesignPayload,
    DesignSubscores,
    DetectorVerdict,
    PageSnapshot,
    PerformanceScores,
    SeoPayload,
    SocialBotPayload,
    StructurePayload,
    TechStackPayload,
    VerdictStatus,
    VoiceAssistantPayload,
)
from leadaudit.services.catalog import PricingCatalog
from leadaudit.services.evidence import PageView, unique_ci
from leadaudit.services.identity import extract_business_name, extract_contact_email

logger = logging.getLogger("leadaudit.aggregate")

# detector name -> AuditDraft field holding its payload
PAYLOAD_FIELDS = {
    "tech_stack": "tech_stack",
    "chatbot": "chatbot",
    "social_bot": "social_bot",
    "voice_assistant": "voice_assistant",
    "seo": "seo",
    "design": "design",
    "structure": "structure",
}

PERFORMANCE_FIELDS = ("performance_score", "accessibility_score", "best_practices_score")


def _index(verdicts: Iterable[DetectorVerdict]) -> dict[str, DetectorVerdict]:
    known: dict[str, type[Detector]] = {cls.name: cls for cls in DETECTOR_TYPES}
    indexed: dict[str, DetectorVerdict] = {}
    for verdict in verdicts:
        name = verdict.detector_name
        if name not in known:
            raise AggregationDefect(f"verdict from unknown detector {name!r}")
        if name in indexed:
            raise AggregationDefect(f"detector {name!r} reported more than once")
        expected = known[name].payload_type
        if not isinstance(verdict.payload, expected):
            raise AggregationDefect(
                f"detector {name!r} payload is {type(verdict.payload).__name__}, "
                f"expected {expected.__name__}"
            )
        indexed[name] = verdict
    return indexed


def _payload(indexed: dict[str, DetectorVerdict], cls: type[Detector]):
    verdict = indexed.get(cls.name)
    if verdict is None or verdict.status == VerdictStatus.FAILED:
        return cls.payload_type.absent()
    return verdict.payload


def _dedup_tech(p: TechStackPayload) -> TechStackPayload:
    return TechStackPayload(
        frameworks=unique_ci(p.frameworks),
        cms=unique_ci(p.cms),
        css_frameworks=unique_ci(p.css_frameworks),
        libraries=unique_ci(p.libraries),
    )


def _summarize_chatbot(p: ChatbotPayload, catalog: PricingCatalog) -> ChatbotSummary:
    providers = unique_ci(p.providers)
    return ChatbotSummary(
        detected=p.detected,
        providers=providers,
        channels=unique_ci(p.channels),
        network_endpoints=unique_ci(p.network_endpoints),
        visual_selectors=unique_ci(p.visual_selectors),
        is_ai_powered=any(catalog.is_ai_vendor(name) for name in providers),
    )


def aggregate(
    snapshot: PageSnapshot,
    verdicts: Iterable[DetectorVerdict],
    *,
    catalog: PricingCatalog,
    url: str | None = None,
    design_subscores: Optional[DesignSubscores] = None,
    performance: Optional[PerformanceScores] = None,
    email_deliverable: Optional[bool] = None,
) -> AuditDraft:
    """
    Merge one run's verdicts (plus any side-channel results) into an AuditDraft.

    Pure: the same snapshot, verdicts and side-channel values always produce an
    equal draft. ``created_at`` is the snapshot capture time for that reason.
    """
    indexed = _index(verdicts)
    by_name = {cls.name: cls for cls in DETECTOR_TYPES}

    tech: TechStackPayload = _dedup_tech(_payload(indexed, by_name["tech_stack"]))
    chatbot: ChatbotPayload = _payload(indexed, by_name["chatbot"])
    social: SocialBotPayload = _payload(indexed, by_name["social_bot"])
    voice: VoiceAssistantPayload = _payload(indexed, by_name["voice_assistant"])
    seo: SeoPayload = _payload(indexed, by_name["seo"])
    design: DesignPayload = _payload(indexed, by_name["design"])
    structure: StructurePayload = _payload(indexed, by_name["structure"])

    status = {
        name: indexed[name].status if name in indexed else VerdictStatus.FAILED
        for name in by_name
    }
    degraded = [PAYLOAD_FIELDS[name] for name, s in status.items() if s == VerdictStatus.FAILED]

    # framework-based responsiveness carries over from the tech stack
    responsive = design.has_responsive_design or bool(tech.css_frameworks)

    if design_subscores is None:
        design_score = 0
        degraded.append("design_score")
    else:
        design_score = design_subscores.overall

    if performance is None:
        performance = PerformanceScores()
        degraded.extend(PERFORMANCE_FIELDS)

    view = PageView(snapshot)
    final_url = snapshot.final_url
    draft = AuditDraft(
        url=url or final_url,
        final_url=final_url,
        created_at=snapshot.captured_at,
        business_name=extract_business_name(view),
        contact_email=extract_contact_email(view),
        contact_email_deliverable=email_deliverable,
        uses_https=urlparse(final_url).scheme == "https",
        tech_stack=tech,
        chatbot=_summarize_chatbot(chatbot, catalog),
        social_bot=SocialBotPayload(
            detected=social.detected,
            providers=unique_ci(social.providers),
            is_automated=social.is_automated,
        ),
        voice_assistant=VoiceAssistantPayload(
            detected=voice.detected,
            providers=unique_ci(voice.providers),
        ),
        seo=seo,
        design=design,
        structure=structure,
        has_responsive_design=responsive,
        seo_score=seo.score,
        performance_score=performance.performance,
        accessibility_score=performance.accessibility,
        best_practices_score=performance.best_practices,
        design_score=design_score,
        design_subscores=design_subscores,
        verdict_status=status,
        degraded_fields=tuple(degraded),
    )
    logger.debug(
        "Aggregated %s: %d verdicts, degraded=%s",
        final_url, len(indexed), ",".join(draft.degraded_fields) or "none",
    )
    return draft
