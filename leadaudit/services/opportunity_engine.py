"""
Opportunity Engine — problem triage and priced upsell list.

    score(draft, catalog) -> Scorecard(problems, opportunities, estimated_value, lead_quality)

Two fixed decision tables drive everything:

  PROBLEM_RULES      condition -> (severity bucket, message)
  OPPORTUNITY_RULES  condition -> opportunity label

Prices come only from the catalog. Several rules may emit the same label; the
label is priced once. A rule that depends on a detector stays silent when that
detector FAILED, so absent evidence never turns into a pitch.

Pure: no I/O, same draft in, equal Scorecard out.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from pydantic import ValidationError

from leadaudit.errors import ScoringDefect
from leadaudit.schemas import (
    AuditDraft,
    LeadQuality,
    Opportunity,
    ProblemBuckets,
    Scorecard,
    Severity,
)
from leadaudit.services.catalog import PricingCatalog

logger = logging.getLogger("leadaudit.score")

POOR_SEO_THRESHOLD = 50
LOW_SEO_THRESHOLD = 70
SLOW_PERFORMANCE_THRESHOLD = 50
POOR_ACCESSIBILITY_THRESHOLD = 50
ACCESSIBILITY_UPSELL_THRESHOLD = 70
WEAK_DESIGN_SCORE = 6
OUTDATED_ERAS = ("dated", "ancient", "prehistoric")


@dataclass(frozen=True)
class ProblemRule:
    severity: Severity
    message: Callable[[AuditDraft], str]
    condition: Callable[[AuditDraft], bool]
    requires: Optional[str] = None


@dataclass(frozen=True)
class OpportunityRule:
    label: str
    condition: Callable[[AuditDraft], bool]
    requires: Optional[str] = None
    category: str = "web"


def _known(draft: AuditDraft, field: str) -> bool:
    return field not in draft.degraded_fields


def _fixed(text: str) -> Callable[[AuditDraft], str]:
    return lambda _draft: text


def _is_legacy_stack(d: AuditDraft) -> bool:
    return "jQuery" in d.tech_stack.libraries and not d.tech_stack.modern_frameworks


# ═══════════════════════════════════════════════════════════════════════
# Problems
# ═══════════════════════════════════════════════════════════════════════

PROBLEM_RULES: tuple[ProblemRule, ...] = (
    # ── Critical ──
    ProblemRule(Severity.CRITICAL, _fixed("Missing Title Tag"),
                lambda d: not d.seo.has_title, "seo"),
    ProblemRule(Severity.CRITICAL, _fixed("Missing Meta Description"),
                lambda d: not d.seo.has_meta_description, "seo"),
    ProblemRule(Severity.CRITICAL, _fixed("Not Using HTTPS"),
                lambda d: not d.uses_https),
    ProblemRule(Severity.CRITICAL, _fixed("Not Mobile Responsive"),
                lambda d: not d.has_responsive_design, "design"),

    # ── Important ──
    ProblemRule(Severity.IMPORTANT, _fixed("Missing Open Graph Tags"),
                lambda d: not d.seo.has_og_pair, "seo"),
    ProblemRule(Severity.IMPORTANT, _fixed("No Call-to-Action"),
                lambda d: not d.structure.has_cta, "structure"),
    ProblemRule(Severity.IMPORTANT, lambda d: f"Poor SEO Optimization (score {d.seo_score}/100)",
                lambda d: d.seo_score < POOR_SEO_THRESHOLD, "seo"),
    ProblemRule(Severity.IMPORTANT, lambda d: f"Slow Page Performance (score {d.performance_score}/100)",
                lambda d: _known(d, "performance_score") and d.performance_score < SLOW_PERFORMANCE_THRESHOLD),
    ProblemRule(Severity.IMPORTANT, lambda d: f"Poor Accessibility (score {d.accessibility_score}/100)",
                lambda d: _known(d, "accessibility_score")
                and d.accessibility_score < POOR_ACCESSIBILITY_THRESHOLD),
    ProblemRule(Severity.IMPORTANT, lambda d: f"Outdated Design ({d.design.era})",
                lambda d: d.design.era in OUTDATED_ERAS, "design"),
    ProblemRule(Severity.IMPORTANT, _fixed("Legacy Technology Stack"),
                _is_legacy_stack, "tech_stack"),

    # ── Minor ──
    ProblemRule(Severity.MINOR, _fixed("No Chatbot Implementation"),
                lambda d: not d.chatbot.detected, "chatbot"),
    ProblemRule(Severity.MINOR, _fixed("No Social Messaging Channel"),
                lambda d: not d.social_bot.detected, "social_bot"),
    ProblemRule(Severity.MINOR, _fixed("No Voice Assistant"),
                lambda d: not d.voice_assistant.detected, "voice_assistant"),
    ProblemRule(Severity.MINOR, _fixed("Missing Structured Data"),
                lambda d: not d.seo.has_structured_data, "seo"),
    ProblemRule(Severity.MINOR, _fixed("Missing Canonical Tag"),
                lambda d: not d.seo.has_canonical, "seo"),
    ProblemRule(Severity.MINOR, lambda d: f"Images Missing Alt Text ({d.seo.images_missing_alt})",
                lambda d: d.seo.images_missing_alt > 0, "seo"),
    ProblemRule(Severity.MINOR, _fixed("No Animations/Transitions"),
                lambda d: not d.design.has_animations, "design"),
    ProblemRule(Severity.MINOR, _fixed("No Lazy Loading"),
                lambda d: not d.design.has_lazy_loading, "design"),
)


# ═══════════════════════════════════════════════════════════════════════
# Opportunities
# ═══════════════════════════════════════════════════════════════════════

OPPORTUNITY_RULES: tuple[OpportunityRule, ...] = (
    # Both SEO rules price the same service
    OpportunityRule("SEO Optimization", lambda d: d.seo_score < LOW_SEO_THRESHOLD, "seo"),
    OpportunityRule("SEO Optimization",
                    lambda d: not d.seo.has_title or not d.seo.has_meta_description, "seo"),
    OpportunityRule("Mobile Responsive Redesign", lambda d: not d.has_responsive_design, "design"),
    OpportunityRule("Modern Design Upgrade", lambda d: d.design.era in OUTDATED_ERAS, "design"),
    OpportunityRule("Modern Design Upgrade",
                    lambda d: _known(d, "design_score") and d.design_score < WEAK_DESIGN_SCORE),
    OpportunityRule("UI/UX Enhancement",
                    lambda d: not d.design.has_modern_layout or d.design.design_quality in ("poor", "average"),
                    "design"),
    OpportunityRule("Progressive Web App Conversion", lambda d: not d.structure.is_pwa, "structure"),
    OpportunityRule("Modern Framework Migration",
                    lambda d: d.tech_stack.is_unmanaged or _is_legacy_stack(d), "tech_stack"),
    OpportunityRule("SSL/HTTPS Setup", lambda d: not d.uses_https),
    OpportunityRule("AI Chatbot Integration", lambda d: not d.chatbot.detected, "chatbot", "ai"),
    OpportunityRule("AI-Powered Chat Upgrade",
                    lambda d: d.chatbot.detected and not d.chatbot.is_ai_powered, "chatbot", "ai"),
    OpportunityRule("Social Media Bot Automation",
                    lambda d: not d.social_bot.is_automated, "social_bot", "ai"),
    OpportunityRule("Voice Assistant Integration",
                    lambda d: not d.voice_assistant.detected, "voice_assistant", "ai"),
    OpportunityRule("AI Personalization Engine",
                    lambda d: not d.chatbot.is_ai_powered and not d.social_bot.is_automated
                    and not d.voice_assistant.detected,
                    "chatbot", "ai"),
    OpportunityRule("Performance Optimization",
                    lambda d: _known(d, "performance_score")
                    and d.performance_score < SLOW_PERFORMANCE_THRESHOLD),
    OpportunityRule("Accessibility Remediation",
                    lambda d: _known(d, "accessibility_score")
                    and d.accessibility_score < ACCESSIBILITY_UPSELL_THRESHOLD),
)

OPPORTUNITY_LABELS: frozenset[str] = frozenset(r.label for r in OPPORTUNITY_RULES)


def _applies(draft: AuditDraft, requires: Optional[str], condition: Callable[[AuditDraft], bool]) -> bool:
    if requires is not None and not draft.detector_ok(requires):
        return False
    return condition(draft)


def classify_problems(draft: AuditDraft) -> ProblemBuckets:
    buckets: dict[Severity, list[str]] = {s: [] for s in Severity}
    seen: set[str] = set()
    for rule in PROBLEM_RULES:
        if not _applies(draft, rule.requires, rule.condition):
            continue
        message = rule.message(draft)
        # first (most severe) bucket wins
        if message in seen:
            continue
        seen.add(message)
        buckets[rule.severity].append(message)
    return ProblemBuckets(
        critical=tuple(buckets[Severity.CRITICAL]),
        important=tuple(buckets[Severity.IMPORTANT]),
        minor=tuple(buckets[Severity.MINOR]),
    )


def collect_opportunities(draft: AuditDraft, catalog: PricingCatalog) -> tuple[Opportunity, ...]:
    found: list[Opportunity] = []
    seen: set[str] = set()
    for rule in OPPORTUNITY_RULES:
        if rule.label in seen or not _applies(draft, rule.requires, rule.condition):
            continue
        seen.add(rule.label)
        found.append(Opportunity(
            label=rule.label,
            estimated_price_usd=catalog.price_of(rule.label),
            category=rule.category,
        ))
    return tuple(found)


def lead_quality(opportunity_count: int) -> LeadQuality:
    if opportunity_count >= 4:
        return LeadQuality.HIGH
    if opportunity_count >= 2:
        return LeadQuality.MEDIUM
    return LeadQuality.LOW


def score(draft: AuditDraft, catalog: PricingCatalog) -> Scorecard:
    problems = classify_problems(draft)
    opportunities = collect_opportunities(draft, catalog)
    try:
        card = Scorecard(
            problems=problems,
            opportunities=opportunities,
            estimated_value=sum(o.estimated_price_usd for o in opportunities),
            lead_quality=lead_quality(len(opportunities)),
        )
    except ValidationError as e:
        raise ScoringDefect(f"inconsistent scorecard for {draft.url}: {e}") from e

    logger.debug(
        "Scored %s: %d problems, %d opportunities, $%d (%s)",
        draft.url, len(problems), len(opportunities), card.estimated_value, card.lead_quality.value,
    )
    return card
