"""
Design / responsiveness detector.

Responsiveness is direct (viewport meta, media queries) or transitive through a
known CSS framework. Layout modernity comes from a rule-based era judge; the
optional vision-model score is merged later by the aggregator.
"""

import re
from datetime import datetime
from typing import Callable, Iterator, Optional

from leadaudit.detectors.base import Detector
from leadaudit.detectors.tech_stack import CSS_FRAMEWORKS, CSS_FRAMEWORK_RULES
from leadaudit.schemas import DesignPayload
from leadaudit.services.evidence import (
    Evidence,
    EvidenceRule,
    GlobalPropertyPresence,
    PageView,
    labels,
)

ANIMATION = "animation"

DESIGN_RULES: tuple[EvidenceRule, ...] = CSS_FRAMEWORK_RULES + (
    EvidenceRule("GSAP", GlobalPropertyPresence("gsap"), ANIMATION),
    EvidenceRule("Anime.js", GlobalPropertyPresence("anime"), ANIMATION),
)

MEDIA_QUERY = re.compile(r"@media[^{]*\(|<link[^>]+media\s*=\s*[\"'][^\"']*\(", re.IGNORECASE)
MODERN_LAYOUT = re.compile(
    r"display\s*:\s*(?:inline-)?(?:flex|grid)|class\s*=\s*[\"'][^\"']*\b(?:d-flex|flex|grid)\b",
    re.IGNORECASE,
)
CUSTOM_FONTS = re.compile(r"fonts\.googleapis\.com|fonts\.gstatic\.com|use\.typekit\.net|fonts\.adobe\.com|@font-face")
ANIMATIONS = re.compile(r"@keyframes|animation\s*:|transition\s*:|class\s*=\s*[\"'][^\"']*\banimate")


# ─── Era judge ─────────────────────────────────────────────────
# Markup that dates a site on sight: (pattern, penalty, sin)
DATED_MARKUP: tuple[tuple[re.Pattern, int, str], ...] = (
    (re.compile(r"shockwave-flash|\.swf"), 30, "Flash/Shockwave detected"),
    (re.compile(r"<marquee"), 20, "<marquee> tag detected"),
    (re.compile(r"<blink"), 20, "<blink> tag detected"),
    (re.compile(r"lorem ipsum"), 20, "Lorem ipsum placeholder text found"),
    (re.compile(r"under construction"), 25, '"Under construction" text on page'),
)

VIEWPORT_META = re.compile(r"<meta[^>]*name\s*=\s*[\"']viewport[\"']")

# Current practice: (pattern, bonus)
MODERN_MARKUP: tuple[tuple[re.Pattern, int], ...] = (
    (VIEWPORT_META, 10),
    (CUSTOM_FONTS, 5),
    (re.compile(r"display\s*:\s*(?:grid|flex)"), 10),
    (re.compile(r"grid-template|flex-wrap|flex-direction"), 5),
    (re.compile(r"loading=\"lazy\"|lazyload"), 5),
    (re.compile(r"type=\"module\""), 5),
    (re.compile(r"application/ld\+json"), 5),
    (re.compile(r"<svg"), 3),
    (re.compile(r"prefers-color-scheme"), 3),
)

ERA_BANDS: tuple[tuple[int, str], ...] = ((70, "modern"), (50, "recent"), (30, "dated"), (15, "ancient"))
ERA_BASELINE = 50

LAYOUT_TABLE = re.compile(r"<table[^>]*(?:width\s*=\s*\"?100%|cellpadding|cellspacing)")
JQUERY_VERSION = re.compile(r"jquery[.-]?(\d+)\.(\d+)")
BOOTSTRAP_VERSION = re.compile(r"bootstrap[@/.-]?(\d+)\.")
COPYRIGHT_YEAR = re.compile(r"(?:©|copyright|&copy;)\s*(\d{4})")

Penalty = tuple[int, str]


def _table_layout(page: str, year: int) -> Iterator[Penalty]:
    if page.count("<table") > 3 and len(LAYOUT_TABLE.findall(page)) > 2:
        yield 20, "Table-based layout detected"


def _library_versions(page: str, year: int) -> Iterator[Penalty]:
    jquery = JQUERY_VERSION.search(page)
    if jquery:
        major = int(jquery.group(1))
        if major <= 1:
            yield 15, f"jQuery {major}.x (ancient)"
        elif major == 2:
            yield 5, "jQuery 2.x (dated)"
    bootstrap = BOOTSTRAP_VERSION.search(page)
    if bootstrap and int(bootstrap.group(1)) <= 3:
        yield 10, f"Bootstrap {bootstrap.group(1)} (outdated)"


def _stale_copyright(page: str, year: int) -> Iterator[Penalty]:
    found = COPYRIGHT_YEAR.search(page)
    stamped = int(found.group(1)) if found else year
    if stamped < year - 2:
        yield min(20, (year - stamped) * 2), f"Copyright stuck on {stamped}"


def _no_viewport(page: str, year: int) -> Iterator[Penalty]:
    if not VIEWPORT_META.search(page):
        yield 15, "No viewport meta tag (not mobile-friendly)"


def _inline_styles(page: str, year: int) -> Iterator[Penalty]:
    count = page.count('style="')
    if count > 50:
        yield 5, f"Excessive inline styles ({count})"


DATED_CHECKS: tuple[Callable[[str, int], Iterator[Penalty]], ...] = (
    _table_layout,
    _library_versions,
    _stale_copyright,
    _no_viewport,
    _inline_styles,
)


def era_for(score: int) -> str:
    return next((era for floor, era in ERA_BANDS if score >= floor), "prehistoric")


def judge_design_era(html: str, year: Optional[int] = None) -> tuple[int, str, list[str]]:
    """
    Rule-based design era judgement, no model involved.

    Starts from a neutral baseline, subtracts a penalty for each dated signal
    and adds a bonus for each modern one. ``year`` anchors the copyright check
    (defaults to the current year). Returns (score 0-100, era, sins).
    """
    page = html.lower()
    year = year or datetime.now().year

    penalties: list[Penalty] = [(points, sin) for pattern, points, sin in DATED_MARKUP if pattern.search(page)]
    for check in DATED_CHECKS:
        penalties.extend(check(page, year))
    bonus = sum(points for pattern, points in MODERN_MARKUP if pattern.search(page))

    score = max(0, min(100, ERA_BASELINE - sum(p for p, _ in penalties) + bonus))
    return score, era_for(score), [sin for _, sin in penalties]


def design_quality(*signals: bool) -> str:
    count = sum(1 for s in signals if s)
    if count >= 4:
        return "excellent"
    if count == 3:
        return "good"
    if count == 2:
        return "average"
    return "poor"


class DesignDetector(Detector[DesignPayload]):
    name = "design"
    payload_type = DesignPayload
    rules = DESIGN_RULES

    def fold(self, evidence: list[Evidence], view: PageView) -> DesignPayload:
        html = view.snapshot.dom_html or ""
        has_viewport = view.soup.find("meta", attrs={"name": "viewport"}) is not None
        has_media = bool(MEDIA_QUERY.search(html))
        css_frameworks = labels(evidence, group=CSS_FRAMEWORKS)
        responsive = has_viewport or has_media or bool(css_frameworks)

        modern_layout = bool(MODERN_LAYOUT.search(html))
        custom_fonts = bool(CUSTOM_FONTS.search(view.html_lower))
        animations = bool(ANIMATIONS.search(view.html_lower)) or any(e.group == ANIMATION for e in evidence)
        lazy = 'loading="lazy"' in view.html_lower or "lazyload" in view.html_lower

        score, era, sins = judge_design_era(html)
        return DesignPayload(
            has_viewport_meta=has_viewport,
            has_media_queries=has_media,
            css_frameworks=css_frameworks,
            has_responsive_design=responsive,
            has_modern_layout=modern_layout,
            has_custom_fonts=custom_fonts,
            has_animations=animations,
            has_lazy_loading=lazy,
            design_quality=design_quality(modern_layout, custom_fonts, animations, responsive),
            era=era,
            modernity_score=score,
            sins=tuple(sins),
        )
