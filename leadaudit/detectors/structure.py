"""
Page structure detector — landmarks, hero, call-to-action, PWA signals.
"""

from leadaudit.detectors.base import Detector
from leadaudit.schemas import StructurePayload
from leadaudit.services.evidence import Evidence, PageView

CTA_PHRASES = (
    "get started", "sign up", "try free", "contact", "buy now", "learn more",
    "book now", "get a quote", "free quote", "schedule", "call now", "order now",
)


class StructureDetector(Detector[StructurePayload]):
    name = "structure"
    payload_type = StructurePayload

    def fold(self, evidence: list[Evidence], view: PageView) -> StructurePayload:
        has = view.select_one
        sections = len(view.soup.find_all("section"))
        if sections > 5:
            layout = "complex"
        elif sections > 2:
            layout = "multi-section"
        else:
            layout = "single-page"

        has_cta = any(
            phrase in el.get_text(" ", strip=True).lower()
            for el in view.soup.find_all(["a", "button"])
            for phrase in CTA_PHRASES
        )
        scripts = " ".join(view.inline_scripts)

        return StructurePayload(
            has_header=bool(has("header") or has('[role="banner"]') or has("nav")),
            has_footer=bool(has("footer") or has('[role="contentinfo"]')),
            has_navigation=bool(has("nav") or has('[role="navigation"]') or has("ul.menu") or has(".navbar")),
            has_hero=bool(has('[class*="hero"]') or has('[class*="banner"]')),
            has_cta=has_cta,
            has_manifest=has('link[rel~="manifest"]') is not None,
            registers_service_worker="serviceWorker.register" in scripts,
            section_count=sections,
            layout_type=layout,
        )
