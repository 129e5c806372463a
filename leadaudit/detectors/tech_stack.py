"""
Tech-stack detector — frameworks, CMS, CSS frameworks and JS libraries.

Every technology that has matching evidence is reported; a Next.js site that
ships React and Tailwind yields all three. A page with no match at all reports
the ``Unmanaged/Custom`` sentinel so downstream rules never see an empty stack.
"""

from leadaudit.detectors.base import Detector
from leadaudit.schemas import TechStackPayload
from leadaudit.services.evidence import (
    DomSelectorMatch,
    Evidence,
    EvidenceRule,
    GlobalPropertyPresence,
    HtmlPattern,
    HtmlSubstring,
    NetworkDomainMatch,
    PageView,
    labels,
)

FRAMEWORKS = "frameworks"
CMS = "cms"
CSS_FRAMEWORKS = "css_frameworks"
LIBRARIES = "libraries"


def _rules(group: str, table: list[tuple[str, object]]) -> tuple[EvidenceRule, ...]:
    return tuple(EvidenceRule(label, marker, group) for label, marker in table)


FRAMEWORK_RULES = _rules(FRAMEWORKS, [
    ("React", GlobalPropertyPresence("React")),
    ("React", GlobalPropertyPresence("__REACT_DEVTOOLS_GLOBAL_HOOK__")),
    ("React", DomSelectorMatch("[data-reactroot]")),
    ("React", DomSelectorMatch("[data-reactid]")),
    ("React", HtmlSubstring("react-dom")),
    ("React", HtmlSubstring("react/jsx-runtime")),
    ("React", DomSelectorMatch("#__next")),
    ("Next.js", GlobalPropertyPresence("__NEXT_DATA__")),
    ("Next.js", DomSelectorMatch("#__next")),
    ("Next.js", HtmlSubstring("/_next/static/")),
    ("Vue.js", GlobalPropertyPresence("Vue")),
    ("Vue.js", GlobalPropertyPresence("__VUE__")),
    ("Vue.js", HtmlPattern(r"\sdata-v-[0-9a-f]{6,8}")),
    ("Nuxt.js", GlobalPropertyPresence("__NUXT__")),
    ("Nuxt.js", DomSelectorMatch("#__nuxt")),
    ("Nuxt.js", HtmlSubstring("/_nuxt/")),
    ("Angular", GlobalPropertyPresence("ng")),
    ("Angular", GlobalPropertyPresence("angular")),
    ("Angular", DomSelectorMatch("[ng-version]")),
    ("Angular", DomSelectorMatch("[ng-app]")),
    ("Svelte", HtmlPattern(r"class=\"[^\"]*\bsvelte-[a-z0-9]{5,}")),
    ("Gatsby", DomSelectorMatch("#___gatsby")),
    ("Astro", HtmlPattern(r"<astro-island\b")),
])

CMS_RULES = _rules(CMS, [
    ("WordPress", DomSelectorMatch('meta[name="generator"][content*="WordPress"]')),
    ("WordPress", HtmlSubstring("/wp-content/")),
    ("WordPress", HtmlSubstring("/wp-includes/")),
    ("Shopify", GlobalPropertyPresence("Shopify")),
    ("Shopify", NetworkDomainMatch("cdn.shopify.com")),
    ("Shopify", HtmlSubstring("cdn.shopify.com")),
    ("Wix", GlobalPropertyPresence("wixBiSession")),
    ("Wix", HtmlSubstring("static.wixstatic.com")),
    ("Wix", HtmlSubstring("static.parastorage.com")),
    ("Squarespace", HtmlSubstring("static1.squarespace.com")),
    ("Squarespace", DomSelectorMatch('meta[name="generator"][content*="Squarespace"]')),
    ("Webflow", DomSelectorMatch("html[data-wf-site]")),
    ("Webflow", HtmlSubstring("assets.website-files.com")),
    ("Joomla", DomSelectorMatch('meta[name="generator"][content*="Joomla"]')),
    ("Joomla", HtmlSubstring("/components/com_")),
    ("Drupal", GlobalPropertyPresence("Drupal")),
    ("Drupal", DomSelectorMatch('meta[name="generator"][content*="Drupal"]')),
    ("Drupal", HtmlSubstring("drupal-settings-json")),
    ("Weebly", HtmlSubstring("editmysite.com")),
    ("GoDaddy Builder", HtmlSubstring("img1.wsimg.com")),
])

CSS_FRAMEWORK_RULES = _rules(CSS_FRAMEWORKS, [
    ("Bootstrap", HtmlPattern(r"bootstrap(?:\.bundle)?(?:\.min)?\.(?:css|js)")),
    ("Bootstrap", HtmlPattern(r"bootstrap@\d|/bootstrap/\d")),
    ("Tailwind CSS", HtmlSubstring("cdn.tailwindcss.com")),
    ("Tailwind CSS", HtmlSubstring("--tw-")),
    ("Tailwind CSS", HtmlPattern(r"class=\"[^\"]*\b(?:sm|md|lg|xl):(?:flex|grid|hidden|block|w-|px-|py-|text-)")),
    ("Material-UI", HtmlPattern(r"class=\"[^\"]*\bMui[A-Z][a-zA-Z]+-root")),
    ("Bulma", HtmlPattern(r"bulma(?:\.min)?\.css")),
    ("Foundation", HtmlPattern(r"foundation(?:\.min)?\.(?:css|js)")),
    ("Chakra UI", HtmlPattern(r"class=\"[^\"]*\bchakra-[a-z]+")),
])

LIBRARY_RULES = _rules(LIBRARIES, [
    ("jQuery", GlobalPropertyPresence("jQuery")),
    ("jQuery", HtmlPattern(r"jquery(?:[.-]\d[\d.]*)?(?:\.min)?\.js")),
    ("Lodash", GlobalPropertyPresence("lodash")),
    ("Lodash", HtmlPattern(r"lodash(?:\.min)?\.js")),
    ("Axios", GlobalPropertyPresence("axios")),
    ("GSAP", GlobalPropertyPresence("gsap")),
])


class TechStackDetector(Detector[TechStackPayload]):
    name = "tech_stack"
    payload_type = TechStackPayload
    rules = FRAMEWORK_RULES + CMS_RULES + CSS_FRAMEWORK_RULES + LIBRARY_RULES

    def fold(self, evidence: list[Evidence], view: PageView) -> TechStackPayload:
        if not evidence:
            return TechStackPayload.absent()
        return TechStackPayload(
            frameworks=labels(evidence, group=FRAMEWORKS),
            cms=labels(evidence, group=CMS),
            css_frameworks=labels(evidence, group=CSS_FRAMEWORKS),
            libraries=labels(evidence, group=LIBRARIES),
        )
