"""
Evidence tables — declarative markers evaluated against a frozen page snapshot.

A detector is a table of ``EvidenceRule(label, marker)`` rows. ``collect()``
returns every row whose marker matched; the detector then folds that list into
its typed payload. Nothing here touches a live browser: markers that need the
live page (window globals, visibility) read the probe results the renderer
stored on the snapshot, and ``probe_plan()`` tells the renderer which probes
to take.
"""

import logging
import re
from dataclasses import dataclass
from functools import cached_property, lru_cache
from typing import Iterable, Optional, Union

from bs4 import BeautifulSoup
from soupsieve import SelectorSyntaxError

from leadaudit.schemas import PageSnapshot, ProbePlan

logger = logging.getLogger("leadaudit.evidence")


@lru_cache(maxsize=256)
def _compiled(pattern: str) -> re.Pattern:
    return re.compile(pattern, re.IGNORECASE)


def host_matches(host: str, domain: str) -> bool:
    """'js.intercom.io' matches 'intercom.io'; 'notintercom.io' does not."""
    host = host.lower().rstrip(".")
    domain = domain.lower()
    return host == domain or host.endswith("." + domain)


def unique_ci(values: Iterable[str]) -> tuple[str, ...]:
    """Case-insensitive dedup that keeps the first-seen casing and order."""
    seen: set[str] = set()
    out: list[str] = []
    for value in values:
        if not value:
            continue
        key = value.strip().casefold()
        if key in seen:
            continue
        seen.add(key)
        out.append(value.strip())
    return tuple(out)


class PageView:
    """Lazily parsed read-only view over one snapshot. One per detector run."""

    def __init__(self, snapshot: PageSnapshot):
        self.snapshot = snapshot

    @cached_property
    def soup(self) -> BeautifulSoup:
        return BeautifulSoup(self.snapshot.dom_html or "", "html.parser")

    @cached_property
    def html_lower(self) -> str:
        return (self.snapshot.dom_html or "").lower()

    @cached_property
    def inline_scripts(self) -> tuple[str, ...]:
        return tuple(
            tag.string or tag.get_text() or ""
            for tag in self.soup.find_all("script")
            if not tag.get("src")
        )

    def select_one(self, selector: str):
        try:
            return self.soup.select_one(selector)
        except (SelectorSyntaxError, NotImplementedError) as e:  # browser-only syntax
            logger.debug("Selector %r not supported offline: %s", selector, e)
            return None

    def meta_content(self, *, name: str | None = None, prop: str | None = None) -> str:
        attrs = {"name": name} if name else {"property": prop}
        tag = self.soup.find("meta", attrs=attrs)
        if not tag:
            return ""
        return (tag.get("content") or "").strip()


# ─── Markers ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class GlobalPropertyPresence:
    """A vendor SDK exposed ``window.<name>``."""

    name: str
    channel = "global"

    def find(self, view: PageView) -> Optional[str]:
        return self.name if self.name in view.snapshot.globals_present else None

    def probes(self) -> ProbePlan:
        return ProbePlan(globals=frozenset({self.name}))


@dataclass(frozen=True)
class DomSelectorMatch:
    """CSS selector match. ``visible_only`` rows are answered by the live-page probe."""

    selector: str
    visible_only: bool = False
    channel = "dom"

    def find(self, view: PageView) -> Optional[str]:
        if self.visible_only:
            return self.selector if self.selector in view.snapshot.visible_selectors else None
        return self.selector if view.select_one(self.selector) is not None else None

    def probes(self) -> ProbePlan:
        if self.visible_only:
            return ProbePlan(visible_selectors=frozenset({self.selector}))
        return ProbePlan()


@dataclass(frozen=True)
class NetworkDomainMatch:
    """Some request captured during render went to ``domain`` or a subdomain of it."""

    domain: str
    channel = "network"

    def find(self, view: PageView) -> Optional[str]:
        for request in view.snapshot.network_requests:
            if host_matches(request.host, self.domain):
                return request.url
        return None

    def probes(self) -> ProbePlan:
        return ProbePlan()


@dataclass(frozen=True)
class HtmlSubstring:
    needle: str
    channel = "html"

    def find(self, view: PageView) -> Optional[str]:
        return self.needle if self.needle.lower() in view.html_lower else None

    def probes(self) -> ProbePlan:
        return ProbePlan()


@dataclass(frozen=True)
class HtmlPattern:
    pattern: str
    channel = "html"

    def find(self, view: PageView) -> Optional[str]:
        match = _compiled(self.pattern).search(view.snapshot.dom_html or "")
        return match.group(0) if match else None

    def probes(self) -> ProbePlan:
        return ProbePlan()


@dataclass(frozen=True)
class VisibleLinkMatch:
    """A rendered, non-zero-size anchor whose href matches ``pattern``."""

    pattern: str
    channel = "dom"

    def find(self, view: PageView) -> Optional[str]:
        regex = _compiled(self.pattern)
        for href in view.snapshot.visible_links:
            if regex.search(href):
                return href
        return None

    def probes(self) -> ProbePlan:
        return ProbePlan()


@dataclass(frozen=True)
class InlineScriptMatch:
    """An inline <script> contains every one of ``needles``."""

    needles: tuple[str, ...]
    channel = "script"

    def find(self, view: PageView) -> Optional[str]:
        for body in view.inline_scripts:
            if all(n in body for n in self.needles):
                return " + ".join(self.needles)
        return None

    def probes(self) -> ProbePlan:
        return ProbePlan()


Marker = Union[
    GlobalPropertyPresence,
    DomSelectorMatch,
    NetworkDomainMatch,
    HtmlSubstring,
    HtmlPattern,
    VisibleLinkMatch,
    InlineScriptMatch,
]


@dataclass(frozen=True)
class EvidenceRule:
    """``label`` is the vendor/technology the marker identifies; None = anonymous."""

    label: Optional[str]
    marker: Marker
    group: str = ""


@dataclass(frozen=True)
class Evidence:
    label: Optional[str]
    group: str
    channel: str
    detail: str


def collect(rules: Iterable[EvidenceRule], view: PageView) -> list[Evidence]:
    """Evaluate every rule; return the matches in table order."""
    found: list[Evidence] = []
    for rule in rules:
        detail = rule.marker.find(view)
        if detail is not None:
            found.append(Evidence(rule.label, rule.group, rule.marker.channel, detail))
    return found


def probe_plan(rules: Iterable[EvidenceRule]) -> ProbePlan:
    plan = ProbePlan()
    for rule in rules:
        plan = plan.merge(rule.marker.probes())
    return plan


def labels(evidence: Iterable[Evidence], *, channel: str | None = None, group: str | None = None) -> tuple[str, ...]:
    """Deduplicated labels of the matched evidence, optionally filtered."""
    return unique_ci(
        e.label
        for e in evidence
        if e.label
        and (channel is None or e.channel == channel)
        and (group is None or e.group == group)
    )
