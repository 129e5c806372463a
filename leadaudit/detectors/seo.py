"""
SEO detector — presence checks against a fixed weighted checklist.

    title tag (non-empty)              20
    meta description                   20
    og:title + og:description pair     20
    viewport meta                      20
    canonical link                     20
                                      ---
                                      100

The score is the sum of weights of the checks that pass. Content quality is
reported as issues but never changes the score.
"""

import re
from typing import Callable

from leadaudit.detectors.base import Detector
from leadaudit.schemas import SeoPayload
from leadaudit.services.evidence import Evidence, PageView


def _has_title(view: PageView) -> bool:
    tag = view.soup.find("title")
    return bool(tag and tag.get_text(strip=True))


def _has_meta_description(view: PageView) -> bool:
    return bool(view.meta_content(name="description"))


def _has_og_pair(view: PageView) -> bool:
    return bool(
        view.soup.find("meta", attrs={"property": "og:title"})
        and view.soup.find("meta", attrs={"property": "og:description"})
    )


def _has_viewport(view: PageView) -> bool:
    return view.soup.find("meta", attrs={"name": "viewport"}) is not None


def _has_canonical(view: PageView) -> bool:
    return view.select_one('link[rel~="canonical"]') is not None


# (field on SeoPayload, weight, check, issue when failing)
SEO_CHECKLIST: tuple[tuple[str, int, Callable[[PageView], bool], str], ...] = (
    ("has_title", 20, _has_title, "Missing or empty title tag"),
    ("has_meta_description", 20, _has_meta_description, "Missing meta description"),
    ("has_og_pair", 20, _has_og_pair, "Missing Open Graph title/description"),
    ("has_viewport", 20, _has_viewport, "Missing viewport meta tag"),
    ("has_canonical", 20, _has_canonical, "Missing canonical tag"),
)

if sum(weight for _, weight, _, _ in SEO_CHECKLIST) != 100:
    raise RuntimeError("SEO checklist weights must sum to 100")

SEO_WEIGHTS = {field: weight for field, weight, _, _ in SEO_CHECKLIST}


class SeoDetector(Detector[SeoPayload]):
    name = "seo"
    payload_type = SeoPayload

    def fold(self, evidence: list[Evidence], view: PageView) -> SeoPayload:
        soup = view.soup
        checks: dict[str, bool] = {}
        issues: list[str] = []
        score = 0
        for field, weight, check, issue in SEO_CHECKLIST:
            passed = check(view)
            checks[field] = passed
            if passed:
                score += weight
            else:
                issues.append(issue)

        title_tag = soup.find("title")
        title_length = len(title_tag.get_text(strip=True)) if title_tag else 0
        if title_length and title_length < 30:
            issues.append("Title tag too short (should be 30-60 characters)")
        elif title_length > 60:
            issues.append("Title tag too long (should be 30-60 characters)")

        desc_length = len(view.meta_content(name="description"))
        if desc_length and desc_length < 120:
            issues.append("Meta description too short (should be 120-160 characters)")
        elif desc_length > 160:
            issues.append("Meta description too long (should be 120-160 characters)")

        h1_count = len(soup.find_all("h1"))
        if h1_count == 0:
            issues.append("Missing H1 heading tag")
        elif h1_count > 1:
            issues.append(f"Multiple H1 tags found ({h1_count}). Should have only one.")

        images = soup.find_all("img")
        missing_alt = sum(1 for img in images if not img.has_attr("alt"))
        if images and missing_alt:
            pct = round(missing_alt / len(images) * 100)
            issues.append(f"{missing_alt} of {len(images)} images ({pct}%) missing alt text")

        has_structured_data = soup.find("script", attrs={"type": "application/ld+json"}) is not None or (
            soup.find(attrs={"itemscope": True}) is not None
        )
        has_sitemap_link = bool(
            view.select_one('link[rel~="sitemap"]') or re.search(r"sitemap[\w-]*\.xml", view.html_lower)
        )

        return SeoPayload(
            score=score,
            **checks,
            has_structured_data=has_structured_data,
            has_sitemap_link=has_sitemap_link,
            h1_count=h1_count,
            images_total=len(images),
            images_missing_alt=missing_alt,
            title_length=title_length,
            meta_description_length=desc_length,
            issues=tuple(issues),
        )
