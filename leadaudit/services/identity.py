"""
Business identity — display name and best contact email for the pitch.

Name: og:site_name > first segment of <title> > first <h1>.
Email: a role address (contact/info/hello/support/sales) > first valid address
in the visible text. Platform and tracking domains never count.
"""

import re
from typing import Optional

from leadaudit.services.evidence import PageView, host_matches

EMAIL_REGEX = re.compile(r"\b[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}\b")

PREFERRED_MAILBOXES = ("contact", "info", "hello", "support", "sales")

BLOCKED_EMAIL_DOMAINS = {
    "example.com", "example.org", "example.net", "test.com", "domain.com",
    "email.com", "yourdomain.com", "sentry.io", "sentry-next.wixpress.com",
    "wixpress.com", "wix.com", "godaddy.com", "squarespace.com", "mailchimp.com",
    "sentry.wixpress.com", "cloudflare.com",
}

# asset names like "logo@2x.png" look like addresses
ASSET_SUFFIXES = (".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".css", ".js")

TITLE_SEPARATORS = re.compile(r"\s+[|\-–—:·]\s+|\|")

MAX_NAME_LENGTH = 100


def extract_business_name(view: PageView) -> str:
    site_name = view.meta_content(prop="og:site_name")
    if site_name:
        return site_name[:MAX_NAME_LENGTH]

    title = view.soup.find("title")
    if title:
        first = TITLE_SEPARATORS.split(title.get_text(" ", strip=True))[0].strip()
        if first:
            return first[:MAX_NAME_LENGTH]

    h1 = view.soup.find("h1")
    if h1:
        return h1.get_text(" ", strip=True)[:MAX_NAME_LENGTH]
    return ""


def is_usable_email(address: str) -> bool:
    address = address.lower()
    if address.endswith(ASSET_SUFFIXES):
        return False
    domain = address.rsplit("@", 1)[-1]
    return not any(host_matches(domain, blocked) for blocked in BLOCKED_EMAIL_DOMAINS)


def extract_contact_email(view: PageView) -> Optional[str]:
    text = view.snapshot.visible_text or view.soup.get_text(" ", strip=True)
    candidates = [e for e in EMAIL_REGEX.findall(text) if is_usable_email(e)]
    if not candidates:
        return None
    for email in candidates:
        if any(word in email.lower() for word in PREFERRED_MAILBOXES):
            return email
    return candidates[0]
