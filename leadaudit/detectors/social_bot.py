"""
Social-bot detector — WhatsApp / Telegram / Messenger entry points and
automation platforms (ManyChat, Chatfuel).

Link and widget evidence only counts when the element is rendered, exactly as
for the chat widget channel of the chatbot detector.
"""

from leadaudit.detectors.base import Detector
from leadaudit.schemas import SocialBotPayload
from leadaudit.services.evidence import (
    DomSelectorMatch,
    Evidence,
    EvidenceRule,
    GlobalPropertyPresence,
    HtmlSubstring,
    NetworkDomainMatch,
    PageView,
    VisibleLinkMatch,
    labels,
)

AUTOMATION = "automation"

SOCIAL_BOT_RULES: tuple[EvidenceRule, ...] = (
    EvidenceRule("WhatsApp", VisibleLinkMatch(r"^https?://(?:www\.)?wa\.me/")),
    EvidenceRule("WhatsApp", VisibleLinkMatch(r"^https?://api\.whatsapp\.com/send")),
    EvidenceRule("WhatsApp", VisibleLinkMatch(r"^https?://(?:www\.)?whatsapp\.com/send")),
    EvidenceRule("WhatsApp", VisibleLinkMatch(r"^whatsapp://send")),
    EvidenceRule("WhatsApp", DomSelectorMatch('[class*="whatsapp-widget"]', visible_only=True)),
    EvidenceRule("Telegram", VisibleLinkMatch(r"^https?://(?:www\.)?(?:t|telegram)\.me/")),
    EvidenceRule("Telegram", VisibleLinkMatch(r"^tg://")),
    EvidenceRule("Facebook Messenger", DomSelectorMatch(".fb-customerchat", visible_only=True)),
    EvidenceRule("Facebook Messenger", VisibleLinkMatch(r"^https?://(?:www\.)?m\.me/")),
    EvidenceRule("Facebook Messenger", VisibleLinkMatch(r"^https?://(?:www\.)?messenger\.com/t/")),
    EvidenceRule("ManyChat", GlobalPropertyPresence("ManyChat"), AUTOMATION),
    EvidenceRule("ManyChat", NetworkDomainMatch("manychat.com"), AUTOMATION),
    EvidenceRule("ManyChat", HtmlSubstring("widget.manychat.com"), AUTOMATION),
    EvidenceRule("Chatfuel", NetworkDomainMatch("chatfuel.com"), AUTOMATION),
)


class SocialBotDetector(Detector[SocialBotPayload]):
    name = "social_bot"
    payload_type = SocialBotPayload
    rules = SOCIAL_BOT_RULES

    def fold(self, evidence: list[Evidence], view: PageView) -> SocialBotPayload:
        platforms = labels(evidence)
        return SocialBotPayload(
            detected=bool(platforms),
            providers=platforms,
            is_automated=any(e.group == AUTOMATION for e in evidence),
        )
