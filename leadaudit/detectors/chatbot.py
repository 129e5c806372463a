"""
Chatbot detector — three independent evidence channels.

  (a) dom      rendered, non-zero-size chat widget markup (anonymous)
  (b) network  requests to a known chat vendor's domains during render
  (c) global   window-scope objects installed by a chat SDK

``detected`` is (a) OR (b) OR (c). Only (b) and (c) name a provider; a visible
widget with no vendor fingerprint counts toward ``detected`` alone.
"""

from leadaudit.detectors.base import Detector
from leadaudit.schemas import ChatbotPayload, VerdictStatus
from leadaudit.services.evidence import (
    DomSelectorMatch,
    Evidence,
    EvidenceRule,
    GlobalPropertyPresence,
    NetworkDomainMatch,
    PageView,
    labels,
    unique_ci,
)

VISIBLE_WIDGET_SELECTORS = (
    '[class*="chatbot"]',
    '[id*="chatbot"]',
    '[class*="chat-widget"]',
    '[id*="chat-widget"]',
    '[class*="chat-box"]',
    '[id*="chatbox"]',
    ".chat-container",
    ".live-chat",
    'iframe[title*="chat" i]',
    "#tidio-chat",
    "#intercom-container",
    ".intercom-launcher",
    "#drift-widget",
    ".crisp-client",
    "#tawkchat-container",
    "#chat-widget-container",
    "#fc_frame",
    "#hubspot-messages-iframe-container",
    "#olark-box",
)

VENDOR_DOMAINS: dict[str, tuple[str, ...]] = {
    "Intercom": ("intercom.io", "intercomcdn.com"),
    "Drift": ("drift.com", "driftt.com"),
    "Tidio": ("tidio.co", "tidiochat.com"),
    "LiveChat": ("livechatinc.com",),
    "Zendesk": ("zdassets.com", "zopim.com", "zendesk.com"),
    "Tawk.to": ("tawk.to",),
    "Crisp": ("crisp.chat",),
    "Freshchat": ("freshchat.com",),
    "HubSpot": ("usemessages.com",),
    "Olark": ("olark.com",),
    "Smartsupp": ("smartsuppchat.com", "smartsupp.com"),
    "Userlike": ("userlike.com",),
    "Chatwoot": ("chatwoot.com",),
    "Botpress": ("botpress.cloud",),
    "Ada": ("ada.support",),
    "Voiceflow": ("voiceflow.com",),
    "Chatbase": ("chatbase.co",),
    "Landbot": ("landbot.io",),
    "Kommunicate": ("kommunicate.io",),
    "Gorgias": ("gorgias.chat",),
}

VENDOR_GLOBALS: dict[str, tuple[str, ...]] = {
    "Intercom": ("Intercom",),
    "Drift": ("drift",),
    "Tidio": ("tidioChatApi",),
    "LiveChat": ("LiveChatWidget",),
    "Zendesk": ("zE",),
    "Tawk.to": ("Tawk_API",),
    "Crisp": ("$crisp",),
    "Freshchat": ("fcWidget",),
    "HubSpot": ("HubSpotConversations",),
    "Olark": ("olark",),
    "Smartsupp": ("smartsupp",),
    "Chatwoot": ("$chatwoot",),
    "Botpress": ("botpressWebChat",),
    "Ada": ("adaEmbed",),
    "Voiceflow": ("voiceflow",),
    "Kommunicate": ("kommunicate",),
}

CHATBOT_RULES: tuple[EvidenceRule, ...] = (
    tuple(EvidenceRule(None, DomSelectorMatch(sel, visible_only=True)) for sel in VISIBLE_WIDGET_SELECTORS)
    + tuple(
        EvidenceRule(vendor, NetworkDomainMatch(domain))
        for vendor, domains in VENDOR_DOMAINS.items()
        for domain in domains
    )
    + tuple(
        EvidenceRule(vendor, GlobalPropertyPresence(name))
        for vendor, names in VENDOR_GLOBALS.items()
        for name in names
    )
)


class ChatbotDetector(Detector[ChatbotPayload]):
    name = "chatbot"
    payload_type = ChatbotPayload
    rules = CHATBOT_RULES

    def fold(self, evidence: list[Evidence], view: PageView) -> ChatbotPayload:
        if not evidence:
            return ChatbotPayload.absent()
        providers = unique_ci(
            labels(evidence, channel="network") + labels(evidence, channel="global")
        )
        return ChatbotPayload(
            detected=True,
            providers=providers,
            channels=unique_ci(e.channel for e in evidence),
            network_endpoints=unique_ci(e.detail for e in evidence if e.channel == "network"),
            visual_selectors=unique_ci(e.detail for e in evidence if e.channel == "dom"),
        )

    def status_for(self, view: PageView) -> VerdictStatus:
        # DOM channel answered but the request log came back empty
        if not view.snapshot.network_requests:
            return VerdictStatus.DEGRADED
        return VerdictStatus.OK
