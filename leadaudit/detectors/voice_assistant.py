"""
Voice-assistant detector.
"""

from leadaudit.detectors.base import Detector
from leadaudit.schemas import VoiceAssistantPayload
from leadaudit.services.evidence import (
    DomSelectorMatch,
    Evidence,
    EvidenceRule,
    GlobalPropertyPresence,
    InlineScriptMatch,
    NetworkDomainMatch,
    PageView,
    labels,
)

VOICE_RULES: tuple[EvidenceRule, ...] = (
    EvidenceRule("Web Speech API", InlineScriptMatch(("SpeechRecognition", ".start("))),
    EvidenceRule("Voice Search", DomSelectorMatch('[aria-label*="voice" i]', visible_only=True)),
    EvidenceRule("Voice Search", DomSelectorMatch('[title*="voice" i]', visible_only=True)),
    EvidenceRule("Voice Search", DomSelectorMatch('button[aria-label*="microphone" i]', visible_only=True)),
    EvidenceRule("Alan AI", GlobalPropertyPresence("alanBtn")),
    EvidenceRule("Alan AI", NetworkDomainMatch("alan.app")),
    EvidenceRule("Speechly", NetworkDomainMatch("speechly.com")),
    EvidenceRule("SoundHound", NetworkDomainMatch("houndify.com")),
)


class VoiceAssistantDetector(Detector[VoiceAssistantPayload]):
    name = "voice_assistant"
    payload_type = VoiceAssistantPayload
    rules = VOICE_RULES

    def fold(self, evidence: list[Evidence], view: PageView) -> VoiceAssistantPayload:
        found = labels(evidence)
        return VoiceAssistantPayload(detected=bool(found), providers=found)
