"""
Detector registry.

``default_detectors()`` is the fixed set every audit runs. The aggregator knows
each one by ``name`` and reads its payload through ``payload_type``.
"""

from leadaudit.detectors.base import Detector
from leadaudit.detectors.chatbot import ChatbotDetector
from leadaudit.detectors.design import DesignDetector
from leadaudit.detectors.seo import SeoDetector
from leadaudit.detectors.social_bot import SocialBotDetector
from leadaudit.detectors.structure import StructureDetector
from leadaudit.detectors.tech_stack import TechStackDetector
from leadaudit.detectors.voice_assistant import VoiceAssistantDetector
from leadaudit.schemas import ProbePlan

DETECTOR_TYPES: tuple[type[Detector], ...] = (
    TechStackDetector,
    ChatbotDetector,
    SocialBotDetector,
    VoiceAssistantDetector,
    SeoDetector,
    DesignDetector,
    StructureDetector,
)


def default_detectors() -> list[Detector]:
    return [cls() for cls in DETECTOR_TYPES]


def combined_probe_plan(detectors: list[Detector]) -> ProbePlan:
    """Union of the in-page probes every detector needs."""
    plan = ProbePlan()
    for detector in detectors:
        plan = plan.merge(detector.probes())
    return plan


__all__ = [
    "DETECTOR_TYPES",
    "ChatbotDetector",
    "DesignDetector",
    "Detector",
    "SeoDetector",
    "SocialBotDetector",
    "StructureDetector",
    "TechStackDetector",
    "VoiceAssistantDetector",
    "combined_probe_plan",
    "default_detectors",
]
