"""
Detector verdict envelope and the typed payload of every detector.

Each payload declares its own zero value through ``absent()``; the aggregator
and the degraded path use nothing else as a fallback.
"""

from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

UNMANAGED_SENTINEL = "Unmanaged/Custom"


class VerdictStatus(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"
    FAILED = "failed"


class _Payload(BaseModel):
    model_config = {"frozen": True}

    @classmethod
    def absent(cls):
        return cls()


class TechStackPayload(_Payload):
    frameworks: tuple[str, ...] = ()
    cms: tuple[str, ...] = ()
    css_frameworks: tuple[str, ...] = ()
    libraries: tuple[str, ...] = ()

    @classmethod
    def absent(cls) -> "TechStackPayload":
        return cls(frameworks=(UNMANAGED_SENTINEL,))

    @property
    def is_unmanaged(self) -> bool:
        return not (self.cms or self.css_frameworks or self.libraries) and (
            not self.frameworks or self.frameworks == (UNMANAGED_SENTINEL,)
        )

    @property
    def modern_frameworks(self) -> tuple[str, ...]:
        return tuple(f for f in self.frameworks if f != UNMANAGED_SENTINEL)


class ChatbotPayload(_Payload):
    detected: bool = False
    providers: tuple[str, ...] = ()
    channels: tuple[str, ...] = ()
    network_endpoints: tuple[str, ...] = ()
    visual_selectors: tuple[str, ...] = ()


class SocialBotPayload(_Payload):
    detected: bool = False
    providers: tuple[str, ...] = ()
    is_automated: bool = False


class VoiceAssistantPayload(_Payload):
    detected: bool = False
    providers: tuple[str, ...] = ()


class SeoPayload(_Payload):
    score: int = Field(default=0, ge=0, le=100)
    has_title: bool = False
    has_meta_description: bool = False
    has_og_pair: bool = False
    has_viewport: bool = False
    has_canonical: bool = False
    # Reported, not scored
    has_structured_data: bool = False
    has_sitemap_link: bool = False
    h1_count: int = 0
    images_total: int = 0
    images_missing_alt: int = 0
    title_length: int = 0
    meta_description_length: int = 0
    issues: tuple[str, ...] = ()


class DesignPayload(_Payload):
    has_viewport_meta: bool = False
    has_media_queries: bool = False
    css_frameworks: tuple[str, ...] = ()
    has_responsive_design: bool = False
    has_modern_layout: bool = False
    has_custom_fonts: bool = False
    has_animations: bool = False
    has_lazy_loading: bool = False
    design_quality: str = "poor"
    era: str = "unknown"
    modernity_score: int = Field(default=0, ge=0, le=100)
    sins: tuple[str, ...] = ()


class StructurePayload(_Payload):
    has_header: bool = False
    has_footer: bool = False
    has_navigation: bool = False
    has_hero: bool = False
    has_cta: bool = False
    has_manifest: bool = False
    registers_service_worker: bool = False
    section_count: int = 0
    layout_type: str = "single-page"

    @property
    def is_pwa(self) -> bool:
        return self.has_manifest and self.registers_service_worker


PayloadT = TypeVar("PayloadT", bound=_Payload)


class DetectorVerdict(BaseModel, Generic[PayloadT]):
    detector_name: str
    status: VerdictStatus
    payload: PayloadT
    error: str | None = None
    elapsed_ms: float = 0.0

    model_config = {"frozen": True}
