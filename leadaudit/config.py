"""
Lead Audit — Configuration via environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All settings read from env / .env file."""

    # Renderer
    render_timeout_ms: int = Field(
        default=60000, description="Total budget for navigation + settle wait"
    )
    settle_delay_ms: int = Field(
        default=5000, description="Post-load wait for chat widgets and trackers"
    )
    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        ),
    )
    viewport_width: int = Field(default=1920)
    viewport_height: int = Field(default=1080)

    # Detectors
    per_detector_timeout_ms: int = Field(
        default=5000, description="Budget for one detector before it counts as failed"
    )

    # Vision scoring (optional — graceful no-op without key)
    enable_vision_scoring: bool = Field(default=False)
    gemini_api_key: str = Field(default="", description="Google AI Studio key for Gemini")
    gemini_model: str = Field(default="gemini-1.5-flash")
    gemini_api_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta/models",
        description="Base URL; model and :generateContent are appended",
    )
    vision_timeout_secs: int = Field(default=30)

    # PageSpeed Insights (optional)
    enable_pagespeed: bool = Field(default=False)
    pagespeed_api_key: str = Field(default="")
    pagespeed_api_url: str = Field(
        default="https://www.googleapis.com/pagespeedonline/v5/runPagespeed",
    )
    pagespeed_timeout_secs: int = Field(default=60)

    # Contact email MX lookup (optional)
    enable_mx_check: bool = Field(default=False)
    mx_timeout_secs: int = Field(default=5)

    # Pricing catalog / AI vendor whitelist
    pricing_catalog_path: str = Field(
        default="", description="JSON catalog file; blank uses the bundled default"
    )

    # Audit store
    database_url: str = Field(
        default="sqlite+aiosqlite:///./leadaudit.db",
        description="Async SQLAlchemy DB URL",
    )

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
