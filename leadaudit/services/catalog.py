"""
Pricing catalog — the single label → USD price table plus the AI-chat vendor
whitelist. Loaded once per process from JSON; never hardcoded in rule code.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Iterable

from pydantic import BaseModel, Field, ValidationError, field_validator

from leadaudit.config import settings
from leadaudit.errors import CatalogError

logger = logging.getLogger("leadaudit.catalog")

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent.parent / "data" / "default_catalog.json"


class PricingCatalog(BaseModel):
    currency: str = "USD"
    prices: dict[str, int] = Field(default_factory=dict)
    ai_chat_vendors: tuple[str, ...] = ()

    model_config = {"frozen": True}

    @field_validator("prices")
    @classmethod
    def _non_negative(cls, v: dict[str, int]) -> dict[str, int]:
        for label, price in v.items():
            if price < 0:
                raise ValueError(f"price for {label!r} is negative")
        return v

    def price_of(self, label: str) -> int:
        try:
            return self.prices[label]
        except KeyError:
            raise CatalogError(f"no price for opportunity {label!r}") from None

    def is_ai_vendor(self, provider: str) -> bool:
        key = provider.strip().casefold()
        return any(v.casefold() == key for v in self.ai_chat_vendors)

    def require(self, labels: Iterable[str]) -> "PricingCatalog":
        """Raise CatalogError unless every label has a price."""
        missing = sorted(set(labels) - set(self.prices))
        if missing:
            raise CatalogError(f"catalog is missing prices for: {', '.join(missing)}")
        return self


def load_catalog(path: str | Path | None = None) -> PricingCatalog:
    source = Path(path) if path else DEFAULT_CATALOG_PATH
    try:
        raw = json.loads(source.read_text(encoding="utf-8"))
    except OSError as e:
        raise CatalogError(f"cannot read catalog {source}: {e}") from e
    except json.JSONDecodeError as e:
        raise CatalogError(f"catalog {source} is not valid JSON: {e}") from e

    try:
        catalog = PricingCatalog.model_validate(raw)
    except ValidationError as e:
        raise CatalogError(f"catalog {source} is malformed: {e}") from e

    logger.info(
        "Loaded pricing catalog %s (%d prices, %d AI vendors)",
        source.name, len(catalog.prices), len(catalog.ai_chat_vendors),
    )
    return catalog


@lru_cache(maxsize=1)
def get_catalog() -> PricingCatalog:
    """Process-wide catalog, checked against every label the rule table can emit."""
    from leadaudit.services.opportunity_engine import OPPORTUNITY_LABELS

    return load_catalog(settings.pricing_catalog_path or None).require(OPPORTUNITY_LABELS)
