# Keyword Metrics Adapters
# Google Ads Keyword Planning and the deterministic fallback generator

from .google_ads_adapter import (
    GoogleAdsError,
    GoogleAdsKeywordAdapter,
    create_google_ads_adapter,
    geo_target_id_for,
    language_id_for,
    parse_keyword_ideas,
)
from .mock_metrics import generate as generate_mock_metrics, string_hash

__all__ = [
    "GoogleAdsKeywordAdapter",
    "GoogleAdsError",
    "create_google_ads_adapter",
    "geo_target_id_for",
    "language_id_for",
    "parse_keyword_ideas",
    "generate_mock_metrics",
    "string_hash",
]
