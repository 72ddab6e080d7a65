"""
Keyword planning configuration status.

Summarises whether keyword lookups will attempt real Google Ads data and
what an operator should change otherwise.
"""

from datetime import UTC, datetime
from typing import Any

from core.domain.keyword import DataSource
from infrastructure.config import Settings

STATUS_READY = "ready"
STATUS_MOCK_ONLY = "mock_only"
STATUS_MISSING_CREDENTIALS = "missing_credentials"

STANDARD_ACCESS_URL = "https://ads.google.com/aw/apicenter"


def get_keyword_planning_status(settings: Settings) -> dict[str, Any]:
    """Describe the keyword provider configuration without calling Google Ads."""
    has_credentials = settings.has_google_ads_credentials
    enabled = settings.gads_use_keyword_planning

    if not has_credentials:
        status = STATUS_MISSING_CREDENTIALS
        message = "Missing required Google Ads API credentials"
        expected_source = DataSource.DETERMINISTIC_MOCK.value
        recommendations = [
            "Set " + ", ".join(settings.missing_google_ads_credentials) + " in the environment",
            "Legacy GOOGLE_ADS_* variable names are accepted as well",
        ]
    elif not enabled:
        status = STATUS_MOCK_ONLY
        message = "GADS_USE_KEYWORD_PLANNING not enabled"
        expected_source = DataSource.DETERMINISTIC_MOCK.value
        recommendations = [
            "Set GADS_USE_KEYWORD_PLANNING=true in the environment",
            "Restart the service after changing environment variables",
        ]
    else:
        status = STATUS_READY
        message = "Configuration ready, but API access may be limited (Basic vs Standard access)"
        # Only known at request time; Basic access accounts get fallback data
        expected_source = DataSource.EXTERNAL_API.value
        recommendations = [
            "If results show fallback data, the developer token likely has Basic instead of Standard access",
            f"Apply for Standard API access at: {STANDARD_ACCESS_URL}",
        ]

    return {
        "status": status,
        "message": message,
        "timestamp": datetime.now(UTC).isoformat(),
        "configuration": {
            "has_all_credentials": has_credentials,
            "use_keyword_planning_enabled": enabled,
            "will_attempt_real_data": has_credentials and enabled,
            "customer_id_configured": bool(settings.gads_customer_id),
            "login_customer_id_configured": bool(settings.gads_login_customer_id),
            "api_version": settings.google_ads_api_version,
        },
        "expected_data_source": expected_source,
        "recommendations": recommendations,
    }
