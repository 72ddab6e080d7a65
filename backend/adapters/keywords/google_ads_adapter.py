"""
Google Ads Keyword Planning adapter for fetching keyword metrics.

Exchanges the stored OAuth refresh token for a short-lived access token and
calls the ``generateKeywordIdeas`` endpoint to retrieve average monthly
searches, competition, bid ranges and monthly trends for seed keywords.

Failures are never raised to the caller: ``fetch_metrics`` returns a
``ProviderResult`` whose ``error.kind`` tells the caller whether to ask the
user to re-authenticate (AUTH_EXPIRED) or to fall back (everything else).
"""

import asyncio
import calendar
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from core.domain.keyword import KeywordErrorKind, Locale, MonthlySearchVolume
from core.interfaces.services import KeywordIdea, KeywordMetricsProvider, ProviderResult
from infrastructure.config import Settings, get_settings

logger = logging.getLogger(__name__)


class GoogleAdsError(Exception):
    """Classified Google Ads / OAuth failure."""

    def __init__(self, message: str, kind: KeywordErrorKind, status_code: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code


# Google Ads language constants (languageConstants/<id>)
LANGUAGE_IDS: Dict[str, int] = {
    "en": 1000,
    "de": 1001,
    "fr": 1002,
    "es": 1003,
    "it": 1004,
    "nl": 1010,
    "pt": 1014,
    "no": 1015,
    "sv": 1017,
    "fi": 1018,
}

# Google Ads geo target constants (geoTargetConstants/<id>)
GEO_TARGET_IDS: Dict[str, int] = {
    "US": 2840,
    "GB": 2826,
    "CA": 2124,
    "AU": 2036,
    "DE": 2276,
    "FR": 2250,
    "ES": 2724,
    "IT": 2380,
    "NL": 2528,
    "SE": 2752,
    "NO": 2578,
    "DK": 2208,
    "FI": 2246,
}

DEFAULT_LANGUAGE_ID = LANGUAGE_IDS["en"]
DEFAULT_GEO_TARGET_ID = GEO_TARGET_IDS["US"]

# No geo targeting at all
WORLDWIDE = "WORLD"

_MONTHS = {name.upper(): index for index, name in enumerate(calendar.month_name) if name}


def language_id_for(language_code: str) -> int:
    """Map an ISO language code to a Google Ads language constant id, defaulting to English."""
    return LANGUAGE_IDS.get((language_code or "").strip().lower(), DEFAULT_LANGUAGE_ID)


def geo_target_id_for(country_code: str) -> Optional[int]:
    """Map an ISO country code to a geo target constant id, defaulting to the US.

    Returns None for worldwide requests.
    """
    code = (country_code or "").strip().upper()
    if code == WORLDWIDE:
        return None
    return GEO_TARGET_IDS.get(code, DEFAULT_GEO_TARGET_ID)


def _to_int(value: Any) -> Optional[int]:
    """Google's REST API encodes int64 fields as strings."""
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _parse_monthly_volumes(raw: Any) -> Optional[List[MonthlySearchVolume]]:
    if not isinstance(raw, list):
        return None

    points: List[MonthlySearchVolume] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        year = _to_int(item.get("year"))
        month = item.get("month")
        month_index = _MONTHS.get(month.upper()) if isinstance(month, str) else _to_int(month)
        if year is None or not month_index or not 1 <= month_index <= 12:
            continue
        points.append(
            MonthlySearchVolume(
                year=year,
                month_index=month_index,
                label=f"{calendar.month_abbr[month_index]} {year}",
                searches=_to_int(item.get("monthlySearches")) or 0,
            )
        )

    points.sort(key=lambda p: (p.year, p.month_index))
    return points


def parse_keyword_ideas(payload: Dict[str, Any]) -> List[KeywordIdea]:
    """Normalize a generateKeywordIdeas response body into KeywordIdea objects."""
    results = payload.get("results")
    if not isinstance(results, list):
        return []

    ideas: List[KeywordIdea] = []
    for result in results:
        if not isinstance(result, dict):
            continue
        text = (result.get("text") or "").strip()
        if not text:
            continue
        metrics = result.get("keywordIdeaMetrics") or {}
        competition_index = _to_int(metrics.get("competitionIndex"))
        if competition_index is not None:
            competition_index = max(0, min(100, competition_index))
        ideas.append(
            KeywordIdea(
                text=text,
                avg_monthly_searches=max(0, _to_int(metrics.get("avgMonthlySearches")) or 0),
                competition_index=competition_index,
                low_top_page_bid_micros=_to_int(metrics.get("lowTopOfPageBidMicros")),
                high_top_page_bid_micros=_to_int(metrics.get("highTopOfPageBidMicros")),
                avg_cpc_micros=_to_int(metrics.get("averageCpcMicros") or metrics.get("avgCpcMicros")),
                monthly_search_volumes=_parse_monthly_volumes(metrics.get("monthlySearchVolumes")),
            )
        )
    return ideas


def _error_detail(response: httpx.Response) -> str:
    """Pull the most useful message out of an OAuth or Google API error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if body.get("error_description"):
            return str(body["error_description"])
        if isinstance(error, str):
            return error
        if body.get("message"):
            return str(body["message"])
    return response.text[:200]


class GoogleAdsKeywordAdapter(KeywordMetricsProvider):
    """
    Google Ads Keyword Planning client.

    Seeds beyond ``seed_limit`` are split into several ``generateKeywordIdeas``
    calls that run concurrently under one access token.
    """

    OAUTH_TOKEN_URL = "https://oauth2.googleapis.com/token"
    API_BASE_URL = "https://googleads.googleapis.com"

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        developer_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
        customer_id: Optional[str] = None,
        login_customer_id: Optional[str] = None,
        api_version: str = "v20",
        seed_limit: int = 20,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the Google Ads adapter.

        Args:
            client_id: OAuth client ID
            client_secret: OAuth client secret
            developer_token: Google Ads developer token
            refresh_token: Long-lived OAuth refresh token
            customer_id: Account the ideas are requested for (defaults to login_customer_id)
            login_customer_id: Manager account used for the login-customer-id header
            api_version: Google Ads REST API version
            seed_limit: Maximum seed keywords per generateKeywordIdeas call
            http_client: Optional shared client (not closed by the adapter)
        """
        if seed_limit < 1:
            raise ValueError("seed_limit must be at least 1")

        self.client_id = client_id
        self.client_secret = client_secret
        self.developer_token = developer_token
        self.refresh_token = refresh_token
        self.customer_id = customer_id or login_customer_id
        self.login_customer_id = login_customer_id
        self.api_version = api_version
        self.seed_limit = seed_limit
        self._http_client = http_client

        if not self.is_configured:
            logger.warning(
                "Google Ads credentials not fully configured. "
                "Set GADS_CLIENT_ID, GADS_CLIENT_SECRET, GADS_DEVELOPER_TOKEN, "
                "GADS_REFRESH_TOKEN and GADS_LOGIN_CUSTOMER_ID."
            )

    @property
    def is_configured(self) -> bool:
        return all(
            [
                self.client_id,
                self.client_secret,
                self.developer_token,
                self.refresh_token,
                self.customer_id,
                self.login_customer_id,
            ]
        )

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient() as client:
            yield client

    def chunk_seeds(self, keywords: List[str]) -> List[List[str]]:
        """Split keywords into consecutive chunks of at most seed_limit."""
        return [keywords[i:i + self.seed_limit] for i in range(0, len(keywords), self.seed_limit)]

    def build_request_body(self, seeds: List[str], locale: Locale) -> Dict[str, Any]:
        """Build the generateKeywordIdeas JSON body for one chunk of seeds."""
        body: Dict[str, Any] = {
            "language": f"languageConstants/{language_id_for(locale.language_code)}",
            "includeAdultKeywords": False,
            "keywordPlanNetwork": "GOOGLE_SEARCH",
            "keywordSeed": {"keywords": list(seeds)},
            "historicalMetricsOptions": {"includeAverageCpc": True},
        }
        geo_id = geo_target_id_for(locale.country_code)
        if geo_id is not None:
            body["geoTargetConstants"] = [f"geoTargetConstants/{geo_id}"]
        return body

    async def get_access_token(self, client: httpx.AsyncClient) -> str:
        """
        Exchange the refresh token for an access token.

        Raises:
            GoogleAdsError: AUTH_EXPIRED when Google rejects the credential,
                TRANSIENT_NETWORK on transport failures or 5xx.
        """
        refresh_data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "refresh_token": self.refresh_token,
            "grant_type": "refresh_token",
        }

        try:
            response = await client.post(self.OAUTH_TOKEN_URL, data=refresh_data)
        except httpx.RequestError as e:
            raise GoogleAdsError(
                f"Token endpoint unreachable: {e}", KeywordErrorKind.TRANSIENT_NETWORK
            ) from e

        if response.status_code >= 500:
            raise GoogleAdsError(
                f"Token endpoint error ({response.status_code}): {_error_detail(response)}",
                KeywordErrorKind.TRANSIENT_NETWORK,
                response.status_code,
            )
        if response.status_code >= 400:
            raise GoogleAdsError(
                f"Failed to authenticate with Google Ads API: {_error_detail(response)}",
                KeywordErrorKind.AUTH_EXPIRED,
                response.status_code,
            )

        try:
            access_token = response.json()["access_token"]
        except (ValueError, KeyError, TypeError) as e:
            raise GoogleAdsError(
                "Invalid token response: missing access_token", KeywordErrorKind.TRANSIENT_NETWORK
            ) from e

        return access_token

    async def generate_keyword_ideas(
        self,
        client: httpx.AsyncClient,
        access_token: str,
        seeds: List[str],
        locale: Locale,
    ) -> List[KeywordIdea]:
        """
        Call generateKeywordIdeas for one chunk of at most seed_limit seeds.

        Raises:
            GoogleAdsError: AUTH_EXPIRED on 401, TRANSIENT_NETWORK otherwise.
        """
        if len(seeds) > self.seed_limit:
            raise ValueError(f"At most {self.seed_limit} seed keywords per call, got {len(seeds)}")

        url = f"{self.API_BASE_URL}/{self.api_version}/customers/{self.customer_id}:generateKeywordIdeas"
        headers = {
            "developer-token": self.developer_token,
            "login-customer-id": self.login_customer_id,
            "Authorization": f"Bearer {access_token}",
        }

        try:
            response = await client.post(url, json=self.build_request_body(seeds, locale), headers=headers)
        except httpx.RequestError as e:
            raise GoogleAdsError(
                f"Google Ads API unreachable: {e}", KeywordErrorKind.TRANSIENT_NETWORK
            ) from e

        if response.status_code == 401:
            raise GoogleAdsError(
                f"Google Ads API rejected the access token: {_error_detail(response)}",
                KeywordErrorKind.AUTH_EXPIRED,
                response.status_code,
            )
        if response.status_code >= 400:
            # 403 usually means Basic instead of Standard API access; still worth a later retry
            raise GoogleAdsError(
                f"Google Ads API error ({response.status_code}): {_error_detail(response)}",
                KeywordErrorKind.TRANSIENT_NETWORK,
                response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise GoogleAdsError(
                "Google Ads API returned invalid JSON", KeywordErrorKind.TRANSIENT_NETWORK
            ) from e

        return parse_keyword_ideas(payload if isinstance(payload, dict) else {})

    async def fetch_metrics(self, keywords: List[str], locale: Locale, timeout: float) -> ProviderResult:
        """
        Fetch keyword ideas for all keywords, bounded by *timeout* seconds overall.

        Returns:
            ProviderResult with ideas, or with an error when nothing usable came back
        """
        if not self.is_configured:
            return ProviderResult.failure(
                KeywordErrorKind.MISCONFIGURED, "Google Ads API credentials are not configured"
            )
        if not keywords:
            return ProviderResult()

        chunks = self.chunk_seeds(keywords)

        try:
            async with asyncio.timeout(timeout):
                async with self._client() as client:
                    access_token = await self.get_access_token(client)
                    outcomes = await asyncio.gather(
                        *(self.generate_keyword_ideas(client, access_token, chunk, locale) for chunk in chunks),
                        return_exceptions=True,
                    )
        except TimeoutError:
            logger.warning("Google Ads request timed out after %.1fs (%s)", timeout, locale)
            return ProviderResult.failure(
                KeywordErrorKind.TRANSIENT_NETWORK, f"Google Ads request timed out after {timeout:g}s"
            )
        except GoogleAdsError as e:
            logger.warning("Google Ads token exchange failed (%s): %s", e.kind, e)
            return ProviderResult.failure(e.kind, str(e), e.status_code)

        ideas: List[KeywordIdea] = []
        failed_seeds: List[str] = []
        errors: List[GoogleAdsError] = []
        for chunk, outcome in zip(chunks, outcomes):
            if isinstance(outcome, GoogleAdsError):
                logger.warning(
                    "Google Ads ideas call failed for %d seeds (%s): %s", len(chunk), outcome.kind, outcome
                )
                errors.append(outcome)
                failed_seeds.extend(chunk)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                ideas.extend(outcome)

        if errors and len(errors) == len(chunks):
            # Re-authentication beats "try later" when deciding what to report
            worst = next((e for e in errors if e.kind == KeywordErrorKind.AUTH_EXPIRED), errors[0])
            return ProviderResult.failure(worst.kind, str(worst), worst.status_code, calls=len(chunks))

        if not ideas:
            return ProviderResult.failure(
                KeywordErrorKind.PROVIDER_EMPTY,
                "Google Ads API returned no keyword ideas",
                calls=len(chunks),
            )

        logger.info(
            "Google Ads returned %d ideas for %d seeds in %d call(s)",
            len(ideas), len(keywords), len(chunks),
        )
        return ProviderResult(ideas=ideas, calls=len(chunks), failed_seeds=failed_seeds)


def create_google_ads_adapter(
    settings: Optional[Settings] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> GoogleAdsKeywordAdapter:
    """
    Factory function to create a Google Ads adapter from settings.

    Args:
        settings: Settings to read credentials from (defaults to get_settings())
        http_client: Optional shared HTTP client

    Returns:
        Configured GoogleAdsKeywordAdapter instance
    """
    settings = settings or get_settings()
    return GoogleAdsKeywordAdapter(
        client_id=settings.gads_client_id,
        client_secret=settings.gads_client_secret,
        developer_token=settings.gads_developer_token,
        refresh_token=settings.gads_refresh_token,
        customer_id=settings.gads_customer_id,
        login_customer_id=settings.gads_login_customer_id,
        api_version=settings.google_ads_api_version,
        seed_limit=settings.keyword_seed_limit,
        http_client=http_client,
    )
