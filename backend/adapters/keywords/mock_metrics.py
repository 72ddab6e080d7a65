"""
Deterministic synthetic keyword metrics.

Used whenever real provider data is unavailable.  The same
keyword + locale always produces the same volume and competition, so mock
mode never flickers between calls and tests can pin exact values.
"""

from core.domain.keyword import Competition, DataSource, KeywordMetrics, Provenance

MIN_VOLUME = 1000
VOLUME_SPAN = 90000  # volumes fall in [1000, 90999]

_COMPETITION_LEVELS = (Competition.LOW, Competition.MEDIUM, Competition.HIGH)

DISABLED_REASON = (
    "GADS_USE_KEYWORD_PLANNING not enabled. Set to \"true\" in environment for real data."
)
FALLBACK_REASON = (
    "Google Ads API failed or returned no data. Likely due to API access level "
    "(Basic vs Standard) or account permissions."
)


def string_hash(text: str) -> int:
    """
    32-bit signed ``h = h * 31 + c`` over UTF-16 code units, seeded at 0.

    Matches Java's ``String.hashCode`` and the JavaScript ``(h * 31 + c) | 0``
    idiom, including surrogate pairs for characters outside the BMP.
    """
    data = text.encode("utf-16-le")
    h = 0
    for i in range(0, len(data), 2):
        h = (h * 31 + (data[i] | (data[i + 1] << 8))) & 0xFFFFFFFF
    return h - 0x100000000 if h & 0x80000000 else h


def synthetic_values(keyword: str, country_code: str, language_code: str) -> tuple[int, Competition]:
    """Return the (search_volume, competition) pair for a keyword in a locale."""
    magnitude = abs(string_hash(f"{keyword}|{country_code}|{language_code}"))
    return (magnitude % VOLUME_SPAN) + MIN_VOLUME, _COMPETITION_LEVELS[magnitude % 3]


def generate(
    keyword: str,
    country_code: str,
    language_code: str,
    source: DataSource = DataSource.DETERMINISTIC_MOCK,
    reason: str | None = None,
) -> KeywordMetrics:
    """Build a synthetic KeywordMetrics record. Pure; performs no I/O."""
    if source == DataSource.EXTERNAL_API:
        raise ValueError("Synthetic metrics cannot claim provider provenance")

    volume, competition = synthetic_values(keyword, country_code, language_code)
    if reason is None:
        reason = DISABLED_REASON if source == DataSource.DETERMINISTIC_MOCK else FALLBACK_REASON

    return KeywordMetrics(
        keyword=keyword,
        country_code=country_code,
        language_code=language_code,
        search_volume=volume,
        competition=competition,
        provenance=Provenance(source=source, cached=False, reason=reason),
    )
