"""Resolution of geographic names and codes against the Eurostat GEO codelist."""

import logging
import unicodedata
from typing import Callable, List, Optional

from .http import RateLimitedFetcher
from .models import GeoCode
from .sdmx import parse_structure_document
from .structure import SDMX_STRUCTURE_ACCEPT
from .utils import CACHE_TTL_SECONDS, DEFAULT_BASE_URL, SnapshotCache, raise_for_status

logger = logging.getLogger(__name__)

MAX_GEO_RESULTS = 20
AGGREGATE_PREFIXES = ("EU", "EA")


def derive_geo_level(code: str) -> str:
    """
    Derive the level of a GEO code from its shape.

    Two letters are a country and each further character is one NUTS level
    down (DE, DE2, DE21, DE212). Longer codes starting with EU or EA are
    aggregates such as EU27_2020.
    """
    levels = {2: "country", 3: "nuts1", 4: "nuts2", 5: "nuts3"}
    if len(code) in levels:
        return levels[len(code)]
    if code.startswith(AGGREGATE_PREFIXES):
        return "aggregate"
    return "other"


def strip_diacritics(text: str) -> str:
    """Lowercase ``text`` and remove combining marks ("Österreich" -> "osterreich")."""
    decomposed = unicodedata.normalize("NFD", text.lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def parse_geo_codelist(text: str) -> List[GeoCode]:
    """Extract every code of a GEO codelist document, in document order."""
    document = parse_structure_document(text)
    return [
        GeoCode(code=code, name=name, level=derive_geo_level(code))
        for codes in document.codelists.values()
        for code, name in codes
    ]


def matches(geo: GeoCode, query: str) -> bool:
    """Check a code against a query by code, name substring or accent-free name substring."""
    lowered = query.lower()
    return (
        geo.code.lower() == lowered
        or lowered in geo.name.lower()
        or strip_diacritics(query) in strip_diacritics(geo.name)
    )


class GeoResolver:
    """Resolve free-text geographic queries to Eurostat GEO codes."""

    def __init__(self, base_url: str = DEFAULT_BASE_URL,
                 fetcher: Optional[RateLimitedFetcher] = None,
                 cache_ttl_seconds: float = CACHE_TTL_SECONDS,
                 clock: Optional[Callable[[], float]] = None):
        self.base_url = base_url
        self.fetcher = fetcher or RateLimitedFetcher()
        self.cache = SnapshotCache(cache_ttl_seconds, clock)

    def get_codes(self, refresh: bool = False) -> List[GeoCode]:
        """
        Get the full GEO codelist, downloading it when the cached copy is stale.

        Args:
            refresh: Whether to discard the cached codelist first

        Returns:
            List of GeoCode in codelist order
        """
        if refresh:
            self.cache.clear()
        return list(self.cache.get_or_load(self._fetch_codes))

    def _fetch_codes(self):
        url = f"{self.base_url}/sdmx/2.1/codelist/ESTAT/GEO/latest"
        response = self.fetcher.get(url, params={"compressed": "false"},
                                    headers={"Accept": SDMX_STRUCTURE_ACCEPT})
        raise_for_status(response, "Failed to fetch GEO codelist")

        codes = tuple(parse_geo_codelist(response.text))
        logger.info("GEO codelist loaded: %d codes", len(codes))
        return codes

    def resolve(self, query: str, limit: int = MAX_GEO_RESULTS) -> List[GeoCode]:
        """
        Find GEO codes matching a name or code.

        Matching is case-insensitive and accent-insensitive, so "Osterreich"
        finds "Österreich". Results keep codelist order.

        Args:
            query: Country/region name or code
            limit: Maximum number of results

        Returns:
            Up to ``limit`` matching GeoCode objects (empty if nothing matches)
        """
        query = query.strip()
        if not query:
            return []
        results = [geo for geo in self.get_codes() if matches(geo, query)]
        return results[:limit]
