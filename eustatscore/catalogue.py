"""Catalogue API functionality for browsing and searching datasets."""

import csv
import logging
from typing import Callable, Dict, List, Optional

from .exceptions import InvalidParameterError
from .http import RateLimitedFetcher
from .models import CatalogEntry, TableOfContents
from .utils import CACHE_TTL_SECONDS, DEFAULT_BASE_URL, SnapshotCache, raise_for_status, validate_language

logger = logging.getLogger(__name__)

EXACT_CODE_BONUS = 100


def _optional(value: str) -> Optional[str]:
    value = value.strip()
    return value or None


def parse_toc_txt(text: str) -> List[CatalogEntry]:
    """
    Parse the tab-separated table of contents.

    The first line is a header. Columns are title, code, type, last update,
    last structure change, data start, data end and values; only the first
    two are required. Titles are indented by hierarchy level and are
    stripped here.

    Each line is read as its own record, so an unbalanced quote can only
    spoil the line it appears on.
    """
    entries = []
    # Skip header row
    for line in text.splitlines()[1:]:
        if not line.strip():
            continue
        try:
            row = next(csv.reader([line], delimiter="\t", quotechar='"'), [])
        except csv.Error as e:
            logger.debug("Skipping malformed table of contents line: %s", e)
            continue
        if not any(cell.strip() for cell in row):
            continue
        if len(row) < 2:
            continue

        # Pad so optional trailing columns can be unpacked
        title, code, item_type, last_update, _, data_start, data_end, values = (row + [""] * 8)[:8]
        entries.append(CatalogEntry(
            code=code.strip(),
            title=title.strip(),
            type=item_type.strip(),
            last_update=_optional(last_update),
            data_start=_optional(data_start),
            data_end=_optional(data_end),
            values_count=_optional(values),
        ))
    return entries


def score_entry(entry: CatalogEntry, terms: List[str], query: str) -> int:
    """Count query terms found in title and code, with a bonus for an exact code match."""
    searchable = f"{entry.title} {entry.code}".lower()
    score = sum(1 for term in terms if term in searchable)
    if entry.code.lower() == query:
        score += EXACT_CODE_BONUS
    return score


class CatalogueAPI:
    """Handler for Eurostat Catalogue API operations."""

    def __init__(self, base_url: str = DEFAULT_BASE_URL,
                 fetcher: Optional[RateLimitedFetcher] = None,
                 cache_ttl_seconds: float = CACHE_TTL_SECONDS,
                 clock: Optional[Callable[[], float]] = None):
        self.base_url = base_url
        self.fetcher = fetcher or RateLimitedFetcher()
        self.cache_ttl_seconds = cache_ttl_seconds
        self._clock = clock
        self._toc_caches: Dict[str, SnapshotCache] = {}

    def _cache_for(self, language: str) -> SnapshotCache:
        cache = self._toc_caches.get(language)
        if cache is None:
            cache = self._toc_caches.setdefault(
                language, SnapshotCache(self.cache_ttl_seconds, self._clock))
        return cache

    def get_table_of_contents(self, language: str = "en", refresh: bool = False) -> TableOfContents:
        """
        Get the table of contents, downloading it when the cached copy is stale.

        Args:
            language: Language of the titles ('en', 'fr' or 'de')
            refresh: Whether to discard the cached snapshot first

        Returns:
            TableOfContents snapshot
        """
        lang = validate_language(language)
        cache = self._cache_for(lang)
        if refresh:
            cache.clear()
        return cache.get_or_load(lambda: self._fetch_toc(lang))

    def _fetch_toc(self, language: str) -> TableOfContents:
        url = f"{self.base_url}/catalogue/toc/txt"
        response = self.fetcher.get(url, params={"lang": language})
        raise_for_status(response, "Failed to fetch table of contents")

        entries = parse_toc_txt(response.text)
        logger.info("Table of contents loaded (%s): %d entries", language, len(entries))
        return TableOfContents(entries=tuple(entries), language=language)

    def search_datasets(self, query: str, language: str = "en", limit: int = 20) -> List[CatalogEntry]:
        """
        Search the table of contents by title and code.

        Each whitespace-separated term found in an entry's title or code adds
        one point; an entry whose code equals the whole query gets a large
        bonus. Entries without points are dropped and ties keep catalog order.

        Args:
            query: Free-text search query
            language: Catalog language ('en', 'fr' or 'de')
            limit: Maximum number of results to return

        Returns:
            Matching entries, best first
        """
        if limit < 1:
            raise InvalidParameterError(f"limit must be positive, got {limit}")

        toc = self.get_table_of_contents(language)
        lowered = query.strip().lower()
        terms = lowered.split()

        scored = []
        for entry in toc.entries:
            score = score_entry(entry, terms, lowered)
            if score > 0:
                scored.append((score, entry))

        # sorted() is stable, so equal scores keep catalog order
        scored = sorted(scored, key=lambda item: item[0], reverse=True)
        return [entry for _, entry in scored[:limit]]

    def get_dataset_info(self, dataset_code: str, language: str = "en") -> Optional[CatalogEntry]:
        """
        Get the catalog entry for a specific dataset.

        Args:
            dataset_code: The dataset code to look up (case-insensitive)
            language: Catalog language

        Returns:
            CatalogEntry if found, None otherwise
        """
        wanted = dataset_code.lower()
        for entry in self.get_table_of_contents(language).entries:
            if entry.code.lower() == wanted:
                return entry
        return None

    def clear_cache(self) -> None:
        """Drop the cached table of contents in every language."""
        for cache in self._toc_caches.values():
            cache.clear()
