"""Main client class for the eustatscore package."""

from typing import Callable, List, Optional

import pandas as pd

from .catalogue import CatalogueAPI
from .geo import GeoResolver
from .http import MIN_REQUEST_INTERVAL, USER_AGENT, RateLimitedFetcher, RateLimiter
from .models import CatalogEntry, DataCube, DatasetStructure, GeoCode, TableOfContents
from .statistics import Filters, StatisticsAPI
from .structure import StructureAPI
from .utils import CACHE_TTL_SECONDS, DEFAULT_BASE_URL


class EurostatClient:
    """
    Main client for accessing Eurostat APIs.

    All API handlers share one rate-limited fetcher, so every outbound request
    made through a client respects the same minimum spacing.
    """

    def __init__(self,
                 base_url: str = DEFAULT_BASE_URL,
                 min_request_interval: float = MIN_REQUEST_INTERVAL,
                 cache_ttl_seconds: float = CACHE_TTL_SECONDS,
                 timeout: Optional[float] = None,
                 user_agent: str = USER_AGENT,
                 fetcher: Optional[RateLimitedFetcher] = None,
                 clock: Optional[Callable[[], float]] = None):
        """
        Initialize the Eurostat client.

        Args:
            base_url: Base URL for Eurostat APIs
            min_request_interval: Minimum seconds between two outbound requests
            cache_ttl_seconds: Lifetime of the cached catalog and GEO codelist
            timeout: Socket timeout for each request (None waits indefinitely)
            user_agent: User-Agent header sent with every request
            fetcher: Pre-built fetcher to share (overrides the three options above)
            clock: Time source for cache expiry (defaults to time.monotonic)
        """
        self.base_url = base_url
        self.fetcher = fetcher or RateLimitedFetcher(
            rate_limiter=RateLimiter(min_request_interval),
            user_agent=user_agent,
            timeout=timeout,
        )

        # Initialize API handlers
        self.catalogue = CatalogueAPI(base_url, self.fetcher, cache_ttl_seconds, clock)
        self.structure = StructureAPI(base_url, self.fetcher)
        self.statistics = StatisticsAPI(base_url, self.fetcher)
        self.geo = GeoResolver(base_url, self.fetcher, cache_ttl_seconds, clock)

    def get_table_of_contents(self, language: str = "en", refresh: bool = False) -> TableOfContents:
        """Get the (cached) table of contents."""
        return self.catalogue.get_table_of_contents(language, refresh)

    def search_datasets(self, query: str, language: str = "en", limit: int = 20) -> List[CatalogEntry]:
        """
        Search for datasets by title or code.

        Examples:
            # Search for GDP datasets
            results = client.search_datasets("GDP")

            # An exact code match always ranks first
            results = client.search_datasets("nama_10_gdp", limit=5)
        """
        return self.catalogue.search_datasets(query, language, limit)

    def get_dataset_info(self, dataset_code: str, language: str = "en") -> Optional[CatalogEntry]:
        """Get the catalog entry for a dataset, or None if it is not listed."""
        return self.catalogue.get_dataset_info(dataset_code, language)

    def get_dataset_structure(self, dataset_code: str) -> DatasetStructure:
        """Get the dimensions of a dataset and the codes each accepts."""
        return self.structure.get_structure(dataset_code)

    def get_dataset_data(self, dataset_code: str, filters: Optional[Filters] = None,
                         language: str = "EN") -> DataCube:
        """
        Get data from a dataset.

        Common filter keys:
            geo: Geographic area(s), e.g. 'FR' or ['FR', 'DE']
            time: Time period(s), e.g. '2020' or ['2020', '2021']
            sinceTimePeriod / untilTimePeriod: Time range bounds
            lastTimePeriod: Number of latest periods to include
            geoLevel: aggregate, country, nuts1, nuts2, nuts3 or city

        Any other key is treated as a dimension code (unit, na_item, sex, ...).

        Examples:
            cube = client.get_dataset_data(
                'nama_10_gdp',
                {'geo': ['FR', 'DE'], 'unit': 'CP_MEUR', 'na_item': 'B1GQ', 'sinceTimePeriod': '2018'}
            )
            print(cube.formatted_table)
        """
        return self.statistics.get_data(dataset_code, filters, language)

    def get_data_as_dataframe(self, dataset_code: str, filters: Optional[Filters] = None,
                              language: str = "EN") -> pd.DataFrame:
        """Get data from a dataset as a pandas DataFrame."""
        return self.statistics.get_data_as_dataframe(dataset_code, filters, language)

    def preview_data(self, dataset_code: str, language: str = "EN") -> DataCube:
        """Get the most recent time period of a dataset."""
        return self.statistics.preview_data(dataset_code, language)

    def get_dataset_url(self, dataset_code: str, filters: Optional[Filters] = None,
                        language: str = "EN") -> str:
        """Build a TSV download link for a dataset query without fetching it."""
        return self.statistics.get_dataset_url(dataset_code, filters, language)

    def resolve_geo_code(self, query: str) -> List[GeoCode]:
        """Resolve a geographic name or code to at most 20 Eurostat GEO codes."""
        return self.geo.resolve(query)

    def clear_cache(self) -> None:
        """Drop the cached catalog snapshots and GEO codelist."""
        self.catalogue.clear_cache()
        self.geo.cache.clear()
