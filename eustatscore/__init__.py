"""
eustatscore - Eurostat open data access and decoding

This package searches the Eurostat table of contents, describes dataset
dimensions from SDMX structure documents, decodes JSON-stat data into dense
labeled tables and resolves geographic names to GEO codes. All outbound
requests go through one rate-limited fetcher.
"""

__version__ = "0.1.0"

from .client import EurostatClient
from .exceptions import DataParsingError, DatasetNotFoundError, EurostatAPIError, InvalidParameterError
from .models import (
    CatalogEntry,
    Code,
    CubeDimension,
    DataCube,
    DatasetStructure,
    Dimension,
    GeoCode,
    TableOfContents,
)

__all__ = [
    "EurostatClient",
    "CatalogEntry",
    "Code",
    "CubeDimension",
    "DataCube",
    "DatasetStructure",
    "Dimension",
    "GeoCode",
    "TableOfContents",
    "EurostatAPIError",
    "DatasetNotFoundError",
    "InvalidParameterError",
    "DataParsingError",
]
