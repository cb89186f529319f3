"""Structure API functionality for describing dataset dimensions."""

import logging
from typing import Optional

from .http import RateLimitedFetcher
from .models import Code, DatasetStructure, Dimension
from .sdmx import StructureDocument, parse_structure_document
from .utils import DEFAULT_BASE_URL, raise_for_status

logger = logging.getLogger(__name__)

SDMX_STRUCTURE_ACCEPT = "application/vnd.sdmx.structure+xml;version=2.1"
MAX_STRUCTURE_CODES = 200
TIME_PERIOD_HINT = Code(
    id="hint",
    label=("Use sinceTimePeriod/untilTimePeriod, lastTimePeriod=N "
           "or specific periods like 2020, 2021"),
)


class StructureAPI:
    """Handler for SDMX dataflow structure queries."""

    def __init__(self, base_url: str = DEFAULT_BASE_URL,
                 fetcher: Optional[RateLimitedFetcher] = None,
                 max_codes: int = MAX_STRUCTURE_CODES):
        self.base_url = base_url
        self.fetcher = fetcher or RateLimitedFetcher()
        self.max_codes = max_codes

    def get_structure(self, dataset_code: str) -> DatasetStructure:
        """
        Get the dimensions and their codes for a dataset.

        The dataflow is requested with its descendants so that the data
        structure definition, concepts and codelists arrive in one document.
        Nothing is cached; every call is a live request.

        Args:
            dataset_code: The dataset code (case-insensitive)

        Returns:
            DatasetStructure with codelist-backed dimensions in declaration
            order, followed by the time dimension when one is declared
        """
        code = dataset_code.upper()
        url = f"{self.base_url}/sdmx/2.1/dataflow/ESTAT/{code}/1.0"
        params = {
            "references": "descendants",
            "detail": "referencepartial",
            "compressed": "false",
        }

        response = self.fetcher.get(url, params=params,
                                    headers={"Accept": SDMX_STRUCTURE_ACCEPT})
        raise_for_status(response, f"Failed to fetch dataset structure for {dataset_code}")

        document = parse_structure_document(response.text)
        structure = self._build_structure(code, document)
        logger.debug("Structure for %s: %d dimensions", code, len(structure.dimensions))
        return structure

    def _build_structure(self, dataset_code: str, document: StructureDocument) -> DatasetStructure:
        title = document.dataflow_title or document.title or dataset_code

        dimensions = []
        for dim_id, codelist_id in document.dimension_codelists.items():
            # Dimensions whose codelist is not in the document are skipped.
            if codelist_id not in document.codelists:
                continue
            codes = [Code(id=code_id, label=label)
                     for code_id, label in document.codelists[codelist_id]]
            dimensions.append(Dimension(
                id=dim_id,
                name=document.concept_name(dim_id) or dim_id,
                codes=codes[:self.max_codes],
            ))

        if document.time_dimension:
            dimensions.append(Dimension(
                id=document.time_dimension,
                name="Time period",
                codes=[TIME_PERIOD_HINT],
                is_time=True,
            ))

        return DatasetStructure(dataset_code=dataset_code, title=title, dimensions=dimensions)
