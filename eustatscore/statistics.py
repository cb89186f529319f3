"""Statistics API functionality for retrieving actual data."""

import itertools
import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .exceptions import DataParsingError, EurostatAPIError, InvalidParameterError
from .http import RateLimitedFetcher, build_url
from .models import Code, CubeDimension, DataCube
from .utils import DEFAULT_BASE_URL, handle_api_errors, validate_geo_level, validate_language

logger = logging.getLogger(__name__)

FilterValue = Union[str, int, Sequence[Union[str, int]]]
Filters = Mapping[str, FilterValue]

TIME_PARAMS = ("time", "sinceTimePeriod", "untilTimePeriod", "lastTimePeriod")
RESERVED_PARAMS = {"format", "lang"}


def _as_list(value: FilterValue) -> List[str]:
    if isinstance(value, (list, tuple, set, frozenset)):
        return [str(v) for v in value]
    return [str(value)]


def build_params(filters: Optional[Filters] = None,
                 language: str = "EN",
                 output_format: str = "JSON") -> List[Tuple[str, str]]:
    """
    Build query parameters for a data request.

    Returns a list of tuples so a dimension can be repeated once per value,
    e.g. ``geo=['SE11', 'DK01']`` becomes ``[('geo', 'SE11'), ('geo', 'DK01')]``.
    Keys that are not known parameters are passed through untouched.
    """
    filters = filters or {}
    params = [("format", output_format), ("lang", validate_language(language).upper())]

    if "geoLevel" in filters:
        for level in _as_list(filters["geoLevel"]):
            validate_geo_level(level)

    # Only sinceTimePeriod and untilTimePeriod may be combined
    time_found = [param for param in TIME_PARAMS if param in filters]
    if len(time_found) > 1 and set(time_found) != {"sinceTimePeriod", "untilTimePeriod"}:
        raise InvalidParameterError(
            "Only one time parameter allowed, except sinceTimePeriod and untilTimePeriod "
            f"can be used together. Found: {time_found}"
        )

    for key, value in filters.items():
        if key in RESERVED_PARAMS:
            continue
        for v in _as_list(value):
            params.append((key, v))

    return params


def _categories(dim_info: Mapping[str, Any], size: int) -> List[Code]:
    category = dim_info.get("category") or {}
    index_map = category.get("index") or {}
    label_map = category.get("label") or {}

    if isinstance(index_map, list):
        codes = [str(code) for code in index_map]
    elif index_map:
        # The index map is keyed by code; its values give the positions
        codes = [code for code, _ in sorted(index_map.items(), key=lambda item: int(item[1]))]
    else:
        codes = list(label_map) or [str(j) for j in range(size)]

    return [Code(id=code, label=str(label_map.get(code) or code)) for code in codes]


def _densify(raw: Any, total: int) -> Dict[int, Any]:
    """Map a sparse JSON-stat value/status container to {position: item}."""
    if isinstance(raw, list):
        items = enumerate(raw)
    elif isinstance(raw, dict):
        items = raw.items()
    else:
        return {}

    cells = {}
    for key, item in items:
        try:
            position = int(key)
        except (TypeError, ValueError):
            continue
        if 0 <= position < total and item is not None:
            cells[position] = item
    return cells


def decode_jsonstat(json_data: Mapping[str, Any], dataset_code: str = "") -> DataCube:
    """
    Decode a JSON-stat 2.0 dataset into a dense :class:`DataCube`.

    Every addressable cell gets a slot in ``values``; cells the source omits
    stay None (a data gap, not zero).

    Args:
        json_data: Parsed JSON-stat response
        dataset_code: Code used as the title when the response has no label

    Returns:
        DataCube
    """
    if not isinstance(json_data, Mapping):
        raise DataParsingError("JSON-stat response is not an object")

    dimension_ids = list(json_data.get("id") or [])
    try:
        sizes = [int(size) for size in json_data.get("size") or []]
    except (TypeError, ValueError) as e:
        raise DataParsingError(f"Invalid dimension sizes in JSON-stat response: {e}")
    if len(dimension_ids) != len(sizes):
        raise DataParsingError(
            f"JSON-stat response lists {len(dimension_ids)} dimensions but {len(sizes)} sizes"
        )

    dimension_data = json_data.get("dimension") or {}
    dimensions = []
    for dim_id, size in zip(dimension_ids, sizes):
        dim_info = dimension_data.get(dim_id) or {}
        dimensions.append(CubeDimension(
            id=dim_id,
            label=dim_info.get("label") or dim_id,
            categories=_categories(dim_info, size),
        ))

    total = math.prod(sizes)
    cells = _densify(json_data.get("value"), total)
    values = [cells.get(position) for position in range(total)]
    status = {position: str(flag) for position, flag in _densify(json_data.get("status"), total).items()}

    return DataCube(
        dataset_code=dataset_code,
        title=json_data.get("label") or dataset_code,
        source=json_data.get("source") or "Eurostat",
        updated=json_data.get("updated") or "",
        dimensions=dimensions,
        sizes=sizes,
        values=values,
        status=status,
    )


def cube_to_dataframe(cube: DataCube) -> pd.DataFrame:
    """
    Convert a DataCube to a pandas DataFrame with one row per cell.

    Dimension codes become columns (plus a ``<dim>_label`` column each),
    followed by ``value`` (NaN for gaps) and ``status`` when flags exist.
    """
    if not cube.dimensions:
        return pd.DataFrame(columns=["value"])

    dimension_ids = [dim.id for dim in cube.dimensions]
    dimension_codes = []
    for dim, size in zip(cube.dimensions, cube.sizes):
        codes = [category.id for category in dim.categories[:size]]
        codes += [str(j) for j in range(len(codes), size)]
        dimension_codes.append(codes)

    index = pd.MultiIndex.from_tuples(
        list(itertools.product(*dimension_codes)), names=dimension_ids
    )

    value_array = np.full(len(cube.values), np.nan)
    for position, value in enumerate(cube.values):
        if value is not None:
            value_array[position] = float(value)

    df = pd.DataFrame({"value": value_array}, index=index)

    if cube.status:
        status_array = np.full(len(cube.values), "", dtype=object)
        for position, flag in cube.status.items():
            status_array[position] = flag
        df["status"] = status_array

    df = df.reset_index()

    for dim in cube.dimensions:
        label_map = {category.id: category.label for category in dim.categories}
        df[f"{dim.id}_label"] = df[dim.id].map(label_map)

    return df


class StatisticsAPI:
    """Handler for Eurostat Statistics API operations."""

    def __init__(self, base_url: str = DEFAULT_BASE_URL,
                 fetcher: Optional[RateLimitedFetcher] = None):
        self.base_url = base_url
        self.fetcher = fetcher or RateLimitedFetcher()

    def _data_url(self, dataset_code: str) -> str:
        return f"{self.base_url}/statistics/1.0/data/{dataset_code.upper()}"

    def get_raw_data(self, dataset_code: str, filters: Optional[Filters] = None,
                     language: str = "EN") -> Dict[str, Any]:
        """
        Get the raw JSON-stat response for a dataset.

        Args:
            dataset_code: The dataset code to retrieve
            filters: Dimension filters; each value may be a single code or a list
            language: Label language ('EN', 'FR' or 'DE')

        Returns:
            Raw JSON-stat response as dictionary
        """
        url = self._data_url(dataset_code)
        params = build_params(filters, language)

        response = self.fetcher.get(url, params=params)
        handle_api_errors(response)

        try:
            data = response.json()
        except ValueError as e:
            raise DataParsingError(f"Failed to parse JSON response: {e}")

        # Large extractions are queued server-side instead of returned
        warning = data.get("warning") if isinstance(data, dict) else None
        if isinstance(warning, dict) and warning.get("status") == 413:
            raise EurostatAPIError(
                "Request too large. Data will be processed asynchronously. "
                "Please try again later or use more specific filters.",
                status_code=413,
            )

        return data

    def get_data(self, dataset_code: str, filters: Optional[Filters] = None,
                 language: str = "EN") -> DataCube:
        """
        Get a dataset as a decoded DataCube.

        Args:
            dataset_code: The dataset code to retrieve
            filters: Dimension filters, e.g. ``{"geo": ["DE", "FR"], "sinceTimePeriod": "2018"}``
            language: Label language ('EN', 'FR' or 'DE')

        Returns:
            DataCube whose ``formatted_table`` renders the present values
        """
        data = self.get_raw_data(dataset_code, filters, language)
        cube = decode_jsonstat(data, dataset_code.upper())
        logger.debug("Decoded %s: %d cells, %d values",
                     cube.dataset_code, len(cube.values), cube.non_null_count)
        return cube

    def preview_data(self, dataset_code: str, language: str = "EN") -> DataCube:
        """Get only the most recent time period of a dataset."""
        return self.get_data(dataset_code, {"lastTimePeriod": "1"}, language)

    def get_data_as_dataframe(self, dataset_code: str, filters: Optional[Filters] = None,
                              language: str = "EN") -> pd.DataFrame:
        """Get a dataset as a pandas DataFrame (see :func:`cube_to_dataframe`)."""
        return cube_to_dataframe(self.get_data(dataset_code, filters, language))

    def get_dataset_url(self, dataset_code: str, filters: Optional[Filters] = None,
                        language: str = "EN") -> str:
        """
        Build a direct TSV download link for a dataset without fetching it.

        The link can be opened in a spreadsheet program (e.g. Excel's
        Data > From Web).
        """
        params = build_params(filters, language, output_format="TSV")
        return build_url(self._data_url(dataset_code), params)
