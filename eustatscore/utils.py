"""Utility functions for the eustatscore package."""

import json
import logging
import threading
import time
from typing import Any, Callable, List, Optional, Sequence, Tuple

import requests

from .exceptions import DatasetNotFoundError, EurostatAPIError, InvalidParameterError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://ec.europa.eu/eurostat/api/dissemination"
CACHE_TTL_SECONDS = 60 * 60
ERROR_BODY_LIMIT = 500

VALID_GEO_LEVELS = {"aggregate", "country", "nuts1", "nuts2", "nuts3", "city"}
VALID_LANGUAGES = {"en", "fr", "de"}


class SnapshotCache:
    """
    In-memory cache holding a single immutable snapshot with a time-to-live.

    The snapshot and its timestamp are replaced together as one reference, so
    readers see either the previous complete value or the new one. A failed
    load leaves the previous snapshot in place.
    """

    def __init__(self, ttl_seconds: float = CACHE_TTL_SECONDS,
                 clock: Optional[Callable[[], float]] = None):
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.monotonic
        self._entry: Optional[Tuple[Any, float]] = None
        self._lock = threading.Lock()

    def _fresh(self, entry: Optional[Tuple[Any, float]]) -> bool:
        return entry is not None and self._clock() - entry[1] < self.ttl_seconds

    @property
    def fetched_at(self) -> Optional[float]:
        entry = self._entry
        return entry[1] if entry else None

    def get(self) -> Optional[Any]:
        """Return the cached snapshot if present and not expired."""
        entry = self._entry
        return entry[0] if self._fresh(entry) else None

    def get_or_load(self, loader: Callable[[], Any]) -> Any:
        """
        Return the cached snapshot, calling ``loader`` to rebuild it when stale.

        Concurrent callers that find the cache stale wait for a single load.
        Exceptions raised by ``loader`` propagate and nothing is stored.
        """
        entry = self._entry
        if self._fresh(entry):
            return entry[0]

        with self._lock:
            entry = self._entry
            if self._fresh(entry):
                return entry[0]
            started = self._clock()
            value = loader()
            self._entry = (value, started)
            logger.debug("Cache refreshed at %.3f", started)
            return value

    def clear(self) -> None:
        """Drop the cached snapshot."""
        self._entry = None


def unravel_index(index: int, sizes: Sequence[int]) -> List[int]:
    """
    Convert a linear index into per-dimension indices.

    The last dimension varies fastest: indices are taken by successive
    modulo/divide starting from the last size.
    """
    indices = [0] * len(sizes)
    remainder = index
    for d in range(len(sizes) - 1, -1, -1):
        indices[d] = remainder % sizes[d]
        remainder //= sizes[d]
    return indices


def ravel_index(indices: Sequence[int], sizes: Sequence[int]) -> int:
    """Inverse of :func:`unravel_index`."""
    index = 0
    for idx, size in zip(indices, sizes):
        index = index * size + idx
    return index


def _error_class(status_code: int):
    if status_code == 404:
        return DatasetNotFoundError
    if status_code == 400:
        return InvalidParameterError
    return EurostatAPIError


def _is_success(response: requests.Response) -> bool:
    return 200 <= response.status_code < 300


def raise_for_status(response: requests.Response, description: str) -> None:
    """Raise an error carrying ``description`` and the status for non-2xx responses."""
    if _is_success(response):
        return

    status = response.status_code
    reason = getattr(response, "reason", None) or ""
    message = f"{description}: {status} {reason}".rstrip()
    raise _error_class(status)(message, status_code=status)


def _extract_labels(payload: Any) -> List[str]:
    """Collect human-readable labels from a JSON error/warning payload."""
    labels = []
    if not isinstance(payload, dict):
        return labels

    for key in ("error", "warning"):
        info = payload.get(key)
        # Handle case where error is a list
        if isinstance(info, list):
            info = info[0] if info else {}
        if isinstance(info, dict) and info.get("label"):
            labels.append(str(info["label"]))
    return labels


def handle_api_errors(response: requests.Response) -> None:
    """
    Handle Statistics API error responses.

    Structured JSON error or warning payloads contribute their labels to the
    message; any other body is embedded verbatim, truncated.
    """
    if _is_success(response):
        return

    status = response.status_code
    message = f"Eurostat API error {status}"
    body = response.text or ""

    try:
        labels = _extract_labels(json.loads(body))
    except (ValueError, TypeError):
        labels = []

    if labels:
        message += ": " + ": ".join(labels)
    elif body:
        message += f": {body[:ERROR_BODY_LIMIT]}"

    raise _error_class(status)(message, status_code=status)


def validate_geo_level(geo_level: str) -> str:
    """Validate geo level parameter."""
    if geo_level not in VALID_GEO_LEVELS:
        raise InvalidParameterError(
            f"Invalid geo level '{geo_level}'. Must be one of: {sorted(VALID_GEO_LEVELS)}"
        )
    return geo_level


def validate_language(language: str) -> str:
    """Validate a language code and return it lowercased."""
    lang = (language or "").lower()
    if lang not in VALID_LANGUAGES:
        raise InvalidParameterError(
            f"Invalid language '{language}'. Must be one of: {sorted(VALID_LANGUAGES)}"
        )
    return lang
