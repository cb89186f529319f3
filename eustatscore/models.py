"""Data models for the eustatscore package."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from .utils import unravel_index

Number = Union[int, float]


@dataclass(frozen=True)
class CatalogEntry:
    """One line of the Eurostat table of contents."""
    code: str
    title: str
    type: str  # 'folder', 'dataset' or 'table'
    last_update: Optional[str] = None
    data_start: Optional[str] = None
    data_end: Optional[str] = None
    values_count: Optional[str] = None


@dataclass(frozen=True)
class TableOfContents:
    """A complete catalog snapshot in one language."""
    entries: Tuple[CatalogEntry, ...]
    language: str = "en"


@dataclass(frozen=True)
class Code:
    """A code with its human label (codelist entry or cube category)."""
    id: str
    label: str


@dataclass
class Dimension:
    """A dataset dimension as declared in its structure definition."""
    id: str
    name: str
    codes: List[Code] = field(default_factory=list)
    is_time: bool = False


@dataclass
class DatasetStructure:
    """Dimensions of a dataset, in declaration order (time last)."""
    dataset_code: str
    title: str
    dimensions: List[Dimension] = field(default_factory=list)


@dataclass
class CubeDimension:
    """A dimension of a data cube with the categories actually returned."""
    id: str
    label: str
    categories: List[Code] = field(default_factory=list)


@dataclass
class DataCube:
    """
    A decoded JSON-stat dataset.

    ``values`` is dense: position ``i`` holds the observation addressed by the
    mixed-radix index over ``sizes`` (last dimension varying fastest), or None
    where the source has no recorded value.
    """
    dataset_code: str
    title: str
    source: str
    updated: str
    dimensions: List[CubeDimension]
    sizes: List[int]
    values: List[Optional[Number]]
    status: Dict[int, str] = field(default_factory=dict)

    @property
    def non_null_count(self) -> int:
        return sum(1 for value in self.values if value is not None)

    def labels_at(self, position: int) -> Tuple[str, ...]:
        """Return the category labels addressing a value position."""
        labels = []
        for dim, idx in zip(self.dimensions, unravel_index(position, self.sizes)):
            if idx < len(dim.categories):
                labels.append(dim.categories[idx].label)
            else:
                labels.append(f"[{idx}]")
        return tuple(labels)

    def rows(self) -> List[Tuple[Tuple[str, ...], Number]]:
        """Return (labels, value) pairs for every present value, in index order."""
        return [
            (self.labels_at(position), value)
            for position, value in enumerate(self.values)
            if value is not None
        ]

    @property
    def formatted_table(self) -> str:
        """Render present values as a pipe-separated text table."""
        if not self.dimensions or not self.values:
            return "No data available."

        header = " | ".join(dim.label for dim in self.dimensions) + " | Value"
        lines = [header, "-" * len(header)]
        for labels, value in self.rows():
            lines.append(" | ".join(labels) + f" | {format_value(value)}")
        return "\n".join(lines)


@dataclass(frozen=True)
class GeoCode:
    """A Eurostat GEO code with its English name and derived level."""
    code: str
    name: str
    level: str  # country, nuts1, nuts2, nuts3, aggregate or other


def format_value(value: Number) -> str:
    """Format an observation, dropping the fraction of integral floats."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
