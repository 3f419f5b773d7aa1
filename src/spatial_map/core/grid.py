"""Grid definitions and envelope-to-cell hashing."""

import math
import numbers
from dataclasses import dataclass
from itertools import product
from typing import Iterable, Iterator, List, Sequence, Tuple, Union

from spatial_map.core.geometry import Envelope

Cell = Tuple[int, int]


class GridConfigurationError(ValueError):
    """Invalid grid definition."""

    def __init__(self, message: str, axis: int = -1):
        self.axis = axis
        self.reason = message
        if axis >= 0:
            message = f"axis {axis}: {message}"
        super().__init__(f"Invalid grid definition: {message}")


def _is_real(value) -> bool:
    return (
        isinstance(value, numbers.Real)
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


@dataclass(frozen=True)
class GridAxis:
    """One axis of a grid: ``[min, max]`` split into cells of ``cell_size``."""

    min: float
    max: float
    cell_size: float

    def __post_init__(self):
        for name in ("min", "max", "cell_size"):
            if not _is_real(getattr(self, name)):
                raise GridConfigurationError(f"{name} must be a finite number")
        if self.cell_size <= 0:
            raise GridConfigurationError(f"cell_size must be positive, got {self.cell_size}")
        if self.min >= self.max:
            raise GridConfigurationError(f"min ({self.min}) must be less than max ({self.max})")

    @property
    def cell_count(self) -> int:
        """Number of cells along this axis."""
        return math.ceil((self.max - self.min) / self.cell_size)

    def index_of(self, value: float) -> int:
        """Cell index containing ``value``, clamped to the axis."""
        if value <= self.min:
            return 0
        if value >= self.max:
            return self.cell_count - 1
        index = math.floor((value - self.min) / self.cell_size)
        return min(index, self.cell_count - 1)

    def cell_range(self, low: float, high: float) -> range:
        """Inclusive cell span of ``[low, high]`` as a Python range."""
        return range(self.index_of(low), self.index_of(high) + 1)


def _as_axis(axis: Union[GridAxis, Sequence[float]], index: int) -> GridAxis:
    """Validate one axis of a grid, naming ``index`` in any error."""
    if isinstance(axis, GridAxis):
        return axis
    try:
        low, high, cell_size = axis
    except (TypeError, ValueError):
        raise GridConfigurationError(
            f"expected a (min, max, cell_size) triple, got {axis!r}", axis=index
        ) from None
    try:
        return GridAxis(low, high, cell_size)
    except GridConfigurationError as e:
        raise GridConfigurationError(e.reason, axis=index) from None


GridSpec = Union["GridDefinition", Sequence[Union[GridAxis, Sequence[float]]]]


@dataclass(frozen=True)
class GridDefinition:
    """
    Immutable 2-D grid made of one ``GridAxis`` per dimension.

    Cells are addressed by ``(x_index, y_index)``. Values outside
    ``[min, max]`` fold onto the border cells, so every geometry hashes to
    at least one cell regardless of where it lies.
    """

    axes: Tuple[GridAxis, ...]

    def __post_init__(self):
        try:
            items = list(self.axes)
        except TypeError:
            raise GridConfigurationError(
                f"expected a sequence of axes, got {self.axes!r}"
            ) from None

        axes = tuple(_as_axis(axis, i) for i, axis in enumerate(items))
        if len(axes) != 2:
            raise GridConfigurationError(f"expected 2 axes, got {len(axes)}")
        object.__setattr__(self, "axes", axes)

    @classmethod
    def from_spec(cls, spec: GridSpec) -> "GridDefinition":
        """
        Build a grid from a ``GridDefinition`` or ``(min, max, cell_size)`` triples.

        Args:
            spec: Existing grid, or a sequence of axes/triples

        Returns:
            Validated GridDefinition

        Raises:
            GridConfigurationError: If any axis is malformed
        """
        if isinstance(spec, GridDefinition):
            return spec
        return cls(spec)

    @property
    def shape(self) -> Tuple[int, ...]:
        """Number of cells along each axis."""
        return tuple(axis.cell_count for axis in self.axes)

    def to_list(self) -> List[Tuple[float, float, float]]:
        """Return the grid as ``(min, max, cell_size)`` triples."""
        return [(a.min, a.max, a.cell_size) for a in self.axes]


def world_grid() -> GridDefinition:
    """Default longitude/latitude grid with one-degree cells."""
    return GridDefinition.from_spec([(-180, 180, 1), (-90, 90, 1)])


def hash_range(envelope: Envelope, grid: GridDefinition) -> List[range]:
    """
    Map an envelope to the cells it spans, one range per axis.

    Deterministic and monotonic: growing the envelope never shrinks any
    returned range. Empty envelopes map to empty ranges.

    Args:
        envelope: Bounding box to hash
        grid: Grid definition

    Returns:
        List of ``range`` objects, x axis first
    """
    if envelope.is_empty:
        return [range(0) for _ in grid.axes]

    return [
        axis.cell_range(low, high)
        for axis, (low, high) in zip(grid.axes, envelope.axes)
    ]


def cells_in_range(ranges: Iterable[range]) -> Iterator[Cell]:
    """Enumerate every cell coordinate in the given per-axis ranges."""
    return product(*ranges)


def range_size(ranges: Sequence[range]) -> int:
    """Number of cells covered by the given per-axis ranges."""
    return math.prod(len(r) for r in ranges)
