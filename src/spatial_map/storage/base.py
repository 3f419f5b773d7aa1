"""Storage contracts shared by the local and shared backends."""

from enum import Enum
from typing import FrozenSet, Iterator, List, Optional, Protocol, Tuple, Union

from spatial_map.core.feature import Feature, FeatureId
from spatial_map.core.grid import Cell


class StorageType(Enum):
    """Backend pair used by a SpatialMap."""

    LOCAL = "local"
    SHARED = "shared"

    @classmethod
    def parse(cls, value: Union[str, "StorageType"]) -> "StorageType":
        """
        Resolve a storage type from an enum member or name.

        ``"exclusive"`` is accepted as an alias of ``"local"``.

        Raises:
            ValueError: If the name is unknown
        """
        if isinstance(value, cls):
            return value
        name = str(value).lower()
        if name == "exclusive":
            return cls.LOCAL
        return cls(name)


class CellStore(Protocol):
    """Mapping from grid cell to the ids of features registered there."""

    def add_member(self, cell: Cell, feature_id: FeatureId) -> None:
        ...

    def remove_member(self, cell: Cell, feature_id: FeatureId) -> None:
        """Remove an id from a cell; a no-op if it is not a member."""
        ...

    def members_of(self, cell: Cell) -> FrozenSet[FeatureId]:
        """Ids registered in a cell; empty if the cell is unknown."""
        ...

    def occupied_cells(self) -> Iterator[Tuple[Cell, FrozenSet[FeatureId]]]:
        """Yield every non-empty cell with its members."""
        ...

    def __len__(self) -> int:
        ...


class FeatureStore(Protocol):
    """Mapping from feature id to the full feature record."""

    def put(self, feature: Feature) -> None:
        ...

    def get(self, feature_id: FeatureId) -> Optional[Feature]:
        ...

    def delete(self, feature_id: FeatureId) -> None:
        ...

    def all(self) -> List[Feature]:
        ...

    def size(self) -> int:
        ...
