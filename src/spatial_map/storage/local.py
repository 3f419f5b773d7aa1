"""In-process, single-owner storage backend."""

from typing import Dict, FrozenSet, Iterator, List, Optional, Set, Tuple

from spatial_map.core.feature import Feature, FeatureId
from spatial_map.core.grid import Cell


class LocalCellStore:
    """
    Cell membership held in a plain dict of sets.

    Not synchronized: a LocalCellStore must have a single owner at a time.
    """

    def __init__(self):
        self._cells: Dict[Cell, Set[FeatureId]] = {}

    def add_member(self, cell: Cell, feature_id: FeatureId) -> None:
        self._cells.setdefault(cell, set()).add(feature_id)

    def remove_member(self, cell: Cell, feature_id: FeatureId) -> None:
        members = self._cells.get(cell)
        if members is None:
            return
        members.discard(feature_id)
        if not members:
            del self._cells[cell]

    def members_of(self, cell: Cell) -> FrozenSet[FeatureId]:
        return frozenset(self._cells.get(cell, ()))

    def occupied_cells(self) -> Iterator[Tuple[Cell, FrozenSet[FeatureId]]]:
        for cell, members in list(self._cells.items()):
            yield cell, frozenset(members)

    def __len__(self) -> int:
        return len(self._cells)


class LocalFeatureStore:
    """Feature records held in a plain dict keyed by id."""

    def __init__(self):
        self._features: Dict[FeatureId, Feature] = {}

    def put(self, feature: Feature) -> None:
        self._features[feature.id] = feature

    def get(self, feature_id: FeatureId) -> Optional[Feature]:
        return self._features.get(feature_id)

    def delete(self, feature_id: FeatureId) -> None:
        self._features.pop(feature_id, None)

    def all(self) -> List[Feature]:
        return list(self._features.values())

    def size(self) -> int:
        return len(self._features)
