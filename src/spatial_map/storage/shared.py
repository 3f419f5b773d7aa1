"""Thread-shared storage backend built on named tables."""

import logging
import threading
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Hashable, Iterator, List, Optional, Tuple

from spatial_map.core.feature import Feature, FeatureId
from spatial_map.core.grid import Cell

logger = logging.getLogger(__name__)

# Number of write locks per table. Writes to keys in different stripes proceed in parallel.
LOCK_STRIPES = 64


class AccessMode(Enum):
    """Which threads may use a shared table."""

    PUBLIC = "public"  # any thread reads and writes
    PROTECTED = "protected"  # any thread reads, owner writes
    PRIVATE = "private"  # owner only


class TableExistsError(KeyError):
    """A table with this name is already registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Table {name!r} already exists")


class TableNotFoundError(KeyError):
    """No table with this name is registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Table {name!r} does not exist")


class TableAccessError(PermissionError):
    """The calling thread is not allowed this operation on the table."""

    def __init__(self, name: str, access: AccessMode, operation: str):
        self.name = name
        self.access = access
        self.operation = operation
        super().__init__(
            f"Cannot {operation} {access.value} table {name!r} from a non-owner thread"
        )


class SharedTable:
    """
    Key-value table safe for concurrent use from many threads.

    Reads never take a lock. Writes take one of ``LOCK_STRIPES`` locks chosen
    by key, so each entry is updated atomically while writes to unrelated
    entries do not contend. Stored values should be immutable; readers get
    the stored object directly.
    """

    def __init__(self, name: str, access: AccessMode = AccessMode.PUBLIC):
        self.name = name
        self.access = access
        self.owner = threading.get_ident()
        self._rows: Dict[Hashable, Any] = {}
        self._locks = [threading.Lock() for _ in range(LOCK_STRIPES)]

    def _check(self, operation: str) -> None:
        if self.access is AccessMode.PUBLIC or threading.get_ident() == self.owner:
            return
        if self.access is AccessMode.PROTECTED and operation == "read":
            return
        raise TableAccessError(self.name, self.access, operation)

    def _lock_for(self, key: Hashable) -> threading.Lock:
        return self._locks[hash(key) % LOCK_STRIPES]

    def lookup(self, key: Hashable, default: Any = None) -> Any:
        self._check("read")
        return self._rows.get(key, default)

    def insert(self, key: Hashable, value: Any) -> None:
        self._check("write")
        with self._lock_for(key):
            self._rows[key] = value

    def delete(self, key: Hashable) -> None:
        self._check("write")
        with self._lock_for(key):
            self._rows.pop(key, None)

    def update(self, key: Hashable, func: Callable[[Any], Any]) -> None:
        """
        Atomically replace the value under ``key`` with ``func(current)``.

        ``current`` is None for a missing key. Returning None removes the key.
        """
        self._check("write")
        with self._lock_for(key):
            value = func(self._rows.get(key))
            if value is None:
                self._rows.pop(key, None)
            else:
                self._rows[key] = value

    def items(self) -> List[Tuple[Hashable, Any]]:
        """Snapshot of all entries."""
        self._check("read")
        return list(self._rows.copy().items())

    def values(self) -> List[Any]:
        """Snapshot of all values."""
        self._check("read")
        return list(self._rows.copy().values())

    def __len__(self) -> int:
        self._check("read")
        return len(self._rows)

    def __contains__(self, key: Hashable) -> bool:
        self._check("read")
        return key in self._rows


class TableRegistry:
    """
    Name-scoped collection of shared tables.

    Each registry is independent, so separate maps can reuse table names as
    long as they use different registries.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._tables: Dict[str, SharedTable] = {}

    def create(self, name: str, access: AccessMode = AccessMode.PUBLIC) -> SharedTable:
        """
        Create and register a new table.

        Raises:
            TableExistsError: If ``name`` is already registered
        """
        with self._lock:
            if name in self._tables:
                raise TableExistsError(name)
            table = SharedTable(name, access)
            self._tables[name] = table
        logger.debug("Created %s table %r", access.value, name)
        return table

    def get(self, name: str) -> SharedTable:
        """
        Return a registered table.

        Raises:
            TableNotFoundError: If ``name`` is not registered
        """
        with self._lock:
            try:
                return self._tables[name]
            except KeyError:
                raise TableNotFoundError(name) from None

    def drop(self, name: str) -> None:
        """Unregister a table; a no-op if it does not exist."""
        with self._lock:
            table = self._tables.pop(name, None)
        if table is not None:
            logger.debug("Dropped table %r", name)

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._tables)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._tables


def _with_member(feature_id: FeatureId) -> Callable[[Optional[FrozenSet]], FrozenSet]:
    def add(members: Optional[FrozenSet]) -> FrozenSet:
        if members is None:
            return frozenset((feature_id,))
        return members | {feature_id}

    return add


def _without_member(feature_id: FeatureId) -> Callable[[Optional[FrozenSet]], Optional[FrozenSet]]:
    def remove(members: Optional[FrozenSet]) -> Optional[FrozenSet]:
        if members is None:
            return None
        remaining = members - {feature_id}
        return remaining or None

    return remove


class SharedCellStore:
    """Cell membership in a SharedTable; each cell holds a frozenset of ids."""

    def __init__(self, table: SharedTable):
        self.table = table

    def add_member(self, cell: Cell, feature_id: FeatureId) -> None:
        self.table.update(cell, _with_member(feature_id))

    def remove_member(self, cell: Cell, feature_id: FeatureId) -> None:
        self.table.update(cell, _without_member(feature_id))

    def members_of(self, cell: Cell) -> FrozenSet[FeatureId]:
        return self.table.lookup(cell, frozenset())

    def occupied_cells(self) -> Iterator[Tuple[Cell, FrozenSet[FeatureId]]]:
        return iter(self.table.items())

    def __len__(self) -> int:
        return len(self.table)


class SharedFeatureStore:
    """Feature records in a SharedTable keyed by id."""

    def __init__(self, table: SharedTable):
        self.table = table

    def put(self, feature: Feature) -> None:
        self.table.insert(feature.id, feature)

    def get(self, feature_id: FeatureId) -> Optional[Feature]:
        return self.table.lookup(feature_id)

    def delete(self, feature_id: FeatureId) -> None:
        self.table.delete(feature_id)

    def all(self) -> List[Feature]:
        return self.table.values()

    def size(self) -> int:
        return len(self.table)
