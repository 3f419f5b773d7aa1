"""SpatialMap - the primary user interface."""

import logging
from dataclasses import dataclass
from typing import Any, FrozenSet, Iterator, List, Mapping, Optional, Set, Tuple, Union

import geopandas as gpd

from spatial_map.core.feature import Feature, FeatureId
from spatial_map.core.frames import features_to_geodataframe, iter_geodataframe
from spatial_map.core.geometry import Envelope, GeometryLike, as_geometry, envelope_of, intersects
from spatial_map.core.grid import (
    Cell,
    GridDefinition,
    GridSpec,
    cells_in_range,
    hash_range,
    range_size,
    world_grid,
)
from spatial_map.storage import AccessMode, StorageType, TableRegistry, create_stores

logger = logging.getLogger(__name__)

# Inserts spanning more cells than this are logged as slow
LARGE_FEATURE_CELLS = 100_000

_MISSING = object()


class MapClosedError(RuntimeError):
    """The map was closed and can no longer be used."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Cannot {operation} on a closed SpatialMap")


@dataclass
class MapStats:
    """Size summary of a SpatialMap."""

    feature_count: int
    occupied_cells: int
    storage_type: StorageType


class SpatialMap:
    """
    Static geospatial features indexed on a fixed grid for intersection queries.

    Each feature's id is registered in every grid cell its bounding envelope
    covers. A query unions the ids found in the cells covered by the query
    geometry's envelope, then keeps only the features whose geometry really
    intersects the query geometry.

    Inserts cost one write per covered cell, so large geometries on fine
    grids are slow to add, move, and delete. Reads are cheap.

    Two storage types are available:
    - ``local``: plain in-process dicts with no locking. The map must have a
      single owner at a time.
    - ``shared``: tables from a ``TableRegistry`` that many threads may read
      and write at once. A multi-cell insert, move, or delete is not atomic
      as a whole, so a concurrent reader can briefly see a feature in only
      part of its cells.

    Mutating methods update the map in place and return it, so calls chain:

        >>> smap = SpatialMap(grid=[(0, 100, 1), (0, 100, 1)])
        >>> smap.add_feature((2, 8), {"name": "a"}).query_properties((2, 8), "name")
        ['a']
    """

    def __init__(
        self,
        grid: Optional[GridSpec] = None,
        storage_type: Union[StorageType, str] = StorageType.LOCAL,
        table_name: str = "spatial_map",
        feature_table_name: Optional[str] = None,
        access: Union[AccessMode, str] = AccessMode.PUBLIC,
        registry: Optional[TableRegistry] = None,
    ):
        """
        Initialize SpatialMap.

        Args:
            grid: GridDefinition or ``(min, max, cell_size)`` triples for x and y.
                Defaults to ``world_grid()`` (one-degree cells).
            storage_type: ``"local"`` (default) or ``"shared"``
            table_name: Name of the shared cell table (shared storage only)
            feature_table_name: Name of the shared feature table.
                Defaults to ``f"{table_name}_features"`` (shared storage only)
            access: Access mode of the shared tables: ``"public"`` (default),
                ``"protected"``, or ``"private"`` (shared storage only)
            registry: Registry owning the shared tables. A new private
                registry is created when omitted (shared storage only)

        Raises:
            GridConfigurationError: If the grid is invalid
            TableExistsError: If a shared table name is taken in ``registry``
        """
        self._grid = GridDefinition.from_spec(grid) if grid is not None else world_grid()
        self._storage_type = StorageType.parse(storage_type)

        self.registry: Optional[TableRegistry] = None
        self._table_names: Tuple[str, ...] = ()
        self._closed = False

        if self._storage_type is StorageType.SHARED:
            self.registry = registry if registry is not None else TableRegistry()
            feature_table_name = feature_table_name or f"{table_name}_features"
            self._table_names = (table_name, feature_table_name)
            access = access if isinstance(access, AccessMode) else AccessMode(str(access).lower())
            self._cells, self._features = create_stores(
                self._storage_type,
                table_name=table_name,
                feature_table_name=feature_table_name,
                access=access,
                registry=self.registry,
            )
        else:
            self._cells, self._features = create_stores(self._storage_type)

        logger.debug(
            "Created %s SpatialMap with grid %s", self._storage_type.value, self._grid.to_list()
        )

    def close(self) -> None:
        """
        Close the map and release shared table names back to the registry.

        Every later operation raises ``MapClosedError``. Closing twice is a no-op.
        """
        if self._closed:
            return
        self._closed = True
        if self.registry is not None:
            for name in self._table_names:
                self.registry.drop(name)

    def __enter__(self) -> "SpatialMap":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        features = "closed" if self._closed else self.count_features()
        return (
            f"SpatialMap(storage_type={self._storage_type.value!r}, "
            f"features={features}, grid={self._grid.to_list()})"
        )

    @property
    def closed(self) -> bool:
        """Whether ``close`` has been called."""
        return self._closed

    def _ensure_open(self, operation: str) -> None:
        if self._closed:
            raise MapClosedError(operation)

    @property
    def storage_type(self) -> StorageType:
        """The storage backend of this map."""
        return self._storage_type

    @property
    def grid(self) -> GridDefinition:
        """The grid this map hashes envelopes against."""
        return self._grid

    # ==========================================================================
    # Mutation
    # ==========================================================================

    def put_feature(
        self,
        geometry: GeometryLike,
        properties: Optional[Mapping[str, Any]] = None,
    ) -> FeatureId:
        """
        Add a feature and return its id.

        Costs one cell write per grid cell the geometry's envelope covers.

        Args:
            geometry: Shapely geometry, ``(x, y)`` pair, GeoJSON mapping, or WKT
            properties: Arbitrary metadata stored with the feature

        Returns:
            Id of the new feature

        Raises:
            InvalidGeometryError: If the geometry cannot be read or measured
        """
        self._ensure_open("put feature")
        feature = Feature.create(as_geometry(geometry), properties)
        self._features.put(feature)
        self._register(feature)
        logger.debug("Put feature %s (%s)", feature.id, feature.geometry.geom_type)
        return feature.id

    def add_feature(
        self,
        geometry: GeometryLike,
        properties: Optional[Mapping[str, Any]] = None,
    ) -> "SpatialMap":
        """Same as ``put_feature``, but returns the map for chaining."""
        self.put_feature(geometry, properties)
        return self

    def move_feature(self, feature_id: FeatureId, geometry: GeometryLike) -> "SpatialMap":
        """
        Move a feature to a new geometry, keeping its properties.

        Unknown ids are ignored. More expensive than ``put_feature`` since
        both the old and the new cells are visited.

        Raises:
            InvalidGeometryError: If the new geometry cannot be read or measured
        """
        self._ensure_open("move feature")
        feature = self._features.get(feature_id)
        if feature is None:
            return self

        moved = feature.moved_to(as_geometry(geometry))
        self._unregister(feature)
        self._register(moved)
        self._features.put(moved)
        logger.debug("Moved feature %s", feature_id)
        return self

    def delete_feature(self, feature_id: FeatureId) -> "SpatialMap":
        """Remove a feature from every cell and from storage. Unknown ids are ignored."""
        self._ensure_open("delete feature")
        feature = self._features.get(feature_id)
        if feature is None:
            return self

        self._unregister(feature)
        self._features.delete(feature_id)
        logger.debug("Deleted feature %s", feature_id)
        return self

    def load_geodataframe(self, gdf: gpd.GeoDataFrame, progress: bool = False) -> List[FeatureId]:
        """
        Add every row of a GeoDataFrame as a feature.

        Non-geometry columns become the feature's properties.

        Args:
            gdf: Frame to load
            progress: Show progress bar

        Returns:
            Feature ids in row order
        """
        self._ensure_open("load features")
        rows = iter_geodataframe(gdf)

        if progress:
            from tqdm import tqdm

            rows = tqdm(rows, total=len(gdf), desc="Loading features")

        ids = [self.put_feature(geometry, properties) for geometry, properties in rows]
        logger.debug("Loaded %d features from GeoDataFrame", len(ids))
        return ids

    def _register(self, feature: Feature) -> None:
        ranges = hash_range(feature.envelope, self._grid)
        cell_count = range_size(ranges)
        if cell_count > LARGE_FEATURE_CELLS:
            logger.warning(
                "Feature %s covers %d grid cells; consider a coarser grid",
                feature.id,
                cell_count,
            )
        for cell in cells_in_range(ranges):
            self._cells.add_member(cell, feature.id)

    def _unregister(self, feature: Feature) -> None:
        for cell in cells_in_range(hash_range(feature.envelope, self._grid)):
            self._cells.remove_member(cell, feature.id)

    # ==========================================================================
    # Reads
    # ==========================================================================

    def get_feature(self, feature_id: FeatureId) -> Optional[Feature]:
        """Return the feature with this id, or None if there is none."""
        self._ensure_open("get feature")
        return self._features.get(feature_id)

    def list_features(self) -> List[Feature]:
        """Return all features, in no particular order."""
        self._ensure_open("list features")
        return self._features.all()

    def count_features(self) -> int:
        """Return the number of features."""
        self._ensure_open("count features")
        return self._features.size()

    def __len__(self) -> int:
        return self.count_features()

    def __contains__(self, feature_id: object) -> bool:
        self._ensure_open("check membership")
        return self._features.get(feature_id) is not None  # type: ignore[arg-type]

    def query(self, geometry: GeometryLike) -> List[Feature]:
        """
        Find all features that intersect a geometry.

        Uses two-phase approach:
        1. Collect candidate ids from every grid cell the query envelope covers
        2. Exact intersection test on each distinct candidate

        Args:
            geometry: Shapely geometry, ``(x, y)`` pair, GeoJSON mapping, or WKT

        Returns:
            Intersecting features, each once, in no particular order

        Raises:
            InvalidGeometryError: If the geometry cannot be read or measured
        """
        self._ensure_open("query")
        geometry = as_geometry(geometry)
        envelope = envelope_of(geometry)

        results = []
        for feature_id in self._candidates(envelope):
            feature = self._features.get(feature_id)
            # Shared maps can lose a candidate to a concurrent delete
            if feature is None:
                continue
            if not feature.envelope.intersects(envelope):
                continue
            if intersects(geometry, feature.geometry):
                results.append(feature)
        return results

    def query_properties(self, geometry: GeometryLike, key: Any = _MISSING) -> List[Any]:
        """
        Same as ``query``, but returns feature properties.

        With ``key``, returns the value of that property for each feature
        (None where it is missing) instead of the whole mapping.
        """
        features = self.query(geometry)
        if key is _MISSING:
            return [dict(f.properties) for f in features]
        return [f.properties.get(key) for f in features]

    def query_frame(self, geometry: GeometryLike, crs: Optional[Any] = None) -> gpd.GeoDataFrame:
        """Same as ``query``, but returns a GeoDataFrame."""
        return features_to_geodataframe(self.query(geometry), crs=crs)

    def to_geodataframe(self, crs: Optional[Any] = None) -> gpd.GeoDataFrame:
        """Return every feature as a GeoDataFrame."""
        return features_to_geodataframe(self.list_features(), crs=crs)

    def _candidates(self, envelope: Envelope) -> Set[FeatureId]:
        ranges = hash_range(envelope, self._grid)
        if range_size(ranges) == 0:
            return set()

        candidates: Set[FeatureId] = set()
        for cell in cells_in_range(ranges):
            candidates.update(self._cells.members_of(cell))
        return candidates

    # ==========================================================================
    # Introspection
    # ==========================================================================

    def cells_of(self, feature_id: FeatureId) -> List[Cell]:
        """Grid cells a feature should occupy given its current envelope."""
        self._ensure_open("read cells")
        feature = self._features.get(feature_id)
        if feature is None:
            return []
        return list(cells_in_range(hash_range(feature.envelope, self._grid)))

    def occupied_cells(self) -> Iterator[Tuple[Cell, FrozenSet[FeatureId]]]:
        """Yield every non-empty grid cell with the ids registered in it."""
        self._ensure_open("read cells")
        return self._cells.occupied_cells()

    def stats(self) -> MapStats:
        """Return feature and cell counts."""
        self._ensure_open("read stats")
        return MapStats(
            feature_count=self.count_features(),
            occupied_cells=len(self._cells),
            storage_type=self._storage_type,
        )

