"""Cell and feature storage backends."""

from typing import Optional, Tuple

from spatial_map.storage.base import CellStore, FeatureStore, StorageType
from spatial_map.storage.local import LocalCellStore, LocalFeatureStore
from spatial_map.storage.shared import (
    AccessMode,
    SharedCellStore,
    SharedFeatureStore,
    SharedTable,
    TableAccessError,
    TableExistsError,
    TableNotFoundError,
    TableRegistry,
)


def create_stores(
    storage_type: StorageType,
    table_name: str = "spatial_map",
    feature_table_name: Optional[str] = None,
    access: AccessMode = AccessMode.PUBLIC,
    registry: Optional[TableRegistry] = None,
) -> Tuple[CellStore, FeatureStore]:
    """
    Build the cell/feature store pair for a storage type.

    The table arguments only apply to ``StorageType.SHARED``. If the feature
    table cannot be created, the cell table is dropped again.

    Raises:
        TableExistsError: If a shared table name is already taken in ``registry``
    """
    if storage_type is StorageType.LOCAL:
        return LocalCellStore(), LocalFeatureStore()

    registry = registry if registry is not None else TableRegistry()
    feature_table_name = feature_table_name or f"{table_name}_features"

    cell_table = registry.create(table_name, access)
    try:
        feature_table = registry.create(feature_table_name, access)
    except TableExistsError:
        registry.drop(table_name)
        raise
    return SharedCellStore(cell_table), SharedFeatureStore(feature_table)


__all__ = [
    "AccessMode",
    "CellStore",
    "FeatureStore",
    "LocalCellStore",
    "LocalFeatureStore",
    "SharedCellStore",
    "SharedFeatureStore",
    "SharedTable",
    "StorageType",
    "TableAccessError",
    "TableExistsError",
    "TableNotFoundError",
    "TableRegistry",
    "create_stores",
]
