"""Conversions between features and GeoPandas frames."""

from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

import geopandas as gpd
import pandas as pd

from spatial_map.core.feature import Feature

# Columns populated from the feature itself rather than its properties
RESERVED_COLUMNS = ("id", "geometry")


def features_to_geodataframe(
    features: Iterable[Feature],
    crs: Optional[Any] = None,
) -> gpd.GeoDataFrame:
    """
    Build a GeoDataFrame with one row per feature.

    Columns are ``id``, one column per property key (missing keys are NaN),
    and ``geometry``. Properties named ``id`` or ``geometry`` are dropped.

    Args:
        features: Features to convert
        crs: Optional CRS for the geometry column

    Returns:
        GeoDataFrame of the features
    """
    features = list(features)

    records: List[Dict[Any, Any]] = []
    for feature in features:
        record = {k: v for k, v in feature.properties.items() if k not in RESERVED_COLUMNS}
        record["id"] = feature.id
        records.append(record)

    frame = pd.DataFrame.from_records(records)
    if "id" not in frame.columns:
        frame["id"] = pd.Series(dtype=object)
    frame = frame[["id"] + [c for c in frame.columns if c != "id"]]

    geometry = gpd.GeoSeries([f.geometry for f in features], index=frame.index, crs=crs)
    return gpd.GeoDataFrame(frame, geometry=geometry, crs=crs)


def iter_geodataframe(gdf: gpd.GeoDataFrame) -> Iterator[Tuple[Any, Dict[Any, Any]]]:
    """
    Yield ``(geometry, properties)`` for each row of a GeoDataFrame.

    Every column except the active geometry column becomes a property.
    """
    geometry_column = gdf.geometry.name
    columns = [c for c in gdf.columns if c != geometry_column]
    properties = gdf[columns].to_dict("records")
    return zip(gdf.geometry, properties)
