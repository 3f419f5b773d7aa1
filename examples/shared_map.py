"""Example of a shared map used from a pool of worker threads."""

import random
from concurrent.futures import ThreadPoolExecutor

import geopandas as gpd
from shapely.geometry import Point, box

from spatial_map import SpatialMap, TableRegistry

registry = TableRegistry()

# Shared maps keep their data in named tables of a registry.
# Two maps in the same registry need different table names.
smap = SpatialMap(storage_type="shared", table_name="sensors", registry=registry)
print(f"Tables: {registry.names()}")

# Bulk load from a GeoDataFrame; every non-geometry column becomes a property
rng = random.Random(0)
sites = gpd.GeoDataFrame(
    {
        "site": [f"site-{i}" for i in range(1000)],
        "geometry": [Point(rng.uniform(-120, -70), rng.uniform(25, 50)) for _ in range(1000)],
    },
    crs="EPSG:4326",
)
smap.load_geodataframe(sites, progress=True)


def count_in_box(bounds):
    return bounds, len(smap.query(box(*bounds)))


# Queries run concurrently without locking
regions = [(-120, 25, -100, 50), (-100, 25, -85, 50), (-85, 25, -70, 50)]
with ThreadPoolExecutor(max_workers=3) as executor:
    for bounds, count in executor.map(count_in_box, regions):
        print(f"{bounds}: {count} sites")

print(smap.query_frame(box(-75, 40, -73, 41)).head())

# Release the table names
smap.close()
print(f"Tables after close: {registry.names()}")
