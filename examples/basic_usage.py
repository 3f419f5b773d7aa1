"""Basic example of using spatial-map."""

from shapely.geometry import LineString, Point, Polygon

from spatial_map import SpatialMap

# Initialize the map
# - grid: (min, max, cell_size) for x and y. Cell sizes close to the size of
#   typical query geometries keep both inserts and queries cheap.
smap = SpatialMap(grid=[(0, 100, 0.1), (0, 100, 0.2)])

triangle_id = smap.put_feature(Polygon([(3, 1), (4, 5), (2, 4)]), {"shape": "triangle"})
smap.add_feature(Polygon([(2, 3), (5, 3), (5, 6), (2, 6)]), {"shape": "square"})
smap.add_feature(LineString([(4, 7), (6, 5), (7, 7)]), {"shape": "line"})
smap.add_feature((2, 8), {"shape": "point"})

print("=" * 60)
print("Queries")
print("=" * 60)

query = Polygon([(1, 1), (5, 1), (5, 5), (1, 5)])
print(f"Shapes intersecting {query.wkt}:")
for shape in smap.query_properties(query, "shape"):
    print(f"  {shape}")

# A query with a hole: the point at (2, 8) sits inside the hole
with_hole = Polygon(
    [(0, 6), (0, 10), (4, 10), (4, 6)],
    [[(1, 6), (2, 9), (3, 6)]],
)
print(f"\nShapes intersecting the holed polygon: {smap.query_properties(with_hole, 'shape')}")

print("\n" + "=" * 60)
print("Move and delete")
print("=" * 60)

smap.move_feature(triangle_id, Point(50, 50).buffer(1))
print(f"Triangle now at: {smap.get_feature(triangle_id).envelope.bounds}")
print(f"Shapes near (50, 50): {smap.query_properties((50, 50), 'shape')}")

smap.delete_feature(triangle_id)
print(f"Features left: {smap.count_features()}")
print(smap.stats())
