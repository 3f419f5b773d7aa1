"""Functional tests for putting, moving, and deleting features."""

import uuid

import pytest
from shapely.geometry import LineString, Point, Polygon, box

from spatial_map import Feature, InvalidGeometryError
from tests.conftest import SQUARE, assert_cells_mirror_envelopes


class TestPutFeature:
    """Tests for put_feature, add_feature, and reads."""

    def test_put_returns_id(self, make_map, storage_type):
        smap = make_map(storage_type)
        feature_id = smap.put_feature(Point(-90, 30), {"foo": "bar"})

        feature = smap.get_feature(feature_id)
        assert isinstance(feature, Feature)
        assert feature.id == feature_id
        assert feature.properties == {"foo": "bar"}
        assert feature.geometry.equals(Point(-90, 30))
        assert feature.envelope.bounds == (-90, 30, -90, 30)

    def test_ids_are_unique(self, make_map, storage_type):
        smap = make_map(storage_type)
        ids = [smap.put_feature(Point(1, 1)) for _ in range(50)]

        assert len(set(ids)) == 50
        assert smap.count_features() == 50

    def test_default_properties(self, make_map, storage_type):
        smap = make_map(storage_type)
        feature_id = smap.put_feature(Point(1, 1))

        assert smap.get_feature(feature_id).properties == {}

    def test_add_feature_chains(self, make_map, storage_type):
        smap = make_map(storage_type)

        assert smap.add_feature(Point(1, 1)).add_feature(Point(2, 2)) is smap
        assert len(smap) == 2

    def test_get_unknown_id(self, make_map, storage_type):
        """Unknown ids return None."""
        assert make_map(storage_type).get_feature(uuid.uuid4()) is None

    def test_contains(self, make_map, storage_type):
        smap = make_map(storage_type)
        feature_id = smap.put_feature(Point(1, 1))

        assert feature_id in smap
        assert uuid.uuid4() not in smap

    def test_properties_are_read_only(self, make_map, storage_type):
        """Stored features cannot be changed through returned values."""
        smap = make_map(storage_type)
        properties = {"name": "a"}
        feature_id = smap.put_feature(Point(1, 1), properties)

        properties["name"] = "changed"
        feature = smap.get_feature(feature_id)
        with pytest.raises(TypeError):
            feature.properties["name"] = "b"

        assert smap.get_feature(feature_id).properties == {"name": "a"}

    def test_point_occupies_one_cell(self, make_map, storage_type):
        smap = make_map(storage_type)
        feature_id = smap.put_feature(Point(2, 8))

        assert smap.cells_of(feature_id) == [(20, 40)]
        assert dict(smap.occupied_cells()) == {(20, 40): {feature_id}}

    def test_polygon_occupies_envelope_cells(self, make_map, storage_type):
        smap = make_map(storage_type)
        smap.put_feature(SQUARE)

        # 31 x 16 cells for a 3 x 3 square on a 0.1 x 0.2 grid
        assert smap.stats().occupied_cells == 31 * 16
        assert_cells_mirror_envelopes(smap)

    def test_invalid_geometry_leaves_map_unchanged(self, make_map, storage_type):
        smap = make_map(storage_type)
        smap.put_feature(Point(1, 1))

        with pytest.raises(InvalidGeometryError):
            smap.put_feature(LineString([(0, 0), (float("inf"), 1)]))

        assert smap.count_features() == 1
        assert_cells_mirror_envelopes(smap)


class TestListAndCount:
    """Tests for list_features and count_features."""

    def test_empty_map(self, make_map, storage_type):
        smap = make_map(storage_type)

        assert smap.count_features() == 0
        assert smap.list_features() == []

    def test_count_matches_list(self, scenario_map):
        assert scenario_map.count_features() == 4
        assert len(scenario_map.list_features()) == 4
        assert sorted(f.properties["shape"] for f in scenario_map.list_features()) == [
            "line",
            "point",
            "square",
            "triangle",
        ]

    def test_count_after_mutations(self, scenario_map):
        features = scenario_map.list_features()
        scenario_map.delete_feature(features[0].id)
        scenario_map.move_feature(features[1].id, Point(50, 50))
        scenario_map.put_feature(Point(60, 60))

        assert scenario_map.count_features() == len(scenario_map.list_features()) == 4

    def test_stats(self, scenario_map, storage_type):
        stats = scenario_map.stats()

        assert stats.feature_count == 4
        assert stats.occupied_cells > 0
        assert stats.storage_type.value == storage_type

    def test_to_geodataframe(self, scenario_map):
        frame = scenario_map.to_geodataframe()

        assert len(frame) == 4
        assert set(frame["shape"]) == {"line", "point", "square", "triangle"}


class TestMoveFeature:
    """Tests for move_feature."""

    def test_move_point(self, make_map, storage_type):
        smap = make_map(storage_type, grid=None)
        feature_id = smap.put_feature(Point(-90, 30), {"foo": "bar"})

        result = smap.move_feature(feature_id, Point(-110, 40))

        assert result is smap
        assert smap.query(Point(-90, 30)) == []
        assert smap.query_properties(Point(-110, 40)) == [{"foo": "bar"}]

    def test_move_keeps_properties_and_id(self, scenario_map):
        square = next(f for f in scenario_map.list_features() if f.properties["shape"] == "square")

        scenario_map.move_feature(square.id, box(50, 50, 52, 52))
        moved = scenario_map.get_feature(square.id)

        assert moved.id == square.id
        assert moved.properties == {"shape": "square"}
        assert moved.envelope.bounds == (50, 50, 52, 52)
        assert moved.geometry.equals(box(50, 50, 52, 52))

    def test_move_updates_cells(self, scenario_map):
        for feature in scenario_map.list_features():
            scenario_map.move_feature(feature.id, feature.geometry.buffer(1.5))

        assert_cells_mirror_envelopes(scenario_map)

    def test_move_equivalent_to_reinsert(self, scenario_map):
        """A moved feature is found exactly where a reinserted one would be."""
        line = next(f for f in scenario_map.list_features() if f.properties["shape"] == "line")
        new_geometry = LineString([(20, 20), (30, 25)])

        scenario_map.move_feature(line.id, new_geometry)

        assert "line" not in scenario_map.query_properties(box(4, 5, 7, 7), "shape")
        assert scenario_map.query_properties(box(25, 20, 26, 30), "shape") == ["line"]
        assert scenario_map.query_properties(Point(30, 25), "shape") == ["line"]

    def test_move_to_overlapping_location(self, scenario_map):
        """A feature moved onto part of its old location is still found there."""
        square = next(f for f in scenario_map.list_features() if f.properties["shape"] == "square")

        scenario_map.move_feature(square.id, Polygon([(4, 4), (8, 4), (8, 8), (4, 8)]))

        assert "square" in scenario_map.query_properties(Point(4.5, 4.5), "shape")
        assert "square" not in scenario_map.query_properties(Point(2.5, 3.5), "shape")

    def test_move_unknown_id_is_noop(self, scenario_map):
        before = dict(scenario_map.occupied_cells())
        features_before = {f.id: f for f in scenario_map.list_features()}

        result = scenario_map.move_feature(uuid.uuid4(), Point(1, 1))

        assert result is scenario_map
        assert dict(scenario_map.occupied_cells()) == before
        assert {f.id: f for f in scenario_map.list_features()} == features_before

    def test_move_to_invalid_geometry(self, scenario_map):
        """A failed move leaves the feature where it was."""
        point = next(f for f in scenario_map.list_features() if f.properties["shape"] == "point")

        with pytest.raises(InvalidGeometryError):
            scenario_map.move_feature(point.id, "POINT (1")

        assert scenario_map.get_feature(point.id) == point
        assert_cells_mirror_envelopes(scenario_map)


class TestDeleteFeature:
    """Tests for delete_feature."""

    def test_delete(self, make_map, storage_type):
        smap = make_map(storage_type, grid=None)
        feature_id = smap.put_feature(Point(-90, 30), {"foo": "bar"})

        result = smap.delete_feature(feature_id)

        assert result is smap
        assert smap.query(Point(-90, 30)) == []
        assert smap.get_feature(feature_id) is None
        assert smap.count_features() == 0
        assert list(smap.occupied_cells()) == []

    def test_delete_removes_from_every_query(self, scenario_map):
        square = next(f for f in scenario_map.list_features() if f.properties["shape"] == "square")

        scenario_map.delete_feature(square.id)

        assert "square" not in scenario_map.query_properties(box(0, 0, 100, 100), "shape")
        assert_cells_mirror_envelopes(scenario_map)

    def test_delete_unknown_id_is_noop(self, scenario_map):
        before = dict(scenario_map.occupied_cells())

        result = scenario_map.delete_feature(uuid.uuid4())

        assert result is scenario_map
        assert scenario_map.count_features() == 4
        assert dict(scenario_map.occupied_cells()) == before

    def test_delete_twice(self, scenario_map):
        feature_id = scenario_map.list_features()[0].id

        scenario_map.delete_feature(feature_id).delete_feature(feature_id)

        assert scenario_map.count_features() == 3

    def test_deleted_ids_are_not_reused(self, make_map, storage_type):
        smap = make_map(storage_type)
        deleted = smap.put_feature(Point(1, 1))
        smap.delete_feature(deleted)

        new_ids = {smap.put_feature(Point(1, 1)) for _ in range(20)}

        assert deleted not in new_ids
        assert smap.get_feature(deleted) is None
