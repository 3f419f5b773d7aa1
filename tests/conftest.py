"""Pytest fixtures for spatial-map tests."""

import ast
import re
from pathlib import Path

import pytest
from shapely.geometry import LineString, Point, Polygon

from spatial_map import SpatialMap, TableRegistry


# =============================================================================
# Import enforcement: tests should only use the public API
# =============================================================================

# Allowed import patterns for spatial_map
# - "spatial_map" (the public API)
# - "spatial_map.storage" (backend contract tests)
ALLOWED_IMPORT_PATTERNS = [
    r"^spatial_map$",  # Public API root
    r"^spatial_map\.storage$",  # Storage backends
]


def _is_allowed_import(module_name: str) -> bool:
    """Check if a spatial_map import is allowed."""
    if not module_name.startswith("spatial_map"):
        return True  # Not a spatial_map import, always allowed
    return any(re.match(pattern, module_name) for pattern in ALLOWED_IMPORT_PATTERNS)


def _check_file_imports(filepath: Path) -> list[str]:
    """Check a test file for disallowed internal imports.

    Returns list of error messages for any violations found.
    """
    try:
        content = filepath.read_text()
        tree = ast.parse(content)
    except (SyntaxError, UnicodeDecodeError):
        return []  # Skip files that can't be parsed

    errors = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                if not _is_allowed_import(alias.name):
                    errors.append(
                        f"{filepath}:{node.lineno}: "
                        f"Internal import not allowed: 'import {alias.name}'. "
                        f"Use 'from spatial_map import ...' instead."
                    )
        elif isinstance(node, ast.ImportFrom):
            if node.module and not _is_allowed_import(node.module):
                names = ", ".join(a.name for a in node.names)
                errors.append(
                    f"{filepath}:{node.lineno}: "
                    f"Internal import not allowed: 'from {node.module} import {names}'. "
                    f"Use 'from spatial_map import ...' instead."
                )
    return errors


def pytest_collect_file(parent, file_path):
    """Check test files for internal imports during collection."""
    if file_path.suffix == ".py" and file_path.name.startswith("test_"):
        errors = _check_file_imports(file_path)
        if errors:
            # Raise an error during collection to fail fast
            error_msg = "\n".join(errors)
            pytest.fail(
                f"\n\nInternal import violations detected:\n{error_msg}\n\n"
                "Tests should only import from the public API:\n"
                "  - from spatial_map import SpatialMap, GridDefinition, ...\n"
                "  - from spatial_map.storage import LocalCellStore, ...  (backend tests)\n"
            )


# =============================================================================
# Shared data
# =============================================================================

SCENARIO_GRID = [(0, 100, 0.1), (0, 100, 0.2)]

TRIANGLE = Polygon([(3, 1), (4, 5), (2, 4), (3, 1)])
SQUARE = Polygon([(2, 3), (5, 3), (5, 6), (2, 6), (2, 3)])
LINE = LineString([(4, 7), (6, 5), (7, 7)])
POINT = Point(2, 8)


@pytest.fixture(params=["local", "shared"])
def storage_type(request):
    """Run a test once per storage backend."""
    return request.param


@pytest.fixture
def registry():
    """Fresh table registry for shared maps."""
    return TableRegistry()


@pytest.fixture
def make_map(registry):
    """Factory for maps; shared maps get unique table names in one registry."""
    maps = []

    def _make(storage_type="local", grid=SCENARIO_GRID, **kwargs):
        if storage_type == "shared":
            kwargs.setdefault("table_name", f"map_{len(maps)}")
            kwargs.setdefault("registry", registry)
        smap = SpatialMap(grid=grid, storage_type=storage_type, **kwargs)
        maps.append(smap)
        return smap

    yield _make

    for smap in maps:
        smap.close()


@pytest.fixture
def scenario_map(make_map, storage_type):
    """Map with a triangle, a square, a line, and a point."""
    return (
        make_map(storage_type)
        .add_feature(TRIANGLE, {"shape": "triangle"})
        .add_feature(SQUARE, {"shape": "square"})
        .add_feature(LINE, {"shape": "line"})
        .add_feature(POINT, {"shape": "point"})
    )


def assert_cells_mirror_envelopes(smap):
    """Every feature id is in exactly the cells its envelope hashes to."""
    expected = {}
    for feature in smap.list_features():
        for cell in smap.cells_of(feature.id):
            expected.setdefault(cell, set()).add(feature.id)

    actual = {cell: set(ids) for cell, ids in smap.occupied_cells()}
    assert actual == expected
