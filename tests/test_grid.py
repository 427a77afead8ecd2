"""Tests for the tile grid generator."""

import pytest
from shapely.geometry import box
from shapely.ops import unary_union

from wfs_dump.exceptions import InvalidParameterError
from wfs_dump.grid import MAX_ZOOM, generate_grid, grid_size, iter_grid, validate_zoom
from wfs_dump.models import BoundingBox, Tile


WORLD = BoundingBox(min_x=-179, min_y=-85, max_x=179, max_y=85)


class TestGenerateGrid:
    """Test grid generation."""

    def test_zoom_zero_is_single_world_tile(self):
        tiles = generate_grid(WORLD, 0)

        assert tiles == [Tile(z=0, x=0, y=0)]

    def test_zoom_one_world(self):
        tiles = generate_grid(WORLD, 1)

        assert len(tiles) == 4
        assert {(t.x, t.y) for t in tiles} == {(0, 0), (0, 1), (1, 0), (1, 1)}

    @pytest.mark.parametrize("bbox,zoom", [
        ((-10.0, -10.0, 10.0, 10.0), 3),
        ((4.5, 51.2, 5.5, 52.8), 8),
        ((-179.0, -85.0, 179.0, 85.0), 2),
        ((100.0, -45.0, 100.5, -44.5), 10),
    ])
    def test_tiles_cover_bbox(self, bbox, zoom):
        """Union of tile footprints covers the requested box."""
        extent = BoundingBox.from_sequence(bbox)
        tiles = generate_grid(extent, zoom)

        footprint = unary_union([box(*t.bounds().as_tuple()) for t in tiles])
        assert footprint.covers(box(*bbox))

    @pytest.mark.parametrize("zoom", [0, 1, 4, 9, 14])
    def test_indices_within_lattice(self, zoom):
        extent = BoundingBox(min_x=-20, min_y=-20, max_x=20, max_y=20)
        for tile in generate_grid(extent, zoom):
            assert tile.z == zoom
            assert 0 <= tile.x < 2 ** zoom
            assert 0 <= tile.y < 2 ** zoom

    def test_column_major_order(self):
        extent = BoundingBox(min_x=-50, min_y=-30, max_x=50, max_y=30)
        tiles = generate_grid(extent, 4)

        assert tiles == sorted(tiles, key=lambda t: (t.x, t.y))

    def test_order_is_stable(self):
        extent = BoundingBox(min_x=0, min_y=0, max_x=10, max_y=10)

        assert generate_grid(extent, 6) == generate_grid(extent, 6)

    def test_box_inside_one_tile(self):
        tile = Tile(z=14, x=8419, y=5411)
        b = tile.bounds()
        dx = (b.max_x - b.min_x) / 4
        dy = (b.max_y - b.min_y) / 4
        extent = BoundingBox(min_x=b.min_x + dx, min_y=b.min_y + dy, max_x=b.max_x - dx, max_y=b.max_y - dy)

        assert generate_grid(extent, 14) == [tile]

    def test_iter_grid_matches_list(self):
        extent = BoundingBox(min_x=-30, min_y=-20, max_x=40, max_y=25)

        assert list(iter_grid(extent, 5)) == generate_grid(extent, 5)

    def test_iter_grid_validates_before_iteration(self):
        with pytest.raises(InvalidParameterError):
            iter_grid(WORLD, MAX_ZOOM + 1)

    def test_rejects_non_geographic_extent(self):
        extent = BoundingBox(min_x=0, min_y=0, max_x=1000, max_y=1000, epsg=3857)

        with pytest.raises(InvalidParameterError):
            generate_grid(extent, 3)


class TestGridSize:
    """Test tile counting without building tiles."""

    @pytest.mark.parametrize("bbox,zoom", [
        ((-179.0, -85.0, 179.0, 85.0), 0),
        ((-179.0, -85.0, 179.0, 85.0), 3),
        ((-10.0, -10.0, 10.0, 10.0), 5),
        ((4.5, 51.2, 5.5, 52.8), 10),
    ])
    def test_matches_generate_grid(self, bbox, zoom):
        extent = BoundingBox.from_sequence(bbox)

        assert grid_size(extent, zoom) == len(generate_grid(extent, zoom))

    def test_default_extent_at_default_zoom_is_large(self):
        assert grid_size(WORLD, 14) > 200_000_000


class TestValidateZoom:
    """Test zoom validation."""

    @pytest.mark.parametrize("zoom", [0, 1, 14, MAX_ZOOM])
    def test_valid(self, zoom):
        assert validate_zoom(zoom) == zoom

    @pytest.mark.parametrize("zoom", [-1, MAX_ZOOM + 1, 1.5, "3", True, None])
    def test_invalid(self, zoom):
        with pytest.raises(InvalidParameterError):
            validate_zoom(zoom)

    def test_generate_grid_rejects_negative_zoom(self):
        with pytest.raises(InvalidParameterError):
            generate_grid(WORLD, -1)


class TestTile:
    """Test tile model."""

    def test_tile_id(self):
        assert Tile(z=14, x=8412, y=5384).tile_id == "14/8412/5384"

    def test_rejects_index_outside_lattice(self):
        with pytest.raises(ValueError):
            Tile(z=1, x=2, y=0)

    def test_bounds_of_root_tile(self):
        bounds = Tile(z=0, x=0, y=0).bounds()

        assert bounds.min_x == pytest.approx(-180.0)
        assert bounds.max_x == pytest.approx(180.0)
        assert bounds.max_y == pytest.approx(85.0511287798, abs=1e-6)
        assert bounds.epsg == 4326

    def test_neighbouring_tiles_share_edge(self):
        west = Tile(z=3, x=3, y=2).bounds()
        east = Tile(z=3, x=4, y=2).bounds()

        assert west.max_x == pytest.approx(east.min_x)
