"""
Tests for TileLayout implementation
"""

import pytest

from pixelalign.grid.tile_grid import DEFAULT_TILE_SIZE, TileLayout


class TestTileLayout:
    """Test TileLayout implementation"""

    @pytest.fixture
    def layout(self):
        """10x7 image with 4x4 tiles"""
        return TileLayout(10, 7, tile_width=4)

    def test_default_tile_size(self):
        layout = TileLayout(1000, 600)
        assert layout.tile_width == DEFAULT_TILE_SIZE
        assert layout.tile_height == DEFAULT_TILE_SIZE
        assert (layout.tile_count_x, layout.tile_count_y) == (4, 3)

    def test_tile_counts(self, layout):
        assert layout.tile_count_x == 3
        assert layout.tile_count_y == 2
        assert layout.tile_count == 6

    def test_tile_never_exceeds_image(self):
        layout = TileLayout(100, 50)
        assert (layout.tile_width, layout.tile_height) == (100, 50)
        assert layout.tile_count == 1

    def test_tile_window_inner(self, layout):
        assert layout.get_tile_window(1, 0) == (4, 0, 4, 4)

    def test_tile_window_border_is_cropped(self, layout):
        assert layout.get_tile_window(2, 1) == (8, 4, 2, 3)

    def test_tile_window_out_of_range(self, layout):
        with pytest.raises(IndexError):
            layout.get_tile_window(3, 0)
        with pytest.raises(IndexError):
            layout.get_tile_window(0, -1)

    def test_tiles_in_window(self, layout):
        assert layout.get_tiles_in_window(3, 3, 2, 2) == [(0, 0), (1, 0), (0, 1), (1, 1)]

    def test_tiles_in_window_single_tile(self, layout):
        assert layout.get_tiles_in_window(0, 0, 4, 4) == [(0, 0)]

    def test_tiles_in_window_outside(self, layout):
        assert layout.get_tiles_in_window(20, 20, 5, 5) == []

    def test_iter_tiles_row_major(self, layout):
        assert list(layout.iter_tiles()) == [(0, 0), (1, 0), (2, 0), (0, 1), (1, 1), (2, 1)]

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            TileLayout(0, 10)
        with pytest.raises(ValueError):
            TileLayout(10, 10, tile_width=0)
