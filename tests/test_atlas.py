"""Tests for tileset atlas geometry."""

import pytest

from tmx_reader.errors import InvalidTilesetError, TileIndexOutOfRangeError
from tmx_reader.tileset import Image, SourceRect, Tile, Tileset, atlas_columns, source_rect


class TestSourceRect:

    def test_grid_position(self):
        tileset = Tileset(name='t', tilewidth=32, tileheight=32,
                          tilecount=16, columns=4)
        assert source_rect(tileset, 5) == SourceRect(32, 32, 32, 32)

    def test_first_tile(self):
        tileset = Tileset(name='t', tilewidth=32, tileheight=32,
                          tilecount=16, columns=4)
        assert source_rect(tileset, 0) == SourceRect(0, 0, 32, 32)

    def test_margin_and_spacing(self):
        tileset = Tileset(name='t', tilewidth=16, tileheight=16,
                          tilecount=12, columns=3, margin=2, spacing=1)
        # col 2, row 1
        assert source_rect(tileset, 5) == SourceRect(36, 19, 16, 16)

    def test_columns_derived_from_image(self):
        # (100 - 2*2 + 1) // (16 + 1) = 5 columns
        tileset = Tileset(name='t', tilewidth=16, tileheight=16, tilecount=20,
                          margin=2, spacing=1, image=Image('t.png', 100, 70))
        assert atlas_columns(tileset) == 5
        assert source_rect(tileset, 5) == SourceRect(2, 19, 16, 16)

    def test_tile_with_own_image(self):
        tileset = Tileset(name='t', tilewidth=32, tileheight=32,
                          tilecount=3, columns=0)
        tileset.tiles[2] = Tile(id=2, image=Image('rock.png', 48, 20))
        assert source_rect(tileset, 2) == SourceRect(0, 0, 48, 20)

    def test_own_image_without_size_uses_tile_size(self):
        tileset = Tileset(name='t', tilewidth=32, tileheight=24, tilecount=1)
        tileset.tiles[0] = Tile(id=0, image=Image('rock.png'))
        assert source_rect(tileset, 0) == SourceRect(0, 0, 32, 24)

    @pytest.mark.parametrize("local_id", [16, 100, -1])
    def test_out_of_range(self, local_id):
        tileset = Tileset(name='t', tilewidth=32, tileheight=32,
                          tilecount=16, columns=4)
        with pytest.raises(TileIndexOutOfRangeError):
            source_rect(tileset, local_id)


class TestAtlasColumns:

    def test_explicit_columns_win(self):
        tileset = Tileset(name='t', tilewidth=16, tileheight=16, columns=7,
                          image=Image('t.png', 32, 32))
        assert atlas_columns(tileset) == 7

    def test_no_columns_and_no_image(self):
        tileset = Tileset(name='t', tilewidth=16, tileheight=16, tilecount=4)
        with pytest.raises(InvalidTilesetError):
            source_rect(tileset, 1)

    def test_image_narrower_than_a_tile(self):
        tileset = Tileset(name='t', tilewidth=64, tileheight=64, tilecount=1,
                          image=Image('t.png', 32, 32))
        with pytest.raises(InvalidTilesetError):
            atlas_columns(tileset)
