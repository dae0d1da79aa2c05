"""Tests for GID → tileset resolution."""

import pytest

from tmx_reader.errors import TileIndexOutOfRangeError, UnresolvedTileError
from tmx_reader.registry import TilesetRef, TilesetRegistry
from tmx_reader.tile_index import FLIPPED_HORIZONTALLY_FLAG, decode_gid
from tmx_reader.tileset import Image, Tile, Tileset


def make_tileset(name, tilecount, columns=5):
    return Tileset(name=name, tilewidth=16, tileheight=16,
                   tilecount=tilecount, columns=columns)


@pytest.fixture
def tilesets():
    a = make_tileset('a', 10)
    b = make_tileset('b', 5)
    return a, b


@pytest.fixture
def registry(tilesets):
    a, b = tilesets
    return TilesetRegistry([TilesetRef(1, a), TilesetRef(11, b)])


class TestResolve:

    @pytest.mark.parametrize("gid,name,local_id", [
        (1, 'a', 0),
        (10, 'a', 9),
        (11, 'b', 0),
        (15, 'b', 4),
    ])
    def test_owner_and_local_id(self, registry, gid, name, local_id):
        ref, local = registry.resolve(gid)
        assert ref.tileset.name == name
        assert local == local_id

    def test_past_the_last_tileset(self, registry):
        with pytest.raises(TileIndexOutOfRangeError) as excinfo:
            registry.resolve(16)
        assert excinfo.value.local_id == 5
        assert excinfo.value.tilecount == 5

    def test_gap_between_tilesets(self, tilesets):
        a, b = tilesets
        registry = TilesetRegistry([TilesetRef(1, a), TilesetRef(100, b)])
        with pytest.raises(TileIndexOutOfRangeError):
            registry.resolve(50)

    def test_gid_zero(self, registry):
        with pytest.raises(UnresolvedTileError):
            registry.resolve(0)

    def test_below_first_firstgid(self, tilesets):
        registry = TilesetRegistry([TilesetRef(5, tilesets[0])])
        with pytest.raises(UnresolvedTileError) as excinfo:
            registry.resolve(3)
        assert excinfo.value.gid == 3

    def test_no_tilesets(self):
        registry = TilesetRegistry([])
        assert len(registry) == 0
        with pytest.raises(UnresolvedTileError):
            registry.resolve(1)

    def test_unsorted_input(self, tilesets):
        a, b = tilesets
        registry = TilesetRegistry([TilesetRef(11, b), TilesetRef(1, a)])
        assert [r.firstgid for r in registry] == [1, 11]
        assert registry.resolve(12)[0].tileset is b

    def test_flip_flags_ignored(self, registry):
        ref, local = registry.resolve(FLIPPED_HORIZONTALLY_FLAG | 12)
        assert ref.tileset.name == 'b'
        assert local == 1

    def test_resolve_cell(self, registry):
        ref, local = registry.resolve_cell(decode_gid(0x40000003))
        assert (ref.tileset.name, local) == ('a', 2)


class TestFind:

    def test_find_does_not_check_tilecount(self, registry):
        assert registry.find(16).tileset.name == 'b'

    def test_find_empty(self, registry):
        assert registry.find(0) is None

    def test_lastgid(self, registry):
        assert [r.lastgid for r in registry.refs] == [10, 15]


class TestTileMetadata:

    def test_get_tile(self, tilesets):
        a, b = tilesets
        b.tiles[2] = Tile(id=2, type='door')
        registry = TilesetRegistry([TilesetRef(1, a), TilesetRef(11, b)])
        assert registry.get_tile(13).type == 'door'
        assert registry.get_tile(14) is None

    def test_source_rect(self, registry):
        # gid 7 = tile 6 of 'a': column 1, row 1
        rect = registry.source_rect(7)
        assert (rect.x, rect.y) == (16, 16)

    def test_source_rect_image_tile(self):
        tileset = make_tileset('c', 2)
        tileset.tiles[1] = Tile(id=1, image=Image('tree.png', 40, 64))
        registry = TilesetRegistry([TilesetRef(1, tileset)])
        rect = registry.source_rect(2)
        assert (rect.x, rect.y, rect.width, rect.height) == (0, 0, 40, 64)
