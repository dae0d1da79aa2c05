"""
Global tile id → tileset resolution

=============================================================================
GLOBAL TILE IDs (GIDs)
=============================================================================

Tiles are referenced by Global IDs (GIDs) across all tilesets of a map:

    Tileset A (firstgid=1,   tilecount=100): GIDs   1-100
    Tileset B (firstgid=101, tilecount=50):  GIDs 101-150

    GID 0   = empty tile (no graphic)
    GID 50  = tile 49 of tileset A (50 - 1)
    GID 150 = tile 49 of tileset B (150 - 101)

Local tile ID within tileset = GID - firstgid

=============================================================================
ALGORITHM
=============================================================================

References are sorted by firstgid once, when the registry is built (the
document order of <tileset> elements is not guaranteed to follow GID
order). A GID belongs to the reference with the largest firstgid <= gid,
found with a binary search.

The owner must also actually HAVE that tile: a local id >= tilecount is
an error, even for the last tileset. No tileset silently catches every
GID above its firstgid.

=============================================================================
"""

import bisect
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple

from .errors import TileIndexOutOfRangeError, UnresolvedTileError
from .tile_index import GID_MASK, TileCell
from .tileset import SourceRect, Tile, Tileset, source_rect


@dataclass(frozen=True, eq=False)
class TilesetRef:
    """
    A tileset as used by one map.

    firstgid: GID of the tileset's tile 0 in this map
    tileset:  the resolved tileset (inline or loaded from its TSX)
    source:   TSX path as written in the map, None for inline tilesets
    """
    firstgid: int
    tileset: Tileset
    source: Optional[str] = None

    @property
    def lastgid(self) -> int:
        """Last GID owned by this tileset (firstgid - 1 if it is empty)."""
        return self.firstgid + self.tileset.tilecount - 1


class TilesetRegistry:
    """
    Read-only lookup from GIDs to tilesets.

    Usage:
    ------
        registry = TilesetRegistry(tiled_map.tilesets)
        ref, local_id = registry.resolve(cell.gid)
        rect = source_rect(ref.tileset, local_id)

    or in one step:

        rect = registry.source_rect(cell.gid)
    """

    def __init__(self, refs: Iterable[TilesetRef]):
        self._refs: List[TilesetRef] = sorted(refs, key=lambda r: r.firstgid)
        self._firstgids: List[int] = [r.firstgid for r in self._refs]

    def __len__(self) -> int:
        return len(self._refs)

    def __iter__(self) -> Iterator[TilesetRef]:
        return iter(self._refs)

    @property
    def refs(self) -> Tuple[TilesetRef, ...]:
        return tuple(self._refs)

    def find(self, gid: int) -> Optional[TilesetRef]:
        """
        Reference with the largest firstgid <= gid, or None.

        Does not check the tile count; use resolve() for that.
        """
        gid &= GID_MASK
        index = bisect.bisect_right(self._firstgids, gid) - 1
        if gid == 0 or index < 0:
            return None
        return self._refs[index]

    def resolve(self, gid: int) -> Tuple[TilesetRef, int]:
        """
        Find the tileset owning a GID and the tile's local id.

        Parameters:
        -----------
        gid : int
            Global tile id. Flip flag bits, if present, are ignored.

        Returns:
        --------
        (TilesetRef, int) : owning reference and local tile id

        Raises:
        -------
        UnresolvedTileError : gid is 0, there are no tilesets, or gid is
                              below every firstgid
        TileIndexOutOfRangeError : the owner has fewer tiles than needed
        """
        gid &= GID_MASK
        if not self._refs:
            raise UnresolvedTileError(gid, "map has no tilesets")
        if gid == 0:
            raise UnresolvedTileError(gid, "GID 0 is the empty tile")

        ref = self.find(gid)
        if ref is None:
            raise UnresolvedTileError(
                gid, f"below the first tileset (firstgid={self._firstgids[0]})")

        local_id = gid - ref.firstgid
        if local_id >= ref.tileset.tilecount:
            raise TileIndexOutOfRangeError(local_id, ref.tileset.tilecount,
                                           ref.tileset.name)
        return ref, local_id

    def resolve_cell(self, cell: TileCell) -> Tuple[TilesetRef, int]:
        return self.resolve(cell.gid)

    def get_tile(self, gid: int) -> Optional[Tile]:
        """
        Per-tile metadata (properties, animation, ...) for a GID.

        Returns None for tiles without metadata. Resolution errors
        propagate.
        """
        ref, local_id = self.resolve(gid)
        return ref.tileset.get_tile(local_id)

    def source_rect(self, gid: int) -> SourceRect:
        """Pixel rectangle of a GID within its tileset image."""
        ref, local_id = self.resolve(gid)
        return source_rect(ref.tileset, local_id)
