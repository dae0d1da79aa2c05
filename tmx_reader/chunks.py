"""
Chunked tile data for infinite maps

=============================================================================
INFINITE MAPS
=============================================================================

A map saved with infinite="1" has no fixed size. Its tile layers store
their cells in chunks, each one a small rectangle with its own origin:

    <layer id="1" name="Ground" width="32" height="16">
        <data encoding="csv">
            <chunk x="-16" y="0" width="16" height="16">1,2,3,...</chunk>
            <chunk x="0" y="0" width="16" height="16">4,5,6,...</chunk>
        </data>
    </layer>

         x=-16           x=0            x=16
          +--------------+--------------+
    y=0   |   chunk A    |   chunk B    |    (nothing loaded here)
          |              |              |
    y=16  +--------------+--------------+

- Origins can be negative.
- Chunks never overlap.
- Chunks don't have to cover a full rectangle: a gap is "no tiles".
- A chunk has no encoding of its own, it uses the one of its <data>.

Chunks are decoded one by one and kept apart. Nothing here builds a
dense grid out of them; an infinite map has no upper bound on its size,
so callers that want one can build it from chunk_bounds().

=============================================================================
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

from .layer_data import Payload, TileRegion
from .tile_index import TileCell


@dataclass(frozen=True)
class ChunkDescriptor:
    """Undecoded <chunk> element: origin, size and the raw payload."""
    x: int
    y: int
    width: int
    height: int
    payload: Payload


@dataclass(frozen=True, eq=False)
class Chunk:
    """A decoded chunk. (x, y) is the map tile coordinate of its top-left cell."""
    x: int
    y: int
    width: int
    height: int
    region: TileRegion

    def contains(self, x: int, y: int) -> bool:
        return (self.x <= x < self.x + self.width and
                self.y <= y < self.y + self.height)

    def cell_at(self, x: int, y: int) -> Optional[TileCell]:
        """Cell at MAP coordinate (x, y), or None if outside this chunk."""
        if not self.contains(x, y):
            return None
        return self.region.cell(x - self.x, y - self.y)


def decode_chunk(descriptor: ChunkDescriptor, encoding: Optional[str],
                 compression: Optional[str],
                 lenient: bool = True) -> Chunk:
    region = TileRegion.from_payload(
        descriptor.width, descriptor.height,
        encoding, compression, descriptor.payload, lenient=lenient
    )
    return Chunk(descriptor.x, descriptor.y,
                 descriptor.width, descriptor.height, region)


def decode_chunks(descriptors: Iterable[ChunkDescriptor],
                  encoding: Optional[str], compression: Optional[str],
                  lenient: bool = True) -> Tuple[Chunk, ...]:
    """
    Decode every chunk of a layer independently.

    Parameters:
    -----------
    descriptors : iterable of ChunkDescriptor
        Chunks in document order
    encoding, compression : str or None
        Inherited from the parent <data> element

    Returns:
    --------
    Tuple[Chunk, ...] : decoded chunks, in document order

    The first chunk that fails to decode aborts the whole layer; a layer
    is never returned with some of its chunks missing.
    """
    return tuple(decode_chunk(d, encoding, compression, lenient=lenient)
                 for d in descriptors)


# =============================================================================
# LOOKUP HELPERS
# =============================================================================

def find_chunk(chunks: Sequence[Chunk], x: int, y: int) -> Optional[Chunk]:
    """Return the chunk covering map tile (x, y), if any."""
    for chunk in chunks:
        if chunk.contains(x, y):
            return chunk
    return None


def cell_at(chunks: Sequence[Chunk], x: int, y: int) -> Optional[TileCell]:
    """
    Cell at map tile (x, y) of an infinite layer.

    Returns None when no chunk covers the position. A covered but empty
    cell is returned as a TileCell with gid 0.
    """
    chunk = find_chunk(chunks, x, y)
    if chunk is None:
        return None
    return chunk.cell_at(x, y)


def chunk_bounds(chunks: Sequence[Chunk]) -> Tuple[int, int, int, int]:
    """
    Bounding rectangle (min_x, min_y, max_x, max_y) of a set of chunks.

    max_x/max_y are exclusive. An empty sequence gives (0, 0, 0, 0).
    """
    if not chunks:
        return 0, 0, 0, 0
    return (min(c.x for c in chunks),
            min(c.y for c in chunks),
            max(c.x + c.width for c in chunks),
            max(c.y + c.height for c in chunks))
