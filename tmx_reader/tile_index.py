"""
Global tile id (GID) packing and flip flags

=============================================================================
RAW CELL VALUES
=============================================================================

Every cell of a tile layer is stored as an unsigned 32-bit integer. The
three highest bits are orientation flags, the remaining 29 bits are the
Global ID of the tile:

    bit 31  30  29  28 ........................... 0
        H   V   D   |<------------ GID ------------>|

    H = flipped horizontally
    V = flipped vertically
    D = flipped diagonally (swap X/Y axes, used for 90° rotations)

Examples:

    0x00000005  → GID 5, no flips
    0x80000005  → GID 5, mirrored left/right
    0xA0000005  → GID 5, H + D = rotated 90° clockwise
    0x00000000  → empty cell

Rotations in Tiled are expressed with these three flags only:

    rotate  90° = H + D
    rotate 180° = H + V
    rotate 270° = V + D

=============================================================================
EMPTY CELLS
=============================================================================

GID 0 means "no tile". No valid map assigns GID 0 to a real tile, because
every tileset has firstgid >= 1.

CSV data written by hand sometimes has holes ("1,2,,4"). Those tokens are
decoded as EMPTY_TOKEN_GID: a non-zero value that no tileset will ever
reach in practice, which TileCell.is_empty reports as empty.

=============================================================================
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np


FLIPPED_HORIZONTALLY_FLAG = 0x80000000
FLIPPED_VERTICALLY_FLAG = 0x40000000
FLIPPED_DIAGONALLY_FLAG = 0x20000000

FLIP_FLAGS_MASK = (FLIPPED_HORIZONTALLY_FLAG |
                   FLIPPED_VERTICALLY_FLAG |
                   FLIPPED_DIAGONALLY_FLAG)
GID_MASK = 0x1FFFFFFF

# Flags shifted down into the three lowest bits: H=4, V=2, D=1
FLIP_BITS_SHIFT = 29

# Placeholder for empty/unparseable CSV tokens
EMPTY_TOKEN_GID = GID_MASK

MAX_RAW_VALUE = 0xFFFFFFFF


@dataclass(frozen=True)
class TileCell:
    """
    A decoded cell: tile GID plus orientation flags.

    gid has the flag bits cleared. It is still a GLOBAL id; use a
    TilesetRegistry to turn it into (tileset, local id).
    """
    gid: int
    flip_horizontal: bool = False
    flip_vertical: bool = False
    flip_diagonal: bool = False

    @property
    def is_empty(self) -> bool:
        return self.gid == 0 or self.gid == EMPTY_TOKEN_GID

    @property
    def flip_bits(self) -> int:
        """Flags packed as H=4, V=2, D=1."""
        return ((4 if self.flip_horizontal else 0) |
                (2 if self.flip_vertical else 0) |
                (1 if self.flip_diagonal else 0))

    @property
    def raw(self) -> int:
        return encode_gid(self)


EMPTY_CELL = TileCell(0)


def decode_gid(raw: int) -> TileCell:
    """
    Split a raw 32-bit cell value into GID and flip flags.

    Total over all unsigned 32-bit values; never raises.
    """
    raw = int(raw) & MAX_RAW_VALUE
    if raw < FLIPPED_DIAGONALLY_FLAG:
        # No flag bits set - the common case
        return TileCell(raw) if raw else EMPTY_CELL
    return TileCell(
        raw & GID_MASK,
        raw & FLIPPED_HORIZONTALLY_FLAG != 0,
        raw & FLIPPED_VERTICALLY_FLAG != 0,
        raw & FLIPPED_DIAGONALLY_FLAG != 0,
    )


def encode_gid(cell: TileCell) -> int:
    """Pack a TileCell back into its raw 32-bit value."""
    raw = cell.gid & GID_MASK
    if cell.flip_horizontal:
        raw |= FLIPPED_HORIZONTALLY_FLAG
    if cell.flip_vertical:
        raw |= FLIPPED_VERTICALLY_FLAG
    if cell.flip_diagonal:
        raw |= FLIPPED_DIAGONALLY_FLAG
    return raw


def split_flags(raw: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Vectorised decode_gid over a whole array of raw values.

    Parameters:
    -----------
    raw : np.ndarray
        Raw cell values (any shape, any unsigned/signed int dtype)

    Returns:
    --------
    (gids, flip_bits) : Tuple[np.ndarray, np.ndarray]
        gids      - uint32 array, same shape, flags cleared
        flip_bits - uint8 array, same shape, H=4 V=2 D=1
    """
    raw = np.asarray(raw, dtype=np.uint32)
    gids = raw & np.uint32(GID_MASK)
    flip_bits = (raw >> np.uint32(FLIP_BITS_SHIFT)).astype(np.uint8)
    return gids, flip_bits
