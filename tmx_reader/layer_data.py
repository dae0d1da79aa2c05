"""
Tile layer data decoding

=============================================================================
DATA ENCODINGS
=============================================================================

TMX stores the cells of a tile layer inside a <data> element. The
encoding attribute tells how:

1. CSV:
   <data encoding="csv">
       1,2,3,4,5,
       6,7,8,9,10
   </data>
   Human-readable, good for debugging, moderate file size.

2. Base64:
   <data encoding="base64" compression="zlib">
       eJxjZGBgYGJgYGZkYGBmZGBgBgAAjAAR
   </data>
   Little-endian uint32 values, optionally compressed, then Base64.

3. XML (deprecated, no encoding attribute):
   <data>
       <tile gid="1"/><tile gid="2"/><tile/>...
   </data>
   Verbose and slow; only old maps use it.

=============================================================================
COMPRESSION (with Base64 only)
=============================================================================

- zlib: 2-byte header + raw deflate stream. The header is skipped, not
        validated, and the deflate stream is inflated directly.
- gzip: gzip member, as written by Tiled's "Base64 (gzip compressed)".
- zstd: Zstandard frame, requires the zstandard package.

Missing compression and compression="none" are the same thing.

=============================================================================
RESULT
=============================================================================

Every decoder returns a read-only numpy array of uint32 raw cell values,
flags still included (see tile_index.py). Its length is checked against
the size the layer declares: downstream code indexes tiles with
y * width + x and relies on the array being complete.

=============================================================================
"""

import base64
import binascii
import gzip
import logging
import re
import zlib
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Tuple, Union

import numpy as np
import zstandard

from .errors import (
    LayerSizeMismatchError,
    MalformedEncodingError,
    UnsupportedCompressionError,
    UnsupportedEncodingError,
)
from .tile_index import (
    EMPTY_TOKEN_GID,
    MAX_RAW_VALUE,
    TileCell,
    decode_gid,
    split_flags,
)

logger = logging.getLogger(__name__)

Payload = Union[str, bytes, Iterable[Union[int, str, None]]]

# Bytes per cell in binary layer data
CELL_SIZE = 4

ZLIB_HEADER_SIZE = 2

_WHITESPACE = re.compile(r"\s+")


# =============================================================================
# DECOMPRESSION
# =============================================================================

def _inflate_zlib(data: bytes) -> bytes:
    """Skip the 2-byte zlib header and inflate the raw deflate stream."""
    inflater = zlib.decompressobj(-zlib.MAX_WBITS)
    try:
        out = inflater.decompress(data[ZLIB_HEADER_SIZE:])
        out += inflater.flush()
    except zlib.error as e:
        raise MalformedEncodingError(f"Corrupt zlib stream: {e}") from e
    if not inflater.eof:
        raise MalformedEncodingError("Truncated zlib stream")
    return out


def _gunzip(data: bytes) -> bytes:
    try:
        return gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as e:
        # BadGzipFile is an OSError subclass
        raise MalformedEncodingError(f"Corrupt gzip stream: {e}") from e


def _unzstd(data: bytes) -> bytes:
    dctx = zstandard.ZstdDecompressor()
    try:
        # stream_reader copes with frames that don't record their size
        with dctx.stream_reader(data) as reader:
            return reader.read()
    except zstandard.ZstdError as e:
        raise MalformedEncodingError(f"Corrupt zstd stream: {e}") from e


_DECOMPRESSORS = {
    'zlib': _inflate_zlib,
    'gzip': _gunzip,
    'zstd': _unzstd,
}


def decompress(data: bytes, compression: Optional[str]) -> bytes:
    """
    Decompress binary layer data.

    Parameters:
    -----------
    data : bytes
        Base64-decoded payload
    compression : str or None
        'zlib', 'gzip', 'zstd', 'none', '' or None

    Raises:
    -------
    UnsupportedCompressionError : unknown compression name
    MalformedEncodingError : truncated or corrupt stream
    """
    if not compression or compression == 'none':
        return data
    try:
        decompressor = _DECOMPRESSORS[compression]
    except KeyError:
        raise UnsupportedCompressionError(compression) from None
    return decompressor(data)


# =============================================================================
# PER-ENCODING DECODERS
# =============================================================================

def decode_csv(text: Union[str, bytes], lenient: bool = True,
               expected_count: Optional[int] = None) -> np.ndarray:
    """
    Decode CSV layer data into raw cell values.

    Tokens are split on commas; surrounding whitespace and newlines are
    ignored. Empty or non-numeric tokens ("1,2,,4") become EMPTY_TOKEN_GID
    when lenient, MalformedEncodingError otherwise.

    A trailing comma ("1,2,3,") is a terminator only when the data has
    exactly one token more than expected_count; otherwise the empty last
    token is a cell like any other. Without expected_count a single
    trailing empty token is always dropped.
    """
    if isinstance(text, bytes):
        text = text.decode('utf-8')
    text = text.strip()
    if not text:
        return np.zeros(0, dtype=np.uint32)

    tokens = text.split(',')
    if len(tokens) > 1 and not tokens[-1].strip():
        if expected_count is None or len(tokens) == expected_count + 1:
            tokens.pop()

    values = []
    replaced = 0
    for token in tokens:
        token = token.strip()
        if token.isascii() and token.isdigit():
            value = int(token)
            if value > MAX_RAW_VALUE:
                raise MalformedEncodingError(
                    f"CSV value {token} does not fit in 32 bits")
            values.append(value)
        elif lenient:
            values.append(EMPTY_TOKEN_GID)
            replaced += 1
        else:
            raise MalformedEncodingError(f"Invalid CSV token: {token!r}")

    if replaced:
        logger.debug("Replaced %d empty/invalid CSV tokens with empty cells",
                     replaced)
    return np.array(values, dtype=np.uint32)


def decode_base64(text: Union[str, bytes],
                  compression: Optional[str] = None) -> np.ndarray:
    """
    Decode Base64 (optionally compressed) layer data into raw cell values.

    The decompressed bytes are read as consecutive little-endian uint32
    values. A trailing group shorter than 4 bytes is dropped.
    """
    if isinstance(text, bytes):
        text = text.decode('ascii', errors='replace')
    text = _WHITESPACE.sub('', text)
    try:
        raw_data = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedEncodingError(f"Invalid base64 layer data: {e}") from e

    raw_data = decompress(raw_data, compression)

    usable = len(raw_data) - len(raw_data) % CELL_SIZE
    if usable != len(raw_data):
        # Known quirk kept for compatibility: partial groups are ignored
        logger.warning("Dropping %d trailing byte(s) of layer data",
                       len(raw_data) - usable)
    return np.frombuffer(raw_data[:usable], dtype='<u4').astype(np.uint32)


def decode_xml_tiles(gids: Iterable[Union[int, str, None]]) -> np.ndarray:
    """Decode the deprecated <tile gid="..."/> form. Missing gid means 0."""
    values = []
    for gid in gids:
        try:
            value = int(gid) if gid not in (None, '') else 0
        except (TypeError, ValueError) as e:
            raise MalformedEncodingError(f"Invalid tile gid: {gid!r}") from e
        if not 0 <= value <= MAX_RAW_VALUE:
            raise MalformedEncodingError(f"Tile gid {value} out of range")
        values.append(value)
    return np.array(values, dtype=np.uint32)


# =============================================================================
# ENTRY POINT
# =============================================================================

def decode_layer_data(encoding: Optional[str], compression: Optional[str],
                      payload: Payload, expected_count: int,
                      lenient: bool = True) -> np.ndarray:
    """
    Decode a <data> (or <chunk>) payload into raw cell values.

    Parameters:
    -----------
    encoding : str or None
        'csv', 'base64', or None/'xml' for <tile> elements
    compression : str or None
        Only applied to base64, but always checked: an unknown name is
        an error whatever the encoding
    payload : str, bytes or iterable
        Element text for csv/base64, gid attribute values for xml
    expected_count : int
        width * height of the region being decoded
    lenient : bool
        Tolerate empty/non-numeric CSV tokens

    Returns:
    --------
    np.ndarray : read-only uint32 array of length expected_count

    Raises:
    -------
    UnsupportedEncodingError, UnsupportedCompressionError,
    MalformedEncodingError, LayerSizeMismatchError
    """
    if compression and compression != 'none' and compression not in _DECOMPRESSORS:
        raise UnsupportedCompressionError(compression)

    if encoding == 'csv':
        values = decode_csv(payload, lenient=lenient,
                            expected_count=expected_count)
    elif encoding == 'base64':
        values = decode_base64(payload, compression)
    elif encoding is None or encoding == 'xml':
        if isinstance(payload, (str, bytes)):
            raise MalformedEncodingError(
                "XML layer data must be given as <tile> gid values")
        values = decode_xml_tiles(payload)
    else:
        raise UnsupportedEncodingError(encoding)

    if len(values) != expected_count:
        raise LayerSizeMismatchError(expected_count, len(values))

    values.flags.writeable = False
    return values


# =============================================================================
# TILE REGION
# =============================================================================

@dataclass(frozen=True, eq=False)
class TileRegion:
    """
    Rectangular block of decoded cells, row-major, top-left origin.

    Used for the whole data of a finite tile layer and for each chunk of
    an infinite one. raw keeps the flag bits; use cell() or gids /
    flip_bits to get them apart.
    """
    width: int
    height: int
    raw: np.ndarray

    @classmethod
    def from_payload(cls, width: int, height: int, encoding: Optional[str],
                     compression: Optional[str], payload: Payload,
                     lenient: bool = True) -> 'TileRegion':
        values = decode_layer_data(encoding, compression, payload,
                                   width * height, lenient=lenient)
        grid = values.reshape((height, width))
        grid.flags.writeable = False
        return cls(width=width, height=height, raw=grid)

    @classmethod
    def empty(cls, width: int, height: int) -> 'TileRegion':
        grid = np.zeros((height, width), dtype=np.uint32)
        grid.flags.writeable = False
        return cls(width=width, height=height, raw=grid)

    def contains(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def raw_at(self, x: int, y: int) -> int:
        """Raw value at (x, y); 0 outside the region."""
        if self.contains(x, y):
            return int(self.raw[y, x])
        return 0

    def cell(self, x: int, y: int) -> TileCell:
        return decode_gid(self.raw_at(x, y))

    @property
    def gids(self) -> np.ndarray:
        """GIDs with flags cleared, shape (height, width)."""
        return split_flags(self.raw)[0]

    @property
    def flip_bits(self) -> np.ndarray:
        """Per-cell flags (H=4, V=2, D=1), shape (height, width)."""
        return split_flags(self.raw)[1]

    def __iter__(self) -> Iterator[Tuple[int, int, TileCell]]:
        """Yield (x, y, cell) for every non-empty cell."""
        for y in range(self.height):
            for x in range(self.width):
                value = int(self.raw[y, x])
                if value:
                    cell = decode_gid(value)
                    if not cell.is_empty:
                        yield x, y, cell
