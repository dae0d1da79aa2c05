"""
Exceptions raised while loading and decoding Tiled maps

Every error raised by this package derives from TiledError, so a loader
that wants to skip a broken layer instead of aborting the whole map can
catch that single class.
"""

from typing import Optional


class TiledError(Exception):
    """Base class for every error raised by tmx_reader."""


# =============================================================================
# LAYER DATA ERRORS
# =============================================================================

class UnsupportedEncodingError(TiledError):
    """The <data> element names an encoding we cannot read."""

    def __init__(self, encoding: Optional[str]):
        super().__init__(
            f"Unsupported layer data encoding: {encoding!r} "
            "(supported: csv, base64, xml)"
        )
        self.encoding = encoding


class UnsupportedCompressionError(TiledError):
    """The <data> element names a compression we cannot decompress."""

    def __init__(self, compression: str):
        super().__init__(
            f"{compression} compression is not supported "
            "(supported: zlib, gzip, zstd)"
        )
        self.compression = compression


class MalformedEncodingError(TiledError):
    """
    Payload does not parse as its declared encoding.

    Raised for invalid base64 text, truncated or corrupt compressed
    streams and, in strict mode, non-numeric CSV tokens.
    """


class LayerSizeMismatchError(TiledError):
    """Decoded cell count differs from the declared region area."""

    def __init__(self, expected: int, actual: int):
        super().__init__(
            f"Layer data size mismatch: expected {expected} cells, "
            f"decoded {actual}"
        )
        self.expected = expected
        self.actual = actual


# =============================================================================
# TILE RESOLUTION ERRORS
# =============================================================================

class UnresolvedTileError(TiledError):
    """No tileset owns the given global tile id."""

    def __init__(self, gid: int, reason: str = ""):
        message = f"Cannot resolve GID {gid}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.gid = gid


class TileIndexOutOfRangeError(TiledError):
    """A local tile id is beyond the tileset's declared tile count."""

    def __init__(self, local_id: int, tilecount: int, tileset_name: str = ""):
        where = f" in tileset {tileset_name!r}" if tileset_name else ""
        super().__init__(
            f"Tile {local_id} out of range{where} (tilecount={tilecount})"
        )
        self.local_id = local_id
        self.tilecount = tilecount


class InvalidTilesetError(TiledError):
    """Tileset metadata is not enough to locate tiles in its atlas."""


# =============================================================================
# DOCUMENT ERRORS
# =============================================================================

class MapParseError(TiledError):
    """The document is not a readable TMX/TSX file."""


class TilesetNotFoundError(TiledError):
    """An external tileset (TSX) referenced by the map does not exist."""

    def __init__(self, path):
        super().__init__(f"External tileset not found: {path}")
        self.path = path
