"""Loader options"""

from dataclasses import dataclass


@dataclass(frozen=True)
class LoaderConfig:
    """
    Options controlling how tolerant the loader is.

    lenient_csv:
        Empty or non-numeric CSV tokens become empty cells instead of
        raising MalformedEncodingError. Hand-edited maps often have them.
    allow_missing_tilesets:
        A missing external TSX is replaced by an empty placeholder tileset
        (and a warning is logged) instead of raising TilesetNotFoundError.
        Tiles of that tileset then fail to resolve.
    probe_image_sizes:
        When an <image> has no width/height, open the image file with
        Pillow and read its size from the header. Needed to derive the
        column count of old tilesets that lack the columns attribute.
    """
    lenient_csv: bool = True
    allow_missing_tilesets: bool = True
    probe_image_sizes: bool = False


DEFAULT_CONFIG = LoaderConfig()
