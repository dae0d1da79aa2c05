"""
TMX Reader - typed loader for Tiled maps

Requisitos:
    pip install numpy pillow zstandard
"""

from .chunks import Chunk, ChunkDescriptor, cell_at, chunk_bounds, decode_chunks, find_chunk
from .config import DEFAULT_CONFIG, LoaderConfig
from .errors import (
    InvalidTilesetError,
    LayerSizeMismatchError,
    MalformedEncodingError,
    MapParseError,
    TiledError,
    TileIndexOutOfRangeError,
    TilesetNotFoundError,
    UnresolvedTileError,
    UnsupportedCompressionError,
    UnsupportedEncodingError,
)
from .layer_data import TileRegion, decode_layer_data
from .loader import load_map, load_tileset, parse_map, parse_tileset
from .model import (
    ImageLayer, Layer, LayerGroup, LayerInfo, MapObject,
    ObjectGroup, ObjectShape, TiledMap, TileLayer
)
from .properties import Property
from .registry import TilesetRef, TilesetRegistry
from .tile_index import EMPTY_TOKEN_GID, TileCell, decode_gid, encode_gid
from .tileset import AnimationFrame, Image, SourceRect, Tile, Tileset, source_rect

__version__ = "1.0.0"
__all__ = [
    "TiledMap",
    "load_map",
    "parse_map",
    "load_tileset",
    "parse_tileset",
    "LoaderConfig",
    "DEFAULT_CONFIG",
    "Layer",
    "LayerInfo",
    "TileLayer",
    "ObjectGroup",
    "ImageLayer",
    "LayerGroup",
    "MapObject",
    "ObjectShape",
    "Property",
    "Tileset",
    "Tile",
    "Image",
    "AnimationFrame",
    "SourceRect",
    "source_rect",
    "TilesetRef",
    "TilesetRegistry",
    "TileCell",
    "decode_gid",
    "encode_gid",
    "EMPTY_TOKEN_GID",
    "TileRegion",
    "decode_layer_data",
    "Chunk",
    "ChunkDescriptor",
    "decode_chunks",
    "find_chunk",
    "cell_at",
    "chunk_bounds",
    "TiledError",
    "UnsupportedEncodingError",
    "UnsupportedCompressionError",
    "MalformedEncodingError",
    "LayerSizeMismatchError",
    "UnresolvedTileError",
    "TileIndexOutOfRangeError",
    "InvalidTilesetError",
    "MapParseError",
    "TilesetNotFoundError",
]
