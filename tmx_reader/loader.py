"""
Reading TMX maps and TSX tilesets from disk or from strings

=============================================================================
EMBEDDED vs EXTERNAL TILESETS
=============================================================================

EMBEDDED: Tileset data is inside the TMX file
    <tileset firstgid="1" name="terrain" tilewidth="32" ...>
        <image source="terrain.png"/>
    </tileset>

EXTERNAL (TSX): Tileset data is in a separate .tsx file
    <tileset firstgid="1" source="terrain.tsx"/>

    The source path is relative to the TMX file. firstgid always comes
    from the TMX: the same TSX can be used by many maps.

Image paths inside a TSX are relative to the TSX, not to the map. When
image sizes are probed (LoaderConfig.probe_image_sizes) the right base
directory is used for each.

=============================================================================
"""

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Iterator, Optional, Union

from PIL import Image as PILImage

from .config import DEFAULT_CONFIG, LoaderConfig
from .errors import MapParseError, TilesetNotFoundError
from .model import ImageLayer, LayerGroup, TiledMap, layers_from_xml
from .properties import parse_properties
from .registry import TilesetRef
from .tileset import Image, Tileset

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _parse_xml(text: Union[str, bytes], what: str) -> ET.Element:
    try:
        return ET.fromstring(text)
    except ET.ParseError as e:
        raise MapParseError(f"Unable to parse {what}: {e}") from e


def _read_xml(path: Path, what: str) -> ET.Element:
    try:
        return ET.parse(path).getroot()
    except ET.ParseError as e:
        raise MapParseError(f"Unable to parse {what} {path}: {e}") from e


# =============================================================================
# TILESETS
# =============================================================================

def parse_tileset(xml_text: Union[str, bytes],
                  base_dir: Optional[PathLike] = None,
                  config: Optional[LoaderConfig] = None) -> Tileset:
    """Parse the content of a TSX file."""
    config = config or DEFAULT_CONFIG
    root = _parse_xml(xml_text, "tileset")
    return _tileset_from_root(root, Path(base_dir) if base_dir else None,
                              config)


def load_tileset(filepath: PathLike,
                 config: Optional[LoaderConfig] = None) -> Tileset:
    """Load an external tileset (TSX) file."""
    config = config or DEFAULT_CONFIG
    filepath = Path(filepath)
    if not filepath.exists():
        raise TilesetNotFoundError(filepath)
    root = _read_xml(filepath, "tileset")
    tileset = _tileset_from_root(root, filepath.parent, config)
    logger.debug("Loaded tileset %s (%d tiles)", filepath, tileset.tilecount)
    return tileset


def _tileset_from_root(root: ET.Element, base_dir: Optional[Path],
                       config: LoaderConfig) -> Tileset:
    if root.tag != 'tileset':
        raise MapParseError(f"Expected <tileset> root, found <{root.tag}>")
    tileset = Tileset.from_xml(root)
    if config.probe_image_sizes and base_dir is not None:
        _probe_tileset_images(tileset, base_dir)
    return tileset


def _tileset_ref_from_xml(elem: ET.Element, map_dir: Optional[Path],
                          tiled_map: TiledMap,
                          config: LoaderConfig) -> TilesetRef:
    firstgid = int(elem.get('firstgid', 1))
    source = elem.get('source')

    if not source:
        tileset = Tileset.from_xml(elem)
        if config.probe_image_sizes and map_dir is not None:
            _probe_tileset_images(tileset, map_dir)
        return TilesetRef(firstgid=firstgid, tileset=tileset)

    tsx_path = (map_dir / source) if map_dir is not None else Path(source)
    try:
        tileset = load_tileset(tsx_path, config)
    except TilesetNotFoundError:
        if not config.allow_missing_tilesets:
            raise
        logger.warning("External tileset not found: %s", tsx_path)
        tileset = Tileset(
            name=Path(source).stem,
            tilewidth=tiled_map.tilewidth,
            tileheight=tiled_map.tileheight,
        )
    return TilesetRef(firstgid=firstgid, tileset=tileset, source=source)


# =============================================================================
# IMAGE SIZE PROBING
# =============================================================================

def probe_image_size(image: Image, base_dir: Path) -> bool:
    """
    Fill in image.width/height from the image file header.

    Pillow only reads the header on open, pixel data is never decoded.
    Returns False (and leaves the image untouched) if the file cannot be
    read.
    """
    if image.width and image.height:
        return True
    path = base_dir / image.source
    try:
        with PILImage.open(path) as img:
            width, height = img.size
    except (OSError, ValueError) as e:
        logger.warning("Could not read size of image %s: %s", path, e)
        return False
    image.width = image.width or width
    image.height = image.height or height
    return True


def _probe_tileset_images(tileset: Tileset, base_dir: Path):
    if tileset.image is not None:
        probe_image_size(tileset.image, base_dir)
    for tile in tileset.tiles.values():
        if tile.image is not None:
            probe_image_size(tile.image, base_dir)


def _iter_image_layers(layers) -> Iterator[ImageLayer]:
    for layer in layers:
        if isinstance(layer, ImageLayer):
            yield layer
        elif isinstance(layer, LayerGroup):
            yield from _iter_image_layers(layer.layers)


# =============================================================================
# MAPS
# =============================================================================

def parse_map(xml_text: Union[str, bytes],
              base_dir: Optional[PathLike] = None,
              config: Optional[LoaderConfig] = None) -> TiledMap:
    """
    Parse the content of a TMX file.

    Parameters:
    -----------
    xml_text : str or bytes
        The TMX document
    base_dir : path, optional
        Directory the map lives in; external tilesets and images are
        resolved against it. Without it, sources are used as given.
    config : LoaderConfig, optional

    Raises:
    -------
    MapParseError : not well-formed XML, or root is not <map>
    TiledError subclasses from tile data decoding
    """
    config = config or DEFAULT_CONFIG
    root = _parse_xml(xml_text, "map")
    return _map_from_root(root, Path(base_dir) if base_dir else None, config)


def load_map(filepath: PathLike,
             config: Optional[LoaderConfig] = None) -> TiledMap:
    """
    Load a TMX file from disk.

    Raises:
    -------
    FileNotFoundError : If TMX file doesn't exist
    MapParseError : If the document is malformed
    """
    config = config or DEFAULT_CONFIG
    filepath = Path(filepath)
    root = _read_xml(filepath, "map")
    tiled_map = _map_from_root(root, filepath.parent, config)
    logger.debug("Loaded map %s: %dx%d, %d tilesets, %d layers",
                 filepath, tiled_map.width, tiled_map.height,
                 len(tiled_map.tilesets), len(tiled_map.layers))
    return tiled_map


def _map_from_root(root: ET.Element, map_dir: Optional[Path],
                   config: LoaderConfig) -> TiledMap:
    if root.tag != 'map':
        raise MapParseError(f"Expected <map> root, found <{root.tag}>")

    version = root.get('version', '1.0')
    tiled_map = TiledMap(
        version=version,
        tiledversion=root.get('tiledversion', version),
        orientation=root.get('orientation', 'orthogonal'),
        renderorder=root.get('renderorder', 'right-down'),
        width=int(root.get('width', 0)),
        height=int(root.get('height', 0)),
        tilewidth=int(root.get('tilewidth', 0)),
        tileheight=int(root.get('tileheight', 0)),
        infinite=root.get('infinite', '0') == '1',
        backgroundcolor=root.get('backgroundcolor'),
        properties=parse_properties(root),
    )

    for tileset_elem in root.findall('tileset'):
        tiled_map.tilesets.append(
            _tileset_ref_from_xml(tileset_elem, map_dir, tiled_map, config))

    tiled_map.layers = layers_from_xml(root, config, tiled_map.infinite)

    if config.probe_image_sizes and map_dir is not None:
        for layer in _iter_image_layers(tiled_map.layers):
            if layer.image is not None:
                probe_image_size(layer.image, map_dir)

    return tiled_map
