"""
In-memory model of a Tiled map (TMX)

=============================================================================
TMX FILE STRUCTURE
=============================================================================

    <map version="1.10" orientation="orthogonal" width="100" height="100"
         tilewidth="32" tileheight="32">

        <tileset firstgid="1" source="terrain.tsx"/>

        <layer id="1" name="Ground" width="100" height="100">
            <data encoding="csv">
                1,2,3,4,5,...
            </data>
        </layer>

        <objectgroup id="2" name="Collisions">
            <object id="1" x="100" y="200" width="32" height="32"/>
        </objectgroup>

        <imagelayer id="3" name="Sky">
            <image source="sky.png"/>
        </imagelayer>

        <group id="4" name="Decor">
            <layer .../>
        </group>
    </map>

=============================================================================
LAYER VARIANTS
=============================================================================

Every layer kind shares the same basic attributes (id, name, visibility,
opacity, offsets, parallax, tint, properties). Those live in a LayerInfo
record; each variant holds its LayerInfo plus only its own fields:

    TileLayer    - grid of cells (or chunks on infinite maps)
    ObjectGroup  - list of MapObjects
    ImageLayer   - a single image
    LayerGroup   - nested layers (folder)

Check layer.kind (or isinstance) to tell them apart.

=============================================================================
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple, Union, TYPE_CHECKING

from .chunks import Chunk, ChunkDescriptor, decode_chunks, find_chunk
from .config import DEFAULT_CONFIG, LoaderConfig
from .layer_data import TileRegion
from .properties import Property, parse_properties
from .registry import TilesetRef, TilesetRegistry
from .tile_index import TileCell, decode_gid
from .tileset import Image

if TYPE_CHECKING:
    from .tileset import Tileset


# =============================================================================
# SHARED LAYER ATTRIBUTES
# =============================================================================

@dataclass
class LayerInfo:
    """
    Attributes common to every layer kind.

    visible and locked are editor flags: they are read and passed through,
    nothing in this package acts on them.
    """
    name: str = ""
    id: int = 0
    visible: bool = True
    locked: bool = False
    opacity: float = 1.0
    offsetx: float = 0
    offsety: float = 0
    parallaxx: float = 1.0
    parallaxy: float = 1.0
    tintcolor: Optional[str] = None
    properties: Dict[str, Property] = field(default_factory=dict)

    @classmethod
    def from_xml(cls, elem: ET.Element) -> 'LayerInfo':
        # x/y are the pre-0.15 names of offsetx/offsety
        return cls(
            name=elem.get('name', ''),
            id=int(elem.get('id', 0)),
            visible=elem.get('visible', '1') == '1',
            locked=elem.get('locked', '0') == '1',
            opacity=float(elem.get('opacity', 1.0)),
            offsetx=float(elem.get('offsetx', elem.get('x', 0))),
            offsety=float(elem.get('offsety', elem.get('y', 0))),
            parallaxx=float(elem.get('parallaxx', 1.0)),
            parallaxy=float(elem.get('parallaxy', 1.0)),
            tintcolor=elem.get('tintcolor'),
            properties=parse_properties(elem),
        )


# =============================================================================
# TILE LAYER
# =============================================================================

@dataclass
class TileLayer:
    """
    Tile layer - a grid of tile references.

    ==========================================================================
    TILE ACCESS
    ==========================================================================

        cell = layer.cell_at(5, 10)      # TileCell or None
        gid = layer.get_tile_gid(5, 10)  # int, 0 when empty/outside

    Finite maps keep all cells in one TileRegion (region). Infinite maps
    keep a tuple of Chunks instead and region is None; coordinates are
    then map tile coordinates and can be negative.

    ==========================================================================
    """
    info: LayerInfo
    width: int                                       # Width in tiles
    height: int                                      # Height in tiles
    region: Optional[TileRegion] = None              # Finite maps
    chunks: Tuple[Chunk, ...] = ()                   # Infinite maps
    encoding: Optional[str] = None                   # As found in the file
    compression: Optional[str] = None

    kind = 'tilelayer'

    @classmethod
    def from_xml(cls, elem: ET.Element,
                 config: LoaderConfig = DEFAULT_CONFIG,
                 infinite: bool = False) -> 'TileLayer':
        """
        Parse a <layer> element.

        On infinite maps the cells are always read as chunks, even when
        <data> has none (an empty layer): chunks is then ().
        """
        layer = cls(
            info=LayerInfo.from_xml(elem),
            width=int(elem.get('width', 0)),
            height=int(elem.get('height', 0)),
        )

        data_elem = elem.find('data')
        if data_elem is None:
            if infinite:
                return layer
            layer.region = TileRegion.empty(layer.width, layer.height)
            return layer

        layer.encoding = data_elem.get('encoding')
        layer.compression = data_elem.get('compression')

        chunk_elems = data_elem.findall('chunk')
        if chunk_elems or infinite:
            descriptors = [
                ChunkDescriptor(
                    x=int(chunk_elem.get('x', 0)),
                    y=int(chunk_elem.get('y', 0)),
                    width=int(chunk_elem.get('width', 0)),
                    height=int(chunk_elem.get('height', 0)),
                    payload=_payload_of(chunk_elem, layer.encoding),
                )
                for chunk_elem in chunk_elems
            ]
            layer.chunks = decode_chunks(descriptors, layer.encoding,
                                         layer.compression,
                                         lenient=config.lenient_csv)
        else:
            layer.region = TileRegion.from_payload(
                layer.width, layer.height,
                layer.encoding, layer.compression,
                _payload_of(data_elem, layer.encoding),
                lenient=config.lenient_csv,
            )
        return layer

    @property
    def name(self) -> str:
        return self.info.name

    @property
    def is_chunked(self) -> bool:
        return self.region is None

    def cell_at(self, x: int, y: int) -> Optional[TileCell]:
        """Cell at tile (x, y), None if outside the layer data."""
        if self.region is not None:
            if not self.region.contains(x, y):
                return None
            return self.region.cell(x, y)
        chunk = find_chunk(self.chunks, x, y)
        if chunk is None:
            return None
        return chunk.cell_at(x, y)

    def get_tile_gid(self, x: int, y: int) -> int:
        """GID (flags cleared) at tile (x, y); 0 for empty or outside."""
        cell = self.cell_at(x, y)
        if cell is None or cell.is_empty:
            return 0
        return cell.gid

    def iter_cells(self) -> Iterator[Tuple[int, int, TileCell]]:
        """Yield (x, y, cell) for every non-empty cell, in map coordinates."""
        if self.region is not None:
            yield from self.region
            return
        for chunk in self.chunks:
            for x, y, cell in chunk.region:
                yield chunk.x + x, chunk.y + y, cell


def _payload_of(elem: ET.Element, encoding: Optional[str]):
    """Text payload for csv/base64, list of gid attributes for xml."""
    if encoding is None or encoding == 'xml':
        return [tile_elem.get('gid') for tile_elem in elem.findall('tile')]
    return elem.text or ''


# =============================================================================
# MAP OBJECTS
# =============================================================================

class ObjectShape(Enum):
    PLAIN = 'plain'          # Rectangle (or tile object when cell is set)
    POINT = 'point'
    ELLIPSE = 'ellipse'
    POLYGON = 'polygon'
    POLYLINE = 'polyline'
    TEXT = 'text'


@dataclass
class MapObject:
    """
    Object in an object layer.

    ==========================================================================
    OBJECT SHAPES
    ==========================================================================

    The shape is given by an optional child element:

        <object id="1" x="0" y="0" width="32" height="32"/>   → PLAIN
        <object ...><point/></object>                          → POINT
        <object ...><ellipse/></object>                        → ELLIPSE
        <object ...><polygon points="0,0 32,0 32,32"/></object> → POLYGON
        <object ...><polyline points="0,0 32,32"/></object>    → POLYLINE
        <object ...><text>Hello</text></object>                → TEXT

    points are relative to (x, y).

    Tile objects have a gid attribute. Like layer cells, it can carry
    flip flags, so it is stored decoded in cell.

    ==========================================================================
    """
    id: int
    name: str = ""
    type: str = ""
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0
    rotation: float = 0                              # Degrees, clockwise
    cell: Optional[TileCell] = None                  # Tile objects only
    visible: bool = True
    shape: ObjectShape = ObjectShape.PLAIN
    points: List[Tuple[float, float]] = field(default_factory=list)
    text: Optional[str] = None
    properties: Dict[str, Property] = field(default_factory=dict)

    @classmethod
    def from_xml(cls, elem: ET.Element) -> 'MapObject':
        obj = cls(
            id=int(elem.get('id', 0)),
            name=elem.get('name', ''),
            type=elem.get('type', elem.get('class', '')),
            x=float(elem.get('x', 0)),
            y=float(elem.get('y', 0)),
            width=float(elem.get('width', 0)),
            height=float(elem.get('height', 0)),
            rotation=float(elem.get('rotation', 0)),
            visible=elem.get('visible', '1') == '1',
            properties=parse_properties(elem),
        )

        if elem.get('gid'):
            obj.cell = decode_gid(int(elem.get('gid')))

        if elem.find('point') is not None:
            obj.shape = ObjectShape.POINT
        elif elem.find('ellipse') is not None:
            obj.shape = ObjectShape.ELLIPSE
        elif elem.find('polygon') is not None:
            obj.shape = ObjectShape.POLYGON
            obj.points = _parse_points(elem.find('polygon').get('points', ''))
        elif elem.find('polyline') is not None:
            obj.shape = ObjectShape.POLYLINE
            obj.points = _parse_points(elem.find('polyline').get('points', ''))
        elif elem.find('text') is not None:
            obj.shape = ObjectShape.TEXT
            obj.text = elem.find('text').text or ''

        return obj

    @property
    def gid(self) -> Optional[int]:
        return self.cell.gid if self.cell is not None else None


def _parse_points(text: str) -> List[Tuple[float, float]]:
    """Parse "x1,y1 x2,y2 ..." into a list of (x, y)."""
    points = []
    for pair in text.split():
        px, py = pair.split(',')
        points.append((float(px), float(py)))
    return points


# =============================================================================
# OTHER LAYER KINDS
# =============================================================================

@dataclass
class ObjectGroup:
    """
    Object layer - contains vector objects.

    Objects are stored in document order (draworder="index" relies on it).
    """
    info: LayerInfo
    objects: List[MapObject] = field(default_factory=list)
    color: Optional[str] = None
    draworder: str = "topdown"

    kind = 'objectgroup'

    @classmethod
    def from_xml(cls, elem: ET.Element) -> 'ObjectGroup':
        group = cls(
            info=LayerInfo.from_xml(elem),
            color=elem.get('color'),
            draworder=elem.get('draworder', 'topdown'),
        )
        for obj_elem in elem.findall('object'):
            group.objects.append(MapObject.from_xml(obj_elem))
        return group

    @property
    def name(self) -> str:
        return self.info.name


@dataclass
class ImageLayer:
    info: LayerInfo
    image: Optional[Image] = None
    repeatx: bool = False
    repeaty: bool = False

    kind = 'imagelayer'

    @classmethod
    def from_xml(cls, elem: ET.Element) -> 'ImageLayer':
        layer = cls(
            info=LayerInfo.from_xml(elem),
            repeatx=elem.get('repeatx', '0') == '1',
            repeaty=elem.get('repeaty', '0') == '1',
        )
        img_elem = elem.find('image')
        if img_elem is not None:
            layer.image = Image.from_xml(img_elem)
        return layer

    @property
    def name(self) -> str:
        return self.info.name


@dataclass
class LayerGroup:
    """
    Group of layers - a folder containing other layers.

    Groups can be nested (groups within groups). Opacity, offsets and
    tint of a group apply on top of its children's own values.
    """
    info: LayerInfo
    layers: List['Layer'] = field(default_factory=list)

    kind = 'group'

    @classmethod
    def from_xml(cls, elem: ET.Element,
                 config: LoaderConfig = DEFAULT_CONFIG,
                 infinite: bool = False) -> 'LayerGroup':
        return cls(info=LayerInfo.from_xml(elem),
                   layers=layers_from_xml(elem, config, infinite))

    @property
    def name(self) -> str:
        return self.info.name


Layer = Union[TileLayer, ObjectGroup, ImageLayer, LayerGroup]


def layers_from_xml(parent: ET.Element,
                    config: LoaderConfig = DEFAULT_CONFIG,
                    infinite: bool = False) -> List[Layer]:
    """Parse the layer children of <map> or <group>, keeping document order."""
    layers: List[Layer] = []
    for child in parent:
        if child.tag == 'layer':
            layers.append(TileLayer.from_xml(child, config, infinite))
        elif child.tag == 'objectgroup':
            layers.append(ObjectGroup.from_xml(child))
        elif child.tag == 'imagelayer':
            layers.append(ImageLayer.from_xml(child))
        elif child.tag == 'group':
            layers.append(LayerGroup.from_xml(child, config, infinite))
    return layers


# =============================================================================
# TILED MAP CLASS (Main Entry Point)
# =============================================================================

@dataclass
class TiledMap:
    """
    Complete Tiled map - the root object for TMX files.

    ==========================================================================
    USAGE
    ==========================================================================

    Loading:
        tiled_map = TiledMap.load("level1.tmx")
        print(f"Map size: {tiled_map.width}x{tiled_map.height}")

    Drawing a layer:
        ground = tiled_map.get_layer_by_name("Ground")
        for x, y, cell in ground.iter_cells():
            ref, local_id = tiled_map.registry.resolve(cell.gid)
            rect = source_rect(ref.tileset, local_id)
            ...  # blit rect of ref.tileset.image, applying cell flips

    ==========================================================================
    """
    version: str = "1.10"                            # TMX format version
    tiledversion: str = ""                           # Tiled editor version
    orientation: str = "orthogonal"                  # Map orientation
    renderorder: str = "right-down"                  # Render order
    width: int = 0                                   # Map width in tiles
    height: int = 0                                  # Map height in tiles
    tilewidth: int = 0                               # Tile width in pixels
    tileheight: int = 0                              # Tile height in pixels
    infinite: bool = False                           # Is map infinite?
    backgroundcolor: Optional[str] = None
    properties: Dict[str, Property] = field(default_factory=dict)
    tilesets: List[TilesetRef] = field(default_factory=list)
    layers: List[Layer] = field(default_factory=list)
    _registry_cache: Optional[Tuple[tuple, TilesetRegistry]] = field(
        default=None, init=False, repr=False, compare=False)

    @classmethod
    def load(cls, filepath: Union[str, Path],
             config: Optional[LoaderConfig] = None) -> 'TiledMap':
        """Load a TMX file from disk. See loader.load_map."""
        from .loader import load_map
        return load_map(filepath, config)

    @property
    def registry(self) -> TilesetRegistry:
        """
        GID lookup over this map's tilesets.

        Built on first use and rebuilt whenever the tilesets list has
        changed since, so appended or removed references resolve.
        """
        refs = tuple(self.tilesets)
        if self._registry_cache is None or self._registry_cache[0] != refs:
            self._registry_cache = (refs, TilesetRegistry(refs))
        return self._registry_cache[1]

    def get_tileset_for_gid(self, gid: int) -> Optional['Tileset']:
        """Tileset whose GID range starts at or below gid, or None."""
        ref = self.registry.find(gid)
        return ref.tileset if ref is not None else None

    def get_layer_by_name(self, name: str) -> Optional[Layer]:
        """Find a layer by name (searches recursively through groups)."""
        def search_layers(layers):
            for layer in layers:
                if layer.name == name:
                    return layer
                if isinstance(layer, LayerGroup):
                    result = search_layers(layer.layers)
                    if result is not None:
                        return result
            return None

        return search_layers(self.layers)

    def get_all_layers_flat(self) -> List[Layer]:
        """All non-group layers in document order, groups expanded."""
        result = []

        def flatten(layers):
            for layer in layers:
                if isinstance(layer, LayerGroup):
                    flatten(layer.layers)
                else:
                    result.append(layer)

        flatten(self.layers)
        return result

    def iter_tile_layers(self) -> Iterator[TileLayer]:
        for layer in self.get_all_layers_flat():
            if isinstance(layer, TileLayer):
                yield layer
