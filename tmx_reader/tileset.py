"""
Tilesets and atlas geometry

=============================================================================
TILESET TYPES
=============================================================================

1. SPRITESHEET TILESET (most common):
   One large image divided into a grid of tiles.

   +---+---+---+---+
   | 0 | 1 | 2 | 3 |
   +---+---+---+---+
   | 4 | 5 | 6 | 7 |
   +---+---+---+---+

   Attributes used: image, tilewidth, tileheight, columns, spacing, margin

2. IMAGE COLLECTION TILESET:
   Each tile is a separate image file, declared on its <tile> element.
   Tiles can have different sizes.

=============================================================================
SPACING AND MARGIN
=============================================================================

margin = pixels around the EDGE of the entire image
spacing = pixels BETWEEN tiles

    +--+===+===+===+--+
    |  | 0 | 1 | 2 |  |  <- margin
    +--+===+===+===+--+
    |  | 3 | 4 | 5 |  |
    +--+===+===+===+--+
         ^
         spacing between tiles

Tile at (col, row) starts at:

    x = margin + col * (tilewidth + spacing)
    y = margin + row * (tileheight + spacing)

Example: col=2, tilewidth=16, margin=2, spacing=1
    x = 2 + 2 * 17 = 36

=============================================================================
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .errors import InvalidTilesetError, TileIndexOutOfRangeError
from .properties import Property, parse_properties


# =============================================================================
# IMAGE CLASS
# =============================================================================

@dataclass
class Image:
    """
    Image reference used in tilesets, tiles and image layers.

    source: Path to image file (relative to the TMX/TSX file)
    width:  Image width in pixels (None when the document omits it)
    height: Image height in pixels
    trans:  Transparent color in hex (e.g., "ff00ff" for magenta)
    """
    source: str
    width: Optional[int] = None
    height: Optional[int] = None
    trans: Optional[str] = None

    @classmethod
    def from_xml(cls, elem: ET.Element) -> 'Image':
        return cls(
            source=elem.get('source', ''),
            width=int(elem.get('width')) if elem.get('width') else None,
            height=int(elem.get('height')) if elem.get('height') else None,
            trans=elem.get('trans')
        )


@dataclass(frozen=True)
class AnimationFrame:
    """One frame of a tile animation. tileid is local to the tileset."""
    tileid: int
    duration: int                                    # Milliseconds


@dataclass(frozen=True)
class Terrain:
    name: str
    tile: int                                        # Local id of the icon tile


@dataclass(frozen=True)
class SourceRect:
    """Pixel rectangle inside a tileset image."""
    x: int
    y: int
    width: int
    height: int


# =============================================================================
# TILE CLASS
# =============================================================================

@dataclass
class Tile:
    """
    Per-tile metadata within a tileset.

    Only tiles with properties, animations, terrain info or their own
    image are listed in the tileset, so Tileset.tiles is sparse.

    The id is LOCAL to the tileset: gid = firstgid + id.

    terrain holds the terrain index of each corner (top-left, top-right,
    bottom-left, bottom-right), -1 where the corner has none.
    """
    id: int
    type: str = ""
    probability: float = 0.0
    terrain: Tuple[int, ...] = ()
    animation: List[AnimationFrame] = field(default_factory=list)
    image: Optional[Image] = None
    properties: Dict[str, Property] = field(default_factory=dict)

    @classmethod
    def from_xml(cls, elem: ET.Element) -> 'Tile':
        tile = cls(id=int(elem.get('id', 0)))
        # 'class' replaced 'type' in Tiled 1.9
        tile.type = elem.get('type', elem.get('class', ''))
        tile.probability = float(elem.get('probability', 0))

        terrain = elem.get('terrain')
        if terrain:
            tile.terrain = tuple(int(t) if t.strip() else -1
                                 for t in terrain.split(','))

        tile.properties = parse_properties(elem)

        for frame_elem in elem.findall('animation/frame'):
            tile.animation.append(AnimationFrame(
                tileid=int(frame_elem.get('tileid')),
                duration=int(frame_elem.get('duration'))
            ))

        img_elem = elem.find('image')
        if img_elem is not None:
            tile.image = Image.from_xml(img_elem)

        return tile


# =============================================================================
# TILESET CLASS
# =============================================================================

@dataclass
class Tileset:
    """
    Tileset collection - a set of tile graphics.

    A Tileset knows nothing about GIDs: the first GID is a property of
    the map that uses it, and lives in registry.TilesetRef. The same TSX
    file can be shared by several maps with different first GIDs.
    """
    name: str                                        # Tileset name
    tilewidth: int                                   # Tile width in pixels
    tileheight: int                                  # Tile height in pixels
    tilecount: int = 0                               # Total number of tiles
    columns: int = 0                                 # Tiles per row (0 = derive from image)
    spacing: int = 0                                 # Pixels between tiles
    margin: int = 0                                  # Pixels around edge
    image: Optional[Image] = None                    # Spritesheet image
    tiles: Dict[int, Tile] = field(default_factory=dict)  # Sparse tile metadata
    properties: Dict[str, Property] = field(default_factory=dict)
    tileoffset: Tuple[int, int] = (0, 0)             # Drawing offset in pixels
    terrains: List[Terrain] = field(default_factory=list)
    objectalignment: str = "unspecified"
    tiledversion: str = ""

    @classmethod
    def from_xml(cls, elem: ET.Element) -> 'Tileset':
        """
        Parse tileset from a <tileset> element (inline in a TMX, or the
        root of a TSX file).
        """
        tileset = cls(
            name=elem.get('name', ''),
            tilewidth=int(elem.get('tilewidth', 0)),
            tileheight=int(elem.get('tileheight', 0)),
            columns=int(elem.get('columns', 0)),
            spacing=int(elem.get('spacing', 0)),
            margin=int(elem.get('margin', 0)),
            objectalignment=elem.get('objectalignment', 'unspecified'),
            tiledversion=elem.get('tiledversion', ''),
        )

        tileset.properties = parse_properties(elem)

        img_elem = elem.find('image')
        if img_elem is not None:
            tileset.image = Image.from_xml(img_elem)

        offset_elem = elem.find('tileoffset')
        if offset_elem is not None:
            tileset.tileoffset = (int(offset_elem.get('x', 0)),
                                  int(offset_elem.get('y', 0)))

        for terrain_elem in elem.findall('terraintypes/terrain'):
            tileset.terrains.append(Terrain(
                name=terrain_elem.get('name', ''),
                tile=int(terrain_elem.get('tile', -1))
            ))

        for tile_elem in elem.findall('tile'):
            tile = Tile.from_xml(tile_elem)
            tileset.tiles[tile.id] = tile

        # Old files have no tilecount: count the declared tiles instead
        tileset.tilecount = int(elem.get('tilecount', len(tileset.tiles)))

        return tileset

    def get_tile(self, local_id: int) -> Optional[Tile]:
        return self.tiles.get(local_id)


# =============================================================================
# ATLAS GEOMETRY
# =============================================================================

def atlas_columns(tileset: Tileset) -> int:
    """
    Number of tiles per row in the tileset image.

    Uses the explicit columns attribute when present, otherwise derives
    it from the image width the same way Tiled does:

        columns = (image_width - 2 * margin + spacing) // (tilewidth + spacing)

    Raises InvalidTilesetError when neither is available.
    """
    if tileset.columns > 0:
        return tileset.columns

    image = tileset.image
    stride = tileset.tilewidth + tileset.spacing
    if image is None or not image.width or stride <= 0:
        raise InvalidTilesetError(
            f"Tileset {tileset.name!r} has no column count and no image width"
        )
    columns = (image.width - 2 * tileset.margin + tileset.spacing) // stride
    if columns <= 0:
        raise InvalidTilesetError(
            f"Tileset {tileset.name!r}: image is narrower than one tile"
        )
    return columns


def source_rect(tileset: Tileset, local_id: int) -> SourceRect:
    """
    Pixel rectangle of a tile inside its tileset image.

    Parameters:
    -----------
    tileset : Tileset
        The owning tileset
    local_id : int
        Tile id local to the tileset (gid - firstgid)

    Returns:
    --------
    SourceRect : where to copy the tile from

    Tiles with their own image (image collection tilesets) are not part
    of a grid: the whole image is the tile, so the rectangle starts at
    (0, 0) and has the image's own size.

    Raises:
    -------
    TileIndexOutOfRangeError : local_id >= tileset.tilecount
    InvalidTilesetError : atlas column count cannot be determined
    """
    if not 0 <= local_id < tileset.tilecount:
        raise TileIndexOutOfRangeError(local_id, tileset.tilecount,
                                       tileset.name)

    tile = tileset.tiles.get(local_id)
    if tile is not None and tile.image is not None:
        return SourceRect(
            0, 0,
            tile.image.width or tileset.tilewidth,
            tile.image.height or tileset.tileheight
        )

    columns = atlas_columns(tileset)
    row, col = divmod(local_id, columns)
    return SourceRect(
        x=tileset.margin + col * (tileset.tilewidth + tileset.spacing),
        y=tileset.margin + row * (tileset.tileheight + tileset.spacing),
        width=tileset.tilewidth,
        height=tileset.tileheight,
    )
