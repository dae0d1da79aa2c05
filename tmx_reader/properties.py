"""
Custom properties attached to maps, tilesets, tiles, layers and objects
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class Property:
    """
    Custom property attached to any TMX element.

    ==========================================================================
    SUPPORTED TYPES
    ==========================================================================

    - string: Text value (default)
    - int: Integer number
    - float: Decimal number
    - bool: True/False
    - color: Color in #AARRGGBB format (kept as text)
    - file: File path reference (kept as text)
    - object: Reference to another object by ID (int, 0 = none)
    - class: Custom class name (kept as text, members are not expanded)

    Multi-line string values are stored as element text instead of the
    value attribute:

        <property name="dialogue">Hello
        there</property>

    ==========================================================================
    """
    name: str                    # Property name (key)
    type: str = "string"         # Value type
    value: Any = None            # The actual value

    @classmethod
    def from_xml(cls, elem: ET.Element) -> 'Property':
        """
        Parse property from XML element.

        XML format:
            <property name="solid" type="bool" value="true"/>
            <property name="health" type="int" value="100"/>
            <property name="description" value="A wooden door"/>
        """
        prop_type = elem.get('type', 'string')
        value = elem.get('value')
        if value is None:
            value = elem.text or ''

        if prop_type == 'int':
            value = int(value or 0)
        elif prop_type == 'float':
            value = float(value or 0)
        elif prop_type == 'bool':
            value = value.lower() == 'true'
        elif prop_type == 'object':
            value = int(value or 0)

        return cls(name=elem.get('name', ''), type=prop_type, value=value)


def parse_properties(elem: Optional[ET.Element]) -> Dict[str, Property]:
    """Read the <properties> child of elem into a name → Property dict."""
    properties: Dict[str, Property] = {}
    if elem is None:
        return properties
    props_elem = elem.find('properties')
    if props_elem is not None:
        for prop_elem in props_elem.findall('property'):
            prop = Property.from_xml(prop_elem)
            properties[prop.name] = prop
    return properties
