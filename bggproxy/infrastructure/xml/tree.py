"""Generic XML tree used between the upstream client and the normalizer.

The decoder follows the conventions the upstream payloads were designed
around:

- the root element is dropped and its content returned,
- attributes are merged onto their element,
- an element carrying both attributes and text keeps the text under "_",
- an element with only text becomes that string ("" when empty),
- a single child collapses to its value, repeated siblings become a list.

Because of the last rule the same field may be a map in one response and a
list in the next. Consumers must go through `as_array` / `as_scalar` /
`as_map` / `child` at every cardinality-sensitive site.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Any, Dict, List, Optional, Union

from bggproxy.core.exceptions import ParseError
from bggproxy.domain.models.common import XmlValue

logger = logging.getLogger(__name__)

TEXT_KEY = "_"


def parse_xml(body: Union[str, bytes], path: Optional[str] = None) -> XmlValue:
    """Decodes an XML document into the generic tree.

    A blank body decodes to "" like an empty document.

    Raises:
        ParseError: If the body is not well-formed XML.
    """
    if body is None or not body.strip():
        logger.debug(f"Empty response body for {path or 'response'}")
        return ""
    try:
        root = ET.fromstring(body)
    except ET.ParseError as e:
        logger.error(f"XML parsing error for {path or 'response'}: {e}")
        raise ParseError(f"Failed to parse XML response from upstream API: {e}", path=path) from e
    return _convert(root)


def _local_name(tag: str) -> str:
    # Drop any '{namespace}' prefix
    return tag.rsplit("}", 1)[-1]


def _merge(node: Dict[str, XmlValue], key: str, value: XmlValue) -> None:
    if key not in node:
        node[key] = value
        return
    existing = node[key]
    if isinstance(existing, list):
        existing.append(value)
    else:
        node[key] = [existing, value]


def _convert(element: ET.Element) -> XmlValue:
    node: Dict[str, XmlValue] = {}
    for name, value in element.attrib.items():
        node[_local_name(name)] = value
    for child in element:
        _merge(node, _local_name(child.tag), _convert(child))
    text = (element.text or "").strip()
    if not node:
        return text
    if text:
        node[TEXT_KEY] = text
    return node


# --- Cardinality accessors ---

def as_array(value: Any) -> List[XmlValue]:
    """Always returns a list: None -> [], list -> itself, anything else -> [value]."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def as_map(value: Any) -> Dict[str, XmlValue]:
    """Returns the keyed-map view of a node; the first map of a list; {} otherwise."""
    if isinstance(value, dict):
        return value
    if isinstance(value, list):
        for item in value:
            if isinstance(item, dict):
                return item
    return {}


def as_scalar(value: Any) -> Optional[str]:
    """Returns the string carried by a node.

    Handles the three shapes a scalar arrives in: a bare string, a map with a
    `value` attribute (`<minage value="10"/>`), or a map with element text
    (`<name sortindex="1">Catan</name>`). Lists yield their first scalar.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return as_scalar(value[0]) if value else None
    if isinstance(value, dict):
        if "value" in value:
            return as_scalar(value["value"])
        if TEXT_KEY in value:
            return as_scalar(value[TEXT_KEY])
    return None


def child(node: Any, key: str) -> Optional[XmlValue]:
    """Looks up a child or attribute of a node without assuming its shape."""
    return as_map(node).get(key)


def text_of(node: Any, key: str) -> Optional[str]:
    """Scalar value of a child, with empty strings reported as absent."""
    value = as_scalar(child(node, key))
    if value is None or value == "":
        return None
    return value


def is_empty(value: Any) -> bool:
    """True for the shapes an empty response decodes to ('' or {} or [])."""
    return value is None or value == "" or value == {} or value == []
