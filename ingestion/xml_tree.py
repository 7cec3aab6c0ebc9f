# WORKFLOW: Generic XML tree builder and shape-normalising node accessor.
# Used by: ingestion.processor, ingestion.detector, ERP-record and spreadsheet-XML parsers
# Functions:
# 1. parse_xml() - XML bytes -> {root_tag: nested dict/list/str tree}
# 2. element_to_tree() - One element -> dict (attributes merged, text under "_") or str
# 3. TreeNode - Accessor over a tree value: text, attributes, children always as lists
#
# Tree shape: attributes are merged into element properties, namespace prefixes are
# dropped ("ss:Row" -> "Row"), a repeated child becomes a list while a single child
# stays scalar. Parsers never inspect that shape directly; they go through TreeNode,
# which normalises every child lookup to a list at the boundary.

"""
XML tree building and node access helpers.
"""

import logging
from typing import Any, Dict, List, Optional
from xml.etree import ElementTree as ET

from ingestion.canonical import trim_or_null

logger = logging.getLogger(__name__)

TEXT_KEY = "_"


def local_name(tag: str) -> str:
    """Strip a namespace URI ("{urn:...}Row") or prefix ("ss:Row") from a tag."""
    if "}" in tag:
        tag = tag.rsplit("}", 1)[1]
    return tag.rsplit(":", 1)[-1]


def element_to_tree(element: ET.Element) -> Any:
    """
    Convert an element to the generic tree representation.

    Args:
        element: Parsed XML element

    Returns:
        Plain string for a leaf without attributes, dict otherwise
    """
    properties: Dict[str, Any] = {
        local_name(key): value for key, value in element.attrib.items()
    }

    children: Dict[str, List[Any]] = {}
    for child in element:
        children.setdefault(local_name(child.tag), []).append(element_to_tree(child))

    for name, values in children.items():
        if name in properties:
            properties[name] = [properties[name], *values]
        else:
            properties[name] = values[0] if len(values) == 1 else values

    text = (element.text or "") + "".join(child.tail or "" for child in element)

    if not properties:
        return text
    if text.strip():
        properties[TEXT_KEY] = text
    return properties


def parse_xml(content: bytes) -> Dict[str, Any]:
    """
    Parse XML bytes into a generic nested tree.

    Args:
        content: Raw XML document

    Returns:
        Single-key dict mapping the root tag to its tree

    Raises:
        ET.ParseError: If the document is not well-formed
    """
    root = ET.fromstring(content)
    return {local_name(root.tag): element_to_tree(root)}


class TreeNode:
    """Read-only accessor over one tree value (str, dict or None)."""

    def __init__(self, raw: Any):
        self.raw = raw

    def __repr__(self) -> str:
        return f"TreeNode({self.raw!r})"

    @property
    def text(self) -> Optional[str]:
        """Trimmed text content; None when the node carries no text."""
        if isinstance(self.raw, dict):
            if TEXT_KEY in self.raw:
                return trim_or_null(self.raw[TEXT_KEY])
            logger.debug(f"Node without text content: {list(self.raw)}")
            return None
        return trim_or_null(self.raw)

    @property
    def name(self) -> Optional[str]:
        return self.attr("name")

    def attr(self, key: str) -> Optional[str]:
        if not isinstance(self.raw, dict):
            return None
        value = self.raw.get(key)
        return trim_or_null(value) if isinstance(value, str) else None

    def has(self, key: str) -> bool:
        return isinstance(self.raw, dict) and self.raw.get(key) is not None

    def children(self, key: str) -> List["TreeNode"]:
        """Children stored under ``key``, always as a list."""
        if not isinstance(self.raw, dict):
            return []
        value = self.raw.get(key)
        if value is None:
            return []
        if isinstance(value, list):
            return [TreeNode(item) for item in value]
        return [TreeNode(value)]

    def child(self, key: str) -> Optional["TreeNode"]:
        found = self.children(key)
        return found[0] if found else None

    def fields(self) -> List["TreeNode"]:
        return self.children("field")

    def field(self, name: str) -> Optional["TreeNode"]:
        """First nested ``field`` whose name attribute equals ``name``."""
        for node in self.fields():
            if node.name == name:
                return node
        return None

    def field_text(self, name: str) -> Optional[str]:
        node = self.field(name)
        return node.text if node else None
