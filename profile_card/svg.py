#!/usr/bin/env python3
"""
SVG document building on top of lxml.

Cards are assembled as an element tree and serialized once, so text content
and attribute values are escaped by the serializer rather than by hand.
"""

import base64
import re
from typing import Any, Optional

from lxml import etree

SVG_NS = "http://www.w3.org/2000/svg"
FONT_FAMILY = "Arial, sans-serif"

ERROR_WIDTH = 600
ERROR_HEIGHT = 200

# Characters XML 1.0 cannot carry at all, escaped or not
_XML_INVALID = re.compile("[^\x09\x0A\x0D\x20-\uD7FF\uE000-\uFFFD\U00010000-\U0010FFFF]")

_FALLBACK_AVATAR_SVG = b"""<?xml version="1.0" encoding="UTF-8"?>
<svg width="100" height="100" viewBox="0 0 100 100" xmlns="http://www.w3.org/2000/svg">
<circle cx="50" cy="50" r="50" fill="#6c757d"/>
<path d="M50 55c-13.8 0-25 11.2-25 25h50c0-13.8-11.2-25-25-25z" fill="#ffffff" opacity="0.7"/>
<circle cx="50" cy="35" r="20" fill="#ffffff" opacity="0.7"/>
</svg>"""


def data_uri(content: bytes, mime: str) -> str:
    """Encode bytes as a base64 data URI."""
    return f"data:{mime};base64,{base64.b64encode(content).decode('ascii')}"


FALLBACK_AVATAR_URI = data_uri(_FALLBACK_AVATAR_SVG, "image/svg+xml")


def _xml_safe(value: str) -> str:
    return _XML_INVALID.sub("", value)


def _attr_name(name: str) -> str:
    # font_family -> font-family; a trailing underscore escapes keywords (class_)
    return name.rstrip("_").replace("_", "-")


def _attr_value(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return _xml_safe(str(value))


class SvgDocument:
    """A root <svg> element with helpers for adding namespaced children."""

    def __init__(self, width: int, height: int):
        self.root = etree.Element(f"{{{SVG_NS}}}svg", nsmap={None: SVG_NS})
        self.root.set("width", _attr_value(width))
        self.root.set("height", _attr_value(height))

    def add(self, parent: Optional[etree._Element], tag: str, text: Optional[str] = None,
            **attrs: Any) -> etree._Element:
        """Append a child element. Keyword names map to hyphenated SVG attributes."""
        parent = self.root if parent is None else parent
        element = etree.SubElement(parent, f"{{{SVG_NS}}}{tag}")
        for name, value in attrs.items():
            if value is not None:
                element.set(_attr_name(name), _attr_value(value))
        if text is not None:
            element.text = _xml_safe(text)
        return element

    def group(self, x: float, y: float, parent: Optional[etree._Element] = None) -> etree._Element:
        return self.add(parent, "g", transform=f"translate({_attr_value(x)}, {_attr_value(y)})")

    def text(self, parent: Optional[etree._Element], content: str, x: float = 0, y: float = 0,
             size: int = 12, fill: str = "#9CA3AF", **attrs: Any) -> etree._Element:
        return self.add(parent, "text", content, x=x, y=y, font_family=FONT_FAMILY,
                        font_size=size, fill=fill, **attrs)

    def to_string(self) -> str:
        return etree.tostring(self.root, encoding="UTF-8", xml_declaration=True,
                              pretty_print=True).decode("utf-8")


def error_document(message: str) -> str:
    """A fixed-size red card carrying a single warning line."""
    doc = SvgDocument(ERROR_WIDTH, ERROR_HEIGHT)
    doc.add(None, "rect", width=ERROR_WIDTH, height=ERROR_HEIGHT, fill="#EF4444", rx=10)
    doc.add(None, "text", f"⚠️ {message}", x=ERROR_WIDTH // 2, y=ERROR_HEIGHT // 2,
            font_family="Arial", font_size=18, fill="white", text_anchor="middle")
    return doc.to_string()
