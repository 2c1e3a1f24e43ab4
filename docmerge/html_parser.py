"""
HTML fragment -> plain node tree shared by both emitters.

BeautifulSoup's ``html.parser`` backend is lenient enough for the partial
fragments a rich-text editor produces (unclosed tags, stray ``</p>``).  The
soup is converted into two small dataclasses so the emitters never touch
bs4 objects directly.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from bs4 import BeautifulSoup
from bs4.element import Comment, Declaration, Doctype, NavigableString, ProcessingInstruction, Tag

from docmerge.pages import PAGE_DELIMITER_CLASS
from docmerge.styles import StyleRecord, parse_style

logger = logging.getLogger(__name__)

_SKIPPED_TAGS = {"script", "style", "head", "title", "meta", "link"}
_SKIPPED_STRINGS = (Comment, Doctype, Declaration, ProcessingInstruction)
_MARKUP = re.compile(r"<[^>]*>")


@dataclass
class TextNode:
    content: str

    @property
    def is_blank(self) -> bool:
        return not self.content.strip()

    def text_content(self) -> str:
        return self.content


@dataclass
class ElementNode:
    tag: str
    attributes: Dict[str, str] = field(default_factory=dict)
    children: List["ParsedNode"] = field(default_factory=list)

    @property
    def style(self) -> StyleRecord:
        return parse_style(self.attributes.get("style"))

    @property
    def classes(self) -> List[str]:
        return self.attributes.get("class", "").split()

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.attributes.get(name, default)

    def text_content(self) -> str:
        return "".join(child.text_content() for child in self.children)


ParsedNode = Union[TextNode, ElementNode]


def is_page_delimiter(node: ParsedNode) -> bool:
    return isinstance(node, ElementNode) and PAGE_DELIMITER_CLASS in node.classes


def _attributes(tag: Tag) -> Dict[str, str]:
    attrs: Dict[str, str] = {}
    for name, value in tag.attrs.items():
        if isinstance(value, (list, tuple)):
            value = " ".join(value)
        attrs[name.lower()] = "" if value is None else str(value)
    return attrs


def _convert(element) -> Optional[ParsedNode]:
    if isinstance(element, _SKIPPED_STRINGS):
        return None
    if isinstance(element, NavigableString):
        return TextNode(str(element))
    if not isinstance(element, Tag) or element.name in _SKIPPED_TAGS:
        return None
    try:
        return ElementNode(
            tag=element.name.lower(),
            attributes=_attributes(element),
            children=_convert_children(element),
        )
    except Exception:
        logger.warning("Could not convert <%s>, keeping its text only", element.name, exc_info=True)
        return TextNode(element.get_text())


def _convert_children(parent: Tag) -> List[ParsedNode]:
    nodes: List[ParsedNode] = []
    for child in parent.children:
        node = _convert(child)
        if node is not None:
            nodes.append(node)
    return nodes


def parse_html(html: str) -> List[ParsedNode]:
    """Parse *html* into a list of top-level nodes.

    A full document yields the children of its ``<body>``; a fragment yields
    its own top level.  Never raises for malformed markup.
    """
    if not html:
        return []
    try:
        soup = BeautifulSoup(html, "html.parser")
    except Exception:
        logger.warning("HTML could not be parsed, falling back to plain text", exc_info=True)
        return [TextNode(_MARKUP.sub("", html))]
    root = soup.body if soup.body is not None else soup
    return _convert_children(root)


def walk_elements(nodes: List[ParsedNode]):
    """Yield every :class:`ElementNode` in document order."""
    for node in nodes:
        if isinstance(node, ElementNode):
            yield node
            yield from walk_elements(node.children)
