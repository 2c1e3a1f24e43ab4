"""
Direct-draw PDF renderer for merged templates.

There is no browser here: every text line, list marker, rule and picture is
measured and placed by hand on a PyMuPDF page.

1. Each template page starts a new physical page; the cursor goes back to
   the top margin.
2. The parsed tree is walked depth first.  Inherited presentation (font,
   size, line height, indent, alignment) travels down as an immutable
   :class:`PdfStyle`; the position travels back up as a :class:`Cursor`.
3. Inline content of a block is split into words, measured with the real
   font metrics, wrapped to the available width and drawn line by line.
4. Before any unit is drawn the emitter checks that it fits above the
   bottom margin and opens a new page if it does not.

Units are PDF points throughout (1 pt = 1/72 in); the layout constants are
written in millimetres to match the editor's page CSS.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import fitz  # PyMuPDF

from docmerge.config import RenderConfig
from docmerge.html_parser import ElementNode, ParsedNode, TextNode, is_page_delimiter
from docmerge.images import ImageResolver
from docmerge.styles import PX_TO_PT, StyleRecord, mm, to_points

logger = logging.getLogger(__name__)


# ── Layout constants ─────────────────────────────────────────────────────────

HEADING_SIZES = {"h1": 24.0, "h2": 18.0, "h3": 14.0, "h4": 12.0, "h5": 12.0, "h6": 12.0}
HEADING_SPACE_BEFORE = {"h1": mm(8), "h2": mm(8)}     # others get half
PARAGRAPH_SPACE_BEFORE = mm(4)
BLOCK_SPACE_AFTER = mm(2)
RULE_GAP = mm(5)
LIST_INDENT = mm(6)
QUOTE_INDENT = mm(10)
IMAGE_SPACE_AFTER = mm(2)
ASCENT = 0.8                  # baseline position as a fraction of font size

BULLET = "• "

_BLOCK_TAGS = {
    "p", "div", "h1", "h2", "h3", "h4", "h5", "h6", "ul", "ol", "li",
    "blockquote", "hr", "img", "pre", "table", "thead", "tbody", "tfoot",
    "tr", "td", "th", "section", "article", "header", "footer", "figure",
    "figcaption", "main", "nav", "aside",
}

_WHITESPACE_SPLIT = re.compile(r"(\s+)")


# ── Render context ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class PdfStyle:
    font_size: float = 12.0
    line_height: float = 1.5
    indent: float = 0.0
    font_family: str = "Helvetica"
    bold: bool = False
    italic: bool = False
    underline: bool = False
    strike: bool = False
    align: str = "left"
    compact: bool = False     # inside list items: no paragraph spacing

    def apply(self, record: StyleRecord) -> "PdfStyle":
        """Copy with an element's inline style laid on top."""
        if record.is_empty():
            return self
        changes = {}
        if record.font_size is not None:
            changes["font_size"] = record.font_size
        if record.line_height is not None:
            changes["line_height"] = record.line_height
        if record.font_family is not None:
            changes["font_family"] = record.font_family
        if record.margin_left is not None:
            changes["indent"] = self.indent + record.margin_left
        if record.text_align is not None:
            changes["align"] = record.text_align
        if record.font_weight is not None:
            changes["bold"] = record.font_weight == "bold"
        if record.font_style is not None:
            changes["italic"] = record.font_style == "italic"
        if record.text_decoration is not None:
            changes["underline"] = record.text_decoration == "underline"
            changes["strike"] = record.text_decoration == "line-through"
        return replace(self, **changes)

    @property
    def line_box(self) -> float:
        return self.font_size * self.line_height


@dataclass(frozen=True)
class Cursor:
    page: int
    y: float


@dataclass(frozen=True)
class Placement:
    """Where a drawn unit ended up; kept for inspection and tests."""

    page: int
    top: float
    bottom: float
    kind: str


# ── Fonts ────────────────────────────────────────────────────────────────────

# regular, bold, italic, bold-italic
_BASE14 = {
    "helvetica": ("helv", "hebo", "heit", "hebi"),
    "times": ("tiro", "tibo", "tiit", "tibi"),
    "courier": ("cour", "cobo", "coit", "cobi"),
}

_SERIF_HINTS = ("times", "georgia", "garamond", "serif", "cambria", "book")
_MONO_HINTS = ("mono", "courier", "consolas", "menlo", "fixed", "code")


def base14_group(family: str) -> Tuple[str, str, str, str]:
    name = family.lower()
    if any(hint in name for hint in _MONO_HINTS):
        return _BASE14["courier"]
    # "sans-serif" contains "serif"
    if "sans" not in name and any(hint in name for hint in _SERIF_HINTS):
        return _BASE14["times"]
    return _BASE14["helvetica"]


@dataclass(frozen=True)
class FontChoice:
    name: str
    font: fitz.Font
    fontfile: Optional[str] = None

    def width(self, text: str, size: float) -> float:
        return self.font.text_length(text, fontsize=size)


class FontBook:
    """Maps a style to a drawable font, preferring configured font files.

    ``font_files`` keys are family names, optionally suffixed with
    ``bold``, ``italic`` or ``bold italic`` for the matching variant.
    """

    def __init__(self, font_files: Optional[Dict[str, str]] = None) -> None:
        self._custom: Dict[str, FontChoice] = {}
        self._builtin: Dict[str, FontChoice] = {}
        for family, path in (font_files or {}).items():
            try:
                font = fitz.Font(fontfile=str(path))
            except Exception as exc:
                logger.warning("Could not load font %r from %s (%s); using a built-in font", family, path, exc)
                continue
            alias = f"dm{len(self._custom)}"
            self._custom[" ".join(family.lower().split())] = FontChoice(alias, font, str(path))

    def resolve(self, style: PdfStyle) -> FontChoice:
        family = " ".join(style.font_family.lower().split())
        variant = " ".join(
            part for part, on in (("bold", style.bold), ("italic", style.italic)) if on
        )
        for key in (f"{family} {variant}".strip(), family):
            if key in self._custom:
                return self._custom[key]
        name = base14_group(family)[(1 if style.bold else 0) + (2 if style.italic else 0)]
        choice = self._builtin.get(name)
        if choice is None:
            choice = self._builtin[name] = FontChoice(name, fitz.Font(name))
        return choice


# ── Inline items ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class _Word:
    text: str
    style: PdfStyle


@dataclass(frozen=True)
class _Space:
    style: PdfStyle


class _Break:
    pass


_BREAK = _Break()

_Item = Union[_Word, _Space, _Break, ElementNode]


@dataclass
class _Fragment:
    text: str
    style: PdfStyle
    font: FontChoice
    width: float


@dataclass
class _Line:
    fragments: List[_Fragment]

    @property
    def width(self) -> float:
        frags = list(self.fragments)
        while frags and not frags[-1].text.strip():
            frags.pop()
        return sum(f.width for f in frags)

    def height(self, fallback: PdfStyle) -> float:
        if not self.fragments:
            return fallback.line_box
        return max(f.style.line_box for f in self.fragments)

    def max_size(self, fallback: PdfStyle) -> float:
        if not self.fragments:
            return fallback.font_size
        return max(f.style.font_size for f in self.fragments)


# ── Emitter ──────────────────────────────────────────────────────────────────

def _is_block(node: ParsedNode) -> bool:
    return isinstance(node, ElementNode) and (node.tag in _BLOCK_TAGS or is_page_delimiter(node))


class PdfEmitter:
    """Render parsed template pages into one PDF document."""

    def __init__(self, config: Optional[RenderConfig] = None, images: Optional[ImageResolver] = None) -> None:
        self.config = config or RenderConfig()
        self.images = images or ImageResolver(self.config)
        self.fonts = FontBook(self.config.font_files)

        rect = fitz.paper_rect(self.config.page_format)
        width, height = rect.width, rect.height
        if self.config.orientation == "landscape":
            width, height = max(width, height), min(width, height)
        self.page_width = width
        self.page_height = height
        self.margin = mm(self.config.margin_mm)
        self.top = self.margin
        self.bottom = height - self.margin
        self.left = self.margin
        self.content_width = width - 2 * self.margin
        self.max_image_height = mm(self.config.max_image_height_mm)

        self.page_breaks: List[str] = []
        self.placements: List[Placement] = []
        self._doc: Optional[fitz.Document] = None
        self._last: Optional[Cursor] = None
        self._pending_markers: List[Tuple[str, PdfStyle, float]] = []

    # ── Public API ───────────────────────────────────────────────────────

    def base_style(self) -> PdfStyle:
        return PdfStyle(
            font_size=self.config.base_font_size,
            line_height=self.config.line_height,
            font_family=self.config.font_family,
        )

    def render(self, pages: Sequence[Sequence[ParsedNode]], title: Optional[str] = None) -> bytes:
        """Draw every template page and return the PDF bytes."""
        self.page_breaks = []
        self.placements = []
        self._doc = fitz.open()
        try:
            for index, nodes in enumerate(pages or [[]]):
                cursor = self._new_page("boundary" if index else None)
                self._render_blocks(list(nodes), self.base_style(), cursor)
            if title:
                self._doc.set_metadata({"title": title, "creator": "docmerge"})
            return self._doc.tobytes(garbage=3, deflate=True)
        finally:
            self._doc.close()
            self._doc = None

    # ── Pagination ───────────────────────────────────────────────────────

    def _new_page(self, reason: Optional[str]) -> Cursor:
        self._doc.new_page(width=self.page_width, height=self.page_height)
        if reason:
            self.page_breaks.append(reason)
        if reason == "boundary":
            self._pending_markers = []
        self._last = Cursor(page=self._doc.page_count - 1, y=self.top)
        return self._last

    def _ensure_room(self, cursor: Cursor, height: float) -> Cursor:
        """Open a new page when *height* would cross the bottom margin."""
        if cursor.y + height > self.bottom and cursor.y > self.top:
            return self._new_page("overflow")
        return cursor

    def _advance(self, cursor: Cursor, amount: float) -> Cursor:
        self._last = Cursor(cursor.page, cursor.y + amount)
        return self._last

    def _place(self, cursor: Cursor, height: float, kind: str) -> Cursor:
        self.placements.append(Placement(cursor.page, cursor.y, cursor.y + height, kind))
        return self._advance(cursor, height)

    # ── Block walk ───────────────────────────────────────────────────────

    def _render_blocks(self, nodes: Sequence[ParsedNode], style: PdfStyle, cursor: Cursor) -> Cursor:
        inline: List[ParsedNode] = []
        for node in nodes:
            if not _is_block(node):
                inline.append(node)
                continue
            cursor = self._render_inline(inline, style, cursor)
            inline = []
            try:
                cursor = self._render_block(node, style, cursor)
            except Exception:
                logger.exception("Failed to render <%s>; continuing with the next element", node.tag)
                cursor = self._last or cursor
        return self._render_inline(inline, style, cursor)

    def _render_block(self, node: ElementNode, style: PdfStyle, cursor: Cursor) -> Cursor:
        if is_page_delimiter(node):
            return self._new_page("boundary")

        tag = node.tag
        record = node.style

        if tag in HEADING_SIZES:
            heading = replace(style, font_size=HEADING_SIZES[tag], bold=True).apply(record)
            before = HEADING_SPACE_BEFORE.get(tag, mm(4))
            return self._paragraph(node, heading, cursor, before, record)
        if tag == "p":
            return self._paragraph(node, style.apply(record), cursor, PARAGRAPH_SPACE_BEFORE, record)
        if tag in ("ul", "ol"):
            return self._list(node, style.apply(record), cursor, record)
        if tag == "li":
            return self._list_item(node, style, cursor, BULLET)
        if tag == "blockquote":
            return self._blockquote(node, style.apply(record), cursor, record)
        if tag == "pre":
            return self._preformatted(node, style.apply(record), cursor, record)
        if tag == "hr":
            return self._rule(style, cursor)
        if tag == "img":
            return self._image(node, style, cursor)

        # div and other containers
        inner = style.apply(record)
        cursor = self._advance(cursor, max(record.margin_top or 0.0, 0.0))
        cursor = self._render_blocks(node.children, inner, cursor)
        return self._advance(cursor, max(record.margin_bottom or 0.0, 0.0))

    def _spacing(self, style: PdfStyle, explicit: Optional[float], default: float) -> float:
        if explicit is not None:
            return max(explicit, 0.0)
        return 0.0 if style.compact else default

    def _paragraph(
        self, node: ElementNode, style: PdfStyle, cursor: Cursor, before: float, record: StyleRecord
    ) -> Cursor:
        cursor = self._advance(cursor, self._spacing(style, record.margin_top, before))
        if _has_content(node):
            cursor = self._render_blocks(node.children, style, cursor)
        else:
            # an empty paragraph is a blank line in the editor
            cursor = self._ensure_room(cursor, style.line_box)
            cursor = self._place(cursor, style.line_box, "blank")
        return self._advance(cursor, self._spacing(style, record.margin_bottom, BLOCK_SPACE_AFTER))

    def _list(self, node: ElementNode, style: PdfStyle, cursor: Cursor, record: StyleRecord) -> Cursor:
        ordered = node.tag == "ol"
        try:
            start = int(node.get("start", "1"))
        except ValueError:
            start = 1
        cursor = self._advance(cursor, max(record.margin_top or 0.0, 0.0))
        position = 0
        for child in node.children:
            if isinstance(child, TextNode):
                if not child.is_blank:
                    cursor = self._render_inline([child], style, cursor)
                continue
            if child.tag == "li":
                marker = f"{start + position}. " if ordered else BULLET
                position += 1
                try:
                    cursor = self._list_item(child, style, cursor, marker)
                except Exception:
                    logger.exception("Failed to render list item %d; continuing", position)
                    cursor = self._last or cursor
            elif child.tag in ("ul", "ol"):
                nested = replace(style, indent=style.indent + LIST_INDENT)
                cursor = self._render_block(child, nested, cursor)
            else:
                cursor = self._render_blocks([child], style, cursor)
        return self._advance(cursor, self._spacing(style, record.margin_bottom, BLOCK_SPACE_AFTER))

    def _list_item(self, node: ElementNode, style: PdfStyle, cursor: Cursor, marker: str) -> Cursor:
        item = style.apply(node.style)
        marker_style = replace(item, underline=False, strike=False)
        marker_width = self.fonts.resolve(marker_style).width(marker, marker_style.font_size)
        text_indent = item.indent + max(LIST_INDENT, marker_width + mm(1))
        body = replace(item, indent=text_indent, compact=True)

        # an outer item whose first content is a nested list shares its first line
        pending = (marker, marker_style, self.left + item.indent)
        self._pending_markers.append(pending)
        cursor = self._render_blocks(node.children, body, cursor)
        if any(entry is pending for entry in self._pending_markers):
            # item without text: the marker gets a line of its own
            cursor = self._draw_lines([_Line([])], body, cursor)
        return cursor

    def _blockquote(self, node: ElementNode, style: PdfStyle, cursor: Cursor, record: StyleRecord) -> Cursor:
        quote = replace(style, indent=style.indent + QUOTE_INDENT, italic=True)
        cursor = self._advance(cursor, self._spacing(style, record.margin_top, PARAGRAPH_SPACE_BEFORE))
        text = " ".join(node.text_content().split())
        if text:
            cursor = self._render_inline([TextNode(text)], quote, cursor)
        return self._advance(cursor, self._spacing(style, record.margin_bottom, BLOCK_SPACE_AFTER))

    def _preformatted(self, node: ElementNode, style: PdfStyle, cursor: Cursor, record: StyleRecord) -> Cursor:
        mono = replace(style, font_family="Courier")
        cursor = self._advance(cursor, self._spacing(style, record.margin_top, PARAGRAPH_SPACE_BEFORE))
        items: List[_Item] = []
        for number, line in enumerate(node.text_content().strip("\n").split("\n")):
            if number:
                items.append(_BREAK)
            items.extend(self._text_items(line, mono))
        items.append(_BREAK)
        cursor = self._layout_items(items, mono, cursor)
        return self._advance(cursor, self._spacing(style, record.margin_bottom, BLOCK_SPACE_AFTER))

    def _rule(self, style: PdfStyle, cursor: Cursor) -> Cursor:
        cursor = self._ensure_room(cursor, 2 * RULE_GAP)
        y = cursor.y + RULE_GAP
        x0 = self.left + style.indent
        page = self._doc[cursor.page]
        page.draw_line(fitz.Point(x0, y), fitz.Point(self.left + self.content_width, y),
                       color=(0.6, 0.6, 0.6), width=0.75)
        return self._place(cursor, 2 * RULE_GAP, "rule")

    def _image(self, node: ElementNode, style: PdfStyle, cursor: Cursor) -> Cursor:
        resolved = self.images.get(node.get("src"))
        if resolved is None or resolved.width <= 0 or resolved.height <= 0:
            logger.debug("No image data for %r, skipping", (node.get("src") or "")[:40])
            return cursor

        width = _explicit_width(node)
        if width is None:
            width = resolved.width * PX_TO_PT
        height = width * resolved.height / resolved.width

        available = self.content_width - style.indent
        scale = min(1.0, available / width, self.max_image_height / height)
        width, height = width * scale, height * scale

        cursor = self._ensure_room(cursor, height)
        align = (node.get("data-align") or "center").lower()
        x = self.left + style.indent
        if align == "center":
            x += (available - width) / 2
        elif align == "right":
            x += available - width

        page = self._doc[cursor.page]
        page.insert_image(fitz.Rect(x, cursor.y, x + width, cursor.y + height), stream=resolved.jpeg_bytes)
        cursor = self._place(cursor, height, "image")
        return self._advance(cursor, IMAGE_SPACE_AFTER)

    # ── Inline layout ────────────────────────────────────────────────────

    def _render_inline(self, nodes: Sequence[ParsedNode], style: PdfStyle, cursor: Cursor) -> Cursor:
        if not nodes:
            return cursor
        items: List[_Item] = []
        for node in nodes:
            self._collect(node, style, items)
        if not any(isinstance(item, (_Word, _Break, ElementNode)) for item in items):
            return cursor
        return self._layout_items(items, style, cursor)

    def _collect(self, node: ParsedNode, style: PdfStyle, items: List[_Item]) -> None:
        if isinstance(node, TextNode):
            items.extend(self._text_items(node.content, style))
            return
        tag = node.tag
        if tag == "br":
            items.append(_BREAK)
        elif tag == "img":
            items.append(node)
        else:
            for child in node.children:
                self._collect(child, inline_style(node, style), items)

    @staticmethod
    def _text_items(text: str, style: PdfStyle) -> List[_Item]:
        items: List[_Item] = []
        for part in _WHITESPACE_SPLIT.split(text.replace("\xa0", " ")):
            if not part:
                continue
            items.append(_Space(style) if part.isspace() else _Word(part, style))
        return items

    def _layout_items(self, items: List[_Item], style: PdfStyle, cursor: Cursor) -> Cursor:
        segment: List[_Item] = []
        for item in items:
            if isinstance(item, ElementNode):
                cursor = self._draw_lines(self._wrap(segment, style), style, cursor)
                segment = []
                try:
                    cursor = self._image(item, style, cursor)
                except Exception:
                    logger.exception("Failed to draw inline image; continuing")
                    cursor = self._last or cursor
            else:
                segment.append(item)
        return self._draw_lines(self._wrap(segment, style), style, cursor)

    def _fragment(self, text: str, style: PdfStyle) -> _Fragment:
        font = self.fonts.resolve(style)
        return _Fragment(text, style, font, font.width(text, style.font_size))

    def _wrap(self, items: List[_Item], style: PdfStyle) -> List[_Line]:
        """Greedy word wrap of inline items into lines."""
        available = max(self.content_width - style.indent, 1.0)
        lines: List[_Line] = []
        current: List[_Fragment] = []
        width = 0.0
        space: Optional[PdfStyle] = None

        # glue adjacent words with no whitespace between them ("Hel<b>lo</b>")
        units: List[Union[List[_Word], _Space, _Break]] = []
        for item in items:
            if isinstance(item, _Word) and units and isinstance(units[-1], list):
                units[-1].append(item)
            elif isinstance(item, _Word):
                units.append([item])
            else:
                units.append(item)

        for unit in units:
            if isinstance(unit, _Break):
                lines.append(_Line(current))
                current, width, space = [], 0.0, None
                continue
            if isinstance(unit, _Space):
                if current:
                    space = unit.style
                continue

            frags = [self._fragment(word.text, word.style) for word in unit]
            word_width = sum(f.width for f in frags)
            gap = self._fragment(" ", space) if space is not None and current else None
            gap_width = gap.width if gap else 0.0

            if current and width + gap_width + word_width > available:
                lines.append(_Line(current))
                current, width, gap = [], 0.0, None
            elif gap is not None:
                current.append(gap)
                width += gap_width
            space = None

            if not current and word_width > available:
                for piece in self._split_long(frags, available):
                    if current:
                        lines.append(_Line(current))
                    current = piece
                width = sum(f.width for f in current)
                continue

            current.extend(frags)
            width += word_width

        if current:
            lines.append(_Line(current))
        return lines

    def _split_long(self, frags: List[_Fragment], available: float) -> List[List[_Fragment]]:
        """Break a word wider than the line at character boundaries."""
        pieces: List[List[_Fragment]] = []
        line: List[_Fragment] = []
        width = 0.0
        for frag in frags:
            chunk = ""
            for char in frag.text:
                char_width = frag.font.width(char, frag.style.font_size)
                if width + char_width > available and (line or chunk):
                    if chunk:
                        line.append(self._fragment(chunk, frag.style))
                    pieces.append(line)
                    line, chunk, width = [], "", 0.0
                chunk += char
                width += char_width
            if chunk:
                line.append(self._fragment(chunk, frag.style))
        if line:
            pieces.append(line)
        return pieces

    def _draw_lines(self, lines: Iterable[_Line], style: PdfStyle, cursor: Cursor) -> Cursor:
        available = self.content_width - style.indent
        for line in lines:
            height = line.height(style)
            cursor = self._ensure_room(cursor, height)
            size = line.max_size(style)
            baseline = cursor.y + (height - size) / 2 + size * ASCENT
            page = self._doc[cursor.page]
            writer = fitz.TextWriter(page.rect)
            queued = bool(self._pending_markers)

            for marker, marker_style, marker_x in self._pending_markers:
                self._draw_text(writer, page, marker, marker_style, marker_x, baseline)
            self._pending_markers = []

            x = self.left + style.indent
            if style.align == "center":
                x += max((available - line.width) / 2, 0.0)
            elif style.align == "right":
                x += max(available - line.width, 0.0)
            for frag in line.fragments:
                if frag.text.strip():
                    self._draw_text(writer, page, frag.text, frag.style, x, baseline, frag.width)
                    queued = True
                x += frag.width
            if queued:
                writer.write_text(page, color=(0, 0, 0))
            cursor = self._place(cursor, height, "text")
        return cursor

    def _draw_text(
        self, writer: fitz.TextWriter, page: fitz.Page, text: str, style: PdfStyle,
        x: float, baseline: float, width: Optional[float] = None,
    ) -> None:
        """Queue *text* on *writer*; decorations are drawn on *page* directly.

        The writer embeds the measured :class:`fitz.Font` itself, so glyphs
        outside Latin-1 (bullets, curly quotes, currency signs) survive.
        """
        font = self.fonts.resolve(style)
        writer.append(fitz.Point(x, baseline), text, font=font.font, fontsize=style.font_size)
        if style.underline or style.strike:
            if width is None:
                width = font.width(text, style.font_size)
            offset = style.font_size * 0.12 if style.underline else -style.font_size * 0.28
            y = baseline + offset
            page.draw_line(fitz.Point(x, y), fitz.Point(x + width, y),
                           color=(0, 0, 0), width=max(style.font_size / 18.0, 0.5))


# ── Helpers ──────────────────────────────────────────────────────────────────

def inline_style(node: ElementNode, style: PdfStyle) -> PdfStyle:
    """Style for the children of an inline element."""
    tag = node.tag
    if tag in ("b", "strong"):
        style = replace(style, bold=True)
    elif tag in ("i", "em", "cite"):
        style = replace(style, italic=True)
    elif tag in ("u", "ins"):
        style = replace(style, underline=True)
    elif tag in ("s", "strike", "del"):
        style = replace(style, strike=True)
    elif tag == "code":
        style = replace(style, font_family="Courier")
    elif tag in HEADING_SIZES:
        style = replace(style, font_size=HEADING_SIZES[tag], bold=True)
    record = node.style
    if record.margin_left is not None:
        # margins only indent blocks
        record = replace(record, margin_left=None)
    return style.apply(record)


def _has_content(node: ElementNode) -> bool:
    if node.text_content().strip():
        return True
    stack = list(node.children)
    while stack:
        child = stack.pop()
        if isinstance(child, ElementNode):
            if child.tag in ("img", "br", "hr"):
                return True
            stack.extend(child.children)
    return False


def _explicit_width(node: ElementNode) -> Optional[float]:
    """Display width from the ``width`` attribute (px) or inline style."""
    raw = node.get("width")
    if raw:
        points = to_points(raw)
        if points and points > 0:
            return points
    width = node.style.width
    return width if width and width > 0 else None
