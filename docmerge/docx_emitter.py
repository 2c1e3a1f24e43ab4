"""
Parsed template -> Word document.

Conversion happens in two steps:

1. :meth:`DocxEmitter.convert` flattens the node tree into a flat list of
   :class:`DocxParagraph` objects, each holding styled :class:`DocxRun`
   objects.  Inline formatting is carried down as an immutable
   :class:`RunStyle`; block elements close the paragraph being built, and
   blocks nested in other blocks are emitted in document order.
2. :func:`build_docx` writes that list into a ``.docx`` with python-docx.

Nothing is positioned absolutely: Word does its own layout, so the result
stays editable.
"""

from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass, field, replace
from typing import List, Optional, Sequence

from docx import Document
from docx.enum.section import WD_ORIENT
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml import parse_xml
from docx.oxml.ns import nsdecls, qn
from docx.shared import Emu, Mm, Pt, Twips

from docmerge.config import RenderConfig
from docmerge.html_parser import ElementNode, ParsedNode, TextNode, is_page_delimiter
from docmerge.images import ImageResolver
from docmerge.styles import PX_TO_PT, StyleRecord, to_points

logger = logging.getLogger(__name__)


# ── Unit helpers ─────────────────────────────────────────────────────────────

_PT_TO_EMU = 12700          # 1 pt = 12 700 EMU


def _pt2emu(pt: float) -> int:
    return int(pt * _PT_TO_EMU)


_PAGE_SIZES_MM = {"a4": (210.0, 297.0), "letter": (215.9, 279.4)}

_HEADING_TAGS = {"h1": 1, "h2": 2, "h3": 3, "h4": 4, "h5": 5, "h6": 6}
_PARAGRAPH_TAGS = {"p", "li", "pre", "figcaption"} | set(_HEADING_TAGS)
_CONTAINER_TAGS = {
    "div", "ul", "ol", "blockquote", "table", "thead", "tbody", "tfoot", "tr",
    "td", "th", "section", "article", "header", "footer", "figure", "main",
    "nav", "aside",
}
_QUOTE_INDENT_PT = 36.0
_LIST_CONTINUATION_INDENT_PT = 18.0

_ALIGNMENTS = {
    "left": WD_ALIGN_PARAGRAPH.LEFT,
    "center": WD_ALIGN_PARAGRAPH.CENTER,
    "right": WD_ALIGN_PARAGRAPH.RIGHT,
    "justify": WD_ALIGN_PARAGRAPH.JUSTIFY,
}

_WHITESPACE = re.compile(r"\s+")


# ── Paragraph / run tree ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class RunStyle:
    bold: bool = False
    italic: bool = False
    underline: bool = False
    strike: bool = False
    font_size: Optional[float] = None
    font_family: Optional[str] = None

    def apply(self, record: StyleRecord) -> "RunStyle":
        changes = {}
        if record.font_weight is not None:
            changes["bold"] = record.font_weight == "bold"
        if record.font_style is not None:
            changes["italic"] = record.font_style == "italic"
        if record.text_decoration is not None:
            changes["underline"] = record.text_decoration == "underline"
            changes["strike"] = record.text_decoration == "line-through"
        if record.font_size is not None:
            changes["font_size"] = record.font_size
        if record.font_family is not None:
            changes["font_family"] = record.font_family
        return replace(self, **changes) if changes else self


@dataclass
class DocxRun:
    text: str = ""
    style: RunStyle = field(default_factory=RunStyle)
    line_break: bool = False
    image_src: Optional[str] = None
    image_width_pt: Optional[float] = None


@dataclass
class DocxParagraph:
    runs: List[DocxRun] = field(default_factory=list)
    heading_level: Optional[int] = None
    alignment: str = "left"
    list_style: Optional[str] = None        # "bullet" or "number"
    list_level: int = 0
    indent_pt: float = 0.0
    space_before_pt: Optional[float] = None
    space_after_pt: Optional[float] = None
    line_spacing: Optional[float] = None
    page_break: bool = False
    horizontal_rule: bool = False

    @property
    def text(self) -> str:
        return "".join("\n" if run.line_break else run.text for run in self.runs)

    def has_content(self) -> bool:
        return any(run.text.strip() or run.line_break or run.image_src for run in self.runs)


class _ListSlot:
    """Marks whether a list item's bullet has been used by a paragraph yet."""

    def __init__(self) -> None:
        self.used = False


@dataclass(frozen=True)
class _Block:
    """Paragraph properties inherited by paragraphs opened inside a block."""

    alignment: str = "left"
    heading_level: Optional[int] = None
    list_style: Optional[str] = None
    list_level: int = 0
    list_slot: Optional[_ListSlot] = None
    list_kind: Optional[str] = None         # set by ul/ol for their items
    list_depth: int = 0
    indent_pt: float = 0.0
    line_spacing: Optional[float] = None
    space_before_pt: Optional[float] = None
    space_after_pt: Optional[float] = None


# ── Converter ────────────────────────────────────────────────────────────────

class DocxEmitter:
    """Turn a parsed node tree into a flat list of paragraphs."""

    def __init__(self) -> None:
        self._out: List[DocxParagraph] = []
        self._current: Optional[DocxParagraph] = None
        self._current_slot: Optional[_ListSlot] = None
        self._explicit = False

    def convert(self, nodes: Sequence[ParsedNode]) -> List[DocxParagraph]:
        self._out = []
        self._current = None
        self._explicit = False
        for node in nodes:
            self._walk_safely(node, RunStyle(), _Block())
        self._flush()
        return self._out

    def _walk_safely(self, node: ParsedNode, style: RunStyle, block: _Block) -> None:
        try:
            self._walk(node, style, block)
        except Exception:
            tag = node.tag if isinstance(node, ElementNode) else "#text"
            logger.exception("Failed to convert <%s>; keeping its text", tag)
            text = _WHITESPACE.sub(" ", node.text_content())
            if text.strip():
                self._ensure_paragraph(block).runs.append(DocxRun(text, style))

    # ── Paragraph bookkeeping ────────────────────────────────────────────

    def _open(self, block: _Block, explicit: bool) -> DocxParagraph:
        self._flush()
        list_style = block.list_style
        indent = block.indent_pt
        if list_style and block.list_slot is not None and block.list_slot.used:
            # later paragraphs of the same item: indented, no bullet
            list_style = None
            indent += _LIST_CONTINUATION_INDENT_PT * (block.list_level + 1)
        self._current = DocxParagraph(
            heading_level=block.heading_level,
            alignment=block.alignment,
            list_style=list_style,
            list_level=block.list_level,
            indent_pt=indent,
            space_before_pt=block.space_before_pt,
            space_after_pt=block.space_after_pt,
            line_spacing=block.line_spacing,
        )
        self._current_slot = block.list_slot if list_style else None
        self._explicit = explicit
        return self._current

    def _ensure_paragraph(self, block: _Block) -> DocxParagraph:
        if self._current is None:
            return self._open(block, explicit=False)
        return self._current

    def _flush(self) -> None:
        paragraph = self._current
        self._current = None
        if paragraph is None:
            return
        runs = paragraph.runs
        while runs and not runs[-1].line_break and not runs[-1].image_src and not runs[-1].text.strip():
            runs.pop()
        if runs and runs[-1].text:
            runs[-1].text = runs[-1].text.rstrip()
        if paragraph.has_content() or self._explicit:
            self._out.append(paragraph)
            if self._current_slot is not None:
                self._current_slot.used = True
        self._current_slot = None

    # ── Tree walk ────────────────────────────────────────────────────────

    def _walk(self, node: ParsedNode, style: RunStyle, block: _Block) -> None:
        if isinstance(node, TextNode):
            self._text(node.content, style, block)
            return

        if is_page_delimiter(node):
            self._flush()
            self._out.append(DocxParagraph(page_break=True))
            return

        tag = node.tag
        record = node.style

        if tag == "br":
            self._ensure_paragraph(block).runs.append(DocxRun(style=style, line_break=True))
            return
        if tag == "img":
            self._image(node, style, block)
            return
        if tag == "hr":
            self._flush()
            self._out.append(DocxParagraph(horizontal_rule=True))
            return

        if tag in _PARAGRAPH_TAGS or tag in _CONTAINER_TAGS:
            inner = self._block_for(node, record, block)
            run_style = style.apply(record)
            if tag in _HEADING_TAGS:
                # heading styles carry their own weight and size
                run_style = replace(run_style, bold=False, font_size=record.font_size)
            if tag in _PARAGRAPH_TAGS:
                self._open(inner, explicit=tag != "li")
            else:
                self._flush()
            if tag == "pre":
                self._preformatted(node, run_style, inner)
            else:
                for child in node.children:
                    self._walk_safely(child, run_style, inner)
            self._flush()
            return

        # inline formatting, or an unknown tag flattened into the paragraph
        child_style = inline_run_style(node, style)
        for child in node.children:
            self._walk_safely(child, child_style, block)

    def _block_for(self, node: ElementNode, record: StyleRecord, block: _Block) -> _Block:
        tag = node.tag
        align = record.text_align or (node.get("align") or "").lower() or block.alignment
        if align not in _ALIGNMENTS:
            align = block.alignment
        changes = dict(
            alignment=align,
            heading_level=_HEADING_TAGS.get(tag),
            line_spacing=record.line_height if record.line_height is not None else block.line_spacing,
            space_before_pt=_non_negative(record.margin_top),
            space_after_pt=_non_negative(record.margin_bottom),
            indent_pt=block.indent_pt + (record.margin_left or 0.0),
        )
        if tag in ("ul", "ol"):
            changes["list_kind"] = "number" if tag == "ol" else "bullet"
            changes["list_depth"] = block.list_level + 1 if block.list_style else 0
        elif tag == "li":
            changes["list_style"] = block.list_kind or "bullet"
            changes["list_level"] = block.list_depth
            changes["list_slot"] = _ListSlot()
        elif tag == "blockquote":
            changes["indent_pt"] += _QUOTE_INDENT_PT
        return replace(block, **changes)

    def _text(self, content: str, style: RunStyle, block: _Block) -> None:
        text = _WHITESPACE.sub(" ", content.replace("\xa0", " "))
        if self._current is None or not self._current.runs or self._current.runs[-1].line_break:
            text = text.lstrip()
        elif self._current.runs[-1].text.endswith(" "):
            text = text.lstrip()
        if not text:
            return
        self._ensure_paragraph(block).runs.append(DocxRun(text, style))

    def _preformatted(self, node: ElementNode, style: RunStyle, block: _Block) -> None:
        mono = replace(style, font_family="Courier New")
        paragraph = self._ensure_paragraph(block)
        for number, line in enumerate(node.text_content().strip("\n").split("\n")):
            if number:
                paragraph.runs.append(DocxRun(style=mono, line_break=True))
            if line:
                paragraph.runs.append(DocxRun(line, mono))

    def _image(self, node: ElementNode, style: RunStyle, block: _Block) -> None:
        src = (node.get("src") or "").strip()
        if not src:
            return
        width = None
        raw = node.get("width")
        if raw:
            width = _positive(to_points(raw))
        if width is None:
            width = _positive(node.style.width)
        align = (node.get("data-align") or "center").lower()
        if align not in _ALIGNMENTS:
            align = block.alignment

        # the picture gets a paragraph of its own, aligned like the editor shows it
        paragraph = self._current
        if paragraph is not None and paragraph.has_content():
            self._flush()
            paragraph = None
        if paragraph is None:
            paragraph = self._open(block, explicit=False)
        paragraph.alignment = align
        paragraph.runs.append(DocxRun(style=style, image_src=src, image_width_pt=width))
        self._flush()


def _non_negative(value: Optional[float]) -> Optional[float]:
    return value if value is not None and value >= 0 else None


def _positive(value: Optional[float]) -> Optional[float]:
    return value if value is not None and value > 0 else None


def inline_run_style(node: ElementNode, style: RunStyle) -> RunStyle:
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
        style = replace(style, font_family="Courier New")
    return style.apply(node.style)


# ── Document writer ──────────────────────────────────────────────────────────

def _set_run_font(run, family: str) -> None:
    run.font.name = family
    r_pr = run._element.get_or_add_rPr()
    r_fonts = r_pr.find(qn("w:rFonts"))
    if r_fonts is None:
        r_fonts = parse_xml(f"<w:rFonts {nsdecls('w')}/>")
        r_pr.insert(0, r_fonts)
    for attr in ("w:ascii", "w:hAnsi", "w:cs", "w:eastAsia"):
        r_fonts.set(qn(attr), family)


def _add_bottom_border(paragraph) -> None:
    """Render a horizontal rule as a paragraph bottom border."""
    p_pr = paragraph._element.get_or_add_pPr()
    p_pr.append(parse_xml(
        f"<w:pBdr {nsdecls('w')}>"
        '<w:bottom w:val="single" w:sz="6" w:space="1" w:color="999999"/>'
        "</w:pBdr>"
    ))


def _list_style_name(kind: str, level: int) -> str:
    base = "List Number" if kind == "number" else "List Bullet"
    level = min(level, 2)
    return base if level == 0 else f"{base} {level + 1}"


def _setup_section(doc, config: RenderConfig) -> float:
    """Apply page size and margins; return the text width in points."""
    section = doc.sections[0]
    width_mm, height_mm = _PAGE_SIZES_MM[config.page_format]
    if config.orientation == "landscape":
        section.orientation = WD_ORIENT.LANDSCAPE
        width_mm, height_mm = height_mm, width_mm
    else:
        section.orientation = WD_ORIENT.PORTRAIT
    section.page_width = Mm(width_mm)
    section.page_height = Mm(height_mm)
    margin = Twips(config.docx_margin_twips)
    section.top_margin = margin
    section.bottom_margin = margin
    section.left_margin = margin
    section.right_margin = margin
    return (section.page_width - 2 * margin) / _PT_TO_EMU


def build_docx(
    paragraphs: Sequence[DocxParagraph],
    config: Optional[RenderConfig] = None,
    images: Optional[ImageResolver] = None,
) -> bytes:
    """Write *paragraphs* into a new ``.docx`` and return its bytes."""
    config = config or RenderConfig()
    doc = Document()
    text_width_pt = _setup_section(doc, config)

    normal = doc.styles["Normal"]
    normal.font.name = config.docx_font
    normal.font.size = Pt(config.docx_font_size)

    break_before = False
    for para in paragraphs:
        if para.page_break:
            if break_before:
                # two delimiters in a row: an empty page
                doc.add_paragraph().paragraph_format.page_break_before = True
            break_before = True
            continue
        try:
            _write_paragraph(doc, para, images, text_width_pt, break_before)
        except Exception:
            logger.exception("Failed to write paragraph %r; continuing", para.text[:40])
        break_before = False
    if break_before:
        doc.add_paragraph().paragraph_format.page_break_before = True

    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


def _write_paragraph(
    doc, para: DocxParagraph, images: Optional[ImageResolver], text_width_pt: float, break_before: bool
) -> None:
    if para.horizontal_rule:
        paragraph = doc.add_paragraph()
        if break_before:
            paragraph.paragraph_format.page_break_before = True
        _add_bottom_border(paragraph)
        return

    if para.heading_level:
        paragraph = doc.add_heading(level=min(para.heading_level, 9))
    elif para.list_style:
        paragraph = doc.add_paragraph(style=_list_style_name(para.list_style, para.list_level))
    else:
        paragraph = doc.add_paragraph()

    fmt = paragraph.paragraph_format
    if break_before:
        fmt.page_break_before = True
    fmt.alignment = _ALIGNMENTS.get(para.alignment, WD_ALIGN_PARAGRAPH.LEFT)
    if para.indent_pt:
        fmt.left_indent = Pt(para.indent_pt)
    if para.space_before_pt is not None:
        fmt.space_before = Pt(para.space_before_pt)
    if para.space_after_pt is not None:
        fmt.space_after = Pt(para.space_after_pt)
    if para.line_spacing is not None:
        fmt.line_spacing = para.line_spacing

    for item in para.runs:
        if item.line_break:
            paragraph.add_run().add_break()
        elif item.image_src:
            _add_picture(paragraph, item, images, text_width_pt - para.indent_pt)
        else:
            _add_text_run(paragraph, item)


def _add_text_run(paragraph, item: DocxRun) -> None:
    run = paragraph.add_run(item.text)
    style = item.style
    if style.bold:
        run.bold = True
    if style.italic:
        run.italic = True
    if style.underline:
        run.underline = True
    if style.strike:
        run.font.strike = True
    if style.font_size:
        run.font.size = Pt(style.font_size)
    if style.font_family:
        _set_run_font(run, style.font_family)


def _add_picture(paragraph, item: DocxRun, images: Optional[ImageResolver], max_width_pt: float) -> None:
    resolved = images.get(item.image_src) if images is not None else None
    if resolved is None:
        logger.debug("No image data for %r, skipping", item.image_src[:40])
        return
    width_pt = item.image_width_pt or resolved.width * PX_TO_PT
    width_pt = min(width_pt, max(max_width_pt, 1.0))
    paragraph.add_run().add_picture(io.BytesIO(resolved.jpeg_bytes), width=Emu(_pt2emu(width_pt)))
