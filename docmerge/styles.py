"""
Inline ``style`` attribute parsing.

The editor only ever writes a handful of CSS properties.  Each one is a
:class:`StyleHandler` in :data:`STYLE_HANDLERS` with a ``parse`` function
(CSS text -> typed value) and a ``render`` function (typed value -> CSS
text).  :func:`parse_style` runs the registered handlers over a declaration
block and returns a :class:`StyleRecord`; anything unregistered is ignored.

Lengths are normalised to points.  Line heights are normalised to a
multiplier of the font size.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, fields, replace
from typing import Any, Callable, Dict, Iterable, Optional

# ── Unit helpers ─────────────────────────────────────────────────────────────

MM_TO_PT = 72.0 / 25.4
PX_TO_PT = 0.75             # CSS px are 1/96 in, PDF pt are 1/72 in

_LENGTH = re.compile(r"^(-?\d*\.?\d+)\s*(px|pt|mm|cm|in|em|rem|%)?$", re.IGNORECASE)

_UNIT_FACTORS = {
    "px": PX_TO_PT,
    "pt": 1.0,
    "mm": MM_TO_PT,
    "cm": MM_TO_PT * 10,
    "in": 72.0,
}


def mm(value: float) -> float:
    """Millimetres to points."""
    return value * MM_TO_PT


def to_points(value: str, base_font_size: float = 12.0) -> Optional[float]:
    """Convert a CSS length to points; ``None`` if it cannot be read.

    ``em``, ``rem`` and ``%`` are relative to *base_font_size*.  Bare numbers
    are treated as pixels.
    """
    match = _LENGTH.match(value.strip())
    if not match:
        return None
    number = float(match.group(1))
    unit = (match.group(2) or "px").lower()
    if unit in ("em", "rem"):
        return number * base_font_size
    if unit == "%":
        return number / 100.0 * base_font_size
    return number * _UNIT_FACTORS[unit]


def _format_pt(value: float) -> str:
    return f"{value:g}pt"


# ── Style record ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class StyleRecord:
    """Typed view of the inline style properties the renderers understand."""

    font_family: Optional[str] = None
    font_size: Optional[float] = None
    line_height: Optional[float] = None
    margin_left: Optional[float] = None
    margin_top: Optional[float] = None
    margin_bottom: Optional[float] = None
    text_align: Optional[str] = None
    font_weight: Optional[str] = None
    font_style: Optional[str] = None
    text_decoration: Optional[str] = None
    width: Optional[float] = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))


@dataclass(frozen=True)
class _ParseContext:
    base_font_size: float
    font_size: Optional[float]


@dataclass(frozen=True)
class StyleHandler:
    """One supported CSS property."""

    prop: str
    field: str
    parse: Callable[[str, _ParseContext], Any]
    render: Callable[[Any], str]


# ── Property parsers ─────────────────────────────────────────────────────────

def _parse_font_family(value: str, ctx: _ParseContext) -> Optional[str]:
    first = value.split(",")[0].strip().strip("'\"").strip()
    return first or None


def _render_font_family(value: str) -> str:
    return f"'{value}'" if " " in value else value


def _parse_font_size(value: str, ctx: _ParseContext) -> Optional[float]:
    size = to_points(value, ctx.base_font_size)
    return size if size and size > 0 else None


def _parse_line_height(value: str, ctx: _ParseContext) -> Optional[float]:
    value = value.strip().lower()
    if value == "normal":
        return None
    try:
        multiplier = float(value)
    except ValueError:
        font_size = ctx.font_size or ctx.base_font_size
        if value.endswith("%"):
            multiplier = float(value[:-1]) / 100.0 if _LENGTH.match(value) else 0.0
        else:
            points = to_points(value, font_size)
            multiplier = points / font_size if points else 0.0
    return multiplier if multiplier > 0 else None


def _parse_length(value: str, ctx: _ParseContext) -> Optional[float]:
    if value.strip().lower() == "auto":
        return None
    return to_points(value, ctx.font_size or ctx.base_font_size)


_ALIGN_ALIASES = {"start": "left", "end": "right"}


def _parse_text_align(value: str, ctx: _ParseContext) -> Optional[str]:
    value = _ALIGN_ALIASES.get(value.strip().lower(), value.strip().lower())
    return value if value in ("left", "center", "right", "justify") else None


def _parse_font_weight(value: str, ctx: _ParseContext) -> Optional[str]:
    value = value.strip().lower()
    if value in ("bold", "bolder"):
        return "bold"
    if value in ("normal", "lighter"):
        return "normal"
    if value.isdigit():
        return "bold" if int(value) >= 600 else "normal"
    return None


def _parse_font_style(value: str, ctx: _ParseContext) -> Optional[str]:
    value = value.strip().lower()
    if value in ("italic", "oblique"):
        return "italic"
    return "normal" if value == "normal" else None


def _parse_text_decoration(value: str, ctx: _ParseContext) -> Optional[str]:
    value = value.lower()
    if "underline" in value:
        return "underline"
    if "line-through" in value:
        return "line-through"
    return "none" if "none" in value else None


def _identity(value: Any) -> str:
    return str(value)


def _render_line_height(value: float) -> str:
    return f"{value:g}"


STYLE_HANDLERS: Dict[str, StyleHandler] = {}


def register_style_handler(handler: StyleHandler) -> None:
    STYLE_HANDLERS[handler.prop] = handler


# font-size is registered first: relative lengths below depend on it.
for _handler in (
    StyleHandler("font-size", "font_size", _parse_font_size, _format_pt),
    StyleHandler("font-family", "font_family", _parse_font_family, _render_font_family),
    StyleHandler("line-height", "line_height", _parse_line_height, _render_line_height),
    StyleHandler("margin-left", "margin_left", _parse_length, _format_pt),
    StyleHandler("margin-top", "margin_top", _parse_length, _format_pt),
    StyleHandler("margin-bottom", "margin_bottom", _parse_length, _format_pt),
    StyleHandler("text-align", "text_align", _parse_text_align, _identity),
    StyleHandler("font-weight", "font_weight", _parse_font_weight, _identity),
    StyleHandler("font-style", "font_style", _parse_font_style, _identity),
    StyleHandler("text-decoration", "text_decoration", _parse_text_decoration, _identity),
    StyleHandler("width", "width", _parse_length, _format_pt),
):
    register_style_handler(_handler)


# ── Public API ───────────────────────────────────────────────────────────────

def parse_declarations(css: str) -> Dict[str, str]:
    """Split ``"a: b; c: d"`` into ``{"a": "b", "c": "d"}`` (last one wins)."""
    declarations: Dict[str, str] = {}
    for chunk in css.split(";"):
        prop, sep, value = chunk.partition(":")
        if not sep:
            continue
        prop = prop.strip().lower()
        value = value.replace("!important", "").strip()
        if prop and value:
            declarations[prop] = value
    return declarations


def parse_style(
    css: Optional[str],
    base_font_size: float = 12.0,
    enabled: Optional[Iterable[str]] = None,
) -> StyleRecord:
    """Parse an inline ``style`` attribute into a :class:`StyleRecord`.

    *enabled* restricts parsing to the named properties; by default every
    registered handler is active.
    """
    if not css:
        return StyleRecord()
    declarations = parse_declarations(css)
    allowed = set(enabled) if enabled is not None else None
    values: Dict[str, Any] = {}
    ctx = _ParseContext(base_font_size=base_font_size, font_size=None)
    for prop, handler in STYLE_HANDLERS.items():
        if prop not in declarations or (allowed is not None and prop not in allowed):
            continue
        try:
            parsed = handler.parse(declarations[prop], ctx)
        except ValueError:
            parsed = None
        if parsed is None:
            continue
        values[handler.field] = parsed
        if handler.field == "font_size":
            ctx = replace(ctx, font_size=parsed)
    return StyleRecord(**values)


def render_style(record: StyleRecord) -> str:
    """Inverse of :func:`parse_style` for the fields that are set."""
    parts = []
    for prop, handler in STYLE_HANDLERS.items():
        value = getattr(record, handler.field)
        if value is not None:
            parts.append(f"{prop}: {handler.render(value)}")
    return "; ".join(parts)
