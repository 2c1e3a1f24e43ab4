import pytest

from docmerge.styles import (
    MM_TO_PT,
    STYLE_HANDLERS,
    StyleHandler,
    StyleRecord,
    parse_declarations,
    parse_style,
    register_style_handler,
    render_style,
    to_points,
)


@pytest.mark.parametrize("value, expected", [
    ("16px", 12.0),
    ("12pt", 12.0),
    ("1in", 72.0),
    ("10mm", 10 * MM_TO_PT),
    ("2em", 24.0),
    ("50%", 6.0),
    ("8", 6.0),
])
def test_to_points(value, expected):
    assert to_points(value) == pytest.approx(expected)


def test_to_points_rejects_garbage():
    assert to_points("large") is None


def test_parse_declarations_last_wins_and_drops_important():
    assert parse_declarations("color: red; COLOR: blue !important;; bad") == {"color": "blue"}


def test_parse_style_typed_values():
    record = parse_style(
        "font-size: 18pt; font-weight: 700; font-style: oblique; "
        "text-decoration: underline; text-align: end; margin-left: 20px; "
        "font-family: 'Times New Roman', serif"
    )
    assert record.font_size == 18.0
    assert record.font_weight == "bold"
    assert record.font_style == "italic"
    assert record.text_decoration == "underline"
    assert record.text_align == "right"
    assert record.margin_left == pytest.approx(15.0)
    assert record.font_family == "Times New Roman"


@pytest.mark.parametrize("css, expected", [
    ("line-height: 1.8", 1.8),
    ("line-height: 150%", 1.5),
    ("line-height: 24px", 1.5),
    ("font-size: 24pt; line-height: 36pt", 1.5),
    ("line-height: normal", None),
])
def test_line_height_is_a_multiplier(css, expected):
    assert parse_style(css).line_height == (pytest.approx(expected) if expected else None)


def test_unknown_properties_ignored():
    record = parse_style("color: red; background: blue")
    assert record.is_empty()


def test_enabled_restricts_properties():
    record = parse_style("font-size: 20pt; text-align: center", enabled=["text-align"])
    assert record.font_size is None
    assert record.text_align == "center"


def test_render_style_round_trip():
    record = StyleRecord(font_size=14.0, text_align="center", font_family="Open Sans")
    css = render_style(record)
    assert css == "font-size: 14pt; font-family: 'Open Sans'; text-align: center"
    assert parse_style(css) == record


def test_register_style_handler(monkeypatch):
    monkeypatch.setattr("docmerge.styles.STYLE_HANDLERS", dict(STYLE_HANDLERS))
    register_style_handler(StyleHandler(
        "text-align", "text_align", lambda value, ctx: "center", str,
    ))
    assert parse_style("text-align: left").text_align == "center"
