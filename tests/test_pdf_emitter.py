import fitz
import pytest

from docmerge.config import RenderConfig
from docmerge.html_parser import parse_html
from docmerge.images import ImageResolver
from docmerge.pages import PageModel
from docmerge.pdf_emitter import FontBook, PdfEmitter, PdfStyle, base14_group


def render(html, config=None, resolve_images=True):
    config = config or RenderConfig()
    pages = [parse_html(page) for page in PageModel.split(html)]
    images = ImageResolver(config)
    if resolve_images:
        for nodes in pages:
            images.resolve_nodes(nodes)
    emitter = PdfEmitter(config, images)
    data = emitter.render(pages)
    return emitter, fitz.open(stream=data, filetype="pdf")


def test_simple_paragraph():
    emitter, doc = render("<p>Hello <b>world</b></p>")
    assert doc.page_count == 1
    text = doc[0].get_text()
    assert "Hello" in text and "world" in text
    assert emitter.page_breaks == []


def test_page_geometry_follows_config():
    _, doc = render("<p>x</p>", RenderConfig(page_format="letter", orientation="landscape"))
    rect = doc[0].rect
    assert rect.width == pytest.approx(792, abs=1)
    assert rect.height == pytest.approx(612, abs=1)


def test_overflow_starts_new_pages_within_margins():
    html = "".join(f"<p>Paragraph number {i} with some text.</p>" for i in range(80))
    emitter, doc = render(html)
    assert doc.page_count > 1
    assert "overflow" in emitter.page_breaks
    assert all(p.bottom <= emitter.bottom + 1e-6 for p in emitter.placements)
    assert all(p.top >= emitter.top - 1e-6 for p in emitter.placements)


def test_long_paragraph_wraps_across_pages():
    words = " ".join(f"word{i}" for i in range(3000))
    emitter, doc = render(f"<p>{words}</p>")
    assert doc.page_count > 1
    assert all(p.bottom <= emitter.bottom + 1e-6 for p in emitter.placements)
    assert "word2999" in doc[doc.page_count - 1].get_text()


def test_each_template_page_starts_a_physical_page():
    html = '<p>one</p><div class="page-break-delimiter"></div><p>two</p><div class="page-break-delimiter"></div><p>three</p>'
    emitter, doc = render(html)
    assert doc.page_count == 3
    assert emitter.page_breaks.count("boundary") == 2
    assert "three" in doc[2].get_text()


def test_lists_draw_markers():
    _, doc = render("<ol start='3'><li>first</li><li>second</li></ol><ul><li>dot</li></ul>")
    text = doc[0].get_text()
    assert "3." in text and "4." in text
    assert "first" in text and "dot" in text


def test_empty_paragraph_is_a_blank_line():
    emitter, _ = render("<p></p><p>after</p>")
    assert [p.kind for p in emitter.placements] == ["blank", "text"]


def test_image_is_drawn(png_data_uri):
    emitter, doc = render(f'<p><img src="{png_data_uri}"></p>')
    assert [p.kind for p in emitter.placements] == ["image"]
    assert doc[0].get_images()


def test_image_scaled_to_max_height(png_data_uri):
    config = RenderConfig(max_image_height_mm=5)
    emitter, _ = render(f'<img src="{png_data_uri}" width="2000">', config)
    image = emitter.placements[0]
    assert image.bottom - image.top == pytest.approx(emitter.max_image_height, rel=1e-3)


def test_unresolved_image_is_skipped(png_data_uri):
    emitter, doc = render(f'<p>before</p><img src="{png_data_uri}"><p>after</p>', resolve_images=False)
    assert "image" not in [p.kind for p in emitter.placements]
    assert "after" in doc[0].get_text()


def test_headings_rules_quotes_and_pre():
    html = "<h1>Title</h1><hr><blockquote>quoted</blockquote><pre>a  b\nc</pre>"
    emitter, doc = render(html)
    text = doc[0].get_text()
    assert "Title" in text and "quoted" in text
    assert "rule" in [p.kind for p in emitter.placements]


def test_font_groups():
    assert base14_group("Arial")[0] == "helv"
    assert base14_group("Georgia, serif")[0] == "tiro"
    assert base14_group("sans-serif")[0] == "helv"
    assert base14_group("Courier New")[0] == "cour"


def test_font_book_falls_back_for_missing_files(tmp_path):
    book = FontBook({"Inter": str(tmp_path / "missing.ttf")})
    choice = book.resolve(PdfStyle(font_family="Inter", bold=True))
    assert choice.name == "hebo"
    assert choice.fontfile is None


def test_text_outside_latin1_survives():
    _, doc = render("<ul><li>Zoë “Ana” €5 – Łódź</li></ul>")
    text = doc[0].get_text()
    for glyph in ("•", "“", "”", "–", "€", "Ł", "Zoë"):
        assert glyph in text


def test_nested_list_keeps_both_markers():
    _, doc = render("<ul><li><ul><li>inner</li></ul></li></ul>")
    text = doc[0].get_text()
    assert text.count("•") == 2
    assert "inner" in text


def test_negative_margins_stay_inside_the_page():
    emitter, _ = render('<p style="margin-top: -200px">up</p><div style="margin-top: -1in"><p>x</p></div>')
    assert all(p.top >= emitter.top - 1e-6 for p in emitter.placements)


def test_failing_block_does_not_stop_the_page(monkeypatch):
    def broken(self, style, cursor):
        raise RuntimeError("rule failed")

    monkeypatch.setattr(PdfEmitter, "_rule", broken)
    emitter, doc = render("<p>before</p><hr><p>after</p>")
    text = doc[0].get_text()
    assert "before" in text and "after" in text
    assert "rule" not in [p.kind for p in emitter.placements]


def test_failing_list_item_does_not_stop_the_list(monkeypatch):
    original = PdfEmitter._list_item

    def flaky(self, node, style, cursor, marker):
        if node.text_content() == "bad":
            raise RuntimeError("item failed")
        return original(self, node, style, cursor, marker)

    monkeypatch.setattr(PdfEmitter, "_list_item", flaky)
    _, doc = render("<ol><li>bad</li><li>good</li></ol><p>tail</p>")
    text = doc[0].get_text()
    assert "good" in text and "tail" in text
    assert "2." in text
