import io

import docx
from docx.enum.text import WD_ALIGN_PARAGRAPH

from docmerge import docx_emitter
from docmerge.config import RenderConfig
from docmerge.docx_emitter import DocxEmitter, build_docx
from docmerge.html_parser import parse_html
from docmerge.images import ImageResolver
from docmerge.pages import PAGE_DELIMITER


def convert(html):
    return DocxEmitter().convert(parse_html(html))


def test_runs_carry_inline_styles():
    [para] = convert('<p>plain <b>bold <i>both</i></b> <span style="font-size: 16pt">big</span></p>')
    assert para.text == "plain bold both big"
    styles = {run.text.strip(): run.style for run in para.runs if run.text.strip()}
    assert styles["bold"].bold and not styles["bold"].italic
    assert styles["both"].bold and styles["both"].italic
    assert styles["big"].font_size == 16.0


def test_headings_and_alignment():
    paras = convert('<h2>Title</h2><p style="text-align: center">mid</p><p align="right">r</p>')
    assert paras[0].heading_level == 2
    assert paras[1].alignment == "center"
    assert paras[2].alignment == "right"


def test_lists_with_nesting():
    paras = convert("<ul><li>a<ul><li>b</li></ul></li></ul><ol><li>one</li></ol>")
    assert [(p.text, p.list_style, p.list_level) for p in paras] == [
        ("a", "bullet", 0),
        ("b", "bullet", 1),
        ("one", "number", 0),
    ]


def test_list_item_with_paragraphs_keeps_one_bullet():
    paras = convert("<ul><li><p>first</p><p>second</p></li></ul>")
    assert [p.list_style for p in paras] == ["bullet", None]
    assert paras[1].indent_pt > 0


def test_page_delimiter_becomes_page_break():
    paras = convert("<p>a</p>" + PAGE_DELIMITER + "<p>b</p>")
    assert [p.page_break for p in paras] == [False, True, False]


def test_nested_blocks_are_hoisted():
    paras = convert("<p>before<div>inner</div>after</p>")
    assert [p.text for p in paras] == ["before", "inner", "after"]


def test_unknown_tags_are_flattened():
    [para] = convert("<p>x <custom-tag>y</custom-tag> z</p>")
    assert para.text == "x y z"


def test_line_breaks_and_rules():
    paras = convert("<p>a<br>b</p><hr>")
    assert paras[0].text == "a\nb"
    assert paras[1].horizontal_rule


def test_build_docx_opens(png_data_uri):
    html = (
        "<h1>Heading</h1><p><u>under</u> <s>strike</s></p>"
        "<ul><li>item</li></ul>" + PAGE_DELIMITER + f'<p><img src="{png_data_uri}"></p><hr>'
    )
    nodes = parse_html(html)
    images = ImageResolver()
    images.resolve_nodes(nodes)
    data = build_docx(DocxEmitter().convert(nodes), RenderConfig(), images)

    document = docx.Document(io.BytesIO(data))
    texts = [p.text for p in document.paragraphs]
    assert "Heading" in texts
    assert "item" in texts
    assert document.paragraphs[0].style.name == "Heading 1"
    assert len(document.inline_shapes) == 1


def test_build_docx_page_setup():
    data = build_docx(convert("<p>x</p>"), RenderConfig(page_format="letter", orientation="landscape"))
    section = docx.Document(io.BytesIO(data)).sections[0]
    assert section.page_width > section.page_height
    assert round(section.page_width.inches, 1) == 11.0


def test_build_docx_skips_missing_image():
    data = build_docx(convert('<p style="text-align: justify">t<img src="nope.png"></p>'))
    document = docx.Document(io.BytesIO(data))
    assert len(document.inline_shapes) == 0
    assert document.paragraphs[0].alignment == WD_ALIGN_PARAGRAPH.JUSTIFY


def test_negative_spacing_and_widths_are_ignored(png_data_uri):
    html = f'<p style="margin-top: -5px; margin-bottom: -2pt">a</p><p>b</p><img src="{png_data_uri}" width="-50">'
    nodes = parse_html(html)
    paras = DocxEmitter().convert(nodes)
    assert paras[0].space_before_pt is None and paras[0].space_after_pt is None
    assert paras[2].runs[0].image_width_pt is None

    images = ImageResolver()
    images.resolve_nodes(nodes)
    document = docx.Document(io.BytesIO(build_docx(paras, images=images)))
    assert [p.text for p in document.paragraphs][:2] == ["a", "b"]
    assert document.inline_shapes[0].width > 0


def test_failing_node_keeps_siblings(monkeypatch):
    def broken(self, node, style, block):
        raise RuntimeError("image failed")

    monkeypatch.setattr(DocxEmitter, "_image", broken)
    paras = convert('<p>a<img src="x.png">b</p><p>c</p>')
    assert [p.text for p in paras] == ["ab", "c"]


def test_failing_node_falls_back_to_its_text(monkeypatch):
    original = docx_emitter.inline_run_style

    def flaky(node, style):
        if node.tag == "custom":
            raise RuntimeError("style failed")
        return original(node, style)

    monkeypatch.setattr(docx_emitter, "inline_run_style", flaky)
    [para] = convert("<p>x <custom>kept</custom></p>")
    assert para.text == "x kept"


def test_failing_paragraph_write_keeps_the_document(monkeypatch):
    original = docx_emitter._add_text_run

    def flaky(paragraph, item):
        if item.text == "bad":
            raise ValueError("run failed")
        return original(paragraph, item)

    monkeypatch.setattr(docx_emitter, "_add_text_run", flaky)
    document = docx.Document(io.BytesIO(build_docx(convert("<p>bad</p><p>good</p>"))))
    assert "good" in [p.text for p in document.paragraphs]


def test_images_get_their_own_aligned_paragraph(png_data_uri):
    html = f'<p>text<img src="{png_data_uri}">more</p><p><img src="{png_data_uri}" data-align="right"></p>'
    paras = convert(html)
    assert [(p.text, p.alignment) for p in paras] == [
        ("text", "left"), ("", "center"), ("more", "left"), ("", "right"),
    ]

    nodes = parse_html(html)
    images = ImageResolver()
    images.resolve_nodes(nodes)
    document = docx.Document(io.BytesIO(build_docx(DocxEmitter().convert(nodes), images=images)))
    assert document.paragraphs[1].alignment == WD_ALIGN_PARAGRAPH.CENTER
    assert document.paragraphs[3].alignment == WD_ALIGN_PARAGRAPH.RIGHT


def test_page_break_starts_next_paragraph():
    document = docx.Document(io.BytesIO(build_docx(convert("<p>a</p>" + PAGE_DELIMITER + "<p>b</p>"))))
    assert [p.text for p in document.paragraphs] == ["a", "b"]
    assert document.paragraphs[1].paragraph_format.page_break_before
    assert not document.paragraphs[0].paragraph_format.page_break_before


def test_trailing_and_repeated_page_breaks():
    html = "<p>a</p>" + PAGE_DELIMITER + PAGE_DELIMITER + "<p>b</p>" + PAGE_DELIMITER
    paragraphs = docx.Document(io.BytesIO(build_docx(convert(html)))).paragraphs
    assert [p.text for p in paragraphs] == ["a", "", "b", ""]
    assert [bool(p.paragraph_format.page_break_before) for p in paragraphs] == [False, True, True, True]
