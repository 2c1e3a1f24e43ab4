"""
Template + rows -> documents.

:class:`DocumentGenerator` runs the whole pipeline for one row (per-page
variable substitution, parsing, image resolution, emission) and drives batch
runs.  Batches are strictly sequential: one row's render state is alive at a
time, progress is reported after every row, cancellation is honoured only
between rows, and a row that fails is recorded and skipped rather than
aborting the rest.
"""

from __future__ import annotations

import io
import logging
import zipfile
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from docmerge.config import RenderConfig
from docmerge.docx_emitter import DocxEmitter, build_docx
from docmerge.filenames import generate_safe_filename
from docmerge.html_parser import ParsedNode, parse_html
from docmerge.images import ImageResolver
from docmerge.pages import PAGE_DELIMITER, PageModel
from docmerge.pdf_emitter import PdfEmitter
from docmerge.variables import Row, substitute

logger = logging.getLogger(__name__)

FORMATS = ("pdf", "docx")

ProgressCallback = Callable[[int, int], None]
CancelCheck = Callable[[], bool]


@dataclass
class RowResult:
    index: int
    filename: str
    data: Optional[bytes] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.data is not None


@dataclass
class BatchResult:
    fmt: str
    results: List[RowResult] = field(default_factory=list)
    cancelled: bool = False

    @property
    def succeeded(self) -> List[RowResult]:
        return [r for r in self.results if r.ok]

    @property
    def failed(self) -> List[RowResult]:
        return [r for r in self.results if not r.ok]

    def to_zip(self) -> bytes:
        """Archive every generated document.

        Failed rows get no file; they are listed in ``errors.txt`` instead so
        that they do not silently disappear.
        """
        buf = io.BytesIO()
        used: set[str] = set()
        with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for result in self.succeeded:
                zf.writestr(_unique_name(result.filename, used), result.data)
            if self.failed:
                lines = [f"row {r.index + 1} ({r.filename}): {r.error}" for r in self.failed]
                zf.writestr("errors.txt", "\n".join(lines) + "\n")
        return buf.getvalue()


def _unique_name(name: str, used: set[str]) -> str:
    """Suffix ``_2``, ``_3``... when two rows produce the same filename."""
    candidate = name
    stem, dot, ext = name.rpartition(".")
    if not dot:
        stem, ext = name, ""
    counter = 2
    while candidate in used:
        candidate = f"{stem}_{counter}{dot}{ext}"
        counter += 1
    used.add(candidate)
    return candidate


def limit_rows(rows: Sequence[Row], limit: int) -> List[Row]:
    """Truncate *rows* to the batch limit, logging when rows are dropped."""
    if len(rows) > limit:
        logger.warning("Batch limit is %d rows; %d rows will not be generated", limit, len(rows) - limit)
    return list(rows[:limit])


class DocumentGenerator:
    """Render a template for individual rows or whole datasets."""

    def __init__(self, config: Optional[RenderConfig] = None) -> None:
        self.config = config or RenderConfig()

    # ── Single row ───────────────────────────────────────────────────────

    def fill_pages(self, row: Row, template_html: str) -> List[str]:
        """Substitute variables page by page."""
        return [substitute(page, row) for page in PageModel.split(template_html)]

    def preview_html(self, row: Row, template_html: str) -> str:
        return PAGE_DELIMITER.join(self.fill_pages(row, template_html))

    def generate_pdf(self, row: Row, template_html: str, title: Optional[str] = None) -> bytes:
        pages = [parse_html(page) for page in self.fill_pages(row, template_html)]
        images = ImageResolver(self.config)
        for nodes in pages:
            images.resolve_nodes(nodes)
        return PdfEmitter(self.config, images).render(pages, title=title)

    def generate_docx(self, row: Row, template_html: str) -> bytes:
        nodes: List[ParsedNode] = parse_html(self.preview_html(row, template_html))
        images = ImageResolver(self.config)
        images.resolve_nodes(nodes)
        paragraphs = DocxEmitter().convert(nodes)
        return build_docx(paragraphs, self.config, images)

    def generate(self, row: Row, template_html: str, fmt: str = "pdf") -> bytes:
        if fmt == "pdf":
            return self.generate_pdf(row, template_html)
        if fmt == "docx":
            return self.generate_docx(row, template_html)
        raise ValueError(f"unsupported format {fmt!r}; expected one of {FORMATS}")

    # ── Batch ────────────────────────────────────────────────────────────

    def generate_batch(
        self,
        rows: Sequence[Row],
        template_html: str,
        *,
        fmt: str = "pdf",
        filename_pattern: str = "{Name}",
        fallback_prefix: str = "document",
        on_progress: Optional[ProgressCallback] = None,
        should_cancel: Optional[CancelCheck] = None,
    ) -> BatchResult:
        """Generate one document per row, in order.

        Parameters
        ----------
        rows:
            Data rows; truncated to ``config.batch_limit``.
        template_html:
            Joined template (pages separated by the page delimiter).
        fmt:
            ``"pdf"`` or ``"docx"``.
        filename_pattern, fallback_prefix:
            Passed to :func:`generate_safe_filename` for every row.
        on_progress:
            Called as ``on_progress(done, total)`` after each row, failed or not.
        should_cancel:
            Checked before each row; a true result stops the batch there.
        """
        if fmt not in FORMATS:
            raise ValueError(f"unsupported format {fmt!r}; expected one of {FORMATS}")
        rows = limit_rows(rows, self.config.batch_limit)
        total = len(rows)
        batch = BatchResult(fmt=fmt)

        for index, row in enumerate(rows):
            if should_cancel is not None and should_cancel():
                logger.info("Batch cancelled after %d of %d rows", index, total)
                batch.cancelled = True
                break
            filename = generate_safe_filename(row, filename_pattern, fallback_prefix, index, "." + fmt)
            try:
                data = self.generate(row, template_html, fmt)
                batch.results.append(RowResult(index, filename, data=data))
            except Exception as exc:
                logger.error("Row %d (%s) failed: %s", index + 1, filename, exc, exc_info=True)
                batch.results.append(RowResult(index, filename, error=str(exc) or type(exc).__name__))
            if on_progress is not None:
                on_progress(index + 1, total)

        return batch
