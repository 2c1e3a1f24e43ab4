"""
Paginated template model.

A template is stored as one HTML string in which pages are separated by an
empty ``div`` carrying the ``page-break-delimiter`` class.  The marker string
is persisted with saved templates and must not change.

Every operation validates its index first and raises :class:`PageIndexError`
for out-of-range values without touching the model.  Requests that are valid
but have nothing to do (deleting the only page, moving past an edge) return
``False``.
"""

from __future__ import annotations

from typing import Iterator, List, Optional, Sequence

PAGE_DELIMITER_CLASS = "page-break-delimiter"
PAGE_DELIMITER = f'<div class="{PAGE_DELIMITER_CLASS}"></div>'


class PageIndexError(IndexError):
    """Raised when a page operation names a page that does not exist."""


class PageModel:
    """Ordered, never-empty list of page HTML fragments with an active cursor."""

    def __init__(self, pages: Optional[Sequence[str]] = None) -> None:
        self._pages: List[str] = list(pages) if pages else [""]
        self._active = 0

    # ── Conversion ───────────────────────────────────────────────────────

    @staticmethod
    def split(html: str) -> List[str]:
        """Split a joined template; content without a marker is one page."""
        if PAGE_DELIMITER not in html:
            return [html]
        return html.split(PAGE_DELIMITER)

    @classmethod
    def from_html(cls, html: str) -> "PageModel":
        return cls(cls.split(html))

    def join(self) -> str:
        return PAGE_DELIMITER.join(self._pages)

    # ── Accessors ────────────────────────────────────────────────────────

    @property
    def pages(self) -> List[str]:
        return list(self._pages)

    @property
    def active_index(self) -> int:
        return self._active

    @property
    def active_page(self) -> str:
        return self._pages[self._active]

    def __len__(self) -> int:
        return len(self._pages)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._pages))

    def __getitem__(self, index: int) -> str:
        self._check(index)
        return self._pages[index]

    def _check(self, index: int) -> None:
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(self._pages):
            raise PageIndexError(
                f"page index {index!r} out of range (0..{len(self._pages) - 1})"
            )

    # ── Editing ──────────────────────────────────────────────────────────

    def set_active(self, index: int) -> None:
        self._check(index)
        self._active = index

    def add_page(self, html: str = "") -> int:
        """Append a page, make it active and return its index."""
        self._pages.append(html)
        self._active = len(self._pages) - 1
        return self._active

    def update_page(self, index: int, html: str) -> None:
        self._check(index)
        self._pages[index] = html

    def delete_page(self, index: int, *, confirmed: bool = True) -> bool:
        """Remove a page.

        The last remaining page is never removed, and nothing happens until
        the caller passes ``confirmed=True``.  The active cursor keeps
        pointing at the same page when possible, otherwise at the page that
        took the deleted one's place.
        """
        self._check(index)
        if not confirmed or len(self._pages) == 1:
            return False
        del self._pages[index]
        if self._active > index or self._active >= len(self._pages):
            self._active -= 1
        return True

    def move_page(self, index: int, direction: int) -> bool:
        """Swap a page with its neighbour (``-1`` up, ``+1`` down)."""
        self._check(index)
        if direction not in (-1, 1):
            raise ValueError(f"direction must be -1 or 1, got {direction!r}")
        target = index + direction
        if not 0 <= target < len(self._pages):
            return False
        pages = self._pages
        pages[index], pages[target] = pages[target], pages[index]
        if self._active == index:
            self._active = target
        elif self._active == target:
            self._active = index
        return True
