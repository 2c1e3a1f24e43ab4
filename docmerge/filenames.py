"""Output filename derivation for merged documents."""

from __future__ import annotations

import re

from docmerge.variables import Row, has_unresolved, substitute

MAX_STEM_LENGTH = 200

_WHITESPACE_RUN = re.compile(r"\s+")
_FORBIDDEN = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_TRAILING = re.compile(r"[.\s]+$")


def _fallback(prefix: str, index: int) -> str:
    return f"{prefix}_{index + 1:04d}"


def generate_safe_filename(
    row: Row,
    pattern: str,
    fallback_prefix: str = "document",
    index: int = 0,
    extension: str = ".pdf",
) -> str:
    """Build a filesystem-safe filename for *row* from *pattern*.

    Parameters
    ----------
    row:
        Values for the ``{Column}`` tokens in *pattern*.
    pattern:
        Filename template, e.g. ``"{Name}_{ID}"``.
    fallback_prefix:
        Used as ``<prefix>_0001`` when the pattern yields nothing usable.
    index:
        0-based row index; the fallback number is ``index + 1``.
    extension:
        ``".pdf"`` or ``".docx"`` (the leading dot is optional).
    """
    stem = substitute(pattern, row)
    if not stem.strip() or has_unresolved(stem):
        stem = _fallback(fallback_prefix, index)

    stem = _WHITESPACE_RUN.sub(" ", stem.strip())
    stem = _FORBIDDEN.sub("", stem)
    stem = stem.replace(" ", "_")
    stem = stem[:MAX_STEM_LENGTH]
    stem = _TRAILING.sub("", stem)

    if not stem:
        stem = _fallback(fallback_prefix, index)

    if not extension.startswith("."):
        extension = "." + extension
    return stem + extension
