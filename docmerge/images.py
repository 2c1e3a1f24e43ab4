"""
Image loading for both emitters.

Every ``<img src>`` in a document is decoded once per generation call,
flattened onto white (transparent PNGs otherwise print with black
backgrounds), shrunk to the editor's upload limits and re-encoded as JPEG.
A source that cannot be loaded simply has no entry; callers skip it.
"""

from __future__ import annotations

import base64
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional
from urllib.parse import unquote, unquote_to_bytes, urlparse

from PIL import Image, ImageOps

from docmerge.config import RenderConfig
from docmerge.html_parser import ParsedNode, walk_elements

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedImage:
    data: str       # base64 JPEG
    width: int      # pixels
    height: int

    @property
    def jpeg_bytes(self) -> bytes:
        return base64.b64decode(self.data)


def collect_sources(nodes: List[ParsedNode]) -> List[str]:
    """Unique ``img`` sources in document order."""
    sources: Dict[str, None] = {}
    for element in walk_elements(nodes):
        if element.tag == "img":
            src = (element.get("src") or "").strip()
            if src:
                sources.setdefault(src, None)
    return list(sources)


def _decode_data_uri(uri: str) -> bytes:
    header, sep, payload = uri.partition(",")
    if not sep:
        raise ValueError("data URI without payload")
    if header.endswith(";base64"):
        return base64.b64decode(payload)
    return unquote_to_bytes(payload)


class ImageResolver:
    """Per-call cache of rasterised images keyed by their ``src``."""

    def __init__(self, config: Optional[RenderConfig] = None) -> None:
        self.config = config or RenderConfig()
        self._cache: Dict[str, ResolvedImage] = {}
        self._failed: set[str] = set()

    def __contains__(self, src: str) -> bool:
        return src in self._cache

    def get(self, src: Optional[str]) -> Optional[ResolvedImage]:
        if not src:
            return None
        return self._cache.get(src.strip())

    def resolve(self, sources: Iterable[str]) -> Dict[str, ResolvedImage]:
        for src in sources:
            if src in self._cache or src in self._failed:
                continue
            try:
                self._cache[src] = self._rasterize(self._load(src))
            except Exception as exc:
                self._failed.add(src)
                logger.warning("Skipping image %s: %s", _short(src), exc)
        return dict(self._cache)

    def resolve_nodes(self, nodes: List[ParsedNode]) -> Dict[str, ResolvedImage]:
        return self.resolve(collect_sources(nodes))

    # ── Loading ──────────────────────────────────────────────────────────

    def _load(self, src: str) -> bytes:
        if src.startswith("data:"):
            return _decode_data_uri(src)
        parsed = urlparse(src)
        if parsed.scheme in ("http", "https"):
            raise ValueError("remote images are not fetched")
        if parsed.scheme == "file":
            path = Path(unquote(parsed.path))
        elif parsed.scheme and len(parsed.scheme) > 1:
            raise ValueError(f"unsupported scheme {parsed.scheme!r}")
        else:
            path = Path(src)
            if not path.is_absolute() and self.config.image_base_dir:
                path = Path(self.config.image_base_dir) / path
        return path.read_bytes()

    def _rasterize(self, raw: bytes) -> ResolvedImage:
        with Image.open(io.BytesIO(raw)) as img:
            img.seek(0)
            img = ImageOps.exif_transpose(img)
            rgba = img.convert("RGBA")

        max_w, max_h = self.config.max_image_px
        if rgba.width > max_w or rgba.height > max_h:
            rgba.thumbnail((max_w, max_h), Image.LANCZOS)

        canvas = Image.new("RGB", rgba.size, (255, 255, 255))
        canvas.paste(rgba, mask=rgba.getchannel("A"))

        out = io.BytesIO()
        canvas.save(out, format="JPEG", quality=self.config.jpeg_quality)
        return ResolvedImage(
            data=base64.b64encode(out.getvalue()).decode("ascii"),
            width=canvas.width,
            height=canvas.height,
        )


def _short(src: str) -> str:
    return src if len(src) <= 60 else src[:57] + "..."
