import base64
import io

import pytest
from PIL import Image

from docmerge.config import RenderConfig


def png_bytes(size=(40, 20), color=(255, 0, 0, 255)) -> bytes:
    img = Image.new("RGBA", size, color)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def data_uri(raw: bytes, mime: str = "image/png") -> str:
    return f"data:{mime};base64," + base64.b64encode(raw).decode("ascii")


@pytest.fixture
def config():
    return RenderConfig()


@pytest.fixture
def rows():
    return [
        {"Name": "Ada Lovelace", "ID": 1, "City": "London"},
        {"Name": "Alan Turing", "ID": 2, "City": "Wilmslow"},
        {"Name": "Grace Hopper", "ID": 3, "City": "Arlington"},
    ]


@pytest.fixture
def png_data_uri():
    return data_uri(png_bytes())


@pytest.fixture
def transparent_png_uri():
    return data_uri(png_bytes(color=(0, 0, 0, 0)))


@pytest.fixture
def template():
    return (
        "<h1>Certificate</h1>"
        "<p>Awarded to <strong>{Name}</strong> of {City}.</p>"
        '<div class="page-break-delimiter"></div>'
        "<p>Reference {ID}</p>"
    )
