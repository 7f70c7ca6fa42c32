"""
Pytest configuration: default runs most tests; use --run-slow to include slow tests.
Shared fixtures for images, storage and mocked HTTP responses live here.
"""

import io
from unittest.mock import MagicMock

import pytest
from PIL import Image

from stickermock.core.config import Config
from stickermock.core.credentials import CredentialStore
from stickermock.utils.storage import MemoryStorage


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="Run slow tests (live Gemini API). Default: skip them.",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--run-slow", False):
        return
    skip_slow = pytest.mark.skip(reason="Slow test; run with --run-slow to include")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


def _image_bytes(fmt: str) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (2, 2), color=(255, 0, 0)).save(buf, format=fmt)
    return buf.getvalue()


# Minimal valid images so Pillow can verify them
MINIMAL_PNG = _image_bytes("PNG")
MINIMAL_JPEG = _image_bytes("JPEG")


@pytest.fixture
def png_bytes() -> bytes:
    return MINIMAL_PNG


@pytest.fixture
def png_file(tmp_path) -> str:
    path = tmp_path / "sticker.png"
    path.write_bytes(MINIMAL_PNG)
    return str(path)


@pytest.fixture
def config() -> Config:
    return Config(gemini_api_key="", generation_timeout=30)


@pytest.fixture
def store() -> CredentialStore:
    s = CredentialStore(MemoryStorage())
    s.set("test-key")
    return s


def make_response(status_code: int = 200, body=None, text: str = "") -> MagicMock:
    """Build a mock requests.Response. body=None makes .json() raise ValueError."""
    response = MagicMock()
    response.status_code = status_code
    response.headers.get.return_value = "application/json"
    if body is None:
        response.json.side_effect = ValueError("not json")
        response.text = text
    else:
        response.json.return_value = body
        response.text = text or str(body)
    return response


def image_body(data: str = "AAA", mime_type: str = "image/png") -> dict:
    """A generateContent response with a text part followed by one image part."""
    return {
        "candidates": [
            {
                "content": {
                    "parts": [
                        {"text": "Here is your mockup."},
                        {"inlineData": {"mimeType": mime_type, "data": data}},
                    ]
                }
            }
        ]
    }
