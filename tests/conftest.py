"""Shared fakes for the listing photo tests."""

import io

import pytest
import requests
from PIL import Image

from listing_photos.config import DownloadConfig


def make_image_bytes(width, height, fmt="JPEG"):
    """Noise image, so the encoded payload is comfortably above the size floor."""
    image = Image.effect_noise((width, height), 64).convert("RGB")
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


class FakeResponse:
    def __init__(self, status_code=200, content=b"", headers=None):
        self.status_code = status_code
        self.content = content
        self.headers = headers or {}

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


class FakeSession:
    def __init__(self, responses):
        self.responses = dict(responses)
        self.calls = []

    def get(self, url, headers=None, timeout=None):
        self.calls.append((url, headers, timeout))
        response = self.responses.get(url)
        if response is None:
            return FakeResponse(status_code=404)
        if isinstance(response, Exception):
            raise response
        return response


class FakePage:
    """Just enough of playwright's Page for the locator."""

    def __init__(self, pages=None, fail=None):
        self.pages = pages or {}
        self.fail = fail
        self.url = "about:blank"
        self.visited = []
        self.waits = []

    async def goto(self, url, wait_until=None, timeout=None):
        self.visited.append(url)
        if self.fail is not None:
            raise self.fail
        self.url = url

    async def wait_for_timeout(self, ms):
        self.waits.append(ms)

    async def content(self):
        return self.pages.get(self.url, "<html><body></body></html>")


@pytest.fixture
def jpeg_bytes():
    return make_image_bytes(1200, 900)


@pytest.fixture
def config(tmp_path):
    return DownloadConfig(
        output_dir=tmp_path / "images",
        request_delay=0,
        direct_request_delay=0,
        settle_delay=0,
    )
