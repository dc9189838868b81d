from contextlib import asynccontextmanager

import pytest

JPEG_BYTES = b"\xff\xd8\xff\xe0fake-jpeg"


class FakeSession:
    def __init__(self, factory):
        self.factory = factory

    async def goto(self, url, timeout_ms):
        self.factory.visited.append((url, timeout_ms))
        if self.factory.goto_error is not None:
            raise self.factory.goto_error

    async def screenshot(self, image_format, quality):
        self.factory.screenshots.append((image_format, quality))
        if self.factory.screenshot_error is not None:
            raise self.factory.screenshot_error
        return self.factory.image


class FakeSessionFactory:
    """Stands in for the browser, counting every session opened and closed."""

    def __init__(self, image=JPEG_BYTES, goto_error=None, screenshot_error=None):
        self.image = image
        self.goto_error = goto_error
        self.screenshot_error = screenshot_error
        self.acquired = 0
        self.released = 0
        self.launches = []
        self.visited = []
        self.screenshots = []

    @asynccontextmanager
    async def __call__(self, viewport, device_scale_factor, with_js):
        self.acquired += 1
        self.launches.append((viewport, device_scale_factor, with_js))
        try:
            yield FakeSession(self)
        finally:
            self.released += 1


@pytest.fixture
def session_factory():
    return FakeSessionFactory()
