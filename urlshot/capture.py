# capture.py
#
# Drives a headless Chromium through Playwright: one fresh browser per
# capture, always closed before returning.

import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncContextManager, AsyncIterator, Callable, Literal, Optional, Protocol, Union

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from urlshot import config
from urlshot.resolver import ResolvedParameters, Viewport

logger = logging.getLogger(__name__)


# --- Results ---
@dataclass(frozen=True)
class CaptureResult:
    image: bytes
    mime_type: str


@dataclass(frozen=True)
class CaptureFailure:
    message: str
    kind: Literal["validation", "timeout", "capture"] = "capture"


CaptureOutcome = Union[CaptureResult, CaptureFailure]


# --- Rendering Sessions ---
class RenderingSession(Protocol):
    async def goto(self, url: str, timeout_ms: float) -> None: ...

    async def screenshot(self, image_format: str, quality: Optional[int]) -> bytes: ...


SessionFactory = Callable[[Viewport, float, bool], AsyncContextManager[RenderingSession]]


class PlaywrightSession:
    """A single page in its own browser context."""

    def __init__(self, page: Page):
        self.page = page

    async def goto(self, url: str, timeout_ms: float) -> None:
        # "load" and "networkidle" share one budget.
        deadline = time.monotonic() + timeout_ms / 1000
        await self.page.goto(url, wait_until="load", timeout=timeout_ms)
        # Playwright reads a timeout of 0 as "no timeout".
        remaining_ms = max((deadline - time.monotonic()) * 1000, 1)
        await self.page.wait_for_load_state("networkidle", timeout=remaining_ms)

    async def screenshot(self, image_format: str, quality: Optional[int]) -> bytes:
        screenshot_args = {"type": image_format}
        if quality is not None:
            screenshot_args["quality"] = quality
        return await self.page.screenshot(**screenshot_args)


@asynccontextmanager
async def playwright_session(
    viewport: Viewport, device_scale_factor: float, with_js: bool = True
) -> AsyncIterator[PlaywrightSession]:
    """Launch Chromium for one capture and tear everything down afterwards."""
    async with async_playwright() as p:
        logger.debug("Launching browser (%sx%s @%s)", viewport[0], viewport[1], device_scale_factor)
        browser = await p.chromium.launch(
            headless=config.HEADLESS,
            args=config.CHROMIUM_ARGS,
            executable_path=config.CHROMIUM_EXECUTABLE,
        )
        try:
            context = await browser.new_context(
                viewport={"width": viewport[0], "height": viewport[1]},
                device_scale_factor=device_scale_factor,
                java_script_enabled=with_js,
            )
            try:
                page = await context.new_page()
                yield PlaywrightSession(page)
            finally:
                await context.close()
        finally:
            await browser.close()
            logger.debug("Browser closed.")


# --- Capture ---
async def capture(
    params: ResolvedParameters,
    *,
    session_factory: SessionFactory = playwright_session,
    with_js: bool = True,
) -> CaptureOutcome:
    """
    Takes a screenshot of ``params.url`` at the resolved viewport.

    Never raises: timeouts and browser errors come back as CaptureFailure.
    A page answering with an HTTP error status is still captured as rendered.
    """
    quality = config.JPEG_QUALITY if params.image_format == "jpeg" else None
    try:
        async with session_factory(params.viewport, params.device_scale_factor, with_js) as session:
            await session.goto(params.url, config.NAVIGATION_TIMEOUT_MS)
            image = await session.screenshot(params.image_format, quality)
    except (PlaywrightTimeoutError, TimeoutError) as e:
        logger.warning("Timed out capturing %s: %s", params.url, e)
        return CaptureFailure(message=f"Timed out loading {params.url}: {e}", kind="timeout")
    except PlaywrightError as e:
        logger.warning("Failed to capture %s: %s", params.url, e)
        return CaptureFailure(message=f"Failed to process the page: {e}")
    except Exception as e:
        logger.exception("Unexpected error capturing %s", params.url)
        return CaptureFailure(message=f"An unexpected error occurred: {e}")

    logger.info(
        "%s %s viewport=%s size=%s dpr=%s aspectratio=%s",
        params.url,
        params.image_format,
        list(params.viewport),
        params.size,
        params.device_scale_factor,
        params.aspect_ratio,
    )
    return CaptureResult(image=image, mime_type=f"image/{params.image_format}")
