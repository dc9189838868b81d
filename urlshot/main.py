# main.py
#
# To run this application:
# 1. Install dependencies:
#    pip install -e .
#
# 2. Install Playwright's browser binaries (only needs to be done once):
#    playwright install chromium
#
# 3. Start the server:
#    uvicorn urlshot.main:app --host 0.0.0.0 --port 8000
#
# Then request e.g. /https%3A%2F%2Fwww.11ty.dev%2F/small/1:1/smaller/

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import Response

from urlshot.capture import CaptureFailure, CaptureOutcome, CaptureResult, SessionFactory, capture, playwright_session
from urlshot.config import configure_logging
from urlshot.placeholder import render_placeholder
from urlshot.resolver import InvalidParametersError, Viewport, resolve

logger = logging.getLogger(__name__)

ERROR_HEADER = "x-error-message"


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info("🚀 Screenshot endpoint ready.")
    yield
    logger.info("🌙 Screenshot endpoint shutting down.")


app = FastAPI(
    title="urlshot 📸",
    description="Screenshots of any URL, addressed entirely by the request path.",
    lifespan=lifespan,
)


# --- Dependency to Get a Rendering Session Factory ---
async def get_session_factory() -> SessionFactory:
    """Each capture launches its own browser; nothing is shared between requests."""
    return playwright_session


# --- Response Assembly ---
def header_safe(message: str) -> str:
    """First non-empty line of ``message``, encodable as an HTTP header value."""
    line = next((part.strip() for part in message.splitlines() if part.strip()), "")
    return (line or "Unknown error").encode("latin-1", "replace").decode("latin-1")


def build_response(outcome: CaptureOutcome, viewport: Optional[Viewport]) -> Response:
    """
    Collapse a capture outcome into the HTTP response.

    Always 200: Firefox won't display an image answered with an error status.
    Failures are signalled by the placeholder body and the x-error-message header.
    """
    if isinstance(outcome, CaptureResult):
        return Response(content=outcome.image, media_type=outcome.mime_type)

    return Response(
        content=render_placeholder(viewport),
        media_type="image/svg+xml",
        headers={ERROR_HEADER: header_safe(outcome.message)},
    )


def request_path(request: Request) -> str:
    """The path as sent, before the server percent-decoded it."""
    raw_path = request.scope.get("raw_path")
    if raw_path is None:
        return request.url.path
    return raw_path.split(b"?", 1)[0].decode("utf-8", "replace")


# --- API Endpoints ---
@app.get("/", include_in_schema=False)
@app.get(
    "/{path:path}",
    summary="Take a Screenshot of a URL",
    description=(
        "Captures the page at the percent-encoded URL in the first path segment. "
        "Optional segments: size (small, medium, large, opengraph), aspect ratio (1:1, 9:16) "
        "and zoom (smaller, standard, bigger). Segments starting with `_` are ignored."
    ),
    tags=["Screenshot"],
    responses={
        200: {
            "description": "The screenshot, or a placeholder SVG with an x-error-message header.",
            "content": {"image/jpeg": {}, "image/svg+xml": {}},
        },
    },
)
async def take_screenshot(
    request: Request,
    session_factory: SessionFactory = Depends(get_session_factory),
):
    raw_path = request_path(request)
    try:
        params = resolve(raw_path)
    except InvalidParametersError as e:
        logger.warning("Rejected %s: %s", raw_path, e.message)
        return build_response(CaptureFailure(message=e.message, kind="validation"), e.viewport)

    outcome = await capture(params, session_factory=session_factory)
    return build_response(outcome, params.viewport)
