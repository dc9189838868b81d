# resolver.py
#
# Turns a request path such as
#    /https%3A%2F%2Fwww.11ty.dev%2F/small/1:1/smaller/
# into the url, viewport and device scale factor to capture with.

import re
from typing import Annotated, Dict, Literal, Optional, Tuple
from urllib.parse import unquote

from pydantic import AnyUrl, BaseModel, ConfigDict, Field, TypeAdapter, UrlConstraints, ValidationError

Viewport = Tuple[int, int]

USAGE_MESSAGE = (
    "Incorrect API usage. Expects one of: /:url/ or /:url/:size/ "
    "or /:url/:size/:aspectratio/ or /:url/:size/:aspectratio/:zoom/"
)

# Any optional segment starting with this is a hash buster, e.g. /_20210802/
CACHE_BUST_PREFIX = "_"

DEFAULT_SIZE = "small"
DEFAULT_ASPECT_RATIO = "1:1"
DEFAULT_ZOOM = "standard"
IMAGE_FORMAT = "jpeg"

DEVICE_SCALE_FACTORS: Dict[str, float] = {
    "smaller": 0.71428571,
    "standard": 1,
    "bigger": 1.4,
}

# (size, aspect ratio) -> viewport. A missing key is an unsupported combination.
VIEWPORTS: Dict[Tuple[str, str], Viewport] = {
    ("small", "1:1"): (375, 375),
    ("small", "9:16"): (375, 667),
    ("medium", "1:1"): (650, 650),
    ("medium", "9:16"): (650, 1156),
    ("large", "1:1"): (1024, 1024),
}

# opengraph ignores the aspect ratio: viewport x scale factor is always 1200x630.
OPENGRAPH_VIEWPORTS: Dict[str, Viewport] = {
    "bigger": (857, 450),
    "smaller": (1680, 882),
}
OPENGRAPH_DEFAULT_VIEWPORT: Viewport = (1200, 630)

_MALFORMED_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
# No length cap, unlike HttpUrl.
_http_url = TypeAdapter(Annotated[AnyUrl, UrlConstraints(allowed_schemes=["http", "https"], host_required=True)])


class InvalidParametersError(Exception):
    """The request path could not be resolved into capture parameters.

    ``viewport`` holds whatever viewport was computed before failing (or None),
    so the placeholder image can still be sized.
    """

    def __init__(self, message: str, viewport: Optional[Viewport] = None):
        super().__init__(message)
        self.message = message
        self.viewport = viewport


class ResolvedParameters(BaseModel):
    """Everything needed to take one screenshot."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(..., description="Decoded absolute URL of the page to capture.")
    size: Literal["small", "medium", "large", "opengraph"] = DEFAULT_SIZE
    aspect_ratio: Literal["1:1", "9:16"] = Field(DEFAULT_ASPECT_RATIO, description="Always 1:1 for the opengraph size.")
    zoom: Literal["smaller", "standard", "bigger"] = DEFAULT_ZOOM
    viewport: Viewport
    device_scale_factor: float
    image_format: Literal["jpeg"] = IMAGE_FORMAT

    @property
    def width(self) -> int:
        return self.viewport[0]

    @property
    def height(self) -> int:
        return self.viewport[1]


def supported_viewports() -> Dict[Tuple[str, str], Viewport]:
    """Every (size, aspect ratio) pair with a viewport, opengraph excluded."""
    return dict(VIEWPORTS)


def lookup_viewport(size: str, aspect_ratio: str, zoom: str) -> Optional[Viewport]:
    if size == "opengraph":
        return OPENGRAPH_VIEWPORTS.get(zoom, OPENGRAPH_DEFAULT_VIEWPORT)
    return VIEWPORTS.get((size, aspect_ratio))


def split_path(raw_path: str) -> Tuple[str, Optional[str], Optional[str], Optional[str]]:
    """Split a path into (url, size, aspect ratio, zoom) tokens.

    Empty segments and hash busters come back as None but keep their position,
    so ``/url/opengraph//bigger/`` still reads ``bigger`` as the zoom.
    """
    segments = raw_path.strip("/").split("/")
    segments += [""] * (4 - len(segments))
    url_token, *options = segments[:4]
    size, aspect_ratio, zoom = (_optional(token) for token in options)
    return url_token, size, aspect_ratio, zoom


def _optional(token: str) -> Optional[str]:
    token = unquote(token)
    if not token or token.startswith(CACHE_BUST_PREFIX):
        return None
    return token


def decode_url(token: str) -> str:
    """Percent-decode the url segment, refusing malformed escapes."""
    if _MALFORMED_ESCAPE.search(token):
        raise InvalidParametersError(f"Invalid `url`: {token}")
    try:
        return unquote(token, errors="strict")
    except UnicodeDecodeError:
        raise InvalidParametersError(f"Invalid `url`: {token}") from None


def is_full_url(url: str) -> bool:
    try:
        _http_url.validate_python(url)
    except ValidationError:
        return False
    return True


def resolve(raw_path: str) -> ResolvedParameters:
    """Resolve a raw (still percent-encoded) request path.

    Raises InvalidParametersError for a url that is not absolute, a
    size/aspect ratio combination without a viewport or an unknown zoom.
    """
    url_token, size, aspect_ratio, zoom = split_path(raw_path)
    size = size or DEFAULT_SIZE
    aspect_ratio = aspect_ratio or DEFAULT_ASPECT_RATIO
    zoom = zoom or DEFAULT_ZOOM

    viewport = lookup_viewport(size, aspect_ratio, zoom)

    try:
        url = decode_url(url_token)
    except InvalidParametersError as e:
        raise InvalidParametersError(e.message, viewport) from None

    if not is_full_url(url):
        raise InvalidParametersError(f"Invalid `url`: {url}", viewport)
    if viewport is None:
        raise InvalidParametersError(USAGE_MESSAGE)
    if zoom not in DEVICE_SCALE_FACTORS:
        raise InvalidParametersError(f"Invalid `zoom`: {zoom}", viewport)

    return ResolvedParameters(
        url=url,
        size=size,
        aspect_ratio=DEFAULT_ASPECT_RATIO if size == "opengraph" else aspect_ratio,
        zoom=zoom,
        viewport=viewport,
        device_scale_factor=DEVICE_SCALE_FACTORS[zoom],
    )
