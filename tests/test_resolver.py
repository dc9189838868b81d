from urllib.parse import quote

import pytest
from pydantic import ValidationError

from urlshot.resolver import (
    USAGE_MESSAGE,
    InvalidParametersError,
    ResolvedParameters,
    resolve,
    split_path,
    supported_viewports,
)

EXAMPLE = "https%3A%2F%2Fexample.com%2F"


@pytest.mark.parametrize(
    "size,aspect_ratio,viewport",
    [
        ("small", "1:1", (375, 375)),
        ("small", "9:16", (375, 667)),
        ("medium", "1:1", (650, 650)),
        ("medium", "9:16", (650, 1156)),
        ("large", "1:1", (1024, 1024)),
    ],
)
def test_viewport_table(size, aspect_ratio, viewport):
    params = resolve(f"/{EXAMPLE}/{size}/{aspect_ratio}/")
    assert params.viewport == viewport
    assert supported_viewports()[(size, aspect_ratio)] == viewport


@pytest.mark.parametrize(
    "size,aspect_ratio",
    [("large", "9:16"), ("small", "16:9"), ("huge", "1:1"), ("medium", "4:3")],
)
def test_unsupported_combinations_fail_with_usage(size, aspect_ratio):
    with pytest.raises(InvalidParametersError) as excinfo:
        resolve(f"/{EXAMPLE}/{size}/{aspect_ratio}/")
    assert excinfo.value.message == USAGE_MESSAGE
    assert excinfo.value.viewport is None


def test_supported_viewports_has_no_large_portrait():
    assert ("large", "9:16") not in supported_viewports()


@pytest.mark.parametrize(
    "zoom,dpr",
    [("smaller", 0.71428571), ("standard", 1), ("bigger", 1.4)],
)
def test_zoom_sets_device_scale_factor(zoom, dpr):
    params = resolve(f"/{EXAMPLE}/small/1:1/{zoom}/")
    assert params.device_scale_factor == dpr
    assert params.zoom == zoom


@pytest.mark.parametrize(
    "zoom,viewport",
    [("bigger", (857, 450)), ("smaller", (1680, 882)), ("standard", (1200, 630))],
)
def test_opengraph_keys_on_zoom_and_ignores_aspect_ratio(zoom, viewport):
    assert resolve(f"/{EXAMPLE}/opengraph/1:1/{zoom}/").viewport == viewport
    assert resolve(f"/{EXAMPLE}/opengraph/9:16/{zoom}/").viewport == viewport
    assert resolve(f"/{EXAMPLE}/opengraph/whatever/{zoom}/").viewport == viewport


def test_opengraph_stores_default_aspect_ratio():
    assert resolve(f"/{EXAMPLE}/opengraph/whatever/bigger/").aspect_ratio == "1:1"
    assert resolve(f"/{EXAMPLE}/opengraph/9:16/").aspect_ratio == "1:1"
    assert resolve(f"/{EXAMPLE}/medium/9:16/").aspect_ratio == "9:16"


def test_defaults():
    params = resolve(f"/{EXAMPLE}/")
    assert params == ResolvedParameters(
        url="https://example.com/",
        size="small",
        aspect_ratio="1:1",
        zoom="standard",
        viewport=(375, 375),
        device_scale_factor=1,
        image_format="jpeg",
    )


def test_full_path_scenario():
    params = resolve(f"/{EXAMPLE}/small/1:1/standard/")
    assert params.url == "https://example.com/"
    assert list(params.viewport) == [375, 375]
    assert (params.width, params.height) == (375, 375)
    assert params.device_scale_factor == 1
    assert params.image_format == "jpeg"


def test_empty_aspect_segment_keeps_zoom_position():
    params = resolve(f"/{EXAMPLE}/opengraph//bigger/")
    assert params.viewport == (857, 450)
    assert params.device_scale_factor == 1.4


@pytest.mark.parametrize(
    "path,expected",
    [
        (f"/{EXAMPLE}/_20210802/", (375, 375)),
        (f"/{EXAMPLE}/medium/_20210802/", (650, 650)),
        (f"/{EXAMPLE}/medium/9:16/_20210802/", (650, 1156)),
        (f"/{EXAMPLE}/_a/_b/_c/", (375, 375)),
    ],
)
def test_cache_busting_segments_count_as_absent(path, expected):
    params = resolve(path)
    assert params.viewport == expected
    assert params.device_scale_factor == 1


def test_cache_busting_equals_omission():
    assert resolve(f"/{EXAMPLE}/_x/9:16/") == resolve(f"/{EXAMPLE}/small/9:16/")
    assert resolve(f"/{EXAMPLE}/medium/_x/bigger/") == resolve(f"/{EXAMPLE}/medium/1:1/bigger/")


def test_extra_segments_are_ignored():
    assert resolve(f"/{EXAMPLE}/medium/1:1/bigger/extra/more/") == resolve(f"/{EXAMPLE}/medium/1:1/bigger/")


def test_resolve_is_idempotent():
    path = f"/{EXAMPLE}/medium/9:16/smaller/"
    assert resolve(path) == resolve(path)


def test_resolved_parameters_are_frozen():
    params = resolve(f"/{EXAMPLE}/")
    with pytest.raises(ValidationError):
        params.url = "https://other.example/"


def test_encoded_option_tokens_are_decoded():
    assert resolve(f"/{EXAMPLE}/small/9%3A16/").viewport == (375, 667)


@pytest.mark.parametrize("token", ["not-a-url", "%2Frelative%2Fpath", "example.com", ""])
def test_relative_urls_are_rejected(token):
    with pytest.raises(InvalidParametersError) as excinfo:
        resolve(f"/{token}/")
    assert "Invalid `url`" in excinfo.value.message


def test_long_absolute_url_is_accepted():
    url = "https://example.com/?q=" + "a" * 2100
    params = resolve("/" + quote(url, safe="") + "/")
    assert params.url == url


def test_non_http_scheme_is_rejected():
    with pytest.raises(InvalidParametersError):
        resolve("/" + quote("file:///etc/passwd", safe="") + "/")


def test_invalid_url_message_references_decoded_url():
    with pytest.raises(InvalidParametersError) as excinfo:
        resolve("/%2Frelative%2Fpath/")
    assert excinfo.value.message == "Invalid `url`: /relative/path"


def test_invalid_url_keeps_resolved_viewport():
    with pytest.raises(InvalidParametersError) as excinfo:
        resolve("/not-a-url/medium/9:16/")
    assert excinfo.value.viewport == (650, 1156)


@pytest.mark.parametrize("token", ["https%3A%2F%2Fexample.com%2F%zz", "https%3A%2F%2Fexample.com%2F%E0%A4%A"])
def test_malformed_percent_encoding_is_rejected(token):
    with pytest.raises(InvalidParametersError) as excinfo:
        resolve(f"/{token}/")
    assert excinfo.value.message.startswith("Invalid `url`: ")
    assert excinfo.value.viewport == (375, 375)


def test_non_utf8_escape_is_rejected():
    with pytest.raises(InvalidParametersError):
        resolve("/https%3A%2F%2Fexample.com%2F%FF/")


def test_unknown_zoom_is_rejected():
    with pytest.raises(InvalidParametersError) as excinfo:
        resolve(f"/{EXAMPLE}/small/1:1/huge/")
    assert excinfo.value.message == "Invalid `zoom`: huge"
    assert excinfo.value.viewport == (375, 375)


def test_url_check_runs_before_viewport_check():
    with pytest.raises(InvalidParametersError) as excinfo:
        resolve("/not-a-url/large/9:16/")
    assert excinfo.value.message == "Invalid `url`: not-a-url"


def test_split_path():
    assert split_path(f"/{EXAMPLE}/") == (EXAMPLE, None, None, None)
    assert split_path(f"/{EXAMPLE}/opengraph//bigger/") == (EXAMPLE, "opengraph", None, "bigger")
    assert split_path("/") == ("", None, None, None)
