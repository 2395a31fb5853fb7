import pytest

from video_insights.services.timestamps import (
    build_deep_link,
    format_timestamp,
    timestamp_to_seconds,
)


@pytest.mark.parametrize(
    "offset_ms,expected",
    [
        (0, "00:00"),
        (15000, "00:15"),
        (90000, "01:30"),
        (3661000, "61:01"),
        (95999, "01:35"),
    ],
)
def test_format_timestamp(offset_ms: int, expected: str) -> None:
    assert format_timestamp(offset_ms) == expected


@pytest.mark.parametrize("offset_ms", [0, 15000, 90000, 3661000])
def test_timestamp_round_trip_recovers_seconds(offset_ms: int) -> None:
    assert timestamp_to_seconds(format_timestamp(offset_ms)) == offset_ms // 1000


def test_format_timestamp_rejects_negative_offset() -> None:
    with pytest.raises(ValueError):
        format_timestamp(-1)


def test_timestamp_to_seconds_unparseable_defaults_to_zero() -> None:
    assert timestamp_to_seconds("soon") == 0
    assert timestamp_to_seconds("") == 0


def test_build_deep_link_appends_seek_parameter() -> None:
    url = "https://www.youtube.com/watch?v=abc"

    assert build_deep_link(url, "01:35") == "https://www.youtube.com/watch?v=abc&t=95s"


def test_build_deep_link_without_query_string() -> None:
    assert build_deep_link("https://youtu.be/abc", "00:15") == "https://youtu.be/abc?t=15s"


@pytest.mark.parametrize("label", ["1:02:03", "[01:35]", "01:35 intro", "01:75"])
def test_timestamp_to_seconds_requires_bare_mm_ss(label: str) -> None:
    assert timestamp_to_seconds(label) == 0


def test_timestamp_to_seconds_tolerates_surrounding_whitespace() -> None:
    assert timestamp_to_seconds(" 01:35 ") == 95
