import json

import pytest

from soundfly.domain.audio_url import (
    extract_video_id,
    is_audio_url,
    is_valid_video_id,
    parse_position,
    resolve_url,
    sniff_video_id,
)


@pytest.mark.parametrize(
    "url",
    [
        "https://site/storage/track.mp3",
        "https://cdn.example.com/files/song.M4A",
        "https://cdn.example.com/a.ogg?token=abc&exp=1",
        "https://site/api/stream/12345",
        "https://site/audio/12345",
        "https://site/uploads/whatever",
        "/storage/relative.bin",
    ],
)
def test_known_extensions_and_keywords_are_audio(url):
    assert is_audio_url(url)


@pytest.mark.parametrize(
    "url",
    [
        "blob:https://site/1b2c3d4e-mp3",
        "data:audio/mp3;base64,SUQzBAAAAAAA",
        "DATA:audio/mpeg;base64,AAAA",
        "",
        None,
        "https://site/index.html",
        "https://streaming.example.com/",
        "https://site/images/cover.jpg",
    ],
)
def test_non_audio_urls_are_rejected(url):
    assert not is_audio_url(url)


def test_resolve_url_uses_page_url_for_relative_sources():
    assert resolve_url("/storage/a.mp3", "https://site/app/page") == "https://site/storage/a.mp3"
    assert resolve_url("b.mp3", "https://site/app/page") == "https://site/app/b.mp3"
    assert resolve_url("https://cdn/x.mp3", "https://site/") == "https://cdn/x.mp3"
    assert resolve_url(" https://cdn/x.mp3 ") == "https://cdn/x.mp3"


def test_extract_video_id_from_first_result():
    body = json.dumps({"results": [{"id": "dQw4w9WgXcQ", "title": "x"}, {"id": "aaaaaaaaaaa"}]})
    assert extract_video_id(body) == "dQw4w9WgXcQ"
    assert extract_video_id(body.encode()) == "dQw4w9WgXcQ"
    assert extract_video_id({"results": [{"id": "dQw4w9WgXcQ"}]}) == "dQw4w9WgXcQ"


@pytest.mark.parametrize(
    "payload",
    [
        "not json",
        json.dumps({"results": []}),
        json.dumps({"results": [{"id": 42}]}),
        json.dumps({"results": [{"id": "too-short"}]}),
        json.dumps({"results": [{"id": "has space!!"}]}),
        json.dumps({"results": "dQw4w9WgXcQ"}),
        json.dumps([{"id": "dQw4w9WgXcQ"}]),
    ],
)
def test_extract_video_id_rejects_other_shapes(payload):
    assert extract_video_id(payload) is None


def test_sniff_respects_url_filter():
    body = json.dumps({"results": [{"id": "dQw4w9WgXcQ"}]})
    assert sniff_video_id("https://site/api/search/audio?q=x", body) == "dQw4w9WgXcQ"
    assert sniff_video_id("https://site/api/playlists", body) is None
    assert sniff_video_id("https://site/api/playlists", body, url_filter="") == "dQw4w9WgXcQ"


def test_video_id_validation():
    assert is_valid_video_id("dQw4w9WgXcQ")
    assert is_valid_video_id("a-b_c-d_e-f")
    assert not is_valid_video_id("dQw4w9WgXc")
    assert not is_valid_video_id(None)


def test_parse_position():
    assert parse_position("12.5") == 12.5
    assert parse_position(3) == 3.0
    assert parse_position(" 0 ") == 0.0
    for bad in (None, "", "abc", "-1", "nan", "inf", True):
        with pytest.raises(ValueError):
            parse_position(bad)
