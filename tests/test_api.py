import json

import pytest
from fastapi.testclient import TestClient

from conftest import Bridge, FakeExtractor
from soundfly import container
from soundfly.application.use_cases.playback_use_cases import (
    GetPlayerStatus,
    PauseAudio,
    PlayAudio,
    SeekAudio,
    SetVolume,
    StopAudio,
)
from soundfly.config import settings
from soundfly.domain.models import BridgeChannel
from soundfly.infrastructure.bridge.notification_service_impl import BridgeNotificationService
from soundfly.presentation.app_factory import app

VID = "dQw4w9WgXcQ"


@pytest.fixture
def wired():
    notifier = BridgeNotificationService()
    bridge = Bridge(FakeExtractor({VID: "https://cdn.example/x.mp3"}), notifier=notifier)
    overrides = {
        container.bridge_dispatcher: lambda: bridge.dispatch,
        container.notification_service: lambda: notifier,
        container.get_player_status: lambda: GetPlayerStatus(player=bridge.player),
        container.play_audio: lambda: PlayAudio(player=bridge.player),
        container.pause_audio: lambda: PauseAudio(player=bridge.player),
        container.stop_audio: lambda: StopAudio(player=bridge.player),
        container.seek_audio: lambda: SeekAudio(player=bridge.player),
        container.set_volume: lambda: SetVolume(player=bridge.player),
    }
    app.dependency_overrides.update(overrides)
    try:
        yield bridge, notifier
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_bridge_post_plays_audio(client, wired):
    bridge, _ = wired

    resp = client.post("/bridge/nativeAudio", json={"command": "play", "url": "https://site/storage/a.mp3"})

    assert resp.status_code == 200
    assert resp.json()["status"] == "playing"
    assert bridge.player.current_source == "https://site/storage/a.mp3"


def test_bridge_post_unknown_channel_is_404(client, wired):
    assert client.post("/bridge/videoAudio", json={"command": "play"}).status_code == 404


def test_bridge_post_without_command_is_400(client, wired):
    assert client.post("/bridge/nativeAudio", json={"url": "x"}).status_code == 400


def test_bridge_websocket_replies_with_request_id(client, wired):
    bridge, notifier = wired

    with client.websocket_connect("/bridge/ws") as ws:
        ws.send_json({"channel": "youtubeAudio", "id": 7, "command": "play", "videoId": VID})
        messages = [ws.receive_json() for _ in range(3)]
        assert notifier.client_count == 1
        ws.send_json({"channel": "nope", "id": 8, "command": "play"})
        error = ws.receive_json()

    # status pushes (loading, playing) arrive before the reply
    assert [m["type"] for m in messages] == ["player_status", "player_status", "reply"]
    assert [m.get("status") for m in messages] == ["loading", "playing", "playing"]
    assert messages[-1]["id"] == 7
    assert messages[-1]["ok"] is True
    assert bridge.player.current_source == "https://cdn.example/x.mp3"
    assert error == {"type": "reply", "id": 8, "ok": False, "channel": "nope", "error": "unknown channel: nope"}


def test_ad_show_is_pushed_to_pages(client, wired):
    bridge, _ = wired
    bridge.ad_state.loaded = True
    bridge.ad_state.page_loads = 2
    bridge.dispatch.handlers[BridgeChannel.SHELL].record_page_load.enabled = True

    with client.websocket_connect("/bridge/ws") as ws:
        ws.send_json({"channel": "shell", "id": 1, "command": "page_loaded"})
        pushed = ws.receive_json()
        reply = ws.receive_json()

    assert pushed == {"type": "ad", "action": "show", "unit_id": "unit-1"}
    assert reply["interstitial"] is True


def test_player_routes(client, wired):
    bridge, _ = wired

    assert client.post("/api/player/play", json={"url": "https://cdn/a.mp3", "title": "T"}).json()["status"] == "playing"
    assert client.post("/api/player/seek", json={"position": "12.5"}).json()["position"] == 12.5
    assert client.post("/api/player/volume", json={"volume": 0.5}).json()["volume"] == 0.5
    assert client.post("/api/player/pause").json()["status"] == "paused"
    assert client.get("/api/player/status").json()["title"] == "T"
    assert client.post("/api/player/stop").json()["status"] == "stopped"


def test_player_route_validation(client, wired):
    assert client.post("/api/player/play", json={"url": "  "}).status_code == 400
    assert client.post("/api/player/seek", json={"position": "-3"}).status_code == 400
    assert client.post("/api/player/volume", json={"volume": 2}).status_code == 422


def test_inject_script_is_served_uncached(client):
    resp = client.get("/bridge/inject.js")

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("application/javascript")
    assert resp.headers["cache-control"] == "no-store"
    assert resp.headers["x-bridge-version"] == str(settings.bridge_script_version)
    body = resp.text
    assert '"base": "http://testserver"' in body
    assert '"sniffFilter": "search/audio"' in body
    assert ".mp3" in body


def test_sniff_reply_carries_video_id_for_the_page(client, wired):
    bridge, _ = wired
    body = json.dumps({"results": [{"id": VID}]})

    reply = client.post(
        "/bridge/youtubeAudio",
        json={"command": "sniff", "url": "https://site/api/search/audio?q=x", "body": body},
    ).json()

    assert reply["channel"] == "youtubeAudio"
    assert reply["ok"] is True
    assert reply["videoId"] == VID
    assert reply["prepared"] is True
    assert bridge.extractor.calls == [VID]


def test_inject_script_records_video_id_from_replies(client):
    body = client.get("/bridge/inject.js").text

    assert "ev.type === 'reply'" in body
    assert "bridge.videoId = ev.videoId" in body
    assert "bridge.videoId = first.id" in body
    # fallback POSTs feed their JSON reply back into the same handler
    assert "onEvent(Object.assign({ type: 'reply' }, data))" in body


def test_cors_allows_only_the_hosted_site(client):
    site = settings.website_url.rstrip("/")

    allowed = client.get("/api/health", headers={"Origin": site})
    assert allowed.headers["access-control-allow-origin"] == site
    assert allowed.headers["access-control-allow-credentials"] == "true"

    other = client.get("/api/health", headers={"Origin": "https://evil.example"})
    assert "access-control-allow-origin" not in other.headers

    preflight = client.options(
        "/bridge/nativeAudio",
        headers={"Origin": "https://evil.example", "Access-Control-Request-Method": "POST"},
    )
    assert preflight.status_code == 400
    assert "access-control-allow-origin" not in preflight.headers


def test_diagnostics_require_token(client, monkeypatch):
    monkeypatch.setattr(settings, "diag_token", None)
    assert client.get("/api/logs").status_code == 401

    monkeypatch.setattr(settings, "diag_token", "secret")
    assert client.get("/api/logs", headers={"X-Diag-Token": "wrong"}).status_code == 401
    resp = client.get("/api/logs", headers={"X-Diag-Token": "secret"}, params={"limit": 5})
    assert resp.status_code == 200
    assert isinstance(resp.json()["logs"], list)
