import asyncio

from soundfly.domain.models import DEFAULT_ARTIST, DEFAULT_TITLE, PlayerStatus


def test_play_loads_once_for_same_source(player, engine, notifier):
    async def scenario():
        await player.play("https://cdn/a.mp3", title="Song")
        await player.play("https://cdn/a.mp3", title="Song")

    asyncio.run(scenario())

    assert engine.names() == ["load", "play", "play"]
    assert player.status is PlayerStatus.PLAYING
    assert player.current_source == "https://cdn/a.mp3"
    statuses = [e["status"] for e in notifier.events if e["type"] == "player_status"]
    assert statuses == ["loading", "playing"]


def test_new_source_replaces_old(player, engine):
    async def scenario():
        await player.play("https://cdn/a.mp3")
        await player.play("https://cdn/b.mp3")

    asyncio.run(scenario())

    loads = [c[1] for c in engine.calls if c[0] == "load"]
    assert loads == ["https://cdn/a.mp3", "https://cdn/b.mp3"]
    assert player.current_source == "https://cdn/b.mp3"


def test_missing_metadata_gets_defaults(player, engine):
    asyncio.run(player.play("https://cdn/a.mp3", title="  ", artist=None))

    _, _, metadata = engine.calls[0]
    assert metadata.title == DEFAULT_TITLE
    assert metadata.artist == DEFAULT_ARTIST
    assert player.snapshot()["title"] == DEFAULT_TITLE


def test_stop_then_play_same_source_reloads(player, engine):
    async def scenario():
        await player.play("https://cdn/a.mp3")
        await player.stop()
        await player.play("https://cdn/a.mp3")

    asyncio.run(scenario())

    assert engine.names() == ["load", "play", "stop", "load", "play"]
    assert player.status is PlayerStatus.PLAYING


def test_pause_and_resume(player, engine):
    async def scenario():
        await player.play("https://cdn/a.mp3")
        await player.pause()
        paused = player.status
        await player.resume()
        return paused

    paused = asyncio.run(scenario())

    assert paused is PlayerStatus.PAUSED
    assert player.status is PlayerStatus.PLAYING
    assert engine.playing


def test_resume_without_source_is_noop(player, engine):
    asyncio.run(player.resume())

    assert engine.calls == []
    assert player.status is PlayerStatus.STOPPED


def test_pause_without_source_keeps_stopped(player):
    asyncio.run(player.pause())

    assert player.status is PlayerStatus.STOPPED


def test_seek_converts_seconds_to_milliseconds(player, engine):
    async def scenario():
        await player.seek(12.5)
        await player.seek(0.0004)

    asyncio.run(scenario())

    assert [c[1] for c in engine.calls] == [12500, 0]


def test_volume_is_clamped(player, engine):
    async def scenario():
        await player.set_volume(1.7)
        await player.set_volume(-2)

    asyncio.run(scenario())

    assert [c[1] for c in engine.calls] == [1.0, 0.0]
    assert player.volume == 0.0


def test_engine_load_failure_is_swallowed(player, engine, notifier):
    engine.fail_on.add("load")

    asyncio.run(player.play("https://cdn/broken.mp3"))

    assert player.status is PlayerStatus.STOPPED
    assert player.current_source is None
    assert engine.calls == []


def test_engine_play_failure_keeps_loaded_source(player, engine):
    engine.fail_on.add("play")

    asyncio.run(player.play("https://cdn/a.mp3"))

    assert player.current_source == "https://cdn/a.mp3"
    assert player.status is PlayerStatus.STOPPED


def test_snapshot_reports_engine_position(player, engine):
    async def scenario():
        await player.play("https://cdn/a.mp3", title="T", artist="A", artwork_url="https://img/x.jpg")
        await player.seek(42)

    asyncio.run(scenario())
    snap = player.snapshot()

    assert snap["status"] == "playing"
    assert snap["position"] == 42.0
    assert snap["duration"] == 180.0
    assert snap["artwork_url"] == "https://img/x.jpg"
    assert snap["playing"] is True


async def _wait_for(predicate, timeout=1.0):
    for _ in range(int(timeout / 0.01)):
        if predicate():
            return
        await asyncio.sleep(0.01)


def test_track_end_from_engine_thread_stops_player(player, engine, notifier):
    async def scenario():
        await player.play("https://cdn/a.mp3")
        await asyncio.to_thread(engine.finish)
        await _wait_for(lambda: player.status is PlayerStatus.STOPPED)

    asyncio.run(scenario())

    assert player.status is PlayerStatus.STOPPED
    assert player.current_source is None
    statuses = [e["status"] for e in notifier.events if e["type"] == "player_status"]
    assert statuses == ["loading", "playing", "stopped"]


def test_track_end_after_stop_is_ignored(player, engine, notifier):
    async def scenario():
        await player.play("https://cdn/a.mp3")
        await player.stop()
        await asyncio.to_thread(engine.finish)
        await asyncio.sleep(0.05)

    asyncio.run(scenario())

    statuses = [e["status"] for e in notifier.events if e["type"] == "player_status"]
    assert statuses == ["loading", "playing", "stopped"]


def test_same_source_plays_again_after_track_end(player, engine):
    async def scenario():
        await player.play("https://cdn/a.mp3")
        await asyncio.to_thread(engine.finish)
        await _wait_for(lambda: player.current_source is None)
        await player.play("https://cdn/a.mp3")

    asyncio.run(scenario())

    assert engine.names() == ["load", "play", "load", "play"]
    assert player.status is PlayerStatus.PLAYING
