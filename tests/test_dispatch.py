from __future__ import annotations

import pytest

from helpers import RecordingPlayback, media_item, presentation, song_item
from midicue.commands import Navigate
from midicue.dispatch import ActionDispatcher, output_kind_for
from midicue.models import SetlistItem, new_item_id
from midicue.protocol import ActionVerb, ItemType
from midicue.session import ControlSession, OutputKind


@pytest.fixture
def dispatcher(playback: RecordingPlayback) -> ActionDispatcher:
    return ActionDispatcher(ControlSession(), playback)


def _show(d: ActionDispatcher, item: SetlistItem) -> None:
    d.show(item)
    d.playback.calls.clear()


@pytest.mark.parametrize(
    "item, kind",
    [
        (media_item("a.mp4", "video"), OutputKind.VIDEO),
        (media_item("a.png", "image"), OutputKind.IMAGE),
        (media_item("a.mp3", "audio"), OutputKind.AUDIO),
        (SetlistItem(id=new_item_id(), type=ItemType.YOUTUBE, youtube_video_id="x"), OutputKind.YOUTUBE),
        (SetlistItem.for_presentation(presentation("P")), OutputKind.PRESENTATION),
        (song_item("S", "la"), OutputKind.NONE),
    ],
)
def test_output_kind_for(item: SetlistItem, kind: OutputKind) -> None:
    assert output_kind_for(item) is kind


def test_video_cells(dispatcher: ActionDispatcher, playback: RecordingPlayback) -> None:
    _show(dispatcher, media_item("a.mp4"))
    assert dispatcher.activate()
    assert dispatcher.pause()
    assert dispatcher.loop_on()
    assert dispatcher.session.video_loop
    assert dispatcher.stop()
    assert playback.names() == ["resume_video", "pause_video", "set_video_loop", "set_video_loop", "stop_video"]
    assert dispatcher.kind is OutputKind.NONE
    assert not dispatcher.session.video_loop


def test_image_ignores_pause_and_play(dispatcher: ActionDispatcher, playback: RecordingPlayback) -> None:
    _show(dispatcher, media_item("a.png", "image"))
    assert not dispatcher.pause()
    assert not dispatcher.activate()
    assert not dispatcher.loop_on()
    assert playback.calls == []
    assert dispatcher.stop()
    assert playback.names() == ["clear_image"]


def test_nothing_live_is_a_no_op(dispatcher: ActionDispatcher, playback: RecordingPlayback) -> None:
    for verb in ActionVerb:
        assert not dispatcher.dispatch(verb)
    assert playback.calls == []


def test_audio_and_youtube_cells(dispatcher: ActionDispatcher, playback: RecordingPlayback) -> None:
    _show(dispatcher, media_item("a.mp3", "audio"))
    dispatcher.activate()
    dispatcher.pause()
    dispatcher.stop()
    _show(dispatcher, SetlistItem(id=new_item_id(), type=ItemType.YOUTUBE, youtube_video_id="x"))
    dispatcher.activate()
    dispatcher.pause()
    dispatcher.stop()
    assert playback.names() == ["play_youtube", "pause_youtube", "stop_youtube"]


def test_presentation_autoplay(dispatcher: ActionDispatcher, playback: RecordingPlayback) -> None:
    pres = presentation("Welcome", slides=3)
    _show(dispatcher, SetlistItem.for_presentation(pres))
    assert dispatcher.activate()
    assert dispatcher.kind is OutputKind.AUTOPLAY_PRESENTATION
    assert playback.calls == [("start_autoplay", (pres.id,))]
    assert dispatcher.pause()
    assert dispatcher.kind is OutputKind.PRESENTATION
    assert dispatcher.loop_on()
    assert dispatcher.loop_off()
    assert dispatcher.kind is OutputKind.PRESENTATION
    assert playback.names() == ["start_autoplay", "stop_autoplay", "start_autoplay", "stop_autoplay"]


@pytest.mark.parametrize("pres", [presentation("One", slides=1), presentation("Quick", quick_mode=True)])
def test_presentation_that_cannot_advance(dispatcher: ActionDispatcher, playback: RecordingPlayback, pres) -> None:
    _show(dispatcher, SetlistItem.for_presentation(pres))
    dispatcher.activate()
    assert dispatcher.kind is OutputKind.PRESENTATION
    assert playback.calls == []


def test_switching_from_looping_video_turns_loop_off(dispatcher: ActionDispatcher, playback: RecordingPlayback) -> None:
    _show(dispatcher, media_item("a.mp4"))
    dispatcher.loop_on()
    dispatcher.show(SetlistItem.for_presentation(presentation("P")))
    assert not dispatcher.session.video_loop
    assert ("set_video_loop", (False,)) in playback.calls
    dispatcher.loop_on()
    assert dispatcher.kind is OutputKind.AUTOPLAY_PRESENTATION
    assert not dispatcher.session.video_loop


def test_blank_keeps_background_audio(dispatcher: ActionDispatcher, playback: RecordingPlayback) -> None:
    _show(dispatcher, media_item("a.mp3", "audio"))
    dispatcher.blank()
    assert dispatcher.kind is OutputKind.AUDIO
    assert playback.names() == ["blank"]


def test_blank_stops_video_and_autoplay(dispatcher: ActionDispatcher, playback: RecordingPlayback) -> None:
    _show(dispatcher, media_item("a.mp4"))
    dispatcher.loop_on()
    dispatcher.blank()
    assert dispatcher.kind is OutputKind.NONE
    assert playback.names() == ["set_video_loop", "stop_video", "set_video_loop", "blank"]

    _show(dispatcher, SetlistItem.for_presentation(presentation("P")))
    dispatcher.activate()
    playback.calls.clear()
    dispatcher.blank()
    assert playback.names() == ["stop_autoplay", "blank"]
    assert dispatcher.kind is OutputKind.NONE


def test_navigation_stays_inside_the_item(dispatcher: ActionDispatcher, playback: RecordingPlayback) -> None:
    _show(dispatcher, song_item("S", "a", "b", "c"))
    dispatcher.navigate(Navigate.next())
    dispatcher.navigate(Navigate.to(2))
    dispatcher.navigate(Navigate.next())
    dispatcher.navigate(Navigate.to(9))
    dispatcher.navigate(Navigate.to(0))
    dispatcher.navigate(Navigate.prev())
    assert playback.calls == [("go_to_slide", (1,)), ("go_to_slide", (2,)), ("go_to_slide", (0,))]
