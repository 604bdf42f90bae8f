from __future__ import annotations

from pathlib import Path

import pytest

from helpers import song_item
from midicue.models import Slide
from midicue.protocol import ActionVerb
from midicue.recorder import CueRecorder, resolve_arrangement, section_ranges, slide_count_for
from midicue.timeline import CuePoint, CueTimeline, load_timeline, save_timeline


def _slides() -> list:
    return [
        Slide("v1a", verse_type="Verse1"),
        Slide("v1b", verse_type="Verse1"),
        Slide("c", verse_type="Chorus"),
        Slide("v2", verse_type="Verse2"),
    ]


def test_section_ranges() -> None:
    assert section_ranges(_slides()) == {"Verse1": (0, 1), "Chorus": (2, 2), "Verse2": (3, 3)}


def test_resolve_arrangement_repeats_and_skips_unknown() -> None:
    arranged = resolve_arrangement(_slides(), ["Chorus", "Verse1", "Bridge", "Chorus"])
    assert [a.original_index for a in arranged] == [2, 0, 1, 2]
    assert [a.verse_type for a in arranged] == ["Chorus", "Verse1", "Verse1", "Chorus"]


def test_resolve_arrangement_without_sections_keeps_order() -> None:
    assert [a.original_index for a in resolve_arrangement(_slides())] == [0, 1, 2, 3]


def test_slide_count_for_song_uses_arrangement() -> None:
    item = song_item("S", "a", "b", "c")
    assert slide_count_for(item) == 3
    assert slide_count_for(item, ["Verse1", "Verse1"]) == 6


def test_advance_marks_next_slide_and_stops_at_end() -> None:
    rec = CueRecorder(2)
    assert rec.start()
    assert rec.cursor == 0
    assert rec.advance(1.5)
    assert rec.timestamps(1) == [1.5]
    assert not rec.advance(2.0)
    assert not rec.recording


def test_start_needs_slides() -> None:
    assert not CueRecorder(0).start()


def test_mark_select_clear() -> None:
    rec = CueRecorder(3)
    assert rec.mark(2, 1.0)
    assert rec.mark(2, 4.0)
    assert rec.cursor == 2
    assert rec.select(0)
    assert rec.cursor == 0
    assert not rec.select(5)
    assert not rec.mark(3, 1.0)
    assert not rec.mark(0, float("nan"))
    assert rec.clear(2, 0)
    assert rec.timestamps(2) == [4.0]
    assert not rec.clear(2, 5)


def test_update_is_clamped_to_duration() -> None:
    rec = CueRecorder(1, duration=10.0)
    rec.mark(0, 1.0)
    assert rec.update(0, 0, 42.0)
    assert rec.timestamps(0) == [10.0]
    assert rec.update(0, 0, -3.0)
    assert rec.timestamps(0) == [0.0]
    assert not rec.update(0, 1, 2.0)
    assert not rec.update(0, 0, float("inf"))


def test_snapshot_orders_by_time_then_mark_order() -> None:
    rec = CueRecorder(3)
    rec.mark(2, 5.0)
    rec.mark(0, 1.0)
    rec.mark(1, 5.0)
    rec.mark_blank(3.0)
    rec.mark_action(ActionVerb.PAUSE, 5.0)
    assert rec.snapshot() == [
        CuePoint(0, 1.0),
        CuePoint(60, 3.0),
        CuePoint(2, 5.0),
        CuePoint(1, 5.0),
        CuePoint(62, 5.0),
    ]


def test_moved_cue_keeps_its_tie_position() -> None:
    rec = CueRecorder(2)
    rec.mark(0, 1.0)
    rec.mark(1, 2.0)
    rec.update(1, 0, 1.0)
    assert [c.index for c in rec.snapshot()] == [0, 1]


def test_slides_past_59_are_left_out() -> None:
    rec = CueRecorder(62)
    rec.mark(59, 1.0)
    rec.mark(60, 2.0)
    rec.mark(61, 3.0)
    assert rec.snapshot() == [CuePoint(59, 1.0)]
    assert rec.overflow == 2


def test_reset_and_has_cues() -> None:
    rec = CueRecorder(2)
    assert not rec.has_cues
    rec.mark_action("loopOn", 1.0)
    assert rec.has_cues
    rec.reset()
    assert not rec.has_cues
    assert rec.cursor == -1


def test_timeline_yaml_round_trip(tmp_path: Path) -> None:
    rec = CueRecorder(2, duration=30.0)
    rec.mark(0, 0.0)
    rec.mark(1, 12.25)
    item = song_item("Song", "hello there")
    tl = rec.to_timeline(bpm=88.0, item=item)
    path = tmp_path / "tl.yaml"
    save_timeline(tl, path)
    back = load_timeline(path)
    assert back.cues == tl.cues
    assert back.bpm == 88.0
    assert back.duration_seconds == 30.0
    assert back.item.song.slides[0].original_text == "hello there"
    assert back.item.id == item.id


def test_effective_duration() -> None:
    assert CueTimeline(cues=[CuePoint(0, 4.0)]).effective_duration() == pytest.approx(9.0)
    assert CueTimeline(cues=[CuePoint(0, 4.0)], duration_seconds=6.0).effective_duration() == 6.0


def test_blank_and_action_marks_can_be_edited() -> None:
    rec = CueRecorder(1, duration=8.0)
    rec.mark_blank(2.0)
    rec.mark_blank(4.0)
    rec.mark_action(ActionVerb.STOP, 3.0)
    assert rec.extra_timestamps(60) == [2.0, 4.0]

    assert rec.update_extra(60, 1, 20.0)
    assert rec.extra_timestamps(60) == [2.0, 8.0]
    assert rec.clear_extra(60, 0)
    assert rec.extra_timestamps(60) == [8.0]
    assert not rec.clear_extra(60, 3)
    assert not rec.update_extra(63, 0, float("nan"))
    assert rec.snapshot() == [CuePoint(63, 3.0), CuePoint(60, 8.0)]
