from __future__ import annotations

from pathlib import Path
from typing import List

import mido
from watchdog.events import DirCreatedEvent, FileCreatedEvent, FileModifiedEvent, FileMovedEvent

from helpers import media_item
from midicue.setlist import MemorySetlistStore
from midicue.timeline import CuePoint, CueTimeline
from midicue.watch import CueImporter, CueInboxHandler
from midicue.write import write_cue_file


def _cue_file(path: Path, embed_payload: bool = True) -> Path:
    tl = CueTimeline(cues=[CuePoint(0, 0.0), CuePoint(60, 2.0)], item=media_item("intro.mp4"),
                     embed_payload=embed_payload)
    write_cue_file(tl, str(path))
    return path


def test_importer_adds_item_once(tmp_path: Path) -> None:
    store = MemorySetlistStore()
    importer = CueImporter(store)
    path = _cue_file(tmp_path / "intro.mid")

    item = importer.import_file(path)
    assert item is not None
    assert item.media_name == "intro.mp4"
    assert store.saves == 1

    assert importer.import_file(path) is None
    assert store.saves == 1
    assert len(store.load()) == 1


def test_importer_skips_unusable_files(tmp_path: Path) -> None:
    store = MemorySetlistStore()
    importer = CueImporter(store)
    junk = tmp_path / "junk.mid"
    junk.write_bytes(b"not midi at all")
    assert importer.import_file(junk) is None
    assert importer.import_file(_cue_file(tmp_path / "bare.mid", embed_payload=False)) is None
    assert importer.import_file(tmp_path / "missing.mid") is None
    assert store.saves == 0


def test_import_directory_only_reads_midi(tmp_path: Path) -> None:
    _cue_file(tmp_path / "a.mid")
    (tmp_path / "notes.txt").write_text("hello", encoding="utf-8")
    store = MemorySetlistStore()
    assert CueImporter(store).import_directory(tmp_path) == 1


def test_handler_filters_and_debounces(tmp_path: Path) -> None:
    seen: List[str] = []
    handler = CueInboxHandler(seen.append, debounce=60.0)
    mid = str(tmp_path / "cue.mid")

    handler.on_created(FileCreatedEvent(str(tmp_path / "readme.txt")))
    handler.on_created(DirCreatedEvent(str(tmp_path / "folder.mid")))
    handler.on_created(FileCreatedEvent(mid))
    handler.on_modified(FileModifiedEvent(mid))
    handler.on_moved(FileMovedEvent(str(tmp_path / "tmp123"), str(tmp_path / "other.MIDI")))

    assert seen == [mid, str(tmp_path / "other.MIDI")]


def test_importer_skips_payload_with_wrong_field_types(tmp_path: Path) -> None:
    mid = mido.MidiFile(type=0, ticks_per_beat=480)
    track = mido.MidiTrack()
    track.append(mido.MetaMessage("text", text='midicue:{"title":"x","item_type":"messages","messages":5}'))
    track.append(mido.Message("note_on", note=0, velocity=100, time=10))
    mid.tracks.append(track)
    path = tmp_path / "bad.mid"
    mid.save(str(path))

    store = MemorySetlistStore()
    assert CueImporter(store).import_file(path) is None
    assert store.saves == 0
