# src/midicue/analyze.py
from __future__ import annotations
import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

import mido

from .errors import CueFileError, MalformedPayloadError
from .identity import IdentityNote, from_note_events
from .models import SetlistItem
from .payload import CuePayload, item_from_payload
from .protocol import ITEM_TYPE_CC, ItemType, is_cue_note, is_identity_note, item_type_for_code
from .timeline import CuePoint

logger = logging.getLogger(__name__)

DEFAULT_TEMPO = 500_000   # 120 bpm, the SMF default when no tempo event exists


@dataclass
class CueFileAnalysis:
    ticks_per_beat: int
    bpm: float
    item_type_code: Optional[int] = None      # None = no CC#3 in the file
    identity_notes: List[IdentityNote] = field(default_factory=list)
    fingerprint: Optional[int] = None
    payload: Optional[CuePayload] = None
    cues: List[CuePoint] = field(default_factory=list)
    length_seconds: float = 0.0

    @property
    def item_type(self) -> Optional[ItemType]:
        if self.item_type_code is None:
            return ItemType.SONG
        return item_type_for_code(self.item_type_code)


def _read_midi(source: Union[bytes, str, Path]) -> mido.MidiFile:
    if isinstance(source, (bytes, bytearray)):
        data = bytes(source)
    else:
        data = Path(source).read_bytes()
    try:
        return mido.MidiFile(file=io.BytesIO(data))
    except (OSError, EOFError, ValueError, KeyError, IndexError) as e:
        raise CueFileError(f"not a standard MIDI file: {e}") from e


def analyze_cue_file(source: Union[bytes, str, Path]) -> CueFileAnalysis:
    """
    Reads a cue file back: tempo, item type, identity pair, payload and cue points.

    Works on any SMF; tracks are merged and only the events the cue protocol
    knows are picked up. A payload that fails to parse is logged and reported
    as ``None``; the rest of the analysis stays valid.
    """
    mid = _read_midi(source)
    tpb = mid.ticks_per_beat
    res = CueFileAnalysis(ticks_per_beat=tpb, bpm=mido.tempo2bpm(DEFAULT_TEMPO))

    tempo = None
    seconds = 0.0
    for msg in mido.merge_tracks(mid.tracks):
        seconds += mido.tick2second(msg.time, tpb, tempo or DEFAULT_TEMPO)

        if msg.type == "set_tempo":
            if tempo is None:
                res.bpm = mido.tempo2bpm(msg.tempo)
            tempo = msg.tempo
        elif msg.type == "control_change" and msg.control == ITEM_TYPE_CC:
            if res.item_type_code is None:
                res.item_type_code = msg.value
        elif msg.type == "text":
            if res.payload is None:
                res.payload = _parse_payload(msg.text)
        elif msg.type == "note_on" and msg.velocity > 0:
            if is_identity_note(msg.note):
                if len(res.identity_notes) < 2:
                    res.identity_notes.append(IdentityNote(msg.note, msg.velocity))
            elif is_cue_note(msg.note):
                res.cues.append(CuePoint(msg.note, round(seconds, 6)))

    res.length_seconds = seconds
    if len(res.identity_notes) == 2:
        res.fingerprint = from_note_events(*res.identity_notes)
    return res


def _parse_payload(text: str) -> Optional[CuePayload]:
    try:
        return CuePayload.from_text(text)
    except MalformedPayloadError as e:
        logger.warning("ignoring malformed payload: %s", e)
        return None


def extract_payload(source: Union[bytes, str, Path]) -> Optional[CuePayload]:
    return analyze_cue_file(source).payload


def item_from_cue_file(source: Union[bytes, str, Path]) -> Optional[SetlistItem]:
    """Setlist item rebuilt from the embedded payload; ``None`` for files without one."""
    res = analyze_cue_file(source)
    if res.payload is None:
        return None
    item = item_from_payload(res.payload)
    if res.item_type_code is not None and res.payload.item_type is None:
        # untyped payload: the CC tag decides
        item.type = res.item_type or item.type
    return item
