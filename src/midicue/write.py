# src/midicue/write.py
from __future__ import annotations
import io
import logging
import math
import os
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

import mido

from .config import EncoderSettings
from .errors import EmptyTimelineError, InvalidCueError, InvalidDurationError, InvalidTempoError
from .identity import IdentityNote, identity_notes_for
from .payload import CuePayload, payload_from_item
from .protocol import (
    ITEM_TYPE_CC, MAX_BPM, MIDI_NOTE_MAX, MIN_BPM, RESERVED_NOTE_MIN, is_cue_note, item_type_code,
)
from .timeline import CuePoint, CueTimeline

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EncodedCues:
    data: bytes
    dropped: int          # cues whose note number was outside 0..127
    cue_count: int        # cues actually written
    ticks_per_beat: int
    end_tick: int


# ---------- internal helpers ----------

def _bpm_to_micro(bpm: float) -> int:
    return int(round(60_000_000 / max(1e-6, float(bpm))))

def seconds_to_ticks(seconds: float, bpm: float, tpb: int) -> int:
    """Round half up, so a re-import lands within one tick."""
    return int(math.floor(float(seconds) * float(bpm) / 60.0 * tpb + 0.5))

def _check_inputs(cues: Sequence[CuePoint], duration_seconds: float, bpm: float) -> None:
    if not math.isfinite(bpm) or not (MIN_BPM <= bpm <= MAX_BPM):
        raise InvalidTempoError(f"BPM must be between {MIN_BPM:g} and {MAX_BPM:g}, got {bpm!r}")
    if not math.isfinite(duration_seconds) or duration_seconds <= 0:
        raise InvalidDurationError(f"invalid total duration {duration_seconds!r}")
    for i, c in enumerate(cues):
        if not math.isfinite(c.timestamp_seconds) or c.timestamp_seconds < 0:
            raise InvalidCueError(f"invalid timestamp {c.timestamp_seconds!r} at cue {i}")

def _check_identity_notes(notes: Sequence[IdentityNote]) -> None:
    if len(notes) != 2:
        raise InvalidCueError(f"identity needs exactly two notes, got {len(notes)}")
    for n in notes:
        if not (0 <= n.pitch <= MIDI_NOTE_MAX and 1 <= n.velocity <= 127):
            raise InvalidCueError(f"identity note out of range: {n}")

def split_playable(cues: Iterable[CuePoint]) -> Tuple[List[CuePoint], int]:
    """Drops cues whose index is no MIDI note and orders the rest by time.

    The sort is stable, so cues sharing a timestamp keep their input order.
    """
    cues = list(cues)
    kept = [c for c in cues if 0 <= c.index <= MIDI_NOTE_MAX]
    kept.sort(key=lambda c: c.timestamp_seconds)
    return kept, len(cues) - len(kept)

def _build_events(
    cues: Sequence[CuePoint],
    bpm: float,
    identity_notes: Optional[Sequence[IdentityNote]],
    payload: Optional[CuePayload],
    type_code: Optional[int],
    st: EncoderSettings,
) -> List[Tuple[int, object]]:
    """Absolute-tick event list in emit order (header first, then cues)."""
    tpb = st.ticks_per_beat
    ch = st.channel
    evs: List[Tuple[int, object]] = [
        (0, mido.MetaMessage("set_tempo", tempo=_bpm_to_micro(bpm), time=0)),
    ]
    if type_code:
        evs.append((0, mido.Message("control_change", channel=ch, control=ITEM_TYPE_CC, value=int(type_code))))
    if identity_notes:
        # both notes sound together so a receiver sees them as one pair
        for n in identity_notes:
            evs.append((0, mido.Message("note_on", channel=ch, note=n.pitch, velocity=n.velocity)))
    if payload is not None:
        evs.append((0, mido.MetaMessage("text", text=payload.to_text())))
    if identity_notes:
        for n in identity_notes:
            evs.append((st.identity_note_ticks, mido.Message("note_off", channel=ch, note=n.pitch, velocity=0)))

    ticks = [seconds_to_ticks(c.timestamp_seconds, bpm, tpb) for c in cues]
    for i, c in enumerate(cues):
        on = ticks[i]
        off = on + st.cue_gate_ticks
        if i + 1 < len(cues):
            off = min(off, ticks[i + 1])   # released before the next cue fires
        evs.append((on, mido.Message("note_on", channel=ch, note=c.index, velocity=st.cue_velocity)))
        evs.append((off, mido.Message("note_off", channel=ch, note=c.index, velocity=0)))

    # stable: equal ticks keep emit order
    evs.sort(key=lambda x: x[0])
    return evs

def _emit_track_events(mt: mido.MidiTrack, events: Iterable[Tuple[int, object]], end_tick: int) -> None:
    """Writes absolute-tick events as delta times, closed by end_of_track at end_tick."""
    last = 0
    for tick, msg in events:
        delta = tick - last
        last = tick
        mt.append(msg.copy(time=delta))
    mt.append(mido.MetaMessage("end_of_track", time=max(0, end_tick - last)))


# ---------- public writer APIs ----------

def encode_cues(
    cues: Sequence[CuePoint],
    duration_seconds: float,
    bpm: float,
    identity_notes: Optional[Sequence[IdentityNote]] = None,
    payload: Optional[CuePayload] = None,
    item_type: Optional[int] = None,
    settings: Optional[EncoderSettings] = None,
) -> EncodedCues:
    """
    Serialises a cue timeline into a single-track (format 0) Standard MIDI File.

    Order at tick 0: tempo, CC#3 item type (omitted for songs), identity note pair,
    payload text event. Then one short note per cue, then end_of_track at the later
    of the last event and ``duration_seconds``. Same inputs, same bytes.
    """
    st = settings or EncoderSettings()
    cues = list(cues)
    _check_inputs(cues, float(duration_seconds), float(bpm))
    if identity_notes is not None:
        _check_identity_notes(identity_notes)
    if item_type is not None and not 0 <= int(item_type) <= 127:
        raise InvalidCueError(f"item type code out of range: {item_type}")

    kept, dropped = split_playable(cues)
    if dropped:
        logger.warning("dropped %d cue(s) with a note number outside 0..%d", dropped, MIDI_NOTE_MAX)
    unreadable = sum(1 for c in kept if not is_cue_note(c.index))
    if unreadable:
        logger.warning(
            "%d cue(s) on notes %d..%d will not read back as cues (reserved or identity zone)",
            unreadable, RESERVED_NOTE_MIN, MIDI_NOTE_MAX,
        )
    if not kept:
        raise EmptyTimelineError(dropped)

    evs = _build_events(kept, float(bpm), identity_notes, payload, item_type, st)
    end_tick = max(evs[-1][0], seconds_to_ticks(duration_seconds, bpm, st.ticks_per_beat))

    mid = mido.MidiFile(type=0, ticks_per_beat=st.ticks_per_beat)
    mt = mido.MidiTrack()
    _emit_track_events(mt, evs, end_tick)
    mid.tracks.append(mt)

    buf = io.BytesIO()
    mid.save(file=buf)
    logger.debug("encoded %d cue(s), %d tick(s) at %.2f bpm", len(kept), end_tick, bpm)
    return EncodedCues(
        data=buf.getvalue(), dropped=dropped, cue_count=len(kept),
        ticks_per_beat=st.ticks_per_beat, end_tick=end_tick,
    )

def encode_timeline(tl: CueTimeline, settings: Optional[EncoderSettings] = None) -> EncodedCues:
    """Encodes a recorded timeline, deriving identity, type tag and payload from its item."""
    st = settings or EncoderSettings()
    notes = payload = code = None
    if tl.item is not None:
        notes = identity_notes_for(tl.item)
        code = item_type_code(tl.item.type) or None
        if tl.embed_payload:
            payload = payload_from_item(tl.item)
    return encode_cues(
        tl.cues, tl.effective_duration(st.tail_seconds), tl.bpm,
        identity_notes=notes, payload=payload, item_type=code, settings=st,
    )

def write_cue_file(tl: CueTimeline, out_path: str, settings: Optional[EncoderSettings] = None) -> EncodedCues:
    """Encodes ``tl`` and writes it; an encoding error leaves ``out_path`` untouched."""
    encoded = encode_timeline(tl, settings)
    parent = os.path.dirname(os.path.abspath(out_path))
    os.makedirs(parent, exist_ok=True)
    with open(out_path, "wb") as fh:
        fh.write(encoded.data)
    return encoded
