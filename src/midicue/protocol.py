# src/midicue/protocol.py
"""Shared constant table for the cue protocol.

Both directions use these numbers: the writer when it lays out a file, the
decoder and resolver when they turn incoming events back into commands.
The values are published, so they must never be renumbered.
"""
from __future__ import annotations
from enum import Enum
from typing import Dict, Optional

# --- note zones ---
SLIDE_NOTE_MIN = 0
SLIDE_NOTE_MAX = 59
BLANK_NOTE = 60
ACTIVATE_NOTE = 61
PAUSE_NOTE = 62
STOP_NOTE = 63
LOOP_ON_NOTE = 64
LOOP_OFF_NOTE = 65
RESERVED_NOTE_MIN = 66
RESERVED_NOTE_MAX = 95
IDENTITY_NOTE_MIN = 96
MIDI_NOTE_MAX = 127

# --- controllers ---
NEXT_SLIDE_CC = 1
PREV_SLIDE_CC = 2
ITEM_TYPE_CC = 3

# --- identity split: two parts of 32 pitches x 127 velocities each ---
IDENTITY_PITCH_SPAN = MIDI_NOTE_MAX - IDENTITY_NOTE_MIN + 1   # 32
IDENTITY_VELOCITY_SPAN = 127                                  # velocities 1..127
IDENTITY_PART_SPACE = IDENTITY_PITCH_SPAN * IDENTITY_VELOCITY_SPAN   # 4064
FINGERPRINT_SPACE = IDENTITY_PART_SPACE * IDENTITY_PART_SPACE        # 16_516_096

# --- encoder defaults ---
DEFAULT_TPB = 480
DEFAULT_BPM = 120.0
MIN_BPM = 4.0
MAX_BPM = 999.0
CUE_VELOCITY = 100
CUE_GATE_TICKS = 1
IDENTITY_NOTE_TICKS = 10
PAYLOAD_MARKER = "midicue:"


class ItemType(str, Enum):
    SONG = "song"
    BIBLE = "bible"
    PRESENTATION = "presentation"
    MEDIA = "media"
    COUNTDOWN = "countdown"
    YOUTUBE = "youtube"
    STOPWATCH = "stopwatch"
    CLOCK = "clock"
    ANNOUNCEMENT = "announcement"
    MESSAGES = "messages"
    AUDIO_PLAYLIST = "audioPlaylist"


class ActionVerb(str, Enum):
    ACTIVATE = "activate"
    PAUSE = "pause"
    STOP = "stop"
    LOOP_ON = "loopOn"
    LOOP_OFF = "loopOff"


# song is 0 and never written: a file without CC#3 carries a song
ITEM_TYPE_CODES: Dict[ItemType, int] = {
    ItemType.SONG: 0,
    ItemType.PRESENTATION: 1,
    ItemType.MEDIA: 2,
    ItemType.BIBLE: 3,
    ItemType.COUNTDOWN: 4,
    ItemType.YOUTUBE: 5,
    ItemType.STOPWATCH: 6,
    ItemType.CLOCK: 7,
    ItemType.ANNOUNCEMENT: 8,
    ItemType.MESSAGES: 9,
    ItemType.AUDIO_PLAYLIST: 10,
}
ITEM_TYPE_BY_CODE: Dict[int, ItemType] = {code: t for t, code in ITEM_TYPE_CODES.items()}

ACTION_NOTES: Dict[ActionVerb, int] = {
    ActionVerb.ACTIVATE: ACTIVATE_NOTE,
    ActionVerb.PAUSE: PAUSE_NOTE,
    ActionVerb.STOP: STOP_NOTE,
    ActionVerb.LOOP_ON: LOOP_ON_NOTE,
    ActionVerb.LOOP_OFF: LOOP_OFF_NOTE,
}
ACTION_BY_NOTE: Dict[int, ActionVerb] = {note: verb for verb, note in ACTION_NOTES.items()}

SONG_LIKE = frozenset({ItemType.SONG, ItemType.BIBLE})


def item_type_code(item_type: ItemType | str) -> int:
    return ITEM_TYPE_CODES[ItemType(item_type)]


def item_type_for_code(code: Optional[int]) -> Optional[ItemType]:
    """Reverse lookup; ``None`` for unknown codes."""
    if code is None:
        return None
    return ITEM_TYPE_BY_CODE.get(int(code))


def is_slide_note(note: int) -> bool:
    return SLIDE_NOTE_MIN <= note <= SLIDE_NOTE_MAX


def is_identity_note(note: int) -> bool:
    return IDENTITY_NOTE_MIN <= note <= MIDI_NOTE_MAX


def is_cue_note(note: int) -> bool:
    """Slide, blank and action notes; everything a timeline may trigger."""
    return SLIDE_NOTE_MIN <= note <= LOOP_OFF_NOTE
