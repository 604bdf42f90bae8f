# src/midicue/identity.py
"""Item identity fingerprints.

An item's identity is reduced to a canonical string (its *hash input*), the
string to a 24-bit FNV-1a fingerprint, and the fingerprint to two MIDI notes
in the identity zone (pitch 96..127, velocity 1..127). Hash inputs only look
at content that is the same on every machine: never at local ids or paths.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

from .models import MediaAsset, Presentation, SetlistItem, Slide, Song, media_name_of
from .protocol import (
    FINGERPRINT_SPACE, IDENTITY_NOTE_MIN, IDENTITY_PART_SPACE, IDENTITY_VELOCITY_SPAN,
    ItemType,
)

FNV_OFFSET_BASIS = 0x811C9DC5
FNV_PRIME = 0x01000193


@dataclass(frozen=True)
class IdentityNote:
    pitch: int
    velocity: int


def _norm(text: Optional[str]) -> str:
    return " ".join((text or "").split()).lower()


# ---------- hash inputs ----------

def song_hash_input(title: str, slides: Optional[Sequence[Slide]] = None) -> str:
    """``"<title>|<first two words of the first non-blank slide>"``."""
    lead = ""
    for s in slides or ():
        words = _norm(s.original_text).split(" ")
        if words and words[0]:
            lead = " ".join(words[:2])
            break
    return f"{_norm(title)}|{lead}"


def presentation_hash_input(title: str) -> str:
    return f"pres|{_norm(title)}"


def media_hash_input(name: Optional[str], path: Optional[str] = None) -> str:
    return f"media|{_norm(media_name_of(name, path))}"


def countdown_hash_input(seconds: Optional[int], message: str) -> str:
    return f"countdown|{'' if seconds is None else int(seconds)}|{_norm(message)}"


def youtube_hash_input(video_id: Optional[str]) -> str:
    return f"yt|{(video_id or '').strip()}"


def announcement_hash_input(text: str) -> str:
    return f"announce|{_norm((text or '')[:30])}"


def messages_hash_input(messages: Iterable[str]) -> str:
    first = [_norm(m) for m in list(messages)[:2]]
    return "|".join(["messages"] + first)


def playlist_hash_input(title: str) -> str:
    return f"playlist|{_norm(title)}"


def hash_input(item: SetlistItem) -> str:
    """Canonical identity string for a setlist item of any type."""
    t = item.type
    if t in (ItemType.SONG, ItemType.BIBLE):
        song = item.song
        if song is None:
            return song_hash_input(item.title)
        return song_hash_input(song.title, song.slides)
    if t is ItemType.PRESENTATION:
        return presentation_hash_input(item.presentation.title if item.presentation else item.title)
    if t is ItemType.MEDIA:
        return media_hash_input(item.media_name, item.media_path)
    if t is ItemType.COUNTDOWN:
        return countdown_hash_input(item.countdown_time, item.countdown_message)
    if t is ItemType.YOUTUBE:
        return youtube_hash_input(item.youtube_video_id)
    if t is ItemType.STOPWATCH:
        return "stopwatch"
    if t is ItemType.CLOCK:
        return "clock"
    if t is ItemType.ANNOUNCEMENT:
        return announcement_hash_input(item.announcement_text)
    if t is ItemType.MESSAGES:
        return messages_hash_input(item.messages)
    return playlist_hash_input(item.title)


# ---------- fingerprint ----------

def fnv1a_32(data: bytes) -> int:
    h = FNV_OFFSET_BASIS
    for b in data:
        h ^= b
        h = (h * FNV_PRIME) & 0xFFFFFFFF
    return h


def _canonical(value: int) -> int:
    # smaller part first, so the two notes may arrive in either order
    high, low = divmod(value, IDENTITY_PART_SPACE)
    if high > low:
        high, low = low, high
    return high * IDENTITY_PART_SPACE + low


def fingerprint(text: str) -> int:
    """24-bit canonical fingerprint of ``text`` (UTF-8)."""
    return _canonical(fnv1a_32(text.encode("utf-8")) % FINGERPRINT_SPACE)


def item_fingerprint(item: SetlistItem) -> int:
    return fingerprint(hash_input(item))


def song_fingerprint(song: Song) -> int:
    return fingerprint(song_hash_input(song.title, song.slides))


def media_fingerprint(asset: MediaAsset) -> int:
    return fingerprint(media_hash_input(asset.name, asset.path))


def presentation_fingerprint(pres: Presentation) -> int:
    return fingerprint(presentation_hash_input(pres.title))


# ---------- note split ----------

def _part_to_note(part: int) -> IdentityNote:
    return IdentityNote(
        pitch=IDENTITY_NOTE_MIN + part // IDENTITY_VELOCITY_SPAN,
        velocity=part % IDENTITY_VELOCITY_SPAN + 1,
    )


def _note_to_part(note: IdentityNote) -> int:
    return (note.pitch - IDENTITY_NOTE_MIN) * IDENTITY_VELOCITY_SPAN + (note.velocity - 1)


def to_note_events(fp: int) -> Tuple[IdentityNote, IdentityNote]:
    if not 0 <= fp < FINGERPRINT_SPACE:
        raise ValueError(f"fingerprint out of range: {fp}")
    high, low = divmod(fp, IDENTITY_PART_SPACE)
    return _part_to_note(high), _part_to_note(low)


def from_note_events(first: IdentityNote, second: IdentityNote) -> int:
    """Order independent: ``from_note_events(a, b) == from_note_events(b, a)``."""
    a, b = _note_to_part(first), _note_to_part(second)
    return min(a, b) * IDENTITY_PART_SPACE + max(a, b)


def identity_notes_for(item: SetlistItem) -> Tuple[IdentityNote, IdentityNote]:
    return to_note_events(item_fingerprint(item))
