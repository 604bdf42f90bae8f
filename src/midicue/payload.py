# src/midicue/payload.py
"""Item metadata embedded in a cue file.

The payload lets a receiving application rebuild the item without access to
the sender's database. It travels as compact ASCII JSON behind a marker in a
single text meta event.
"""
from __future__ import annotations
import json
from dataclasses import dataclass, field, asdict, fields
from typing import Any, Dict, List, Optional

from .errors import MalformedPayloadError
from .models import Presentation, SetlistItem, Slide, Song, new_item_id
from .protocol import PAYLOAD_MARKER, ItemType


@dataclass
class CuePayload:
    title: str
    slides: List[Dict[str, str]] = field(default_factory=list)
    item_type: Optional[str] = None       # absent = song
    author: Optional[str] = None
    original_language: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    presentation_slides: List[Dict[str, Any]] = field(default_factory=list)
    media_type: Optional[str] = None
    media_path: Optional[str] = None
    media_name: Optional[str] = None
    media_duration: Optional[float] = None
    countdown_time: Optional[int] = None
    countdown_message: Optional[str] = None
    youtube_video_id: Optional[str] = None
    announcement_text: Optional[str] = None
    messages: List[str] = field(default_factory=list)
    background: Optional[str] = None

    def to_json(self) -> str:
        d = {k: v for k, v in asdict(self).items() if v not in (None, [])}
        return json.dumps(d, ensure_ascii=True, sort_keys=True, separators=(",", ":"))

    def to_text(self) -> str:
        return PAYLOAD_MARKER + self.to_json()

    @classmethod
    def from_json(cls, text: str) -> "CuePayload":
        try:
            data = json.loads(text)
        except ValueError as e:
            raise MalformedPayloadError(f"payload is not valid JSON: {e}") from e
        if not isinstance(data, dict) or not isinstance(data.get("title"), str):
            raise MalformedPayloadError("payload must be an object with a string title")
        known = {f.name for f in fields(cls)}
        payload = cls(**{k: v for k, v in data.items() if k in known and v is not None})
        payload.validate()
        return payload

    def validate(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                _check_field(f.name, value)
        if self.item_type is not None and self.item_type not in _ITEM_TYPE_VALUES:
            raise MalformedPayloadError(f"unknown item type {self.item_type!r}")

    @classmethod
    def from_text(cls, text: str) -> Optional["CuePayload"]:
        """Parse a text meta event; ``None`` when it does not carry our marker."""
        if not text.startswith(PAYLOAD_MARKER):
            return None
        return cls.from_json(text[len(PAYLOAD_MARKER):])


def payload_from_item(item: SetlistItem) -> CuePayload:
    p = CuePayload(title=item.display_title, background=item.background)
    if item.type is not ItemType.SONG:
        p.item_type = item.type.value
    if item.song is not None:
        song = item.song
        p.slides = [_slide_dict(s) for s in (song.slides or [])]
        p.author = song.author
        p.original_language = song.original_language
        p.tags = list(song.tags)
    if item.presentation is not None:
        p.presentation_slides = list(item.presentation.slides)
    p.media_type = item.media_type
    p.media_path = item.media_path
    p.media_name = item.media_name
    p.media_duration = item.media_duration
    p.countdown_time = item.countdown_time
    p.countdown_message = item.countdown_message or None
    p.youtube_video_id = item.youtube_video_id
    p.announcement_text = item.announcement_text or None
    p.messages = list(item.messages)
    return p


def item_from_payload(payload: CuePayload) -> SetlistItem:
    """Rebuild a setlist item for auto-import."""
    payload.validate()
    item_type = ItemType(payload.item_type) if payload.item_type else ItemType.SONG
    item = SetlistItem(
        id=new_item_id(), type=item_type, title=payload.title,
        media_path=payload.media_path, media_name=payload.media_name,
        media_type=payload.media_type, media_duration=payload.media_duration,
        countdown_time=payload.countdown_time,
        countdown_message=payload.countdown_message or "",
        youtube_video_id=payload.youtube_video_id,
        announcement_text=payload.announcement_text or "",
        messages=list(payload.messages), background=payload.background,
    )
    if item_type in (ItemType.SONG, ItemType.BIBLE):
        item.song = Song(
            id=new_item_id(), title=payload.title,
            slides=[Slide(**{k: v for k, v in s.items() if k in _SLIDE_KEYS}) for s in payload.slides],
            author=payload.author, original_language=payload.original_language,
            tags=list(payload.tags),
        )
    elif item_type is ItemType.PRESENTATION:
        item.presentation = Presentation(
            id=new_item_id(), title=payload.title, slides=list(payload.presentation_slides),
        )
    return item


_ITEM_TYPE_VALUES = {t.value for t in ItemType}
_SLIDE_KEYS = {"original_text", "transliteration", "translation", "verse_type"}


def _slide_dict(s: Slide) -> Dict[str, str]:
    return {k: v for k, v in asdict(s).items() if v}


_STR_FIELDS = {
    "title", "item_type", "author", "original_language", "media_type", "media_path",
    "media_name", "countdown_message", "youtube_video_id", "announcement_text", "background",
}
_STR_LIST_FIELDS = {"tags", "messages"}
_DICT_LIST_FIELDS = {"slides", "presentation_slides"}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _check_field(name: str, value: Any) -> None:
    """Raises MalformedPayloadError when ``value`` has the wrong shape for field ``name``."""
    if name in _STR_FIELDS:
        ok = isinstance(value, str)
    elif name in _STR_LIST_FIELDS:
        ok = isinstance(value, list) and all(isinstance(v, str) for v in value)
    elif name in _DICT_LIST_FIELDS:
        ok = isinstance(value, list) and all(isinstance(v, dict) for v in value)
        if ok and name == "slides":
            ok = all(isinstance(v, str) for s in value for k, v in s.items() if k in _SLIDE_KEYS)
    elif name == "countdown_time":
        ok = isinstance(value, int) and not isinstance(value, bool)
    else:    # media_duration
        ok = _is_number(value)
    if not ok:
        raise MalformedPayloadError(f"field {name!r} has the wrong type: {type(value).__name__}")
