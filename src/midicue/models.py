# src/midicue/models.py
from __future__ import annotations
import os
import uuid
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from .protocol import ItemType


@dataclass
class Slide:
    original_text: str = ""
    transliteration: str = ""
    translation: str = ""
    verse_type: str = ""      # "[Verse1]", "[Chorus]", ...


@dataclass
class Song:
    id: str
    title: str
    slides: Optional[List[Slide]] = None    # None = only the catalogue entry is loaded
    author: Optional[str] = None
    original_language: Optional[str] = None
    tags: List[str] = field(default_factory=list)

    @property
    def loaded(self) -> bool:
        return self.slides is not None


@dataclass
class Presentation:
    id: str
    title: str
    slides: List[Dict[str, Any]] = field(default_factory=list)
    quick_mode: bool = False   # quick-slide presentations never auto-advance

    @property
    def can_autoplay(self) -> bool:
        return not self.quick_mode and len(self.slides) > 1


@dataclass
class MediaAsset:
    """Library record of an imported media file."""
    id: str
    name: str
    path: str
    media_type: str            # "image" | "video" | "audio"
    duration: Optional[float] = None
    thumbnail_path: Optional[str] = None


@dataclass
class SetlistItem:
    id: str
    type: ItemType
    title: str = ""
    song: Optional[Song] = None
    presentation: Optional[Presentation] = None
    media_path: Optional[str] = None
    media_name: Optional[str] = None
    media_type: Optional[str] = None
    media_duration: Optional[float] = None
    countdown_time: Optional[int] = None
    countdown_message: str = ""
    youtube_video_id: Optional[str] = None
    announcement_text: str = ""
    messages: List[str] = field(default_factory=list)
    background: Optional[str] = None

    @property
    def display_title(self) -> str:
        if self.title:
            return self.title
        if self.song is not None:
            return self.song.title
        if self.presentation is not None:
            return self.presentation.title
        if self.media_name:
            return self.media_name
        return self.type.value

    # --- constructors for items discovered outside the setlist ---

    @classmethod
    def for_song(cls, song: Song, item_type: ItemType = ItemType.SONG) -> "SetlistItem":
        return cls(id=new_item_id(), type=item_type, title=song.title, song=song)

    @classmethod
    def for_media(cls, asset: MediaAsset) -> "SetlistItem":
        return cls(
            id=new_item_id(), type=ItemType.MEDIA, title=asset.name,
            media_path=asset.path, media_name=asset.name,
            media_type=asset.media_type, media_duration=asset.duration,
        )

    @classmethod
    def for_presentation(cls, pres: Presentation) -> "SetlistItem":
        return cls(id=new_item_id(), type=ItemType.PRESENTATION, title=pres.title, presentation=pres)

    # --- YAML/JSON friendly representation ---

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["type"] = self.type.value
        return {k: v for k, v in d.items() if v not in (None, "", [])}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SetlistItem":
        d = dict(data)
        song = d.pop("song", None)
        pres = d.pop("presentation", None)
        item = cls(
            id=str(d.pop("id", None) or new_item_id()),
            type=ItemType(d.pop("type", ItemType.SONG.value)),
            **{k: v for k, v in d.items() if k in _ITEM_FIELDS},
        )
        if song is not None:
            item.song = song_from_dict(song)
        if pres is not None:
            item.presentation = Presentation(
                id=str(pres.get("id") or new_item_id()),
                title=pres.get("title", ""),
                slides=list(pres.get("slides") or []),
                quick_mode=bool(pres.get("quick_mode", False)),
            )
        return item


_ITEM_FIELDS = {
    "title", "media_path", "media_name", "media_type", "media_duration",
    "countdown_time", "countdown_message", "youtube_video_id",
    "announcement_text", "messages", "background",
}


def song_from_dict(data: Dict[str, Any]) -> Song:
    slides = data.get("slides")
    return Song(
        id=str(data.get("id") or new_item_id()),
        title=data.get("title", ""),
        slides=None if slides is None else [Slide(**s) for s in slides],
        author=data.get("author"),
        original_language=data.get("original_language"),
        tags=list(data.get("tags") or []),
    )


def media_name_of(name: Optional[str], path: Optional[str]) -> str:
    if name:
        return name
    if path:
        return os.path.basename(path.replace("\\", "/"))
    return ""


def new_item_id() -> str:
    return str(uuid.uuid4())
