# src/midicue/library.py
"""Item catalogues the resolver searches beyond the live setlist.

The song catalogue is held in memory and searched on the control thread. Media
and presentation stores may be slow (disk, network); the resolver only calls
them from worker threads.
"""
from __future__ import annotations
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import yaml

from .identity import media_fingerprint, presentation_fingerprint, song_fingerprint
from .models import MediaAsset, Presentation, Song, new_item_id, song_from_dict

logger = logging.getLogger(__name__)


class SongLibrary:
    def songs(self) -> Sequence[Song]:
        raise NotImplementedError

    def get_song(self, song_id: str) -> Optional[Song]:
        """Full song including slides; may block."""
        raise NotImplementedError

    def find_song(self, fp: int) -> Optional[Song]:
        for s in self.songs():
            if song_fingerprint(s) == fp:
                return s
        return None


class MediaLibrary:
    def find_media(self, fp: int) -> Optional[MediaAsset]:
        raise NotImplementedError


class PresentationStore:
    def find_presentation(self, fp: int) -> Optional[Presentation]:
        raise NotImplementedError


class StaticLibrary(SongLibrary, MediaLibrary, PresentationStore):
    """In-memory catalogue implementing all three lookups."""

    def __init__(
        self,
        songs: Optional[List[Song]] = None,
        media: Optional[List[MediaAsset]] = None,
        presentations: Optional[List[Presentation]] = None,
    ):
        self._songs = list(songs or [])
        self._media = list(media or [])
        self._presentations = list(presentations or [])

    def songs(self) -> Sequence[Song]:
        return self._songs

    def get_song(self, song_id: str) -> Optional[Song]:
        for s in self._songs:
            if s.id == song_id:
                return s
        return None

    def find_media(self, fp: int) -> Optional[MediaAsset]:
        for m in self._media:
            if media_fingerprint(m) == fp:
                return m
        return None

    def find_presentation(self, fp: int) -> Optional[Presentation]:
        for p in self._presentations:
            if presentation_fingerprint(p) == fp:
                return p
        return None


def _media_from_dict(d: Dict[str, Any]) -> MediaAsset:
    return MediaAsset(
        id=str(d.get("id") or new_item_id()),
        name=d.get("name", ""),
        path=d.get("path", ""),
        media_type=d.get("media_type", "video"),
        duration=d.get("duration"),
        thumbnail_path=d.get("thumbnail_path"),
    )


def _presentation_from_dict(d: Dict[str, Any]) -> Presentation:
    return Presentation(
        id=str(d.get("id") or new_item_id()),
        title=d.get("title", ""),
        slides=list(d.get("slides") or []),
        quick_mode=bool(d.get("quick_mode", False)),
    )


def load_library(path: Union[str, Path]) -> StaticLibrary:
    """
    Reads a YAML catalogue with optional top-level lists ``songs``, ``media``
    and ``presentations``.
    """
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    lib = StaticLibrary(
        songs=[song_from_dict(d) for d in data.get("songs") or []],
        media=[_media_from_dict(d) for d in data.get("media") or []],
        presentations=[_presentation_from_dict(d) for d in data.get("presentations") or []],
    )
    logger.info(
        "library %s: %d song(s), %d media, %d presentation(s)",
        path, len(lib._songs), len(lib._media), len(lib._presentations),
    )
    return lib
