from __future__ import annotations

from concurrent.futures import Future
from typing import Any, Callable, List, Optional, Tuple

from midicue.dispatch import Playback
from midicue.models import MediaAsset, Presentation, SetlistItem, Slide, Song, new_item_id
from midicue.protocol import ItemType


class FakeClock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ManualExecutor:
    """Executor whose jobs only run when the test says so."""

    def __init__(self) -> None:
        self.jobs: List[Tuple[Future, Callable[..., Any], tuple]] = []

    def submit(self, fn: Callable[..., Any], *args: Any) -> Future:
        fut: Future = Future()
        self.jobs.append((fut, fn, args))
        return fut

    def run(self, index: int) -> None:
        fut, fn, args = self.jobs[index]
        try:
            fut.set_result(fn(*args))
        except Exception as exc:  # handed to the resolver through the future
            fut.set_exception(exc)

    def run_all(self) -> None:
        for i, (fut, _, _) in enumerate(self.jobs):
            if not fut.done():
                self.run(i)

    def shutdown(self, wait: bool = True) -> None:
        pass


class RecordingPlayback(Playback):
    def __init__(self) -> None:
        self.calls: List[Tuple[str, tuple]] = []

    def _noop(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))

    def names(self) -> List[str]:
        return [name for name, _ in self.calls]


def song(title: str, *lines: str, song_id: Optional[str] = None, loaded: bool = True) -> Song:
    slides = [Slide(original_text=line, verse_type="Verse1") for line in lines]
    return Song(id=song_id or new_item_id(), title=title, slides=slides if loaded else None)


def song_item(title: str, *lines: str, item_type: ItemType = ItemType.SONG) -> SetlistItem:
    return SetlistItem.for_song(song(title, *lines), item_type)


def media_item(name: str, media_type: str = "video", path: Optional[str] = None) -> SetlistItem:
    return SetlistItem.for_media(asset(name, media_type, path))


def asset(name: str, media_type: str = "video", path: Optional[str] = None) -> MediaAsset:
    return MediaAsset(id=new_item_id(), name=name, path=path or f"/media/{name}", media_type=media_type)


def presentation(title: str, slides: int = 3, quick_mode: bool = False) -> Presentation:
    return Presentation(
        id=new_item_id(), title=title,
        slides=[{"text": f"{title} {i}"} for i in range(slides)], quick_mode=quick_mode,
    )
