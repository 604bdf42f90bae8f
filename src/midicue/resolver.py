# src/midicue/resolver.py
from __future__ import annotations
import dataclasses
import itertools
import logging
import queue
import threading
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .commands import (
    Activate, Blank, Command, IdentifyByHash, LoopOff, LoopOn, Navigate, Pause, SelectItem, Stop,
)
from .config import ResolverSettings
from .dispatch import ActionDispatcher, Playback
from .library import MediaLibrary, PresentationStore, SongLibrary
from .models import SetlistItem
from .protocol import SONG_LIKE, ItemType, item_type_for_code
from .session import ControlSession, Epoch, WarningThrottle
from .setlist import Setlist, SetlistStore

logger = logging.getLogger(__name__)

# declared types the external stores can answer for; None = undeclared
_EXTERNAL_TYPES = (None, ItemType.MEDIA, ItemType.PRESENTATION)


@dataclass
class _Lookup:
    kind: str                   # "identify" | "select"
    key: object                 # fingerprint or item id
    epoch: Epoch
    started: float
    future: Future


class CommandResolver:
    """
    Maps decoded commands onto the setlist and the live output.

    All commands run one at a time on the caller's thread. Slow lookups go to
    ``executor``; their results are queued and applied by ``process_completed``
    on the same thread, and only if the session epoch (or, for song loading,
    ``pending_selection_id``) still matches. ``handle`` never raises.
    """

    def __init__(
        self,
        setlist: Setlist,
        playback: Optional[Playback] = None,
        session: Optional[ControlSession] = None,
        songs: Optional[SongLibrary] = None,
        media: Optional[MediaLibrary] = None,
        presentations: Optional[PresentationStore] = None,
        store: Optional[SetlistStore] = None,
        settings: Optional[ResolverSettings] = None,
        executor: Optional[Executor] = None,
        clock: Callable[[], float] = time.monotonic,
        on_warning: Optional[Callable[[str], None]] = None,
    ):
        self.setlist = setlist
        self.playback = playback or Playback()
        self.session = session or ControlSession()
        self.songs = songs
        self.media = media
        self.presentations = presentations
        self.store = store
        self.settings = settings or ResolverSettings()
        self.clock = clock
        self._own_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(
            max_workers=self.settings.lookup_workers, thread_name_prefix="midicue-lookup",
        )
        self.dispatcher = ActionDispatcher(self.session, self.playback)
        self.warnings = WarningThrottle(self.settings.warning_interval_seconds, clock, on_warning)
        self._done: "queue.Queue[int]" = queue.Queue()
        self._inflight: Dict[int, _Lookup] = {}
        self._ids = itertools.count(1)

    # ---------- command entry ----------

    def handle(self, command: Command) -> None:
        try:
            self.process_completed()
            self._handle(command)
        except Exception:
            logger.exception("command %r failed", command)

    def _handle(self, cmd: Command) -> None:
        if isinstance(cmd, Navigate):
            self.dispatcher.navigate(cmd)
        elif isinstance(cmd, Blank):
            self.dispatcher.blank()
            self.session.bump_clear(self.clock())
        elif isinstance(cmd, Stop):
            self.dispatcher.stop()
            self.session.bump_clear(self.clock())
        elif isinstance(cmd, IdentifyByHash):
            self.identify(cmd.fingerprint, cmd.type_code)
        elif isinstance(cmd, Activate):
            self.dispatcher.activate()
        elif isinstance(cmd, Pause):
            self.dispatcher.pause()
        elif isinstance(cmd, LoopOn):
            self.dispatcher.loop_on()
        elif isinstance(cmd, LoopOff):
            self.dispatcher.loop_off()
        elif isinstance(cmd, SelectItem):
            item = self.setlist.find(cmd.item_id)
            if item is None:
                logger.warning("select: no setlist item %s", cmd.item_id)
                return
            self.select(item)
        else:
            logger.warning("unknown command %r", cmd)

    def serve(self, inbox: "queue.Queue[Optional[Command]]", stop_event: threading.Event, poll: float = 0.05) -> None:
        """Control-thread loop. ``None`` in the inbox or ``stop_event`` ends it."""
        while not stop_event.is_set():
            try:
                cmd = inbox.get(timeout=poll)
            except queue.Empty:
                self.process_completed()
                continue
            if cmd is None:
                break
            self.handle(cmd)
        self.process_completed()

    def shutdown(self) -> None:
        if self._own_executor:
            self.executor.shutdown(wait=False)

    # ---------- identify ----------

    def identify(self, fp: int, type_code: Optional[int] = None) -> None:
        """
        Resolution order, first match wins:
          1. live setlist, restricted to the declared type (song and bible count as one)
          2. song library, for song/bible
          3. live setlist, every other type
          4. external media / presentation stores, asynchronously, unless a
             blank/stop happened within the cooldown
        Nothing found: one throttled warning.
        """
        now = self.clock()
        epoch = self.session.bump_identity()
        declared = item_type_for_code(type_code)
        if type_code is not None and declared is None:
            logger.debug("unknown item type code %s, treated as undeclared", type_code)
        effective = declared or ItemType.SONG
        first = SONG_LIKE if effective in SONG_LIKE else frozenset({effective})

        item = self.setlist.find_by_fingerprint(fp, types=first)
        if item is not None:
            logger.info("identify %d: setlist item %r", fp, item.display_title)
            self.select(item)
            return

        if effective in SONG_LIKE and self.songs is not None:
            song = self.songs.find_song(fp)
            if song is not None:
                item = SetlistItem.for_song(song, ItemType.BIBLE if effective is ItemType.BIBLE else ItemType.SONG)
                logger.info("identify %d: library song %r added to setlist", fp, song.title)
                self._append_and_select(item)
                return

        item = self.setlist.find_by_fingerprint(fp, exclude=first)
        if item is not None:
            logger.info("identify %d: setlist item %r (%s)", fp, item.display_title, item.type.value)
            self.select(item)
            return

        if declared not in _EXTERNAL_TYPES or (self.media is None and self.presentations is None):
            self._unresolved(fp)
            return
        if self.session.in_clear_cooldown(now, self.settings.clear_cooldown_seconds):
            logger.debug("identify %d: external lookup suppressed right after a clear", fp)
            return
        self._submit("identify", fp, epoch, self._external_lookup, fp, declared)

    def _external_lookup(self, fp: int, declared: Optional[ItemType]) -> Optional[SetlistItem]:
        # worker thread: read-only calls into the stores
        if declared in (None, ItemType.MEDIA) and self.media is not None:
            asset = self.media.find_media(fp)
            if asset is not None:
                return SetlistItem.for_media(asset)
        if declared in (None, ItemType.PRESENTATION) and self.presentations is not None:
            pres = self.presentations.find_presentation(fp)
            if pres is not None:
                return SetlistItem.for_presentation(pres)
        return None

    def _unresolved(self, fp: int) -> None:
        self.warnings.warn(f"no item matches fingerprint {fp}")

    # ---------- selection ----------

    def select(self, item: SetlistItem) -> None:
        """
        Selects ``item`` and puts it on the output. Songs known only by their
        catalogue entry are fetched first; a newer selection supersedes it.
        """
        self.setlist.select(item.id)
        if item.song is not None and not item.song.loaded and self.songs is not None:
            self.session.pending_selection_id = item.id
            self._submit("select", item.id, self.session.epoch(), self.songs.get_song, item.song.id)
            return
        self.session.pending_selection_id = None
        self.dispatcher.show(item)

    def _append_and_select(self, item: SetlistItem) -> None:
        self.setlist.append(item)
        self._persist()
        self.select(item)

    def _persist(self) -> None:
        if self.store is None:
            return
        try:
            self.store.save(self.setlist)
        except OSError as e:
            logger.error("could not persist setlist: %s", e)

    # ---------- async plumbing ----------

    def _submit(self, kind: str, key: object, epoch: Epoch, fn, *args) -> None:
        lid = next(self._ids)
        fut = self.executor.submit(fn, *args)
        self._inflight[lid] = _Lookup(kind, key, epoch, self.clock(), fut)
        fut.add_done_callback(lambda _f, lid=lid: self._done.put(lid))
        logger.debug("%s lookup %d started for %r", kind, lid, key)

    @property
    def pending(self) -> int:
        return len(self._inflight)

    def process_completed(self) -> int:
        """Applies finished lookups and expires overdue ones. Returns how many were settled."""
        settled = 0
        while True:
            try:
                lid = self._done.get_nowait()
            except queue.Empty:
                break
            lk = self._inflight.pop(lid, None)
            if lk is None:
                continue    # already expired
            settled += 1
            self._apply(lk)

        now = self.clock()
        timeout = self.settings.lookup_timeout_seconds
        for lid in [i for i, lk in self._inflight.items() if now - lk.started >= timeout]:
            lk = self._inflight.pop(lid)
            settled += 1
            logger.info("%s lookup %d timed out", lk.kind, lid)
            self._settle(lk, None)
        return settled

    def _apply(self, lk: _Lookup) -> None:
        if lk.future.cancelled():
            self._settle(lk, None)
            return
        exc = lk.future.exception()
        if exc is not None:
            logger.error("%s lookup for %r failed: %s", lk.kind, lk.key, exc)
            self._settle(lk, None)
            return
        self._settle(lk, lk.future.result())

    def _settle(self, lk: _Lookup, result) -> None:
        if lk.kind == "select":
            self._settle_selection(lk, result)
            return
        if not self.session.is_current(lk.epoch):
            logger.debug("stale identify result for %r dropped", lk.key)
            return
        if result is None:
            self._unresolved(lk.key)
            return
        logger.info("identify %s: %s %r added to setlist", lk.key, result.type.value, result.display_title)
        self._append_and_select(result)

    def _settle_selection(self, lk: _Lookup, song) -> None:
        if self.session.pending_selection_id != lk.key:
            logger.debug("superseded song load for %s dropped", lk.key)
            return
        self.session.pending_selection_id = None
        item = self.setlist.find(lk.key)
        if item is None:
            return
        if song is None:
            logger.warning("song for %r could not be loaded", item.display_title)
            return
        item = dataclasses.replace(item, song=song)
        self.setlist.replace(item)
        self.dispatcher.show(item)
