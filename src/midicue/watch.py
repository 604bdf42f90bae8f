# src/midicue/watch.py
from __future__ import annotations
import logging
import os
import threading
import time
from pathlib import Path
from typing import Callable, Dict, Optional, Union

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver

from .analyze import analyze_cue_file
from .errors import CueFileError, MalformedPayloadError
from .identity import item_fingerprint
from .models import SetlistItem
from .payload import item_from_payload
from .setlist import SetlistStore

logger = logging.getLogger(__name__)

MIDI_SUFFIXES = (".mid", ".midi")


class CueImporter:
    """Adds the item embedded in a cue file to a persisted setlist, once."""

    def __init__(self, store: SetlistStore):
        self.store = store
        self._lock = threading.Lock()

    def import_file(self, path: Union[str, Path]) -> Optional[SetlistItem]:
        try:
            res = analyze_cue_file(path)
        except (OSError, CueFileError) as e:
            logger.warning("skipping %s: %s", path, e)
            return None
        if res.payload is None:
            logger.info("%s carries no payload, nothing to import", path)
            return None

        try:
            item = item_from_payload(res.payload)
        except MalformedPayloadError as e:
            logger.warning("skipping %s: %s", path, e)
            return None
        fp = item_fingerprint(item)
        if res.fingerprint is not None and res.fingerprint != fp:
            logger.warning("%s: payload does not match its identity notes", path)

        with self._lock:
            setlist = self.store.load()
            if setlist.find_by_fingerprint(fp) is not None:
                logger.info("%s: %r already in setlist", path, item.display_title)
                return None
            setlist.append(item)
            self.store.save(setlist)
        logger.info("imported %s %r from %s", item.type.value, item.display_title, path)
        return item

    def import_directory(self, directory: Union[str, Path]) -> int:
        n = 0
        for p in sorted(Path(directory).iterdir()):
            if p.suffix.lower() in MIDI_SUFFIXES and self.import_file(p) is not None:
                n += 1
        return n


class CueInboxHandler(FileSystemEventHandler):
    """Calls ``on_file`` for every MIDI file created, modified or moved into the folder."""

    def __init__(self, on_file: Callable[[str], None], debounce: float = 0.3):
        super().__init__()
        self.on_file = on_file
        self.debounce = debounce
        self._last: Dict[str, float] = {}

    def _maybe_signal(self, candidate_path: str):
        path = os.path.abspath(candidate_path)
        if not path.lower().endswith(MIDI_SUFFIXES):
            return
        now = time.time()
        # editors and DAWs write in bursts
        if now - self._last.get(path, 0.0) > self.debounce:
            self._last[path] = now
            self.on_file(path)

    def on_created(self, event):
        if not event.is_directory:
            self._maybe_signal(event.src_path)

    def on_modified(self, event):
        if not event.is_directory:
            self._maybe_signal(event.src_path)

    def on_moved(self, event):
        # atomic saves end as a move onto the final name
        dest = getattr(event, "dest_path", None)
        if not event.is_directory:
            self._maybe_signal(dest or event.src_path)


def watch_directory(directory: Union[str, Path], importer: CueImporter, polling: bool = False):
    """Starts and returns an observer; the caller stops and joins it."""
    observer = PollingObserver() if polling else Observer()
    observer.schedule(CueInboxHandler(importer.import_file), str(directory), recursive=False)
    observer.start()
    logger.info("watching %s for cue files", directory)
    return observer
