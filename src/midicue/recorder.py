# src/midicue/recorder.py
from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from .models import SetlistItem, Slide
from .protocol import ACTION_NOTES, BLANK_NOTE, SLIDE_NOTE_MAX, ActionVerb, ItemType
from .timeline import CuePoint, CueTimeline

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArrangedSlide:
    slide: Slide
    original_index: int
    verse_type: str


# ---------- arrangement ----------

def section_ranges(slides: Sequence[Slide]) -> Dict[str, Tuple[int, int]]:
    """First contiguous run of every verse type: ``{verse_type: (start, end)}``, end inclusive."""
    ranges: Dict[str, Tuple[int, int]] = {}
    for i, s in enumerate(slides):
        vt = s.verse_type or ""
        if not vt or vt in ranges:
            continue
        end = i
        while end + 1 < len(slides) and slides[end + 1].verse_type == vt:
            end += 1
        ranges[vt] = (i, end)
    return ranges


def resolve_arrangement(slides: Sequence[Slide], sections: Optional[Sequence[str]] = None) -> List[ArrangedSlide]:
    """
    Flattens a song into the slide order it is performed in.

    ``sections`` lists verse types in play order (a chorus may appear several
    times). Without an arrangement the slides are used as stored. Unknown
    sections are skipped.
    """
    if not sections:
        return [ArrangedSlide(s, i, s.verse_type or "") for i, s in enumerate(slides)]
    ranges = section_ranges(slides)
    out: List[ArrangedSlide] = []
    for vt in sections:
        rng = ranges.get(vt)
        if rng is None:
            logger.debug("arrangement section %r not in song, skipped", vt)
            continue
        for i in range(rng[0], rng[1] + 1):
            out.append(ArrangedSlide(slides[i], i, vt))
    return out


def slide_count_for(item: SetlistItem, sections: Optional[Sequence[str]] = None) -> int:
    if item.type in (ItemType.SONG, ItemType.BIBLE) and item.song is not None:
        return len(resolve_arrangement(item.song.slides or [], sections))
    if item.type is ItemType.PRESENTATION and item.presentation is not None:
        return len(item.presentation.slides)
    return 0


# ---------- recorder ----------

class CueRecorder:
    """
    Live cue capture for one editing session.

    Every arranged slide owns a list of trigger times (a slide may fire more than
    once). Blank and action marks live beside them. Each mark carries a sequence
    number so that cues at the same instant keep the order they were made in.
    """

    def __init__(self, slide_count: int, duration: Optional[float] = None):
        self.slide_count = max(0, int(slide_count))
        self.duration = duration
        self.cursor = -1
        self.recording = False
        self._seq = 0
        self._slides: List[List[Tuple[float, int]]] = [[] for _ in range(self.slide_count)]
        self._extra: List[Tuple[int, float, int]] = []    # (note, t, seq) for blank/action marks
        self.overflow = 0

    # --- recording ---

    def start(self) -> bool:
        if self.slide_count == 0:
            return False
        if self.cursor < 0:
            self.cursor = 0
        self.recording = True
        return True

    def stop(self) -> None:
        self.recording = False

    def _next_seq(self) -> int:
        self._seq += 1
        return self._seq

    def mark(self, index: int, t: float) -> bool:
        if not 0 <= index < self.slide_count or not math.isfinite(t):
            return False
        self.cursor = index
        self._slides[index].append((max(0.0, float(t)), self._next_seq()))
        return True

    def advance(self, t: float) -> bool:
        """Moves to the next slide and marks it; stops recording past the last one."""
        nxt = self.cursor + 1
        if nxt >= self.slide_count:
            self.recording = False
            return False
        return self.mark(nxt, t)

    def select(self, index: int) -> bool:
        if not 0 <= index < self.slide_count:
            return False
        self.cursor = index
        return True

    def mark_blank(self, t: float) -> bool:
        return self._mark_extra(BLANK_NOTE, t)

    def mark_action(self, verb: ActionVerb, t: float) -> bool:
        return self._mark_extra(ACTION_NOTES[ActionVerb(verb)], t)

    def _mark_extra(self, note: int, t: float) -> bool:
        if not math.isfinite(t):
            return False
        self._extra.append((note, max(0.0, float(t)), self._next_seq()))
        return True

    # --- editing ---

    def timestamps(self, index: int) -> List[float]:
        if not 0 <= index < self.slide_count:
            return []
        return [t for t, _ in self._slides[index]]

    def clear(self, index: int, n: int) -> bool:
        if not 0 <= index < self.slide_count or not 0 <= n < len(self._slides[index]):
            return False
        del self._slides[index][n]
        return True

    def update(self, index: int, n: int, t: float) -> bool:
        """Moves one trigger in time, clamped to ``[0, duration]``."""
        if not math.isfinite(t) or not 0 <= index < self.slide_count:
            return False
        marks = self._slides[index]
        if not 0 <= n < len(marks):
            return False
        t = max(0.0, float(t))
        if self.duration is not None and self.duration > 0:
            t = min(t, float(self.duration))
        marks[n] = (t, marks[n][1])
        return True

    def _extra_positions(self, note: int) -> List[int]:
        return [i for i, (nt, _, _) in enumerate(self._extra) if nt == note]

    def extra_timestamps(self, note: int) -> List[float]:
        """Trigger times of a blank or action note, in the order they were marked."""
        return [self._extra[i][1] for i in self._extra_positions(note)]

    def clear_extra(self, note: int, n: int) -> bool:
        pos = self._extra_positions(note)
        if not 0 <= n < len(pos):
            return False
        del self._extra[pos[n]]
        return True

    def update_extra(self, note: int, n: int, t: float) -> bool:
        """Same as :meth:`update`, for the n-th blank/action mark on ``note``."""
        pos = self._extra_positions(note)
        if not math.isfinite(t) or not 0 <= n < len(pos):
            return False
        t = max(0.0, float(t))
        if self.duration is not None and self.duration > 0:
            t = min(t, float(self.duration))
        nt, _, seq = self._extra[pos[n]]
        self._extra[pos[n]] = (nt, t, seq)
        return True

    def reset(self) -> None:
        self._slides = [[] for _ in range(self.slide_count)]
        self._extra = []
        self.cursor = -1
        self.recording = False

    @property
    def has_cues(self) -> bool:
        return any(self._slides) or bool(self._extra)

    # --- export ---

    def snapshot(self) -> List[CuePoint]:
        """Immutable, time-ordered cue list; ties keep the order they were marked in.

        Slides past the slide zone would alias the blank/action notes; they are
        left out and counted in ``overflow``.
        """
        rows: List[Tuple[float, int, int]] = []
        self.overflow = 0
        for idx, marks in enumerate(self._slides):
            if idx > SLIDE_NOTE_MAX:
                self.overflow += len(marks)
                continue
            rows.extend((t, seq, idx) for t, seq in marks)
        rows.extend((t, seq, note) for note, t, seq in self._extra)
        rows.sort(key=lambda r: (r[0], r[1]))
        if self.overflow:
            logger.warning("%d cue(s) on slides past %d left out", self.overflow, SLIDE_NOTE_MAX)
        return [CuePoint(idx, t) for t, _, idx in rows]

    def to_timeline(self, bpm: float, item: Optional[SetlistItem] = None, embed_payload: bool = True) -> CueTimeline:
        return CueTimeline(
            cues=self.snapshot(), bpm=bpm, duration_seconds=self.duration,
            item=item, embed_payload=embed_payload,
        )
