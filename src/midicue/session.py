# src/midicue/session.py
from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class OutputKind(str, Enum):
    NONE = "none"
    VIDEO = "video"
    IMAGE = "image"
    AUDIO = "audio"
    YOUTUBE = "youtube"
    PRESENTATION = "presentation"                     # static, not advancing on its own
    AUTOPLAY_PRESENTATION = "autoplayingPresentation"


@dataclass(frozen=True)
class Epoch:
    identity_gen: int
    clear_gen: int


class ControlSession:
    """
    State owned by one control session and passed explicitly to whoever needs it.

    ``identity_gen`` moves on every identify, ``clear_gen`` on every blank/stop
    (which also drops a pending song selection).
    An asynchronous result may only apply while both still match the epoch it
    was started under.
    """

    def __init__(self):
        self.identity_gen = 0
        self.clear_gen = 0
        self.last_cleared_at: Optional[float] = None
        self.pending_selection_id: Optional[str] = None
        self.output_kind = OutputKind.NONE
        self.video_loop = False
        self.slide_index = 0

    def epoch(self) -> Epoch:
        return Epoch(self.identity_gen, self.clear_gen)

    def is_current(self, epoch: Epoch) -> bool:
        return epoch.identity_gen == self.identity_gen and epoch.clear_gen == self.clear_gen

    def bump_identity(self) -> Epoch:
        self.identity_gen += 1
        return self.epoch()

    def bump_clear(self, now: float) -> None:
        self.clear_gen += 1
        self.last_cleared_at = now
        # a song still loading must not come back on screen
        self.pending_selection_id = None

    def in_clear_cooldown(self, now: float, cooldown: float) -> bool:
        return self.last_cleared_at is not None and now - self.last_cleared_at < cooldown


class WarningThrottle:
    """Passes at most one warning per ``interval`` seconds to the log and to ``sink``."""

    def __init__(self, interval: float, clock: Callable[[], float], sink: Optional[Callable[[str], None]] = None):
        self.interval = interval
        self.clock = clock
        self.sink = sink
        self._last: Optional[float] = None

    def warn(self, message: str) -> bool:
        now = self.clock()
        if self._last is not None and now - self._last < self.interval:
            logger.debug("warning suppressed: %s", message)
            return False
        self._last = now
        logger.warning(message)
        if self.sink is not None:
            self.sink(message)
        return True
