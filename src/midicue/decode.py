# src/midicue/decode.py
from __future__ import annotations
import logging
from typing import Dict, Optional, Tuple

import mido

from .commands import Blank, Command, IdentifyByHash, Navigate, command_for_verb
from .config import DecoderSettings
from .identity import IdentityNote, from_note_events
from .protocol import (
    ACTION_BY_NOTE, BLANK_NOTE, ITEM_TYPE_CC, NEXT_SLIDE_CC, PREV_SLIDE_CC,
    RESERVED_NOTE_MAX, RESERVED_NOTE_MIN, is_identity_note, is_slide_note,
)

logger = logging.getLogger(__name__)


class MessageDecoder:
    """
    Turns live MIDI messages (as parsed by mido) into resolver commands.

    Stateful: buffers the first identity note until its partner arrives, keeps
    the last CC#3 type tag for a short while, and throttles fast repeats of the
    same command (a mod wheel sends dozens of CC#1 per second). ``now`` is
    seconds on any monotonic clock.
    """

    def __init__(self, settings: Optional[DecoderSettings] = None):
        self.settings = settings or DecoderSettings()
        self._id_first: Optional[Tuple[IdentityNote, float]] = None
        self._type_ctx: Optional[Tuple[int, float]] = None
        self._last_sent: Dict[object, float] = {}

    def reset(self) -> None:
        """Forget buffered identity/type state, e.g. after a device change."""
        self._id_first = None
        self._type_ctx = None

    def feed(self, msg: mido.Message, now: float) -> Optional[Command]:
        # mido channels are 0-based
        if getattr(msg, "channel", None) != self.settings.channel - 1:
            return None

        if msg.type == "note_on" and msg.velocity > 0:
            return self._note(msg.note, msg.velocity, now)
        if msg.type == "control_change":
            if msg.control == NEXT_SLIDE_CC and msg.value > 0:
                return self._throttled(Navigate.next(), now)
            if msg.control == PREV_SLIDE_CC and msg.value > 0:
                return self._throttled(Navigate.prev(), now)
            if msg.control == ITEM_TYPE_CC:
                self._type_ctx = (msg.value, now)
        return None

    def _note(self, note: int, velocity: int, now: float) -> Optional[Command]:
        if RESERVED_NOTE_MIN <= note <= RESERVED_NOTE_MAX:
            return None
        if is_identity_note(note):
            return self._identity(IdentityNote(note, velocity), now)
        if note == BLANK_NOTE:
            return self._throttled(Blank(), now)
        verb = ACTION_BY_NOTE.get(note)
        if verb is not None:
            return self._throttled(command_for_verb(verb), now)
        if is_slide_note(note):
            return self._throttled(Navigate.to(note), now)
        return None

    def _identity(self, note: IdentityNote, now: float) -> Optional[Command]:
        first = self._id_first
        if first is None or now - first[1] >= self.settings.pair_window_seconds:
            self._id_first = (note, now)
            return None
        self._id_first = None
        fp = from_note_events(first[0], note)

        type_code = None
        ctx, self._type_ctx = self._type_ctx, None
        if ctx is not None and now - ctx[1] < self.settings.type_context_ttl_seconds and ctx[0] > 0:
            type_code = ctx[0]
        logger.debug("identity pair -> %d (type %s)", fp, type_code)
        return IdentifyByHash(fp, type_code)

    def _throttled(self, cmd: Command, now: float) -> Optional[Command]:
        # keyed by command class, so goto 3 and goto 4 share one budget
        key = type(cmd)
        if key is Navigate:
            key = ("navigate", cmd.delta if cmd.index is None else "goto")
        last = self._last_sent.get(key)
        if last is not None and now - last < self.settings.throttle_seconds:
            return None
        self._last_sent[key] = now
        return cmd
