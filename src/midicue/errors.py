# src/midicue/errors.py
from __future__ import annotations


class CueProtocolError(Exception):
    """Base class for every error raised by midicue."""


class EmptyTimelineError(CueProtocolError):
    """No playable cue is left once out-of-range notes have been dropped."""

    def __init__(self, dropped: int = 0):
        self.dropped = dropped
        msg = "timeline has no encodable cues"
        if dropped:
            msg += f" ({dropped} dropped as out of range)"
        super().__init__(msg)


class InvalidTempoError(CueProtocolError, ValueError):
    pass


class InvalidDurationError(CueProtocolError, ValueError):
    pass


class InvalidCueError(CueProtocolError, ValueError):
    pass


class MalformedPayloadError(CueProtocolError, ValueError):
    """An embedded payload could not be parsed into a CuePayload."""


class CueFileError(CueProtocolError):
    """The data handed to the reader is not a Standard MIDI File."""
