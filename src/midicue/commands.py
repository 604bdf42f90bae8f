# src/midicue/commands.py
"""Decoded inbound commands, as handed to the resolver."""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Union

from .protocol import ActionVerb


@dataclass(frozen=True)
class Navigate:
    delta: int = 0                 # +1 next, -1 previous
    index: Optional[int] = None    # absolute slide; wins over delta

    @classmethod
    def next(cls) -> "Navigate":
        return cls(delta=1)

    @classmethod
    def prev(cls) -> "Navigate":
        return cls(delta=-1)

    @classmethod
    def to(cls, index: int) -> "Navigate":
        return cls(index=index)


@dataclass(frozen=True)
class Blank:
    pass


@dataclass(frozen=True)
class Stop:
    pass


@dataclass(frozen=True)
class IdentifyByHash:
    fingerprint: int
    type_code: Optional[int] = None


@dataclass(frozen=True)
class Activate:
    pass


@dataclass(frozen=True)
class Pause:
    pass


@dataclass(frozen=True)
class LoopOn:
    pass


@dataclass(frozen=True)
class LoopOff:
    pass


@dataclass(frozen=True)
class SelectItem:
    item_id: str


Command = Union[Navigate, Blank, Stop, IdentifyByHash, Activate, Pause, LoopOn, LoopOff, SelectItem]

ACTION_COMMANDS = {
    ActionVerb.ACTIVATE: Activate,
    ActionVerb.PAUSE: Pause,
    ActionVerb.STOP: Stop,
    ActionVerb.LOOP_ON: LoopOn,
    ActionVerb.LOOP_OFF: LoopOff,
}


def command_for_verb(verb: ActionVerb) -> Command:
    return ACTION_COMMANDS[ActionVerb(verb)]()
