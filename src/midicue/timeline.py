# src/midicue/timeline.py
from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .models import SetlistItem
from .protocol import DEFAULT_BPM

# --- recorded cues ---

@dataclass(frozen=True)
class CuePoint:
    index: int                 # arranged slide index, or a reserved blank/action note
    timestamp_seconds: float


@dataclass
class CueTimeline:
    """Everything one export needs: the cues, the clock and the item they belong to."""
    cues: List[CuePoint] = field(default_factory=list)
    bpm: float = DEFAULT_BPM
    duration_seconds: Optional[float] = None    # None = last cue + tail
    item: Optional[SetlistItem] = None
    embed_payload: bool = True

    def effective_duration(self, tail: float = 5.0) -> float:
        if self.duration_seconds and self.duration_seconds > 0:
            return float(self.duration_seconds)
        last = max((c.timestamp_seconds for c in self.cues), default=0.0)
        return last + tail


# --- YAML documents ---

def timeline_to_dict(tl: CueTimeline) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "bpm": float(tl.bpm),
        "cues": [{"index": c.index, "t": float(c.timestamp_seconds)} for c in tl.cues],
        "embed_payload": bool(tl.embed_payload),
    }
    if tl.duration_seconds is not None:
        out["duration"] = float(tl.duration_seconds)
    if tl.item is not None:
        out["item"] = tl.item.to_dict()
    return out


def timeline_from_dict(data: Dict[str, Any]) -> CueTimeline:
    cues = [CuePoint(int(c["index"]), float(c["t"])) for c in (data.get("cues") or [])]
    item = data.get("item")
    dur = data.get("duration")
    return CueTimeline(
        cues=cues,
        bpm=float(data.get("bpm", DEFAULT_BPM)),
        duration_seconds=None if dur is None else float(dur),
        item=SetlistItem.from_dict(item) if item else None,
        embed_payload=bool(data.get("embed_payload", True)),
    )


def load_timeline(path: Union[str, Path]) -> CueTimeline:
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    return timeline_from_dict(data)


def save_timeline(tl: CueTimeline, path: Union[str, Path]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(yaml.safe_dump(timeline_to_dict(tl), sort_keys=False, allow_unicode=True), encoding="utf-8")
