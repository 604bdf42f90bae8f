# src/midicue/config.py
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
import copy
import logging
import yaml

from .protocol import CUE_GATE_TICKS, CUE_VELOCITY, DEFAULT_TPB, IDENTITY_NOTE_TICKS

logger = logging.getLogger(__name__)

# package root: .../src/midicue
PKG_ROOT = Path(__file__).resolve().parent
DEFAULT_CFG_PATH = PKG_ROOT / "config.default.yaml"
USER_CFG_PATH = Path.home() / ".config" / "midicue" / "config.yaml"

def _safe_load(path: Path) -> Dict[str, Any]:
    try:
        if path.exists():
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
            return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError) as e:
        # a broken user file must not take the core down
        logger.warning("ignoring unreadable config %s: %s", path, e)
    return {}

def _deep_merge(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(a)
    for k, v in (b or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = copy.deepcopy(v)
    return out

def load_config(
    user_path: Optional[Path] = None,
    default_path: Optional[Path] = None,
) -> Dict[str, Any]:
    """
    Loads the packaged defaults, applies the user overrides and returns the merged dict.
    Sections: 'ticks_per_beat', 'encoder', 'resolver', 'decoder', 'logging'.
    """
    dpath = Path(default_path) if default_path else DEFAULT_CFG_PATH
    upath = Path(user_path) if user_path else USER_CFG_PATH

    defaults = _safe_load(dpath)
    user = _safe_load(upath)
    cfg = _deep_merge(defaults, user)

    # minimal defaults even without the packaged file
    cfg.setdefault("ticks_per_beat", DEFAULT_TPB)
    for section in ("encoder", "resolver", "decoder", "logging"):
        if not isinstance(cfg.get(section), dict):
            cfg[section] = {}

    return cfg

def get_ticks_per_beat(cfg: Dict[str, Any]) -> int:
    try:
        return int(cfg.get("ticks_per_beat", DEFAULT_TPB))
    except (TypeError, ValueError):
        return DEFAULT_TPB

# --- typed views ---

@dataclass(frozen=True)
class EncoderSettings:
    ticks_per_beat: int = DEFAULT_TPB
    channel: int = 0
    cue_velocity: int = CUE_VELOCITY
    cue_gate_ticks: int = CUE_GATE_TICKS
    identity_note_ticks: int = IDENTITY_NOTE_TICKS
    tail_seconds: float = 5.0

@dataclass(frozen=True)
class ResolverSettings:
    clear_cooldown_seconds: float = 3.0
    warning_interval_seconds: float = 10.0
    lookup_timeout_seconds: float = 5.0
    lookup_workers: int = 2

@dataclass(frozen=True)
class DecoderSettings:
    channel: int = 16
    pair_window_seconds: float = 1.0
    type_context_ttl_seconds: float = 2.0
    throttle_seconds: float = 0.15

def encoder_settings(cfg: Dict[str, Any]) -> EncoderSettings:
    enc = cfg.get("encoder", {})
    d = EncoderSettings()
    return EncoderSettings(
        ticks_per_beat=get_ticks_per_beat(cfg),
        channel=max(0, min(15, int(enc.get("channel", d.channel)))),
        cue_velocity=max(1, min(127, int(enc.get("cue_velocity", d.cue_velocity)))),
        cue_gate_ticks=max(0, int(enc.get("cue_gate_ticks", d.cue_gate_ticks))),
        identity_note_ticks=max(1, int(enc.get("identity_note_ticks", d.identity_note_ticks))),
        tail_seconds=max(0.0, float(enc.get("tail_seconds", d.tail_seconds))),
    )

def resolver_settings(cfg: Dict[str, Any]) -> ResolverSettings:
    res = cfg.get("resolver", {})
    d = ResolverSettings()
    return ResolverSettings(
        clear_cooldown_seconds=float(res.get("clear_cooldown_seconds", d.clear_cooldown_seconds)),
        warning_interval_seconds=float(res.get("warning_interval_seconds", d.warning_interval_seconds)),
        lookup_timeout_seconds=float(res.get("lookup_timeout_seconds", d.lookup_timeout_seconds)),
        lookup_workers=max(1, int(res.get("lookup_workers", d.lookup_workers))),
    )

def decoder_settings(cfg: Dict[str, Any]) -> DecoderSettings:
    dec = cfg.get("decoder", {})
    d = DecoderSettings()
    return DecoderSettings(
        channel=max(1, min(16, int(dec.get("channel", d.channel)))),
        pair_window_seconds=float(dec.get("pair_window_seconds", d.pair_window_seconds)),
        type_context_ttl_seconds=float(dec.get("type_context_ttl_seconds", d.type_context_ttl_seconds)),
        throttle_seconds=float(dec.get("throttle_seconds", d.throttle_seconds)),
    )
