# src/midicue/dispatch.py
from __future__ import annotations
import logging
from typing import Callable, Dict, Optional, Tuple

from .commands import Navigate
from .models import Presentation, SetlistItem
from .protocol import ActionVerb, ItemType
from .session import ControlSession, OutputKind

logger = logging.getLogger(__name__)


class Playback:
    """
    Output side of the control session (display, players, auto-advance timer).

    Every hook defaults to a logged no-op; an application overrides the ones
    it can drive.
    """

    def _noop(self, name: str, *args) -> None:
        logger.debug("playback.%s%r", name, args)

    def show(self, item: SetlistItem) -> None: self._noop("show", item.id)
    def go_to_slide(self, index: int) -> None: self._noop("go_to_slide", index)
    def blank(self) -> None: self._noop("blank")

    def resume_video(self) -> None: self._noop("resume_video")
    def pause_video(self) -> None: self._noop("pause_video")
    def stop_video(self) -> None: self._noop("stop_video")
    def set_video_loop(self, on: bool) -> None: self._noop("set_video_loop", on)
    def clear_image(self) -> None: self._noop("clear_image")

    def play_audio(self) -> None: self._noop("play_audio")
    def pause_audio(self) -> None: self._noop("pause_audio")
    def stop_audio(self) -> None: self._noop("stop_audio")

    def play_youtube(self) -> None: self._noop("play_youtube")
    def pause_youtube(self) -> None: self._noop("pause_youtube")
    def stop_youtube(self) -> None: self._noop("stop_youtube")

    def start_autoplay(self, presentation: Presentation) -> None: self._noop("start_autoplay", presentation.id)
    def stop_autoplay(self) -> None: self._noop("stop_autoplay")


def output_kind_for(item: SetlistItem) -> OutputKind:
    if item.type is ItemType.MEDIA:
        return {
            "video": OutputKind.VIDEO,
            "image": OutputKind.IMAGE,
            "audio": OutputKind.AUDIO,
        }.get((item.media_type or "").lower(), OutputKind.NONE)
    if item.type is ItemType.AUDIO_PLAYLIST:
        return OutputKind.AUDIO
    if item.type is ItemType.YOUTUBE:
        return OutputKind.YOUTUBE
    if item.type is ItemType.PRESENTATION and item.presentation is not None:
        return OutputKind.PRESENTATION
    return OutputKind.NONE


class ActionDispatcher:
    """
    Applies action verbs to whatever output is live.

    One table cell per (output kind, verb); a missing cell is a no-op, so
    ``pause`` on a still image simply does nothing.
    """

    def __init__(self, session: ControlSession, playback: Playback):
        self.session = session
        self.playback = playback
        self.presentation: Optional[Presentation] = None
        self.slide_count = 0
        self._table: Dict[Tuple[OutputKind, ActionVerb], Callable[[], None]] = {
            (OutputKind.VIDEO, ActionVerb.ACTIVATE): playback.resume_video,
            (OutputKind.VIDEO, ActionVerb.PAUSE): playback.pause_video,
            (OutputKind.VIDEO, ActionVerb.STOP): self._stop_video,
            (OutputKind.VIDEO, ActionVerb.LOOP_ON): lambda: self._set_video_loop(True),
            (OutputKind.VIDEO, ActionVerb.LOOP_OFF): lambda: self._set_video_loop(False),
            (OutputKind.IMAGE, ActionVerb.STOP): self._stop_image,
            (OutputKind.AUDIO, ActionVerb.ACTIVATE): playback.play_audio,
            (OutputKind.AUDIO, ActionVerb.PAUSE): playback.pause_audio,
            (OutputKind.AUDIO, ActionVerb.STOP): self._stop_audio,
            (OutputKind.YOUTUBE, ActionVerb.ACTIVATE): playback.play_youtube,
            (OutputKind.YOUTUBE, ActionVerb.PAUSE): playback.pause_youtube,
            (OutputKind.YOUTUBE, ActionVerb.STOP): self._stop_youtube,
            (OutputKind.PRESENTATION, ActionVerb.ACTIVATE): self._start_autoplay,
            (OutputKind.PRESENTATION, ActionVerb.LOOP_ON): self._start_autoplay,
            (OutputKind.PRESENTATION, ActionVerb.STOP): self._stop_presentation,
            (OutputKind.AUTOPLAY_PRESENTATION, ActionVerb.PAUSE): self._stop_autoplay,
            (OutputKind.AUTOPLAY_PRESENTATION, ActionVerb.LOOP_OFF): self._stop_autoplay,
            (OutputKind.AUTOPLAY_PRESENTATION, ActionVerb.STOP): self._stop_presentation,
        }

    @property
    def kind(self) -> OutputKind:
        return self.session.output_kind

    # --- verbs ---

    def dispatch(self, verb: ActionVerb) -> bool:
        """Runs the cell for the live output; False when the combination is a no-op."""
        verb = ActionVerb(verb)
        fn = self._table.get((self.kind, verb))
        if fn is None:
            logger.debug("%s ignored while output is %s", verb.value, self.kind.value)
            return False
        fn()
        return True

    def activate(self) -> bool: return self.dispatch(ActionVerb.ACTIVATE)
    def pause(self) -> bool: return self.dispatch(ActionVerb.PAUSE)
    def stop(self) -> bool: return self.dispatch(ActionVerb.STOP)
    def loop_on(self) -> bool: return self.dispatch(ActionVerb.LOOP_ON)
    def loop_off(self) -> bool: return self.dispatch(ActionVerb.LOOP_OFF)

    # --- content ---

    def show(self, item: SetlistItem) -> None:
        self._leave_current()
        self.presentation = item.presentation if item.type is ItemType.PRESENTATION else None
        if item.song is not None:
            self.slide_count = len(item.song.slides or [])
        elif self.presentation is not None:
            self.slide_count = len(self.presentation.slides)
        else:
            self.slide_count = 0
        self.session.slide_index = 0
        self.session.output_kind = output_kind_for(item)
        self.playback.show(item)

    def navigate(self, cmd: Navigate) -> None:
        target = cmd.index if cmd.index is not None else self.session.slide_index + cmd.delta
        if target < 0:
            return
        if self.slide_count and target >= self.slide_count:
            return
        self.session.slide_index = target
        self.playback.go_to_slide(target)

    def blank(self) -> None:
        """Clears the screen; background audio keeps playing."""
        kind = self.kind
        if kind is OutputKind.VIDEO:
            self.playback.stop_video()
        elif kind is OutputKind.IMAGE:
            self.playback.clear_image()
        elif kind is OutputKind.YOUTUBE:
            self.playback.stop_youtube()
        self._reset_loops()
        if kind is not OutputKind.AUDIO:
            self.session.output_kind = OutputKind.NONE
        self.playback.blank()

    # --- cells ---

    def _leave_current(self) -> None:
        # switching content ends loops and auto-advance of the previous item
        self._reset_loops()
        if self.kind is OutputKind.VIDEO:
            self.playback.stop_video()
        elif self.kind is OutputKind.YOUTUBE:
            self.playback.stop_youtube()

    def _reset_loops(self) -> None:
        if self.session.video_loop:
            self.session.video_loop = False
            self.playback.set_video_loop(False)
        if self.kind is OutputKind.AUTOPLAY_PRESENTATION:
            self.playback.stop_autoplay()
            self.session.output_kind = OutputKind.PRESENTATION

    def _set_video_loop(self, on: bool) -> None:
        self.session.video_loop = on
        self.playback.set_video_loop(on)

    def _stop_video(self) -> None:
        self._reset_loops()
        self.playback.stop_video()
        self.session.output_kind = OutputKind.NONE

    def _stop_image(self) -> None:
        self.playback.clear_image()
        self.session.output_kind = OutputKind.NONE

    def _stop_audio(self) -> None:
        self.playback.stop_audio()
        self.session.output_kind = OutputKind.NONE

    def _stop_youtube(self) -> None:
        self.playback.stop_youtube()
        self.session.output_kind = OutputKind.NONE

    def _start_autoplay(self) -> None:
        pres = self.presentation
        if pres is None or not pres.can_autoplay:
            logger.debug("presentation cannot auto-advance")
            return
        if self.session.video_loop:
            self._set_video_loop(False)
        self.playback.start_autoplay(pres)
        self.session.output_kind = OutputKind.AUTOPLAY_PRESENTATION

    def _stop_autoplay(self) -> None:
        self.playback.stop_autoplay()
        self.session.output_kind = OutputKind.PRESENTATION

    def _stop_presentation(self) -> None:
        self._reset_loops()
        self.playback.blank()
        self.session.output_kind = OutputKind.NONE
