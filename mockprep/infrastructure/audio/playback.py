"""
Gapless playback scheduling for streamed model audio.

Chunks arrive faster than they play. Each one is queued on the output
context's clock right after the previous one, so they play back-to-back.
An interruption throws all of it away at once.
"""
import logging
from typing import Callable, Optional, Set, Any

from .pcm import DecodedAudio

logger = logging.getLogger("playback")


class PlaybackScheduler:
    """
    Owns the playback cursor and the set of scheduled sources.

    The output context must provide:
      - ``current_time``: seconds on the context's playback clock
      - ``play(audio, start_time, on_ended) -> source``: schedule a buffer and
        call ``on_ended(source)`` on the event loop once it finishes naturally
      - ``source.stop()``: cut a scheduled or playing source immediately
    """

    def __init__(self, context, on_speaking_changed: Optional[Callable[[bool], None]] = None):
        self.context = context
        self.cursor = 0.0
        self._active: Set[Any] = set()
        self._on_speaking_changed = on_speaking_changed

    @property
    def is_speaking(self) -> bool:
        return bool(self._active)

    @property
    def active_count(self) -> int:
        return len(self._active)

    def schedule_chunk(self, audio: DecodedAudio) -> float:
        """
        Queue one decoded chunk directly after everything already queued.

        Args:
            audio: Decoded chunk to play

        Returns:
            The start time the chunk was scheduled at
        """
        start_time = max(self.context.current_time, self.cursor)
        source = self.context.play(audio, start_time, self._on_source_ended)
        self.cursor = start_time + audio.duration

        was_idle = not self._active
        self._active.add(source)
        if was_idle:
            self._notify(True)

        logger.debug(f"Scheduled {audio.duration:.3f}s chunk at {start_time:.3f}s, cursor now {self.cursor:.3f}s")
        return start_time

    def interrupt(self) -> None:
        """Stop every scheduled source now and reset the cursor to zero."""
        stopped = len(self._active)
        for source in list(self._active):
            try:
                source.stop()
            except Exception as e:
                logger.warning(f"Failed to stop playback source: {e}")
        self._active.clear()
        self.cursor = 0.0
        logger.info(f"Playback interrupted, dropped {stopped} source(s)")
        self._notify(False)

    def _on_source_ended(self, source) -> None:
        if source not in self._active:
            return
        self._active.discard(source)
        if not self._active:
            self._notify(False)

    def _notify(self, speaking: bool) -> None:
        if self._on_speaking_changed is None:
            return
        try:
            self._on_speaking_changed(speaking)
        except Exception as e:
            logger.error(f"Error in speaking-state handler: {e}")
