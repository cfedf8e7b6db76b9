"""Player lifecycle state machine that drives the progress tracker.

    idle --open--> loading --playing--> playing <--> paused
                                           |            |
                                           +--ended-->  ended --playing--> playing
    any --close--> destroyed

The sampling timer runs only while the session is in `playing`.  Entering
`playing` starts it and takes one sample straight away; leaving `playing`
stops it.  `close()` cancels the timer and destroys the widget, after which
no sample can fire and late player events are ignored.

If a progress write fails or the player reports a non-finite reading, the
session stops its own timer (one failure should not turn into an error
every few seconds), keeps the error on `session.error` and hands it to
`on_error`.  It does not retry.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Callable
from typing import Any, Protocol

from coursetrack.core.config import SETTINGS
from coursetrack.services.errors import ValidationError
from coursetrack.services.progress_tracker import ProgressWriteError

logger = logging.getLogger(__name__)


class PlayerState(enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"
    DESTROYED = "destroyed"


class PlaybackWidget(Protocol):
    """The embedded player.  Events come back through the session's
    handle_ready() / handle_state_change()."""

    def create(self, container: str, content_ref: str) -> None: ...
    def load_content(self, content_ref: str) -> None: ...
    def play(self) -> None: ...
    def get_position(self) -> float: ...
    def get_duration(self) -> float: ...
    def destroy(self) -> None: ...


class ProgressSink(Protocol):
    """Where samples go: ProgressTracker in-process, ProgressApiClient over HTTP."""

    async def record_sample(
        self, user_id: str, video_id: str, position: float, duration: float | None
    ) -> Any: ...

    async def record_ended(
        self, user_id: str, video_id: str, position: float = 0
    ) -> Any: ...


# Player event name -> state the session moves to
_EVENT_STATES = {
    "playing": PlayerState.PLAYING,
    "paused": PlayerState.PAUSED,
    "buffering": PlayerState.PAUSED,
    "ended": PlayerState.ENDED,
}


class PlaybackSession:
    def __init__(
        self,
        *,
        user_id: str,
        widget: PlaybackWidget,
        sink: ProgressSink,
        container: str = "player",
        interval: float | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ) -> None:
        self._user_id = user_id
        self._widget = widget
        self._sink = sink
        self._container = container
        self._interval = interval or SETTINGS.progress_sample_interval
        self._on_error = on_error
        self._state = PlayerState.IDLE
        self._video_id: str | None = None
        self._widget_created = False
        self._timer: asyncio.Task[None] | None = None
        self.error: Exception | None = None

    @property
    def state(self) -> PlayerState:
        return self._state

    @property
    def video_id(self) -> str | None:
        return self._video_id

    @property
    def sampling(self) -> bool:
        return self._timer is not None

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def open(self, video_id: str, player_ref: str | None = None) -> None:
        """Load a video, creating the widget on first use."""
        if self._state is PlayerState.DESTROYED:
            raise RuntimeError("playback session is closed")
        self._stop_timer()
        self._video_id = video_id
        self.error = None
        content_ref = player_ref or video_id
        if self._widget_created:
            self._widget.load_content(content_ref)
        else:
            self._widget.create(self._container, content_ref)
            self._widget_created = True
        self._state = PlayerState.LOADING
        logger.debug("Playback loading user=%s video=%s", self._user_id, video_id)

    def close(self) -> None:
        """Tear down: stop sampling and release the player."""
        if self._state is PlayerState.DESTROYED:
            return
        self._stop_timer()
        if self._widget_created:
            self._widget.destroy()
            self._widget_created = False
        self._state = PlayerState.DESTROYED
        self._video_id = None

    # ------------------------------------------------------------------
    # Player events
    # ------------------------------------------------------------------

    def handle_ready(self) -> None:
        if self._state is PlayerState.LOADING:
            self._widget.play()

    async def handle_state_change(self, event: str) -> None:
        new_state = _EVENT_STATES.get(event)
        if new_state is None:
            raise ValueError(f"unknown player state {event!r}")
        if self._state in (PlayerState.IDLE, PlayerState.DESTROYED):
            logger.debug(
                "Ignoring player event %s in state %s", event, self._state.value
            )
            return

        self._state = new_state
        if new_state is PlayerState.PLAYING:
            self._start_timer()
            await self._sample()
        elif new_state is PlayerState.PAUSED:
            self._stop_timer()
        else:
            self._stop_timer()
            await self._complete()

    # ------------------------------------------------------------------
    # Sampling
    # ------------------------------------------------------------------

    def _start_timer(self) -> None:
        self._stop_timer()
        self._timer = asyncio.create_task(self._run_timer())

    def _stop_timer(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None and timer is not asyncio.current_task():
            timer.cancel()

    async def _run_timer(self) -> None:
        while self._state is PlayerState.PLAYING:
            await asyncio.sleep(self._interval)
            if not await self._sample():
                return

    async def _sample(self) -> bool:
        if self._state is not PlayerState.PLAYING or self._video_id is None:
            return False
        try:
            await self._sink.record_sample(
                self._user_id,
                self._video_id,
                self._widget.get_position(),
                self._widget.get_duration(),
            )
        except (ProgressWriteError, ValidationError) as e:
            self._fail(e)
            return False
        return True

    async def _complete(self) -> None:
        if self._video_id is None:
            return
        try:
            await self._sink.record_ended(
                self._user_id, self._video_id, self._widget.get_position()
            )
        except (ProgressWriteError, ValidationError) as e:
            self._fail(e)

    def _fail(self, error: Exception) -> None:
        self._stop_timer()
        self.error = error
        logger.warning(
            "Progress tracking stopped user=%s video=%s: %s",
            self._user_id,
            self._video_id,
            error,
        )
        if self._on_error is not None:
            self._on_error(error)
