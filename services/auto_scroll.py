from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol, runtime_checkable

from core import constants
from core.logger import get_logger
from core.scheduler import Scheduler, TimerHandle

logger = get_logger(__name__)


@runtime_checkable
class Viewport(Protocol):
    """What the controller needs from the surface it scrolls."""

    @property
    def content_height(self) -> float:
        ...

    @property
    def viewport_height(self) -> float:
        ...

    @property
    def scroll_y(self) -> float:
        ...

    def scroll_to(self, y: float) -> None:
        ...


@dataclass
class VirtualViewport:
    """In-memory viewport for headless displays and tests."""

    content_height: float = 0.0
    viewport_height: float = 1080.0
    scroll_y: float = 0.0

    def scroll_to(self, y: float) -> None:
        self.scroll_y = y


class ScrollState(str, Enum):
    IDLE = "idle"
    WAITING = "waiting"
    SCROLLING_DOWN = "scrolling-down"
    PAUSED_AT_BOTTOM = "paused-at-bottom"
    SCROLLING_UP = "scrolling-up"
    PAUSED_AT_TOP = "paused-at-top"


class AutoScrollController:
    """
    Slowly scrolls a tall board down, pauses, returns quickly, pauses, repeats.

    Content that fits the viewport is pinned to the top and left idle until
    the next `reset()`.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        viewport: Viewport,
        start_delay: float = constants.AUTO_SCROLL_START_DELAY,
        down_step: float = constants.AUTO_SCROLL_DOWN_STEP,
        up_step: float = constants.AUTO_SCROLL_UP_STEP,
        dwell: float = constants.AUTO_SCROLL_DWELL,
        frame_interval: float = constants.AUTO_SCROLL_FRAME_INTERVAL,
    ):
        self.scheduler = scheduler
        self.viewport = viewport
        self.start_delay = start_delay
        self.down_step = down_step
        self.up_step = up_step
        self.dwell = dwell
        self.frame_interval = frame_interval

        self.state = ScrollState.IDLE
        self._handle: Optional[TimerHandle] = None

    @property
    def max_scroll(self) -> float:
        return max(0.0, self.viewport.content_height - self.viewport.viewport_height)

    @property
    def position(self) -> float:
        return self.viewport.scroll_y

    def _scroll_to(self, y: float) -> float:
        y = min(max(0.0, y), self.max_scroll)
        if y != self.viewport.scroll_y:
            self.viewport.scroll_to(y)
        return y

    def _cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def start(self) -> None:
        """Waits `start_delay` and then begins scrolling down."""
        self._cancel()
        self._scroll_to(self.position)
        self.state = ScrollState.WAITING
        self._handle = self.scheduler.call_later(self.start_delay, self._begin)

    def reset(self) -> None:
        """Content changed: cancel everything and wait again."""
        self.start()

    def stop(self) -> None:
        self._cancel()
        self.state = ScrollState.IDLE

    def _begin(self) -> None:
        self.state = ScrollState.SCROLLING_DOWN
        self._frame()

    def _resume(self, state: ScrollState) -> None:
        self.state = state
        self._frame()

    def _frame(self) -> None:
        self._handle = None
        if self.max_scroll <= 0:
            self._scroll_to(0.0)
            if self.state != ScrollState.IDLE:
                logger.debug("[SCROLL] Content fits the viewport; auto-scroll idle")
            self.state = ScrollState.IDLE
            return

        if self.state == ScrollState.SCROLLING_DOWN:
            y = self._scroll_to(self.position + self.down_step)
            if y >= self.max_scroll:
                self.state = ScrollState.PAUSED_AT_BOTTOM
                self._handle = self.scheduler.call_later(
                    self.dwell, lambda: self._resume(ScrollState.SCROLLING_UP)
                )
                return
        elif self.state == ScrollState.SCROLLING_UP:
            y = self._scroll_to(self.position - self.up_step)
            if y <= 0:
                self.state = ScrollState.PAUSED_AT_TOP
                self._handle = self.scheduler.call_later(
                    self.dwell, lambda: self._resume(ScrollState.SCROLLING_DOWN)
                )
                return
        else:
            return

        self._handle = self.scheduler.call_later(self.frame_interval, self._frame)
