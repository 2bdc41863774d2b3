"""
Promotion overlay rotation for the display.

One promotion at a time slides in over the board, stays for its `duration`,
slides out and is cleared. Triggers come from a cadence timer; a trigger
that lands while an overlay is still up is dropped.
"""
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from core import constants
from core.logger import get_logger
from core.scheduler import Scheduler, TimerHandle
from models.menu import Promotion

logger = get_logger(__name__)


class RotationState(str, Enum):
    IDLE = "idle"
    SHOWING = "showing"
    HIDING = "hiding"


RotationListener = Callable[[RotationState, Optional[Promotion]], None]


class PromotionRotationEngine:
    """
    State machine: idle -> showing(promo, index) -> hiding -> idle.

    Cadence modes:
        fixed:      the first trigger fires `initial_delay` after start, then
                    every `cadence` seconds counted from start.
        frequency:  the trigger after promotion P fires
                    max(P.frequency, P.duration + grace) after P appeared.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        cadence: float = constants.PROMO_CADENCE,
        initial_delay: float = constants.PROMO_INITIAL_DELAY,
        grace: float = constants.PROMO_EXIT_GRACE,
        mode: str = "fixed",
    ):
        if mode not in constants.PROMO_CADENCE_MODES:
            raise ValueError(f"Unknown cadence mode: {mode}")
        self.scheduler = scheduler
        self.cadence = cadence
        self.initial_delay = initial_delay
        self.grace = grace
        self.mode = mode

        self.state = RotationState.IDLE
        self.current: Optional[Promotion] = None
        self.index = 0

        self._promotions: List[Promotion] = []
        self._identity: Tuple[str, ...] = ()
        self._running = False
        self._epoch_start = 0.0
        self._ticks = 0
        self._next_handle: Optional[TimerHandle] = None
        self._tick_handle: Optional[TimerHandle] = None
        self._phase_handle: Optional[TimerHandle] = None
        self._listeners: List[RotationListener] = []

    @property
    def promotions(self) -> List[Promotion]:
        return list(self._promotions)

    def add_listener(self, listener: RotationListener) -> None:
        self._listeners.append(listener)

    def _emit(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self.state, self.current)
            except Exception as e:
                logger.error(f"[PROMO] Listener failed: {e}", exc_info=True)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, promotions: Optional[Sequence[Promotion]] = None) -> None:
        if promotions is not None:
            self._set_active(promotions)
        self._running = True
        self._rebuild_schedule()

    def stop(self) -> None:
        """Cancels every timer and clears the overlay."""
        self._running = False
        self._cancel_triggers()
        if self._phase_handle is not None:
            self._phase_handle.cancel()
            self._phase_handle = None
        was_visible = self.state != RotationState.IDLE
        self.state = RotationState.IDLE
        self.current = None
        if was_visible:
            self._emit()

    def update_promotions(self, promotions: Sequence[Promotion]) -> None:
        """
        Feeds a new document's promotions in.

        The timers are rebuilt only when the set of active ids changes;
        field edits just refresh the objects.
        """
        identity_changed = self._set_active(promotions)
        if identity_changed and self._running:
            logger.info(f"[PROMO] Active set changed ({len(self._promotions)} active); rescheduling")
            self._rebuild_schedule()

    def _set_active(self, promotions: Sequence[Promotion]) -> bool:
        active = [p for p in promotions if p.active]
        identity = tuple(p.id for p in active)
        changed = identity != self._identity

        self._promotions = active
        self._identity = identity
        self.index = self.index % len(active) if active else 0

        if self.current is not None:
            refreshed = next((p for p in active if p.id == self.current.id), None)
            if refreshed is not None:
                self.current = refreshed
            else:
                self._withdraw_current()
        return changed

    def _withdraw_current(self) -> None:
        """Drops an overlay whose promotion is no longer active."""
        logger.info(f"[PROMO] '{self.current.title}' deactivated while on screen; clearing")
        if self._phase_handle is not None:
            self._phase_handle.cancel()
            self._phase_handle = None
        self.current = None
        self.state = RotationState.IDLE
        self._emit()

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def _cancel_triggers(self) -> None:
        for handle in (self._next_handle, self._tick_handle):
            if handle is not None:
                handle.cancel()
        self._next_handle = None
        self._tick_handle = None

    def _rebuild_schedule(self) -> None:
        self._cancel_triggers()
        if not self._promotions:
            return
        self._epoch_start = self.scheduler.now()
        self._ticks = 0
        self._next_handle = self.scheduler.call_later(self.initial_delay, self.trigger)
        if self.mode == "fixed":
            self._schedule_next_tick()

    def _schedule_next_tick(self) -> None:
        self._ticks += 1
        due = self._epoch_start + self._ticks * self.cadence
        self._tick_handle = self.scheduler.call_later(due - self.scheduler.now(), self._on_tick)

    def _on_tick(self) -> None:
        self._schedule_next_tick()
        self.trigger()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def trigger(self) -> bool:
        """
        Shows the promotion at the current index.

        Returns:
            False when ignored (overlay busy, nothing active, or stopped)
        """
        if not self._running or not self._promotions:
            return False
        if self.state != RotationState.IDLE:
            logger.debug(f"[PROMO] Trigger ignored while {self.state.value}")
            return False

        self.index %= len(self._promotions)
        promo = self._promotions[self.index]
        self.current = promo
        self.state = RotationState.SHOWING
        logger.info(f"[PROMO] Showing '{promo.title}'", context={"index": self.index, "duration": promo.duration})
        self._emit()

        self._phase_handle = self.scheduler.call_later(promo.duration, self._begin_hide)
        return True

    def _begin_hide(self) -> None:
        self.state = RotationState.HIDING
        self._emit()
        self._phase_handle = self.scheduler.call_later(self.grace, self._clear)

    def _clear(self) -> None:
        shown = self.current
        self._phase_handle = None
        self.current = None
        self.state = RotationState.IDLE
        if self._promotions:
            self.index = (self.index + 1) % len(self._promotions)
        self._emit()

        if self.mode == "frequency" and self._running and shown is not None:
            elapsed = shown.duration + self.grace
            wait = max(shown.frequency, elapsed) - elapsed
            if self._next_handle is not None:
                self._next_handle.cancel()
            self._next_handle = self.scheduler.call_later(wait, self.trigger)
