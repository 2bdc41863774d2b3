import asyncio
import sys
from typing import Callable, List, Optional

from core.config import settings
from core.logger import get_logger
from core.scheduler import AsyncioScheduler, Scheduler
from models.menu import MenuDocument, Promotion
from services.auto_scroll import AutoScrollController, ScrollState, Viewport, VirtualViewport
from services.board_renderer import content_height, render_board
from services.promo_rotation import PromotionRotationEngine, RotationState
from services.sync_service import SyncClient

logger = get_logger(__name__)

RenderCallback = Callable[[List[str]], None]


def print_board(lines: List[str]) -> None:
    sys.stdout.write("\n".join(lines) + "\n\n")
    sys.stdout.flush()


class DisplayRuntime:
    """
    Unattended board: renders the cached menu instantly, then keeps it in
    step with the remote store while the promotion overlay and auto-scroll
    run on their own timers.
    """

    def __init__(
        self,
        sync: SyncClient,
        scheduler: Optional[Scheduler] = None,
        viewport: Optional[Viewport] = None,
        on_render: Optional[RenderCallback] = None,
        sync_interval: float = None,
        cadence_mode: str = None,
    ):
        self.sync = sync
        self.scheduler = scheduler or AsyncioScheduler()
        self.viewport = viewport or VirtualViewport(viewport_height=settings.VIEWPORT_HEIGHT)
        self.on_render = on_render or print_board
        self.sync_interval = sync_interval or settings.SYNC_INTERVAL

        self.rotation = PromotionRotationEngine(
            self.scheduler,
            cadence=settings.PROMO_CADENCE,
            mode=cadence_mode or settings.PROMO_CADENCE_MODE,
        )
        self.scroller = AutoScrollController(self.scheduler, self.viewport)
        self.running = False

        self.sync.add_listener(self.on_document)
        self.rotation.add_listener(self.on_rotation)

    @property
    def document(self) -> MenuDocument:
        return self.sync.current

    def render(self) -> List[str]:
        promo = self.rotation.current if self.rotation.state != RotationState.IDLE else None
        lines = render_board(self.document, promotion=promo)
        if isinstance(self.viewport, VirtualViewport):
            board = lines if promo is None else render_board(self.document)
            self.viewport.content_height = content_height(board)
        self.on_render(lines)
        return lines

    def on_document(self, document: MenuDocument) -> None:
        logger.info(f"[DISPLAY] Menu updated (lastUpdated={document.last_updated})")
        self.rotation.update_promotions(document.promotions)
        self.render()
        if self.running:
            self.scroller.reset()

    def on_rotation(self, state: RotationState, promo: Optional[Promotion]) -> None:
        # Overlay enter and exit are the only visible transitions
        if state in (RotationState.SHOWING, RotationState.IDLE):
            self.render()

    def start(self) -> None:
        """Starts the local state machines (no network)."""
        self.running = True
        self.render()
        self.rotation.start(self.document.promotions)
        self.scroller.start()

    async def run(self) -> None:
        """Runs until `stop()`: initial sync, then polling."""
        self.start()
        logger.info(
            f"[DISPLAY] Running: sync every {self.sync_interval}s, "
            f"promo mode={self.rotation.mode}, viewport={self.viewport.viewport_height}px"
        )
        try:
            await self.sync.run_polling(self.sync_interval)
        except asyncio.CancelledError:
            logger.info("[DISPLAY] Polling cancelled")
        finally:
            self.stop()

    def stop(self) -> None:
        if not self.running:
            return
        logger.info("[DISPLAY] Stopping")
        self.running = False
        self.sync.stop()
        self.rotation.stop()
        self.scroller.stop()

    @property
    def scroll_state(self) -> ScrollState:
        return self.scroller.state
