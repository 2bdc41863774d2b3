import asyncio
import json
import signal
import sys

# 1. Setup Logging First (to capture config errors)
from core.logger import setup_logging, get_logger

setup_logging()
logger = get_logger(__name__)

# 2. Load Config
try:
    from core.config import settings
except Exception as e:
    logger.critical(f"Failed to load configuration: {e}", exc_info=True)
    sys.exit(1)

from core.exceptions import (
    AuthException,
    ConfigurationException,
    DocumentValidationError,
    MenuBoardException,
    NetworkException,
    PublishFailedError,
)
from core.performance import get_performance_monitor
from repositories.cache_repo import LocalCache
from services.api_client import MenuApiClient
from services.board_renderer import render_board
from services.display_service import DisplayRuntime, print_board
from services.publish_service import AdminSession
from services.sync_service import SyncClient, parse_document


def validate_startup(role: str) -> bool:
    """Logs configuration problems; returns False on any ❌."""
    logger.info("=" * 60)
    logger.info(f"Menu Board - {role}")
    logger.info("=" * 60)

    validation_errors = settings.validate_all()
    for msg in validation_errors:
        if "❌" in msg:
            logger.critical(msg)
        else:
            logger.warning(msg)

    if any("❌" in msg for msg in validation_errors):
        logger.critical("Configuration validation failed")
        return False

    logger.info("[OK] Startup validation passed")
    return True


class DisplayApp:
    """Long-running display process with signal-driven shutdown."""

    def __init__(self, remote_url: str, interval: int):
        self.cache = LocalCache(settings.CLIENT_CACHE_PATH)
        self.api = MenuApiClient()
        self.sync = SyncClient(self.api, self.cache, remote_url)
        self.runtime = DisplayRuntime(self.sync, sync_interval=interval)
        self._task = None

    async def start(self):
        try:
            loop = asyncio.get_running_loop()
            if sys.platform != "win32":
                for sig in (signal.SIGINT, signal.SIGTERM):
                    loop.add_signal_handler(sig, self.stop)
            else:
                signal.signal(signal.SIGINT, lambda s, f: self.stop())
                signal.signal(signal.SIGTERM, lambda s, f: self.stop())
        except Exception as e:
            logger.warning(f"Could not set up signal handlers: {e}")

        logger.info("Display started. Press Ctrl+C to stop.")
        self._task = asyncio.create_task(self.runtime.run())
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        finally:
            await self.api.close()
            get_performance_monitor().log_summary()
            logger.info("Display stopped cleanly")

    def stop(self):
        logger.info("Stopping display...")
        self.runtime.stop()
        if self._task is not None and not self._task.done():
            self._task.cancel()


# =============================================================================
# Subcommands
# =============================================================================


def cmd_serve(args) -> int:
    if not validate_startup("Backend API"):
        return 1

    import uvicorn
    from api.app import create_app

    app = create_app()
    uvicorn.run(app, host=args.host or settings.HOST, port=args.port or settings.PORT)
    return 0


def cmd_display(args) -> int:
    if not validate_startup("Display"):
        return 1
    app = DisplayApp(args.url or settings.REMOTE_MENU_URL, args.interval or settings.SYNC_INTERVAL)
    asyncio.run(app.start())
    return 0


async def _preview(url: str) -> None:
    api = MenuApiClient()
    try:
        sync = SyncClient(api, LocalCache(settings.CLIENT_CACHE_PATH), url)
        await sync.sync()
        print_board(render_board(sync.current))
    finally:
        await api.close()


def cmd_preview(args) -> int:
    asyncio.run(_preview(args.url or settings.REMOTE_MENU_URL))
    return 0


async def _admin_session(api: MenuApiClient, url: str) -> AdminSession:
    cache = LocalCache(settings.CLIENT_CACHE_PATH)
    session = AdminSession(cache, api, SyncClient(api, cache))
    if url and url != session.editor.remote_url:
        await session.editor.set_remote_url(url)
    else:
        await session.start()
    return session


async def _login(url: str, password: str) -> None:
    api = MenuApiClient()
    try:
        session = await _admin_session(api, url)
        await session.login(password)
        logger.info("Token stored in local cache")
    finally:
        await api.close()


def cmd_login(args) -> int:
    try:
        asyncio.run(_login(args.url or settings.REMOTE_MENU_URL, args.password))
    except (AuthException, NetworkException, ConfigurationException) as e:
        logger.error(f"Login failed: {e}")
        return 1
    return 0


async def _publish(url: str, path: str) -> None:
    api = MenuApiClient()
    try:
        session = await _admin_session(api, url)
        if path:
            with open(path, "r", encoding="utf-8") as f:
                document = parse_document(json.load(f))
            session.editor.load_document(document)
        saved = await session.publish()
        logger.info(f"Published menu (lastUpdated={saved.last_updated})")
    finally:
        await api.close()


def cmd_publish(args) -> int:
    try:
        asyncio.run(_publish(args.url or settings.REMOTE_MENU_URL, args.file))
    except ConfigurationException as e:
        logger.error(f"{e}. Pass --url or set REMOTE_MENU_URL.")
        return 1
    except AuthException as e:
        logger.error(f"{e}. Run `login` first.")
        return 1
    except (PublishFailedError, DocumentValidationError, OSError) as e:
        logger.error(f"Publish failed, draft kept: {e}")
        return 1
    return 0


async def _pull(url: str, output: str) -> None:
    api = MenuApiClient()
    try:
        session = await _admin_session(api, url)
        document = session.sync.current
        text = json.dumps(document.to_wire(), ensure_ascii=False, indent=2)
        if output:
            with open(output, "w", encoding="utf-8") as f:
                f.write(text)
            logger.info(f"Menu written to {output}")
        else:
            print(text)
        if session.editor.dirty:
            logger.warning("Local draft has unpublished changes; it was not overwritten")
    finally:
        await api.close()


def cmd_pull(args) -> int:
    asyncio.run(_pull(args.url or settings.REMOTE_MENU_URL, args.output))
    return 0


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Menu Board")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("serve", help="Run the backend API")
    p.add_argument("--host", type=str, help="Bind address")
    p.add_argument("--port", type=int, help="Bind port")
    p.set_defaults(func=cmd_serve)

    p = sub.add_parser("display", help="Run the unattended board")
    p.add_argument("--url", type=str, help="Menu endpoint (default REMOTE_MENU_URL)")
    p.add_argument("--interval", type=int, help="Sync interval in seconds")
    p.set_defaults(func=cmd_display)

    p = sub.add_parser("preview", help="Sync once and print the board")
    p.add_argument("--url", type=str, help="Menu endpoint")
    p.set_defaults(func=cmd_preview)

    p = sub.add_parser("login", help="Sign in as admin and store the session token")
    p.add_argument("--url", type=str, help="Menu endpoint")
    p.add_argument("--password", type=str, required=True)
    p.set_defaults(func=cmd_login)

    p = sub.add_parser("publish", help="Publish the local draft (or a JSON file)")
    p.add_argument("--url", type=str, help="Menu endpoint")
    p.add_argument("--file", type=str, help="Menu JSON to publish instead of the cached draft")
    p.set_defaults(func=cmd_publish)

    p = sub.add_parser("pull", help="Fetch the published menu")
    p.add_argument("--url", type=str, help="Menu endpoint")
    p.add_argument("--output", type=str, help="Write JSON here instead of stdout")
    p.set_defaults(func=cmd_pull)

    args = parser.parse_args()
    exit_code = 0
    try:
        exit_code = args.func(args)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except MenuBoardException as e:
        logger.critical(f"{type(e).__name__}: {e}")
        exit_code = 1
    except Exception as e:
        logger.critical(f"Fatal error: {e}", exc_info=True)
        exit_code = 1

    sys.exit(exit_code)
