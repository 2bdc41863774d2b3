from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from api.routes import router
from core import constants
from core.config import settings
from core.interfaces import IAIService, IImageStore, IMenuRepository
from core.logger import get_logger
from repositories.menu_repo import create_menu_repository
from services.ai_service import AIService
from services.auth_service import AuthService
from services.image_service import ImageStore

logger = get_logger(__name__)


def create_app(
    repo: Optional[IMenuRepository] = None,
    auth: Optional[AuthService] = None,
    image_store: Optional[IImageStore] = None,
    ai: Optional[IAIService] = None,
) -> FastAPI:
    """
    Builds the backend app. Anything not passed in is created from settings.
    """
    app = FastAPI(title="Menu Board")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    image_store = image_store or ImageStore()
    app.state.menu_repository = repo or create_menu_repository(settings.MENU_STORE, settings.DATA_PATH)
    app.state.auth_service = auth or AuthService()
    app.state.image_store = image_store
    app.state.ai_service = ai or AIService(image_store=image_store)

    uploads_dir = Path(getattr(image_store, "uploads_dir", settings.UPLOADS_DIR))
    uploads_dir.mkdir(parents=True, exist_ok=True)
    app.mount(constants.UPLOAD_URL_PREFIX, StaticFiles(directory=str(uploads_dir)), name="uploads")

    app.include_router(router)
    logger.info(
        "[API] App created",
        context={"store": type(app.state.menu_repository).__name__, "uploads": str(uploads_dir)},
    )
    return app
