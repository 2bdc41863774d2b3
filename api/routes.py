from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from api.schemas import (
    AIRequest,
    DescriptionResponse,
    HealthResponse,
    ImageUrlResponse,
    LoginRequest,
    LoginResponse,
    UploadRequest,
)
from core.exceptions import (
    AINotConfiguredException,
    AIServiceException,
    AuthorizationError,
    EmptyImageError,
    ImageProcessingException,
    ImageTooLargeError,
    InvalidCredentialsError,
    InvalidDataUrlError,
    InvalidResponseException,
    MissingConfigException,
    StorageException,
    UnsupportedImageTypeError,
)
from core.logger import get_logger
from models.menu import MenuDocument, is_menu_shape
from services.auth_service import extract_bearer

logger = get_logger(__name__)
router = APIRouter()


# -------------------------
# Dependencies via app.state
# -------------------------
def _from_state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise RuntimeError(f"{name} not initialized. Check app startup wiring.")
    return value


def get_menu_repository(request: Request):
    return _from_state(request, "menu_repository")


def get_auth_service(request: Request):
    return _from_state(request, "auth_service")


def get_image_store(request: Request):
    return _from_state(request, "image_store")


def get_ai_service(request: Request):
    return _from_state(request, "ai_service")


def require_admin(request: Request, auth=Depends(get_auth_service)) -> Dict[str, Any]:
    token = extract_bearer(request.headers.get("Authorization"))
    try:
        return auth.verify(token)
    except MissingConfigException:
        raise HTTPException(status_code=500, detail="server_not_configured")
    except AuthorizationError as e:
        raise HTTPException(status_code=401, detail=e.message)


# -------------------------
# /api/menu
# -------------------------
@router.get("/api/menu")
def read_menu(repo=Depends(get_menu_repository)) -> Any:
    try:
        document = repo.get()
    except StorageException as e:
        logger.error(f"[API] Menu read failed: {e}")
        raise HTTPException(status_code=500, detail="read_failed")
    if document is None:
        return Response(status_code=204)
    return document.to_wire()


@router.api_route("/api/menu", methods=["POST", "PUT"])
async def write_menu(
    request: Request,
    repo=Depends(get_menu_repository),
    _admin=Depends(require_admin),
) -> Any:
    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="invalid_payload")
    if not is_menu_shape(payload):
        raise HTTPException(status_code=400, detail="invalid_payload")
    try:
        document = MenuDocument.model_validate(payload)
    except ValidationError as e:
        logger.warning(f"[API] Rejected menu payload ({e.error_count()} errors)")
        raise HTTPException(status_code=400, detail="invalid_payload")

    try:
        saved = await run_in_threadpool(repo.put, document)
    except StorageException as e:
        logger.error(f"[API] Menu write failed: {e}")
        raise HTTPException(status_code=500, detail="write_failed")
    return saved.to_wire()


# -------------------------
# /api/login
# -------------------------
@router.post("/api/login", response_model=LoginResponse)
def login(req: LoginRequest, auth=Depends(get_auth_service)) -> Any:
    try:
        return LoginResponse(token=auth.login(req.password))
    except MissingConfigException:
        raise HTTPException(status_code=500, detail="server_not_configured")
    except InvalidCredentialsError:
        raise HTTPException(status_code=401, detail="invalid_password")


# -------------------------
# /api/uploads
# -------------------------
@router.post("/api/uploads", response_model=ImageUrlResponse)
def upload_image(
    req: UploadRequest,
    store=Depends(get_image_store),
    _admin=Depends(require_admin),
) -> Any:
    try:
        return ImageUrlResponse(image_url=store.save_data_url(req.data_url))
    except (InvalidDataUrlError, UnsupportedImageTypeError, EmptyImageError) as e:
        raise HTTPException(status_code=400, detail=e.message)
    except ImageTooLargeError:
        raise HTTPException(status_code=413, detail="image_too_large")
    except OSError as e:
        logger.error(f"[API] Upload failed: {e}")
        raise HTTPException(status_code=500, detail="upload_failed")


# -------------------------
# /api/ai/*
# -------------------------
def _checked_name(ai, req: AIRequest) -> str:
    if not ai.is_enabled():
        raise HTTPException(status_code=503, detail="ai_not_configured")
    name = (req.name or "").strip()
    if not name:
        raise HTTPException(status_code=400, detail="missing_name")
    return name


@router.post("/api/ai/image", response_model=ImageUrlResponse)
async def ai_image(req: AIRequest, ai=Depends(get_ai_service), _admin=Depends(require_admin)) -> Any:
    name = _checked_name(ai, req)
    try:
        return ImageUrlResponse(image_url=await ai.generate_dish_image(name, req.description or ""))
    except AINotConfiguredException:
        raise HTTPException(status_code=503, detail="ai_not_configured")
    except InvalidResponseException:
        raise HTTPException(status_code=502, detail="no_image")
    except ImageTooLargeError:
        raise HTTPException(status_code=413, detail="image_too_large")
    except (AIServiceException, ImageProcessingException, OSError) as e:
        logger.error(f"[API] AI image failed: {e}")
        raise HTTPException(status_code=500, detail="ai_failed")


@router.post("/api/ai/description", response_model=DescriptionResponse)
async def ai_description(req: AIRequest, ai=Depends(get_ai_service), _admin=Depends(require_admin)) -> Any:
    name = _checked_name(ai, req)
    try:
        text = await ai.improve_description(name, req.description or "")
    except AINotConfiguredException:
        raise HTTPException(status_code=503, detail="ai_not_configured")
    except AIServiceException as e:
        logger.error(f"[API] AI description failed: {e}")
        raise HTTPException(status_code=500, detail="ai_failed")
    return DescriptionResponse(description=text or req.description or "")


# -------------------------
# /health
# -------------------------
@router.get("/health", response_model=HealthResponse)
def health(request: Request, repo=Depends(get_menu_repository)) -> Any:
    ai = getattr(request.app.state, "ai_service", None)
    store_ok = repo.health_check()
    return HealthResponse(
        status="ok" if store_ok else "degraded",
        store=store_ok,
        ai=bool(ai and ai.is_enabled()),
    )
