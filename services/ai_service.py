import google.generativeai as genai
from typing import Any, Callable, Dict, Optional
import aiohttp
import asyncio
import base64
import random
import re
from core import constants
from core.config import settings
from core.exceptions import (
    AINotConfiguredException,
    AIServiceException,
    APIQuotaExceededException,
    InvalidResponseException,
)
from core.logger import get_logger
from core.performance import get_performance_monitor
from core.utils import create_request_id, mask_key, truncate_text

logger = get_logger(__name__)


def _parse_retry_delay(err_str: str) -> float:
    """Reads 'retry in Xs' / 'retry_delay { seconds: N }' hints from a 429 error."""
    match = re.search(r"retry in (\d+(\.\d+)?)s", err_str)
    if match:
        return float(match.group(1))
    match = re.search(r"seconds:\s*(\d+)", err_str)
    if match:
        return float(match.group(1))
    return 0.0


class AIService:
    """
    Dish content generation backed by Gemini.

    Two capabilities: a food photo for a dish and an improved menu
    description. With AI_COMPAT=openai the same calls go through an
    OpenAI-compatible gateway (`/images/generations`, `/chat/completions`).
    """

    def __init__(self, image_store=None):
        self.image_store = image_store
        self.monitor = get_performance_monitor()
        self.image_model = None
        self.text_model = None

        if not settings.GEMINI_API_KEY:
            logger.warning("[AI] Gemini API Key missing. AI features disabled.")
            return

        if settings.use_openai_compat:
            logger.info(f"[AI] OpenAI-compatible mode enabled: baseUrl={settings.openai_base_url}")
        else:
            genai.configure(
                api_key=settings.GEMINI_API_KEY,
                client_options={
                    "api_endpoint": settings.GEMINI_API_BASE_URL.split("://", 1)[-1].rstrip("/")
                },
            )
            self.image_model = genai.GenerativeModel(settings.GEMINI_IMAGE_MODEL)
            self.text_model = genai.GenerativeModel(settings.GEMINI_TEXT_MODEL)
        logger.info(
            f"[AI] Client configured: baseUrl={settings.GEMINI_API_BASE_URL} "
            f"apiKey={mask_key(settings.GEMINI_API_KEY)}"
        )

    def is_enabled(self) -> bool:
        return bool(settings.GEMINI_API_KEY)

    def _require_enabled(self) -> None:
        if not self.is_enabled():
            raise AINotConfiguredException("ai_not_configured")

    # ------------------------------------------------------------------
    # Prompts
    # ------------------------------------------------------------------

    @staticmethod
    def image_prompt(name: str, description: str = "") -> str:
        return (
            f'Professional food photography of a dish called "{name}". '
            f"Description: {description or ''}. "
            "Studio lighting, high quality, appetizing, centered composition, blurred background."
        )

    @staticmethod
    def description_prompt(name: str, description: str = "") -> str:
        return " ".join(
            [
                f"Improve the following menu description in {constants.AI_DESCRIPTION_LANGUAGE}.",
                f"Keep it concise (max {constants.AI_DESCRIPTION_MAX_WORDS} words), appetizing, and neutral in tone.",
                f'Dish name: "{name}".',
                f'Current description: "{description or ""}".',
                "Return only the improved text.",
            ]
        )

    # ------------------------------------------------------------------
    # Gemini calls
    # ------------------------------------------------------------------

    async def _generate_with_retry(self, call: Callable[[], Any], label: str, request_id: str):
        """Runs a blocking SDK call in the executor, retrying on 429."""
        loop = asyncio.get_running_loop()
        max_retries = constants.AI_MAX_RETRIES

        for attempt in range(max_retries):
            try:
                return await loop.run_in_executor(None, call)
            except Exception as e:
                err_str = str(e)
                if "429" not in err_str:
                    raise

                wait_time = _parse_retry_delay(err_str)
                if wait_time == 0:
                    wait_time = (2 ** attempt) * 2 + random.uniform(0, 1)
                else:
                    wait_time += 1.0  # Add 1s buffer

                if wait_time > constants.AI_MAX_RETRY_WAIT:
                    logger.warning(
                        f"[ai:{label}:{request_id}] Rate limit requires {wait_time:.0f}s wait, "
                        f"capping at {constants.AI_MAX_RETRY_WAIT}s"
                    )
                    wait_time = constants.AI_MAX_RETRY_WAIT

                if attempt < max_retries - 1:
                    logger.warning(
                        f"[ai:{label}:{request_id}] Rate limit hit (attempt {attempt + 1}/{max_retries}). "
                        f"Retrying in {wait_time:.1f}s..."
                    )
                    await asyncio.sleep(wait_time)
                else:
                    raise APIQuotaExceededException(
                        "Rate limit - max retries reached", {"label": label}
                    ) from e

        raise AIServiceException("Max retries exceeded", {"label": label})

    @staticmethod
    def _extract_inline_image(response) -> Optional[Dict[str, Any]]:
        for candidate in getattr(response, "candidates", None) or []:
            content = getattr(candidate, "content", None)
            for part in getattr(content, "parts", None) or []:
                inline = getattr(part, "inline_data", None)
                if inline is not None and getattr(inline, "data", None):
                    data = inline.data
                    if isinstance(data, str):
                        data = base64.b64decode(data)
                    return {"data": data, "mime_type": inline.mime_type or "image/png"}
        return None

    async def generate_dish_image(self, name: str, description: str = "") -> str:
        """
        Generates a dish photo and stores it.

        Returns:
            `/uploads/...` URL, or a data URL when no image store is attached

        Raises:
            AINotConfiguredException, InvalidResponseException ("no_image"),
            ImageTooLargeError, AIServiceException
        """
        self._require_enabled()
        request_id = create_request_id()
        prompt = self.image_prompt(name, description)
        logger.info(
            f"[ai:image:{request_id}] request",
            context={
                "name": name,
                "model": settings.GEMINI_IMAGE_MODEL,
                "promptPreview": truncate_text(prompt, constants.AI_LOG_PREVIEW_LENGTH),
            },
        )

        with self.monitor.measure("ai.image", {"request_id": request_id}):
            if settings.use_openai_compat:
                image = await self._openai_image(prompt, request_id)
            else:
                try:
                    response = await self._generate_with_retry(
                        lambda: self.image_model.generate_content(prompt), "image", request_id
                    )
                except AIServiceException:
                    raise
                except Exception as e:
                    raise AIServiceException("ai_failed", {"error": str(e)}) from e
                image = self._extract_inline_image(response)

        if not image:
            logger.warning(f"[ai:image:{request_id}] no_image_in_response")
            raise InvalidResponseException("no_image")
        if image.get("url"):
            return image["url"]

        data, mime_type = image["data"], image["mime_type"]
        if not data:
            raise InvalidResponseException("no_image", {"reason": "empty_image_buffer"})
        if self.image_store is None:
            return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"
        return self.image_store.save_bytes(data, mime_type)

    async def improve_description(self, name: str, description: str = "") -> str:
        """Returns the rewritten description text (may be empty if the model returned nothing)."""
        self._require_enabled()
        request_id = create_request_id()
        prompt = self.description_prompt(name, description)
        logger.info(
            f"[ai:description:{request_id}] request",
            context={
                "name": name,
                "model": settings.GEMINI_TEXT_MODEL,
                "descriptionPreview": truncate_text(description, constants.AI_LOG_PREVIEW_LENGTH),
            },
        )

        with self.monitor.measure("ai.description", {"request_id": request_id}):
            if settings.use_openai_compat:
                text = await self._openai_chat(prompt, request_id)
            else:
                try:
                    response = await self._generate_with_retry(
                        lambda: self.text_model.generate_content(prompt), "description", request_id
                    )
                    text = (response.text or "").strip()
                except AIServiceException:
                    raise
                except Exception as e:
                    raise AIServiceException("ai_failed", {"error": str(e)}) from e

        logger.info(
            f"[ai:description:{request_id}] response",
            context={"textLength": len(text), "textPreview": truncate_text(text, constants.AI_LOG_PREVIEW_LENGTH)},
        )
        return text

    # ------------------------------------------------------------------
    # OpenAI-compatible gateway
    # ------------------------------------------------------------------

    async def _openai_request(self, path: str, body: Dict[str, Any], label: str, request_id: str) -> Dict[str, Any]:
        url = f"{settings.openai_base_url}/{path.lstrip('/')}"
        headers = {"Authorization": f"Bearer {settings.GEMINI_API_KEY}"}
        timeout = aiohttp.ClientTimeout(total=120)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(url, json=body, headers=headers) as resp:
                    payload = await resp.json(content_type=None)
                    if resp.status == 429:
                        raise APIQuotaExceededException("Rate limit", {"label": label})
                    if resp.status >= 400:
                        raise AIServiceException(
                            "openai_request_failed",
                            {"status": resp.status, "label": label, "url": url},
                        )
                    if not isinstance(payload, dict):
                        raise AIServiceException(
                            "ai_failed", {"label": label, "reason": "non_object_response"}
                        )
                    return payload
        except AIServiceException:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"[ai:{label}:{request_id}] error: {e}")
            raise AIServiceException("ai_failed", {"error": str(e)}) from e

    async def _openai_image(self, prompt: str, request_id: str) -> Optional[Dict[str, Any]]:
        response = await self._openai_request(
            "images/generations",
            {
                "model": settings.GEMINI_IMAGE_MODEL,
                "prompt": prompt,
                "n": 1,
                "response_format": "b64_json",
            },
            "image",
            request_id,
        )
        data = response.get("data") if isinstance(response.get("data"), list) else []
        first = data[0] if data and isinstance(data[0], dict) else {}
        b64 = (
            first.get("b64_json")
            or first.get("b64")
            or first.get("base64")
            or first.get("image")
            or first.get("image_base64")
        )
        if b64:
            return {"data": base64.b64decode(b64), "mime_type": "image/png"}
        if first.get("url"):
            return {"url": first["url"]}
        return None

    async def _openai_chat(self, prompt: str, request_id: str) -> str:
        response = await self._openai_request(
            "chat/completions",
            {
                "model": settings.GEMINI_TEXT_MODEL,
                "messages": [{"role": "user", "content": prompt}],
            },
            "description",
            request_id,
        )
        choices = response.get("choices")
        first = choices[0] if isinstance(choices, list) and choices and isinstance(choices[0], dict) else {}
        message = (first.get("message") or {}).get("content") or first.get("text") or ""
        return message.strip()
