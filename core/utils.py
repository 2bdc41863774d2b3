"""
Core utility functions shared by the server and the clients.
"""
import re
import random
import string
import time
from datetime import datetime
from typing import Optional, Tuple

import pytz

from core.config import settings
from core import constants

# Venue timezone
LOCAL_TZ = pytz.timezone(settings.TIMEZONE)

_DATA_URL_RE = re.compile(r"^data:(image/[a-zA-Z0-9.+-]+);base64,(.+)$", re.DOTALL)
_ID_ALPHABET = string.ascii_lowercase + string.digits


def now_ms() -> int:
    """Current time as integer epoch milliseconds (the document clock)."""
    return int(time.time() * 1000)


def next_timestamp(previous: Optional[int]) -> int:
    """
    Returns a `lastUpdated` value strictly greater than `previous`.

    Wall-clock time is preferred; when the clock has not moved (or went
    backwards) the previous value is bumped by one millisecond.
    """
    stamp = now_ms()
    if previous is not None and stamp <= previous:
        return previous + 1
    return stamp


def get_now() -> datetime:
    """Current datetime in the venue timezone."""
    return datetime.now(LOCAL_TZ)


def greeting_for(hour: int) -> str:
    """Header greeting shown on the board for the given local hour."""
    if hour < 12:
        return "Доброе утро"
    if hour < 17:
        return "Приятного обеда"
    return "Добрый вечер"


def generate_id(length: int = 9) -> str:
    """Random base-36 id for new dishes/categories/promotions."""
    return "".join(random.choice(_ID_ALPHABET) for _ in range(length))


def create_request_id() -> str:
    """Short id used to correlate AI request/response log lines."""
    base36 = ""
    n = now_ms()
    while n:
        n, r = divmod(n, 36)
        base36 = _ID_ALPHABET[r] + base36
    return f"{base36}-{generate_id(6)}"


def mask_key(key: str) -> str:
    """Masks an API key for startup logs."""
    if not key:
        return ""
    visible = 2 if len(key) <= 8 else 4
    return f"{key[:visible]}...{key[-visible:]}"


def truncate_text(text: Optional[str], max_length: int, suffix: str = "...") -> str:
    """
    Truncate text to max length with suffix.

    Args:
        text: Text to truncate (None is treated as empty)
        max_length: Maximum number of characters kept before the suffix
        suffix: Suffix to append when truncating

    Returns:
        Truncated text
    """
    if not text:
        return ""
    text = str(text)
    if len(text) <= max_length:
        return text
    return text[:max_length] + suffix


def parse_data_url(data_url) -> Optional[Tuple[str, str]]:
    """
    Splits a `data:image/...;base64,...` URL.

    Returns:
        (mime_type, base64_payload) or None when the value is not an image data URL
    """
    if not isinstance(data_url, str):
        return None
    match = _DATA_URL_RE.match(data_url)
    if not match:
        return None
    return match.group(1), match.group(2)


def mime_to_extension(mime_type: str) -> Optional[str]:
    return constants.ALLOWED_IMAGE_MIME_TYPES.get(mime_type)


def with_cache_buster(url: str, stamp: Optional[int] = None) -> str:
    """Appends `t=<ms>` so intermediate caches never serve a stale menu."""
    stamp = now_ms() if stamp is None else stamp
    sep = "&" if "?" in url else "?"
    return f"{url}{sep}{constants.CACHE_BUST_PARAM}={stamp}"
