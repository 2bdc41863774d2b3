import time

from supabase import Client, create_client

from .config import settings
from .exceptions import MissingConfigException
from .logger import get_logger

logger = get_logger(__name__)


class Database:
    """Process-wide Supabase client for the `supabase` menu store."""

    _instance: Client = None

    @classmethod
    def get_client(cls, max_retries: int = 3) -> Client:
        """
        Returns the shared client, connecting on first use.

        Raises:
            MissingConfigException: SUPABASE_URL/SUPABASE_KEY not set
            ConnectionError: every connection attempt failed
        """
        if cls._instance is not None:
            return cls._instance

        if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
            raise MissingConfigException(
                "Supabase store selected but SUPABASE_URL/SUPABASE_KEY are not set"
            )

        for attempt in range(1, max_retries + 1):
            try:
                cls._instance = create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
                logger.info(f"[STORE] Connected to Supabase (attempt {attempt}/{max_retries})")
                return cls._instance
            except Exception as e:
                if attempt == max_retries:
                    logger.critical("[STORE] Could not connect to Supabase")
                    raise ConnectionError(f"Could not connect to Supabase: {e}") from e
                wait_time = 2 ** attempt
                logger.warning(f"[STORE] Supabase connection failed ({e}), retrying in {wait_time}s")
                time.sleep(wait_time)

    @classmethod
    def reset(cls) -> None:
        cls._instance = None
