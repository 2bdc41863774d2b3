from pydantic_settings import BaseSettings
from typing import List, Optional
from pydantic import Field, field_validator
from core import constants


class Settings(BaseSettings):
    # --- Auth ---
    ADMIN_PASSWORD: str = Field("", description="Password for the admin panel")
    JWT_SECRET: str = Field("", description="Secret used to sign session tokens")

    # --- AI ---
    GEMINI_API_KEY: str = Field("", description="Google Gemini API Key")
    GEMINI_API_BASE_URL: str = Field(
        "https://generativelanguage.googleapis.com", description="Gemini API base URL"
    )
    GEMINI_IMAGE_MODEL: str = Field(constants.AI_IMAGE_MODEL, description="Image model name")
    GEMINI_TEXT_MODEL: str = Field(constants.AI_TEXT_MODEL, description="Text model name")
    # "openai" routes AI calls through an OpenAI-compatible gateway
    AI_COMPAT: str = Field("", description="AI compatibility mode (''/openai)")
    OPENAI_BASE_URL: Optional[str] = Field(None, description="OpenAI-compatible base URL")

    # --- Server ---
    HOST: str = Field(constants.DEFAULT_HOST)
    PORT: int = Field(constants.DEFAULT_PORT)
    CORS_ORIGIN: str = Field("*", description="Allowed CORS origin(s), comma separated")
    MENU_STORE: str = Field("file", description="Menu store backend (file/supabase)")
    DATA_PATH: str = Field(constants.DEFAULT_DATA_PATH, description="Menu JSON file path")
    UPLOADS_DIR: str = Field(constants.DEFAULT_UPLOADS_DIR, description="Uploaded images dir")
    MAX_UPLOAD_BYTES: int = Field(constants.DEFAULT_MAX_UPLOAD_BYTES)

    # --- Supabase (optional store) ---
    SUPABASE_URL: Optional[str] = Field(None, description="Supabase Project URL")
    SUPABASE_KEY: Optional[str] = Field(None, description="Supabase Service Role Key")

    # --- Client (admin/display) ---
    REMOTE_MENU_URL: str = Field(
        constants.DEFAULT_REMOTE_MENU_URL, description="Menu endpoint used by clients"
    )
    CLIENT_CACHE_PATH: str = Field(
        constants.DEFAULT_CLIENT_CACHE_PATH, description="Local client cache file"
    )
    SYNC_INTERVAL: int = Field(constants.DEFAULT_SYNC_INTERVAL, description="Display poll interval")
    PROMO_CADENCE: float = Field(constants.PROMO_CADENCE, description="Promotion cadence (seconds)")
    PROMO_CADENCE_MODE: str = Field("fixed", description="fixed or frequency")
    VIEWPORT_HEIGHT: int = Field(1080, description="Headless display viewport height (px)")

    # --- Logging ---
    LOG_LEVEL: str = Field(constants.DEFAULT_LOG_LEVEL, description="Logging level")
    LOG_FILE: str = Field(constants.DEFAULT_LOG_FILE, description="Log file path")
    LOG_FORMAT: str = Field(constants.DEFAULT_LOG_FORMAT, description="Log format (text/json)")
    LOG_MAX_BYTES: int = Field(constants.DEFAULT_LOG_MAX_BYTES, description="Max log file size")
    LOG_BACKUP_COUNT: int = Field(constants.DEFAULT_LOG_BACKUP_COUNT, description="Log backup count")
    TIMEZONE: str = Field(constants.DEFAULT_TIMEZONE, description="Timezone for logs and clock")

    @field_validator("PROMO_CADENCE_MODE", mode="before")
    @classmethod
    def parse_cadence_mode(cls, v):
        if isinstance(v, str):
            v = v.strip().lower() or "fixed"
            if v not in constants.PROMO_CADENCE_MODES:
                raise ValueError(
                    f"PROMO_CADENCE_MODE must be one of {constants.PROMO_CADENCE_MODES}"
                )
        return v

    @field_validator("AI_COMPAT", "MENU_STORE", mode="before")
    @classmethod
    def normalize_lower(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @property
    def use_openai_compat(self) -> bool:
        return self.AI_COMPAT == "openai"

    @property
    def openai_base_url(self) -> str:
        if self.OPENAI_BASE_URL:
            return self.OPENAI_BASE_URL.rstrip("/")
        base = self.GEMINI_API_BASE_URL.rstrip("/")
        return base if base.endswith("/v1") else f"{base}/v1"

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGIN.split(",") if o.strip()] or ["*"]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"

    def validate_all(self) -> List[str]:
        """
        Validate all configuration settings.
        Returns a list of warning/error messages.
        """
        errors = []

        # Server side
        if not self.ADMIN_PASSWORD:
            errors.append("⚠️ ADMIN_PASSWORD is missing - admin login is disabled")
        if not self.JWT_SECRET:
            errors.append("⚠️ JWT_SECRET is missing - publishing and uploads are disabled")
        if self.MENU_STORE not in ("file", "supabase"):
            errors.append(f"❌ MENU_STORE must be 'file' or 'supabase' (got {self.MENU_STORE!r})")
        if self.MENU_STORE == "supabase" and not (self.SUPABASE_URL and self.SUPABASE_KEY):
            errors.append("❌ MENU_STORE=supabase requires SUPABASE_URL and SUPABASE_KEY")

        # Warnings
        if not self.GEMINI_API_KEY:
            errors.append("⚠️ GEMINI_API_KEY is missing - AI features will be disabled")
        if self.JWT_SECRET and len(self.JWT_SECRET) < 16:
            errors.append("⚠️ JWT_SECRET is shorter than 16 characters")
        if self.SUPABASE_URL and not self.SUPABASE_URL.startswith("https://"):
            errors.append("❌ SUPABASE_URL must start with https://")

        return errors


settings = Settings()
