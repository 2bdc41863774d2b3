# Sync Settings
DEFAULT_SYNC_INTERVAL = 120  # Display poll interval (seconds)
CACHE_BUST_PARAM = "t"

# Promotion Rotation
PROMO_INITIAL_DELAY = 8.0  # Seconds after mount before the first promo
PROMO_CADENCE = 50.0  # Fixed rotation cadence (seconds)
PROMO_EXIT_GRACE = 0.8  # Exit animation time before the promo is cleared
PROMO_CADENCE_MODES = ("fixed", "frequency")

# New promotion defaults (admin editor)
PROMO_DEFAULT_FREQUENCY = 60
PROMO_DEFAULT_DURATION = 10

# Auto-Scroll
AUTO_SCROLL_START_DELAY = 5.0
AUTO_SCROLL_DOWN_STEP = 0.4  # px per frame
AUTO_SCROLL_UP_STEP = 5.0  # px per frame
AUTO_SCROLL_DWELL = 8.0  # Pause at top/bottom (seconds)
AUTO_SCROLL_FRAME_INTERVAL = 1 / 60

# Auth
TOKEN_EXPIRY_DAYS = 30
TOKEN_ALGORITHM = "HS256"
TOKEN_ROLE = "admin"

# Uploads
DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024  # 5 MB
ALLOWED_IMAGE_MIME_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}
UPLOAD_URL_PREFIX = "/uploads"

# Client-side image preparation
MAX_IMAGE_DIMENSION = 1280
OUTPUT_IMAGE_FORMAT = "JPEG"
OUTPUT_IMAGE_MIME_TYPE = "image/jpeg"
OUTPUT_IMAGE_QUALITY = 82

# AI Settings
AI_IMAGE_MODEL = "gemini-2.5-flash-image"
AI_TEXT_MODEL = "gemini-3-flash-preview"
AI_MAX_RETRIES = 3
AI_MAX_RETRY_WAIT = 60
AI_LOG_PREVIEW_LENGTH = 200
AI_DESCRIPTION_MAX_WORDS = 80
AI_DESCRIPTION_LANGUAGE = "Russian"

# Local cache keys
CACHE_KEY_DOCUMENT = "document"
CACHE_KEY_DRAFT = "draft"
CACHE_KEY_DRAFT_DIRTY = "draft_dirty"
CACHE_KEY_REMOTE_URL = "remote_url"
CACHE_KEY_TOKEN = "token"

# Supabase store
SUPABASE_MENU_TABLE = "menu_documents"
SUPABASE_MENU_ROW_ID = "current"

# Default Configuration Values
DEFAULT_PORT = 3000
DEFAULT_HOST = "0.0.0.0"
DEFAULT_DATA_PATH = "data/menu.json"
DEFAULT_UPLOADS_DIR = "uploads"
DEFAULT_CLIENT_CACHE_PATH = ".menuboard/cache.json"
DEFAULT_REMOTE_MENU_URL = "http://127.0.0.1:3000/api/menu"
DEFAULT_TIMEZONE = "Europe/Moscow"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FILE = "logs/menuboard.log"
DEFAULT_LOG_FORMAT = "text"  # text or json
DEFAULT_LOG_MAX_BYTES = 10 * 1024 * 1024  # 10MB
DEFAULT_LOG_BACKUP_COUNT = 5

# Display themes
THEMES = ("default", "new-year", "spring", "autumn")
THEME_LABELS = {
    "default": "🍽️ Стандарт",
    "new-year": "❄️ Новый год",
    "spring": "🌸 Весна",
    "autumn": "🍂 Осень",
}

BADGE_LABELS = {
    "new": "Новинка",
    "hit": "Хит",
    "spicy": "Острое",
    "vegan": "Веган",
}

CURRENCY_SYMBOL = "₽"
BOARD_TITLE = "Столовая"
SOLD_OUT_LABEL = "ЗАКОНЧИЛОСЬ"
BOARD_LINE_HEIGHT = 48  # px per rendered line on a headless display

# Seed content for a fresh installation
SEED_FOOTER_MESSAGE = (
    "Приятного аппетита! • Время работы: 08:00 – 20:00 • Наличный и безналичный расчет"
)
SEED_CATEGORIES = [
    {"id": "cat1", "name": "Первые блюда", "order": 1, "isVisible": True},
    {"id": "cat2", "name": "Вторые блюда", "order": 2, "isVisible": True},
    {"id": "cat3", "name": "Гарниры", "order": 3, "isVisible": True},
    {"id": "cat4", "name": "Напитки", "order": 4, "isVisible": True},
]
SEED_DISHES = [
    {
        "id": "d1",
        "name": "Борщ Украинский",
        "description": "Традиционный борщ со сметаной и пампушкой",
        "category": "cat1",
        "price": 180,
        "status": "AVAILABLE",
        "badge": "none",
        "order": 1,
        "imageUrl": "https://picsum.photos/seed/borsch/400/300",
    },
    {
        "id": "d2",
        "name": "Котлета По-Киевски",
        "description": "Сочная куриная грудка с маслом внутри",
        "category": "cat2",
        "price": 250,
        "discountPrice": 220,
        "status": "AVAILABLE",
        "badge": "hit",
        "order": 1,
        "imageUrl": "https://picsum.photos/seed/kiev/400/300",
    },
]
SEED_PROMOTIONS = [
    {
        "id": "p1",
        "title": "Счастливые часы!",
        "description": "С 16:00 до 18:00 скидка 20% на все меню",
        "animationStyle": "slide-up",
        "active": True,
        "frequency": 60,
        "duration": 10,
    }
]
