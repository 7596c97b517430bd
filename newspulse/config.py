from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    # System
    LOG_LEVEL: str = "INFO"
    DATA_DIR: Path = Path("./data")
    DISPLAY_TIMEZONE: str = "Asia/Kolkata"

    # Feed cache
    FEED_CACHE_TTL_SECONDS: int = 300  # 5 minutes for breaking news
    LOCAL_CACHE_PREFIX: str = "news_pulse_cache_"
    ARCHIVE_LIMIT: int = 20

    # Fetching
    FEED_FETCH_TIMEOUT: float = 6.0  # many feed URLs run concurrently
    CHANNEL_FETCH_TIMEOUT: float = 8.0  # one-shot channel scrape
    TELEGRAM_CHANNEL_URL: str = "https://t.me/s/azadstudioofficial"
    ASSET_LOGO_URL: str = "https://azadstudio.in/logo.png"
    HTTP_USER_AGENT: str = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0 Safari/537.36"

    # Normalization
    DESCRIPTION_MAX_CHARS: int = 200
    TITLE_MAX_CHARS: int = 80

    # Shared store (Supabase)
    SUPABASE_URL: str | None = None
    SUPABASE_KEY: str | None = None

    # LLM
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "llama3.1"
    LLM_MAX_ATTEMPTS: int = 2  # transport retries per generation request

    # Speech
    GEMINI_API_KEY: str | None = None
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    TTS_MODEL: str = "gemini-2.5-flash-preview-tts"
    TTS_VOICE: str = "Fenrir"
    AUDIO_MAX_CHARS: int = 4000
    SPEECH_TIMEOUT: float = 60.0

    # Telegram
    TELEGRAM_ENABLED: bool = False
    TELEGRAM_BOT_TOKEN: str | None = None
    TELEGRAM_USE_WEBHOOK: bool = False  # updates arrive via POST /api/bot instead of polling

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8001

    @property
    def supabase_configured(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_KEY)

    def ensure_dirs(self):
        self.DATA_DIR.mkdir(parents=True, exist_ok=True)

settings = Settings()
