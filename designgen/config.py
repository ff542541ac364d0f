import os
from dataclasses import dataclass, field


def _env_bool(name: str, default: str) -> bool:
    return (os.getenv(name, default) or default).lower() in ("1", "true", "yes")


@dataclass
class Settings:
    # Language model
    openai_api_key: str | None = field(default_factory=lambda: os.getenv("OPENAI_API_KEY"))
    openai_model: str = field(default_factory=lambda: os.getenv("OPENAI_MODEL", "gpt-5.1"))
    openai_max_completion_tokens: int = field(
        default_factory=lambda: int(os.getenv("OPENAI_MAX_COMPLETION_TOKENS", "16000"))
    )

    # Image generation
    gemini_api_key: str | None = field(default_factory=lambda: os.getenv("GEMINI_API_KEY"))
    gemini_image_model: str = field(
        default_factory=lambda: os.getenv("GEMINI_IMAGE_MODEL", "gemini-2.5-flash-image")
    )
    image_max_retries: int = field(default_factory=lambda: int(os.getenv("IMAGE_MAX_RETRIES", "3")))

    # Asset storage
    storage_dir: str = field(default_factory=lambda: os.getenv("STORAGE_DIR", "var/assets"))
    public_base_url: str = field(
        default_factory=lambda: os.getenv("PUBLIC_BASE_URL", "http://localhost:8002")
    )

    # Logging and debugging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_json: bool = field(default_factory=lambda: _env_bool("LOG_JSON", "true"))
    debug_save_dir: str | None = field(default_factory=lambda: os.getenv("DEBUG_SAVE_DIR"))

    # Defaults for new sessions
    default_artboard_width: float = field(
        default_factory=lambda: float(os.getenv("DEFAULT_ARTBOARD_WIDTH", "700"))
    )
    default_artboard_height: float = field(
        default_factory=lambda: float(os.getenv("DEFAULT_ARTBOARD_HEIGHT", "1000"))
    )

    # Server
    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8002")))


_settings: Settings | None = None


def get_settings() -> Settings:
    """Settings are read once, after ``load_dotenv`` has run."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
