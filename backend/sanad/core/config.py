from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional

class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./sanad.db"

    # OpenAI (case agent, boarding pass OCR, document classification)
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_BASE_URL: Optional[str] = None
    OPENAI_LLM_MODEL: str = "gpt-4o"
    OPENAI_VISION_MODEL: str = "gpt-4o"
    AI_RESPONSE_LANGUAGE: str = "Arabic"

    # AeroDataBox flight status (RapidAPI). Without a key the mock provider is used.
    AERODATABOX_API_KEY: Optional[str] = None
    AERODATABOX_BASE_URL: str = "https://aerodatabox.p.rapidapi.com"

    # Upper bound for every call to an external capability
    EXTERNAL_CALL_TIMEOUT_SECONDS: float = 30.0

    # Compensation
    DEFAULT_SDR_TO_SAR: float = 5.1

    # Claim codes
    CLAIM_CODE_PREFIX: str = "SAN"
    CLAIM_CODE_MAX_ATTEMPTS: int = 5

    # Uploads
    UPLOAD_DIRECTORY: str = "./uploads"
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    # Staff access
    STAFF_API_KEYS: List[str] = []

    CORS_ORIGINS: List[str] = ["http://localhost:5173"]
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra='ignore', case_sensitive=False)

settings = Settings()
