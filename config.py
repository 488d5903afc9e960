from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Gemini
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL_NAME: str = "gemini-2.0-flash"

    # Generation config (static, never taken from callers)
    GEN_TEMPERATURE: float = 0.7
    GEN_TOP_P: float = 0.9
    GEN_TOP_K: int = 40
    GEN_MAX_OUTPUT_TOKENS: int = 8192
    # Applied to every harm category on the chunked path
    SAFETY_THRESHOLD: str = "BLOCK_MEDIUM_AND_ABOVE"

    # Chunking: prompts longer than the threshold are split into fixed windows
    CHUNK_THRESHOLD_CHARS: int = 30000
    CHUNK_SIZE_CHARS: int = 25000

    # /test connectivity probe
    TEST_PROMPT: str = "Hello, are you working?"

    # Service descriptor for GET /
    SERVICE_NAME: str = "Proxima Gemini API Gateway"
    SERVICE_VERSION: str = "2.86.0"
    SERVICE_CREATOR: str = "Aayusha Shrestha"

    # HTTP
    CORS_ALLOWED_ORIGINS: List[str] = ["*"]
    MAX_BODY_BYTES: int = 10 * 1024 * 1024  # 10mb
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # Logging
    LOG_JSON: bool = False
    LOG_DIR: str = "logs"


settings = Settings()
