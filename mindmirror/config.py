# backend configuration
# loads env vars for mongodb, gemini, cors and analysis policy

import os
from pathlib import Path
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# load .env from project root
load_dotenv(Path(__file__).parent.parent / ".env")


class Settings(BaseSettings):
    # server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "5000"))
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "production")

    # mongodb
    MONGODB_URI: str = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
    MONGODB_DATABASE: str = os.getenv("MONGODB_DATABASE", "mindmirror")
    # x.509 client certificate used to authenticate against the store
    MONGODB_CREDENTIALS_PATH: str = os.getenv("MONGODB_CREDENTIALS_PATH", "")

    # gemini
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
    GEMINI_TEMPERATURE: float = 0.4
    GEMINI_TIMEOUT_SECONDS: float = 60.0
    REQUIRE_GEMINI_API_KEY: bool = True

    # cors
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:5173")

    # reflection input
    AUDIO_SUPPORTED: bool = True
    MAX_AUDIO_BYTES: int = 10 * 1024 * 1024
    REFLECTION_MIN_LENGTH: int = 20

    # retry policy for rate-limited model calls
    RETRY_MAX_ATTEMPTS: int = 3
    RETRY_INITIAL_DELAY_MS: int = 2000

    # weekly analysis
    WEEKLY_MIN_REFLECTIONS: int = 3
    WEEKLY_LOOKBACK: int = 7

    model_config = {"env_file": ".env", "extra": "ignore"}

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"


settings = Settings()
