# reporting engine configuration
# loads env vars for mongodb, gemini note generation, billing rate and export limits

import os
from pathlib import Path
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# load .env from project root
load_dotenv(Path(__file__).parent.parent.parent / ".env")


class Settings(BaseSettings):
    # mongodb record store
    MONGODB_URI: str = os.getenv("MONGODB_URI", "")
    MONGODB_DATABASE: str = os.getenv("MONGODB_DATABASE", "clinic_metrics_db")
    MONGODB_TIMEOUT_MS: int = 5000
    CREATE_INDEXES_ON_STARTUP: bool = True

    # gemini (for session note generation)
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
    NOTE_MAX_OUTPUT_TOKENS: int = 2000
    NOTE_TEMPERATURE: float = 0.3

    # billing: flat placeholder rate per completed session
    SESSION_RATE: float = float(os.getenv("SESSION_RATE", "150"))

    # authorizations ending within this many days after the range end count as expiring soon
    AUTHORIZATION_EXPIRY_WINDOW_DAYS: int = 30

    # csv export
    EXPORT_MAX_ROWS: int = 50000

    # cors
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:3000")

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
