"""
Configuration settings for the MegaChat backend.
Uses pydantic-settings for environment variable support.
"""

from pydantic_settings import BaseSettings
from typing import Optional
import os


class Settings(BaseSettings):
    """Application configuration settings."""

    # Application
    APP_NAME: str = "MegaChat"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Database
    # resolved relative to this config file (backend/megachat/config.py -> backend/megachat.db)
    _BASE_DIR: str = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    DATABASE_URL: str = f"sqlite+aiosqlite:///{os.path.join(_BASE_DIR, 'megachat.db')}"

    # Status progression (seconds)
    DELIVERY_DELAY: float = 1.5
    READ_DELAY: float = 3.0
    FORWARD_DELIVERY_DELAY: float = 1.0

    # Persistence
    SAVE_DEBOUNCE: float = 0.2

    # Responder (OpenAI-compatible chat completion API)
    RESPONDER_API_BASE: str = "https://api.openai.com/v1"
    RESPONDER_MODEL_ID: str = "gpt-4o-mini"
    RESPONDER_API_KEY: Optional[str] = None
    RESPONDER_TIMEOUT: float = 30.0
    RESPONDER_HISTORY_LIMIT: int = 10
    RESPONDER_SYSTEM_PROMPT: str = (
        "You are a helpful, witty, and concise AI assistant in a social chat "
        "application called 'Mega Chat'. Keep responses relatively short and conversational."
    )

    # Conversation seed and identities
    ASSISTANT_NAME: str = "Mega AI"
    ASSISTANT_AVATAR: str = "🤖"
    GREETING_TEXT: str = "Hey there! Welcome to Mega Chat."
    DEFAULT_USER_ID: str = "me"
    DEFAULT_USER_NAME: str = "You"
    DEFAULT_USER_AVATAR: str = "😎"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 6666

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
