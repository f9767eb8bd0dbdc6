# The module is to define the configuration settings for assistants-kit.

from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional

class Settings(BaseSettings):
    """
    The Settings class is used to define the configuration settings for the library.
    It inherits from BaseSettings, which allows it to load environment variables
    and provides type validation for the settings.
    Attributes:
        OPENAI_API_KEY (str): API key used when the library builds its own client.
        OPENAI_BASE_URL (str): Base URL for the assistants API.
        OPENAI_TIMEOUT (float): Per-request timeout in seconds.
        RUN_POLL_INTERVAL (float): Seconds to wait between two run status polls.
        RUN_TIMEOUT (float): Overall polling budget in seconds, unlimited when unset.
        ASSISTANT_LIST_LIMIT (int): Page size used when searching remote assistants by key.
        LOG_LEVEL (str): Level of the 'assistants-kit' logger.
    """
    # OpenAI client
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_BASE_URL: Optional[str] = None
    OPENAI_TIMEOUT: float = 60.0

    # Run polling
    RUN_POLL_INTERVAL: float = 1.0
    RUN_TIMEOUT: Optional[float] = None

    # Linking
    ASSISTANT_LIST_LIMIT: int = 100

    # Logging
    LOG_LEVEL: str = "INFO"


    class Config:
        env_file = ".env"
        env_file_encoding = 'utf-8'
        extra = "ignore"

# lru_cache to cache the settings instance.
@lru_cache
def get_settings():
    return Settings()
