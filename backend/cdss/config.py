"""Engine configuration settings."""
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Engine settings."""

    APP_NAME: str = "Clinical Decision Support Engine"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Knowledge base
    KNOWLEDGE_BASE_VERSION: str = "2024.1"
    DISABLED_RULES: str = ""  # comma-separated rule ids

    # Module filter applied when the caller does not pass one
    DEFAULT_MODULE: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def disabled_rule_ids(self) -> List[str]:
        return [r.strip() for r in self.DISABLED_RULES.split(",") if r.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
