"""Pydantic settings for the launch interceptor."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables."""

    model_config = {"env_prefix": "FIREJAIL_LAUNCHER_"}

    sandbox_binary: str = "firejail"
    store_backend: str = "memory"
    redis_url: str = "redis://localhost:6379/0"
    redis_key_prefix: str = "firejail:policy:"
    default_enabled: bool = True  # seeds a fresh memory store
    default_level: int = 0
    log_level: str = "INFO"
