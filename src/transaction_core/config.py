from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    database_url: str = "sqlite:///./transactions.db"
    database_echo: bool = False

    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"
    # Raw payloads of corrupted fields are cut to this many characters in logs
    log_payload_max_length: int = 500

    # Snapshot export settings
    export_excerpt_length: int = 1000


settings = Settings()
