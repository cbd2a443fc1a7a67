from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="BLOCKVIEW_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    read_timeout: float = 60.0          # seconds, probe + session connect/read
    max_retries: int = 2
    buffer_size: int = 4096
    client_name: str = "blockview"
    default_chunk_size: int = 32 * 1024


settings = Settings()
