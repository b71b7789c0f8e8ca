from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .services.probe import DEFAULT_PROBE_ARGS


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8')

    app_name: str = 'filebrowse'
    app_host: str = '::1'
    app_port: int = 8080
    root_dir: str = '.'
    log_level: str = 'info'
    cors_origins: str = ''
    upload_chunk_size: int = Field(default=64 * 1024, ge=4 * 1024, le=8 * 1024 * 1024)
    atomic_uploads: bool = False
    probe_command: str = 'ffprobe'
    probe_args: list[str] = Field(default_factory=lambda: list(DEFAULT_PROBE_ARGS))
    command_timeout_sec: int = Field(default=20, ge=2, le=300)


settings = Settings()
