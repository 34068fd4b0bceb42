"""
Configuration settings for the job scheduler daemon.
"""
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Remote job server settings
    job_server_url: str = Field(
        default="http://localhost:1337/parse",
        description="Base URL of the job server; jobs are posted to <url>/jobs/<name>"
    )
    application_id: Optional[str] = Field(
        default=None,
        description="Application identifier sent with every job trigger"
    )
    master_key: Optional[str] = Field(
        default=None,
        description="Privileged key sent with every job trigger"
    )
    trigger_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds for a single job trigger request"
    )

    # Scheduler settings
    scheduler_db_path: str = Field(
        default="scheduler.db",
        description="SQLite file holding the schedule records"
    )

    # Application settings
    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    # API settings
    scheduler_host: str = Field(
        default="0.0.0.0",
        description="Scheduler HTTP server host"
    )
    scheduler_port: int = Field(
        default=8003,
        description="Scheduler HTTP server port"
    )

    class Config:
        env_file = ".env"
        case_sensitive = False


# Create global settings instance
settings = Settings()
