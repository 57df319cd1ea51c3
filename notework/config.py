"""NoteWork configuration — loaded from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "NOTEWORK_", "env_file": ".env"}

    # LLM API keys
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    google_api_key: str = ""

    # Notion integration token
    notion_token: str = ""

    # Storage
    database_path: str = "notework.db"
    autosave_interval: float = 30.0  # seconds

    # Actions
    translate_language: str = "Korean"
    request_timeout: float = 120.0

    # Server
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000


settings = Settings()
