"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Assistant configuration. All values come from environment variables.

    Build one instance at startup and pass it to ``create_app``; components
    receive the individual values they need.
    """

    # OpenAI (embeddings)
    openai_api_key: str = Field(default="")
    embedding_model: str = Field(default="text-embedding-ada-002")

    # Anthropic (completions)
    anthropic_api_key: str = Field(default="")
    chat_model: str = Field(default="claude-haiku-4-5-20251001")
    chat_max_tokens: int = Field(default=1024)
    request_timeout_seconds: float = Field(default=30.0)

    # Mem0
    mem0_api_key: str = Field(default="")
    memory_recall_limit: int = Field(default=5)

    # Document store (Postgres + pgvector)
    documents_database_url: str = Field(default="")
    documents_table: str = Field(default="documents_2")
    retrieval_top_k: int = Field(default=5)
    similarity_threshold: float = Field(default=0.7)
    db_pool_min_size: int = Field(default=1)
    db_pool_max_size: int = Field(default=10)

    # Interaction log
    database_path: Path = Field(default=Path("data/interactions.db"))

    # Turso (hosted libSQL): when set, overrides local database_path
    turso_database_url: str = Field(default="")
    turso_auth_token: str = Field(default="")

    # HTTP server
    http_host: str = Field(default="0.0.0.0")
    http_port: int = Field(default=8080)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    def missing_chat_credentials(self) -> list[str]:
        """Names of settings the chat endpoint cannot run without."""
        required = {
            "OPENAI_API_KEY": self.openai_api_key,
            "ANTHROPIC_API_KEY": self.anthropic_api_key,
            "DOCUMENTS_DATABASE_URL": self.documents_database_url,
        }
        return [name for name, value in required.items() if not value.strip()]
