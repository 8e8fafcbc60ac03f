"""Application settings loaded from environment variables via pydantic-settings.

Values are read from, in priority order:

  1. Environment variables, e.g. ``OPENAI_API_KEY=sk-abc123``
  2. A ``.env`` file in the working directory (local development)
  3. The defaults below

Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``.  Tunables that
are not secrets (chunk sizes, retry counts, top-k) live in
``config/config.yaml`` and are read through :func:`deckrag.config.load_config`.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """deckrag application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === LLM / embedding providers ===
    # Empty string = "not configured"; provider selection in main.py skips
    # providers with empty keys and falls through to the next.
    openai_api_key: str = ""
    # OpenAI-compatible endpoint, e.g.
    # https://generativelanguage.googleapis.com/v1beta/openai/ for Gemini.
    openai_base_url: str = ""
    openai_text_model: str = ""
    openai_embedding_model: str = ""
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-20250514"
    ollama_base_url: str = "http://localhost:11434"

    # === Storage ===
    database_path: str = "data/deckrag.db"
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_collection: str = "deckrag_chunks"
    vector_index_enabled: bool = True

    # === Uploads ===
    max_upload_bytes: int = 25 * 1024 * 1024

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    def get_available_llm_providers(self) -> list[str]:
        """Return the LLM provider names that have credentials or a URL configured."""
        providers: list[str] = []
        if self.anthropic_api_key:
            providers.append("anthropic")
        if self.openai_api_key:
            providers.append("openai")
        if self.ollama_base_url:
            providers.append("ollama")
        return providers
