"""Application settings loaded from environment variables via pydantic-settings.

Values are read from two sources, in priority order:

  1. Environment variables, e.g. ``GOOGLE_AI_API_KEY=...``
  2. A ``.env`` file in the working directory (local development)

Field ``google_drive_folder_id`` maps to env var ``GOOGLE_DRIVE_FOLDER_ID``
and so on.  Defaults apply when neither source defines a value.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """driveRAG application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Google Drive ===
    # Either an OAuth access token or an API key (public folders only).
    google_drive_api_key: str = ""
    google_drive_access_token: str = ""
    google_drive_folder_id: str = ""
    google_drive_base_url: str = "https://www.googleapis.com/drive/v3"
    google_drive_page_size: int = 100
    google_drive_timeout: float = 60.0

    # === Embedding / Generation (OpenAI-compatible endpoint) ===
    google_ai_api_key: str = ""
    genai_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    # Comma-separated, tried in order.
    embedding_models: str = "text-embedding-004"
    embedding_dimension: int = 768
    embedding_query_prefix: str = ""
    embedding_document_prefix: str = ""
    generation_models: str = "gemini-2.0-flash-lite,gemini-2.0-flash"
    generation_temperature: float = 0.7
    generation_max_tokens: int = 2048
    generation_timeout: float = 60.0

    # === Vector Store ===
    # Empty host = embedded PersistentClient at chroma_persist_dir.
    chroma_host: str = ""
    chroma_port: int = 8000
    chroma_persist_dir: str = "./data/chromadb"
    vector_index_name: str = "ai-chatbot-embeddings"
    index_ready_timeout: float = 30.0

    # === Ingestion / Retrieval ===
    chunk_max_size: int = 1000
    chunk_overlap: int = 200
    embedding_delay_seconds: float = 0.1
    embedding_cache_size: int = 100
    embedding_cache_ttl: int = 3600
    embedding_cache_key_chars: int = 500
    retrieval_top_k: int = 5
    metadata_content_limit: int = 1000

    # === Chat ===
    chat_busy_message: str = (
        "The system is experiencing high demand right now. "
        "Please wait a moment and try again."
    )

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    def get_embedding_models(self) -> list[str]:
        """Return the ordered embedding model fallback list."""
        return _split_csv(self.embedding_models)

    def get_generation_models(self) -> list[str]:
        """Return the ordered generation model fallback list."""
        return _split_csv(self.generation_models)
