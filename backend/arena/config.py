from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # OpenAI
    # Empty by default so the app and tests start without .env. The OpenAI client
    # refuses to construct without a key, so each debate checks it up front and
    # fails with ConfigurationError instead of starting.
    openai_api_key: str = ""

    # Persona chat model shared by Critic and Defender
    chat_model: str = "gpt-4o-mini"
    chat_temperature: float = 0.5

    # Embeddings for the in-memory knowledge base
    embedding_model: str = "text-embedding-3-small"

    # Debate pacing
    # The provider quota is per-minute, so every model call is followed by a fixed gap.
    # 6.5s keeps two personas under ~10 calls/minute including embedding traffic.
    turn_delay_seconds: float = 6.5
    # How often a pacing wait looks at the stop flag (cancellation latency upper bound)
    cancel_poll_interval_seconds: float = 0.25
    # Used when a start request carries no valid round count
    default_rounds: int = 3

    # Document preprocessing
    chunk_size: int = 1000
    chunk_overlap: int = 200

    # Retrieval
    retriever_top_k: int = 4
    # Embedding requests are sent in tiny batches with a gap to avoid burst traffic
    embedding_batch_size: int = 2
    embedding_batch_delay_seconds: float = 4.0

    # Max turns buffered between the debate loop and the WebSocket relay
    turn_channel_size: int = 16

    # Frontend origin for CORS
    client_origin: str = "http://localhost:5173"

    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env")


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
