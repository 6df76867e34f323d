"""Configuration management using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Retrieval settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Retrieval budgets
    n_retrieve: int = Field(default=50, ge=1, description="Per-source retrieval cap")
    n_final: int = Field(default=20, ge=1, description="Maximum number of chunks returned")
    max_chunk_size: int = Field(
        default=500, ge=1, description="Maximum chunk size passed to the chunker"
    )

    # Reranking
    rerank_threshold_enabled: bool = Field(
        default=False, description="Discard candidates scoring below rerank_threshold"
    )
    rerank_threshold: float = Field(default=0.3, description="Minimum reranker score when gated")

    # Second fusion round
    expand_with_embeddings: bool = Field(
        default=False,
        description="Expand the top ranked chunks with vector lookups and rerank again",
    )
    n_results_to_expand: int = Field(
        default=5, ge=1, description="Number of top ranked chunks used as expansion queries"
    )
    n_embeddings_expand_to: int = Field(
        default=5, ge=1, description="Vector results fetched per expansion query"
    )

    # Deadline
    retrieval_timeout_ms: int | None = Field(
        default=None, gt=0, description="Default deadline for a pipeline run (None disables)"
    )

    # Recently edited files
    recent_edits_capacity: int = Field(
        default=100, ge=1, description="Number of recently edited files remembered"
    )

    # Qdrant
    qdrant_url: str = Field(default="http://localhost:6333", description="Qdrant server URL")
    qdrant_collection: str = Field(default="code_chunks", description="Qdrant collection name")
    qdrant_timeout: int = Field(default=30, description="Qdrant request timeout in seconds")
    qdrant_grpc_port: int | None = Field(default=None, description="Qdrant gRPC port (optional)")
    qdrant_prefer_grpc: bool = Field(
        default=False, description="Prefer gRPC over HTTP for better performance"
    )

    # Relevance model
    hf_api_token: str = Field(default="", description="Hugging Face API token")
    reranker_backend: str = Field(
        default="none", description="Relevance model backend: none or huggingface"
    )
    reranker_model: str = Field(
        default="BAAI/bge-reranker-v2-m3", description="Cross-encoder used for relevance scoring"
    )
    reranker_timeout: float = Field(
        default=30.0, description="Relevance model request timeout in seconds"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_json: bool = Field(default=True, description="Render logs as JSON")

    @field_validator("reranker_backend")
    @classmethod
    def validate_reranker_backend(cls, v: str, info) -> str:
        """Validate relevance model backend configuration.

        Ensures HF_API_TOKEN is provided when using the huggingface backend.
        """
        if v not in ["none", "huggingface"]:
            raise ValueError(f"Backend must be 'none' or 'huggingface', got '{v}'")

        if v == "huggingface":
            hf_token = info.data.get("hf_api_token", "")
            if not hf_token:
                raise ValueError(f"{info.field_name}=huggingface requires HF_API_TOKEN to be set")

        return v

    @property
    def retrieval_timeout_seconds(self) -> float | None:
        """Default run deadline in seconds, or None when disabled."""
        if self.retrieval_timeout_ms is None:
            return None
        return self.retrieval_timeout_ms / 1000.0


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()
