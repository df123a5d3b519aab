"""Configuration management for the ingredient matcher."""

from typing import Literal

from pydantic import AliasChoices, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
    )

    # Redis configuration (product catalog and recipe cache)
    redis_url: str = "redis://localhost:6379/0"
    redis_socket_timeout_seconds: float = 10.0
    redis_connect_timeout_seconds: float = 5.0

    # Embedding configuration
    # Options: "bedrock" (Cohere embeddings on AWS Bedrock) or "st_local" (Sentence Transformers)
    embed_provider: Literal["bedrock", "st_local"] = "bedrock"
    # For bedrock: a Cohere embedding model ID (e.g., "cohere.embed-v4:0")
    # For st_local: sentence-transformers model name
    embed_model_name: str = "cohere.embed-v4:0"
    # Vector dimension must match the catalog index and the embedder output:
    # - For cohere.embed-v4:0: 1536 (requested via output_dimension)
    # - For st_local: check your model's dimension
    vector_dim: int = 1536
    embed_timeout_seconds: float = 30.0
    embed_connect_timeout_seconds: float = 5.0
    embedding_cache_size: int = 1000

    # AWS/Bedrock configuration
    aws_region: str = "eu-central-1"
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None

    # Matching configuration
    default_instruction: str = "Prioriter match på titel og derefter description."
    full_top_k: int = 3
    production_threshold: float = Field(
        default=0.95,
        validation_alias=AliasChoices("production_match_threshold", "production_threshold"),
    )

    # Recipe cache configuration
    recipe_cache_prefix: str = "im:recipe:"
    cache_ttl_months: int = 1

    # API configuration
    host: str = "0.0.0.0"
    port: int = 8080

    # Redis index configuration
    index_name: str = "im:products"
    key_prefix: str = "im:product:"
    ef_construction: int = 200
    m: int = 16

    @field_validator("production_threshold")
    @classmethod
    def _threshold_as_fraction(cls, value: float) -> float:
        # Accept "95" as well as "0.95"
        if value > 1.0:
            value = value / 100.0
        if not 0.0 <= value <= 1.0:
            raise ValueError("production threshold must be between 0 and 1 (or 0 and 100)")
        return value

    @field_validator("cache_ttl_months")
    @classmethod
    def _positive_ttl(cls, value: int) -> int:
        if value < 1:
            raise ValueError("cache_ttl_months must be at least 1")
        return value


# Global settings instance
settings = Settings()
