"""Central configuration via Pydantic Settings. All values driven by env vars."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # API Keys
    openai_api_key: str = ""
    google_api_key: str = ""

    # Embedding
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    embedding_batch_size: int = Field(default=100, ge=1, le=100)
    embedding_max_retries: int = 3
    embedding_backoff_base_s: float = 2.0
    embedding_cache_enabled: bool = True
    embedding_cache_db_path: str = "data/embedding_cache.db"

    # Indexing
    indexing_batch_size: int = 100
    indexing_batch_delay_s: float = 0.5
    chunking_strategy: Literal["single", "multi"] = "single"
    chunk_max_chars: int = 500
    chunk_overlap_chars: int = 50

    # Storage paths
    record_db_path: str = "data/records.db"
    faiss_index_path: str = "data/faiss_index"

    # Search
    search_top_k: int = 10
    search_result_cap: int = 10
    stock_priority_boost: float = 0.2
    partition_timeout_s: float = 5.0
    request_timeout_s: float = 20.0

    # Generation
    answer_generator: Literal["gemini", "extractive"] = "extractive"
    gemini_model: str = "gemini-2.0-flash"
    gemini_temperature: float = 0.1
    gemini_max_tokens: int = 2048

    # Quality gate
    rerank_regenerate_threshold: float = 0.6
    rerank_max_attempts: int = 2

    # Evaluation
    eval_pass_threshold: float = 0.6

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    model_config = {"env_file": ".env", "env_prefix": "MRAG_", "frozen": True}
