"""Settings. .env overrides some of these values."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Corpus
    corpus_path: str = "data/corpus.csv"

    # Embedding settings
    embedding_provider: str = "stub"  # "local", "openrouter" or "stub"
    embedding_model_local: str = "sentence-transformers/all-MiniLM-L6-v2"
    embedding_model_openrouter: str = "openai/text-embedding-3-small"
    embedding_dimension: int = 384

    # Cross-encoder settings
    cross_encoder_provider: str = "stub"  # "local", "llm" or "stub"
    cross_encoder_model_local: str = "cross-encoder/ms-marco-MiniLM-L-6-v2"

    # LLM via OpenRouter (remote embeddings + LLM relevance scoring)
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    llm_model: str = "google/gemini-2.5-flash"

    # Providers
    provider_timeout_s: float = 2.0
    strict_providers: bool = False

    # Lexical retrieval
    lexical_top_k: int = 50
    anchor_penalty: float = 0.8
    anchor_min_len: int = 3
    head_token_penalty: float = 0.9

    # Ranking
    top_k: int = 10
    min_score: float | None = None  # unset keeps every fused candidate
    confidence_method: str = "minmax"  # "minmax" or "softmax"
    confidence_temperature: float = 1.0
    intent_guard_enabled: bool = True
    enable_debug_info: bool = False

    # Resilience
    engine_timeout_ms: int = 2500
    fallback_enabled: bool = True

    # Shadow comparison
    shadow_sample_rate: float = 0.1
    shadow_min_jaccard: float = 0.7
    shadow_max_rank_difference: float = 2.0
    shadow_max_score_mae: float = 0.05
    shadow_top_differences: int = 5

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Paths
    eval_queries_path: str = "data/eval_queries.json"
    output_dir: str = "outputs"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
