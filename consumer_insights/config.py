from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Google Programmable Search
    google_search_api_key: str = ""
    google_search_engine_id: str = ""
    google_search_base_url: str = "https://www.googleapis.com/customsearch/v1"
    search_max_results: int = 10
    search_locale_gl: str = "kr"
    search_locale_hl: str = "ko"

    # OpenRouter (OpenAI-compatible gateway)
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    default_model: str = "google/gemini-2.5-flash"
    filter_model: str = ""  # optional override for relevance filtering
    analysis_model: str = ""  # optional override for per-document analysis
    summary_model: str = ""  # optional override for aggregate/premium summaries
    llm_temperature: float = 0.3
    llm_timeout_seconds: float = 60.0

    # Firecrawl
    firecrawl_api_key: str = ""
    firecrawl_base_url: str = "https://api.firecrawl.dev"

    # Supabase
    supabase_url: str = ""
    supabase_service_role_key: str = ""

    # Pipeline bounds
    http_timeout_seconds: float = 30.0
    batch_page_size: int = 10
    batch_delay_seconds: float = 2.0
    reanalysis_batch_size: int = 50
    analysis_prompt_chars: int = 4000
    stored_content_chars: int = 10000
    premium_max_analyses: int = 100
    premium_corpus_chars: int = 8000
    backfill_error_sample: int = 10
    review_insights_max_reviews: int = 100
    review_insights_prompt_reviews: int = 50

    # App
    cors_origins: str = "http://localhost:5173"
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_dir: str = "logs"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]

    def model_for(self, stage: str) -> str:
        """Resolve the model id for a pipeline stage, falling back to the default."""
        override = {
            "filter": self.filter_model,
            "analysis": self.analysis_model,
            "summary": self.summary_model,
        }.get(stage, "")
        return override.strip() or self.default_model


settings = Settings()
