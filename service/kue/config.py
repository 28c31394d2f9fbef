from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Environment
    environment: str = "development"

    # Neo4j (graph store). Empty URI = in-memory store (local dev / tests)
    neo4j_uri: str = ""
    neo4j_username: str = "neo4j"
    neo4j_password: str = ""
    neo4j_database: str = "neo4j"
    graph_timeout_seconds: float = 10.0

    # Supabase (job tracking + auth)
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    supabase_jwt_secret: str = ""

    # OpenAI (natural-language query parsing)
    openai_api_key: str = ""
    query_parser_model: str = "gpt-4o-mini"

    # Anthropic (result summaries)
    anthropic_api_key: str = ""
    formatter_model: str = "claude-sonnet-4-20250514"

    # Bound on every LLM call before falling back to the rule-based path
    llm_timeout_seconds: float = 8.0

    # People Data Labs (enrichment)
    enrichment_api_key: str = ""
    enrichment_concurrency: int = 5

    # Deduplication
    placeholder_email_domain: str = "linkedin.placeholder"
    # 'exact' = case-insensitive exact match, 'normalized' = strip punctuation + legal suffixes
    company_match_mode: str = "exact"

    # Traversal
    intro_path_max_hops: int = 4
    # 'zero_fill' or 'exclude' for path edges that carry no strength
    path_strength_policy: str = "zero_fill"

    # Staleness
    stale_days: int = 90
    stale_max_score: float = 30.0
    stale_limit: int = 50
    maintenance_stale_max_score: float = 20.0
    maintenance_stale_limit: int = 100

    # Search
    search_result_limit: int = 50

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
