"""RAG pipeline configuration via Pydantic settings."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # OpenAI
    openai_api_key: str = ""
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    llm_model: str = "gpt-4o-mini"
    llm_temperature: float = 0.7
    llm_max_tokens: int = 1000

    # Neo4j
    neo4j_uri: str = "bolt://localhost:7687"
    neo4j_user: str = "neo4j"
    neo4j_password: str = "neo4j"

    # Chunking
    chunk_size: int = 1000

    # Retrieval
    top_k_results: int = 5
    max_results_limit: int = 20

    # Ingestion
    prune_stale_chunks: bool = True
    ingestion_deadline_seconds: float | None = None
    source_limit: int = 100
    documents_dir: str = ""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
