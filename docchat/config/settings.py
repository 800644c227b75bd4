from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel
import yaml
import os

class EmbeddingConfig(BaseModel):
    model_name: str = "BAAI/bge-large-en-v1.5"
    batch_size: int = 32
    vector_dim: int = 1024
    query_prefix: str = "Represent this sentence for searching relevant passages: "
    normalise: bool = True

class QdrantConfig(BaseModel):
    mode: str = "local"              # "local" | "memory" | "remote"
    local_path: str = "./data/qdrant_store"
    url: str = ""
    collection_name: str = "doc_passages"
    hnsw_m: int = 16
    hnsw_ef_construct: int = 100
    hnsw_ef: int = 64

class RetrievalConfig(BaseModel):
    top_k: int = 4
    history_limit: int = 6
    messages_page_size: int = 10

class LLMConfig(BaseModel):
    base_url: str = "https://openrouter.ai/api/v1"
    model: str = "google/gemini-flash-1.5"
    fallback_model: str = ""
    max_tokens: int = 8192
    temperature: float = 0.0
    timeout: float = 60.0
    max_retries: int = 3

class FetchConfig(BaseModel):
    timeout: float = 30.0
    max_bytes: int = 16 * 1024 * 1024

class StorageConfig(BaseModel):
    # Empty path keeps records in memory only
    documents_path: str = "./data/documents.json"
    messages_path: str = "./data/messages.json"

class ClientConfig(BaseModel):
    base_url: str = "http://localhost:8000"
    timeout: float = 60.0

class AppSettings(BaseSettings):
    embedding: EmbeddingConfig = EmbeddingConfig()
    qdrant: QdrantConfig = QdrantConfig()
    retrieval: RetrievalConfig = RetrievalConfig()
    llm: LLMConfig = LLMConfig()
    fetch: FetchConfig = FetchConfig()
    storage: StorageConfig = StorageConfig()
    client: ClientConfig = ClientConfig()
    openrouter_api_key: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

def load_settings(config_path: str = "docchat/config/config.yaml") -> AppSettings:
    """Loads settings from config.yaml and applies env overrides."""

    paths_to_try = [
        os.environ.get("DOCCHAT_CONFIG", ""),
        config_path,
        "config.yaml",
        os.path.join(os.path.dirname(__file__), "config.yaml")
    ]

    yaml_data = {}
    for path in paths_to_try:
        if path and os.path.exists(path):
            with open(path, "r", encoding="utf-8") as f:
                yaml_data = yaml.safe_load(f) or {}
            break

    return AppSettings(
        embedding=EmbeddingConfig(**yaml_data.get("embedding", {})),
        qdrant=QdrantConfig(**yaml_data.get("qdrant", {})),
        retrieval=RetrievalConfig(**yaml_data.get("retrieval", {})),
        llm=LLMConfig(**yaml_data.get("llm", {})),
        fetch=FetchConfig(**yaml_data.get("fetch", {})),
        storage=StorageConfig(**yaml_data.get("storage", {})),
        client=ClientConfig(**yaml_data.get("client", {}))
    )

# Global settings instance
settings = load_settings()
