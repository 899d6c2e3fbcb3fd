"""
Runtime settings for the retrieval pipeline, loaded from the environment
"""
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from app.utils.exceptions import ConfigurationError

load_dotenv()


class LLMSettings(BaseModel):
    """LLM Configuration Settings"""
    model_name: str = Field(default="llama3.1:8b", description="LLM model name")
    base_url: str = Field(default="http://localhost:11434", description="Ollama base URL")
    temperature: float = Field(default=0.1, ge=0.0, le=2.0, description="Generation temperature")
    timeout: int = Field(default=120, ge=1, le=600, description="Request timeout in seconds")
    provider: str = Field(default="ollama", description="Model provider reported to callers")


class EmbeddingSettings(BaseModel):
    """Embedding Model Configuration"""
    model_name: str = Field(default="nomic-embed-text:latest", description="Embedding model name")
    base_url: str = Field(default="http://localhost:11434", description="Ollama base URL")
    timeout: int = Field(default=30, ge=1, le=300, description="Request timeout in seconds")


class HybridSearchConfig(BaseModel):
    """Weights for fusing vector and keyword scores; they need not sum to 1"""
    model_config = ConfigDict(frozen=True)

    vector_weight: float = Field(default=0.7, ge=0.0, description="Weight applied to vector similarity")
    keyword_weight: float = Field(default=0.3, ge=0.0, description="Weight applied to keyword score")


class RetrievalSettings(BaseModel):
    """Storage and pipeline configuration"""
    mongo_uri: str = Field(default="mongodb://localhost:27017", description="MongoDB connection string")
    db_name: str = Field(default="resume_db", description="Database holding the resume collection")
    collection_name: str = Field(default="resumes", description="Resume collection name")
    vector_index_name: str = Field(default="vector_index", description="Atlas vector search index")
    enable_llm_rerank: bool = Field(default=False, description="Pipe search results through the LLM reranker")
    conversation_max_turns: Optional[int] = Field(default=None, ge=2, description="Turns kept per conversation; unbounded when unset")

    hybrid: HybridSearchConfig = Field(default_factory=HybridSearchConfig)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def load_settings() -> RetrievalSettings:
    """Build settings from environment variables (and a .env file if present)"""
    base_url = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
    max_turns = os.getenv("CONVERSATION_MAX_TURNS")

    try:
        return _build_settings(base_url, max_turns)
    except ValueError as e:
        # also covers pydantic.ValidationError
        raise ConfigurationError(f"Invalid configuration: {e}", cause=e) from e


def _build_settings(base_url: str, max_turns: str) -> RetrievalSettings:
    return RetrievalSettings(
        mongo_uri=os.getenv("MONGO_DETAILS", "mongodb://localhost:27017"),
        db_name=os.getenv("DB_NAME", "resume_db"),
        collection_name=os.getenv("RESUME_COLLECTION", "resumes"),
        vector_index_name=os.getenv("VECTOR_INDEX_NAME", "vector_index"),
        enable_llm_rerank=_env_flag("ENABLE_LLM_RERANK"),
        conversation_max_turns=int(max_turns) if max_turns else None,
        hybrid=HybridSearchConfig(
            vector_weight=float(os.getenv("HYBRID_VECTOR_WEIGHT", "0.7")),
            keyword_weight=float(os.getenv("HYBRID_KEYWORD_WEIGHT", "0.3")),
        ),
        llm=LLMSettings(
            model_name=os.getenv("LLM_MODEL", "llama3.1:8b"),
            base_url=base_url,
            temperature=float(os.getenv("LLM_TEMPERATURE", "0.1")),
            timeout=int(os.getenv("LLM_TIMEOUT", "120")),
        ),
        embedding=EmbeddingSettings(
            model_name=os.getenv("EMBED_MODEL", "nomic-embed-text:latest"),
            base_url=base_url,
            timeout=int(os.getenv("EMBED_TIMEOUT", "30")),
        ),
    )
