import time
import uuid
from enum import Enum
from typing import List, NamedTuple, Optional

from app.models.rerank import LLMAnalysis
from app.models.schemas import SearchMetadata, SearchResultItem
from app.models.settings import HybridSearchConfig
from app.services.hybrid_search import HybridSearchEngine, HybridWeights
from app.services.keyword_search import KeywordSearchEngine
from app.services.llm_reranker import LLMReranker
from app.services.vector_search import VectorSearchEngine
from app.utils.exceptions import NotInitializedError, ValidationError
from app.utils.logging_config import get_logger, PerformanceMonitor

logger = get_logger(__name__)

MAX_TOP_K = 100
# Reranking filters candidates out, so retrieve a larger pool first
RERANK_OVERFETCH_FACTOR = 3
RERANK_MIN_POOL = 10


class SearchType(str, Enum):
    KEYWORD = "keyword"
    VECTOR = "vector"
    HYBRID = "hybrid"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized == "pm25":  # legacy name for vector search
                return cls.VECTOR
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class SearchOutcome(NamedTuple):
    results: List[SearchResultItem]
    llm_analysis: Optional[LLMAnalysis] = None


def parse_search_type(value) -> SearchType:
    try:
        return SearchType(value)
    except ValueError:
        raise ValidationError(
            f"Unknown search type: {value}. Use one of: keyword, vector, hybrid",
            field="search_type",
            value=value,
        )


def rerank_pool_size(top_k: int) -> int:
    return min(MAX_TOP_K, max(top_k * RERANK_OVERFETCH_FACTOR, RERANK_MIN_POOL))


class RetrievalPipeline:
    """Dispatches searches to the keyword, vector or hybrid engine.

    Built empty at import time and wired by ``initialize`` once the Mongo
    collection and vector store exist; searching before that raises
    ``NotInitializedError``.
    """

    def __init__(self, weights: HybridWeights, reranker: LLMReranker = None, enable_rerank: bool = False):
        self.weights = weights
        self.reranker = reranker
        self.enable_rerank = enable_rerank and reranker is not None
        self.keyword_engine: Optional[KeywordSearchEngine] = None
        self.vector_engine: Optional[VectorSearchEngine] = None
        self.hybrid_engine: Optional[HybridSearchEngine] = None
        self._initialized = False

    def initialize(self, collection, vector_store) -> "RetrievalPipeline":
        self.keyword_engine = KeywordSearchEngine(collection)
        self.vector_engine = VectorSearchEngine(vector_store)
        self.hybrid_engine = HybridSearchEngine(self.keyword_engine, self.vector_engine, self.weights)
        self._initialized = True

        config = self.weights.get()
        logger.info("[Retrieval Pipeline] Initialized successfully")
        logger.info(
            f"[Retrieval Pipeline] Hybrid weights: vector={config.vector_weight}, "
            f"keyword={config.keyword_weight}, LLM rerank: {self.enable_rerank}"
        )
        return self

    def is_ready(self) -> bool:
        return self._initialized

    def _handler(self, search_type: SearchType):
        return {
            SearchType.KEYWORD: self.keyword_engine,
            SearchType.VECTOR: self.vector_engine,
            SearchType.HYBRID: self.hybrid_engine,
        }[search_type]

    async def search_with_analysis(
        self,
        query: str,
        search_type="hybrid",
        top_k: int = 5,
        trace_id: str = None,
    ) -> SearchOutcome:
        if not self._initialized:
            raise NotInitializedError(component="retrieval_pipeline")

        search_type = parse_search_type(search_type)
        if not query or not query.strip():
            raise ValidationError("Query must be a non-empty string", field="query", value=query)
        if not 1 <= top_k <= MAX_TOP_K:
            raise ValidationError(f"top_k must be between 1 and {MAX_TOP_K}", field="top_k", value=top_k)

        query = query.strip()
        trace_id = trace_id or str(uuid.uuid4())
        metadata = SearchMetadata(trace_id=trace_id, start_time=time.time(), search_type=search_type.value)
        logger.info(f"[{trace_id}] [Retrieval Pipeline] Executing {search_type.value} search")

        engine = self._handler(search_type)
        llm_analysis = None
        with PerformanceMonitor(f"[{trace_id}] {search_type.value} search", logger):
            if self.enable_rerank:
                candidates = await engine.search(query, rerank_pool_size(top_k), metadata)
                outcome = await self.reranker.rerank_and_filter(query, candidates, trace_id)
                results = outcome.results[:top_k]
                llm_analysis = outcome.llm_analysis
            else:
                results = await engine.search(query, top_k, metadata)

        duration_ms = (time.time() - metadata.start_time) * 1000
        logger.info(
            f"[{trace_id}] [Retrieval Pipeline] Search completed in {duration_ms:.0f}ms, "
            f"returned {len(results)} results"
        )
        return SearchOutcome(results=results, llm_analysis=llm_analysis)

    async def search(self, query: str, search_type="hybrid", top_k: int = 5, trace_id: str = None) -> List[SearchResultItem]:
        outcome = await self.search_with_analysis(query, search_type, top_k, trace_id)
        return outcome.results

    async def keyword_search(self, query: str, top_k: int, trace_id: str = None) -> List[SearchResultItem]:
        return await self.search(query, SearchType.KEYWORD, top_k, trace_id)

    async def vector_search(self, query: str, top_k: int, trace_id: str = None) -> List[SearchResultItem]:
        return await self.search(query, SearchType.VECTOR, top_k, trace_id)

    async def hybrid_search(self, query: str, top_k: int, trace_id: str = None) -> List[SearchResultItem]:
        return await self.search(query, SearchType.HYBRID, top_k, trace_id)

    def update_hybrid_weights(self, vector_weight: float, keyword_weight: float) -> HybridSearchConfig:
        return self.weights.update(vector_weight, keyword_weight)

    def get_hybrid_weights(self) -> HybridSearchConfig:
        return self.weights.get()
