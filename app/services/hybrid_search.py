import asyncio
import threading
import time
from typing import Dict, List

from app.models.schemas import SearchMetadata, SearchResultItem
from app.models.settings import HybridSearchConfig
from app.utils.exceptions import AIAgentBaseException, SearchError, ValidationError
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

# Each engine is asked for more than top_k so that documents ranked low by
# one engine can still surface after fusion
HYBRID_OVERFETCH_FACTOR = 2


class HybridWeights:
    """Process-wide holder for the fusion weights.

    The pair is an immutable snapshot replaced under a lock, so readers see
    either the old or the new pair, never a mix.
    """

    def __init__(self, config: HybridSearchConfig = None):
        self._lock = threading.Lock()
        self._config = config or HybridSearchConfig()

    def get(self) -> HybridSearchConfig:
        with self._lock:
            return self._config

    def update(self, vector_weight: float, keyword_weight: float) -> HybridSearchConfig:
        if vector_weight < 0 or keyword_weight < 0:
            raise ValidationError(
                "Hybrid weights must be non-negative",
                details={"vector_weight": vector_weight, "keyword_weight": keyword_weight},
            )
        new_config = HybridSearchConfig(vector_weight=vector_weight, keyword_weight=keyword_weight)
        with self._lock:
            self._config = new_config
        logger.info(f"Hybrid weights updated: vector={vector_weight}, keyword={keyword_weight}")
        return new_config


def _best_by_file(items: List[SearchResultItem]) -> Dict[str, SearchResultItem]:
    best: Dict[str, SearchResultItem] = {}
    for item in items:
        current = best.get(item.file_name)
        if current is None or item.score > current.score:
            best[item.file_name] = item
    return best


def fuse_results(
    keyword_results: List[SearchResultItem],
    vector_results: List[SearchResultItem],
    config: HybridSearchConfig,
) -> List[SearchResultItem]:
    """Weighted linear fusion keyed by file name; a missing engine scores 0."""
    keyword_by_file = _best_by_file(keyword_results)
    vector_by_file = _best_by_file(vector_results)

    fused = []
    for file_name in {**vector_by_file, **keyword_by_file}:
        kw = keyword_by_file.get(file_name)
        vec = vector_by_file.get(file_name)
        keyword_score = kw.score if kw else 0.0
        vector_score = vec.score if vec else 0.0
        score = vector_score * config.vector_weight + keyword_score * config.keyword_weight

        base = vec or kw
        fused.append(base.model_copy(update={
            # keyword snippets are centred on the match
            "snippet": kw.snippet if kw else vec.snippet,
            "score": max(0.0, min(1.0, score)),
            "match_type": "hybrid",
        }))

    fused.sort(key=lambda r: (-r.score, r.file_name))
    return fused


class HybridSearchEngine:
    """Runs keyword and vector search concurrently and fuses their scores"""

    def __init__(self, keyword_engine, vector_engine, weights: HybridWeights):
        self.keyword_engine = keyword_engine
        self.vector_engine = vector_engine
        self.weights = weights

    async def search(self, query: str, top_k: int, metadata: SearchMetadata) -> List[SearchResultItem]:
        trace_id = metadata.trace_id
        config = self.weights.get()
        fetch_k = top_k * HYBRID_OVERFETCH_FACTOR
        logger.info(
            f"[{trace_id}] [Hybrid Search] Query: \"{query}\", TopK: {top_k}, "
            f"weights vector={config.vector_weight} keyword={config.keyword_weight}"
        )
        start_time = time.time()

        tasks = [
            asyncio.create_task(self.keyword_engine.search(query, fetch_k, metadata)),
            asyncio.create_task(self.vector_engine.search(query, fetch_k, metadata)),
        ]
        try:
            keyword_results, vector_results = await asyncio.gather(*tasks)
        except BaseException as e:
            # gather leaves the sibling running when one search fails
            for task in tasks:
                if not task.done():
                    task.cancel()
            if not isinstance(e, AIAgentBaseException):
                raise
            logger.error(f"[{trace_id}] [Hybrid Search] Sub-search failed: {e.message}")
            raise SearchError(
                f"Hybrid search failed: {e.message}",
                query=query,
                search_type="hybrid",
                cause=e,
            ) from e

        fused = fuse_results(keyword_results, vector_results, config)[:top_k]

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"[{trace_id}] [Hybrid Search] keyword={len(keyword_results)} vector={len(vector_results)} "
            f"-> {len(fused)} fused results in {duration_ms:.0f}ms"
        )
        return fused

    def update_weights(self, vector_weight: float, keyword_weight: float) -> HybridSearchConfig:
        return self.weights.update(vector_weight, keyword_weight)

    def get_weights(self) -> HybridSearchConfig:
        return self.weights.get()
