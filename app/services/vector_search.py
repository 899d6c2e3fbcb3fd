import math
import time
from typing import List

from app.models.schemas import SearchMetadata, SearchResultItem
from app.utils.exceptions import SearchError
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

SNIPPET_LENGTH = 200


def normalize_vector_score(score: float) -> float:
    # Atlas cosine scores are nominally in [0, 1]; clamp anyway
    score = float(score)
    if math.isnan(score):
        return 0.0
    return max(0.0, min(1.0, score))


def head_snippet(content: str, max_length: int = SNIPPET_LENGTH) -> str:
    if not content:
        return ""
    snippet = content[:max_length].strip()
    return snippet + ("..." if len(content) > max_length else "")


class VectorSearchEngine:
    """Nearest-neighbour search through the resume vector store"""

    def __init__(self, vector_store):
        self.vector_store = vector_store

    async def search(self, query: str, top_k: int, metadata: SearchMetadata) -> List[SearchResultItem]:
        trace_id = metadata.trace_id
        logger.info(f"[{trace_id}] [Vector Search] Query: \"{query}\", TopK: {top_k}")
        start_time = time.time()

        try:
            pairs = await self.vector_store.search_with_scores(query, top_k)
        except Exception as e:
            logger.error(f"[{trace_id}] [Vector Search] Error: {e}")
            raise SearchError(
                f"Vector search failed: {e}",
                query=query,
                search_type="vector",
                cause=e,
            ) from e

        duration_ms = (time.time() - start_time) * 1000
        logger.info(f"[{trace_id}] [Vector Search] Found {len(pairs)} results in {duration_ms:.0f}ms")

        items = [
            SearchResultItem(
                file_name=record.file_name,
                email=record.email,
                phone_number=record.phone_number,
                snippet=head_snippet(record.full_content),
                score=normalize_vector_score(score),
                match_type="vector",
                full_content=record.full_content,
            )
            for record, score in pairs
        ]

        top = f"{items[0].score:.3f}" if items else "N/A"
        logger.info(f"[{trace_id}] [Vector Search] Top score: {top}")
        return items
