from typing import Callable, List, Tuple

from fastapi.concurrency import run_in_threadpool

from app.models.schemas import ResumeRecord
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

# Atlas scans this many candidates per requested neighbour
VECTOR_NUM_CANDIDATES_FACTOR = 10


class ResumeVectorStore:
    """Semantic lookup over the resume collection using Atlas ``$vectorSearch``.

    ``embed`` turns text into a vector (blocking; run in the threadpool).
    Documents carry their vector under ``embedding_key`` and their text
    under ``fullContent``.
    """

    def __init__(
        self,
        collection,
        embed: Callable[[str], List[float]],
        index_name: str = "vector_index",
        embedding_key: str = "embedding",
    ):
        self.collection = collection
        self.embed = embed
        self.index_name = index_name
        self.embedding_key = embedding_key

    async def embed_query(self, query: str) -> List[float]:
        return await run_in_threadpool(self.embed, query)

    async def search_with_scores(self, query: str, k: int) -> List[Tuple[ResumeRecord, float]]:
        vector = await self.embed_query(query)
        pipeline = [
            {
                "$vectorSearch": {
                    "index": self.index_name,
                    "path": self.embedding_key,
                    "queryVector": vector,
                    "numCandidates": k * VECTOR_NUM_CANDIDATES_FACTOR,
                    "limit": k,
                }
            },
            {"$project": {self.embedding_key: 0, "score": {"$meta": "vectorSearchScore"}}},
        ]
        docs = await self.collection.aggregate(pipeline).to_list(length=k)
        logger.debug(f"Vector index {self.index_name} returned {len(docs)} documents")

        results = []
        for doc in docs:
            score = float(doc.pop("score", 0.0))
            doc.pop("_id", None)
            results.append((ResumeRecord.from_document(doc), score))
        return results
