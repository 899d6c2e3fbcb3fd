import re
import time
from typing import List

from app.models.schemas import ResumeRecord, SearchMetadata, SearchResultItem
from app.utils.exceptions import SearchError
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

# Fetch extra candidates because scoring reorders the store's hits
KEYWORD_OVERFETCH_FACTOR = 2
# Weighted match count treated as fully relevant
KEYWORD_SCORE_SATURATION = 20.0

CONTENT_WEIGHT = 1.0
FILE_NAME_WEIGHT = 2.0
EMAIL_WEIGHT = 1.5

SNIPPET_LENGTH = 200
SNIPPET_LEAD = 50


def tokenize(query: str) -> List[str]:
    return query.split()


def build_pattern(tokens: List[str]) -> re.Pattern:
    return re.compile("|".join(re.escape(t) for t in tokens), re.IGNORECASE)


def keyword_score(content: str, file_name: str, email: str, pattern: re.Pattern) -> float:
    total = (
        len(pattern.findall(content)) * CONTENT_WEIGHT
        + len(pattern.findall(file_name)) * FILE_NAME_WEIGHT
        + len(pattern.findall(email)) * EMAIL_WEIGHT
    )
    return max(0.0, min(1.0, total / KEYWORD_SCORE_SATURATION))


def extract_snippet(content: str, tokens: List[str], max_length: int = SNIPPET_LENGTH) -> str:
    """Snippet around the first token (in query order) that occurs in ``content``."""
    if not content:
        return ""

    lower = content.lower()
    position = -1
    for token in tokens:
        position = lower.find(token.lower())
        if position != -1:
            break

    if position == -1:
        head = content[:max_length]
        return head + "..." if len(content) > max_length else head

    start = max(0, position - SNIPPET_LEAD)
    end = min(len(content), position + max_length - SNIPPET_LEAD)
    snippet = content[start:end].strip()
    if start > 0:
        snippet = "..." + snippet
    if end < len(content):
        snippet = snippet + "..."
    return snippet


class KeywordSearchEngine:
    """Regex matching over resume content, file name and email"""

    def __init__(self, collection):
        self.collection = collection

    async def search(self, query: str, top_k: int, metadata: SearchMetadata) -> List[SearchResultItem]:
        trace_id = metadata.trace_id
        logger.info(f"[{trace_id}] [Keyword Search] Query: \"{query}\", TopK: {top_k}")
        start_time = time.time()

        tokens = tokenize(query)
        if not tokens:
            return []
        pattern = build_pattern(tokens)
        regex = {"$regex": pattern.pattern, "$options": "i"}

        try:
            cursor = self.collection.find(
                {"$or": [{"fullContent": regex}, {"fileName": regex}, {"email": regex}]},
                {"embedding": 0},
            ).limit(top_k * KEYWORD_OVERFETCH_FACTOR)
            documents = await cursor.to_list(length=None)
        except Exception as e:
            logger.error(f"[{trace_id}] [Keyword Search] Error: {e}")
            raise SearchError(
                f"Keyword search failed: {e}",
                query=query,
                search_type="keyword",
                cause=e,
            ) from e

        duration_ms = (time.time() - start_time) * 1000
        logger.info(f"[{trace_id}] [Keyword Search] Found {len(documents)} candidates in {duration_ms:.0f}ms")

        results = []
        for doc in documents:
            record = ResumeRecord.from_document(doc)
            score = keyword_score(
                record.full_content,
                doc.get("fileName") or "",
                doc.get("email") or "",
                pattern,
            )
            results.append(SearchResultItem(
                file_name=record.file_name,
                email=record.email,
                phone_number=record.phone_number,
                snippet=extract_snippet(record.full_content, tokens),
                score=score,
                match_type="keyword",
                full_content=record.full_content,
            ))

        results.sort(key=lambda r: r.score, reverse=True)
        top_results = results[:top_k]
        logger.info(f"[{trace_id}] [Keyword Search] Returning {len(top_results)} results")
        return top_results
