"""
LLM re-ranking and filtering of retrieved resumes.

The model judges every candidate against the explicit criteria in the query
and answers with a JSON object (see ``app.models.rerank``). The outcome is
one of:

* ``ok``           - parsed and validated; non-matching and unknown files are
                     dropped, the rest rescored with the model's relevance.
* ``parse_failed`` - the reply could not be parsed or validated; candidates
                     are returned unchanged.
* ``error``        - the model call itself failed; candidates are returned
                     unchanged.
* ``empty``        - nothing to judge; the model is not called.

The model is called exactly once per request.
"""
from typing import Callable, List, NamedTuple

from fastapi.concurrency import run_in_threadpool

from app.helpers.parsing import parse_model_output
from app.helpers.prompts import (
    RERANK_HUMAN_PROMPT,
    RERANK_SYSTEM_PROMPT,
    RESUME_BLOCK,
    RESUME_SEPARATOR,
)
from app.models.rerank import LLMAnalysis, LLMRerankResponse, RerankMatch
from app.models.schemas import SearchResultItem
from app.utils.logging_config import get_logger

logger = get_logger(__name__)

RERANK_MAX_CONTENT_CHARS = 3000
TRUNCATION_MARKER = "\n...[content truncated for analysis]"


class RerankOutcome(NamedTuple):
    results: List[SearchResultItem]
    llm_analysis: LLMAnalysis


def truncate_content(content: str, limit: int = RERANK_MAX_CONTENT_CHARS) -> str:
    if len(content) > limit:
        return content[:limit] + TRUNCATION_MARKER
    return content


def format_resumes(candidates: List[SearchResultItem]) -> str:
    blocks = [
        RESUME_BLOCK.format(
            index=i,
            file_name=c.file_name,
            email=c.email,
            phone_number=c.phone_number,
            content=truncate_content(c.full_content or c.snippet),
        )
        for i, c in enumerate(candidates, start=1)
    ]
    return RESUME_SEPARATOR.join(blocks)


def build_rerank_prompt(query: str, candidates: List[SearchResultItem]) -> str:
    human = RERANK_HUMAN_PROMPT.format(query=query, resumes_context=format_resumes(candidates))
    return f"{RERANK_SYSTEM_PROMPT}\n{human}"


def pass_through(candidates: List[SearchResultItem], summary: str, reasoning: str, status: str) -> RerankOutcome:
    """Keep every candidate as-is when the model's judgment can't be used."""
    matches = [
        RerankMatch(
            file_name=c.file_name,
            relevance_score=c.score,
            reasoning=reasoning,
            matches_criteria=True,
        )
        for c in candidates
    ]
    return RerankOutcome(
        results=list(candidates),
        llm_analysis=LLMAnalysis(summary=summary, matches=matches, status=status),
    )


def apply_judgments(
    candidates: List[SearchResultItem],
    response: LLMRerankResponse,
    trace_id: str,
) -> List[SearchResultItem]:
    by_file = {c.file_name: c for c in candidates}
    seen = set()
    reranked = []

    for match in response.matches:
        if not match.matches_criteria:
            logger.info(
                f"[{trace_id}] [LLM Reranker] Filtered out {match.file_name} "
                f"(score: {match.relevance_score}) - {match.reasoning}"
            )
            continue

        original = by_file.get(match.file_name)
        if original is None:
            logger.warning(f"[{trace_id}] [LLM Reranker] {match.file_name} not found in original candidates")
            continue
        if match.file_name in seen:
            logger.warning(f"[{trace_id}] [LLM Reranker] Ignoring repeated judgment for {match.file_name}")
            continue
        seen.add(match.file_name)

        reranked.append(original.model_copy(update={
            "score": match.relevance_score,
            "match_type": "llm-reranked",
            "llm_reasoning": match.reasoning,
            "extracted_info": match.extracted_info,
        }))

    reranked.sort(key=lambda r: r.score, reverse=True)
    return reranked


class LLMReranker:
    """Filters and rescores candidates with a single LLM judgment.

    ``generate`` is a blocking ``prompt -> text`` callable.
    """

    def __init__(self, generate: Callable[[str], str]):
        self.generate = generate

    async def rerank_and_filter(
        self,
        query: str,
        candidates: List[SearchResultItem],
        trace_id: str,
    ) -> RerankOutcome:
        if not candidates:
            return RerankOutcome(
                results=[],
                llm_analysis=LLMAnalysis(summary="No candidates to analyze", matches=[], status="empty"),
            )

        logger.info(f"[{trace_id}] [LLM Reranker] Analyzing {len(candidates)} candidates with LLM")
        prompt = build_rerank_prompt(query, candidates)

        try:
            response_text = await run_in_threadpool(self.generate, prompt)
        except Exception as e:
            logger.error(f"[{trace_id}] [LLM Reranker] Error during LLM analysis: {e}")
            return pass_through(
                candidates,
                summary=f"Error during LLM analysis: {e}. Returning unfiltered results.",
                reasoning="Error during LLM analysis - original retrieval score kept",
                status="error",
            )

        try:
            parsed = parse_model_output(response_text or "", LLMRerankResponse)
        except ValueError as e:
            logger.error(f"[{trace_id}] [LLM Reranker] Failed to parse LLM response: {e}")
            logger.debug(f"[{trace_id}] [LLM Reranker] Raw response preview: {(response_text or '')[:500]}")
            return pass_through(
                candidates,
                summary="Failed to parse LLM response. Returning original search results without filtering.",
                reasoning="LLM parsing failed - original retrieval score kept",
                status="parse_failed",
            )

        results = apply_judgments(candidates, parsed, trace_id)
        logger.info(
            f"[{trace_id}] [LLM Reranker] Results: {len(candidates)} retrieved -> "
            f"{len(results)} matched criteria"
        )
        logger.info(f"[{trace_id}] [LLM Reranker] Summary: {parsed.summary}")

        return RerankOutcome(
            results=results,
            llm_analysis=LLMAnalysis(summary=parsed.summary, matches=parsed.matches, status="ok"),
        )
