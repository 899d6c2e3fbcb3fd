import uuid
from typing import Callable, List

from fastapi.concurrency import run_in_threadpool

from app.helpers.prompts import CHAT_PROMPT
from app.models.schemas import ChatResult, ChatTurn, SearchResultItem
from app.services.pipeline import RetrievalPipeline
from app.services.session_manager import ConversationStore
from app.utils.exceptions import AIAgentBaseException, ModelError, ValidationError
from app.utils.logging_config import get_logger, PerformanceMonitor

logger = get_logger(__name__)

DEFAULT_SEARCH_TYPE = "hybrid"
DEFAULT_TOP_K = 10


def format_history(messages: List[ChatTurn]) -> str:
    if not messages:
        return "(no previous messages)"
    return "\n".join(f"{turn.role.capitalize()}: {turn.content}" for turn in messages)


def format_context(results: List[SearchResultItem]) -> str:
    if not results:
        return "(no matching candidates were found)"
    lines = []
    for i, item in enumerate(results, start=1):
        lines.append(
            f"[{i}] {item.file_name} | email: {item.email} | phone: {item.phone_number} "
            f"| score: {item.score:.2f} ({item.match_type})"
        )
        lines.append(f"    {item.snippet}")
        if item.llm_reasoning:
            lines.append(f"    Assessment: {item.llm_reasoning}")
    return "\n".join(lines)


def build_chat_prompt(message: str, history: List[ChatTurn], results: List[SearchResultItem]) -> str:
    return CHAT_PROMPT.format(
        history=format_history(history),
        context=format_context(results),
        message=message,
    )


class ConversationalChain:
    """Retrieval-augmented chat over the resume corpus with per-conversation memory"""

    def __init__(self, pipeline: RetrievalPipeline, store: ConversationStore, generate: Callable[[str], str]):
        self.pipeline = pipeline
        self.store = store
        self.generate = generate

    async def chat(
        self,
        message: str,
        conversation_id: str = None,
        search_type: str = DEFAULT_SEARCH_TYPE,
        top_k: int = DEFAULT_TOP_K,
        trace_id: str = None,
        include_history: bool = True,
    ) -> ChatResult:
        if not message or not message.strip():
            raise ValidationError("Message must be a non-empty string", field="message", value=message)

        message = message.strip()
        trace_id = trace_id or str(uuid.uuid4())
        conversation_id = conversation_id or str(uuid.uuid4())

        # Turns on one conversation run one at a time so history stays ordered.
        # A new conversation is only stored once its first turn succeeds.
        async with self.store.lock(conversation_id):
            session = self.store.resolve(conversation_id)
            with PerformanceMonitor(f"[{trace_id}] chat turn {conversation_id}", logger, threshold_ms=10000):
                results = await self.pipeline.search(message, search_type, top_k, trace_id)

                history = session.messages if include_history else []
                prompt = build_chat_prompt(message, history, results)
                logger.info(
                    f"[{trace_id}] [Chat] Conversation {conversation_id}: {len(history)} history turns, "
                    f"{len(results)} candidates in context"
                )

                try:
                    reply = await run_in_threadpool(self.generate, prompt)
                except AIAgentBaseException as e:
                    raise ModelError(f"Chat model call failed: {e.message}", model_type="llm", cause=e) from e
                except Exception as e:
                    raise ModelError(f"Chat model call failed: {e}", model_type="llm", cause=e) from e

                reply = (reply or "").strip()
                message_count = self.store.append_turns(session, message, reply)

        return ChatResult(
            response=reply,
            conversation_id=conversation_id,
            message_count=message_count,
            search_results_used=results,
        )
