import uuid

from fastapi import APIRouter, Depends, Request

from app.models.schemas import ChatRequest, ChatResponse, ConversationHistory
from app.routers.dependencies import get_chain, get_model_info, get_request_id, get_store
from app.services.conversation import ConversationalChain
from app.services.session_manager import ConversationStore
from app.utils.exceptions import AIAgentBaseException, NotFoundError, map_to_http_exception
from app.utils.logging_config import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.post("/", response_model=ChatResponse)
async def chat(
    body: ChatRequest,
    request: Request,
    chain: ConversationalChain = Depends(get_chain),
):
    """Run one conversational turn; a new conversation is started when no id is given"""
    request_id = get_request_id(request)
    trace_id = request_id if request_id != "unknown" else str(uuid.uuid4())

    try:
        result = await chain.chat(
            body.message,
            conversation_id=body.conversation_id,
            search_type=body.search_type,
            top_k=body.top_k,
            trace_id=trace_id,
            include_history=body.include_history,
        )
    except AIAgentBaseException as exc:
        logger.error(
            f"Chat turn failed: {exc.message}",
            extra={"request_id": request_id, "conversation_id": body.conversation_id}
        )
        raise map_to_http_exception(exc) from exc

    info = get_model_info(request)
    return ChatResponse(
        **result.model_dump(),
        model=info.get("model", "unknown"),
        provider=info.get("provider", "unknown"),
    )


@router.get("/{conversation_id}/messages", response_model=ConversationHistory)
async def get_messages(conversation_id: str, store: ConversationStore = Depends(get_store)):
    """Full history of a conversation, oldest turn first"""
    try:
        messages = store.get_messages(conversation_id)
    except NotFoundError as exc:
        raise map_to_http_exception(exc) from exc

    return ConversationHistory(
        conversation_id=conversation_id,
        messages=messages,
        message_count=len(messages),
    )


@router.delete("/{conversation_id}")
async def delete_conversation(conversation_id: str, request: Request, store: ConversationStore = Depends(get_store)):
    """Delete a conversation and its history"""
    if not store.delete(conversation_id):
        raise map_to_http_exception(NotFoundError(
            f"Conversation {conversation_id} not found",
            resource="conversation",
            resource_id=conversation_id,
        ))

    logger.info(f"Deleted conversation {conversation_id}", extra={"request_id": get_request_id(request)})
    return {"conversation_id": conversation_id, "deleted": True}
