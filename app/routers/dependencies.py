from fastapi import Request

from app.services.conversation import ConversationalChain
from app.services.pipeline import RetrievalPipeline
from app.services.session_manager import ConversationStore
from app.utils.exceptions import NotInitializedError, map_to_http_exception


def _state(request: Request, name: str):
    component = getattr(request.app.state, name, None)
    if component is None:
        raise map_to_http_exception(NotInitializedError(f"{name} is not available", component=name))
    return component


def get_pipeline(request: Request) -> RetrievalPipeline:
    return _state(request, "pipeline")


def get_store(request: Request) -> ConversationStore:
    return _state(request, "conversation_store")


def get_chain(request: Request) -> ConversationalChain:
    return _state(request, "chain")


def get_model_info(request: Request) -> dict:
    return getattr(request.app.state, "model_info", None) or {"provider": "unknown", "model": "unknown"}


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or "unknown"
