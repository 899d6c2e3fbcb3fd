from datetime import datetime
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from app.routers import search, chat

from app.utils.logging_config import configure_for_environment, get_logger
from app.middleware.error_handlers import ExceptionHandlerMiddleware, PerformanceMiddleware
from app.models.settings import load_settings
from app.services.conversation import ConversationalChain
from app.services.hybrid_search import HybridWeights
from app.services.llm_reranker import LLMReranker
from app.services.pipeline import RetrievalPipeline
from app.services.session_manager import ConversationStore
from app.utils.utils import OllamaClient

# Configure logging first
configure_for_environment()
logger = get_logger(__name__)

settings = load_settings()
ollama = OllamaClient(settings.llm, settings.embedding)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager"""
    logger.info("Resume Search API starting up...")

    from app.services.db import create_client, get_resume_collection, init_indexes
    from app.services.vector_store import ResumeVectorStore

    client = create_client(settings)
    collection = get_resume_collection(client, settings)
    try:
        await init_indexes(collection)
    except Exception as e:
        logger.warning(f"Database index initialization had issues: {e}")

    vector_store = ResumeVectorStore(collection, ollama.embed, index_name=settings.vector_index_name)
    app.state.pipeline.initialize(collection, vector_store)
    logger.info("Resume Search API startup completed")

    yield

    logger.info("Resume Search API shutting down...")
    client.close()
    logger.info("Resume Search API shutdown completed")


def create_app() -> FastAPI:
    app = FastAPI(title="Resume Search API", version="1.0.0", lifespan=lifespan)

    # Process-scoped state shared by all requests
    weights = HybridWeights(settings.hybrid)
    reranker = LLMReranker(ollama.generate)
    pipeline = RetrievalPipeline(weights, reranker=reranker, enable_rerank=settings.enable_llm_rerank)
    store = ConversationStore(max_turns=settings.conversation_max_turns)

    app.state.pipeline = pipeline
    app.state.conversation_store = store
    app.state.chain = ConversationalChain(pipeline, store, ollama.generate)
    app.state.model_info = ollama.info()

    # Last added runs first: CORS, then request ids/errors, then timing
    app.add_middleware(PerformanceMiddleware, slow_request_threshold=5.0)
    app.add_middleware(ExceptionHandlerMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    @app.head("/")
    async def root():
        """Root endpoint"""
        return {"message": "Welcome to the Resume Search API", "version": "1.0.0", "status": "ok"}

    @app.get("/health")
    @app.head("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy" if app.state.pipeline.is_ready() else "starting",
            "timestamp": datetime.utcnow().isoformat(),
            "pipeline_ready": app.state.pipeline.is_ready(),
            "model": app.state.model_info,
            "conversations": app.state.conversation_store.count(),
            "hybrid_weights": app.state.pipeline.get_hybrid_weights().model_dump(),
        }

    app.include_router(search.router, prefix="/api/search", tags=["search"])
    app.include_router(chat.router, prefix="/api/chat", tags=["chat"])
    return app


app = create_app()
logger.info("Resume Search API initialized successfully")
