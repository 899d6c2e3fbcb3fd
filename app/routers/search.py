import time
import uuid

from fastapi import APIRouter, Depends, Request

from app.models.schemas import SearchRequest, SearchResponse, WeightsUpdate
from app.models.settings import HybridSearchConfig
from app.routers.dependencies import get_pipeline, get_request_id
from app.services.pipeline import RetrievalPipeline
from app.utils.exceptions import AIAgentBaseException, map_to_http_exception
from app.utils.logging_config import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.post("/", response_model=SearchResponse)
async def search_resumes(
    body: SearchRequest,
    request: Request,
    pipeline: RetrievalPipeline = Depends(get_pipeline),
):
    """Search resumes with keyword, vector or hybrid retrieval"""
    request_id = get_request_id(request)
    trace_id = request_id if request_id != "unknown" else str(uuid.uuid4())

    logger.info(
        f"Search request: type={body.search_type}, top_k={body.top_k}",
        extra={"request_id": request_id, "trace_id": trace_id}
    )

    start_time = time.time()
    try:
        outcome = await pipeline.search_with_analysis(body.query, body.search_type, body.top_k, trace_id)
    except AIAgentBaseException as exc:
        logger.error(
            f"Search failed: {exc.message}",
            extra={"request_id": request_id, "error_code": exc.error_code}
        )
        raise map_to_http_exception(exc) from exc

    return SearchResponse(
        trace_id=trace_id,
        query=body.query,
        search_type=body.search_type,
        results=outcome.results,
        count=len(outcome.results),
        duration_ms=round((time.time() - start_time) * 1000, 2),
        llm_analysis=outcome.llm_analysis,
    )


@router.get("/weights", response_model=HybridSearchConfig)
async def get_weights(pipeline: RetrievalPipeline = Depends(get_pipeline)):
    """Current hybrid fusion weights"""
    return pipeline.get_hybrid_weights()


@router.put("/weights", response_model=HybridSearchConfig)
async def update_weights(
    body: WeightsUpdate,
    request: Request,
    pipeline: RetrievalPipeline = Depends(get_pipeline),
):
    """Replace the hybrid fusion weights for all subsequent searches"""
    try:
        config = pipeline.update_hybrid_weights(body.vector_weight, body.keyword_weight)
    except AIAgentBaseException as exc:
        raise map_to_http_exception(exc) from exc

    logger.info(
        f"Hybrid weights set to vector={config.vector_weight}, keyword={config.keyword_weight}",
        extra={"request_id": get_request_id(request)}
    )
    return config
