from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Literal
from datetime import datetime

from app.models.rerank import ExtractedInfo, LLMAnalysis

MatchType = Literal["keyword", "vector", "hybrid", "llm-reranked"]


# -------- Stored resumes --------
class ResumeRecord(BaseModel):
    """Resume document as written by the ingestion pipeline (camelCase in Mongo)"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    file_name: str = Field(default="Unknown", alias="fileName")
    email: str = Field(default="Not found")
    phone_number: str = Field(default="Not found", alias="phoneNumber")
    full_content: str = Field(default="", alias="fullContent")
    embedding: Optional[List[float]] = None
    processed_at: Optional[datetime] = Field(default=None, alias="processedAt")

    @classmethod
    def from_document(cls, doc: dict) -> "ResumeRecord":
        # Empty or null fields fall back to the defaults
        cleaned = {k: v for k, v in doc.items() if v not in (None, "")}
        return cls.model_validate(cleaned)


# -------- Search --------
class SearchResultItem(BaseModel):
    file_name: str
    email: str = "Not found"
    phone_number: str = "Not found"
    snippet: str = ""
    score: float = Field(ge=0.0, le=1.0)
    match_type: MatchType
    llm_reasoning: Optional[str] = None
    extracted_info: Optional[ExtractedInfo] = None
    # whole resume text, for the reranker only
    full_content: Optional[str] = Field(default=None, exclude=True, repr=False)


class SearchMetadata(BaseModel):
    trace_id: str
    start_time: float
    search_type: str


class SearchRequest(BaseModel):
    query: str = Field(min_length=1)
    search_type: str = "hybrid"
    top_k: int = Field(default=5, ge=1, le=100)


class SearchResponse(BaseModel):
    trace_id: str
    query: str
    search_type: str
    results: List[SearchResultItem] = []
    count: int = 0
    duration_ms: float = 0.0
    llm_analysis: Optional[LLMAnalysis] = None


class WeightsUpdate(BaseModel):
    vector_weight: float = Field(ge=0.0)
    keyword_weight: float = Field(ge=0.0)


# -------- Conversations --------
class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class ConversationSession(BaseModel):
    conversation_id: str
    messages: List[ChatTurn] = []
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class ChatRequest(BaseModel):
    message: str = Field(min_length=1)
    conversation_id: Optional[str] = None  # a new conversation is created when omitted
    search_type: str = "hybrid"
    top_k: int = Field(default=10, ge=1, le=100)
    include_history: bool = True


class ChatResult(BaseModel):
    response: str
    conversation_id: str
    message_count: int
    search_results_used: List[SearchResultItem] = []


class ChatResponse(ChatResult):
    model: str
    provider: str


class ConversationHistory(BaseModel):
    conversation_id: str
    messages: List[ChatTurn] = []
    message_count: int = 0
