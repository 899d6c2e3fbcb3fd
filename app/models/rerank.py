"""
Schema for the reranker's structured LLM output.

The model is asked for camelCase keys (``fileName``, ``relevanceScore`` ...);
aliases map them onto the snake_case fields used everywhere else.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ExtractedInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_company: Optional[str] = Field(default=None, alias="currentCompany")
    skills: Optional[List[str]] = None
    experience: Optional[str] = None
    key_highlights: Optional[List[str]] = Field(default=None, alias="keyHighlights")


class RerankMatch(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    file_name: str = Field(alias="fileName")
    relevance_score: float = Field(alias="relevanceScore", ge=0.0, le=1.0)
    reasoning: str
    matches_criteria: bool = Field(alias="matchesCriteria")
    extracted_info: Optional[ExtractedInfo] = Field(default=None, alias="extractedInfo")


class LLMRerankResponse(BaseModel):
    matches: List[RerankMatch]
    summary: str


class LLMAnalysis(BaseModel):
    summary: str
    matches: List[RerankMatch] = []
    status: Literal["ok", "empty", "parse_failed", "error"] = "ok"
