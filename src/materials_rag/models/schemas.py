"""Pydantic models for data loaded from files and handed across the tool boundary."""

from __future__ import annotations

from pydantic import BaseModel, Field


class FixtureChunk(BaseModel):
    text: str
    score: float = 0.9
    rm_code: str | None = None


class EvaluationCase(BaseModel):
    query: str
    id: str | None = None
    category: str = "general"
    expected_code: str | None = None
    expected_info: list[str] = Field(default_factory=list)
    context_keywords: list[str] = Field(default_factory=list)
    ground_truth: str | None = None
    answer: str | None = None
    context: list[FixtureChunk] = Field(default_factory=list)


class MaterialHit(BaseModel):
    rm_code: str | None
    trade_name: str | None = None
    inci_name: str | None = None
    supplier: str | None = None
    source: str
    score: float
    match_type: str


class ToolResult(BaseModel):
    tool: str
    query: str
    total: int
    results: list[MaterialHit]
    has_more: bool = False
    search_mode: str | None = None
