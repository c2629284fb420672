"""Protocol for answer generators."""

from __future__ import annotations

from typing import Protocol

from materials_rag.models.domain import Match


class AnswerGenerator(Protocol):
    async def generate(
        self,
        query: str,
        matches: list[Match],
        feedback: str | None = None,
    ) -> str: ...
