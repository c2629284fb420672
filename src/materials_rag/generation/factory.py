"""Select the answer generator once, at startup."""

from __future__ import annotations

from materials_rag.config.settings import Settings
from materials_rag.exceptions import ConfigurationError
from materials_rag.generation.extractive_generator import ExtractiveAnswerGenerator
from materials_rag.generation.gemini_generator import GeminiAnswerGenerator
from materials_rag.protocols.answer_generator import AnswerGenerator


def build_answer_generator(settings: Settings) -> AnswerGenerator:
    if settings.answer_generator == "gemini":
        if not settings.google_api_key:
            raise ConfigurationError("answer_generator=gemini requires MRAG_GOOGLE_API_KEY")
        return GeminiAnswerGenerator(
            api_key=settings.google_api_key,
            model=settings.gemini_model,
            temperature=settings.gemini_temperature,
            max_tokens=settings.gemini_max_tokens,
        )
    return ExtractiveAnswerGenerator()
