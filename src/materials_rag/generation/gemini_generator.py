"""Answer generation with Google Gemini via the google-genai SDK."""

from __future__ import annotations

from google import genai
from google.genai import types

from materials_rag.exceptions import GenerationError
from materials_rag.generation.prompt_templates import (
    ANSWER_SYSTEM,
    NO_CONTEXT_SYSTEM,
    build_answer_prompt,
)
from materials_rag.models.domain import Match
from materials_rag.observability.logger import get_logger

logger = get_logger("gemini")


class GeminiAnswerGenerator:
    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        temperature: float = 0.1,
        max_tokens: int = 2048,
        client: genai.Client | None = None,
    ) -> None:
        self._client = client or genai.Client(api_key=api_key)
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def generate(
        self,
        query: str,
        matches: list[Match],
        feedback: str | None = None,
    ) -> str:
        config = types.GenerateContentConfig(
            temperature=self._temperature,
            max_output_tokens=self._max_tokens,
            system_instruction=ANSWER_SYSTEM if matches else NO_CONTEXT_SYSTEM,
        )
        contents = build_answer_prompt(query, matches, feedback) if matches else query
        try:
            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=contents,
                config=config,
            )
        except Exception as e:
            raise GenerationError(f"Gemini generation failed: {e}") from e
        text = response.text or ""
        logger.info("answer_generated", model=self._model, matches=len(matches), chars=len(text))
        return text
