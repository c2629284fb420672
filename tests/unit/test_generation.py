"""Tests for answer generators and prompt assembly."""

from __future__ import annotations

from dataclasses import replace
from types import SimpleNamespace

import pytest
from conftest import make_match

from materials_rag.config.settings import Settings
from materials_rag.exceptions import ConfigurationError, GenerationError
from materials_rag.generation.extractive_generator import ExtractiveAnswerGenerator
from materials_rag.generation.factory import build_answer_generator
from materials_rag.generation.gemini_generator import GeminiAnswerGenerator
from materials_rag.generation.prompt_templates import build_answer_prompt, format_context_block


class FakeModels:
    def __init__(self, text: str = "answer", error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.calls: list[dict] = []

    async def generate_content(self, model, contents, config):
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self.error:
            raise self.error
        return SimpleNamespace(text=self.text)


def _gemini(models: FakeModels) -> GeminiAnswerGenerator:
    client = SimpleNamespace(aio=SimpleNamespace(models=models))
    return GeminiAnswerGenerator(api_key="test", client=client)


def test_context_block_numbers_and_tags_sources():
    matches = [
        replace(make_match("a", 0.9, text="first"), source="in_stock"),
        make_match("b", 0.8, text="second"),
    ]
    assert format_context_block(matches) == "[1] (in_stock) first\n\n[2] second"


def test_prompt_includes_feedback():
    prompt = build_answer_prompt("q", [make_match("a", 0.9)], feedback="overall score 0.40")
    assert "rejected by the quality review (overall score 0.40)" in prompt
    assert "feedback" not in build_answer_prompt("q", [make_match("a", 0.9)])


async def test_extractive_answer():
    match = replace(
        make_match("RM1_full", 0.9, code="RM000001", trade_name="Hyaluron Pure"), source="in_stock"
    )
    answer = await ExtractiveAnswerGenerator().generate("q", [match])
    assert answer == (
        "Based on the retrieved information: Material Code: RM000001. "
        "Trade Name: Hyaluron Pure (in stock)."
    )


async def test_extractive_without_matches():
    assert "No matching records" in await ExtractiveAnswerGenerator().generate("q", [])


async def test_gemini_sends_prompt_with_records():
    models = FakeModels("RM000001 is Hyaluron Pure [1].")
    answer = await _gemini(models).generate("rm000001?", [make_match("a", 0.9, text="RM000001 record")])
    assert answer == "RM000001 is Hyaluron Pure [1]."
    call = models.calls[0]
    assert "[1] RM000001 record" in call["contents"]
    assert "ONLY the retrieved records" in call["config"].system_instruction


async def test_gemini_without_matches_sends_bare_query():
    models = FakeModels()
    await _gemini(models).generate("what is glycerin", [])
    assert models.calls[0]["contents"] == "what is glycerin"


async def test_gemini_errors_are_wrapped():
    with pytest.raises(GenerationError):
        await _gemini(FakeModels(error=RuntimeError("quota"))).generate("q", [])


def test_factory():
    assert isinstance(build_answer_generator(Settings()), ExtractiveAnswerGenerator)
    with pytest.raises(ConfigurationError):
        build_answer_generator(Settings(answer_generator="gemini", google_api_key=""))
