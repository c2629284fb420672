"""Tests for the rule-based query classifier."""

from __future__ import annotations

import re

import pytest

from materials_rag.query.classifier import QueryClassifier, classify_query, fuzzy_match_score
from materials_rag.query.patterns import QUERY_PATTERNS, PatternRule


def test_code_with_thai_question_is_exact_match():
    result = classify_query("rm000001 คืออะไร")
    assert result.query_type == "exact_code"
    assert result.search_strategy == "exact_match"
    assert result.confidence > 0.8
    assert "RM000001" in result.extracted_entities.codes
    assert "rm000001" in result.extracted_entities.codes
    assert result.detected_patterns[:2] == ("exact_code", "thai_question")
    assert result.language == "mixed"


def test_separated_code_is_normalized():
    result = classify_query("price of RM-000001")
    assert result.extracted_entities.codes[0] == "RM000001"
    assert "RM-000001" in result.extracted_entities.codes
    assert result.query_type == "exact_code"


def test_code_only_query_expansions():
    result = classify_query("RC00A008")
    assert result.extracted_entities.codes == ("RC00A008",)
    assert result.expanded_queries[0] == "RC00A008"
    assert "rc00a008" in result.expanded_queries
    assert "RC-00A008" in result.expanded_queries
    assert "RC_00A008" in result.expanded_queries
    assert len(result.expanded_queries) == len(set(result.expanded_queries))


def test_name_query_uses_fuzzy_match():
    result = classify_query("Ginger Extract มีรหัสอะไร")
    assert result.query_type == "name_search"
    assert result.search_strategy == "fuzzy_match"
    assert "Ginger Extract" in result.extracted_entities.names
    assert "plant_extract" in result.detected_patterns


def test_thai_property_query():
    result = classify_query("วัตถุดิบที่ช่วยเรื่องความชุ่มชื้น")
    assert result.query_type == "property_search"
    assert result.search_strategy == "semantic_search"
    assert result.language == "thai"
    assert "ความชุ่มชื้น" in result.extracted_entities.properties
    assert any(q.startswith("raw material") for q in result.expanded_queries)


def test_material_vocabulary_is_description_search():
    result = classify_query("supplier of vitamin c")
    assert result.query_type == "description_search"
    assert result.search_strategy == "semantic_search"
    assert "ซัพพลายเออร์ of vitamin c" in result.expanded_queries


@pytest.mark.parametrize("query", ["", "   ", "hello there", "!!!"])
def test_degenerate_queries_fall_back(query):
    result = classify_query(query)
    assert result.query_type == "generic"
    assert result.search_strategy == "hybrid"
    assert result.confidence == pytest.approx(0.1)
    assert result.detected_patterns == ()
    assert not result.is_raw_materials_query
    assert result.expanded_queries[0] == result.query


@pytest.mark.parametrize(
    "query",
    [
        "rm000001 คืออะไร",
        "RC00A008",
        "วัตถุดิบที่ช่วยเรื่องความชุ่มชื้น",
        "Ginger Extract มีรหัสอะไร",
        "supplier of vitamin c",
        "ราคา hyaluronic acid ต่อกิโล",
        "anything at all",
    ],
)
def test_confidence_bounds(query):
    result = classify_query(query)
    assert 0.1 <= result.confidence <= 1.0
    assert (result.detected_patterns == ()) == (result.confidence == pytest.approx(0.1))


def test_every_rule_has_a_sane_weight():
    for rule in QUERY_PATTERNS:
        assert 0.0 < rule.weight <= 1.0
        assert rule.tag


def test_rules_are_injectable():
    classifier = QueryClassifier(rules=(PatternRule(re.compile("widget"), "gadget", 0.9),))
    result = classifier.classify("a widget please")
    assert result.detected_patterns == ("gadget",)
    assert result.confidence == pytest.approx(0.95)


def test_classification_is_deterministic():
    assert classify_query("รหัสสาร glycerin") == classify_query("รหัสสาร glycerin")


def test_fuzzy_match_score():
    assert fuzzy_match_score("Glycerin", "glycerin") == 1.0
    assert fuzzy_match_score("Ginger", "Ginger Extract") == 0.8
    assert fuzzy_match_score("", "anything") == 0.0
    assert 0.0 < fuzzy_match_score("niacinamide", "niacinamid pc") < 1.0
