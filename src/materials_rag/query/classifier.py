"""Rule-based query classification: intent, entities, language and search strategy."""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from difflib import SequenceMatcher

from materials_rag.models.domain import (
    ExtractedEntities,
    Language,
    QueryClassification,
    QueryType,
    SearchStrategy,
)
from materials_rag.observability.logger import get_logger
from materials_rag.query.patterns import (
    CODE_PATTERNS,
    DESCRIPTION_TAG_MARKERS,
    KEYWORD_EXPANSION,
    NAME_PATTERNS,
    PROPERTY_KEYWORDS,
    QUERY_PATTERNS,
    REVERSE_EXPANSION,
    PatternRule,
)
from materials_rag.text.normalizer import detect_language, normalize

logger = get_logger("query_classifier")

NO_MATCH_CONFIDENCE = 0.1


class QueryClassifier:
    """Pure and stateless; one instance can serve any number of concurrent requests."""

    def __init__(
        self,
        rules: Sequence[PatternRule] = QUERY_PATTERNS,
        code_patterns: Sequence[re.Pattern] = CODE_PATTERNS,
        name_patterns: Sequence[re.Pattern] = NAME_PATTERNS,
        property_keywords: Sequence[str] = PROPERTY_KEYWORDS,
        expansions: Mapping[str, Sequence[str]] = KEYWORD_EXPANSION,
    ) -> None:
        self._rules = tuple(rules)
        self._code_patterns = tuple(code_patterns)
        self._name_patterns = tuple(name_patterns)
        self._property_keywords = tuple(property_keywords)
        self._expansions = expansions

    def classify(self, query: str) -> QueryClassification:
        query = normalize(query or "")

        detected: list[str] = []
        weights: list[float] = []
        for rule in self._rules:
            if rule.matches(query):
                detected.append(rule.tag)
                weights.append(rule.weight)

        entities = ExtractedEntities(
            codes=tuple(self.extract_codes(query)),
            names=tuple(self.extract_names(query)),
            properties=tuple(self.extract_properties(query)),
        )
        language = detect_language(query)
        confidence = self._confidence(weights)
        query_type = self._query_type(detected, entities)
        strategy = self._search_strategy(query_type, confidence, bool(entities.codes))

        classification = QueryClassification(
            query=query,
            query_type=query_type,
            confidence=confidence,
            detected_patterns=tuple(detected),
            extracted_entities=entities,
            search_strategy=strategy,
            expanded_queries=tuple(self.expand(query, entities.codes)),
            language=language,
        )
        logger.debug(
            "query_classified",
            query_type=query_type,
            confidence=round(confidence, 3),
            strategy=strategy,
            language=language,
            patterns=list(detected),
        )
        return classification

    def extract_codes(self, query: str) -> list[str]:
        """Normalized code followed by the form it was written in, deduplicated."""
        codes: list[str] = []
        for pattern in self._code_patterns:
            for match in pattern.finditer(query):
                original = match.group(0)
                codes.append(re.sub(r"[-_]", "", original.upper()))
                codes.append(original)
        return _unique(codes)

    def extract_names(self, query: str) -> list[str]:
        names: list[str] = []
        for pattern in self._name_patterns:
            for match in pattern.finditer(query):
                name = match.group(1) if pattern.groups else match.group(0)
                if len(name) > 2:
                    names.append(name.strip())
        return _unique(names)

    def extract_properties(self, query: str) -> list[str]:
        lowered = query.lower()
        return [kw for kw in self._property_keywords if kw.lower() in lowered]

    def expand(self, query: str, codes: Sequence[str] = ()) -> list[str]:
        expanded = [query]
        for keyword, variants in self._expansions.items():
            if keyword in query:
                expanded.extend(query.replace(keyword, variant, 1) for variant in variants)
        lowered = query.lower()
        for english, thai in REVERSE_EXPANSION.items():
            if english in lowered:
                pattern = re.compile(rf"\b{re.escape(english)}\b", re.IGNORECASE)
                substituted = pattern.sub(thai, query, count=1)
                if substituted != query:
                    expanded.append(substituted)
        for code in codes:
            expanded.append(code.upper())
            expanded.append(code.lower())
            if len(code) >= 6:
                expanded.append(f"{code[:2]}-{code[2:]}")
                expanded.append(f"{code[:2]}_{code[2:]}")
        return _unique(expanded)

    @staticmethod
    def _confidence(weights: Sequence[float]) -> float:
        if not weights:
            return NO_MATCH_CONFIDENCE
        average = sum(weights) / len(weights)
        multi_pattern_boost = min(len(weights) * 0.05, 0.2)
        return min(average + multi_pattern_boost, 1.0)

    @staticmethod
    def _query_type(detected: Sequence[str], entities: ExtractedEntities) -> QueryType:
        if entities.codes or "exact_code" in detected:
            return "exact_code"
        if "name_inquiry" in detected or entities.names:
            return "name_search"
        if (
            "property" in detected
            or entities.properties
            or any(tag.startswith("property_") for tag in detected)
        ):
            return "property_search"
        if any(marker in tag for tag in detected for marker in DESCRIPTION_TAG_MARKERS):
            return "description_search"
        return "generic"

    @staticmethod
    def _search_strategy(
        query_type: QueryType, confidence: float, has_codes: bool
    ) -> SearchStrategy:
        # Order matters: a confident code lookup beats the low-confidence fallback.
        if has_codes and confidence > 0.8:
            return "exact_match"
        if confidence > 0.6 and query_type in ("name_search", "exact_code"):
            return "fuzzy_match"
        if confidence < 0.5 or query_type == "generic":
            return "hybrid"
        return "semantic_search"


def fuzzy_match_score(a: str, b: str) -> float:
    """Similarity in [0, 1]: 1.0 for equal strings, 0.8 for containment."""
    s1, s2 = a.lower().strip(), b.lower().strip()
    if not s1 or not s2:
        return 0.0
    if s1 == s2:
        return 1.0
    if s1 in s2 or s2 in s1:
        return 0.8
    return SequenceMatcher(None, s1, s2).ratio()


_default_classifier = QueryClassifier()


def classify_query(query: str) -> QueryClassification:
    return _default_classifier.classify(query)


def _unique(items: Sequence[str]) -> list[str]:
    return list(dict.fromkeys(items))
