"""Data-driven rule tables for query classification.

Every table here is immutable and built once at import time. Adding a rule means
adding a row; the classifier's control flow never changes.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType

from materials_rag.models.domain import Language

# ASCII word boundaries so codes glued to Thai text still match.
_FLAGS = re.ASCII
_FLAGS_I = re.ASCII | re.IGNORECASE


@dataclass(frozen=True)
class PatternRule:
    pattern: re.Pattern
    tag: str
    weight: float
    language: Language | None = None

    def matches(self, query: str) -> bool:
        return self.pattern.search(query) is not None


def _rule(
    regex: str, tag: str, weight: float, flags: int = _FLAGS_I, language: Language | None = None
) -> PatternRule:
    return PatternRule(re.compile(regex, flags), tag, weight, language)


QUERY_PATTERNS: tuple[PatternRule, ...] = (
    # Structured codes
    _rule(r"\b(rm|RM)[-_]?\d{6}\b", "exact_code", 1.0, flags=_FLAGS),
    _rule(r"\b(rc|RC)[A-Z0-9]{6,}\b", "exact_code", 1.0),
    _rule(r"\b(rd|RD)[A-Z]{2,}[0-9]{3,}\b", "exact_code", 1.0),
    _rule(r"\b[A-Z]{2,4}[-_]?\d{3,6}\b", "material_code", 0.95, flags=_FLAGS),
    _rule(r"\b[A-Z]{3,}-[A-Z]{2,}\b", "trade_code", 0.9, flags=_FLAGS),
    # Question and inquiry phrasing
    _rule("คืออะไร|ชื่ออะไร|มีอะไรบ้าง|หาอะไร", "thai_question", 0.85, language="thai"),
    _rule(r"รหัส(สาร|วัตถุดิบ)?|material\s*code|rm\s*code", "code_inquiry", 0.9),
    _rule(r"ชื่อ(การค้า|ทางการค้า|trade)|trade\s*name", "name_inquiry", 0.85),
    _rule(r"inci\s*(name)?|ชื่อสากล|ชื่อทางเคมี", "inci_inquiry", 0.85),
    # Domain vocabulary
    _rule("วัตถุดิบ|สารสกัด|สารออกฤทธิ์|ส่วนผสม", "thai_material", 0.8, language="thai"),
    _rule("สูตร|ตำรับ|การผลิต|formulation", "formulation", 0.75),
    _rule("ซัพพลายเออร์|ผู้ผลิต|บริษัท|supplier|manufacturer", "supplier", 0.75),
    _rule("ราคา|ต้นทุน|cost|price", "cost", 0.75),
    _rule("ประโยชน์|คุณสมบัติ|benefit|property|function", "property", 0.7),
    # Specific properties
    _rule("ความชุ่มชื้น|hydrat|moisturiz", "property_moisturizing", 0.8, language="thai"),
    _rule("ต้านริ้วรอย|anti[- ]aging|anti[- ]wrinkle", "property_antiaging", 0.8, language="thai"),
    _rule("กระจ่างใส|whiten|brighten", "property_whitening", 0.8, language="thai"),
    # English material vocabulary
    _rule(
        r"\b(raw\s*material|ingredient|active|extract|chemical)\b",
        "eng_material",
        0.8,
        language="english",
    ),
    _rule(r"\b(vitamin|acid|oil|extract|powder|gel)\b", "material_type", 0.7, language="english"),
    # Specific ingredients
    _rule(r"vitamin\s*[a-e]", "vitamin", 0.75),
    _rule("hyaluronic|glycerin|retinol|niacinamide|ceramide", "specific_ingredient", 0.8),
    _rule(r"ginger|aloe|green\s*tea|chamomile|lavender", "plant_extract", 0.75),
)

CODE_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"\b(rm|RM)[-_]?(\d{6})\b", _FLAGS),
    re.compile(r"\b(rc|RC)([A-Z0-9]{6,})\b", _FLAGS_I),
    re.compile(r"\b(rd|RD)([A-Z]{2,}[0-9]{3,})\b", _FLAGS_I),
    re.compile(r"\b([A-Z]{2,4})[-_](\d{3,6})\b", _FLAGS),
    re.compile(r"\b([A-Z]{3,}-[A-Z]{2,})\b", _FLAGS),
)

# Group 1 when present (quoted names), otherwise the whole match.
NAME_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"\b[A-Z][a-z]+\s+[A-Z][a-z]+\b", _FLAGS),
    re.compile(r"\b[A-Z][a-z]+\s+Extract\b", _FLAGS_I),
    re.compile(r'"([^"]+)"'),
    re.compile(r"'([^']+)'"),
)

PROPERTY_KEYWORDS: tuple[str, ...] = (
    "moisturizing",
    "anti-aging",
    "whitening",
    "brightening",
    "hydrating",
    "smoothing",
    "firming",
    "soothing",
    "ความชุ่มชื้น",
    "ต้านริ้วรอย",
    "กระจ่างใส",
    "บำรุง",
)

KEYWORD_EXPANSION = MappingProxyType(
    {
        "วัตถุดิบ": ("raw material", "ingredient", "material", "component"),
        "สารสกัด": ("extract", "extraction", "active extract"),
        "รหัสสาร": ("material code", "rm code", "product code", "ingredient code"),
        "ชื่อการค้า": ("trade name", "commercial name", "brand name"),
        "ซัพพลายเออร์": ("supplier", "vendor", "manufacturer", "provider"),
        "ราคา": ("price", "cost", "pricing"),
        "ประโยชน์": ("benefit", "property", "function", "effect"),
        "สูตร": ("formula", "formulation", "recipe", "composition"),
    }
)

# English term -> Thai keyword, for expanding English queries the other way.
REVERSE_EXPANSION = MappingProxyType(
    {
        english: thai
        for thai, variants in KEYWORD_EXPANSION.items()
        for english in variants
    }
)

DESCRIPTION_TAG_MARKERS: tuple[str, ...] = ("material", "ingredient", "formulation")
