"""Hand-written parameter descriptors and executors for the chat agent's search tools."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Literal

from materials_rag.exceptions import ToolArgumentError
from materials_rag.models.domain import ALL_FDA, IN_STOCK, CollectionOverride, Match
from materials_rag.models.schemas import MaterialHit, ToolResult
from materials_rag.observability.logger import get_logger
from materials_rag.retrieval.service import RetrievalService

logger = get_logger("search_tools")

ParamType = Literal["string", "integer", "number", "boolean", "array"]

_MISSING = object()
_TRUE = {"true", "1", "yes", "y"}
_FALSE = {"false", "0", "no", "n", ""}


@dataclass(frozen=True)
class ToolParameter:
    name: str
    type: ParamType
    required: bool = False
    default: Any = None
    description: str = ""
    minimum: float | None = None
    maximum: float | None = None

    def coerce(self, value: Any) -> Any:
        try:
            converted = _CONVERTERS[self.type](value)
        except (TypeError, ValueError) as e:
            raise ToolArgumentError(
                f"Parameter '{self.name}' expects {self.type}, got {value!r}"
            ) from e
        if self.type in ("integer", "number"):
            if self.minimum is not None and converted < self.minimum:
                converted = type(converted)(self.minimum)
            if self.maximum is not None and converted > self.maximum:
                converted = type(converted)(self.maximum)
        return converted

    def to_schema(self) -> dict:
        schema: dict[str, Any] = {"type": self.type, "description": self.description}
        if self.type == "array":
            schema["items"] = {"type": "string"}
        if self.minimum is not None:
            schema["minimum"] = self.minimum
        if self.maximum is not None:
            schema["maximum"] = self.maximum
        if self.default not in (None, ()):
            schema["default"] = self.default
        return schema


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("boolean is not an integer")
    if isinstance(value, str):
        value = float(value.strip())
    if isinstance(value, float) and not value.is_integer():
        raise ValueError("not a whole number")
    return int(value)


def _to_number(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError("boolean is not a number")
    return float(value.strip() if isinstance(value, str) else value)


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError("not a boolean")


def _to_array(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        text = value.strip()
        if text.startswith("["):
            value = json.loads(text)
        else:
            return [part.strip() for part in text.split(",") if part.strip()]
    if not isinstance(value, (list, tuple)):
        raise ValueError("not a list")
    return [str(item).strip() for item in value if str(item).strip()]


def _to_string(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        raise ValueError("not a string")
    return str(value).strip()


_CONVERTERS = {
    "string": _to_string,
    "integer": _to_int,
    "number": _to_number,
    "boolean": _to_bool,
    "array": _to_array,
}


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    parameters: tuple[ToolParameter, ...]
    override: CollectionOverride

    def coerce_arguments(self, raw: dict | None) -> dict:
        """Typed arguments with defaults applied; unknown keys are dropped."""
        raw = raw or {}
        args: dict[str, Any] = {}
        for param in self.parameters:
            value = raw.get(param.name, _MISSING)
            if value is _MISSING or value is None:
                if param.required:
                    raise ToolArgumentError(
                        f"Missing required parameter '{param.name}' for {self.name}"
                    )
                args[param.name] = param.default
                continue
            args[param.name] = param.coerce(value)
        for param in self.parameters:
            if param.required and param.type == "string" and not args[param.name]:
                raise ToolArgumentError(f"Parameter '{param.name}' for {self.name} is empty")
        return args

    def to_function_schema(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": {
                "type": "object",
                "properties": {p.name: p.to_schema() for p in self.parameters},
                "required": [p.name for p in self.parameters if p.required],
            },
        }


_COMMON_PARAMETERS = (
    ToolParameter(
        "limit",
        "integer",
        default=5,
        minimum=1,
        maximum=10,
        description="Number of results to return (1-10).",
    ),
    ToolParameter(
        "offset",
        "integer",
        default=0,
        minimum=0,
        description="Skip this many results, for the next page.",
    ),
    ToolParameter(
        "exclude_codes",
        "array",
        default=(),
        description='Material codes to leave out, e.g. ["RM000943", "RM001127"].',
    ),
)

SEARCH_FDA_DATABASE = ToolDefinition(
    name="search_fda_database",
    description=(
        "Search every FDA-registered cosmetic ingredient by code, name, INCI name or benefit. "
        "Use offset for more results and exclude_codes to skip earlier ones."
    ),
    parameters=(
        ToolParameter(
            "query",
            "string",
            required=True,
            description='Thai or English search text, e.g. "vitamin C", "ความชุ่มชื้น", "RM001234".',
        ),
        *_COMMON_PARAMETERS,
    ),
    override=ALL_FDA,
)

CHECK_STOCK_AVAILABILITY = ToolDefinition(
    name="check_stock_availability",
    description=(
        "Search the materials currently in stock and ready to order. "
        "Use offset for more results and exclude_codes to skip earlier ones."
    ),
    parameters=(
        ToolParameter(
            "query",
            "string",
            required=True,
            description='Material to check, e.g. "niacinamide", "peptide", "moisturizer".',
        ),
        *_COMMON_PARAMETERS,
    ),
    override=IN_STOCK,
)

TOOLS: dict[str, ToolDefinition] = {
    tool.name: tool for tool in (SEARCH_FDA_DATABASE, CHECK_STOCK_AVAILABILITY)
}


def function_schemas() -> list[dict]:
    return [tool.to_function_schema() for tool in TOOLS.values()]


class SearchToolExecutor:
    def __init__(self, service: RetrievalService) -> None:
        self._service = service

    async def execute(self, tool_name: str, raw_arguments: dict | None) -> ToolResult:
        tool = TOOLS.get(tool_name)
        if tool is None:
            raise ToolArgumentError(f"Unknown tool '{tool_name}'")
        args = tool.coerce_arguments(raw_arguments)

        excluded = {code.upper() for code in args["exclude_codes"]}
        end = args["offset"] + args["limit"]
        # One past the page, so has_more is known without a second search.
        window = end + len(excluded) + 1
        outcome = await self._service.retrieve(args["query"], override=tool.override, top_k=window)
        kept = [m for m in outcome.matches if (m.business_code or "").upper() not in excluded]
        page = kept[args["offset"] : end]

        logger.info(
            "tool_executed",
            tool=tool_name,
            total=len(kept),
            returned=len(page),
            excluded=len(excluded),
        )
        return ToolResult(
            tool=tool_name,
            query=args["query"],
            total=len(kept),
            results=[_to_hit(m) for m in page],
            has_more=len(kept) > end,
            search_mode=outcome.routing.search_mode if outcome.routing else None,
        )


def _to_hit(match: Match) -> MaterialHit:
    meta = match.metadata
    return MaterialHit(
        rm_code=meta.get("rm_code") or None,
        trade_name=meta.get("trade_name") or None,
        inci_name=meta.get("inci_name") or None,
        supplier=meta.get("supplier") or None,
        source=match.source,
        score=match.score,
        match_type=match.match_type,
    )
