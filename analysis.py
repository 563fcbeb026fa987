"""
Location analysis: prompts, localized fallbacks and response normalization.

Pipeline for a model reply:
  strip_code_fence()  -> remove ```json ... ``` wrapping
  parse_model_output() -> ParseResult (ok + dict, or failure + reason)
  normalize_analysis() -> always a complete AnalysisResult

Everything here is pure: no I/O, no globals that change after import.
"""

import json
import math
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

DEFAULT_LANGUAGE = "en"
CATEGORIES = ("safety", "accessibility", "convenience")
DEFAULT_RATING = 3
MIN_RATING, MAX_RATING = 1, 5


def _frozen(table: Dict[str, Dict[str, Dict[str, Any]]]) -> Mapping[str, Mapping[str, Mapping[str, Any]]]:
    return MappingProxyType({
        lang: MappingProxyType({cat: MappingProxyType(dict(entry)) for cat, entry in result.items()})
        for lang, result in table.items()
    })


# ------------------------------------------------------------------
# Localized placeholder analyses
# ------------------------------------------------------------------
FALLBACK_BY_LANGUAGE = _frozen({
    "en": {
        "safety": {
            "rating": 3,
            "description": "Demo analysis: configure OPENAI_API_KEY to receive live location-specific safety insights.",
        },
        "accessibility": {
            "rating": 3,
            "description": "Demo analysis: accessibility details will appear here when the API is configured.",
        },
        "convenience": {
            "rating": 3,
            "description": "Demo analysis: convenience and lifestyle details will appear here when the API is configured.",
        },
    },
    "zh": {
        "safety": {
            "rating": 3,
            "description": "演示分析：配置 OPENAI_API_KEY 后可获取实时且与地点相关的安全性洞察。",
        },
        "accessibility": {
            "rating": 3,
            "description": "演示分析：配置 API 后，这里将显示该位置的便利性细节。",
        },
        "convenience": {
            "rating": 3,
            "description": "演示分析：配置 API 后，这里将显示生活方式与周边配套细节。",
        },
    },
    "es": {
        "safety": {
            "rating": 3,
            "description": "Análisis de demostración: configura OPENAI_API_KEY para obtener información real de seguridad por ubicación.",
        },
        "accessibility": {
            "rating": 3,
            "description": "Análisis de demostración: aquí aparecerán detalles de accesibilidad cuando la API esté configurada.",
        },
        "convenience": {
            "rating": 3,
            "description": "Análisis de demostración: aquí aparecerán detalles de conveniencia y estilo de vida cuando la API esté configurada.",
        },
    },
})

SUPPORTED_LANGUAGES = tuple(FALLBACK_BY_LANGUAGE)


# ------------------------------------------------------------------
# Prompt templates
# ------------------------------------------------------------------
_JSON_SHAPE = (
    '{"safety": {"rating": <1-5>, "description": "..."}, '
    '"accessibility": {"rating": <1-5>, "description": "..."}, '
    '"convenience": {"rating": <1-5>, "description": "..."}}'
)

PROMPT_TEMPLATES = MappingProxyType({
    "en": (
        "You are a location analysis expert. Analyze this location: {address}.\n"
        "Provide a brief description and rating (1-5) for each of: "
        "1) Safety 2) Accessibility 3) Convenience & Lifestyle.\n"
        "Respond only with JSON in this form: {shape}"
    ),
    "zh": (
        "你是一个位置分析专家。请分析该位置：{address}。\n"
        "请分别给出以下三项的简要描述与评分（1-5）：1）安全性 2）便利性 3）生活方式。\n"
        "请只返回如下格式的 JSON，描述使用中文：{shape}"
    ),
    "es": (
        "Eres un experto en análisis de ubicaciones. Analiza esta ubicación: {address}.\n"
        "Devuelve una descripción breve y una calificación (1-5) para: "
        "1) Seguridad 2) Accesibilidad 3) Conveniencia y estilo de vida.\n"
        "Responde solo con JSON con esta forma, con descripciones en español: {shape}"
    ),
})


def _rating_schema() -> Dict[str, Any]:
    return {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "rating": {"type": "number"},
            "description": {"type": "string"},
        },
        "required": ["rating", "description"],
    }


# JSON schema for providers with a schema-enforced response mode.
ANALYSIS_SCHEMA = {
    "name": "rentwise_location_analysis",
    "schema": {
        "type": "object",
        "additionalProperties": False,
        "properties": {cat: _rating_schema() for cat in CATEGORIES},
        "required": list(CATEGORIES),
    },
}


def resolve_language(language: Any) -> str:
    """Map any requested language to a supported code; unknown -> 'en'."""
    if isinstance(language, str):
        code = language.strip().lower()
        if code in FALLBACK_BY_LANGUAGE:
            return code
    return DEFAULT_LANGUAGE


def get_fallback(language: Any) -> Dict[str, Dict[str, Any]]:
    """Return a fresh copy of the placeholder analysis for `language`."""
    table = FALLBACK_BY_LANGUAGE[resolve_language(language)]
    return {cat: dict(table[cat]) for cat in CATEGORIES}


def build_prompt(address: str, language: Any) -> str:
    template = PROMPT_TEMPLATES[resolve_language(language)]
    return template.format(address=address, shape=_JSON_SHAPE)


# ------------------------------------------------------------------
# Parsing
# ------------------------------------------------------------------
_FENCE_OPEN_RE = re.compile(r"^\s*```[A-Za-z0-9_-]*[ \t]*\n?")
_FENCE_CLOSE_RE = re.compile(r"\n?[ \t]*```\s*$")


@dataclass(frozen=True)
class ParseResult:
    """Outcome of parsing model text: either `value` or an `error` reason."""

    ok: bool
    value: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: Dict[str, Any]) -> "ParseResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> "ParseResult":
        return cls(ok=False, error=error)


def strip_code_fence(text: str) -> str:
    """Remove a leading ```lang opener and trailing ``` closer, if present."""
    cleaned = _FENCE_OPEN_RE.sub("", text, count=1)
    cleaned = _FENCE_CLOSE_RE.sub("", cleaned, count=1)
    return cleaned.strip()


def parse_model_output(raw: Any) -> ParseResult:
    if not isinstance(raw, str):
        return ParseResult.failure("model output is not text")
    cleaned = strip_code_fence(raw)
    if not cleaned:
        return ParseResult.failure("model output is empty")
    try:
        value = json.loads(cleaned)
    except (ValueError, RecursionError) as e:
        return ParseResult.failure(f"invalid JSON: {e}")
    if not isinstance(value, dict):
        return ParseResult.failure(f"expected a JSON object, got {type(value).__name__}")
    return ParseResult.success(value)


# ------------------------------------------------------------------
# Normalization
# ------------------------------------------------------------------
def _as_number(value: Any) -> Optional[float]:
    # bool is an int subclass; a True rating is not a score.
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            return math.inf
    if isinstance(value, str) and value.strip():
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def clamp_rating(value: Any) -> int:
    """
    Coerce to a 1-5 integer; non-numeric or non-finite -> 3.

    None, "", booleans and lists count as non-numeric here, so they score 3
    rather than being read as 0 or 1 and clamped.
    """
    number = _as_number(value)
    if number is None or not math.isfinite(number):
        return DEFAULT_RATING
    rounded = math.floor(number + 0.5)
    return max(MIN_RATING, min(MAX_RATING, rounded))


def _clean_description(value: Any, fallback: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return fallback


def normalize_analysis(raw: Any, language: Any) -> Dict[str, Dict[str, Any]]:
    """
    Repair arbitrary parsed model output into a complete AnalysisResult.

    Never raises. Missing or malformed categories keep rating 3 and the
    localized placeholder description.
    """
    fallback = FALLBACK_BY_LANGUAGE[resolve_language(language)]
    source = raw if isinstance(raw, dict) else {}

    result = {}
    for cat in CATEGORIES:
        entry = source.get(cat)
        if not isinstance(entry, dict):
            entry = {}
        result[cat] = {
            "rating": clamp_rating(entry.get("rating")),
            "description": _clean_description(entry.get("description"), fallback[cat]["description"]),
        }
    return result
