from __future__ import annotations

import json
import logging
import re
from datetime import date
from typing import Any

from ..llm.config import DEFAULT_LLM_CONFIG, LLMConfig
from ..llm.groq_client import complete_text
from ..places.models import ActivityBucket
from ..recommendations.modes import mode_from_people_count
from .cache import cache_get, cache_set
from .keywords import (
    infer_activity,
    infer_budget,
    infer_noise,
    infer_people_count,
    infer_season,
    infer_special_context,
    infer_vibes,
    infer_walking,
)
from .models import (
    BUDGET_VALUES,
    NOISE_VALUES,
    VALID_MODES,
    WALKING_VALUES,
    Intent,
    IntentOverrides,
    IntentResult,
)
from .regions import find_region_in_text, normalize_region
from .season import SEASONS, detect_current_season

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# LLM Prompt
# ---------------------------------------------------------------------------

INTENT_PROMPT = """\
You are a Korean place recommendation intent parser.

Given a user query in Korean, extract structured intent. The user might want:
- A single place recommendation (맛집, 카페, 술집, 디저트 등)
- A multi-stop walking course (코스, 투어, 데이트코스 등)

Return ONLY valid JSON with this exact schema:
{
  "response_type": "single" | "course",
  "region": string | null,
  "vibe": string[],
  "activity_type": "맛집" | "카페" | "볼거리" | null,
  "people_count": number | null,
  "season": "봄" | "여름" | "가을" | "겨울" | null,
  "mode": "solo" | "date" | "group" | "party" | null,
  "special_context": string | null,
  "noise_preference": "quiet" | "lively" | "balanced" | "unknown",
  "budget_sensitivity": "low" | "moderate" | "high" | "unknown",
  "walking_preference": "minimal" | "moderate" | "active"
}

Region must be an administrative area such as 강남, 서초, 종로/중구, \
홍대/합정/마포/연남, 용산/이태원/한남, 건대/성수/왕십리, 잠실/송파/강동, \
해운대, 서면 or a province (서울, 경기, 부산, ...). Map stations and \
landmarks to their area (압구정 → 강남, 을지로 → 종로/중구, \
서울대입구 → 구로/관악/동작). Use null if you cannot map it.

Rules:
- "오늘 점심 뭐 먹을까?" → response_type "single", activity_type "맛집"
- "커피 마시고 싶다" → response_type "single", activity_type "카페"
- "강남 데이트 코스 짜줘" → response_type "course"
- "홍대 카페 투어" → response_type "course", activity_type "카페"
- If unclear, default to "single"
- Extract season from context ("벚꽃" → "봄", "눈" → "겨울")
- vibe captures mood/atmosphere keywords
- budget_sensitivity "high" means the user wants to spend little
- Return null for fields you cannot determine
- Output ONLY JSON. No explanation."""


# ---------------------------------------------------------------------------
# Reply parsing
# ---------------------------------------------------------------------------

_FENCE_RE = re.compile(r"^```(?:json)?\s*\n?(.*?)\n?```$", re.DOTALL)


def extract_json_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` block in *text*, fences stripped."""
    content = text.strip()
    fence = _FENCE_RE.match(content)
    if fence:
        content = fence.group(1).strip()

    start = content.find("{")
    if start < 0:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(content)):
        ch = content[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return content[start:i + 1]
    return None


def parse_llm_reply(reply: str) -> dict[str, Any] | None:
    block = extract_json_object(reply)
    if block is None:
        return None
    try:
        parsed = json.loads(block)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


# ---------------------------------------------------------------------------
# Field normalisation
# ---------------------------------------------------------------------------


def normalize_activity(query: str, raw_activity: Any, response_type: str) -> str | None:
    """Collapse free-form activity hints onto a bucket label.

    A course request without any activity keyword stays ``None`` so that
    retrieval keeps every bucket available for a mixed itinerary.
    """
    extra = raw_activity if isinstance(raw_activity, str) else ""
    label = infer_activity(f"{query} {extra}")
    if label:
        return label
    if response_type == "course":
        return None
    return ActivityBucket.attraction.value


def _positive_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int) and value > 0:
        return value
    if isinstance(value, float) and value.is_integer() and value > 0:
        return int(value)
    return None


def _choice(value: Any, allowed: tuple[str, ...]) -> str | None:
    return value if isinstance(value, str) and value in allowed else None


def _fields_from_llm(parsed: dict[str, Any], query: str) -> dict[str, Any]:
    raw_vibe = parsed.get("vibe")
    vibe = [v for v in raw_vibe if isinstance(v, str) and v.strip()] if isinstance(raw_vibe, list) else []
    raw_region = parsed.get("region")
    special = parsed.get("special_context")

    return {
        "response_type": "course" if parsed.get("response_type") == "course" else "single",
        "region": normalize_region(raw_region) if isinstance(raw_region, str) else None,
        "vibe": vibe,
        "raw_activity": parsed.get("activity_type"),
        "people_count": _positive_int(parsed.get("people_count")),
        "season": _choice(parsed.get("season"), SEASONS) or infer_season(query),
        "mode": _choice(parsed.get("mode"), VALID_MODES),
        "special_context": special if isinstance(special, str) and special.strip() else None,
        "noise_preference": _choice(parsed.get("noise_preference"), NOISE_VALUES) or infer_noise(query),
        "budget_sensitivity": _choice(parsed.get("budget_sensitivity"), BUDGET_VALUES) or infer_budget(query),
        "walking_preference": _choice(parsed.get("walking_preference"), WALKING_VALUES) or infer_walking(query),
    }


def _fallback_fields(query: str) -> dict[str, Any]:
    return {
        "response_type": "single",
        "region": find_region_in_text(query),
        "vibe": infer_vibes(query),
        "raw_activity": None,
        "people_count": infer_people_count(query),
        "season": infer_season(query),
        "mode": None,
        "special_context": infer_special_context(query),
        "noise_preference": infer_noise(query),
        "budget_sensitivity": infer_budget(query),
        "walking_preference": infer_walking(query),
    }


def fallback_intent(query: str, today: date | None = None) -> Intent:
    """Deterministic keyword-only intent, used when the LLM is unusable."""
    return apply_overrides(query, _fallback_fields(query), IntentOverrides(), today)


# ---------------------------------------------------------------------------
# Overrides & defaults
# ---------------------------------------------------------------------------


def apply_overrides(
    query: str,
    fields: dict[str, Any],
    overrides: IntentOverrides,
    today: date | None = None,
) -> Intent:
    response_type = overrides.response_type or fields["response_type"]
    activity_type = normalize_activity(query, fields["raw_activity"], response_type)

    region = normalize_region(overrides.region) if overrides.region else fields["region"]
    people_count = overrides.people_count or fields["people_count"]
    mode = overrides.mode or fields["mode"]

    if response_type == "course":
        people_count = people_count or 2
        mode = mode or mode_from_people_count(people_count)
    else:
        people_count = people_count or 1
        mode = mode or "solo"

    return Intent(
        response_type=response_type,
        region=region,
        vibe=list(fields["vibe"]),
        activity_type=activity_type,
        people_count=people_count,
        season=fields["season"] or detect_current_season(today),
        mode=mode,
        special_context=fields["special_context"],
        noise_preference=fields["noise_preference"],
        budget_sensitivity=fields["budget_sensitivity"],
        walking_preference=fields["walking_preference"],
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def resolve_intent(
    query: str,
    overrides: IntentOverrides | None = None,
    config: LLMConfig = DEFAULT_LLM_CONFIG,
    today: date | None = None,
) -> IntentResult:
    """Resolve a raw query into a defaulted :class:`Intent`.

    Never raises for LLM trouble: call failures, timeouts and undecodable
    replies all fall back to keyword inference and are reported through
    ``parse_errors`` only.
    """
    overrides = overrides or IntentOverrides()
    parse_errors: list[str] = []

    parsed = cache_get(query)
    if parsed is None:
        try:
            reply = complete_text(INTENT_PROMPT, f'Parse this query: "{query}"', config)
        except Exception:
            logger.warning("Intent LLM call failed, using keyword fallback", exc_info=True)
            parse_errors.append("llm_call_failed")
        else:
            parsed = parse_llm_reply(reply)
            if parsed is None:
                logger.warning("Intent LLM reply had no decodable JSON object, using keyword fallback")
                parse_errors.append("llm_json_parse_failed")
            else:
                cache_set(query, parsed)

    fields = _fields_from_llm(parsed, query) if parsed is not None else _fallback_fields(query)

    if not fields["region"]:
        parse_errors.append("region")
    effective_type = overrides.response_type or fields["response_type"]
    if effective_type == "course" and not fields["people_count"]:
        parse_errors.append("people_count")

    intent = apply_overrides(query, fields, overrides, today)
    return IntentResult(intent=intent, parse_errors=parse_errors)
