import json
from datetime import date
from unittest.mock import MagicMock, patch

from walkcourse.intent.cache import clear_cache, get_cache_stats
from walkcourse.intent.keywords import infer_activity, infer_noise, infer_people_count, infer_walking
from walkcourse.intent.models import IntentOverrides
from walkcourse.intent.regions import find_region_in_text, normalize_region
from walkcourse.intent.resolver import (
    extract_json_object,
    fallback_intent,
    normalize_activity,
    parse_llm_reply,
    resolve_intent,
)
from walkcourse.intent.season import detect_current_season, season_boost
from walkcourse.llm.config import LLMConfig

ENABLED_CONFIG = LLMConfig(api_key="test-key", enabled=True)
DISABLED_CONFIG = LLMConfig(api_key="test-key", enabled=False)
WINTER_DAY = date(2026, 1, 10)


def _mock_groq_response(content: str) -> MagicMock:
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    return response


COURSE_REPLY = json.dumps({
    "response_type": "course",
    "region": "압구정",
    "vibe": ["로맨틱"],
    "activity_type": None,
    "people_count": 2,
    "season": "봄",
    "mode": None,
    "special_context": "데이트",
    "noise_preference": "quiet",
    "budget_sensitivity": "unknown",
    "walking_preference": "moderate",
}, ensure_ascii=False)


# ── Reply parsing ────────────────────────────────────────────────────────


def test_extract_json_object_strips_fences():
    assert extract_json_object('```json\n{"a": 1}\n```') == '{"a": 1}'


def test_extract_json_object_ignores_braces_inside_strings():
    reply = 'Sure! {"region": "강남", "note": "a } b"} hope that helps {'
    assert json.loads(extract_json_object(reply)) == {"region": "강남", "note": "a } b"}


def test_extract_json_object_nested():
    reply = 'prefix {"outer": {"inner": [1, 2]}, "x": "y"} suffix'
    assert json.loads(extract_json_object(reply)) == {"outer": {"inner": [1, 2]}, "x": "y"}


def test_parse_llm_reply_rejects_non_objects():
    assert parse_llm_reply("no json here") is None
    assert parse_llm_reply("{not: valid json}") is None
    assert parse_llm_reply("{unterminated") is None


# ── Resolver ─────────────────────────────────────────────────────────────


@patch("walkcourse.llm.groq_client.Groq")
def test_resolve_intent_from_llm_reply(mock_groq_cls):
    clear_cache()
    mock_groq_cls.return_value.chat.completions.create.return_value = _mock_groq_response(
        f"```json\n{COURSE_REPLY}\n```"
    )

    result = resolve_intent("압구정 데이트 코스 짜줘", config=ENABLED_CONFIG, today=WINTER_DAY)

    intent = result.intent
    assert result.parse_errors == []
    assert intent.response_type == "course"
    assert intent.region == "강남"
    assert intent.people_count == 2
    assert intent.mode == "date"
    assert intent.season == "봄"
    assert intent.activity_type is None
    assert intent.noise_preference == "quiet"


@patch("walkcourse.llm.groq_client.Groq")
def test_resolve_intent_falls_back_on_api_error(mock_groq_cls):
    clear_cache()
    mock_groq_cls.return_value.chat.completions.create.side_effect = Exception("API timeout")

    result = resolve_intent("홍대 조용한 카페 추천", config=ENABLED_CONFIG, today=WINTER_DAY)

    intent = result.intent
    assert result.parse_errors == ["llm_call_failed"]
    assert intent.response_type == "single"
    assert intent.region == "홍대/합정/마포/연남"
    assert intent.activity_type == "카페"
    assert intent.noise_preference == "quiet"
    assert intent.people_count == 1
    assert intent.mode == "solo"
    assert intent.season == "겨울"


@patch("walkcourse.llm.groq_client.Groq")
def test_bad_json_is_flagged_and_not_cached(mock_groq_cls):
    clear_cache()
    create = mock_groq_cls.return_value.chat.completions.create
    create.return_value = _mock_groq_response("I think you want coffee.")

    first = resolve_intent("강남 커피", config=ENABLED_CONFIG)
    second = resolve_intent("강남 커피", config=ENABLED_CONFIG)

    assert "llm_json_parse_failed" in first.parse_errors
    assert "llm_json_parse_failed" in second.parse_errors
    assert create.call_count == 2


@patch("walkcourse.llm.groq_client.Groq")
def test_successful_parse_is_cached(mock_groq_cls):
    clear_cache()
    create = mock_groq_cls.return_value.chat.completions.create
    create.return_value = _mock_groq_response(COURSE_REPLY)

    resolve_intent("압구정 데이트 코스 짜줘", config=ENABLED_CONFIG)
    resolve_intent("  압구정   데이트 코스 짜줘 ", config=ENABLED_CONFIG)

    assert create.call_count == 1
    assert get_cache_stats()["hits"] == 1


def test_disabled_llm_uses_keyword_fallback():
    clear_cache()
    result = resolve_intent("성수 맛집", config=DISABLED_CONFIG)

    assert result.parse_errors == ["llm_call_failed"]
    assert result.intent.region == "건대/성수/왕십리"
    assert result.intent.activity_type == "맛집"


def test_missing_region_is_flagged():
    clear_cache()
    result = resolve_intent("아무데나 갈만한 곳", config=DISABLED_CONFIG)

    assert result.intent.region is None
    assert "region" in result.parse_errors


def test_course_override_without_people_count_defaults_and_flags():
    clear_cache()
    result = resolve_intent(
        "종로 구경",
        overrides=IntentOverrides(response_type="course"),
        config=DISABLED_CONFIG,
    )

    assert result.intent.response_type == "course"
    assert result.intent.people_count == 2
    assert result.intent.mode == "date"
    assert "people_count" in result.parse_errors


def test_region_override_is_normalized():
    clear_cache()
    mapped = resolve_intent("맛집", overrides=IntentOverrides(region="을지로"), config=DISABLED_CONFIG)
    unmapped = resolve_intent("맛집", overrides=IntentOverrides(region="화성시청"), config=DISABLED_CONFIG)

    assert mapped.intent.region == "종로/중구"
    assert unmapped.intent.region is None


def test_mode_and_people_overrides_win():
    clear_cache()
    result = resolve_intent(
        "강남 데이트 코스",
        overrides=IntentOverrides(response_type="course", people_count=6, mode="group"),
        config=DISABLED_CONFIG,
    )

    assert result.intent.people_count == 6
    assert result.intent.mode == "group"


def test_fallback_intent_single_defaults():
    intent = fallback_intent("오늘 뭐하지", today=date(2026, 7, 1))

    assert intent.response_type == "single"
    assert intent.activity_type == "볼거리"
    assert intent.people_count == 1
    assert intent.mode == "solo"
    assert intent.season == "여름"
    assert intent.noise_preference == "unknown"
    assert intent.budget_sensitivity == "unknown"
    assert intent.walking_preference == "moderate"


# ── Keyword tables, regions, seasons ─────────────────────────────────────


def test_activity_rules_check_cafe_before_food():
    assert infer_activity("브런치카페 가고 싶어") == "카페"
    assert infer_activity("브런치 먹자") == "맛집"
    assert infer_activity("전시 보러 가자") == "볼거리"
    assert infer_activity("그냥 심심해") is None


def test_course_words_leave_activity_open():
    assert infer_activity("강남 데이트코스") is None
    assert normalize_activity("강남 데이트코스 짜줘", None, "course") is None
    assert normalize_activity("강남 데이트코스 짜줘", None, "single") == "볼거리"


def test_noise_both_directions_is_balanced():
    assert infer_noise("조용하면서도 활기") == "balanced"
    assert infer_noise("시끌벅적한 곳") == "lively"
    assert infer_noise("아무거나") == "unknown"


def test_walking_and_people_count_inference():
    assert infer_walking("많이 걷는 코스") == "active"
    assert infer_walking("걷기 싫어") == "minimal"
    assert infer_people_count("친구 5명이서") == 5
    assert infer_people_count("혼자 갈만한") == 1


def test_normalize_region():
    assert normalize_region("강남역") == "강남"
    assert normalize_region("성수") == "건대/성수/왕십리"
    assert normalize_region("부산") == "부산"
    assert normalize_region("Mars") is None
    assert normalize_region("") is None


def test_find_region_prefers_longest_alias():
    assert find_region_in_text("가산디지털단지 근처 점심") == "금천/가산"
    assert find_region_in_text("해운대 바다") == "해운대"
    assert find_region_in_text("아무데나") is None


def test_detect_current_season_boundaries():
    assert detect_current_season(date(2026, 2, 28)) == "겨울"
    assert detect_current_season(date(2026, 3, 1)) == "봄"
    assert detect_current_season(date(2026, 8, 31)) == "여름"
    assert detect_current_season(date(2026, 11, 30)) == "가을"
    assert detect_current_season(date(2026, 12, 1)) == "겨울"


def test_season_boost_is_clamped():
    assert season_boost("봄", ["벚꽃", "산책", "피크닉", "야외"], "공원") == 0.3
    assert season_boost("겨울", ["야외", "산책"], None) < 0
    assert season_boost(None, ["벚꽃"], "공원") == 0.0
