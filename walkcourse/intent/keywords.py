"""
Ordered keyword rule tables for deterministic intent inference.

Each table is a sequence of ``(label, keywords)`` rules evaluated top to
bottom; the first rule with any keyword contained in the text wins. The
ordering is part of the contract (e.g. cafe before food, because
"브런치카페" also contains a food word).
"""
from __future__ import annotations

import re
from typing import Sequence

from ..places.models import ActivityBucket

KeywordRule = tuple[str, tuple[str, ...]]

ACTIVITY_RULES: Sequence[KeywordRule] = (
    (ActivityBucket.cafe.value, (
        "카페", "커피", "라떼", "아메리카노", "에스프레소", "카공", "브런치카페", "디카페인",
    )),
    (ActivityBucket.food.value, (
        "맛집", "밥", "식사", "먹", "점심", "저녁", "아침", "야식", "국밥", "라멘", "파스타",
        "고기", "회", "해장", "술안주", "브런치",
    )),
    (ActivityBucket.attraction.value, (
        "볼거리", "구경", "전시", "미술관", "박물관", "산책", "공원", "야경", "명소", "갈만한곳",
        "가볼만한곳", "놀거리",
    )),
)

NOISE_RULES: Sequence[KeywordRule] = (
    ("quiet", ("조용", "한적", "차분", "아늑", "프라이빗", "대화하기")),
    ("lively", ("시끌", "활기", "북적", "힙한", "핫플", "신나는", "왁자지껄")),
)

BUDGET_RULES: Sequence[KeywordRule] = (
    ("high", ("저렴", "가성비", "싼", "싸게", "학생", "부담없", "만원")),
    ("low", ("고급", "럭셔리", "파인다이닝", "오마카세", "플렉스", "특별한 날")),
    ("moderate", ("적당한 가격", "무난", "적당히")),
)

WALKING_RULES: Sequence[KeywordRule] = (
    ("minimal", ("걷기 싫", "조금만 걷", "가까운", "짧은 동선", "힘들", "다리 아")),
    ("active", ("많이 걷", "걷기 좋", "산책", "트레킹", "둘레길", "하이킹", "걸어서")),
)

SEASON_RULES: Sequence[KeywordRule] = (
    ("봄", ("벚꽃", "봄", "꽃구경", "피크닉")),
    ("여름", ("여름", "빙수", "물놀이", "더운", "더위")),
    ("가을", ("단풍", "가을", "억새")),
    ("겨울", ("겨울", "크리스마스", "추운", "눈 오는", "눈오는", "연말")),
)

SPECIAL_CONTEXTS: tuple[str, ...] = (
    "생일", "기념일", "소개팅", "회식", "점심", "저녁", "야식", "브런치", "데이트",
)

VIBE_KEYWORDS: tuple[str, ...] = (
    "감성", "레트로", "조용한", "분위기", "야경", "힙한", "아늑한", "로맨틱", "뷰", "루프탑",
    "데이트", "산책", "야외", "실내", "따뜻한", "시원한", "벚꽃", "단풍", "전통", "이색",
)

PEOPLE_COUNT_RULES: Sequence[tuple[int, tuple[str, ...]]] = (
    (1, ("혼자", "혼밥", "혼술", "나홀로", "1인")),
    (2, ("둘이", "커플", "연인", "여자친구", "남자친구", "데이트", "2인")),
    (3, ("셋이", "세명", "3인")),
    (4, ("넷이", "네명", "4인")),
)

_PEOPLE_COUNT_RE = re.compile(r"(\d+)\s*(?:명|인)")


def has_any_keyword(text: str, keywords: Sequence[str]) -> bool:
    return any(keyword in text for keyword in keywords)


def first_match(text: str, rules: Sequence[KeywordRule]) -> str | None:
    """Return the label of the first rule whose keywords appear in *text*."""
    for label, keywords in rules:
        if has_any_keyword(text, keywords):
            return label
    return None


def infer_activity(text: str) -> str | None:
    return first_match(text.lower(), ACTIVITY_RULES)


def infer_noise(text: str) -> str:
    quiet = has_any_keyword(text, NOISE_RULES[0][1])
    lively = has_any_keyword(text, NOISE_RULES[1][1])
    if quiet and lively:
        return "balanced"
    return first_match(text, NOISE_RULES) or "unknown"


def infer_budget(text: str) -> str:
    return first_match(text, BUDGET_RULES) or "unknown"


def infer_walking(text: str) -> str:
    return first_match(text, WALKING_RULES) or "moderate"


def infer_season(text: str) -> str | None:
    return first_match(text, SEASON_RULES)


def infer_special_context(text: str) -> str | None:
    for context in SPECIAL_CONTEXTS:
        if context in text:
            return context
    return None


def infer_vibes(text: str) -> list[str]:
    return [vibe for vibe in VIBE_KEYWORDS if vibe in text]


def infer_people_count(text: str) -> int | None:
    match = _PEOPLE_COUNT_RE.search(text)
    if match:
        count = int(match.group(1))
        return count if count > 0 else None
    for count, keywords in PEOPLE_COUNT_RULES:
        if has_any_keyword(text, keywords):
            return count
    return None
