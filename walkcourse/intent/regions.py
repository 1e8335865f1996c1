from __future__ import annotations

SEOUL_AREAS: tuple[str, ...] = (
    "강남", "서초", "잠실/송파/강동", "영등포/여의도/강서", "건대/성수/왕십리", "종로/중구",
    "홍대/합정/마포/연남", "용산/이태원/한남", "성북/노원/중랑", "구로/관악/동작", "신촌/연희",
    "창동/도봉산", "회기/청량리", "강동/고덕", "연신내/구파발", "마곡/김포", "미아/수유/북한산",
    "목동/양천", "금천/가산",
)

GYEONGGI_AREAS: tuple[str, ...] = (
    "수원", "성남/분당", "고양/일산", "용인", "부천", "안양/과천", "안산", "화성/동탄", "평택",
    "의정부", "파주", "김포", "광명", "광주", "하남", "시흥", "군포/의왕", "오산", "이천", "안성",
    "양평/여주", "구리/남양주", "포천/동두천", "양주", "가평", "연천",
)

INCHEON_AREAS: tuple[str, ...] = (
    "부평", "송도/연수", "계양", "남동구", "서구/검단", "중구/동구", "강화/옹진",
)

BUSAN_AREAS: tuple[str, ...] = (
    "서면", "해운대", "광안리/수영", "센텀시티", "남포동/중앙동", "동래/온천장", "사상/덕천", "기장",
    "사하/다대포", "연산/토곡",
)

PROVINCES: tuple[str, ...] = (
    "서울", "경기", "인천", "부산", "대구", "대전", "광주", "울산", "세종", "강원", "충북", "충남",
    "전북", "전남", "경북", "경남", "제주",
)

ALL_AREAS: tuple[str, ...] = SEOUL_AREAS + GYEONGGI_AREAS + INCHEON_AREAS + BUSAN_AREAS + PROVINCES
REGION_WHITELIST: frozenset[str] = frozenset(ALL_AREAS)

# Station, neighbourhood and landmark names that users type instead of an area.
REGION_ALIASES: dict[str, str] = {}

_ALIAS_GROUPS: dict[str, tuple[str, ...]] = {
    "구로/관악/동작": ("서울대입구", "신림", "봉천", "낙성대", "사당", "이수", "노량진", "구로디지털단지"),
    "강남": ("압구정", "선릉", "역삼", "삼성", "논현", "학동", "선정릉", "청담", "도산", "가로수길", "코엑스", "봉은사"),
    "서초": ("교대", "방배", "서래마을", "양재", "반포", "고속터미널", "내방"),
    "종로/중구": ("을지로", "명동", "광화문", "경복궁", "북촌", "서촌", "익선동", "동대문", "안국", "인사동", "충무로", "시청", "종로"),
    "건대/성수/왕십리": ("뚝섬", "왕십리", "성수", "건대", "건국대", "서울숲", "행당"),
    "영등포/여의도/강서": ("여의나루", "여의도", "영등포", "당산", "발산", "우장산", "김포공항", "가양"),
    "홍대/합정/마포/연남": ("홍대", "합정", "상수", "망원", "연남", "마포", "공덕", "애오개"),
    "용산/이태원/한남": ("이태원", "한남", "용산", "해방촌", "경리단길", "녹사평", "효창"),
    "잠실/송파/강동": ("잠실", "송파", "천호", "올림픽공원", "석촌", "방이", "문정", "가든파이브"),
    "신촌/연희": ("신촌", "이대", "연희", "서강"),
    "성북/노원/중랑": ("성북", "노원", "중랑", "혜화", "대학로", "한성대", "길음", "상계"),
    "금천/가산": ("가산", "가산디지털단지", "금천"),
    "회기/청량리": ("회기", "청량리", "외대", "경희대"),
    "창동/도봉산": ("창동", "도봉산", "쌍문"),
    "연신내/구파발": ("연신내", "불광", "구파발"),
    "미아/수유/북한산": ("미아", "수유", "북한산"),
    "목동/양천": ("목동", "양천"),
}

for _area, _aliases in _ALIAS_GROUPS.items():
    for _alias in _aliases:
        REGION_ALIASES[_alias] = _area


def normalize_region(value: str | None) -> str | None:
    """Map a raw region/landmark string onto the whitelist, or ``None``."""
    if not value:
        return None
    cleaned = value.strip()
    if cleaned.endswith("역") and len(cleaned) > 1:
        cleaned = cleaned[:-1]
    if cleaned in REGION_WHITELIST:
        return cleaned
    if cleaned in REGION_ALIASES:
        return REGION_ALIASES[cleaned]
    for area in ALL_AREAS:
        if "/" in area and cleaned in area.split("/"):
            return area
    return None


def find_region_in_text(text: str) -> str | None:
    """Scan free text for the most specific area or landmark mention."""
    # Longest alias first so "가산디지털단지" wins over "가산".
    for alias in sorted(REGION_ALIASES, key=len, reverse=True):
        if alias in text:
            return REGION_ALIASES[alias]
    for area in sorted(ALL_AREAS, key=len, reverse=True):
        names = area.split("/") if "/" in area else [area]
        if any(name in text for name in names):
            return area
    return None
