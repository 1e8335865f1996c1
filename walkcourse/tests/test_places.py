import pandas as pd

from walkcourse.intent.models import Intent
from walkcourse.places.buckets import classify_place, matches_activity
from walkcourse.places.models import ActivityBucket, Place
from walkcourse.places.retriever import build_place_query, is_specific_category, retrieve_places
from walkcourse.places.store import PlaceQuery, PlaceStore


def _place(pid: str, **kwargs) -> dict:
    record = {
        "id": pid,
        "name": f"Place {pid}",
        "region": "강남",
        "province": "서울",
        "lat": 37.50,
        "lon": 127.03,
        "rating": 4.0,
    }
    record.update(kwargs)
    return record


SAMPLE_PLACES = [
    _place("f1", category_main="밥", category_sub="한식", rating=4.5),
    _place("c1", category_main="카페", category_sub="디저트카페", rating=4.8),
    _place("a1", category_main="전시/문화", category_sub="미술관", rating=4.2),
    _place("f2", category_main="면", category_sub="라멘", rating=4.5, tags='["웨이팅", "라멘"]'),
    _place("h1", region="홍대/합정/마포/연남", category_main="카페", rating=5.0),
    _place("nocoords", lat=None, lon=None, category_main="밥"),
]


def _store() -> PlaceStore:
    return PlaceStore.from_records(SAMPLE_PLACES)


# ── Buckets ──────────────────────────────────────────────────────────────


def test_cafe_memo_mentioning_food_is_still_cafe():
    place = Place(id="x", name="x", lat=0, lon=0, category_main="카페", memo="파스타 맛집 같은 카페")
    assert classify_place(place) == ActivityBucket.cafe


def test_cafe_hint_in_free_text_beats_food_category():
    place = Place(id="x", name="x", lat=0, lon=0, category_main="디저트", tags=["커피"])
    assert classify_place(place) == ActivityBucket.cafe


def test_food_category_and_default_attraction():
    food = Place(id="f", name="f", lat=0, lon=0, category_main="국물")
    other = Place(id="a", name="a", lat=0, lon=0, category_main="공간/휴식", category_sub="공원/정원")
    assert classify_place(food) == ActivityBucket.food
    assert classify_place(other) == ActivityBucket.attraction


def test_matches_activity_none_accepts_everything():
    place = Place(id="a", name="a", lat=0, lon=0, category_main="전시/문화")
    assert matches_activity(place, None)
    assert matches_activity(place, "볼거리")
    assert not matches_activity(place, "맛집")


# ── Store ────────────────────────────────────────────────────────────────


def test_store_drops_rows_without_coordinates():
    store = _store()
    assert len(store) == 5
    assert "nocoords" not in store.existing_ids(["nocoords", "f1"])


def test_query_orders_by_rating_keeping_ties_stable():
    places = _store().query(PlaceQuery(region="강남"))
    assert [p.id for p in places] == ["c1", "f1", "f2", "a1"]


def test_query_region_matches_any_region_field():
    places = _store().query(PlaceQuery(region="마포"))
    assert [p.id for p in places] == ["h1"]
    assert len(_store().query(PlaceQuery(region="서울"))) == 5


def test_query_category_and_exclusion():
    store = _store()
    assert [p.id for p in store.query(PlaceQuery(region="강남", category="라멘"))] == ["f2"]
    excluded = store.query(PlaceQuery(region="강남", exclude_category_main="카페"))
    assert "c1" not in [p.id for p in excluded]


def test_query_respects_limit():
    assert len(_store().query(PlaceQuery(limit=2))) == 2


def test_tags_are_parsed_from_json_text():
    places = {p.id: p for p in _store().query(PlaceQuery(region="강남"))}
    assert places["f2"].tags == ["웨이팅", "라멘"]


def test_empty_store():
    store = PlaceStore(pd.DataFrame())
    assert len(store) == 0
    assert store.query(PlaceQuery(region="강남")) == []


# ── Retriever ────────────────────────────────────────────────────────────


def test_generic_activity_does_not_narrow_category():
    assert not is_specific_category("맛집")
    assert is_specific_category("카페")
    assert build_place_query(Intent(region="강남", activity_type="맛집")).category is None


def test_meal_context_excludes_cafes_unless_asked():
    meal = Intent(region="강남", activity_type="맛집", special_context="점심")
    cafe = Intent(region="강남", activity_type="카페", special_context="점심")
    assert build_place_query(meal).exclude_category_main == "카페"
    assert build_place_query(cafe).exclude_category_main is None


def test_retrieve_places_filters_by_bucket():
    food = retrieve_places(_store(), Intent(region="강남", activity_type="맛집"))
    assert [p.id for p in food] == ["f1", "f2"]


def test_retrieve_places_without_activity_keeps_all_buckets():
    places = retrieve_places(_store(), Intent(region="강남", response_type="course"))
    assert {p.id for p in places} == {"c1", "f1", "f2", "a1"}
