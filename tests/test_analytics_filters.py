from datetime import datetime

from analytics_filters import (
    build_match_stage,
    build_pagination,
    build_sort,
    first,
    parse_bool,
    parse_date,
    parse_in,
    parse_query_params,
    parse_year,
    resolve_dimension,
    to_list,
)


def test_year_range_is_inclusive():
    assert parse_year("2020-2023") == {"$gte": 2020, "$lte": 2023}


def test_year_comma_list_becomes_set():
    assert parse_year("2020,2021,2023") == {"$in": [2020, 2021, 2023]}


def test_single_year_is_exact():
    assert parse_year("2020") == {"$eq": 2020}


def test_unparseable_year_adds_no_constraint():
    assert parse_year("soon") is None
    assert parse_year("") is None
    assert "year" not in build_match_stage({"year": "soon"})


def test_to_list_handles_strings_and_lists():
    assert to_list(" Netflix , Hulu ,") == ["Netflix", "Hulu"]
    assert to_list(["Netflix", "Hulu,Zee5"]) == ["Netflix", "Hulu", "Zee5"]
    assert to_list(None) == []


def test_parse_in_single_and_many():
    assert parse_in("Netflix") == "Netflix"
    assert parse_in("Netflix,Hulu") == {"$in": ["Netflix", "Hulu"]}
    assert parse_in("") is None


def test_parse_bool_only_accepts_literals():
    assert parse_bool("true") is True
    assert parse_bool("false") is False
    assert parse_bool("yes") is None


def test_parse_date_normalises_to_naive_utc():
    assert parse_date("2023-01-15T10:00:00Z") == datetime(2023, 1, 15, 10, 0)
    assert parse_date("not a date") is None


def test_match_stage_defaults_to_active_only():
    assert build_match_stage({}) == {"isActive": True}


def test_match_stage_combines_filters():
    match = build_match_stage({
        "platform": "Netflix,Hulu",
        "type": "tv series",
        "genre": "Drama",
        "region": "Tamil",
        "minDuration": "1",
        "maxDuration": "3",
        "ageRating": "",
    })
    assert match["platform"] == {"$in": ["Netflix", "Hulu"]}
    assert match["assignedFormat"] == "Tv Series"
    assert match["assignedGenre"] == {"$in": ["Drama"], "$nin": [None, ""]}
    assert match["primaryLanguage"] == "Tamil"
    assert match["durationHours"] == {"$gte": 1.0, "$lte": 3.0}
    assert "ageRating" not in match


def test_year_bounds_merge_with_year():
    match = build_match_stage({"startYear": "2015", "endYear": "2018"})
    assert match["year"] == {"$gte": 2015, "$lte": 2018}


def test_has_dubbing():
    assert build_match_stage({"hasDubbing": "true"})["totalDubbings"] == {"$gt": 0}
    assert build_match_stage({"hasDubbing": "false"})["totalDubbings"] == {"$eq": 0}
    assert "totalDubbings" not in build_match_stage({"hasDubbing": "maybe"})


def test_dubbing_language_ignores_unknown_names():
    assert build_match_stage({"dubbingLanguage": "Hindi"})["dubbing.hindi"] is True
    match = build_match_stage({"dubbingLanguage": "hindi,klingon,tamil"})
    assert match["$or"] == [{"dubbing.hindi": True}, {"dubbing.tamil": True}]


def test_popularity_maps_to_total_dubbings():
    assert build_match_stage({"minPopularity": "2"})["totalDubbings"] == {"$gte": 2}


def test_sort_and_pagination():
    assert build_sort() == {"count": -1}
    assert build_sort("year", "asc") == {"year": 1}
    assert build_sort("$where", "asc") == {"count": 1}
    assert build_pagination("3", "50") == {"page": 3, "skip": 100, "limit": 50}
    assert build_pagination("0", "5000")["limit"] == 1000
    assert build_pagination(None, None)["limit"] == 100


def test_query_params_defaults():
    params = parse_query_params({"platform": "Netflix", "unknown": "x"})
    assert params["platform"] == "Netflix"
    assert params["sortBy"] == "count"
    assert params["sortOrder"] == "desc"
    assert "unknown" not in params


def test_resolve_dimension():
    assert resolve_dimension("genre") == "assignedGenre"
    assert resolve_dimension("format") == "assignedFormat"
    assert resolve_dimension("nope", "platform") == "platform"


def test_not_dubbed_keeps_popularity_bounds():
    assert build_match_stage({"minPopularity": "2", "hasDubbing": "false"})["totalDubbings"] == {"$gte": 2, "$eq": 0}


def test_repeated_scalar_keys_keep_first_value():
    params = parse_query_params({"sortBy": ["platform", "count"], "sortOrder": ["asc", "desc"], "groupBy": ["", "genre"]})
    assert params["sortBy"] == "platform"
    assert params["sortOrder"] == "asc"
    assert params["groupBy"] == "genre"
    assert build_sort(["year", "count"], ["asc"]) == {"year": 1}
    assert first([]) is None
    assert first("Netflix") == "Netflix"
