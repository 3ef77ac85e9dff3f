"""
Query-string grammar shared by the analytics, content listing and export routes.

Every filter key is optional. Each parser returns the MongoDB condition for
its value, or None when the value is absent, empty or unrecognised, in which
case the key simply adds no constraint. Nothing in here raises on bad input.
"""
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from database import clamp_page
from schemas import DUBBING_LANGUAGES

YEAR_RANGE = re.compile(r"^\d{4}-\d{4}$")
SORT_FIELD = re.compile(r"^[A-Za-z_][A-Za-z0-9_.]*$")

DEFAULT_LIMIT = 100
MAX_LIMIT = 1000

# Friendly dimension names accepted by groupBy / dimensions / compareBy.
DIMENSIONS = {
    "platform": "platform",
    "genre": "assignedGenre",
    "assignedGenre": "assignedGenre",
    "language": "primaryLanguage",
    "primaryLanguage": "primaryLanguage",
    "type": "assignedFormat",
    "format": "assignedFormat",
    "assignedFormat": "assignedFormat",
    "source": "source",
    "ageRating": "ageRating",
    "year": "year",
}

PARAM_KEYS = [
    "platform", "type", "format", "year", "startYear", "endYear", "startDate", "endDate",
    "genre", "language", "region", "ageRating", "source", "minDuration", "maxDuration",
    "minSeasons", "maxSeasons", "minPopularity", "maxPopularity", "hasDubbing",
    "dubbingLanguage", "groupBy", "secondaryGroupBy", "sortBy", "sortOrder", "page", "limit",
]

Value = Union[str, List[str], None]

# Keys that take a single value; a repeated key keeps its first occurrence.
SCALAR_KEYS = [
    "sortBy", "sortOrder", "search", "groupBy", "secondaryGroupBy",
    "compareBy", "metric", "action", "role",
]


def flatten_query(query) -> Dict[str, Any]:
    """Starlette QueryParams -> dict; repeated keys become lists."""
    flat: Dict[str, Any] = {}
    for key in query.keys():
        values = query.getlist(key) if hasattr(query, "getlist") else [query[key]]
        flat[key] = values[0] if len(values) == 1 else values
    return flat


def first(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        items = [v for v in value if v not in (None, "")]
        return items[0] if items else None
    return value


def to_list(value: Value) -> List[str]:
    if isinstance(value, (list, tuple)):
        items = []
        for v in value:
            items.extend(to_list(v) if isinstance(v, str) else [str(v).strip()])
        return [v for v in items if v]
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return []


def title_case(value: str) -> str:
    return " ".join(w[:1].upper() + w[1:] for w in value.lower().split())


def parse_in(value: Value, transform: Optional[Callable[[str], str]] = None):
    items = to_list(value)
    if transform:
        items = [transform(v) for v in items]
    if not items:
        return None
    return items[0] if len(items) == 1 else {"$in": items}


def parse_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def parse_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(str(value).strip())
    except ValueError:
        return None


def parse_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    return None


def parse_date(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_year(value: Value) -> Optional[Dict[str, Any]]:
    """'2020-2023' -> inclusive range, '2020,2021' or a list -> set, '2020' -> exact."""
    if isinstance(value, (list, tuple)):
        years = [y for y in (parse_int(v) for v in to_list(value)) if y is not None]
        return {"$in": years} if years else None
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if YEAR_RANGE.match(text):
        start, end = (int(part) for part in text.split("-"))
        return {"$gte": start, "$lte": end}
    if "," in text:
        return parse_year(to_list(text))
    year = parse_int(text)
    return {"$eq": year} if year is not None else None


def parse_number_range(min_value: Any, max_value: Any, cast: Callable[[Any], Optional[float]] = parse_float) -> Optional[Dict[str, Any]]:
    low, high = cast(min_value), cast(max_value)
    cond: Dict[str, Any] = {}
    if low is not None:
        cond["$gte"] = low
    if high is not None:
        cond["$lte"] = high
    return cond or None


def parse_date_range(start: Any, end: Any) -> Optional[Dict[str, Any]]:
    return parse_number_range(start, end, parse_date)


def parse_dubbing_languages(value: Value) -> List[str]:
    return [lang for lang in (v.lower() for v in to_list(value)) if lang in DUBBING_LANGUAGES]


def parse_query_params(query: Mapping[str, Any]) -> Dict[str, Any]:
    params = {key: query.get(key) for key in PARAM_KEYS}
    for key in SCALAR_KEYS:
        if key in params:
            params[key] = first(params[key])
    params["sortBy"] = params["sortBy"] or "count"
    params["sortOrder"] = params["sortOrder"] or "desc"
    return params


def build_match_stage(params: Mapping[str, Any]) -> Dict[str, Any]:
    match: Dict[str, Any] = {"isActive": True}

    platform = parse_in(params.get("platform"))
    if platform is not None:
        match["platform"] = platform

    fmt = parse_in(params.get("type") or params.get("format"), title_case)
    if fmt is not None:
        match["assignedFormat"] = fmt

    year = parse_year(params.get("year")) or {}
    bounds = parse_number_range(params.get("startYear"), params.get("endYear"), parse_int) or {}
    year.update(bounds)
    if year:
        match["year"] = year

    released = parse_date_range(params.get("startDate"), params.get("endDate"))
    if released:
        match["releaseDate"] = released

    genres = to_list(params.get("genre"))
    if genres:
        match["assignedGenre"] = {"$in": genres, "$nin": [None, ""]}

    language = parse_in(params.get("language") or params.get("region"))
    if language is not None:
        match["primaryLanguage"] = language

    popularity = parse_number_range(params.get("minPopularity"), params.get("maxPopularity"), parse_int)
    if popularity:
        match["totalDubbings"] = popularity

    for key, field in (("ageRating", "ageRating"), ("source", "source")):
        cond = parse_in(params.get(key))
        if cond is not None:
            match[field] = cond

    duration = parse_number_range(params.get("minDuration"), params.get("maxDuration"))
    if duration:
        match["durationHours"] = duration

    seasons = parse_number_range(params.get("minSeasons"), params.get("maxSeasons"), parse_int)
    if seasons:
        match["seasons"] = seasons

    has_dubbing = parse_bool(params.get("hasDubbing"))
    if has_dubbing is True:
        match["totalDubbings"] = dict(match.get("totalDubbings", {}), **{"$gt": 0})
    elif has_dubbing is False:
        match["totalDubbings"] = dict(match.get("totalDubbings", {}), **{"$eq": 0})

    dubbed = parse_dubbing_languages(params.get("dubbingLanguage"))
    if len(dubbed) == 1:
        match[f"dubbing.{dubbed[0]}"] = True
    elif dubbed:
        match["$or"] = [{f"dubbing.{lang}": True} for lang in dubbed]

    return match


def build_sort(sort_by: Optional[str] = "count", sort_order: Optional[str] = "desc") -> Dict[str, int]:
    sort_by, sort_order = first(sort_by), first(sort_order)
    field = sort_by if isinstance(sort_by, str) and SORT_FIELD.match(sort_by) else "count"
    return {field: 1 if str(sort_order or "").lower() == "asc" else -1}


def build_pagination(page: Any = 1, limit: Any = DEFAULT_LIMIT, default_limit: int = DEFAULT_LIMIT) -> Dict[str, int]:
    page_num, limit_num = clamp_page(page, limit, default_limit=default_limit, max_limit=MAX_LIMIT)
    return {"page": page_num, "skip": (page_num - 1) * limit_num, "limit": limit_num}


def resolve_dimension(name: Optional[str], default: Optional[str] = None) -> Optional[str]:
    name = first(name)
    if not isinstance(name, str) or not name.strip():
        return default
    return DIMENSIONS.get(name.strip(), default)


def build_group_id(fields: List[str]):
    if len(fields) == 1:
        return f"${fields[0]}"
    return {field: f"${field}" for field in fields}
