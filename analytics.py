"""
Catalog analytics.

Every endpoint is a view over the same filtered base set: the query string is
parsed by analytics_filters into one ``$match`` stage, then grouped along the
requested dimension(s). Zero matching documents is not an error; list-shaped
endpoints return ``[]``.
"""
import logging
import math
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from fastapi import APIRouter, Depends, Request

from analytics_filters import (
    SORT_FIELD,
    build_group_id,
    build_match_stage,
    build_pagination,
    build_sort,
    first,
    flatten_query,
    parse_date,
    parse_int,
    parse_query_params,
    resolve_dimension,
    to_list,
)
from content import COLLECTION, populate_creators
from database import get_db, now, serialize
from errors import ValidationError, success_response
from schemas import DUBBING_LANGUAGES, CustomAnalyticsRequest
from security import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analytics", tags=["analytics"], dependencies=[Depends(get_current_user)])
public_router = APIRouter(prefix="/api/public/analytics", tags=["public analytics"])

FIRST_YEAR = 2010
DURATION_BOUNDARIES = [0, 1, 2, 3, 5, 10, 20, 50]
DEFAULT_DIMENSIONS = ["platform", "genre", "language", "type"]
SLICE_METRICS = {
    "count": {"$sum": 1},
    "avgDuration": {"$avg": "$durationHours"},
    "totalDuration": {"$sum": "$durationHours"},
    "avgDubbings": {"$avg": "$totalDubbings"},
    "minYear": {"$min": "$year"},
    "maxYear": {"$max": "$year"},
}
IS_DUBBED = {"$cond": [{"$gt": ["$totalDubbings", 0]}, 1, 0]}
COMPARE_METRICS = [
    "count", "avgDuration", "totalDuration", "avgDubbings",
    "dubbingPenetration", "formatCount", "genreCount", "languageCount",
]


# -------- Helpers --------

def _aggregate(db, pipeline: List[dict]) -> List[dict]:
    logger.debug("Aggregating %s: %s", COLLECTION, pipeline)
    return list(db[COLLECTION].aggregate(pipeline))


def _field(name: Optional[str], default: str) -> str:
    """Friendly dimension name or a raw stored field name."""
    name = first(name)
    if not isinstance(name, str) or not name.strip():
        return default
    name = name.strip()
    return resolve_dimension(name) or (name if SORT_FIELD.match(name) else default)


def _sort_on_group(sort: Dict[str, int], aliases: Mapping[str, str]) -> Dict[str, int]:
    """Rewrite sort keys that name a grouping dimension onto the group ``_id``."""
    return {aliases.get(key, key): direction for key, direction in sort.items()}


def _exclude_blank(match: Dict[str, Any], field: str) -> None:
    cond = match.get(field)
    if cond is None:
        match[field] = {"$nin": [None, ""]}
    elif isinstance(cond, dict):
        cond["$nin"] = [None, ""]
    else:
        match[field] = {"$eq": cond, "$nin": [None, ""]}


def _require_duration(match: Dict[str, Any]) -> None:
    cond = match.get("durationHours")
    match["durationHours"] = dict(cond or {}, **{"$ne": None})


def _default_years(match: Dict[str, Any], params: Mapping[str, Any]) -> None:
    if "year" not in match:
        match["year"] = {
            "$gte": parse_int(params.get("startYear")) or FIRST_YEAR,
            "$lte": parse_int(params.get("endYear")) or now().year,
        }


def _round(value: Optional[float], digits: int = 2) -> Optional[float]:
    return round(value, digits) if value is not None else None


def count_by(db, match: Dict[str, Any], field: str, key: str, sort: Optional[Dict[str, int]] = None) -> List[dict]:
    sort = _sort_on_group(sort or {"count": -1}, {field: "_id", key: "_id"})
    rows = _aggregate(db, [
        {"$match": match},
        {"$group": {"_id": f"${field}", "count": {"$sum": 1}}},
        {"$sort": sort},
    ])
    return [{key: row["_id"], "count": row["count"]} for row in rows]


def cross_tab(db, match: Dict[str, Any], row_field: str, row_key: str, col_field: str = "platform", col_key: str = "platform") -> List[dict]:
    rows = _aggregate(db, [
        {"$match": match},
        {"$group": {"_id": {"row": f"${row_field}", "col": f"${col_field}"}, "count": {"$sum": 1}}},
        {"$sort": {"count": -1}},
    ])
    return [{row_key: r["_id"].get("row"), col_key: r["_id"].get("col"), "count": r["count"]} for r in rows]


def _language_counts(db, match: Dict[str, Any]) -> List[dict]:
    """Per-platform counts of each dubbing flag."""
    group: Dict[str, Any] = {"_id": "$platform"}
    for lang in DUBBING_LANGUAGES:
        group[lang] = {"$sum": {"$cond": [{"$eq": [f"$dubbing.{lang}", True]}, 1, 0]}}
    return _aggregate(db, [{"$match": match}, {"$group": group}])


# -------- Service --------

def platform_distribution(db, params):
    match = build_match_stage(params)
    return count_by(db, match, "platform", "platform", build_sort(params.get("sortBy"), params.get("sortOrder")))


def language_stats(db, params):
    match = build_match_stage(params)
    return count_by(db, match, "primaryLanguage", "language", build_sort(params.get("sortBy"), params.get("sortOrder")))


def age_rating_distribution(db, params):
    match = build_match_stage(params)
    return count_by(db, match, "ageRating", "ageRating", build_sort(params.get("sortBy"), params.get("sortOrder")))


def source_breakdown(db, params):
    match = build_match_stage(params)
    return count_by(db, match, "source", "source", build_sort(params.get("sortBy"), params.get("sortOrder")))


def yearly_releases(db, params):
    match = build_match_stage(params)
    _default_years(match, params)
    return count_by(db, match, "year", "year", {"_id": 1})


def top_dubbed_languages(db, params):
    match = build_match_stage(params)
    totals = {lang: 0 for lang in DUBBING_LANGUAGES}
    for row in _language_counts(db, match):
        for lang in DUBBING_LANGUAGES:
            totals[lang] += row.get(lang, 0)
    ranked = sorted(
        ({"language": lang, "count": count} for lang, count in totals.items() if count > 0),
        key=lambda r: r["count"],
        reverse=True,
    )
    pagination = build_pagination(params.get("page"), params.get("limit"), default_limit=10)
    return ranked[pagination["skip"]:pagination["skip"] + pagination["limit"]]


def monthly_release_trend(db, params):
    match = build_match_stage(params)
    end = parse_date(params.get("endDate")) or now()
    start = parse_date(params.get("startDate"))
    if start is None:
        month_index = end.year * 12 + end.month - 1 - 11
        start = datetime(month_index // 12, month_index % 12 + 1, 1)
    match["releaseDate"] = {"$gte": start, "$lte": end}

    rows = _aggregate(db, [
        {"$match": match},
        {"$group": {
            "_id": {"year": {"$year": "$releaseDate"}, "month": {"$month": "$releaseDate"}},
            "count": {"$sum": 1},
        }},
    ])
    trend = [{"period": f"{r['_id']['year']:04d}-{r['_id']['month']:02d}", "count": r["count"]} for r in rows]
    return sorted(trend, key=lambda r: r["period"])


def platform_growth(db, params):
    match = build_match_stage(params)
    _default_years(match, params)
    rows = _aggregate(db, [
        {"$match": match},
        {"$group": {"_id": {"year": "$year", "platform": "$platform"}, "count": {"$sum": 1}}},
    ])
    growth = [{"year": r["_id"]["year"], "platform": r["_id"].get("platform"), "count": r["count"]} for r in rows]
    return sorted(growth, key=lambda r: (r["year"], -r["count"]))


def genre_platform_heatmap(db, params):
    match = build_match_stage(params)
    _exclude_blank(match, "assignedGenre")
    return cross_tab(db, match, "assignedGenre", "genre")


def language_platform_matrix(db, params):
    match = build_match_stage(params)
    _exclude_blank(match, "primaryLanguage")
    return cross_tab(db, match, "primaryLanguage", "language")


def duration_by_format_genre(db, params):
    match = build_match_stage(params)
    _require_duration(match)
    rows = _aggregate(db, [
        {"$match": match},
        {"$group": {
            "_id": {"format": "$assignedFormat", "genre": "$assignedGenre"},
            "avgDuration": {"$avg": "$durationHours"},
            "minDuration": {"$min": "$durationHours"},
            "maxDuration": {"$max": "$durationHours"},
            "count": {"$sum": 1},
        }},
        {"$sort": {"avgDuration": -1}},
    ])
    return [
        {
            "format": r["_id"].get("format"),
            "genre": r["_id"].get("genre"),
            "avgDuration": r["avgDuration"],
            "minDuration": r["minDuration"],
            "maxDuration": r["maxDuration"],
            "count": r["count"],
        }
        for r in rows
    ]


def genre_trends(db, params):
    match = build_match_stage(params)
    _exclude_blank(match, "assignedGenre")
    rows = _aggregate(db, [
        {"$match": match},
        {"$group": {"_id": {"genre": "$assignedGenre", "year": "$year"}, "count": {"$sum": 1}}},
    ])
    genres: Dict[str, Dict[str, Any]] = {}
    for row in rows:
        genre = row["_id"]["genre"]
        entry = genres.setdefault(genre, {"genre": genre, "data": [], "total": 0})
        entry["data"].append({"year": row["_id"].get("year"), "count": row["count"]})
        entry["total"] += row["count"]
    for entry in genres.values():
        entry["data"].sort(key=lambda point: point["year"] or 0)
    return sorted(genres.values(), key=lambda e: e["total"], reverse=True)


def dubbing_analysis(db, params):
    match = build_match_stage(params)
    breakdown = {lang: {"language": lang, "count": 0, "platforms": []} for lang in DUBBING_LANGUAGES}
    for row in _language_counts(db, match):
        for lang in DUBBING_LANGUAGES:
            if row.get(lang):
                breakdown[lang]["count"] += row[lang]
                breakdown[lang]["platforms"].append(row["_id"])
    languages = sorted((b for b in breakdown.values() if b["count"]), key=lambda b: b["count"], reverse=True)

    distribution = _aggregate(db, [
        {"$match": match},
        {"$group": {"_id": "$totalDubbings", "count": {"$sum": 1}}},
        {"$sort": {"_id": 1}},
    ])
    return {
        "total": db[COLLECTION].count_documents(match),
        "languageBreakdown": languages,
        "dubbingDistribution": [{"dubbingCount": r["_id"], "contentCount": r["count"]} for r in distribution],
    }


def _penetration(row: Mapping[str, Any]) -> Dict[str, Any]:
    total = row.get("total", 0)
    return {
        "total": total,
        "dubbed": row.get("dubbed", 0),
        "pctDubbed": row["dubbed"] / total * 100 if total else 0,
        "avgDubbings": row.get("avgDubbings") or 0,
    }


def dubbing_penetration(db, params):
    match = build_match_stage(params)
    group = {"total": {"$sum": 1}, "dubbed": {"$sum": IS_DUBBED}, "avgDubbings": {"$avg": "$totalDubbings"}}
    overall = _aggregate(db, [{"$match": match}, {"$group": dict(group, _id=None)}])
    platforms = _aggregate(db, [{"$match": match}, {"$group": dict(group, _id="$platform")}])
    by_platform = [dict(platform=r["_id"], **_penetration(r)) for r in platforms]
    return {
        "overall": _penetration(overall[0]) if overall else {"total": 0, "dubbed": 0, "pctDubbed": 0, "avgDubbings": 0},
        "byPlatform": sorted(by_platform, key=lambda r: r["pctDubbed"], reverse=True),
    }


def duration_analysis(db, params):
    match = build_match_stage(params)
    _require_duration(match)
    stats = _aggregate(db, [
        {"$match": match},
        {"$group": {
            "_id": None,
            "avgDuration": {"$avg": "$durationHours"},
            "minDuration": {"$min": "$durationHours"},
            "maxDuration": {"$max": "$durationHours"},
            "totalContent": {"$sum": 1},
        }},
    ])

    bounds = list(zip(DURATION_BOUNDARIES, DURATION_BOUNDARIES[1:]))
    counts = {f"{low}-{high} hrs": 0 for low, high in bounds}
    counts["50+"] = 0
    for doc in db[COLLECTION].find(match, {"durationHours": 1}):
        hours = doc["durationHours"]
        label = next((f"{low}-{high} hrs" for low, high in bounds if low <= hours < high), "50+")
        counts[label] += 1

    statistics = {k: v for k, v in stats[0].items() if k != "_id"} if stats else {}
    return {
        "statistics": statistics,
        "ranges": [{"range": label, "count": count} for label, count in counts.items() if count],
    }


def dashboard_summary(db):
    active = {"isActive": True}
    genres = [g for g in db[COLLECTION].distinct("assignedGenre", active) if g and str(g).strip()]
    recent = list(
        db[COLLECTION]
        .find(active, {"title": 1, "platform": 1, "year": 1, "releaseDate": 1, "createdBy": 1, "createdAt": 1})
        .sort("createdAt", -1)
        .limit(5)
    )
    return {
        "totalContent": db[COLLECTION].count_documents(active),
        "totalPlatforms": len(db[COLLECTION].distinct("platform", active)),
        "contentThisYear": db[COLLECTION].count_documents({"isActive": True, "year": now().year}),
        "totalGenres": len(genres),
        "recentContent": serialize(populate_creators(db, recent)),
    }


def advanced_slicing(db, query: Mapping[str, Any]):
    params = parse_query_params(query)
    match = build_match_stage(params)
    primary_name = params.get("groupBy") or "platform"
    secondary_name = params.get("secondaryGroupBy")
    names = [primary_name] + ([secondary_name] if secondary_name else [])
    fields = [_field(name, "platform") for name in names]
    group_id = build_group_id(fields)

    if len(fields) == 1:
        aliases = {names[0]: "_id", fields[0]: "_id"}
    else:
        aliases = {}
        for name, field in zip(names, fields):
            aliases[name] = aliases[field] = f"_id.{field}"
    sort = _sort_on_group(build_sort(params.get("sortBy"), params.get("sortOrder")), aliases)
    pagination = build_pagination(params.get("page"), params.get("limit"))

    rows = _aggregate(db, [
        {"$match": match},
        {"$group": dict(SLICE_METRICS, _id=group_id)},
        {"$sort": sort},
        {"$skip": pagination["skip"]},
        {"$limit": pagination["limit"]},
    ])
    counted = _aggregate(db, [
        {"$match": match},
        {"$group": {"_id": group_id}},
        {"$group": {"_id": None, "total": {"$sum": 1}}},
    ])
    total = counted[0]["total"] if counted else 0

    data = []
    for row in rows:
        key = row.pop("_id")
        values = [key] if len(fields) == 1 else [key.get(field) for field in fields]
        data.append(dict(zip(names, values), **row))
    return {
        "data": data,
        "pagination": {
            "page": pagination["page"],
            "limit": pagination["limit"],
            "total": total,
            "pages": math.ceil(total / pagination["limit"]),
        },
        "groupBy": {"primary": primary_name, "secondary": secondary_name} if secondary_name else primary_name,
    }


def multi_dimensional(db, query: Mapping[str, Any]):
    params = parse_query_params(query)
    match = build_match_stage(params)
    dimensions = [name for name in to_list(query.get("dimensions")) if SORT_FIELD.match(name)] or DEFAULT_DIMENSIONS

    breakdown = {}
    for name in dimensions:
        field = _field(name, name)
        breakdown[name] = [{"value": r[name], "count": r["count"]} for r in count_by(db, match, field, name)]

    rows = _aggregate(db, [
        {"$match": match},
        {"$group": {
            "_id": None,
            "totalContent": {"$sum": 1},
            "avgDuration": {"$avg": "$durationHours"},
            "avgDubbings": {"$avg": "$totalDubbings"},
            "platforms": {"$addToSet": "$platform"},
            "genres": {"$addToSet": "$assignedGenre"},
            "languages": {"$addToSet": "$primaryLanguage"},
        }},
    ])
    summary = {"totalContent": 0, "avgDuration": None, "avgDubbings": None, "platformCount": 0, "genreCount": 0, "languageCount": 0}
    if rows:
        row = rows[0]
        summary.update(
            totalContent=row["totalContent"],
            avgDuration=row["avgDuration"],
            avgDubbings=row["avgDubbings"],
            platformCount=len([p for p in row["platforms"] if p]),
            genreCount=len([g for g in row["genres"] if g]),
            languageCount=len([lang for lang in row["languages"] if lang]),
        )
    return {"dimensions": dimensions, "breakdown": breakdown, "summary": summary}


def comparative(db, query: Mapping[str, Any]):
    params = parse_query_params(query)
    match = build_match_stage(params)
    compare_by = first(query.get("compareBy")) or "platform"
    metric = first(query.get("metric"))
    if metric not in COMPARE_METRICS:
        metric = "count"
    field = _field(compare_by, "platform")

    rows = _aggregate(db, [
        {"$match": match},
        {"$group": {
            "_id": f"${field}",
            "count": {"$sum": 1},
            "avgDuration": {"$avg": "$durationHours"},
            "totalDuration": {"$sum": "$durationHours"},
            "avgDubbings": {"$avg": "$totalDubbings"},
            "dubbedContent": {"$sum": IS_DUBBED},
            "minYear": {"$min": "$year"},
            "maxYear": {"$max": "$year"},
            "formats": {"$addToSet": "$assignedFormat"},
            "genres": {"$addToSet": "$assignedGenre"},
            "languages": {"$addToSet": "$primaryLanguage"},
        }},
    ])
    segments = [
        {
            "segment": r["_id"],
            "count": r["count"],
            "avgDuration": _round(r["avgDuration"]),
            "totalDuration": _round(r["totalDuration"]),
            "avgDubbings": _round(r["avgDubbings"]),
            "dubbingPenetration": round(r["dubbedContent"] / r["count"] * 100, 2) if r["count"] else 0,
            "yearRange": {"min": r["minYear"], "max": r["maxYear"]},
            "formatCount": len([v for v in r["formats"] if v]),
            "genreCount": len([v for v in r["genres"] if v]),
            "languageCount": len([v for v in r["languages"] if v]),
        }
        for r in rows
    ]
    segments.sort(key=lambda s: s[metric] or 0, reverse=True)

    size = len(segments)
    insights = {
        "totalSegments": size,
        "topPerformer": segments[0] if segments else None,
        "averages": {
            "count": sum(s["count"] for s in segments) / size if size else 0,
            "avgDuration": sum(s["avgDuration"] or 0 for s in segments) / size if size else 0,
            "dubbingPenetration": sum(s["dubbingPenetration"] for s in segments) / size if size else 0,
        },
    }
    return {"data": segments, "insights": insights, "compareBy": compare_by, "metric": metric}


def custom(db, payload: CustomAnalyticsRequest, query: Mapping[str, Any]):
    if not payload.group_by:
        raise ValidationError("groupBy field is required")
    names = to_list(payload.group_by)
    if not names:
        raise ValidationError("groupBy field is required")
    fields = [_field(name, name) for name in names]
    if not all(SORT_FIELD.match(field) for field in fields):
        raise ValidationError("Invalid groupBy field")

    params = parse_query_params(dict(query, **(payload.model_extra or {})))
    match = build_match_stage(params)
    group: Dict[str, Any] = {"_id": build_group_id(fields)}
    if payload.aggregation_type == "count" or payload.metric == "count":
        group["count"] = {"$sum": 1}
    if payload.metric == "avgDuration" or payload.aggregation_type == "avg":
        _require_duration(match)
        group["avgDuration"] = {"$avg": "$durationHours"}
    if payload.metric == "totalDuration":
        _require_duration(match)
        group["totalDuration"] = {"$sum": "$durationHours"}
    if payload.metric == "avgDubbings":
        group["avgDubbings"] = {"$avg": "$totalDubbings"}

    metrics = [key for key in group if key != "_id"]
    sort_key = params["sortBy"] if params["sortBy"] in metrics else (metrics[0] if metrics else "_id")
    direction = 1 if (params.get("sortOrder") or "").lower() == "asc" else -1
    rows = _aggregate(db, [{"$match": match}, {"$group": group}, {"$sort": {sort_key: direction}}])

    data = []
    for row in rows:
        key = row.pop("_id")
        values = [key] if len(fields) == 1 else [key.get(field) for field in fields]
        data.append(dict(zip(names, values), **row))
    return {"data": data, "groupBy": payload.group_by, "metric": payload.metric}


# -------- Routes --------

def _params(request: Request) -> Dict[str, Any]:
    return parse_query_params(flatten_query(request.query_params))


@router.get("/platform-distribution")
def platform_distribution_route(request: Request, db=Depends(get_db)):
    return success_response("Platform distribution retrieved", platform_distribution(db, _params(request)))


@router.get("/language-stats")
def language_stats_route(request: Request, db=Depends(get_db)):
    return success_response("Language statistics retrieved", language_stats(db, _params(request)))


@router.get("/yearly-releases")
def yearly_releases_route(request: Request, db=Depends(get_db)):
    return success_response("Yearly releases retrieved", yearly_releases(db, _params(request)))


@router.get("/age-rating-distribution")
def age_rating_route(request: Request, db=Depends(get_db)):
    return success_response("Age rating distribution retrieved", age_rating_distribution(db, _params(request)))


@router.get("/source-breakdown")
def source_breakdown_route(request: Request, db=Depends(get_db)):
    return success_response("Source breakdown retrieved", source_breakdown(db, _params(request)))


@router.get("/top-dubbed-languages")
def top_dubbed_route(request: Request, db=Depends(get_db)):
    return success_response("Top dubbed languages retrieved", top_dubbed_languages(db, _params(request)))


@router.get("/monthly-release-trend")
def monthly_trend_route(request: Request, db=Depends(get_db)):
    return success_response("Monthly release trend retrieved", monthly_release_trend(db, _params(request)))


@router.get("/platform-growth")
def platform_growth_route(request: Request, db=Depends(get_db)):
    return success_response("Platform growth over time retrieved", platform_growth(db, _params(request)))


@router.get("/genre-platform-heatmap")
def heatmap_route(request: Request, db=Depends(get_db)):
    return success_response("Genre-platform heatmap retrieved", genre_platform_heatmap(db, _params(request)))


@router.get("/language-platform-matrix")
def language_matrix_route(request: Request, db=Depends(get_db)):
    return success_response("Language-platform matrix retrieved", language_platform_matrix(db, _params(request)))


@router.get("/duration-by-format-genre")
def duration_by_format_genre_route(request: Request, db=Depends(get_db)):
    return success_response("Duration by format/genre retrieved", duration_by_format_genre(db, _params(request)))


@router.get("/genre-trends")
def genre_trends_route(request: Request, db=Depends(get_db)):
    return success_response("Genre trends retrieved", genre_trends(db, _params(request)))


@router.get("/dubbing-analysis")
def dubbing_analysis_route(request: Request, db=Depends(get_db)):
    return success_response("Dubbing analysis retrieved", dubbing_analysis(db, _params(request)))


@router.get("/dubbing-penetration")
def dubbing_penetration_route(request: Request, db=Depends(get_db)):
    return success_response("Dubbing penetration retrieved", dubbing_penetration(db, _params(request)))


@router.get("/duration-analysis")
def duration_analysis_route(request: Request, db=Depends(get_db)):
    return success_response("Duration analysis retrieved", duration_analysis(db, _params(request)))


@router.get("/dashboard-summary")
def dashboard_route(db=Depends(get_db)):
    return success_response("Dashboard summary retrieved", dashboard_summary(db))


@router.get("/advanced-slicing")
def advanced_slicing_route(request: Request, db=Depends(get_db)):
    return success_response("Advanced slicing retrieved", advanced_slicing(db, flatten_query(request.query_params)))


@router.get("/multi-dimensional")
def multi_dimensional_route(request: Request, db=Depends(get_db)):
    return success_response("Multi-dimensional analytics retrieved", multi_dimensional(db, flatten_query(request.query_params)))


@router.get("/comparative")
def comparative_route(request: Request, db=Depends(get_db)):
    return success_response("Comparative analytics retrieved", comparative(db, flatten_query(request.query_params)))


@router.post("/custom")
def custom_route(payload: CustomAnalyticsRequest, request: Request, db=Depends(get_db)):
    return success_response("Custom analytics retrieved", custom(db, payload, flatten_query(request.query_params)))


# Public previews ignore everything but the date window.

@public_router.get("/monthly-release-trend")
def public_monthly_trend(request: Request, db=Depends(get_db)):
    query = request.query_params
    window = {"startDate": query.get("startDate"), "endDate": query.get("endDate")}
    return success_response("Monthly release trend retrieved", monthly_release_trend(db, window))


@public_router.get("/platform-distribution")
def public_platform_distribution(db=Depends(get_db)):
    return success_response("Platform distribution retrieved", platform_distribution(db, {}))


@public_router.get("/language-platform-matrix")
def public_language_matrix(db=Depends(get_db)):
    return success_response("Language-platform matrix retrieved", language_platform_matrix(db, {}))


@public_router.get("/genre-trends")
def public_genre_trends(db=Depends(get_db)):
    return success_response("Genre trends retrieved", genre_trends(db, {}))
