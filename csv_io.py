"""
CSV import and export of catalog content.

Import is row-by-row with partial-failure semantics: a bad row is recorded in
the JSON-lines error log and the batch carries on. Rows already inserted stay
inserted; an import is never rolled back.
"""
import csv
import io
import json
import logging
import math
import os
import re
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd
from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import Response

import config
from activity import track_activity
from analytics_filters import flatten_query, parse_int
from content import COLLECTION, build_content_filter, find_duplicate, insert_content, populate_creators, validate_content
from database import clamp_page, get_db, get_documents, now
from errors import ValidationError, success_response
from schemas import DUBBING_LANGUAGES
from security import get_current_user, require_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/content", tags=["csv"])

DUB_HEADERS = [
    "Tamil dub", "Telugu dub", "Kannada dub", "Malayalam dub", "Hindi dub",
    "Punjabi dub", "Bengali dub", "Marathi dub", "Bhojpuri dub", "Gujarati dub",
    "English Dub", "Haryanvi Dub", "Rajasthani Dub", "Deccani Dub", "Arabic Dub",
]

TEMPLATE_HEADERS = [
    "Platform", "Title", "Self Declared Genre", "Assigned Genre",
    "Primary Language", "Self Declared Format", "Assigned Format",
    "Year", "Release Date", "Seasons", "Episodes", "Duration (hours)",
    "Source", *DUB_HEADERS, "Age Ratings",
]

TEMPLATE_SAMPLE = [
    "Netflix", "Sample Movie", "Action", "Action", "English",
    "Movie", "Movie", "2023", "2023-01-01", "1", "1", "2.5",
    "In-House", "0", "0", "0", "0", "1", "0", "0", "0",
    "0", "0", "1", "0", "0", "0", "0", "U/A 13+",
]

EXPORT_HEADERS = TEMPLATE_HEADERS + ["Total Dubbings", "Created By", "Created At"]

# Normalised header -> Content field.
COLUMNS = {
    "platform": "platform",
    "title": "title",
    "selfdeclaredgenre": "selfDeclaredGenre",
    "assignedgenre": "assignedGenre",
    "primarylanguage": "primaryLanguage",
    "selfdeclaredformat": "selfDeclaredFormat",
    "assignedformat": "assignedFormat",
    "year": "year",
    "releasedate": "releaseDate",
    "seasons": "seasons",
    "episodes": "episodes",
    "durationhours": "durationHours",
    "source": "source",
    "ageratings": "ageRating",
    "agerating": "ageRating",
}
DUB_COLUMNS = {f"{lang}dub": lang for lang in DUBBING_LANGUAGES}

REQUIRED_COLUMNS = ["platform", "title", "year", "primarylanguage"]

MAX_ERROR_PAGE = 500


def normalize_header(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "", str(name).lower())


def read_frame(raw: bytes) -> pd.DataFrame:
    if not raw or not raw.strip():
        raise ValidationError("CSV file is empty")
    try:
        frame = pd.read_csv(io.BytesIO(raw), dtype=str, keep_default_na=False, encoding="utf-8-sig")
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
        raise ValidationError(f"Invalid CSV file: {exc}")
    return frame


def validate_structure(frame: pd.DataFrame) -> Dict[str, Any]:
    headers = [str(c) for c in frame.columns]
    present = {normalize_header(h) for h in headers}
    missing = [col for col in REQUIRED_COLUMNS if col not in present]
    if missing:
        raise ValidationError(f"Missing required headers: {', '.join(missing)}")
    known = set(COLUMNS) | set(DUB_COLUMNS)
    return {
        "isValid": True,
        "headers": headers,
        "extraHeaders": [h for h in headers if normalize_header(h) not in known],
    }


def _flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true")


def map_row(row: Mapping[str, Any], user_id=None) -> Dict[str, Any]:
    """Raw CSV row (any header spelling) -> Content payload. Raises ValidationError."""
    fields: Dict[str, str] = {}
    dubbing = {lang: False for lang in DUBBING_LANGUAGES}
    for header, value in row.items():
        key = normalize_header(header)
        text = "" if value is None else str(value).strip()
        if key in COLUMNS:
            fields[COLUMNS[key]] = text
        elif key in DUB_COLUMNS:
            dubbing[DUB_COLUMNS[key]] = _flag(text)

    missing = [name for name in ("platform", "title", "year", "primaryLanguage") if not fields.get(name)]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    year = parse_int(fields["year"])
    if year is None:
        raise ValidationError(f"Invalid year: {fields['year']}")

    duration = fields.get("durationHours") or None
    data = {
        "platform": fields["platform"],
        "title": fields["title"],
        "selfDeclaredGenre": fields.get("selfDeclaredGenre", ""),
        "assignedGenre": fields.get("assignedGenre") or None,
        "primaryLanguage": fields["primaryLanguage"],
        "selfDeclaredFormat": fields.get("selfDeclaredFormat", ""),
        "assignedFormat": fields.get("assignedFormat") or None,
        "year": year,
        "releaseDate": fields.get("releaseDate") or None,
        "seasons": parse_int(fields.get("seasons")) or 1,
        "episodes": parse_int(fields.get("episodes")),
        "durationHours": duration,
        "source": fields.get("source") or "TBD",
        "dubbing": dubbing,
        "ageRating": fields.get("ageRating") or "Not Rated",
    }
    if user_id is not None:
        data["createdBy"] = user_id
    return data


def _append_errors(records: List[Dict[str, Any]]) -> None:
    if not records:
        return
    with open(config.CSV_IMPORT_ERROR_LOG, "a", encoding="utf-8") as fh:
        for record in records:
            fh.write(json.dumps(record, default=str) + "\n")


def import_csv(db, raw: bytes, filename: str, user: dict, request: Optional[Request] = None) -> Dict[str, Any]:
    frame = read_frame(raw)
    validate_structure(frame)

    started_at = now().isoformat() + "Z"
    processed = duplicates = 0
    errors: List[Dict[str, Any]] = []

    for row_number, row in enumerate(frame.to_dict("records"), start=1):
        try:
            content = validate_content(map_row(row))
        except ValidationError as exc:
            message = exc.message
            if exc.errors:
                message = "; ".join(f"{e['field']}: {e['message']}" for e in exc.errors)
            errors.append({"startedAt": started_at, "file": filename, "row": row_number, "error": message, "data": row})
            logger.warning("CSV row %d rejected: %s", row_number, message)
            continue

        if find_duplicate(db, content.platform, content.title, content.year):
            duplicates += 1
            continue

        insert_content(db, content, user["_id"])
        processed += 1

    _append_errors(errors)
    summary = {
        "total": len(frame),
        "processed": processed,
        "duplicates": duplicates,
        "errors": len(errors),
        "errorDetails": errors,
        "startedAt": started_at,
        "file": filename,
    }
    track_activity(
        db, user["_id"], "import",
        {"file": filename, "processed": processed, "duplicates": duplicates, "errors": len(errors)}, request,
    )
    logger.info("CSV imported from %s: %d processed, %d duplicates, %d errors", filename, processed, duplicates, len(errors))
    return summary


def _load_error_log() -> List[Dict[str, Any]]:
    path = config.CSV_IMPORT_ERROR_LOG
    if not os.path.exists(path):
        return []
    records = []
    with open(path, encoding="utf-8") as fh:
        for line_number, line in enumerate(fh, start=1):
            if not line.strip():
                continue
            try:
                records.append(json.loads(line))
            except json.JSONDecodeError:
                logger.warning("Skipping malformed line %d in %s", line_number, path)
    return records


def read_import_errors(session: Optional[str] = "all", page: Any = 1, limit: Any = 50) -> Dict[str, Any]:
    records = _load_error_log()

    grouped: Dict[tuple, List[Dict[str, Any]]] = {}
    for record in records:
        grouped.setdefault((record.get("startedAt"), record.get("file")), []).append(record)
    keys = sorted(grouped, key=lambda k: k[0] or "", reverse=True)
    sessions = [{"startedAt": k[0], "file": k[1], "errorCount": len(grouped[k])} for k in keys]

    session = session or "all"
    if session == "latest":
        selected = keys[:1]
    elif session == "all":
        selected = keys
    else:
        selected = [k for k in keys if k[0] == session]
    errors = [record for key in selected for record in grouped[key]]

    page_num, limit_num = clamp_page(page, limit, default_limit=50, max_limit=MAX_ERROR_PAGE)
    start = (page_num - 1) * limit_num
    return {
        "total": len(errors),
        "page": page_num,
        "limit": limit_num,
        "totalPages": math.ceil(len(errors) / limit_num) if errors else 0,
        "sessions": sessions,
        "errors": errors[start:start + limit_num],
    }


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d")
    return value


def export_rows(docs: List[dict]) -> List[List[Any]]:
    rows = []
    for doc in docs:
        dubbing = doc.get("dubbing") or {}
        creator = doc.get("createdBy")
        created_at = doc.get("createdAt")
        rows.append([
            doc.get("platform"), doc.get("title"), doc.get("selfDeclaredGenre"), doc.get("assignedGenre"),
            doc.get("primaryLanguage"), doc.get("selfDeclaredFormat"), doc.get("assignedFormat"),
            doc.get("year"), _cell(doc.get("releaseDate")), doc.get("seasons"), doc.get("episodes"),
            doc.get("durationHours"), doc.get("source"),
            *(1 if dubbing.get(lang) else 0 for lang in DUBBING_LANGUAGES),
            doc.get("ageRating"), doc.get("totalDubbings", 0),
            creator.get("username", "") if isinstance(creator, dict) else "",
            created_at.isoformat() if isinstance(created_at, datetime) else "",
        ])
    return [[_cell(v) for v in row] for row in rows]


def to_csv(headers: List[str], rows: List[List[Any]]) -> str:
    frame = pd.DataFrame(rows, columns=headers)
    return frame.to_csv(index=False, quoting=csv.QUOTE_ALL)


def export_csv(db, params: Mapping[str, Any], user: dict, request: Optional[Request] = None) -> str:
    filt = build_content_filter(params)
    docs = populate_creators(db, get_documents(db, COLLECTION, filt, sort=[("createdAt", -1)]))
    track_activity(db, user["_id"], "export", {"count": len(docs), "filters": {k: v for k, v in params.items() if v}}, request)
    logger.info("CSV export of %d content items", len(docs))
    return to_csv(EXPORT_HEADERS, export_rows(docs))


def template() -> str:
    return to_csv(TEMPLATE_HEADERS, [TEMPLATE_SAMPLE])


def _attachment(body: str, filename: str) -> Response:
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# -------- Routes --------

@router.get("/export/csv")
def export(request: Request, user: dict = Depends(get_current_user), db=Depends(get_db)):
    body = export_csv(db, flatten_query(request.query_params), user, request)
    stamp = now().strftime("%Y%m%d%H%M%S")
    return _attachment(body, f"ott-content-{stamp}.csv")


@router.post("/import-csv")
def import_file(
    request: Request,
    csvFile: UploadFile = File(...),
    admin: dict = Depends(require_admin),
    db=Depends(get_db),
):
    filename = csvFile.filename or "upload.csv"
    if not filename.lower().endswith(".csv"):
        raise ValidationError("Only CSV files are allowed")
    summary = import_csv(db, csvFile.file.read(), filename, admin, request)
    return success_response("CSV import completed", summary)


@router.get("/import-csv/errors")
def import_errors(
    session: str = "all",
    page: Optional[str] = None,
    limit: Optional[str] = None,
    admin: dict = Depends(require_admin),
):
    return success_response("CSV import errors retrieved successfully", read_import_errors(session, page, limit))


@router.get("/import-csv/template")
def import_template(admin: dict = Depends(require_admin)):
    return _attachment(template(), "content-import-template.csv")
