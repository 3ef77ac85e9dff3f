"""
Reshape analytics rows into chart datasets.

Pure functions, no I/O: switching chart type or toggling a legend entry works
on the data already fetched.
"""
from typing import Any, Dict, Iterable, List, Mapping, Optional

PALETTE = [
    "#FF6384", "#36A2EB", "#FFCE56", "#4BC0C0",
    "#9966FF", "#FF9F40", "#C9CBCF", "#8DD3C7",
]
CHART_TYPES = ("bar", "line", "pie", "doughnut")
CATEGORICAL = ("pie", "doughnut")


def color_for(index: int) -> str:
    return PALETTE[index % len(PALETTE)]


def _check_type(chart_type: str) -> str:
    if chart_type not in CHART_TYPES:
        raise ValueError(f"Unsupported chart type: {chart_type}")
    return chart_type


def to_chart(rows: Iterable[Mapping[str, Any]], label_key: str, value_key: str = "count", chart_type: str = "bar", label: str = "") -> Dict[str, Any]:
    rows = list(rows)
    labels = [row.get(label_key) for row in rows]
    values = [row.get(value_key) for row in rows]
    chart = {
        "type": _check_type(chart_type),
        "data": {"labels": labels, "datasets": [{"label": label or value_key, "data": values}]},
        "hidden": {},
    }
    return _paint(chart)


def _paint(chart: Dict[str, Any]) -> Dict[str, Any]:
    labels = chart["data"]["labels"]
    for index, dataset in enumerate(chart["data"]["datasets"]):
        if chart["type"] in CATEGORICAL:
            # One colour per slice.
            dataset["backgroundColor"] = [color_for(i) for i in range(len(labels))]
        else:
            dataset["backgroundColor"] = color_for(index)
            dataset["borderColor"] = color_for(index)
    return chart


def switch_type(chart: Dict[str, Any], chart_type: str) -> Dict[str, Any]:
    datasets = [dict(ds) for ds in chart["data"]["datasets"]]
    switched = dict(chart, type=_check_type(chart_type), data={"labels": list(chart["data"]["labels"]), "datasets": datasets})
    return _paint(switched)


def pivot(rows: Iterable[Mapping[str, Any]], row_key: str, col_key: str, value_key: str = "count") -> Dict[str, Any]:
    """Flat ``{row, col, count}`` triples -> dense grid plus the range for a colour scale."""
    rows = list(rows)
    row_labels: List[Any] = []
    col_labels: List[Any] = []
    cells: Dict[tuple, Any] = {}
    for row in rows:
        r, c = row.get(row_key), row.get(col_key)
        if r not in row_labels:
            row_labels.append(r)
        if c not in col_labels:
            col_labels.append(c)
        cells[(r, c)] = cells.get((r, c), 0) + (row.get(value_key) or 0)

    values = [[cells.get((r, c), 0) for c in col_labels] for r in row_labels]
    flat = [v for line in values for v in line]
    return {
        "rows": row_labels,
        "cols": col_labels,
        "values": values,
        "min": min(flat) if flat else 0,
        "max": max(flat) if flat else 0,
    }


def intensity(value: float, low: float, high: float) -> float:
    if high <= low:
        return 0.0 if value <= low else 1.0
    return max(0.0, min(1.0, (value - low) / (high - low)))


def toggle_legend(chart: Dict[str, Any], label: Any) -> Dict[str, Any]:
    """Hide or restore a series (bar/line) or a category (pie/doughnut) by nulling its values."""
    hidden = dict(chart.get("hidden") or {})
    labels = chart["data"]["labels"]
    datasets = [dict(ds, data=list(ds["data"])) for ds in chart["data"]["datasets"]]

    if chart["type"] in CATEGORICAL or len(datasets) == 1:
        if label not in labels:
            return chart
        index = labels.index(label)
        for pos, ds in enumerate(datasets):
            key = (pos, index)
            if key in hidden:
                ds["data"][index] = hidden.pop(key)
            else:
                hidden[key] = ds["data"][index]
                ds["data"][index] = None
    else:
        for pos, ds in enumerate(datasets):
            if ds.get("label") != label:
                continue
            key = (pos, None)
            if key in hidden:
                ds["data"] = hidden.pop(key)
            else:
                hidden[key] = ds["data"]
                ds["data"] = [None] * len(labels)

    return dict(chart, data={"labels": list(labels), "datasets": datasets}, hidden=hidden)


def to_series(rows: Iterable[Mapping[str, Any]], x_key: str, series_key: str, value_key: str = "count", chart_type: str = "line") -> Dict[str, Any]:
    """Multi-series chart, e.g. platform growth: one line per platform across years."""
    grid = pivot(rows, series_key, x_key, value_key)
    order = sorted(range(len(grid["cols"])), key=lambda i: (grid["cols"][i] is None, grid["cols"][i]))
    labels = [grid["cols"][i] for i in order]
    datasets = [
        {"label": name, "data": [grid["values"][r][i] for i in order]}
        for r, name in enumerate(grid["rows"])
    ]
    chart = {"type": _check_type(chart_type), "data": {"labels": labels, "datasets": datasets}, "hidden": {}}
    return _paint(chart)


def with_percentages(rows: Iterable[Mapping[str, Any]], total: Optional[float] = None, value_key: str = "count") -> List[Dict[str, Any]]:
    rows = [dict(row) for row in rows]
    if total is None:
        total = sum(row.get(value_key) or 0 for row in rows)
    for row in rows:
        row["percentage"] = round((row.get(value_key) or 0) / total * 100, 2) if total else 0.0
    return rows
