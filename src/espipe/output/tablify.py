"""Rendering of aggregation buckets as Org-style tables."""
import json
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

AUTO_FLAGS = ("", "t", "yes", "true", "auto")


def format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value).replace("|", "\\vert{}").replace("\n", " ")


def render_org_table(columns: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    """Lay out columns and rows as an aligned Org table.

    Examples:
        >>> print(render_org_table(["key", "doc_count"], [["a", 3]]))
        | key | doc_count |
        |-----+-----------|
        | a   | 3         |
    """
    cells = [[format_cell(v) for v in row] for row in rows]
    widths = [len(c) for c in columns]
    for row in cells:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    def line(values):
        return "| " + " | ".join(v.ljust(widths[i]) for i, v in enumerate(values)) + " |"

    lines = [line(columns), "|" + "+".join("-" * (w + 2) for w in widths) + "|"]
    lines.extend(line(row) for row in cells)
    return "\n".join(lines)


def _normalize_buckets(buckets: Union[List, Dict]) -> List[Dict[str, Any]]:
    # keyed aggregations (filters, keyed ranges) return a name -> bucket mapping
    if isinstance(buckets, dict):
        return [{"key": name, **bucket} for name, bucket in buckets.items()]
    return [b for b in buckets if isinstance(b, dict)]


def _walk(data: Any, path: str) -> Any:
    node = data
    for part in path.split("."):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node




def decode_records(text: str) -> Tuple[List[Any], str]:
    """Decode text as a stream of JSON values.

    Whitespace between values and lines starting with '#' (response warnings)
    are skipped.

    Returns:
        The decoded values and the undecodable remainder ("" if everything decoded).
    """
    decoder = json.JSONDecoder()
    records = []
    pos = 0
    while True:
        while pos < len(text):
            if text[pos].isspace():
                pos += 1
            elif text[pos] == "#":
                newline = text.find("\n", pos)
                pos = len(text) if newline == -1 else newline + 1
            else:
                break
        if pos >= len(text):
            return records, ""
        try:
            value, pos = decoder.raw_decode(text, pos)
        except ValueError:
            return records, text[pos:]
        records.append(value)


def find_buckets(data: Any, spec: Union[str, bool, None]) -> Optional[Tuple[str, List[Dict[str, Any]]]]:
    """Locate the buckets a tablify spec refers to.

    A list is taken as the buckets themselves, whatever the spec.  Otherwise
    a spec of True (or "t", "yes", "true") picks the first aggregation that
    has buckets, and any other string is a dotted path to the aggregation,
    with or without the leading "aggregations.".

    Returns:
        (aggregation name, buckets), or None when nothing matches.
    """
    if isinstance(data, list):
        buckets = _normalize_buckets(data)
        return ("", buckets) if buckets else None
    if not isinstance(data, dict):
        return None

    if spec is True or (isinstance(spec, str) and spec.strip().lower() in AUTO_FLAGS):
        for name, agg in (data.get("aggregations") or {}).items():
            if isinstance(agg, dict) and "buckets" in agg:
                return name, _normalize_buckets(agg["buckets"])
        return None

    path = str(spec).strip()
    for candidate in (path, f"aggregations.{path}"):
        node = _walk(data, candidate)
        if isinstance(node, dict) and "buckets" in node:
            return candidate.rsplit(".", 1)[-1], _normalize_buckets(node["buckets"])
        if isinstance(node, list):
            return candidate.rsplit(".", 1)[-1], _normalize_buckets(node)
    return None


def bucket_table(buckets: List[Dict[str, Any]]) -> Tuple[List[str], List[List[Any]]]:
    """Columns and rows for a list of buckets: key, doc_count, then one column per metric."""
    metrics: List[str] = []
    for bucket in buckets:
        for name, value in bucket.items():
            if isinstance(value, dict) and ("value" in value or "value_as_string" in value) and name not in metrics:
                metrics.append(name)

    rows = []
    for bucket in buckets:
        row = [bucket.get("key_as_string", bucket.get("key")), bucket.get("doc_count")]
        for name in metrics:
            metric = bucket.get(name) or {}
            row.append(metric.get("value_as_string", metric.get("value")))
        rows.append(row)
    return ["key", "doc_count", *metrics], rows


def records_table(records: List[Mapping[str, Any]]) -> str:
    """A table with one column per field seen in records, in order of first appearance."""
    columns: List[str] = []
    for record in records:
        for key in record:
            if key not in columns:
                columns.append(key)
    return render_org_table(columns, [[record.get(c) for c in columns] for record in records])


def _is_bucket(record: Mapping[str, Any]) -> bool:
    return "doc_count" in record or "key" in record or "key_as_string" in record


def tablify(text: str, spec: Union[str, bool]) -> str:
    """Render the records in text as a table.

    text is a search response, a JSON list of records, or a stream of JSON
    records such as the output of ``jq -c '.aggregations.x.buckets[]'``.
    Histogram buckets get key, doc_count and metric columns; other records
    get one column per field.  Text that is not JSON, or holds nothing
    selected by spec, is returned unchanged.
    """
    records, remainder = decode_records(text)
    if not records or remainder.strip():
        logger.warning("Cannot tablify a response that is not JSON, keeping the raw text")
        return text

    data = records[0] if len(records) == 1 else records
    found = find_buckets(data, spec)
    if found is None:
        logger.warning(f"No bucketed aggregation matches tablify spec {spec!r}, keeping the raw text")
        return text

    name, buckets = found
    logger.debug(f"Tablifying {len(buckets)} records of aggregation {name or '(list)'}")
    if all(_is_bucket(b) for b in buckets):
        return render_org_table(*bucket_table(buckets))
    return records_table(buckets)
