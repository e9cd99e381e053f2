"""Placing a run's result: back to the caller, into a file, or into a tangled script."""
import json
import logging
import os
import shlex
from pathlib import Path
from typing import Any, List, Mapping, Optional, Union

import yaml

from espipe.output.tablify import bucket_table, decode_records, find_buckets, records_table, render_org_table
from espipe.request.params import ParameterSet, RequestDefaults
from espipe.script.headers import merge_headers, parse_headers
from espipe.script.substitution import substitute_variables

logger = logging.getLogger(__name__)

ORG_EXTENSIONS = (".org",)
YAML_EXTENSIONS = (".yaml", ".yml")
SHELL_EXTENSIONS = (".sh", ".bash", ".zsh")


def _extension(target: str) -> str:
    suffix = Path(target).suffix.lower()
    if not suffix and "/" not in target and "." not in target:
        # a bare extension such as "sh"
        suffix = "." + target.lower()
    return suffix


def _hits_table(hits: List[Mapping[str, Any]]) -> str:
    rows = [{"_id": hit.get("_id"), **(hit.get("_source") or {})} for hit in hits if isinstance(hit, dict)]
    return records_table(rows)


def record_to_org(record: Any) -> str:
    """Org markup for one decoded response."""
    blocks = []
    if isinstance(record, dict):
        hits = record.get("hits")
        if isinstance(hits, dict) and isinstance(hits.get("hits"), list) and hits["hits"]:
            blocks.append("#+NAME: hits\n" + _hits_table(hits["hits"]))
        for name, agg in (record.get("aggregations") or {}).items():
            if isinstance(agg, dict) and "buckets" in agg:
                _, buckets = find_buckets(record, f"aggregations.{name}")
                blocks.append(f"#+NAME: {name}\n" + render_org_table(*bucket_table(buckets)))
    elif isinstance(record, list) and record and all(isinstance(r, dict) for r in record):
        blocks.append(records_table(record))

    if not blocks:
        pretty = json.dumps(record, indent=2, ensure_ascii=False)
        blocks.append(f"#+begin_src json\n{pretty}\n#+end_src")
    return "\n\n".join(blocks)


def to_org(text: str) -> str:
    records, remainder = decode_records(text)
    blocks = [record_to_org(record) for record in records]
    if remainder.strip():
        logger.warning("Part of the result is not JSON, writing it as an example block")
        blocks.append(f"#+begin_example\n{remainder.strip()}\n#+end_example")
    return "\n\n".join(blocks) + "\n"


def to_yaml(text: str) -> str:
    records, remainder = decode_records(text)
    if remainder.strip():
        logger.warning("Part of the result is not JSON, writing it as a string document")
        records.append(remainder.strip())
    return yaml.safe_dump_all(records, allow_unicode=True, sort_keys=False)


def write_output(text: str, path: Optional[str] = None) -> str:
    """Send the aggregated text to its destination.

    Without a path the text is returned for the caller to display.  With a
    path the file's contents are replaced, converted first when the file is an
    Org or YAML document, and synced to disk before the path is returned.
    """
    if not path:
        return text

    extension = Path(path).suffix.lower()
    if extension in ORG_EXTENSIONS:
        content = to_org(text)
    elif extension in YAML_EXTENSIONS:
        content = to_yaml(text)
    else:
        content = text

    target = os.path.expanduser(path)
    logger.info(f"Writing {len(content)} characters to {target}")
    with open(target, "w", encoding="utf-8") as f:
        f.write(content)
        f.flush()
        os.fsync(f.fileno())
    return path


def tangle_body(body: str,
                params: Union[ParameterSet, Mapping[str, Any], None] = None,
                defaults: Optional[RequestDefaults] = None,
                target: Optional[str] = None) -> str:
    """The text a script block is tangled to.

    For a shell script target the block becomes a single curl command line;
    for anything else it is the block with its variables substituted.
    """
    params = ParameterSet.from_options(params)
    if defaults is None:
        defaults = RequestDefaults.from_config()
    target = target or params.tangle

    text = substitute_variables(body, params.variables)
    if not target or _extension(target) not in SHELL_EXTENSIONS:
        return text

    method = params.resolved_method(defaults).strip().upper()
    url = params.resolved_url(defaults)
    parts = ["curl", f"-X{method}", shlex.quote(url), "-d", shlex.quote(text.strip())]
    for pair in merge_headers(defaults.headers, parse_headers(params.headers)):
        parts += ["-H", shlex.quote(f"{pair.name}: {pair.value}")]
    return " ".join(parts)
