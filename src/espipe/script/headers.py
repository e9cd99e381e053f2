"""Parsing of ``name=value`` header arguments."""
import logging
import re
from typing import Dict, Iterable, List, Optional

from espipe.script.parsers import HeaderPair, split_balanced, token_to_header

logger = logging.getLogger(__name__)

_NEEDS_QUOTES = re.compile(r'[\s"\'()]')


def parse_headers(raw: Optional[str]) -> List[HeaderPair]:
    """Parse a header argument into an ordered list of HeaderPairs.

    Tokens are separated by whitespace; a value may contain whitespace when it
    is quoted or wrapped in parentheses.  Tokens without a ``name=value``
    shape are skipped rather than rejected.

    Examples:
        >>> parse_headers('Content-Type=application/json X-Opaque-Id="my search"')
        [HeaderPair(name='Content-Type', value='application/json'), HeaderPair(name='X-Opaque-Id', value='my search')]
    """
    if raw is None or not str(raw).strip():
        return []

    pairs = []
    for token in split_balanced(str(raw)):
        pair = token_to_header(token)
        if pair is None:
            logger.debug(f"Ignoring header token without name=value shape: {token!r}")
            continue
        pairs.append(pair)
    return pairs


def format_headers(pairs: Iterable[HeaderPair]) -> str:
    """Serialize HeaderPairs back into the argument form accepted by parse_headers."""
    tokens = []
    for pair in pairs:
        value = pair.value
        if _NEEDS_QUOTES.search(value):
            quote = "'" if '"' in value else '"'
            value = f"{quote}{value}{quote}"
        tokens.append(f"{pair.name}={value}")
    return " ".join(tokens)


def headers_to_dict(pairs: Iterable[HeaderPair]) -> Dict[str, str]:
    """Fold HeaderPairs into the mapping sent with a request.

    Later pairs keep the spelling of the first occurrence of a name.  Repeated
    names (compared case-insensitively) are combined into one comma-separated
    field, which HTTP defines as equivalent to sending each of them.
    """
    result: Dict[str, str] = {}
    spelled: Dict[str, str] = {}
    for pair in pairs:
        key = pair.name.lower()
        if key in spelled:
            name = spelled[key]
            result[name] = f"{result[name]}, {pair.value}"
        else:
            spelled[key] = pair.name
            result[pair.name] = pair.value
    return result


def merge_headers(defaults: Iterable[HeaderPair], explicit: Iterable[HeaderPair]) -> List[HeaderPair]:
    """Combine default and explicit headers; an explicit name replaces every default of that name."""
    explicit = list(explicit)
    overridden = {pair.name.lower() for pair in explicit}
    return [pair for pair in defaults if pair.name.lower() not in overridden] + explicit
