"""Grammars and value types for request scripts.

A request script is free text in which a line such as ``GET /index/_search``
starts a new statement.  This module holds the small parsy grammars used to
recognize those statement markers, to tokenize header arguments and to split
a filter argument into flags and expression, along with the frozen
value types the rest of the package passes around.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple
from parsy import regex, string, seq, generate, whitespace, ParseError

HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "HEAD", "PATCH", "OPTIONS")


@dataclass(frozen=True)
class Statement:
    """One request of a script."""
    method: str
    """The HTTP method, upper-cased."""
    url: str
    """The target URL, absolute or relative to the run's base URL."""
    body: str
    """The request body, stripped of surrounding whitespace."""
    cursor: int
    """Offset in the script text where the search for the next statement resumes."""


@dataclass(frozen=True)
class Exhausted:
    """The statement iterator's "no more statements" outcome."""
    reason: str
    cursor: int

    @property
    def malformed(self) -> bool:
        return self.reason != END_OF_SCRIPT


END_OF_SCRIPT = "end of script"


@dataclass(frozen=True)
class HeaderPair:
    """A single request header."""
    name: str
    value: str


# Statement markers

inline_space = regex(r'[ \t]+')
method_word = regex(r'(?i)(?:' + '|'.join(HTTP_METHODS) + r')(?![^ \t])').map(str.upper)
"""An HTTP method keyword, in any case, followed by a blank or the end of the line."""
url_token = regex(r'\S+').desc("url")

statement_header = seq(
    method=inline_space.optional() >> method_word,
    url=inline_space >> url_token << inline_space.optional()
).map(lambda x: (x['method'], x['url']))
"""A complete statement marker line: a method, a URL and nothing else."""

MARKER_CANDIDATE = re.compile(
    r'^[ \t]*(?:' + '|'.join(HTTP_METHODS) + r')(?=[ \t]|$).*$',
    re.IGNORECASE | re.MULTILINE,
)
"""Lines that look like they start a statement and must therefore parse as one."""


def parse_statement_header(line: str) -> Tuple[str, str]:
    """Parse a marker line into (METHOD, url).

    Raises:
        parsy.ParseError: If the line is not a well formed marker.
    """
    return statement_header.parse(line)


# Header arguments

double_quoted = regex(r'"[^"]*"')
single_quoted = regex(r"'[^']*'")
stray_char = regex(r'["\'()]')
"""An unbalanced quote or paren, kept as an ordinary character."""


@generate("parenthesized group")
def paren_group():
    yield string('(')
    parts = yield (paren_group | double_quoted | single_quoted | regex(r'[^()"\']+') | regex(r'["\']')).many()
    yield string(')')
    return '(' + ''.join(parts) + ')'


bare_chars = regex(r'[^\s"\'()]+')
balanced_token = (double_quoted | single_quoted | paren_group | bare_chars | stray_char).at_least(1).concat()
"""A run of text split only on whitespace outside quotes and parens."""
balanced_tokens = whitespace.optional() >> balanced_token.sep_by(whitespace) << whitespace.optional()


def split_balanced(text: str) -> List[str]:
    """Split text on whitespace that is not inside quotes or balanced parens."""
    return balanced_tokens.parse(text)


def unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def token_to_header(token: str) -> Optional[HeaderPair]:
    """Turn a ``name=value`` token into a HeaderPair, or None if it has no such shape."""
    name, sep, value = token.partition('=')
    name = name.strip()
    if not sep or not name:
        return None
    return HeaderPair(name=name, value=unquote(value.strip()).strip())


# Filter arguments

filter_flag = regex(r'-\S*') << whitespace
filter_spec = seq(
    flags=filter_flag.many(),
    expression=regex(r'.*', flags=re.DOTALL).map(str.strip)
).map(lambda x: (x['flags'], x['expression']))


def parse_filter_spec(spec: str) -> Tuple[List[str], str]:
    """Split a filter argument into leading dash flags and the filter expression.

    Flags are separated by whitespace, so a flag cannot itself contain spaces.

    Examples:
        >>> parse_filter_spec("-c --slurp .hits")
        (['-c', '--slurp'], '.hits')
    """
    return filter_spec.parse(spec.strip())


__all__ = [
    "HTTP_METHODS", "END_OF_SCRIPT", "Statement", "Exhausted", "HeaderPair",
    "MARKER_CANDIDATE", "parse_statement_header", "split_balanced", "token_to_header",
    "parse_filter_spec", "unquote", "ParseError",
]
