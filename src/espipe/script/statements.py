"""Splitting a request script into statements.

The text before the first marker line belongs to the implicit first
statement, whose method and URL come from the run's parameters.  Every marker
line after that starts another statement that runs until the next marker.
"""
import logging
from typing import Iterator, Tuple, Union

from espipe.pipe.core import source
from espipe.script.parsers import (
    END_OF_SCRIPT, MARKER_CANDIDATE, Exhausted, ParseError, Statement, parse_statement_header
)

logger = logging.getLogger(__name__)


def split_leading(text: str) -> Tuple[str, int]:
    """Return the body of the implicit first statement and the offset where it ends."""
    match = MARKER_CANDIDATE.search(text)
    end = match.start() if match else len(text)
    return text[:end].strip(), end


class StatementIterator:
    """Walks a script from a cursor, producing one Statement per marker line.

    next() returns an Exhausted value instead of raising once the script runs
    out of markers or meets a marker line that does not parse.  The cursor
    only moves forward, and never past a malformed marker.
    """

    def __init__(self, text: str, cursor: int = 0):
        self.text = text
        self.cursor = cursor

    def next(self) -> Union[Statement, Exhausted]:
        match = MARKER_CANDIDATE.search(self.text, self.cursor)
        if match is None:
            return Exhausted(END_OF_SCRIPT, self.cursor)

        line = match.group(0).rstrip()
        try:
            method, url = parse_statement_header(line)
        except ParseError as e:
            return Exhausted(f"malformed statement line {line.strip()!r}: {e}", match.start())

        following = MARKER_CANDIDATE.search(self.text, match.end())
        end = following.start() if following else len(self.text)
        self.cursor = end
        return Statement(method=method, url=url, body=self.text[match.end():end].strip(), cursor=end)

    def __iter__(self) -> Iterator[Statement]:
        while True:
            outcome = self.next()
            if isinstance(outcome, Exhausted):
                if outcome.malformed:
                    logger.warning(f"Stopping at offset {outcome.cursor}: {outcome.reason}")
                else:
                    logger.debug("No more statements in script")
                return
            yield outcome


@source()
def statementSource(text: str, method: str, url: str):
    """Yield the implicit first statement built from method and url, then every marked statement."""
    body, cursor = split_leading(text)
    yield Statement(method=method, url=url, body=body, cursor=cursor)
    yield from StatementIterator(text, cursor)
