"""Execution of a single statement against the search server."""

import json
import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, List, Optional
from urllib.parse import urljoin, urlsplit

import requests
from prompt_toolkit.shortcuts import confirm

from espipe.output.postprocess import ResponseText
from espipe.pipe.core import segment
from espipe.request.params import RequestDefaults
from espipe.script.headers import headers_to_dict
from espipe.script.parsers import HeaderPair, Statement

logger = logging.getLogger(__name__)

ConfirmFn = Callable[[str], bool]

_ELASTIC_WARNING = re.compile(r'\d{3} \S+ "((?:[^"\\]|\\.)*)"')
_HOST_AND_PORT = re.compile(r"^[A-Za-z0-9.\-]+:\d+(?:[/?#]|$)")


class TransportError(Exception):
    """Raised when a request could not be sent or no response was received."""
    pass


@dataclass(frozen=True)
class RawResponse:
    status: int
    body: str
    warning: str
    length: int

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


def confirm_destructive(message: str) -> bool:
    """Ask on the terminal whether a destructive request should go ahead."""
    return confirm(message)


def resolve_url(url: str, base_url: Optional[str]) -> str:
    """Resolve a statement URL against the scheme and host of base_url.

    Absolute URLs are returned as they are.  Relative ones keep only the
    server part of base_url, so ``/logs/_search`` against
    ``http://localhost:9200/_search?pretty`` becomes
    ``http://localhost:9200/logs/_search``.  A URL that starts with a
    host and port but no scheme, such as ``localhost:9200/_search``, gets the
    scheme of base_url (http when base_url has none).
    """
    url = url.strip()
    if not url:
        raise ValueError("A request needs a non-empty URL")
    if _HOST_AND_PORT.match(url):
        scheme = urlsplit(base_url).scheme if base_url and "://" in base_url else "http"
        return f"{scheme}://{url}"
    if url.startswith("http://") or url.startswith("https://") or not base_url:
        return url
    parts = urlsplit(base_url)
    root = f"{parts.scheme}://{parts.netloc}/"
    return urljoin(root, url.lstrip("/"))


def is_destructive(method: str, url: str) -> bool:
    """DELETE requests and delete-by-query calls remove data and need confirmation."""
    return method == "DELETE" or "_delete_by_query" in urlsplit(url).path


def extract_warning(headers) -> str:
    """Collect the messages of any Warning response headers, one per line."""
    value = headers.get("Warning") if headers is not None else None
    if not value:
        return ""
    messages = _ELASTIC_WARNING.findall(value)
    if not messages:
        return value.strip()
    return "\n".join(m.replace('\\"', '"') for m in messages)


def execute_statement(statement: Statement,
                      headers: List[HeaderPair],
                      defaults: RequestDefaults,
                      confirm_fn: Optional[ConfirmFn] = None,
                      base_url: Optional[str] = None) -> Optional[RawResponse]:
    """Send one statement as a blocking HTTP request.

    Args:
        statement: The statement to send.  Its URL may be relative to base_url.
        headers: The headers to send, already merged with the defaults.
        defaults: Supplies the timeout and whether destructive requests are confirmed.
        confirm_fn: Asked before a destructive request; defaults to a terminal prompt.
        base_url: The URL relative statement URLs are resolved against.

    Returns:
        The response, or None if the user declined a destructive request.

    Raises:
        ValueError: If the method or URL is empty.
        TransportError: If the request fails without an HTTP response.
    """
    method = (statement.method or "").strip().upper()
    if not method:
        raise ValueError("A request needs a non-empty method")
    url = resolve_url(statement.url, base_url)

    if defaults.warn_on_delete and is_destructive(method, url):
        ask = confirm_fn or confirm_destructive
        if not ask(f"Do you really want to send {method} {url}?"):
            logger.warning(f"Not sending {method} {url}: declined by user")
            return None

    data = statement.body.encode("utf-8") if statement.body else None
    logger.info(f"{method} {url}")
    try:
        response = requests.request(method, url, headers=headers_to_dict(headers), data=data,
                                    timeout=defaults.timeout)
    except requests.RequestException as e:
        logger.error(f"Request {method} {url} failed: {e}")
        raise TransportError(f"Request {method} {url} failed: {e}") from e

    content = response.content or b""
    logger.debug(f"Received status {response.status_code} with {len(content)} bytes")
    return RawResponse(
        status=response.status_code,
        body=content.decode("utf-8", errors="replace"),
        warning=extract_warning(response.headers),
        length=len(content),
    )


def pretty_print(body: str) -> str:
    """Indent a JSON body; anything that does not parse as JSON is returned as it is."""
    try:
        parsed = json.loads(body)
    except ValueError:
        logger.debug("Response body is not JSON, leaving it unformatted")
        return body
    return json.dumps(parsed, indent=2, ensure_ascii=False)


def render_response(raw: Optional[RawResponse]) -> Optional[ResponseText]:
    """Turn a raw response into the text handed to post-processing.

    Empty responses produce nothing.  Error responses are passed on verbatim
    and marked final so that no filter touches them.
    """
    if raw is None or not raw.body:
        return None
    if not raw.ok:
        logger.info(f"Server answered {raw.status}, showing the response unmodified")
        return ResponseText(text=raw.body, final=True)
    return ResponseText(text=pretty_print(raw.body), warning=raw.warning)


@segment()
def executeStatements(statements: Iterable[Statement], headers: List[HeaderPair], defaults: RequestDefaults,
                      confirm_fn: Optional[ConfirmFn] = None, base_url: Optional[str] = None) -> Iterator[Optional[RawResponse]]:
    """Send each statement, yielding its response (None when it was not sent)."""
    for statement in statements:
        yield execute_statement(statement, headers, defaults, confirm_fn=confirm_fn, base_url=base_url)


@segment
def renderResponses(responses: Iterable[Optional[RawResponse]]) -> Iterator[Optional[ResponseText]]:
    for raw in responses:
        yield render_response(raw)
