import pytest
import requests
from unittest.mock import MagicMock, patch
from requests.structures import CaseInsensitiveDict

from espipe.output.postprocess import ResponseText
from espipe.request.executor import (
    RawResponse, TransportError, execute_statement, extract_warning, is_destructive,
    pretty_print, render_response, resolve_url
)
from espipe.request.params import RequestDefaults
from espipe.script.parsers import HeaderPair, Statement

BASE = "http://search:9200/_search?pretty"


def statement(method="GET", url="/logs/_search", body=""):
    return Statement(method=method, url=url, body=body, cursor=0)


@pytest.mark.parametrize("url,expected", [
    ("/logs/_search", "http://search:9200/logs/_search"),
    ("logs/_count?q=a", "http://search:9200/logs/_count?q=a"),
    ("https://other:9243/x", "https://other:9243/x"),
    ("  /padded  ", "http://search:9200/padded"),
    ("other:9201/logs/_count", "http://other:9201/logs/_count"),
    ("logs/_search?q=time:10", "http://search:9200/logs/_search?q=time:10"),
])
def test_resolve_url(url, expected):
    assert resolve_url(url, BASE) == expected


def test_resolve_url_adds_missing_scheme():
    assert resolve_url("localhost:9200/_search", "https://search:9243/_search") == "https://localhost:9200/_search"
    assert resolve_url("localhost:9200", None) == "http://localhost:9200"
    assert resolve_url("/logs/_count", resolve_url("localhost:9200/_search", None)) == \
        "http://localhost:9200/logs/_count"


def test_resolve_url_requires_a_url():
    with pytest.raises(ValueError, match="non-empty URL"):
        resolve_url("  ", BASE)


@pytest.mark.parametrize("method,url,expected", [
    ("DELETE", "http://search:9200/logs", True),
    ("POST", "http://search:9200/logs/_delete_by_query", True),
    ("POST", "http://search:9200/logs/_search?q=_delete_by_query", False),
    ("GET", "http://search:9200/logs", False),
])
def test_is_destructive(method, url, expected):
    assert is_destructive(method, url) is expected


def test_extract_warning():
    headers = CaseInsensitiveDict({
        "Warning": '299 Elasticsearch-7.17.0-abc "[types removal] Specifying types is deprecated.", '
                   '299 Elasticsearch-7.17.0-abc "Second \\"quoted\\" warning"'
    })
    assert extract_warning(headers) == \
        '[types removal] Specifying types is deprecated.\nSecond "quoted" warning'
    assert extract_warning(CaseInsensitiveDict({"warning": "plain text"})) == "plain text"
    assert extract_warning(CaseInsensitiveDict()) == ""


def test_execute_statement_sends_request(make_response):
    defaults = RequestDefaults(timeout=5)
    response = make_response(200, '{"count": 3}', {"Warning": '299 Elasticsearch-8 "careful"'})
    with patch("requests.request", return_value=response) as mock_request:
        raw = execute_statement(statement("get", "/logs/_count", '{"query": {"term": {"user": "zoë"}}}'),
                                [HeaderPair("Content-Type", "application/json")], defaults, base_url=BASE)

    mock_request.assert_called_once_with(
        "GET", "http://search:9200/logs/_count",
        headers={"Content-Type": "application/json"},
        data='{"query": {"term": {"user": "zoë"}}}'.encode("utf-8"),
        timeout=5,
    )
    assert raw == RawResponse(status=200, body='{"count": 3}', warning="careful", length=12)


def test_execute_statement_without_body_sends_no_data(make_response):
    with patch("requests.request", return_value=make_response(200, "{}")) as mock_request:
        execute_statement(statement(), [], RequestDefaults(), base_url=BASE)
    assert mock_request.call_args.kwargs["data"] is None


def test_execute_statement_requires_method():
    with pytest.raises(ValueError, match="non-empty method"):
        execute_statement(statement(method=" "), [], RequestDefaults(), base_url=BASE)


def test_declined_delete_sends_nothing(caplog):
    confirm = MagicMock(return_value=False)
    with patch("requests.request") as mock_request:
        raw = execute_statement(statement("DELETE", "/logs"), [], RequestDefaults(), confirm_fn=confirm, base_url=BASE)
    assert raw is None
    mock_request.assert_not_called()
    confirm.assert_called_once_with("Do you really want to send DELETE http://search:9200/logs?")
    assert "declined" in caplog.text


def test_confirmed_delete_is_sent(make_response):
    with patch("requests.request", return_value=make_response(200, '{"acknowledged": true}')) as mock_request:
        raw = execute_statement(statement("DELETE", "/logs"), [], RequestDefaults(),
                                confirm_fn=lambda message: True, base_url=BASE)
    assert raw.status == 200
    mock_request.assert_called_once()


def test_delete_without_warning_skips_confirmation(make_response):
    confirm = MagicMock(return_value=False)
    with patch("requests.request", return_value=make_response(200, "{}")):
        raw = execute_statement(statement("DELETE", "/logs"), [], RequestDefaults(warn_on_delete=False),
                                confirm_fn=confirm, base_url=BASE)
    assert raw is not None
    confirm.assert_not_called()


def test_default_confirmation_uses_terminal_prompt(make_response):
    with patch("espipe.request.executor.confirm", return_value=False) as mock_confirm, \
            patch("requests.request") as mock_request:
        assert execute_statement(statement("DELETE", "/logs"), [], RequestDefaults(), base_url=BASE) is None
    mock_confirm.assert_called_once()
    mock_request.assert_not_called()


def test_transport_failure_is_raised():
    with patch("requests.request", side_effect=requests.ConnectionError("refused")):
        with pytest.raises(TransportError, match="refused") as excinfo:
            execute_statement(statement(), [], RequestDefaults(), base_url=BASE)
    assert isinstance(excinfo.value.__cause__, requests.ConnectionError)


def test_pretty_print():
    assert pretty_print('{"hits":{}}') == '{\n  "hits": {}\n}'
    assert pretty_print('{"name":"Zoë"}') == '{\n  "name": "Zoë"\n}'
    assert pretty_print("health status index\ngreen open logs") == "health status index\ngreen open logs"


class TestRenderResponse:

    def test_empty_body_gives_no_output(self):
        assert render_response(RawResponse(200, "", "", 0)) is None
        assert render_response(None) is None

    def test_error_body_is_final_and_verbatim(self):
        rendered = render_response(RawResponse(404, '{"error":"not found"}', "ignored", 21))
        assert rendered == ResponseText(text='{"error":"not found"}', final=True)

    def test_success_is_pretty_printed_with_warning(self):
        rendered = render_response(RawResponse(200, '{"hits":{}}', "deprecated", 11))
        assert rendered == ResponseText(text='{\n  "hits": {}\n}', warning="deprecated")

    def test_malformed_json_is_kept_raw(self):
        rendered = render_response(RawResponse(200, '{"hits":', "", 8))
        assert rendered.text == '{"hits":'
        assert not rendered.final
