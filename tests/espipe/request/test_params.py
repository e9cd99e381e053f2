import pytest
from pydantic import ValidationError
from espipe.request.params import DEFAULT_URL, ParameterSet, RequestDefaults
from espipe.script.parsers import HeaderPair


class TestRequestDefaults:

    def test_builtin_defaults(self):
        defaults = RequestDefaults()
        assert defaults.method == "POST"
        assert defaults.url == DEFAULT_URL
        assert defaults.headers == [HeaderPair("Content-Type", "application/json")]
        assert defaults.warn_on_delete is True
        assert defaults.timeout is None

    def test_from_config(self):
        defaults = RequestDefaults.from_config({
            "default_method": "GET",
            "default_url": "http://search:9200/logs/_search",
            "default_headers": "Accept=application/json X-Opaque-Id=espipe",
            "jq_path": "/opt/bin/jq",
            "warn_on_delete": "no",
            "request_timeout": "2.5",
            "unrelated": 1,
        })
        assert defaults.method == "GET"
        assert defaults.url == "http://search:9200/logs/_search"
        assert defaults.headers == [HeaderPair("Accept", "application/json"), HeaderPair("X-Opaque-Id", "espipe")]
        assert defaults.jq_path == "/opt/bin/jq"
        assert defaults.warn_on_delete is False
        assert defaults.timeout == 2.5

    def test_from_global_config(self, monkeypatch):
        from espipe.util import config
        monkeypatch.setattr(config, "_config", {"default_method": "PUT"})
        assert RequestDefaults.from_config().method == "PUT"

    def test_is_immutable(self):
        with pytest.raises(ValidationError):
            RequestDefaults().method = "GET"


class TestParameterSet:

    def test_from_editor_options(self):
        params = ParameterSet.from_options({
            "method": "GET",
            "url": "http://search:9200/logs/_search",
            "var": {"user": "kim"},
            "jq": ".hits",
            "file": "out.org",
            "results": "raw",
        })
        assert params.method == "GET"
        assert params.variables == {"user": "kim"}
        assert params.jq == ".hits"
        assert params.file == "out.org"
        assert params.shell is None

    @pytest.mark.parametrize("variables", [
        [("user", "kim"), ("size", 3)],
        (("user", "kim"), ("size", 3)),
        ["user=kim", "size=3"],
    ])
    def test_variable_forms(self, variables):
        params = ParameterSet.from_options({"var": variables})
        assert list(params.variables) == ["user", "size"]
        assert params.variables["user"] == "kim"

    def test_variables_by_field_name(self):
        assert ParameterSet(variables="a=1").variables == {"a": "1"}
        assert ParameterSet(variables=("a", 1)).variables == {"a": 1}

    def test_bad_variable_assignment(self):
        with pytest.raises(ValidationError):
            ParameterSet.from_options({"var": ["no-equals-sign"]})

    def test_defaults_fill_in_method_and_url(self):
        defaults = RequestDefaults(method="GET", url="http://search:9200/_search")
        params = ParameterSet.from_options(None)
        assert params.resolved_method(defaults) == "GET"
        assert params.resolved_url(defaults) == "http://search:9200/_search"
        explicit = ParameterSet(method="PUT", url="http://other:9200/x")
        assert explicit.resolved_method(defaults) == "PUT"
        assert explicit.resolved_url(defaults) == "http://other:9200/x"

    def test_from_options_passes_parameter_sets_through(self):
        params = ParameterSet(jq=".a")
        assert ParameterSet.from_options(params) is params
