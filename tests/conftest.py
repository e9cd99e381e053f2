"""Shared fixtures for the espipe tests.

Every test runs with an empty configuration so that a developer's own
~/.espipe.toml or ESPIPE_* environment variables cannot leak in.
"""

import os
import stat
import pytest
from unittest.mock import MagicMock
from requests.structures import CaseInsensitiveDict

from espipe.request.params import RequestDefaults
from espipe.util import config


@pytest.fixture(autouse=True)
def empty_config(monkeypatch):
    for key in list(os.environ):
        if key.startswith(config.ENV_PREFIX):
            monkeypatch.delenv(key, raising=False)
    config.reset_config()
    monkeypatch.setattr(config, "_config", {})
    yield
    config.reset_config()


@pytest.fixture
def make_response():
    """Factory for objects shaped like requests.Response."""

    def _make(status=200, body="", headers=None):
        response = MagicMock()
        response.status_code = status
        response.content = body.encode("utf-8") if isinstance(body, str) else body
        response.headers = CaseInsensitiveDict(headers or {})
        return response

    return _make


@pytest.fixture
def fake_jq(tmp_path):
    """An executable standing in for jq: prints its arguments, then echoes stdin."""
    script = tmp_path / "fake-jq"
    script.write_text('#!/bin/sh\necho "args: $*"\ncat\n')
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(script)


@pytest.fixture
def defaults(fake_jq):
    return RequestDefaults(url="http://search:9200/_search", jq_path=fake_jq)
