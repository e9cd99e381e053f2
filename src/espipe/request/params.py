"""Run parameters and the configuration defaults they fall back on."""
import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from espipe.script.headers import parse_headers
from espipe.script.parsers import HeaderPair
from espipe.util.config import get_config, parse_bool

logger = logging.getLogger(__name__)

DEFAULT_METHOD = "POST"
DEFAULT_URL = "http://localhost:9200/_search?pretty"
DEFAULT_HEADERS = "Content-Type=application/json"


class RequestDefaults(BaseModel):
    """Immutable defaults for a run, normally built from the configuration.

    Examples:
        defaults = RequestDefaults.from_config()
        defaults = RequestDefaults(url="http://search:9200/_search", warn_on_delete=False)
    """
    model_config = ConfigDict(frozen=True)

    method: str = DEFAULT_METHOD
    url: str = DEFAULT_URL
    headers: List[HeaderPair] = Field(default_factory=lambda: parse_headers(DEFAULT_HEADERS))
    jq_path: str = "jq"
    shell_path: str = "/bin/sh"
    warn_on_delete: bool = True
    timeout: Optional[float] = None

    @field_validator("headers", mode="before")
    @classmethod
    def _parse_header_string(cls, value):
        if value is None or isinstance(value, str):
            return parse_headers(value)
        return value

    @field_validator("warn_on_delete", mode="before")
    @classmethod
    def _parse_flag(cls, value):
        return parse_bool(value)

    @classmethod
    def from_config(cls, config: Optional[Mapping[str, Any]] = None) -> "RequestDefaults":
        """Build defaults from a configuration mapping (get_config() when omitted)."""
        if config is None:
            config = get_config()
        keys = {
            "default_method": "method",
            "default_url": "url",
            "default_headers": "headers",
            "jq_path": "jq_path",
            "shell_path": "shell_path",
            "warn_on_delete": "warn_on_delete",
            "request_timeout": "timeout",
        }
        values = {field: config[key] for key, field in keys.items() if config.get(key) is not None}
        logger.debug(f"Request defaults from configuration: {values}")
        return cls(**values)


class ParameterSet(BaseModel):
    """The options a script block is run with.

    Built from the option mapping handed over by the editor (``var``, ``jq``,
    ``file`` and so on); unrecognized options are ignored.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    method: Optional[str] = None
    url: Optional[str] = None
    headers: Optional[str] = None
    variables: Dict[str, Any] = Field(default_factory=dict, alias="var")
    jq: Optional[str] = None
    shell: Optional[str] = None
    tablify: Optional[Union[str, bool]] = None
    file: Optional[str] = None
    tangle: Optional[str] = None

    @field_validator("variables", mode="before")
    @classmethod
    def _collect_variables(cls, value):
        """Accept a mapping, (name, value) pairs or ``name=value`` strings."""
        if value is None:
            return {}
        if isinstance(value, Mapping):
            return dict(value)
        if isinstance(value, str) or (isinstance(value, tuple) and len(value) == 2 and isinstance(value[0], str)):
            value = [value]
        collected = {}
        for item in value:
            if isinstance(item, str):
                name, sep, text = item.partition("=")
                if not sep:
                    raise ValueError(f"Variable assignment '{item}' is not of the form name=value")
                collected[name.strip()] = text.strip()
            else:
                name, text = item
                collected[str(name)] = text
        return collected

    @classmethod
    def from_options(cls, options: Union["ParameterSet", Mapping[str, Any], None]) -> "ParameterSet":
        if isinstance(options, ParameterSet):
            return options
        if options is None:
            return cls()
        return cls.model_validate(dict(options))

    def resolved_method(self, defaults: RequestDefaults) -> str:
        return self.method or defaults.method

    def resolved_url(self, defaults: RequestDefaults) -> str:
        return self.url or defaults.url
