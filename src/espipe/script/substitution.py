"""Expansion of ``${name}`` placeholders in a script body."""
import json
import logging
import re
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r'\$\{\s*([A-Za-z_][A-Za-z0-9_.\-]*)\s*\}')


def render_value(value: Any) -> str:
    """The text a variable value is substituted as.

    Containers, None and booleans are written as JSON so that they can be
    dropped straight into a JSON request body.
    """
    if isinstance(value, str):
        return value
    if value is None or isinstance(value, (bool, dict, list, tuple)):
        return json.dumps(value)
    return str(value)


def substitute_variables(body: str, variables: Optional[Mapping[str, Any]]) -> str:
    """Replace each ``${name}`` in body with the value of that variable.

    Placeholders naming an unknown variable are left untouched.
    """
    if not variables:
        return body

    def replace(match: re.Match) -> str:
        name = match.group(1)
        if name not in variables:
            logger.debug(f"No value for variable {name}, leaving placeholder in place")
            return match.group(0)
        return render_value(variables[name])

    return PLACEHOLDER.sub(replace, body)
