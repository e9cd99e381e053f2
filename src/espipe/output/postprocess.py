"""Post-processing of response text: jq filter, shell command, tablify."""
import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

from espipe.output.tablify import tablify
from espipe.pipe.core import segment
from espipe.request.params import ParameterSet, RequestDefaults
from espipe.script.parsers import parse_filter_spec
from espipe.util.os import run_filter_tool, run_shell_command

logger = logging.getLogger(__name__)

WARNING_PREFIX = "# Warning: "


@dataclass(frozen=True)
class ResponseText:
    """The text of one statement's response as it moves through post-processing."""
    text: str
    warning: str = ""
    final: bool = False
    """Error payloads are final and shown exactly as the server sent them."""


def with_warning(text: str, warning: str) -> str:
    if not warning:
        return text
    prefix = "\n".join(WARNING_PREFIX + line for line in warning.splitlines())
    return f"{prefix}\n{text}"


def post_process(response: ResponseText, params: ParameterSet, defaults: RequestDefaults) -> str:
    """Apply the jq, shell and tablify stages that params ask for, in that order.

    The tools' exit statuses are not checked: whatever they print, error
    messages included, becomes the text.
    """
    if response.final:
        return response.text

    text = response.text
    if params.jq:
        flags, expression = parse_filter_spec(params.jq)
        logger.debug(f"Filtering through {defaults.jq_path} with flags {flags} and expression {expression!r}")
        text = run_filter_tool(defaults.jq_path, flags, expression, text)

    if params.shell:
        logger.debug(f"Piping through shell command {params.shell!r}")
        text = run_shell_command(defaults.shell_path, params.shell, text)

    if params.tablify:
        text = tablify(text, params.tablify)

    return with_warning(text, response.warning)


@segment()
def postProcess(responses: Iterable[Optional[ResponseText]], params: ParameterSet,
                defaults: RequestDefaults) -> Iterator[Optional[str]]:
    for response in responses:
        yield None if response is None else post_process(response, params, defaults)
