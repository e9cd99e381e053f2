"""Running a request script from start to finish."""
import logging
from typing import Any, Mapping, Optional, Union

from espipe.output.postprocess import postProcess
from espipe.output.sink import write_output
from espipe.pipe.core import Pipeline
from espipe.request.executor import ConfirmFn, executeStatements, renderResponses, resolve_url
from espipe.request.params import ParameterSet, RequestDefaults
from espipe.script.headers import merge_headers, parse_headers
from espipe.script.statements import statementSource
from espipe.script.substitution import substitute_variables

logger = logging.getLogger(__name__)


def build_pipeline(body: str, params: ParameterSet, defaults: RequestDefaults,
                   confirm_fn: Optional[ConfirmFn] = None) -> Pipeline:
    """Assemble the statement pipeline for an already substituted script body.

    The pipeline yields one entry per statement: its display text, or None
    when the statement produced no output.
    """
    base_url = resolve_url(params.resolved_url(defaults), defaults.url)
    headers = merge_headers(defaults.headers, parse_headers(params.headers))
    return (statementSource(body, params.resolved_method(defaults), base_url)
            | executeStatements(headers, defaults, confirm_fn=confirm_fn, base_url=base_url)
            | renderResponses()
            | postProcess(params, defaults))


def run_script(body: str,
               params: Union[ParameterSet, Mapping[str, Any], None] = None,
               defaults: Optional[RequestDefaults] = None,
               confirm_fn: Optional[ConfirmFn] = None) -> str:
    """Execute every request in a script body and return the combined result.

    Variables are substituted once, then the statements run one after the
    other.  Their outputs are joined with newlines and handed to the output
    sink, so the return value is either that text or, when params name an
    output file, the path it was written to.

    Args:
        body: The script text.
        params: A ParameterSet or the raw option mapping (method, url, headers,
            var, jq, shell, tablify, file, tangle).
        defaults: Fallbacks for method, URL and headers plus tool locations.
            Read from the configuration when omitted.
        confirm_fn: Asked before destructive requests.  Defaults to a terminal prompt.

    Raises:
        TransportError: If any request fails without a response.
    """
    params = ParameterSet.from_options(params)
    if defaults is None:
        defaults = RequestDefaults.from_config()

    text = substitute_variables(body, params.variables)
    pipeline = build_pipeline(text, params, defaults, confirm_fn=confirm_fn)

    outputs = []
    for output in pipeline():
        if output is not None:
            outputs.append(output)
    logger.debug(f"Collected output from {len(outputs)} statements")
    return write_output("\n".join(outputs), params.file)
