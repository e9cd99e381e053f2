from espipe.pipeline import run_script, build_pipeline
from espipe.output.sink import tangle_body, write_output
from espipe.request.params import ParameterSet, RequestDefaults
from espipe.request.executor import TransportError
from espipe.util.os import ExternalToolError
