"""Run a request script provided on the command line."""
import logging
import argparse
import sys
from espipe.output.sink import tangle_body
from espipe.pipeline import run_script
from espipe.request.params import ParameterSet, RequestDefaults
from espipe.util import config
from espipe.util.config import load_script

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Run the search requests in a script and print the combined result.')
    parser.add_argument('--script', type=str, required=True, help='The request script to run: file path, configuration key, or inline script content.')
    parser.add_argument('--method', type=str, help='Method of the first request. Defaults to the configured default_method.')
    parser.add_argument('--url', type=str, help='URL of the first request and base for relative URLs. Defaults to the configured default_url.')
    parser.add_argument('--headers', type=str, help="Extra headers as 'name=value name=value'.")
    parser.add_argument('--var', action='append', default=[], type=str, help='A variable for ${name} placeholders, as name=value. Can be given multiple times.')
    parser.add_argument('--jq', type=str, help='A jq filter (optionally preceded by jq flags) applied to each response.')
    parser.add_argument('--shell', type=str, help='A shell command each response is piped through.')
    parser.add_argument('--tablify', type=str, help="Render aggregation buckets as a table: an aggregation path or 't' for the first one.")
    parser.add_argument('--file', type=str, help='Write the result into this file instead of printing it.')
    parser.add_argument('--tangle', type=str, help='Print the script as tangled for this target file instead of running it.')
    parser.add_argument('--config', type=str, default=config.DEFAULT_CONFIG_PATH, help='Path to the configuration file.')
    parser.add_argument('--yes', action='store_true', help='Send destructive requests without asking.')
    parser.add_argument("--logger_levels", type=str, help="Logger levels in format 'logger:level,logger:level,...'")
    parser.add_argument("--logger_files", type=str, help="Logger files in format 'logger:file,logger:file,...'")
    return parser


def main(argv=None):
    """Run a request script from command line arguments.

    The --script parameter checks for: 1) existing file path, 2) configuration
    value, 3) inline script content.  The result (or the output file path when
    --file is given) is printed to stdout.

    Raises:
        ValueError: If the script is empty.
        TransportError: If a request fails without a response.
    """
    args = build_parser().parse_args(argv)

    config.get_config(reload=True, path=args.config)
    config.configure_logger(args.logger_levels, logger_files=args.logger_files)

    script = load_script(args.script)
    params = ParameterSet(
        method=args.method,
        url=args.url,
        headers=args.headers,
        variables=args.var,
        jq=args.jq,
        shell=args.shell,
        tablify=args.tablify,
        file=args.file,
        tangle=args.tangle,
    )
    defaults = RequestDefaults.from_config()

    if args.tangle:
        print(tangle_body(script, params, defaults))
        return

    confirm_fn = (lambda message: True) if args.yes else None
    result = run_script(script, params, defaults, confirm_fn=confirm_fn)
    sys.stdout.write(result)
    if result and not result.endswith("\n"):
        sys.stdout.write("\n")


if __name__ == '__main__':
    main()
