import logging
import subprocess  # nosec B404 - Required to run the user's filter and shell tools
from typing import List

logger = logging.getLogger(__name__)


class ExternalToolError(Exception):
    """Raised when an external filter or shell tool cannot be launched."""
    pass


def pipe_through(command_parts: List[str], text: str) -> str:
    """
    Runs an external command with text on its standard input and returns what it printed.

    Standard error is merged into standard output and the exit status is not
    checked, so a failing tool's error message becomes the returned text.

    Args:
        command_parts: The program followed by its arguments.  No shell is involved.
        text: The text written to the command's stdin.

    Returns:
        Everything the command wrote to stdout and stderr.

    Raises:
        ValueError: If command_parts is empty.
        ExternalToolError: If the program cannot be started.
    """
    if not command_parts:
        raise ValueError("Empty command provided")

    logger.debug(f"Executing command: {command_parts}")
    try:
        completed = subprocess.run(  # nosec B603
            command_parts,
            input=text,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            encoding="utf-8",
            errors="replace",
            shell=False,
            check=False,
        )
    except OSError as e:
        logger.error(f"Could not start '{command_parts[0]}': {e}")
        raise ExternalToolError(f"Could not start '{command_parts[0]}': {e}") from e

    if completed.returncode != 0:
        logger.warning(f"Command {command_parts[0]} exited with return code {completed.returncode}")
    else:
        logger.debug("Command completed successfully")
    return completed.stdout


def run_filter_tool(tool_path: str, flags: List[str], expression: str, text: str) -> str:
    """Pipe text through a jq-style filter tool invoked as ``<tool> -r <flags> <expression>``."""
    return pipe_through([tool_path, "-r", *flags, expression], text)


def run_shell_command(shell_path: str, command: str, text: str) -> str:
    """Pipe text through an arbitrary shell command line."""
    return pipe_through([shell_path, "-c", command], text)
