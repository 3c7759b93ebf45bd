"""
Module for executing bash commands
"""
import logging
import os
import shlex
import shutil
import signal
import subprocess
import sys
from pathlib import Path
from typing import Callable, Optional

from skysolve.errors import ConfigurationError, StageError

logger = logging.getLogger(__name__)

INTERRUPT_SIGNALS = (signal.SIGINT, signal.SIGTERM)

# Exit status used by POSIX shells for a child killed by signal N is 128 + N
SHELL_SIGNAL_OFFSET = 128


class ExecutionError(StageError):
    """Error relating to executing bash command"""

    def __init__(self, *args, result: Optional["CommandResult"] = None):
        interrupted = result is not None and result.interrupted
        super().__init__(*args, interrupted=interrupted)
        self.result = result


class InterruptedExecutionError(ExecutionError):
    """Error raised when a command was cancelled by the user"""


class CommandResult:
    """
    Outcome of running a single command line
    """

    def __init__(
        self,
        cmd: str,
        returncode: int,
        signal_number: Optional[int] = None,
        stdout_lines: Optional[list[str]] = None,
    ):
        self.cmd = cmd
        self.returncode = returncode
        self.signal_number = signal_number
        self.stdout_lines = stdout_lines

    @property
    def interrupted(self) -> bool:
        """
        Whether the command was terminated by an interrupt/termination signal

        :return: boolean
        """
        return self.signal_number in INTERRUPT_SIGNALS

    @property
    def succeeded(self) -> bool:
        """
        Whether the command exited normally with status 0

        :return: boolean
        """
        return self.returncode == 0 and self.signal_number is None

    def describe_failure(self) -> str:
        """
        Human-readable description of why the command did not succeed

        :return: description
        """
        if self.interrupted:
            return "was cancelled"
        if self.signal_number is not None:
            return f"was killed by signal {self.signal_number}"
        if self.returncode < 0:
            return "could not be run"
        return f"exited with exit status {self.returncode}"

    def __str__(self):
        return f"CommandResult('{self.cmd}', returncode={self.returncode})"


def flush_all():
    """
    Flushes stdout, stderr and every logging handler, so that output from child
    processes interleaves correctly with our own logs

    :return: None
    """
    sys.stdout.flush()
    sys.stderr.flush()
    for log in [logging.getLogger()] + [
        logging.getLogger(name) for name in logging.root.manager.loggerDict
    ]:
        for handler in getattr(log, "handlers", []):
            handler.flush()


def get_signal_number(returncode: int) -> Optional[int]:
    """
    Extracts the terminating signal of a shell command from its return code

    :param returncode: return code from subprocess
    :return: signal number, or None if the command exited normally
    """
    if returncode < 0:
        return -returncode
    if returncode - SHELL_SIGNAL_OFFSET in INTERRUPT_SIGNALS:
        return returncode - SHELL_SIGNAL_OFFSET
    return None


def run_command(cmd: str, capture_output: bool = False) -> CommandResult:
    """
    Function to run a fully-escaped command line through the shell, blocking
    until it finishes.

    Parameters
    ----------
    cmd: A string containing the command you want to run. Pipes and
    redirections are allowed, e.g.
        cmd = 'plotxy -i field.axy -P | plotxy -I - > field-objs.png'
    capture_output: if True, stdout is captured and split into lines, otherwise
    it streams straight to our own stdout.

    Returns
    -------
    A CommandResult
    """
    logger.debug(f"Running: {cmd}")
    flush_all()

    try:
        rval = subprocess.run(
            cmd,
            shell=True,
            check=False,
            stdout=subprocess.PIPE if capture_output else None,
            text=True,
        )
    except KeyboardInterrupt:
        flush_all()
        logger.error(f"Command was cancelled: {cmd}")
        return CommandResult(
            cmd, returncode=-signal.SIGINT, signal_number=signal.SIGINT
        )
    except OSError as err:
        flush_all()
        logger.error(f"Failed to run command '{cmd}': {err}")
        return CommandResult(cmd, returncode=-1)

    flush_all()

    lines = None
    if capture_output:
        lines = [x for x in rval.stdout.split("\n") if x != ""]

    result = CommandResult(
        cmd,
        returncode=rval.returncode,
        signal_number=get_signal_number(rval.returncode),
        stdout_lines=lines,
    )

    if not result.succeeded:
        logger.error(f"Command {result.describe_failure()}: {cmd}")

    return result


def check_command(
    cmd: str, capture_output: bool = False, runner: Callable = run_command
) -> CommandResult:
    """
    Runs a command, raising an error if it does not succeed

    :param cmd: command
    :param capture_output: whether to capture stdout lines
    :param runner: function used to run the command
    :return: CommandResult of the successful command
    """
    result = runner(cmd, capture_output=capture_output)
    if result.interrupted:
        raise InterruptedExecutionError(
            f"Command {result.describe_failure()}: \n '{cmd}'", result=result
        )
    if not result.succeeded:
        raise ExecutionError(
            f"Command {result.describe_failure()}: \n '{cmd}'", result=result
        )
    return result


def shell_join(args: list[str | Path]) -> str:
    """
    Shell-escapes each argument and joins them into one command line

    :param args: arguments
    :return: command line
    """
    return " ".join(shlex.quote(str(x)) for x in args)


def pipe_commands(commands: list[str], output_path: Optional[str | Path] = None) -> str:
    """
    Composes several command lines into a shell pipeline, optionally
    redirecting the final stdout to a file

    :param commands: already escaped command lines
    :param output_path: file for the stdout of the last command
    :return: composed command line
    """
    cmd = " | ".join(commands)
    if output_path is not None:
        cmd += f" > {shlex.quote(str(output_path))}"
    return cmd


def find_executable(name: str, me: Optional[str | Path] = None) -> Path:
    """
    Locates an executable, first on the search path and then in the
    directory holding our own executable

    :param name: name of executable
    :param me: path of the running driver (defaults to sys.argv[0])
    :return: full path to executable
    """
    found = shutil.which(name)
    if found is not None:
        return Path(found)

    if me is None:
        me = sys.argv[0]

    candidate = Path(me).resolve().parent.joinpath(name)
    if candidate.is_file() and os.access(candidate, os.X_OK):
        return candidate

    err = f"Couldn't find executable '{name}'"
    logger.error(err)
    raise ConfigurationError(err)
