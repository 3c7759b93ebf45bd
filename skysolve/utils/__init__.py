"""
Module for util/helper functions
"""

from skysolve.utils.execute_cmd import (
    CommandResult,
    ExecutionError,
    InterruptedExecutionError,
    check_command,
    find_executable,
    flush_all,
    pipe_commands,
    run_command,
    shell_join,
)
