"""
Module for running the solve engine on an augmented coordinate list
"""
import logging
from pathlib import Path

from skysolve.utils import shell_join

logger = logging.getLogger(__name__)


def get_solve_command(
    solver_exe: str | Path, coordinate_list: str | Path, solver_args: list[str]
) -> str:
    """
    Builds the solve-engine command line for one input

    :param solver_exe: solve engine executable
    :param coordinate_list: augmented coordinate list (.axy)
    :param solver_args: arguments shared by every input (config, verbosity)
    :return: command line
    """
    return shell_join([solver_exe] + list(solver_args) + [coordinate_list])
