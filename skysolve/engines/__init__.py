"""
Module for the external programs driven by skysolve: the prepare engine, the
solve engine and the plotting tools.

Each submodule only builds command lines. They are run with
:func:`skysolve.utils.run_command`.
"""
from skysolve.engines.plotting import (
    get_constellation_command,
    get_solution_plot_command,
    get_source_plot_command,
)
from skysolve.engines.prepare import (
    PrepareOption,
    add_prepare_arguments,
    collect_prepare_args,
    get_prepare_command,
    merge_prepare_options,
    prepare_engine_options,
)
from skysolve.engines.solver import get_solve_command
from skysolve.engines.toolbox import Toolbox
