"""
Module for locating the external programs used by the driver.

The solve and prepare engines are required: a missing one is a configuration
error, raised before any input is processed. The plotting programs are
optional. If any is missing, plotting is simply switched off for the run.
"""
import logging
from pathlib import Path
from typing import Optional

from skysolve.errors import ConfigurationError
from skysolve.paths import (
    PLOT_CONSTELLATIONS_NAME,
    PLOTQUAD_NAME,
    PLOTXY_NAME,
    PREPARE_ENGINE_NAME,
    SOLVE_ENGINE_NAME,
)
from skysolve.utils import find_executable

logger = logging.getLogger(__name__)


class Toolbox:
    """
    Resolved paths of every external program
    """

    def __init__(
        self,
        solver: str | Path,
        prepare: str | Path,
        plotxy: Optional[str | Path] = None,
        plotquad: Optional[str | Path] = None,
        plot_constellations: Optional[str | Path] = None,
    ):
        self.solver = solver
        self.prepare = prepare
        self.plotxy = plotxy
        self.plotquad = plotquad
        self.plot_constellations = plot_constellations

    @property
    def can_plot(self) -> bool:
        """
        Whether all plotting programs were found

        :return: boolean
        """
        return None not in [self.plotxy, self.plotquad, self.plot_constellations]

    @classmethod
    def resolve(cls, me: Optional[str | Path] = None, plotting: bool = True):
        """
        Locates every program, on the search path or next to our own executable

        :param me: path of the running driver
        :param plotting: whether to look for the plotting programs
        :return: Toolbox
        """
        solver = find_executable(SOLVE_ENGINE_NAME, me)
        prepare = find_executable(PREPARE_ENGINE_NAME, me)

        plot_tools = {}
        if plotting:
            for name in [PLOTXY_NAME, PLOTQUAD_NAME, PLOT_CONSTELLATIONS_NAME]:
                try:
                    plot_tools[name] = find_executable(name, me)
                except ConfigurationError:
                    logger.warning(
                        f"Could not find plotting program '{name}'; "
                        f"no plots will be made."
                    )
                    plot_tools = {}
                    break

        return cls(
            solver=solver,
            prepare=prepare,
            plotxy=plot_tools.get(PLOTXY_NAME),
            plotquad=plot_tools.get(PLOTQUAD_NAME),
            plot_constellations=plot_tools.get(PLOT_CONSTELLATIONS_NAME),
        )
