"""
Module containing the configuration of a batch run.

A :class:`BatchRun` is built once from the command line and then never
modified. The only state shared between inputs which may change during a run is
the :class:`PlottingState`, which can be switched off (but never back on).
"""
import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator

from skysolve.paths import CURL_NAME, WGET_NAME

logger = logging.getLogger(__name__)


class BatchRun(BaseModel):
    """
    Global, immutable configuration for one invocation of the driver
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    inputs: tuple[str, ...] = ()
    files_on_stdin: bool = False
    output_dir: Optional[Path] = None
    base_name_template: Optional[str] = None
    solver_config: Optional[Path] = None
    make_plots: bool = True
    use_wget: bool = False
    overwrite: bool = False
    cont: bool = False
    skip_solved: bool = False
    verbose: bool = False
    solved_in: Optional[Path] = None
    x_column: Optional[str] = None
    y_column: Optional[str] = None
    prepare_args: tuple[str, ...] = ()

    @model_validator(mode="after")
    def check_input_source(self) -> "BatchRun":
        """
        Validator to ensure inputs come either from the arguments or from stdin

        :return: self
        """
        if self.files_on_stdin and len(self.inputs) > 0:
            raise ValueError(
                "Input files cannot be given as arguments when reading from stdin"
            )
        return self

    @property
    def transport(self) -> str:
        """
        Name of the download tool

        :return: 'wget' or 'curl'
        """
        return WGET_NAME if self.use_wget else CURL_NAME

    def solver_args(self) -> list[str]:
        """
        Arguments passed to the solve engine for every input

        :return: list of arguments
        """
        args = []
        if self.verbose:
            args.append("--verbose")
        if self.solver_config is not None:
            args += ["--config", str(self.solver_config)]
        return args


class PlottingState:
    """
    Handle on whether plots should still be made. Shared by all inputs of a
    batch, and can only ever be switched off.
    """

    def __init__(self, enabled: bool = True):
        self._enabled = enabled
        self.disabled_reason = None

    @property
    def enabled(self) -> bool:
        """Whether plots should be made"""
        return self._enabled

    def disable(self, reason: str):
        """
        Turns off plotting for the rest of the batch

        :param reason: why plotting was disabled
        :return: None
        """
        if self._enabled:
            logger.warning(f"Disabling plots for the rest of this run: {reason}")
            self._enabled = False
            self.disabled_reason = reason
