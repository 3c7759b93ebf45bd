"""
Base class for unit testing, with common cleanup method, and stand-ins for the
external programs driven by skysolve.

:class:`FakeRunner` can be passed anywhere a command runner is expected. Instead
of running anything, it writes the files each program would have written:

.. code-block:: python

    runner = FakeRunner(solve=True)
    pipeline = SolvePipeline(config, get_test_toolbox(), runner=runner)
"""
import shlex
import tempfile
import unittest
from pathlib import Path
from typing import Optional

import numpy as np
from astropy.io import fits
from astropy.table import Table
from astropy.wcs import WCS

from skysolve.engines import Toolbox
from skysolve.paths import (
    COORDINATE_LIST_KEY,
    CURL_NAME,
    DEC_COLUMN,
    DEFAULT_X_COLUMN,
    DEFAULT_Y_COLUMN,
    DIMQUADS_KEY,
    IMAGE_HEIGHT_KEY,
    IMAGE_WIDTH_KEY,
    MATCH_KEY,
    PLOT_CONSTELLATIONS_NAME,
    PLOTQUAD_NAME,
    PLOTXY_NAME,
    PREPARE_ENGINE_NAME,
    QUADPIX_KEY,
    RA_COLUMN,
    RDLS_KEY,
    SOLVE_ENGINE_NAME,
    SOLVED_KEY,
    TEMP_DIR,
    WCS_KEY,
    WGET_NAME,
    artifact_suffixes,
)
from skysolve.utils import CommandResult
from skysolve.utils.execute_cmd import get_signal_number

# Orion nebula
TEST_RA_DEG = 83.8221
TEST_DEC_DEG = -5.3911
TEST_SCALE_ARCSEC = 1.0
TEST_WIDTH = 1000
TEST_HEIGHT = 800
TEST_N_SOURCES = 25

FIELD_CONTENTS = ["The star Hatysa (iota Ori)", "M 42 / NGC 1976"]


class BaseTestCase(unittest.TestCase):
    """Base TestCase object with additional cleanup"""

    def __init__(self, *arg, **kwargs):
        super().__init__(*arg, **kwargs)
        TEMP_DIR.mkdir(parents=True, exist_ok=True)
        # pylint: disable=consider-using-with
        self.temp_dir = tempfile.TemporaryDirectory(dir=TEMP_DIR)
        self.temp_path = Path(self.temp_dir.name)
        self.addCleanup(self.temp_dir.cleanup)


def get_test_toolbox(plotting: bool = True) -> Toolbox:
    """
    Returns a toolbox naming every program, without looking for them

    :param plotting: whether to include the plotting programs
    :return: Toolbox
    """
    if not plotting:
        return Toolbox(solver=SOLVE_ENGINE_NAME, prepare=PREPARE_ENGINE_NAME)
    return Toolbox(
        solver=SOLVE_ENGINE_NAME,
        prepare=PREPARE_ENGINE_NAME,
        plotxy=PLOTXY_NAME,
        plotquad=PLOTQUAD_NAME,
        plot_constellations=PLOT_CONSTELLATIONS_NAME,
    )


def make_coordinate_list(
    path: str | Path,
    n_sources: int = TEST_N_SOURCES,
    x_column: str = DEFAULT_X_COLUMN,
    y_column: str = DEFAULT_Y_COLUMN,
) -> Path:
    """
    Writes a FITS table of source positions

    :param path: output path
    :param n_sources: number of rows
    :param x_column: name of x column
    :param y_column: name of y column
    :return: path
    """
    rng = np.random.default_rng(42)
    table = Table(
        {
            x_column: rng.uniform(1.0, TEST_WIDTH, n_sources),
            y_column: rng.uniform(1.0, TEST_HEIGHT, n_sources),
        }
    )
    table.write(path, format="fits", overwrite=True)
    return Path(path)


def make_wcs_file(
    path: str | Path,
    ra_deg: float = TEST_RA_DEG,
    dec_deg: float = TEST_DEC_DEG,
    scale_arcsec: float = TEST_SCALE_ARCSEC,
    width: int = TEST_WIDTH,
    height: int = TEST_HEIGHT,
) -> Path:
    """
    Writes a TAN WCS solution centred on a position

    :param path: output path
    :param ra_deg: RA of the field centre
    :param dec_deg: Dec of the field centre
    :param scale_arcsec: pixel scale
    :param width: image width in pixels
    :param height: image height in pixels
    :return: path
    """
    wcs = WCS(naxis=2)
    wcs.wcs.ctype = ["RA---TAN", "DEC--TAN"]
    wcs.wcs.crval = [ra_deg, dec_deg]
    wcs.wcs.crpix = [(width + 1) / 2.0, (height + 1) / 2.0]
    wcs.wcs.cdelt = [-scale_arcsec / 3600.0, scale_arcsec / 3600.0]

    header = wcs.to_header()
    header[IMAGE_WIDTH_KEY] = width
    header[IMAGE_HEIGHT_KEY] = height

    fits.PrimaryHDU(header=header).writeto(path, overwrite=True)
    return Path(path)


def make_match_file(path: str | Path, dimquads: int = 4) -> Path:
    """
    Writes a match file with a single quad

    :param path: output path
    :param dimquads: number of stars in the quad
    :return: path
    """
    quadpix = np.array([[100.0, 120.0, 400.0, 130.0, 380.0, 500.0, 90.0, 450.0]])
    table = Table({DIMQUADS_KEY: [dimquads], QUADPIX_KEY: quadpix[:, : 2 * dimquads]})
    table.write(path, format="fits", overwrite=True)
    return Path(path)


def make_rdls_file(
    path: str | Path, ra_deg: float = TEST_RA_DEG, dec_deg: float = TEST_DEC_DEG
) -> Path:
    """
    Writes a list of catalog stars around a position

    :param path: output path
    :param ra_deg: central RA
    :param dec_deg: central Dec
    :return: path
    """
    offsets = np.array([-0.05, -0.02, 0.0, 0.03, 0.06])
    table = Table({RA_COLUMN: ra_deg + offsets, DEC_COLUMN: dec_deg - offsets})
    table.write(path, format="fits", overwrite=True)
    return Path(path)


def get_option_value(args: list[str], *flags: str) -> Optional[str]:
    """
    Returns the argument following the first of several flags

    :param args: argument list
    :param flags: flags to look for
    :return: value, or None
    """
    for flag in flags:
        if flag in args:
            return args[args.index(flag) + 1]
    return None


class FakeRunner:
    """
    Command runner which pretends to be the external programs, by writing the
    files they would produce. Every command line is recorded.
    """

    def __init__(
        self,
        solve: bool = True,
        failures: Optional[dict[tuple[str, str], int]] = None,
        n_sources: int = TEST_N_SOURCES,
    ):
        """
        :param solve: whether the solver finds a solution
        :param failures: maps (program name, substring of command) to the return
            code to report instead of running, e.g. {("plotxy", ""): 1}
        :param n_sources: number of sources found by the prepare engine
        """
        self.solve = solve
        self.failures = {} if failures is None else failures
        self.n_sources = n_sources
        self.commands: list[str] = []

    def __call__(self, cmd: str, capture_output: bool = False) -> CommandResult:
        self.commands.append(cmd)
        args = shlex.split(cmd)
        program = Path(args[0]).name

        for (fail_program, substring), returncode in self.failures.items():
            if program == fail_program and substring in cmd:
                return CommandResult(
                    cmd, returncode, signal_number=get_signal_number(returncode)
                )

        lines = None

        if program in [CURL_NAME, WGET_NAME]:
            output_path = get_option_value(args, "--output", "-O")
            Path(output_path).write_bytes(b"\x89PNG fake image")
        elif program == PREPARE_ENGINE_NAME:
            self.prepare(args)
        elif program == SOLVE_ENGINE_NAME:
            self.run_solver(args)
        elif program == PLOTXY_NAME:
            Path(args[-1]).write_bytes(b"\x89PNG fake plot")
        elif program == PLOT_CONSTELLATIONS_NAME:
            Path(get_option_value(args, "-o")).write_bytes(b"\x89PNG fake plot")
            lines = list(FIELD_CONTENTS)
        else:
            return CommandResult(cmd, 127)

        return CommandResult(cmd, 0, stdout_lines=lines if capture_output else None)

    def commands_for(self, program: str) -> list[str]:
        """
        Returns the recorded commands starting with a program

        :param program: program name
        :return: list of command lines
        """
        return [x for x in self.commands if Path(shlex.split(x)[0]).name == program]

    def prepare(self, args: list[str]):
        """
        Writes the coordinate list, and a preview for images
        """
        make_coordinate_list(get_option_value(args, "--out"), n_sources=self.n_sources)
        preview_path = get_option_value(args, "--pnm")
        if preview_path is not None:
            Path(preview_path).write_bytes(b"P6\n1 1\n255\n\x00\x00\x00")

    def run_solver(self, args: list[str]):
        """
        Writes the solver outputs next to the coordinate list, if it solves
        """
        if not self.solve:
            return
        base = args[-1][: -len(artifact_suffixes[COORDINATE_LIST_KEY])]
        make_wcs_file(f"{base}{artifact_suffixes[WCS_KEY]}")
        make_match_file(f"{base}{artifact_suffixes[MATCH_KEY]}")
        make_rdls_file(f"{base}{artifact_suffixes[RDLS_KEY]}")
        Path(f"{base}{artifact_suffixes[SOLVED_KEY]}").write_bytes(b"\x01")
