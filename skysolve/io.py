"""
Python script containing the FITS reading functions used by the driver.

All direct reads of solver inputs/outputs go via this script or
:mod:`skysolve.wcs`.
"""

import logging
import warnings
from pathlib import Path
from typing import Optional

import numpy as np
from astropy.io import fits
from astropy.table import Table
from astropy.utils.exceptions import AstropyWarning

from skysolve.errors import SolutionReadError
from skysolve.paths import (
    DEFAULT_X_COLUMN,
    DEFAULT_Y_COLUMN,
    DIMQUADS_KEY,
    QUADPIX_KEY,
)

logger = logging.getLogger(__name__)


def find_column(names: list[str], column: str) -> Optional[str]:
    """
    Finds a column in a list of names, ignoring case as FITS does

    :param names: column names
    :param column: requested column
    :return: actual column name, or None
    """
    for name in names:
        if name.upper() == column.upper():
            return name
    return None


def is_coordinate_list(
    path: str | Path,
    x_column: Optional[str] = None,
    y_column: Optional[str] = None,
) -> tuple[bool, Optional[str]]:
    """
    Checks whether a file is a list of source positions (an 'xylist') rather
    than an image. An xylist is a FITS file whose first table extension has
    both an x and a y column.

    :param path: local file path
    :param x_column: name of x column (default 'X')
    :param y_column: name of y column (default 'Y')
    :return: boolean, and the reason when it is not a coordinate list
    """
    if x_column is None:
        x_column = DEFAULT_X_COLUMN
    if y_column is None:
        y_column = DEFAULT_Y_COLUMN

    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", AstropyWarning)
            with fits.open(path, memmap=False) as hdul:
                tables = [x for x in hdul if isinstance(x, fits.BinTableHDU)]
                if len(tables) == 0:
                    return False, "FITS file has no binary table extension"
                names = list(tables[0].columns.names)
    except (OSError, ValueError) as err:
        return False, f"not a readable FITS file ({err})"

    for column in [x_column, y_column]:
        if find_column(names, column) is None:
            return False, f"table has no column named '{column}' (found {names})"

    return True, None


def count_sources(path: str | Path) -> Optional[int]:
    """
    Counts the sources in the first table extension of a coordinate list

    :param path: coordinate list path
    :return: number of rows, or None if the file cannot be read
    """
    try:
        with fits.open(path, memmap=False) as hdul:
            for hdu in hdul:
                if isinstance(hdu, fits.BinTableHDU):
                    return len(hdu.data) if hdu.data is not None else 0
    except (OSError, ValueError) as err:
        logger.debug(f"Could not count sources in {path}: {err}")
    return None


class QuadMatch:
    """
    The geometric shape ('quad') matched between field and index stars
    """

    def __init__(self, dimquads: int, quadpix: np.ndarray):
        self.dimquads = dimquads
        self.quadpix = quadpix

    def pixel_coordinates(self) -> list[tuple[float, float]]:
        """
        Returns the (x, y) pixel position of each star of the quad

        :return: list of positions
        """
        return [
            (float(self.quadpix[2 * i]), float(self.quadpix[2 * i + 1]))
            for i in range(self.dimquads)
        ]


def read_first_match(match_path: str | Path) -> QuadMatch:
    """
    Reads the first recorded match from a solver match file

    :param match_path: path of match file
    :return: QuadMatch
    """
    try:
        table = Table.read(match_path, format="fits", hdu=1)
    except (OSError, ValueError, IndexError) as err:
        raise SolutionReadError(f"Failed to read matchfile {match_path}") from err

    dimquads_col = find_column(table.colnames, DIMQUADS_KEY)
    quadpix_col = find_column(table.colnames, QUADPIX_KEY)

    if len(table) == 0 or dimquads_col is None or quadpix_col is None:
        raise SolutionReadError(f"Failed to read a match from matchfile {match_path}")

    row = table[0]
    dimquads = int(row[dimquads_col])
    quadpix = np.atleast_1d(np.asarray(row[quadpix_col], dtype=float))

    if len(quadpix) < 2 * dimquads:
        raise SolutionReadError(
            f"Match in {match_path} has {len(quadpix)} quad coordinates, "
            f"expected {2 * dimquads}"
        )

    return QuadMatch(dimquads=dimquads, quadpix=quadpix[: 2 * dimquads])
