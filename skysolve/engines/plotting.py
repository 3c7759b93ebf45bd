"""
Module building the plotting command lines.

Overlays are drawn by chaining the plotting programs with shell pipes: each one
reads the image produced by the previous one on stdin ('-I -') and writes its
own to stdout, so that e.g. the solution overlay is

.. code-block:: bash

    plotxy -i field.axy -I preview.ppm ... -P | plotxy -i field-indx.xyls -I - ... -P \
        | plotquad -I - -C green -w 2 -d 4 x1 y1 ... x4 y4 > field-indx.png
"""
import logging
from pathlib import Path
from typing import Optional

from skysolve.io import QuadMatch
from skysolve.utils import pipe_commands, shell_join

logger = logging.getLogger(__name__)

PLOT_OPTS_FIRST_PASS = ["-C", "red", "-w", "2", "-N", "50", "-x", "1", "-y", "1"]
PLOT_OPTS_SECOND_PASS = ["-w", "2", "-r", "3", "-C", "red", "-n", "50", "-N", "200"]
PLOT_OPTS_SOLVED_SOURCES = ["-C", "red", "-w", "2", "-r", "6", "-N", "200"]
PLOT_OPTS_INDEX = ["-w", "2", "-r", "4", "-C", "green"]
UNIT_OFFSETS = ["-x", "1", "-y", "1"]


def column_args(x_column: Optional[str], y_column: Optional[str]) -> list[str]:
    """
    Arguments naming the coordinate columns, if not the defaults

    :param x_column: x column
    :param y_column: y column
    :return: arguments
    """
    args = []
    if x_column is not None:
        args += ["-X", x_column]
    if y_column is not None:
        args += ["-Y", y_column]
    return args


def get_source_plot_command(
    plotxy_exe: str | Path,
    coordinate_list: str | Path,
    output_path: str | Path,
    preview_path: Optional[str | Path] = None,
    x_column: Optional[str] = None,
    y_column: Optional[str] = None,
) -> str:
    """
    Builds the command which overlays the detected sources on the image preview
    (or on a blank canvas for coordinate-list inputs)

    :param plotxy_exe: plotxy executable
    :param coordinate_list: augmented coordinate list
    :param output_path: output png
    :param preview_path: PPM preview of the image, if any
    :param x_column: x column
    :param y_column: y column
    :return: command line
    """
    first = [plotxy_exe, "-i", coordinate_list]
    if preview_path is not None:
        first += ["-I", preview_path]
    first += column_args(x_column, y_column) + ["-P"] + PLOT_OPTS_FIRST_PASS

    second = [plotxy_exe, "-i", coordinate_list]
    second += column_args(x_column, y_column)
    second += ["-I", "-"] + PLOT_OPTS_SECOND_PASS + UNIT_OFFSETS

    return pipe_commands([shell_join(first), shell_join(second)], output_path)


def get_solution_plot_command(
    plotxy_exe: str | Path,
    plotquad_exe: str | Path,
    coordinate_list: str | Path,
    index_xyls: str | Path,
    match: QuadMatch,
    output_path: str | Path,
    preview_path: Optional[str | Path] = None,
    x_column: Optional[str] = None,
    y_column: Optional[str] = None,
) -> str:
    """
    Builds the command which overlays the detected sources (red), the projected
    index stars (green) and the matched quad on the image preview

    :param plotxy_exe: plotxy executable
    :param plotquad_exe: plotquad executable
    :param coordinate_list: augmented coordinate list
    :param index_xyls: index stars in pixel coordinates
    :param match: first match from the match file
    :param output_path: output png
    :param preview_path: PPM preview of the image, if any
    :param x_column: x column
    :param y_column: y column
    :return: command line
    """
    sources = [plotxy_exe, "-i", coordinate_list]
    if preview_path is not None:
        sources += ["-I", preview_path]
    sources += column_args(x_column, y_column)
    sources += ["-P"] + PLOT_OPTS_SOLVED_SOURCES + UNIT_OFFSETS

    index = [plotxy_exe, "-i", index_xyls, "-I", "-"]
    index += PLOT_OPTS_INDEX + UNIT_OFFSETS + ["-P"]

    quad = [plotquad_exe, "-I", "-", "-C", "green", "-w", "2"]
    quad += ["-d", str(match.dimquads)] + [f"{x:g}" for x in match.quadpix]

    return pipe_commands(
        [shell_join(sources), shell_join(index), shell_join(quad)], output_path
    )


def get_constellation_command(
    plot_constellations_exe: str | Path,
    wcs_path: str | Path,
    preview_path: str | Path,
    output_path: str | Path,
    verbose: bool = False,
) -> str:
    """
    Builds the command which annotates constellations and named objects in
    the field

    :param plot_constellations_exe: plot-constellations executable
    :param wcs_path: WCS solution
    :param preview_path: PPM preview of the image
    :param output_path: output png
    :param verbose: verbose
    :return: command line
    """
    args = [plot_constellations_exe]
    if verbose:
        args.append("-v")
    args += ["-w", wcs_path, "-i", preview_path, "-N", "-C", "-o", output_path]
    return shell_join(args)
