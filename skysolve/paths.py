"""
Central module hosting all shared paths/naming conventions/keys/variables
"""
import logging
import os
import tempfile
from importlib import metadata
from pathlib import Path

logger = logging.getLogger(__name__)

PACKAGE_NAME = "skysolve"
__version__ = metadata.version(__package__)

# Set up default directories

_temp_dir: str | None = os.getenv("SKYSOLVE_TEMP_DIR")

if _temp_dir is None:
    TEMP_DIR = Path(tempfile.gettempdir())
else:
    TEMP_DIR = Path(_temp_dir)

# Collaborator executables

SOLVE_ENGINE_NAME: str = os.getenv("SKYSOLVE_SOLVER", "backend")
PREPARE_ENGINE_NAME: str = os.getenv("SKYSOLVE_PREPARE", "augment-xylist")
PLOTXY_NAME = "plotxy"
PLOTQUAD_NAME = "plotquad"
PLOT_CONSTELLATIONS_NAME = "plot-constellations"

CURL_NAME = "curl"
WGET_NAME = "wget"

REMOTE_PREFIXES = ("http://", "https://", "ftp://")

# Artifact roles, each one a file derived from the base name of an input

COORDINATE_LIST_KEY = "axy"
MATCH_KEY = "match"
RDLS_KEY = "rdls"
SOLVED_KEY = "solved"
WCS_KEY = "wcs"
SOURCE_PLOT_KEY = "objs"
INDEX_PLOT_KEY = "indx"
CONSTELLATION_PLOT_KEY = "ngc"
INDEX_XYLS_KEY = "indxyls"
DOWNLOAD_KEY = "downloaded"

artifact_suffixes = {
    COORDINATE_LIST_KEY: ".axy",
    MATCH_KEY: ".match",
    RDLS_KEY: ".rdls",
    SOLVED_KEY: ".solved",
    WCS_KEY: ".wcs",
    SOURCE_PLOT_KEY: "-objs.png",
    INDEX_PLOT_KEY: "-indx.png",
    CONSTELLATION_PLOT_KEY: "-ngc.png",
    INDEX_XYLS_KEY: "-indx.xyls",
}

DOWNLOAD_SUFFIX = "-downloaded"

# Default coordinate-list columns

DEFAULT_X_COLUMN = "X"
DEFAULT_Y_COLUMN = "Y"
RA_COLUMN = "RA"
DEC_COLUMN = "DEC"

# Match file columns

DIMQUADS_KEY = "DIMQUADS"
QUADPIX_KEY = "QUADPIX"

# WCS header keys for the solved image size

IMAGE_WIDTH_KEY = "IMAGEW"
IMAGE_HEIGHT_KEY = "IMAGEH"


def is_remote_reference(reference: str) -> bool:
    """
    Checks whether an input reference looks like a URL we know how to fetch

    :param reference: raw input reference
    :return: boolean
    """
    return reference.lower().startswith(REMOTE_PREFIXES)


def get_output_dir(output_dir: str | Path | None) -> Path:
    """
    Function to get the directory in which all output files are written

    :param output_dir: configured output directory, or None for the working dir
    :return: output directory
    """
    if output_dir is None:
        return Path(".")
    return Path(output_dir)
