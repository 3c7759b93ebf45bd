"""
Module for the prepare engine, which turns an image or a list of source
positions into the augmented coordinate list (.axy) read by the solve engine.

The prepare engine owns its own set of command-line options (scale hints,
column names, ...). The driver offers these on its own command line, and
passes whatever the user set straight through to the engine.
"""
import argparse
import logging
from pathlib import Path
from typing import Optional

from skysolve.artifacts import ArtifactSet
from skysolve.paths import MATCH_KEY, RDLS_KEY, WCS_KEY
from skysolve.utils import shell_join

logger = logging.getLogger(__name__)


class PrepareOption:
    """
    A single command-line option understood by the prepare engine
    """

    def __init__(
        self,
        short_flag: Optional[str],
        long_flag: str,
        help_text: str,
        metavar: Optional[str] = None,
    ):
        self.short_flag = short_flag
        self.long_flag = long_flag
        self.help_text = help_text
        self.metavar = metavar

    @property
    def dest(self) -> str:
        """Attribute name in the parsed arguments"""
        return "prepare_" + self.long_flag.replace("-", "_")

    @property
    def takes_value(self) -> bool:
        """Whether the option needs an argument"""
        return self.metavar is not None


prepare_engine_options = [
    PrepareOption("h", "help", "print this help message"),
    PrepareOption("v", "verbose", "be more chatty"),
    PrepareOption("i", "image", "image to extract sources from", "filename"),
    PrepareOption("x", "xylist", "list of source positions", "filename"),
    PrepareOption("o", "out", "output augmented xylist filename", "filename"),
    PrepareOption("L", "scale-low", "lower bound of image scale estimate", "scale"),
    PrepareOption("H", "scale-high", "upper bound of image scale estimate", "scale"),
    PrepareOption(
        "u",
        "scale-units",
        "units for scale estimate: 'arcsecperpix', 'degwidth' or 'arcminwidth'",
        "units",
    ),
    PrepareOption("z", "downsample", "downsample the image by this factor", "int"),
    PrepareOption("X", "x-column", "FITS column containing the X coordinate", "col"),
    PrepareOption("Y", "y-column", "FITS column containing the Y coordinate", "col"),
    PrepareOption("s", "sort-column", "FITS column used to sort the sources", "col"),
    PrepareOption("a", "sort-ascending", "sort in ascending order (smallest first)"),
    PrepareOption("G", "guess-scale", "try to guess the image scale from the header"),
    PrepareOption("T", "no-tweak", "don't fine-tune WCS with a SIP polynomial"),
    PrepareOption("t", "tweak-order", "polynomial order of SIP corrections", "int"),
    PrepareOption("d", "depth", "number of field objects to look at", "number"),
    PrepareOption("l", "cpulimit", "give up solving after this many seconds", "sec"),
    PrepareOption("r", "resort", "sort sources by background-subtracted flux"),
    PrepareOption("c", "code-tolerance", "matching distance for quads", "distance"),
    PrepareOption("E", "pixel-error", "size of star positional errors", "pixels"),
    PrepareOption("I", "solved-in", "input filename for solved file", "filename"),
    # Long-only, so that negative values such as "--dec -5.2" parse
    PrepareOption(None, "ra", "search indexes within 'radius' of this RA", "deg"),
    PrepareOption(None, "dec", "search indexes within 'radius' of this Dec", "deg"),
    PrepareOption(None, "radius", "only search within this many degrees", "deg"),
]

# Options the driver fills in itself, for every input
DRIVER_OWNED_SHORT_FLAGS = ["i", "x", "o"]


def merge_prepare_options(
    reserved_short_flags: list[str],
    options: Optional[list[PrepareOption]] = None,
) -> list[PrepareOption]:
    """
    Returns the prepare-engine options which the driver should offer: any option
    whose short flag is already used by the driver is dropped (the driver's
    own option wins), as are the options the driver sets itself.

    :param reserved_short_flags: short flags of the driver's own options
    :param options: prepare-engine options (defaults to the full table)
    :return: list of options
    """
    if options is None:
        options = prepare_engine_options

    merged = []
    for option in options:
        if option.short_flag in reserved_short_flags:
            logger.debug(
                f"Dropping prepare option --{option.long_flag}: "
                f"-{option.short_flag} is a driver option"
            )
            continue
        if option.short_flag in DRIVER_OWNED_SHORT_FLAGS:
            continue
        merged.append(option)
    return merged


def add_prepare_arguments(
    parser: argparse.ArgumentParser, options: list[PrepareOption]
) -> argparse.ArgumentParser:
    """
    Adds prepare-engine options to a parser, as their own group

    :param parser: parser
    :param options: options to add
    :return: parser
    """
    group = parser.add_argument_group("prepare engine options")
    for option in options:
        flags = [f"--{option.long_flag}"]
        if option.short_flag is not None:
            flags.insert(0, f"-{option.short_flag}")
        if option.takes_value:
            group.add_argument(
                *flags, dest=option.dest, metavar=option.metavar, help=option.help_text
            )
        else:
            group.add_argument(
                *flags, dest=option.dest, action="store_true", help=option.help_text
            )
    return parser


def collect_prepare_args(
    args: argparse.Namespace, options: list[PrepareOption]
) -> list[str]:
    """
    Converts parsed prepare-engine options back into arguments for the engine

    :param args: parsed arguments
    :param options: options offered on the command line
    :return: list of arguments
    """
    prepare_args = []
    for option in options:
        value = getattr(args, option.dest, None)
        if option.takes_value and value is not None:
            prepare_args += [f"--{option.long_flag}", str(value)]
        elif not option.takes_value and value:
            prepare_args.append(f"--{option.long_flag}")
    return prepare_args


def get_prepare_command(
    prepare_exe: str | Path,
    artifacts: ArtifactSet,
    input_path: str | Path,
    preview_path: Optional[str | Path] = None,
    prepare_args: Optional[list[str] | tuple[str, ...]] = None,
) -> str:
    """
    Builds the prepare-engine command line for one input.

    With a preview path, the input is treated as an image: sources are extracted
    and a PPM preview is written. Without one, the input is a list of source
    positions, and only the solver hints are attached to it.

    :param prepare_exe: prepare engine executable
    :param artifacts: ArtifactSet of the input
    :param input_path: local input file
    :param preview_path: path for the PPM preview, for images
    :param prepare_args: extra user arguments
    :return: command line
    """
    args = [
        prepare_exe,
        "--out",
        artifacts.coordinate_list,
        "--match",
        artifacts[MATCH_KEY],
        "--rdls",
        artifacts[RDLS_KEY],
        "--solved",
        artifacts.solved,
        "--wcs",
        artifacts[WCS_KEY],
    ]

    if preview_path is not None:
        args += ["--image", input_path, "--pnm", preview_path, "--force-ppm"]
    else:
        args += ["--xylist", input_path]

    if prepare_args is not None:
        args += list(prepare_args)

    return shell_join(args)
