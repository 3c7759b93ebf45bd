"""
Command-line interface for skysolve. You can run it from the terminal like:

.. code-block:: bash

    skysolve --dir solved --overwrite m42.png http://example.org/field.fits

or read the inputs from stdin:

.. code-block:: bash

    ls *.fits | python -m skysolve --files-on-stdin --skip-solved

Besides its own flags, skysolve accepts the options of the prepare engine
(scale hints, column names, ...), which are passed through to it unchanged.
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from skysolve.artifacts import format_base_name
from skysolve.config import BatchRun, PlottingState
from skysolve.engines import (
    PrepareOption,
    Toolbox,
    add_prepare_arguments,
    collect_prepare_args,
    merge_prepare_options,
)
from skysolve.errors import ConfigurationError
from skysolve.paths import PACKAGE_NAME, __version__
from skysolve.pipeline import (
    EXIT_FAILURE,
    EXIT_INTERRUPTED,
    BatchController,
    SolvePipeline,
)

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(name)s [l %(lineno)d] - %(levelname)s - %(message)s"

# Prepare engine options with these short flags are not offered
DRIVER_SHORT_FLAGS = ["h", "v", "D", "o", "b", "f", "p", "G", "O", "K", "J"]


def build_parser() -> tuple[argparse.ArgumentParser, list[PrepareOption]]:
    """
    Builds the argument parser, with the driver's own flags and the prepare
    engine options which do not clash with them

    :return: parser, and the prepare engine options it offers
    """
    parser = argparse.ArgumentParser(
        prog=PACKAGE_NAME,
        description=f"{PACKAGE_NAME}: solve the sky position of images and "
        f"source lists",
    )
    parser.add_argument(
        "inputs",
        nargs="*",
        help="Input files: images or FITS source lists, local or http(s)/ftp URLs",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", default=False, help="Be more chatty"
    )
    parser.add_argument(
        "-D", "--dir", default=None, help="Place all output files in this directory"
    )
    parser.add_argument(
        "-o",
        "--out",
        default=None,
        help="Name the output files with this base name. Supports python "
        "format fields: {0} or {index} for the input number, {1} or {input} "
        "for the input name.",
    )
    parser.add_argument(
        "-b",
        "--backend-config",
        default=None,
        help="Use this config file for the solve engine",
    )
    parser.add_argument(
        "-f",
        "--files-on-stdin",
        action="store_true",
        default=False,
        help="Read input filenames from stdin, one per line",
    )
    parser.add_argument(
        "-p",
        "--no-plots",
        action="store_true",
        default=False,
        help="Don't create any plots of the results",
    )
    parser.add_argument(
        "-G",
        "--use-wget",
        action="store_true",
        default=False,
        help="Use wget instead of curl to download remote inputs",
    )
    parser.add_argument(
        "-O",
        "--overwrite",
        action="store_true",
        default=False,
        help="Overwrite output files if they already exist",
    )
    parser.add_argument(
        "-K",
        "--continue",
        dest="cont",
        action="store_true",
        default=False,
        help="Don't overwrite output files if they already exist; continue a "
        "previous run",
    )
    parser.add_argument(
        "-J",
        "--skip-solved",
        action="store_true",
        default=False,
        help="Skip input files for which the 'solved' output file already exists",
    )
    parser.add_argument(
        "--logfile",
        default=None,
        help="If a path is passed, all logs will be written to this file.",
    )
    parser.add_argument("--level", default="INFO", help="Python logging level")
    parser.add_argument(
        "--version", action="version", version=f"{PACKAGE_NAME} {__version__}"
    )

    options = merge_prepare_options(DRIVER_SHORT_FLAGS)
    add_prepare_arguments(parser, options)

    return parser, options


def config_from_args(
    args: argparse.Namespace, options: list[PrepareOption]
) -> BatchRun:
    """
    Converts parsed arguments into the configuration of a batch

    :param args: parsed arguments
    :param options: prepare engine options offered by the parser
    :return: BatchRun
    """
    if args.out is not None:
        format_base_name(args.out, 1, "input")

    try:
        return BatchRun(
            inputs=tuple(args.inputs),
            files_on_stdin=args.files_on_stdin,
            output_dir=args.dir,
            base_name_template=args.out,
            solver_config=args.backend_config,
            make_plots=not args.no_plots,
            use_wget=args.use_wget,
            overwrite=args.overwrite,
            cont=args.cont,
            skip_solved=args.skip_solved,
            verbose=args.verbose,
            solved_in=getattr(args, "prepare_solved_in", None),
            x_column=getattr(args, "prepare_x_column", None),
            y_column=getattr(args, "prepare_y_column", None),
            prepare_args=tuple(collect_prepare_args(args, options)),
        )
    except ValidationError as err:
        raise ConfigurationError(f"Invalid arguments: {err}") from err


def make_output_dir(output_dir: Optional[str | Path]):
    """
    Creates the output directory, if one was given

    :param output_dir: output directory
    :return: None
    """
    if output_dir is None:
        return
    try:
        Path(output_dir).mkdir(parents=True, exist_ok=True)
    except OSError as err:
        raise ConfigurationError(
            f"Failed to create output directory {output_dir}: {err}"
        ) from err


def setup_logging(
    logfile: Optional[str] = None, level: str = "INFO", verbose: bool = False
) -> logging.Handler:
    """
    Attaches a handler to the package logger

    :param logfile: if given, log to this file instead of stdout
    :param level: python logging level
    :param verbose: if True, log at DEBUG level
    :return: the new handler
    """
    log = logging.getLogger(PACKAGE_NAME)

    if logfile is None:
        handler = logging.StreamHandler(sys.stdout)
    else:
        handler = logging.FileHandler(logfile)

    formatter = logging.Formatter(LOG_FORMAT)
    handler.setFormatter(formatter)
    log.addHandler(handler)
    log.setLevel("DEBUG" if verbose else level.upper())
    return handler


def main(argv: Optional[list[str]] = None) -> int:
    """
    Runs skysolve from the command line

    :param argv: arguments (defaults to sys.argv)
    :return: exit code
    """
    parser, options = build_parser()
    args = parser.parse_intermixed_args(argv)

    if len(args.inputs) == 0 and not args.files_on_stdin:
        parser.print_help()
        return EXIT_FAILURE

    handler = setup_logging(args.logfile, level=args.level, verbose=args.verbose)

    try:
        try:
            config = config_from_args(args, options)
            make_output_dir(config.output_dir)
            toolbox = Toolbox.resolve(plotting=config.make_plots)
        except ConfigurationError as err:
            logger.error(err)
            return EXIT_FAILURE

        pipeline = SolvePipeline(
            config, toolbox, plotting=PlottingState(enabled=config.make_plots)
        )

        try:
            result = BatchController(pipeline).run()
        except KeyboardInterrupt:
            logger.error("Interrupted by user.")
            return EXIT_INTERRUPTED

        if len(result.error_stack) > 0:
            print(result.error_stack.summarise_error_stack(verbose=False))

        logger.info(f"End of {PACKAGE_NAME} execution")
        return result.exit_code

    finally:
        handler.close()
        logging.getLogger(PACKAGE_NAME).removeHandler(handler)
