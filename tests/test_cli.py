"""
Module for testing the command-line interface in ..module::skysolve.cli
"""
import contextlib
import io
import logging
from pathlib import Path
from unittest import mock

from skysolve.cli import (
    build_parser,
    config_from_args,
    main,
    make_output_dir,
    setup_logging,
)
from skysolve.errors import ConfigurationError
from skysolve.paths import PACKAGE_NAME
from skysolve.pipeline import (
    EXIT_FAILURE,
    EXIT_INTERRUPTED,
    EXIT_SUCCESS,
    SolvePipeline,
)
from skysolve.testing import BaseTestCase, FakeRunner, get_test_toolbox

logger = logging.getLogger(__name__)


def parse_config(argv: list[str]):
    """
    Parses a command line into a batch configuration

    :param argv: arguments
    :return: BatchRun
    """
    parser, options = build_parser()
    return config_from_args(parser.parse_intermixed_args(argv), options)


class TestArguments(BaseTestCase):
    """
    Class to test converting the command line into a configuration
    """

    def setUp(self):
        self.logger = logging.getLogger(__name__)
        self.logger.setLevel(logging.INFO)

    def test_defaults(self):
        """
        Test the configuration with no flags

        :return: None
        """
        config = parse_config(["m42.png"])
        self.assertEqual(config.inputs, ("m42.png",))
        self.assertFalse(config.files_on_stdin)
        self.assertIsNone(config.output_dir)
        self.assertIsNone(config.base_name_template)
        self.assertTrue(config.make_plots)
        self.assertEqual(config.transport, "curl")
        self.assertFalse(config.overwrite)
        self.assertFalse(config.cont)
        self.assertFalse(config.skip_solved)
        self.assertEqual(config.prepare_args, ())
        self.assertEqual(config.solver_args(), [])

    def test_driver_flags(self):
        """
        Test each of the driver's own flags

        :return: None
        """
        config = parse_config(
            [
                "-D",
                "solved",
                "-o",
                "run-{0}",
                "-b",
                "backend.cfg",
                "-p",
                "-G",
                "-O",
                "-K",
                "-J",
                "-v",
                "a.png",
                "b.png",
            ]
        )
        self.assertEqual(config.inputs, ("a.png", "b.png"))
        self.assertEqual(config.output_dir, Path("solved"))
        self.assertEqual(config.base_name_template, "run-{0}")
        self.assertFalse(config.make_plots)
        self.assertEqual(config.transport, "wget")
        self.assertTrue(config.overwrite)
        self.assertTrue(config.cont)
        self.assertTrue(config.skip_solved)
        self.assertTrue(config.verbose)
        self.assertEqual(config.solver_args(), ["--verbose", "--config", "backend.cfg"])

    def test_prepare_options(self):
        """
        Test that prepare engine options are passed through, and that the
        column names and solved input are also kept for the driver

        :return: None
        """
        config = parse_config(
            [
                "-X",
                "XIMAGE",
                "--y-column",
                "YIMAGE",
                "--solved-in",
                "other.solved",
                "-L",
                "0.5",
                "--dec",
                "-5.2",
                "m42.xyls",
            ]
        )
        self.assertEqual(config.x_column, "XIMAGE")
        self.assertEqual(config.y_column, "YIMAGE")
        self.assertEqual(config.solved_in, Path("other.solved"))

        args = list(config.prepare_args)
        for flag, value in [
            ("--x-column", "XIMAGE"),
            ("--y-column", "YIMAGE"),
            ("--solved-in", "other.solved"),
            ("--scale-low", "0.5"),
            ("--dec", "-5.2"),
        ]:
            self.assertEqual(args[args.index(flag) + 1], value)

        self.assertEqual(config.inputs, ("m42.xyls",))

    def test_options_after_inputs(self):
        """
        Test that flags may follow the inputs

        :return: None
        """
        config = parse_config(["a.png", "-O", "b.png", "--no-plots"])
        self.assertEqual(config.inputs, ("a.png", "b.png"))
        self.assertTrue(config.overwrite)
        self.assertFalse(config.make_plots)

    def test_bad_configurations(self):
        """
        Test that inconsistent flags are configuration errors

        :return: None
        """
        with self.assertRaises(ConfigurationError):
            parse_config(["-f", "a.png"])

        with self.assertRaises(ConfigurationError):
            parse_config(["-o", "field-{5}", "a.png"])

        with self.assertRaises(ConfigurationError):
            parse_config(["-o", "{1.foo}", "a.png"])

    def test_output_dir(self):
        """
        Test creating the output directory

        :return: None
        """
        output_dir = self.temp_path.joinpath("a", "b")
        make_output_dir(output_dir)
        self.assertTrue(output_dir.is_dir())

        blocker = self.temp_path.joinpath("file")
        blocker.write_text("", encoding="utf-8")
        with self.assertRaises(ConfigurationError):
            make_output_dir(blocker.joinpath("sub"))

    def test_logfile(self):
        """
        Test logging to a file

        :return: None
        """
        logfile = self.temp_path.joinpath("run.log")
        handler = setup_logging(str(logfile), level="INFO")
        try:
            logging.getLogger(f"{PACKAGE_NAME}.test").info("Logged to file")
        finally:
            handler.close()
            logging.getLogger(PACKAGE_NAME).removeHandler(handler)

        self.assertIn("Logged to file", logfile.read_text(encoding="utf-8"))


class TestMain(BaseTestCase):
    """
    Class to test running the whole driver
    """

    def setUp(self):
        self.logger = logging.getLogger(__name__)
        self.logger.setLevel(logging.INFO)
        self.image = self.temp_path.joinpath("m42.png")
        self.image.write_bytes(b"\x89PNG\r\n\x1a\n" + bytes(64))
        self.out_dir = self.temp_path.joinpath("out")

    def run_main(self, argv: list[str], runner: FakeRunner) -> tuple[int, str]:
        """
        Runs the driver with fake external programs

        :param argv: arguments
        :param runner: fake runner
        :return: exit code, and everything printed to stdout
        """

        def make_pipeline(*args, **kwargs):
            return SolvePipeline(*args, runner=runner, **kwargs)

        stdout = io.StringIO()
        with mock.patch(
            "skysolve.cli.Toolbox.resolve", return_value=get_test_toolbox()
        ), mock.patch("skysolve.cli.SolvePipeline", side_effect=make_pipeline):
            with contextlib.redirect_stdout(stdout):
                exit_code = main(argv)
        return exit_code, stdout.getvalue()

    def test_no_inputs(self):
        """
        Test that running with no inputs prints the help, and fails

        :return: None
        """
        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout):
            self.assertEqual(main([]), EXIT_FAILURE)
        self.assertIn("usage:", stdout.getvalue())

    def test_missing_programs(self):
        """
        Test that a missing solve engine stops before any input is read

        :return: None
        """
        with mock.patch(
            "skysolve.cli.Toolbox.resolve",
            side_effect=ConfigurationError("Could not find program 'backend'"),
        ):
            with contextlib.redirect_stdout(io.StringIO()):
                self.assertEqual(main([str(self.image)]), EXIT_FAILURE)

    def test_solved(self):
        """
        Test a full run which solves its input

        :return: None
        """
        exit_code, stdout = self.run_main(
            ["-D", str(self.out_dir), str(self.image)], FakeRunner(solve=True)
        )
        self.assertEqual(exit_code, EXIT_SUCCESS)
        self.assertIn(f"{self.image}: solved using 25 field objects", stdout)
        self.assertTrue(self.out_dir.joinpath("m42.wcs").exists())

    def test_failure(self):
        """
        Test that a failed run exits with a failure, and summarises its errors

        :return: None
        """
        exit_code, stdout = self.run_main(
            ["-D", str(self.out_dir), str(self.image)],
            FakeRunner(failures={("backend", ""): 1}),
        )
        self.assertEqual(exit_code, EXIT_FAILURE)
        self.assertIn("Error report summarising 1 errors", stdout)
        self.assertIn("[solve]", stdout)

    def test_interrupted(self):
        """
        Test that interruptions give their own exit code

        :return: None
        """
        exit_code, _ = self.run_main(
            ["-D", str(self.out_dir), str(self.image)],
            FakeRunner(failures={("augment-xylist", ""): -2}),
        )
        self.assertEqual(exit_code, EXIT_INTERRUPTED)

        with mock.patch(
            "skysolve.cli.BatchController.run", side_effect=KeyboardInterrupt
        ):
            exit_code, _ = self.run_main(
                ["-D", str(self.out_dir), str(self.image)], FakeRunner()
            )
        self.assertEqual(exit_code, EXIT_INTERRUPTED)
