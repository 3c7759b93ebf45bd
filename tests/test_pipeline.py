"""
Module for testing whole batches with ..module::skysolve.pipeline, with the
external programs replaced by a :class:`~skysolve.testing.FakeRunner`
"""
import contextlib
import io
import logging
import shlex
from pathlib import Path

from skysolve.config import BatchRun, PlottingState
from skysolve.paths import (
    CONSTELLATION_PLOT_KEY,
    INDEX_PLOT_KEY,
    INDEX_XYLS_KEY,
    MATCH_KEY,
    SOLVED_KEY,
    SOURCE_PLOT_KEY,
    WCS_KEY,
)
from skysolve.pipeline import (
    EXIT_FAILURE,
    EXIT_INTERRUPTED,
    EXIT_SUCCESS,
    BatchController,
    Failed,
    Skipped,
    Solved,
    SolvePipeline,
    Stage,
    Unsolved,
)
from skysolve.testing import (
    TEST_N_SOURCES,
    BaseTestCase,
    FakeRunner,
    get_option_value,
    get_test_toolbox,
    make_coordinate_list,
)

logger = logging.getLogger(__name__)


def get_programs(runner: FakeRunner) -> list[str]:
    """
    Returns the program run by each recorded command, in order

    :param runner: runner
    :return: list of program names
    """
    return [Path(shlex.split(x)[0]).name for x in runner.commands]


class FailingStream:
    """
    Stream which returns some lines, then fails to read any more
    """

    def __init__(self, lines: list[str]):
        self.lines = list(lines)

    def readline(self) -> str:
        """
        Returns the next line, or raises once the lines run out
        """
        if len(self.lines) == 0:
            raise OSError("Input/output error")
        return self.lines.pop(0)


class TestPipeline(BaseTestCase):
    """
    Class to test batches from start to finish
    """

    def setUp(self):
        self.logger = logging.getLogger(__name__)
        self.logger.setLevel(logging.INFO)
        self.data_dir = self.temp_path.joinpath("data")
        self.data_dir.mkdir()
        self.out_dir = self.temp_path.joinpath("out")
        self.out_dir.mkdir()

    def make_image(self, name: str) -> str:
        """
        Writes a fake image to the data directory

        :param name: file name
        :return: path, as a string
        """
        path = self.data_dir.joinpath(name)
        path.write_bytes(b"\x89PNG\r\n\x1a\n" + bytes(64))
        return str(path)

    def out(self, name: str) -> Path:
        """
        Path of an output file
        """
        return self.out_dir.joinpath(name)

    def run_batch(
        self,
        runner: FakeRunner,
        plotting: bool = True,
        stream=None,
        **kwargs,
    ):
        """
        Runs a batch, writing outputs to the output directory

        :param runner: fake runner
        :param plotting: whether the plotting programs exist
        :param stream: stream of input names
        :param kwargs: BatchRun fields
        :return: BatchResult
        """
        config = BatchRun(output_dir=self.out_dir, **kwargs)
        pipeline = SolvePipeline(
            config, get_test_toolbox(plotting=plotting), runner=runner
        )
        with contextlib.redirect_stdout(io.StringIO()):
            return BatchController(pipeline, stream=stream).run()

    def test_solved_image(self):
        """
        Test an image which solves: every output is written, and the preview
        is deleted afterwards

        :return: None
        """
        image = self.make_image("m42.png")
        runner = FakeRunner(solve=True)
        result = self.run_batch(runner, inputs=(image,))

        self.assertEqual(result.exit_code, EXIT_SUCCESS)
        self.assertEqual(len(result), 1)
        _, outcome = result.outcomes[0]
        self.assertIsInstance(outcome, Solved)
        self.assertEqual(outcome.n_objects, TEST_N_SOURCES)

        for name in [
            "m42.axy",
            "m42.match",
            "m42.wcs",
            "m42.rdls",
            "m42.solved",
            "m42-objs.png",
            "m42-indx.xyls",
            "m42-indx.png",
            "m42-ngc.png",
        ]:
            self.assertTrue(self.out(name).exists(), msg=name)

        self.assertEqual(
            get_programs(runner),
            ["augment-xylist", "plotxy", "backend", "plotxy", "plot-constellations"],
        )

        prepare_args = shlex.split(runner.commands[0])
        self.assertEqual(get_option_value(prepare_args, "--image"), image)
        preview = get_option_value(prepare_args, "--pnm")
        self.assertIsNotNone(preview)
        self.assertFalse(Path(preview).exists())

        self.assertTrue(result.status_lines[0].startswith(f"{image}: solved using 25"))
        self.assertIn("RA,Dec = (83.82, -5.391) deg", result.status_lines[0])

    def test_unsolved_image(self):
        """
        Test an image which does not solve

        :return: None
        """
        image = self.make_image("m42.png")
        runner = FakeRunner(solve=False)
        result = self.run_batch(runner, inputs=(image,))

        self.assertEqual(result.exit_code, EXIT_SUCCESS)
        self.assertIsInstance(result.outcomes[0][1], Unsolved)
        self.assertTrue(self.out("m42.axy").exists())
        self.assertTrue(self.out("m42-objs.png").exists())
        self.assertFalse(self.out("m42.solved").exists())
        self.assertEqual(get_programs(runner), ["augment-xylist", "plotxy", "backend"])
        self.assertEqual(
            result.status_lines, [f"{image}: unsolved using 25 field objects"]
        )

    def test_second_run_skips(self):
        """
        Test that running the same input twice skips it the second time

        :return: None
        """
        image = self.make_image("m42.png")
        self.run_batch(FakeRunner(), inputs=(image,))

        runner = FakeRunner()
        with self.assertLogs("skysolve.policy", level="INFO") as logs:
            result = self.run_batch(runner, inputs=(image,))

        self.assertTrue(any("already exists" in x for x in logs.output))
        self.assertEqual(result.exit_code, EXIT_SUCCESS)
        outcome = result.outcomes[0][1]
        self.assertIsInstance(outcome, Skipped)
        self.assertIn("already exists", outcome.reason)
        self.assertEqual(runner.commands, [])
        self.assertTrue(result.status_lines[0].startswith(f"{image}: skipped ("))

    def test_continue_and_overwrite(self):
        """
        Test that continue and overwrite both process an input again

        :return: None
        """
        image = self.make_image("m42.png")
        self.run_batch(FakeRunner(solve=False), inputs=(image,))

        for flags in [{"cont": True}, {"overwrite": True}]:
            runner = FakeRunner(solve=False)
            result = self.run_batch(runner, inputs=(image,), **flags)
            self.assertIsInstance(result.outcomes[0][1], Unsolved, msg=flags)
            self.assertIn("backend", get_programs(runner))

    def test_skip_solved(self):
        """
        Test skipping inputs which have already been solved

        :return: None
        """
        image = self.make_image("m42.png")
        self.run_batch(FakeRunner(solve=True), inputs=(image,))

        runner = FakeRunner()
        result = self.run_batch(
            runner, inputs=(image,), skip_solved=True, overwrite=True
        )
        self.assertIsInstance(result.outcomes[0][1], Skipped)
        self.assertTrue(self.out("m42.solved").exists())
        self.assertEqual(runner.commands, [])

    def test_wget_download(self):
        """
        Test a remote input: the download is kept, and used as the input

        :return: None
        """
        url = "http://example.org/field.fits"
        runner = FakeRunner(solve=True)
        result = self.run_batch(runner, inputs=(url,), use_wget=True)

        self.assertEqual(result.exit_code, EXIT_SUCCESS)
        self.assertIsInstance(result.outcomes[0][1], Solved)

        download = self.out("field-downloaded.fits")
        self.assertTrue(download.exists())

        self.assertEqual(get_programs(runner)[:2], ["wget", "augment-xylist"])
        download_args = shlex.split(runner.commands[0])
        self.assertEqual(download_args[-1], url)
        self.assertEqual(get_option_value(download_args, "-O"), str(download))

        prepare_args = shlex.split(runner.commands[1])
        self.assertEqual(get_option_value(prepare_args, "--image"), str(download))
        self.assertTrue(self.out("field.solved").exists())

    def test_failed_download(self):
        """
        Test that a failed download stops the batch

        :return: None
        """
        runner = FakeRunner(failures={("curl", ""): 6})
        result = self.run_batch(
            runner, inputs=("http://example.org/a.fits", self.make_image("b.png"))
        )
        self.assertEqual(result.exit_code, EXIT_FAILURE)
        self.assertEqual(len(result), 1)
        self.assertEqual(result.failure.stage, Stage.RETRIEVE)
        self.assertEqual(get_programs(runner), ["curl"])

    def test_failure_stops_batch(self):
        """
        Test that a failure preparing the second input means the third is
        never attempted

        :return: None
        """
        inputs = tuple(self.make_image(x) for x in ["a.png", "b.png", "c.png"])
        runner = FakeRunner(solve=False, failures={("augment-xylist", "b.png"): 1})
        result = self.run_batch(runner, inputs=inputs)

        self.assertEqual(result.exit_code, EXIT_FAILURE)
        self.assertEqual(len(result), 2)
        self.assertIsInstance(result.outcomes[0][1], Unsolved)

        reference, outcome = result.outcomes[1]
        self.assertEqual(reference, inputs[1])
        self.assertIsInstance(outcome, Failed)
        self.assertEqual(outcome.stage, Stage.PREPROCESS)
        self.assertFalse(outcome.interrupted)

        self.assertFalse(any("c.png" in x for x in runner.commands))
        self.assertFalse(self.out("c.axy").exists())
        self.assertEqual(len(result.status_lines), 1)
        self.assertEqual(len(result.error_stack.reports), 1)
        self.assertEqual(result.error_stack.failed_inputs, [inputs[1]])

    def test_missing_input(self):
        """
        Test that a local input which does not exist stops the batch

        :return: None
        """
        runner = FakeRunner()
        missing = str(self.data_dir.joinpath("missing.png"))
        result = self.run_batch(runner, inputs=(missing,))
        self.assertEqual(result.exit_code, EXIT_FAILURE)
        self.assertEqual(result.failure.stage, Stage.RETRIEVE)
        self.assertEqual(runner.commands, [])

    def test_interrupted_solver(self):
        """
        Test that an interrupted solver stops the batch, with its own exit code

        :return: None
        """
        inputs = (self.make_image("a.png"), self.make_image("b.png"))
        runner = FakeRunner(failures={("backend", ""): 128 + 2})
        result = self.run_batch(runner, inputs=inputs)

        self.assertEqual(result.exit_code, EXIT_INTERRUPTED)
        self.assertEqual(len(result), 1)
        self.assertTrue(result.failure.interrupted)
        self.assertEqual(result.failure.stage, Stage.SOLVE)

    def test_interrupted_plot(self):
        """
        Test that an interruption while plotting sources stops the batch,
        even though plotting failures are otherwise harmless

        :return: None
        """
        runner = FakeRunner(failures={("plotxy", "objs"): -15})
        result = self.run_batch(runner, inputs=(self.make_image("a.png"),))
        self.assertEqual(result.exit_code, EXIT_INTERRUPTED)
        self.assertEqual(result.failure.stage, Stage.PLOT_SOURCES)
        self.assertNotIn("backend", get_programs(runner))

    def test_soft_plot_failure(self):
        """
        Test that failing to plot the sources switches off plotting for the
        rest of the batch, without stopping it

        :return: None
        """
        inputs = (self.make_image("a.png"), self.make_image("b.png"))
        runner = FakeRunner(solve=True, failures={("plotxy", "objs"): 1})
        result = self.run_batch(runner, inputs=inputs)

        self.assertEqual(result.exit_code, EXIT_SUCCESS)
        self.assertIsInstance(result.outcomes[0][1], Solved)
        self.assertIsInstance(result.outcomes[1][1], Solved)

        self.assertEqual(
            get_programs(runner),
            ["augment-xylist", "plotxy", "backend", "augment-xylist", "backend"],
        )
        self.assertFalse(self.out("a-indx.png").exists())
        self.assertTrue(self.out("a-indx.xyls").exists())
        self.assertEqual(len(result.error_stack.reports), 0)
        self.assertEqual(len(result.error_stack.noncritical_reports), 1)

    def test_solution_plot_failure(self):
        """
        Test that failing to plot a solution stops the batch

        :return: None
        """
        inputs = (self.make_image("a.png"), self.make_image("b.png"))
        runner = FakeRunner(solve=True, failures={("plotxy", "indx"): 1})
        result = self.run_batch(runner, inputs=inputs)

        self.assertEqual(result.exit_code, EXIT_FAILURE)
        self.assertEqual(len(result), 1)
        self.assertEqual(result.failure.stage, Stage.PLOT_SOLUTION)

    def test_annotation_failure(self):
        """
        Test that failing to annotate a solved image stops the batch

        :return: None
        """
        runner = FakeRunner(solve=True, failures={("plot-constellations", ""): 1})
        result = self.run_batch(runner, inputs=(self.make_image("a.png"),))
        self.assertEqual(result.exit_code, EXIT_FAILURE)
        self.assertEqual(result.failure.stage, Stage.ANNOTATE)

    def test_annotation_logged(self):
        """
        Test that the contents of the field are logged

        :return: None
        """
        runner = FakeRunner(solve=True)
        with self.assertLogs("skysolve.pipeline", level="INFO") as logs:
            self.run_batch(runner, inputs=(self.make_image("m42.png"),))
        self.assertTrue(any("Your field contains:" in x for x in logs.output))
        self.assertTrue(any("M 42 / NGC 1976" in x for x in logs.output))

    def test_coordinate_list(self):
        """
        Test that a list of sources skips image preprocessing and annotation

        :return: None
        """
        xylist = make_coordinate_list(self.data_dir.joinpath("sources.xyls"))
        runner = FakeRunner(solve=True)
        result = self.run_batch(runner, inputs=(str(xylist),))

        self.assertIsInstance(result.outcomes[0][1], Solved)
        self.assertEqual(
            get_programs(runner), ["augment-xylist", "plotxy", "backend", "plotxy"]
        )

        prepare_args = shlex.split(runner.commands[0])
        self.assertEqual(get_option_value(prepare_args, "--xylist"), str(xylist))
        self.assertNotIn("--image", prepare_args)
        self.assertNotIn("--pnm", prepare_args)

        # Plotted on a blank canvas
        self.assertNotIn("-I", shlex.split(runner.commands[1].split(" | ")[0]))
        self.assertFalse(self.out("sources-ngc.png").exists())

    def test_no_plots(self):
        """
        Test that no plotting program runs with plots switched off, or missing

        :return: None
        """
        runner = FakeRunner(solve=True)
        self.run_batch(runner, inputs=(self.make_image("a.png"),), make_plots=False)
        self.assertEqual(get_programs(runner), ["augment-xylist", "backend"])

        runner = FakeRunner(solve=True)
        self.run_batch(
            runner, plotting=False, inputs=(self.make_image("b.png"),), overwrite=True
        )
        self.assertEqual(get_programs(runner), ["augment-xylist", "backend"])

    def test_inputs_from_stream(self):
        """
        Test reading inputs one per line, ignoring blank lines

        :return: None
        """
        first = self.make_image("a.png")
        second = self.make_image("b.png")
        stream = io.StringIO(f"{first}\n\n   \n{second}\n")

        runner = FakeRunner(solve=False)
        result = self.run_batch(runner, stream=stream, files_on_stdin=True)

        self.assertEqual([x for x, _ in result.outcomes], [first, second])
        self.assertEqual(result.exit_code, EXIT_SUCCESS)

    def test_stream_read_error(self):
        """
        Test that a read error ends the inputs, keeping those already read

        :return: None
        """
        first = self.make_image("a.png")
        stream = FailingStream([f"{first}\n"])

        runner = FakeRunner(solve=False)
        with self.assertLogs("skysolve.pipeline", level="ERROR") as logs:
            result = self.run_batch(runner, stream=stream, files_on_stdin=True)

        self.assertEqual([x for x, _ in result.outcomes], [first])
        self.assertIsInstance(result.outcomes[0][1], Unsolved)
        self.assertEqual(result.exit_code, EXIT_SUCCESS)
        self.assertTrue(any("Input/output error" in x for x in logs.output))

    def test_stream_decode_error(self):
        """
        Test that a name which is not valid UTF-8 ends the inputs cleanly

        :return: None
        """
        stream = io.TextIOWrapper(io.BytesIO(b"\xff\xfe.png\n"), encoding="utf-8")

        runner = FakeRunner()
        with self.assertLogs("skysolve.pipeline", level="ERROR"):
            result = self.run_batch(runner, stream=stream, files_on_stdin=True)

        self.assertEqual(len(result), 0)
        self.assertEqual(result.exit_code, EXIT_SUCCESS)
        self.assertEqual(runner.commands, [])

    def test_status_printed(self):
        """
        Test that one status line per input is printed to stdout

        :return: None
        """
        image = self.make_image("m42.png")
        config = BatchRun(inputs=(image,), output_dir=self.out_dir)
        pipeline = SolvePipeline(
            config, get_test_toolbox(), runner=FakeRunner(solve=False)
        )

        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout):
            BatchController(pipeline).run()

        self.assertIn(f"{image}: unsolved using 25 field objects\n", stdout.getvalue())

    def test_shared_plotting_state(self):
        """
        Test that plotting, once switched off, stays off for later pipelines
        sharing the same state

        :return: None
        """
        plotting = PlottingState()
        plotting.disable("test")
        plotting_disabled_reason = plotting.disabled_reason

        config = BatchRun(inputs=(self.make_image("a.png"),), output_dir=self.out_dir)
        runner = FakeRunner(solve=True)
        pipeline = SolvePipeline(
            config, get_test_toolbox(), plotting=plotting, runner=runner
        )
        with contextlib.redirect_stdout(io.StringIO()):
            BatchController(pipeline).run()

        self.assertFalse(plotting.enabled)
        self.assertEqual(plotting.disabled_reason, plotting_disabled_reason)
        self.assertEqual(get_programs(runner), ["augment-xylist", "backend"])

    def test_solved_in_protected(self):
        """
        Test that an external solved file which is also an output of the
        input is never offered for deletion

        :return: None
        """
        own_solved = self.out("m42.solved")
        config = BatchRun(output_dir=self.out_dir, solved_in=own_solved)
        pipeline = SolvePipeline(config, get_test_toolbox(), runner=FakeRunner())

        job = pipeline.make_job(self.make_image("m42.png"), 1)
        self.assertIn(SOLVED_KEY, job.artifacts.protected_roles)
        self.assertNotIn(own_solved, job.artifacts.deletable_paths())

        other = pipeline.make_job(self.make_image("m43.png"), 2)
        self.assertEqual(other.artifacts.protected_roles, [])

        for role in [
            WCS_KEY,
            MATCH_KEY,
            SOURCE_PLOT_KEY,
            INDEX_PLOT_KEY,
            INDEX_XYLS_KEY,
            CONSTELLATION_PLOT_KEY,
        ]:
            self.assertIn(job.artifacts[role], job.artifacts.deletable_paths())
