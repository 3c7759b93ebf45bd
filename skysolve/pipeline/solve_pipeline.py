"""
Module containing the :class:`~skysolve.pipeline.solve_pipeline.SolvePipeline`,
which takes a single input from its output-file check through to a solution
(or not).

For each input, the stages run in the following order:

* check for existing outputs (and maybe skip the input)
* download the input, if it is a URL
* decide whether the input is an image or a list of source positions
* extract sources from an image (or augment a source list) for the solver
* plot the detected sources
* run the solver

and then, if the field was solved:

* project the catalog stars into the field
* read the field centre and size
* plot the solution
* annotate constellations and named objects

Every stage reports failure by raising. What that failure means for the rest
of the batch is looked up in :data:`~skysolve.pipeline.stages.FAILURE_ACTIONS`.
"""
import logging
import os
from pathlib import Path
from typing import Callable, Optional

from skysolve.artifacts import get_artifact_set
from skysolve.config import BatchRun, PlottingState
from skysolve.downloader import download_reference, needs_retrieval
from skysolve.engines import (
    Toolbox,
    get_constellation_command,
    get_prepare_command,
    get_solution_plot_command,
    get_solve_command,
    get_source_plot_command,
)
from skysolve.errors import ErrorReport, ErrorStack, InputNotFoundError
from skysolve.io import count_sources, is_coordinate_list, read_first_match
from skysolve.paths import (
    CONSTELLATION_PLOT_KEY,
    INDEX_PLOT_KEY,
    INDEX_XYLS_KEY,
    MATCH_KEY,
    RDLS_KEY,
    SOLVED_KEY,
    SOURCE_PLOT_KEY,
    WCS_KEY,
)
from skysolve.pipeline.field_job import FieldJob
from skysolve.pipeline.outcomes import Failed, Outcome, Skipped, Solved, Unsolved
from skysolve.pipeline.stages import Stage, StageAction, action_for_failure
from skysolve.policy import OutputDecision, PolicyResult, resolve_output_policy
from skysolve.utils import CommandResult, check_command, run_command
from skysolve.wcs import FieldSummary, project_index_sources, read_solution_summary

logger = logging.getLogger(__name__)

PREVIEW_SUFFIX = ".ppm"

NONCRITICAL_ACTIONS = [StageAction.CONTINUE, StageAction.DISABLE_PLOTTING]


def is_same_file(path_a: str | Path, path_b: str | Path) -> bool:
    """
    Whether two paths point to the same file, whether or not it exists

    :param path_a: first path
    :param path_b: second path
    :return: boolean
    """
    return os.path.abspath(path_a) == os.path.abspath(path_b)


class JobStopped(Exception):
    """
    Raised internally to end a job early, carrying its outcome
    """

    def __init__(self, outcome: Outcome):
        super().__init__(outcome)
        self.outcome = outcome


class SolvePipeline:
    """
    Runs every stage for one input at a time
    """

    def __init__(
        self,
        config: BatchRun,
        toolbox: Toolbox,
        plotting: Optional[PlottingState] = None,
        runner: Callable = run_command,
        error_stack: Optional[ErrorStack] = None,
    ):
        self.config = config
        self.toolbox = toolbox
        self.runner = runner

        if plotting is None:
            plotting = PlottingState(enabled=config.make_plots)
        self.plotting = plotting

        if self.plotting.enabled and not self.toolbox.can_plot:
            self.plotting.disable("plotting programs were not found")

        if error_stack is None:
            error_stack = ErrorStack()
        self.error_stack = error_stack

    def make_job(self, reference: str, index: int) -> FieldJob:
        """
        Creates a fresh job for an input

        :param reference: input reference (path or URL)
        :param index: 1-based position of the input in the batch
        :return: FieldJob
        """
        artifacts = get_artifact_set(
            reference,
            index,
            base_name_template=self.config.base_name_template,
            output_dir=self.config.output_dir,
        )

        solved_in = self.config.solved_in
        if solved_in is not None and is_same_file(solved_in, artifacts.solved):
            logger.debug(
                f"Solved input {solved_in} is also the solved output of "
                f"{reference}; it will not be deleted."
            )
            artifacts = artifacts.protect(SOLVED_KEY)

        return FieldJob(reference=reference, index=index, artifacts=artifacts)

    def run(self, job: FieldJob) -> Outcome:
        """
        Runs every stage for a job. Never raises for a stage failure: a failure
        which should stop the batch is returned as a
        :class:`~skysolve.pipeline.outcomes.Failed` outcome.

        :param job: job to process
        :return: outcome of the job
        """
        try:
            outcome = self._process(job)
        except JobStopped as stop:
            outcome = stop.outcome

        job.outcome = outcome
        return outcome

    def _process(self, job: FieldJob) -> Outcome:
        policy = self._run_stage(job, Stage.OUTPUT_POLICY, self.check_outputs)
        if policy.decision == OutputDecision.SKIP:
            return Skipped(policy.reason)

        self._run_stage(job, Stage.RETRIEVE, self.locate_input)
        self._run_stage(job, Stage.CLASSIFY, self.classify)

        if job.is_coordinate_list:
            self._run_stage(job, Stage.AUGMENT, self.augment)
        else:
            self._run_stage(job, Stage.PREPROCESS, self.preprocess)

        job.n_objects = count_sources(job.artifacts.coordinate_list)

        if self.plotting.enabled:
            self._run_stage(job, Stage.PLOT_SOURCES, self.plot_sources)

        solved = self._run_stage(job, Stage.SOLVE, self.solve)
        if not solved:
            logger.info(f"Did not solve (or no WCS file was written) for {job}")
            return Unsolved(n_objects=job.n_objects)

        self._run_stage(job, Stage.PROJECT_INDEX, self.project_index)
        summary = self._run_stage(job, Stage.READ_SOLUTION_SUMMARY, self.read_summary)

        if self.plotting.enabled:
            self._run_stage(job, Stage.PLOT_SOLUTION, self.plot_solution)

        if self.plotting.enabled and job.has_image:
            self._run_stage(job, Stage.ANNOTATE, self.annotate)

        return Solved(summary=summary, n_objects=job.n_objects)

    def _run_stage(self, job: FieldJob, stage: Stage, func: Callable):
        """
        Runs one stage, and applies the failure table if it raises

        :param job: job
        :param stage: stage being run
        :param func: function implementing the stage, taking the job
        :return: whatever the stage returned, or None if it failed harmlessly
        """
        logger.debug(f"{job}: stage {stage.value}")
        try:
            return func(job)
        except JobStopped:
            raise
        except Exception as exc:  # pylint: disable=broad-except
            interrupted = getattr(exc, "interrupted", False)
            action = action_for_failure(stage, interrupted=interrupted)

            err = ErrorReport(
                exc,
                stage_name=stage.value,
                contents=[job.reference],
                non_critical=action in NONCRITICAL_ACTIONS,
            )
            logger.error(err.generate_log_message())
            self.error_stack.add_report(err)

            if action == StageAction.CONTINUE:
                return None

            if action == StageAction.DISABLE_PLOTTING:
                self.plotting.disable(f"{stage.value} failed for {job.reference}")
                return None

            if action == StageAction.SKIP_JOB:
                raise JobStopped(Skipped(str(exc))) from exc

            raise JobStopped(Failed(stage, exc, interrupted=interrupted)) from exc

    def _check(self, cmd: str, capture_output: bool = False) -> CommandResult:
        return check_command(cmd, capture_output=capture_output, runner=self.runner)

    def check_outputs(self, job: FieldJob) -> PolicyResult:
        """
        Checks for (and maybe deletes) existing outputs of the input

        :param job: job
        :return: PolicyResult
        """
        return resolve_output_policy(
            job.artifacts,
            overwrite=self.config.overwrite,
            cont=self.config.cont,
            skip_solved=self.config.skip_solved,
            solved_in=self.config.solved_in,
        )

    def locate_input(self, job: FieldJob) -> Path:
        """
        Finds the input locally, downloading it first if it is a URL

        :param job: job
        :return: local path of the input
        """
        if needs_retrieval(job.reference):
            job.local_path = download_reference(
                job.reference,
                job.artifacts.download,
                transport=self.config.transport,
                verbose=self.config.verbose,
                runner=self.runner,
            )
        elif not job.local_path.exists():
            raise InputNotFoundError(f"Input file {job.reference} does not exist")

        logger.debug(f"Reading input file {job.local_path}")
        return job.local_path

    def classify(self, job: FieldJob) -> bool:
        """
        Decides whether the input is a list of sources, or an image

        :param job: job
        :return: True for a list of sources
        """
        is_xylist, reason = is_coordinate_list(
            job.local_path, x_column=self.config.x_column, y_column=self.config.y_column
        )
        if is_xylist:
            logger.info(f"{job.local_path} is a list of source positions")
        else:
            logger.debug(f"{job.local_path} is not a source list: {reason}")
            logger.info(f"{job.local_path} is an image")
        job.is_coordinate_list = is_xylist
        return is_xylist

    def preprocess(self, job: FieldJob):
        """
        Extracts sources from an image, writing a raster preview to a temp file

        :param job: job
        :return: None
        """
        preview_path = job.temp_files.new_temp_file(PREVIEW_SUFFIX)
        cmd = get_prepare_command(
            self.toolbox.prepare,
            job.artifacts,
            job.local_path,
            preview_path=preview_path,
            prepare_args=self.config.prepare_args,
        )
        self._check(cmd)
        job.preview_path = preview_path

    def augment(self, job: FieldJob):
        """
        Attaches the solver hints to a list of sources

        :param job: job
        :return: None
        """
        cmd = get_prepare_command(
            self.toolbox.prepare,
            job.artifacts,
            job.local_path,
            prepare_args=self.config.prepare_args,
        )
        self._check(cmd)

    def plot_sources(self, job: FieldJob):
        """
        Plots the detected sources over the image (or on a blank canvas)

        :param job: job
        :return: None
        """
        cmd = get_source_plot_command(
            self.toolbox.plotxy,
            job.artifacts.coordinate_list,
            job.artifacts[SOURCE_PLOT_KEY],
            preview_path=job.preview_path,
            x_column=self.config.x_column,
            y_column=self.config.y_column,
        )
        self._check(cmd)

    def solve(self, job: FieldJob) -> bool:
        """
        Runs the solver

        :param job: job
        :return: whether the field was solved
        """
        cmd = get_solve_command(
            self.toolbox.solver,
            job.artifacts.coordinate_list,
            self.config.solver_args(),
        )
        self._check(cmd)
        return job.artifacts.solved.exists()

    def project_index(self, job: FieldJob) -> int:
        """
        Projects the index stars used in the solution into field coordinates

        :param job: job
        :return: number of projected stars
        """
        return project_index_sources(
            job.artifacts[WCS_KEY],
            job.artifacts[RDLS_KEY],
            job.artifacts[INDEX_XYLS_KEY],
        )

    def read_summary(self, job: FieldJob) -> FieldSummary:
        """
        Reads the field centre and size from the solution

        :param job: job
        :return: FieldSummary
        """
        summary = read_solution_summary(job.artifacts[WCS_KEY])
        summary.log_summary()
        return summary

    def plot_solution(self, job: FieldJob):
        """
        Plots the detected sources, index stars and matched quad

        :param job: job
        :return: None
        """
        match = read_first_match(job.artifacts[MATCH_KEY])
        cmd = get_solution_plot_command(
            self.toolbox.plotxy,
            self.toolbox.plotquad,
            job.artifacts.coordinate_list,
            job.artifacts[INDEX_XYLS_KEY],
            match,
            job.artifacts[INDEX_PLOT_KEY],
            preview_path=job.preview_path,
            x_column=self.config.x_column,
            y_column=self.config.y_column,
        )
        self._check(cmd)

    def annotate(self, job: FieldJob) -> list[str]:
        """
        Annotates constellations and named objects on the image, and logs
        what was found

        :param job: job
        :return: lines describing the field contents
        """
        cmd = get_constellation_command(
            self.toolbox.plot_constellations,
            job.artifacts[WCS_KEY],
            job.preview_path,
            job.artifacts[CONSTELLATION_PLOT_KEY],
            verbose=self.config.verbose,
        )
        result = self._check(cmd, capture_output=True)

        lines = [] if result.stdout_lines is None else result.stdout_lines
        if len(lines) > 0:
            logger.info("Your field contains:")
            for line in lines:
                logger.info(f"  {line}")
        return lines
