"""
Module containing the :class:`~skysolve.pipeline.batch.BatchController`, which
runs the :class:`~skysolve.pipeline.solve_pipeline.SolvePipeline` over every
input of a batch, one after the other.

Inputs come either from the command line, or one per line from a stream
(typically stdin). A job which fails stops the whole batch: the remaining
inputs are never attempted.
"""
import logging
import sys
from typing import Iterator, Optional, TextIO

from skysolve.errors import ConfigurationError, ErrorReport, ErrorStack
from skysolve.pipeline.outcomes import Failed, Outcome
from skysolve.pipeline.solve_pipeline import SolvePipeline
from skysolve.pipeline.stages import Stage
from skysolve.utils import flush_all

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
# Conventional shell status for a process stopped by SIGINT
EXIT_INTERRUPTED = 130


class BatchResult:
    """
    Outcomes of every input attempted in a batch
    """

    def __init__(self, error_stack: Optional[ErrorStack] = None):
        self.outcomes: list[tuple[str, Outcome]] = []
        self.status_lines: list[str] = []
        self.error_stack = ErrorStack() if error_stack is None else error_stack

    def add(self, reference: str, outcome: Outcome):
        """
        Records the outcome of an input

        :param reference: input reference
        :param outcome: outcome
        :return: None
        """
        self.outcomes.append((reference, outcome))
        if not outcome.failed:
            self.status_lines.append(outcome.status_line(reference))

    def __len__(self) -> int:
        return len(self.outcomes)

    @property
    def failure(self) -> Optional[Failed]:
        """
        The outcome which stopped the batch, if any

        :return: Failed outcome or None
        """
        for _, outcome in self.outcomes:
            if outcome.failed:
                return outcome
        return None

    @property
    def exit_code(self) -> int:
        """
        Process exit status for the batch

        :return: exit code
        """
        failure = self.failure
        if failure is None:
            return EXIT_SUCCESS
        if failure.interrupted:
            return EXIT_INTERRUPTED
        return EXIT_FAILURE


class BatchController:
    """
    Runs a pipeline over every input of a batch
    """

    def __init__(self, pipeline: SolvePipeline, stream: Optional[TextIO] = None):
        self.pipeline = pipeline
        self.config = pipeline.config
        self.stream = stream

    def iter_references(self) -> Iterator[str]:
        """
        Yields each input reference in turn

        :return: iterator of references
        """
        if not self.config.files_on_stdin:
            yield from self.config.inputs
            return

        stream = sys.stdin if self.stream is None else self.stream

        while True:
            try:
                line = stream.readline()
            except (OSError, ValueError) as err:
                logger.error(f"Failed to read the next input file name: {err}")
                return

            if line == "":
                return

            reference = line.rstrip("\r\n")
            if reference.strip() == "":
                continue

            yield reference

    def log_progress(self, index: int):
        """
        Logs which input is being processed

        :param index: 1-based index of the input
        :return: None
        """
        if self.config.files_on_stdin:
            logger.info(f"Reading input file {index}")
        else:
            logger.info(f"Reading input file {index} of {len(self.config.inputs)}")

    def run(self) -> BatchResult:
        """
        Processes each input, stopping at the first failure

        :return: BatchResult
        """
        result = BatchResult(error_stack=self.pipeline.error_stack)

        for index, reference in enumerate(self.iter_references(), start=1):
            self.log_progress(index)

            try:
                job = self.pipeline.make_job(reference, index)
            except ConfigurationError as exc:
                err = ErrorReport(exc, Stage.OUTPUT_POLICY.value, [reference])
                logger.error(err.generate_log_message())
                result.error_stack.add_report(err)
                result.add(reference, Failed(Stage.OUTPUT_POLICY, exc))
                break

            with job.temp_files:
                outcome = self.pipeline.run(job)

            result.add(reference, outcome)

            if outcome.failed:
                logger.error(outcome.status_line(reference))
                logger.error("Stopping: remaining inputs will not be processed.")
                break

            flush_all()
            print(outcome.status_line(reference))
            sys.stdout.flush()

        return result
