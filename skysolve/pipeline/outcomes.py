"""
Module with the terminal outcomes of a field job.

Exactly one outcome ends every job. Each knows how to render the one-line
status printed for its input.
"""
import logging
from typing import Optional

from skysolve.pipeline.stages import Stage
from skysolve.wcs import FieldSummary

logger = logging.getLogger(__name__)


def format_n_objects(n_objects: Optional[int]) -> str:
    """
    Renders a field object count, which may be unknown

    :param n_objects: count
    :return: string
    """
    return "?" if n_objects is None else str(n_objects)


class Outcome:
    """
    Base class for the result of processing one input
    """

    failed = False

    def status_line(self, reference: str) -> str:
        """
        Line summarising the outcome for an input

        :param reference: input reference
        :return: status line
        """
        raise NotImplementedError


class Skipped(Outcome):
    """
    Input was not processed, e.g. because its outputs already exist
    """

    def __init__(self, reason: str):
        self.reason = reason

    def status_line(self, reference: str) -> str:
        return f"{reference}: skipped ({self.reason})"

    def __repr__(self):
        return f"Skipped({self.reason!r})"


class Unsolved(Outcome):
    """
    Solve engine ran, but found no solution
    """

    def __init__(self, n_objects: Optional[int] = None):
        self.n_objects = n_objects

    def status_line(self, reference: str) -> str:
        return (
            f"{reference}: unsolved using {format_n_objects(self.n_objects)} "
            f"field objects"
        )

    def __repr__(self):
        return f"Unsolved(n_objects={self.n_objects})"


class Solved(Outcome):
    """
    Field was solved
    """

    def __init__(self, summary: FieldSummary, n_objects: Optional[int] = None):
        self.summary = summary
        self.n_objects = n_objects

    def status_line(self, reference: str) -> str:
        summary = self.summary
        return (
            f"{reference}: solved using {format_n_objects(self.n_objects)} "
            f"field objects, RA,Dec = ({summary.ra_deg:.4g}, {summary.dec_deg:.4g}) "
            f"deg, (H:M:S, D:M:S) = ({summary.ra_hms}, {summary.dec_dms}), "
            f"size = {summary.width:.4g} x {summary.height:.4g} {summary.units}"
        )

    def __repr__(self):
        return f"Solved(n_objects={self.n_objects})"


class Failed(Outcome):
    """
    A stage failed in a way which ends the batch
    """

    failed = True

    def __init__(self, stage: Stage, cause: Exception, interrupted: bool = False):
        self.stage = stage
        self.cause = cause
        self.interrupted = interrupted

    def status_line(self, reference: str) -> str:
        state = "interrupted" if self.interrupted else "failed"
        return f"{reference}: {state} during {self.stage.value} ({self.cause})"

    def __repr__(self):
        return f"Failed({self.stage}, interrupted={self.interrupted})"
