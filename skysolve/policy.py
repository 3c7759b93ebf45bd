"""
Module deciding what to do when output files of an input already exist.

The checks run in a fixed order. The 'skip solved' check comes first, so that
an existing solved marker can never be deleted by the overwrite scan.
"""
import logging
from enum import Enum
from pathlib import Path
from typing import Optional

from skysolve.artifacts import ArtifactSet
from skysolve.errors import OutputDeletionError

logger = logging.getLogger(__name__)


class OutputDecision(Enum):
    """
    Result of the existing-output check for one input
    """

    PROCEED = "proceed"
    PROCEED_WITHOUT_DELETING = "proceed_without_deleting"
    SKIP = "skip"


class PolicyResult:
    """
    Decision, with a user-facing reason when an input is skipped
    """

    def __init__(self, decision: OutputDecision, reason: Optional[str] = None):
        self.decision = decision
        self.reason = reason

    def __repr__(self):
        return f"PolicyResult({self.decision}, reason={self.reason})"


def resolve_output_policy(
    artifacts: ArtifactSet,
    overwrite: bool = False,
    cont: bool = False,
    skip_solved: bool = False,
    solved_in: Optional[str | Path] = None,
) -> PolicyResult:
    """
    Checks for (and possibly deletes) existing output files of an input.

    :param artifacts: ArtifactSet for the input
    :param overwrite: delete existing outputs
    :param cont: keep existing outputs and carry on ('continue')
    :param skip_solved: skip inputs which already have a solved marker
    :param solved_in: externally supplied solved marker path
    :return: PolicyResult
    """
    if skip_solved:
        to_check = [solved_in, artifacts.solved]
        for solved_path in [Path(x) for x in to_check if x is not None]:
            logger.debug(f"Checking for solved file {solved_path}")
            if solved_path.exists():
                msg = f"Solved file exists: {solved_path}; skipping this input file."
                logger.info(msg)
                return PolicyResult(OutputDecision.SKIP, reason=msg)

    existing = [x for x in artifacts.deletable_paths() if x.exists()]

    if len(existing) == 0:
        return PolicyResult(OutputDecision.PROCEED)

    if cont:
        logger.debug(f"Keeping existing output files {existing}")
        return PolicyResult(OutputDecision.PROCEED_WITHOUT_DELETING)

    if overwrite:
        for path in existing:
            logger.debug(f"Deleting existing output file {path}")
            try:
                path.unlink()
            except OSError as err:
                msg = f"Failed to delete an already-existing output file '{path}'"
                logger.error(msg)
                raise OutputDeletionError(msg) from err
        return PolicyResult(OutputDecision.PROCEED)

    msg = f"Output file '{existing[0]}' already exists."
    logger.info(
        f"{msg} Use the --overwrite flag to overwrite existing files, "
        f"or the --continue flag to not overwrite existing files but still try "
        f"solving. Continuing to next input file."
    )
    return PolicyResult(OutputDecision.SKIP, reason=msg)
