"""
Module listing the stages a field goes through, and what happens to the batch
when each of them fails.

What a failure means is decided here and only here, in
:data:`FAILURE_ACTIONS`, rather than wherever the error happens to be caught.
"""
import logging
from enum import Enum

logger = logging.getLogger(__name__)


class Stage(Enum):
    """
    Steps of the per-field pipeline, in execution order
    """

    OUTPUT_POLICY = "output_policy"
    RETRIEVE = "retrieve"
    CLASSIFY = "classify"
    PREPROCESS = "preprocess"
    AUGMENT = "augment"
    PLOT_SOURCES = "plot_sources"
    SOLVE = "solve"
    PROJECT_INDEX = "project_index"
    READ_SOLUTION_SUMMARY = "read_solution_summary"
    PLOT_SOLUTION = "plot_solution"
    ANNOTATE = "annotate"


class StageAction(Enum):
    """
    Consequence of a stage failure
    """

    CONTINUE = "continue"
    SKIP_JOB = "skip_job"
    DISABLE_PLOTTING = "disable_plotting"
    ABORT_BATCH = "abort_batch"


FAILURE_ACTIONS = {
    Stage.OUTPUT_POLICY: StageAction.ABORT_BATCH,
    Stage.RETRIEVE: StageAction.ABORT_BATCH,
    # Unreadable files are classified as images
    Stage.CLASSIFY: StageAction.CONTINUE,
    Stage.PREPROCESS: StageAction.ABORT_BATCH,
    Stage.AUGMENT: StageAction.ABORT_BATCH,
    # Missing or broken plotting tools are an environment issue
    Stage.PLOT_SOURCES: StageAction.DISABLE_PLOTTING,
    Stage.SOLVE: StageAction.ABORT_BATCH,
    Stage.PROJECT_INDEX: StageAction.ABORT_BATCH,
    Stage.READ_SOLUTION_SUMMARY: StageAction.ABORT_BATCH,
    # Plotting worked before the solve, so a failure now is a real problem
    Stage.PLOT_SOLUTION: StageAction.ABORT_BATCH,
    Stage.ANNOTATE: StageAction.ABORT_BATCH,
}


def action_for_failure(stage: Stage, interrupted: bool = False) -> StageAction:
    """
    Looks up what to do after a stage fails. An interrupted child process
    always aborts the batch, whatever the stage.

    :param stage: failed stage
    :param interrupted: whether the failure was an interruption
    :return: StageAction
    """
    if interrupted:
        return StageAction.ABORT_BATCH
    return FAILURE_ACTIONS[stage]
