"""
Module for running the solver over a batch of inputs.

A :class:`~skysolve.pipeline.batch.BatchController` feeds each input to a
:class:`~skysolve.pipeline.solve_pipeline.SolvePipeline`, which runs the
stages listed in :mod:`skysolve.pipeline.stages` and returns one of the
outcomes in :mod:`skysolve.pipeline.outcomes`.
"""
from skysolve.pipeline.batch import (
    EXIT_FAILURE,
    EXIT_INTERRUPTED,
    EXIT_SUCCESS,
    BatchController,
    BatchResult,
)
from skysolve.pipeline.field_job import FieldJob
from skysolve.pipeline.outcomes import Failed, Outcome, Skipped, Solved, Unsolved
from skysolve.pipeline.solve_pipeline import SolvePipeline
from skysolve.pipeline.stages import (
    FAILURE_ACTIONS,
    Stage,
    StageAction,
    action_for_failure,
)
