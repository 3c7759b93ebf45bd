"""
Central module for handling errors during processing.

In general, the philosophy is that every input of a batch should be processed
unless an error occurs. Most errors are fatal for the whole batch: a single bad
input deliberately halts the run. A few are not (an input can be skipped, or
plotting can be disabled for the rest of the run).

Every error is captured in an :class:`~skysolve.errors.error_report.ErrorReport`,
and these are collated in a single
:class:`~skysolve.errors.error_stack.ErrorStack` object which can then be used to
summarise what went wrong at the end of the run.
"""
from skysolve.errors.error_report import ErrorReport
from skysolve.errors.error_stack import ErrorStack
from skysolve.errors.exceptions import (
    BaseSkysolveError,
    ConfigurationError,
    InputNotFoundError,
    OutputDeletionError,
    RetrievalError,
    SolutionReadError,
    StageError,
)
