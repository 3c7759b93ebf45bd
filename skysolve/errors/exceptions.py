"""
Module containing common exceptions or base exceptions for the code.

In general, all internal errors should inherit from the
:class:`skysolve.errors.exceptions.BaseSkysolveError` class.

Errors raised while running one stage of the pipeline for a field should inherit
from :class:`skysolve.errors.exceptions.StageError`. Whether such an error
stops the batch, or merely degrades it, is not decided where it is raised but by
the failure table in :mod:`skysolve.pipeline.stages`.
"""


class BaseSkysolveError(Exception):
    """
    Base exception, from which all internal exceptions should derive
    """


class ConfigurationError(BaseSkysolveError):
    """
    Error in the batch configuration, raised before any input is processed
    """


class StageError(BaseSkysolveError):
    """
    Base class for all errors raised by a pipeline stage
    """

    def __init__(self, *args, interrupted: bool = False):
        super().__init__(*args)
        self.interrupted = interrupted


class InputNotFoundError(StageError, FileNotFoundError):
    """
    Error raised when an input reference is neither a local file nor a URL
    """


class OutputDeletionError(StageError):
    """
    Error raised when an existing output file cannot be overwritten
    """


class RetrievalError(StageError):
    """
    Error raised when a remote input could not be downloaded
    """


class SolutionReadError(StageError):
    """
    Error raised when a solver output file cannot be read
    """
