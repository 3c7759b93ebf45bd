"""
Module for ErrorReport objects.

An :class:`~skysolve.errors.error_report.ErrorReport` object summarises a single
error raised while processing one input.
"""
import logging
import traceback
from datetime import datetime

from skysolve.errors.exceptions import BaseSkysolveError

logger = logging.getLogger(__name__)


class ErrorReport:
    """
    Class representing a single error raised during processing
    """

    def __init__(
        self,
        error: Exception,
        stage_name: str,
        contents: list[str],
        non_critical: bool = False,
    ):
        self.error = error
        self.stage_name = stage_name
        self.contents = contents
        self.t_error = datetime.now()
        self.known_error_bool = isinstance(self.error, BaseSkysolveError)
        self.non_critical_bool = non_critical

    def message_known_error(self) -> str:
        """
        Returns a human-readable string describing whether the error was an internal one
        intentionally raised by the code, or an unexpected external error

        :return: String describing whether error was known
        """
        return (
            f"This error {['was not', 'was'][self.known_error_bool]} "
            f"a known error raised by skysolve."
        )

    def generate_log_message(self) -> str:
        """
        Returns a human-readable string describing high-level details about the error.

        :return: String summary
        """
        return (
            f"Error for stage {self.stage_name} at time {self.t_error}: "
            f"{self.get_error_name()} affected {self.contents}. "
            f"{self.message_known_error()} \n"
        )

    def generate_full_traceback(self) -> str:
        """
        Returns a verbose string summarising the error

        :return: String
        """
        msg = (
            f"Error for stage {self.stage_name} at {self.t_error} "
            f"(local time): \n "
            f"{''.join(traceback.format_tb(self.error.__traceback__))}"
            f"{self.get_error_name()}: {self.error} \n  "
            f"This error affected the following inputs: {self.contents} \n"
            f"{self.message_known_error()} \n \n"
        )
        return msg

    def get_error_name(self) -> str:
        """
        Returns the name of the error

        :return: Name
        """
        return type(self.error).__name__

    def get_error_line(self) -> str:
        """
        Returns only the critical error line

        :return: string
        """
        first_line = str(self.error).split("\n", maxsplit=1)[0]
        return f"{self.get_error_name()}: {first_line}"
