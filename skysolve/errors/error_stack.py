"""
Module for ErrorStack objects.

A :class:`~skysolve.errors.error_stack.ErrorStack` object will contain a list of
:class:`~skysolve.errors.error_report.ErrorReport` objects, and can correspond to
multiple errors raised during one batch.
"""

import logging
from pathlib import Path
from typing import Optional

import numpy as np

from skysolve.errors.error_report import ErrorReport
from skysolve.paths import PACKAGE_NAME, __version__

logger = logging.getLogger(__name__)


class ErrorStack:
    """
    Container class to hold multiple
    :class:`~skysolve.errors.error_report.ErrorReport` objects
    """

    def __init__(self, reports: Optional[list[ErrorReport]] = None):
        self.reports = []
        self.noncritical_reports = []
        self.failed_inputs = []

        if reports is not None:
            for report in reports:
                self.add_report(report)

    def add_report(self, report: ErrorReport):
        """
        Adds a new ErrorReport

        :param report: ErrorReport to add
        :return: None
        """
        if report.non_critical_bool:
            self.noncritical_reports.append(report)
        else:
            self.reports.append(report)
        all_failed_inputs = self.failed_inputs + list(report.contents)
        self.failed_inputs = sorted(list(set(all_failed_inputs)))

    def __len__(self) -> int:
        return len(self.get_all_reports())

    def get_all_reports(self) -> list[ErrorReport]:
        """
        Returns the full list of error reports (both critical and non-critical).

        :return: list of ErrorReports
        """
        return self.reports + self.noncritical_reports

    def summarise_error_stack(
        self, output_path: Optional[str | Path] = None, verbose: bool = True
    ) -> str:
        """
        Returns a string summary of all ErrorReports.

        :param output_path: Path to write summary in .txt format (optional)
        :param verbose: boolean whether to provide a verbose summary
        :return: String summary of errors
        """

        is_known_error = [x.known_error_bool for x in self.reports]

        summary = (
            f"Error report summarising {len(self.reports)} errors. \n"
            f"Code version: {PACKAGE_NAME}=={__version__} \n \n"
            f"{int(len(is_known_error) - np.sum(is_known_error))}/{len(is_known_error)}"
            f" errors were errors not raised by {PACKAGE_NAME}. \n"
            f"An additional {len(self.noncritical_reports)} non-critical "
            f"errors were raised. \n"
        )
        all_reports = self.get_all_reports()

        if len(all_reports) > 0:
            summary += (
                f"The following {len(self.failed_inputs)} inputs were affected "
                f"by at least one error during processing: \n "
                f"{self.failed_inputs} \n \n"
            )

            for report in all_reports:
                summary += f"[{report.stage_name}] {report.get_error_line()}\n"

            if verbose:
                summary += " \n"
                for report in all_reports:
                    summary += str(report.generate_full_traceback())

        else:
            summary += "\n No raised errors found in processing"

        if output_path is not None:
            logger.info(f"Saving tracebacks of caught errors to {output_path}")
            with open(output_path, "w", encoding="utf-8") as err_file:
                err_file.write(summary)

        return summary
