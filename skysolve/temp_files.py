"""
Module for tracking the temporary files created while processing one input.

Use a :class:`TempFileTracker` as a context manager, so every tracked file is
deleted however processing of the input ends:

.. code-block:: python

    with TempFileTracker() as temp_files:
        ppm_path = temp_files.new_temp_file(".ppm")
        ...
"""
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from skysolve.paths import PACKAGE_NAME, TEMP_DIR

logger = logging.getLogger(__name__)


class TempFileTracker:
    """
    Scoped registry of temporary files, all deleted on release
    """

    def __init__(self, temp_dir: Optional[str | Path] = None):
        self.temp_dir = Path(TEMP_DIR if temp_dir is None else temp_dir)
        self.paths: list[Path] = []

    def __enter__(self) -> "TempFileTracker":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()

    def __len__(self) -> int:
        return len(self.paths)

    def track(self, path: str | Path) -> Path:
        """
        Registers an existing path for deletion on release

        :param path: path of temporary file
        :return: path
        """
        path = Path(path)
        self.paths.append(path)
        return path

    def new_temp_file(self, suffix: str = "") -> Path:
        """
        Creates a new empty temporary file, and tracks it

        :param suffix: file suffix, e.g. '.ppm'
        :return: path of new file
        """
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        handle, name = tempfile.mkstemp(
            suffix=suffix, prefix=f"{PACKAGE_NAME}_", dir=self.temp_dir
        )
        os.close(handle)
        logger.debug(f"Created temporary file {name}")
        return self.track(name)

    def release(self):
        """
        Deletes every tracked file. Failures are logged, never raised.

        :return: None
        """
        while len(self.paths) > 0:
            path = self.paths.pop(0)
            try:
                path.unlink()
                logger.debug(f"Deleted temporary file {path}")
            except FileNotFoundError:
                logger.debug(f"Temporary file {path} was already gone")
            except OSError as err:
                logger.error(f"Failed to delete temp file '{path}': {err}")
