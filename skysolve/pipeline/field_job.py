"""
Module for the per-input state of a batch
"""
import logging
from pathlib import Path
from typing import Optional

from skysolve.artifacts import ArtifactSet
from skysolve.pipeline.outcomes import Outcome
from skysolve.temp_files import TempFileTracker

logger = logging.getLogger(__name__)


class FieldJob:
    """
    Everything known about one input while it is processed. A new FieldJob is
    created for every input, so nothing can leak from one input to the next.
    """

    def __init__(
        self,
        reference: str,
        index: int,
        artifacts: ArtifactSet,
        temp_files: Optional[TempFileTracker] = None,
    ):
        self.reference = reference
        self.index = index
        self.artifacts = artifacts
        self.temp_files = TempFileTracker() if temp_files is None else temp_files
        self.local_path: Path = Path(reference)
        self.is_coordinate_list: Optional[bool] = None
        self.preview_path: Optional[Path] = None
        self.n_objects: Optional[int] = None
        self.outcome: Optional[Outcome] = None

    @property
    def has_image(self) -> bool:
        """
        Whether the input was an image, with a raster preview

        :return: boolean
        """
        return self.preview_path is not None

    def __repr__(self):
        return f"FieldJob({self.index}: {self.reference})"
