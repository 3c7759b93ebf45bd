"""
Module for deriving the names of every file produced for one input.

All names share a single base name, obtained either from the input reference
itself or from a user-supplied template, e.g. for the input ``m42.png``:

.. code-block:: text

    m42.axy  m42.match  m42.rdls  m42.solved  m42.wcs
    m42-objs.png  m42-indx.png  m42-ngc.png  m42-indx.xyls
    m42-downloaded.png

Nothing in this module touches the filesystem.
"""
import logging
import os
from pathlib import Path
from typing import Iterator, Optional

from skysolve.errors import ConfigurationError
from skysolve.paths import (
    COORDINATE_LIST_KEY,
    DOWNLOAD_KEY,
    DOWNLOAD_SUFFIX,
    SOLVED_KEY,
    artifact_suffixes,
    get_output_dir,
)

logger = logging.getLogger(__name__)

# A file suffix of 2 to 4 characters is stripped from the base name
MIN_SUFFIX_LENGTH = 2
MAX_SUFFIX_LENGTH = 4


class ArtifactSet:
    """
    Mapping from artifact role to output path, for a single input
    """

    def __init__(
        self,
        base: Path,
        paths: dict[str, Path],
        suffix: Optional[str] = None,
        protected_roles: Optional[list[str]] = None,
    ):
        self.base = base
        self.paths = paths
        self.suffix = suffix
        self.protected_roles = [] if protected_roles is None else protected_roles

    def __getitem__(self, role: str) -> Path:
        return self.paths[role]

    def __iter__(self) -> Iterator[tuple[str, Path]]:
        return iter(self.paths.items())

    def __len__(self) -> int:
        return len(self.paths)

    def __eq__(self, other) -> bool:
        if not isinstance(other, ArtifactSet):
            return NotImplemented
        return (
            self.base == other.base
            and self.paths == other.paths
            and self.suffix == other.suffix
            and self.protected_roles == other.protected_roles
        )

    def __repr__(self):
        return f"ArtifactSet(base={self.base}, suffix={self.suffix})"

    def protect(self, role: str) -> "ArtifactSet":
        """
        Returns a copy of the set in which the path for ``role`` may never be
        deleted or treated as a collision

        :param role: artifact role
        :return: new ArtifactSet
        """
        return ArtifactSet(
            base=self.base,
            paths=dict(self.paths),
            suffix=self.suffix,
            protected_roles=self.protected_roles + [role],
        )

    def deletable_paths(self) -> list[Path]:
        """
        Returns all paths which the existing-output check may delete, in role
        order

        :return: list of paths
        """
        return [
            path
            for role, path in self.paths.items()
            if role not in self.protected_roles
        ]

    @property
    def coordinate_list(self) -> Path:
        """Augmented coordinate list written by the prepare engine"""
        return self.paths[COORDINATE_LIST_KEY]

    @property
    def solved(self) -> Path:
        """Marker whose existence means the field solved"""
        return self.paths[SOLVED_KEY]

    @property
    def download(self) -> Path:
        """Destination for a retrieved remote input"""
        return self.paths[DOWNLOAD_KEY]


def format_base_name(template: str, index: int, reference: str) -> str:
    """
    Formats a base-name template with the batch index and the input reference.

    Fields can be given positionally, ``{0}`` for the index and ``{1}`` for the
    reference, or by name as ``{index}`` and ``{input}``, e.g. ``field-{0:03d}``.

    :param template: template string
    :param index: 1-based batch index of the input
    :param reference: raw input reference
    :return: formatted string
    """
    try:
        return template.format(index, reference, index=index, input=reference)
    except (AttributeError, IndexError, KeyError, TypeError, ValueError) as err:
        raise ConfigurationError(
            f"Could not format output base name '{template}': {err}"
        ) from err


def split_suffix(name: str, prefix: str = "") -> tuple[str, Optional[str]]:
    """
    Strips a trailing '.xx', '.xxx' or '.xxxx' from a file name.

    Nothing is stripped when the full base path (the output directory prefix
    plus the name) is 4 characters or fewer. The name itself always keeps at
    least one character before the dot.

    :param name: file name
    :param prefix: output directory prefix, including its trailing separator
    :return: name without suffix, and the suffix (None if nothing was stripped)
    """
    if len(prefix) + len(name) > MAX_SUFFIX_LENGTH:
        for suffix_length in range(MIN_SUFFIX_LENGTH, MAX_SUFFIX_LENGTH + 1):
            dot_index = len(name) - suffix_length - 1
            if dot_index > 0 and name[dot_index] == ".":
                return name[:dot_index], name[dot_index + 1 :]
    return name, None


def get_artifact_set(
    reference: str,
    index: int,
    base_name_template: Optional[str] = None,
    output_dir: Optional[str | Path] = None,
) -> ArtifactSet:
    """
    Derives the full set of output paths for one input

    :param reference: raw input reference (path or URL)
    :param index: 1-based batch index of the input
    :param base_name_template: optional template for the base name
    :param output_dir: optional directory for all outputs
    :return: ArtifactSet
    """
    if base_name_template is not None:
        name = format_base_name(base_name_template, index, reference)
    else:
        name = reference

    name = os.path.basename(name.rstrip("/"))
    if name == "":
        raise ConfigurationError(f"Cannot derive an output name for '{reference}'")

    prefix = "" if output_dir is None else f"{output_dir}{os.sep}"
    name, suffix = split_suffix(name, prefix=prefix)

    base = get_output_dir(output_dir).joinpath(name)

    paths = {role: Path(f"{base}{ext}") for role, ext in artifact_suffixes.items()}

    if suffix is not None:
        paths[DOWNLOAD_KEY] = Path(f"{base}{DOWNLOAD_SUFFIX}.{suffix}")
    else:
        paths[DOWNLOAD_KEY] = Path(f"{base}{DOWNLOAD_SUFFIX}")

    return ArtifactSet(base=base, paths=paths, suffix=suffix)
