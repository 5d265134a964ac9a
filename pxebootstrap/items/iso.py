"""
pxebootstrap module that contains the code for an ISO image found in the ISO directory.
"""

# SPDX-License-Identifier: GPL-2.0-or-later

import logging
import pathlib
from dataclasses import dataclass
from typing import List

from pxebootstrap import utils
from pxebootstrap.classifier import Classifier
from pxebootstrap.enums import IsoFlavor

logger = logging.getLogger()

ISO_SUFFIX = ".iso"


@dataclass(frozen=True)
class IsoEntry:
    """
    A discovered boot image.
    """

    path: pathlib.Path
    flavor: IsoFlavor

    @property
    def name(self) -> str:
        """
        The file name of the ISO, e.g. ``ubuntu-24.04-live-server-amd64.iso``.
        """
        return self.path.name

    @property
    def base_name(self) -> str:
        """
        The file name without the ``.iso`` extension. Used to namespace the extracted kernels.
        """
        name = self.path.name
        if name.endswith(ISO_SUFFIX):
            return name[: -len(ISO_SUFFIX)]
        return name


def discover_isos(iso_dir: pathlib.Path, classifier: Classifier) -> List[IsoEntry]:
    """
    Enumerate the ISO files of a flat directory in version-aware order and classify them.

    :param iso_dir: The directory with the ``*.iso`` files. Subdirectories are not searched.
    :param classifier: The classifier which assigns the flavor.
    :return: The entries, sorted like ``sort -V`` would sort the file names. Names with equal version keys are
             ordered by name. Empty if there are none.
    """
    if not iso_dir.is_dir():
        logger.warning("ISO directory %s does not exist", iso_dir)
        return []
    paths = sorted(
        (path for path in iso_dir.glob(f"*{ISO_SUFFIX}") if path.is_file()),
        key=lambda path: (utils.version_sort_key(path.name), path.name),
    )
    if not paths:
        logger.warning("No ISO files found in %s", iso_dir)
    entries = [IsoEntry(path, classifier.classify(path.name)) for path in paths]
    for entry in entries:
        logger.debug("Found %s (%s)", entry.name, entry.flavor.value)
    return entries
