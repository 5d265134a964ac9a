"""
pxebootstrap API module

The API ties the settings, the ISO discovery and the actions together. A run has four stages which are executed
sequentially in a fixed order: bootloaders, kernel extraction, GRUB menu, PXELINUX menu.
"""

# SPDX-License-Identifier: GPL-2.0-or-later

import logging
import pathlib
from dataclasses import dataclass, field
from typing import List, Optional

from pxebootstrap import tftpgen
from pxebootstrap.actions import extract, mkloaders
from pxebootstrap.classifier import Classifier
from pxebootstrap.items.iso import IsoEntry, discover_isos
from pxebootstrap.settings import Settings

STAGES = 4


@dataclass
class BootstrapResult:
    """
    Summary of a complete run.
    """

    isos: List[IsoEntry] = field(default_factory=list)
    menu: Optional[tftpgen.BootMenu] = None
    extraction: Optional[extract.ExtractionReport] = None
    grub_cfg: Optional[pathlib.Path] = None
    pxelinux_cfg: Optional[pathlib.Path] = None

    @property
    def ok(self) -> bool:
        return self.extraction is None or self.extraction.ok


class BootstrapAPI:
    """
    Python API module for pxebootstrap.
    """

    def __init__(self, settings: Settings, classifier: Optional[Classifier] = None):
        """
        Constructor

        :param settings: The validated settings of this run.
        :param classifier: The ISO classifier. By default the built-in rules plus the rules file from the settings.
        """
        self.logger = logging.getLogger()
        self._settings = settings
        if classifier is None:
            if settings.classifier_rules is not None:
                classifier = Classifier.from_yaml(settings.classifier_rules)
            else:
                classifier = Classifier()
        self._classifier = classifier

    def settings(self) -> Settings:
        """
        Return the application configuration.

        :return: The settings object.
        """
        return self._settings

    def classifier(self) -> Classifier:
        """
        :return: The classifier which assigns the ISO flavors.
        """
        return self._classifier

    def isos(self) -> List[IsoEntry]:
        """
        Discover the ISOs in the ISO directory.

        :return: The ISOs in menu order.
        """
        return discover_isos(self._settings.iso_dir, self._classifier)

    def mkloaders(self) -> None:
        """
        Provide the PXELINUX and GRUB bootloaders in the TFTP root.

        :raises ProvisioningError: In case the bootloaders are not available from any source.
        """
        mkloaders.MkLoaders(self).run()

    def extract_kernels(
        self,
        entries: List[IsoEntry],
        tools: Optional[List[extract.ArchiveTool]] = None,
    ) -> extract.ExtractionReport:
        """
        Extract kernel and initrd of all ISOs.

        :param entries: The ISOs.
        :param tools: The archive tools to use instead of the ones found on the host.
        :return: The report of the extraction.
        """
        return extract.ExtractKernels(self, tools).run(entries)

    def generate_menus(self, entries: List[IsoEntry]) -> BootstrapResult:
        """
        Generate and write the GRUB and PXELINUX menus.

        :param entries: The ISOs in menu order.
        :return: A result holding the menu and the written paths.
        """
        generator = tftpgen.TFTPGen(self)
        menu = generator.make_boot_menu(entries)
        self.logger.info("[3/%d] Generating GRUB menu: %s", STAGES, self._settings.grub_cfg)
        grub_cfg = generator.write_grub_menu(menu)
        self.logger.info(
            "[4/%d] Generating PXELINUX menu: %s", STAGES, self._settings.pxelinux_cfg
        )
        pxelinux_cfg = generator.write_pxelinux_menu(menu)
        return BootstrapResult(
            isos=list(entries), menu=menu, grub_cfg=grub_cfg, pxelinux_cfg=pxelinux_cfg
        )

    def run(
        self,
        skip_bootloaders: bool = False,
        skip_extract: bool = False,
        tools: Optional[List[extract.ArchiveTool]] = None,
    ) -> BootstrapResult:
        """
        Execute all stages.

        :param skip_bootloaders: Do not provide the bootloaders.
        :param skip_extract: Do not extract the kernels; only the menus are generated.
        :param tools: The archive tools to use instead of the ones found on the host.
        :raises ProvisioningError: In case the bootloaders are not available. Raised before any menu is written.
        :return: The summary of the run.
        """
        self._settings.create_directories()

        self.logger.info("[1/%d] Bootloaders", STAGES)
        if skip_bootloaders:
            self.logger.info("Skipping bootloaders")
        else:
            self.mkloaders()

        entries = self.isos()
        self.logger.info(
            "[2/%d] Extracting kernels from ISO in %s", STAGES, self._settings.iso_dir
        )
        report: Optional[extract.ExtractionReport] = None
        if skip_extract:
            self.logger.info("Skipping kernel extraction")
        else:
            report = self.extract_kernels(entries, tools)

        result = self.generate_menus(entries)
        result.extraction = report
        return result
