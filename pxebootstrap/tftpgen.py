"""
Generate the boot loader menus provided by the TFTP server based on the ISO images found in the ISO directory.

Two documents are generated: the GRUB configuration for UEFI clients and the PXELINUX configuration for BIOS clients.
Both list the same menu items in the same order.
"""

# SPDX-License-Identifier: GPL-2.0-or-later

import logging
import pathlib
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, List, Optional

from pxebootstrap import templates
from pxebootstrap.enums import BootVariant, IsoFlavor
from pxebootstrap.items.iso import IsoEntry
from pxebootstrap.utils.kernel_command_line import KernelCommandLine

if TYPE_CHECKING:
    from pxebootstrap.api import BootstrapAPI


@dataclass(frozen=True)
class MenuItem:
    """
    A single boot entry as it appears in both menus.
    """

    iso_name: str
    base_name: str
    flavor: IsoFlavor
    variant: BootVariant
    grub_title: str
    label: str
    menu_label: str
    append_line: str
    default_candidate: bool = False


def _casper_iso_options(base_url: str, iso_name: str) -> KernelCommandLine:
    return (
        KernelCommandLine()
        .append_key_value("ip", "dhcp")
        .append_key_value("cloud-config-url", "/dev/null")
        .append_key_value("iso-url", f"{base_url}/iso/{iso_name}")
    )


def build_menu_items(entry: IsoEntry, base_url: str) -> List[MenuItem]:
    """
    Build the menu items for a single ISO. Ubuntu live-server images get two items (autoinstall and manual), all
    other flavors get exactly one.

    :param entry: The ISO to build the items for.
    :param base_url: The URL of the HTTP container without trailing slash.
    :return: The items in menu order. The first item is the one that may become the default.
    """
    name = entry.name
    base = entry.base_name

    if entry.flavor == IsoFlavor.UBUNTU_SERVER:
        autoinstall = (
            _casper_iso_options(base_url, name)
            .append_key("autoinstall")
            .append_key_value("ds", f"nocloud-net;s={base_url}/nocloud/")
        )
        manual = _casper_iso_options(base_url, name)
        return [
            MenuItem(
                iso_name=name,
                base_name=base,
                flavor=entry.flavor,
                variant=BootVariant.AUTOINSTALL,
                grub_title=f"Ubuntu Server (autoinstall) — {name}",
                label=f"{base}-auto",
                menu_label=f"{name} (Auto)",
                append_line=autoinstall.render(),
                default_candidate=True,
            ),
            MenuItem(
                iso_name=name,
                base_name=base,
                flavor=entry.flavor,
                variant=BootVariant.MANUAL,
                grub_title=f"Manual — {name}",
                label=f"{base}-manual",
                menu_label=f"{name} (Manual)",
                append_line=manual.render(),
            ),
        ]

    if entry.flavor == IsoFlavor.UBUNTU_DESKTOP:
        cmdline = (
            KernelCommandLine()
            .append_key_value("ip", "dhcp")
            .append_key_value("boot", "casper")
            .append_key_value("url", f"{base_url}/iso/{name}")
        )
        grub_title = name
        menu_label = name
    elif entry.flavor == IsoFlavor.KALI_INSTALLER:
        cmdline = (
            KernelCommandLine()
            .append_key_value("auto", "true")
            .append_key_value("priority", "critical")
            .append_key_value("interface", "auto")
        )
        grub_title = f"{name} (Debian Installer)"
        menu_label = f"{name} (Debian)"
    else:
        cmdline = KernelCommandLine().append_key_value("ip", "dhcp")
        grub_title = name
        menu_label = name

    return [
        MenuItem(
            iso_name=name,
            base_name=base,
            flavor=entry.flavor,
            variant=BootVariant.DEFAULT,
            grub_title=grub_title,
            label=base,
            menu_label=menu_label,
            append_line=cmdline.render(),
            default_candidate=True,
        )
    ]


@dataclass
class BootMenu:
    """
    Ordered menu items plus the default selection for both boot loaders.

    ``default_index`` is the zero-based position of the default item among the generated items. ``default_label`` is
    the PXELINUX label of that item or an empty string if the configured default ISO was not found.
    """

    items: List[MenuItem] = field(default_factory=list)
    default_index: int = 0
    default_label: str = ""

    @classmethod
    def from_entries(
        cls, entries: Iterable[IsoEntry], base_url: str, default_name: str = ""
    ) -> "BootMenu":
        """
        Build the menu for a list of ISOs.

        :param entries: The ISOs in menu order.
        :param base_url: The URL of the HTTP container.
        :param default_name: The exact file name of the ISO to boot by default.
        :return: The menu. Without a matching ISO the default index stays 0.
        """
        menu = cls()
        for entry in entries:
            for item in build_menu_items(entry, base_url):
                menu.items.append(item)
                if item.default_candidate and default_name and item.iso_name == default_name:
                    menu.default_index = len(menu.items) - 1
                    menu.default_label = item.label
        return menu

    @property
    def default_item(self) -> Optional[MenuItem]:
        """
        The item which was selected by the default ISO name or ``None``.
        """
        if not self.default_label:
            return None
        return self.items[self.default_index]


class TFTPGen:
    """
    Generate files provided by TFTP server
    """

    def __init__(self, api: "BootstrapAPI"):
        """
        Constructor
        """
        self.logger = logging.getLogger()
        self.api = api
        self.settings = api.settings()
        self.templar = templates.CheetahTemplateProvider()

    def make_boot_menu(self, entries: Iterable[IsoEntry]) -> BootMenu:
        """
        Build the menu from the ISOs with the configured base URL and default ISO.

        :param entries: The ISOs in menu order.
        :return: The menu.
        """
        menu = BootMenu.from_entries(
            entries, self.settings.base_url, self.settings.iso_default
        )
        if self.settings.iso_default and menu.default_item is None:
            self.logger.warning(
                'ISO_DEFAULT "%s" matches no ISO, the first entry is the default',
                self.settings.iso_default,
            )
        return menu

    def render_grub_menu(self, menu: BootMenu) -> str:
        """
        Render the GRUB configuration for UEFI clients.

        :param menu: The menu to render.
        :return: The content of ``grub.cfg``.
        """
        return self.templar.render_builtin(
            templates.GRUB_MENU_TEMPLATE,
            {"menu_items": menu.items, "default_index": menu.default_index},
        )

    def render_pxelinux_menu(self, menu: BootMenu) -> str:
        """
        Render the PXELINUX configuration for BIOS clients. PXELINUX has no equivalent of GRUB's ``set default``, the
        default item is marked with ``MENU DEFAULT`` instead.

        :param menu: The menu to render.
        :return: The content of ``pxelinux.cfg/default``.
        """
        return self.templar.render_builtin(
            templates.PXELINUX_MENU_TEMPLATE,
            {"menu_items": menu.items, "default_label": menu.default_label},
        )

    def write_grub_menu(self, menu: BootMenu) -> pathlib.Path:
        """
        Write the GRUB configuration to its fixed location below the TFTP root.

        :param menu: The menu to render.
        :return: The path of the written file.
        """
        return self._write_menu(self.settings.grub_cfg, self.render_grub_menu(menu))

    def write_pxelinux_menu(self, menu: BootMenu) -> pathlib.Path:
        """
        Write the PXELINUX configuration to its fixed location below the TFTP root.

        :param menu: The menu to render.
        :return: The path of the written file.
        """
        return self._write_menu(
            self.settings.pxelinux_cfg, self.render_pxelinux_menu(menu)
        )

    def _write_menu(self, path: pathlib.Path, content: str) -> pathlib.Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        # no newline translation, the menus must be byte-identical between runs
        with open(path, "w", encoding="UTF-8", newline="") as menu_file:
            menu_file.write(content)
        self.logger.info("Wrote %s (%d bytes)", path, len(content.encode("UTF-8")))
        return path
