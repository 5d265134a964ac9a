"""
pxebootstrap action to provide the network bootloaders in the TFTP root.

PXELINUX (BIOS) and GRUB (UEFI) are copied from the host if the distribution packages are installed. Whatever is still
missing afterwards is installed through a throwaway container which writes into the mounted TFTP root.
"""

# SPDX-License-Identifier: GPL-2.0-or-later

import logging
import pathlib
import shutil
import typing

from pxebootstrap import utils
from pxebootstrap.actions.extract import APT_GET, DOCKER_NETWORK_ARGS
from pxebootstrap.cexceptions import ProvisioningError

if typing.TYPE_CHECKING:
    from pxebootstrap.api import BootstrapAPI

PXELINUX_FILE = pathlib.Path("/usr/lib/PXELINUX/pxelinux.0")
SYSLINUX_MODULES_DIR = pathlib.Path("/usr/lib/syslinux/modules/bios")
SYSLINUX_MODULES = ["ldlinux.c32", "libcom32.c32", "libutil.c32", "menu.c32", "reboot.c32"]
# Unsigned image first, the signed one is only used as fallback
GRUB_EFI_CANDIDATES = [
    pathlib.Path("/usr/lib/grub/x86_64-efi/grubnetx64.efi"),
    pathlib.Path("/usr/lib/grub/x86_64-efi-signed/grubnetx64.efi.signed"),
]
GRUB_EFI_TARGET = "grubx64.efi"
GRUB_FONT = pathlib.Path("/usr/share/grub/unicode.pf2")

REQUIRED_FILES = ["pxelinux.0", "ldlinux.c32", "menu.c32", GRUB_EFI_TARGET]

CONTAINER_PACKAGES = ["pxelinux", "syslinux-common", "grub-efi-amd64-bin", "grub-common"]
CONTAINER_SCRIPT = """
set -ex
{apt} update -qq
DEBIAN_FRONTEND=noninteractive {apt} install -y -qq {packages} >/dev/null

cp /usr/lib/PXELINUX/pxelinux.0 /out/pxelinux.0
for f in {modules}; do
  cp "/usr/lib/syslinux/modules/bios/$f" "/out/$f"
done

if [ -f /usr/lib/grub/x86_64-efi/grubnetx64.efi ]; then
  cp /usr/lib/grub/x86_64-efi/grubnetx64.efi /out/grubx64.efi
elif [ -f /usr/lib/grub/x86_64-efi-signed/grubnetx64.efi.signed ]; then
  cp /usr/lib/grub/x86_64-efi-signed/grubnetx64.efi.signed /out/grubx64.efi
fi

cp /usr/share/grub/unicode.pf2 /out/unicode.pf2 || true
"""


class MkLoaders:
    """
    Action to provide the bootloader binaries.
    """

    def __init__(self, api: "BootstrapAPI"):
        """
        MkLoaders constructor.

        :param api: BootstrapAPI instance for accessing settings
        """
        self.logger = logging.getLogger()
        self.bootloaders_dir = api.settings().tftp_root
        self.docker_image = api.settings().docker_image
        # Syslinux
        self.pxelinux_file = PXELINUX_FILE
        self.syslinux_modules_dir = SYSLINUX_MODULES_DIR
        # GRUB 2
        self.grub_efi_candidates: typing.List[pathlib.Path] = list(GRUB_EFI_CANDIDATES)
        self.grub_font = GRUB_FONT

    def run(self) -> None:
        """
        Run MkLoaders action. The host is tried first, the container install is the fallback.

        :raises ProvisioningError: In case a required bootloader file is still missing afterwards.
        """
        self.create_directories()

        found_syslinux = self.make_syslinux()
        found_grub = self.make_grub()
        self.make_font()

        missing = self.missing_files()
        if not missing:
            return
        if found_syslinux or found_grub:
            self.logger.warning(
                "Bootloaders incomplete on host (missing %s), falling back to docker install",
                ", ".join(missing),
            )
        else:
            self.logger.warning("Bootloaders not found on host, falling back to docker install")
        self.install_via_docker()

        missing = self.missing_files()
        if missing:
            raise ProvisioningError(
                "Bootloader files missing after docker install: %s", ", ".join(missing)
            )

    def make_syslinux(self) -> bool:
        """
        Copy ``pxelinux.0`` and the menu modules in case they are available on the system.

        :return: Whether ``pxelinux.0`` was found.
        """
        if not self.pxelinux_file.is_file():
            self.logger.info("%s not available. Bailing out of PXELINUX setup!", self.pxelinux_file)
            return False
        self.logger.info("Found PXELINUX on host, copying…")
        copy(self.pxelinux_file, self.bootloaders_dir / "pxelinux.0")
        for module in SYSLINUX_MODULES:
            source = self.syslinux_modules_dir / module
            if source.is_file():
                copy(source, self.bootloaders_dir / module)
            else:
                self.logger.info('syslinux module "%s" not available on host', module)
        return True

    def make_grub(self) -> bool:
        """
        Copy the network GRUB EFI image in case it is available on the system.

        :return: Whether an image was found.
        """
        source = find_file(self.grub_efi_candidates)
        if source is None:
            self.logger.info("grubnetx64.efi not available. Bailing out of GRUB setup!")
            return False
        if source.name.endswith(".signed"):
            self.logger.info("Found signed GRUB EFI on host, copying…")
        else:
            self.logger.info("Found GRUB EFI on host, copying…")
        copy(source, self.bootloaders_dir / GRUB_EFI_TARGET)
        return True

    def make_font(self) -> None:
        """
        Copy the GRUB unicode font. The font is optional, GRUB falls back to the text console without it.
        """
        if self.grub_font.is_file():
            copy(self.grub_font, self.bootloaders_dir / self.grub_font.name)

    def install_via_docker(self) -> None:
        """
        Install the bootloader packages in a throwaway container and copy the files into the TFTP root.

        :raises ProvisioningError: In case docker is not available or the container failed.
        """
        if not utils.command_existing("docker"):
            raise ProvisioningError("Bootloaders not found on host and docker is not available")
        self.logger.info("Installing bootloaders via docker (%s)…", self.docker_image)
        script = CONTAINER_SCRIPT.format(
            apt=APT_GET,
            packages=" ".join(CONTAINER_PACKAGES),
            modules=" ".join(SYSLINUX_MODULES),
        )
        cmd = [
            "docker",
            "run",
            "--rm",
            *DOCKER_NETWORK_ARGS,
            "-v",
            f"{self.bootloaders_dir.resolve()}:/out",
            self.docker_image,
            "bash",
            "-lc",
            script,
        ]
        return_code = utils.subprocess_call(cmd)
        if return_code != 0:
            raise ProvisioningError(
                "Bootloader install via docker failed with exit code %s", return_code
            )

    def missing_files(self) -> typing.List[str]:
        """
        :return: The required bootloader files which do not exist in the TFTP root.
        """
        return [name for name in REQUIRED_FILES if not (self.bootloaders_dir / name).is_file()]

    def create_directories(self) -> None:
        """
        Create the TFTP root so that this succeeds. If existing, do nothing.
        """
        self.bootloaders_dir.mkdir(parents=True, exist_ok=True)


def find_file(candidates: typing.Iterable[pathlib.Path]) -> typing.Optional[pathlib.Path]:
    """
    Return the first existing file.

    :param candidates: The paths to check in order of preference.
    :return: The first path which is a file or ``None``.
    """
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def copy(source: pathlib.Path, target: pathlib.Path) -> None:
    """
    Copy SOURCE to TARGET, replacing an existing file.

    The content is copied, the source is never linked.

    :param source: The file to copy. The file must exist.
    :param target: Filename of the copy.
    :raises FileNotFoundError: ``source`` is not an existing file.
    """
    if not source.exists():
        raise FileNotFoundError(f"{source} does not exist, can't copy it.")
    shutil.copyfile(source, target)
    target.chmod(0o644)
