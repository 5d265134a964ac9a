"""
pxebootstrap action to extract the kernel and initrd of every ISO image into the TFTP root.

The ISO content is accessed through an :class:`ArchiveTool`. The host ``7z`` binary is preferred; if it is missing or
does not find a known layout, the ISO is retried with ``7z`` inside a throwaway container. A broken ISO never aborts the
whole run: the failure is logged and collected in the :class:`ExtractionReport`.
"""

# SPDX-License-Identifier: GPL-2.0-or-later

import abc
import contextlib
import logging
import os
import pathlib
import subprocess
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence, Tuple

from pxebootstrap import utils
from pxebootstrap.cexceptions import ExtractionError, UnsupportedLayoutError
from pxebootstrap.items.iso import IsoEntry

if TYPE_CHECKING:
    from pxebootstrap.api import BootstrapAPI

KERNEL_FILENAME = "vmlinuz"
INITRD_FILENAME = "initrd"
ARTIFACT_MODE = 0o644

DOCKER_NETWORK_ARGS = ["--network", "host", "--dns", "1.1.1.1", "--dns", "8.8.8.8"]
APT_GET = "apt-get -o Acquire::ForceIPv4=true"


@dataclass(frozen=True)
class ArchiveLayout:
    """
    A known location of kernel and initrd inside an ISO. The initrd candidates are tried in order.
    """

    name: str
    kernel: str
    initrds: Tuple[str, ...]


KNOWN_LAYOUTS: Tuple[ArchiveLayout, ...] = (
    ArchiveLayout("casper", "casper/vmlinuz", ("casper/initrd", "casper/initrd.img")),
    ArchiveLayout(
        "debian-installer", "install.amd/vmlinuz", ("install.amd/initrd.gz",)
    ),
    ArchiveLayout("live", "live/vmlinuz", ("live/initrd.img",)),
)


@dataclass(frozen=True)
class KernelArtifactSet:
    """
    The extracted kernel and initrd of one ISO.
    """

    iso_name: str
    directory: pathlib.Path
    layout: str

    @property
    def kernel(self) -> pathlib.Path:
        return self.directory / KERNEL_FILENAME

    @property
    def initrd(self) -> pathlib.Path:
        return self.directory / INITRD_FILENAME


@dataclass
class ExtractionReport:
    """
    Aggregated result of an extraction run.
    """

    extracted: List[KernelArtifactSet] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


class ArchiveTool(abc.ABC):
    """
    Narrow interface to read single files from an ISO image.
    """

    name = "archive tool"

    @abc.abstractmethod
    def exists(self, image: pathlib.Path, internal_path: str) -> bool:
        """
        :param image: The ISO image.
        :param internal_path: The path inside the ISO, e.g. ``casper/vmlinuz``.
        :return: Whether the file exists inside the image.
        """

    @abc.abstractmethod
    def extract(self, image: pathlib.Path, internal_path: str) -> bytes:
        """
        :param image: The ISO image.
        :param internal_path: The path inside the ISO.
        :raises ExtractionError: In case the file could not be read.
        :return: The content of the file.
        """

    def open(self) -> None:
        """
        Prepare the tool. Called once before the first ISO is handed to it.
        """

    def close(self) -> None:
        """
        Release everything :meth:`open` acquired.
        """

    def __enter__(self) -> "ArchiveTool":
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _listing_contains(listing: str, internal_path: str) -> bool:
    # "7z l -slt" prints one "Path = <path>" line per matched file
    return f"Path = {internal_path}" in listing.splitlines()


def _run(cmd: List[str]) -> Tuple[str, int]:
    try:
        return utils.subprocess_sp(cmd)
    except ValueError as error:
        raise ExtractionError("Unable to run %s: %s", cmd[0], error) from error


def _run_bytes(cmd: List[str]) -> bytes:
    try:
        return utils.subprocess_get_bytes(cmd)
    except OSError as error:
        raise ExtractionError("Unable to run %s: %s", cmd[0], error) from error


class SevenZipTool(ArchiveTool):
    """
    Reads ISOs with the ``7z`` (or ``7zz``) binary installed on the host.
    """

    name = "host 7z"

    def __init__(self, executable: str):
        self.executable = executable

    @classmethod
    def from_host(cls) -> Optional["SevenZipTool"]:
        """
        :return: The tool if ``7z`` or ``7zz`` is installed, otherwise ``None``.
        """
        executable = utils.first_existing_command("7z", "7zz")
        if executable is None:
            return None
        return cls(executable)

    def exists(self, image: pathlib.Path, internal_path: str) -> bool:
        listing, return_code = _run(
            [self.executable, "l", "-slt", str(image), internal_path]
        )
        return return_code == 0 and _listing_contains(listing, internal_path)

    def extract(self, image: pathlib.Path, internal_path: str) -> bytes:
        try:
            return _run_bytes(
                [self.executable, "x", "-y", "-so", str(image), internal_path]
            )
        except subprocess.CalledProcessError as error:
            raise ExtractionError(
                "7z failed to extract %s from %s (exit code %s)",
                internal_path,
                image.name,
                error.returncode,
            ) from error


class DockerSevenZipTool(ArchiveTool):
    """
    Reads ISOs with ``7z`` inside a throwaway container. The ISO directory is mounted read-only, ``p7zip-full`` is
    installed once when the tool is opened and the container is removed when it is closed.
    """

    name = "docker 7z"
    mount_point = "/iso"

    def __init__(self, image: str, iso_dir: pathlib.Path):
        self.image = image
        self.iso_dir = iso_dir
        self.container_id: Optional[str] = None

    @classmethod
    def from_host(cls, image: str, iso_dir: pathlib.Path) -> Optional["DockerSevenZipTool"]:
        """
        :return: The tool if the ``docker`` CLI is installed, otherwise ``None``.
        """
        if not utils.command_existing("docker"):
            return None
        return cls(image, iso_dir)

    def open(self) -> None:
        if self.container_id is not None:
            return
        out, return_code = _run(
            [
                "docker",
                "run",
                "-d",
                "--rm",
                *DOCKER_NETWORK_ARGS,
                "-v",
                f"{self.iso_dir.resolve()}:{self.mount_point}:ro",
                self.image,
                "sleep",
                "infinity",
            ]
        )
        if return_code != 0:
            raise ExtractionError("Unable to start the %s container", self.image)
        self.container_id = out.strip()
        install = (
            f"{APT_GET} update -qq && "
            f"DEBIAN_FRONTEND=noninteractive {APT_GET} install -y -qq p7zip-full >/dev/null"
        )
        if self._exec(["bash", "-lc", install])[1] != 0:
            self.close()
            raise ExtractionError("Unable to install p7zip-full in %s", self.image)

    def close(self) -> None:
        if self.container_id is None:
            return
        container_id, self.container_id = self.container_id, None
        try:
            _run(["docker", "rm", "-f", container_id])
        except ExtractionError as error:
            logging.getLogger().warning("Unable to remove container %s: %s", container_id, error)

    def _exec(self, cmd: List[str]) -> Tuple[str, int]:
        if self.container_id is None:
            raise ExtractionError("The %s container is not running", self.image)
        return _run(["docker", "exec", self.container_id, *cmd])

    def _container_path(self, image: pathlib.Path) -> str:
        return f"{self.mount_point}/{image.name}"

    def exists(self, image: pathlib.Path, internal_path: str) -> bool:
        listing, return_code = self._exec(
            ["7z", "l", "-slt", self._container_path(image), internal_path]
        )
        return return_code == 0 and _listing_contains(listing, internal_path)

    def extract(self, image: pathlib.Path, internal_path: str) -> bytes:
        if self.container_id is None:
            raise ExtractionError("The %s container is not running", self.image)
        try:
            return _run_bytes(
                [
                    "docker",
                    "exec",
                    self.container_id,
                    "7z",
                    "x",
                    "-y",
                    "-so",
                    self._container_path(image),
                    internal_path,
                ]
            )
        except subprocess.CalledProcessError as error:
            raise ExtractionError(
                "7z in %s failed to extract %s from %s (exit code %s)",
                self.image,
                internal_path,
                image.name,
                error.returncode,
            ) from error


def find_layout(
    tool: ArchiveTool,
    image: pathlib.Path,
    layouts: Sequence[ArchiveLayout] = KNOWN_LAYOUTS,
) -> Tuple[ArchiveLayout, str]:
    """
    Find the first layout whose kernel exists inside the image.

    :param tool: The tool used to look into the ISO.
    :param image: The ISO image.
    :param layouts: The layouts to try in order.
    :raises UnsupportedLayoutError: In case no kernel of a known layout exists.
    :raises ExtractionError: In case the kernel exists but none of the initrd candidates does.
    :return: The layout and the initrd path inside the image.
    """
    for layout in layouts:
        if not tool.exists(image, layout.kernel):
            continue
        for initrd in layout.initrds:
            if tool.exists(image, initrd):
                return layout, initrd
        raise ExtractionError(
            "Found %s in %s but none of %s", layout.kernel, image.name, ", ".join(layout.initrds)
        )
    raise UnsupportedLayoutError("unsupported ISO layout: %s", image.name)


def _write_artifact(path: pathlib.Path, data: bytes) -> None:
    with open(path, "wb") as artifact:
        artifact.write(data)
    os.chmod(path, ARTIFACT_MODE)


def extract_kernel(
    tool: ArchiveTool, entry: IsoEntry, kernels_dir: pathlib.Path
) -> KernelArtifactSet:
    """
    Extract kernel and initrd of one ISO to ``<kernels_dir>/<base_name>/{vmlinuz,initrd}``. Existing files are
    overwritten.

    :param tool: The tool used to read the ISO.
    :param entry: The ISO.
    :param kernels_dir: The directory which holds one subdirectory per ISO.
    :raises ExtractionError: In case the ISO does not contain a known layout or the tool failed.
    :return: The extracted artifacts.
    """
    layout, initrd = find_layout(tool, entry.path)
    kernel_data = tool.extract(entry.path, layout.kernel)
    initrd_data = tool.extract(entry.path, initrd)
    if not kernel_data or not initrd_data:
        raise ExtractionError("Extracted kernel or initrd of %s is empty", entry.name)
    # nothing is written before both payloads were read
    outdir = kernels_dir / entry.base_name
    outdir.mkdir(parents=True, exist_ok=True)
    artifacts = KernelArtifactSet(entry.name, outdir, layout.name)
    _write_artifact(artifacts.kernel, kernel_data)
    _write_artifact(artifacts.initrd, initrd_data)
    return artifacts


class ExtractKernels:
    """
    Action to extract the kernel/initrd pairs of all ISOs.
    """

    def __init__(self, api: "BootstrapAPI", tools: Optional[Sequence[ArchiveTool]] = None):
        """
        Constructor.

        :param api: BootstrapAPI instance for accessing settings
        :param tools: The archive tools in the order they are tried. By default the host ``7z`` followed by the docker
                      fallback, each only if available.
        """
        self.logger = logging.getLogger()
        self.settings = api.settings()
        if tools is None:
            tools = self.default_tools()
        self.tools: List[ArchiveTool] = list(tools)

    def default_tools(self) -> List[ArchiveTool]:
        """
        :return: The tools which are available on this host in the order of preference.
        """
        tools: List[ArchiveTool] = []
        host_tool = SevenZipTool.from_host()
        if host_tool is not None:
            tools.append(host_tool)
        docker_tool = DockerSevenZipTool.from_host(
            self.settings.docker_image, self.settings.iso_dir
        )
        if docker_tool is not None:
            tools.append(docker_tool)
        return tools

    def run(self, entries: Iterable[IsoEntry]) -> ExtractionReport:
        """
        Extract all ISOs one after another.

        :param entries: The ISOs to extract.
        :return: The report with all extracted artifacts and failed ISOs.
        """
        report = ExtractionReport()
        # tool position -> None once opened, the error if opening failed
        opened: Dict[int, Optional[str]] = {}
        with contextlib.ExitStack() as stack:
            for entry in entries:
                self.logger.info("  - %s", entry.name)
                error = self._extract_one(entry, stack, opened, report)
                if error is not None:
                    self.logger.error("    %s: %s", entry.name, error)
                    report.failed[entry.name] = error
        if report.failed:
            self.logger.warning(
                "Extraction failed for %d ISO(s): %s",
                len(report.failed),
                ", ".join(report.failed),
            )
        return report

    def _extract_one(
        self,
        entry: IsoEntry,
        stack: contextlib.ExitStack,
        opened: Dict[int, Optional[str]],
        report: ExtractionReport,
    ) -> Optional[str]:
        if not self.tools:
            return "neither 7z nor docker is available"
        error = ""
        for position, tool in enumerate(self.tools):
            if position > 0:
                self.logger.warning(
                    "    %s failed (%s), using %s…", self.tools[position - 1].name, error, tool.name
                )
            if position not in opened:
                try:
                    stack.enter_context(tool)
                    opened[position] = None
                except ExtractionError as exc:
                    utils.log_exc()
                    opened[position] = str(exc)
            failure = opened[position]
            if failure is not None:
                error = failure
                continue
            try:
                artifacts = extract_kernel(tool, entry, self.settings.kernels_dir)
            except ExtractionError as exc:
                utils.log_exc()
                error = str(exc)
                continue
            self.logger.debug(
                "    %s layout extracted to %s", artifacts.layout, artifacts.directory
            )
            report.extracted.append(artifacts)
            return None
        return error
