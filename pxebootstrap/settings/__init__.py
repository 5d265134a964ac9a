"""
pxebootstrap app-wide settings

The settings are read once at startup from the project ``.env`` file and the process environment (the environment wins)
and are immutable afterwards.
"""

# SPDX-License-Identifier: GPL-2.0-or-later

import logging
import os
import pathlib
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from dotenv import dotenv_values
from schema import And, Optional as SchemaOptional, Or, Schema, SchemaError, Use  # type: ignore

from pxebootstrap import utils
from pxebootstrap.cexceptions import ConfigurationError

logger = logging.getLogger()

DEFAULT_HTTP_PORT = 80
DEFAULT_DOCKER_IMAGE = "ubuntu:24.04"

ENV_KEYS = (
    "HOST_ADDR",
    "HTTP_PORT",
    "ISO_DEFAULT",
    "PXE_DOCKER_IMAGE",
    "PXE_CLASSIFIER_RULES",
)


def _is_host(value: str) -> bool:
    if utils.is_ip(value):
        return True
    # Everything that is not an IP address is taken as host name; whitespace would break the kernel command line.
    return bool(value) and not any(char.isspace() for char in value)


schema = Schema(
    {
        "HOST_ADDR": And(
            str,
            Use(str.strip),
            _is_host,
            error="HOST_ADDR must be a non-empty IP address or host name",
        ),
        SchemaOptional("HTTP_PORT", default=DEFAULT_HTTP_PORT): And(
            Or(str, int),
            Use(int, error="HTTP_PORT must be an integer"),
            lambda port: 0 < port < 65536,
            error="HTTP_PORT must be between 1 and 65535",
        ),
        SchemaOptional("ISO_DEFAULT", default=""): str,
        SchemaOptional("PXE_DOCKER_IMAGE", default=DEFAULT_DOCKER_IMAGE): And(
            str, len
        ),
        SchemaOptional("PXE_CLASSIFIER_RULES", default=""): str,
    }
)


@dataclass(frozen=True)
class Settings:
    """
    This class contains all app-wide settings of pxebootstrap. It should only exist once per run.
    """

    root: pathlib.Path
    host_addr: str
    http_port: int = DEFAULT_HTTP_PORT
    iso_default: str = ""
    docker_image: str = DEFAULT_DOCKER_IMAGE
    classifier_rules: Optional[pathlib.Path] = None

    @property
    def base_url(self) -> str:
        """
        The URL under which the HTTP container serves the ISOs and the NoCloud data. The port is omitted when it is 80.
        """
        if self.http_port == DEFAULT_HTTP_PORT:
            return f"http://{self.host_addr}"
        return f"http://{self.host_addr}:{self.http_port}"

    @property
    def tftp_root(self) -> pathlib.Path:
        return self.root / "etc" / "tftp"

    @property
    def grub_dir(self) -> pathlib.Path:
        return self.tftp_root / "grub"

    @property
    def pxelinux_dir(self) -> pathlib.Path:
        return self.tftp_root / "pxelinux.cfg"

    @property
    def kernels_dir(self) -> pathlib.Path:
        return self.tftp_root / "kernels"

    @property
    def iso_dir(self) -> pathlib.Path:
        return self.root / "iso"

    @property
    def grub_cfg(self) -> pathlib.Path:
        return self.grub_dir / "grub.cfg"

    @property
    def pxelinux_cfg(self) -> pathlib.Path:
        return self.pxelinux_dir / "default"

    def create_directories(self) -> None:
        """
        Create the output directories below the TFTP root. If existing, do nothing.
        """
        for directory in (self.grub_dir, self.pxelinux_dir, self.kernels_dir):
            directory.mkdir(parents=True, exist_ok=True)


def validate_settings(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """
    This function performs logical validation of the collected key-value pairs.

    :param raw: The merged content of the ``.env`` file and the environment.
    :raises SchemaError: In case the data given is invalid.
    :return: The validated and normalized values.
    """
    data = {key: value for key, value in raw.items() if key in ENV_KEYS}
    # An empty value in .env means "not set" for the optional keys, just like ``${VAR:-default}`` in a shell.
    data = {
        key: value
        for key, value in data.items()
        if key == "HOST_ADDR" or value not in (None, "")
    }
    return schema.validate(data)


def read_env_file(filepath: pathlib.Path) -> Dict[str, str]:
    """
    Reads a ``.env`` file without touching the process environment.

    :param filepath: Path to the ``.env`` file.
    :raises FileNotFoundError: In case the file does not exist or is a directory.
    :return: The key-value pairs of the file. Keys without value are dropped.
    """
    if not filepath.is_file():
        raise FileNotFoundError(
            f'Given path "{filepath}" does not exist or is a directory.'
        )
    return {
        key: value for key, value in dotenv_values(filepath).items() if value is not None
    }


def load_settings(
    root: pathlib.Path,
    env_file: Optional[pathlib.Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Build the settings object from the ``.env`` file of the project and the process environment.

    :param root: The project root. ``iso/`` and ``etc/tftp/`` are resolved relative to it.
    :param env_file: The ``.env`` file. Defaults to ``<root>/.env``.
    :param environ: The environment to overlay. Defaults to ``os.environ``.
    :raises ConfigurationError: In case the ``.env`` file is missing and the environment does not provide
                                ``HOST_ADDR`` or in case the values are invalid.
    :return: The immutable settings.
    """
    if environ is None:
        environ = os.environ
    if env_file is None:
        env_file = root / ".env"

    raw: Dict[str, Any] = {}
    try:
        raw.update(read_env_file(env_file))
    except FileNotFoundError as error:
        if not environ.get("HOST_ADDR"):
            raise ConfigurationError(
                "%s not found in project root", env_file.name
            ) from error
        logger.warning("%s not found, using the environment only", env_file)
    raw.update({key: environ[key] for key in ENV_KEYS if key in environ})
    raw.setdefault("HOST_ADDR", "")

    try:
        validated = validate_settings(raw)
    except SchemaError as error:
        raise ConfigurationError("Invalid configuration: %s", error.code) from error

    rules = validated["PXE_CLASSIFIER_RULES"]
    rules_path: Optional[pathlib.Path] = None
    if rules:
        rules_path = pathlib.Path(rules)
        if not rules_path.is_absolute():
            rules_path = root / rules_path

    return Settings(
        root=root,
        host_addr=validated["HOST_ADDR"],
        http_port=validated["HTTP_PORT"],
        iso_default=validated["ISO_DEFAULT"],
        docker_image=validated["PXE_DOCKER_IMAGE"],
        classifier_rules=rules_path,
    )
