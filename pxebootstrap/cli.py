"""
Module for the CLI logic of pxebootstrap.
"""

# SPDX-License-Identifier: GPL-2.0-or-later

import argparse
import logging
import logging.config
import pathlib
import sys
from importlib import resources as importlib_resources
from typing import List, Optional

from pxebootstrap import __version__
from pxebootstrap.api import BootstrapAPI, BootstrapResult
from pxebootstrap.cexceptions import ConfigurationError, PxeBootstrapException
from pxebootstrap.settings import Settings, load_settings

logger = logging.getLogger()

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_EXTRACTION_FAILED = 2


def cli_generate_main_parser() -> argparse.ArgumentParser:
    """
    Generates the main CLI parser for pxebootstrap.
    """
    op = argparse.ArgumentParser(
        prog="pxebootstrap",
        description="Prepare a PXE environment for UEFI/BIOS using the ISO files from <root>/iso.",
    )
    op.add_argument(
        "-r",
        "--root",
        type=pathlib.Path,
        default=pathlib.Path.cwd(),
        help="The project root containing .env, iso/ and etc/tftp/ (default: current directory).",
    )
    op.add_argument(
        "--env-file",
        type=pathlib.Path,
        default=None,
        help="The file with HOST_ADDR, HTTP_PORT and ISO_DEFAULT (default: <root>/.env).",
    )
    op.add_argument(
        "-l",
        "--log-level",
        dest="log_level",
        metavar="LEVEL",
        help="log level (ie. DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    op.add_argument(
        "--skip-bootloaders",
        action="store_true",
        help="Do not copy or install PXELINUX and GRUB.",
    )
    op.add_argument(
        "--skip-extract",
        action="store_true",
        help="Do not extract kernels, only generate the menus.",
    )
    op.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return op


def setup_logging(log_level: Optional[str] = None) -> None:
    """
    Configure logging from the packaged ``logging_config.conf``.

    :param log_level: Overrides the level of the root logger if given.
    :raises ValueError: In case the level is unknown.
    """
    config = importlib_resources.files("pxebootstrap.data").joinpath("logging_config.conf")
    with importlib_resources.as_file(config) as config_path:
        logging.config.fileConfig(str(config_path), disable_existing_loggers=False)
    if log_level:
        level = logging.getLevelName(log_level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {log_level}")
        logging.getLogger().setLevel(level)


def print_summary(settings: Settings, result: BootstrapResult) -> None:
    """
    Print the produced files and the steps to take afterwards.
    """
    tftp_root = settings.tftp_root
    print()
    print("Done.")
    print(f"  Bootloaders: {tftp_root}/{{pxelinux.0,*.c32,grubx64.efi,unicode.pf2}}")
    print(f"  Kernels:     {settings.kernels_dir}/<ISO_NAME>/{{vmlinuz,initrd}}")
    print(f"  UEFI menu:   {result.grub_cfg}")
    print(f"  BIOS menu:   {result.pxelinux_cfg}")
    if result.extraction is not None and result.extraction.failed:
        print("  Failed ISOs:")
        for name, error in result.extraction.failed.items():
            print(f"    {name}: {error}")
    print()
    print("Next steps:")
    print("  docker compose up -d")
    print(
        f"  DHCP: next-server={settings.host_addr}, bootfile BIOS=pxelinux.0, UEFI=grubx64.efi"
    )


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entrypoint for pxebootstrap.

    :return: 0 on success, 1 on configuration or provisioning errors, 2 if some ISOs could not be extracted.
    """
    op = cli_generate_main_parser()
    options = op.parse_args(argv)
    try:
        setup_logging(options.log_level)
    except ValueError as error:
        op.error(str(error))

    root = options.root.resolve()
    try:
        settings = load_settings(root, env_file=options.env_file)
    except ConfigurationError as error:
        logger.error("%s", error)
        return EXIT_ERROR

    try:
        api = BootstrapAPI(settings)
        result = api.run(
            skip_bootloaders=options.skip_bootloaders,
            skip_extract=options.skip_extract,
        )
    except PxeBootstrapException as error:
        logger.error("%s", error)
        return EXIT_ERROR

    print_summary(settings, result)
    if not result.ok:
        return EXIT_EXTRACTION_FAILED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
