"""
Misc heavy lifting functions for pxebootstrap
"""

# SPDX-License-Identifier: GPL-2.0-or-later

import logging
import re
import shutil
import subprocess
import sys
import traceback
from typing import List, Optional, Tuple, Union

import netaddr


logger = logging.getLogger()

_re_version_chunks = re.compile(r"(\d+)")


def log_exc() -> None:
    """
    Log an exception.
    """
    (exception_type, exception_value, exception_traceback) = sys.exc_info()
    logger.info("Exception occurred: %s", exception_type)
    logger.info("Exception value: %s", exception_value)
    logger.info(
        "Exception Info:\n%s",
        "\n".join(traceback.format_list(traceback.extract_tb(exception_traceback))),
    )


def is_ip(strdata: str) -> bool:
    """
    Return whether the argument is an IP address.

    :param strdata: The IP in a string format. This get's passed to the IP object of Python.
    """
    try:
        netaddr.IPAddress(strdata)
    except (netaddr.AddrFormatError, ValueError, TypeError):
        return False
    return True


def version_sort_key(name: str) -> Tuple[Tuple[int, Union[int, str]], ...]:
    """
    Split a file name into text and number chunks so that names sort like ``sort -V`` does. With this key
    ``a-2.iso`` sorts before ``a-10.iso``.

    :param name: The file name to build the key for.
    :return: A tuple which can be compared with the keys of other names.
    """
    key: List[Tuple[int, Union[int, str]]] = []
    for chunk in _re_version_chunks.split(name):
        if not chunk:
            continue
        if chunk.isdigit():
            key.append((0, int(chunk)))
        else:
            key.append((1, chunk))
    return tuple(key)


def command_existing(cmd: str) -> bool:
    r"""
    This takes a command which should be known to the system and checks if it is available.

    :param cmd: The executable to check
    :return: If the binary does not exist ``False``, otherwise ``True``.
    """
    return shutil.which(cmd) is not None


def first_existing_command(*candidates: str) -> Optional[str]:
    """
    Return the full path of the first command from ``candidates`` that is available on the system.

    :param candidates: The executables to check in order.
    :return: The path of the executable or ``None`` if none of them is installed.
    """
    for candidate in candidates:
        path = shutil.which(candidate)
        if path is not None:
            return path
    return None


def subprocess_sp(
    cmd: List[str], process_input: Optional[str] = None
) -> Tuple[str, int]:
    """
    Call a process and redirect the output for internal usage.

    :param cmd: The command to execute in a subprocess call.
    :param process_input: If there is any input needed for that command to stdin.
    :return: A tuple of the output and the return code.
    :raises ValueError: In case the executable could not be started.
    """
    logger.info("running: %s", cmd)
    try:
        completed = subprocess.run(
            cmd,
            input=process_input,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            encoding="utf-8",
            check=False,
        )
    except OSError as os_error:
        log_exc()
        raise ValueError(
            f"OS Error, command not found?  While running: {cmd}"
        ) from os_error

    logger.debug("received on stdout: %s", completed.stdout)
    logger.debug("received on stderr: %s", completed.stderr)
    return completed.stdout, completed.returncode


def subprocess_call(cmd: List[str], process_input: Optional[str] = None) -> int:
    """
    A simple subprocess call with no output capturing.

    :param cmd: The command to execute.
    :param process_input: If there is any process_input needed for that command to stdin.
    :return: The return code of the process
    """
    _, return_code = subprocess_sp(cmd, process_input=process_input)
    return return_code


def subprocess_get_bytes(cmd: List[str]) -> bytes:
    """
    Run a command and return its raw standard output. Used for streaming binary payloads like kernels.

    :param cmd: The command to execute.
    :return: The bytes the process wrote to stdout.
    :raises subprocess.CalledProcessError: In case the command returned a non-zero exit code.
    """
    logger.debug("running: %s", cmd)
    completed = subprocess.run(
        cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, check=True
    )
    return completed.stdout
