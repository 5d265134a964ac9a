"""
Custom exceptions for pxebootstrap
"""
from typing import Any, Iterable

# SPDX-License-Identifier: GPL-2.0-or-later


class PxeBootstrapException(Exception):
    """
    This is the default pxebootstrap exception where all other exceptions are inheriting from.
    """

    def __init__(self, value: Any, *args: Iterable[str]):
        """
        Default constructor for the Exception.

        Bad example: ``PxeBootstrapException("ISO %s not found" % iso_name)``

        Good example: ``PxeBootstrapException("ISO %s not found", iso_name)``

        :param value: The string representation of the Exception. Do not glue strings and pass them as one. Instead pass
                      them as params and let the constructor of the Exception build the string like (same as it should
                      be done with logging calls). Example see above.
        :param args: Optional arguments which replace a ``%s`` in a Python string.
        """
        self.value = value % args if args else value
        super().__init__(self.value)

    def __str__(self) -> str:
        """
        This is the string representation of the base pxebootstrap Exception.
        :return: self.value as a string.
        """
        return str(self.value)


class ConfigurationError(PxeBootstrapException):
    """
    Required settings are missing or invalid. Raised before any output is written.
    """


class ProvisioningError(PxeBootstrapException):
    """
    The bootloader binaries could not be obtained from any source.
    """


class ExtractionError(PxeBootstrapException):
    """
    The kernel or initrd of a single ISO could not be extracted.
    """


class UnsupportedLayoutError(ExtractionError):
    """
    None of the known archive layouts matched the content of an ISO.
    """


class TemplateError(PxeBootstrapException):
    """
    A boot loader menu template could not be rendered.
    """
