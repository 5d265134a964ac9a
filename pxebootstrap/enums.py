"""
This module is responsible for containing all enums we use in pxebootstrap. It should not be dependent upon any other
module except the Python standard library.
"""

# SPDX-License-Identifier: GPL-2.0-or-later

import enum
from typing import TypeVar, Union

CONVERTABLEENUM = TypeVar("CONVERTABLEENUM", bound="ConvertableEnum")


class ConvertableEnum(enum.Enum):
    """
    Abstract class to convert the enum via our convert method.
    """

    @classmethod
    def to_enum(cls, value: Union[str, CONVERTABLEENUM]) -> CONVERTABLEENUM:
        """
        This method converts the chosen str to the corresponding enum type. Both the member name (case-insensitive, with
        dashes allowed in place of underscores) and the member value are accepted.

        :param value: str which contains the to be converted value.
        :returns: The enum value.
        :raises TypeError: In case value was not of type str.
        :raises ValueError: In case value was not in the range of valid values.
        """
        if isinstance(value, cls):
            return value  # type: ignore
        if not isinstance(value, str):
            raise TypeError(f"{value} must be a str or Enum")
        try:
            return cls[value.upper().replace("-", "_")]  # type: ignore
        except KeyError:
            pass
        try:
            return cls(value)  # type: ignore
        except ValueError as value_error:
            raise ValueError(f"{value} must be one of {list(cls)}") from value_error


class IsoFlavor(ConvertableEnum):
    """
    The classification of an ISO image. The flavor decides how many menu entries are generated for an ISO and which
    kernel parameters they receive.
    """

    UBUNTU_SERVER = "ubuntu-server"
    """
    Ubuntu live-server image which can be installed unattended via autoinstall (NoCloud).
    """
    UBUNTU_DESKTOP = "ubuntu-desktop"
    """
    Ubuntu (or flavour) desktop live image booted with casper.
    """
    KALI_INSTALLER = "kali-installer"
    """
    Debian-family installer image (Kali Linux).
    """
    GENERIC = "generic"
    """
    Anything else. Only networking via DHCP is requested.
    """


class BootVariant(ConvertableEnum):
    """
    The variant of a single menu entry of an ISO.
    """

    DEFAULT = "default"
    AUTOINSTALL = "autoinstall"
    MANUAL = "manual"
