"""
Utility module to abstract the construction of the Kernel Command Line for Linux. The tokens that are appended here are
consumed by the installers and live systems booted from the ISOs, so their exact spelling matters.

More information: https://docs.kernel.org/admin-guide/kernel-parameters.html
"""

# SPDX-License-Identifier: GPL-2.0-or-later

from typing import List, Tuple, Union

END_OF_OPTIONS = "---"
"""
Separator after which options are passed to the installed system instead of the installer.
"""


class KernelCommandLine:
    """
    Class to interface with a given Kernel Command Line.
    """

    def __init__(self) -> None:
        self.__append_line: List[Union[Tuple[str, str], Tuple[str]]] = []

    def append_key_value(self, key: str, value: str) -> "KernelCommandLine":
        """
        Append a key-value pair to the Kernel Command Line.

        :param key: The key of the option.
        :param value: The value of the option.
        :return: The same instance to allow chaining.
        """
        self.__append_line.append((key, value))
        return self

    def append_key(self, key: str) -> "KernelCommandLine":
        """
        Append a keyword-only argument to the Kernel Command Line.

        :param key: The key of the option.
        :return: The same instance to allow chaining.
        """
        self.__append_line.append((key,))
        return self

    def render(self) -> str:
        """
        Render the Kernel Command Line into a single string.

        :returns: The rendered Kernel Command Line.
        """
        parts: List[str] = []
        for element in self.__append_line:
            if len(element) == 1:
                parts.append(element[0])
            else:
                parts.append(f"{element[0]}={element[1]}")
        parts.append(END_OF_OPTIONS)
        return " ".join(parts)
