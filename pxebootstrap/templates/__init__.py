"""
Template functionality that is tied to Cheetah. pxebootstrap renders the GRUB and PXELINUX menus from the built-in
templates in ``pxebootstrap/data/templates``.

See: https://cheetahtemplate.org/
"""

# SPDX-License-Identifier: GPL-2.0-or-later

import logging
from importlib import resources as importlib_resources
from typing import Any, Dict

from Cheetah.Template import Template as CheetahTemplate  # type: ignore

from pxebootstrap.cexceptions import TemplateError

logger = logging.getLogger()

TEMPLATE_PACKAGE = "pxebootstrap.data.templates"

GRUB_MENU_TEMPLATE = "grub.template"
PXELINUX_MENU_TEMPLATE = "pxelinux.template"


def read_builtin_template(name: str) -> str:
    """
    Read one of the templates that are shipped with pxebootstrap.

    :param name: The file name of the template, e.g. ``grub.template``.
    :raises FileNotFoundError: In case there is no such template.
    :return: The raw template source.
    """
    return (
        importlib_resources.files(TEMPLATE_PACKAGE)
        .joinpath(name)
        .read_text(encoding="UTF-8")
    )


class CheetahTemplateProvider:
    """
    Provides support for the Cheetah template language to pxebootstrap.
    """

    def __init__(self) -> None:
        self.logger = logger
        self.__cache: Dict[str, str] = {}

    def get_template(self, name: str) -> str:
        """
        Return the source of a built-in template. Sources are read once per provider.

        :param name: The file name of the template.
        :return: The raw template source.
        """
        if name not in self.__cache:
            self.__cache[name] = read_builtin_template(name)
        return self.__cache[name]

    def render(self, raw_data: str, search_table: Dict[str, Any]) -> str:
        """
        Render a Cheetah template.

        :param raw_data: The template source.
        :param search_table: The variables available inside the template.
        :raises TemplateError: In case Cheetah is unable to compile or fill the template.
        :return: The rendered text.
        """
        try:
            template = CheetahTemplate(source=raw_data, searchList=[search_table])
            return str(template)
        except Exception as exc:
            self.logger.warning("errors were encountered rendering the template")
            self.logger.warning(str(exc))
            raise TemplateError("Cheetah template processing failed: %s", exc) from exc

    def render_builtin(self, name: str, search_table: Dict[str, Any]) -> str:
        """
        Render one of the templates that are shipped with pxebootstrap.

        :param name: The file name of the template.
        :param search_table: The variables available inside the template.
        :return: The rendered text.
        """
        return self.render(self.get_template(name), search_table)
