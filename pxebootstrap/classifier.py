"""
Classification of ISO images by their file name.

The classification is driven by an ordered rule table. Each rule maps a list of shell-style patterns to an
:class:`~pxebootstrap.enums.IsoFlavor`; the first rule with a matching pattern wins. Rules loaded from a YAML file are
consulted before the built-in ones, so new distributions can be added without touching the code. Example rule file:

.. code-block:: yaml

    rules:
      - flavor: ubuntu-desktop
        patterns: ["*kubuntu*", "*lubuntu*"]
      - flavor: kali-installer
        patterns: ["*debian-*-netinst*"]
"""

# SPDX-License-Identifier: GPL-2.0-or-later

import fnmatch
import logging
import pathlib
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Tuple

import yaml
from schema import And, Schema, SchemaError, Use  # type: ignore

from pxebootstrap.cexceptions import ConfigurationError
from pxebootstrap.enums import IsoFlavor

logger = logging.getLogger()


@dataclass(frozen=True)
class ClassificationRule:
    """
    A single entry of the rule table.
    """

    flavor: IsoFlavor
    patterns: Tuple[str, ...]

    def matches(self, file_name: str) -> bool:
        """
        Check the file name against the patterns of this rule. Matching is case-sensitive.

        :param file_name: The file name of the ISO without any directory.
        :return: True if any pattern matches.
        """
        return any(fnmatch.fnmatchcase(file_name, pattern) for pattern in self.patterns)


DEFAULT_RULES: Tuple[ClassificationRule, ...] = (
    ClassificationRule(IsoFlavor.UBUNTU_SERVER, ("*ubuntu*live-server*",)),
    ClassificationRule(IsoFlavor.UBUNTU_DESKTOP, ("*ubuntu*desktop*", "*xubuntu*")),
    ClassificationRule(IsoFlavor.KALI_INSTALLER, ("*kali-linux*installer*",)),
)

rules_schema = Schema(
    {
        "rules": [
            {
                "flavor": And(str, Use(IsoFlavor.to_enum)),
                "patterns": And([And(str, len)], len),
            }
        ]
    }
)


class Classifier:
    """
    Maps ISO file names to their flavor.
    """

    def __init__(self, rules: Iterable[ClassificationRule] = DEFAULT_RULES):
        self.rules: List[ClassificationRule] = list(rules)

    def classify(self, file_name: str) -> IsoFlavor:
        """
        Classify an ISO by its file name.

        :param file_name: The file name of the ISO without any directory.
        :return: The flavor of the first matching rule or ``IsoFlavor.GENERIC``.
        """
        for rule in self.rules:
            if rule.matches(file_name):
                return rule.flavor
        return IsoFlavor.GENERIC

    @classmethod
    def from_yaml(cls, filepath: pathlib.Path) -> "Classifier":
        """
        Create a classifier with the rules from a YAML file in front of the built-in rules.

        :param filepath: The rule file.
        :raises ConfigurationError: In case the file cannot be read or does not follow the rule schema.
        :return: The classifier.
        """
        try:
            with open(filepath, encoding="UTF-8") as rules_file:
                content: Dict[str, Any] = yaml.safe_load(rules_file) or {"rules": []}
        except (OSError, yaml.YAMLError) as error:
            raise ConfigurationError(
                'Classifier rules "%s" could not be read: %s', filepath, error
            ) from error
        try:
            validated = rules_schema.validate(content)
        except SchemaError as error:
            raise ConfigurationError(
                'Classifier rules "%s" are invalid: %s', filepath, error.code
            ) from error
        extra_rules = [
            ClassificationRule(rule["flavor"], tuple(rule["patterns"]))
            for rule in validated["rules"]
        ]
        logger.info("Loaded %d classifier rules from %s", len(extra_rules), filepath)
        return cls(extra_rules + list(DEFAULT_RULES))
