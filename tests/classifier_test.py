import pathlib

import pytest

from pxebootstrap.cexceptions import ConfigurationError
from pxebootstrap.classifier import DEFAULT_RULES, ClassificationRule, Classifier
from pxebootstrap.enums import IsoFlavor


@pytest.mark.parametrize(
    "file_name,expected_flavor",
    [
        ("ubuntu-24.04.1-live-server-amd64.iso", IsoFlavor.UBUNTU_SERVER),
        ("ubuntu-22.04.5-desktop-amd64.iso", IsoFlavor.UBUNTU_DESKTOP),
        ("xubuntu-24.04-minimal-amd64.iso", IsoFlavor.UBUNTU_DESKTOP),
        ("kali-linux-2024.4-installer-amd64.iso", IsoFlavor.KALI_INSTALLER),
        ("kali-linux-2024.4-live-amd64.iso", IsoFlavor.GENERIC),
        ("debian-12.8.0-amd64-netinst.iso", IsoFlavor.GENERIC),
        ("Ubuntu-24.04-live-server-amd64.iso", IsoFlavor.GENERIC),
    ],
)
def test_classify_builtin_rules(file_name: str, expected_flavor: IsoFlavor):
    # Arrange
    classifier = Classifier()

    # Act
    result = classifier.classify(file_name)

    # Assert
    assert result == expected_flavor


def test_classify_first_rule_wins():
    # Arrange
    classifier = Classifier(
        [
            ClassificationRule(IsoFlavor.GENERIC, ("*server*",)),
            ClassificationRule(IsoFlavor.UBUNTU_SERVER, ("*ubuntu*",)),
        ]
    )

    # Act
    result = classifier.classify("ubuntu-24.04-live-server-amd64.iso")

    # Assert
    assert result == IsoFlavor.GENERIC


def test_rule_matches():
    # Arrange
    rule = ClassificationRule(IsoFlavor.UBUNTU_DESKTOP, ("*kubuntu*", "*lubuntu*"))

    # Act & Assert
    assert rule.matches("lubuntu-24.04-desktop-amd64.iso")
    assert not rule.matches("fedora-40.iso")


def test_from_yaml(tmp_path: pathlib.Path):
    # Arrange
    rules_file = tmp_path / "rules.yaml"
    rules_file.write_text(
        "rules:\n"
        "  - flavor: kali-installer\n"
        '    patterns: ["*debian-*-netinst*"]\n'
        "  - flavor: UBUNTU_DESKTOP\n"
        '    patterns: ["*mint*"]\n',
        encoding="UTF-8",
    )

    # Act
    classifier = Classifier.from_yaml(rules_file)

    # Assert
    assert len(classifier.rules) == len(DEFAULT_RULES) + 2
    assert classifier.classify("debian-12.8.0-amd64-netinst.iso") == IsoFlavor.KALI_INSTALLER
    assert classifier.classify("linuxmint-22-cinnamon-64bit.iso") == IsoFlavor.UBUNTU_DESKTOP
    assert classifier.classify("ubuntu-24.04-live-server-amd64.iso") == IsoFlavor.UBUNTU_SERVER


def test_from_yaml_empty_file(tmp_path: pathlib.Path):
    # Arrange
    rules_file = tmp_path / "rules.yaml"
    rules_file.write_text("", encoding="UTF-8")

    # Act
    classifier = Classifier.from_yaml(rules_file)

    # Assert
    assert classifier.rules == list(DEFAULT_RULES)


@pytest.mark.parametrize(
    "content",
    [
        "rules:\n  - flavor: fedora\n    patterns: ['*fedora*']\n",
        "rules:\n  - flavor: generic\n    patterns: []\n",
        "rules:\n  - flavor: generic\n",
        "something: else\n",
        "rules: [unclosed\n",
    ],
)
def test_from_yaml_invalid(tmp_path: pathlib.Path, content: str):
    # Arrange
    rules_file = tmp_path / "rules.yaml"
    rules_file.write_text(content, encoding="UTF-8")

    # Act & Assert
    with pytest.raises(ConfigurationError):
        Classifier.from_yaml(rules_file)


def test_from_yaml_missing_file(tmp_path: pathlib.Path):
    # Arrange & Act & Assert
    with pytest.raises(ConfigurationError):
        Classifier.from_yaml(tmp_path / "missing.yaml")
