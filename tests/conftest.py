"""
Fixtures that are shared between all tests inside the testsuite.
"""

import pathlib
from contextlib import contextmanager
from typing import Callable, Dict, List, Optional

import pytest

from pxebootstrap.actions.extract import ArchiveTool
from pxebootstrap.api import BootstrapAPI
from pxebootstrap.cexceptions import ExtractionError
from pxebootstrap.settings import Settings


@contextmanager
def does_not_raise():
    """
    Fixture that represents a context manager that will expect that no raise occurs.
    """
    yield


class FakeArchiveTool(ArchiveTool):
    """
    Archive tool that serves file contents from a dictionary instead of reading real ISOs.
    """

    name = "fake"

    def __init__(self, contents: Optional[Dict[str, Dict[str, bytes]]] = None):
        # ISO file name -> internal path -> content
        self.contents: Dict[str, Dict[str, bytes]] = contents or {}
        self.extracted: List[str] = []
        self.opened = 0
        self.closed = 0

    def exists(self, image: pathlib.Path, internal_path: str) -> bool:
        return internal_path in self.contents.get(image.name, {})

    def extract(self, image: pathlib.Path, internal_path: str) -> bytes:
        try:
            data = self.contents[image.name][internal_path]
        except KeyError as error:
            raise ExtractionError("%s not in %s", internal_path, image.name) from error
        self.extracted.append(f"{image.name}:{internal_path}")
        return data

    def open(self) -> None:
        self.opened += 1

    def close(self) -> None:
        self.closed += 1


@pytest.fixture(name="project_root", scope="function")
def fixture_project_root(tmp_path: pathlib.Path) -> pathlib.Path:
    """
    Fixture that provides an empty project root with an ISO directory.
    """
    (tmp_path / "iso").mkdir()
    return tmp_path


@pytest.fixture(name="test_settings", scope="function")
def fixture_test_settings(project_root: pathlib.Path) -> Settings:
    """
    Fixture that provides settings for a host on port 80 without a default ISO.
    """
    return Settings(root=project_root, host_addr="192.168.88.10")


@pytest.fixture(name="bootstrap_api", scope="function")
def fixture_bootstrap_api(test_settings: Settings) -> BootstrapAPI:
    """
    Fixture that represents the pxebootstrap API for a single test.
    """
    return BootstrapAPI(test_settings)


@pytest.fixture(name="create_iso", scope="function")
def fixture_create_iso(project_root: pathlib.Path) -> Callable[[str], pathlib.Path]:
    """
    Fixture that provides a method to create an (empty) ISO file inside the ISO directory of the test project.
    """

    def _create_iso(filename: str) -> pathlib.Path:
        path = project_root / "iso" / filename
        path.touch()
        return path

    return _create_iso


@pytest.fixture(name="fake_archive_tool", scope="function")
def fixture_fake_archive_tool() -> FakeArchiveTool:
    """
    Fixture that provides an archive tool without any ISO content.
    """
    return FakeArchiveTool()
