"""
Tests that validate the functionality of the module that is responsible for providing the network bootloaders.
"""

import pathlib
from typing import TYPE_CHECKING, List

import pytest

from pxebootstrap.actions import mkloaders
from pxebootstrap.api import BootstrapAPI
from pxebootstrap.cexceptions import ProvisioningError

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


@pytest.fixture(name="host_files")
def fixture_host_files(tmp_path: pathlib.Path) -> pathlib.Path:
    """
    Fixture that provides a fake host file system with PXELINUX, the syslinux modules, GRUB and the font.
    """
    host = tmp_path / "host"
    (host / "PXELINUX").mkdir(parents=True)
    (host / "PXELINUX" / "pxelinux.0").write_bytes(b"pxelinux")
    modules = host / "syslinux" / "modules" / "bios"
    modules.mkdir(parents=True)
    for module in mkloaders.SYSLINUX_MODULES:
        (modules / module).write_bytes(module.encode())
    (host / "grub" / "x86_64-efi-signed").mkdir(parents=True)
    (host / "grub" / "x86_64-efi-signed" / "grubnetx64.efi.signed").write_bytes(b"signed")
    (host / "grub" / "unicode.pf2").write_bytes(b"font")
    return host


def make_loaders(api: BootstrapAPI, host: pathlib.Path) -> mkloaders.MkLoaders:
    loaders = mkloaders.MkLoaders(api)
    loaders.pxelinux_file = host / "PXELINUX" / "pxelinux.0"
    loaders.syslinux_modules_dir = host / "syslinux" / "modules" / "bios"
    loaders.grub_efi_candidates = [
        host / "grub" / "x86_64-efi" / "grubnetx64.efi",
        host / "grub" / "x86_64-efi-signed" / "grubnetx64.efi.signed",
    ]
    loaders.grub_font = host / "grub" / "unicode.pf2"
    return loaders


def test_mkloaders_object(bootstrap_api: BootstrapAPI):
    # Arrange & Act
    test_loaders = mkloaders.MkLoaders(bootstrap_api)

    # Assert
    assert isinstance(test_loaders, mkloaders.MkLoaders)
    assert test_loaders.bootloaders_dir == bootstrap_api.settings().tftp_root
    assert str(test_loaders.pxelinux_file) == "/usr/lib/PXELINUX/pxelinux.0"


def test_mkloaders_run_from_host(
    bootstrap_api: BootstrapAPI, host_files: pathlib.Path, mocker: "MockerFixture"
):
    # Arrange
    test_loaders = make_loaders(bootstrap_api, host_files)
    docker_mock = mocker.patch.object(test_loaders, "install_via_docker")
    tftp_root = bootstrap_api.settings().tftp_root

    # Act
    test_loaders.run()

    # Assert
    docker_mock.assert_not_called()
    assert test_loaders.missing_files() == []
    assert (tftp_root / "pxelinux.0").read_bytes() == b"pxelinux"
    assert (tftp_root / "menu.c32").read_bytes() == b"menu.c32"
    assert (tftp_root / "grubx64.efi").read_bytes() == b"signed"
    assert (tftp_root / "unicode.pf2").read_bytes() == b"font"
    assert not (tftp_root / "pxelinux.0").is_symlink()
    assert (tftp_root / "pxelinux.0").stat().st_mode & 0o777 == 0o644


def test_make_grub_prefers_unsigned(bootstrap_api: BootstrapAPI, host_files: pathlib.Path):
    # Arrange
    unsigned = host_files / "grub" / "x86_64-efi" / "grubnetx64.efi"
    unsigned.parent.mkdir(parents=True)
    unsigned.write_bytes(b"unsigned")
    test_loaders = make_loaders(bootstrap_api, host_files)
    test_loaders.create_directories()

    # Act
    result = test_loaders.make_grub()

    # Assert
    assert result
    assert (test_loaders.bootloaders_dir / "grubx64.efi").read_bytes() == b"unsigned"


def test_mkloaders_run_falls_back_to_docker(
    bootstrap_api: BootstrapAPI, tmp_path: pathlib.Path, mocker: "MockerFixture"
):
    # Arrange
    test_loaders = make_loaders(bootstrap_api, tmp_path / "empty-host")
    tftp_root = bootstrap_api.settings().tftp_root

    def fake_install():
        for name in mkloaders.REQUIRED_FILES:
            (tftp_root / name).write_bytes(b"from-container")

    docker_mock = mocker.patch.object(
        test_loaders, "install_via_docker", side_effect=fake_install
    )

    # Act
    test_loaders.run()

    # Assert
    docker_mock.assert_called_once()
    assert test_loaders.missing_files() == []


def test_mkloaders_run_incomplete_host(
    bootstrap_api: BootstrapAPI,
    host_files: pathlib.Path,
    mocker: "MockerFixture",
    caplog: pytest.LogCaptureFixture,
):
    # Arrange
    (host_files / "grub" / "x86_64-efi-signed" / "grubnetx64.efi.signed").unlink()
    test_loaders = make_loaders(bootstrap_api, host_files)
    docker_mock = mocker.patch.object(test_loaders, "install_via_docker")

    # Act & Assert
    with pytest.raises(ProvisioningError, match="grubx64.efi"):
        test_loaders.run()
    docker_mock.assert_called_once()
    assert "Bootloaders incomplete on host" in caplog.text


def test_install_via_docker(
    bootstrap_api: BootstrapAPI, tmp_path: pathlib.Path, mocker: "MockerFixture"
):
    # Arrange
    mocker.patch("pxebootstrap.utils.command_existing", return_value=True)
    call_mock = mocker.patch("pxebootstrap.utils.subprocess_call", return_value=0)
    test_loaders = make_loaders(bootstrap_api, tmp_path / "empty-host")
    test_loaders.create_directories()

    # Act
    test_loaders.install_via_docker()

    # Assert
    cmd: List[str] = call_mock.call_args.args[0]
    assert cmd[:3] == ["docker", "run", "--rm"]
    assert f"{test_loaders.bootloaders_dir.resolve()}:/out" in cmd
    assert bootstrap_api.settings().docker_image in cmd
    assert "grub-efi-amd64-bin" in cmd[-1]
    assert "Acquire::ForceIPv4=true" in cmd[-1]


def test_install_via_docker_without_docker(
    bootstrap_api: BootstrapAPI, mocker: "MockerFixture"
):
    # Arrange
    mocker.patch("pxebootstrap.utils.command_existing", return_value=False)
    test_loaders = mkloaders.MkLoaders(bootstrap_api)

    # Act & Assert
    with pytest.raises(ProvisioningError, match="docker is not available"):
        test_loaders.install_via_docker()


def test_install_via_docker_failure(bootstrap_api: BootstrapAPI, mocker: "MockerFixture"):
    # Arrange
    mocker.patch("pxebootstrap.utils.command_existing", return_value=True)
    mocker.patch("pxebootstrap.utils.subprocess_call", return_value=100)
    test_loaders = mkloaders.MkLoaders(bootstrap_api)

    # Act & Assert
    with pytest.raises(ProvisioningError, match="exit code 100"):
        test_loaders.install_via_docker()


def test_find_file(tmp_path: pathlib.Path):
    # Arrange
    second = tmp_path / "second"
    second.touch()

    # Act
    result = mkloaders.find_file([tmp_path / "first", second, tmp_path])

    # Assert
    assert result == second


def test_copy(tmp_path: pathlib.Path):
    # Arrange
    source = tmp_path / "source"
    source.write_bytes(b"new")
    target = tmp_path / "target"
    target.write_bytes(b"old")

    # Act
    mkloaders.copy(source, target)

    # Assert
    assert target.read_bytes() == b"new"


def test_copy_missing_source(tmp_path: pathlib.Path):
    # Arrange & Act & Assert
    with pytest.raises(FileNotFoundError):
        mkloaders.copy(tmp_path / "source", tmp_path / "target")
