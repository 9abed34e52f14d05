"""
Tests for distro discovery and the distro registry.

Host filesystems are simulated with a temporary host root.
"""

from pathlib import Path

import pytest
from falco_driver.distro import discover_distro, load_os_release
from falco_driver.distro.discovery import UNDETERMINED_ID
from falco_driver.distro.registry import DEFAULT_VARIANTS, DistroRegistry, get_distro_registry
from falco_driver.distro.variants import Amzn, Centos, Checker, Cos, Debian, Distro, Minikube, Ubuntu
from falco_driver.errors import DistroUndeterminedError, OSReleaseError
from falco_driver.kernelrelease import KernelRelease


def write_host_file(host_root: Path, path: str, content: str) -> None:
    target = host_root / path.lstrip("/")
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content)


class TestLoadOsRelease:
    """Test os-release parsing."""

    def test_quoted_and_bare_values(self, tmp_path: Path) -> None:
        path = tmp_path / "os-release"
        path.write_text('# comment\nNAME="Ubuntu"\nID=ubuntu\n\nVERSION_ID="22.04"\nPRETTY_NAME=\'Ubuntu 22.04.2 LTS\'\n')

        data = load_os_release(path)

        assert data == {"NAME": "Ubuntu", "ID": "ubuntu", "VERSION_ID": "22.04", "PRETTY_NAME": "Ubuntu 22.04.2 LTS"}

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_os_release(tmp_path / "missing")

    def test_line_without_assignment(self, tmp_path: Path) -> None:
        path = tmp_path / "os-release"
        path.write_text("ID=ubuntu\nthis is not valid\n")

        with pytest.raises(OSReleaseError, match="invalid line"):
            load_os_release(path)

    def test_unbalanced_quotes(self, tmp_path: Path) -> None:
        path = tmp_path / "os-release"
        path.write_text('ID="ubuntu\n')

        with pytest.raises(OSReleaseError):
            load_os_release(path)


class TestDistroRegistry:
    """Test the DistroRegistry class."""

    def test_default_variants_registered(self) -> None:
        registry = DistroRegistry()

        for distro_id in ("ubuntu", "debian", "centos", "amzn", "cos", "minikube"):
            assert distro_id in registry
        assert len(registry) == len(DEFAULT_VARIANTS)

    def test_create_returns_fresh_instances(self) -> None:
        registry = DistroRegistry()

        first = registry.create("ubuntu")
        second = registry.create("ubuntu")

        assert isinstance(first, Ubuntu)
        assert first is not second

    def test_unknown_id(self) -> None:
        registry = DistroRegistry()

        assert registry.create("gentoo") is None
        generic = registry.create_or_generic("gentoo")
        assert type(generic) is Distro

    def test_duplicate_ids_rejected(self) -> None:
        with pytest.raises(ValueError, match="Duplicate distro identifiers"):
            DistroRegistry([("ubuntu", Ubuntu), ("ubuntu", Debian)])

    def test_registry_is_read_only(self) -> None:
        registry = DistroRegistry()

        with pytest.raises(TypeError):
            registry._variants["gentoo"] = Distro  # type: ignore[index]

    def test_checkers_in_priority_order(self) -> None:
        registry = DistroRegistry()

        ids = [distro_id for distro_id, _ in registry.checkers()]

        assert ids == ["minikube", "amzn", "centos", "ubuntu", "debian"]
        assert "cos" not in ids

    def test_checker_capability(self) -> None:
        assert isinstance(Minikube(), Checker)
        assert isinstance(Debian(), Checker)
        assert not isinstance(Cos(), Checker)
        assert not isinstance(Distro(), Checker)

    def test_global_registry_is_shared(self) -> None:
        assert get_distro_registry() is get_distro_registry()


class TestDiscoverFromOsRelease:
    """Test discovery driven by /etc/os-release."""

    def test_known_id(self, tmp_path: Path, kr: KernelRelease) -> None:
        write_host_file(tmp_path, "/etc/os-release", "ID=debian\nVERSION_ID=12\n")

        discovery = discover_distro(kr, str(tmp_path))

        assert discovery.determined is True
        assert discovery.error is None
        assert isinstance(discovery.distro, Debian)
        assert str(discovery.distro) == "debian"
        assert discovery.distro.os_release["VERSION_ID"] == "12"

    def test_id_is_case_folded(self, tmp_path: Path, kr: KernelRelease) -> None:
        write_host_file(tmp_path, "/etc/os-release", 'ID="CentOS"\n')

        discovery = discover_distro(kr, str(tmp_path))

        assert isinstance(discovery.distro, Centos)
        assert str(discovery.distro) == "centos"

    def test_unknown_id_uses_generic_and_is_determined(self, tmp_path: Path, kr: KernelRelease) -> None:
        write_host_file(tmp_path, "/etc/os-release", "ID=arch\n")

        discovery = discover_distro(kr, str(tmp_path))

        assert discovery.determined is True
        assert type(discovery.distro) is Distro
        assert str(discovery.distro) == "arch"

    def test_unknown_id_ignores_matching_checkers(self, tmp_path: Path, kr: KernelRelease) -> None:
        write_host_file(tmp_path, "/etc/os-release", "ID=arch\n")
        write_host_file(tmp_path, "/etc/centos-release", "CentOS Linux release 7.9.2009\n")

        discovery = discover_distro(kr, str(tmp_path))

        assert type(discovery.distro) is Distro

    def test_minikube_marker_overrides_id(self, tmp_path: Path, kr: KernelRelease) -> None:
        write_host_file(tmp_path, "/etc/os-release", "ID=buildroot\n")
        write_host_file(tmp_path, "/etc/VERSION", "v1.26.0\n")

        discovery = discover_distro(kr, str(tmp_path))

        assert discovery.determined is True
        assert isinstance(discovery.distro, Minikube)
        assert str(discovery.distro) == "minikube"
        assert discovery.distro.version == "1.26.0"

    def test_minikube_marker_overrides_known_id(self, tmp_path: Path, kr: KernelRelease) -> None:
        write_host_file(tmp_path, "/etc/os-release", "ID=ubuntu\n")
        write_host_file(tmp_path, "/etc/VERSION", "v1.32.0")

        discovery = discover_distro(kr, str(tmp_path))

        assert isinstance(discovery.distro, Minikube)

    def test_os_release_values_reach_the_strategy(self, tmp_path: Path, kr: KernelRelease) -> None:
        write_host_file(tmp_path, "/etc/os-release", 'ID=amzn\nVERSION_ID="2023"\n')

        discovery = discover_distro(kr, str(tmp_path))

        assert isinstance(discovery.distro, Amzn)
        assert str(discovery.distro) == "amazonlinux2023"

    def test_custom_registry(self, tmp_path: Path, kr: KernelRelease) -> None:
        write_host_file(tmp_path, "/etc/os-release", "ID=ubuntu\n")
        registry = DistroRegistry([("minikube", Minikube)])

        discovery = discover_distro(kr, str(tmp_path), registry)

        assert type(discovery.distro) is Distro
        assert str(discovery.distro) == "ubuntu"


class TestDiscoverFallback:
    """Test discovery when os-release is missing or unusable."""

    def test_checker_match(self, tmp_path: Path, kr: KernelRelease) -> None:
        write_host_file(tmp_path, "/etc/centos-release", "CentOS Linux release 7.9.2009\n")

        discovery = discover_distro(kr, str(tmp_path))

        assert discovery.determined is True
        assert isinstance(discovery.distro, Centos)
        assert str(discovery.distro) == "centos"

    def test_malformed_os_release_falls_back(self, tmp_path: Path, kr: KernelRelease) -> None:
        write_host_file(tmp_path, "/etc/os-release", "garbage without equals\n")
        write_host_file(tmp_path, "/etc/debian_version", "12.1\n")

        discovery = discover_distro(kr, str(tmp_path))

        assert isinstance(discovery.distro, Debian)

    def test_priority_order_when_several_checkers_match(self, tmp_path: Path, kr: KernelRelease) -> None:
        # Ubuntu hosts also carry /etc/debian_version
        write_host_file(tmp_path, "/etc/debian_version", "bookworm/sid\n")
        write_host_file(tmp_path, "/etc/lsb-release", "DISTRIB_ID=Ubuntu\nDISTRIB_RELEASE=22.04\n")

        discovery = discover_distro(kr, str(tmp_path))

        assert isinstance(discovery.distro, Ubuntu)
        assert str(discovery.distro) == "ubuntu-generic"

    def test_os_release_without_id_falls_back(self, tmp_path: Path, kr: KernelRelease) -> None:
        write_host_file(tmp_path, "/etc/os-release", 'NAME="Something"\n')
        write_host_file(tmp_path, "/etc/system-release", "Amazon Linux release 2 (Karoo)\n")

        discovery = discover_distro(kr, str(tmp_path))

        assert isinstance(discovery.distro, Amzn)

    def test_os_release_without_id_and_no_checker_is_undetermined(self, tmp_path: Path, kr: KernelRelease) -> None:
        write_host_file(tmp_path, "/etc/os-release", 'NAME="Something"\n')

        discovery = discover_distro(kr, str(tmp_path))

        assert discovery.determined is False
        assert type(discovery.distro) is Distro

    def test_nothing_matches(self, tmp_path: Path, kr: KernelRelease) -> None:
        discovery = discover_distro(kr, str(tmp_path))

        assert discovery.determined is False
        assert isinstance(discovery.error, DistroUndeterminedError)
        assert type(discovery.distro) is Distro
        assert str(discovery.distro) == UNDETERMINED_ID
        # The generic strategy stays usable
        assert discovery.distro.fixup_kernel(kr).kernel_version == "74-Ubuntu"
