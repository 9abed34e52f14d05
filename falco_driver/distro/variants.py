"""
Distro strategies.

This module defines the generic Distro strategy and the distro-specific
variants overriding only the bits that differ: naming, kernel release
fixups, build environment and preferred driver type.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol, runtime_checkable

from ..context import Context
from ..drivertype import Bpf, DriverType, Kmod, ModernBpf
from ..errors import DriverError
from ..kernelrelease import KernelRelease
from ..output import Printer
from .kernel_src import download_kernel_src

COS_KERNEL_SRC_URL = "https://storage.googleapis.com/cos-tools/{build_id}/kernel-src.tar.gz"
KERNEL_ORG_SRC_URL = "https://mirrors.edge.kernel.org/pub/linux/kernel/v{major}.x/linux-{version}.tar.gz"


@runtime_checkable
class Checker(Protocol):
    """Optional capability: recognize the distro by inspecting the host filesystem."""

    def check(self, host_root: str) -> bool:
        ...


def _read_host_file(host_root: str, path: str) -> str | None:
    try:
        return Path(f"{host_root.rstrip('/')}{path}").read_text()
    except OSError:
        return None


class Distro:
    """Generic strategy, used as is for distros without a dedicated variant.

    The distro string is the os-release identifier and no build
    customization is performed.
    """

    def __init__(self) -> None:
        self.target_id = ""
        self.os_release: dict[str, str] = {}

    def init(self, kr: KernelRelease, identifier: str, os_release: Mapping[str, str] | None) -> None:
        self.target_id = identifier
        self.os_release = dict(os_release or {})

    def fixup_kernel(self, kr: KernelRelease) -> KernelRelease:
        # "#1 SMP PREEMPT_DYNAMIC Debian 6.1.38-2 (2023-07-27)" -> "1"
        kernel_version = kr.kernel_version.lstrip("#").split(" ")[0]
        return kr.model_copy(update={"kernel_version": kernel_version})

    def customize_build(
        self,
        ctx: Context,
        printer: Printer,
        driver_type: DriverType,
        kr: KernelRelease,
        host_root: str,
    ) -> dict[str, str]:
        return {}

    def preferred_driver(self, kr: KernelRelease) -> DriverType:
        if kr.supports_modern_bpf():
            return ModernBpf()
        return Kmod()

    def __str__(self) -> str:
        return self.target_id

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.target_id!r})"


class Ubuntu(Distro):
    def init(self, kr, identifier, os_release):
        super().init(kr, identifier, os_release)
        # 5.15.0-1009-aws -> ubuntu-aws, 5.0.0-1028-aws-5.0 -> ubuntu-aws-5.0
        parts = kr.extraversion.split("-", 1)
        flavor = parts[1] if len(parts) == 2 and parts[1] else "generic"
        self.target_id = f"ubuntu-{flavor}"

    def fixup_kernel(self, kr):
        # "#26~22.04.1-Ubuntu SMP ..." -> "26~22.04.1"
        fixed = super().fixup_kernel(kr)
        return fixed.model_copy(update={"kernel_version": fixed.kernel_version.split("-Ubuntu")[0]})

    def check(self, host_root: str) -> bool:
        content = _read_host_file(host_root, "/etc/lsb-release") or ""
        return "DISTRIB_ID=Ubuntu" in content


_DEBIAN_REAL_VERSION_RE = re.compile(r"Debian (\d+\.\d+\.\d+-\d+)")
_DEBIAN_ARCHES = {"amd64", "arm64", "686", "686-pae", "armmp", "armmp-lpae", "ppc64el", "s390x"}


class Debian(Distro):
    def fixup_kernel(self, kr):
        # The release names the ABI package (6.1.0-13-amd64) while `uname -v`
        # carries the real kernel (Debian 6.1.55-1): combine them into
        # 6.1.55-1-amd64, keeping the rt/cloud flavor.
        match = _DEBIAN_REAL_VERSION_RE.search(kr.kernel_version)
        if not match:
            return super().fixup_kernel(kr)

        suffix = ""
        for flavor in ("rt", "cloud"):
            if f"-{flavor}-" in f"{kr.full_extraversion}-":
                suffix += f"-{flavor}"
        for arch in _DEBIAN_ARCHES:
            if kr.full_extraversion.endswith(f"-{arch}"):
                suffix += f"-{arch}"
                break

        return KernelRelease.parse(match.group(1) + suffix, kernel_version="1", architecture=kr.architecture)

    def check(self, host_root: str) -> bool:
        return _read_host_file(host_root, "/etc/debian_version") is not None


class Centos(Distro):
    def check(self, host_root: str) -> bool:
        return _read_host_file(host_root, "/etc/centos-release") is not None


class Amzn(Distro):
    _NAMES = {
        "2": "amazonlinux2",
        "2022": "amazonlinux2022",
        "2023": "amazonlinux2023",
    }

    def init(self, kr, identifier, os_release):
        super().init(kr, identifier, os_release)
        self.target_id = self._NAMES.get(self.os_release.get("VERSION_ID", ""), "amazonlinux")

    def check(self, host_root: str) -> bool:
        content = _read_host_file(host_root, "/etc/system-release") or ""
        return content.startswith("Amazon Linux")


class Cos(Distro):
    """Container-Optimized OS: no kernel headers and no kmod loading."""

    def init(self, kr, identifier, os_release):
        super().init(kr, identifier, os_release)
        self.build_id = self.os_release.get("BUILD_ID", "")

    def fixup_kernel(self, kr):
        if not self.build_id:
            return super().fixup_kernel(kr)
        return kr.model_copy(update={"kernel_version": f"1_{self.build_id}"})

    def customize_build(self, ctx, printer, driver_type, kr, host_root):
        if not driver_type.has_artifact():
            return {}
        if not self.build_id:
            raise DriverError("BUILD_ID missing from os-release, cannot fetch COS kernel sources")
        url = COS_KERNEL_SRC_URL.format(build_id=self.build_id)
        return download_kernel_src(ctx, printer, kr, url, host_root, 0)

    def preferred_driver(self, kr):
        if kr.supports_modern_bpf():
            return ModernBpf()
        return Bpf()


_MINIKUBE_VERSION_RE = re.compile(r"v(\d+\.\d+\.\d+)")


class Minikube(Distro):
    """Minikube VM, recognized by the version stamp in /etc/VERSION."""

    def __init__(self) -> None:
        super().__init__()
        self.version = ""

    def check(self, host_root: str) -> bool:
        match = _MINIKUBE_VERSION_RE.search(_read_host_file(host_root, "/etc/VERSION") or "")
        if not match:
            return False
        self.version = match.group(1)
        return True

    def fixup_kernel(self, kr):
        if not self.version:
            return super().fixup_kernel(kr)
        return kr.model_copy(update={"kernel_version": f"1_{self.version}"})

    def customize_build(self, ctx, printer, driver_type, kr, host_root):
        if not driver_type.has_artifact():
            return {}
        # kernel.org drops a zero sublevel from tarball names
        version = kr.fullversion if kr.sublevel else f"{kr.version}.{kr.patchlevel}"
        url = KERNEL_ORG_SRC_URL.format(major=kr.version, version=version)
        return download_kernel_src(ctx, printer, kr, url, host_root, 1)
