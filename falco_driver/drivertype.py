"""
Driver type backends.

Each backend knows the file extension of its artifact and how to invoke the
external build tooling (dkms for kernel modules, make for the eBPF probe)
against the driver sources installed under /usr/src.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from .context import Context
from .errors import DriverError
from .kernelrelease import KernelRelease
from .output import Printer
from .shared import KERNEL_DIR_ENV, DriverTypeName
from .utils import run_command

DEFAULT_SRC_ROOT = Path("/usr/src")
DKMS_ROOT = Path("/var/lib/dkms")


class DriverType(ABC):
    """A kind of driver artifact and its build backend."""

    name: DriverTypeName

    def __init__(self, src_root: Path = DEFAULT_SRC_ROOT) -> None:
        self.src_root = src_root

    @abstractmethod
    def extension(self) -> str:
        ...

    def has_artifact(self) -> bool:
        return True

    def source_dir(self, driver_name: str, driver_version: str) -> Path:
        return self.src_root / f"{driver_name}-{driver_version}"

    @abstractmethod
    def build(
        self,
        ctx: Context,
        printer: Printer,
        kr: KernelRelease,
        driver_name: str,
        driver_version: str,
        env: dict[str, str],
    ) -> str:
        """Build the driver and return the path of the produced artifact."""

    def __str__(self) -> str:
        return self.name.value


class Kmod(DriverType):
    name = DriverTypeName.KMOD

    def __init__(self, src_root: Path = DEFAULT_SRC_ROOT, dkms_root: Path = DKMS_ROOT) -> None:
        super().__init__(src_root)
        self.dkms_root = dkms_root

    def extension(self) -> str:
        return ".ko"

    def build(self, ctx, printer, kr, driver_name, driver_version, env):
        cmd = [
            "dkms",
            "install",
            "--directory",
            str(self.source_dir(driver_name, driver_version)),
            "-m",
            driver_name,
            "-v",
            driver_version,
            "-k",
            str(kr),
        ]
        if KERNEL_DIR_ENV in env:
            cmd += ["--kernelsourcedir", env[KERNEL_DIR_ENV]]

        printer.info("Trying to compile the kernel module with dkms.", kernel=str(kr))
        run_command(ctx, cmd, env=env)

        artifact = self.dkms_root / driver_name / driver_version / str(kr) / kr.non_deb_architecture / "module" / f"{driver_name}.ko"
        if not artifact.exists():
            raise DriverError(f"dkms did not produce {artifact}")
        return str(artifact)


class Bpf(DriverType):
    name = DriverTypeName.EBPF

    def extension(self) -> str:
        return ".o"

    def build(self, ctx, printer, kr, driver_name, driver_version, env):
        bpf_dir = self.source_dir(driver_name, driver_version) / "bpf"
        printer.info("Trying to compile the eBPF probe.", src=str(bpf_dir))
        run_command(ctx, ["make", "-C", str(bpf_dir)], env=env)

        artifact = bpf_dir / "probe.o"
        if not artifact.exists():
            raise DriverError(f"make did not produce {artifact}")
        return str(artifact)


class ModernBpf(DriverType):
    """The modern probe ships inside the userspace binary; nothing is built."""

    name = DriverTypeName.MODERN_EBPF

    def extension(self) -> str:
        return ""

    def has_artifact(self) -> bool:
        return False

    def build(self, ctx, printer, kr, driver_name, driver_version, env):
        raise DriverError("modern_ebpf driver has no artifact to build")


_DRIVER_TYPES: dict[DriverTypeName, type[DriverType]] = {
    DriverTypeName.KMOD: Kmod,
    DriverTypeName.EBPF: Bpf,
    DriverTypeName.MODERN_EBPF: ModernBpf,
}


def parse_driver_type(name: str | DriverTypeName) -> DriverType:
    """Create the backend for a driver type name.

    Raises:
        ValueError: If the name is not a known driver type
    """
    try:
        type_name = DriverTypeName(name)
    except ValueError as e:
        supported = ", ".join(t.value for t in DriverTypeName)
        raise ValueError(f"Unsupported driver type: {name} (supported: {supported})") from e
    return _DRIVER_TYPES[type_name]()
