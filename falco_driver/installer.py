"""
Driver installation with download-then-build fallback.

This module provides the DriverInstaller that resolves the kernel, distro
and driver type, then obtains the driver artifact by downloading a prebuilt
one and, failing that, building it locally.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .config_io import DriverConfig
from .context import Context
from .distro import build, discover_distro, download
from .distro.registry import DistroRegistry
from .distro.variants import Distro
from .drivertype import DriverType, parse_driver_type
from .errors import DriverError
from .kernelrelease import KernelRelease
from .output import Printer
from .shared import InstallMode


@dataclass
class InstallResult:
    """Result of a driver installation."""

    distro: Distro
    driver_type: DriverType
    requested_modes: list[InstallMode]
    actual_mode: InstallMode | None = None
    path: str | None = None
    distro_determined: bool = True
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.path is not None or not self.driver_type.has_artifact()

    def get_summary(self) -> str:
        if not self.driver_type.has_artifact():
            return f"Driver {self.driver_type} needs no artifact for {self.distro}"
        if not self.success:
            error_summary = "; ".join(self.errors) if self.errors else "Unknown error"
            return f"Installation failed for {self.driver_type} on {self.distro}: {error_summary}"
        mode_text = self.actual_mode.value if self.actual_mode else "unknown"
        return f"Installed {self.driver_type} driver for {self.distro} via {mode_text}: {self.path}"


def resolve_kernel_release(cfg: DriverConfig) -> KernelRelease:
    """Kernel release from the config overrides, or the running kernel."""
    host = KernelRelease.from_host()
    if not cfg.kernel_release:
        if cfg.kernel_version:
            return host.model_copy(update={"kernel_version": cfg.kernel_version})
        return host
    return KernelRelease.parse(
        cfg.kernel_release,
        kernel_version=cfg.kernel_version or "1",
        architecture=host.architecture,
    )


class DriverInstaller:
    """Orchestrates distro discovery, download and build for one kernel."""

    def __init__(self, cfg: DriverConfig, printer: Printer | None = None, registry: DistroRegistry | None = None) -> None:
        self.cfg = cfg
        self.printer = printer or Printer()
        self.registry = registry

    def _require_version(self) -> str:
        if not self.cfg.version:
            raise DriverError("driver version is required, set it in the config or with --version")
        return self.cfg.version

    def prepare(self, kr: KernelRelease) -> tuple[Distro, DriverType, bool]:
        discovery = discover_distro(kr, self.cfg.host_root, self.registry, self.printer)
        if not discovery.determined:
            self.printer.warn("Unable to determine the distro, trying the generic one.", err=discovery.error)
        distro = discovery.distro

        driver_type = parse_driver_type(self.cfg.type) if self.cfg.type else distro.preferred_driver(kr)
        self.printer.info("Detected host.", distro=distro, kernel=kr, driver=driver_type)
        return distro, driver_type, discovery.determined

    def install(
        self,
        ctx: Context,
        kr: KernelRelease | None = None,
        modes: list[InstallMode] | None = None,
    ) -> InstallResult:
        """Obtain the driver trying each mode in order, download first by default."""
        kr = kr or resolve_kernel_release(self.cfg)
        modes = modes or [InstallMode.DOWNLOAD, InstallMode.BUILD]
        distro, driver_type, determined = self.prepare(kr)
        result = InstallResult(distro, driver_type, modes, distro_determined=determined)

        if not driver_type.has_artifact():
            self.printer.info("Driver has no artifact, nothing to do.", driver=driver_type)
            return result

        version = self._require_version()
        for mode in modes:
            try:
                if mode is InstallMode.DOWNLOAD:
                    path = download(
                        ctx, distro, self.printer, kr, self.cfg.name, driver_type, version, self.cfg.repos, self.cfg.http_timeout
                    )
                else:
                    path = build(ctx, distro, self.printer, kr, self.cfg.name, driver_type, version, self.cfg.host_root)
            except (DriverError, OSError) as e:
                ctx.check()
                result.errors.append(f"{mode.value}: {e}")
                self.printer.warn("Driver installation attempt failed.", mode=mode.value, err=e)
                continue

            result.actual_mode = mode
            result.path = path
            self.printer.info("Driver installed.", mode=mode.value, path=path)
            return result

        self.printer.error("All driver installation attempts failed.", distro=distro, kernel=kr)
        return result
